"""Shared document fixtures."""

import copy

import pytest

from samples import load_example


READY_SKILL = {
    "id": "order-status",
    "name": "Order Status",
    "phase": "PROBLEM_DISCOVERY",
    "problem": {"statement": "Customers cannot see where their orders are"},
    "role": {"name": "Order Assistant", "persona": "Friendly and precise"},
    "intents": {"supported": []},
    "engine": {},
    "tools": [
        {
            "id": "tool-get-order",
            "name": "get_order",
            "description": "Fetch an order by id",
            "inputs": [{"name": "order_id", "type": "string"}],
            "output": {"type": "object", "description": "The order"},
            "security": {"classification": "public"},
        }
    ],
    "policy": {},
}


def make_skill(**overrides):
    """Minimal skill with no errors or warnings that is ready to export."""
    skill = copy.deepcopy(READY_SKILL)
    skill.update(copy.deepcopy(overrides))
    return skill


def make_tool(name, **fields):
    tool = {
        "id": f"tool-{name}",
        "name": name,
        "description": f"{name} tool",
        "inputs": [],
        "output": {"type": "object", "description": f"{name} result"},
        "security": {"classification": "public"},
    }
    tool.update(fields)
    return tool


def make_workflow(workflow_id, steps, **fields):
    workflow = {"id": workflow_id, "name": workflow_id, "steps": steps}
    workflow.update(fields)
    return workflow


@pytest.fixture
def ready_skill():
    return make_skill()


@pytest.fixture
def order_support_skill():
    return load_example("skill")


@pytest.fixture
def ecommerce_solution():
    return load_example("solution")
