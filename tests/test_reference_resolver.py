"""Tests for cross-reference resolution."""

import copy

import pytest

from contracts import Severity, Unresolved, ResolutionMap
from validators import (
    resolve_references,
    are_all_references_resolved,
    get_unresolved_tool_refs,
    get_unresolved_workflow_refs,
)
from validators.reference_resolver import ToolIndex, intent_keywords
from conftest import make_skill, make_tool, make_workflow


def _codes(resolution):
    return [i.code for i in resolution.issues]


def _with_workflows(*workflows, **fields):
    return make_skill(policy={"workflows": list(workflows), **fields})


def _intent(intent_id, **fields):
    intent = {"id": intent_id, "description": intent_id, "examples": ["example"]}
    intent.update(fields)
    return intent


class TestToolIndex:
    """Which names a reference may use."""

    def test_id_name_and_system_prefixes(self):
        skill = make_skill(
            tools=[make_tool("Get_Order", id="tool-1")],
            meta_tools=[{"id": "meta-1", "name": "plan_steps"}],
        )
        index = ToolIndex(skill)
        assert index.resolves("tool-1")
        assert index.resolves("get_order")
        assert index.resolves("GET_ORDER")
        assert index.resolves("meta-1")
        assert index.resolves("plan_steps")
        assert index.resolves("ui.listPlugins")
        assert not index.resolves("TOOL-1")
        assert not index.resolves("ship_order")
        assert not index.resolves(None)


class TestWorkflowSteps:
    """Workflow step resolution."""

    def test_resolution_map_per_step(self):
        skill = _with_workflows(make_workflow("flow", ["get_order", "ship_order", "sys.askUser"]))
        result = resolve_references(skill)
        assert result.resolution.steps == {"flow/0": True, "flow/1": False, "flow/2": True}
        assert result.resolution.steps_resolved("flow") == [True, False, True]
        assert result.unresolved.tools == ["ship_order"]

    def test_workflow_without_id_uses_position(self):
        skill = _with_workflows({"name": "nameless", "steps": ["get_order"]})
        result = resolve_references(skill)
        assert result.resolution.steps == {"workflows[0]/0": True}

    def test_unresolved_refs_are_deduplicated(self):
        skill = _with_workflows(
            make_workflow("a", ["ship_order"]),
            make_workflow("b", ["ship_order"]),
        )
        result = resolve_references(skill)
        assert _codes(result) == ["TOOL_NOT_FOUND", "TOOL_NOT_FOUND"]
        assert result.unresolved.tools == ["ship_order"]

    def test_document_is_not_modified(self):
        skill = _with_workflows(make_workflow("flow", ["ship_order"]))
        before = copy.deepcopy(skill)
        resolve_references(skill)
        assert skill == before
        assert "steps_resolved" not in skill["policy"]["workflows"][0]

    def test_caller_accumulator_is_filled(self):
        bucket = Unresolved(tools=["earlier"])
        skill = _with_workflows(make_workflow("flow", ["ship_order"]))
        resolve_references(skill, bucket)
        assert bucket.tools == ["earlier", "ship_order"]


class TestIntentMappings:
    """maps_to_workflow resolution."""

    def test_mapped_and_unmapped(self):
        skill = make_skill(
            intents={"supported": [
                _intent("get_order", maps_to_workflow="flow"),
                _intent("cancel_order", maps_to_workflow="cancel_flow"),
                _intent("order_help"),
            ]},
            policy={"workflows": [make_workflow("flow", ["get_order"])]},
        )
        result = resolve_references(skill)
        assert result.resolution.intents == {"get_order": True, "cancel_order": False, "order_help": True}
        assert result.unresolved.workflows == ["cancel_flow"]
        issue = [i for i in result.issues if i.code == "WORKFLOW_NOT_FOUND"][0]
        assert issue.severity == Severity.WARNING
        assert issue.path == "intents.supported[1].maps_to_workflow"


class TestApprovals:
    """Approval rule tool references."""

    def test_approval_tool_resolution(self):
        skill = make_skill(policy={"approvals": [
            {"id": "a1", "tool_id": "tool-get-order"},
            {"id": "a2", "tool_id": "refund_payment"},
            {"id": "a3"},
        ]})
        result = resolve_references(skill)
        assert result.resolution.approvals == {"a1": True, "a2": False}
        assert _codes(result) == ["TOOL_NOT_FOUND"]
        assert result.issues[0].path == "policy.approvals[1].tool_id"
        assert result.unresolved.tools == ["refund_payment"]


class TestDuplicates:
    """Duplicate id detection."""

    def test_each_duplicated_value_reported_once(self):
        skill = make_skill(tools=[
            make_tool("a", id="x"),
            make_tool("b", id="x"),
            make_tool("c", id="x"),
            make_tool("d", id="y"),
            make_tool("e", id="y"),
        ])
        result = resolve_references(skill)
        issues = [i for i in result.issues if i.code == "DUPLICATE_TOOL_ID"]
        assert len(issues) == 2
        assert [i.path for i in issues] == ["tools[1].id", "tools[4].id"]
        assert all(i.severity == Severity.ERROR for i in issues)

    def test_duplicate_tool_name_is_case_insensitive_warning(self):
        skill = make_skill(tools=[make_tool("get_order", id="a"), make_tool("Get_Order", id="b")])
        result = resolve_references(skill)
        assert _codes(result) == ["DUPLICATE_TOOL_NAME"]
        assert result.issues[0].severity == Severity.WARNING

    def test_workflow_intent_and_scenario_duplicates(self):
        skill = make_skill(
            scenarios=[{"id": "s", "title": "one"}, {"id": "s", "title": "two"}],
            intents={"supported": [_intent("get_order"), _intent("get_order")]},
            policy={"workflows": [make_workflow("w", ["get_order"]), make_workflow("w", ["get_order"])]},
        )
        codes = _codes(resolve_references(skill))
        assert codes.count("DUPLICATE_WORKFLOW_ID") == 1
        assert codes.count("DUPLICATE_INTENT_ID") == 1
        assert codes.count("DUPLICATE_SCENARIO_ID") == 1


class TestIntentConnectivity:
    """The keyword heuristic for intents without a workflow."""

    def test_keywords(self):
        assert intent_keywords("check_order-status.v2") == ["check", "order", "status"]
        assert intent_keywords("go_to_faq") == ["faq"]

    def test_keyword_in_tool_name_connects(self):
        skill = make_skill(intents={"supported": [_intent("track_order")]})
        assert _codes(resolve_references(skill)) == []

    def test_workflow_trigger_connects(self):
        skill = make_skill(
            intents={"supported": [_intent("weather_forecast")]},
            policy={"workflows": [make_workflow("w", ["get_order"], trigger="weather_forecast")]},
        )
        assert _codes(resolve_references(skill)) == []

    def test_unconnected_intent_warns(self):
        skill = make_skill(intents={"supported": [_intent("weather_forecast")]})
        result = resolve_references(skill)
        assert _codes(result) == ["INTENT_NO_TOOLS"]
        assert result.issues[0].severity == Severity.WARNING
        assert result.unresolved.intents == ["weather_forecast"]

    def test_short_keywords_are_ignored(self):
        # "go" and "to" are too short to match "get_order"
        skill = make_skill(intents={"supported": [_intent("go_to")]})
        assert _codes(resolve_references(skill)) == ["INTENT_NO_TOOLS"]

    def test_substring_collision_counts(self):
        # "der" is inside "get_order"
        skill = make_skill(intents={"supported": [_intent("der_x")]})
        assert _codes(resolve_references(skill)) == []


class TestWorkflowCycles:
    """Workflow graph cycles."""

    def test_two_node_cycle(self):
        skill = _with_workflows(make_workflow("A", ["B"]), make_workflow("B", ["A"]))
        issues = resolve_references(skill).issues
        assert [i.code for i in issues] == ["WORKFLOW_CIRCULAR"]
        assert issues[0].severity == Severity.ERROR
        assert issues[0].message == "Circular workflow reference detected: A → B → A"
        assert issues[0].details["cycle"] == ["A", "B", "A"]

    def test_self_reference_is_not_a_cycle(self):
        skill = _with_workflows(make_workflow("A", ["A", "get_order"]))
        assert "WORKFLOW_CIRCULAR" not in _codes(resolve_references(skill))

    def test_disconnected_cycles(self):
        skill = _with_workflows(
            make_workflow("A", ["B"]),
            make_workflow("B", ["A"]),
            make_workflow("C", ["D"]),
            make_workflow("D", ["C"]),
        )
        assert _codes(resolve_references(skill)).count("WORKFLOW_CIRCULAR") == 2

    def test_chain_without_cycle(self):
        skill = _with_workflows(make_workflow("A", ["B"]), make_workflow("B", ["get_order"]))
        assert _codes(resolve_references(skill)) == []


class TestHelpers:
    """Convenience queries."""

    def test_all_resolved(self):
        assert are_all_references_resolved(ResolutionMap()) is True
        assert are_all_references_resolved(ResolutionMap(steps={"w/0": True}, approvals={"a": False})) is False

    def test_unresolved_queries(self):
        skill = make_skill(
            intents={"supported": [_intent("get_order", maps_to_workflow="missing_flow")]},
            policy={"workflows": [make_workflow("flow", ["ship_order"])]},
        )
        assert get_unresolved_tool_refs(skill) == ["ship_order"]
        assert get_unresolved_workflow_refs(skill) == ["missing_flow"]

    def test_non_mapping_raises(self):
        with pytest.raises(TypeError):
            resolve_references(None)
