"""Default filling for skill and solution documents.

Takes any sparse document (even just `{"id": ...}`) and returns a fully
formed copy with every section present. Runs before validation so the
validators always see the required top-level keys. Idempotent: filling an
already complete document changes nothing.
"""

import copy
from datetime import datetime, timezone
from typing import Any, Dict

from contracts import Phase


SKILL_DEFAULTS: Dict[str, Any] = {
    # id and name have no defaults
    "description": "",
    "version": "0.1.0",
    "phase": Phase.PROBLEM_DISCOVERY.value,
    "problem": {
        "statement": "",
        "context": "",
        "goals": [],
    },
    "scenarios": [],
    "role": {
        "name": "",
        "persona": "",
        "goals": [],
        "limitations": [],
    },
    "glossary": {},
    "intents": {
        "supported": [],
        "thresholds": {"accept": 0.8, "clarify": 0.5, "reject": 0.5},
        "out_of_domain": {"action": "redirect", "message": ""},
    },
    "engine": {
        "rv2": {
            "max_iterations": 10,
            "iteration_timeout_ms": 30000,
            "allow_parallel_tools": False,
            "on_max_iterations": "ask_user",
        },
        "hlr": {
            "enabled": True,
            "critic": {"enabled": True, "check_interval": 3, "strictness": "medium"},
            "reflection": {"enabled": True, "depth": "shallow"},
            "replanning": {"enabled": True, "max_replans": 5},
        },
        "autonomy": {"level": "supervised"},
        "finalization_gate": {"enabled": True, "max_retries": 2},
        "internal_error": {
            "enabled": True,
            "tool_not_found": {"enter_resolution_after": 1, "retryable": False},
            "resolution": {
                "max_iterations": 1,
                "allowed_capabilities": ["read", "search", "document_output"],
            },
            "loop_detection": {"enabled": True, "identical_call_threshold": 2},
        },
    },
    "toolbox_imports": [],
    "tools": [],
    "meta_tools": [],
    "triggers": [],
    "connectors": [],
    "policy": {
        "guardrails": {"never": [], "always": []},
        "approvals": [],
        "workflows": [],
        "escalation": {"enabled": False, "conditions": [], "target": ""},
    },
    "channels": [],
    "conversation": [],
}

SOLUTION_DEFAULTS: Dict[str, Any] = {
    "version": "1.0.0",
    "description": "",
    "phase": "SOLUTION_DISCOVERY",
    "identity": {
        "actor_types": [],
        "admin_roles": [],
        "default_actor_type": "",
        "default_roles": [],
    },
    "skills": [],
    "grants": [],
    "handoffs": [],
    "routing": {},
    "platform_connectors": [],
    "security_contracts": [],
    "linked_skills": [],
    "conversation": [],
}

SKILL_ARRAY_FIELDS = ["conversation", "tools", "scenarios", "meta_tools", "triggers", "channels", "connectors", "toolbox_imports"]
SOLUTION_ARRAY_FIELDS = ["skills", "grants", "handoffs", "platform_connectors", "security_contracts", "linked_skills", "conversation"]


def deep_merge(defaults: Any, source: Any) -> Any:
    """Merge `source` over `defaults` into a new structure.

    - Mappings are merged recursively, source wins for leaf values
    - Lists from the source replace the default whole
    - None in the source keeps the default

    Neither argument is modified and the result shares no mutable state
    with them.
    """
    if not isinstance(source, dict):
        return copy.deepcopy(source if source is not None else defaults)
    if not isinstance(defaults, dict):
        return copy.deepcopy(source)

    result = copy.deepcopy(defaults)
    for key, value in source.items():
        if value is None:
            continue
        if isinstance(value, dict) and isinstance(defaults.get(key), dict):
            result[key] = deep_merge(defaults[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _require_id(sparse: Any, what: str) -> None:
    if not isinstance(sparse, dict):
        raise TypeError(f"{what} must be a mapping, got {type(sparse).__name__}")
    if not sparse.get("id"):
        raise ValueError(f"{what} must have an id")


def _finish(result: Dict[str, Any], array_fields) -> Dict[str, Any]:
    if not result.get("created_at"):
        result["created_at"] = _now()
    if not result.get("updated_at"):
        result["updated_at"] = _now()
    if not result.get("name"):
        result["name"] = result["id"]
    for field in array_fields:
        if not isinstance(result.get(field), list):
            result[field] = []
    return result


def ensure_skill_defaults(sparse: Dict[str, Any]) -> Dict[str, Any]:
    """Fill every missing skill field with its default.

    Args:
        sparse: Partial skill document; must carry an id

    Returns:
        New, complete skill document

    Raises:
        TypeError: If sparse is not a mapping
        ValueError: If sparse has no id
    """
    _require_id(sparse, "skill")
    result = _finish(deep_merge(SKILL_DEFAULTS, sparse), SKILL_ARRAY_FIELDS)

    role = result.get("role")
    if isinstance(role, dict) and not role.get("name"):
        role["name"] = result["name"]
    return result


def ensure_solution_defaults(sparse: Dict[str, Any]) -> Dict[str, Any]:
    """Fill every missing solution field with its default.

    Raises:
        TypeError: If sparse is not a mapping
        ValueError: If sparse has no id
    """
    _require_id(sparse, "solution")
    return _finish(deep_merge(SOLUTION_DEFAULTS, sparse), SOLUTION_ARRAY_FIELDS)
