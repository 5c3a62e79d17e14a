"""Completeness checks: is each skill section meaningfully filled in?

Completeness is not an issue list. Each section gets an independent boolean
predicate; the export gate and progress dashboards consume them.
"""

import re
from typing import Any, Dict, List

from contracts import MockStatus
from validators.document import as_dict, as_list, dicts, is_text, require_mapping
from validators.security_validator import is_security_complete, get_security_report


MIN_PROBLEM_STATEMENT_LENGTH = 10

EMAIL_PATTERN = re.compile(r"[^@\s]+@[^@\s]+\.[^@\s]+")

# Canonical section list; `engine` always has defaults and is left out of progress
SECTIONS = [
    "problem",
    "scenarios",
    "role",
    "intents",
    "tools",
    "policy",
    "engine",
    "mocks_tested",
    "identity",
    "security",
]
PROGRESS_SECTIONS = [s for s in SECTIONS if s != "engine"]


def is_problem_complete(skill: Dict[str, Any]) -> bool:
    statement = as_dict(skill.get("problem")).get("statement")
    return isinstance(statement, str) and len(statement) >= MIN_PROBLEM_STATEMENT_LENGTH


def are_scenarios_complete(skill: Dict[str, Any]) -> bool:
    scenarios = dicts(skill.get("scenarios"))
    return len(scenarios) >= 1 and all(is_text(s.get("title")) for s in scenarios)


def is_role_complete(skill: Dict[str, Any]) -> bool:
    role = as_dict(skill.get("role"))
    return is_text(role.get("name")) and is_text(role.get("persona"))


def are_intents_complete(skill: Dict[str, Any]) -> bool:
    intents = dicts(as_dict(skill.get("intents")).get("supported"))
    return len(intents) >= 1 and all(
        is_text(i.get("description")) and len(as_list(i.get("examples"))) >= 1
        for i in intents
    )


def _tool_fully_defined(tool: Dict[str, Any]) -> bool:
    return (
        is_text(tool.get("name"))
        and is_text(tool.get("description"))
        and is_text(as_dict(tool.get("output")).get("description"))
    )


def are_tools_complete(skill: Dict[str, Any]) -> bool:
    tools = dicts(skill.get("tools"))
    return len(tools) >= 1 and all(_tool_fully_defined(t) for t in tools)


def _guardrails(skill: Dict[str, Any]) -> Dict[str, List[Any]]:
    guardrails = as_dict(as_dict(skill.get("policy")).get("guardrails"))
    return {"never": as_list(guardrails.get("never")), "always": as_list(guardrails.get("always"))}


def is_policy_complete(skill: Dict[str, Any]) -> bool:
    guardrails = _guardrails(skill)
    return len(guardrails["never"]) > 0 or len(guardrails["always"]) > 0


def are_mocks_tested(skill: Dict[str, Any]) -> bool:
    """Every tool tested or explicitly skipped. False with zero tools: there is nothing to export."""
    tools = dicts(skill.get("tools"))
    if not tools:
        return False
    return all(t.get("mock_status") != MockStatus.UNTESTED.value for t in tools)


def is_identity_complete(skill: Dict[str, Any]) -> bool:
    identity = as_dict(skill.get("skill_identity"))
    from_email = as_dict(as_dict(identity.get("channel_identities")).get("email")).get("from_email")
    return (
        is_text(identity.get("display_name"))
        and isinstance(from_email, str)
        and EMAIL_PATTERN.fullmatch(from_email) is not None
    )


def check_completeness(skill: Dict[str, Any]) -> Dict[str, bool]:
    """Evaluate every section predicate.

    Args:
        skill: Skill document

    Returns:
        Section name -> complete, for every name in SECTIONS

    Raises:
        TypeError: If skill is not a mapping
    """
    require_mapping(skill, "skill")
    return {
        "problem": is_problem_complete(skill),
        "scenarios": are_scenarios_complete(skill),
        "role": is_role_complete(skill),
        "intents": are_intents_complete(skill),
        "tools": are_tools_complete(skill),
        "policy": is_policy_complete(skill),
        "engine": True,
        "mocks_tested": are_mocks_tested(skill),
        "identity": is_identity_complete(skill),
        "security": is_security_complete(skill),
    }


def calculate_progress(completeness: Dict[str, bool]) -> int:
    """Rounded percentage of progress sections marked complete."""
    done = sum(1 for section in PROGRESS_SECTIONS if completeness.get(section))
    return round(done / len(PROGRESS_SECTIONS) * 100)


def get_completeness_report(skill: Dict[str, Any]) -> Dict[str, Any]:
    """Per-section completeness with raw counts for UI display."""
    completeness = check_completeness(skill)
    problem = as_dict(skill.get("problem"))
    scenarios = dicts(skill.get("scenarios"))
    role = as_dict(skill.get("role"))
    intents = dicts(as_dict(skill.get("intents")).get("supported"))
    tools = dicts(skill.get("tools"))
    policy = as_dict(skill.get("policy"))
    guardrails = _guardrails(skill)
    identity = as_dict(skill.get("skill_identity"))
    statuses = [t.get("mock_status") for t in tools]

    report: Dict[str, Any] = {
        "problem": {
            "complete": completeness["problem"],
            "details": {
                "has_statement": completeness["problem"],
                "has_context": is_text(problem.get("context")),
                "has_goals": len(as_list(problem.get("goals"))) > 0,
            },
        },
        "scenarios": {
            "complete": completeness["scenarios"],
            "details": {
                "count": len(scenarios),
                "min_required": 1,
                "with_steps": sum(1 for s in scenarios if as_list(s.get("steps"))),
            },
        },
        "role": {
            "complete": completeness["role"],
            "details": {
                "has_name": is_text(role.get("name")),
                "has_persona": is_text(role.get("persona")),
                "has_goals": len(as_list(role.get("goals"))) > 0,
                "has_limitations": len(as_list(role.get("limitations"))) > 0,
            },
        },
        "intents": {
            "complete": completeness["intents"],
            "details": {
                "count": len(intents),
                "min_required": 1,
                "with_examples": sum(1 for i in intents if as_list(i.get("examples"))),
            },
        },
        "tools": {
            "complete": completeness["tools"],
            "details": {
                "count": len(tools),
                "min_required": 1,
                "fully_defined": sum(1 for t in tools if _tool_fully_defined(t)),
            },
        },
        "policy": {
            "complete": completeness["policy"],
            "details": {
                "never_count": len(guardrails["never"]),
                "always_count": len(guardrails["always"]),
                "workflows_count": len(as_list(policy.get("workflows"))),
                "approvals_count": len(as_list(policy.get("approvals"))),
            },
        },
        "engine": {"complete": True, "details": {}},
        "mocks_tested": {
            "complete": completeness["mocks_tested"],
            "details": {
                "total": len(tools),
                "tested": statuses.count(MockStatus.TESTED.value),
                "skipped": statuses.count(MockStatus.SKIPPED.value),
                "untested": statuses.count(MockStatus.UNTESTED.value),
            },
        },
        "identity": {
            "complete": completeness["identity"],
            "details": {
                "has_display_name": is_text(identity.get("display_name")),
                "has_from_email": bool(
                    as_dict(as_dict(identity.get("channel_identities")).get("email")).get("from_email")
                ),
                "activated": bool(identity.get("actor_id")),
            },
        },
        "security": {
            "complete": completeness["security"],
            "details": get_security_report(skill),
        },
    }
    report["overall_progress"] = calculate_progress(completeness)
    return report


def get_incomplete_sections(skill: Dict[str, Any]) -> List[str]:
    """Names of sections that are not yet complete, in canonical order."""
    completeness = check_completeness(skill)
    return [section for section in SECTIONS if not completeness[section]]
