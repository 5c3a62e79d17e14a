"""Phase-transition gates for skill drafts.

A draft moves through the phases in Phase order. Each target phase has a
gate over the document; EXPORTED is gated on a full validation pass.
"""

from typing import Any, Callable, Dict, List, Optional, Union

from contracts import Phase, PhaseSuggestion, MockStatus, parse_enum
from validators.document import as_dict, as_list, dicts
from validators.completeness_checker import MIN_PROBLEM_STATEMENT_LENGTH
from validators.pipeline import validate_skill, READINESS_SECTIONS


PHASE_ORDER: List[Phase] = list(Phase)

ADVANCE_REASONS = {
    Phase.SCENARIO_EXPLORATION: "Problem statement is defined",
    Phase.INTENT_DEFINITION: "Scenarios are defined",
    Phase.TOOLS_PROPOSAL: "Intents with examples are defined",
    Phase.TOOL_DEFINITION: "Tools are proposed",
    Phase.POLICY_DEFINITION: "Tools are fully defined",
    Phase.MOCK_TESTING: "Policies are defined",
    Phase.READY_TO_EXPORT: "All mocks are tested",
    Phase.EXPORTED: "Skill is ready to export",
}


def _intents(skill):
    return dicts(as_dict(skill.get("intents")).get("supported"))


def _problem_blockers(skill) -> List[str]:
    statement = as_dict(skill.get("problem")).get("statement")
    if not isinstance(statement, str) or len(statement) < MIN_PROBLEM_STATEMENT_LENGTH:
        return [f"Problem statement must be at least {MIN_PROBLEM_STATEMENT_LENGTH} characters"]
    return []


def _scenario_blockers(skill) -> List[str]:
    if not as_list(skill.get("scenarios")):
        return ["Define at least 1 scenario before proceeding"]
    return []


def _intent_blockers(skill) -> List[str]:
    blockers = []
    intents = _intents(skill)
    if not intents:
        blockers.append("Define at least 1 intent")
    missing = [str(i.get("id")) for i in intents if not as_list(i.get("examples"))]
    if missing:
        blockers.append(f"Add examples to intents: {', '.join(missing)}")
    return blockers


def _tool_blockers(skill) -> List[str]:
    if not as_list(skill.get("tools")):
        return ["Define at least 1 tool"]
    return []


def _tool_definition_blockers(skill) -> List[str]:
    incomplete = [str(t.get("name")) for t in dicts(skill.get("tools")) if not as_dict(t.get("output")).get("description")]
    if incomplete:
        return [f"Complete output definition for tools: {', '.join(incomplete)}"]
    return []


def _policy_blockers(skill) -> List[str]:
    guardrails = as_dict(as_dict(skill.get("policy")).get("guardrails"))
    if not as_list(guardrails.get("never")) and not as_list(guardrails.get("always")):
        return ["Define at least one guardrail (never or always)"]
    return []


def _mock_blockers(skill) -> List[str]:
    untested = [str(t.get("name")) for t in dicts(skill.get("tools")) if t.get("mock_status") == MockStatus.UNTESTED.value]
    if untested:
        return [f"Test or skip mocks for tools: {', '.join(untested)}"]
    return []


def _export_blockers(skill) -> List[str]:
    result = validate_skill(skill)
    if result.ready_to_export:
        return []
    blockers = [issue.message for issue in result.errors]
    if result.unresolved.tools:
        blockers.append(f"Unresolved tool references: {', '.join(result.unresolved.tools)}")
    if result.unresolved.workflows:
        blockers.append(f"Unresolved workflow references: {', '.join(result.unresolved.workflows)}")
    if not blockers:
        # Readiness also needs the required sections complete
        missing = [s for s in READINESS_SECTIONS if not result.completeness.get(s)]
        blockers.append(f"Complete required sections: {', '.join(missing)}")
    return blockers


# Target phase -> unmet requirements; phases without a gate are always open
PHASE_GATES: Dict[Phase, Callable[[Dict[str, Any]], List[str]]] = {
    Phase.SCENARIO_EXPLORATION: _problem_blockers,
    Phase.INTENT_DEFINITION: _scenario_blockers,
    Phase.TOOLS_PROPOSAL: _intent_blockers,
    Phase.TOOL_DEFINITION: _tool_blockers,
    Phase.POLICY_DEFINITION: _tool_definition_blockers,
    Phase.MOCK_TESTING: _policy_blockers,
    Phase.READY_TO_EXPORT: _mock_blockers,
    Phase.EXPORTED: _export_blockers,
}


def get_blocking_issues(skill: Dict[str, Any], target_phase: Union[Phase, str]) -> List[str]:
    """Human-readable requirements still unmet for the target phase.

    Raises:
        InvalidEnumError: If target_phase is not a known phase
    """
    phase = parse_enum(Phase, target_phase)
    gate = PHASE_GATES.get(phase)
    return gate(skill) if gate else []


def can_transition_to_phase(skill: Dict[str, Any], target_phase: Union[Phase, str]) -> bool:
    """True when nothing blocks the move to target_phase."""
    return not get_blocking_issues(skill, target_phase)


def get_next_phase(current: Union[Phase, str, None]) -> Optional[Phase]:
    """Phase after current, or None at the end or for an unknown phase."""
    try:
        index = PHASE_ORDER.index(Phase(current))
    except ValueError:
        return None
    return PHASE_ORDER[index + 1] if index + 1 < len(PHASE_ORDER) else None


def get_previous_phase(current: Union[Phase, str, None]) -> Optional[Phase]:
    """Phase before current, or None at the start or for an unknown phase."""
    try:
        index = PHASE_ORDER.index(Phase(current))
    except ValueError:
        return None
    return PHASE_ORDER[index - 1] if index > 0 else None


def should_suggest_phase_advance(skill: Dict[str, Any]) -> PhaseSuggestion:
    """Suggest moving the draft on when its next phase's gate is open."""
    next_phase = get_next_phase(skill.get("phase"))
    if next_phase is None:
        return PhaseSuggestion(suggest=False, next_phase=None, reason="Already at final phase")

    blocking = get_blocking_issues(skill, next_phase)
    if blocking:
        return PhaseSuggestion(
            suggest=False,
            next_phase=next_phase,
            reason="Requirements not yet met",
            blocking=blocking,
        )
    return PhaseSuggestion(
        suggest=True,
        next_phase=next_phase,
        reason=ADVANCE_REASONS.get(next_phase, "Ready to proceed"),
    )
