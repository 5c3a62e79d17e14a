"""Schema validation for skill documents.

Type, shape and enum checks over every section. Each section validator is
independent: a missing or broken section never stops the others from being
checked, and every violated constraint yields exactly one issue.
"""

import re
from enum import Enum
from typing import Any, Dict, List, Optional, Type

from loguru import logger

from contracts import (
    Issue,
    InvalidEnumError,
    parse_enum,
    error,
    warning,
    Phase,
    DataType,
    Tone,
    Verbosity,
    OutOfDomainAction,
    ToolPolicyAllowed,
    MockMode,
    MockStatus,
    TriggerType,
    AutonomyLevel,
    OnMaxIterations,
    CriticStrictness,
    DeviationAction,
)
from validators.document import as_dict, as_list, is_number, is_text, require_mapping


# ISO-8601 duration subset accepted for schedule triggers: P1D, PT2M, P1DT12H
DURATION_PATTERN = re.compile(r"P(?:[0-9]+D)?(?:T(?:[0-9]+H)?(?:[0-9]+M)?(?:[0-9]+S)?)?")

DURATION_HINT = 'Use format like "PT2M" (2 minutes), "PT1H" (1 hour), "P1D" (1 day)'


def _enum_issue(
    enum_cls: Type[Enum],
    value: Any,
    code: str,
    path: str,
    label: str,
) -> Optional[Issue]:
    """Parse value into enum_cls; return an INVALID_* error if it is not a member."""
    try:
        parse_enum(enum_cls, value)
    except InvalidEnumError as exc:
        return error(
            code,
            path,
            f"Invalid {label}: {exc.value}. Must be one of: {', '.join(exc.allowed)}",
        )
    return None


def _check_enum(issues: List[Issue], enum_cls: Type[Enum], value: Any, code: str, path: str, label: str) -> None:
    """Append an enum issue when a present value is not allowed."""
    if value is None or value == "":
        return
    issue = _enum_issue(enum_cls, value, code, path, label)
    if issue:
        issues.append(issue)


def validate_metadata(skill: Dict[str, Any]) -> List[Issue]:
    issues = []
    if not is_text(skill.get("id")):
        issues.append(error("INVALID_ID", "id", "Skill ID is required and must be a string"))
    if not is_text(skill.get("name")):
        issues.append(error("INVALID_NAME", "name", "Skill name is required and must be a string"))
    issue = _enum_issue(Phase, skill.get("phase"), "INVALID_PHASE", "phase", "phase")
    if issue:
        issues.append(issue)
    return issues


def validate_problem(problem: Any) -> List[Issue]:
    if not isinstance(problem, dict):
        return [error("MISSING_PROBLEM", "problem", "Problem section is required")]

    issues = []
    statement = problem.get("statement")
    if statement is not None and not isinstance(statement, str):
        issues.append(error("INVALID_PROBLEM_STATEMENT", "problem.statement", "Problem statement must be a string"))
    goals = problem.get("goals")
    if goals is not None and not isinstance(goals, list):
        issues.append(error("INVALID_PROBLEM_GOALS", "problem.goals", "Problem goals must be an array"))
    return issues


def validate_scenario(scenario: Any, path: str) -> List[Issue]:
    scenario = as_dict(scenario)
    issues = []
    if not scenario.get("id"):
        issues.append(error("MISSING_SCENARIO_ID", f"{path}.id", "Scenario ID is required"))
    if not is_text(scenario.get("title")):
        issues.append(warning(
            "INVALID_SCENARIO_TITLE",
            f"{path}.title",
            "Scenario title is required",
            "Add a descriptive title for the scenario",
        ))
    if not isinstance(scenario.get("steps"), list):
        issues.append(error("INVALID_SCENARIO_STEPS", f"{path}.steps", "Scenario steps must be an array"))
    return issues


def validate_role(role: Any) -> List[Issue]:
    if not isinstance(role, dict):
        return [error("MISSING_ROLE", "role", "Role section is required")]

    issues: List[Issue] = []
    style = as_dict(role.get("communication_style"))
    _check_enum(issues, Tone, style.get("tone"), "INVALID_TONE", "role.communication_style.tone", "tone")
    _check_enum(
        issues, Verbosity, style.get("verbosity"),
        "INVALID_VERBOSITY", "role.communication_style.verbosity", "verbosity",
    )
    return issues


def validate_intents(intents: Any) -> List[Issue]:
    if not isinstance(intents, dict):
        return [error("MISSING_INTENTS", "intents", "Intents section is required")]

    issues: List[Issue] = []

    thresholds = as_dict(intents.get("thresholds"))
    for name in ("accept", "clarify", "reject"):
        value = thresholds.get(name)
        if is_number(value) and not 0 <= value <= 1:
            issues.append(error(
                "INVALID_THRESHOLD",
                f"intents.thresholds.{name}",
                f"{name.capitalize()} threshold must be between 0 and 1",
            ))

    for i, intent in enumerate(as_list(intents.get("supported"))):
        issues.extend(validate_intent(intent, f"intents.supported[{i}]"))

    # Older drafts call this block out_of_skill
    key = "out_of_domain" if "out_of_domain" in intents else "out_of_skill"
    ood = as_dict(intents.get(key))
    _check_enum(issues, OutOfDomainAction, ood.get("action"), "INVALID_OOD_ACTION", f"intents.{key}.action", "out-of-domain action")

    return issues


def validate_intent(intent: Any, path: str) -> List[Issue]:
    intent = as_dict(intent)
    issues: List[Issue] = []
    if not intent.get("id"):
        issues.append(error("MISSING_INTENT_ID", f"{path}.id", "Intent ID is required"))
    if not is_text(intent.get("description")):
        issues.append(warning(
            "INVALID_INTENT_DESCRIPTION",
            f"{path}.description",
            "Intent description is required",
            "Add a clear description of what this intent represents",
        ))
    examples = intent.get("examples")
    if not isinstance(examples, list) or not examples:
        issues.append(warning(
            "MISSING_INTENT_EXAMPLES",
            f"{path}.examples",
            "Intent should have at least one example",
            "Add example phrases that would trigger this intent",
        ))
    for i, entity in enumerate(as_list(intent.get("entities"))):
        entity = as_dict(entity)
        entity_path = f"{path}.entities[{i}]"
        if not entity.get("name"):
            issues.append(error("MISSING_ENTITY_NAME", f"{entity_path}.name", "Entity name is required"))
        _check_enum(issues, DataType, entity.get("type"), "INVALID_ENTITY_TYPE", f"{entity_path}.type", "entity type")
    return issues


def _check_bool(issues: List[Issue], section: Dict[str, Any], key: str, code: str, path: str) -> None:
    if key in section and not isinstance(section[key], bool):
        issues.append(error(code, f"{path}.{key}", f"{path.split('.')[-1]}.{key} must be a boolean"))


def _check_min(issues: List[Issue], section: Dict[str, Any], key: str, minimum: int, code: str, path: str) -> None:
    if key in section:
        value = section[key]
        if not is_number(value) or value < minimum:
            issues.append(error(code, f"{path}.{key}", f"{key} must be a number >= {minimum}"))


def validate_engine(engine: Any) -> List[Issue]:
    if not isinstance(engine, dict):
        return [error("MISSING_ENGINE", "engine", "Engine section is required")]

    issues: List[Issue] = []

    rv2 = as_dict(engine.get("rv2"))
    max_iterations = rv2.get("max_iterations")
    if max_iterations is not None and (not is_number(max_iterations) or max_iterations < 1):
        issues.append(error("INVALID_MAX_ITERATIONS", "engine.rv2.max_iterations", "max_iterations must be at least 1"))
    _check_enum(
        issues, OnMaxIterations, rv2.get("on_max_iterations"),
        "INVALID_ON_MAX_ITERATIONS", "engine.rv2.on_max_iterations", "on_max_iterations",
    )

    critic = as_dict(as_dict(engine.get("hlr")).get("critic"))
    _check_enum(issues, CriticStrictness, critic.get("strictness"), "INVALID_STRICTNESS", "engine.hlr.critic.strictness", "strictness")

    autonomy = as_dict(engine.get("autonomy"))
    _check_enum(issues, AutonomyLevel, autonomy.get("level"), "INVALID_AUTONOMY_LEVEL", "engine.autonomy.level", "autonomy level")

    gate = engine.get("finalization_gate")
    if isinstance(gate, dict):
        _check_bool(issues, gate, "enabled", "INVALID_FINALIZATION_GATE_ENABLED", "engine.finalization_gate")
        retries = gate.get("max_retries")
        if "max_retries" in gate and (not is_number(retries) or not 0 <= retries <= 10):
            issues.append(error(
                "INVALID_FINALIZATION_GATE_RETRIES",
                "engine.finalization_gate.max_retries",
                "finalization_gate.max_retries must be a number between 0 and 10",
            ))

    internal = engine.get("internal_error")
    if isinstance(internal, dict):
        issues.extend(_validate_internal_error(internal))

    return issues


def _validate_internal_error(internal: Dict[str, Any]) -> List[Issue]:
    issues: List[Issue] = []
    base = "engine.internal_error"
    _check_bool(issues, internal, "enabled", "INVALID_INTERNAL_ERROR_ENABLED", base)

    not_found = internal.get("tool_not_found")
    if isinstance(not_found, dict):
        path = f"{base}.tool_not_found"
        _check_min(issues, not_found, "enter_resolution_after", 1, "INVALID_ENTER_RESOLUTION_AFTER", path)
        _check_bool(issues, not_found, "retryable", "INVALID_TOOL_NOT_FOUND_RETRYABLE", path)

    resolution = internal.get("resolution")
    if isinstance(resolution, dict):
        path = f"{base}.resolution"
        _check_min(issues, resolution, "max_iterations", 1, "INVALID_RESOLUTION_MAX_ITERATIONS", path)
        if "allowed_capabilities" in resolution and not isinstance(resolution["allowed_capabilities"], list):
            issues.append(error(
                "INVALID_ALLOWED_CAPABILITIES",
                f"{path}.allowed_capabilities",
                "resolution.allowed_capabilities must be an array",
            ))

    loop = internal.get("loop_detection")
    if isinstance(loop, dict):
        path = f"{base}.loop_detection"
        _check_bool(issues, loop, "enabled", "INVALID_LOOP_DETECTION_ENABLED", path)
        _check_min(issues, loop, "identical_call_threshold", 1, "INVALID_IDENTICAL_CALL_THRESHOLD", path)

    return issues


def validate_tool(tool: Any, path: str) -> List[Issue]:
    tool = as_dict(tool)
    issues: List[Issue] = []

    if not tool.get("id"):
        issues.append(error("MISSING_TOOL_ID", f"{path}.id", "Tool ID is required"))
    if not is_text(tool.get("name")):
        issues.append(error("INVALID_TOOL_NAME", f"{path}.name", "Tool name is required and must be a string"))
    if not is_text(tool.get("description")):
        issues.append(warning(
            "INVALID_TOOL_DESCRIPTION",
            f"{path}.description",
            "Tool description is required",
            "Add a clear description of what this tool does",
        ))

    inputs = tool.get("inputs")
    if not isinstance(inputs, list):
        issues.append(error("INVALID_TOOL_INPUTS", f"{path}.inputs", "Tool inputs must be an array"))
    else:
        for i, spec in enumerate(inputs):
            spec = as_dict(spec)
            if not spec.get("name"):
                issues.append(error("MISSING_INPUT_NAME", f"{path}.inputs[{i}].name", "Input name is required"))
            _check_enum(issues, DataType, spec.get("type"), "INVALID_INPUT_TYPE", f"{path}.inputs[{i}].type", "input type")

    output = tool.get("output")
    if not isinstance(output, dict):
        issues.append(error("MISSING_TOOL_OUTPUT", f"{path}.output", "Tool output is required"))
    else:
        _check_enum(issues, DataType, output.get("type"), "INVALID_OUTPUT_TYPE", f"{path}.output.type", "output type")

    policy = as_dict(tool.get("policy"))
    _check_enum(issues, ToolPolicyAllowed, policy.get("allowed"), "INVALID_TOOL_POLICY_ALLOWED", f"{path}.policy.allowed", "allowed value")

    mock = as_dict(tool.get("mock"))
    _check_enum(issues, MockMode, mock.get("mode"), "INVALID_MOCK_MODE", f"{path}.mock.mode", "mock mode")

    _check_enum(issues, MockStatus, tool.get("mock_status"), "INVALID_MOCK_STATUS", f"{path}.mock_status", "mock_status")

    return issues


def validate_policy(policy: Any) -> List[Issue]:
    if not isinstance(policy, dict):
        return [error("MISSING_POLICY", "policy", "Policy section is required")]

    issues: List[Issue] = []

    guardrails = as_dict(policy.get("guardrails"))
    for kind in ("never", "always"):
        value = guardrails.get(kind)
        if value is not None and not isinstance(value, list):
            issues.append(error(
                f"INVALID_GUARDRAILS_{kind.upper()}",
                f"policy.guardrails.{kind}",
                f"guardrails.{kind} must be an array",
            ))

    for i, workflow in enumerate(as_list(policy.get("workflows"))):
        workflow = as_dict(workflow)
        path = f"policy.workflows[{i}]"
        if not workflow.get("id"):
            issues.append(error("MISSING_WORKFLOW_ID", f"{path}.id", "Workflow ID is required"))
        if not workflow.get("name"):
            issues.append(warning("MISSING_WORKFLOW_NAME", f"{path}.name", "Workflow name is recommended"))
        if not isinstance(workflow.get("steps"), list):
            issues.append(error("INVALID_WORKFLOW_STEPS", f"{path}.steps", "Workflow steps must be an array"))
        _check_enum(
            issues, DeviationAction, workflow.get("on_deviation"),
            "INVALID_WORKFLOW_DEVIATION", f"{path}.on_deviation", "on_deviation",
        )

    for i, approval in enumerate(as_list(policy.get("approvals"))):
        approval = as_dict(approval)
        path = f"policy.approvals[{i}]"
        if not approval.get("id"):
            issues.append(error("MISSING_APPROVAL_ID", f"{path}.id", "Approval rule ID is required"))
        if not approval.get("tool_id"):
            issues.append(error("MISSING_APPROVAL_TOOL_ID", f"{path}.tool_id", "Approval rule must specify a tool_id"))

    return issues


def validate_trigger(trigger: Any, path: str) -> List[Issue]:
    """Validate one automation trigger; schedule and event triggers branch on `type`."""
    trigger = as_dict(trigger)
    issues: List[Issue] = []

    if not trigger.get("id"):
        issues.append(error("MISSING_TRIGGER_ID", f"{path}.id", "Trigger ID is required"))

    trigger_type = None
    try:
        trigger_type = parse_enum(TriggerType, trigger.get("type"))
    except InvalidEnumError as exc:
        issues.append(error(
            "INVALID_TRIGGER_TYPE",
            f"{path}.type",
            f"Invalid trigger type: {exc.value}. Must be one of: {', '.join(exc.allowed)}",
        ))

    if "enabled" in trigger and not isinstance(trigger["enabled"], bool):
        issues.append(error("INVALID_TRIGGER_ENABLED", f"{path}.enabled", "Trigger enabled must be a boolean"))

    if "concurrency" in trigger:
        concurrency = trigger["concurrency"]
        if not is_number(concurrency) or concurrency < 1:
            issues.append(error("INVALID_TRIGGER_CONCURRENCY", f"{path}.concurrency", "Trigger concurrency must be a number >= 1"))

    if not is_text(trigger.get("prompt")):
        issues.append(warning(
            "MISSING_TRIGGER_PROMPT",
            f"{path}.prompt",
            "Trigger should have a prompt string",
            "Add a goal prompt that describes what the triggered job should do",
        ))

    if trigger_type == TriggerType.SCHEDULE:
        every = trigger.get("every")
        if not is_text(every):
            issues.append(error(
                "MISSING_TRIGGER_EVERY",
                f"{path}.every",
                'Schedule trigger must have an "every" field (ISO8601 duration)',
                DURATION_HINT,
            ))
        elif not DURATION_PATTERN.fullmatch(every):
            issues.append(error("INVALID_TRIGGER_DURATION", f"{path}.every", f"Invalid ISO8601 duration: {every}", DURATION_HINT))
    elif trigger_type == TriggerType.EVENT:
        if not is_text(trigger.get("event")):
            issues.append(error(
                "MISSING_TRIGGER_EVENT",
                f"{path}.event",
                'Event trigger must have an "event" field specifying the event type',
                'Use event names like "email.received", "slack.message"',
            ))
        if "filter" in trigger and not isinstance(trigger["filter"], dict):
            issues.append(error("INVALID_TRIGGER_FILTER", f"{path}.filter", "Event filter must be an object"))

    return issues


def _validate_collection(skill: Dict[str, Any], key: str, validate_item) -> List[Issue]:
    """Run validate_item over a list section; a non-list section is itself an error."""
    value = skill.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        return [error(f"INVALID_{key.upper()}", key, f"{key} must be an array")]
    issues = []
    for i, item in enumerate(value):
        issues.extend(validate_item(item, f"{key}[{i}]"))
    return issues


def validate_schema(skill: Dict[str, Any]) -> List[Issue]:
    """Validate the shape of every section of a skill document.

    Args:
        skill: Skill document (plain nested dicts/lists)

    Returns:
        One issue per violated constraint, in section order

    Raises:
        TypeError: If skill is not a mapping
    """
    require_mapping(skill, "skill")

    issues: List[Issue] = []
    issues.extend(validate_metadata(skill))
    issues.extend(validate_problem(skill.get("problem")))
    issues.extend(_validate_collection(skill, "scenarios", validate_scenario))
    issues.extend(validate_role(skill.get("role")))
    issues.extend(validate_intents(skill.get("intents")))
    issues.extend(validate_engine(skill.get("engine")))
    issues.extend(_validate_collection(skill, "tools", validate_tool))
    issues.extend(validate_policy(skill.get("policy")))
    issues.extend(_validate_collection(skill, "triggers", validate_trigger))

    logger.debug("Schema check for {skill_id}: {count} issue(s)", skill_id=skill.get("id"), count=len(issues))
    return issues
