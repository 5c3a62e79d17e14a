"""Skill validation pipeline.

Runs the validators in a fixed order:

    schema -> references -> completeness -> security -> export readiness

and aggregates their issues. Nothing here raises for bad document content;
a draft with fifty problems yields fifty issues.
"""

from typing import Any, Dict, List, Optional

from loguru import logger

from contracts import (
    Issue,
    Unresolved,
    ResolutionMap,
    ValidationResult,
    QuickValidationResult,
    ValidationSummary,
    split_issues,
    warning,
)
from validators.document import as_dict, as_list, dicts, require_mapping
from validators.schema_validator import validate_schema
from validators.reference_resolver import resolve_references
from validators.completeness_checker import (
    check_completeness,
    get_completeness_report,
    MIN_PROBLEM_STATEMENT_LENGTH,
)
from validators.security_validator import validate_security


# Sections that must be complete before a skill can be exported
READINESS_SECTIONS = ["problem", "role", "tools", "mocks_tested"]


def calculate_readiness(
    errors: List[Issue],
    unresolved: Unresolved,
    completeness: Dict[str, bool],
    resolution: Optional[ResolutionMap] = None,
) -> bool:
    """Derive the export gate from one validation pass.

    False if any error exists, any tool or workflow reference is dangling,
    or any readiness section is incomplete. Never inferred from validity
    alone.
    """
    if errors:
        return False
    if unresolved.blocks_export():
        return False
    if resolution is not None and not resolution.all_resolved():
        return False
    return all(completeness.get(section) for section in READINESS_SECTIONS)


class ValidationPipeline:
    """Runs every skill validator in fixed order and aggregates the report."""

    def validate(self, skill: Dict[str, Any]) -> ValidationResult:
        """Run the full pipeline.

        Args:
            skill: Skill document; it is read, never modified

        Returns:
            ValidationResult; `valid` is exactly `not errors`

        Raises:
            TypeError: If skill is not a mapping
        """
        require_mapping(skill, "skill")
        issues: List[Issue] = []

        # 1. Schema
        issues.extend(validate_schema(skill))

        # 2. References
        references = resolve_references(skill)
        issues.extend(references.issues)

        # 3. Completeness
        completeness = check_completeness(skill)

        # 4. Security
        issues.extend(validate_security(skill))

        errors, warnings = split_issues(issues)

        # 5. Export readiness
        ready = calculate_readiness(errors, references.unresolved, completeness, references.resolution)

        logger.info(
            "Validated skill {skill_id}: {errors} error(s), {warnings} warning(s), ready={ready}",
            skill_id=skill.get("id"),
            errors=len(errors),
            warnings=len(warnings),
            ready=ready,
        )
        return ValidationResult(
            valid=len(errors) == 0,
            ready_to_export=ready,
            errors=errors,
            warnings=warnings,
            unresolved=references.unresolved,
            completeness=completeness,
        )

    def quick_validate(self, skill: Dict[str, Any]) -> QuickValidationResult:
        """Schema-only check for real-time feedback while editing."""
        errors, _ = split_issues(validate_schema(skill))
        return QuickValidationResult(valid=len(errors) == 0, errors=errors)


def validate_skill(skill: Dict[str, Any]) -> ValidationResult:
    """Convenience function for the full skill pipeline.

    Args:
        skill: Skill document

    Returns:
        ValidationResult
    """
    return ValidationPipeline().validate(skill)


def quick_validate(skill: Dict[str, Any]) -> QuickValidationResult:
    """Convenience function for the schema-only check."""
    return ValidationPipeline().quick_validate(skill)


def validate_section(skill: Dict[str, Any], section: str) -> List[Issue]:
    """Recommendations for one section of a draft.

    These are guidance warnings for a builder UI, separate from the
    pipeline's issue list.

    Args:
        skill: Skill document
        section: Section name (problem, scenarios, role, intents, tools,
            policy, identity)

    Returns:
        Warning issues for the section; unknown sections yield none
    """
    require_mapping(skill, "skill")
    issues: List[Issue] = []

    if section == "problem":
        statement = as_dict(skill.get("problem")).get("statement")
        if not isinstance(statement, str) or len(statement) < MIN_PROBLEM_STATEMENT_LENGTH:
            issues.append(warning(
                "INCOMPLETE_PROBLEM", "problem.statement",
                f"Problem statement should be at least {MIN_PROBLEM_STATEMENT_LENGTH} characters",
                "Describe the problem you want to solve",
            ))

    elif section == "scenarios":
        scenarios = dicts(skill.get("scenarios"))
        if not scenarios:
            issues.append(warning(
                "NO_SCENARIOS", "scenarios",
                "At least one scenario is recommended",
                "Add a real-world scenario that describes how the skill will be used",
            ))
        for i, scenario in enumerate(scenarios):
            if not scenario.get("title"):
                issues.append(warning("MISSING_SCENARIO_TITLE", f"scenarios[{i}].title", "Scenario needs a title"))

    elif section == "role":
        role = as_dict(skill.get("role"))
        if not role.get("name"):
            issues.append(warning(
                "MISSING_ROLE_NAME", "role.name",
                "Role name is recommended",
                'Give the agent a role name (e.g., "Customer Service Agent")',
            ))
        if not role.get("persona"):
            issues.append(warning(
                "MISSING_PERSONA", "role.persona",
                "Role persona is recommended",
                "Describe how the agent should behave",
            ))

    elif section == "intents":
        intents = dicts(as_dict(skill.get("intents")).get("supported"))
        if not intents:
            issues.append(warning(
                "NO_INTENTS", "intents.supported",
                "At least one intent is recommended",
                "Define what user requests the agent can handle",
            ))
        for i, intent in enumerate(intents):
            if not as_list(intent.get("examples")):
                issues.append(warning(
                    "NO_INTENT_EXAMPLES", f"intents.supported[{i}].examples",
                    f'Intent "{intent.get("id")}" needs examples',
                    "Add example phrases that would trigger this intent",
                ))

    elif section == "tools":
        tools = dicts(skill.get("tools"))
        if not tools:
            issues.append(warning(
                "NO_TOOLS", "tools",
                "At least one tool is required",
                "Define tools the agent can use to accomplish tasks",
            ))
        for i, tool in enumerate(tools):
            if not tool.get("description"):
                issues.append(warning(
                    "MISSING_TOOL_DESCRIPTION", f"tools[{i}].description",
                    f'Tool "{tool.get("name")}" needs a description',
                ))
            if not as_dict(tool.get("output")).get("description"):
                issues.append(warning(
                    "MISSING_OUTPUT_DESCRIPTION", f"tools[{i}].output.description",
                    f'Tool "{tool.get("name")}" output needs a description',
                ))

    elif section == "policy":
        guardrails = as_dict(as_dict(skill.get("policy")).get("guardrails"))
        if not as_list(guardrails.get("never")) and not as_list(guardrails.get("always")):
            issues.append(warning(
                "NO_GUARDRAILS", "policy.guardrails",
                "At least one guardrail is recommended",
                "Define what the agent should never or always do",
            ))

    elif section == "identity":
        identity = as_dict(skill.get("skill_identity"))
        if not identity.get("display_name"):
            issues.append(warning(
                "MISSING_DISPLAY_NAME", "skill_identity.display_name",
                "Skill display name is required",
                "Add a display name for the skill identity",
            ))
        email = as_dict(as_dict(identity.get("channel_identities")).get("email"))
        if not email.get("from_email"):
            issues.append(warning(
                "MISSING_EMAIL_FROM", "skill_identity.channel_identities.email.from_email",
                "Outbound email address is not configured",
                "Select a connected email address for outbound messages",
            ))
        if not identity.get("actor_id"):
            issues.append(warning(
                "IDENTITY_NOT_ACTIVATED", "skill_identity.actor_id",
                "Skill identity is not activated",
                "Activate the identity to enable sending messages",
            ))

    return issues


def get_validation_summary(skill: Dict[str, Any]) -> ValidationSummary:
    """Counts, progress and per-section details of a full validation pass."""
    result = validate_skill(skill)
    report = get_completeness_report(skill)

    sections: Dict[str, Dict[str, Any]] = {}
    for section, entry in report.items():
        if section == "overall_progress":
            continue
        sections[section] = {"complete": result.completeness[section], **entry["details"]}

    return ValidationSummary(
        valid=result.valid,
        ready_to_export=result.ready_to_export,
        error_count=len(result.errors),
        warning_count=len(result.warnings),
        unresolved_refs={
            "tools": len(result.unresolved.tools),
            "workflows": len(result.unresolved.workflows),
            "intents": len(result.unresolved.intents),
        },
        progress=report["overall_progress"],
        sections=sections,
    )
