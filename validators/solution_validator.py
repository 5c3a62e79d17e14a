"""Cross-skill validation of a solution definition.

A solution composes several skills. This module checks the contracts
between them: identity configuration, the grant economy, handoff chains,
security contracts along handoff paths, channel routing, platform
connectors, orphaned skills and circular handoffs. With a deployment
context it also runs the connector checks.

Issue codes are the stable check names (grant_provider_exists,
circular_handoffs, ...).
"""

from typing import Any, Dict, List, Optional, Set, Union

from loguru import logger

from contracts import (
    Issue,
    INTERNAL_MESSAGE_MECHANISM,
    InvalidEnumError,
    SkillRole,
    SolutionSummary,
    SolutionValidationResult,
    ValidationContext,
    error,
    parse_enum,
    warning,
    split_issues,
)
from config import settings
from validators.document import as_dict, as_list, dicts, require_mapping
from validators.graph import find_cycles, find_shortest_path
from validators.connector_checks import validate_connectors


def _ids(values: List[Any]) -> Set[str]:
    return {v for v in values if isinstance(v, str) and v}


def _known(value: Any, ids: Set[str]) -> bool:
    return isinstance(value, str) and value in ids


class SolutionValidator:
    """Validates one solution document.

    Example:
        validator = SolutionValidator(solution)
        result = validator.validate()
    """

    def __init__(self, solution: Dict[str, Any], context: Optional[ValidationContext] = None):
        require_mapping(solution, "solution")
        self.solution = solution
        self.context = context
        self.identity = as_dict(solution.get("identity"))
        self.skills = dicts(solution.get("skills"))
        self.grants = dicts(solution.get("grants"))
        self.handoffs = dicts(solution.get("handoffs"))
        self.routing = as_dict(solution.get("routing"))
        self.platform_connectors = dicts(solution.get("platform_connectors"))
        self.security_contracts = dicts(solution.get("security_contracts"))
        self.skill_ids = _ids([s.get("id") for s in self.skills])

    def check_identity(self) -> List[Issue]:
        issues = []
        actor_types = dicts(self.identity.get("actor_types"))
        actor_keys = _ids([a.get("key") for a in actor_types])
        admin_roles = as_list(self.identity.get("admin_roles"))

        if not actor_types:
            issues.append(warning(
                "identity_actor_types",
                "identity.actor_types",
                "No actor types defined. Define the user types for your solution.",
            ))

        if not admin_roles and actor_types:
            issues.append(warning(
                "identity_admin_roles",
                "identity.admin_roles",
                "No admin roles defined. Consider setting which actor types have admin privileges.",
            ))

        default_type = self.identity.get("default_actor_type")
        if default_type and actor_keys and not _known(default_type, actor_keys):
            issues.append(error(
                "identity_default_type_valid",
                "identity.default_actor_type",
                f'Default actor type "{default_type}" is not a defined actor type',
            ))

        for i, role in enumerate(admin_roles):
            if actor_keys and not _known(role, actor_keys):
                issues.append(warning(
                    "identity_admin_role_valid",
                    f"identity.admin_roles[{i}]",
                    f'Admin role "{role}" is not a defined actor type',
                ))
        return issues

    def check_skill_roles(self) -> List[Issue]:
        issues = []
        for si, skill in enumerate(self.skills):
            role = skill.get("role")
            if role is None:
                continue
            try:
                parse_enum(SkillRole, role)
            except InvalidEnumError as exc:
                issues.append(error(
                    "skill_role_valid",
                    f"skills[{si}].role",
                    f'Skill "{skill.get("id")}" has invalid role "{role}". Must be one of: {", ".join(exc.allowed)}',
                    skill=skill.get("id"),
                ))
        return issues

    def check_grants(self) -> List[Issue]:
        issues = []
        for gi, grant in enumerate(self.grants):
            if grant.get("internal"):
                continue
            key = grant.get("key")
            issued_by = as_list(grant.get("issued_by"))
            consumed_by = as_list(grant.get("consumed_by"))

            for i, issuer in enumerate(issued_by):
                if not _known(issuer, self.skill_ids):
                    issues.append(error(
                        "grant_provider_exists",
                        f"grants[{gi}].issued_by[{i}]",
                        f'Grant "{key}" references issuer "{issuer}" which is not a skill in this solution',
                        grant=key,
                        skill=issuer,
                    ))

            for i, consumer in enumerate(consumed_by):
                if not _known(consumer, self.skill_ids):
                    issues.append(error(
                        "grant_consumer_exists",
                        f"grants[{gi}].consumed_by[{i}]",
                        f'Grant "{key}" references consumer "{consumer}" which is not a skill in this solution',
                        grant=key,
                        skill=consumer,
                    ))

            if consumed_by and not issued_by:
                issues.append(error(
                    "grant_provider_missing",
                    f"grants[{gi}].issued_by",
                    f'Grant "{key}" is consumed by {", ".join(str(c) for c in consumed_by)} but has no issuer',
                    grant=key,
                ))
        return issues

    def check_handoffs(self) -> List[Issue]:
        issues = []
        for hi, handoff in enumerate(self.handoffs):
            handoff_id = handoff.get("id")
            for end, code, label in (("from", "handoff_source_exists", "source"), ("to", "handoff_target_exists", "target")):
                skill = handoff.get(end)
                if not _known(skill, self.skill_ids):
                    issues.append(error(
                        code,
                        f"handoffs[{hi}].{end}",
                        f'Handoff "{handoff_id}" references {label} skill "{skill}" which doesn\'t exist',
                        handoff=handoff_id,
                        skill=skill,
                    ))
        return issues

    def find_handoff_path(self, source: str, target: str) -> Optional[List[Dict[str, Any]]]:
        """Shortest chain of handoffs from source to target, or None."""
        edges = [
            (h.get("from"), h.get("to"), h)
            for h in self.handoffs
            if isinstance(h.get("from"), str) and isinstance(h.get("to"), str)
        ]
        return find_shortest_path(edges, source, target)

    def check_security_contracts(self) -> List[Issue]:
        """Required grants must travel along the handoff chain from provider to consumer.

        Only the first shortest path is checked; a missing path is a warning
        since the contract may be enforced by other means.
        """
        issues = []
        for ci, contract in enumerate(self.security_contracts):
            name = contract.get("name")
            consumer = contract.get("consumer")
            provider = contract.get("provider")

            if not _known(consumer, self.skill_ids):
                issues.append(error(
                    "contract_consumer_exists",
                    f"security_contracts[{ci}].consumer",
                    f'Security contract "{name}" references consumer "{consumer}" which doesn\'t exist',
                    contract=name,
                ))
                continue

            if provider and not _known(provider, self.skill_ids):
                issues.append(error(
                    "contract_provider_exists",
                    f"security_contracts[{ci}].provider",
                    f'Security contract "{name}" references provider "{provider}" which doesn\'t exist',
                    contract=name,
                ))
                continue

            if not provider:
                continue

            path = self.find_handoff_path(provider, consumer)
            if path is None:
                issues.append(warning(
                    "contract_handoff_path",
                    f"security_contracts[{ci}]",
                    f'Security contract "{name}": no handoff path from "{provider}" to "{consumer}"',
                    contract=name,
                ))
                continue

            for required in as_list(contract.get("requires_grants")):
                for handoff in path:
                    if required in as_list(handoff.get("grants_passed")):
                        continue
                    issues.append(error(
                        "grants_passed_match",
                        f"security_contracts[{ci}].requires_grants",
                        f'Security contract "{name}": grant "{required}" is not passed through handoff '
                        f'"{handoff.get("id")}" on the chain from "{provider}" to "{consumer}"',
                        contract=name,
                        grant=required,
                        handoff=handoff.get("id"),
                    ))
        return issues

    def check_routing(self) -> List[Issue]:
        issues = []
        for si, skill in enumerate(self.skills):
            for channel in as_list(skill.get("entry_channels")):
                if not isinstance(channel, str) or not self.routing.get(channel):
                    issues.append(warning(
                        "routing_covers_channels",
                        f"skills[{si}].entry_channels",
                        f'Skill "{skill.get("id")}" declares entry channel "{channel}" but no routing rule exists for it',
                        skill=skill.get("id"),
                        channel=channel,
                    ))

        for channel, config in self.routing.items():
            target = as_dict(config).get("default_skill")
            if target and not _known(target, self.skill_ids):
                issues.append(error(
                    "routing_target_exists",
                    f"routing.{channel}.default_skill",
                    f'Routing for channel "{channel}" targets skill "{target}" which doesn\'t exist',
                    channel=channel,
                    skill=target,
                ))
        return issues

    def check_platform_connectors(self) -> List[Issue]:
        declared = _ids([c.get("id") for c in self.platform_connectors])
        issues = []
        for hi, handoff in enumerate(self.handoffs):
            mechanism = handoff.get("mechanism")
            if not mechanism or mechanism == INTERNAL_MESSAGE_MECHANISM:
                continue
            if not _known(mechanism, declared):
                issues.append(warning(
                    "platform_connectors_declared",
                    f"handoffs[{hi}].mechanism",
                    f'Handoff "{handoff.get("id")}" uses mechanism "{mechanism}" which is not declared in platform_connectors',
                    handoff=handoff.get("id"),
                    connector=mechanism,
                ))
        return issues

    def check_orphans(self) -> List[Issue]:
        """Every skill should be a routing target, handoff source or handoff target."""
        reachable = _ids([as_dict(r).get("default_skill") for r in self.routing.values()])
        reachable |= _ids([h.get("from") for h in self.handoffs])
        reachable |= _ids([h.get("to") for h in self.handoffs])

        return [
            warning(
                "no_orphan_skills",
                f"skills[{si}]",
                f'Skill "{skill.get("id")}" is not reachable via routing or handoffs',
                skill=skill.get("id"),
            )
            for si, skill in enumerate(self.skills)
            if not _known(skill.get("id"), reachable)
        ]

    def check_handoff_cycles(self) -> List[Issue]:
        graph: Dict[str, List[str]] = {}
        for handoff in self.handoffs:
            source, target = handoff.get("from"), handoff.get("to")
            if isinstance(source, str) and isinstance(target, str):
                graph.setdefault(source, []).append(target)

        return [
            error(
                "circular_handoffs",
                "handoffs",
                f"Circular handoff chain detected: {' → '.join(cycle)}",
                "Break the cycle by removing or redirecting one of the handoffs",
                cycle=cycle,
            )
            for cycle in find_cycles(graph, limit=settings.max_cycle_reports)
        ]

    def summarize(self, errors: List[Issue], warnings: List[Issue]) -> SolutionSummary:
        return SolutionSummary(
            skills=len(self.skills),
            grants=len(self.grants),
            handoffs=len(self.handoffs),
            channels=len(self.routing),
            platform_connectors=len(self.platform_connectors),
            security_contracts=len(self.security_contracts),
            error_count=len(errors),
            warning_count=len(warnings),
        )

    def validate(self) -> SolutionValidationResult:
        """Run every check and collect the results.

        Returns:
            SolutionValidationResult; `valid` is exactly `not errors`
        """
        issues: List[Issue] = []
        issues.extend(self.check_identity())
        issues.extend(self.check_skill_roles())
        issues.extend(self.check_grants())
        issues.extend(self.check_handoffs())
        issues.extend(self.check_security_contracts())
        issues.extend(self.check_routing())
        issues.extend(self.check_platform_connectors())
        issues.extend(self.check_orphans())
        issues.extend(self.check_handoff_cycles())
        if self.context is not None:
            platform_ids = _ids([c.get("id") for c in self.platform_connectors])
            issues.extend(validate_connectors(self.context, platform_ids))

        errors, warnings = split_issues(issues)
        logger.info(
            "Validated solution {solution_id}: {errors} error(s), {warnings} warning(s)",
            solution_id=self.solution.get("id"),
            errors=len(errors),
            warnings=len(warnings),
        )
        return SolutionValidationResult(
            valid=len(errors) == 0,
            errors=errors,
            warnings=warnings,
            summary=self.summarize(errors, warnings),
        )


def validate_solution(
    solution: Dict[str, Any],
    context: Optional[Union[ValidationContext, Dict[str, Any]]] = None,
) -> SolutionValidationResult:
    """Convenience function to validate a solution.

    Args:
        solution: Solution document
        context: Optional deployment context (ValidationContext or a plain
            dict with skills, connectors and mcp_store) enabling the
            connector checks

    Returns:
        SolutionValidationResult

    Raises:
        TypeError: If solution is not a mapping
    """
    if isinstance(context, dict):
        context = ValidationContext.model_validate(context)
    return SolutionValidator(solution, context).validate()
