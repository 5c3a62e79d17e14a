"""Security validation for skill documents.

Checks tool classifications, access-policy coverage of high-risk tools,
response-filter field paths, grant-mapping and access-rule tool references,
and flags guardrails that promise protection no access rule enforces.
"""

import re
from typing import Any, Dict, List, Optional, Set

from loguru import logger

from contracts import (
    Issue,
    InvalidEnumError,
    parse_enum,
    allowed_values,
    error,
    warning,
    PolicyEffect,
    SecurityClassification,
    RiskLevel,
    WILDCARD,
    is_system_tool,
)
from validators.document import as_dict, as_list, dicts, require_mapping


# customer.ssn, items[0].name, items[*].price, $.customer.email
FIELD_PATH_PATTERN = re.compile(
    r"(\$\.)?[A-Za-z_][A-Za-z0-9_]*(\[([0-9]+|\*)\])*(\.[A-Za-z_][A-Za-z0-9_]*(\[([0-9]+|\*)\])*)*"
)

# Guardrail phrases that imply protection for a classification
GUARDRAIL_KEYWORDS: Dict[SecurityClassification, tuple] = {
    SecurityClassification.PII_WRITE: (
        "customer information", "customer info", "customer data", "personal",
        "pii", "sensitive data", "private", "email address", "phone number",
        "ssn", "social security",
    ),
    SecurityClassification.FINANCIAL: (
        "payment", "credit card", "refund", "billing", "financial",
        "money", "transaction", "bank",
    ),
    SecurityClassification.DESTRUCTIVE: (
        "delete", "remove", "destroy", "erase", "wipe", "drop",
    ),
}
GUARDRAIL_KEYWORDS[SecurityClassification.PII_READ] = GUARDRAIL_KEYWORDS[SecurityClassification.PII_WRITE]


class AccessCoverage:
    """Which tools the access policy covers by name or wildcard."""

    def __init__(self, skill: Dict[str, Any]):
        self.rules = dicts(as_dict(skill.get("access_policy")).get("rules"))
        self.tools: Set[str] = set()
        self.wildcard = False
        for rule in self.rules:
            for ref in as_list(rule.get("tools")):
                if ref == WILDCARD:
                    self.wildcard = True
                elif isinstance(ref, str):
                    self.tools.add(ref)

    def covers(self, tool_name: Any) -> bool:
        return self.wildcard or (isinstance(tool_name, str) and tool_name in self.tools)


def _classification(tool: Dict[str, Any]) -> Optional[SecurityClassification]:
    """Parsed classification, or None when absent or invalid."""
    raw = as_dict(tool.get("security")).get("classification")
    if not raw:
        return None
    try:
        return parse_enum(SecurityClassification, raw)
    except InvalidEnumError:
        return None


def _has_response_filters(skill: Dict[str, Any]) -> bool:
    return len(as_list(skill.get("response_filters"))) > 0


def _data_owner_captured(skill: Dict[str, Any], coverage: AccessCoverage, tool_name: str, field: str) -> bool:
    """True if a constrain rule or a grant mapping for this tool references the field."""
    for rule in coverage.rules:
        if rule.get("effect") != PolicyEffect.CONSTRAIN.value:
            continue
        tools = as_list(rule.get("tools"))
        if WILDCARD not in tools and tool_name not in tools:
            continue
        for key, value in as_dict(rule.get("constrain")).items():
            if key == field or value == field:
                return True

    for mapping in dicts(skill.get("grant_mappings")):
        if mapping.get("tool") != tool_name:
            continue
        for grant in dicts(mapping.get("grants")):
            if grant.get("value_from") == field:
                return True
    return False


def _check_tool(skill: Dict[str, Any], tool: Dict[str, Any], index: int, coverage: AccessCoverage, has_filters: bool) -> List[Issue]:
    base = f"tools[{index}]"
    name = tool.get("name")
    security = as_dict(tool.get("security"))
    raw = security.get("classification")

    if not raw:
        return [warning(
            "UNCLASSIFIED_TOOL",
            f"{base}.security.classification",
            f'Tool "{name}" has no security classification',
            f"Assign a classification ({', '.join(allowed_values(SecurityClassification))})",
        )]

    issues: List[Issue] = []
    classification = None
    try:
        classification = parse_enum(SecurityClassification, raw)
    except InvalidEnumError as exc:
        issues.append(error(
            "INVALID_CLASSIFICATION",
            f"{base}.security.classification",
            f'Tool "{name}" has invalid classification "{raw}"',
            f"Must be one of: {', '.join(exc.allowed)}",
        ))

    risk = security.get("risk")
    if risk:
        try:
            parse_enum(RiskLevel, risk)
        except InvalidEnumError as exc:
            issues.append(error(
                "INVALID_RISK_LEVEL",
                f"{base}.security.risk",
                f'Tool "{name}" has invalid risk level "{risk}"',
                f"Must be one of: {', '.join(exc.allowed)}",
            ))

    covered = coverage.covers(name)

    if classification is not None and classification.is_high_risk and not covered:
        issues.append(error(
            "HIGH_RISK_NO_POLICY",
            f"{base}.security",
            f'High-risk tool "{name}" ({classification.value}) has no access policy',
            "Add an access_policy rule covering this tool",
        ))

    if classification is not None and classification.is_pii and not has_filters and not covered:
        issues.append(warning(
            "PII_NO_FILTER",
            f"{base}.security",
            f'PII tool "{name}" ({classification.value}) has no response filter or access policy',
            "Add a response_filter to strip or mask sensitive fields, or add an access_policy rule",
        ))

    owner_field = security.get("data_owner_field")
    if owner_field and isinstance(name, str) and name:
        if not _data_owner_captured(skill, coverage, name, owner_field):
            issues.append(warning(
                "DATA_OWNER_NO_CONSTRAIN",
                f"{base}.security.data_owner_field",
                f'Tool "{name}" has data_owner_field "{owner_field}" but no constrain policy or grant mapping injects it',
                f'Add an access_policy rule with effect "constrain" that references "{owner_field}", '
                "or a grant_mapping that captures it",
            ))

    return issues


def _check_grant_mappings(skill: Dict[str, Any], tool_names: Set[str]) -> List[Issue]:
    issues = []
    for i, mapping in enumerate(dicts(skill.get("grant_mappings"))):
        tool = mapping.get("tool")
        if tool and not (tool in tool_names or is_system_tool(tool)):
            issues.append(error(
                "GRANT_MAPPING_INVALID_TOOL",
                f"grant_mappings[{i}].tool",
                f'Grant mapping references non-existent tool "{tool}"',
                "Update the tool name or define the missing tool",
            ))
    return issues


def _check_access_rules(coverage: AccessCoverage, tool_names: Set[str]) -> List[Issue]:
    issues = []
    for i, rule in enumerate(coverage.rules):
        for j, ref in enumerate(as_list(rule.get("tools"))):
            if ref == WILDCARD:
                continue
            if not isinstance(ref, str) or ref not in tool_names:
                issues.append(error(
                    "ACCESS_POLICY_INVALID_TOOL",
                    f"access_policy.rules[{i}].tools[{j}]",
                    f'Access policy rule references non-existent tool "{ref}"',
                    "Update the tool name or define the missing tool",
                ))

        effect = rule.get("effect")
        if effect:
            try:
                parse_enum(PolicyEffect, effect)
            except InvalidEnumError as exc:
                issues.append(error(
                    "INVALID_POLICY_EFFECT",
                    f"access_policy.rules[{i}].effect",
                    f'Access policy rule has invalid effect "{effect}"',
                    f"Must be one of: {', '.join(exc.allowed)}",
                ))
    return issues


def _check_response_filters(skill: Dict[str, Any]) -> List[Issue]:
    issues = []
    for i, response_filter in enumerate(dicts(skill.get("response_filters"))):
        for kind in ("strip_fields", "mask_fields"):
            for j, field in enumerate(as_list(response_filter.get(kind))):
                if not isinstance(field, str) or not FIELD_PATH_PATTERN.fullmatch(field):
                    issues.append(error(
                        "INVALID_FILTER_FIELD_PATH",
                        f"response_filters[{i}].{kind}[{j}]",
                        f'Invalid field path "{field}" in response filter',
                        'Use dotted notation (e.g. "customer.ssn") or bracket notation (e.g. "items[0].name")',
                    ))
    return issues


def _check_guardrail_conflicts(skill: Dict[str, Any], coverage: AccessCoverage) -> List[Issue]:
    """Warn when a `never` guardrail guards data a matching, uncovered tool can reach.

    Keyword match on the guardrail text only; the guardrail is a prompt, the
    access rule is what actually enforces it.
    """
    issues = []
    never = as_list(as_dict(as_dict(skill.get("policy")).get("guardrails")).get("never"))
    tools = dicts(skill.get("tools"))

    for gi, guardrail in enumerate(never):
        if not isinstance(guardrail, str):
            continue
        text = guardrail.lower()
        for tool in tools:
            classification = _classification(tool)
            keywords = GUARDRAIL_KEYWORDS.get(classification) if classification else None
            if not keywords or coverage.covers(tool.get("name")):
                continue
            if any(keyword in text for keyword in keywords):
                issues.append(warning(
                    "GUARDRAIL_TOOL_CONFLICT",
                    f"policy.guardrails.never[{gi}]",
                    f'Guardrail "{guardrail}" restricts data that tool "{tool.get("name")}" '
                    f"({classification.value}) can reach, but no access policy enforces it",
                    "Add an access_policy rule for this tool so the guardrail is enforced, not just prompted",
                ))
    return issues


def validate_security(skill: Dict[str, Any]) -> List[Issue]:
    """Validate the security configuration of a skill.

    Args:
        skill: Skill document

    Returns:
        Security issues; uncovered high-risk tools, invalid classifications,
        effects and filter paths are errors

    Raises:
        TypeError: If skill is not a mapping
    """
    require_mapping(skill, "skill")

    tools = dicts(skill.get("tools"))
    tool_names = {t["name"] for t in tools if isinstance(t.get("name"), str) and t["name"]}
    coverage = AccessCoverage(skill)
    has_filters = _has_response_filters(skill)

    issues: List[Issue] = []
    for i, tool in enumerate(tools):
        issues.extend(_check_tool(skill, tool, i, coverage, has_filters))
    issues.extend(_check_grant_mappings(skill, tool_names))
    issues.extend(_check_access_rules(coverage, tool_names))
    issues.extend(_check_response_filters(skill))
    issues.extend(_check_guardrail_conflicts(skill, coverage))

    logger.debug("Security check for {skill_id}: {count} issue(s)", skill_id=skill.get("id"), count=len(issues))
    return issues


def is_security_complete(skill: Dict[str, Any]) -> bool:
    """True unless some high-risk tool lacks access-policy coverage (vacuously true with no tools)."""
    coverage = AccessCoverage(skill)
    for tool in dicts(skill.get("tools")):
        classification = _classification(tool)
        if classification is not None and classification.is_high_risk and not coverage.covers(tool.get("name")):
            return False
    return True


def get_security_report(skill: Dict[str, Any]) -> Dict[str, int]:
    """Numeric coverage report for dashboards."""
    tools = dicts(skill.get("tools"))
    coverage = AccessCoverage(skill)
    has_filters = _has_response_filters(skill)

    report = {
        "total_tools": len(tools),
        "classified": 0,
        "unclassified": 0,
        "high_risk": 0,
        "high_risk_with_policy": 0,
        "pii_tools": 0,
        "pii_with_filters": 0,
        "grant_mappings_count": len(as_list(skill.get("grant_mappings"))),
        "access_rules_count": len(coverage.rules),
        "response_filters_count": len(as_list(skill.get("response_filters"))),
    }

    for tool in tools:
        if not as_dict(tool.get("security")).get("classification"):
            report["unclassified"] += 1
            continue
        report["classified"] += 1

        classification = _classification(tool)
        if classification is None:
            continue
        covered = coverage.covers(tool.get("name"))
        if classification.is_high_risk:
            report["high_risk"] += 1
            if covered:
                report["high_risk_with_policy"] += 1
        if classification.is_pii:
            report["pii_tools"] += 1
            if has_filters or covered:
                report["pii_with_filters"] += 1

    return report
