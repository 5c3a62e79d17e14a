"""Tests for the security validator."""

import pytest

from contracts import Severity, SecurityClassification
from validators import validate_security, is_security_complete, get_security_report
from validators.security_validator import FIELD_PATH_PATTERN
from conftest import make_skill, make_tool


def _codes(issues):
    return [i.code for i in issues]


def _classified(name, classification, **security):
    return make_tool(name, security={"classification": classification, **security})


class TestToolClassification:
    """Per-tool classification checks."""

    def test_unclassified_tool_warns_and_stops(self):
        skill = make_skill(tools=[make_tool("get_order", security={"risk": "extreme"})])
        issues = validate_security(skill)
        assert _codes(issues) == ["UNCLASSIFIED_TOOL"]
        assert issues[0].severity == Severity.WARNING

    def test_invalid_classification(self):
        issues = validate_security(make_skill(tools=[_classified("get_order", "secret")]))
        assert _codes(issues) == ["INVALID_CLASSIFICATION"]
        assert issues[0].severity == Severity.ERROR
        assert "pii_read" in issues[0].suggestion

    def test_internal_is_a_valid_classification(self):
        assert validate_security(make_skill(tools=[_classified("get_order", "internal")])) == []

    def test_invalid_risk_level(self):
        issues = validate_security(make_skill(tools=[_classified("get_order", "public", risk="extreme")]))
        assert _codes(issues) == ["INVALID_RISK_LEVEL"]

    @pytest.mark.parametrize("classification", ["pii_write", "financial", "destructive"])
    def test_high_risk_without_policy(self, classification):
        issues = validate_security(make_skill(tools=[_classified("danger", classification)]))
        assert _codes(issues).count("HIGH_RISK_NO_POLICY") == 1
        assert [i for i in issues if i.code == "HIGH_RISK_NO_POLICY"][0].severity == Severity.ERROR

    def test_named_rule_covers_high_risk_tool(self):
        skill = make_skill(
            tools=[_classified("refund", "financial")],
            access_policy={"rules": [{"tools": ["refund"], "effect": "deny"}]},
        )
        assert validate_security(skill) == []

    def test_pii_read_without_filter_or_policy(self):
        issues = validate_security(make_skill(tools=[_classified("get_customer", "pii_read")]))
        assert _codes(issues) == ["PII_NO_FILTER"]
        assert issues[0].severity == Severity.WARNING

    def test_pii_read_with_response_filter(self):
        skill = make_skill(
            tools=[_classified("get_customer", "pii_read")],
            response_filters=[{"id": "f", "strip_fields": ["customer.ssn"]}],
        )
        assert validate_security(skill) == []

    def test_pii_write_reports_both(self):
        issues = validate_security(make_skill(tools=[_classified("update_customer", "pii_write")]))
        assert _codes(issues) == ["HIGH_RISK_NO_POLICY", "PII_NO_FILTER"]


class TestDataOwner:
    """data_owner_field must be injected by a constrain rule or grant mapping."""

    def test_uncaptured_owner_field(self):
        skill = make_skill(tools=[_classified("get_order", "public", data_owner_field="customer_id")])
        assert _codes(validate_security(skill)) == ["DATA_OWNER_NO_CONSTRAIN"]

    def test_constrain_rule_captures_field(self):
        skill = make_skill(
            tools=[_classified("get_order", "public", data_owner_field="customer_id")],
            access_policy={"rules": [{
                "tools": ["get_order"],
                "effect": "constrain",
                "constrain": {"customer_id": "$grant.customer_id"},
            }]},
        )
        assert validate_security(skill) == []

    def test_grant_mapping_captures_field(self):
        skill = make_skill(
            tools=[_classified("get_order", "public", data_owner_field="$.customer_id")],
            grant_mappings=[{"tool": "get_order", "grants": [{"key": "c", "value_from": "$.customer_id"}]}],
        )
        assert validate_security(skill) == []


class TestCrossReferences:
    """Grant mappings and access rules must name real tools."""

    def test_grant_mapping_tool(self):
        skill = make_skill(grant_mappings=[
            {"tool": "get_order"},
            {"tool": "sys.identity"},
            {"tool": "lookup_customer"},
        ])
        issues = validate_security(skill)
        assert _codes(issues) == ["GRANT_MAPPING_INVALID_TOOL"]
        assert issues[0].path == "grant_mappings[2].tool"

    def test_access_rule_tools_and_effect(self):
        skill = make_skill(access_policy={"rules": [
            {"tools": ["*", "get_order", "ghost"], "effect": "permit"},
        ]})
        issues = validate_security(skill)
        assert _codes(issues) == ["ACCESS_POLICY_INVALID_TOOL", "INVALID_POLICY_EFFECT"]
        assert issues[0].path == "access_policy.rules[0].tools[2]"


class TestResponseFilters:
    """Field-path grammar."""

    @pytest.mark.parametrize("path", [
        "customer.ssn",
        "items[0].name",
        "items[*].price",
        "$.customer.email",
        "a_b.c1[12][3]",
    ])
    def test_valid_paths(self, path):
        assert FIELD_PATH_PATTERN.fullmatch(path)

    @pytest.mark.parametrize("path", [
        "", "customer..ssn", "items[x]", "1abc", "customer.", "$customer",
        "customer.ssn\n", "cliente.n\u00famero", "items[\u0661]",
    ])
    def test_invalid_paths(self, path):
        assert not FIELD_PATH_PATTERN.fullmatch(path)

    def test_malformed_path_is_error(self):
        skill = make_skill(response_filters=[{"strip_fields": ["ok.path"], "mask_fields": ["bad..path", 5]}])
        issues = validate_security(skill)
        assert _codes(issues) == ["INVALID_FILTER_FIELD_PATH", "INVALID_FILTER_FIELD_PATH"]
        assert issues[0].path == "response_filters[0].mask_fields[0]"
        assert all(i.severity == Severity.ERROR for i in issues)

    def test_trailing_newline_is_error(self):
        skill = make_skill(response_filters=[{"strip_fields": ["customer.ssn\n"]}])
        assert _codes(validate_security(skill)) == ["INVALID_FILTER_FIELD_PATH"]


class TestGuardrailConflicts:
    """Guardrails that no access rule enforces."""

    def test_conflict_with_uncovered_tool(self):
        skill = make_skill(
            tools=[_classified("charge_card", "financial")],
            policy={"guardrails": {"never": ["Issue a refund without approval"]}},
        )
        codes = _codes(validate_security(skill))
        assert "GUARDRAIL_TOOL_CONFLICT" in codes

    def test_covered_tool_has_no_conflict(self):
        skill = make_skill(
            tools=[_classified("charge_card", "financial")],
            access_policy={"rules": [{"tools": ["*"], "effect": "allow"}]},
            policy={"guardrails": {"never": ["Issue a refund without approval"]}},
        )
        assert validate_security(skill) == []

    def test_unrelated_guardrail(self):
        skill = make_skill(
            tools=[_classified("delete_account", "destructive")],
            access_policy={"rules": [{"tools": ["other"], "effect": "allow"}]},
            policy={"guardrails": {"never": ["Be rude"]}},
        )
        assert "GUARDRAIL_TOOL_CONFLICT" not in _codes(validate_security(skill))


class TestSecurityReport:
    """Coverage summaries."""

    def test_is_security_complete(self):
        assert is_security_complete(make_skill(tools=[])) is True
        assert is_security_complete(make_skill(tools=[_classified("refund", "financial")])) is False
        assert is_security_complete(make_skill(tools=[_classified("get", "pii_read")])) is True

    def test_report(self):
        skill = make_skill(
            tools=[
                _classified("refund", "financial"),
                _classified("wipe", "destructive"),
                _classified("get_customer", "pii_read"),
                make_tool("ping", security={}),
            ],
            access_policy={"rules": [{"tools": ["refund"], "effect": "allow"}]},
        )
        report = get_security_report(skill)
        assert report["total_tools"] == 4
        assert report["classified"] == 3
        assert report["unclassified"] == 1
        assert report["high_risk"] == 2
        assert report["high_risk_with_policy"] == 1
        assert report["pii_tools"] == 1
        assert report["pii_with_filters"] == 0
        assert report["access_rules_count"] == 1

    def test_classification_properties(self):
        assert SecurityClassification.PII_WRITE.is_high_risk
        assert SecurityClassification.PII_WRITE.is_pii
        assert not SecurityClassification.PII_READ.is_high_risk
        assert not SecurityClassification.INTERNAL.is_pii
