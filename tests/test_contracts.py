"""Tests for all Pydantic contracts.

Verifies that every contract can be instantiated with valid data
and that validation works correctly.
"""

import pytest
from pydantic import ValidationError

from contracts import (
    # Issues
    Severity,
    Issue,
    Unresolved,
    ValidationResult,
    ValidationSummary,
    error,
    warning,
    split_issues,
    # Vocabularies
    InvalidEnumError,
    allowed_values,
    parse_enum,
    Phase,
    MockStatus,
    SecurityClassification,
    is_system_tool,
    # Resolution
    ResolutionMap,
    # Lifecycle
    PhaseSuggestion,
    # Solutions
    ValidationContext,
    SolutionValidationResult,
)


class TestIssueContracts:
    """Test issue construction and partitioning."""

    def test_error_builder(self):
        issue = error("TOOL_NOT_FOUND", "policy.workflows[0].steps[1]", "Tool missing", "Define it", tool="x")
        assert issue.severity == Severity.ERROR
        assert issue.is_error
        assert issue.suggestion == "Define it"
        assert issue.details == {"tool": "x"}

    def test_warning_builder(self):
        issue = warning("NO_INTENTS", "intents.supported", "No intents defined")
        assert issue.severity == Severity.WARNING
        assert not issue.is_error
        assert issue.suggestion is None
        assert issue.details == {}

    def test_split_preserves_order(self):
        issues = [
            warning("W1", "", "first warning"),
            error("E1", "", "first error"),
            warning("W2", "", "second warning"),
            error("E2", "", "second error"),
        ]
        errors, warnings = split_issues(issues)
        assert [i.code for i in errors] == ["E1", "E2"]
        assert [i.code for i in warnings] == ["W1", "W2"]

    def test_issue_requires_code_and_message(self):
        with pytest.raises(ValidationError):
            Issue(severity=Severity.ERROR, path="x")

    def test_severity_serializes_as_value(self):
        issue = error("E", "p", "m")
        assert issue.model_dump(mode="json")["severity"] == "error"


class TestUnresolved:
    """Test dangling-reference accumulation."""

    def test_deduplicates(self):
        unresolved = Unresolved()
        unresolved.add_tool("get_order")
        unresolved.add_tool("get_order")
        unresolved.add_workflow("flow")
        unresolved.add_intent("refund")
        unresolved.add_intent("refund")
        assert unresolved.tools == ["get_order"]
        assert unresolved.workflows == ["flow"]
        assert unresolved.intents == ["refund"]

    def test_blocks_export(self):
        assert Unresolved().blocks_export() is False
        assert Unresolved(intents=["refund"]).blocks_export() is False
        assert Unresolved(tools=["get_order"]).blocks_export() is True
        assert Unresolved(workflows=["flow"]).blocks_export() is True


class TestEnums:
    """Test closed vocabularies."""

    def test_parse_enum(self):
        assert parse_enum(Phase, "TOOL_DEFINITION") == Phase.TOOL_DEFINITION
        assert parse_enum(MockStatus, MockStatus.TESTED) == MockStatus.TESTED

    def test_invalid_enum_error(self):
        with pytest.raises(InvalidEnumError) as exc_info:
            parse_enum(SecurityClassification, "secret")
        assert exc_info.value.value == "secret"
        assert exc_info.value.allowed == allowed_values(SecurityClassification)
        assert "pii_read" in str(exc_info.value)
        assert isinstance(exc_info.value, ValueError)

    def test_phase_order(self):
        assert len(Phase) == 10
        assert list(Phase)[0] == Phase.PROBLEM_DISCOVERY
        assert list(Phase)[-1] == Phase.DEPLOYED

    def test_classification_risk(self):
        assert SecurityClassification.FINANCIAL.is_high_risk
        assert SecurityClassification.DESTRUCTIVE.is_high_risk
        assert SecurityClassification.PII_WRITE.is_high_risk
        assert not SecurityClassification.PII_READ.is_high_risk
        assert SecurityClassification.PII_READ.is_pii
        assert not SecurityClassification.INTERNAL.is_pii

    @pytest.mark.parametrize("name,expected", [
        ("sys.askUser", True),
        ("ui.showForm", True),
        ("CP.deploy", True),
        ("system.call", False),
        ("orders.get", False),
        ("", False),
        (None, False),
    ])
    def test_is_system_tool(self, name, expected):
        assert is_system_tool(name) is expected


class TestResolutionMap:
    """Test the resolution side-table."""

    def test_steps_resolved_in_index_order(self):
        resolution = ResolutionMap()
        for index, value in [(10, True), (2, False), (0, True)]:
            resolution.steps[ResolutionMap.step_key("flow", index)] = value
        resolution.steps["flow_b/0"] = False
        assert resolution.steps_resolved("flow") == [True, False, True]
        assert resolution.steps_resolved("missing") == []

    def test_all_resolved(self):
        resolution = ResolutionMap(steps={"flow/0": True}, intents={"track": True})
        assert resolution.all_resolved() is True
        resolution.approvals["rule"] = False
        assert resolution.all_resolved() is False

    def test_empty_map_is_resolved(self):
        assert ResolutionMap().all_resolved() is True


class TestResultContracts:
    """Test report models."""

    def test_validation_result_codes(self):
        result = ValidationResult(
            valid=False,
            ready_to_export=False,
            errors=[error("E1", "", "e")],
            warnings=[warning("W1", "", "w")],
        )
        assert result.codes() == ["E1", "W1"]
        assert result.completeness == {}

    def test_summary_progress_bounds(self):
        with pytest.raises(ValidationError):
            ValidationSummary(valid=True, ready_to_export=True, error_count=0, warning_count=0, progress=101)
        with pytest.raises(ValidationError):
            ValidationSummary(valid=True, ready_to_export=True, error_count=-1, warning_count=0, progress=50)

    def test_phase_suggestion_defaults(self):
        suggestion = PhaseSuggestion(suggest=False, next_phase=None, reason="Already at final phase")
        assert suggestion.blocking == []

    def test_solution_result_codes(self):
        result = SolutionValidationResult(valid=True, warnings=[warning("no_orphan_skills", "skills[1]", "w")])
        assert result.codes() == ["no_orphan_skills"]
        assert result.summary.skills == 0


class TestValidationContext:
    """Test the deployment context model."""

    def test_parses_store_files(self):
        context = ValidationContext.model_validate({
            "connectors": [{"id": "db", "transport": "stdio"}],
            "mcp_store": {"db": [{"path": "server.js", "content": "// ok"}]},
        })
        assert context.skills == []
        assert context.mcp_store["db"][0].path == "server.js"

    def test_store_file_requires_path(self):
        with pytest.raises(ValidationError):
            ValidationContext.model_validate({"mcp_store": {"db": [{"content": "x"}]}})


def test_all_contracts_import():
    """Verify all contracts can be imported."""
    from contracts import (
        Severity, Issue, Unresolved, ValidationResult, QuickValidationResult,
        ValidationSummary, InvalidEnumError, Phase, DataType, Tone, Verbosity,
        OutOfDomainAction, ToolPolicyAllowed, MockMode, MockStatus, TriggerType,
        AutonomyLevel, OnMaxIterations, CriticStrictness, DeviationAction,
        PolicyEffect, SecurityClassification, RiskLevel, ResolutionMap,
        ReferenceResolution, PhaseSuggestion, SkillRole, ConnectorTransport,
        StoreFile, ValidationContext, SolutionSummary, SolutionValidationResult,
    )
