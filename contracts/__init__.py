"""Pydantic contracts for the skill validation pipeline.

Every validator result and every closed vocabulary of skill and solution
documents is typed through these contracts.
"""

from .issue_contracts import (
    Severity,
    Issue,
    Unresolved,
    ValidationResult,
    QuickValidationResult,
    ValidationSummary,
    error,
    warning,
    split_issues,
)

from .skill_contracts import (
    InvalidEnumError,
    allowed_values,
    parse_enum,
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
    PolicyEffect,
    SecurityClassification,
    RiskLevel,
    HIGH_RISK_CLASSIFICATIONS,
    PII_CLASSIFICATIONS,
    SYSTEM_TOOL_PREFIXES,
    WILDCARD,
    is_system_tool,
)

from .resolution_contracts import (
    ResolutionMap,
    ReferenceResolution,
)

from .lifecycle_contracts import PhaseSuggestion

from .solution_contracts import (
    SkillRole,
    ConnectorTransport,
    INTERNAL_MESSAGE_MECHANISM,
    StoreFile,
    ValidationContext,
    SolutionSummary,
    SolutionValidationResult,
)

__all__ = [
    # Issues and reports
    "Severity",
    "Issue",
    "Unresolved",
    "ValidationResult",
    "QuickValidationResult",
    "ValidationSummary",
    "error",
    "warning",
    "split_issues",
    # Skill vocabularies
    "InvalidEnumError",
    "allowed_values",
    "parse_enum",
    "Phase",
    "DataType",
    "Tone",
    "Verbosity",
    "OutOfDomainAction",
    "ToolPolicyAllowed",
    "MockMode",
    "MockStatus",
    "TriggerType",
    "AutonomyLevel",
    "OnMaxIterations",
    "CriticStrictness",
    "DeviationAction",
    "PolicyEffect",
    "SecurityClassification",
    "RiskLevel",
    "HIGH_RISK_CLASSIFICATIONS",
    "PII_CLASSIFICATIONS",
    "SYSTEM_TOOL_PREFIXES",
    "WILDCARD",
    "is_system_tool",
    # Reference resolution
    "ResolutionMap",
    "ReferenceResolution",
    # Lifecycle
    "PhaseSuggestion",
    # Solutions
    "SkillRole",
    "ConnectorTransport",
    "INTERNAL_MESSAGE_MECHANISM",
    "StoreFile",
    "ValidationContext",
    "SolutionSummary",
    "SolutionValidationResult",
]
