"""Issue and report contracts shared by every validator."""

from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any, Tuple
from enum import Enum


class Severity(str, Enum):
    """Severity level of a validation issue."""
    ERROR = "error"  # Blocks validity and export
    WARNING = "warning"  # Reported only, never blocks validity


class Issue(BaseModel):
    """A single finding produced by a validator.

    `code` is the stable machine-readable identifier consumers match on;
    `message` is free text and may change between releases.
    """
    code: str = Field(..., description="Stable machine-readable identifier, e.g. TOOL_NOT_FOUND")
    severity: Severity = Field(..., description="error or warning")
    path: str = Field(default="", description="Dotted/bracketed location in the document")
    message: str = Field(..., description="Human-readable description")
    suggestion: Optional[str] = Field(None, description="How to fix the issue")
    details: Dict[str, Any] = Field(default_factory=dict, description="Extra context (grant, skill, connector, fix, ...)")

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR


def error(code: str, path: str, message: str, suggestion: Optional[str] = None, **details: Any) -> Issue:
    """Build an error-severity issue."""
    return Issue(
        code=code,
        severity=Severity.ERROR,
        path=path,
        message=message,
        suggestion=suggestion,
        details=details,
    )


def warning(code: str, path: str, message: str, suggestion: Optional[str] = None, **details: Any) -> Issue:
    """Build a warning-severity issue."""
    return Issue(
        code=code,
        severity=Severity.WARNING,
        path=path,
        message=message,
        suggestion=suggestion,
        details=details,
    )


def split_issues(issues: List[Issue]) -> Tuple[List[Issue], List[Issue]]:
    """Partition issues into (errors, warnings) preserving order."""
    errors = [i for i in issues if i.severity == Severity.ERROR]
    warnings = [i for i in issues if i.severity == Severity.WARNING]
    return errors, warnings


class Unresolved(BaseModel):
    """Dangling references collected during reference resolution (deduplicated)."""
    tools: List[str] = Field(default_factory=list, description="Tool references that match nothing")
    workflows: List[str] = Field(default_factory=list, description="Workflow references that match nothing")
    intents: List[str] = Field(default_factory=list, description="Intents with no visible fulfilment")

    def add_tool(self, ref: str) -> None:
        if ref not in self.tools:
            self.tools.append(ref)

    def add_workflow(self, ref: str) -> None:
        if ref not in self.workflows:
            self.workflows.append(ref)

    def add_intent(self, ref: str) -> None:
        if ref not in self.intents:
            self.intents.append(ref)

    def blocks_export(self) -> bool:
        """Unresolved tools or workflows block export; intents are informational."""
        return bool(self.tools or self.workflows)


class ValidationResult(BaseModel):
    """Report returned by the full skill validation pipeline."""
    valid: bool = Field(..., description="True when no error-severity issue exists")
    ready_to_export: bool = Field(..., description="Derived export gate, see calculate_readiness")
    errors: List[Issue] = Field(default_factory=list)
    warnings: List[Issue] = Field(default_factory=list)
    unresolved: Unresolved = Field(default_factory=Unresolved)
    completeness: Dict[str, bool] = Field(default_factory=dict, description="Section name -> complete")

    def codes(self) -> List[str]:
        """All issue codes, errors first."""
        return [i.code for i in self.errors] + [i.code for i in self.warnings]


class QuickValidationResult(BaseModel):
    """Schema-only result used for interactive feedback."""
    valid: bool
    errors: List[Issue] = Field(default_factory=list)


class ValidationSummary(BaseModel):
    """Compact summary of a validation pass for dashboards."""
    valid: bool
    ready_to_export: bool
    error_count: int = Field(..., ge=0)
    warning_count: int = Field(..., ge=0)
    unresolved_refs: Dict[str, int] = Field(default_factory=dict)
    progress: int = Field(..., ge=0, le=100, description="Overall completeness percentage")
    sections: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
