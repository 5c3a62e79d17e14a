"""Solution contracts: multi-skill composition results and validation context."""

from pydantic import BaseModel, Field
from typing import List, Dict, Any
from enum import Enum

from .issue_contracts import Issue


class SkillRole(str, Enum):
    """Role a skill plays inside a solution."""
    GATEWAY = "gateway"
    WORKER = "worker"
    ORCHESTRATOR = "orchestrator"
    APPROVAL = "approval"


class ConnectorTransport(str, Enum):
    """How the platform talks to a connector process."""
    STDIO = "stdio"
    HTTP = "http"
    SSE = "sse"


# Handoff mechanism that needs no platform connector
INTERNAL_MESSAGE_MECHANISM = "internal-message"


class StoreFile(BaseModel):
    """One source file uploaded for a connector."""
    path: str = Field(..., description="Path relative to the connector's store directory")
    content: str = Field(default="", description="File content")


class ValidationContext(BaseModel):
    """Deployment context enabling the connector-binding checks."""
    skills: List[Dict[str, Any]] = Field(default_factory=list, description="Full skill bodies, with tools")
    connectors: List[Dict[str, Any]] = Field(default_factory=list, description="Connector definitions (id, transport, args, ui_capable)")
    mcp_store: Dict[str, List[StoreFile]] = Field(default_factory=dict, description="Connector id -> uploaded source files")


class SolutionSummary(BaseModel):
    """Counts describing a validated solution."""
    skills: int = 0
    grants: int = 0
    handoffs: int = 0
    channels: int = 0
    platform_connectors: int = 0
    security_contracts: int = 0
    error_count: int = 0
    warning_count: int = 0


class SolutionValidationResult(BaseModel):
    """Report returned by validate_solution."""
    valid: bool = Field(..., description="True when no error-severity issue exists")
    errors: List[Issue] = Field(default_factory=list)
    warnings: List[Issue] = Field(default_factory=list)
    summary: SolutionSummary = Field(default_factory=SolutionSummary)

    def codes(self) -> List[str]:
        return [i.code for i in self.errors] + [i.code for i in self.warnings]
