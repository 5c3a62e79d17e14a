"""Lifecycle contracts: phase-advance suggestions."""

from pydantic import BaseModel, Field
from typing import List, Optional

from .skill_contracts import Phase


class PhaseSuggestion(BaseModel):
    """Whether a draft is ready to move on to its next phase."""
    suggest: bool = Field(..., description="True when the next phase's gate is satisfied")
    next_phase: Optional[Phase] = Field(None, description="Next phase, None at the final phase")
    reason: str = Field(..., description="Why the advance is or is not suggested")
    blocking: List[str] = Field(default_factory=list, description="Unmet requirements for the next phase")
