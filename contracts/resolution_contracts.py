"""Reference-resolution contracts.

The resolver never writes into the skill document. It returns a
`ResolutionMap` side-table that completeness and export checks read instead.
"""

from pydantic import BaseModel, Field
from typing import List, Dict

from .issue_contracts import Issue, Unresolved


class ResolutionMap(BaseModel):
    """Resolved/unresolved state of every reference in a skill.

    Keys:
        steps: "<workflow id>/<step index>"
        intents: intent id
        approvals: approval rule id
    Entities without an id fall back to their list position,
    e.g. "workflows[2]/0" or "approvals[1]".
    """
    steps: Dict[str, bool] = Field(default_factory=dict)
    intents: Dict[str, bool] = Field(default_factory=dict)
    approvals: Dict[str, bool] = Field(default_factory=dict)

    @staticmethod
    def step_key(workflow_key: str, index: int) -> str:
        return f"{workflow_key}/{index}"

    def steps_resolved(self, workflow_key: str) -> List[bool]:
        """Per-step flags for one workflow, in step order."""
        prefix = f"{workflow_key}/"
        indexed = [
            (int(key[len(prefix):]), value)
            for key, value in self.steps.items()
            if key.startswith(prefix) and key[len(prefix):].isdigit()
        ]
        return [value for _, value in sorted(indexed)]

    def all_resolved(self) -> bool:
        """True when every step, intent mapping and approval rule resolved."""
        return (
            all(self.steps.values())
            and all(self.intents.values())
            and all(self.approvals.values())
        )


class ReferenceResolution(BaseModel):
    """Output of resolve_references."""
    issues: List[Issue] = Field(default_factory=list)
    resolution: ResolutionMap = Field(default_factory=ResolutionMap)
    unresolved: Unresolved = Field(default_factory=Unresolved)
