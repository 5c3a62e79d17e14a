"""Authoring lifecycle of skill and solution drafts.

Default filling, incremental state updates and phase-transition gates.
"""

from .defaults import (
    SKILL_DEFAULTS,
    SOLUTION_DEFAULTS,
    deep_merge,
    ensure_skill_defaults,
    ensure_solution_defaults,
)
from .state_updates import (
    PROTECTED_ARRAYS,
    StateUpdateEngine,
    apply_state_update,
    apply_solution_update,
)
from .phases import (
    PHASE_ORDER,
    can_transition_to_phase,
    get_blocking_issues,
    get_next_phase,
    get_previous_phase,
    should_suggest_phase_advance,
)

__all__ = [
    # Defaults
    "SKILL_DEFAULTS",
    "SOLUTION_DEFAULTS",
    "deep_merge",
    "ensure_skill_defaults",
    "ensure_solution_defaults",
    # State updates
    "PROTECTED_ARRAYS",
    "StateUpdateEngine",
    "apply_state_update",
    "apply_solution_update",
    # Phases
    "PHASE_ORDER",
    "can_transition_to_phase",
    "get_blocking_issues",
    "get_next_phase",
    "get_previous_phase",
    "should_suggest_phase_advance",
]
