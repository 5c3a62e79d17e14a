"""Skill document vocabularies.

Every closed value domain of a skill document is a `str`-backed enum. Schema
and security checks parse raw values through `parse_enum`, which raises
`InvalidEnumError` carrying the allowed set for the error message.
"""

from typing import Any, List, Type, TypeVar
from enum import Enum


E = TypeVar("E", bound=Enum)


class InvalidEnumError(ValueError):
    """Raised when a raw value is not a member of a closed enum domain."""

    def __init__(self, enum_cls: Type[Enum], value: Any):
        self.enum_cls = enum_cls
        self.value = value
        self.allowed = allowed_values(enum_cls)
        super().__init__(f"{value!r} is not one of: {', '.join(self.allowed)}")


def allowed_values(enum_cls: Type[Enum]) -> List[str]:
    """Allowed raw values of an enum, in declaration order."""
    return [member.value for member in enum_cls]


def parse_enum(enum_cls: Type[E], value: Any) -> E:
    """Parse a raw document value into an enum member.

    Args:
        enum_cls: Target enum class
        value: Raw value from the document

    Returns:
        The matching enum member

    Raises:
        InvalidEnumError: If the value is not an allowed member
    """
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidEnumError(enum_cls, value) from None


class Phase(str, Enum):
    """Lifecycle stage of a skill draft."""
    PROBLEM_DISCOVERY = "PROBLEM_DISCOVERY"
    SCENARIO_EXPLORATION = "SCENARIO_EXPLORATION"
    INTENT_DEFINITION = "INTENT_DEFINITION"
    TOOLS_PROPOSAL = "TOOLS_PROPOSAL"
    TOOL_DEFINITION = "TOOL_DEFINITION"
    POLICY_DEFINITION = "POLICY_DEFINITION"
    MOCK_TESTING = "MOCK_TESTING"
    READY_TO_EXPORT = "READY_TO_EXPORT"
    EXPORTED = "EXPORTED"
    DEPLOYED = "DEPLOYED"


class DataType(str, Enum):
    """Type of a tool input, tool output or intent entity."""
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    OBJECT = "object"
    ARRAY = "array"
    TEXT = "text"  # Alias of string accepted from older drafts


class Tone(str, Enum):
    """Communication tone of the agent role."""
    FORMAL = "formal"
    CASUAL = "casual"
    TECHNICAL = "technical"


class Verbosity(str, Enum):
    """Answer length preference of the agent role."""
    CONCISE = "concise"
    BALANCED = "balanced"
    DETAILED = "detailed"


class OutOfDomainAction(str, Enum):
    """What to do with requests outside the skill's intents."""
    REDIRECT = "redirect"
    REJECT = "reject"
    ESCALATE = "escalate"


class ToolPolicyAllowed(str, Enum):
    """When a tool may be called."""
    ALWAYS = "always"
    CONDITIONAL = "conditional"
    NEVER = "never"


class MockMode(str, Enum):
    """How a tool's mock produces responses."""
    EXAMPLES = "examples"
    LLM = "llm"
    HYBRID = "hybrid"


class MockStatus(str, Enum):
    """Mock testing status of a tool."""
    UNTESTED = "untested"
    TESTED = "tested"
    SKIPPED = "skipped"


class TriggerType(str, Enum):
    """Kind of automation trigger."""
    SCHEDULE = "schedule"
    EVENT = "event"


class AutonomyLevel(str, Enum):
    """How much the engine may act without a human."""
    AUTONOMOUS = "autonomous"
    SUPERVISED = "supervised"
    RESTRICTED = "restricted"


class OnMaxIterations(str, Enum):
    """Engine behaviour when the iteration limit is reached."""
    ESCALATE = "escalate"
    FAIL = "fail"
    ASK_USER = "ask_user"


class CriticStrictness(str, Enum):
    """Strictness of the engine's self-critic."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class DeviationAction(str, Enum):
    """Reaction when the agent deviates from a workflow."""
    WARN = "warn"
    BLOCK = "block"
    ASK_USER = "ask_user"


class PolicyEffect(str, Enum):
    """Effect of an access-policy rule."""
    ALLOW = "allow"
    DENY = "deny"
    CONSTRAIN = "constrain"


class SecurityClassification(str, Enum):
    """Data sensitivity of a tool."""
    PUBLIC = "public"
    INTERNAL = "internal"
    PII_READ = "pii_read"
    PII_WRITE = "pii_write"
    FINANCIAL = "financial"
    DESTRUCTIVE = "destructive"

    @property
    def is_high_risk(self) -> bool:
        return self in HIGH_RISK_CLASSIFICATIONS

    @property
    def is_pii(self) -> bool:
        return self in PII_CLASSIFICATIONS


class RiskLevel(str, Enum):
    """Declared risk level of a tool."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


HIGH_RISK_CLASSIFICATIONS = frozenset({
    SecurityClassification.PII_WRITE,
    SecurityClassification.FINANCIAL,
    SecurityClassification.DESTRUCTIVE,
})

PII_CLASSIFICATIONS = frozenset({
    SecurityClassification.PII_READ,
    SecurityClassification.PII_WRITE,
})

# Platform-provided tools never need a definition in the skill
SYSTEM_TOOL_PREFIXES = ("sys.", "ui.", "cp.")

WILDCARD = "*"


def is_system_tool(name: Any) -> bool:
    """True if the name carries a platform tool prefix (case-insensitive)."""
    if not isinstance(name, str) or not name:
        return False
    return name.lower().startswith(SYSTEM_TOOL_PREFIXES)
