"""Tolerant accessors for sparse, possibly malformed documents.

Validators read drafts that may have any section missing or mistyped. These
helpers let every check treat a wrong-typed container as empty instead of
raising, so one broken section never hides issues in another.
"""

from typing import Any, Dict, List


def as_dict(value: Any) -> Dict[str, Any]:
    """Return the value if it is a mapping, else an empty dict."""
    return value if isinstance(value, dict) else {}


def as_list(value: Any) -> List[Any]:
    """Return the value if it is a list, else an empty list."""
    return value if isinstance(value, list) else []


def dicts(value: Any) -> List[Dict[str, Any]]:
    """List items coerced to dicts; non-mapping items become empty dicts."""
    return [as_dict(item) for item in as_list(value)]


def is_number(value: Any) -> bool:
    """True for int/float values, excluding bool."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_text(value: Any) -> bool:
    """True for a non-empty string."""
    return isinstance(value, str) and len(value) > 0


def require_mapping(document: Any, what: str = "document") -> Dict[str, Any]:
    """Guard for validator entry points.

    Raises:
        TypeError: If the document is not a mapping
    """
    if not isinstance(document, dict):
        raise TypeError(f"{what} must be a mapping, got {type(document).__name__}")
    return document
