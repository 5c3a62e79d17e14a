"""Canonical example documents.

Both examples pass validation: the skill with no errors and ready to
export, the solution with no errors.
"""

import json
from pathlib import Path
from typing import Any, Dict

SAMPLES_DIR = Path(__file__).resolve().parent

EXAMPLES = {
    "skill": "order_support_skill.json",
    "solution": "ecommerce_solution.json",
}


def load_example(name: str) -> Dict[str, Any]:
    """Load a fresh copy of an example document.

    Args:
        name: "skill" or "solution"

    Returns:
        The parsed document; callers may modify it freely

    Raises:
        ValueError: If the example name is unknown
    """
    if name not in EXAMPLES:
        raise ValueError(f"Unknown example: {name}. Must be one of: {', '.join(EXAMPLES)}")
    with open(SAMPLES_DIR / EXAMPLES[name], encoding="utf-8") as f:
        return json.load(f)


__all__ = ["EXAMPLES", "load_example"]
