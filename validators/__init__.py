"""Validators for skill and solution documents.

The skill pipeline runs schema, reference, completeness and security checks
in fixed order; the solution validator checks cross-skill contracts.
"""

from .schema_validator import validate_schema
from .reference_resolver import (
    resolve_references,
    are_all_references_resolved,
    get_unresolved_tool_refs,
    get_unresolved_workflow_refs,
)
from .completeness_checker import (
    check_completeness,
    calculate_progress,
    get_completeness_report,
    get_incomplete_sections,
)
from .security_validator import (
    validate_security,
    is_security_complete,
    get_security_report,
)
from .pipeline import (
    ValidationPipeline,
    validate_skill,
    quick_validate,
    calculate_readiness,
    validate_section,
    get_validation_summary,
)
from .solution_validator import SolutionValidator, validate_solution
from .connector_checks import validate_connectors
from .graph import find_cycles, find_shortest_path

__all__ = [
    # Skill stages
    "validate_schema",
    "resolve_references",
    "are_all_references_resolved",
    "get_unresolved_tool_refs",
    "get_unresolved_workflow_refs",
    "check_completeness",
    "calculate_progress",
    "get_completeness_report",
    "get_incomplete_sections",
    "validate_security",
    "is_security_complete",
    "get_security_report",
    # Pipeline
    "ValidationPipeline",
    "validate_skill",
    "quick_validate",
    "calculate_readiness",
    "validate_section",
    "get_validation_summary",
    # Solutions
    "SolutionValidator",
    "validate_solution",
    "validate_connectors",
    # Graph helpers
    "find_cycles",
    "find_shortest_path",
]
