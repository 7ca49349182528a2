"""Code assignment for selected finding/action templates."""

from proc_narrative.coder.code_assignment import (
    assign_codes,
    format_code_assignments,
    validate_code_compatibility,
)

__all__ = [
    "assign_codes",
    "format_code_assignments",
    "validate_code_compatibility",
]
