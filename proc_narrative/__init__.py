"""Procedure narrative engine.

Turns finding/action templates plus user-entered field values into report
prose, and validates those values with the same resolution rules.
"""

from proc_narrative.coder.code_assignment import (
    assign_codes,
    format_code_assignments,
    validate_code_compatibility,
)
from proc_narrative.reporting.shared_pool import SharedTemplatePool
from proc_narrative.reporting.template_processor import generate
from proc_narrative.reporting.validation import validate

__all__ = [
    "SharedTemplatePool",
    "assign_codes",
    "format_code_assignments",
    "generate",
    "validate",
    "validate_code_compatibility",
]
