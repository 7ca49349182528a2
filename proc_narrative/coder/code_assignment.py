"""Clinical code aggregation over the selected templates.

Each template contributes its first SNOMED code as the primary code and the
rest as modifiers. Compatibility checking flags primary codes that repeat
across the selection.
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from proc_schemas.coding import CodeAssignment, CodeCompatibility, FormattedCodes
from proc_schemas.templates import BaseTemplate


def assign_codes(
    templates: Sequence[BaseTemplate],
    values: Mapping[str, Any] | None = None,
) -> list[CodeAssignment]:
    """One assignment per template, in input order.

    ``values`` is accepted so value-dependent code rules can be layered in;
    the template codes do not depend on it today.
    """
    return [
        CodeAssignment(
            primary=template.codes.primary,
            modifiers=list(template.codes.snomed[1:]),
            source=template.id,
        )
        for template in templates
    ]


def validate_code_compatibility(assignments: Sequence[CodeAssignment]) -> CodeCompatibility:
    conflicts: list[str] = []
    seen: set[str] = set()
    for assignment in assignments:
        if assignment.primary in seen:
            conflicts.append(f"Duplicate primary code {assignment.primary} from template {assignment.source}")
        seen.add(assignment.primary)
    return CodeCompatibility(is_valid=not conflicts, conflicts=conflicts)


def format_code_assignments(
    assignments: Sequence[CodeAssignment],
    *,
    include_secondary_primaries: bool = False,
) -> FormattedCodes:
    """Flatten assignments for an external system.

    Only the first assignment's primary code is reported as primary. Later
    primaries are dropped unless ``include_secondary_primaries`` is set, in
    which case each is placed ahead of its own modifiers.
    """
    modifiers: list[str] = []
    for index, assignment in enumerate(assignments):
        if include_secondary_primaries and index > 0:
            modifiers.append(assignment.primary)
        modifiers.extend(assignment.modifiers)
    return FormattedCodes(
        primary=assignments[0].primary if assignments else "",
        modifiers=modifiers,
        sources=[assignment.source for assignment in assignments],
    )


__all__ = [
    "assign_codes",
    "format_code_assignments",
    "validate_code_compatibility",
]
