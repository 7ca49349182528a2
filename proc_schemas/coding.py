"""Code assignment models.

A template contributes its first SNOMED code as the primary code and the
remaining ones as modifiers.
"""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class CodeAssignment(BaseModel):
    """Codes contributed by one selected template."""

    primary: str
    modifiers: List[str] = Field(default_factory=list)
    source: str  # template id that contributed the codes

    model_config = {"frozen": True}


class CodeCompatibility(BaseModel):
    is_valid: bool
    conflicts: List[str] = Field(default_factory=list)


class FormattedCodes(BaseModel):
    """Flattened codes handed to external systems."""

    primary: str = ""
    modifiers: List[str] = Field(default_factory=list)
    sources: List[str] = Field(default_factory=list)


class ValidationResult(BaseModel):
    """Field-keyed validation outcome; never raised, always returned."""

    is_valid: bool
    errors: dict[str, str] = Field(default_factory=dict)


__all__ = [
    "CodeAssignment",
    "CodeCompatibility",
    "FormattedCodes",
    "ValidationResult",
]
