"""Public schema exports for the procedure narrative engine."""

from .coding import CodeAssignment, CodeCompatibility, FormattedCodes, ValidationResult
from .templates import (
    ActionTemplate,
    AllowedAction,
    BaseTemplate,
    CodeSet,
    Condition,
    FindingTemplate,
    NextAction,
    SharedOption,
    SharedTemplate,
    Template,
    TemplateRelationship,
    UseShared,
    ValidFor,
    Variable,
    VariableValidation,
    parse_template,
)

__all__ = [
    "ActionTemplate",
    "AllowedAction",
    "BaseTemplate",
    "CodeAssignment",
    "CodeCompatibility",
    "CodeSet",
    "Condition",
    "FindingTemplate",
    "FormattedCodes",
    "NextAction",
    "SharedOption",
    "SharedTemplate",
    "Template",
    "TemplateRelationship",
    "UseShared",
    "ValidFor",
    "ValidationResult",
    "Variable",
    "VariableValidation",
    "parse_template",
]
