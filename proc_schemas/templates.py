"""Template definition models.

Finding, action and shared templates are loaded once into an immutable
library, so every model here is frozen. Wire names stay camelCase
(``useShared``, ``allowedActions`` ...) while Python attributes are
snake_case; both spellings are accepted on input.
"""

from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

VariableType = Literal["number", "text", "enum", "boolean", "mixed"]
ConditionOperator = Literal["equals", "includes", "greater", "less"]

TemplateText = Union[str, List[str]]


class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class VariableValidation(_FrozenModel):
    min: Optional[float] = None
    max: Optional[float] = None
    pattern: Optional[str] = None


class UseShared(_FrozenModel):
    """Pointer from a field to a shared vocabulary *category* (not a template id)."""

    type: str
    allow_direct: bool = Field(default=False, alias="allowDirect")
    variables: Dict[str, Any] = Field(default_factory=dict)


class Variable(_FrozenModel):
    type: VariableType
    required: bool = False
    default: Any = None
    options: Optional[List[str]] = None
    description: Optional[str] = None
    allow_multiple: bool = False
    validation: Optional[VariableValidation] = None
    use_shared: Optional[UseShared] = Field(default=None, alias="useShared")


class Condition(_FrozenModel):
    field: str
    # Kept as a plain string so unknown operators reach the evaluator and fail there.
    operator: str
    value: Any = None


class CodeSet(_FrozenModel):
    snomed: List[str] = Field(min_length=1)
    custom: Dict[str, str] = Field(default_factory=dict)

    @property
    def primary(self) -> str:
        return self.snomed[0]


class AllowedAction(_FrozenModel):
    id: str
    conditions: Optional[List[Condition]] = None
    required: bool = False
    default: Optional[Dict[str, Any]] = None


class NextAction(_FrozenModel):
    id: str
    conditions: Optional[List[Condition]] = None


class ValidFor(_FrozenModel):
    procedures: Optional[List[str]] = None
    findings: Optional[List[str]] = None
    actions: Optional[List[str]] = None


class SharedOption(_FrozenModel):
    id: str
    name: str
    hotkey: str = ""
    value: Union[str, int, float]
    valid_for: ValidFor = Field(default_factory=ValidFor, alias="validFor")
    codes: Optional[CodeSet] = None
    references: Optional[Dict[str, Any]] = None

    def matches(self, candidate: Any) -> bool:
        return candidate == self.id or candidate == self.name


class BaseTemplate(_FrozenModel):
    id: str
    name: str
    description: Optional[str] = None
    version: str = Field(pattern=r"^\d+\.\d+\.\d+$")
    codes: CodeSet

    @property
    def major_version(self) -> str:
        return self.version.split(".", 1)[0]


class FindingTemplate(BaseTemplate):
    type: Literal["finding"] = "finding"
    variables: Dict[str, Variable] = Field(default_factory=dict)
    template: TemplateText
    allowed_actions: List[AllowedAction] = Field(default_factory=list, alias="allowedActions")


class ActionTemplate(BaseTemplate):
    type: Literal["action"] = "action"
    variables: Dict[str, Variable] = Field(default_factory=dict)
    template: TemplateText
    valid_for_findings: List[str] = Field(default_factory=list, alias="validForFindings")
    standalone: bool = False
    next_actions: Optional[List[NextAction]] = Field(default=None, alias="nextActions")
    auto_suggest: bool = Field(default=False, alias="autoSuggest")

    def valid_for(self, finding_id: str) -> bool:
        return "*" in self.valid_for_findings or finding_id in self.valid_for_findings


class SharedTemplate(BaseTemplate):
    type: Literal["shared"] = "shared"
    category: str
    variables: Optional[Dict[str, Variable]] = None
    template: Optional[TemplateText] = None
    options: List[SharedOption] = Field(default_factory=list)

    def find_option(self, candidate: Any) -> Optional[SharedOption]:
        for option in self.options:
            if option.matches(candidate):
                return option
        return None

    def variable_defaults(self) -> Dict[str, Any]:
        return {key: variable.default for key, variable in (self.variables or {}).items()}


Template = Annotated[
    Union[FindingTemplate, ActionTemplate, SharedTemplate],
    Field(discriminator="type"),
]

_TEMPLATE_ADAPTER: TypeAdapter[Template] = TypeAdapter(Template)


def parse_template(data: Any) -> Union[FindingTemplate, ActionTemplate, SharedTemplate]:
    """Validate a raw mapping into the matching template variant."""
    return _TEMPLATE_ADAPTER.validate_python(data)


class TemplateRelationship(_FrozenModel):
    parent: str
    child: str
    relationship: Literal["requires", "suggests", "allows"]
    conditions: Optional[List[Condition]] = None


__all__ = [
    "VariableType",
    "ConditionOperator",
    "TemplateText",
    "VariableValidation",
    "UseShared",
    "Variable",
    "Condition",
    "CodeSet",
    "AllowedAction",
    "NextAction",
    "ValidFor",
    "SharedOption",
    "BaseTemplate",
    "FindingTemplate",
    "ActionTemplate",
    "SharedTemplate",
    "Template",
    "parse_template",
    "TemplateRelationship",
]
