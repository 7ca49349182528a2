"""Request and response models for the narrative API."""

from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import BaseModel, Field

from config.settings import Verbosity
from proc_schemas.coding import CodeAssignment, CodeCompatibility, FormattedCodes
from proc_schemas.templates import Variable


class TemplateSummary(BaseModel):
    id: str
    name: str
    type: str
    version: str
    description: Optional[str] = None
    category: Optional[str] = None


class GenerateRequest(BaseModel):
    """Render a library template by id, or an inline template string."""

    template_id: Optional[str] = Field(None, description="Id of a finding/action template in the library")
    template: Optional[Union[str, list[str]]] = Field(
        None, description="Inline template text; used when template_id is not given"
    )
    values: dict[str, Any] = Field(default_factory=dict)
    variables: Optional[dict[str, Variable]] = Field(
        None, description="Field definitions for an inline template"
    )
    verbosity: Optional[Verbosity] = Field(None, description="Per-request log verbosity")
    extended_conditions: Optional[bool] = Field(
        None, description="Accept truthiness, !, && and || in conditions"
    )


class GenerateResponse(BaseModel):
    text: str
    template_id: Optional[str] = None


class ValidateRequest(BaseModel):
    template_id: Optional[str] = None
    variables: Optional[dict[str, Variable]] = None
    values: dict[str, Any] = Field(default_factory=dict)


class CodesRequest(BaseModel):
    template_ids: list[str] = Field(..., min_length=1)
    values: dict[str, Any] = Field(default_factory=dict)
    include_secondary_primaries: bool = False


class CodesResponse(BaseModel):
    assignments: list[CodeAssignment]
    compatibility: CodeCompatibility
    formatted: FormattedCodes
