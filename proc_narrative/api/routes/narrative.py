"""Narrative endpoints.

- POST /narrative/generate - render a template with field values
- POST /narrative/validate - field-keyed validation errors
- POST /narrative/codes    - code assignments for selected templates
"""

from __future__ import annotations

from typing import Any, Mapping

from fastapi import APIRouter, Depends, HTTPException

from config.settings import NarrativeSettings
from observability.logging_config import get_logger
from proc_narrative.api.dependencies import get_library, get_settings
from proc_narrative.api.schemas import (
    CodesRequest,
    CodesResponse,
    GenerateRequest,
    GenerateResponse,
    ValidateRequest,
)
from proc_narrative.coder.code_assignment import (
    assign_codes,
    format_code_assignments,
    validate_code_compatibility,
)
from proc_narrative.reporting.template_library import AnyTemplate, TemplateLibrary
from proc_narrative.reporting.template_processor import generate
from proc_narrative.reporting.validation import validate
from proc_schemas.coding import ValidationResult
from proc_schemas.templates import SharedTemplate, Variable

router = APIRouter(prefix="/narrative", tags=["narrative"])
logger = get_logger("narrative_api")
_library_dep = Depends(get_library)
_settings_dep = Depends(get_settings)


def _lookup(library: TemplateLibrary, template_id: str) -> AnyTemplate:
    template = library.maybe_get(template_id)
    if template is None:
        raise HTTPException(status_code=404, detail=f"Template not found: {template_id}")
    return template


def _template_variables(template: AnyTemplate) -> Mapping[str, Variable]:
    if isinstance(template, SharedTemplate):
        return template.variables or {}
    return template.variables


@router.post("/generate", response_model=GenerateResponse)
def generate_narrative(
    request: GenerateRequest,
    library: TemplateLibrary = _library_dep,
    settings: NarrativeSettings = _settings_dep,
) -> GenerateResponse:
    overrides: dict[str, Any] = {}
    if request.verbosity is not None:
        overrides["log_level"] = request.verbosity
    if request.extended_conditions is not None:
        overrides["extended_conditions"] = request.extended_conditions
    if overrides:
        settings = settings.model_copy(update=overrides)

    if request.template_id is not None:
        template = _lookup(library, request.template_id)
        if template.template is None:
            raise HTTPException(status_code=422, detail=f"Template has no text: {request.template_id}")
        text_template = template.template
        variables: Mapping[str, Variable] | None = _template_variables(template)
    elif request.template is not None:
        text_template = request.template
        variables = request.variables
    else:
        raise HTTPException(status_code=422, detail="Either template_id or template is required")

    text = generate(text_template, request.values, variables, library.shared_pool(), settings=settings)
    logger.info("Generated narrative", extra={"template_id": request.template_id, "length": len(text)})
    return GenerateResponse(text=text, template_id=request.template_id)


@router.post("/validate", response_model=ValidationResult)
def validate_values(
    request: ValidateRequest,
    library: TemplateLibrary = _library_dep,
    settings: NarrativeSettings = _settings_dep,
) -> ValidationResult:
    if request.template_id is not None:
        variables = _template_variables(_lookup(library, request.template_id))
    elif request.variables is not None:
        variables = request.variables
    else:
        raise HTTPException(status_code=422, detail="Either template_id or variables is required")
    return validate(variables, request.values, library.shared_pool(), settings=settings)


@router.post("/codes", response_model=CodesResponse)
def assign(request: CodesRequest, library: TemplateLibrary = _library_dep) -> CodesResponse:
    templates = [_lookup(library, template_id) for template_id in request.template_ids]
    assignments = assign_codes(templates, request.values)
    return CodesResponse(
        assignments=assignments,
        compatibility=validate_code_compatibility(assignments),
        formatted=format_code_assignments(
            assignments,
            include_secondary_primaries=request.include_secondary_primaries,
        ),
    )
