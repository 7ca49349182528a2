"""Template library browsing endpoints.

- GET /templates              - list templates, optionally filtered by type
- GET /templates/{id}         - one template as stored (camelCase keys)
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from proc_narrative.api.dependencies import get_library
from proc_narrative.api.schemas import TemplateSummary
from proc_narrative.reporting.template_library import TemplateLibrary
from proc_schemas.templates import SharedTemplate

router = APIRouter()
_library_dep = Depends(get_library)


@router.get("/templates", response_model=list[TemplateSummary])
def list_templates(
    template_type: Optional[str] = Query(None, alias="type"),
    library: TemplateLibrary = _library_dep,
) -> list[TemplateSummary]:
    if template_type is None:
        templates = [library.get(template_id) for template_id in library.list_ids()]
    else:
        templates = library.list_by_type(template_type)
    return [
        TemplateSummary(
            id=template.id,
            name=template.name,
            type=template.type,
            version=template.version,
            description=template.description,
            category=template.category if isinstance(template, SharedTemplate) else None,
        )
        for template in templates
    ]


@router.get("/templates/{template_id}")
def get_template(template_id: str, library: TemplateLibrary = _library_dep) -> dict[str, Any]:
    template = library.maybe_get(template_id)
    if template is None:
        raise HTTPException(status_code=404, detail=f"Template not found: {template_id}")
    return template.model_dump(by_alias=True, exclude_none=True)
