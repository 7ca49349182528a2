"""Template resolution, validation and report assembly."""

from proc_narrative.reporting.session import ReportSession
from proc_narrative.reporting.shared_pool import SharedTemplatePool
from proc_narrative.reporting.template_library import (
    TemplateLibrary,
    get_template_library,
    load_template_library,
)
from proc_narrative.reporting.template_processor import generate, has_shared_type
from proc_narrative.reporting.validation import validate

__all__ = [
    "ReportSession",
    "SharedTemplatePool",
    "TemplateLibrary",
    "generate",
    "get_template_library",
    "has_shared_type",
    "load_template_library",
    "validate",
]
