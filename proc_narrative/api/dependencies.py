"""Dependency injection factories for API endpoints."""

from __future__ import annotations

from config.settings import NarrativeSettings, get_narrative_settings
from proc_narrative.reporting.template_library import TemplateLibrary, get_template_library


def get_settings() -> NarrativeSettings:
    """Get cached NarrativeSettings from environment."""
    return get_narrative_settings()


def get_library() -> TemplateLibrary:
    """Get the process-wide template library (loaded once)."""
    return get_template_library()
