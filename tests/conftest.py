"""Shared fixtures for the narrative engine tests."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import pytest

os.environ.setdefault("NARRATIVE_SKIP_DOTENV", "1")

from config.settings import NarrativeSettings  # noqa: E402
from proc_narrative.reporting.shared_pool import SharedTemplatePool  # noqa: E402
from proc_narrative.reporting.template_library import (  # noqa: E402
    TemplateLibrary,
    load_template_library,
)

REPO_ROOT = Path(__file__).resolve().parents[1]
TEMPLATES_DIR = REPO_ROOT / "data" / "templates"


def shared(
    template_id: str,
    *,
    category: str | None = None,
    template: Any = None,
    variables: dict[str, Any] | None = None,
    options: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Raw shared template document with the boilerplate filled in."""
    return {
        "id": template_id,
        "type": "shared",
        "name": template_id.title(),
        "category": category or template_id,
        "version": "1.0.0",
        "codes": {"snomed": ["0"]},
        "template": template,
        "variables": variables or {},
        "options": options or [],
    }


def option(option_id: str, value: Any, **extra: Any) -> dict[str, Any]:
    return {"id": option_id, "name": extra.pop("name", option_id.title()), "hotkey": "", "value": value, **extra}


@pytest.fixture
def templates_dir() -> Path:
    return TEMPLATES_DIR


@pytest.fixture
def settings() -> NarrativeSettings:
    return NarrativeSettings(log_level="off", structured_logs=True, templates_path=TEMPLATES_DIR)


@pytest.fixture
def strict_settings(settings: NarrativeSettings) -> NarrativeSettings:
    return settings.model_copy(update={"extended_conditions": False})


@pytest.fixture(scope="session")
def library() -> TemplateLibrary:
    return load_template_library(TEMPLATES_DIR)


@pytest.fixture
def location_pool() -> SharedTemplatePool:
    """Location vocabulary whose options point at position/segment vocabularies."""
    return SharedTemplatePool.from_templates(
        [
            shared(
                "location",
                template="in the {position} {segment}",
                variables={
                    "position": {"type": "enum", "required": True, "useShared": {"type": "position"}},
                    "segment": {"type": "enum", "required": True, "useShared": {"type": "segment"}},
                },
                options=[
                    option(
                        "loc1",
                        "Location 1",
                        references={"position": "proximal", "segment": "esophagus"},
                    )
                ],
            ),
            shared("position", template="{value}", options=[option("proximal", "proximal")]),
            shared("segment", template="{value}", options=[option("esophagus", "esophagus")]),
        ]
    )


@pytest.fixture
def site_pool() -> SharedTemplatePool:
    """Flat location vocabulary with no template text."""
    return SharedTemplatePool.from_templates(
        [
            shared(
                "site",
                category="location",
                options=[
                    option("loc1", "proximal esophagus", name="Proximal"),
                    option("loc2", "mid esophagus", name="Mid"),
                ],
            )
        ]
    )


@pytest.fixture
def make_shared():
    return shared


@pytest.fixture
def make_option():
    return option
