"""Configuration settings using pydantic-settings."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


_REPO_ROOT = Path(__file__).resolve().parents[1]

Verbosity = Literal["off", "simple", "verbose"]


def _resolve_repo_path(path: Path) -> Path:
    if path.is_absolute():
        return path
    return (_REPO_ROOT / path).resolve()


class NarrativeSettings(BaseSettings):
    """Settings for narrative generation and validation.

    ``extended_conditions`` widens the ``[if ...]`` / ternary grammar beyond
    single comparisons (bare identifiers, ``!``, ``&&``, ``||``), which the
    shipped templates use. Turn it off to accept single comparisons only.
    """

    log_level: Verbosity = "off"
    structured_logs: bool = True
    max_reference_depth: int = Field(default=8, ge=1)
    extended_conditions: bool = True
    templates_path: Path = Path("data/templates")

    model_config = {"env_prefix": "NARRATIVE_", "extra": "ignore"}

    @model_validator(mode="after")
    def _resolve_paths(self) -> "NarrativeSettings":
        self.templates_path = _resolve_repo_path(self.templates_path)
        return self


@lru_cache(maxsize=1)
def get_narrative_settings() -> NarrativeSettings:
    return NarrativeSettings()
