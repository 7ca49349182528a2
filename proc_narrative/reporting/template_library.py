"""Read-only library of finding, action and shared templates.

Templates live as YAML (or JSON) documents under ``findings/``, ``actions/``
and ``shared/`` directories. The library validates every document once and
builds lookup indexes; nothing mutates it afterwards.
"""

from __future__ import annotations

import json
from collections import defaultdict
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable, Literal, Union

import yaml
from pydantic import ValidationError

from config.settings import get_narrative_settings
from observability.logging_config import get_logger
from proc_narrative.common.exceptions import TemplateLibraryError
from proc_narrative.reporting.shared_pool import SharedTemplatePool
from proc_schemas.templates import (
    ActionTemplate,
    FindingTemplate,
    SharedTemplate,
    TemplateRelationship,
    parse_template,
)

logger = get_logger("proc_narrative.template_library")

AnyTemplate = Union[FindingTemplate, ActionTemplate, SharedTemplate]
TemplateType = Literal["finding", "action", "shared"]

TEMPLATE_DIRS: dict[str, TemplateType] = {
    "findings": "finding",
    "actions": "action",
    "shared": "shared",
}
TEMPLATE_SUFFIXES = (".yaml", ".yml", ".json")


def _keywords(template: AnyTemplate) -> list[str]:
    words = template.name.lower().split(" ")
    if template.description:
        words.extend(template.description.lower().split(" "))
    return words


def _relationships(template: AnyTemplate) -> list[TemplateRelationship]:
    if isinstance(template, FindingTemplate):
        return [
            TemplateRelationship(
                parent=template.id,
                child=action.id,
                relationship="allows",
                conditions=action.conditions,
            )
            for action in template.allowed_actions
        ]
    if isinstance(template, ActionTemplate) and template.next_actions:
        kind = "suggests" if template.auto_suggest else "allows"
        return [
            TemplateRelationship(
                parent=template.id,
                child=next_action.id,
                relationship=kind,
                conditions=next_action.conditions,
            )
            for next_action in template.next_actions
        ]
    return []


class TemplateLibrary:
    """Templates by id plus type, code, keyword and category indexes."""

    def __init__(self, templates: Iterable[AnyTemplate]):
        self._templates: dict[str, AnyTemplate] = {}
        self.by_type: dict[str, list[str]] = {"finding": [], "action": [], "shared": []}
        self.by_code: dict[str, list[str]] = defaultdict(list)
        self.by_keyword: dict[str, list[str]] = defaultdict(list)
        self.by_category: dict[str, list[str]] = defaultdict(list)
        self.relationships: dict[str, list[TemplateRelationship]] = {}

        for template in templates:
            self._add(template)

        self._shared_pool = SharedTemplatePool.from_templates(
            self._templates[template_id] for template_id in self.by_type["shared"]
        )

    def _add(self, template: AnyTemplate) -> None:
        if template.id in self._templates:
            raise TemplateLibraryError(f"Duplicate template id: {template.id}")
        self._templates[template.id] = template
        self.by_type[template.type].append(template.id)

        for code in template.codes.snomed:
            self.by_code[code].append(template.id)
        for keyword in _keywords(template):
            self.by_keyword[keyword].append(template.id)
        if isinstance(template, SharedTemplate):
            self.by_category[template.category].append(template.id)

        relationships = _relationships(template)
        if relationships or isinstance(template, FindingTemplate):
            self.relationships[template.id] = relationships

    def __len__(self) -> int:
        return len(self._templates)

    def __contains__(self, template_id: object) -> bool:
        return template_id in self._templates

    def get(self, template_id: str) -> AnyTemplate:
        return self._templates[template_id]

    def maybe_get(self, template_id: str) -> AnyTemplate | None:
        return self._templates.get(template_id)

    def list_ids(self) -> list[str]:
        return list(self._templates.keys())

    def list_by_type(self, template_type: str) -> list[AnyTemplate]:
        return [self._templates[i] for i in self.by_type.get(template_type, [])]

    def list_by_category(self, category: str) -> list[SharedTemplate]:
        return [self._templates[i] for i in self.by_category.get(category, [])]  # type: ignore[misc]

    def find_by_code(self, code: str) -> list[AnyTemplate]:
        return [self._templates[i] for i in self.by_code.get(code, [])]

    def find_by_keyword(self, keyword: str) -> list[AnyTemplate]:
        return [self._templates[i] for i in self.by_keyword.get(keyword.lower(), [])]

    def relationships_for(self, template_id: str) -> list[TemplateRelationship]:
        return list(self.relationships.get(template_id, []))

    def shared_pool(self) -> SharedTemplatePool:
        return self._shared_pool


def _read_document(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix == ".json":
            return json.loads(text)
        return yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise TemplateLibraryError(f"Could not parse template file {path}: {exc}") from exc


def load_template_file(path: Path, expected_type: TemplateType | None = None) -> AnyTemplate:
    """Load and validate a single template document."""
    data = _read_document(path)
    if not isinstance(data, dict):
        raise TemplateLibraryError(f"Template file {path} does not contain a mapping")
    if expected_type is not None:
        data.setdefault("type", expected_type)
        if data["type"] != expected_type:
            raise TemplateLibraryError(
                f"Template file {path} declares type {data['type']!r}, expected {expected_type!r}"
            )
    try:
        return parse_template(data)
    except ValidationError as exc:
        raise TemplateLibraryError(f"Invalid template in {path}: {exc}") from exc


def load_template_library(root: str | Path) -> TemplateLibrary:
    """Load every template under *root*/{findings,actions,shared}."""
    root_path = Path(root)
    if not root_path.is_dir():
        raise TemplateLibraryError(f"Template directory not found: {root_path}")

    templates: list[AnyTemplate] = []
    for dirname, template_type in TEMPLATE_DIRS.items():
        directory = root_path / dirname
        if not directory.is_dir():
            continue
        for path in sorted(directory.iterdir()):
            if path.suffix not in TEMPLATE_SUFFIXES:
                continue
            templates.append(load_template_file(path, template_type))

    library = TemplateLibrary(templates)
    logger.info(
        "Loaded template library",
        extra={
            "root": str(root_path),
            "total": len(library),
            "findings": len(library.by_type["finding"]),
            "actions": len(library.by_type["action"]),
            "shared": len(library.by_type["shared"]),
        },
    )
    return library


@lru_cache(maxsize=1)
def get_template_library() -> TemplateLibrary:
    return load_template_library(get_narrative_settings().templates_path)


__all__ = [
    "AnyTemplate",
    "TemplateLibrary",
    "get_template_library",
    "load_template_file",
    "load_template_library",
]
