"""Lookup of shared vocabulary templates by category and by id."""

from __future__ import annotations

from typing import Any, Iterable, Iterator, Mapping

from proc_narrative.common.exceptions import TemplateLibraryError
from proc_schemas.templates import SharedTemplate


def _as_shared(template: SharedTemplate | Mapping[str, Any]) -> SharedTemplate:
    if isinstance(template, SharedTemplate):
        return template
    return SharedTemplate.model_validate(template)


class SharedTemplatePool:
    """Shared templates indexed two ways.

    ``sharedValue`` and ``useShared.type`` address a *category*; the
    ``"{name}"`` template reference addresses a template *id*.
    """

    def __init__(
        self,
        by_category: Mapping[str, SharedTemplate] | None = None,
        by_id: Mapping[str, SharedTemplate] | None = None,
    ) -> None:
        self._by_category = dict(by_category or {})
        self._by_id = dict(by_id or {})

    @classmethod
    def from_templates(cls, templates: Iterable[SharedTemplate | Mapping[str, Any]]) -> "SharedTemplatePool":
        by_category: dict[str, SharedTemplate] = {}
        by_id: dict[str, SharedTemplate] = {}
        for raw in templates:
            template = _as_shared(raw)
            existing = by_category.get(template.category)
            if existing is not None and existing.id != template.id:
                raise TemplateLibraryError(
                    f"Shared category {template.category!r} is defined by both "
                    f"{existing.id!r} and {template.id!r}"
                )
            by_category[template.category] = template
            by_id[template.id] = template
        return cls(by_category, by_id)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, SharedTemplate | Mapping[str, Any]]) -> "SharedTemplatePool":
        """Build from ``{category: template}``, the shape editing tools pass around."""
        by_category: dict[str, SharedTemplate] = {}
        by_id: dict[str, SharedTemplate] = {}
        for key, raw in mapping.items():
            template = _as_shared(raw)
            by_category[key] = template
            by_category.setdefault(template.category, template)
            by_id.setdefault(template.id, template)
        return cls(by_category, by_id)

    @classmethod
    def coerce(cls, pool: Any) -> "SharedTemplatePool | None":
        if pool is None or isinstance(pool, SharedTemplatePool):
            return pool
        if isinstance(pool, Mapping):
            return cls.from_mapping(pool)
        return cls.from_templates(pool)

    def for_category(self, category: str) -> SharedTemplate | None:
        return self._by_category.get(category)

    def for_id(self, template_id: str) -> SharedTemplate | None:
        return self._by_id.get(template_id)

    def has_category(self, category: str) -> bool:
        return category in self._by_category

    def categories(self) -> list[str]:
        return list(self._by_category)

    def __len__(self) -> int:
        return len(self._by_id)

    def __iter__(self) -> Iterator[SharedTemplate]:
        return iter(self._by_id.values())


__all__ = ["SharedTemplatePool"]
