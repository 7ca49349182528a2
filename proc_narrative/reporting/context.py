"""Mutable state for one generate/validate call.

The value map inside a context is rewritten during resolution (enum template
references are replaced by their rendered text before substitution reads
them). Nested renders of shared templates get child contexts with their own
values but share the pool, logger, settings and recursion stack.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping

from pydantic import ValidationError

from config.settings import NarrativeSettings, get_narrative_settings
from observability.logging_config import get_narrative_logger
from proc_narrative.common.exceptions import ReferenceCycleError, TemplateLibraryError
from proc_narrative.common.rules_engine.dsl import evaluate
from proc_narrative.reporting.shared_pool import SharedTemplatePool
from proc_schemas.templates import Variable

LoggerLike = logging.Logger | logging.LoggerAdapter

Frame = tuple[str, str, str]


def coerce_variables(
    variables: Mapping[str, Variable | Mapping[str, Any]] | None,
    logger: LoggerLike,
) -> dict[str, Variable]:
    coerced: dict[str, Variable] = {}
    for key, variable in (variables or {}).items():
        if isinstance(variable, Variable):
            coerced[key] = variable
            continue
        try:
            coerced[key] = Variable.model_validate(variable)
        except ValidationError as exc:
            logger.error(f"Ignoring invalid variable definition: {key}", extra={"error": str(exc)})
    return coerced


@dataclass
class ResolutionContext:
    values: dict[str, Any]
    variables: dict[str, Variable]
    pool: SharedTemplatePool | None
    settings: NarrativeSettings
    logger: LoggerLike
    stack: list[Frame] = field(default_factory=list)

    def child(self, values: Mapping[str, Any], variables: Mapping[str, Variable] | None) -> "ResolutionContext":
        return ResolutionContext(
            values=dict(values),
            variables=dict(variables or {}),
            pool=self.pool,
            settings=self.settings,
            logger=self.logger,
            stack=self.stack,
        )

    def evaluate(self, expression: str) -> bool:
        return evaluate(
            expression,
            self.values,
            extended=self.settings.extended_conditions,
            logger=self.logger,
        )

    @contextmanager
    def guard(self, kind: str, name: str, value: Any = "") -> Iterator[None]:
        """Track one level of shared/reference recursion."""
        frame = (kind, name, str(value))
        if frame in self.stack or len(self.stack) >= self.settings.max_reference_depth:
            raise ReferenceCycleError(frame, len(self.stack))
        self.stack.append(frame)
        try:
            yield
        finally:
            self.stack.pop()


def build_context(
    values: Mapping[str, Any] | None,
    variables: Mapping[str, Variable | Mapping[str, Any]] | None = None,
    shared_pool: Any = None,
    *,
    settings: NarrativeSettings | None = None,
    logger: LoggerLike | None = None,
) -> ResolutionContext:
    """Create a fresh context; the caller's value map is copied, never mutated."""
    resolved_settings = settings or get_narrative_settings()
    log = logger or get_narrative_logger(
        resolved_settings.log_level,
        structured=resolved_settings.structured_logs,
    )
    try:
        pool = SharedTemplatePool.coerce(shared_pool)
    except (TemplateLibraryError, ValidationError) as exc:
        log.error("Ignoring invalid shared template pool", extra={"error": str(exc)})
        pool = None
    return ResolutionContext(
        values=dict(values or {}),
        variables=coerce_variables(variables, log),
        pool=pool,
        settings=resolved_settings,
        logger=log,
    )


__all__ = [
    "Frame",
    "LoggerLike",
    "ResolutionContext",
    "build_context",
    "coerce_variables",
]
