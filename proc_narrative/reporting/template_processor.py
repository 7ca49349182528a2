"""Narrative template processor.

Each template segment goes through a fixed pipeline; later passes read what
earlier ones produced:

1. ternaries        ``{cond ? yes : no}``
2. function calls   ``{fn:arg1,arg2}``
3. enum fields whose value is a ``"{id}"`` reference are rendered in place
4. substitution     ``{key}``
5. ``[if cond]...[/if]`` blocks
6. ternaries again

Segments of a list template are rendered independently and joined with a
single space. Anything that fails inside a fragment is logged and the
fragment renders as empty text.
"""

from __future__ import annotations

import re
from typing import Any, Callable, Mapping

from config.settings import NarrativeSettings
from proc_narrative.common.exceptions import TemplateFunctionError, UnknownFunctionError
from proc_narrative.common.text_utils import (
    format_count,
    format_measurement,
    format_range,
    is_numeric,
    plural,
    to_number,
    to_text,
)
from proc_narrative.reporting.conditionals import resolve_conditionals
from proc_narrative.reporting.context import LoggerLike, ResolutionContext, build_context
from proc_narrative.reporting.shared_values import (
    is_template_ref,
    resolve_shared_value,
    resolve_template_ref,
)
from proc_schemas.templates import BaseTemplate, TemplateText, Variable

TERNARY_RE = re.compile(r"([^}]+)\s*\?\s*([^:}]+)\s*:\s*([^}]+)")
FUNCTION_RE = re.compile(r"(\w+):([^}]+)", re.ASCII)
_QUOTES_RE = re.compile(r"^['\"]|['\"]$")

BraceHandler = Callable[[str], "str | None"]


# ---------------------------------------------------------------------------
# Template functions
# ---------------------------------------------------------------------------


def _template_ref(ctx: ResolutionContext, ref: Any, *_: Any) -> str:
    return resolve_template_ref(ref, ctx)


def _shared_value(ctx: ResolutionContext, value: Any, category: Any, *_: Any) -> str:
    return resolve_shared_value(value, to_text(category), ctx)


def _plural(ctx: ResolutionContext, count: Any, word: Any, plural_form: Any = None, *_: Any) -> str:
    return plural(count, to_text(word), to_text(plural_form) if plural_form is not None else None)


def _count(ctx: ResolutionContext, value: Any, *_: Any) -> str:
    return format_count(value)


def _measure(ctx: ResolutionContext, value: Any, unit: Any, *_: Any) -> str:
    return format_measurement(value, to_text(unit))


def _range(ctx: ResolutionContext, start: Any, end: Any, unit: Any, *_: Any) -> str:
    return format_range(start, end, to_text(unit))


FUNCTIONS: dict[str, Callable[..., str]] = {
    "templateRef": _template_ref,
    "sharedValue": _shared_value,
    "plural": _plural,
    "count": _count,
    "measure": _measure,
    "range": _range,
}


def call_function(name: str, args: list[Any], ctx: ResolutionContext) -> str:
    """Dispatch a template function; surplus arguments are ignored."""
    func = FUNCTIONS.get(name)
    if func is None:
        raise UnknownFunctionError(name)
    try:
        return func(ctx, *args)
    except (TypeError, ValueError) as exc:
        raise TemplateFunctionError(f"{name}: {exc}") from exc


def has_shared_type(template: BaseTemplate, category: str) -> bool:
    """True when any of *template*'s fields draws from shared *category*."""
    variables: Mapping[str, Variable] | None = getattr(template, "variables", None)
    return any(
        variable.use_shared is not None and variable.use_shared.type == category
        for variable in (variables or {}).values()
    )


# ---------------------------------------------------------------------------
# Scanning
# ---------------------------------------------------------------------------


def _replace_braces(text: str, handler: BraceHandler) -> str:
    """Replace ``{...}`` fragments left to right.

    A fragment runs from a ``{`` to the next ``}``. When *handler* returns
    ``None`` the fragment is left alone and scanning resumes just after its
    opening brace.
    """
    parts: list[str] = []
    emitted = 0
    search = 0
    while True:
        start = text.find("{", search)
        if start == -1:
            break
        end = text.find("}", start + 1)
        if end == -1:
            break
        replacement = handler(text[start + 1 : end])
        if replacement is None:
            search = start + 1
            continue
        parts.append(text[emitted:start])
        parts.append(replacement)
        emitted = search = end + 1
    parts.append(text[emitted:])
    return "".join(parts)


def _guarded(stage: str, handler: BraceHandler, ctx: ResolutionContext) -> BraceHandler:
    def run(content: str) -> str | None:
        try:
            return handler(content)
        except Exception as exc:  # noqa: BLE001
            ctx.logger.error(
                f"Error processing template {stage}: {{{content}}}",
                extra={"stage": stage, "error": str(exc)},
            )
            return ""

    return run


# ---------------------------------------------------------------------------
# Passes
# ---------------------------------------------------------------------------


def _ternary_handler(ctx: ResolutionContext) -> BraceHandler:
    def handle(content: str) -> str | None:
        match = TERNARY_RE.fullmatch(content)
        if match is None:
            return None
        condition, when_true, when_false = match.groups()
        result = ctx.evaluate(condition)
        ctx.logger.debug(
            "Processing ternary",
            extra={"condition": condition, "when_true": when_true, "when_false": when_false, "result": result},
        )
        return (when_true if result else when_false).strip()

    return handle


def _resolve_argument(arg: str, ctx: ResolutionContext) -> Any:
    if arg in ctx.values:
        value = ctx.values[arg]
        variable = ctx.variables.get(arg)
        if variable is not None and variable.use_shared is not None:
            ctx.logger.debug(
                "Processing shared template value",
                extra={"field": arg, "value": value, "category": variable.use_shared.type},
            )
            return resolve_shared_value(value, variable.use_shared.type, ctx, variable.use_shared.variables)
        if isinstance(value, str) and value.strip() and is_numeric(value):
            return to_number(value)
        return value
    number = to_number(arg)
    if number is not None:
        return number
    return _QUOTES_RE.sub("", arg)


def _function_handler(ctx: ResolutionContext) -> BraceHandler:
    def handle(content: str) -> str | None:
        match = FUNCTION_RE.fullmatch(content)
        if match is None:
            return None
        name, raw_args = match.groups()
        args = [_resolve_argument(arg.strip(), ctx) for arg in raw_args.split(",")]
        try:
            result = call_function(name, args, ctx)
        except UnknownFunctionError as exc:
            ctx.logger.warning(str(exc), extra={"function": name})
            return ""
        ctx.logger.debug("Processed function call", extra={"function": name, "arguments": args, "result": result})
        return result

    return handle


def _expand_enum_references(ctx: ResolutionContext) -> None:
    """Render ``"{id}"`` enum values in place so substitution sees prose."""
    for key, variable in ctx.variables.items():
        if variable.type != "enum":
            continue
        value = ctx.values.get(key)
        if not value:
            continue
        try:
            if is_template_ref(value):
                ctx.logger.debug("Found template reference in enum", extra={"field": key, "value": value})
                ctx.values[key] = resolve_template_ref(value, ctx)
            elif isinstance(value, list):
                ctx.values[key] = [
                    resolve_template_ref(item, ctx) if is_template_ref(item) else item for item in value
                ]
        except Exception as exc:  # noqa: BLE001
            ctx.logger.error(
                f"Error expanding template reference for {key}",
                extra={"field": key, "error": str(exc)},
            )


def _substitution_handler(ctx: ResolutionContext) -> BraceHandler:
    def handle(key: str) -> str | None:
        if ":" in key:
            return None
        value = ctx.values.get(key)
        variable = ctx.variables.get(key)
        if variable is not None and variable.use_shared is not None and ctx.pool is not None:
            ctx.logger.debug(
                "Processing shared template variable",
                extra={"field": key, "value": value, "category": variable.use_shared.type},
            )
            return resolve_shared_value(value, variable.use_shared.type, ctx, variable.use_shared.variables)
        text = to_text(value)
        ctx.logger.debug("Variable substitution", extra={"field": key, "value": text})
        return text

    return handle


def _render_segment(segment: str, ctx: ResolutionContext) -> str:
    ternary = _guarded("ternary", _ternary_handler(ctx), ctx)
    try:
        text = _replace_braces(segment, ternary)
        text = _replace_braces(text, _guarded("function", _function_handler(ctx), ctx))
        _expand_enum_references(ctx)
        text = _replace_braces(text, _guarded("variable", _substitution_handler(ctx), ctx))
        text = resolve_conditionals(text, ctx.evaluate)
        return _replace_braces(text, ternary)
    except Exception as exc:  # noqa: BLE001
        ctx.logger.error("Error processing template segment", extra={"segment": segment, "error": str(exc)})
        return ""


def render(template: TemplateText, ctx: ResolutionContext) -> str:
    """Render *template* against an existing resolution context."""
    segments = template if isinstance(template, list) else [template]
    ctx.logger.debug(
        "Starting template processing",
        extra={
            "segment_count": len(segments),
            "fields": list(ctx.values),
            "categories": ctx.pool.categories() if ctx.pool is not None else None,
        },
    )
    return " ".join(_render_segment(segment, ctx) for segment in segments)


def generate(
    template: TemplateText,
    values: Mapping[str, Any] | None,
    variables: Mapping[str, Variable | Mapping[str, Any]] | None = None,
    shared_pool: Any = None,
    *,
    settings: NarrativeSettings | None = None,
    logger: LoggerLike | None = None,
) -> str:
    """Render a finding/action template into narrative text.

    Args:
        template: A template string or a list of segments.
        values: Field values; copied, so the caller's mapping is untouched.
        variables: Field definitions (models or raw mappings).
        shared_pool: A :class:`SharedTemplatePool`, an iterable of shared
            templates, or a ``{category: template}`` mapping.
        settings: Overrides the process settings (grammar, recursion depth).
        logger: Overrides the per-call logger built from ``settings.log_level``.

    Never raises for template content; unresolved constructs render empty.
    """
    ctx = build_context(values, variables, shared_pool, settings=settings, logger=logger)
    return render(template, ctx)


__all__ = [
    "FUNCTIONS",
    "call_function",
    "generate",
    "has_shared_type",
    "render",
]
