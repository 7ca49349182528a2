"""Resolution of fields that draw from shared vocabularies.

Two entry points:

* :func:`resolve_shared_value` turns an option id/name (or a direct number)
  from a category into prose, following option ``references`` into other
  categories.
* :func:`resolve_template_ref` renders the shared template whose *id* is named
  by a ``"{name}"`` literal, using its variable defaults.

Missing categories, options or templates pass the raw value through.
Recursion is bounded by the context's reference guard.
"""

from __future__ import annotations

import re
from typing import Any, Mapping

from proc_narrative.common.exceptions import MissingSharedTemplateError, ReferenceCycleError
from proc_narrative.common.text_utils import is_numeric, to_text
from proc_narrative.reporting.context import ResolutionContext
from proc_schemas.templates import SharedTemplate, TemplateText, Variable

TEMPLATE_REF_RE = re.compile(r"^\{([^}]+)\}$")


def is_template_ref(value: Any) -> bool:
    return isinstance(value, str) and value.startswith("{") and value.endswith("}")


def _render(
    template: TemplateText,
    values: Mapping[str, Any],
    variables: Mapping[str, Variable] | None,
    ctx: ResolutionContext,
) -> str:
    from proc_narrative.reporting.template_processor import render

    return render(template, ctx.child(values, variables))


def _shared_for(ctx: ResolutionContext, name: str, kind: str) -> SharedTemplate:
    shared = None
    if ctx.pool is not None:
        shared = ctx.pool.for_category(name) if kind == "category" else ctx.pool.for_id(name)
    if shared is None:
        raise MissingSharedTemplateError(name, kind)
    return shared


def _direct_value_template(template: TemplateText | None) -> str | None:
    # Two-element templates: [option form, direct numeric form].
    if isinstance(template, list):
        if len(template) >= 2:
            return template[1]
        return template[0] if template else None
    return template


def _option_template(template: TemplateText | None) -> str | None:
    if isinstance(template, list):
        return template[0] if template else None
    return template


def _working_env(shared: SharedTemplate, overrides: Mapping[str, Any] | None) -> dict[str, Any]:
    env = shared.variable_defaults()
    env.update(overrides or {})
    return env


def _resolve_option(
    value: str,
    shared: SharedTemplate,
    ctx: ResolutionContext,
    overrides: Mapping[str, Any] | None,
) -> str:
    env = _working_env(shared, overrides)

    if is_numeric(value):
        template = _direct_value_template(shared.template)
        if template is not None:
            return _render(template, {**env, "value": value}, shared.variables, ctx)
        return f"{value}{env.get('unit') or 'mm'}"

    option = shared.find_option(value)
    if option is None:
        ctx.logger.warning(
            f"No matching option found for {value} in {shared.category} template",
            extra={"category": shared.category, "value": value},
        )
        return value

    ctx.logger.debug("Found shared template option", extra={"option": option.id})

    variables = dict(shared.variables or {})
    for key, reference in (option.references or {}).items():
        ref_variable = variables.get(key)
        if ref_variable is not None and ref_variable.use_shared is not None:
            env[key] = resolve_shared_value(reference, ref_variable.use_shared.type, ctx)
            # Already prose; substitution must not look it up a second time.
            variables[key] = ref_variable.model_copy(update={"use_shared": None})
        else:
            env[key] = reference

    template = _option_template(shared.template)
    if template is None:
        return to_text(option.value)
    return _render(template, {**env, "value": option.value}, variables, ctx)


def resolve_shared_value(
    value: Any,
    category: str,
    ctx: ResolutionContext,
    overrides: Mapping[str, Any] | None = None,
) -> str:
    """Render *value* through the shared template for *category*."""
    ctx.logger.debug("Processing shared value", extra={"value": value, "category": category})

    try:
        shared = _shared_for(ctx, category, "category")
    except MissingSharedTemplateError as exc:
        ctx.logger.warning(str(exc), extra={"category": category})
        return to_text(value)

    if isinstance(value, (list, tuple)):
        return ", ".join(resolve_shared_value(item, category, ctx, overrides) for item in value)

    if value is None or value == "":
        return ""

    text = to_text(value)
    try:
        with ctx.guard("shared", category, text):
            return _resolve_option(text, shared, ctx, overrides)
    except ReferenceCycleError as exc:
        ctx.logger.error(str(exc), extra={"category": category, "value": text})
        return text


def resolve_template_ref(ref: Any, ctx: ResolutionContext) -> str:
    """Render the shared template named by a ``"{id}"`` literal."""
    ctx.logger.debug("Processing template reference", extra={"ref": ref})
    text = to_text(ref)

    if ctx.pool is None:
        ctx.logger.warning("No shared templates provided")
        return text

    match = TEMPLATE_REF_RE.match(text)
    if match is None:
        ctx.logger.warning("Invalid template reference format", extra={"ref": text})
        return text

    template_id = match.group(1)
    try:
        shared = _shared_for(ctx, template_id, "id")
    except MissingSharedTemplateError as exc:
        ctx.logger.warning(str(exc), extra={"template_id": template_id})
        return text
    if not shared.template:
        ctx.logger.warning(
            f"No template string found for {template_id}",
            extra={"template_id": template_id},
        )
        return text

    try:
        with ctx.guard("ref", template_id):
            return _render(shared.template, shared.variable_defaults(), shared.variables, ctx)
    except ReferenceCycleError as exc:
        ctx.logger.error(str(exc), extra={"template_id": template_id})
        return text


__all__ = [
    "TEMPLATE_REF_RE",
    "is_template_ref",
    "resolve_shared_value",
    "resolve_template_ref",
]
