"""Field validation for finding/action forms.

Applies the same option and shared-vocabulary rules the processor uses, so a
value that validates here renders to prose rather than a raw passthrough.
Each field yields at most one message; within a field the last failing rule
wins.
"""

from __future__ import annotations

import re
from typing import Any, Mapping

from config.settings import NarrativeSettings
from proc_narrative.common.text_utils import is_numeric, number_text, to_number
from proc_narrative.reporting.context import LoggerLike, ResolutionContext, build_context
from proc_schemas.coding import ValidationResult
from proc_schemas.templates import SharedTemplate, Variable

REQUIRED = "This field is required"
NOT_A_NUMBER = "Must be a number"
NOT_TEXT = "Must be text"
INVALID_FORMAT = "Invalid format"
NOT_A_BOOLEAN = "Must be true or false"
INVALID_SHARED_TEMPLATE = "Invalid shared template"
MULTIPLE_NOT_ALLOWED = "Multiple values not allowed"
INVALID_OPTIONS = "Invalid options selected"
INVALID_OPTION = "Invalid option selected"


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or (isinstance(value, list) and not value)


def _bounds_error(number: float, variable: Variable) -> str | None:
    rules = variable.validation
    if rules is None:
        return None
    error = None
    if rules.min is not None and number < rules.min:
        error = f"Must be at least {number_text(rules.min)}"
    if rules.max is not None and number > rules.max:
        error = f"Must be at most {number_text(rules.max)}"
    return error


def _allows_direct(variable: Variable, value: Any) -> bool:
    return (
        variable.type == "mixed"
        and variable.use_shared is not None
        and variable.use_shared.allow_direct
        and not isinstance(value, (list, tuple, bool))
        and is_numeric(value)
    )


def _check_number(key: str, value: Any, variable: Variable, ctx: ResolutionContext) -> str | None:
    number = None if isinstance(value, bool) else to_number(value)
    if number is None:
        ctx.logger.warning(f"Invalid number value for {key}: {value}", extra={"field": key})
        return NOT_A_NUMBER
    error = _bounds_error(number, variable)
    if error:
        ctx.logger.warning(f"Value {value} out of bounds for {key}", extra={"field": key, "error": error})
    return error


def _check_text(key: str, value: Any, variable: Variable, ctx: ResolutionContext) -> str | None:
    if not isinstance(value, str):
        ctx.logger.warning(f"Invalid text value for {key}: {value}", extra={"field": key})
        return NOT_TEXT
    pattern = variable.validation.pattern if variable.validation else None
    if not pattern:
        return None
    try:
        matched = re.search(pattern, value) is not None
    except re.error as exc:
        ctx.logger.error(f"Invalid validation pattern for {key}: {pattern}", extra={"field": key, "error": str(exc)})
        return INVALID_FORMAT
    if not matched:
        ctx.logger.warning(f"Value {value} does not match pattern {pattern} for {key}", extra={"field": key})
        return INVALID_FORMAT
    return None


def _check_references(
    key: str,
    option_references: Mapping[str, Any],
    shared: SharedTemplate,
    ctx: ResolutionContext,
) -> str | None:
    error = None
    for ref_key, ref_value in option_references.items():
        ref_variable = (shared.variables or {}).get(ref_key)
        if ref_variable is None or ref_variable.use_shared is None:
            continue
        ref_shared = ctx.pool.for_category(ref_variable.use_shared.type) if ctx.pool is not None else None
        if ref_shared is None or ref_shared.find_option(ref_value) is None:
            ctx.logger.warning(
                f"Invalid referenced value {ref_value} for {ref_key} in {key}",
                extra={"field": key, "reference": ref_key},
            )
            error = f"Invalid referenced {ref_key} value"
    return error


def _check_shared(key: str, value: Any, variable: Variable, ctx: ResolutionContext) -> str | None:
    category = variable.use_shared.type if variable.use_shared is not None else ""
    shared = ctx.pool.for_category(category) if ctx.pool is not None else None
    if shared is None:
        ctx.logger.warning(f"Shared template not found for {key}: {category}", extra={"field": key})
        return INVALID_SHARED_TEMPLATE

    if _allows_direct(variable, value):
        return _bounds_error(to_number(value), variable)

    if isinstance(value, (list, tuple)):
        if not variable.allow_multiple:
            ctx.logger.warning(f"Multiple values not allowed for {key}", extra={"field": key})
            return MULTIPLE_NOT_ALLOWED
        invalid = [
            item
            for item in value
            if (
                _bounds_error(to_number(item), variable) is not None
                if _allows_direct(variable, item)
                else shared.find_option(item) is None
            )
        ]
        if invalid:
            ctx.logger.warning(f"Invalid shared enum values for {key}: {invalid}", extra={"field": key})
            return INVALID_OPTIONS
        return None

    option = shared.find_option(value)
    if option is None:
        ctx.logger.warning(f"Invalid shared enum value for {key}: {value}", extra={"field": key})
        return INVALID_OPTION
    if option.references:
        return _check_references(key, option.references, shared, ctx)
    return None


def _check_options(key: str, value: Any, variable: Variable, ctx: ResolutionContext) -> str | None:
    if isinstance(value, (list, tuple)):
        if not variable.allow_multiple:
            ctx.logger.warning(f"Multiple values not allowed for {key}", extra={"field": key})
            return MULTIPLE_NOT_ALLOWED
        if variable.options is None:
            return None
        # A "{id}" reference is accepted only when that exact literal is an option.
        invalid = [item for item in value if item not in variable.options]
        if invalid:
            ctx.logger.warning(f"Invalid enum values for {key}: {invalid}", extra={"field": key})
            return INVALID_OPTIONS
        return None
    if variable.options is not None and value not in variable.options:
        ctx.logger.warning(
            f"Invalid enum value for {key}: {value}. Valid options: {', '.join(variable.options)}",
            extra={"field": key},
        )
        return INVALID_OPTION
    return None


def _check_field(key: str, value: Any, variable: Variable, ctx: ResolutionContext) -> str | None:
    if variable.type == "number":
        return _check_number(key, value, variable, ctx)
    if variable.type == "text":
        return _check_text(key, value, variable, ctx)
    if variable.type == "boolean":
        if not isinstance(value, bool):
            ctx.logger.warning(f"Invalid boolean value for {key}: {value}", extra={"field": key})
            return NOT_A_BOOLEAN
        return None
    if variable.use_shared is not None:
        return _check_shared(key, value, variable, ctx)
    return _check_options(key, value, variable, ctx)


def validate(
    variables: Mapping[str, Variable | Mapping[str, Any]] | None,
    values: Mapping[str, Any] | None,
    shared_pool: Any = None,
    *,
    settings: NarrativeSettings | None = None,
    logger: LoggerLike | None = None,
) -> ValidationResult:
    """Check *values* against the field definitions in *variables*.

    Returns a :class:`ValidationResult`; never raises for bad input.
    """
    ctx = build_context(values, variables, shared_pool, settings=settings, logger=logger)
    ctx.logger.debug("Validating template values", extra={"fields": list(ctx.variables)})

    errors: dict[str, str] = {}
    for key, variable in ctx.variables.items():
        value = ctx.values.get(key)
        if _is_empty(value):
            if variable.required:
                ctx.logger.warning(f"Required field missing: {key}", extra={"field": key})
                errors[key] = REQUIRED
            continue
        try:
            error = _check_field(key, value, variable, ctx)
        except Exception as exc:  # noqa: BLE001
            ctx.logger.error(f"Error validating {key}", extra={"field": key, "error": str(exc)})
            error = INVALID_OPTION if variable.type in ("enum", "mixed") else INVALID_FORMAT
        if error:
            errors[key] = error

    result = ValidationResult(is_valid=not errors, errors=errors)
    if result.is_valid:
        ctx.logger.debug("Template validation successful")
    else:
        ctx.logger.warning("Template validation failed", extra={"errors": errors})
    return result


__all__ = ["validate"]
