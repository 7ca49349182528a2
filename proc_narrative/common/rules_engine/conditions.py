"""Declarative conditions gating allowed and next actions."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from proc_narrative.common.rules_engine.dsl import strict_equals
from proc_narrative.common.text_utils import to_number
from proc_schemas.templates import Condition

__all__ = [
    "evaluate_condition",
    "evaluate_conditions",
]

_log = logging.getLogger(__name__)


def evaluate_condition(
    condition: Condition,
    values: Mapping[str, Any],
    *,
    logger: logging.Logger | logging.LoggerAdapter | None = None,
) -> bool:
    log = logger or _log
    field_value = values.get(condition.field)
    operator = condition.operator

    if operator == "equals":
        result = strict_equals(field_value, condition.value)
    elif operator == "includes":
        result = isinstance(field_value, (list, tuple)) and condition.value in field_value
    elif operator in ("greater", "less"):
        left, right = to_number(field_value), to_number(condition.value)
        if left is None or right is None:
            result = False
        else:
            result = left > right if operator == "greater" else left < right
    else:
        log.warning(f"Unknown operator: {operator}", extra={"field": condition.field})
        return False

    log.debug(
        "Condition evaluation",
        extra={
            "field": condition.field,
            "operator": operator,
            "expected": condition.value,
            "actual": field_value,
            "result": result,
        },
    )
    return result


def evaluate_conditions(
    conditions: Sequence[Condition] | None,
    values: Mapping[str, Any],
    *,
    logger: logging.Logger | logging.LoggerAdapter | None = None,
) -> bool:
    """Return True when every condition holds for *values*."""
    return all(evaluate_condition(condition, values, logger=logger) for condition in conditions or ())
