"""Text helpers for narrative rendering: pluralization, counts, measurements.

Values reaching these helpers come from loosely typed form input, so numbers
may arrive as strings. ``to_number`` and ``to_text`` define the coercions used
throughout the engine.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Mapping

_NUMERIC_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")


def to_number(value: Any) -> float | None:
    """Coerce *value* to a float, returning ``None`` when it is not numeric.

    Blank strings count as zero, booleans as 0/1; lists, mappings,
    ``None`` and integers too large for a float are never numeric.
    """
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
        return None if math.isnan(number) else number
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        if _NUMERIC_RE.match(text):
            return float(text)
    return None


def is_numeric(value: Any) -> bool:
    return to_number(value) is not None


def number_text(value: float | int) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def to_text(value: Any) -> str:
    """Render a field value for substitution into prose."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return number_text(value)
    if isinstance(value, (list, tuple)):
        return ", ".join(to_text(item) for item in value)
    return str(value)


@dataclass(frozen=True)
class PluralRule:
    plural: str
    # None: plural whenever count != 1. Otherwise plural once count >= threshold.
    threshold: int | None = None


DEFAULT_PLURAL_RULES: dict[str, PluralRule] = {
    # Common medical terms
    "polyp": PluralRule("polyps"),
    "mass": PluralRule("masses"),
    "lesion": PluralRule("lesions"),
    "ulcer": PluralRule("ulcers"),
    "erosion": PluralRule("erosions"),
    "nodule": PluralRule("nodules"),
    # Irregular forms
    "was": PluralRule("were", threshold=2),
    "is": PluralRule("are", threshold=2),
    "this": PluralRule("these", threshold=2),
    "that": PluralRule("those", threshold=2),
}


def _coerce_rule(rule: PluralRule | Mapping[str, Any] | str) -> PluralRule:
    if isinstance(rule, PluralRule):
        return rule
    if isinstance(rule, str):
        return PluralRule(rule)
    return PluralRule(str(rule["plural"]), rule.get("threshold"))


def _count_value(count: Any) -> float:
    number = to_number(count)
    return math.nan if number is None else number


def pluralize(
    word: str,
    count: Any,
    custom_rules: Mapping[str, PluralRule | Mapping[str, Any] | str] | None = None,
) -> str:
    """Return *word* in the form agreeing with *count*."""
    rules = dict(DEFAULT_PLURAL_RULES)
    for key, rule in (custom_rules or {}).items():
        rules[key.lower()] = _coerce_rule(rule)

    n = _count_value(count)
    rule = rules.get(word.lower())
    if rule is not None:
        if rule.threshold is None:
            return word if n == 1 else rule.plural
        return rule.plural if n >= rule.threshold else word

    if n == 1:
        return word

    if word.endswith("y"):
        if re.search(r"[aeiou]y$", word, re.IGNORECASE):
            return word + "s"
        return word[:-1] + "ies"

    if re.search(r"[sxz]$", word) or re.search(r"[cs]h$", word):
        return word + "es"

    return word + "s"


def plural(count: Any, singular: str, plural_form: str | None = None) -> str:
    """Template helper: ``{plural:n,word}`` or ``{plural:n,was,were}``."""
    if plural_form:
        return singular if _count_value(count) == 1 else plural_form
    return pluralize(singular, count)


def format_count(count: Any) -> str:
    number = to_number(count)
    if number is None:
        raise ValueError(f"Not a number: {count!r}")
    if number == 0:
        return "no"
    return number_text(number)


def _to_fixed(value: float, precision: int) -> str:
    if not math.isfinite(value):
        raise ValueError(f"Not a finite number: {value!r}")
    quantum = Decimal(1).scaleb(-precision)
    rounded = Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP)
    return f"{rounded:f}"


def format_measurement(
    value: Any,
    unit: str,
    *,
    precision: int = 0,
    show_unit: bool = True,
) -> str:
    number = to_number(value)
    if number is None:
        raise ValueError(f"Not a number: {value!r}")
    formatted = _to_fixed(number, precision)
    return f"{formatted}{unit}" if show_unit else formatted


def format_range(start: Any, end: Any, unit: str) -> str:
    if to_number(start) == to_number(end):
        return format_measurement(start, unit)
    return f"{format_measurement(start, '')} to {format_measurement(end, unit)}"


__all__ = [
    "DEFAULT_PLURAL_RULES",
    "PluralRule",
    "format_count",
    "format_measurement",
    "format_range",
    "is_numeric",
    "number_text",
    "plural",
    "pluralize",
    "to_number",
    "to_text",
]
