"""Condition grammar and declarative action rules."""

from .conditions import evaluate_condition, evaluate_conditions
from .dsl import evaluate, parse_expression, tokenize, truthy

__all__ = [
    "evaluate",
    "evaluate_condition",
    "evaluate_conditions",
    "parse_expression",
    "tokenize",
    "truthy",
]
