"""Shared helpers: text formatting, the condition DSL and exceptions."""

__all__ = [
    "exceptions",
    "logger",
    "text_utils",
    "rules_engine",
]
