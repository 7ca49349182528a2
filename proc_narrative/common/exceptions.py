"""Exception hierarchy for the narrative engine.

Everything below ``NarrativeError`` except ``TemplateLibraryError`` is raised
and caught inside the engine; ``generate`` and ``validate`` degrade instead of
propagating them.
"""

from __future__ import annotations


class NarrativeError(Exception):
    """Base error for narrative generation."""

    pass


class MalformedExpressionError(NarrativeError):
    """Condition text does not fit the comparison grammar."""

    def __init__(self, expression: str, reason: str = "Invalid expression format"):
        self.expression = expression
        self.reason = reason
        super().__init__(f"{reason}: {expression}")


class UnknownFunctionError(NarrativeError):
    """Template called a function that is not registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown processor function: {name}")


class TemplateFunctionError(NarrativeError):
    """A registered template function could not handle its arguments."""

    pass


class MissingSharedTemplateError(NarrativeError):
    """No shared template exists for a category or id."""

    def __init__(self, name: str, kind: str = "category"):
        self.name = name
        self.kind = kind
        super().__init__(f"No shared template found for {kind}: {name}")


class ReferenceCycleError(NarrativeError):
    """Shared template references recursed into themselves or too deep."""

    def __init__(self, frame: tuple[str, str, str], depth: int):
        self.frame = frame
        self.depth = depth
        super().__init__(f"Reference recursion stopped at {frame} (depth {depth})")


class TemplateLibraryError(NarrativeError):
    """Template definitions could not be loaded or indexed."""

    pass
