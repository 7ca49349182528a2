"""``[if <expr>]content[/if]`` block elimination."""

from __future__ import annotations

import re
from typing import Callable

CONDITIONAL_RE = re.compile(r"\[if ([^\]]+)\]([^\[]*?)\[/if\]")


def resolve_conditionals(text: str, evaluate: Callable[[str], bool]) -> str:
    """Repeatedly resolve the first block until none remain.

    Block content cannot contain ``[``, so nested blocks resolve innermost
    first and the outer block then wraps the already resolved text.
    """
    while True:
        match = CONDITIONAL_RE.search(text)
        if match is None:
            return text
        condition, content = match.group(1), match.group(2)
        kept = content if evaluate(condition) else ""
        text = text[: match.start()] + kept + text[match.end():]


__all__ = ["CONDITIONAL_RE", "resolve_conditionals"]
