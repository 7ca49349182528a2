"""Comparison expressions used by ``[if ...]`` blocks and ternaries.

The base grammar is a single comparison::

    IDENT OP (NUMBER | IDENT)        OP in  >  <  >=  <=  ===  !==

The left identifier is always looked up in the value environment; the right
token is a number when it is all digits, otherwise another lookup. With
``extended=True`` the same tokens may also form a bare identifier (truthiness),
``!`` negation, and ``&&`` / ``||`` chains of those. ``!`` negates the whole
comparison that follows it: ``!a === b`` reads as ``!(a === b)``. Member
access such as ``items.length`` is not part of either grammar.

Evaluation never raises: malformed text and runtime failures are logged and
read as ``False``.
"""

from __future__ import annotations

import logging
import string
from dataclasses import dataclass
from typing import Any, Mapping, Sequence, Union

from proc_narrative.common.exceptions import MalformedExpressionError
from proc_narrative.common.text_utils import to_number

__all__ = [
    "COMPARISON_OPERATORS",
    "Token",
    "evaluate",
    "parse_expression",
    "strict_equals",
    "tokenize",
    "truthy",
]

COMPARISON_OPERATORS = frozenset({">", "<", ">=", "<=", "===", "!=="})

_OP_CHARS = frozenset("><=!")
_WORD_CHARS = frozenset(string.ascii_letters + string.digits + "_")

_log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Token:
    kind: str  # "ident" | "op" | "and" | "or"
    text: str


@dataclass(frozen=True, slots=True)
class Comparison:
    left: str
    operator: str
    right: str


@dataclass(frozen=True, slots=True)
class Truthy:
    name: str


@dataclass(frozen=True, slots=True)
class Not:
    operand: "Node"


@dataclass(frozen=True, slots=True)
class BoolOp:
    operator: str  # "and" | "or"
    operands: tuple["Node", ...]


Node = Union[Comparison, Truthy, Not, BoolOp]


def tokenize(expression: str) -> list[Token]:
    tokens: list[Token] = []
    i = 0
    length = len(expression)
    while i < length:
        char = expression[i]
        if char.isspace():
            i += 1
        elif char in _WORD_CHARS:
            start = i
            while i < length and expression[i] in _WORD_CHARS:
                i += 1
            tokens.append(Token("ident", expression[start:i]))
        elif char in _OP_CHARS:
            start = i
            while i < length and expression[i] in _OP_CHARS:
                i += 1
            tokens.append(Token("op", expression[start:i]))
        elif expression.startswith("&&", i):
            tokens.append(Token("and", "&&"))
            i += 2
        elif expression.startswith("||", i):
            tokens.append(Token("or", "||"))
            i += 2
        else:
            raise MalformedExpressionError(expression)
    return tokens


def parse_expression(expression: str, *, extended: bool = False) -> Node:
    tokens = tokenize(expression)
    if not extended:
        if len(tokens) != 3 or [t.kind for t in tokens] != ["ident", "op", "ident"]:
            raise MalformedExpressionError(expression)
        return _comparison(expression, tokens[0], tokens[1], tokens[2])
    parser = _ExtendedParser(expression, tokens)
    return parser.parse()


def _comparison(expression: str, left: Token, op: Token, right: Token) -> Comparison:
    if op.text not in COMPARISON_OPERATORS:
        raise MalformedExpressionError(expression, "Unsupported operator")
    return Comparison(left.text, op.text, right.text)


class _ExtendedParser:
    def __init__(self, expression: str, tokens: Sequence[Token]):
        self.expression = expression
        self.tokens = tokens
        self.pos = 0

    def _peek(self) -> Token | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _next(self) -> Token:
        token = self._peek()
        if token is None:
            raise MalformedExpressionError(self.expression)
        self.pos += 1
        return token

    def parse(self) -> Node:
        node = self._or()
        if self._peek() is not None:
            raise MalformedExpressionError(self.expression)
        return node

    def _or(self) -> Node:
        operands = [self._and()]
        while (token := self._peek()) is not None and token.kind == "or":
            self.pos += 1
            operands.append(self._and())
        return operands[0] if len(operands) == 1 else BoolOp("or", tuple(operands))

    def _and(self) -> Node:
        operands = [self._unary()]
        while (token := self._peek()) is not None and token.kind == "and":
            self.pos += 1
            operands.append(self._unary())
        return operands[0] if len(operands) == 1 else BoolOp("and", tuple(operands))

    def _unary(self) -> Node:
        token = self._next()
        if token.kind == "op" and set(token.text) == {"!"}:
            node = self._unary()
            for _ in token.text:
                node = Not(node)
            return node
        if token.kind != "ident":
            raise MalformedExpressionError(self.expression)
        following = self._peek()
        if following is not None and following.kind == "op":
            self.pos += 1
            right = self._next()
            if right.kind != "ident":
                raise MalformedExpressionError(self.expression)
            return _comparison(self.expression, token, following, right)
        return Truthy(token.text)


def truthy(value: Any) -> bool:
    """Truthiness of a field value; empty strings, lists and zero are false."""
    if value is None:
        return False
    if isinstance(value, float) and value != value:
        return False
    return bool(value)


def strict_equals(left: Any, right: Any) -> bool:
    if left is None or right is None:
        return left is None and right is None
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if isinstance(left, (int, float)) and isinstance(right, (int, float)):
        return left == right
    if isinstance(left, str) and isinstance(right, str):
        return left == right
    # Containers compare by identity.
    return left is right


def _relational(operator: str, left: Any, right: Any) -> bool:
    if isinstance(left, str) and isinstance(right, str):
        a: Any = left
        b: Any = right
    else:
        a, b = to_number(left), to_number(right)
        if a is None or b is None:
            return False
    if operator == ">":
        return a > b
    if operator == "<":
        return a < b
    if operator == ">=":
        return a >= b
    if operator == "<=":
        return a <= b
    raise KeyError(operator)


def _right_operand(token: str, env: Mapping[str, Any]) -> Any:
    if token.isdigit():
        return int(token)
    return env.get(token)


def _evaluate_node(node: Node, env: Mapping[str, Any]) -> bool:
    if isinstance(node, Comparison):
        left = env.get(node.left)
        right = _right_operand(node.right, env)
        if node.operator == "===":
            return strict_equals(left, right)
        if node.operator == "!==":
            return not strict_equals(left, right)
        return _relational(node.operator, left, right)
    if isinstance(node, Truthy):
        return truthy(env.get(node.name))
    if isinstance(node, Not):
        return not _evaluate_node(node.operand, env)
    if node.operator == "and":
        return all(_evaluate_node(operand, env) for operand in node.operands)
    return any(_evaluate_node(operand, env) for operand in node.operands)


def evaluate(
    expression: str,
    env: Mapping[str, Any],
    *,
    extended: bool = False,
    logger: logging.Logger | logging.LoggerAdapter | None = None,
) -> bool:
    """Evaluate *expression* against *env*; failures log and return False."""
    log = logger or _log
    try:
        node = parse_expression(expression, extended=extended)
    except MalformedExpressionError as exc:
        log.error(f"{exc.reason}: {expression}", extra={"expression": expression})
        return False
    try:
        return _evaluate_node(node, env)
    except (TypeError, ValueError, KeyError, ArithmeticError) as exc:
        log.error(
            f"Error evaluating expression: {expression}",
            extra={"expression": expression, "error": str(exc)},
        )
        return False
