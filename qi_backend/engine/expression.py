"""Arithmetic expression parser for custom indicator formulas.

Grammar (standard precedence, left associative)::

    expr    := term (("+" | "-") term)*
    term    := factor (("*" | "/") factor)*
    factor  := ("+" | "-") factor | primary
    primary := NUMBER | NAME | "(" expr ")"

Expressions are parsed once into an immutable tagged AST and evaluated per
input. ``eval`` is never used.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable, Mapping, Union

from qi_backend.engine.errors import FormulaEvaluationError, FormulaParseError

_TOKEN_RE = re.compile(
    r"(?:"
    r"(?P<number>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"
    r"|(?P<name>[A-Za-z_][A-Za-z0-9_]*)"
    r"|(?P<op>[-+*/()])"
    r")"
)

# Size limits for custom formulas; larger input raises FormulaParseError
MAX_NESTING = 100
MAX_TOKENS = 500


@dataclass(frozen=True)
class Token:
    kind: str  # "number", "name", "op" or "end"
    text: str
    position: int


@dataclass(frozen=True)
class Number:
    value: float


@dataclass(frozen=True)
class Variable:
    name: str


@dataclass(frozen=True)
class UnaryOp:
    op: str
    operand: "Node"


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: "Node"
    right: "Node"


Node = Union[Number, Variable, UnaryOp, BinaryOp]


def tokenize(expression: str) -> list[Token]:
    tokens: list[Token] = []
    pos = 0
    length = len(expression)
    while pos < length:
        if expression[pos].isspace():
            pos += 1
            continue
        match = _TOKEN_RE.match(expression, pos)
        if match is None or match.lastgroup is None:
            raise FormulaParseError(
                f"Unexpected character {expression[pos]!r} at position {pos}",
                position=pos,
            )
        kind = match.lastgroup
        tokens.append(Token(kind, match.group(kind), match.start(kind)))
        if len(tokens) > MAX_TOKENS:
            raise FormulaParseError(
                f"Formula expression is too long (more than {MAX_TOKENS} tokens)",
                position=match.start(kind),
            )
        pos = match.end()
    tokens.append(Token("end", "", length))
    return tokens


class _Parser:
    def __init__(self, expression: str) -> None:
        self._tokens = tokenize(expression)
        self._index = 0
        self._depth = 0

    @property
    def _current(self) -> Token:
        return self._tokens[self._index]

    def _advance(self) -> Token:
        token = self._current
        self._index += 1
        return token

    def parse(self) -> Node:
        if self._current.kind == "end":
            raise FormulaParseError("Formula expression is empty", position=0)
        node = self._expr()
        if self._current.kind != "end":
            token = self._current
            if token.text == ")":
                raise FormulaParseError(
                    f"Unbalanced ')' at position {token.position}",
                    position=token.position,
                )
            raise FormulaParseError(
                f"Unexpected token {token.text!r} at position {token.position}",
                position=token.position,
            )
        return node

    def _expr(self) -> Node:
        node = self._term()
        while self._current.kind == "op" and self._current.text in "+-":
            op = self._advance().text
            node = BinaryOp(op, node, self._term())
        return node

    def _term(self) -> Node:
        node = self._factor()
        while self._current.kind == "op" and self._current.text in "*/":
            op = self._advance().text
            node = BinaryOp(op, node, self._factor())
        return node

    def _enter(self, token: Token) -> None:
        self._depth += 1
        if self._depth > MAX_NESTING:
            raise FormulaParseError(
                f"Formula nests deeper than {MAX_NESTING} levels at position {token.position}",
                position=token.position,
            )

    def _factor(self) -> Node:
        if self._current.kind == "op" and self._current.text in "+-":
            token = self._advance()
            self._enter(token)
            node = UnaryOp(token.text, self._factor())
            self._depth -= 1
            return node
        return self._primary()

    def _primary(self) -> Node:
        token = self._current
        if token.kind == "number":
            self._advance()
            return Number(float(token.text))
        if token.kind == "name":
            self._advance()
            return Variable(token.text)
        if token.kind == "op" and token.text == "(":
            self._advance()
            self._enter(token)
            node = self._expr()
            self._depth -= 1
            if not (self._current.kind == "op" and self._current.text == ")"):
                raise FormulaParseError(
                    f"Unbalanced '(' at position {token.position}",
                    position=token.position,
                )
            self._advance()
            return node
        if token.kind == "end":
            raise FormulaParseError(
                "Formula expression ends unexpectedly", position=token.position
            )
        raise FormulaParseError(
            f"Unexpected token {token.text!r} at position {token.position}",
            position=token.position,
        )


def parse_expression(expression: str) -> Node:
    """Parse an expression string into an AST. Raises FormulaParseError."""
    return _Parser(expression).parse()


def collect_variables(node: Node) -> set[str]:
    if isinstance(node, Variable):
        return {node.name}
    if isinstance(node, UnaryOp):
        return collect_variables(node.operand)
    if isinstance(node, BinaryOp):
        return collect_variables(node.left) | collect_variables(node.right)
    return set()


def evaluate(node: Node, values: Mapping[str, float]) -> float:
    """Evaluate an AST against variable values.

    Raises FormulaEvaluationError on division by zero or a non-finite result.
    """
    result = _evaluate(node, values)
    if not math.isfinite(result):
        raise FormulaEvaluationError(
            "Formula produced a non-finite result", {"result": str(result)}
        )
    return result


def _evaluate(node: Node, values: Mapping[str, float]) -> float:
    if isinstance(node, Number):
        return node.value
    if isinstance(node, Variable):
        try:
            return values[node.name]
        except KeyError:
            raise FormulaEvaluationError(
                f"No value supplied for variable '{node.name}'",
                {"variable": node.name},
            ) from None
    if isinstance(node, UnaryOp):
        operand = _evaluate(node.operand, values)
        return -operand if node.op == "-" else operand

    left = _evaluate(node.left, values)
    right = _evaluate(node.right, values)
    if node.op == "+":
        return left + right
    if node.op == "-":
        return left - right
    if node.op == "*":
        return left * right
    if right == 0:
        raise FormulaEvaluationError("Formula divides by zero")
    return left / right


@dataclass(frozen=True)
class CompiledFormula:
    """A parsed custom formula checked against its declared variables."""

    expression: str
    ast: Node
    variables: frozenset[str]

    def evaluate(self, values: Mapping[str, float]) -> float:
        return evaluate(self.ast, values)


def compile_formula(expression: str, declared: Iterable[str]) -> CompiledFormula:
    """Parse ``expression`` and reject references to undeclared variables.

    Results are cached per (expression, declared variable set).
    """
    return _compile_cached(expression, frozenset(declared))


@lru_cache(maxsize=256)
def _compile_cached(expression: str, declared: frozenset[str]) -> CompiledFormula:
    ast = parse_expression(expression)
    used = collect_variables(ast)
    undeclared = sorted(used - declared)
    if undeclared:
        raise FormulaParseError(
            f"Formula references undeclared variables: {', '.join(undeclared)}"
        )
    return CompiledFormula(expression=expression, ast=ast, variables=frozenset(used))
