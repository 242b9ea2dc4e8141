"""
Expression handling for the graphing feature.

Student input like "y = 2x^2 + 3" is first normalized into an explicit form
("2*x**2+3"), then parsed by a small recursive-descent parser into an
expression tree that is evaluated by walking the nodes. Text is never
compiled into Python code.

Grammar (after normalization):
    expr    := term (("+" | "-") term)*
    term    := unary (("*" | "/") unary)*
    unary   := ("+" | "-") unary | power
    power   := primary ("**" unary)?
    primary := NUMBER | "x" | "pi" | FUNC "(" expr ")" | "(" expr ")"
"""

import math
import re
from dataclasses import dataclass
from typing import Callable, Optional


MAX_EXPRESSION_LENGTH = 200
MAX_NESTING_DEPTH = 32

FUNCTIONS: dict[str, Callable[[float], float]] = {
    "sqrt": math.sqrt,
    "sin": math.sin,
    "cos": math.cos,
    "tan": math.tan,
    "abs": math.fabs,
    "exp": math.exp,
    "ln": math.log,
    "log": math.log10,
}

CONSTANTS: dict[str, float] = {
    "pi": math.pi,
}

VARIABLE = "x"


class ExpressionError(ValueError):
    """Raised when an expression cannot be parsed."""

    def __init__(self, message: str, position: Optional[int] = None):
        super().__init__(message if position is None else f"{message} (at {position})")
        self.position = position


# ============================================================================
# NORMALIZATION
# ============================================================================

# Glyphs that show up from OCR, copy-paste or a mis-decoded UTF-8 "π"
_GLYPHS = {
    "œÄ": "pi",
    "π": "pi",
    "×": "*",
    "·": "*",
    "÷": "/",
    "−": "-",
    "–": "-",
}

_LEADING_Y = re.compile(r"^y\s*=\s*")


def normalize_expression(expr: str) -> str:
    """
    Rewrite a loosely formatted right-hand side into explicit notation.

    This is a best-effort heuristic, not validation: anything it cannot make
    sense of is left for the parser to reject.
    """
    s = (expr or "").strip()
    for glyph, replacement in _GLYPHS.items():
        s = s.replace(glyph, replacement)

    s = s.lower()
    s = _LEADING_Y.sub("", s)
    s = s.replace("^", "**")

    # Implicit multiplication
    s = re.sub(r"(\d)\s*([a-z(])", r"\1*\2", s)   # 2x, 2(, 2pi, 2sin(
    s = re.sub(r"(?<![a-z])(x|pi)\s*\(", r"\1*(", s)  # x(, pi(
    s = re.sub(r"\)\s*([a-z\d(])", r")*\1", s)     # )x, )2, )(

    return s.strip()


# ============================================================================
# EXPRESSION TREE
# ============================================================================

class Node:
    """Base class for expression tree nodes. Nodes are callable as f(x)."""

    def evaluate(self, x: float) -> float:
        raise NotImplementedError

    def __call__(self, x: float) -> float:
        return self.evaluate(x)


@dataclass(frozen=True)
class Number(Node):
    value: float

    def evaluate(self, x: float) -> float:
        return self.value


@dataclass(frozen=True)
class Variable(Node):
    name: str = VARIABLE

    def evaluate(self, x: float) -> float:
        return x


@dataclass(frozen=True)
class Constant(Node):
    name: str

    def evaluate(self, x: float) -> float:
        return CONSTANTS[self.name]


@dataclass(frozen=True)
class UnaryOp(Node):
    op: str
    operand: Node

    def evaluate(self, x: float) -> float:
        value = self.operand.evaluate(x)
        return -value if self.op == "-" else value


@dataclass(frozen=True)
class BinaryOp(Node):
    op: str
    left: Node
    right: Node

    def evaluate(self, x: float) -> float:
        a = self.left.evaluate(x)
        b = self.right.evaluate(x)
        if self.op == "+":
            return a + b
        if self.op == "-":
            return a - b
        if self.op == "*":
            return a * b
        if self.op == "/":
            return a / b
        # math.pow raises instead of returning complex numbers
        return math.pow(a, b)


@dataclass(frozen=True)
class FunctionCall(Node):
    name: str
    argument: Node

    def evaluate(self, x: float) -> float:
        return FUNCTIONS[self.name](self.argument.evaluate(x))


# ============================================================================
# PARSER
# ============================================================================

_TOKEN = re.compile(r"(?P<number>\d+\.?\d*|\.\d+)|(?P<name>[a-z]+)|(?P<op>\*\*|[-+*/()])")


def tokenize(text: str) -> list[tuple[str, str, int]]:
    """Split normalized text into (kind, value, position) tuples."""
    tokens = []
    pos = 0
    while pos < len(text):
        if text[pos].isspace():
            pos += 1
            continue
        match = _TOKEN.match(text, pos)
        if not match:
            raise ExpressionError(f"Unexpected character {text[pos]!r}", pos)
        kind = match.lastgroup
        tokens.append((kind, match.group(kind), pos))
        pos = match.end()
    return tokens


class _Parser:
    def __init__(self, text: str):
        self.tokens = tokenize(text)
        self.index = 0
        self.depth = 0
        self.length = len(text)

    def peek(self) -> Optional[tuple[str, str, int]]:
        if self.index < len(self.tokens):
            return self.tokens[self.index]
        return None

    def advance(self) -> tuple[str, str, int]:
        token = self.peek()
        if token is None:
            raise ExpressionError("Unexpected end of expression", self.length)
        self.index += 1
        return token

    def accept(self, *ops: str) -> Optional[str]:
        token = self.peek()
        if token and token[0] == "op" and token[1] in ops:
            self.index += 1
            return token[1]
        return None

    def expect(self, op: str) -> None:
        token = self.peek()
        if not self.accept(op):
            position = token[2] if token else self.length
            raise ExpressionError(f"Expected {op!r}", position)

    def enter(self) -> None:
        self.depth += 1
        if self.depth > MAX_NESTING_DEPTH:
            token = self.peek()
            raise ExpressionError("Expression is nested too deeply", token[2] if token else self.length)

    def leave(self) -> None:
        self.depth -= 1

    def parse(self) -> Node:
        node = self.expr()
        token = self.peek()
        if token is not None:
            raise ExpressionError(f"Unexpected {token[1]!r}", token[2])
        return node

    def expr(self) -> Node:
        node = self.term()
        while True:
            op = self.accept("+", "-")
            if not op:
                return node
            node = BinaryOp(op, node, self.term())

    def term(self) -> Node:
        node = self.unary()
        while True:
            op = self.accept("*", "/")
            if not op:
                return node
            node = BinaryOp(op, node, self.unary())

    def unary(self) -> Node:
        op = self.accept("+", "-")
        if op:
            self.enter()
            try:
                return UnaryOp(op, self.unary())
            finally:
                self.leave()
        return self.power()

    def power(self) -> Node:
        base = self.primary()
        if self.accept("**"):
            self.enter()
            try:
                return BinaryOp("**", base, self.unary())
            finally:
                self.leave()
        return base

    def primary(self) -> Node:
        kind, value, position = self.advance()

        if kind == "number":
            return Number(float(value))

        if kind == "name":
            if value == VARIABLE:
                return Variable()
            if value in CONSTANTS:
                return Constant(value)
            if value in FUNCTIONS:
                self.expect("(")
                argument = self.nested()
                return FunctionCall(value, argument)
            raise ExpressionError(f"Unknown name {value!r}", position)

        if value == "(":
            return self.nested()

        raise ExpressionError(f"Unexpected {value!r}", position)

    def nested(self) -> Node:
        """Parse a parenthesised sub-expression; the "(" is already consumed."""
        self.enter()
        try:
            node = self.expr()
        finally:
            self.leave()
        self.expect(")")
        return node


def parse_expression(text: str) -> Node:
    """Parse already-normalized text into an expression tree."""
    if not text or not text.strip():
        raise ExpressionError("Empty expression")
    return _Parser(text).parse()


def compile_expression(expr: str, max_length: int = MAX_EXPRESSION_LENGTH) -> Node:
    """Normalize and parse raw input, returning a callable f(x)."""
    if expr and len(expr) > max_length:
        raise ExpressionError(f"Expression is longer than {max_length} characters")
    return parse_expression(normalize_expression(expr))
