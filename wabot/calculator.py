"""
Arithmetic evaluator for the calc command.

Only numbers, + - * /, parentheses and unary signs are accepted. The
expression is tokenized and evaluated by a small recursive-descent
parser; nothing is ever handed to eval().

Grammar:
    expression := term (("+" | "-") term)*
    term       := factor (("*" | "/") factor)*
    factor     := ("+" | "-") factor | NUMBER | "(" expression ")"
"""

import math
import re
from typing import List, Tuple, Union

Number = Union[int, float]

MAX_EXPRESSION_LENGTH = 200

_TOKEN_RE = re.compile(r"\s*(?:(\d+\.\d*|\.\d+|\d+)|(.))")


class CalcError(ValueError):
    """Raised when an expression is not valid arithmetic."""


def tokenize(expression: str) -> List[Tuple[str, str]]:
    """
    Split an expression into (kind, value) tokens.

    Kinds are "num" and "op". Any character outside the grammar raises
    CalcError.
    """
    tokens = []
    for number, other in _TOKEN_RE.findall(expression):
        if number:
            tokens.append(("num", number))
        elif other in "+-*/()":
            tokens.append(("op", other))
        elif other.strip():
            raise CalcError(f"Caractère non autorisé : {other}")
    return tokens


class _Parser:
    def __init__(self, tokens: List[Tuple[str, str]]):
        self.tokens = tokens
        self.pos = 0

    def peek(self) -> Tuple[str, str]:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return ("end", "")

    def take(self) -> Tuple[str, str]:
        token = self.peek()
        self.pos += 1
        return token

    def parse(self) -> float:
        value = self.expression()
        kind, text = self.peek()
        if kind != "end":
            raise CalcError(f"Symbole inattendu : {text}")
        return value

    def expression(self) -> float:
        value = self.term()
        while self.peek() in (("op", "+"), ("op", "-")):
            _, op = self.take()
            right = self.term()
            value = value + right if op == "+" else value - right
        return value

    def term(self) -> float:
        value = self.factor()
        while self.peek() in (("op", "*"), ("op", "/")):
            _, op = self.take()
            right = self.factor()
            if op == "*":
                value = value * right
            else:
                if right == 0:
                    raise CalcError("Division par zéro")
                value = value / right
        return value

    def factor(self) -> float:
        kind, text = self.take()
        if kind == "op" and text in "+-":
            value = self.factor()
            return -value if text == "-" else value
        if kind == "num":
            return float(text)
        if (kind, text) == ("op", "("):
            value = self.expression()
            if self.take() != ("op", ")"):
                raise CalcError("Parenthèse fermante manquante")
            return value
        if kind == "end":
            raise CalcError("Expression incomplète")
        raise CalcError(f"Symbole inattendu : {text}")


def evaluate(expression: str) -> Number:
    """
    Evaluate an arithmetic expression.

    Integral results come back as int so "2+2*3" gives 8, not 8.0.

    Raises:
        CalcError: If the expression is empty, too long or not arithmetic
    """
    if not expression or not expression.strip():
        raise CalcError("Expression vide")
    if len(expression) > MAX_EXPRESSION_LENGTH:
        raise CalcError("Expression trop longue")

    result = _Parser(tokenize(expression)).parse()

    if math.isinf(result) or math.isnan(result):
        raise CalcError("Résultat hors limites")
    if result.is_integer():
        return int(result)
    return result


def format_result(value: Number) -> str:
    """Render a result the way the bot prints it."""
    if isinstance(value, float):
        return f"{value:.10g}"
    return str(value)
