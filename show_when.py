#!/usr/bin/env python3
"""
show_when.py

Parse a show_when condition written as an R expression into the JSON
condition tree the client-side visibility script understands.

    region == 'EU'              -> {"var": "region", "op": "eq", "val": "EU"}
    wave != 1 & age > 30        -> {"op": "and", "conditions": [...]}
    !(region == 'EU')           -> {"var": "region", "op": "neq", "val": "EU"}
    !(a > 1)                    -> {"op": "not", "condition": {...}}

Anything outside that grammar raises ValueError.
"""
from __future__ import annotations

from typing import Any
import json

from r_expr import strip_formula, tokenize_r_expression

COMPARISON_OPS = {
    "==": "eq",
    "!=": "neq",
    "%in%": "in",
    ">": "gt",
    "<": "lt",
    ">=": "gte",
    "<=": "lte",
}

AND_OPS = {"&", "&&"}
OR_OPS = {"|", "||"}

R_CONSTANTS: dict[str, Any] = {
    "TRUE": True,
    "T": True,
    "FALSE": False,
    "F": False,
    "NULL": None,
    "NA": None,
    "Inf": float("inf"),
}

# Node shapes produced by the parser:
#   ("name", text) | ("number", text) | ("string", body)
#   ("paren", node) | ("unary", op, node) | ("binary", op, left, right)
#   ("call", function_name, [args])
Node = tuple


class _Parser:
    """Recursive-descent parser following R's operator precedence."""

    def __init__(self, tokens: list[tuple[str, str]], source: str):
        self.tokens = tokens
        self.pos = 0
        self.source = source

    def peek(self) -> tuple[str, str] | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def take(self) -> tuple[str, str]:
        tok = self.peek()
        if tok is None:
            raise ValueError(f"Invalid show_when expression: {self.source!r}")
        self.pos += 1
        return tok

    def at_op(self, ops: set[str]) -> bool:
        tok = self.peek()
        return tok is not None and tok[0] == "op" and tok[1] in ops

    def parse(self) -> Node:
        node = self.parse_or()
        tok = self.peek()
        if tok is not None:
            if tok[0] == "op":
                raise ValueError(f"Unsupported operator in show_when: {tok[1]}")
            raise ValueError(f"Invalid show_when expression: {self.source!r}")
        return node

    def parse_or(self) -> Node:
        node = self.parse_and()
        while self.at_op(OR_OPS):
            op = self.take()[1]
            node = ("binary", op, node, self.parse_and())
        return node

    def parse_and(self) -> Node:
        node = self.parse_not()
        while self.at_op(AND_OPS):
            op = self.take()[1]
            node = ("binary", op, node, self.parse_not())
        return node

    def parse_not(self) -> Node:
        if self.at_op({"!"}):
            self.take()
            return ("unary", "!", self.parse_not())
        return self.parse_comparison()

    def parse_comparison(self) -> Node:
        node = self.parse_additive()
        if self.at_op({"==", "!=", ">", "<", ">=", "<="}):
            op = self.take()[1]
            node = ("binary", op, node, self.parse_additive())
        return node

    def parse_additive(self) -> Node:
        node = self.parse_multiplicative()
        while self.at_op({"+", "-"}):
            op = self.take()[1]
            node = ("binary", op, node, self.parse_multiplicative())
        return node

    def parse_multiplicative(self) -> Node:
        node = self.parse_special()
        while self.at_op({"*", "/"}):
            op = self.take()[1]
            node = ("binary", op, node, self.parse_special())
        return node

    def parse_special(self) -> Node:
        node = self.parse_unary_minus()
        while True:
            tok = self.peek()
            if tok is None or tok[0] != "op" or not tok[1].startswith("%"):
                return node
            op = self.take()[1]
            node = ("binary", op, node, self.parse_unary_minus())

    def parse_unary_minus(self) -> Node:
        if self.at_op({"-", "+"}):
            op = self.take()[1]
            return ("unary", op, self.parse_unary_minus())
        return self.parse_primary()

    def parse_primary(self) -> Node:
        kind, text = self.take()
        if kind == "lparen":
            inner = self.parse_or()
            if self.take()[0] != "rparen":
                raise ValueError(f"Invalid show_when expression: {self.source!r}")
            return ("paren", inner)
        if kind in ("number", "string"):
            return (kind, text)
        if kind == "name":
            tok = self.peek()
            if tok is not None and tok[0] == "lparen":
                self.take()
                return ("call", text, self.parse_arguments())
            return ("name", text)
        if kind == "op":
            raise ValueError(f"Unsupported operator in show_when: {text}")
        raise ValueError(f"Invalid show_when expression: {self.source!r}")

    def parse_arguments(self) -> list[Node]:
        args: list[Node] = []
        tok = self.peek()
        if tok is not None and tok[0] == "rparen":
            self.take()
            return args
        while True:
            args.append(self.parse_or())
            kind, _ = self.take()
            if kind == "rparen":
                return args
            if kind != "comma":
                raise ValueError(f"Invalid show_when expression: {self.source!r}")


def _decode_string(body: str) -> str:
    """Decode the escapes kept by the tokenizer in a string body."""
    escapes = {"n": "\n", "t": "\t", "r": "\r", "\\": "\\", '"': '"', "'": "'", "0": "\0"}
    out: list[str] = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == "\\" and i + 1 < len(body):
            out.append(escapes.get(body[i + 1], body[i + 1]))
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def _number_value(text: str) -> int | float:
    if text.endswith("L"):
        return int(text[:-1], 0) if text.lower().startswith("0x") else int(text[:-1])
    if text.lower().startswith("0x"):
        return int(text, 16)
    if any(c in text for c in ".eE"):
        return float(text)
    return int(text)


def _literal_value(node: Node) -> Any:
    """Evaluate the right-hand side of a comparison (literals and c() only)."""
    kind = node[0]
    if kind == "paren":
        return _literal_value(node[1])
    if kind == "string":
        return _decode_string(node[1])
    if kind == "number":
        return _number_value(node[1])
    if kind == "name" and node[1] in R_CONSTANTS:
        return R_CONSTANTS[node[1]]
    if kind == "unary" and node[1] in ("-", "+"):
        value = _literal_value(node[2])
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("Invalid show_when value: unary minus needs a number")
        return -value if node[1] == "-" else value
    if kind == "call" and node[1] == "c":
        return [_literal_value(arg) for arg in node[2]]
    raise ValueError("Invalid show_when value: only literals and c(...) are allowed")


def _variable_name(node: Node) -> str:
    if node[0] == "paren":
        return _variable_name(node[1])
    if node[0] == "name":
        name = node[1]
        return name[1:-1] if name.startswith("`") else name
    if node[0] == "string":
        return _decode_string(node[1])
    if node[0] == "binary":
        raise ValueError(f"Unsupported operator in show_when: {node[1]}")
    raise ValueError("Invalid show_when expression: comparison needs a variable name")


def _to_condition(node: Node) -> dict[str, Any]:
    kind = node[0]

    if kind == "paren":
        return _to_condition(node[1])

    if kind == "binary":
        op, left, right = node[1], node[2], node[3]
        if op in COMPARISON_OPS:
            return {"var": _variable_name(left), "op": COMPARISON_OPS[op], "val": _literal_value(right)}
        if op in AND_OPS:
            return {"op": "and", "conditions": [_to_condition(left), _to_condition(right)]}
        if op in OR_OPS:
            return {"op": "or", "conditions": [_to_condition(left), _to_condition(right)]}
        raise ValueError(f"Unsupported operator in show_when: {op}")

    if kind == "unary":
        if node[1] != "!":
            raise ValueError(f"Unsupported operator in show_when: {node[1]}")
        inner = _to_condition(node[2])
        if inner.get("op") == "eq":
            return {**inner, "op": "neq"}
        if inner.get("op") == "neq":
            return {**inner, "op": "eq"}
        return {"op": "not", "condition": inner}

    if kind == "call":
        raise ValueError(f"Unsupported operator in show_when: {node[1]}")

    raise ValueError("Invalid show_when expression")


def parse_condition(expr: Any) -> dict[str, Any]:
    """
    Parse a show_when expression (string or RFormula) into a condition dict.

    Raises ValueError for unsupported operators and malformed expressions.
    """
    source = strip_formula(expr)
    if not source:
        raise ValueError("Invalid show_when expression: empty condition")
    tokens = tokenize_r_expression(source)
    return _to_condition(_Parser(tokens, source).parse())


def condition_to_json(condition: dict[str, Any]) -> str:
    """
    Compact JSON for the data-show-when attribute.

    Raises ValueError for Inf and other values JSON cannot carry.
    """
    try:
        return json.dumps(condition, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except ValueError:
        raise ValueError(f"Invalid show_when expression: non-finite value in {condition!r}") from None


def show_when_json(expr: Any) -> str:
    return condition_to_json(parse_condition(expr))
