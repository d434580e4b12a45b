#!/usr/bin/env python3
"""
r_expr.py

Small tokenizer for R expressions as they appear in page specs
(`filter: ~ wave == 1 & age > 30`, `show_when: region %in% c('EU', 'US')`).

Two consumers:
- show_when.py parses the tokens into a condition tree
- canonical_expression() re-prints them with R's deparse spacing so that
  textually different spellings of the same filter ("x>5", "x > 5",
  "~x >5") map to one canonical string and therefore one filtered dataset.
"""
from __future__ import annotations

from typing import Any
import re

from r_serializer import RFormula

# Longest operators first so "==" wins over "=" and ":::" over "::".
MULTI_CHAR_OPERATORS = (":::", "::", "==", "!=", ">=", "<=", "&&", "||", "<-", "->")
SINGLE_CHAR_OPERATORS = set("><!&|+-*/^~$@:=?")

# Binary operators R's deparse prints without surrounding spaces.
TIGHT_BINARY_OPERATORS = {"^", ":", "::", ":::", "$", "@"}

UNARY_OPERATORS = {"-", "+", "!", "~"}

_NUMBER_RE = re.compile(r"^(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")

_BRACKETS = {
    "(": "lparen",
    ")": "rparen",
    "[": "lbracket",
    "]": "rbracket",
    "{": "lbrace",
    "}": "rbrace",
}


def strip_formula(value: Any) -> str:
    """
    Return the right-hand side of a one-sided formula as plain text.

    Accepts RFormula objects and strings with or without a leading '~'.
    """
    if isinstance(value, RFormula):
        return value.expr.strip()
    text = str(value).strip()
    if text.startswith("~"):
        text = text[1:].strip()
    return text


def _read_string(text: str, start: int) -> tuple[str, int]:
    """
    Read a quoted R string starting at `start` (the opening quote).

    Returns (body, next_pos). The body is normalized for double quotes:
    escaped single quotes are unescaped, bare double quotes are escaped and
    every other escape sequence is kept verbatim.
    """
    quote = text[start]
    out: list[str] = []
    i = start + 1
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            if i + 1 >= len(text):
                break
            nxt = text[i + 1]
            out.append("'" if nxt == "'" else "\\" + nxt)
            i += 2
            continue
        if ch == quote:
            return "".join(out), i + 1
        out.append('\\"' if ch == '"' else ch)
        i += 1
    raise ValueError(f"Unterminated string in R expression: {text!r}")


def tokenize_r_expression(text: str) -> list[tuple[str, str]]:
    """
    Tokenize an R expression into (type, text) pairs.

    Types:
      name      -> identifiers, also `backquoted names`
      number    -> 5, 2.5, 1e3, 5L, 0x1F
      string    -> body of '...' or "..." (normalized for double quotes)
      op        -> operators, including %in% style specials
      comma     -> ,
      lparen/rparen, lbracket/rbracket, lbrace/rbrace

    Raises ValueError for unterminated strings and unknown characters.
    """
    tokens: list[tuple[str, str]] = []
    i = 0
    n = len(text)

    while i < n:
        ch = text[i]

        if ch.isspace():
            i += 1
            continue

        if ch in "'\"":
            body, i = _read_string(text, i)
            tokens.append(("string", body))
            continue

        if ch == "`":
            end = text.find("`", i + 1)
            if end == -1:
                raise ValueError(f"Unterminated backquoted name in R expression: {text!r}")
            tokens.append(("name", text[i:end + 1]))
            i = end + 1
            continue

        if ch.isdigit() or (ch == "." and i + 1 < n and text[i + 1].isdigit()):
            j = i
            if text.startswith(("0x", "0X"), i):
                j = i + 2
                while j < n and text[j] in "0123456789abcdefABCDEF":
                    j += 1
            else:
                while j < n and (text[j].isdigit() or text[j] == "."):
                    j += 1
                if j < n and text[j] in "eE":
                    k = j + 1
                    if k < n and text[k] in "+-":
                        k += 1
                    if k < n and text[k].isdigit():
                        j = k
                        while j < n and text[j].isdigit():
                            j += 1
            if j < n and text[j] in "Li":
                j += 1
            tokens.append(("number", text[i:j]))
            i = j
            continue

        if ch.isalpha() or ch == "." or ch == "_":
            j = i
            while j < n and (text[j].isalnum() or text[j] in "._"):
                j += 1
            tokens.append(("name", text[i:j]))
            i = j
            continue

        if ch == "%":
            end = text.find("%", i + 1)
            if end == -1:
                raise ValueError(f"Unterminated %operator% in R expression: {text!r}")
            tokens.append(("op", text[i:end + 1]))
            i = end + 1
            continue

        if ch == ",":
            tokens.append(("comma", ","))
            i += 1
            continue

        if ch in _BRACKETS:
            tokens.append((_BRACKETS[ch], ch))
            i += 1
            continue

        multi = next((op for op in MULTI_CHAR_OPERATORS if text.startswith(op, i)), None)
        if multi is not None:
            tokens.append(("op", multi))
            i += len(multi)
            continue

        if ch in SINGLE_CHAR_OPERATORS:
            tokens.append(("op", ch))
            i += 1
            continue

        raise ValueError(f"Unexpected character {ch!r} in R expression: {text!r}")

    return tokens


def canonical_number(text: str) -> str:
    """Print a numeric literal the way R's deparse does (1.0 -> 1, 1e3 -> 1000)."""
    if not _NUMBER_RE.match(text):
        return text
    value = float(text)
    if value.is_integer() and abs(value) < 1e15:
        return str(int(value))
    return repr(value)


def _is_unary_position(prev: tuple[str, str] | None) -> bool:
    if prev is None:
        return True
    return prev[0] in ("op", "comma", "lparen", "lbracket", "lbrace")


def canonical_expression(expr: Any) -> str:
    """
    Re-print an R expression with deparse-style spacing.

    Examples:
        "x>5"                    -> "x > 5"
        "~ !is.na( x )"          -> "!is.na(x)"
        "region %in% c('a','b')" -> 'region %in% c("a", "b")'
    """
    tokens = tokenize_r_expression(strip_formula(expr))
    pieces: list[str] = []
    prev: tuple[str, str] | None = None

    for kind, text in tokens:
        if kind == "op":
            if text in UNARY_OPERATORS and _is_unary_position(prev):
                pieces.append(text)
            elif text in TIGHT_BINARY_OPERATORS:
                pieces.append(text)
            else:
                pieces.append(f" {text} ")
        elif kind == "comma":
            pieces.append(", ")
        elif kind == "string":
            pieces.append(f'"{text}"')
        elif kind == "number":
            pieces.append(canonical_number(text))
        else:
            pieces.append(text)
        prev = (kind, text)

    return "".join(pieces).strip()
