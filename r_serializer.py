"""
r_serializer.py

Turn Python values into R source literals for the generated chunks.

    None            -> NULL
    True / False    -> TRUE / FALSE
    7               -> 7
    2.5 / 3.0       -> 2.5 / 3.0       (nan -> NA_real_, inf -> Inf)
    "it's"          -> 'it\\'s'
    ["a", "b"]      -> c('a', 'b')
    [1, "a"]        -> list(1, 'a')
    {"k": 1}        -> list(k = 1)
    RCode("data")   -> data             (verbatim)
    RFormula("x>5") -> ~x>5

The output is deterministic: the same value always serializes to the same
text, which keeps generated documents diffable.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable
import math
import re

import yaml


@dataclass(frozen=True)
class RCode:
    """Verbatim R code, emitted without quoting (e.g. a dataset variable)."""
    code: str

    def __str__(self) -> str:
        return self.code


@dataclass(frozen=True)
class RFormula:
    """One-sided R formula; `expr` is the right-hand side without the tilde."""
    expr: str

    def __str__(self) -> str:
        return f"~{self.expr}"


_SYNTACTIC_NAME_RE = re.compile(r"^(?:[A-Za-z]|\.[A-Za-z._]|\.$)[A-Za-z0-9._]*$")

R_RESERVED_WORDS = {
    "if", "else", "repeat", "while", "function", "for", "next", "break",
    "TRUE", "FALSE", "NULL", "Inf", "NaN", "NA", "NA_integer_", "NA_real_",
    "NA_character_", "NA_complex_", "in",
}

_STRING_ESCAPES = {
    "\\": "\\\\",
    "'": "\\'",
    "\n": "\\n",
    "\t": "\\t",
    "\r": "\\r",
}


def escape_string(text: str, quote: str = "'") -> str:
    """Escape `text` for use between two `quote` characters in R."""
    escaped = "".join(_STRING_ESCAPES.get(ch, ch) for ch in text)
    if quote == '"':
        escaped = escaped.replace('"', '\\"')
    return escaped


def quote_string(text: str) -> str:
    """Single-quote `text` as an R string literal."""
    return "'" + escape_string(text) + "'"


def format_name(name: str) -> str:
    """Return `name` as usable on the left of `=` in an R call or list."""
    if _SYNTACTIC_NAME_RE.match(name) and name not in R_RESERVED_WORDS:
        return name
    return "`" + name.replace("\\", "\\\\").replace("`", "\\`") + "`"


def _format_number(value: int | float) -> str:
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "NA_real_"
    if math.isinf(value):
        return "Inf" if value > 0 else "-Inf"
    return repr(value)


def _scalar_kind(value: Any) -> str | None:
    """Classify a value for c() vectors; None means it needs list()."""
    if isinstance(value, bool):
        return "logical"
    if isinstance(value, (int, float)):
        return "numeric"
    if isinstance(value, str):
        return "character"
    if isinstance(value, RCode):
        return "code"
    return None


def serialize(value: Any) -> str:
    """
    Serialize `value` into an R expression that reconstructs it.

    Raises TypeError for values that have no R counterpart.
    """
    if value is None:
        return "NULL"
    if isinstance(value, RCode):
        return value.code
    if isinstance(value, RFormula):
        return str(value)
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (int, float)):
        return _format_number(value)
    if isinstance(value, str):
        return quote_string(value)
    if isinstance(value, dict):
        items = [f"{format_name(str(k))} = {serialize(v)}" for k, v in value.items()]
        return "list(" + ", ".join(items) + ")"
    if isinstance(value, (list, tuple)):
        if not value:
            return "c()"
        kinds = {_scalar_kind(v) for v in value}
        inner = ", ".join(serialize(v) for v in value)
        if len(kinds) == 1 and None not in kinds:
            return "c(" + inner + ")"
        return "list(" + inner + ")"
    raise TypeError(f"Cannot serialize value of type {type(value).__name__} to R")


def format_call(function: str, args: Iterable[tuple[str, str]], *, indent: str = "") -> list[str]:
    """
    Format a multi-line R call from (name, serialized value) pairs.

    Example:
        format_call("viz_bar", [("data", "data"), ("x_var", "'degree'")], indent="  ")
    ->  ["  viz_bar(", "    data = data,", "    x_var = 'degree'", "  )"]
    """
    pairs = list(args)
    if not pairs:
        return [f"{indent}{function}()"]
    lines = [f"{indent}{function}("]
    for i, (name, value) in enumerate(pairs):
        comma = "," if i < len(pairs) - 1 else ""
        lines.append(f"{indent}  {format_name(name)} = {value}{comma}")
    lines.append(f"{indent})")
    return lines


# ---------------- YAML tags --------------------------------------------------


def _construct_r_code(loader: yaml.SafeLoader, node: yaml.Node) -> RCode:
    return RCode(str(loader.construct_scalar(node)))


def _construct_r_formula(loader: yaml.SafeLoader, node: yaml.Node) -> RFormula:
    expr = str(loader.construct_scalar(node)).strip()
    return RFormula(expr[1:].strip() if expr.startswith("~") else expr)


class SpecLoader(yaml.SafeLoader):
    """SafeLoader that understands the `!r` and `!formula` tags."""


SpecLoader.add_constructor("!r", _construct_r_code)
SpecLoader.add_constructor("!formula", _construct_r_formula)
