#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
stencil/sexp.py
===============

Dump a template tree as S-expressions.

Every node becomes ``(tag field...)`` where the tag is the kebab-cased
node class name, e.g.::

    (body
      (html "<ul>")
      (for post (var allPosts)
        (body (output (prop (var post) title))))
      (html "</ul>"))

Strings stay quoted, identifiers and operators are bare symbols and
absent optional children print as ``nil``.  Serialization goes through
:func:`sexpdata.dumps`, so the output reads back with
:func:`sexpdata.loads`.
"""

from __future__ import annotations

import dataclasses
import re
from enum import Enum
from typing import Any, List

try:
    import sexpdata
    from sexpdata import Symbol
except ImportError:  # pragma: no cover
    raise ImportError(
        "The 'sexpdata' package is required for S-expression output. "
        "Install it with:  pip install sexpdata"
    )

from stencil import ast_nodes as N

__all__ = ["to_sexp", "dumps"]

NIL = Symbol("nil")

# Short tags for the most frequent nodes.
_TAGS = {
    "Variable": "var",
    "StringLiteral": "str",
    "NumberLiteral": "num",
    "BooleanLiteral": "bool",
    "PropertyAccess": "prop",
    "NullSafePropertyAccess": "prop-safe",
    "MethodCall": "call",
    "NullSafeMethodCall": "call-safe",
    "BinaryOp": "binary",
    "UnaryNot": "not",
    "Grouped": "group",
    "ExpressionOutput": "output",
    "RawExpressionOutput": "raw",
    "ComponentCall": "component",
}

# Fields that hold names rather than text; printed as bare symbols.
_SYMBOL_FIELDS = frozenset({"variable", "keyword"})


def _tag(node: Any) -> str:
    name = type(node).__name__
    return _TAGS.get(name) or re.sub(r"(?<!^)(?=[A-Z])", "-", name).lower()


def to_sexp(node: Any) -> Any:
    """Convert a node (or field value) to nested lists of sexpdata atoms."""
    if node is None:
        return NIL
    if isinstance(node, bool):
        return Symbol("true" if node else "false")
    if isinstance(node, Enum):
        return Symbol(str(node.value))
    if isinstance(node, str):
        return node
    if isinstance(node, (list, tuple)):
        return [to_sexp(item) for item in node]
    if isinstance(node, N.Variable):
        return [Symbol("var"), Symbol(node.name)]
    if isinstance(node, N.NumberLiteral):
        value = float(node.text) if "." in node.text else int(node.text)
        return [Symbol("num"), value]
    if isinstance(node, N.Body):
        return [Symbol("body")] + [to_sexp(child) for child in node.children]
    if isinstance(node, N.Param):
        return [Symbol(node.name), to_sexp(node.value)]
    if isinstance(node, (N.PropertyAccess, N.NullSafePropertyAccess)):
        return [Symbol(_tag(node)), to_sexp(node.target), Symbol(node.name)]
    if isinstance(node, (N.MethodCall, N.NullSafeMethodCall)):
        return [Symbol(_tag(node)), to_sexp(node.target), Symbol(node.name),
                to_sexp(node.arguments)]
    if dataclasses.is_dataclass(node):
        parts: List[Any] = [Symbol(_tag(node))]
        for f in dataclasses.fields(node):
            if f.name == "location":
                continue
            value = getattr(node, f.name)
            if f.name in _SYMBOL_FIELDS:
                parts.append(Symbol(value))
            else:
                parts.append(to_sexp(value))
        return parts
    raise TypeError(f"cannot convert {type(node).__name__} to an S-expression")


def _format(obj: Any, indent: int, width: int) -> str:
    flat = sexpdata.dumps(obj)
    if not isinstance(obj, list) or len(obj) < 2 or indent + len(flat) <= width:
        return flat
    pad = " " * (indent + 2)
    lines = ["(" + sexpdata.dumps(obj[0])]
    for child in obj[1:]:
        lines.append(pad + _format(child, indent + 2, width))
    return "\n".join(lines) + ")"


def dumps(node: Any, pretty: bool = True, width: int = 80) -> str:
    """Serialize *node* to S-expression text."""
    sexp = to_sexp(node)
    if not pretty:
        return sexpdata.dumps(sexp)
    return _format(sexp, 0, width)
