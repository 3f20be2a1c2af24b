#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
stencil/tokens.py
=================

Token vocabulary of the template language.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from types import MappingProxyType
from typing import Mapping

from stencil.errors import SourceLocation

__all__ = ["TokenType", "Token", "KEYWORDS"]


class TokenType(Enum):
    # ── Structure ───────────────────────────────────────────────────
    HTML = auto()
    EXPR_START = auto()
    EXPR_END = auto()

    # ── Keywords ────────────────────────────────────────────────────
    IF = auto()
    ELSE = auto()
    END = auto()
    FOR = auto()
    IN = auto()
    RAW = auto()
    INCLUDE = auto()
    COMPONENT = auto()
    WIDGET = auto()
    CONTENT = auto()
    SET = auto()
    SWITCH = auto()
    CASE = auto()
    DEFAULT = auto()
    SLOT = auto()
    BLOCK = auto()
    STACK = auto()
    PUSH = auto()
    FRAGMENT = auto()

    # ── Literals ────────────────────────────────────────────────────
    IDENTIFIER = auto()
    STRING_LITERAL = auto()
    NUMBER = auto()
    TRUE = auto()
    FALSE = auto()

    # ── Operators ───────────────────────────────────────────────────
    DOT = auto()
    NULL_SAFE_DOT = auto()
    LPAREN = auto()
    RPAREN = auto()
    COMMA = auto()
    EQUALS_SIGN = auto()
    EQ = auto()
    NEQ = auto()
    LT = auto()
    GT = auto()
    LTE = auto()
    GTE = auto()
    AND = auto()
    OR = auto()
    NOT = auto()

    EOF = auto()


KEYWORDS: Mapping[str, TokenType] = MappingProxyType({
    "if": TokenType.IF,
    "else": TokenType.ELSE,
    "end": TokenType.END,
    "for": TokenType.FOR,
    "in": TokenType.IN,
    "raw": TokenType.RAW,
    "include": TokenType.INCLUDE,
    "component": TokenType.COMPONENT,
    "widget": TokenType.WIDGET,
    "content": TokenType.CONTENT,
    "set": TokenType.SET,
    "switch": TokenType.SWITCH,
    "case": TokenType.CASE,
    "default": TokenType.DEFAULT,
    "slot": TokenType.SLOT,
    "block": TokenType.BLOCK,
    "stack": TokenType.STACK,
    "push": TokenType.PUSH,
    "fragment": TokenType.FRAGMENT,
})


@dataclass(frozen=True)
class Token:
    type: TokenType
    value: str
    location: SourceLocation

    def __str__(self) -> str:
        return f"{self.type.name}({self.value!r}) at {self.location}"
