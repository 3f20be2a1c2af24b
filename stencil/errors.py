#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
stencil/errors.py
=================

Error types for the stencil template compiler.

Every failure the compiler reports is a :class:`CompileError` carrying a
human-readable message and the :class:`SourceLocation` (file, line,
column) where it was detected.  Subclasses tag the pipeline phase that
raised them.

Error Hierarchy
---------------
::

    CompileError (base)
    ├── SplitError     - host/template separation failures
    ├── LexError       - tokenization failures
    ├── ParseError     - grammar violations in the template body
    └── CodeGenError   - constructs that cannot be emitted

Error Codes
-----------
Each error has a code of the form ``STN-NNNN``:

  - 0001-0999: Lexical errors
  - 1000-1999: Syntax errors
  - 2000-2999: Split errors
  - 4000-4999: Code generation errors

Compilation is fail-fast: the first error aborts the unit.  The host
metadata analyzer never raises.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique
from typing import Optional

__all__ = [
    "SourceLocation",
    "ErrorPhase",
    "ErrorCode",
    "StencilErrorCodes",
    "CompileError",
    "SplitError",
    "LexError",
    "ParseError",
    "CodeGenError",
]


# ═══════════════════════════════════════════════════════════════════════════════
# SOURCE LOCATIONS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SourceLocation:
    """A 1-based position in a source file."""

    file: str = "<unknown>"
    line: int = 1
    column: int = 1

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"


# ═══════════════════════════════════════════════════════════════════════════════
# PHASES AND CODES
# ═══════════════════════════════════════════════════════════════════════════════

@unique
class ErrorPhase(Enum):
    """Compilation phase where the error occurred."""

    SPLIT = "split"            # Host / template separation
    LEXICAL = "lexical"        # Tokenization
    SYNTAX = "syntax"          # Parsing
    CODEGEN = "codegen"        # Target emission


class ErrorCode:
    """A structured error code, ``PREFIX-NNNN``."""

    __slots__ = ("prefix", "number", "phase")

    def __init__(self, prefix: str, number: int, phase: ErrorPhase) -> None:
        self.prefix = prefix
        self.number = number
        self.phase = phase

    @property
    def code(self) -> str:
        """Get the full error code string."""
        return f"{self.prefix}-{self.number:04d}"

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"ErrorCode({self.code!r}, {self.phase.name})"

    def __hash__(self) -> int:
        return hash((self.prefix, self.number))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ErrorCode):
            return self.prefix == other.prefix and self.number == other.number
        if isinstance(other, str):
            return self.code == other
        return False


class StencilErrorCodes:
    """Predefined error codes."""

    # ── Lexical (0001-0999) ─────────────────────────────────────────────
    INVALID_CHARACTER = ErrorCode("STN", 1, ErrorPhase.LEXICAL)
    UNTERMINATED_STRING = ErrorCode("STN", 2, ErrorPhase.LEXICAL)
    UNTERMINATED_COMMENT = ErrorCode("STN", 3, ErrorPhase.LEXICAL)
    UNTERMINATED_TAG = ErrorCode("STN", 4, ErrorPhase.LEXICAL)
    UNTERMINATED_VERBATIM = ErrorCode("STN", 5, ErrorPhase.LEXICAL)
    MALFORMED_DIRECTIVE = ErrorCode("STN", 6, ErrorPhase.LEXICAL)

    # ── Syntax (1000-1999) ──────────────────────────────────────────────
    UNEXPECTED_TOKEN = ErrorCode("STN", 1000, ErrorPhase.SYNTAX)
    UNEXPECTED_EOF = ErrorCode("STN", 1001, ErrorPhase.SYNTAX)
    UNTERMINATED_BLOCK = ErrorCode("STN", 1002, ErrorPhase.SYNTAX)
    TRAILING_TOKENS = ErrorCode("STN", 1003, ErrorPhase.SYNTAX)

    # ── Split (2000-2999) ───────────────────────────────────────────────
    UNTERMINATED_LITERAL = ErrorCode("STN", 2000, ErrorPhase.SPLIT)
    UNTERMINATED_MARKER = ErrorCode("STN", 2001, ErrorPhase.SPLIT)
    UNTERMINATED_TEMPLATE_BLOCK = ErrorCode("STN", 2002, ErrorPhase.SPLIT)

    # ── Code generation (4000-4999) ─────────────────────────────────────
    INVALID_CONTEXT = ErrorCode("STN", 4000, ErrorPhase.CODEGEN)
    INVALID_NAME = ErrorCode("STN", 4001, ErrorPhase.CODEGEN)


# ═══════════════════════════════════════════════════════════════════════════════
# EXCEPTIONS
# ═══════════════════════════════════════════════════════════════════════════════

class CompileError(Exception):
    """
    Base exception for every compiler failure.

    ``str(err)`` renders GCC style: ``file:line:col: message``.
    """

    default_code: ErrorCode = StencilErrorCodes.UNEXPECTED_TOKEN

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        code: Optional[ErrorCode] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.location = location or SourceLocation()
        self.code = code or self.default_code

    @property
    def phase(self) -> ErrorPhase:
        return self.code.phase

    def to_gcc_format(self) -> str:
        """Format as a GCC-style error message."""
        return f"{self.location}: {self.message}"

    def __str__(self) -> str:
        return self.to_gcc_format()


class SplitError(CompileError):
    """The host/template boundary could not be established."""

    default_code = StencilErrorCodes.UNTERMINATED_LITERAL


class LexError(CompileError):
    """Error during tokenization of the template body."""

    default_code = StencilErrorCodes.INVALID_CHARACTER


class ParseError(CompileError):
    """Error while building the template tree."""

    default_code = StencilErrorCodes.UNEXPECTED_TOKEN


class CodeGenError(CompileError):
    """A construct is valid syntax but cannot be emitted in this role."""

    default_code = StencilErrorCodes.INVALID_CONTEXT
