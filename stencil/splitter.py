#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
stencil/splitter.py
===================

Separates a hybrid source unit into its host section (the Python class
declaration) and its template section (the DSL body).

Two layouts are recognised, tried in order:

1. **Embedded literal** – the template is the argument of a
   ``@template(''' ... ''')`` decorator on the host class.  The literal's
   common indentation is stripped, and the decorator is removed from the
   host section.
2. **Delimited block** – the host class comes first, followed by a
   ``<template> ... </template>`` block.

A source matching neither layout is a body-only partial: the whole input
is template text and the host section is empty.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from stencil.errors import SourceLocation, SplitError, StencilErrorCodes

__all__ = ["SplitResult", "SourceSplitter", "split_source"]

_log = logging.getLogger(__name__)

_TEMPLATE_MARKER = re.compile(r"@(?:[A-Za-z_]\w*\.)*template\s*\(")
_LITERAL_OPEN = re.compile(r"\s*([rR]?)(\"\"\"|''')")
_BLOCK_OPEN = "<template>"
_BLOCK_CLOSE = "</template>"


@dataclass(frozen=True)
class SplitResult:
    """Outcome of splitting one source unit."""

    host: str
    template: str
    template_start_line: int
    layout: str = "body"      # "literal", "block" or "body"

    @property
    def has_host(self) -> bool:
        return bool(self.host.strip())


def _location(source: str, offset: int, file_name: str) -> SourceLocation:
    line = source.count("\n", 0, offset) + 1
    column = offset - (source.rfind("\n", 0, offset) + 1) + 1
    return SourceLocation(file_name, line, column)


def _skip_newline(source: str, pos: int) -> int:
    if source.startswith("\r\n", pos):
        return pos + 2
    if source.startswith("\n", pos):
        return pos + 1
    return pos


def _drop_trailing_newline(text: str) -> str:
    if text.endswith("\r\n"):
        return text[:-2]
    if text.endswith("\n"):
        return text[:-1]
    return text


def strip_common_indent(text: str) -> str:
    """Remove the smallest leading-space run shared by all non-blank lines.

    Blank lines become empty.
    """
    lines = text.split("\n")
    indents = [
        len(line) - len(line.lstrip(" "))
        for line in lines
        if line.strip()
    ]
    margin = min(indents) if indents else 0
    stripped: List[str] = []
    for line in lines:
        stripped.append(line[margin:] if line.strip() else "")
    return "\n".join(stripped)


class SourceSplitter:
    """Split a source unit into host and template sections."""

    def __init__(self, file_name: str = "<template>") -> None:
        self.file_name = file_name

    def split(self, source: str) -> SplitResult:
        result = self._split_literal(source)
        if result is None:
            result = self._split_block(source)
        if result is None:
            result = SplitResult(host="", template=source,
                                 template_start_line=1, layout="body")
        _log.debug("%s: %s layout, template starts at line %d",
                   self.file_name, result.layout, result.template_start_line)
        return result

    # ── Layout 1: @template("""...""") ───────────────────────────────

    def _split_literal(self, source: str) -> Optional[SplitResult]:
        marker = _TEMPLATE_MARKER.search(source)
        if marker is None:
            return None
        where = _location(source, marker.start(), self.file_name)

        opening = _LITERAL_OPEN.match(source, marker.end())
        if opening is None:
            raise SplitError(
                "@template( must be followed by a triple-quoted string",
                where, StencilErrorCodes.UNTERMINATED_LITERAL,
            )
        quote = opening.group(2)
        content_start = _skip_newline(source, opening.end())
        content_end = self._find_closing_quote(source, content_start, quote)
        if content_end < 0:
            raise SplitError(
                f"unterminated template literal (missing closing {quote})",
                where, StencilErrorCodes.UNTERMINATED_LITERAL,
            )
        call_end = self._find_call_end(source, content_end + len(quote))
        if call_end < 0:
            raise SplitError(
                "missing ')' after template literal",
                where, StencilErrorCodes.UNTERMINATED_MARKER,
            )

        template = _drop_trailing_newline(
            strip_common_indent(source[content_start:content_end])
        )
        host = self._remove_span(source, marker.start(), call_end)
        start_line = source.count("\n", 0, content_start) + 1
        return SplitResult(host=host, template=template,
                           template_start_line=start_line, layout="literal")

    @staticmethod
    def _find_closing_quote(source: str, pos: int, quote: str) -> int:
        while True:
            idx = source.find(quote, pos)
            if idx < 0:
                return -1
            backslashes = 0
            probe = idx - 1
            while probe >= 0 and source[probe] == "\\":
                backslashes += 1
                probe -= 1
            if backslashes % 2 == 0:
                return idx
            pos = idx + 1

    @staticmethod
    def _find_call_end(source: str, pos: int) -> int:
        """Return the offset just past the ``)`` closing the marker call."""
        n = len(source)
        while pos < n and source[pos].isspace():
            pos += 1
        if pos < n and source[pos] == ",":
            pos += 1
            while pos < n and source[pos].isspace():
                pos += 1
        if pos < n and source[pos] == ")":
            return pos + 1
        return -1

    @staticmethod
    def _remove_span(source: str, start: int, end: int) -> str:
        line_start = source.rfind("\n", 0, start) + 1
        if not source[line_start:start].strip():
            start = line_start
            end = _skip_newline(source, end)
        return source[:start] + source[end:]

    # ── Layout 2: <template>...</template> ───────────────────────────

    def _split_block(self, source: str) -> Optional[SplitResult]:
        open_idx = source.find(_BLOCK_OPEN)
        if open_idx < 0:
            return None
        content_start = _skip_newline(source, open_idx + len(_BLOCK_OPEN))
        close_idx = source.find(_BLOCK_CLOSE, content_start)
        if close_idx < 0:
            raise SplitError(
                f"{_BLOCK_OPEN} without matching {_BLOCK_CLOSE}",
                _location(source, open_idx, self.file_name),
                StencilErrorCodes.UNTERMINATED_TEMPLATE_BLOCK,
            )
        template = _drop_trailing_newline(source[content_start:close_idx])
        start_line = source.count("\n", 0, content_start) + 1
        return SplitResult(host=source[:open_idx].strip(), template=template,
                           template_start_line=start_line, layout="block")


def split_source(source: str, file_name: str = "<template>") -> Tuple[str, str, int]:
    """Convenience wrapper returning ``(host, template, start_line)``."""
    result = SourceSplitter(file_name).split(source)
    return result.host, result.template, result.template_start_line
