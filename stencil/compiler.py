#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
stencil/compiler.py
===================

Pipeline facade: one source unit in, one Python module out.

::

    source ──► SourceSplitter ──► host ──────► ClassMetadataAnalyzer ─┐
                              └─► template ─► Lexer ─► Parser ────────┤
                                                                      ▼
                                                               CodeGenerator

Every stage is a pure function of its input; nothing is cached between
calls.  The first :class:`~stencil.errors.CompileError` aborts the unit.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from stencil import ast_nodes as N
from stencil.analyzer import ClassMetadata, ClassMetadataAnalyzer
from stencil.codegen import CodeGenerator, make_identifier, pascal_case
from stencil.config import CompilerConfig
from stencil.errors import CodeGenError, SourceLocation, StencilErrorCodes
from stencil.lexer import Lexer
from stencil.parser import Parser
from stencil.splitter import SourceSplitter, SplitResult
from stencil.tokens import Token

__all__ = [
    "CompiledUnit",
    "ParsedUnit",
    "compile_source",
    "compile_unit",
    "compile_file",
    "parse_unit",
    "derive_class_name",
]

_log = logging.getLogger(__name__)

_ROLE_SUFFIXES = (
    (".page.html", "__Page"),
    (".layout.html", "__Layout"),
    (".widget.html", "__Widget"),
)

_DOTTED_NAME = re.compile(r"^[A-Za-z_]\w*(\.[A-Za-z_]\w*)*$")


@dataclass
class ParsedUnit:
    """Front-end result for one source unit (no code generated yet)."""

    file_name: str
    split: SplitResult
    metadata: ClassMetadata
    tokens: List[Token]
    body: N.Body


@dataclass
class CompiledUnit:
    """Generated module plus what the CLI reports about it."""

    code: str
    class_name: str
    metadata: ClassMetadata
    source_map: Dict[int, SourceLocation] = field(default_factory=dict)

    @property
    def line_count(self) -> int:
        return self.code.count("\n")

    def source_map_json(self) -> Dict[str, Dict[str, object]]:
        return {
            str(line): {"file": loc.file, "line": loc.line, "column": loc.column}
            for line, loc in sorted(self.source_map.items())
        }


def derive_class_name(file_name: str) -> str:
    """Fallback class name for a source file.

    ``"post-edit.page.html"`` → ``"PostEdit__Page"``,
    ``"layouts/base.layout.html"`` → ``"Base__Layout"``.  Other names
    lose every extension and get the page suffix.
    """
    base = os.path.basename(file_name.replace("\\", "/"))
    lowered = base.lower()
    for ext, suffix in _ROLE_SUFFIXES:
        if lowered.endswith(ext):
            stem = base[: -len(ext)]
            break
    else:
        stem, suffix = base.split(".", 1)[0], "__Page"
    return make_identifier(pascal_case(stem) or "Template") + suffix


def parse_unit(source: str, file_name: str = "<template>",
               fallback_name: Optional[str] = None) -> ParsedUnit:
    """Run the front end: split, analyze the host, lex and parse."""
    split = SourceSplitter(file_name).split(source)
    fallback = fallback_name or derive_class_name(file_name)
    metadata = ClassMetadataAnalyzer().analyze(split.host, fallback)
    tokens = Lexer(split.template, file_name, split.template_start_line).tokenize()
    _log.debug("%s: %d tokens", file_name, len(tokens))
    body = Parser(tokens, file_name).parse()
    return ParsedUnit(file_name, split, metadata, tokens, body)


def compile_unit(
    source: str,
    file_name: str = "<template>",
    namespace: Optional[str] = None,
    fallback_name: Optional[str] = None,
    config: Optional[CompilerConfig] = None,
) -> CompiledUnit:
    """Compile one source unit into a :class:`CompiledUnit`.

    *namespace* overrides ``config.namespace`` when given.
    """
    config = config or CompilerConfig()
    if not _DOTTED_NAME.match(config.runtime_module):
        raise CodeGenError(f"invalid runtime module name {config.runtime_module!r}",
                           SourceLocation(file_name), StencilErrorCodes.INVALID_NAME)
    unit = parse_unit(source, file_name, fallback_name)
    generator = CodeGenerator(
        unit.body,
        unit.metadata,
        unit.split.host,
        file_name=file_name,
        namespace=config.namespace if namespace is None else namespace,
        runtime_module=config.runtime_module,
        indent=config.indent,
        emit_header=config.emit_header,
    )
    module = generator.generate()
    _log.info("compiled %s → %s (%s, %d lines)", file_name, module.class_name,
              unit.metadata.role.value, module.code.count("\n"))
    return CompiledUnit(
        code=module.code,
        class_name=module.class_name,
        metadata=unit.metadata,
        source_map=module.source_map if config.source_map else {},
    )


def compile_source(
    source: str,
    file_name: str = "<template>",
    namespace: Optional[str] = None,
    fallback_name: Optional[str] = None,
    config: Optional[CompilerConfig] = None,
) -> str:
    """Compile one source unit and return the generated Python module text."""
    return compile_unit(source, file_name, namespace, fallback_name, config).code


def compile_file(path: str, namespace: Optional[str] = None,
                 fallback_name: Optional[str] = None,
                 config: Optional[CompilerConfig] = None) -> CompiledUnit:
    """Read *path* as UTF-8 and compile it."""
    with open(path, "r", encoding="utf-8") as f:
        source = f.read()
    return compile_unit(source, path, namespace, fallback_name, config)
