"""
stencil
=======

A compiler for hybrid source units: a Python host class plus an HTML
template written in a small ``{{ ... }}`` directive language.  Each unit
compiles to one Python module holding a renderer class that writes HTML
to a :class:`stencil.runtime.HtmlOutput`.

Quick start::

    from stencil import compile_source

    code = compile_source(source, "post-edit.page.html", "app.pages")

Generated modules import :mod:`stencil.runtime` only.
"""

from stencil.analyzer import ArtifactRole, ClassMetadata, analyze
from stencil.compiler import (
    CompiledUnit,
    compile_file,
    compile_source,
    compile_unit,
    derive_class_name,
)
from stencil.config import CompilerConfig
from stencil.errors import (
    CodeGenError,
    CompileError,
    LexError,
    ParseError,
    SourceLocation,
    SplitError,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "compile_source",
    "compile_unit",
    "compile_file",
    "derive_class_name",
    "CompiledUnit",
    "CompilerConfig",
    "ArtifactRole",
    "ClassMetadata",
    "analyze",
    "CompileError",
    "SplitError",
    "LexError",
    "ParseError",
    "CodeGenError",
    "SourceLocation",
]
