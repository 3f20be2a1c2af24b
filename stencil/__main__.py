#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
stencil/__main__.py
===================

Command-line entry point for the stencil template compiler.

Usage
-----
    python -m stencil <command> [options] <source-file>

Commands
--------
    compile     Compile a source unit to a Python module
    check       Run the whole pipeline without writing output
    tokens      List the tokens of the template section
    dump-sexp   Dump the template tree as S-expressions
    info        Show the metadata detected in the host section

Pipeline
--------
::

    source unit
        │
        ▼
    ┌──────────────┐
    │  Splitter    │   host section  +  template section
    └────┬─────────┘
         │
         ▼
    ┌──────────────┐
    │  Analyzer    │   host → ClassMetadata (role, route, fields, actions)
    │  Lexer       │   template → tokens
    │  Parser      │   tokens → Body
    └────┬─────────┘
         │
         ▼
    ┌──────────────┐
    │  Code        │   Body + metadata → Python module
    │  Generator   │
    └──────────────┘

Exit status: 0 on success, 1 on compile errors, 2 on I/O or internal
failures, 130 when interrupted.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import textwrap
import traceback
from typing import Any, Dict, List, Optional, Sequence, TextIO

from stencil import __version__
from stencil.errors import CompileError

__description__ = "stencil: compile hybrid Python/HTML templates to Python modules"

_log = logging.getLogger("stencil.cli")

_LOG_FORMAT = "%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s"


# ═══════════════════════════════════════════════════════════════════════════
# LAZY IMPORTS (avoid heavy imports for --help)
# ═══════════════════════════════════════════════════════════════════════════

def _import_compiler():
    from stencil import compiler
    return compiler


def _import_config():
    from stencil.config import CompilerConfig
    return CompilerConfig


def _import_sexp():
    from stencil import sexp
    return sexp


# ═══════════════════════════════════════════════════════════════════════════
# LOGGING
# ═══════════════════════════════════════════════════════════════════════════

def _configure_logging(verbosity: int, stream: Optional[TextIO] = None) -> None:
    """Route the ``stencil`` logger to stderr at a level set by ``-v``."""
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logger = logging.getLogger("stencil")
    for handler in list(logger.handlers):
        if getattr(handler, "_stencil_cli", False):
            logger.removeHandler(handler)
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    handler._stencil_cli = True
    logger.addHandler(handler)
    logger.setLevel(level)


# ═══════════════════════════════════════════════════════════════════════════
# TERMINAL COLORS
# ═══════════════════════════════════════════════════════════════════════════

class _Colors:
    """ANSI color codes, disabled when not writing to a TTY."""

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled

    def _code(self, code: str) -> str:
        return code if self.enabled else ""

    @property
    def RESET(self) -> str:
        return self._code("\033[0m")

    @property
    def BOLD(self) -> str:
        return self._code("\033[1m")

    @property
    def DIM(self) -> str:
        return self._code("\033[2m")

    @property
    def RED(self) -> str:
        return self._code("\033[31m")

    @property
    def GREEN(self) -> str:
        return self._code("\033[32m")

    @property
    def MAGENTA(self) -> str:
        return self._code("\033[35m")

    @property
    def CYAN(self) -> str:
        return self._code("\033[36m")


def _get_colors(stream: Optional[TextIO] = None) -> _Colors:
    """Get color codes appropriate for the given stream."""
    stream = stream or sys.stderr
    try:
        is_tty = hasattr(stream, "isatty") and stream.isatty()
    except (AttributeError, ValueError):
        is_tty = False
    return _Colors(enabled=is_tty and os.environ.get("NO_COLOR") is None)


# ═══════════════════════════════════════════════════════════════════════════
# DIAGNOSTIC FORMATTER
# ═══════════════════════════════════════════════════════════════════════════

class DiagnosticFormatter:
    """Format diagnostics for terminal output.

    Produces GCC/Clang-style messages::

        post-edit.page.html:12:5: error: expected expression, got '}}' [STN-1001]
          {{ if }}
              ^
    """

    def __init__(self, colors: _Colors, stream: Optional[TextIO] = None) -> None:
        self.colors = colors
        self.stream = stream or sys.stderr
        self._error_count = 0
        self._warning_count = 0

    def error(self, message: str, location: Optional[Any] = None,
              source_line: Optional[str] = None) -> None:
        self._error_count += 1
        c = self.colors
        self.stream.write(
            f"{c.BOLD}{self._format_location(location)}{c.RED}error:{c.RESET}"
            f"{c.BOLD} {message}{c.RESET}\n"
        )
        if source_line is not None:
            self._print_source_context(source_line, location)

    def warning(self, message: str, location: Optional[Any] = None) -> None:
        self._warning_count += 1
        c = self.colors
        self.stream.write(
            f"{c.BOLD}{self._format_location(location)}{c.MAGENTA}warning:{c.RESET}"
            f"{c.BOLD} {message}{c.RESET}\n"
        )

    def compile_error(self, exc: CompileError, sources: "SourceManager") -> None:
        """Report a :class:`CompileError` with its code and source line."""
        loc = exc.location
        self.error(f"{exc.message} [{exc.code.code}]", loc,
                   sources.get_line(loc.file, loc.line))

    def summary(self) -> None:
        parts = []
        c = self.colors
        if self._error_count:
            parts.append(f"{c.RED}{self._error_count} error(s){c.RESET}")
        if self._warning_count:
            parts.append(f"{c.MAGENTA}{self._warning_count} warning(s){c.RESET}")
        if parts:
            self.stream.write(", ".join(parts) + " generated.\n")

    @property
    def has_errors(self) -> bool:
        return self._error_count > 0

    @staticmethod
    def _format_location(location: Optional[Any]) -> str:
        if location is None:
            return ""
        file_ = getattr(location, "file", None) or "<input>"
        line = getattr(location, "line", None)
        col = getattr(location, "column", None)
        if line is not None and col is not None:
            return f"{file_}:{line}:{col}: "
        if line is not None:
            return f"{file_}:{line}: "
        return f"{file_}: "

    def _print_source_context(self, source_line: str, location: Optional[Any]) -> None:
        c = self.colors
        self.stream.write(f"  {source_line.rstrip()}\n")
        col = getattr(location, "column", None)
        if col is not None and col > 0:
            padding = " " * (col - 1 + 2)
            self.stream.write(f"{c.GREEN}{padding}^{c.RESET}\n")


# ═══════════════════════════════════════════════════════════════════════════
# SOURCE FILE MANAGER
# ═══════════════════════════════════════════════════════════════════════════

class SourceManager:
    """Load source units and serve individual lines for diagnostics."""

    def __init__(self) -> None:
        self._lines: Dict[str, List[str]] = {}

    def load(self, path: str) -> str:
        """Read *path* (``-`` for stdin) as UTF-8."""
        if path == "-":
            content = sys.stdin.read()
            self._lines["<stdin>"] = content.splitlines()
            return content
        try:
            with open(path, "r", encoding="utf-8") as f:
                content = f.read()
        except UnicodeDecodeError as e:
            raise OSError(f"source is not valid UTF-8: {path} ({e})") from e
        self._lines[path] = content.splitlines()
        return content

    def get_line(self, path: str, line_number: int) -> Optional[str]:
        lines = self._lines.get(path)
        if lines and 0 < line_number <= len(lines):
            return lines[line_number - 1]
        return None


def _display_name(path: str) -> str:
    return "<stdin>" if path == "-" else path


def _default_output(path: str) -> str:
    """``views/post-edit.page.html`` → ``views/post_edit_page.py``."""
    directory, base = os.path.split(path)
    if base.lower().endswith(".html"):
        base = base[: -len(".html")]
    module = "".join(ch if ch.isalnum() else "_" for ch in base) or "template"
    return os.path.join(directory, module + ".py")


def _load(args: argparse.Namespace, formatter: DiagnosticFormatter,
          sources: SourceManager) -> Optional[str]:
    try:
        return sources.load(args.input)
    except OSError as e:
        formatter.error(f"cannot read {args.input}: {e.strerror or e}")
        return None


# ═══════════════════════════════════════════════════════════════════════════
# COMMAND HANDLERS
# ═══════════════════════════════════════════════════════════════════════════

def _build_config(args: argparse.Namespace, formatter: DiagnosticFormatter):
    CompilerConfig = _import_config()
    config = CompilerConfig.from_env(
        namespace=getattr(args, "namespace", None),
        runtime_module=getattr(args, "runtime_module", None),
        emit_header=False if getattr(args, "no_header", False) else None,
        source_map=True if getattr(args, "source_map", False) else None,
    )
    for warning in config.validate():
        formatter.warning(warning)
    return config


def cmd_compile(args: argparse.Namespace) -> int:
    """Handle the 'compile' command."""
    colors = _get_colors()
    formatter = DiagnosticFormatter(colors)
    sources = SourceManager()
    compiler = _import_compiler()

    source = _load(args, formatter, sources)
    if source is None:
        return 2
    config = _build_config(args, formatter)
    file_name = _display_name(args.input)

    try:
        unit = compiler.compile_unit(source, file_name, fallback_name=args.class_name,
                                     config=config)
    except CompileError as e:
        formatter.compile_error(e, sources)
        formatter.summary()
        return 1

    if args.output == "-" or (args.output is None and args.input == "-"):
        output_path = None
    else:
        output_path = args.output or _default_output(args.input)

    try:
        if output_path is None:
            sys.stdout.write(unit.code)
        else:
            with open(output_path, "w", encoding="utf-8") as f:
                f.write(unit.code)
            if not args.quiet:
                sys.stderr.write(
                    f"{colors.GREEN}✓{colors.RESET} "
                    f"{file_name} → {colors.BOLD}{output_path}{colors.RESET} "
                    f"({unit.class_name}, {unit.line_count} lines)\n"
                )
        if args.source_map:
            map_path = (output_path or _default_output(file_name.strip("<>"))) + ".map.json"
            with open(map_path, "w", encoding="utf-8") as f:
                json.dump(unit.source_map_json(), f, indent=2)
            if not args.quiet:
                sys.stderr.write(
                    f"{colors.GREEN}✓{colors.RESET} "
                    f"Source map: {colors.BOLD}{map_path}{colors.RESET}\n"
                )
    except OSError as e:
        formatter.error(f"cannot write output: {e}")
        return 2

    formatter.summary()
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    """Handle the 'check' command (full pipeline, nothing written)."""
    colors = _get_colors()
    formatter = DiagnosticFormatter(colors)
    sources = SourceManager()
    compiler = _import_compiler()

    source = _load(args, formatter, sources)
    if source is None:
        return 2
    file_name = _display_name(args.input)
    try:
        unit = compiler.compile_unit(source, file_name, config=_build_config(args, formatter))
    except CompileError as e:
        formatter.compile_error(e, sources)
        formatter.summary()
        return 1

    if not args.quiet:
        sys.stderr.write(
            f"{colors.GREEN}✓{colors.RESET} {file_name} is valid "
            f"({unit.metadata.role.value} {unit.metadata.class_name}).\n"
        )
    formatter.summary()
    return 0


def cmd_tokens(args: argparse.Namespace) -> int:
    """Handle the 'tokens' command."""
    formatter = DiagnosticFormatter(_get_colors())
    sources = SourceManager()
    compiler = _import_compiler()

    source = _load(args, formatter, sources)
    if source is None:
        return 2
    file_name = _display_name(args.input)
    try:
        unit = compiler.parse_unit(source, file_name)
    except CompileError as e:
        formatter.compile_error(e, sources)
        return 1

    out = sys.stdout
    for tok in unit.tokens:
        loc = tok.location
        out.write(f"{loc.line:>4}:{loc.column:<4} {tok.type.name:<16} {tok.value!r}\n")
    return 0


def cmd_dump_sexp(args: argparse.Namespace) -> int:
    """Handle the 'dump-sexp' command."""
    formatter = DiagnosticFormatter(_get_colors())
    sources = SourceManager()
    compiler = _import_compiler()
    sexp = _import_sexp()

    source = _load(args, formatter, sources)
    if source is None:
        return 2
    try:
        unit = compiler.parse_unit(source, _display_name(args.input))
    except CompileError as e:
        formatter.compile_error(e, sources)
        return 1

    sys.stdout.write(sexp.dumps(unit.body, pretty=not args.compact, width=args.width))
    sys.stdout.write("\n")
    return 0


def cmd_info(args: argparse.Namespace) -> int:
    """Handle the 'info' command."""
    colors = _get_colors(sys.stdout)
    formatter = DiagnosticFormatter(_get_colors())
    sources = SourceManager()
    compiler = _import_compiler()

    source = _load(args, formatter, sources)
    if source is None:
        return 2
    file_name = _display_name(args.input)
    try:
        unit = compiler.parse_unit(source, file_name, fallback_name=args.class_name)
    except CompileError as e:
        formatter.compile_error(e, sources)
        return 1

    meta = unit.metadata
    info = meta.to_dict()
    info["file"] = file_name
    info["split"] = unit.split.layout
    info["template_start_line"] = unit.split.template_start_line
    info["token_count"] = len(unit.tokens)

    if args.json:
        json.dump(info, sys.stdout, indent=2)
        sys.stdout.write("\n")
        return 0

    c = colors
    out = sys.stdout
    out.write(f"\n{c.BOLD}stencil source info{c.RESET}\n")
    out.write(f"{'─' * 50}\n")
    out.write(f"  {c.CYAN}File:{c.RESET}        {file_name}\n")
    out.write(f"  {c.CYAN}Class:{c.RESET}       {meta.class_name}"
              f"{'' if meta.declared else ' (fallback)'}\n")
    out.write(f"  {c.CYAN}Role:{c.RESET}        {meta.role.value}\n")
    out.write(f"  {c.CYAN}Split:{c.RESET}       {unit.split.layout}, "
              f"template from line {unit.split.template_start_line}\n")
    if meta.route_path is not None:
        out.write(f"  {c.CYAN}Route:{c.RESET}       {meta.route_path}\n")
    if meta.layout_name is not None:
        out.write(f"  {c.CYAN}Layout:{c.RESET}      {meta.layout_name}\n")
    if meta.field_types:
        out.write(f"\n  {c.BOLD}Fields:{c.RESET}\n")
        for name, type_text in meta.field_types.items():
            mark = " (injected)" if name in meta.injected_fields else ""
            out.write(f"    {name:<20s} {c.DIM}{type_text}{c.RESET}{mark}\n")
    if meta.action_verbs:
        out.write(f"\n  {c.BOLD}Actions:{c.RESET}\n")
        for verb in meta.action_verbs:
            out.write(f"    {verb:<8s} → {meta.action_methods.get(verb, '?')}\n")
    out.write(f"{'─' * 50}\n\n")
    return 0


# ═══════════════════════════════════════════════════════════════════════════
# ARGUMENT PARSER
# ═══════════════════════════════════════════════════════════════════════════

def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the stencil CLI."""
    parser = argparse.ArgumentParser(
        prog="stencil",
        description=__description__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            examples:
              %(prog)s compile post-edit.page.html
              %(prog)s compile post-edit.page.html -o post_edit.py --namespace app.pages
              %(prog)s check base.layout.html
              %(prog)s tokens alert.widget.html
              %(prog)s dump-sexp post-edit.page.html
              %(prog)s info post-edit.page.html --json
        """),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("input", help="Source unit to read (use '-' for stdin)")
    common.add_argument("-v", "--verbose", action="count", default=0,
                        help="Log pipeline progress (-v info, -vv debug)")
    common.add_argument("-q", "--quiet", action="store_true", default=False,
                        help="Suppress non-error output")

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        description="available commands",
        metavar="<command>",
    )

    # ── compile ──────────────────────────────────────────────────────────

    p_compile = subparsers.add_parser(
        "compile", parents=[common],
        help="Compile a source unit to a Python module",
        description="Compile a hybrid source unit into one Python module.",
    )
    p_compile.add_argument("-o", "--output",
                           help="Output file (default: <input stem>.py, '-' for stdout)")
    p_compile.add_argument("--namespace", help="Namespace recorded on the generated class")
    p_compile.add_argument("--class-name", dest="class_name",
                           help="Class name used when the host declares none")
    p_compile.add_argument("--runtime-module", dest="runtime_module",
                           help="Module imported as _rt (default: stencil.runtime)")
    p_compile.add_argument("--no-header", dest="no_header", action="store_true",
                           default=False, help="Omit the generated-file comment")
    p_compile.add_argument("--source-map", dest="source_map", action="store_true",
                           default=False, help="Write a source map (.map.json)")
    p_compile.set_defaults(func=cmd_compile)

    # ── check ────────────────────────────────────────────────────────────

    p_check = subparsers.add_parser(
        "check", parents=[common],
        help="Validate a source unit without writing output",
    )
    p_check.set_defaults(func=cmd_check)

    # ── tokens ───────────────────────────────────────────────────────────

    p_tokens = subparsers.add_parser(
        "tokens", parents=[common],
        help="List the tokens of the template section",
    )
    p_tokens.set_defaults(func=cmd_tokens)

    # ── dump-sexp ────────────────────────────────────────────────────────

    p_sexp = subparsers.add_parser(
        "dump-sexp", parents=[common],
        help="Dump the template tree as S-expressions",
    )
    p_sexp.add_argument("--compact", action="store_true", default=False,
                        help="Print on a single line")
    p_sexp.add_argument("--width", type=int, default=80,
                        help="Line width for pretty printing (default: 80)")
    p_sexp.set_defaults(func=cmd_dump_sexp)

    # ── info ─────────────────────────────────────────────────────────────

    p_info = subparsers.add_parser(
        "info", parents=[common],
        help="Show the metadata detected in the host section",
    )
    p_info.add_argument("--json", action="store_true", default=False,
                        help="Print machine-readable JSON")
    p_info.add_argument("--class-name", dest="class_name",
                        help="Class name used when the host declares none")
    p_info.set_defaults(func=cmd_info)

    return parser


# ═══════════════════════════════════════════════════════════════════════════
# MAIN
# ═══════════════════════════════════════════════════════════════════════════

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the stencil CLI.

    Parameters
    ----------
    argv : sequence of str, optional
        Command-line arguments. Defaults to sys.argv[1:].

    Returns
    -------
    int
        Exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    _configure_logging(args.verbose)
    _log.debug("command %s on %s", args.command, args.input)

    try:
        return args.func(args)
    except KeyboardInterrupt:
        sys.stderr.write("\nInterrupted.\n")
        return 130
    except BrokenPipeError:
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
        return 0
    except Exception as e:
        colors = _get_colors()
        sys.stderr.write(
            f"\n{colors.RED}{colors.BOLD}Internal error:{colors.RESET} {e}\n"
        )
        sys.stderr.write(
            f"{colors.DIM}This is a bug in stencil. Please report it.{colors.RESET}\n\n"
        )
        traceback.print_exc()
        return 2


if __name__ == "__main__":
    sys.exit(main())
