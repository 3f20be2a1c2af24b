#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
stencil/analyzer.py
===================

Heuristic metadata extraction from the host section.

The host section is a Python class declaration decorated with role
markers::

    @page("/posts/{id}/edit", layout="base")
    class PostEdit:
        posts: PostService = inject()
        post: Post

        @post
        def update(self): ...

This module does *not* parse Python.  It scans the text with regular
expressions plus a small PEG grammar (``parsimonious``) for the argument
list of a role marker, and returns an immutable :class:`ClassMetadata`.
The analyzer never raises: anything it cannot make sense of is simply
absent from the result.
"""

from __future__ import annotations

import ast
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from parsimonious.exceptions import ParseError as GrammarError
from parsimonious.exceptions import VisitationError
from parsimonious.grammar import Grammar
from parsimonious.nodes import NodeVisitor

__all__ = [
    "ArtifactRole",
    "ClassMetadata",
    "MarkerArguments",
    "ClassMetadataAnalyzer",
    "analyze",
    "parse_marker_arguments",
]

_log = logging.getLogger(__name__)


class ArtifactRole(Enum):
    PAGE = "page"
    LAYOUT = "layout"
    WIDGET = "widget"


@dataclass(frozen=True)
class ClassMetadata:
    """Everything the generator needs to know about the host class."""

    class_name: str
    role: ArtifactRole = ArtifactRole.PAGE
    declared: bool = False
    route_path: Optional[str] = None
    layout_name: Optional[str] = None
    field_names: Tuple[str, ...] = ()
    field_types: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    injected_fields: Tuple[str, ...] = ()
    action_verbs: Tuple[str, ...] = ()
    action_methods: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def to_dict(self) -> Dict[str, object]:
        return {
            "class_name": self.class_name,
            "role": self.role.value,
            "declared": self.declared,
            "route_path": self.route_path,
            "layout_name": self.layout_name,
            "fields": dict(self.field_types),
            "injected_fields": list(self.injected_fields),
            "action_verbs": list(self.action_verbs),
            "action_methods": dict(self.action_methods),
        }


# ═══════════════════════════════════════════════════════════════════
#  Marker argument grammar (Parsimonious PEG)
# ═══════════════════════════════════════════════════════════════════

MARKER_ARGS_GRAMMAR = Grammar(r'''
    arguments     = _ argument_list? _ ","? _
    argument_list = argument (_ "," _ argument)*
    argument      = keyword_arg / value
    keyword_arg   = name _ "=" !"=" _ value
    value         = string / other
    string        = ~r'[rRuU]?"(?:[^"\\\n]|\\.)*"' / ~r"[rRuU]?'(?:[^'\\\n]|\\.)*'"
    other         = ~r"[^,'\"()\[\]{}]+"
    name          = ~r"[A-Za-z_][A-Za-z0-9_]*"
    _             = ~r"\s*"
''')


@dataclass(frozen=True)
class _Literal:
    """A decoded string argument."""
    value: str


@dataclass(frozen=True)
class MarkerArguments:
    """Decoded arguments of a marker call such as ``@page("/x", layout="b")``.

    String arguments are wrapped in :class:`_Literal`; anything else is
    kept as stripped source text.
    """

    positional: Tuple[object, ...] = ()
    keywords: Mapping[str, object] = field(default_factory=lambda: MappingProxyType({}))

    def positional_string(self, index: int) -> Optional[str]:
        if index < len(self.positional) and isinstance(self.positional[index], _Literal):
            return self.positional[index].value
        return None

    def keyword_string(self, name: str) -> Optional[str]:
        value = self.keywords.get(name)
        return value.value if isinstance(value, _Literal) else None


class _ArgumentVisitor(NodeVisitor):
    """Turns the parse tree into ``[(keyword | None, value), ...]``."""

    def generic_visit(self, node, visited_children):
        return visited_children or node

    def visit_arguments(self, node, visited_children):
        _, arg_list, _, _, _ = visited_children
        if isinstance(arg_list, list):
            return arg_list[0]
        return []

    def visit_argument_list(self, node, visited_children):
        first, rest = visited_children
        args = [first]
        if isinstance(rest, list):
            for _, _, _, arg in rest:
                args.append(arg)
        return args

    def visit_argument(self, node, visited_children):
        arg = visited_children[0]
        if isinstance(arg, tuple):
            return arg
        return (None, arg)

    def visit_keyword_arg(self, node, visited_children):
        name, _, _, _, _, value = visited_children
        return (name, value)

    def visit_value(self, node, visited_children):
        return visited_children[0]

    def visit_string(self, node, visited_children):
        return _Literal(ast.literal_eval(node.text))

    def visit_other(self, node, visited_children):
        return node.text.strip()

    def visit_name(self, node, visited_children):
        return node.text


def parse_marker_arguments(text: str) -> Optional[MarkerArguments]:
    """Parse the text between a marker's parentheses.

    Returns ``None`` when the text is outside the supported grammar.
    """
    try:
        tree = MARKER_ARGS_GRAMMAR.parse(text)
        pairs = _ArgumentVisitor().visit(tree)
    except (GrammarError, VisitationError) as exc:
        _log.debug("marker arguments not understood (%s): %r", type(exc).__name__, text)
        return None
    positional: List[object] = []
    keywords: Dict[str, object] = {}
    for key, value in pairs:
        if key is None:
            positional.append(value)
        else:
            keywords.setdefault(key, value)
    return MarkerArguments(tuple(positional), MappingProxyType(keywords))


# ═══════════════════════════════════════════════════════════════════
#  Text scanning helpers
# ═══════════════════════════════════════════════════════════════════

def _marker(name: str) -> "re.Pattern[str]":
    return re.compile(r"^[ \t]*@(?:[A-Za-z_]\w*\.)*" + name + r"\b", re.MULTILINE)


_PAGE_MARKER = _marker("page")
_LAYOUT_MARKER = _marker("layout")
_WIDGET_MARKER = _marker("widget")
_ROLE_MARKER = re.compile(r"^[ \t]*@(?:[A-Za-z_]\w*\.)*(?:page|layout|widget)\b", re.MULTILINE)
_ACTION_MARKER = re.compile(r"^[ \t]*@(?:[A-Za-z_]\w*\.)*(post|put|delete|patch)\b", re.MULTILINE)
_CLASS_DECL = re.compile(r"^class\s+([A-Za-z_]\w*)", re.MULTILINE)
_DEF = re.compile(r"^[ \t]*(?:async\s+)?def\s+([A-Za-z_]\w*)", re.MULTILINE)
_FIELD_DECL = re.compile(
    r"^([A-Za-z_]\w*)\s*:\s*([^=#]+?)\s*(?:=\s*(.*?))?\s*(?:#.*)?$"
)
_INJECT_CALL = re.compile(r"^(?:[A-Za-z_]\w*\.)*inject\s*\(")
_CLASSVAR = re.compile(r"^(?:[A-Za-z_]\w*\.)*ClassVar\b")


def _call_arguments(text: str, open_paren: int) -> Optional[str]:
    """Return the text between ``text[open_paren]`` and its matching ``)``.

    String literals are skipped so parentheses inside them do not count.
    """
    depth = 0
    i = open_paren
    quote = ""
    while i < len(text):
        ch = text[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = ""
        elif ch in "\"'":
            quote = ch
        elif ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth -= 1
            if depth == 0:
                return text[open_paren + 1:i]
        i += 1
    return None


def _indent_of(line: str) -> int:
    return len(line) - len(line.lstrip(" \t"))


def _class_body_lines(host: str, class_start: int) -> List[str]:
    """Lines of the class body at the body's own indentation."""
    lines = host[class_start:].split("\n")
    # Skip the header (which may span lines until the trailing colon).
    idx = 0
    while idx < len(lines) and not lines[idx].split("#", 1)[0].rstrip().endswith(":"):
        idx += 1
    body: List[str] = []
    body_indent: Optional[int] = None
    for line in lines[idx + 1:]:
        if not line.strip() or line.lstrip().startswith("#"):
            continue
        indent = _indent_of(line)
        if body_indent is None:
            if indent == 0:
                break
            body_indent = indent
        if indent < body_indent:
            break
        if indent == body_indent:
            body.append(line.strip())
    return body


# ═══════════════════════════════════════════════════════════════════
#  Analyzer
# ═══════════════════════════════════════════════════════════════════

class ClassMetadataAnalyzer:
    """Extract :class:`ClassMetadata` from host-section text."""

    def analyze(self, host: str, fallback_name: str) -> ClassMetadata:
        class_match = self._find_class(host)
        declared = class_match is not None
        class_name = class_match.group(1) if declared else fallback_name
        role = self._detect_role(host)

        page_args = self._marker_arguments(host, _PAGE_MARKER)
        route_path: Optional[str] = None
        if page_args is not None:
            route_path = page_args.positional_string(0) or page_args.keyword_string("path")

        layout_name: Optional[str] = None
        if role is ArtifactRole.LAYOUT and declared:
            layout_name = self._layout_name_from_class(class_name)
        elif role is ArtifactRole.PAGE and page_args is not None:
            layout_name = page_args.keyword_string("layout")

        field_types: Dict[str, str] = {}
        injected: List[str] = []
        if declared:
            body = _class_body_lines(host, class_match.start())
            self._collect_fields(body, field_types, injected)

        verbs, methods = self._collect_actions(host)

        metadata = ClassMetadata(
            class_name=class_name,
            role=role,
            declared=declared,
            route_path=route_path,
            layout_name=layout_name,
            field_names=tuple(field_types),
            field_types=MappingProxyType(field_types),
            injected_fields=tuple(injected),
            action_verbs=tuple(verbs),
            action_methods=MappingProxyType(methods),
        )
        _log.debug("analyzed %s: role=%s route=%s layout=%s fields=%s verbs=%s",
                   class_name, role.value, route_path, layout_name,
                   list(field_types), verbs)
        return metadata

    # ── pieces ───────────────────────────────────────────────────

    @staticmethod
    def _find_class(host: str) -> Optional["re.Match[str]"]:
        """The first class after a role marker, else the first class."""
        marker = _ROLE_MARKER.search(host)
        if marker is not None:
            decorated = _CLASS_DECL.search(host, marker.end())
            if decorated is not None:
                return decorated
        return _CLASS_DECL.search(host)

    @staticmethod
    def _detect_role(host: str) -> ArtifactRole:
        if _WIDGET_MARKER.search(host):
            return ArtifactRole.WIDGET
        if _LAYOUT_MARKER.search(host) and not _PAGE_MARKER.search(host):
            return ArtifactRole.LAYOUT
        return ArtifactRole.PAGE

    @staticmethod
    def _marker_arguments(host: str, marker: "re.Pattern[str]") -> Optional[MarkerArguments]:
        match = marker.search(host)
        if match is None:
            return None
        rest = host[match.end():]
        stripped = rest.lstrip(" \t")
        if not stripped.startswith("("):
            return MarkerArguments()
        open_paren = match.end() + (len(rest) - len(stripped))
        inner = _call_arguments(host, open_paren)
        if inner is None:
            return None
        return parse_marker_arguments(inner)

    @staticmethod
    def _layout_name_from_class(class_name: str) -> str:
        name = class_name
        if name.endswith("Layout") and len(name) > len("Layout"):
            name = name[: -len("Layout")]
        return name[:1].lower() + name[1:]

    @staticmethod
    def _collect_fields(body: List[str], field_types: Dict[str, str],
                        injected: List[str]) -> None:
        declarations: List[Tuple[str, str, Optional[str]]] = []
        for line in body:
            match = _FIELD_DECL.match(line)
            if match is None:
                continue
            name, type_text, default = match.group(1), match.group(2).strip(), match.group(3)
            if _CLASSVAR.match(type_text):
                continue
            declarations.append((name, type_text, default))

        # Injected dependencies first, then every annotated field.
        for name, type_text, default in declarations:
            if default is not None and _INJECT_CALL.match(default.strip()):
                field_types.setdefault(name, type_text)
                if name not in injected:
                    injected.append(name)
        for name, type_text, _ in declarations:
            field_types.setdefault(name, type_text)

    @staticmethod
    def _collect_actions(host: str) -> Tuple[List[str], Dict[str, str]]:
        verbs: List[str] = []
        methods: Dict[str, str] = {}
        for match in _ACTION_MARKER.finditer(host):
            verb = match.group(1).upper()
            method = _DEF.search(host, match.end())
            if verb not in verbs:
                verbs.append(verb)
            if method is not None and verb not in methods:
                methods[verb] = method.group(1)
        return verbs, methods


def analyze(host: str, fallback_name: str) -> ClassMetadata:
    """Convenience wrapper around :class:`ClassMetadataAnalyzer`."""
    return ClassMetadataAnalyzer().analyze(host, fallback_name)
