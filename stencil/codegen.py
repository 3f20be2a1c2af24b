#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
stencil/codegen.py
==================

Python code generator for parsed templates.

Given a template :class:`~stencil.ast_nodes.Body`, the host section and
its :class:`~stencil.analyzer.ClassMetadata`, this module emits one
Python module:

1. A header comment naming the source file, namespace and role
2. The host section, verbatim
3. ``from stencil import runtime as _rt``
4. A renderer class subclassing the host class and the runtime base for
   its role (``_rt.Page``, ``_rt.Layout`` or ``_rt.Widget``)

Architecture
------------
- :class:`CodeEmitter` – line-oriented emission with indentation and a
  source map (generated line → template location)
- :class:`ExpressionCompiler` – lowers template expressions to Python
  expressions
- :class:`BodyCompiler` – lowers template statements to Python
  statements writing to an output variable
- :class:`CodeGenerator` – assembles the module and the role-specific
  entry points

Generated code only relies on the *names and call shapes* exported by
:mod:`stencil.runtime`.
"""

from __future__ import annotations

import keyword
import logging
import re
from dataclasses import dataclass, field
from io import StringIO
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from stencil import ast_nodes as N
from stencil.analyzer import ArtifactRole, ClassMetadata
from stencil.errors import CodeGenError, SourceLocation, StencilErrorCodes
from stencil.visitor import ExpressionVisitor, NodeVisitor, iter_nodes

__all__ = [
    "generate",
    "CodeGenerator",
    "CodeEmitter",
    "ExpressionCompiler",
    "BodyCompiler",
    "GeneratedModule",
    "pascal_case",
    "python_string",
]

_log = logging.getLogger(__name__)

_SCOPES = {
    ArtifactRole.PAGE: "request",
    ArtifactRole.LAYOUT: "singleton",
    ArtifactRole.WIDGET: "prototype",
}

_BASES = {
    ArtifactRole.PAGE: "Page",
    ArtifactRole.LAYOUT: "Layout",
    ArtifactRole.WIDGET: "Widget",
}

# Names the generated methods use for their own parameters.
_RESERVED_LOCALS = frozenset({"self", "out", "slots", "slot_name", "slot_out", "_rt"})

_PY_OPERATORS = {
    N.BinaryOperator.OR: "or",
    N.BinaryOperator.AND: "and",
    N.BinaryOperator.EQ: "==",
    N.BinaryOperator.NEQ: "!=",
    N.BinaryOperator.LT: "<",
    N.BinaryOperator.GT: ">",
    N.BinaryOperator.LTE: "<=",
    N.BinaryOperator.GTE: ">=",
}

_LOGICAL_OPERATORS = frozenset({N.BinaryOperator.OR, N.BinaryOperator.AND})


# ═══════════════════════════════════════════════════════════════════════════
# NAMING HELPERS
# ═══════════════════════════════════════════════════════════════════════════

def python_string(s: str) -> str:
    """Render *s* as a double-quoted Python string literal."""
    out = ['"']
    for ch in s:
        if ch == "\\":
            out.append("\\\\")
        elif ch == '"':
            out.append('\\"')
        elif ch == "\n":
            out.append("\\n")
        elif ch == "\r":
            out.append("\\r")
        elif ch == "\t":
            out.append("\\t")
        elif ord(ch) < 0x20 or ch == "\x7f":
            out.append(f"\\x{ord(ch):02x}")
        else:
            out.append(ch)
    out.append('"')
    return "".join(out)


def pascal_case(name: str) -> str:
    """``"post-edit"`` → ``"PostEdit"``; path components are dropped."""
    name = re.split(r"[\\/]", name)[-1]
    parts = re.split(r"[-_\s.]+", name)
    return "".join(p[:1].upper() + p[1:] for p in parts if p)


def make_identifier(name: str) -> str:
    """Convert a name to a valid Python identifier."""
    result = name.replace("-", "_")
    result = re.sub(r"[^a-zA-Z0-9_]", "", result)
    if result and result[0].isdigit():
        result = "_" + result
    if keyword.iskeyword(result):
        result = result + "_"
    return result or "_unnamed"


# ═══════════════════════════════════════════════════════════════════════════
# CODE EMITTER
# ═══════════════════════════════════════════════════════════════════════════

class CodeEmitter:
    """Low-level code emission with indentation management.

    Provides:
    - Automatic indentation tracking
    - Block context managers
    - Line and source mapping
    """

    def __init__(self, indent_str: str = "    ") -> None:
        self._buffer = StringIO()
        self._indent_str = indent_str
        self._indent_level = 0
        self._line_number = 1
        self._source_map: Dict[int, SourceLocation] = {}
        self._current_source: Optional[SourceLocation] = None
        self._statements = 0

    @property
    def statements(self) -> int:
        """Number of non-blank lines emitted so far."""
        return self._statements

    def emit(self, code: str) -> None:
        """Emit a line of code at the current indentation."""
        if code.strip():
            self._buffer.write(self._indent_str * self._indent_level)
            self._buffer.write(code)
            self._statements += 1
            if self._current_source:
                self._source_map[self._line_number] = self._current_source
        self._buffer.write("\n")
        self._line_number += 1

    def emit_raw(self, code: str) -> None:
        """Emit code without indentation (for the verbatim host section)."""
        for line in code.split("\n"):
            self._buffer.write(line)
            self._buffer.write("\n")
            self._line_number += 1

    def emit_blank(self, count: int = 1) -> None:
        for _ in range(count):
            self._buffer.write("\n")
            self._line_number += 1

    def emit_comment(self, text: str) -> None:
        for line in text.split("\n"):
            self.emit(f"# {line}" if line else "#")

    def indent(self) -> None:
        self._indent_level += 1

    def dedent(self) -> None:
        self._indent_level = max(0, self._indent_level - 1)

    def block(self, header: str) -> "CodeEmitter._BlockContext":
        """Context manager for indented blocks.

        A block that ends up empty gets a ``pass`` so it stays valid.
        """
        return self._BlockContext(self, header)

    class _BlockContext:
        def __init__(self, emitter: "CodeEmitter", header: str) -> None:
            self._emitter = emitter
            self._header = header
            self._mark = 0

        def __enter__(self) -> "CodeEmitter":
            self._emitter.emit(self._header)
            self._emitter.indent()
            self._mark = self._emitter.statements
            return self._emitter

        def __exit__(self, *args: Any) -> None:
            if self._emitter.statements == self._mark:
                self._emitter.emit("pass")
            self._emitter.dedent()

    def set_source(self, location: Optional[SourceLocation]) -> None:
        self._current_source = location

    def get_code(self) -> str:
        return self._buffer.getvalue()

    def get_source_map(self) -> Dict[int, SourceLocation]:
        """Get the source map (generated line -> template location)."""
        return dict(self._source_map)


# ═══════════════════════════════════════════════════════════════════════════
# COMPILATION CONTEXT
# ═══════════════════════════════════════════════════════════════════════════

class LocalScopes:
    """Template-name → Python-local mapping for one generated function.

    Each ``for`` body pushes a frame, so a loop variable shadows an outer
    one only inside its body.  Every binding gets a Python name unique
    within the function.
    """

    def __init__(self, reserved: Sequence[str] = ()) -> None:
        self._frames: List[Dict[str, str]] = [{}]
        self._taken: Set[str] = set(_RESERVED_LOCALS) | set(reserved)

    def push(self) -> None:
        self._frames.append({})

    def pop(self) -> None:
        self._frames.pop()

    def resolve(self, name: str) -> Optional[str]:
        for frame in reversed(self._frames):
            if name in frame:
                return frame[name]
        return None

    def allocate(self, base: str) -> str:
        """Reserve a fresh Python local derived from *base*."""
        base = make_identifier(base)
        candidate = base
        n = 2
        while candidate in self._taken:
            candidate = f"{base}_{n}"
            n += 1
        self._taken.add(candidate)
        return candidate

    def bind(self, name: str) -> str:
        """Bind *name* in the innermost frame to a fresh local."""
        local = self.allocate(name)
        self._frames[-1][name] = local
        return local


@dataclass
class CompilationContext:
    """Shared state while compiling one module."""

    metadata: ClassMetadata
    emitter: CodeEmitter
    scopes: LocalScopes = field(default_factory=LocalScopes)
    counters: Dict[str, int] = field(default_factory=dict)

    def temp(self, prefix: str) -> str:
        """A module-unique temporary such as ``_ns3``."""
        self.counters[prefix] = self.counters.get(prefix, 0) + 1
        return f"_{prefix}{self.counters[prefix]}"

    def new_function(self) -> None:
        self.scopes = LocalScopes()


# ═══════════════════════════════════════════════════════════════════════════
# EXPRESSION COMPILATION
# ═══════════════════════════════════════════════════════════════════════════

class ExpressionCompiler(ExpressionVisitor):
    """Compile template expressions to Python expressions.

    Binary and unary operators are always parenthesized below the top
    level, so template precedence survives Python's (where ``not`` binds
    looser than comparisons).
    """

    def __init__(self, context: CompilationContext) -> None:
        self.ctx = context

    def compile(self, expr: N.Expression) -> str:
        """Compile an expression without redundant outer parentheses."""
        if isinstance(expr, N.BinaryOp):
            return self._binary(expr)
        if isinstance(expr, N.UnaryNot):
            return f"not {self.visit(expr.operand)}"
        return self.visit(expr)

    def compile_condition(self, expr: N.Expression) -> str:
        """Compile an ``if`` guard.

        Plain values are tested for presence: neither ``None`` nor
        ``False``.  The guard reaches through ``!``, ``&&``, ``||`` and
        grouping down to the operands; comparisons, boolean literals and
        method calls are used as they are.
        """
        return self._condition(expr, top=True)

    def _condition(self, expr: N.Expression, top: bool = False) -> str:
        if isinstance(expr, N.Grouped):
            return f"({self._condition(expr.inner, top=True)})"
        if isinstance(expr, N.UnaryNot):
            text = f"not {self._condition(expr.operand)}"
        elif isinstance(expr, N.BinaryOp) and expr.operator in _LOGICAL_OPERATORS:
            left = self._condition(expr.left)
            right = self._condition(expr.right)
            text = f"{left} {_PY_OPERATORS[expr.operator]} {right}"
        elif isinstance(expr, (N.BinaryOp, N.BooleanLiteral, N.MethodCall)):
            return self.compile(expr) if top else self.visit(expr)
        else:
            return f"_rt.truthy({self.compile(expr)})"
        return text if top else f"({text})"

    # ── leaves ───────────────────────────────────────────────────

    def visit_variable(self, node: N.Variable) -> str:
        local = self.ctx.scopes.resolve(node.name)
        if local is not None:
            return local
        if node.name in self.ctx.metadata.field_types:
            return f"self.{make_identifier(node.name)}"
        return make_identifier(node.name)

    def visit_string_literal(self, node: N.StringLiteral) -> str:
        return python_string(node.value)

    def visit_number_literal(self, node: N.NumberLiteral) -> str:
        if "." in node.text:
            return repr(float(node.text))
        return str(int(node.text))

    def visit_boolean_literal(self, node: N.BooleanLiteral) -> str:
        return "True" if node.value else "False"

    # ── member access ────────────────────────────────────────────

    def _target(self, expr: N.Expression) -> str:
        code = self.visit(expr)
        if isinstance(expr, N.NumberLiteral):
            return f"({code})"
        return code

    @staticmethod
    def _member(receiver: str, name: str) -> str:
        if keyword.iskeyword(name):
            return f"getattr({receiver}, {python_string(name)})"
        return f"{receiver}.{name}"

    def _arguments(self, args: Sequence[N.Expression]) -> str:
        return ", ".join(self.compile(a) for a in args)

    def visit_property_access(self, node: N.PropertyAccess) -> str:
        return self._member(self._target(node.target), node.name)

    def visit_method_call(self, node: N.MethodCall) -> str:
        member = self._member(self._target(node.target), node.name)
        return f"{member}({self._arguments(node.arguments)})"

    def visit_null_safe_property_access(self, node: N.NullSafePropertyAccess) -> str:
        tmp = self.ctx.temp("ns")
        target = self.compile(node.target)
        return f"(None if ({tmp} := {target}) is None else {self._member(tmp, node.name)})"

    def visit_null_safe_method_call(self, node: N.NullSafeMethodCall) -> str:
        tmp = self.ctx.temp("ns")
        target = self.compile(node.target)
        call = f"{self._member(tmp, node.name)}({self._arguments(node.arguments)})"
        return f"(None if ({tmp} := {target}) is None else {call})"

    # ── operators ────────────────────────────────────────────────

    def _binary(self, node: N.BinaryOp) -> str:
        left = self.visit(node.left)
        right = self.visit(node.right)
        return f"{left} {_PY_OPERATORS[node.operator]} {right}"

    def visit_binary_op(self, node: N.BinaryOp) -> str:
        return f"({self._binary(node)})"

    def visit_unary_not(self, node: N.UnaryNot) -> str:
        return f"(not {self.visit(node.operand)})"

    def visit_grouped(self, node: N.Grouped) -> str:
        return f"({self.compile(node.inner)})"


# ═══════════════════════════════════════════════════════════════════════════
# STATEMENT COMPILATION
# ═══════════════════════════════════════════════════════════════════════════

class BodyCompiler(NodeVisitor):
    """Compile template statements into Python statements.

    *out* is the name of the output variable the statements write to; it
    changes while compiling ``push`` bodies and slot callbacks.
    """

    def __init__(self, context: CompilationContext, out: str = "out",
                 in_layout: bool = False, skip_blocks: bool = False) -> None:
        self.ctx = context
        self.em = context.emitter
        self.expr = ExpressionCompiler(context)
        self.out = out
        self.in_layout = in_layout
        self.skip_blocks = skip_blocks

    def compile_body(self, body: N.Body) -> None:
        for child in body.children:
            self.visit(child)

    def _with_out(self, out: str) -> "BodyCompiler":
        return BodyCompiler(self.ctx, out, self.in_layout, self.skip_blocks)

    def _mark(self, node: Any) -> None:
        self.em.set_source(node.location)

    # ── output ───────────────────────────────────────────────────

    def visit_body(self, node: N.Body) -> None:
        self.compile_body(node)

    def visit_html(self, node: N.Html) -> None:
        if node.content:
            self._mark(node)
            self.em.emit(f"{self.out}.append({python_string(node.content)})")

    def visit_expression_output(self, node: N.ExpressionOutput) -> None:
        self._mark(node)
        self.em.emit(f"{self.out}.append_escaped({self.expr.compile(node.expression)})")

    def visit_raw_expression_output(self, node: N.RawExpressionOutput) -> None:
        self._mark(node)
        self.em.emit(f"{self.out}.append({self.expr.compile(node.expression)})")

    # ── control flow ─────────────────────────────────────────────

    def visit_if(self, node: N.If) -> None:
        self._mark(node)
        self.em.emit(f"if {self.expr.compile_condition(node.condition)}:")
        self._branch(node.then_body)
        else_body = node.else_body
        # Flatten desugared ``else if`` chains into elif.
        while (else_body is not None and len(else_body.children) == 1
               and isinstance(else_body.children[0], N.If)):
            nested = else_body.children[0]
            self._mark(nested)
            self.em.emit(f"elif {self.expr.compile_condition(nested.condition)}:")
            self._branch(nested.then_body)
            else_body = nested.else_body
        if else_body is not None:
            self.em.emit("else:")
            self._branch(else_body)

    def _branch(self, body: N.Body) -> None:
        self.em.indent()
        mark = self.em.statements
        self.compile_body(body)
        if self.em.statements == mark:
            self.em.emit("pass")
        self.em.dedent()

    def visit_for(self, node: N.For) -> None:
        self._mark(node)
        iterable = self.expr.compile(node.iterable)
        scopes = self.ctx.scopes
        scopes.push()
        item = scopes.bind(node.variable)
        index = scopes.bind(f"{node.variable}_index")
        first = scopes.bind(f"{node.variable}_first")
        last = scopes.bind(f"{node.variable}_last")
        self.em.emit(f"for {index}, {first}, {last}, {item} in _rt.loop({iterable}):")
        self._branch(node.body)
        scopes.pop()

    def visit_set(self, node: N.Set) -> None:
        self._mark(node)
        value = self.expr.compile(node.value)
        local = self.ctx.scopes.resolve(node.name) or self.ctx.scopes.bind(node.name)
        self.em.emit(f"{local} = {value}")

    def visit_switch(self, node: N.Switch) -> None:
        self._mark(node)
        subject = self.ctx.temp("sw")
        self.em.emit(f"{subject} = {self.expr.compile(node.subject)}")
        keyword_ = "if"
        for case in node.cases:
            self.em.set_source(case.location)
            self.em.emit(f"{keyword_} {subject} == {self.expr.compile(case.value)}:")
            self._branch(case.body)
            keyword_ = "elif"
        if node.default is not None:
            if node.cases:
                self.em.emit("else:")
                self._branch(node.default)
            else:
                self.compile_body(node.default)

    # ── composition ──────────────────────────────────────────────

    def _params(self, params: Sequence[N.Param]) -> str:
        items = ", ".join(
            f"{python_string(p.name)}: {self.expr.compile(p.value)}" for p in params
        )
        return "{" + items + "}"

    def _call_renderer(self, lookup: str, registry_name: str,
                       params: Sequence[N.Param]) -> None:
        tmp = self.ctx.temp("w")
        self.em.emit(f"{tmp} = self._context.{lookup}({python_string(registry_name)})")
        if params:
            self.em.emit(f"{tmp}.set_params({self._params(params)})")
        self.em.emit(f"{tmp}.render({self.out})")

    def visit_component_call(self, node: N.ComponentCall) -> None:
        self._mark(node)
        self._call_renderer("widget", f"{pascal_case(node.name)}__Widget", node.params)

    def visit_include(self, node: N.Include) -> None:
        self._mark(node)
        self._call_renderer("include", f"{pascal_case(node.name)}__Page", node.params)

    def visit_content(self, node: N.Content) -> None:
        self._mark(node)
        if not self.in_layout:
            raise CodeGenError("'content' is only valid in a layout", node.location,
                               StencilErrorCodes.INVALID_CONTEXT)
        self.em.emit(f'slots("content", {self.out})')

    def visit_slot(self, node: N.Slot) -> None:
        self._mark(node)
        if not self.in_layout:
            raise CodeGenError(f"slot {node.name!r} is only valid in a layout",
                               node.location, StencilErrorCodes.INVALID_CONTEXT)
        if node.default_body is None:
            self.em.emit(f"slots({python_string(node.name)}, {self.out})")
            return
        before = self.ctx.temp("before")
        self.em.emit(f"{before} = len({self.out})")
        self.em.emit(f"slots({python_string(node.name)}, {self.out})")
        self.em.emit(f"if len({self.out}) == {before}:")
        self._branch(node.default_body)

    def visit_block(self, node: N.Block) -> None:
        if self.skip_blocks:
            return
        self.compile_body(node.body)

    def visit_stack(self, node: N.Stack) -> None:
        self._mark(node)
        self.em.emit(f"{self.out}.render_stack({python_string(node.name)})")

    def visit_push(self, node: N.Push) -> None:
        self._mark(node)
        tmp = self.ctx.temp("push")
        self.em.emit(f"{tmp} = _rt.HtmlOutput()")
        self._with_out(tmp).compile_body(node.body)
        self.em.set_source(node.location)
        self.em.emit(f"{self.out}.push_stack({python_string(node.name)}, {tmp}.to_html())")

    def visit_fragment(self, node: N.Fragment) -> None:
        self.compile_body(node.body)


# ═══════════════════════════════════════════════════════════════════════════
# GENERATED MODULE CONTAINER
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class GeneratedModule:
    """Output of one generation run."""

    code: str
    class_name: str
    source_map: Dict[int, SourceLocation] = field(default_factory=dict)


# ═══════════════════════════════════════════════════════════════════════════
# CODE GENERATOR
# ═══════════════════════════════════════════════════════════════════════════

class CodeGenerator:
    """Assemble the generated module for one source unit."""

    def __init__(
        self,
        body: N.Body,
        metadata: ClassMetadata,
        host: str = "",
        *,
        file_name: str = "<template>",
        namespace: str = "",
        runtime_module: str = "stencil.runtime",
        indent: str = "    ",
        emit_header: bool = True,
    ) -> None:
        self.body = body
        self.metadata = metadata
        self.host = host
        self.file_name = file_name
        self.namespace = namespace
        self.runtime_module = runtime_module
        self.emit_header = emit_header
        self.em = CodeEmitter(indent)
        self.ctx = CompilationContext(metadata, self.em)

    # ── naming ───────────────────────────────────────────────────

    @property
    def class_name(self) -> str:
        if self.metadata.declared:
            return f"{self.metadata.class_name}_Stencil"
        return make_identifier(self.metadata.class_name)

    @property
    def registry_name(self) -> str:
        meta = self.metadata
        if meta.role is ArtifactRole.LAYOUT:
            return meta.layout_name or meta.class_name
        if not meta.declared:
            return meta.class_name
        suffix = "__Widget" if meta.role is ArtifactRole.WIDGET else "__Page"
        return f"{meta.class_name}{suffix}"

    def _fragments(self) -> List[N.Fragment]:
        return [n for n in iter_nodes(self.body) if isinstance(n, N.Fragment)]

    def _blocks(self) -> List[N.Block]:
        return [n for n in iter_nodes(self.body) if isinstance(n, N.Block)]

    def _emit_page_sets(self, out: str) -> None:
        """Emit the body's top-level ``set`` statements, in source order."""
        compiler = BodyCompiler(self.ctx, out)
        for node in self.body.children:
            if isinstance(node, N.Set):
                compiler.visit(node)

    # ── entry point ──────────────────────────────────────────────

    def generate(self) -> GeneratedModule:
        self._prologue()
        self._class()
        code = self.em.get_code()
        _log.debug("generated %s (%d lines)", self.class_name, code.count("\n"))
        return GeneratedModule(code, self.class_name, self.em.get_source_map())

    def _prologue(self) -> None:
        meta = self.metadata
        if self.emit_header:
            self.em.emit_comment(
                f"Generated by stencil from {self.file_name}. Do not edit.\n"
                f"namespace: {self.namespace or '-'}\n"
                f"role: {meta.role.value}"
            )
            self.em.emit_blank()
        if self.host.strip():
            self.em.emit_raw(self.host.strip("\n"))
            self.em.emit_blank()
        parent, _, leaf = self.runtime_module.rpartition(".")
        if parent:
            self.em.emit(f"from {parent} import {leaf} as _rt")
        else:
            self.em.emit(f"import {leaf} as _rt")
        self.em.emit_blank(2)

    def _class(self) -> None:
        meta = self.metadata
        base = f"_rt.{_BASES[meta.role]}"
        bases = f"{meta.class_name}, {base}" if meta.declared else base
        with self.em.block(f"class {self.class_name}({bases}):"):
            self._class_attributes()
            if meta.role is ArtifactRole.PAGE:
                self._page_methods()
            elif meta.role is ArtifactRole.LAYOUT:
                self._layout_methods()
            else:
                self._widget_methods()

    def _class_attributes(self) -> None:
        meta = self.metadata
        em = self.em
        em.emit(f"namespace = {python_string(self.namespace)}")
        em.emit(f"registry_name = {python_string(self.registry_name)}")
        em.emit(f"scope = {python_string(_SCOPES[meta.role])}")
        if meta.role is ArtifactRole.PAGE:
            route = python_string(meta.route_path) if meta.route_path is not None else "None"
            layout = python_string(meta.layout_name) if meta.layout_name is not None else "None"
            methods = ["GET"] + [v for v in meta.action_verbs if v != "GET"]
            em.emit(f"route_path = {route}")
            em.emit(f"layout_name = {layout}")
            em.emit(f"methods = {self._tuple(methods)}")
        elif meta.role is ArtifactRole.LAYOUT:
            em.emit(f"layout_name = {python_string(self.registry_name)}")
        em.emit(f"injected_fields = {self._tuple(meta.injected_fields)}")

    @staticmethod
    def _tuple(items: Sequence[str]) -> str:
        if not items:
            return "()"
        inner = ", ".join(python_string(i) for i in items)
        return f"({inner},)" if len(items) == 1 else f"({inner})"

    # ── pages ────────────────────────────────────────────────────

    def _page_methods(self) -> None:
        meta = self.metadata
        self.em.emit_blank()
        self.ctx.new_function()
        with self.em.block("def render(self, out):"):
            if meta.layout_name:
                self._render_into_layout()
            else:
                BodyCompiler(self.ctx).compile_body(self.body)

        if meta.action_verbs:
            self.em.emit_blank()
            self._handle_action()

        fragments = self._fragments()
        if fragments:
            self.em.emit_blank()
            self._fragment_methods(fragments)

    def _render_into_layout(self) -> None:
        em = self.em
        with em.block("def _slots(slot_name, slot_out):"):
            # Page-level sets run before every slot so blocks can read them.
            self._emit_page_sets("slot_out")
            em.set_source(self.body.location)
            with em.block('if slot_name == "content":'):
                BodyCompiler(self.ctx, "slot_out", skip_blocks=True).compile_body(self.body)
            for block in self._blocks():
                em.set_source(block.location)
                with em.block(f"elif slot_name == {python_string(block.name)}:"):
                    BodyCompiler(self.ctx, "slot_out", skip_blocks=True).compile_body(block.body)
        em.set_source(None)
        em.emit(f"self._context.layout({python_string(self.metadata.layout_name)}).render(out, _slots)")

    def _handle_action(self) -> None:
        meta = self.metadata
        em = self.em
        em.set_source(None)
        with em.block("def handle_action(self, method):"):
            for verb in meta.action_verbs:
                method = meta.action_methods.get(verb, verb.lower())
                with em.block(f"if method == {python_string(verb)}:"):
                    em.emit(f"return self.{method}()")
            em.emit("return _rt.ActionResult.method_not_allowed()")

    def _fragment_methods(self, fragments: List[N.Fragment]) -> None:
        em = self.em
        names: Dict[str, str] = {}
        taken: Set[str] = set()
        for frag in fragments:
            if frag.name in names:
                continue
            base = f"_render_fragment_{make_identifier(frag.name)}"
            method = base
            n = 2
            while method in taken:
                method = f"{base}_{n}"
                n += 1
            taken.add(method)
            names[frag.name] = method

        em.set_source(None)
        with em.block("def render_fragment(self, name, out):"):
            for frag_name, method in names.items():
                with em.block(f"if name == {python_string(frag_name)}:"):
                    em.emit(f"return self.{method}(out)")
            em.emit("raise _rt.FragmentNotFound(name)")

        seen: Set[str] = set()
        for frag in fragments:
            if frag.name in seen:
                continue
            seen.add(frag.name)
            em.emit_blank()
            self.ctx.new_function()
            em.set_source(frag.location)
            with em.block(f"def {names[frag.name]}(self, out):"):
                self._emit_page_sets("out")
                BodyCompiler(self.ctx).compile_body(frag.body)

    # ── layouts ──────────────────────────────────────────────────

    def _layout_methods(self) -> None:
        self.em.emit_blank()
        self.ctx.new_function()
        with self.em.block("def render(self, out, slots):"):
            BodyCompiler(self.ctx, in_layout=True).compile_body(self.body)

    # ── widgets ──────────────────────────────────────────────────

    def _widget_methods(self) -> None:
        meta = self.metadata
        em = self.em
        em.emit_blank()
        em.set_source(None)
        with em.block("def set_params(self, params):"):
            for name, type_text in meta.field_types.items():
                attr = make_identifier(name)
                key = python_string(name)
                em.emit(f"# {name}: {type_text}")
                with em.block(f"if {key} in params:"):
                    em.emit(f"self.{attr} = _rt.checked_cast(params[{key}], "
                            f"self.field_type({key}), {key})")
        em.emit_blank()
        self.ctx.new_function()
        with em.block("def render(self, out):"):
            BodyCompiler(self.ctx).compile_body(self.body)


def generate(body: N.Body, metadata: ClassMetadata, host: str = "", **options: Any) -> GeneratedModule:
    """Generate the Python module for a parsed template."""
    return CodeGenerator(body, metadata, host, **options).generate()
