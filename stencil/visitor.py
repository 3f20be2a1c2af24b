#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
stencil/visitor.py
==================

Visitor infrastructure for template syntax trees.

Provides:
- ``ExpressionVisitor`` – abstract base, one method per expression kind
- ``NodeVisitor`` – abstract base, one method per statement kind
- ``iter_nodes`` – depth-first traversal over every statement

Both bases declare every method abstract, so a subclass that forgets a
variant cannot be instantiated.
"""

from __future__ import annotations

import abc
from typing import Any, Iterator, List

from stencil import ast_nodes as N

__all__ = [
    "ExpressionVisitor",
    "NodeVisitor",
    "iter_nodes",
]


class ExpressionVisitor(abc.ABC):
    """Abstract base class for expression visitors."""

    def visit(self, node: N.Expression) -> Any:
        """Dispatch to the appropriate visit method."""
        return node.accept(self)

    @abc.abstractmethod
    def visit_variable(self, node: N.Variable) -> Any: ...

    @abc.abstractmethod
    def visit_string_literal(self, node: N.StringLiteral) -> Any: ...

    @abc.abstractmethod
    def visit_number_literal(self, node: N.NumberLiteral) -> Any: ...

    @abc.abstractmethod
    def visit_boolean_literal(self, node: N.BooleanLiteral) -> Any: ...

    @abc.abstractmethod
    def visit_property_access(self, node: N.PropertyAccess) -> Any: ...

    @abc.abstractmethod
    def visit_null_safe_property_access(self, node: N.NullSafePropertyAccess) -> Any: ...

    @abc.abstractmethod
    def visit_method_call(self, node: N.MethodCall) -> Any: ...

    @abc.abstractmethod
    def visit_null_safe_method_call(self, node: N.NullSafeMethodCall) -> Any: ...

    @abc.abstractmethod
    def visit_binary_op(self, node: N.BinaryOp) -> Any: ...

    @abc.abstractmethod
    def visit_unary_not(self, node: N.UnaryNot) -> Any: ...

    @abc.abstractmethod
    def visit_grouped(self, node: N.Grouped) -> Any: ...


class NodeVisitor(abc.ABC):
    """Abstract base class for statement visitors."""

    def visit(self, node: N.Node) -> Any:
        """Dispatch to the appropriate visit method."""
        return node.accept(self)

    @abc.abstractmethod
    def visit_body(self, node: N.Body) -> Any: ...

    @abc.abstractmethod
    def visit_html(self, node: N.Html) -> Any: ...

    @abc.abstractmethod
    def visit_expression_output(self, node: N.ExpressionOutput) -> Any: ...

    @abc.abstractmethod
    def visit_raw_expression_output(self, node: N.RawExpressionOutput) -> Any: ...

    @abc.abstractmethod
    def visit_if(self, node: N.If) -> Any: ...

    @abc.abstractmethod
    def visit_for(self, node: N.For) -> Any: ...

    @abc.abstractmethod
    def visit_include(self, node: N.Include) -> Any: ...

    @abc.abstractmethod
    def visit_component_call(self, node: N.ComponentCall) -> Any: ...

    @abc.abstractmethod
    def visit_content(self, node: N.Content) -> Any: ...

    @abc.abstractmethod
    def visit_set(self, node: N.Set) -> Any: ...

    @abc.abstractmethod
    def visit_switch(self, node: N.Switch) -> Any: ...

    @abc.abstractmethod
    def visit_slot(self, node: N.Slot) -> Any: ...

    @abc.abstractmethod
    def visit_block(self, node: N.Block) -> Any: ...

    @abc.abstractmethod
    def visit_stack(self, node: N.Stack) -> Any: ...

    @abc.abstractmethod
    def visit_push(self, node: N.Push) -> Any: ...

    @abc.abstractmethod
    def visit_fragment(self, node: N.Fragment) -> Any: ...


def _child_bodies(node: N.Node) -> List[N.Body]:
    if isinstance(node, N.If):
        return [node.then_body] + ([node.else_body] if node.else_body is not None else [])
    if isinstance(node, (N.For, N.Block, N.Push, N.Fragment)):
        return [node.body]
    if isinstance(node, N.Switch):
        bodies = [case.body for case in node.cases]
        if node.default is not None:
            bodies.append(node.default)
        return bodies
    if isinstance(node, N.Slot) and node.default_body is not None:
        return [node.default_body]
    return []


def iter_nodes(root: N.Node) -> Iterator[N.Node]:
    """Yield *root* and every statement below it, depth first."""
    yield root
    if isinstance(root, N.Body):
        for child in root.children:
            yield from iter_nodes(child)
    else:
        for body in _child_bodies(root):
            yield from iter_nodes(body)
