# stencil/ast_nodes.py
"""
Template syntax tree.

Two closed families of frozen dataclasses:

* :class:`Expression` – the value language used inside ``{{ ... }}``.
* :class:`Node` – the statement language (HTML text, output, control
  flow, composition directives).

Nodes that carry children use tuples so that trees stay immutable through
nesting.  Every node records the location of its opening token; locations
are excluded from equality so two trees parsed from differently laid out
sources compare equal when they are structurally the same.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional, Tuple

from stencil.errors import SourceLocation

if TYPE_CHECKING:
    from stencil.visitor import ExpressionVisitor, NodeVisitor

__all__ = [
    "BinaryOperator",
    "Expression", "Variable", "StringLiteral", "NumberLiteral",
    "BooleanLiteral", "PropertyAccess", "NullSafePropertyAccess",
    "MethodCall", "NullSafeMethodCall", "BinaryOp", "UnaryNot", "Grouped",
    "Node", "Body", "Html", "ExpressionOutput", "RawExpressionOutput", "If",
    "For", "Include", "ComponentCall", "Content", "Set", "Switch",
    "SwitchCase", "Slot", "Block", "Stack", "Push", "Fragment",
    "Param",
]

_NOWHERE = SourceLocation()


def _loc() -> Any:
    return field(default=_NOWHERE, compare=False, repr=False)


# ── Operators ────────────────────────────────────────────────────

class BinaryOperator(Enum):
    OR = "||"
    AND = "&&"
    EQ = "=="
    NEQ = "!="
    LT = "<"
    GT = ">"
    LTE = "<="
    GTE = ">="


# ── Expressions ──────────────────────────────────────────────────

class Expression(ABC):
    """Base of the expression sum type."""

    @abstractmethod
    def accept(self, visitor: "ExpressionVisitor") -> Any:
        ...


@dataclass(frozen=True)
class Variable(Expression):
    name: str
    location: SourceLocation = _loc()

    def accept(self, visitor):
        return visitor.visit_variable(self)


@dataclass(frozen=True)
class StringLiteral(Expression):
    value: str
    location: SourceLocation = _loc()

    def accept(self, visitor):
        return visitor.visit_string_literal(self)


@dataclass(frozen=True)
class NumberLiteral(Expression):
    """A numeric literal, kept as written."""
    text: str
    location: SourceLocation = _loc()

    def accept(self, visitor):
        return visitor.visit_number_literal(self)


@dataclass(frozen=True)
class BooleanLiteral(Expression):
    value: bool
    location: SourceLocation = _loc()

    def accept(self, visitor):
        return visitor.visit_boolean_literal(self)


@dataclass(frozen=True)
class PropertyAccess(Expression):
    target: Expression
    name: str
    location: SourceLocation = _loc()

    def accept(self, visitor):
        return visitor.visit_property_access(self)


@dataclass(frozen=True)
class NullSafePropertyAccess(Expression):
    target: Expression
    name: str
    location: SourceLocation = _loc()

    def accept(self, visitor):
        return visitor.visit_null_safe_property_access(self)


@dataclass(frozen=True)
class MethodCall(Expression):
    target: Expression
    name: str
    arguments: Tuple[Expression, ...] = ()
    location: SourceLocation = _loc()

    def accept(self, visitor):
        return visitor.visit_method_call(self)


@dataclass(frozen=True)
class NullSafeMethodCall(Expression):
    target: Expression
    name: str
    arguments: Tuple[Expression, ...] = ()
    location: SourceLocation = _loc()

    def accept(self, visitor):
        return visitor.visit_null_safe_method_call(self)


@dataclass(frozen=True)
class BinaryOp(Expression):
    left: Expression
    operator: BinaryOperator
    right: Expression
    location: SourceLocation = _loc()

    def accept(self, visitor):
        return visitor.visit_binary_op(self)


@dataclass(frozen=True)
class UnaryNot(Expression):
    operand: Expression
    location: SourceLocation = _loc()

    def accept(self, visitor):
        return visitor.visit_unary_not(self)


@dataclass(frozen=True)
class Grouped(Expression):
    inner: Expression
    location: SourceLocation = _loc()

    def accept(self, visitor):
        return visitor.visit_grouped(self)


# ── Statements ───────────────────────────────────────────────────

class Node(ABC):
    """Base of the template node sum type."""

    @abstractmethod
    def accept(self, visitor: "NodeVisitor") -> Any:
        ...


@dataclass(frozen=True)
class Param:
    """A ``name=value`` argument of include / component / widget."""
    name: str
    value: Expression


@dataclass(frozen=True)
class Body(Node):
    children: Tuple[Node, ...] = ()
    location: SourceLocation = _loc()

    def accept(self, visitor):
        return visitor.visit_body(self)

    def __iter__(self):
        return iter(self.children)


@dataclass(frozen=True)
class Html(Node):
    content: str
    location: SourceLocation = _loc()

    def accept(self, visitor):
        return visitor.visit_html(self)


@dataclass(frozen=True)
class ExpressionOutput(Node):
    """``{{ expr }}`` – escaped output."""
    expression: Expression
    location: SourceLocation = _loc()

    def accept(self, visitor):
        return visitor.visit_expression_output(self)


@dataclass(frozen=True)
class RawExpressionOutput(Node):
    """``{{ raw expr }}`` – unescaped output."""
    expression: Expression
    location: SourceLocation = _loc()

    def accept(self, visitor):
        return visitor.visit_raw_expression_output(self)


@dataclass(frozen=True)
class If(Node):
    condition: Expression
    then_body: Body
    else_body: Optional[Body] = None
    location: SourceLocation = _loc()

    def accept(self, visitor):
        return visitor.visit_if(self)


@dataclass(frozen=True)
class For(Node):
    variable: str
    iterable: Expression
    body: Body
    location: SourceLocation = _loc()

    def accept(self, visitor):
        return visitor.visit_for(self)


@dataclass(frozen=True)
class Include(Node):
    name: str
    params: Tuple[Param, ...] = ()
    location: SourceLocation = _loc()

    def accept(self, visitor):
        return visitor.visit_include(self)


@dataclass(frozen=True)
class ComponentCall(Node):
    """``{{ component "x" ... }}`` or ``{{ widget "x" ... }}``."""
    name: str
    params: Tuple[Param, ...] = ()
    keyword: str = "widget"
    location: SourceLocation = _loc()

    def accept(self, visitor):
        return visitor.visit_component_call(self)


@dataclass(frozen=True)
class Content(Node):
    location: SourceLocation = _loc()

    def accept(self, visitor):
        return visitor.visit_content(self)


@dataclass(frozen=True)
class Set(Node):
    name: str
    value: Expression
    location: SourceLocation = _loc()

    def accept(self, visitor):
        return visitor.visit_set(self)


@dataclass(frozen=True)
class SwitchCase:
    value: Expression
    body: Body
    location: SourceLocation = _loc()


@dataclass(frozen=True)
class Switch(Node):
    subject: Expression
    cases: Tuple[SwitchCase, ...] = ()
    default: Optional[Body] = None
    location: SourceLocation = _loc()

    def accept(self, visitor):
        return visitor.visit_switch(self)


@dataclass(frozen=True)
class Slot(Node):
    """A named insertion point in a layout, with optional default content."""
    name: str
    default_body: Optional[Body] = None
    location: SourceLocation = _loc()

    def accept(self, visitor):
        return visitor.visit_slot(self)


@dataclass(frozen=True)
class Block(Node):
    """Page content destined for the layout slot of the same name."""
    name: str
    body: Body
    location: SourceLocation = _loc()

    def accept(self, visitor):
        return visitor.visit_block(self)


@dataclass(frozen=True)
class Stack(Node):
    name: str
    location: SourceLocation = _loc()

    def accept(self, visitor):
        return visitor.visit_stack(self)


@dataclass(frozen=True)
class Push(Node):
    name: str
    body: Body
    location: SourceLocation = _loc()

    def accept(self, visitor):
        return visitor.visit_push(self)


@dataclass(frozen=True)
class Fragment(Node):
    name: str
    body: Body
    location: SourceLocation = _loc()

    def accept(self, visitor):
        return visitor.visit_fragment(self)
