# tests/test_expr_parser.py
"""
Tests for expression parsing: precedence, postfix chains, errors.
"""

import pytest

from stencil import ast_nodes as N
from stencil.errors import ParseError, StencilErrorCodes
from stencil.expr_parser import parse_expression

Op = N.BinaryOperator


def v(name):
    return N.Variable(name)


class TestPrimaries:

    def test_variable(self):
        assert parse_expression("name") == v("name")

    def test_string(self):
        assert parse_expression('"hi"') == N.StringLiteral("hi")

    def test_number_kept_as_text(self):
        assert parse_expression("3.50") == N.NumberLiteral("3.50")

    def test_booleans(self):
        assert parse_expression("true") == N.BooleanLiteral(True)
        assert parse_expression("false") == N.BooleanLiteral(False)

    def test_grouping(self):
        assert parse_expression("(a)") == N.Grouped(v("a"))


class TestPostfix:

    def test_property_chain(self):
        assert parse_expression("a.b.c") == N.PropertyAccess(N.PropertyAccess(v("a"), "b"), "c")

    def test_null_safe_property(self):
        assert parse_expression("user?.name") == N.NullSafePropertyAccess(v("user"), "name")

    def test_method_call_with_arguments(self):
        assert parse_expression('a.f(1, "x", b.c)') == N.MethodCall(
            v("a"), "f",
            (N.NumberLiteral("1"), N.StringLiteral("x"), N.PropertyAccess(v("b"), "c")),
        )

    def test_method_call_without_arguments(self):
        assert parse_expression("a.f()") == N.MethodCall(v("a"), "f", ())

    def test_null_safe_method_call(self):
        assert parse_expression("a?.f(b)") == N.NullSafeMethodCall(v("a"), "f", (v("b"),))

    def test_mixed_chain(self):
        expr = parse_expression("a?.b.c()")
        assert expr == N.MethodCall(N.NullSafePropertyAccess(v("a"), "b"), "c", ())

    def test_member_on_group(self):
        assert parse_expression("(a).b") == N.PropertyAccess(N.Grouped(v("a")), "b")


class TestPrecedence:

    def test_and_binds_tighter_than_or(self):
        assert parse_expression("a || b && c") == N.BinaryOp(
            v("a"), Op.OR, N.BinaryOp(v("b"), Op.AND, v("c")))

    def test_comparison_binds_tighter_than_and(self):
        assert parse_expression("a == b && c != d") == N.BinaryOp(
            N.BinaryOp(v("a"), Op.EQ, v("b")), Op.AND,
            N.BinaryOp(v("c"), Op.NEQ, v("d")))

    def test_comparisons_left_associative(self):
        assert parse_expression("a < b >= c") == N.BinaryOp(
            N.BinaryOp(v("a"), Op.LT, v("b")), Op.GTE, v("c"))

    def test_or_left_associative(self):
        assert parse_expression("a || b || c") == N.BinaryOp(
            N.BinaryOp(v("a"), Op.OR, v("b")), Op.OR, v("c"))

    def test_not_binds_tighter_than_comparison(self):
        assert parse_expression("!a == b") == N.BinaryOp(N.UnaryNot(v("a")), Op.EQ, v("b"))

    def test_double_not(self):
        assert parse_expression("!!a") == N.UnaryNot(N.UnaryNot(v("a")))

    def test_not_applies_to_postfix_chain(self):
        assert parse_expression("!a.b") == N.UnaryNot(N.PropertyAccess(v("a"), "b"))

    def test_grouping_overrides_precedence(self):
        assert parse_expression("(a || b) && c") == N.BinaryOp(
            N.Grouped(N.BinaryOp(v("a"), Op.OR, v("b"))), Op.AND, v("c"))


class TestLocations:

    def test_locations_ignored_by_equality(self):
        assert parse_expression("a") == parse_expression("  a")

    def test_location_recorded(self):
        expr = parse_expression("a")
        assert expr.location.line == 1
        assert expr.location.column == 4


class TestErrors:

    def test_trailing_tokens(self):
        with pytest.raises(ParseError) as exc:
            parse_expression("a b")
        assert exc.value.code == StencilErrorCodes.TRAILING_TOKENS

    def test_missing_operand(self):
        with pytest.raises(ParseError) as exc:
            parse_expression("a &&")
        assert exc.value.code == StencilErrorCodes.UNEXPECTED_EOF

    def test_missing_close_paren(self):
        with pytest.raises(ParseError):
            parse_expression("(a")

    def test_missing_member_name(self):
        with pytest.raises(ParseError):
            parse_expression("a.")

    def test_unclosed_argument_list(self):
        with pytest.raises(ParseError):
            parse_expression("a.f(b")

    def test_operator_in_primary_position(self):
        with pytest.raises(ParseError) as exc:
            parse_expression("== a")
        assert exc.value.code == StencilErrorCodes.UNEXPECTED_TOKEN
