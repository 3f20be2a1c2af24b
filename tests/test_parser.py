# tests/test_parser.py
"""
Tests for the template body parser.
"""

import pytest

from stencil import ast_nodes as N
from stencil.errors import ParseError, StencilErrorCodes
from stencil.lexer import tokenize
from stencil.parser import Parser, parse_tokens


def parse(text):
    return parse_tokens(tokenize(text))


def v(name):
    return N.Variable(name)


def body(*children):
    return N.Body(tuple(children))


class TestSimpleNodes:

    def test_html_only(self):
        assert parse("<p>x</p>") == body(N.Html("<p>x</p>"))

    def test_empty(self):
        assert parse("") == body()

    def test_output(self):
        assert parse("a{{ x }}") == body(N.Html("a"), N.ExpressionOutput(v("x")))

    def test_raw(self):
        assert parse("{{ raw html }}") == body(N.RawExpressionOutput(v("html")))

    def test_set(self):
        assert parse('{{ set greeting = "hi" }}') == body(N.Set("greeting", N.StringLiteral("hi")))

    def test_content(self):
        assert parse("{{ content }}") == body(N.Content())

    def test_stack(self):
        assert parse('{{ stack "head" }}') == body(N.Stack("head"))

    def test_body_is_iterable(self):
        assert [type(n) for n in parse("a{{ x }}")] == [N.Html, N.ExpressionOutput]


class TestConditionals:

    def test_if(self):
        assert parse("{{ if a }}x{{ end }}") == body(N.If(v("a"), body(N.Html("x"))))

    def test_if_else(self):
        assert parse("{{ if a }}x{{ else }}y{{ end }}") == body(
            N.If(v("a"), body(N.Html("x")), body(N.Html("y"))))

    def test_else_if_chain_desugars(self):
        tree = parse("{{ if a }}1{{ else if b }}2{{ else }}3{{ end }}")
        assert tree == body(N.If(
            v("a"), body(N.Html("1")),
            body(N.If(v("b"), body(N.Html("2")), body(N.Html("3")))),
        ))

    def test_else_if_without_final_else(self):
        tree = parse("{{ if a }}1{{ else if b }}2{{ end }}")
        assert tree == body(N.If(v("a"), body(N.Html("1")), body(N.If(v("b"), body(N.Html("2"))))))

    def test_empty_then_body(self):
        assert parse("{{ if a }}{{ end }}") == body(N.If(v("a"), body()))

    def test_unterminated_if(self):
        with pytest.raises(ParseError) as exc:
            parse("<p>{{ if a }}x")
        assert exc.value.code == StencilErrorCodes.UNTERMINATED_BLOCK
        assert exc.value.location.column == 7

    def test_stray_end(self):
        with pytest.raises(ParseError) as exc:
            parse("x{{ end }}")
        assert exc.value.code == StencilErrorCodes.UNEXPECTED_TOKEN

    def test_stray_else(self):
        with pytest.raises(ParseError):
            parse("{{ else }}")


class TestLoops:

    def test_for(self):
        assert parse("{{ for p in posts }}{{ p }}{{ end }}") == body(
            N.For("p", v("posts"), body(N.ExpressionOutput(v("p")))))

    def test_for_over_member(self):
        tree = parse("{{ for c in row.cells }}{{ end }}")
        assert tree.children[0].iterable == N.PropertyAccess(v("row"), "cells")

    def test_else_inside_for_rejected(self):
        with pytest.raises(ParseError):
            parse("{{ for p in ps }}a{{ else }}b{{ end }}")


class TestSwitch:

    def test_cases_and_default(self):
        tree = parse('{{ switch k }}\n  {{ case "a" }}A{{ case "b" }}B{{ default }}Z{{ end }}')
        assert tree == body(N.Switch(
            v("k"),
            (N.SwitchCase(N.StringLiteral("a"), body(N.Html("A"))),
             N.SwitchCase(N.StringLiteral("b"), body(N.Html("B")))),
            body(N.Html("Z")),
        ))

    def test_no_default(self):
        tree = parse("{{ switch k }}{{ case 1 }}one{{ end }}")
        assert tree.children[0].default is None

    def test_text_before_first_case(self):
        with pytest.raises(ParseError):
            parse("{{ switch k }}oops{{ case 1 }}one{{ end }}")

    def test_case_after_default(self):
        with pytest.raises(ParseError):
            parse("{{ switch k }}{{ default }}z{{ case 1 }}one{{ end }}")

    def test_unterminated_switch(self):
        with pytest.raises(ParseError) as exc:
            parse("{{ switch k }}")
        assert exc.value.code == StencilErrorCodes.UNTERMINATED_BLOCK


class TestComposition:

    def test_include_with_params(self):
        tree = parse('{{ include "header" title=page.title n=3 }}')
        assert tree == body(N.Include("header", (
            N.Param("title", N.PropertyAccess(v("page"), "title")),
            N.Param("n", N.NumberLiteral("3")),
        )))

    def test_widget_and_component_keep_keyword(self):
        widget = parse('{{ widget "alert" }}').children[0]
        component = parse('{{ component "alert" }}').children[0]
        assert isinstance(widget, N.ComponentCall) and widget.keyword == "widget"
        assert isinstance(component, N.ComponentCall) and component.keyword == "component"

    def test_param_value_method_call(self):
        tree = parse('{{ widget "card" body=post.summary(80) }}')
        param = tree.children[0].params[0]
        assert param.value == N.MethodCall(v("post"), "summary", (N.NumberLiteral("80"),))

    def test_duplicate_param(self):
        with pytest.raises(ParseError):
            parse('{{ widget "alert" a=1 a=2 }}')

    def test_block_push_fragment(self):
        tree = parse('{{ block "side" }}s{{ end }}{{ push "js" }}j{{ end }}{{ fragment "f" }}f{{ end }}')
        assert tree == body(
            N.Block("side", body(N.Html("s"))),
            N.Push("js", body(N.Html("j"))),
            N.Fragment("f", body(N.Html("f"))),
        )


class TestSlots:

    def test_self_closing_slot(self):
        assert parse('<main>{{ slot "main" }}</main>') == body(
            N.Html("<main>"), N.Slot("main"), N.Html("</main>"))

    def test_slot_with_default(self):
        assert parse('{{ slot "side" }}<p>none</p>{{ end }}') == body(
            N.Slot("side", body(N.Html("<p>none</p>"))))

    def test_slot_default_containing_block_construct(self):
        tree = parse('{{ slot "side" }}{{ if a }}x{{ end }}{{ end }}')
        assert tree == body(N.Slot("side", body(N.If(v("a"), body(N.Html("x"))))))

    def test_consecutive_self_closing_slots(self):
        tree = parse('{{ slot "a" }}{{ slot "b" }}')
        assert tree == body(N.Slot("a"), N.Slot("b"))

    def test_self_closing_slot_before_sibling_slot_with_default(self):
        tree = parse('{{ slot "a" }}{{ slot "b" }}x{{ end }}')
        assert tree == body(N.Slot("a"), N.Slot("b", body(N.Html("x"))))


class TestParserConstruction:

    def test_requires_eof_terminated_stream(self):
        with pytest.raises(ValueError):
            Parser([])

    def test_parser_class(self):
        assert Parser(tokenize("x")).parse() == body(N.Html("x"))
