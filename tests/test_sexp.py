# tests/test_sexp.py
"""
Tests for the S-expression dump of template trees.
"""

import pytest
import sexpdata
from sexpdata import Symbol

from stencil import ast_nodes as N
from stencil.lexer import tokenize
from stencil.parser import parse_tokens
from stencil.sexp import dumps, to_sexp


def _tree(text):
    return parse_tokens(tokenize(text))


def _compact(text):
    return dumps(_tree(text), pretty=False)


class TestCompact:

    def test_html_and_output(self):
        assert _compact("<p>{{ x }}</p>") == '(body (html "<p>") (output (var x)) (html "</p>"))'

    def test_raw(self):
        assert _compact("{{ raw x }}") == "(body (raw (var x)))"

    def test_for_variable_is_symbol(self):
        assert _compact("{{ for p in ps }}{{ p }}{{ end }}") == \
            "(body (for p (var ps) (body (output (var p)))))"

    def test_missing_else_is_nil(self):
        assert _compact("{{ if a }}x{{ end }}") == '(body (if (var a) (body (html "x")) nil))'

    def test_operators(self):
        assert _compact("{{ a == b }}") == "(body (output (binary (var a) == (var b))))"
        assert _compact("{{ !a }}") == "(body (output (not (var a))))"

    def test_literals(self):
        assert _compact('{{ "s" }}{{ 3 }}{{ 2.5 }}{{ true }}') == (
            '(body (output (str "s")) (output (num 3)) (output (num 2.5)) '
            "(output (bool true)))"
        )

    def test_member_access(self):
        assert _compact("{{ a.b }}") == "(body (output (prop (var a) b)))"
        assert _compact("{{ a?.b }}") == "(body (output (prop-safe (var a) b)))"
        assert _compact("{{ a.f(1) }}") == "(body (output (call (var a) f ((num 1)))))"

    def test_component_params(self):
        assert _compact('{{ widget "alert" type="error" }}') == \
            '(body (component "alert" ((type (str "error"))) widget))'

    def test_layout_nodes(self):
        assert _compact('{{ slot "main" }}') == '(body (slot "main" nil))'
        assert _compact('{{ stack "js" }}') == '(body (stack "js"))'
        assert _compact("{{ content }}") == "(body (content))"

    def test_switch(self):
        assert _compact('{{ switch k }}{{ case 1 }}a{{ end }}') == \
            '(body (switch (var k) ((switch-case (num 1) (body (html "a")))) nil))'


class TestPretty:

    def test_short_tree_stays_on_one_line(self):
        assert dumps(_tree("{{ x }}")) == "(body (output (var x)))"

    def test_wraps_at_width(self):
        assert dumps(_tree("<p>{{ x }}"), width=20) == (
            "(body\n"
            '  (html "<p>")\n'
            "  (output (var x)))"
        )


class TestStructure:

    def test_reads_back(self):
        tree = _tree('<ul>{{ for p in ps }}<li>{{ p.title }}</li>{{ end }}</ul>')
        assert sexpdata.loads(dumps(tree, pretty=False)) == to_sexp(tree)

    def test_to_sexp_shapes(self):
        assert to_sexp(N.Variable("x")) == [Symbol("var"), Symbol("x")]
        assert to_sexp(N.Html("a")) == [Symbol("html"), "a"]

    def test_unsupported_object(self):
        with pytest.raises(TypeError):
            to_sexp(object())
