# tests/test_splitter.py
"""
Tests for host/template separation.
"""

import pytest

from stencil.errors import SplitError, StencilErrorCodes
from stencil.splitter import SourceSplitter, split_source, strip_common_indent
from tests.conftest import BASE_LAYOUT, HELLO_PAGE, POST_EDIT_PAGE


def _split(source, file_name="unit.page.html"):
    return SourceSplitter(file_name).split(source)


class TestEmbeddedLiteral:

    def test_layout_detected(self):
        assert _split(POST_EDIT_PAGE).layout == "literal"

    def test_template_is_dedented(self):
        result = _split(POST_EDIT_PAGE)
        assert result.template == (
            "<h1>{{ posts.title_for(postId) }}</h1>\n"
            '{{ block "sidebar" }}<p>Tips</p>{{ end }}'
        )

    def test_decorator_removed_from_host(self):
        host = _split(POST_EDIT_PAGE).host
        assert "template(" not in host
        assert '@rt.page("/posts/{id}/edit", layout="base")\nclass PostEdit:' in host

    def test_template_start_line(self):
        # The literal's first content line is line 11 of the unit.
        assert _split(POST_EDIT_PAGE).template_start_line == 11

    def test_escaped_quotes_do_not_close(self):
        source = '@template("""a \\""" b""")\nclass X:\n    pass\n'
        result = _split(source)
        assert result.template == 'a \\""" b'
        assert result.host.strip() == "class X:\n    pass"

    def test_single_quoted_literal(self):
        source = "@template('''\n<p>x</p>\n''')\nclass X:\n    pass\n"
        assert _split(source).template == "<p>x</p>"

    def test_trailing_comma_allowed(self):
        source = '@template("""<p>x</p>""",)\nclass X:\n    pass\n'
        assert _split(source).template == "<p>x</p>"

    def test_non_literal_argument_rejected(self):
        with pytest.raises(SplitError) as exc:
            _split("@template(TEXT)\nclass X:\n    pass\n")
        assert exc.value.code == StencilErrorCodes.UNTERMINATED_LITERAL

    def test_unterminated_literal(self):
        with pytest.raises(SplitError) as exc:
            _split('@template("""<p>never closed\nclass X:\n    pass\n')
        assert exc.value.code == StencilErrorCodes.UNTERMINATED_LITERAL
        assert exc.value.location.line == 1

    def test_missing_close_paren(self):
        with pytest.raises(SplitError) as exc:
            _split('@template("""<p>x</p>""" extra\nclass X:\n    pass\n')
        assert exc.value.code == StencilErrorCodes.UNTERMINATED_MARKER


class TestDelimitedBlock:

    def test_layout_detected(self):
        assert _split(BASE_LAYOUT).layout == "block"

    def test_host_and_template(self):
        result = _split(BASE_LAYOUT)
        assert result.host.startswith("from stencil import runtime as rt")
        assert result.host.endswith('site: str = "Blog"')
        assert result.template.startswith("<html><head>")
        assert result.template.endswith("</html>")

    def test_template_start_line(self):
        assert _split(BASE_LAYOUT).template_start_line == 9

    def test_missing_close_tag(self):
        with pytest.raises(SplitError) as exc:
            _split("class X:\n    pass\n<template>\n<p>x</p>\n")
        assert exc.value.code == StencilErrorCodes.UNTERMINATED_TEMPLATE_BLOCK
        assert exc.value.location.line == 3


class TestBodyOnly:

    def test_whole_input_is_template(self):
        result = _split(HELLO_PAGE)
        assert result.layout == "body"
        assert result.template == HELLO_PAGE
        assert result.host == ""
        assert not result.has_host

    def test_wrapper_returns_triple(self):
        host, template, line = split_source(HELLO_PAGE)
        assert (host, template, line) == ("", HELLO_PAGE, 1)


class TestStripCommonIndent:

    def test_strips_shared_margin(self):
        assert strip_common_indent("  a\n    b\n\n  c") == "a\n  b\n\nc"

    def test_blank_lines_ignored_for_margin(self):
        assert strip_common_indent("\n    x\n   \n    y") == "\nx\n\ny"

    def test_no_indent(self):
        assert strip_common_indent("a\nb") == "a\nb"
