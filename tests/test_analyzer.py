# tests/test_analyzer.py
"""
Tests for host-section metadata extraction.
"""

import pytest

from stencil.analyzer import (
    ArtifactRole,
    ClassMetadataAnalyzer,
    analyze,
    parse_marker_arguments,
)
from stencil.splitter import split_source
from tests.conftest import ALERT_WIDGET, BASE_LAYOUT, HEADER_PAGE, POST_EDIT_PAGE


def _host(source):
    return split_source(source)[0]


class TestMarkerArguments:

    def test_positional_and_keyword(self):
        args = parse_marker_arguments('"/posts/{id}", layout="base"')
        assert args.positional_string(0) == "/posts/{id}"
        assert args.keyword_string("layout") == "base"

    def test_empty(self):
        args = parse_marker_arguments("")
        assert args.positional == ()
        assert dict(args.keywords) == {}

    def test_single_quotes_and_trailing_comma(self):
        args = parse_marker_arguments("  '/x' , ")
        assert args.positional_string(0) == "/x"

    def test_escaped_quote(self):
        args = parse_marker_arguments(r'"a\"b"')
        assert args.positional_string(0) == 'a"b'

    def test_non_string_values_kept_as_text(self):
        args = parse_marker_arguments("ROUTE, layout=LAYOUT_NAME")
        assert args.positional == ("ROUTE",)
        assert args.positional_string(0) is None
        assert args.keyword_string("layout") is None
        assert args.keywords["layout"] == "LAYOUT_NAME"

    def test_first_keyword_wins(self):
        args = parse_marker_arguments('layout="a", layout="b"')
        assert args.keyword_string("layout") == "a"

    def test_unsupported_syntax_returns_none(self):
        assert parse_marker_arguments('f("x")') is None
        assert parse_marker_arguments("[1, 2]") is None

    def test_missing_index(self):
        assert parse_marker_arguments('"/x"').positional_string(3) is None


class TestRoles:

    def test_page(self):
        meta = analyze(_host(POST_EDIT_PAGE), "Fallback__Page")
        assert meta.role is ArtifactRole.PAGE
        assert meta.declared
        assert meta.class_name == "PostEdit"

    def test_layout(self):
        meta = analyze(_host(BASE_LAYOUT), "X")
        assert meta.role is ArtifactRole.LAYOUT
        assert meta.layout_name == "base"
        assert meta.route_path is None

    def test_widget(self):
        meta = analyze(_host(ALERT_WIDGET), "X")
        assert meta.role is ArtifactRole.WIDGET
        assert meta.class_name == "Alert"

    def test_page_wins_over_layout_keyword(self):
        host = '@page("/a", layout="main")\nclass A:\n    pass\n'
        meta = analyze(host, "X")
        assert meta.role is ArtifactRole.PAGE
        assert meta.layout_name == "main"

    def test_no_markers_defaults_to_page(self):
        meta = analyze("class Plain:\n    x: int = 1\n", "X")
        assert meta.role is ArtifactRole.PAGE
        assert meta.route_path is None
        assert meta.declared

    def test_empty_host_uses_fallback(self):
        meta = analyze("", "Hello__Page")
        assert meta.class_name == "Hello__Page"
        assert not meta.declared
        assert meta.field_names == ()

    def test_class_after_marker_chosen(self):
        host = (
            "class Helper:\n    pass\n\n"
            "@page('/x')\nclass Real:\n    value: int = 1\n"
        )
        meta = analyze(host, "X")
        assert meta.class_name == "Real"
        assert meta.field_names == ("value",)


class TestLayoutNames:

    @pytest.mark.parametrize("class_name, expected", [
        ("BaseLayout", "base"),
        ("AdminPanelLayout", "adminPanel"),
        ("Main", "main"),
        ("Layout", "layout"),
    ])
    def test_layout_name_from_class(self, class_name, expected):
        assert ClassMetadataAnalyzer._layout_name_from_class(class_name) == expected


class TestRoutes:

    def test_positional_route(self):
        assert analyze(_host(POST_EDIT_PAGE), "X").route_path == "/posts/{id}/edit"

    def test_keyword_route(self):
        meta = analyze('@page(path="/k")\nclass K:\n    pass\n', "X")
        assert meta.route_path == "/k"

    def test_bare_page_marker(self):
        meta = analyze(_host(HEADER_PAGE), "X")
        assert meta.route_path is None
        assert meta.layout_name is None

    def test_multiline_marker(self):
        host = '@rt.page(\n    "/m",\n    layout="base",\n)\nclass M:\n    pass\n'
        meta = analyze(host, "X")
        assert meta.route_path == "/m"
        assert meta.layout_name == "base"

    def test_unparseable_arguments_ignored(self):
        meta = analyze('@page(make_route("x"))\nclass M:\n    pass\n', "X")
        assert meta.route_path is None


class TestFields:

    def test_injected_fields_listed_first(self):
        meta = analyze(_host(POST_EDIT_PAGE), "X")
        assert meta.injected_fields == ("posts",)
        assert meta.field_names == ("posts", "postId")
        assert meta.field_types["postId"] == "int"
        assert meta.field_types["posts"] == "PostService"

    def test_injected_after_plain_field_still_first(self):
        host = (
            "@page\nclass P:\n"
            "    title: str = ''\n"
            "    repo: Repo = inject()\n"
        )
        meta = analyze(host, "X")
        assert meta.field_names == ("repo", "title")
        assert meta.injected_fields == ("repo",)

    def test_nested_and_method_locals_ignored(self):
        host = (
            "@page\nclass P:\n"
            "    a: int = 1\n"
            "\n"
            "    def f(self):\n"
            "        b: int = 2\n"
            "        return b\n"
            "\n"
            "    class Inner:\n"
            "        c: int = 3\n"
            "    d: str  # trailing\n"
        )
        meta = analyze(host, "X")
        assert meta.field_names == ("a", "d")
        assert meta.field_types["d"] == "str"

    def test_generic_annotations(self):
        host = "@widget\nclass W:\n    items: Dict[str, List[int]] = {}\n"
        assert analyze(host, "X").field_types["items"] == "Dict[str, List[int]]"

    def test_classvar_skipped(self):
        host = "@page\nclass P:\n    cache: ClassVar[dict] = {}\n    a: int = 0\n"
        assert analyze(host, "X").field_names == ("a",)

    def test_fields_of_other_class_ignored(self):
        host = "class Other:\n    z: int = 0\n\n@page\nclass P:\n    a: int = 0\n"
        assert analyze(host, "X").field_names == ("a",)


class TestActions:

    def test_verbs_and_methods(self):
        meta = analyze(_host(POST_EDIT_PAGE), "X")
        assert meta.action_verbs == ("POST", "DELETE")
        assert dict(meta.action_methods) == {"POST": "update", "DELETE": "remove"}

    def test_duplicate_verb_keeps_first_method(self):
        host = (
            "@page\nclass P:\n"
            "    @post\n    def a(self): pass\n"
            "    @post\n    def b(self): pass\n"
        )
        meta = analyze(host, "X")
        assert meta.action_verbs == ("POST",)
        assert meta.action_methods["POST"] == "a"

    def test_async_method(self):
        host = "@page\nclass P:\n    @put\n    async def save(self): pass\n"
        assert dict(analyze(host, "X").action_methods) == {"PUT": "save"}

    def test_unqualified_attribute_named_post_ignored(self):
        host = "@page\nclass P:\n    post: Post = None\n"
        assert analyze(host, "X").action_verbs == ()


class TestMetadataDict:

    def test_to_dict(self):
        data = analyze(_host(POST_EDIT_PAGE), "X").to_dict()
        assert data["class_name"] == "PostEdit"
        assert data["role"] == "page"
        assert data["route_path"] == "/posts/{id}/edit"
        assert data["layout_name"] == "base"
        assert data["fields"] == {"posts": "PostService", "postId": "int"}
        assert data["injected_fields"] == ["posts"]
        assert data["action_verbs"] == ["POST", "DELETE"]

    def test_metadata_is_immutable(self):
        meta = analyze(_host(POST_EDIT_PAGE), "X")
        with pytest.raises(Exception):
            meta.class_name = "Other"
        with pytest.raises(TypeError):
            meta.field_types["x"] = "int"
