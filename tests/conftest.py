# tests/conftest.py
"""
Shared source units for the stencil test suite, plus helpers that compile
a unit and load the generated module.
"""

import pytest

from stencil import runtime as rt
from stencil.compiler import compile_unit


# ═══════════════════════════════════════════════════════════════════════════
# BODY-ONLY UNITS
# ═══════════════════════════════════════════════════════════════════════════

HELLO_PAGE = "<h1>Hello World</h1>"

STACK_PAGE = (
    '{{ stack "scripts" }}<p>body</p>'
    '{{ push "scripts" }}<script src="a.js"></script>{{ end }}'
)

SWITCH_PAGE = (
    '{{ set kind = "b" }}'
    '{{ switch kind }}'
    '{{ case "a" }}A'
    '{{ case "b" }}B'
    '{{ default }}Z'
    '{{ end }}'
)

NESTED_LOOP_PAGE = (
    '{{ for x in rows }}{{ for x in x.cells }}{{ x }}{{ end }}{{ x.name }}{{ end }}'
)


# ═══════════════════════════════════════════════════════════════════════════
# UNITS WITH A HOST CLASS
# ═══════════════════════════════════════════════════════════════════════════

STATUS_PAGE = '''from stencil import runtime as rt


@rt.page("/status")
class Status:
    status: str = "1"

<template>
{{ if status == "1" }}one{{ else if status == "2" }}two{{ else }}three{{ end }}
</template>
'''

POST_LIST_PAGE = '''from stencil import runtime as rt


@rt.page("/posts")
class PostList:
    allPosts: list = []

<template>
<ul>{{ for post in allPosts }}<li>{{ post.title }}</li>{{ end }}</ul>
</template>
'''

ALERT_WIDGET = '''from stencil import runtime as rt


@rt.widget
class Alert:
    type: str = "info"
    message: str = ""

<template>
<div class="alert alert-{{ type }}">{{ message }}</div>
</template>
'''

DASHBOARD_PAGE = '''from stencil import runtime as rt


@rt.page("/dashboard")
class Dashboard:
    pass

<template>
<main>{{ widget "alert" type="error" message="Oops" }}</main>
</template>
'''

POST_EDIT_PAGE = '''from stencil import runtime as rt


class PostService:
    def title_for(self, post_id):
        return "Post %s" % post_id


@rt.page("/posts/{id}/edit", layout="base")
@rt.template("""
    <h1>{{ posts.title_for(postId) }}</h1>
    {{ block "sidebar" }}<p>Tips</p>{{ end }}
""")
class PostEdit:
    posts: PostService = rt.inject()
    postId: int = 7

    @rt.post
    def update(self):
        return rt.ActionResult.redirect("/posts")

    @rt.delete
    def remove(self):
        return rt.ActionResult.redirect("/")
'''

BASE_LAYOUT = '''from stencil import runtime as rt


@rt.layout
class BaseLayout:
    site: str = "Blog"

<template>
<html><head><title>{{ site }}</title>{{ stack "head" }}</head><body>{{ content }}<aside>{{ slot "sidebar" }}<p>No tips</p>{{ end }}</aside></body></html>
</template>
'''

ABOUT_PAGE = '''from stencil import runtime as rt


@rt.page("/about", layout="base")
class About:
    pass

<template>
<p>About</p>{{ push "head" }}<meta name="about">{{ end }}
</template>
'''

HEADER_PAGE = '''from stencil import runtime as rt


@rt.page
class Header:
    title: str = ""

<template>
<header>{{ title }}</header>
</template>
'''

HOME_PAGE = '''from stencil import runtime as rt


@rt.page("/")
class Home:
    pageTitle: str = "Welcome"

<template>
{{ include "header" title=pageTitle }}<p>home</p>
</template>
'''

ITEMS_PAGE = '''from stencil import runtime as rt


@rt.page("/items")
class Items:
    items: list = []

<template>
<section>{{ fragment "item-list" }}<ul>{{ for item in items }}<li>{{ item }}</li>{{ end }}</ul>{{ end }}</section>
</template>
'''

PROFILE_PAGE = '''from stencil import runtime as rt


@rt.page("/profile")
class Profile:
    user: object = None
    bio: str = "<b>hi</b>"
    items: list = []

<template>
<p>{{ user?.name }}</p>{{ raw bio }}{{ for item in items }}{{ if item_first }}[{{ end }}{{ item }}{{ if !item_last }},{{ end }}{{ if item_last }}]{{ end }}{{ end }}
</template>
'''


# ═══════════════════════════════════════════════════════════════════════════
# HELPERS
# ═══════════════════════════════════════════════════════════════════════════

def load_unit(source, file_name="unit.page.html", **kwargs):
    """Compile *source*, execute the module and return the renderer class."""
    unit = compile_unit(source, file_name, **kwargs)
    namespace = {"__name__": "stencil_generated_" + unit.class_name}
    exec(compile(unit.code, file_name, "exec"), namespace)
    return namespace[unit.class_name]


def render(renderer):
    return rt.render_to_string(renderer)


@pytest.fixture
def context():
    """A render context with the layout, header and alert widget registered."""
    ctx = rt.RenderContext()
    ctx.register(
        load_unit(BASE_LAYOUT, "base.layout.html"),
        load_unit(HEADER_PAGE, "header.page.html"),
        load_unit(ALERT_WIDGET, "alert.widget.html"),
    )
    return ctx
