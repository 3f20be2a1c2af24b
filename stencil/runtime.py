#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
stencil/runtime.py
==================

Support library imported by generated modules as ``_rt``.

Contents:

- Markers for host classes: :func:`page`, :func:`layout`, :func:`widget`,
  :func:`template`, :func:`inject` and the action markers :func:`post`,
  :func:`put`, :func:`delete`, :func:`patch`.
- :class:`HtmlOutput`, the output buffer every ``render`` writes to.
- :class:`Page`, :class:`Layout`, :class:`Widget`, the bases of the
  generated renderer classes.
- :class:`RenderContext`, a small registry that resolves widgets, pages,
  layouts and injected services by name.
- Helpers used by generated expressions (:func:`truthy`, :func:`loop`,
  :func:`checked_cast`).

Nothing here imports the compiler, so generated code only needs this
module at run time.
"""

from __future__ import annotations

import html
import logging
import types
import typing
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple, Type

__all__ = [
    "to_text",
    "escape",
    "HtmlOutput",
    "ActionResult",
    "FragmentNotFound",
    "truthy",
    "loop",
    "checked_cast",
    "RenderContext",
    "Renderer",
    "Page",
    "Layout",
    "Widget",
    "render_to_string",
    "page",
    "layout",
    "widget",
    "template",
    "inject",
    "post",
    "put",
    "delete",
    "patch",
]

_log = logging.getLogger(__name__)

# ``X | Y`` annotations (3.10+).
_UNION_TYPE = getattr(types, "UnionType", None)


# ═══════════════════════════════════════════════════════════════════════════
# OUTPUT
# ═══════════════════════════════════════════════════════════════════════════

def to_text(value: Any) -> str:
    """Stringify a template value.

    ``None`` renders as nothing and booleans use the template spelling.
    """
    if value is None:
        return ""
    if value is True:
        return "true"
    if value is False:
        return "false"
    return str(value)


def escape(value: Any) -> str:
    """HTML-escape a template value (``& < > " '``)."""
    return html.escape(to_text(value), quote=True)


class _StackRef:
    """Placeholder for a stack rendered before all pushes are known."""

    __slots__ = ("name",)

    def __init__(self, name: str) -> None:
        self.name = name


class HtmlOutput:
    """Append-only HTML buffer.

    ``render_stack`` leaves a placeholder that :meth:`to_html` resolves,
    so content pushed after the stack position still appears there.
    """

    def __init__(self) -> None:
        self._parts: List[Any] = []
        self._stacks: Dict[str, List[str]] = {}
        self._length = 0

    def append(self, value: Any) -> None:
        text = to_text(value)
        if text:
            self._parts.append(text)
            self._length += len(text)

    def append_escaped(self, value: Any) -> None:
        self.append(escape(value))

    def push_stack(self, name: str, html_text: str) -> None:
        self._stacks.setdefault(name, []).append(html_text)

    def render_stack(self, name: str) -> None:
        self._parts.append(_StackRef(name))

    def stack(self, name: str) -> Tuple[str, ...]:
        return tuple(self._stacks.get(name, ()))

    def to_html(self) -> str:
        out = []
        for part in self._parts:
            if isinstance(part, _StackRef):
                out.extend(self._stacks.get(part.name, ()))
            else:
                out.append(part)
        return "".join(out)

    def __len__(self) -> int:
        """Characters appended so far (stack placeholders excluded)."""
        return self._length

    def __str__(self) -> str:
        return self.to_html()


# ═══════════════════════════════════════════════════════════════════════════
# RESULTS AND ERRORS
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ActionResult:
    """Outcome of ``handle_action``."""

    kind: str
    url: Optional[str] = None

    @classmethod
    def redirect(cls, url: str) -> "ActionResult":
        return cls("redirect", url)

    @classmethod
    def render(cls) -> "ActionResult":
        return cls("render")

    @classmethod
    def method_not_allowed(cls) -> "ActionResult":
        return cls("method_not_allowed")


class FragmentNotFound(LookupError):
    """Raised by ``render_fragment`` for an unknown fragment name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"no fragment named {name!r}")
        self.name = name


# ═══════════════════════════════════════════════════════════════════════════
# EXPRESSION HELPERS
# ═══════════════════════════════════════════════════════════════════════════

def truthy(value: Any) -> bool:
    """Presence test used by ``if``: anything except ``None`` and ``False``."""
    return value is not None and value is not False


def loop(iterable: Optional[Iterable[Any]]) -> Iterator[Tuple[int, bool, bool, Any]]:
    """Yield ``(index, first, last, item)`` for a ``for`` block.

    ``None`` iterates as empty.
    """
    if iterable is None:
        return
    items = iterable if isinstance(iterable, (list, tuple)) else list(iterable)
    size = len(items)
    for index, item in enumerate(items):
        yield index, index == 0, index == size - 1, item


def checked_cast(value: Any, expected: Any, name: str) -> Any:
    """Check a widget parameter against its declared type.

    ``None`` always passes, as does a missing or unresolvable type.
    Classes are checked with ``isinstance``; generics by their origin;
    ``Optional``/``Union`` by any member.  Raises :class:`TypeError`
    otherwise.
    """
    if value is None or expected is None or _accepts(value, expected):
        return value
    raise TypeError(
        f"parameter {name!r} expects {_type_name(expected)}, "
        f"got {type(value).__name__}"
    )


def _accepts(value: Any, expected: Any) -> bool:
    if expected is Any or isinstance(expected, (str, typing.ForwardRef)):
        return True
    origin = typing.get_origin(expected)
    if origin is typing.Union or (_UNION_TYPE is not None and origin is _UNION_TYPE):
        return any(_accepts(value, arg) for arg in typing.get_args(expected))
    if origin is typing.Literal:
        return value in typing.get_args(expected)
    if origin is not None:
        expected = origin
    if isinstance(expected, type):
        if expected is float and isinstance(value, int) and not isinstance(value, bool):
            return True
        return isinstance(value, expected)
    return True


def _type_name(expected: Any) -> str:
    return getattr(expected, "__name__", None) or str(expected)


# ═══════════════════════════════════════════════════════════════════════════
# RENDERERS
# ═══════════════════════════════════════════════════════════════════════════

class Renderer:
    """Base of every generated renderer class."""

    namespace: str = ""
    registry_name: str = ""
    scope: str = "request"
    injected_fields: Tuple[str, ...] = ()

    _context: RenderContext

    def bind(self, context: "RenderContext") -> "Renderer":
        """Attach *context* and fill injected fields from its services."""
        self._context = context
        for name in self.injected_fields:
            marker = getattr(type(self), name, None)
            key = marker.name if isinstance(marker, _Inject) and marker.name else name
            if key in context.services:
                setattr(self, name, context.services[key])
            else:
                _log.debug("%s: no service %r for field %r",
                           type(self).__name__, key, name)
        return self

    def set_params(self, params: Dict[str, Any]) -> None:
        for key, value in params.items():
            setattr(self, key, value)

    @classmethod
    def field_type(cls, name: str) -> Any:
        """The resolved annotation of field *name*, or ``None``."""
        hints = cls.__dict__.get("_stencil_hints")
        if hints is None:
            try:
                hints = typing.get_type_hints(cls)
            except Exception as exc:  # unresolvable forward references
                _log.debug("type hints of %s not resolvable: %s", cls.__name__, exc)
                hints = {}
                for klass in reversed(cls.__mro__):
                    hints.update(getattr(klass, "__annotations__", {}))
            cls._stencil_hints = hints
        return hints.get(name)


class Page(Renderer):
    route_path: Optional[str] = None
    layout_name: Optional[str] = None
    methods: Tuple[str, ...] = ("GET",)

    def render(self, out: HtmlOutput) -> None:
        raise NotImplementedError

    def handle_action(self, method: str) -> ActionResult:
        return ActionResult.method_not_allowed()

    def render_fragment(self, name: str, out: HtmlOutput) -> None:
        raise FragmentNotFound(name)


SlotRenderer = Callable[[str, HtmlOutput], None]


class Layout(Renderer):
    scope = "singleton"
    layout_name: str = ""

    def render(self, out: HtmlOutput, slots: SlotRenderer) -> None:
        raise NotImplementedError


class Widget(Renderer):
    scope = "prototype"

    def render(self, out: HtmlOutput) -> None:
        raise NotImplementedError


class RenderContext:
    """Registry of renderer classes and injectable services.

    Pages and widgets are created fresh on every lookup; layouts are
    created once per context.
    """

    def __init__(self, services: Optional[Dict[str, Any]] = None) -> None:
        self.services: Dict[str, Any] = dict(services or {})
        self._pages: Dict[str, Type[Page]] = {}
        self._layouts: Dict[str, Type[Layout]] = {}
        self._widgets: Dict[str, Type[Widget]] = {}
        self._layout_instances: Dict[str, Layout] = {}

    def register(self, *classes: Type[Renderer]) -> "RenderContext":
        for cls in classes:
            if issubclass(cls, Layout):
                self._layouts[cls.registry_name] = cls
            elif issubclass(cls, Widget):
                self._widgets[cls.registry_name] = cls
            elif issubclass(cls, Page):
                self._pages[cls.registry_name] = cls
            else:
                raise TypeError(f"{cls.__name__} is not a renderer class")
            _log.debug("registered %s as %r", cls.__name__, cls.registry_name)
        return self

    @staticmethod
    def _lookup(table: Dict[str, Any], name: str, kind: str) -> Any:
        try:
            return table[name]
        except KeyError:
            raise LookupError(f"no {kind} registered as {name!r}") from None

    def widget(self, name: str) -> Widget:
        return self._lookup(self._widgets, name, "widget")().bind(self)

    def include(self, name: str) -> Page:
        return self._lookup(self._pages, name, "page")().bind(self)

    def layout(self, name: str) -> Layout:
        instance = self._layout_instances.get(name)
        if instance is None:
            instance = self._lookup(self._layouts, name, "layout")().bind(self)
            self._layout_instances[name] = instance
        return instance

    def route(self, path: str) -> Optional[Page]:
        """The page whose ``route_path`` equals *path*, if any."""
        for cls in self._pages.values():
            if cls.route_path == path:
                return cls().bind(self)
        return None


def render_to_string(renderer: Renderer) -> str:
    """Render a page or widget into a fresh buffer and return the HTML."""
    out = HtmlOutput()
    renderer.render(out)
    return out.to_html()


# ═══════════════════════════════════════════════════════════════════════════
# HOST MARKERS
# ═══════════════════════════════════════════════════════════════════════════

def _class_marker(role: str, cls: Optional[type], **attrs: Any) -> Any:
    def mark(target: type) -> type:
        target.__stencil_role__ = role
        for key, value in attrs.items():
            setattr(target, f"__stencil_{key}__", value)
        return target
    if cls is not None:
        return mark(cls)
    return mark


def page(path: Any = None, layout: Optional[str] = None) -> Any:
    """Mark a page class; usable as ``@page`` or ``@page("/path", layout="base")``."""
    if isinstance(path, type):
        return _class_marker("page", path)
    return _class_marker("page", None, route=path, layout=layout)


def layout(cls: Optional[type] = None) -> Any:
    """Mark a layout class."""
    return _class_marker("layout", cls)


def widget(cls: Optional[type] = None) -> Any:
    """Mark a widget class."""
    return _class_marker("widget", cls)


def template(text: str) -> Callable[[type], type]:
    """Attach template text to a class; the compiler reads it from source."""
    def attach(cls: type) -> type:
        cls.__stencil_template__ = text
        return cls
    return attach


class _Inject:
    __slots__ = ("name",)

    def __init__(self, name: Optional[str] = None) -> None:
        self.name = name

    def __repr__(self) -> str:
        return "inject()" if self.name is None else f"inject({self.name!r})"


def inject(name: Optional[str] = None) -> Any:
    """Default value marking a field filled from the context's services."""
    return _Inject(name)


def _action(verb: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def mark(fn: Callable[..., Any]) -> Callable[..., Any]:
        fn._stencil_verb = verb
        return fn
    mark.__name__ = verb.lower()
    mark.__doc__ = f"Mark a method as the {verb} action handler."
    return mark


post = _action("POST")
put = _action("PUT")
delete = _action("DELETE")
patch = _action("PATCH")
