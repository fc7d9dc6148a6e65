"""Message Rendering

The engine never formats messages itself: every report is rendered through
a MessageRenderer, ``render(code, context, path) -> str``. The default
TemplateRenderer looks up ``str.format`` style templates contributed by
each type definition (``'"{label}" must be a string'``); unknown context
keys render as an empty string.
"""
from __future__ import annotations

import string
from datetime import datetime
from typing import Any, Mapping, Protocol, runtime_checkable

from .common import UNDEFINED, is_schema
from .ref import Reference


@runtime_checkable
class MessageRenderer(Protocol):
    def render(self, code: str, context: dict, path: tuple) -> str: ...


def display(value: Any) -> str:
    """Human-readable rendering of a context value."""
    if value is UNDEFINED: return ""
    if isinstance(value, str): return value
    if isinstance(value, (list, tuple, set, frozenset)): return "[" + ", ".join(display(v) for v in value) + "]"
    if isinstance(value, Reference): return value.display
    if isinstance(value, datetime): return value.isoformat()
    if isinstance(value, (bytes, bytearray)): return bytes(value).decode("utf-8", "replace")
    if isinstance(value, type): return value.__name__
    if is_schema(value): return value.type
    return str(value)


class _ContextFormatter(string.Formatter):
    def get_value(self, key, args, kwargs):
        if isinstance(key, int): return UNDEFINED
        return kwargs.get(key, UNDEFINED)

    def format_field(self, value, format_spec):
        if format_spec and value is not UNDEFINED and not isinstance(value, (list, tuple, Reference)):
            return format(value, format_spec)
        return display(value)


_FORMATTER = _ContextFormatter()


def render_template(template: str, context: Mapping[str, Any]) -> str:
    return _FORMATTER.vformat(template, (), context)


class TemplateRenderer:
    """Default renderer backed by type-definition messages plus overrides."""

    def __init__(self, messages: Mapping[str, str] | None = None):
        self._overrides = dict(messages or {})

    def template(self, code: str) -> str | None:
        from .registry import REGISTRY

        if code in self._overrides: return self._overrides[code]
        return REGISTRY.message(code)

    def render(self, code: str, context: dict, path: tuple) -> str:
        template = self.template(code)
        if template is None: return f'"{display(context.get("label", "value"))}" failed {code}'
        return render_template(template, context)


DEFAULT_RENDERER = TemplateRenderer()
