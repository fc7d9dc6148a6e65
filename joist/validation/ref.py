"""References

A Reference points from a schema to another value reachable at validation
time: a sibling or ancestor of the value under validation, the root value,
or a path inside ``prefs.context``.

Key syntax (separator ``.`` by default):
    "a.b"     sibling key a, then b (ancestor 1)
    ".a"      key a of the value itself (ancestor 0)
    "...a"    key a of the grandparent (ancestor n - 1 for n separators)
    "/a"      key a of the root value
    "$a.b"    path a.b inside the context preference

Resolution is a pure function of (value, state, prefs).
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Literal

from joist.errors import AppError, Err, Ok, assert_schema, schema_error, try_result

from .common import UNDEFINED, is_schema

TO_SIBLING = 0
TO_PARENT = 1


class AdjustmentError(Exception):
    """Raised out of resolve() when a reference adjust callback fails.

    The validator turns it into a report on the node being validated, so it
    never escapes validate().
    """

    def __init__(self, reference: Reference, error: AppError):
        super().__init__(error.message)
        self.reference = reference
        self.error = error


@dataclass(frozen=True, slots=True, eq=False)
class Reference:
    """Immutable pointer to a value resolved during validation."""
    key: str
    path: tuple[str, ...]
    ancestor: int | Literal["root"] = 1
    kind: Literal["value", "global"] = "value"
    separator: str = "."
    adjust: Callable[[Any], Any] | None = None
    map: tuple[tuple[Any, Any], ...] | None = None

    @property
    def root(self) -> str | None:
        return self.path[0] if self.path else None

    @property
    def depth(self) -> int:
        return len(self.path)

    @property
    def display(self) -> str:
        return f"context:{self.key}" if self.kind == "global" else f"ref:{self.key}"

    def __repr__(self) -> str:
        return self.display

    def __str__(self) -> str:
        return self.display

    def absolute(self, state) -> tuple:
        """Full path of the referenced value from the root."""
        if self.ancestor == "root": return self.path
        cut = max(len(state.path) - self.ancestor, 0)
        return tuple(state.path[:cut]) + self.path

    def resolve(self, value: Any, state, prefs=None, *, shadow: bool = True) -> Any:
        if self.kind == "global":
            context = prefs.context if prefs is not None else None
            return self._finish(reach(context, self.path))

        if shadow and state is not None and state.mainstay.shadow:
            shadowed = state.mainstay.shadow.get(self.absolute(state))
            if shadowed is not UNDEFINED: return self._finish(shadowed)

        ancestors = state.ancestors if state is not None else ()
        if self.ancestor == "root":
            target = ancestors[-1] if ancestors else value
        elif self.ancestor == 0:
            target = value
        elif self.ancestor > len(ancestors):
            return self._finish(UNDEFINED)
        else:
            target = ancestors[self.ancestor - 1]
        return self._finish(reach(target, self.path))

    def _finish(self, resolved: Any) -> Any:
        if self.adjust is not None:
            match try_result(lambda: self.adjust(resolved), origin=f"{self.display}.adjust"):
                case Ok(adjusted):
                    resolved = adjusted
                case Err(error):
                    raise AdjustmentError(self, error)
        if self.map is not None:
            for source, target in self.map:
                if source == resolved and type(source) is type(resolved): return target
        return resolved

    def describe(self) -> dict:
        desc: dict[str, Any] = {"path": list(self.path)}
        if self.kind == "global": desc["type"] = "global"
        else: desc["ancestor"] = self.ancestor
        if self.separator != ".": desc["separator"] = self.separator
        if self.map is not None: desc["map"] = [[k, v] for k, v in self.map]
        if self.adjust is not None: desc["adjust"] = getattr(self.adjust, "__qualname__", repr(self.adjust))
        return desc

    @classmethod
    def build(cls, desc: dict) -> Reference:
        assert_schema(isinstance(desc, dict) and isinstance(desc.get("path"), list), "Invalid reference description:", desc)
        assert_schema("adjust" not in desc, "Cannot build reference with adjust function:", desc.get("adjust"))
        separator = desc.get("separator", ".")
        path = tuple(str(p) for p in desc["path"])
        key = separator.join(path)
        mapping = tuple((k, v) for k, v in desc["map"]) if "map" in desc else None
        if desc.get("type") == "global":
            return cls(key=f"${key}", path=path, ancestor=0, kind="global", separator=separator, map=mapping)
        ancestor = desc.get("ancestor", 1)
        assert_schema(ancestor == "root" or (isinstance(ancestor, int) and ancestor >= 0), "Invalid reference ancestor:", ancestor)
        return cls(key=key, path=path, ancestor=ancestor, separator=separator, map=mapping)


def create(
    key: str,
    *,
    separator: str = ".",
    ancestor: int | None = None,
    adjust: Callable[[Any], Any] | None = None,
    map: Any = None,
) -> Reference:
    """Parse a reference key."""
    assert_schema(isinstance(key, str), "Invalid reference key:", key)
    assert_schema(isinstance(separator, str) and len(separator) == 1, "Invalid separator:", separator)
    assert_schema(adjust is None or callable(adjust), "adjust must be a function")
    assert_schema(adjust is None or map is None, "Cannot set both map and adjust options")
    assert_schema(ancestor is None or (isinstance(ancestor, int) and not isinstance(ancestor, bool) and ancestor >= 0),
        "Invalid ancestor:", ancestor)

    mapping = None
    if map is not None:
        pairs = map.items() if isinstance(map, dict) else map
        mapping = tuple((k, v) for k, v in pairs)

    if key.startswith("$"):
        assert_schema(ancestor is None, "Cannot combine context reference with ancestor option")
        path = tuple(key[1:].split(separator)) if key[1:] else ()
        return Reference(key=key, path=path, ancestor=0, kind="global", separator=separator, adjust=adjust, map=mapping)

    if key.startswith("/"):
        assert_schema(ancestor is None, "Cannot combine root reference with ancestor option")
        rest = key[1:]
        path = tuple(rest.split(separator)) if rest else ()
        return Reference(key=key, path=path, ancestor="root", separator=separator, adjust=adjust, map=mapping)

    if key.startswith(separator):
        assert_schema(ancestor is None, "Cannot combine prefix with ancestor option")
        rest = key.lstrip(separator)
        depth = len(key) - len(rest) - 1
        path = tuple(rest.split(separator)) if rest else ()
        return Reference(key=key, path=path, ancestor=depth, separator=separator, adjust=adjust, map=mapping)

    assert_schema(key != "", "Missing reference key")
    return Reference(key=key, path=tuple(key.split(separator)), ancestor=1 if ancestor is None else ancestor,
        separator=separator, adjust=adjust, map=mapping)


def is_reference(value: Any) -> bool:
    return isinstance(value, Reference)


def reach(target: Any, path: tuple) -> Any:
    """Walk path through dicts and sequences; UNDEFINED when anything is missing."""
    for segment in path:
        if isinstance(target, dict):
            target = target.get(segment, UNDEFINED)
        elif isinstance(target, (list, tuple)):
            try:
                index = int(segment)
            except ValueError:
                return UNDEFINED
            if not -len(target) <= index < len(target): return UNDEFINED
            target = target[index]
        else:
            return UNDEFINED
    return target


# ============================================================================
# Reference registry
# ============================================================================

class RefRegistry:
    """Value references a schema subtree depends on.

    Entries are ``(ancestor, root)`` pairs expressed relative to the owning
    node's parent: ancestor 0 means a sibling key of the owning node. Object
    key ordering uses ``roots()`` to find the siblings a child must follow.
    """

    __slots__ = ("refs",)

    def __init__(self, refs: list[tuple[int, str | None]] | None = None):
        self.refs = refs or []

    def clone(self) -> RefRegistry:
        return RefRegistry(list(self.refs))

    def register(self, source: Any, target: int = TO_PARENT) -> None:
        if source is None or source is UNDEFINED: return
        if isinstance(source, (list, tuple)):
            for item in source:
                self.register(item, target)
            return
        if is_schema(source):
            for ancestor, root in source._refs.refs:
                if ancestor - target >= 0: self.refs.append((ancestor - target, root))
            return
        if isinstance(source, Reference) and source.kind == "value" and source.ancestor != "root":
            if source.ancestor - target >= 0: self.refs.append((source.ancestor - target, source.root))

    def roots(self) -> list[str]:
        return [root for ancestor, root in self.refs if ancestor == 0 and root is not None]


def require_reference(value: Any, method: str) -> Reference:
    if isinstance(value, Reference): return value
    if isinstance(value, str): return create(value)
    raise schema_error(f"{method}(): expected a reference or key string, got {value!r}")
