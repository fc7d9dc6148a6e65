"""Traversal state threaded through recursive validation.

State frames are immutable and rebuilt for each child. The Mainstay is
the single mutable object of a validate() call: it holds the shadow of
stripped/raw values (so references still see them) and warnings.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from .common import UNDEFINED
from .ref import reach


class Shadow:
    """Validated values of keys removed from or replaced in the output."""

    __slots__ = ("_values",)

    def __init__(self, values: dict[tuple, Any] | None = None):
        self._values = values or {}

    def __bool__(self) -> bool:
        return bool(self._values)

    def set(self, path: tuple, value: Any) -> None:
        self._values[tuple(path)] = value

    def get(self, path: tuple) -> Any:
        path = tuple(path)
        if path in self._values: return self._values[path]
        for cut in range(len(path) - 1, 0, -1):
            prefix = path[:cut]
            if prefix in self._values:
                return reach(self._values[prefix], path[cut:])
        return UNDEFINED

    def clone(self) -> Shadow:
        return Shadow(dict(self._values))


@dataclass(slots=True)
class Mainstay:
    shadow: Shadow = field(default_factory=Shadow)
    warnings: list = field(default_factory=list)

    def snapshot(self) -> Mainstay:
        return Mainstay(shadow=self.shadow.clone(), warnings=list(self.warnings))

    def restore(self, snapshot: Mainstay) -> None:
        self.shadow = snapshot.shadow
        self.warnings = snapshot.warnings


@dataclass(frozen=True, slots=True)
class State:
    """Position of the value under validation.

    - path: keys/indexes from the root
    - ancestors: enclosing values, nearest first
    - schemas: enclosing schemas, nearest first
    """
    path: tuple = ()
    ancestors: tuple = ()
    mainstay: Mainstay = field(default_factory=Mainstay)
    schemas: tuple = ()

    def localize(self, path: tuple, ancestors: tuple | None = None, schema=None) -> State:
        """Frame for a child value."""
        return State(
            path=tuple(path),
            ancestors=self.ancestors if ancestors is None else tuple(ancestors),
            mainstay=self.mainstay,
            schemas=((schema, *self.schemas) if schema is not None else self.schemas),
        )

    def nest(self, schema) -> State:
        """Frame for a sibling schema evaluated at the same position."""
        return replace(self, schemas=(schema, *self.schemas))

    def isolated(self) -> State:
        """Same position with a private mainstay, for match-only checks."""
        return replace(self, mainstay=self.mainstay.snapshot())

    def shadow(self, value: Any) -> None:
        self.mainstay.shadow.set(self.path, value)
