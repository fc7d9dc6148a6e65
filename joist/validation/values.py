"""Value Sets

Insertion-ordered sets of allowed or denied literals. Membership uses a
canonical key so that booleans never collide with numbers, NaN equals
itself, datetimes compare by instant and byte buffers by content.
Members may be References resolved against the value under validation.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Hashable, Iterable, NamedTuple

from .common import UNDEFINED, as_utc, is_nan, is_number
from .ref import Reference, is_reference


class Match(NamedTuple):
    """Stored member a lookup matched."""
    value: Any


def canonical(value: Any) -> Hashable:
    """Canonical membership key for a value."""
    if value is UNDEFINED: return ("undefined",)
    if value is None: return ("none",)
    if isinstance(value, bool): return ("bool", value)
    if is_number(value): return ("number", "nan") if is_nan(value) else ("number", value)
    if isinstance(value, str): return ("str", value)
    if isinstance(value, (bytes, bytearray)): return ("bytes", bytes(value))
    if isinstance(value, datetime): return ("date", as_utc(value).timestamp())
    if is_reference(value): return ("ref", value.display, value.ancestor, value.kind)
    try:
        hash(value)
    except TypeError:
        return ("id", id(value))
    return ("object", value)


def _equal(candidate: Any, value: Any, insensitive: bool) -> bool:
    if canonical(candidate) == canonical(value): return True
    if insensitive and isinstance(candidate, str) and isinstance(value, str):
        return candidate.lower() == value.lower()
    if isinstance(candidate, (dict, list)) and type(candidate) is type(value):
        return candidate == value
    return False


class Values:
    """Ordered value set with reference-aware lookups."""

    __slots__ = ("_values", "_refs")

    def __init__(self, values: Iterable[Any] = ()):
        self._values: dict[Hashable, Any] = {}
        self._refs = 0
        for value in values:
            self.add(value)

    def __len__(self) -> int:
        return len(self._values)

    def __bool__(self) -> bool:
        return bool(self._values)

    def __repr__(self) -> str:
        return f"Values({list(self._values.values())!r})"

    @property
    def has_ref(self) -> bool:
        return self._refs > 0

    def add(self, value: Any) -> None:
        key = canonical(value)
        if key in self._values: return
        self._values[key] = value
        if is_reference(value): self._refs += 1

    def remove(self, value: Any) -> None:
        key = canonical(value)
        if key not in self._values: return
        del self._values[key]
        if is_reference(value): self._refs -= 1

    def has(self, value: Any, state=None, prefs=None, insensitive: bool = False) -> bool:
        return self.get(value, state, prefs, insensitive) is not None

    def get(self, value: Any, state=None, prefs=None, insensitive: bool = False) -> Match | None:
        """Find the member matching value.

        Returns the stored member so insensitive and converted matches can
        replace the input with the canonical spelling.
        """
        if not self._values: return None
        key = canonical(value)
        if key in self._values and not is_reference(self._values[key]):
            return Match(self._values[key])

        scan = insensitive and isinstance(value, str) or isinstance(value, (dict, list))
        if not scan and not self._refs: return None

        for member in self._values.values():
            if isinstance(member, Reference):
                if state is None: continue
                resolved = member.resolve(value, state, prefs)
                candidates = resolved if isinstance(resolved, list) else [resolved]
                for candidate in candidates:
                    if _equal(candidate, value, insensitive): return Match(candidate)
            elif scan and _equal(member, value, insensitive):
                return Match(member)
        return None

    def values(self, strip_undefined: bool = False) -> list[Any]:
        if strip_undefined:
            return [v for v in self._values.values() if v is not UNDEFINED]
        return list(self._values.values())

    def describe(self) -> list[Any]:
        """Members in insertion order, references included."""
        return list(self._values.values())

    def references(self) -> list[Reference]:
        return [v for v in self._values.values() if isinstance(v, Reference)]

    def clone(self) -> Values:
        obj = Values.__new__(Values)
        obj._values = dict(self._values)
        obj._refs = self._refs
        return obj

    def concat(self, source: Values) -> Values:
        """New set holding this set's members followed by source's."""
        obj = self.clone()
        for value in source._values.values():
            obj.add(value)
        return obj

    @staticmethod
    def merge(target: Values, source: Values | None, remove: Values | None) -> Values:
        """target + source - remove, leaving all three untouched."""
        obj = target.clone()
        if source:
            for value in source._values.values():
                obj.add(value)
        if remove:
            for value in remove._values.values():
                obj.remove(value)
        return obj
