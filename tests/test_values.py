import math
from datetime import datetime, timedelta, timezone

import joist
from joist.validation.values import Values, canonical


class TestValues:
    def test_canonical_keys(self):
        assert canonical(True) != canonical(1)
        assert canonical(math.nan) == canonical(float("nan"))
        moment = datetime(2020, 1, 1, tzinfo=timezone.utc)
        assert canonical(moment) == canonical(moment.astimezone(timezone(timedelta(hours=2))))
        assert canonical(b"ab") == canonical(bytearray(b"ab"))

    def test_membership(self):
        values = Values([1, "a", None])
        assert values.has(1)
        assert not values.has(True)
        assert values.has("A", insensitive=True)
        assert values.get("A", insensitive=True).value == "a"
        assert values.describe() == [1, "a", None]

    def test_structured_members(self):
        values = Values([{"a": 1}, [1, 2]])
        assert values.has({"a": 1})
        assert values.has([1, 2])
        assert not values.has([2, 1])

    def test_add_remove_and_copies(self):
        values = Values([1])
        copy = values.clone()
        copy.add(2)
        copy.remove(1)
        assert values.describe() == [1]
        assert copy.describe() == [2]
        assert values.concat(copy).describe() == [1, 2]
        assert Values.merge(Values([1, 2]), Values([3]), Values([1])).describe() == [2, 3]

    def test_references(self):
        ref = joist.ref("a")
        values = Values([ref, 1])
        assert values.has_ref
        assert values.references() == [ref]
        values.remove(ref)
        assert not values.has_ref
