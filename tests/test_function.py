import json

import pytest

import joist
from joist import SchemaError
from joist.validation.types.function import declared_arity
from conftest import codes


def pair(a, b):
    return a, b


def with_default(a, b=1, *rest):
    return a


class Point:
    def __init__(self, x, y):
        self.x, self.y = x, y


class TestBase:
    def test_accepts_callables(self):
        assert joist.function().validate(pair).value is pair
        assert joist.func().validate(len).error is None
        assert joist.function().validate(Point).error is None

    def test_rejects_other_values(self):
        result = joist.function().validate("pair")
        assert codes(result) == ["function.base"]
        assert result.error.message == '"value" must be of type function'


class TestArity:
    def test_declared_arity(self):
        assert declared_arity(pair) == 2
        assert declared_arity(with_default) == 1
        assert declared_arity(lambda: None) == 0
        assert declared_arity(Point) == 2

    def test_exact(self):
        assert joist.function().arity(2).validate(pair).error is None
        result = joist.function().arity(1).validate(pair)
        assert codes(result) == ["function.arity"]
        assert result.error.message == '"value" must have an arity of 1'

    def test_bounds(self):
        assert joist.function().min_arity(1).max_arity(2).validate(pair).error is None
        assert codes(joist.function().min_arity(3).validate(pair)) == ["function.minArity"]
        assert codes(joist.function().max_arity(1).validate(pair)) == ["function.maxArity"]

    @pytest.mark.parametrize("method,n", [("arity", -1), ("min_arity", 0), ("max_arity", "2"), ("arity", True)])
    def test_invalid_arguments(self, method, n):
        with pytest.raises(SchemaError):
            getattr(joist.function(), method)(n)


class TestClass:
    def test_classes(self):
        assert joist.function().class_().validate(Point).error is None
        assert codes(joist.function().class_().validate(pair)) == ["function.class"]


class TestManifest:
    def test_round_trip(self):
        schema = joist.function().min_arity(1).class_()
        desc = schema.describe()
        assert desc == {
            "type": "function",
            "rules": [{"name": "min_arity", "args": {"n": 1}}, {"name": "class"}],
        }
        rebuilt = joist.build(json.loads(json.dumps(desc)))
        assert rebuilt.validate(Point).error is None
        assert codes(rebuilt.validate(pair)) == ["function.class"]
