import pytest

import joist
from joist import UNDEFINED, SchemaError
from joist.validation.ref import Reference, reach
from conftest import codes


class TestCreate:
    def test_sibling(self):
        ref = joist.ref("a.b")
        assert (ref.path, ref.ancestor, ref.kind) == (("a", "b"), 1, "value")

    def test_prefix_sets_ancestor(self):
        assert joist.ref(".a").ancestor == 0
        assert joist.ref("...a").ancestor == 2

    def test_root_and_context(self):
        assert joist.ref("/a").ancestor == "root"
        context = joist.ref("$x.y")
        assert (context.kind, context.path) == ("global", ("x", "y"))
        assert str(context) == "context:$x.y"

    def test_custom_separator(self):
        assert joist.ref("a/b", separator="/").path == ("a", "b")

    @pytest.mark.parametrize("kwargs", [
        {"key": 1},
        {"key": ""},
        {"key": "a", "separator": ".."},
        {"key": "$a", "ancestor": 1},
        {"key": "a", "ancestor": -1},
        {"key": "a", "adjust": lambda v: v, "map": {1: 2}},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(SchemaError):
            joist.ref(**kwargs)


class TestResolve:
    def test_adjust(self):
        schema = joist.object_({
            "a": joist.number(),
            "b": joist.number().min(joist.ref("a", adjust=lambda v: v * 2)),
        })
        assert schema.validate({"a": 2, "b": 4}).error is None
        assert codes(schema.validate({"a": 2, "b": 3})) == ["number.min"]

    def test_map(self):
        schema = joist.object_({
            "size": joist.string(),
            "limit": joist.number().max(joist.ref("size", map={"small": 10, "large": 100})),
        })
        assert schema.validate({"size": "large", "limit": 50}).error is None
        assert codes(schema.validate({"size": "small", "limit": 50})) == ["number.max"]

    def test_root(self):
        schema = joist.object_({
            "max": joist.number(),
            "inner": joist.object_({"value": joist.number().max(joist.ref("/max"))}),
        })
        assert codes(schema.validate({"max": 1, "inner": {"value": 2}})) == ["number.max"]

    def test_context(self):
        schema = joist.number().max(joist.ref("$limits.max"))
        assert schema.validate(5, context={"limits": {"max": 10}}).error is None
        assert codes(schema.validate(50, context={"limits": {"max": 10}})) == ["number.max"]

    def test_adjust_failure_in_rule_argument(self):
        schema = joist.object_({
            "a": joist.number(),
            "b": joist.number().max(joist.ref("a", adjust=lambda v: v / 0)),
        })
        result = schema.validate({"a": 1, "b": 2})
        assert codes(result) == ["any.ref"]
        assert result.error.details[0].path == ["b"]
        assert "division by zero" in result.error.details[0].message

    def test_adjust_failure_in_allowed_values(self):
        schema = joist.object_({
            "a": joist.number(),
            "b": joist.any_().valid(joist.ref("a", adjust=lambda v: v / 0)),
        })
        result = schema.validate({"a": 1, "b": 1})
        assert codes(result) == ["any.custom"]
        assert result.error.details[0].path == ["b"]

    def test_adjust_failure_in_default(self):
        schema = joist.object_({
            "a": joist.number(),
            "b": joist.number().default(joist.ref("a", adjust=lambda v: v["missing"])),
        })
        assert codes(schema.validate({"a": 1})) == ["any.custom"]

    def test_adjust_failure_in_object_assertion(self):
        schema = joist.object_({"a": joist.any_(), "b": joist.object_({"c": joist.any_()})}).assert_(
            joist.ref("b.c", adjust=lambda v: 1 / 0), joist.any_())
        result = schema.validate({"a": 1, "b": {"c": 1}})
        assert codes(result) == ["any.custom"]
        assert result.error.details[0].path == []

    def test_reach(self):
        assert reach({"a": [{"b": 1}]}, ("a", "0", "b")) == 1
        assert reach({"a": [1]}, ("a", "x")) is UNDEFINED
        assert reach({"a": [1]}, ("a", "3")) is UNDEFINED
        assert reach(5, ("a",)) is UNDEFINED


class TestManifest:
    def test_describe(self):
        assert joist.ref("a.b").describe() == {"path": ["a", "b"], "ancestor": 1}
        assert joist.ref("a/b", separator="/", map={1: 2}).describe() == {
            "path": ["a", "b"], "ancestor": 1, "separator": "/", "map": [[1, 2]]}

    def test_build(self):
        ref = Reference.build({"path": ["x"], "type": "global"})
        assert ref.kind == "global"
        assert Reference.build({"path": ["a"], "ancestor": 2}).ancestor == 2

    def test_build_rejects_adjust(self):
        with pytest.raises(SchemaError):
            Reference.build({"path": ["a"], "ancestor": 1, "adjust": "f"})
        with pytest.raises(SchemaError):
            Reference.build({"path": "a"})

