import re
from collections import OrderedDict

import pytest

import joist
from joist import UNDEFINED, SchemaError
from conftest import codes


class TestKeys:
    def test_validates_children(self, user_schema):
        result = user_schema.validate({"username": "abc", "birth_year": "1994"})
        assert result == ({"username": "abc", "birth_year": 1994}, None)

    def test_input_is_not_mutated(self, user_schema):
        payload = {"username": "abc", "birth_year": "1994"}
        user_schema.validate(payload)
        assert payload == {"username": "abc", "birth_year": "1994"}

    def test_required_child(self, user_schema):
        result = user_schema.validate({})
        assert codes(result) == ["any.required"]
        assert result.error.message == '"username" is required'
        assert result.error.details[0].path == ["username"]

    def test_nested_paths(self):
        schema = joist.object_({"a": joist.object_({"b": joist.number()})})
        result = schema.validate({"a": {"b": "x"}})
        assert result.error.message == '"a.b" must be a number'
        assert result.error.field_errors.keys() == {"a.b"}

    def test_collects_errors_across_children(self, user_schema):
        result = user_schema.validate({"username": "a", "birth_year": 1800}, abort_early=False)
        assert codes(result) == ["string.min", "number.min"]

    def test_rejects_non_objects(self):
        result = joist.object_().validate([])
        assert codes(result) == ["object.base"]
        assert result.error.message == '"value" must be of type object'

    def test_json_strings_convert(self):
        schema = joist.object_({"a": joist.number()})
        assert schema.validate('{"a": "1"}').value == {"a": 1}
        assert codes(schema.validate('{"a": 1}', convert=False)) == ["object.base"]

    def test_empty_keys_allow_nothing(self):
        assert codes(joist.object_({}).validate({"a": 1})) == ["object.allowUnknown"]
        assert joist.object_().validate({"a": 1}).error is None

    def test_keys_replace_same_name(self):
        schema = joist.object_({"a": joist.string()}).keys({"a": joist.number()})
        assert schema.validate({"a": 1}).error is None

    def test_literal_children_compile(self):
        schema = joist.object_({"kind": "user", "level": [1, 2]})
        assert schema.validate({"kind": "user", "level": 2}).error is None
        assert codes(schema.validate({"kind": "admin"})) == ["any.allowOnly"]

    def test_size_rules(self):
        assert codes(joist.object_().min(1).validate({})) == ["object.min"]
        assert codes(joist.object_().max(1).validate({"a": 1, "b": 2})) == ["object.max"]
        assert codes(joist.object_().length(1).validate({})) == ["object.length"]

    def test_instance(self):
        schema = joist.object_().instance(OrderedDict)
        assert schema.validate(OrderedDict(a=1)).error is None
        result = schema.validate({})
        assert codes(result) == ["object.instance"]
        assert result.error.message == '"value" must be an instance of OrderedDict'

    def test_deep_default(self):
        schema = joist.object_({"a": joist.number().default(1), "b": joist.string()}).default()
        assert schema.validate(UNDEFINED).value == {"a": 1}

    def test_invalid_keys_raise(self):
        with pytest.raises(SchemaError):
            joist.object_({"a": object()})
        with pytest.raises(SchemaError):
            joist.object_().keys(joist.string())


class TestUnknown:
    def test_unknown_keys_rejected(self):
        result = joist.object_({"a": joist.any_()}).validate({"a": 1, "b": 2})
        assert codes(result) == ["object.allowUnknown"]
        assert result.error.message == '"b" is not allowed'
        assert result.error.details[0].context["child"] == "b"

    def test_unknown_flag(self):
        schema = joist.object_({"a": joist.any_()}).unknown()
        assert schema.validate({"a": 1, "b": 2}).value == {"a": 1, "b": 2}

    def test_allow_unknown_preference(self):
        schema = joist.object_({"a": joist.any_()})
        assert schema.validate({"a": 1, "b": 2}, allow_unknown=True).error is None

    def test_strip_unknown(self):
        schema = joist.object_({"a": joist.any_()})
        assert schema.validate({"a": 1, "b": 2}, strip_unknown=True).value == {"a": 1}
        stripped = schema.validate({"a": 1, "b": 2}, strip_unknown=joist.StripUnknown(objects=True))
        assert stripped.value == {"a": 1}

    def test_schema_preferences_apply_to_children(self):
        schema = joist.object_({"a": joist.object_({"b": joist.any_()})}).prefs(allow_unknown=True)
        assert schema.validate({"a": {"b": 1, "c": 2}, "d": 3}).error is None


class TestPatterns:
    def test_pattern_children(self):
        schema = joist.object_().pattern(r"^s_", joist.string())
        assert schema.validate({"s_a": "x"}).error is None
        assert codes(schema.validate({"s_a": 1})) == ["string.base"]
        assert codes(schema.validate({"n": 1})) == ["object.allowUnknown"]

    def test_schema_pattern(self):
        schema = joist.object_({"id": joist.number()}).pattern(joist.string().min(3), joist.boolean())
        assert schema.validate({"id": 1, "flag": "true"}).value == {"id": 1, "flag": True}

    def test_pattern_matches(self):
        schema = joist.object_().pattern(r"^x", joist.any_(), matches=joist.array().max(1))
        assert schema.validate({"xa": 1}).error is None
        assert codes(schema.validate({"xa": 1, "xb": 2})) == ["object.pattern.match"]


class TestRename:
    def test_rename(self):
        schema = joist.object_({"b": joist.number()}).rename("a", "b")
        assert schema.validate({"a": "1"}).value == {"b": 1}

    def test_alias_keeps_source(self):
        schema = joist.object_().rename("a", "b", alias=True)
        assert schema.validate({"a": 1}).value == {"a": 1, "b": 1}

    def test_renames_apply_in_declaration_order(self):
        schema = joist.object_().rename("a", "b").rename("b", "c")
        assert schema.validate({"a": 1}).value == {"c": 1}

    def test_multiple_renames_to_same_target(self):
        schema = joist.object_().rename("a", "c").rename("b", "c")
        result = schema.validate({"a": 1, "b": 2})
        assert codes(result) == ["object.rename.multiple"]
        assert result.error.details[0].context["from"] == "b"

        allowed = joist.object_().rename("a", "c").rename("b", "c", multiple=True)
        assert allowed.validate({"a": 1, "b": 2}).value == {"c": 2}

    def test_override(self):
        schema = joist.object_().rename("a", "b")
        assert codes(schema.validate({"a": 1, "b": 2})) == ["object.rename.override"]
        assert joist.object_().rename("a", "b", override=True).validate({"a": 1, "b": 2}).value == {"b": 1}

    def test_ignore_undefined(self):
        schema = joist.object_().rename("a", "b", ignore_undefined=True)
        assert schema.validate({"a": UNDEFINED, "b": 2}).value == {"a": UNDEFINED, "b": 2}

    def test_regex_rename(self):
        schema = joist.object_({"a": joist.number(), "b": joist.number()}).rename(re.compile(r"^x_(\w+)$"), r"\1",
            multiple=True)
        assert schema.validate({"x_a": 1, "x_b": 2}).value == {"a": 1, "b": 2}

    def test_same_source_twice_raises(self):
        with pytest.raises(SchemaError):
            joist.object_().rename("a", "b").rename("a", "c")
        with pytest.raises(SchemaError):
            joist.object_().rename("a", "a")


class TestDependencies:
    def test_with(self):
        schema = joist.object_({"a": joist.any_().label("Alpha"), "b": joist.any_()}).with_("a", "b")
        assert schema.validate({"a": 1, "b": 2}).error is None
        assert schema.validate({"b": 2}).error is None
        result = schema.validate({"a": 1})
        assert codes(result) == ["object.with"]
        assert result.error.message == '"Alpha" missing required peer "b"'

    def test_without(self):
        schema = joist.object_().without("a", ["b", "c"])
        assert codes(schema.validate({"a": 1, "c": 3})) == ["object.without"]

    def test_xor(self):
        schema = joist.object_().xor("a", "b")
        assert schema.validate({"a": 1}).error is None
        result = schema.validate({"a": 1, "b": 2})
        assert codes(result) == ["object.xor"]
        assert result.error.details[0].context["present"] == ["a", "b"]
        assert codes(schema.validate({})) == ["object.missing"]

    def test_oxor_or_and_nand(self):
        assert joist.object_().oxor("a", "b").validate({}).error is None
        assert codes(joist.object_().oxor("a", "b").validate({"a": 1, "b": 2})) == ["object.oxor"]
        assert codes(joist.object_().or_("a", "b").validate({})) == ["object.missing"]
        assert codes(joist.object_().and_("a", "b").validate({"a": 1})) == ["object.and"]
        assert joist.object_().and_("a", "b").validate({}).error is None
        assert codes(joist.object_().nand("a", "b").validate({"a": 1, "b": 2})) == ["object.nand"]

    def test_nested_peers(self):
        schema = joist.object_().with_("a", "b.c")
        assert schema.validate({"a": 1, "b": {"c": 1}}).error is None
        assert codes(schema.validate({"a": 1, "b": {}})) == ["object.with"]

    def test_dependencies_run_after_children(self):
        schema = joist.object_({"a": joist.number(), "b": joist.any_()}).xor("a", "b")
        result = schema.validate({"a": "x", "b": 1}, abort_early=False)
        assert codes(result) == ["number.base", "object.xor"]

    def test_peers_required(self):
        with pytest.raises(SchemaError):
            joist.object_().xor()


class TestReferences:
    def test_sibling_order_follows_references(self):
        schema = joist.object_({"confirm": joist.ref("password"), "password": joist.string()})
        assert [child.key for child in schema._terms["keys"]] == ["password", "confirm"]
        assert schema.validate({"password": "x", "confirm": "x"}).error is None
        assert codes(schema.validate({"password": "x", "confirm": "y"})) == ["any.allowOnly"]

    def test_reference_sees_converted_sibling(self):
        schema = joist.object_({"a": joist.ref("b"), "b": joist.number()})
        assert schema.validate({"a": 5, "b": "5"}).error is None

    def test_self_reference_raises(self):
        with pytest.raises(SchemaError):
            joist.object_({"a": joist.number().max(joist.ref("a"))})

    def test_cycle_raises(self):
        with pytest.raises(SchemaError):
            joist.object_({"a": joist.ref("b"), "b": joist.ref("a")})

    def test_parent_reference(self):
        schema = joist.object_({
            "max": joist.number(),
            "inner": joist.object_({"value": joist.number().max(joist.ref("...max"))}),
        })
        assert schema.validate({"max": 5, "inner": {"value": 4}}).error is None
        assert codes(schema.validate({"max": 5, "inner": {"value": 6}})) == ["number.max"]

    def test_assert(self):
        schema = joist.object_({
            "a": joist.object_({"b": joist.number()}),
            "c": joist.number(),
        }).assert_("a.b", joist.ref("c"))
        assert schema.validate({"a": {"b": 1}, "c": 1}).error is None
        result = schema.validate({"a": {"b": 1}, "c": 2})
        assert codes(result) == ["object.assert"]
        assert result.error.message == '"a.b" validation failed because "a.b" failed to pass the assertion test'

    def test_assert_on_root_key_raises(self):
        with pytest.raises(SchemaError):
            joist.object_().assert_("a", joist.any_())


class TestRefAndSchemaValues:
    def test_ref(self):
        schema = joist.object_().ref()
        reference = joist.ref("a")
        assert schema.validate(reference).value is reference
        result = schema.validate({})
        assert codes(result) == ["object.refType"]
        assert result.error.message == '"value" must be a reference'
        assert codes(schema.validate("a")) == ["object.base"]

    def test_schema_of_any_type(self):
        schema = joist.object_().schema()
        assert schema.validate(joist.string()).error is None
        assert schema.validate(joist.number().min(1)).error is None
        assert codes(schema.validate({"type": "string"})) == ["object.schema"]

    def test_schema_of_given_type(self):
        schema = joist.object_().schema("number")
        assert schema.validate(joist.number()).error is None
        result = schema.validate(joist.string())
        assert codes(result) == ["object.schema"]
        assert result.error.message == '"value" must be a schema of number type'

    def test_schema_type_must_be_a_name(self):
        with pytest.raises(SchemaError):
            joist.object_().schema("")

    def test_round_trip(self):
        schema = joist.object_().schema("string")
        desc = schema.describe()
        assert desc["rules"] == [{"name": "schema", "args": {"type": "string"}}]
        rebuilt = joist.build(desc)
        assert rebuilt.validate(joist.string()).error is None
        assert codes(rebuilt.validate(joist.boolean())) == ["object.schema"]
