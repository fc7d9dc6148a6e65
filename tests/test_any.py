from datetime import datetime, timezone

import pytest

import joist
from joist import DEEP_DEFAULT, UNDEFINED, SchemaError
from conftest import codes


class TestImmutability:
    def test_modifiers_return_new_schema(self):
        base = joist.string()
        required = base.required()
        assert required is not base
        assert base.validate(UNDEFINED).error is None
        assert codes(required.validate(UNDEFINED)) == ["any.required"]

    def test_rules_do_not_leak_into_parent(self):
        base = joist.number()
        limited = base.max(5)
        assert base.validate(10).error is None
        assert codes(limited.validate(10)) == ["number.max"]

    def test_clone_shares_nothing_mutable(self):
        base = joist.any_().allow("a")
        extended = base.allow("b")
        assert base.validate("b").value == "b"
        assert len(base._valids) == 1
        assert len(extended._valids) == 2


class TestPresence:
    def test_optional_by_default(self):
        assert joist.any_().validate(UNDEFINED) == (UNDEFINED, None)

    def test_required_rejects_undefined(self):
        result = joist.any_().required().validate(UNDEFINED)
        assert codes(result) == ["any.required"]
        assert result.error.message == '"value" is required'

    def test_forbidden_rejects_any_value(self):
        assert codes(joist.forbidden().validate(None)) == ["any.unknown"]
        assert joist.forbidden().validate(UNDEFINED).error is None

    def test_presence_preference(self):
        result = joist.string().validate(UNDEFINED, presence="required")
        assert codes(result) == ["any.required"]

    def test_invalid_presence_raises(self):
        with pytest.raises(SchemaError):
            joist.any_().presence("sometimes")


class TestAllowDeny:
    def test_allow_short_circuits_type_check(self):
        schema = joist.number().allow("none")
        assert schema.validate("none").value == "none"

    def test_valid_restricts_to_members(self):
        schema = joist.valid("a", "b")
        assert schema.validate("a").error is None
        result = schema.validate("c")
        assert codes(result) == ["any.allowOnly"]
        assert result.error.message == '"value" must be one of [a, b]'

    def test_invalid_rejects_members(self):
        assert codes(joist.string().invalid("root").validate("root")) == ["any.invalid"]

    def test_allow_removes_from_deny_and_back(self):
        schema = joist.any_().invalid(1).allow(1)
        assert schema.validate(1).error is None
        schema = schema.invalid(1)
        assert codes(schema.validate(1)) == ["any.invalid"]

    def test_booleans_do_not_match_numbers(self):
        schema = joist.valid(1)
        assert codes(schema.validate(True)) == ["any.allowOnly"]

    def test_empty_string_is_denied(self):
        result = joist.string().validate("")
        assert codes(result) == ["any.empty"]
        assert joist.string().allow("").validate("").error is None

    def test_insensitive_match_returns_member(self):
        schema = joist.string().valid("Alpha").insensitive()
        assert schema.validate("ALPHA").value == "Alpha"


class TestDefaults:
    def test_static_default(self):
        assert joist.number().default(5).validate(UNDEFINED).value == 5

    def test_default_is_cloned(self):
        schema = joist.any_().default([])
        first = schema.validate(UNDEFINED).value
        first.append(1)
        assert schema.validate(UNDEFINED).value == []

    def test_callable_default_receives_parent(self):
        schema = joist.object_({
            "first": joist.string(),
            "full": joist.string().default(lambda parent: parent["first"] + "!"),
        })
        assert schema.validate({"first": "a"}).value == {"first": "a", "full": "a!"}

    def test_failing_default_is_reported(self):
        def boom(parent):
            raise RuntimeError("no")

        result = joist.object_({"a": joist.any_().default(boom)}).validate({})
        assert codes(result) == ["any.default"]

    def test_no_defaults_preference(self):
        assert joist.any_().default(1).validate(UNDEFINED, no_defaults=True).value is UNDEFINED

    def test_failover_replaces_errors(self):
        result = joist.number().failover(0).validate("x")
        assert result == (0, None)

    def test_bare_default_only_on_objects(self):
        with pytest.raises(SchemaError):
            joist.string().default()
        assert joist.object_().default()._flags["default"] is DEEP_DEFAULT


class TestResultShaping:
    def test_strip_removes_key(self):
        schema = joist.object_({"a": joist.any_(), "secret": joist.string().strip()})
        assert schema.validate({"a": 1, "secret": "x"}).value == {"a": 1}

    def test_raw_keeps_original(self):
        schema = joist.number().raw()
        assert schema.validate("5").value == "5"

    def test_raw_shadow_visible_to_references(self):
        schema = joist.object_({
            "a": joist.number().raw(),
            "b": joist.ref("a"),
        })
        assert schema.validate({"a": "5", "b": 5}).error is None


class TestAbortEarly:
    def test_stops_at_first_error(self):
        schema = joist.string().min(5).alphanum()
        assert codes(schema.validate("a-")) == ["string.min"]

    def test_collects_every_error(self):
        schema = joist.string().min(5).alphanum()
        result = schema.validate("a-", abort_early=False)
        assert codes(result) == ["string.min", "string.alphanum"]
        assert result.error.message.count(". ") == 1


class TestCustom:
    def test_custom_can_replace_value(self):
        schema = joist.number().custom(lambda value, helpers: value * 2)
        assert schema.validate(3).value == 6

    def test_custom_returning_none_keeps_value(self):
        schema = joist.string().custom(lambda value, helpers: None)
        assert schema.validate("x").value == "x"

    def test_custom_exception_becomes_report(self):
        def fail(value, helpers):
            raise ValueError("bad value")

        result = joist.any_().custom(fail).validate(1)
        assert codes(result) == ["any.custom"]
        assert "bad value" in result.error.message


class TestMessages:
    def test_label_overrides_path(self):
        result = joist.object_({"a": joist.string().label("Name")}).validate({"a": 1})
        assert result.error.message == '"Name" must be a string'

    def test_rule_message_override(self):
        result = joist.string().min(3).message("too short: {limit}").validate("a")
        assert result.error.message == "too short: 3"

    def test_messages_preference(self):
        result = joist.number().validate("x", messages={"number.base": "{label} is not numeric"})
        assert result.error.message == "value is not numeric"

    def test_error_label_key(self):
        schema = joist.object_({"a": joist.object_({"b": joist.number()})})
        result = schema.validate({"a": {"b": "x"}}, error_label="key")
        assert result.error.message == '"b" must be a number'
        assert result.error.details[0].path == ["a", "b"]

    def test_unknown_preference_raises(self):
        with pytest.raises(SchemaError):
            joist.any_().validate(1, shout=True)


class TestConcat:
    def test_merges_rules_and_flags(self):
        schema = joist.string().min(2).concat(joist.string().max(4).required())
        assert codes(schema.validate("a")) == ["string.min"]
        assert codes(schema.validate("abcde")) == ["string.max"]
        assert codes(schema.validate(UNDEFINED)) == ["any.required"]

    def test_incompatible_types_raise(self):
        with pytest.raises(SchemaError):
            joist.string().concat(joist.number())

    def test_any_adopts_other_type(self):
        schema = joist.any_().required().concat(joist.number())
        assert schema.type == "number"
        assert codes(schema.validate(UNDEFINED)) == ["any.required"]


class TestAttempt:
    def test_returns_value(self):
        assert joist.attempt("5", joist.number()) == 5

    def test_raises_with_prefix(self):
        with pytest.raises(joist.ValidationError) as info:
            joist.attempt("x", joist.number(), "Bad input:")
        assert str(info.value) == 'Bad input: "value" must be a number'


class TestCast:
    def test_number_to_string(self):
        assert joist.number().cast("string").validate("5").value == "5"
        assert joist.number().cast("string").validate(1.5).value == "1.5"

    def test_boolean_casts(self):
        assert joist.boolean().cast("number").validate(True).value == 1
        assert joist.boolean().cast("number").validate("false").value == 0
        assert joist.boolean().cast("string").validate(True).value == "true"

    def test_date_casts(self):
        moment = datetime(2020, 1, 1, tzinfo=timezone.utc)
        assert joist.date().cast("number").validate(moment).value == 1577836800000
        assert joist.date().cast("string").validate(moment).value == "2020-01-01T00:00:00+00:00"

    def test_binary_to_string(self):
        assert joist.binary().cast("string").validate(b"abc").value == "abc"

    def test_array_to_set(self):
        assert joist.array().cast("set").validate([1, 2, 2]).value == {1, 2}
        assert joist.array().cast("set").validate([[1]]).value == [[1]]

    def test_failed_validation_is_not_cast(self):
        result = joist.number().cast("string").validate("x")
        assert codes(result) == ["number.base"]
        assert result.value == "x"

    def test_cast_needs_conversion(self):
        assert joist.number().cast("string").validate(5, convert=False).value == 5

    def test_missing_value_is_not_cast(self):
        assert joist.number().cast("string").validate(UNDEFINED).value is UNDEFINED

    def test_unsupported_target_raises(self):
        with pytest.raises(SchemaError):
            joist.string().cast("number")
        with pytest.raises(SchemaError):
            joist.number().cast("set")

    def test_false_removes_cast(self):
        schema = joist.number().cast("string").cast(False)
        assert "cast" not in schema._flags
        assert schema.validate(5).value == 5

    def test_round_trip(self):
        desc = joist.number().cast("string").describe()
        assert desc["flags"] == {"cast": "string"}
        assert joist.build(desc).validate(7).value == "7"
