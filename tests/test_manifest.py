import json
import re
from datetime import datetime, timezone

import pytest

import joist
from joist import SchemaError
from conftest import codes


@pytest.fixture
def account_schema():
    return joist.object_({
        "name": joist.string().trim().min(3).required().label("Name"),
        "age": joist.number().integer().min(0).default(18),
        "tags": joist.array().items(joist.string()).unique().max(5),
        "role": joist.valid("admin", "user"),
        "code": re.compile(r"^[A-Z]{3}$"),
        "limit": joist.alternatives().conditional("role", is_="admin", then=joist.number(), otherwise=joist.forbidden()),
        "since": joist.date().min("2020-01-01T00:00:00Z"),
        "avatar": joist.binary().encoding("base64").allow(None),
    }).rename("fullName", "name").with_("limit", "role").pattern(r"^x_", joist.any_()).note("account payload")


class TestDescribe:
    def test_minimal(self):
        assert joist.describe(joist.string()) == {"type": "string"}

    def test_flags_rules_and_values(self):
        desc = joist.number().min(1).required().allow(None).describe()
        assert desc == {
            "type": "number",
            "flags": {"presence": "required"},
            "allow": [None],
            "rules": [{"name": "min", "method": "compare", "args": {"limit": 1}, "operator": ">="}],
        }

    def test_removed_default_invalids_appear_in_allow(self):
        assert joist.string().allow("").describe()["allow"] == [""]

    def test_special_values_are_wrapped(self):
        desc = joist.any_().valid(float("nan"), datetime(2020, 1, 1, tzinfo=timezone.utc), b"ab").describe()
        assert desc["allow"] == [
            {"special": "nan"},
            {"date": "2020-01-01T00:00:00+00:00"},
            {"buffer": "YWI="},
        ]

    def test_references(self):
        desc = joist.number().max(joist.ref("$limit")).describe()
        assert desc["rules"][0]["args"]["limit"] == {"ref": {"path": ["limit"], "type": "global"}}

    def test_message_and_preferences(self):
        desc = joist.string().min(2).message("short").prefs(convert=False).describe()
        assert desc["preferences"] == {"convert": False}
        assert desc["rules"][0]["message"] == "short"

    def test_description_is_json_serializable(self, account_schema):
        json.dumps(joist.describe(account_schema))

    def test_object_terms(self, account_schema):
        desc = account_schema.describe()
        assert list(desc["keys"])[:2] == ["name", "age"]
        assert desc["renames"] == [{"from": "fullName", "to": "name", "options": {}}]
        assert desc["dependencies"] == [{"type": "with", "peers": ["role"], "key": "limit"}]
        assert desc["notes"] == ["account payload"]


class TestBuild:
    def test_round_trip(self, account_schema):
        desc = joist.describe(account_schema)
        rebuilt = joist.build(desc)
        assert joist.describe(rebuilt) == desc

    def test_round_trip_through_json(self, account_schema):
        desc = json.loads(json.dumps(joist.describe(account_schema)))
        rebuilt = joist.build(desc)
        payload = {"fullName": " Alice ", "role": "admin", "limit": "5", "code": "ABC", "since": "2021-01-01"}
        expected = account_schema.validate(payload)
        actual = rebuilt.validate(payload)
        assert actual.value == expected.value
        assert actual.value["name"] == "Alice"
        assert actual.value["age"] == 18
        assert codes(rebuilt.validate({"name": "Bob", "role": "user", "limit": 1})) == ["any.unknown"]

    def test_preferences_and_messages_survive(self):
        schema = joist.string().min(2).message("short").prefs(convert=False)
        rebuilt = joist.build(schema.describe())
        assert rebuilt.validate("a").error.message == "short"
        assert codes(rebuilt.validate(1)) == ["string.base"]

    def test_alternatives_round_trip(self):
        schema = joist.alternatives(joist.number(), joist.string().max(2)).match("one")
        rebuilt = joist.build(schema.describe())
        assert codes(rebuilt.validate(True)) == ["alternatives.any"]
        assert rebuilt.validate("ab").error is None

    def test_unknown_type(self):
        with pytest.raises(SchemaError):
            joist.build({"type": "money"})

    def test_unknown_flag(self):
        with pytest.raises(SchemaError):
            joist.build({"type": "string", "flags": {"shouty": True}})

    def test_malformed_description(self):
        with pytest.raises(SchemaError):
            joist.build({"flags": {}})
        with pytest.raises(SchemaError):
            joist.build({"type": "string", "rules": [{"name": "min", "bogus": 1}]})

    def test_unexpected_terms(self):
        with pytest.raises(SchemaError):
            joist.build({"type": "number", "keys": {}})

    def test_functions_cannot_be_rebuilt(self):
        desc = joist.number().custom(lambda value, helpers: value).describe()
        with pytest.raises(SchemaError):
            joist.build(desc)

    def test_tuples_stay_tuples(self):
        schema = joist.any_().valid((1, 2))
        desc = schema.describe()
        assert desc["allow"] == [{"tuple": [1, 2]}]
        rebuilt = joist.build(json.loads(json.dumps(desc)))
        assert rebuilt.validate((1, 2)).error is None
        assert codes(rebuilt.validate([1, 2])) == ["any.allowOnly"]


def outcomes(schema, samples):
    return [(result.value, codes(result)) for result in (schema.validate(sample) for sample in samples)]


class TestRebuiltBehaviour:
    def test_ordered_array(self):
        schema = joist.array().ordered(joist.string(), joist.number())
        samples = [["a", 1], ["a"], ["a", "1"], [1, "a"], ["a", 1, 2], [], "x", None]
        rebuilt = joist.build(json.loads(json.dumps(schema.describe())))
        assert outcomes(rebuilt, samples) == outcomes(schema, samples)
        assert codes(rebuilt.validate(["a", 1, 2])) == ["array.orderedLength"]

    def test_ordered_array_with_items(self):
        schema = joist.array().ordered(joist.string().required(), joist.number()).items(joist.boolean())
        samples = [["a", 1, True], ["a", 1, "x"], ["a"], [True], ["a", 1, True, False]]
        rebuilt = joist.build(json.loads(json.dumps(schema.describe())))
        assert outcomes(rebuilt, samples) == outcomes(schema, samples)

    def test_patterned_string_with_length(self):
        schema = joist.string().pattern(re.compile(r"^[a-z]+\d*$"), name="slug").min(2).max(6)
        samples = ["ab", "a", "abcdefg", "ab12", "AB", "ab-1", "", 12, None]
        rebuilt = joist.build(json.loads(json.dumps(schema.describe())))
        assert outcomes(rebuilt, samples) == outcomes(schema, samples)
        assert codes(rebuilt.validate("AB")) == ["string.pattern.name"]
        assert codes(rebuilt.validate("abcdefg")) == ["string.max"]
