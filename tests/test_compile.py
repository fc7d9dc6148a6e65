import re
from datetime import datetime, timezone

import pytest

import joist
from joist import UNDEFINED, SchemaError
from conftest import codes


def test_schemas_pass_through():
    schema = joist.string()
    assert joist.compile(schema) is schema
    assert joist.compile([schema]) is schema


def test_literals_become_valid_sets():
    schema = joist.compile("a")
    assert schema.type == "any"
    assert schema.validate("a").error is None
    assert codes(schema.validate("b")) == ["any.allowOnly"]


def test_literal_lists():
    schema = joist.compile(["a", 1, None])
    assert schema.type == "any"
    assert schema.validate(None).error is None
    assert codes(schema.validate(True)) == ["any.allowOnly"]


def test_mixed_lists_become_alternatives():
    schema = joist.compile(["a", joist.number()])
    assert schema.type == "alternatives"
    assert schema.validate("5").value == 5


def test_dicts_become_objects():
    schema = joist.compile({"a": joist.number(), "b": {"c": "x"}})
    assert schema.type == "object"
    assert schema.validate({"a": "1", "b": {"c": "x"}}).value == {"a": 1, "b": {"c": "x"}}
    result = schema.validate({"b": {"c": "y"}})
    assert result.error.details[0].path == ["b", "c"]


def test_regex_becomes_string_pattern():
    schema = joist.compile(re.compile(r"^\d+$"))
    assert schema.type == "string"
    assert codes(schema.validate("a1")) == ["string.pattern.base"]


def test_datetimes_become_date_valids():
    moment = datetime(2020, 1, 1, tzinfo=timezone.utc)
    schema = joist.compile(moment)
    assert schema.type == "date"
    assert schema.validate("2020-01-01T00:00:00Z").value == moment


def test_references_become_valid_refs():
    schema = joist.object_({"a": joist.any_(), "b": joist.ref("a")})
    assert schema.validate({"a": 1, "b": 1}).error is None
    assert codes(schema.validate({"a": 1, "b": 2})) == ["any.allowOnly"]


@pytest.mark.parametrize("config", [UNDEFINED, [], object()])
def test_invalid_configs(config):
    with pytest.raises(SchemaError):
        joist.compile(config)


def test_module_level_validate_and_attempt():
    assert joist.validate("1", joist.number()).value == 1
    assert not joist.validate("x", joist.number()).is_valid
    assert joist.attempt("1", joist.number()) == 1
    with pytest.raises(joist.ValidationError):
        joist.attempt("x", joist.number())
