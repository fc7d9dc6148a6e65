import pytest

import joist
from joist import SchemaError
from conftest import codes


def tree():
    return joist.object_({
        "value": joist.number().required(),
        "children": joist.array().items(joist.lazy(tree)),
    })


def test_recursive_structure():
    result = tree().validate({"value": 1, "children": [{"value": "2", "children": [{"value": 3}]}]})
    assert result.value == {"value": 1, "children": [{"value": 2, "children": [{"value": 3}]}]}


def test_recursive_errors_carry_full_path():
    result = tree().validate({"value": 1, "children": [{"children": []}]})
    assert codes(result) == ["any.required"]
    assert result.error.details[0].path == ["children", 0, "value"]


def test_generator_runs_once_by_default():
    calls = []

    def generate():
        calls.append(1)
        return joist.number()

    schema = joist.lazy(generate)
    schema.validate(1)
    schema.validate(2)
    assert len(calls) == 1


def test_generator_runs_every_time_without_once():
    calls = []

    def generate():
        calls.append(1)
        return joist.number()

    schema = joist.lazy(generate, once=False)
    schema.validate(1)
    schema.validate(2)
    assert len(calls) == 2


def test_unset_lazy():
    assert codes(joist.LazySchema().validate(1)) == ["lazy.base"]


def test_generator_must_return_schema():
    assert codes(joist.lazy(lambda: "nope").validate(1)) == ["lazy.schema"]


def test_failing_generator():
    def generate():
        raise RuntimeError("broken")

    assert codes(joist.lazy(generate).validate(1)) == ["lazy.schema"]


def test_cannot_be_rebuilt_from_description():
    desc = joist.describe(joist.lazy(tree))
    assert desc["flags"]["lazy"] == {"function": "tree"}
    with pytest.raises(SchemaError):
        joist.build(desc)


def test_requires_callable():
    with pytest.raises(SchemaError):
        joist.lazy("tree")
