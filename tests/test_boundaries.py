from typing import Annotated

import pytest
from pydantic import BaseModel, ValidationError as PydanticValidationError

import joist
from joist import Err, ErrorCode, Ok
from joist.validation import Validated
from joist.validation.boundaries import BoundaryValidator


class TestParse:
    def test_ok(self, user_schema):
        result = joist.parse(user_schema, {"username": "alice", "birth_year": "1990"})
        assert result == Ok({"username": "alice", "birth_year": 1990})

    def test_err_carries_every_failure(self, user_schema):
        result = joist.parse(user_schema, {"username": "a!", "birth_year": 1800}, abort_early=False)
        match result:
            case Err(error):
                assert error.code is ErrorCode.STRING_ALPHANUM
                assert error.origin == "ingress"
                assert error.metadata["error_count"] == 3
                assert [e["type"] for e in error.metadata["errors"]] == ["string.alphanum", "string.min", "number.min"]
            case Ok(_):
                pytest.fail("expected an error")

    def test_custom_codes_fall_back(self):
        schema = joist.number().custom(lambda value, helpers: helpers.error("money.negative"))
        match joist.parse(schema, 1):
            case Err(error):
                assert error.code is ErrorCode.ANY_CUSTOM
            case Ok(_):
                pytest.fail("expected an error")

    def test_validator_is_reusable(self):
        validator = BoundaryValidator(joist.number(), convert=False)
        assert validator.parse(1) == Ok(1)
        assert validator.parse("1").is_err()
        assert validator.parse("1", origin="queue").error.origin == "queue"


class TestParseBatch:
    def test_all_valid(self):
        assert joist.parse_batch(joist.number(), ["1", 2]) == Ok([1, 2])

    def test_errors_are_indexed(self):
        result = joist.parse_batch(joist.number(), [1, "x", 3, "y"])
        errors = result.unwrap_err()
        assert [idx for idx, _ in errors] == [1, 3]
        assert errors[0][1].metadata["index"] == 1
        assert errors[0][1].origin == "batch"

    def test_max_errors(self):
        result = joist.parse_batch(joist.number(), ["a", "b", "c"], max_errors=2)
        assert len(result.unwrap_err()) == 2


class Signup(BaseModel):
    username: Annotated[str, Validated(joist.string().trim().lowercase().min(3).description("Login name"))]
    age: Annotated[int, Validated(joist.number().integer().min(13))]
    tags: Annotated[list[str], Validated(joist.array().items(joist.string()).unique())] = []


class TestValidated:
    def test_conversions_reach_the_model(self):
        signup = Signup(username="  Alice ", age="21")
        assert signup.username == "alice"
        assert signup.age == 21

    def test_failures_become_pydantic_errors(self):
        with pytest.raises(PydanticValidationError) as excinfo:
            Signup(username="al", age=21, tags=["a", "a"])
        messages = [error["msg"] for error in excinfo.value.errors()]
        assert messages == [
            'Value error, "value" length must be at least 3 characters long',
            'Value error, "[1]" contains a duplicate value',
        ]

    def test_preferences(self):
        class Strict(BaseModel):
            count: Annotated[int, Validated(joist.number(), convert=False)]

        with pytest.raises(PydanticValidationError):
            Strict(count="1")

    def test_json_schema_description(self):
        properties = Signup.model_json_schema()["properties"]
        assert properties["username"]["description"] == "Login name"
        assert "description" not in properties["age"]
