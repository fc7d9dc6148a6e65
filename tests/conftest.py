import pytest

import joist
from joist.config import get_settings
from joist.validation import preferences


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    """Isolate tests from JOIST_* variables in the environment."""
    for name in ("JOIST_ABORT_EARLY", "JOIST_CONVERT", "JOIST_ALLOW_UNKNOWN", "JOIST_PRESENCE", "JOIST_LOG_LEVEL",
                 "JOIST_LOG_JSON"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    preferences.defaults.cache_clear()
    yield
    get_settings.cache_clear()
    preferences.defaults.cache_clear()


@pytest.fixture
def user_schema():
    return joist.object_({
        "username": joist.string().alphanum().min(3).max(30).required(),
        "birth_year": joist.number().integer().min(1900).max(2013),
        "email": joist.string(),
    })


def codes(result) -> list[str]:
    """Error codes of a ValidationResult, in report order."""
    if result.error is None: return []
    return [detail.type for detail in result.error.details]
