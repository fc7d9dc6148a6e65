import logging

import pytest
import structlog
from structlog.testing import capture_logs

import joist
from joist.config import Settings, get_settings
from joist.logging import LoggerRegistry, bind_context, clear_context, configure_logging, schema_logger
from joist.validation import preferences
from conftest import codes


@pytest.fixture
def fresh_logging():
    """Restore structlog and the library logger after a test configures them."""
    lib_logger = logging.getLogger("joist")
    saved = (list(lib_logger.handlers), lib_logger.level, lib_logger.propagate)
    LoggerRegistry._loggers.clear()
    yield lib_logger
    lib_logger.handlers, lib_logger.level, lib_logger.propagate = saved
    structlog.reset_defaults()
    LoggerRegistry._loggers.clear()
    clear_context()


def reload_settings():
    get_settings.cache_clear()
    preferences.defaults.cache_clear()


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.default_preferences() == {
            "abort_early": True,
            "convert": True,
            "allow_unknown": False,
            "presence": "optional",
        }
        assert settings.LOG_LEVEL == "WARNING"

    def test_environment_changes_default_preferences(self, monkeypatch):
        monkeypatch.setenv("JOIST_ABORT_EARLY", "false")
        monkeypatch.setenv("JOIST_PRESENCE", "required")
        reload_settings()
        schema = joist.object_({"a": joist.number(), "b": joist.number()})
        assert codes(schema.validate({})) == ["any.required", "any.required"]

    def test_environment_disables_conversion(self, monkeypatch):
        monkeypatch.setenv("JOIST_CONVERT", "0")
        reload_settings()
        assert codes(joist.number().validate("1")) == ["number.base"]

    def test_call_options_override_settings(self, monkeypatch):
        monkeypatch.setenv("JOIST_ALLOW_UNKNOWN", "true")
        reload_settings()
        schema = joist.object_({"a": joist.number()})
        assert schema.validate({"b": 1}).error is None
        assert codes(schema.validate({"b": 1}, allow_unknown=False)) == ["object.allowUnknown"]

    def test_invalid_preferences_raise(self):
        with pytest.raises(joist.SchemaError):
            joist.number().validate(1, presence="sometimes")
        with pytest.raises(joist.SchemaError):
            joist.number().prefs(colour="blue")


class TestLogging:
    def test_configure_sets_library_logger(self, fresh_logging):
        configure_logging("debug", json_logs=True)
        assert fresh_logging.level == logging.DEBUG
        assert fresh_logging.propagate is False
        assert len(fresh_logging.handlers) == 1

    def test_configure_reads_settings(self, fresh_logging, monkeypatch):
        monkeypatch.setenv("JOIST_LOG_LEVEL", "ERROR")
        reload_settings()
        configure_logging()
        assert fresh_logging.level == logging.ERROR

    def test_registry_reuses_loggers(self, fresh_logging):
        assert schema_logger() is schema_logger()
        assert LoggerRegistry.get("validation") is not schema_logger()

    def test_schema_construction_is_logged(self, fresh_logging):
        with capture_logs() as logs:
            joist.build({"type": "string"})
        assert {"event": "schema_built", "log_level": "debug", "schema_type": "string", "rules": 0, "flags": 0} in logs

    def test_context_binding(self, fresh_logging):
        bind_context(request_id="abc")
        assert structlog.contextvars.get_contextvars() == {"request_id": "abc"}
        clear_context()
        assert structlog.contextvars.get_contextvars() == {}

    def test_failed_validation_writes_nothing_before_configuration(self, fresh_logging, capsys):
        fresh_logging.setLevel(logging.NOTSET)
        assert not joist.number().validate("x").is_valid
        assert capsys.readouterr().out == ""
        assert fresh_logging.level == logging.WARNING

    def test_unconfigured_debug_level_still_writes_nothing(self, fresh_logging, capsys, monkeypatch):
        monkeypatch.setenv("JOIST_LOG_LEVEL", "DEBUG")
        reload_settings()
        fresh_logging.setLevel(logging.NOTSET)
        assert not joist.number().validate("x").is_valid
        assert fresh_logging.level == logging.DEBUG
        assert capsys.readouterr().out == ""
