"""Tests for settings loading."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from event_emitter.config import LoggingSettings, Settings


class TestSettings:
    """Test settings sources and defaults."""

    def test_defaults(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        for name in [
            "EVENT_EMITTER_LOG_DROPPED_ERRORS",
            "EVENT_EMITTER_LOGGING__LEVEL",
            "EVENT_EMITTER_LOGGING__STREAM",
            "EVENT_EMITTER_LOGGING__LOGS_DIR",
        ]:
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.log_dropped_errors is False
        assert settings.logging == LoggingSettings()
        assert settings.logging.level == "INFO"
        assert settings.logging.stream is True
        assert settings.logging.logs_dir is None

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("EVENT_EMITTER_LOG_DROPPED_ERRORS", "true")
        monkeypatch.setenv("EVENT_EMITTER_LOGGING__LEVEL", "DEBUG")
        monkeypatch.setenv("EVENT_EMITTER_LOGGING__LOGS_DIR", "/var/log/emitter")

        settings = Settings(_env_file=None)

        assert settings.log_dropped_errors is True
        assert settings.logging.level == "DEBUG"
        assert settings.logging.logs_dir == Path("/var/log/emitter")

    def test_init_args_take_priority(self, monkeypatch):
        monkeypatch.setenv("EVENT_EMITTER_LOG_DROPPED_ERRORS", "true")

        settings = Settings(_env_file=None, log_dropped_errors=False)

        assert settings.log_dropped_errors is False

    def test_toml_file(self, monkeypatch, tmp_path):
        config_file = tmp_path / "event_emitter.toml"
        config_file.write_text(
            'log_dropped_errors = true\n\n[logging]\nlevel = "WARNING"\nstream = false\n'
        )
        monkeypatch.delenv("EVENT_EMITTER_LOG_DROPPED_ERRORS", raising=False)
        monkeypatch.delenv("EVENT_EMITTER_LOGGING__LEVEL", raising=False)
        monkeypatch.delenv("EVENT_EMITTER_LOGGING__STREAM", raising=False)

        class FileSettings(Settings):
            model_config = {**Settings.model_config, "toml_file": config_file}

        settings = FileSettings(_env_file=None)

        assert settings.log_dropped_errors is True
        assert settings.logging.level == "WARNING"
        assert settings.logging.stream is False

    def test_level_is_case_insensitive(self):
        assert LoggingSettings(level="debug").level == "DEBUG"
        assert LoggingSettings(level="Warning").level == "WARNING"

    def test_unknown_level_rejected(self):
        with pytest.raises(ValidationError, match="level"):
            LoggingSettings(level="verbose")

    def test_unknown_level_from_env_rejected(self, monkeypatch):
        monkeypatch.setenv("EVENT_EMITTER_LOGGING__LEVEL", "verbose")

        with pytest.raises(ValidationError, match="level"):
            Settings(_env_file=None)
