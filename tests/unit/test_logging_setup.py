"""Unit tests for package logging configuration."""

import logging
from logging.handlers import QueueHandler

import pytest

from streamscribe.core.config import ConfigLoader
from streamscribe.core.errors import ConfigurationError
from streamscribe.core.logging import (
    PACKAGE_LOGGER,
    LoggingSettings,
    configure_logging,
    shutdown_logging,
)
from streamscribe.transcription.engines.internal.dummy import ScriptedEngine
from streamscribe.transcription.streaming.factory import create_session

SESSION_LOGGER = "streamscribe.transcription.streaming.session"
CONTEXT_LOGGER = "streamscribe.transcription.streaming.context"


def queue_handlers():
    return [h for h in logging.getLogger(PACKAGE_LOGGER).handlers if isinstance(h, QueueHandler)]


class TestLoggingSettings:
    """Test reading the logging table."""

    def test_defaults(self, loader, tmp_path):
        settings = LoggingSettings.from_config(loader)
        assert settings.level == logging.INFO
        assert settings.file is True
        assert settings.console is False
        assert settings.directory == tmp_path / ".streamscribe" / "logs"
        assert settings.components == {}

    def test_environment_overrides(self, tmp_path):
        config = ConfigLoader(
            config_path=tmp_path / "missing.toml",
            environ={
                "STREAMSCRIBE_LOG_LEVEL": "debug",
                "STREAMSCRIBE_CONSOLE_LOGS": "yes",
                "STREAMSCRIBE_LOG_DIR": str(tmp_path / "custom"),
            },
        )
        settings = LoggingSettings.from_config(config)
        assert settings.level == logging.DEBUG
        assert settings.console is True
        assert settings.directory == tmp_path / "custom"

    def test_component_levels(self, loader):
        loader.set("logging.components", {"window": "debug", "inference": "ERROR"})
        settings = LoggingSettings.from_config(loader)
        assert settings.components == {"window": logging.DEBUG, "inference": logging.ERROR}

    def test_invalid_level(self, loader):
        loader.set("logging.level", "chatty")
        with pytest.raises(ConfigurationError):
            LoggingSettings.from_config(loader)

    def test_unknown_component(self, loader):
        loader.set("logging.components", {"decoder": "DEBUG"})
        with pytest.raises(ConfigurationError):
            LoggingSettings.from_config(loader)


class TestConfigureLogging:
    """Test the queue-backed sink and level wiring."""

    def test_file_sink_receives_module_records(self, loader, tmp_path):
        loader.set("logging.dir", str(tmp_path / "logs"))
        configure_logging(loader)

        logging.getLogger(SESSION_LOGGER).info("session created")
        shutdown_logging()

        content = (tmp_path / "logs" / "streamscribe.log").read_text()
        assert f"{SESSION_LOGGER} - INFO - session created" in content

    def test_component_level_overrides_package_level(self, loader):
        loader.set("logging.level", "WARNING")
        loader.set("logging.components", {"window": "DEBUG"})
        configure_logging(loader)

        assert logging.getLogger(CONTEXT_LOGGER).isEnabledFor(logging.DEBUG)
        assert not logging.getLogger(SESSION_LOGGER).isEnabledFor(logging.INFO)

    def test_repeated_calls_share_one_sink(self, loader):
        configure_logging(loader)
        configure_logging(loader)
        assert len(queue_handlers()) == 1
        assert logging.getLogger(PACKAGE_LOGGER).propagate is False

    def test_no_sinks_leaves_propagation(self, loader):
        loader.set("logging.file", False)
        loader.set("logging.console", False)
        configure_logging(loader)
        assert queue_handlers() == []
        assert logging.getLogger(PACKAGE_LOGGER).propagate is True

    def test_shutdown_restores_loggers(self, loader):
        loader.set("logging.components", {"window": "DEBUG"})
        configure_logging(loader)
        shutdown_logging()

        assert queue_handlers() == []
        assert logging.getLogger(PACKAGE_LOGGER).propagate is True
        assert logging.getLogger(CONTEXT_LOGGER).level == logging.NOTSET

    def test_create_session_configures_logging(self, loader, tmp_path):
        session = create_session(engine=ScriptedEngine(), config=loader, session_id="logged")
        session.close()
        shutdown_logging()

        content = (tmp_path / ".streamscribe" / "logs" / "streamscribe.log").read_text()
        assert "StreamingSession created: logged" in content
        assert "StreamingSession closed: logged" in content
