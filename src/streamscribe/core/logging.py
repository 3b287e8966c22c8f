"""Logging configuration for streamscribe.

Modules log through plain ``logging.getLogger(__name__)`` loggers and never
configure anything themselves. ``configure_logging()`` is the single place
that does: it reads the ``[streamscribe.logging]`` table, attaches one
queue-backed sink to the ``streamscribe`` package logger and sets levels per
component, so per-window diff tracing can be switched on without flooding the
rest of the output. ``create_session()`` calls it; applications that embed
the package may call it earlier with their own settings.

Components:
- session: session lifecycle (create, flush, close) and the async wrapper
- window: accumulation, context refresh, diffing and the VAD gate
- inference: engine calls, timings and engine loading
"""

import atexit
import logging
import sys
import threading
from dataclasses import dataclass, field
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
from pathlib import Path
from queue import SimpleQueue

from .config import ConfigLoader, get_config
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

PACKAGE_LOGGER = "streamscribe"

COMPONENT_LOGGERS: dict[str, tuple[str, ...]] = {
    "session": (
        "streamscribe.transcription.streaming.session",
        "streamscribe.transcription.streaming.async_session",
        "streamscribe.transcription.streaming.factory",
    ),
    "window": (
        "streamscribe.transcription.streaming.buffer",
        "streamscribe.transcription.streaming.context",
        "streamscribe.transcription.streaming.language",
        "streamscribe.transcription.streaming.strategies",
        "streamscribe.audio",
    ),
    "inference": (
        "streamscribe.transcription.streaming.inference",
        "streamscribe.transcription.engines",
    ),
}

_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_SINK_LOCK = threading.Lock()
_LISTENER: QueueListener | None = None
_QUEUE_HANDLER: QueueHandler | None = None
_ATEXIT_REGISTERED = False


def parse_level(setting: str, key: str = "logging.level") -> int:
    """Turn "debug"/"INFO"/... into a logging level number."""
    level = logging.getLevelName(str(setting).strip().upper())
    if not isinstance(level, int):
        raise ConfigurationError(f"Invalid log level for {key}: {setting!r}")
    return level


@dataclass(frozen=True)
class LoggingSettings:
    """The ``[streamscribe.logging]`` table, validated."""

    level: int = logging.INFO
    console: bool = False
    file: bool = True
    directory: Path = field(default_factory=lambda: Path.home() / ".streamscribe" / "logs")
    filename: str = "streamscribe.log"
    max_bytes: int = 10 * 1024 * 1024
    backup_count: int = 5
    components: dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_config(cls, config: ConfigLoader) -> "LoggingSettings":
        table = config.get("logging", {}) or {}

        components = {}
        for name, setting in (table.get("components") or {}).items():
            if name not in COMPONENT_LOGGERS:
                raise ConfigurationError(
                    f"Unknown logging component {name!r}; expected one of {sorted(COMPONENT_LOGGERS)}"
                )
            components[name] = parse_level(setting, f"logging.components.{name}")

        directory = str(table.get("dir") or "").strip()
        return cls(
            level=parse_level(table.get("level", "INFO")),
            console=bool(table.get("console", False)),
            file=bool(table.get("file", True)),
            directory=Path(directory).expanduser() if directory else Path.home() / ".streamscribe" / "logs",
            filename=str(table.get("filename") or "streamscribe.log"),
            max_bytes=max(0, int(table.get("max_bytes", 10 * 1024 * 1024))),
            backup_count=max(0, int(table.get("backup_count", 5))),
            components=components,
        )


def _build_handlers(settings: LoggingSettings) -> list[logging.Handler]:
    formatter = logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT)
    handlers: list[logging.Handler] = []

    if settings.file:
        try:
            settings.directory.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                settings.directory / settings.filename,
                maxBytes=settings.max_bytes,
                backupCount=settings.backup_count,
            )
        except OSError as e:
            # An unwritable log directory must not prevent transcription
            logger.warning(f"File logging disabled, cannot open {settings.directory}: {e}")
        else:
            handlers.append(file_handler)

    if settings.console:
        handlers.append(logging.StreamHandler(sys.stderr))

    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def _apply_levels(settings: LoggingSettings) -> None:
    logging.getLogger(PACKAGE_LOGGER).setLevel(settings.level)
    for component, logger_names in COMPONENT_LOGGERS.items():
        level = settings.components.get(component, logging.NOTSET)
        for name in logger_names:
            logging.getLogger(name).setLevel(level)


def configure_logging(config: ConfigLoader | None = None) -> logging.Logger:
    """Configure the ``streamscribe`` logger from config. Safe to call repeatedly.

    The first call that yields at least one sink installs it; later calls
    only re-apply levels, so every session shares the same file and queue.

    Args:
        config: Config loader (the global loader if None)

    Returns:
        The package logger

    Raises:
        ConfigurationError: If a level or component name is invalid

    """
    global _LISTENER, _QUEUE_HANDLER, _ATEXIT_REGISTERED

    settings = LoggingSettings.from_config(config or get_config())
    _apply_levels(settings)
    package_logger = logging.getLogger(PACKAGE_LOGGER)

    with _SINK_LOCK:
        if _QUEUE_HANDLER is not None:
            return package_logger

        handlers = _build_handlers(settings)
        if not handlers:
            return package_logger

        queue: SimpleQueue = SimpleQueue()
        _LISTENER = QueueListener(queue, *handlers)
        _LISTENER.start()
        _QUEUE_HANDLER = QueueHandler(queue)
        package_logger.addHandler(_QUEUE_HANDLER)
        package_logger.propagate = False
        if not _ATEXIT_REGISTERED:
            atexit.register(shutdown_logging)
            _ATEXIT_REGISTERED = True

    package_logger.debug(
        f"Logging configured: level={logging.getLevelName(settings.level)}, "
        f"sinks={[type(h).__name__ for h in handlers]}"
    )
    return package_logger


def shutdown_logging() -> None:
    """Detach the sink, flush queued records, close the handlers and clear levels."""
    global _LISTENER, _QUEUE_HANDLER

    with _SINK_LOCK:
        package_logger = logging.getLogger(PACKAGE_LOGGER)
        if _QUEUE_HANDLER is not None:
            package_logger.removeHandler(_QUEUE_HANDLER)
            package_logger.propagate = True
            _QUEUE_HANDLER = None
        package_logger.setLevel(logging.NOTSET)
        for logger_names in COMPONENT_LOGGERS.values():
            for name in logger_names:
                logging.getLogger(name).setLevel(logging.NOTSET)
        if _LISTENER is not None:
            _LISTENER.stop()
            for handler in _LISTENER.handlers:
                handler.close()
            _LISTENER = None


__all__ = ["COMPONENT_LOGGERS", "LoggingSettings", "configure_logging", "parse_level", "shutdown_logging"]
