"""streamscribe - incremental speech-to-text over a continuous audio stream."""

from importlib import metadata
from importlib import import_module
from pathlib import Path
import tomllib
from typing import TYPE_CHECKING


def _get_version() -> str:
    try:
        return metadata.version("streamscribe")
    except Exception:
        pass

    try:
        pyproject_path = Path(__file__).resolve().parents[2] / "pyproject.toml"
        with open(pyproject_path, "rb") as f:
            data = tomllib.load(f)
        return str(data["project"]["version"])
    except Exception:
        return "unknown"


__version__ = _get_version()

if TYPE_CHECKING:
    from .core.config import ConfigLoader, get_config
    from .transcription.engines import get_available_engines, get_engine_class
    from .transcription.streaming import (
        AsyncStreamingSession,
        StreamingConfig,
        StreamingSession,
        StreamResult,
        create_session,
    )

_LAZY_EXPORTS = {
    "ConfigLoader": (".core.config", "ConfigLoader"),
    "get_config": (".core.config", "get_config"),
    "get_engine_class": (".transcription.engines", "get_engine_class"),
    "get_available_engines": (".transcription.engines", "get_available_engines"),
    "AsyncStreamingSession": (".transcription.streaming", "AsyncStreamingSession"),
    "StreamingConfig": (".transcription.streaming", "StreamingConfig"),
    "StreamingSession": (".transcription.streaming", "StreamingSession"),
    "StreamResult": (".transcription.streaming", "StreamResult"),
    "create_session": (".transcription.streaming", "create_session"),
}


def __getattr__(name):
    if name in {"audio", "core", "transcription"}:
        module = import_module(f".{name}", __name__)
        globals()[name] = module
        return module

    if name not in _LAZY_EXPORTS:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    module_name, attr_name = _LAZY_EXPORTS[name]
    module = import_module(module_name, __name__)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value


__all__ = [
    "ConfigLoader",
    "get_config",
    "get_engine_class",
    "get_available_engines",
    "AsyncStreamingSession",
    "StreamingConfig",
    "StreamingSession",
    "StreamResult",
    "create_session",
]
