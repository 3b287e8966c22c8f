"""Configuration loader that reads from config files and the environment."""

import copy
import logging
import os
from pathlib import Path
from typing import Any

import tomllib

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: dict[str, Any] = {
    "engine": {
        "name": "faster_whisper",
        "model": "base",
        "device": "auto",
        "compute_type": "auto",
        "threads": 0,
        "use_gpu": True,
        "flash_attention": False,
        "use_stub_engine": False,
    },
    "streaming": {
        "step_ms": 3000,
        "length_ms": 10000,
        "keep_ms": 200,
        "sample_rate": 16000,
        "latency_preset": None,
        "diff_strategy": "token",
        "keep_context": False,
        "full_session_redecode": False,
        "on_repetition_loop": "reset_context",
        "language": "auto",
        "decoding": {
            "beam_size": 1,
            "translate": False,
            "temperature_inc": 0.2,
            "disable_fallback": False,
            "max_tokens": 0,
            "audio_ctx": 0,
        },
        "vad": {
            "enabled": False,
            "threshold": 0.6,
            "freq_cutoff_hz": 100.0,
            "window_ms": 2000,
            "last_ms": 1000,
        },
    },
    "logging": {
        "level": "INFO",
        "console": False,
        "file": True,
        "dir": "",
        "filename": "streamscribe.log",
        "max_bytes": 10 * 1024 * 1024,
        "backup_count": 5,
        # Per-component levels, e.g. window = "DEBUG" to trace every diff
        "components": {},
    },
}

# (env var, dotted key, parser)
_ENV_OVERRIDES: tuple[tuple[str, str, str], ...] = (
    ("STREAMSCRIBE_ENGINE", "engine.name", "str"),
    ("STREAMSCRIBE_MODEL", "engine.model", "str"),
    ("STREAMSCRIBE_DEVICE", "engine.device", "str"),
    ("STREAMSCRIBE_THREADS", "engine.threads", "int"),
    ("STREAMSCRIBE_USE_GPU", "engine.use_gpu", "bool"),
    ("STREAMSCRIBE_FLASH_ATTENTION", "engine.flash_attention", "bool"),
    ("STREAMSCRIBE_USE_STUB_ENGINE", "engine.use_stub_engine", "bool"),
    ("STREAMSCRIBE_LANGUAGE", "streaming.language", "str"),
    ("STREAMSCRIBE_BEAM_SIZE", "streaming.decoding.beam_size", "int"),
    ("STREAMSCRIBE_LOG_LEVEL", "logging.level", "str"),
    ("STREAMSCRIBE_CONSOLE_LOGS", "logging.console", "bool"),
    ("STREAMSCRIBE_LOG_DIR", "logging.dir", "str"),
)

_TRUE_VALUES = {"1", "t", "true", "yes", "on"}
_FALSE_VALUES = {"0", "f", "false", "no", "off"}


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"Invalid value for {name}: {raw!r} (expected a boolean)")


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw.strip())
    except ValueError as e:
        raise ConfigurationError(f"Invalid value for {name}: {raw!r} (expected an integer)") from e


class ConfigLoader:
    """Load configuration from a TOML file, defaults and environment variables.

    Precedence, lowest first: ``DEFAULT_CONFIG``, the ``[streamscribe]`` table
    of the config file, ``STREAMSCRIBE_*`` environment variables.
    """

    def __init__(self, config_path: str | Path | None = None, environ: dict[str, str] | None = None) -> None:
        if config_path is None:
            config_path = self._default_config_path()

        self.config_file = str(config_path)
        config_path = Path(config_path)
        if config_path.exists():
            try:
                with open(config_path, "rb") as f:
                    full_config = tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                raise ConfigurationError(f"Invalid config file {config_path}: {e}") from e
            file_config = full_config.get("streamscribe", {})
        else:
            file_config = {}

        self._config = self._merge_dicts(copy.deepcopy(DEFAULT_CONFIG), file_config)
        self._apply_env_overrides(os.environ if environ is None else environ)
        self.validate()

    def _default_config_path(self) -> Path:
        env_path = os.environ.get("STREAMSCRIBE_CONFIG")
        if env_path:
            return Path(env_path)
        return Path.home() / ".streamscribe" / "config.toml"

    def _merge_dicts(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        merged = base.copy()
        for key, value in override.items():
            if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                merged[key] = self._merge_dicts(merged[key], value)
            else:
                merged[key] = value
        return merged

    def _apply_env_overrides(self, environ: dict[str, str] | os._Environ) -> None:
        for name, key_path, kind in _ENV_OVERRIDES:
            raw = environ.get(name)
            if raw is None or not raw.strip():
                continue
            if kind == "bool":
                value: Any = _parse_bool(name, raw)
            elif kind == "int":
                value = _parse_int(name, raw)
            else:
                value = raw.strip()
            self.set(key_path, value)
            logger.debug(f"Config override from {name}: {key_path}={value!r}")

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get a value using dot notation (e.g., 'streaming.vad.threshold')"""
        keys = key_path.split(".")
        value = self._config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set a value using dot notation, creating intermediate tables."""
        keys = key_path.split(".")
        node = self._config
        for key in keys[:-1]:
            child = node.get(key)
            if not isinstance(child, dict):
                child = {}
                node[key] = child
            node = child
        node[keys[-1]] = value

    def validate(self) -> None:
        """Reject out-of-range values."""
        if self.engine_threads < 0:
            raise ConfigurationError(f"engine.threads must be >= 0, got {self.engine_threads}")
        if self.beam_size < 1:
            raise ConfigurationError(f"streaming.decoding.beam_size must be >= 1, got {self.beam_size}")
        strategy = self.get("streaming.diff_strategy", "token")
        if strategy not in ("token", "text"):
            raise ConfigurationError(f"streaming.diff_strategy must be 'token' or 'text', got {strategy!r}")

    @property
    def engine_name(self) -> str:
        return str(self.get("engine.name", "faster_whisper"))

    @property
    def model_reference(self) -> str:
        return str(self.get("engine.model", "") or "")

    @property
    def engine_device(self) -> str:
        return str(self.get("engine.device", "auto"))

    @property
    def engine_compute_type(self) -> str:
        return str(self.get("engine.compute_type", "auto"))

    @property
    def engine_threads(self) -> int:
        return int(self.get("engine.threads", 0))

    @property
    def use_gpu(self) -> bool:
        return bool(self.get("engine.use_gpu", True))

    @property
    def flash_attention(self) -> bool:
        return bool(self.get("engine.flash_attention", False))

    @property
    def use_stub_engine(self) -> bool:
        return bool(self.get("engine.use_stub_engine", False))

    @property
    def beam_size(self) -> int:
        return int(self.get("streaming.decoding.beam_size", 1))

    @property
    def language(self) -> str:
        return str(self.get("streaming.language", "auto") or "auto")

    @property
    def sample_rate(self) -> int:
        return int(self.get("streaming.sample_rate", 16000))


# Global singleton instance
_config_loader: ConfigLoader | None = None


def get_config() -> ConfigLoader:
    """Get the global config loader instance"""
    global _config_loader
    if _config_loader is None:
        _config_loader = ConfigLoader()
    return _config_loader


def reset_config() -> None:
    """Drop the cached loader so the next get_config() re-reads files and env."""
    global _config_loader
    _config_loader = None

