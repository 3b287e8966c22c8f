"""Shared fixtures for unit tests.

Sessions are driven by ScriptedEngine, so no model is ever downloaded.
"""

import os
from types import SimpleNamespace

import numpy as np
import pytest

from streamscribe.core.config import ConfigLoader, reset_config
from streamscribe.core.logging import shutdown_logging
from streamscribe.transcription.engines.internal.dummy import ScriptedEngine
from streamscribe.transcription.streaming.config import StreamingConfig

SAMPLE_RATE = 16000


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep the user's home, config file and STREAMSCRIBE_* variables out of tests."""
    for name in list(os.environ):
        if name.startswith("STREAMSCRIBE_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("STREAMSCRIBE_CONFIG", str(tmp_path / "config.toml"))
    reset_config()
    yield
    shutdown_logging()
    reset_config()


@pytest.fixture
def loader(tmp_path):
    """Config loader with defaults only."""
    return ConfigLoader(config_path=tmp_path / "missing.toml", environ={})


@pytest.fixture
def fast_config():
    """1 s step, 3 s window, 200 ms keep: reset period 2."""
    return StreamingConfig(step_ms=1000, length_ms=3000, keep_ms=200)


@pytest.fixture
def make_engine():
    def _make(*outputs):
        engine = ScriptedEngine(outputs)
        engine.load()
        return engine

    return _make


def tone(seconds: float, freq: float = 440.0, amplitude: float = 0.5) -> np.ndarray:
    t = np.arange(int(seconds * SAMPLE_RATE)) / SAMPLE_RATE
    return (amplitude * np.sin(2 * np.pi * freq * t)).astype(np.float32)


def silence(seconds: float, level: float = 1e-4) -> np.ndarray:
    rng = np.random.default_rng(0)
    return (level * rng.standard_normal(int(seconds * SAMPLE_RATE))).astype(np.float32)


@pytest.fixture
def signals():
    """Signal generators: ``signals.tone(seconds)`` and ``signals.silence(seconds)``."""

    return SimpleNamespace(tone=tone, silence=silence)
