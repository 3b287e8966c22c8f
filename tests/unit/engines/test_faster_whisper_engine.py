#!/usr/bin/env python3
"""Unit tests for FasterWhisperEngine.

These tests mock the underlying faster-whisper library to verify
the engine wrapper logic works correctly.
"""

import math
import sys
from types import SimpleNamespace
from unittest.mock import MagicMock, Mock, patch

import numpy as np
import pytest

from streamscribe.core.errors import ConfigurationError
from streamscribe.transcription.engines.base import InferenceParams, SamplingStrategy

EOT = 50257
PIECES = {1: " hello", 2: " world", 3: " again"}


@pytest.fixture
def faster_whisper_module():
    """Mocked faster_whisper and faster_whisper.tokenizer modules."""
    module = MagicMock()
    tokenizer_module = MagicMock()

    tokenizer = Mock()
    tokenizer.eot = EOT
    tokenizer.decode = Mock(side_effect=lambda ids: "".join(PIECES.get(i, "") for i in ids if i < EOT))
    tokenizer_module.Tokenizer.return_value = tokenizer

    with patch.dict(sys.modules, {"faster_whisper": module, "faster_whisper.tokenizer": tokenizer_module}):
        yield module


def _segment(text, tokens, avg_logprob=-0.1):
    return SimpleNamespace(text=text, tokens=tokens, avg_logprob=avg_logprob)


@pytest.fixture
def mock_whisper_model(faster_whisper_module):
    """Mock WhisperModel instance returned by the mocked module."""
    model = Mock()
    model.model.is_multilingual = True
    info = Mock()
    info.language = "en"
    model.transcribe.return_value = (iter([_segment(" hello world", [50364, 1, 2, EOT])]), info)
    faster_whisper_module.WhisperModel.return_value = model
    return model


def _engine(**kwargs):
    from streamscribe.transcription.engines.internal.faster_whisper import FasterWhisperEngine

    kwargs.setdefault("device", "cpu")
    return FasterWhisperEngine("base", **kwargs)


class TestFasterWhisperEngine:
    """Test suite for FasterWhisperEngine implementation."""

    def test_blank_model_reference_rejected(self):
        from streamscribe.transcription.engines.internal.faster_whisper import FasterWhisperEngine

        with pytest.raises(ConfigurationError):
            FasterWhisperEngine("   ")

    def test_is_ready_before_load(self, faster_whisper_module):
        engine = _engine()
        assert engine.is_ready is False
        with pytest.raises(RuntimeError):
            engine.run(np.zeros(16000, dtype=np.float32), InferenceParams())

    def test_load_uses_device_and_compute_type(self, faster_whisper_module, mock_whisper_model):
        engine = _engine(threads=4)
        engine.load()

        assert engine.is_ready is True
        faster_whisper_module.WhisperModel.assert_called_once_with(
            "base", device="cpu", compute_type="int8", cpu_threads=4
        )

    def test_load_cpu_when_gpu_disabled(self, faster_whisper_module, mock_whisper_model):
        engine = _engine(device="auto", use_gpu=False, compute_type="float32", flash_attention=True)
        engine.load()
        faster_whisper_module.WhisperModel.assert_called_once_with(
            "base", device="cpu", compute_type="float32", cpu_threads=0, flash_attention=True
        )

    def test_load_failure_is_configuration_error(self, faster_whisper_module):
        faster_whisper_module.WhisperModel.side_effect = RuntimeError("Model load failed")
        engine = _engine()
        with pytest.raises(ConfigurationError, match="Model load failed"):
            engine.load()
        assert engine.is_ready is False

    def test_run_maps_params(self, faster_whisper_module, mock_whisper_model):
        engine = _engine()
        engine.load()
        params = InferenceParams(
            language="pl",
            translate=True,
            sampling=SamplingStrategy.BEAM_SEARCH,
            beam_size=5,
            prompt_tokens=(7, 8),
            max_tokens=32,
            temperature_inc=0.5,
        )

        engine.run(np.zeros(16000, dtype=np.float32), params)

        _, kwargs = mock_whisper_model.transcribe.call_args
        assert kwargs["language"] == "pl"
        assert kwargs["task"] == "translate"
        assert kwargs["beam_size"] == 5
        assert kwargs["initial_prompt"] == [7, 8]
        assert kwargs["max_new_tokens"] == 32
        assert kwargs["condition_on_previous_text"] is False
        assert kwargs["without_timestamps"] is True
        assert kwargs["vad_filter"] is False
        assert kwargs["temperature"] == pytest.approx((0.0, 0.5, 1.0))

    def test_run_greedy_without_fallback(self, faster_whisper_module, mock_whisper_model):
        engine = _engine()
        engine.load()
        engine.run(np.zeros(16000, dtype=np.float32), InferenceParams(disable_fallback=True))

        _, kwargs = mock_whisper_model.transcribe.call_args
        assert kwargs["language"] is None
        assert kwargs["task"] == "transcribe"
        assert kwargs["beam_size"] == 1
        assert kwargs["initial_prompt"] is None
        assert kwargs["max_new_tokens"] is None
        assert kwargs["temperature"] == (0.0,)

    def test_run_converts_segments(self, faster_whisper_module, mock_whisper_model):
        engine = _engine()
        engine.load()
        segments = engine.run(np.zeros(16000, dtype=np.float32), InferenceParams())

        assert len(segments) == 1
        tokens = segments[0].tokens
        assert [t.id for t in tokens] == [50364, 1, 2, EOT]
        assert [t.special for t in tokens] == [True, False, False, True]
        assert tokens[1].text == " hello"
        assert tokens[1].p == pytest.approx(math.exp(-0.1))
        assert engine.detokenize(tokens) == " hello world"

    def test_single_segment_merges(self, faster_whisper_module, mock_whisper_model):
        mock_whisper_model.transcribe.return_value = (
            iter([_segment(" hello", [1]), _segment(" again", [3])]),
            Mock(language="en"),
        )
        engine = _engine()
        engine.load()

        merged = engine.run(np.zeros(16000, dtype=np.float32), InferenceParams(single_segment=True))
        assert len(merged) == 1
        assert merged[0].text == "hello again"
        assert [t.id for t in merged[0].tokens] == [1, 3]

    def test_multi_segment_kept(self, faster_whisper_module, mock_whisper_model):
        mock_whisper_model.transcribe.return_value = (
            iter([_segment(" hello", [1]), _segment(" again", [3])]),
            Mock(language="en"),
        )
        engine = _engine()
        engine.load()

        segments = engine.run(np.zeros(16000, dtype=np.float32), InferenceParams(single_segment=False))
        assert [s.text for s in segments] == [" hello", " again"]
        _, kwargs = mock_whisper_model.transcribe.call_args
        assert kwargs["without_timestamps"] is False

    def test_close_releases_model(self, faster_whisper_module, mock_whisper_model):
        engine = _engine()
        engine.load()
        engine.close()
        assert engine.is_ready is False
