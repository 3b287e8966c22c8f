"""Unit tests for create_session()."""

import numpy as np
import pytest

from streamscribe.core.config import ConfigLoader
from streamscribe.core.errors import ConfigurationError
from streamscribe.transcription.engines import registry
from streamscribe.transcription.engines.base import EngineNotAvailableError
from streamscribe.transcription.engines.internal.dummy import ScriptedEngine, StubEngine
from streamscribe.transcription.streaming.config import StreamingConfig
from streamscribe.transcription.streaming.factory import create_session


class FailingEngine(ScriptedEngine):
    def load(self):
        raise RuntimeError("weights corrupted")


class TestCreateSession:
    """Test session construction from config and arguments."""

    def test_injected_engine(self, loader):
        engine = ScriptedEngine(["hello"])
        session = create_session(engine=engine, config=loader, step_ms=1000, length_ms=3000, session_id="s1")

        assert engine.is_ready
        assert session.session_id == "s1"
        assert session.config.step_ms == 1000
        assert session.config.length_ms == 3000
        assert session.owns_engine is False

    def test_injected_engine_not_closed(self, loader):
        engine = ScriptedEngine(["hello"])
        session = create_session(engine=engine, config=loader)
        session.close()
        assert engine.closed is False

    def test_overrides_applied(self, loader):
        session = create_session(
            engine=ScriptedEngine(),
            config=loader,
            use_vad=True,
            diff_strategy="text",
            language="DE",
            beam_size=3,
        )
        assert session.config.vad_mode is True
        assert session.config.diff_strategy == "text"
        assert session.language == "de"
        assert session.config.inference_params().beam_size == 3

    def test_streaming_config_used_as_base(self, loader):
        base = StreamingConfig(step_ms=500, length_ms=2000, keep_ms=100)
        session = create_session(engine=ScriptedEngine(), config=loader, streaming_config=base, keep_ms=50)
        assert session.config.step_ms == 500
        assert session.config.keep_ms == 50

    def test_blank_model_reference(self, loader):
        with pytest.raises(ConfigurationError):
            create_session("   ", config=loader)

    def test_stub_engine_from_environment(self, tmp_path):
        config = ConfigLoader(config_path=tmp_path / "missing.toml", environ={"STREAMSCRIBE_USE_STUB_ENGINE": "1"})
        session = create_session("tiny", config=config)

        assert isinstance(session.engine, StubEngine)
        assert session.engine.is_ready
        assert session.owns_engine is True
        session.close()
        assert session.engine.is_ready is False

    def test_engine_load_failure(self, loader):
        with pytest.raises(ConfigurationError, match="weights corrupted"):
            create_session(engine=FailingEngine(), config=loader)

    def test_faster_whisper_missing(self, loader, monkeypatch):
        monkeypatch.setattr(registry, "FASTER_WHISPER_AVAILABLE", False)
        with pytest.raises(EngineNotAvailableError):
            create_session("base", config=loader)

    def test_stub_session_end_to_end(self, tmp_path):
        config = ConfigLoader(config_path=tmp_path / "missing.toml", environ={"STREAMSCRIBE_USE_STUB_ENGINE": "true"})
        with create_session("tiny", config=config, step_ms=1000, length_ms=3000) as session:
            result = session.submit(np.zeros(16000, dtype=np.float32))
            assert result.text == "[stub:tiny] received 16000 samples"
            assert result.confidence == pytest.approx(0.42)
