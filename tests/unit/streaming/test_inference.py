"""Unit tests for InferenceRunner."""

import numpy as np
import pytest

from streamscribe.transcription.engines.base import InferenceParams, Segment, TokenData
from streamscribe.transcription.engines.internal.dummy import ScriptedEngine
from streamscribe.transcription.streaming.inference import InferenceRunner, collect_text, mean_confidence
from streamscribe.transcription.streaming.types import AllocationError, InferenceError

SAMPLES = np.zeros(1600, dtype=np.float32)


def seg(text, probs):
    return Segment(text=text, tokens=tuple(TokenData(id=i, text=text, p=p) for i, p in enumerate(probs)))


class TestCollect:
    def test_text_joined_and_trimmed(self):
        assert collect_text([seg(" hello ", []), seg("", []), seg(" world", [])]) == "hello world"

    def test_confidence_ignores_non_positive(self):
        assert mean_confidence([seg("a", [0.5, 0.0, -1.0]), seg("b", [1.0])]) == pytest.approx(0.75)

    def test_confidence_zero_without_probabilities(self):
        assert mean_confidence([seg("a", [0.0])]) == 0.0
        assert mean_confidence([]) == 0.0

    def test_confidence_clamped(self):
        assert mean_confidence([seg("a", [1.5])]) == 1.0


class TestInferenceRunner:
    """Test one engine invocation."""

    def test_output(self):
        runner = InferenceRunner(ScriptedEngine([[seg(" hi", [0.4, 0.6])]]), InferenceParams())
        output = runner.run(SAMPLES, "en")
        assert output.text == "hi"
        assert output.token_ids == (0, 1)
        assert output.confidence == pytest.approx(0.5)
        assert output.elapsed_ms >= 0.0

    def test_language_and_prompt(self):
        engine = ScriptedEngine(["x"])
        runner = InferenceRunner(engine, InferenceParams(beam_size=3), context_carry=True)
        runner.run(SAMPLES, None, prompt_tokens=[5, 6])

        params = engine.calls[0].params
        assert params.language is None
        assert params.detect_language is True
        assert params.prompt_tokens == (5, 6)
        assert params.beam_size == 3

    def test_prompt_dropped_without_context_carry(self):
        engine = ScriptedEngine(["x"])
        InferenceRunner(engine, InferenceParams()).run(SAMPLES, "de", prompt_tokens=[5, 6])
        assert engine.calls[0].params.prompt_tokens == ()
        assert engine.calls[0].params.language == "de"

    def test_single_segment_override(self):
        engine = ScriptedEngine(["x"])
        InferenceRunner(engine, InferenceParams(single_segment=True)).run(SAMPLES, None, single_segment=False)
        assert engine.calls[0].params.single_segment is False

    def test_engine_failure_is_inference_error(self):
        cause = RuntimeError("decoder crashed")
        runner = InferenceRunner(ScriptedEngine([cause]), InferenceParams())
        with pytest.raises(InferenceError) as excinfo:
            runner.run(SAMPLES, None)
        assert excinfo.value.cause is cause

    def test_memory_error_while_decoding_is_inference_error(self):
        cause = MemoryError()
        runner = InferenceRunner(ScriptedEngine([cause]), InferenceParams())
        with pytest.raises(InferenceError) as excinfo:
            runner.run(SAMPLES, None)
        assert excinfo.value.cause is cause

    def test_memory_error_while_collecting_output_is_allocation_error(self):
        """Decoding returned, but its segments could not be collected."""

        class LazySegmentsEngine(ScriptedEngine):
            def run(self, samples, params):
                def segments():
                    yield seg("hello", [0.9])
                    raise MemoryError()

                return segments()

        runner = InferenceRunner(LazySegmentsEngine(), InferenceParams())
        with pytest.raises(AllocationError) as excinfo:
            runner.run(SAMPLES, None)
        assert isinstance(excinfo.value.cause, MemoryError)
