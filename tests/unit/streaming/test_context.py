"""Unit tests for ContextController."""

import numpy as np

from streamscribe.transcription.engines.base import TokenData
from streamscribe.transcription.streaming.buffer import SampleAccumulator
from streamscribe.transcription.streaming.context import ContextController
from streamscribe.transcription.streaming.inference import InferenceOutput
from streamscribe.transcription.streaming.strategies import TokenOverlapStrategy


def output(ids):
    return InferenceOutput(text="x", tokens=tuple(TokenData(id=i, text=f" t{i}", p=0.5) for i in ids))


def filled_accumulator():
    acc = SampleAccumulator(step_samples=4, length_samples=8, keep_samples=2)
    acc.append(np.arange(8, dtype=np.float32))
    acc.commit(acc.build_window())
    return acc


class TestAdvance:
    """Test periodic context refresh."""

    def test_refresh_every_reset_period(self):
        controller = ContextController(reset_period=2, keep_samples=2)
        acc = filled_accumulator()

        assert controller.advance(acc, output([1])) is False
        assert acc.tail_samples == 8
        assert controller.advance(acc, output([1])) is True
        assert acc.tail_samples == 2

    def test_prompt_only_with_keep_context(self):
        controller = ContextController(reset_period=1, keep_samples=2, keep_context=False)
        controller.advance(filled_accumulator(), output([1, 2]))
        assert controller.prompt_tokens == ()

        controller = ContextController(reset_period=1, keep_samples=2, keep_context=True)
        controller.advance(filled_accumulator(), output([1, 2]))
        assert controller.prompt_tokens == (1, 2)

    def test_reset_period_floor_is_one(self):
        controller = ContextController(reset_period=0, keep_samples=0)
        assert controller.reset_period == 1

    def test_reset(self):
        controller = ContextController(reset_period=1, keep_samples=2, keep_context=True)
        controller.advance(filled_accumulator(), output([1, 2]))
        controller.reset()
        assert controller.iteration == 0
        assert controller.prompt_tokens == ()


class TestRepetitionPolicy:
    """Test the repetition-loop policy."""

    def test_reset_context_suppresses_and_clears(self):
        controller = ContextController(reset_period=1, keep_samples=2, keep_context=True)
        controller.advance(filled_accumulator(), output([1, 2]))
        strategy = TokenOverlapStrategy()
        strategy.diff(output([1, 2]))

        looping = output([3] + [9] * 8)
        assert controller.check_repetition(looping, strategy) is True
        assert controller.prompt_tokens == ()
        assert strategy.baseline == ()

    def test_ignore_policy(self):
        controller = ContextController(reset_period=1, keep_samples=2, on_repetition_loop="ignore")
        strategy = TokenOverlapStrategy()
        strategy.diff(output([1, 2]))
        assert controller.check_repetition(output([9] * 8), strategy) is False
        assert strategy.baseline == (1, 2)

    def test_normal_output_passes(self):
        controller = ContextController(reset_period=1, keep_samples=2)
        assert controller.check_repetition(output([1, 2, 3]), TokenOverlapStrategy()) is False
