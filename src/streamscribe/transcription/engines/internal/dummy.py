from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass

import numpy as np

from ..base import InferenceEngine, InferenceParams, Segment, TokenData

logger = logging.getLogger(__name__)

ScriptStep = list[Segment] | Segment | str | BaseException | Callable[[np.ndarray, InferenceParams], list[Segment]]


@dataclass(frozen=True)
class RecordedCall:
    """One ``run()`` invocation captured by ScriptedEngine."""

    samples: np.ndarray
    params: InferenceParams


def text_segment(text: str, *, p: float = 0.9, start_id: int = 1) -> Segment:
    """Build a segment whose tokens are the whitespace-separated words of ``text``.

    Token ids are assigned sequentially from ``start_id`` and every token
    carries the same probability. Pieces keep their leading space the way
    Whisper BPE pieces do, so joining them reproduces the text.
    """
    tokens = tuple(
        TokenData(id=start_id + i, text=(" " if i else "") + word, p=p)
        for i, word in enumerate(text.split())
    )
    return Segment(text=text, tokens=tokens)


class ScriptedEngine(InferenceEngine):
    """Deterministic engine for tests and local development.

    Each ``run()`` consumes the next scripted step:

    - a list of segments or a single segment is returned as-is;
    - a string becomes one segment via ``text_segment()``;
    - an exception instance is raised;
    - a callable is called with ``(samples, params)``.

    Once the script is exhausted the last step is repeated; an empty script
    returns no segments. Every call is recorded in ``calls``.
    """

    def __init__(self, outputs: Iterable[ScriptStep] = ()) -> None:
        self._script = list(outputs)
        self._position = 0
        self._ready = False
        self.calls: list[RecordedCall] = []
        self.closed = False

    def load(self) -> None:
        self._ready = True

    def run(self, samples: np.ndarray, params: InferenceParams) -> list[Segment]:
        self.calls.append(RecordedCall(samples=np.array(samples, copy=True), params=params))

        if not self._script:
            return []
        step = self._script[min(self._position, len(self._script) - 1)]
        self._position += 1

        if isinstance(step, BaseException):
            raise step
        if callable(step):
            return list(step(samples, params))
        if isinstance(step, str):
            return [text_segment(step)] if step else []
        if isinstance(step, Segment):
            return [step]
        return list(step)

    def close(self) -> None:
        self.closed = True
        self._ready = False

    @property
    def is_ready(self) -> bool:
        return self._ready


class StubEngine(InferenceEngine):
    """Placeholder engine used when no model should be loaded.

    Produces a transcript describing how much audio it has seen; useful to
    exercise the full pipeline without model downloads.
    """

    def __init__(self, model_reference: str = "stub", **_ignored) -> None:
        self.model_reference = model_reference
        self.total_samples = 0
        self._ready = False

    def load(self) -> None:
        logger.warning("Stub engine in use; transcripts are placeholders")
        self._ready = True

    def run(self, samples: np.ndarray, params: InferenceParams) -> list[Segment]:
        if len(samples) == 0:
            return []
        self.total_samples += len(samples)
        text = f"[stub:{self.model_reference}] received {len(samples)} samples"
        logger.debug(f"Stub transcript for {len(samples)} samples")
        return [Segment(text=text, tokens=(TokenData(id=len(samples), text=text, p=0.42),))]

    def close(self) -> None:
        self._ready = False

    @property
    def is_ready(self) -> bool:
        return self._ready
