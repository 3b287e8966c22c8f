"""Inference engine contract.

An engine turns a block of 16 kHz mono float samples into text segments.
Everything about how decoding works internally belongs to the engine; the
streaming framework only relies on ``run()`` and the data types below.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

import numpy as np

from ...core.errors import ConfigurationError

SAMPLE_RATE = 16000


class EngineNotAvailableError(ConfigurationError):
    """Raised when an engine is requested but its dependencies are missing."""


class SamplingStrategy(Enum):
    GREEDY = "greedy"
    BEAM_SEARCH = "beam_search"


@dataclass(frozen=True)
class TokenData:
    """One decoded token.

    ``special`` marks control tokens (segment boundaries, language tags,
    timestamps, no-speech markers) that carry no speech.
    """

    id: int
    text: str = ""
    p: float = 0.0
    special: bool = False


@dataclass(frozen=True)
class Segment:
    """A decoded text segment with its tokens."""

    text: str
    tokens: tuple[TokenData, ...] = ()


@dataclass(frozen=True)
class InferenceParams:
    """Parameters for a single engine call.

    ``language=None`` means auto-detect. ``prompt_tokens`` is empty unless the
    session carries context between windows.
    """

    language: str | None = None
    translate: bool = False
    sampling: SamplingStrategy = SamplingStrategy.GREEDY
    beam_size: int = 1
    threads: int = 1
    single_segment: bool = True
    temperature_inc: float = 0.2
    disable_fallback: bool = False
    max_tokens: int = 0
    prompt_tokens: tuple[int, ...] = field(default_factory=tuple)
    use_gpu: bool = True
    audio_ctx: int = 0

    @property
    def detect_language(self) -> bool:
        return self.language is None

    @property
    def effective_temperature_inc(self) -> float:
        return 0.0 if self.disable_fallback else self.temperature_inc


class InferenceEngine(ABC):
    """Abstract base class for inference engines.

    Engines implement one synchronous decode call. Streaming (windowing,
    overlap detection, VAD) is handled by the streaming framework in
    ``streamscribe.transcription.streaming``.
    """

    sample_rate: int = SAMPLE_RATE

    @abstractmethod
    def load(self) -> None:
        """Load the model. Raises ConfigurationError if it cannot be loaded."""

    @abstractmethod
    def run(self, samples: np.ndarray, params: InferenceParams) -> list[Segment]:
        """Decode ``samples`` and return the produced segments.

        Args:
            samples: float32 mono samples at ``sample_rate``
            params: decoding parameters for this call

        Returns:
            Segments in order; an empty list when nothing was recognised.

        """

    def detokenize(self, tokens: Sequence[TokenData]) -> str:
        """Turn a token run back into text. Default: concatenate the token pieces."""
        return "".join(t.text for t in tokens)

    def close(self) -> None:  # noqa: B027
        """Release model resources. Default: nothing to release."""

    @property
    @abstractmethod
    def is_ready(self) -> bool:
        """Check if the engine is loaded."""
