"""Single engine invocation for a window of samples."""

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field, replace

import numpy as np

from ..engines.base import InferenceEngine, InferenceParams, Segment, TokenData
from .types import AllocationError, InferenceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InferenceOutput:
    """What one engine call produced.

    - text: segment texts stripped, joined with single spaces
    - tokens: every token of every segment, in order
    - confidence: mean of the positive token probabilities, in [0, 1]
    """

    text: str = ""
    tokens: tuple[TokenData, ...] = field(default_factory=tuple)
    confidence: float = 0.0
    elapsed_ms: float = 0.0

    @property
    def token_ids(self) -> tuple[int, ...]:
        return tuple(token.id for token in self.tokens)

    @property
    def is_empty(self) -> bool:
        return not self.text and not self.tokens


def collect_text(segments: Sequence[Segment]) -> str:
    parts = [segment.text.strip() for segment in segments]
    return " ".join(part for part in parts if part).strip()


def mean_confidence(segments: Sequence[Segment]) -> float:
    """Average positive token probability over all segments; 0.0 without any."""
    probabilities = [token.p for segment in segments for token in segment.tokens if token.p > 0.0]
    if not probabilities:
        return 0.0
    return float(min(1.0, max(0.0, sum(probabilities) / len(probabilities))))


class InferenceRunner:
    """Calls the engine once per window with per-call language and prompt."""

    def __init__(self, engine: InferenceEngine, base_params: InferenceParams, context_carry: bool = False):
        self.engine = engine
        self.base_params = base_params
        self.context_carry = context_carry

    def params_for(
        self,
        language: str | None,
        prompt_tokens: Sequence[int] = (),
        single_segment: bool | None = None,
    ) -> InferenceParams:
        changes = {
            "language": language,
            "prompt_tokens": tuple(prompt_tokens) if self.context_carry else (),
        }
        if single_segment is not None:
            changes["single_segment"] = single_segment
        return replace(self.base_params, **changes)

    def run(
        self,
        samples: np.ndarray,
        language: str | None,
        prompt_tokens: Sequence[int] = (),
        single_segment: bool | None = None,
    ) -> InferenceOutput:
        """Decode one window.

        Args:
            samples: Window samples (float32, mono)
            language: Language code, or None to auto-detect
            prompt_tokens: Context tokens; ignored unless context carry-over is on
            single_segment: Override the base single-segment setting

        Returns:
            InferenceOutput for the window

        Raises:
            InferenceError: If the engine call fails
            AllocationError: If the output cannot be assembled

        """
        params = self.params_for(language, prompt_tokens, single_segment)

        start = time.perf_counter()
        try:
            segments = self.engine.run(samples, params)
        except Exception as e:
            logger.error(f"Inference failed on {len(samples)} samples: {e}")
            raise InferenceError(f"Inference failed: {e}", cause=e) from e
        elapsed_ms = (time.perf_counter() - start) * 1000

        try:
            segments = list(segments or [])
            output = InferenceOutput(
                text=collect_text(segments),
                tokens=tuple(token for segment in segments for token in segment.tokens),
                confidence=mean_confidence(segments),
                elapsed_ms=elapsed_ms,
            )
        except MemoryError as e:
            raise AllocationError("Out of memory while collecting inference output", cause=e) from e

        logger.debug(
            f"Inference on {len(samples)} samples took {elapsed_ms:.1f}ms: "
            f"{len(output.tokens)} tokens, confidence={output.confidence:.2f}"
        )
        return output
