"""Context continuity between consecutive windows.

Every ``reset_period`` inference iterations the carried tail is cut back to
the keep length and, with context carry-over, the prompt is replaced by the
tokens of the latest output. Also owns the repetition-loop policy.
"""

import logging

from .buffer import SampleAccumulator
from .inference import InferenceOutput
from .strategies import DiffStrategy, has_repetition_loop, text_tokens

logger = logging.getLogger(__name__)


class ContextController:
    """Tracks iterations, prompt tokens and periodic context refresh."""

    def __init__(
        self,
        reset_period: int,
        keep_samples: int,
        keep_context: bool = False,
        on_repetition_loop: str = "reset_context",
    ):
        self.reset_period = max(1, reset_period)
        self.keep_samples = keep_samples
        self.keep_context = keep_context
        self.on_repetition_loop = on_repetition_loop

        self.iteration = 0
        self._prompt: tuple[int, ...] = ()

    @property
    def prompt_tokens(self) -> tuple[int, ...]:
        return self._prompt

    def advance(self, accumulator: SampleAccumulator, output: InferenceOutput) -> bool:
        """Count one inference iteration and refresh context when due.

        Returns:
            True if the tail was truncated (and the prompt possibly replaced)

        """
        self.iteration += 1
        if self.iteration % self.reset_period != 0:
            return False

        accumulator.truncate_tail(self.keep_samples)
        if self.keep_context:
            self._prompt = output.token_ids
        logger.debug(
            f"Context refresh at iteration {self.iteration}: "
            f"tail={accumulator.tail_samples} samples, prompt={len(self._prompt)} tokens"
        )
        return True

    def check_repetition(self, output: InferenceOutput, strategy: DiffStrategy) -> bool:
        """Apply the repetition-loop policy to one output.

        Returns:
            True if the output's delta must be suppressed

        """
        ids = [token.id for token in text_tokens(output.tokens)]
        if not has_repetition_loop(ids):
            return False

        if self.on_repetition_loop == "ignore":
            logger.warning("Repetition loop detected in decoder output (ignored by policy)")
            return False

        logger.warning("Repetition loop detected in decoder output; resetting prompt context and diff baseline")
        self.reset_prompt()
        strategy.reset()
        return True

    def reset_prompt(self) -> None:
        self._prompt = ()

    def reset(self) -> None:
        self.iteration = 0
        self._prompt = ()
