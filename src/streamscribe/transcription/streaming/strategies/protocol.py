"""Protocol definition for diff strategies.

Uses Protocol-based typing for flexibility - strategies don't need to inherit
from a base class, just implement the required methods.
"""

from typing import Protocol, runtime_checkable

from ..inference import InferenceOutput


@runtime_checkable
class DiffStrategy(Protocol):
    """Protocol for incremental diff strategies.

    A strategy compares each inference output with the one before it and
    returns only the text that is new. Overlapping windows re-decode audio
    that was already transcribed; the strategy is what keeps that text from
    being emitted twice.

    All strategies must implement:
    - diff(): Compute the delta and advance the baseline
    - reset(): Forget the baseline (next output is entirely new)
    - baseline: Current comparison baseline, for inspection
    """

    name: str

    def diff(self, output: InferenceOutput) -> str:
        """Return the new text in ``output`` and remember it as the baseline.

        Args:
            output: Result of the latest inference call

        Returns:
            Trimmed delta text; empty when nothing is new

        """
        ...

    def reset(self) -> None:
        """Clear the baseline."""
        ...

    @property
    def baseline(self) -> object:
        ...
