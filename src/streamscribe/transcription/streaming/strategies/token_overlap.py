"""Token-identity diff.

Compares filtered token-id sequences of consecutive windows. Because windows
overlap, the previous sequence usually reappears (at least partly) at the
start of the current one; everything after the best overlap is new.
"""

import logging
from collections.abc import Callable, Sequence

from ...engines.base import TokenData
from ..inference import InferenceOutput

logger = logging.getLogger(__name__)

REPETITION_RUN = 8


def is_text_token(token: TokenData) -> bool:
    """Control tokens, empty pieces and bracketed markers like ``[_BEG_]`` carry no speech."""
    if token.special or not token.text:
        return False
    return not token.text.startswith("[_")


def text_tokens(tokens: Sequence[TokenData]) -> list[TokenData]:
    return [token for token in tokens if is_text_token(token)]


def find_token_overlap(previous: Sequence[int], current: Sequence[int]) -> int:
    """Index in ``current`` where new content starts.

    For every start offset ``i`` in ``previous`` count how long
    ``previous[i + k] == current[k]`` holds; the longest run wins.
    """
    best = 0
    for i in range(len(previous)):
        run = 0
        while i + run < len(previous) and run < len(current) and previous[i + run] == current[run]:
            run += 1
        if run > best:
            best = run
    return best


def has_repetition_loop(tokens: Sequence[int], min_run: int = REPETITION_RUN) -> bool:
    """True if the trailing ``min_run`` or more tokens are all identical."""
    if len(tokens) < min_run:
        return False
    last = tokens[-1]
    return all(token == last for token in tokens[-min_run:])


def _join_pieces(tokens: Sequence[TokenData]) -> str:
    return "".join(token.text for token in tokens)


class TokenOverlapStrategy:
    """Diff on token identity, the default strategy."""

    name = "token"

    def __init__(self, detokenize: Callable[[Sequence[TokenData]], str] | None = None):
        """Initialize the strategy.

        Args:
            detokenize: Turns the new tokens back into text; defaults to
                concatenating their pieces. Engines whose pieces may split
                multi-byte characters supply a joint decoder here.

        """
        self._detokenize = detokenize or _join_pieces
        self._previous: tuple[int, ...] = ()

    @property
    def baseline(self) -> tuple[int, ...]:
        return self._previous

    def diff(self, output: InferenceOutput) -> str:
        current = text_tokens(output.tokens)
        if not current:
            return ""

        current_ids = tuple(token.id for token in current)
        split = find_token_overlap(self._previous, current_ids)
        self._previous = current_ids

        if split >= len(current):
            logger.debug("Token diff: window is a full repeat")
            return ""

        delta = self._detokenize(current[split:]).strip()
        logger.debug(f"Token diff: overlap={split}, new tokens={len(current) - split}")
        return delta

    def reset(self) -> None:
        self._previous = ()
