"""Character-level diff on the full output text of consecutive windows."""

from ..inference import InferenceOutput


def common_prefix_length(a: str, b: str) -> int:
    limit = min(len(a), len(b))
    i = 0
    while i < limit and a[i] == b[i]:
        i += 1
    return i


def text_delta(previous: str, current: str) -> str:
    """Middle of ``current`` outside its common prefix and suffix with ``previous``.

    The suffix never grows into the prefix, so an exact repeat yields an
    empty delta and a strict extension yields the appended text.
    """
    prefix = common_prefix_length(previous, current)
    limit = min(len(previous), len(current)) - prefix
    suffix = 0
    while suffix < limit and previous[-1 - suffix] == current[-1 - suffix]:
        suffix += 1
    end = len(current) - suffix
    if end <= prefix:
        return ""
    return current[prefix:end].strip()


class TextOverlapStrategy:
    """Diff on output text; works with engines that report no tokens."""

    name = "text"

    def __init__(self):
        self._previous = ""

    @property
    def baseline(self) -> str:
        return self._previous

    def diff(self, output: InferenceOutput) -> str:
        current = output.text
        if not current:
            return ""
        delta = text_delta(self._previous, current)
        self._previous = current
        return delta

    def reset(self) -> None:
        self._previous = ""
