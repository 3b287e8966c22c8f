"""Sample accumulation and inference window assembly.

Provides SampleAccumulator, which owns every audio buffer of a session:
- pending: samples not yet seen by the engine (fixed-cadence mode)
- tail: the previous window, source of carried-over context
- vad: raw samples since the last finalize (VAD mode)
- full: the entire capture, kept only for a final re-decode
"""

import logging
from dataclasses import dataclass

import numpy as np

logger = logging.getLogger(__name__)

_EMPTY = np.zeros(0, dtype=np.float32)


@dataclass(frozen=True)
class Window:
    """Samples for one engine call.

    ``consumed`` is the number of leading pending samples the window covers;
    zero for windows cut from the VAD buffer.
    """

    samples: np.ndarray
    consumed: int = 0
    carried: int = 0

    def __len__(self) -> int:
        return len(self.samples)


@dataclass(frozen=True)
class BufferStats:
    """Sample counts of each session buffer at one point in time."""

    pending: int = 0
    tail: int = 0
    vad: int = 0
    full_session: int = 0


class SampleAccumulator:
    """Buffers for one streaming session.

    Window building never mutates state; ``commit()`` applies a window after
    the engine call succeeded, so a failed call leaves everything as it was.

    Example:
        acc = SampleAccumulator(step_samples=48000, length_samples=160000, keep_samples=3200)
        acc.append(chunk)
        if acc.ready():
            window = acc.build_window(max_new=acc.length_samples)
            ...  # run inference on window.samples
            acc.commit(window)

    """

    def __init__(
        self,
        step_samples: int,
        length_samples: int,
        keep_samples: int,
        *,
        vad_mode: bool = False,
        vad_cap: int = 0,
        keep_full_session: bool = False,
    ):
        """Initialize the accumulator.

        Args:
            step_samples: Pending samples required before a fixed-cadence call
            length_samples: Requested window length in samples
            keep_samples: Tail samples retained at a context refresh
            vad_mode: Route samples to the VAD buffer instead of pending
            vad_cap: Maximum VAD buffer length (requested length + VAD window)
            keep_full_session: Retain the whole capture for a final re-decode

        """
        self.step_samples = step_samples
        self.length_samples = length_samples
        self.keep_samples = keep_samples
        self.vad_mode = vad_mode
        self.vad_cap = vad_cap
        self.keep_full_session = keep_full_session

        self._pending: np.ndarray = _EMPTY
        self._tail: np.ndarray = _EMPTY
        self._vad: np.ndarray = _EMPTY
        self._full: list[np.ndarray] = []

    @property
    def pending_samples(self) -> int:
        return len(self._pending)

    @property
    def tail_samples(self) -> int:
        return len(self._tail)

    @property
    def vad_samples(self) -> int:
        return len(self._vad)

    @property
    def vad_buffer(self) -> np.ndarray:
        return self._vad

    @property
    def full_session_samples(self) -> int:
        return sum(len(chunk) for chunk in self._full)

    @property
    def is_empty(self) -> bool:
        return not (len(self._pending) or len(self._tail) or len(self._vad) or self._full)

    def stats(self) -> BufferStats:
        return BufferStats(
            pending=len(self._pending),
            tail=len(self._tail),
            vad=len(self._vad),
            full_session=self.full_session_samples,
        )

    @property
    def has_unconsumed(self) -> bool:
        """Audio the engine has not seen yet."""
        return bool(len(self._vad) if self.vad_mode else len(self._pending))

    def append(self, samples: np.ndarray) -> None:
        """Accumulate validated float32 samples."""
        if self.vad_mode:
            self._vad = np.concatenate([self._vad, samples])
            if self.vad_cap > 0 and len(self._vad) > self.vad_cap:
                dropped = len(self._vad) - self.vad_cap
                self._vad = self._vad[dropped:]
                logger.debug(f"VAD buffer trimmed: {dropped} samples")
        else:
            self._pending = np.concatenate([self._pending, samples])

        if self.keep_full_session:
            self._full.append(samples)

    def ready(self) -> bool:
        """Whether enough pending audio arrived for a fixed-cadence call."""
        return not self.vad_mode and len(self._pending) >= self.step_samples

    def build_window(self, max_new: int | None = None) -> Window:
        """Assemble carried tail plus leading pending samples.

        Args:
            max_new: Upper bound on pending samples in this window (all if None)

        Returns:
            Window whose length never exceeds keep + length when
            ``max_new <= length``.

        """
        n_new = len(self._pending) if max_new is None else min(len(self._pending), max_new)
        take = min(len(self._tail), max(0, self.keep_samples + self.length_samples - n_new))
        carried = self._tail[len(self._tail) - take :] if take else _EMPTY
        samples = np.concatenate([carried, self._pending[:n_new]])
        return Window(samples=samples, consumed=n_new, carried=take)

    def commit(self, window: Window) -> None:
        """Apply a window after a successful engine call."""
        self._tail = window.samples
        self._pending = self._pending[window.consumed :]

    def take_vad_segment(self) -> Window:
        """The most recent ``length`` samples of the VAD buffer (state untouched)."""
        take = min(self.length_samples, len(self._vad)) if self.length_samples > 0 else len(self._vad)
        return Window(samples=self._vad[len(self._vad) - take :].copy())

    def clear_vad(self) -> None:
        self._vad = _EMPTY
        self._tail = _EMPTY

    def truncate_tail(self, keep: int | None = None) -> None:
        """Keep only the last ``keep`` tail samples (default: keep_samples)."""
        keep = self.keep_samples if keep is None else keep
        keep = min(max(keep, 0), len(self._tail))
        self._tail = self._tail[len(self._tail) - keep :] if keep else _EMPTY

    def full_session(self) -> np.ndarray:
        """Everything captured since the last reset (empty unless retained)."""
        if not self._full:
            return _EMPTY
        return np.concatenate(self._full)

    def reset(self) -> None:
        """Drop all buffered audio."""
        self._pending = _EMPTY
        self._tail = _EMPTY
        self._vad = _EMPTY
        self._full = []
