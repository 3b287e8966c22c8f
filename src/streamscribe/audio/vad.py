"""Energy-based voice activity gate.

Decides whether the speaker has gone quiet long enough to finalize the
current segment by comparing the mean absolute amplitude of the trailing
``last_ms`` of a window with that of the whole window. This is a heuristic:
a finalize on silence only yields empty or already-seen text.
"""

import logging

import numpy as np

from .filters import high_pass_filter

logger = logging.getLogger(__name__)


class EnergyVAD:
    """Trailing-vs-total energy comparison over a fixed window.

    Example:
        vad = EnergyVAD(sample_rate=16000, threshold=0.6)
        if vad.should_finalize(vad_buffer):
            ...  # transcribe the segment

    """

    def __init__(
        self,
        sample_rate: int = 16000,
        window_ms: int = 2000,
        last_ms: int = 1000,
        threshold: float = 0.6,
        freq_cutoff_hz: float = 100.0,
    ):
        self.sample_rate = sample_rate
        self.window_ms = window_ms
        self.last_ms = last_ms
        self.threshold = threshold
        self.freq_cutoff_hz = freq_cutoff_hz

    @property
    def window_samples(self) -> int:
        return max(0, self.sample_rate * self.window_ms // 1000)

    @property
    def last_samples(self) -> int:
        return max(0, self.sample_rate * self.last_ms // 1000)

    def detect_silence(self, pcm: np.ndarray) -> bool:
        """Return True when the tail of ``pcm`` is much quieter than the whole."""
        n_samples = len(pcm)
        n_last = self.last_samples

        if n_samples == 0 or n_last <= 0 or n_last >= n_samples:
            return False

        data = np.asarray(pcm, dtype=np.float32)
        if self.freq_cutoff_hz > 0.0:
            data = high_pass_filter(data, self.freq_cutoff_hz, self.sample_rate)

        magnitude = np.abs(data)
        energy_all = float(magnitude.mean())
        energy_last = float(magnitude[-n_last:].mean())

        silent = energy_last <= self.threshold * energy_all
        logger.debug(f"VAD energy_all={energy_all:.6f} energy_last={energy_last:.6f} silent={silent}")
        return silent

    def should_finalize(self, vad_buffer: np.ndarray) -> bool:
        """Check the most recent window of ``vad_buffer`` for end-of-utterance."""
        window = self.window_samples
        if window <= 0 or len(vad_buffer) < window:
            return False
        return self.detect_silence(vad_buffer[-window:])
