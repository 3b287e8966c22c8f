"""Pre-filtering used before voice-activity energy comparison."""

import math

import numpy as np
from scipy.signal import lfilter


def high_pass_filter(data: np.ndarray, cutoff_hz: float, sample_rate: int) -> np.ndarray:
    """Apply a one-pole high-pass filter and return a new array.

    ``y[0] = x[0]`` and ``y[i] = a * (y[i-1] + x[i] - x[i-1])`` with
    ``a = dt / (rc + dt)``, ``rc = 1 / (2 * pi * cutoff_hz)``.

    Args:
        data: Mono float samples
        cutoff_hz: Cutoff frequency in Hz (must be > 0)
        sample_rate: Sample rate in Hz

    Returns:
        Filtered float32 samples, same length as ``data``

    """
    samples = np.asarray(data, dtype=np.float32)
    if samples.size == 0:
        return samples.copy()

    rc = 1.0 / (2.0 * math.pi * cutoff_hz)
    dt = 1.0 / float(sample_rate)
    alpha = dt / (rc + dt)

    out = np.empty_like(samples)
    out[0] = samples[0]
    if samples.size > 1:
        # y[i] = alpha * y[i-1] + alpha * d[i], seeded with y[0] = x[0]
        diffs = np.diff(samples).astype(np.float64)
        filtered, _ = lfilter([alpha], [1.0, -alpha], diffs, zi=[alpha * float(samples[0])])
        out[1:] = filtered.astype(np.float32)
    return out
