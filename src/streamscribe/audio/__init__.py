"""Audio helpers: PCM conversion, pre-filtering and the energy VAD gate."""

from .conversion import as_float32_samples, float32_to_int16, int16_to_float32, pcm16_bytes_to_float32
from .filters import high_pass_filter
from .vad import EnergyVAD

__all__ = [
    "EnergyVAD",
    "as_float32_samples",
    "float32_to_int16",
    "high_pass_filter",
    "int16_to_float32",
    "pcm16_bytes_to_float32",
]
