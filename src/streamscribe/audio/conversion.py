"""Audio conversion helpers for PCM scaling."""

from typing import cast

import numpy as np

from ..core.errors import InvalidInputError


def int16_to_float32(audio: np.ndarray) -> np.ndarray:
    """Convert int16 PCM to float32 in [-1.0, 1.0]."""
    if audio.dtype == np.int16:
        return audio.astype(np.float32) / 32768.0
    return audio.astype(np.float32)


def float32_to_int16(audio: np.ndarray) -> np.ndarray:
    """Convert float PCM in [-1.0, 1.0] to int16."""
    if audio.dtype == np.int16:
        return audio
    audio_f32 = audio.astype(np.float32)
    return cast("np.ndarray", np.clip(audio_f32 * 32768.0, -32768, 32767).astype(np.int16))


def pcm16_bytes_to_float32(data: bytes) -> np.ndarray:
    """Decode little-endian signed 16-bit PCM bytes to float32.

    A trailing odd byte is ignored.
    """
    usable = len(data) - (len(data) % 2)
    if usable <= 0:
        return np.array([], dtype=np.float32)
    pcm = np.frombuffer(data[:usable], dtype="<i2")
    return pcm.astype(np.float32) / 32768.0


def as_float32_samples(samples) -> np.ndarray:
    """Normalise caller audio to a fresh 1-D float32 array.

    Accepts numpy arrays (float or int16) and sequences of numbers.

    Raises:
        InvalidInputError: None, empty, multi-dimensional or non-finite input

    """
    if samples is None:
        raise InvalidInputError("samples must not be None")

    if isinstance(samples, (bytes, bytearray, memoryview)):
        raise InvalidInputError("raw bytes are not samples; decode them with pcm16_bytes_to_float32()")

    try:
        array = np.asarray(samples)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"samples are not numeric: {e}") from e

    if array.ndim != 1:
        raise InvalidInputError(f"samples must be 1-D mono audio, got shape {array.shape}")
    if array.size == 0:
        raise InvalidInputError("samples must not be empty")
    if not (np.issubdtype(array.dtype, np.floating) or np.issubdtype(array.dtype, np.integer)):
        raise InvalidInputError(f"samples must be numeric, got dtype {array.dtype}")

    audio = int16_to_float32(array) if array.dtype == np.int16 else array.astype(np.float32, copy=True)
    if not np.all(np.isfinite(audio)):
        raise InvalidInputError("samples contain NaN or infinite values")
    return audio
