"""Inference engines.

Supported engines:
- faster_whisper: Whisper via CTranslate2 (default)
- stub: placeholder transcripts, no model
- scripted: deterministic replay engine for tests
"""

from .base import (
    SAMPLE_RATE,
    EngineNotAvailableError,
    InferenceEngine,
    InferenceParams,
    SamplingStrategy,
    Segment,
    TokenData,
)
from .registry import get_available_engines, get_engine_class, get_engine_info

__all__ = [
    "SAMPLE_RATE",
    "EngineNotAvailableError",
    "InferenceEngine",
    "InferenceParams",
    "SamplingStrategy",
    "Segment",
    "TokenData",
    "get_available_engines",
    "get_engine_class",
    "get_engine_info",
]
