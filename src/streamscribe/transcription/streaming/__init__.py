"""Streaming transcription framework.

Provides:
- StreamingSession: synchronous submit/flush/close controller
- AsyncStreamingSession: asyncio wrapper offloading to an executor
- StreamingConfig: timing, VAD and decoding configuration
- create_session(): build a session with a loaded engine
"""

from .async_session import AsyncStreamingSession
from .buffer import BufferStats, SampleAccumulator, Window
from .config import LATENCY_PRESETS, StreamingConfig
from .context import ContextController
from .factory import create_session
from .inference import InferenceOutput, InferenceRunner
from .language import LanguagePolicy, normalise_language_code
from .session import StreamingSession
from .strategies import DiffStrategy, TextOverlapStrategy, TokenOverlapStrategy, get_strategy
from .types import (
    AllocationError,
    ConfigurationError,
    InferenceError,
    InvalidInputError,
    SessionClosedError,
    SessionMetrics,
    SessionState,
    StreamingError,
    StreamResult,
)

__all__ = [
    "LATENCY_PRESETS",
    "AllocationError",
    "AsyncStreamingSession",
    "BufferStats",
    "ConfigurationError",
    "ContextController",
    "DiffStrategy",
    "InferenceError",
    "InferenceOutput",
    "InferenceRunner",
    "InvalidInputError",
    "LanguagePolicy",
    "SampleAccumulator",
    "SessionClosedError",
    "SessionMetrics",
    "SessionState",
    "StreamResult",
    "StreamingConfig",
    "StreamingError",
    "StreamingSession",
    "TextOverlapStrategy",
    "TokenOverlapStrategy",
    "Window",
    "create_session",
    "get_strategy",
    "normalise_language_code",
]
