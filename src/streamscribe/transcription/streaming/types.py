"""Type definitions for streaming transcription.

Provides:
- StreamResult: Delta or final text handed back to the caller
- SessionMetrics: Performance and state metrics for one session
- SessionState: Lifecycle state of a session
- The error taxonomy, re-exported from core.errors
"""

from dataclasses import dataclass
from enum import Enum

from ...core.errors import (
    AllocationError,
    ConfigurationError,
    InferenceError,
    InvalidInputError,
    SessionClosedError,
    StreamingError,
)


class SessionState(Enum):
    """State of a streaming session."""

    IDLE = "idle"
    ACTIVE = "active"
    FINALIZING = "finalizing"
    CLOSED = "closed"


@dataclass(frozen=True)
class StreamResult:
    """Text produced by one submit() or flush() call.

    The caller owns the result; the session keeps no reference to it.
    - text: the new delta (submit) or the whole transcript (flush)
    - confidence: mean token probability of the inference pass, in [0, 1]
    - is_final: True for the result of flush()
    """

    text: str
    confidence: float = 0.0
    is_final: bool = False

    # Timing
    audio_duration_seconds: float = 0.0
    processing_time_ms: float = 0.0

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "text": self.text,
            "confidence": self.confidence,
            "is_final": self.is_final,
            "audio_duration_seconds": self.audio_duration_seconds,
            "processing_time_ms": self.processing_time_ms,
        }


@dataclass
class SessionMetrics:
    """Metrics for a streaming session.

    Used for monitoring and debugging streaming performance.
    """

    session_id: str
    state: SessionState = SessionState.IDLE

    # Audio stats
    total_audio_seconds: float = 0.0
    chunks_received: int = 0

    # Inference stats
    inference_runs: int = 0
    total_inference_time_ms: float = 0.0
    max_window_samples: int = 0

    # Output stats
    deltas_emitted: int = 0
    flushes: int = 0
    vad_triggers: int = 0
    repetition_loops: int = 0
    context_refreshes: int = 0

    # Timing
    session_start_time: float | None = None
    last_activity_time: float | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "session_id": self.session_id,
            "state": self.state.value,
            "total_audio_seconds": self.total_audio_seconds,
            "chunks_received": self.chunks_received,
            "inference_runs": self.inference_runs,
            "avg_inference_time_ms": (
                self.total_inference_time_ms / self.inference_runs if self.inference_runs > 0 else 0.0
            ),
            "max_window_samples": self.max_window_samples,
            "deltas_emitted": self.deltas_emitted,
            "flushes": self.flushes,
            "vad_triggers": self.vad_triggers,
            "repetition_loops": self.repetition_loops,
            "context_refreshes": self.context_refreshes,
        }


__all__ = [
    "AllocationError",
    "ConfigurationError",
    "InferenceError",
    "InvalidInputError",
    "SessionClosedError",
    "SessionMetrics",
    "SessionState",
    "StreamResult",
    "StreamingError",
]
