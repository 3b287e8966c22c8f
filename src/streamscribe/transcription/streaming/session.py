"""Streaming session controller.

StreamingSession turns a stream of 16 kHz mono samples into incremental text:
- Accumulates samples and decides when to run inference (fixed cadence or VAD)
- Builds a bounded window of carried tail plus new audio
- Surfaces only the text that is new relative to the previous window
- Refreshes context periodically and produces a final transcript on flush
"""

import logging
import time
import uuid

import numpy as np

from ...audio.conversion import as_float32_samples
from ...audio.vad import EnergyVAD
from ..engines.base import InferenceEngine
from .buffer import BufferStats, SampleAccumulator, Window
from .config import StreamingConfig
from .context import ContextController
from .inference import InferenceOutput, InferenceRunner
from .language import LanguagePolicy
from .strategies import get_strategy
from .types import (
    AllocationError,
    InferenceError,
    SessionClosedError,
    SessionMetrics,
    SessionState,
    StreamingError,
    StreamResult,
)

logger = logging.getLogger(__name__)


class StreamingSession:
    """Orchestrates one audio stream against one inference engine.

    Calls are synchronous and blocking; the engine call is the only slow
    step. A session must not be used from two threads at once (wrap it in
    AsyncStreamingSession for asyncio code). Sessions share no mutable state.

    Example:
        session = StreamingSession(engine, StreamingConfig(step_ms=3000))

        for chunk in chunks:
            result = session.submit(chunk)
            if result:
                print(result.text)

        final = session.flush()
        session.close()

    """

    def __init__(
        self,
        engine: InferenceEngine,
        config: StreamingConfig | None = None,
        session_id: str | None = None,
        *,
        owns_engine: bool = True,
    ):
        """Initialize streaming session.

        Args:
            engine: Loaded inference engine
            config: Streaming configuration (loaded from config files if None)
            session_id: Identifier used in logs and metrics (random if None)
            owns_engine: Close the engine when the session closes

        """
        if config is None:
            config = StreamingConfig.from_config()

        self.session_id = session_id or uuid.uuid4().hex[:12]
        self.engine = engine
        self.config = config
        self.owns_engine = owns_engine

        self._accumulator = SampleAccumulator(
            step_samples=config.step_samples,
            length_samples=config.length_samples,
            keep_samples=config.keep_samples,
            vad_mode=config.vad_mode,
            vad_cap=config.vad_buffer_cap,
            keep_full_session=config.full_session_redecode,
        )
        self._vad = (
            EnergyVAD(
                sample_rate=config.sample_rate,
                window_ms=config.vad_window_ms,
                last_ms=config.vad_last_ms,
                threshold=config.vad_threshold,
                freq_cutoff_hz=config.freq_cutoff_hz,
            )
            if config.vad_mode
            else None
        )
        self._runner = InferenceRunner(engine, config.inference_params(), context_carry=config.context_carry)
        self._strategy = get_strategy(config.diff_strategy, detokenize=engine.detokenize)
        self._context = ContextController(
            reset_period=config.reset_period,
            keep_samples=config.keep_samples,
            keep_context=config.context_carry,
            on_repetition_loop=config.on_repetition_loop,
        )
        self._language = LanguagePolicy.from_setting(config.language)

        self._transcript = ""
        self._last_confidence = 0.0
        self._state = SessionState.IDLE
        self._metrics = SessionMetrics(session_id=self.session_id)

        logger.info(
            f"StreamingSession created: {self.session_id} "
            f"(mode={'vad' if config.vad_mode else 'fixed'}, step={config.step_samples}, "
            f"length={config.length_samples}, keep={config.keep_samples}, diff={self._strategy.name})"
        )

    # ------------------------------------------------------------------
    # Properties

    @property
    def state(self) -> SessionState:
        """Current session state."""
        return self._state

    @property
    def metrics(self) -> SessionMetrics:
        """Current session metrics."""
        return self._metrics

    @property
    def transcript(self) -> str:
        """Space-joined deltas emitted since the last flush."""
        return self._transcript

    @property
    def prompt_tokens(self) -> tuple[int, ...]:
        """Context tokens sent with the next call (empty without context carry-over)."""
        return self._context.prompt_tokens

    @property
    def last_confidence(self) -> float:
        """Confidence of the most recent inference pass, in [0, 1]."""
        return self._last_confidence

    @property
    def language(self) -> str:
        """Language setting: "auto" or a fixed code."""
        return self._language.describe()

    @property
    def buffers_empty(self) -> bool:
        """Whether no audio is buffered and no diff baseline is held."""
        return self._accumulator.is_empty and not self._strategy.baseline

    @property
    def is_closed(self) -> bool:
        """Whether close() has been called."""
        return self._state == SessionState.CLOSED

    @property
    def buffer_stats(self) -> BufferStats:
        """Snapshot of buffered sample counts; the buffers themselves stay private."""
        return self._accumulator.stats()

    def _update_state(self, new_state: SessionState) -> None:
        """Update session state and sync with metrics."""
        self._state = new_state
        self._metrics.state = new_state

    def _ensure_open(self) -> None:
        if self._state == SessionState.CLOSED:
            raise SessionClosedError(self.session_id)

    # ------------------------------------------------------------------
    # Public API

    def submit(self, samples) -> StreamResult | None:
        """Add audio and return new text if an inference pass produced any.

        Args:
            samples: 16 kHz mono audio (float32 in [-1, 1], int16, or a sequence of floats)

        Returns:
            StreamResult carrying the delta, or None when there is nothing new yet.
            If a later window of a large submit fails after earlier windows
            produced text, that text is returned and the unprocessed audio
            stays pending for the next call.

        Raises:
            InvalidInputError: If samples are missing, empty or malformed
            SessionClosedError: If the session was closed
            InferenceError: If the engine failed; committed state is unchanged
            AllocationError: If the output could not be produced

        """
        self._ensure_open()
        audio = as_float32_samples(samples)

        now = time.time()
        if self._state == SessionState.IDLE:
            self._update_state(SessionState.ACTIVE)
            if self._metrics.session_start_time is None:
                self._metrics.session_start_time = now
        self._metrics.last_activity_time = now
        self._metrics.chunks_received += 1
        self._metrics.total_audio_seconds += len(audio) / self.config.sample_rate

        self._accumulator.append(audio)

        start_time = time.perf_counter()
        if self._vad is not None:
            if not self._vad.should_finalize(self._accumulator.vad_buffer):
                return None
            self._metrics.vad_triggers += 1
            logger.debug(f"VAD triggered in session {self.session_id}")
            deltas = [self._process_vad_segment()]
        else:
            if not self._accumulator.ready():
                return None
            deltas = []
            # One huge submit is drained in windows of at most `length` new samples
            while self._accumulator.ready():
                window = self._accumulator.build_window(self._accumulator.length_samples)
                try:
                    deltas.append(self._process_window(window))
                except (InferenceError, AllocationError) as e:
                    # Text from committed windows is already in the transcript and must reach the caller
                    if not any(deltas):
                        raise
                    logger.warning(
                        f"Session {self.session_id}: window failed after {len(deltas)} committed window(s), "
                        f"{self._accumulator.pending_samples} samples stay pending: {e}"
                    )
                    break

        text = " ".join(delta for delta in deltas if delta)
        if not text:
            return None
        return self._make_result(text, is_final=False, start_time=start_time)

    def flush(self) -> StreamResult | None:
        """Finalize: drain remaining audio and return the whole transcript.

        Afterwards the session is empty and reusable. An empty session
        returns None.

        Raises:
            SessionClosedError: If the session was closed
            InferenceError: If the engine failed; the session keeps its state
                so flush() can be retried

        """
        self._ensure_open()

        if self._accumulator.is_empty and not self._transcript:
            self._reset()
            return None

        logger.info(f"Flushing session {self.session_id}")
        previous_state = self._state
        self._update_state(SessionState.FINALIZING)
        start_time = time.perf_counter()

        try:
            if self._vad is not None:
                if self._accumulator.vad_samples:
                    self._process_vad_segment()
            else:
                while self._accumulator.pending_samples:
                    self._process_window(self._accumulator.build_window(self._accumulator.length_samples))

            if self.config.full_session_redecode:
                self._redecode_full_session()
        except StreamingError:
            self._update_state(previous_state)
            raise

        final_text = self._transcript.strip()
        confidence = self._last_confidence
        result = None
        if final_text:
            result = self._make_result(final_text, is_final=True, start_time=start_time, confidence=confidence)

        self._metrics.flushes += 1
        self._reset()

        logger.info(
            f"Session {self.session_id} flushed: {len(final_text.split())} words, "
            f"{self._metrics.total_audio_seconds:.2f}s audio"
        )
        return result

    def set_language(self, code: str | None, auto_detect: bool = False) -> None:
        """Switch language for subsequent inference calls.

        Args:
            code: ISO language code ("en", "pl"...); None or "auto" means detect
            auto_detect: Force detection even when a code is given

        """
        self._ensure_open()
        self._language.set(code, auto_detect)

    def close(self) -> StreamResult | None:
        """Flush once, then release buffers and the engine. Idempotent.

        Returns:
            The final result of the implicit flush (None if empty or already closed)

        """
        if self._state == SessionState.CLOSED:
            return None

        try:
            return self.flush()
        finally:
            self._reset()
            if self.owns_engine:
                self.engine.close()
            self._update_state(SessionState.CLOSED)
            logger.info(f"StreamingSession closed: {self.session_id}")

    def __enter__(self) -> "StreamingSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Internals

    def _infer(self, samples: np.ndarray, single_segment: bool | None = None, use_prompt: bool = True) -> InferenceOutput:
        prompt = self._context.prompt_tokens if use_prompt else ()
        output = self._runner.run(samples, self._language.resolve(), prompt, single_segment=single_segment)

        self._metrics.inference_runs += 1
        self._metrics.total_inference_time_ms += output.elapsed_ms
        self._metrics.max_window_samples = max(self._metrics.max_window_samples, len(samples))
        return output

    def _process_window(self, window: Window) -> str:
        """Fixed-cadence pass: infer, commit, refresh context, diff."""
        output = self._infer(window.samples)
        self._accumulator.commit(window)
        self._last_confidence = output.confidence

        if self._context.advance(self._accumulator, output):
            self._metrics.context_refreshes += 1

        if self._context.check_repetition(output, self._strategy):
            self._metrics.repetition_loops += 1
            return ""

        delta = self._strategy.diff(output)
        logger.debug(
            f"Window {len(window)} samples (carried {window.carried}, new {window.consumed}): delta={delta!r}"
        )
        return self._append_delta(delta)

    def _process_vad_segment(self) -> str:
        """VAD pass: the segment does not overlap the previous one, so its whole text is new."""
        window = self._accumulator.take_vad_segment()
        if len(window) == 0:
            self._accumulator.clear_vad()
            return ""

        output = self._infer(window.samples, use_prompt=False)
        self._accumulator.clear_vad()
        self._last_confidence = output.confidence
        self._strategy.reset()

        if self._context.advance(self._accumulator, output):
            self._metrics.context_refreshes += 1

        if self._context.check_repetition(output, self._strategy):
            self._metrics.repetition_loops += 1
            return ""

        delta = output.text.strip()
        logger.debug(f"VAD segment {len(window)} samples: {delta!r}")
        return self._append_delta(delta)

    def _redecode_full_session(self) -> None:
        """Re-decode the whole capture; its text replaces the transcript when non-empty."""
        full = self._accumulator.full_session()
        if len(full) == 0:
            return
        output = self._infer(full, single_segment=False, use_prompt=False)
        text = output.text.strip()
        if text:
            logger.debug(f"Full-session re-decode replaced transcript ({len(full)} samples)")
            self._transcript = text
            self._last_confidence = output.confidence

    def _append_delta(self, delta: str) -> str:
        if delta:
            self._transcript = f"{self._transcript} {delta}" if self._transcript else delta
            self._metrics.deltas_emitted += 1
        return delta

    def _make_result(
        self,
        text: str,
        *,
        is_final: bool,
        start_time: float,
        confidence: float | None = None,
    ) -> StreamResult:
        try:
            return StreamResult(
                text=text,
                confidence=self._last_confidence if confidence is None else confidence,
                is_final=is_final,
                audio_duration_seconds=self._metrics.total_audio_seconds,
                processing_time_ms=(time.perf_counter() - start_time) * 1000,
            )
        except MemoryError as e:
            raise AllocationError("Could not allocate the result text", cause=e) from e

    def _reset(self) -> None:
        """Return to the pristine empty state (metrics are kept)."""
        self._accumulator.reset()
        self._strategy.reset()
        self._context.reset()
        self._transcript = ""
        self._last_confidence = 0.0
        if self._state != SessionState.CLOSED:
            self._update_state(SessionState.IDLE)
