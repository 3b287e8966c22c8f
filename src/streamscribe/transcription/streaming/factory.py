"""Factory for creating streaming sessions.

Provides create_session() that:
- Configures package logging from the same config
- Resolves the engine from config (or takes an injected one) and loads it
- Builds the StreamingConfig from config files plus explicit arguments
- Returns a ready-to-use StreamingSession
"""

import logging

from ...core.config import ConfigLoader, get_config
from ...core.errors import ConfigurationError
from ...core.logging import configure_logging
from ..engines.base import InferenceEngine
from ..engines.registry import get_engine_class
from .config import StreamingConfig
from .session import StreamingSession

logger = logging.getLogger(__name__)


def create_session(
    model_reference: str | None = None,
    step_ms: int | None = None,
    length_ms: int | None = None,
    keep_ms: int | None = None,
    threads: int | None = None,
    *,
    use_vad: bool | None = None,
    keep_context: bool | None = None,
    full_session_redecode: bool | None = None,
    diff_strategy: str | None = None,
    language: str | None = None,
    vad_threshold: float | None = None,
    freq_cutoff_hz: float | None = None,
    beam_size: int | None = None,
    streaming_config: StreamingConfig | None = None,
    config: ConfigLoader | None = None,
    engine: InferenceEngine | None = None,
    session_id: str | None = None,
) -> StreamingSession:
    """Create a streaming session with a loaded engine.

    Explicit arguments override values from the config file; None keeps
    the configured value. Logging is configured from the same config
    (see ``core.logging.configure_logging``).

    Args:
        model_reference: Model size name or path (config ``engine.model`` if None)
        step_ms: Audio between fixed-cadence inference calls; <= 0 selects VAD mode
        length_ms: Requested window length
        keep_ms: Audio carried from the previous window
        threads: Engine thread count (0 = engine default)
        use_vad: Gate inference on voice activity instead of a fixed cadence
        keep_context: Carry prompt tokens between windows
        full_session_redecode: Re-decode the whole capture on flush
        diff_strategy: "token" or "text"
        language: ISO code or "auto"
        vad_threshold: Trailing/total energy ratio that ends an utterance
        freq_cutoff_hz: High-pass cutoff applied before the energy comparison
        beam_size: Beam width; 1 means greedy
        streaming_config: Use this config instead of building one
        config: Config loader (the global loader if None)
        engine: Pre-built engine; the session will not close it
        session_id: Session identifier (random if None)

    Returns:
        Configured StreamingSession

    Raises:
        ConfigurationError: If the model reference is missing, the engine is
            unavailable or the model cannot be loaded

    """
    if config is None:
        config = get_config()
    configure_logging(config)

    if streaming_config is None:
        streaming_config = StreamingConfig.from_config(config)
    streaming_config = streaming_config.with_overrides(
        step_ms=step_ms,
        length_ms=length_ms,
        keep_ms=keep_ms,
        threads=threads,
        vad_enabled=use_vad,
        keep_context=keep_context,
        full_session_redecode=full_session_redecode,
        diff_strategy=diff_strategy,
        language=language,
        vad_threshold=vad_threshold,
        freq_cutoff_hz=freq_cutoff_hz,
        beam_size=beam_size,
    )

    owns_engine = engine is None
    if engine is None:
        engine = _build_engine(model_reference, streaming_config, config)

    if not engine.is_ready:
        _load_engine(engine)

    return StreamingSession(engine, streaming_config, session_id=session_id, owns_engine=owns_engine)


def _build_engine(model_reference: str | None, streaming_config: StreamingConfig, config: ConfigLoader) -> InferenceEngine:
    reference = (model_reference if model_reference is not None else config.model_reference).strip()
    if not reference:
        raise ConfigurationError("A model reference is required to create a session")

    engine_name = "stub" if config.use_stub_engine else config.engine_name
    if config.use_stub_engine:
        logger.warning("Stub engine forced by configuration")

    engine_class = get_engine_class(engine_name)
    if engine_name == "faster_whisper":
        return engine_class(
            reference,
            device=config.engine_device,
            compute_type=config.engine_compute_type,
            threads=streaming_config.threads,
            use_gpu=streaming_config.use_gpu,
            flash_attention=config.flash_attention,
        )
    if engine_name == "stub":
        return engine_class(reference)
    return engine_class()


def _load_engine(engine: InferenceEngine) -> None:
    try:
        engine.load()
    except ConfigurationError:
        raise
    except Exception as e:
        logger.exception(f"Engine {engine.__class__.__name__} failed to load: {e}")
        raise ConfigurationError(f"Cannot load engine {engine.__class__.__name__}: {e}") from e
    logger.info(f"Engine {engine.__class__.__name__} ready")
