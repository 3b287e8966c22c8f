"""Engine registry and availability checks.

Keep engine selection logic centralized here so other modules don't need to do
import-probing.
"""

from __future__ import annotations

import logging

from .base import EngineNotAvailableError, InferenceEngine

logger = logging.getLogger(__name__)

FASTER_WHISPER_AVAILABLE: bool | None = None


def _check_faster_whisper_available() -> bool:
    """Return whether faster-whisper can be imported."""
    global FASTER_WHISPER_AVAILABLE
    if FASTER_WHISPER_AVAILABLE is not None:
        return FASTER_WHISPER_AVAILABLE
    try:
        import faster_whisper  # noqa: F401

        FASTER_WHISPER_AVAILABLE = True
    except Exception as exc:
        logger.debug("faster-whisper unavailable: %s", exc)
        FASTER_WHISPER_AVAILABLE = False
    return FASTER_WHISPER_AVAILABLE


def get_available_engines() -> list[str]:
    """Return list of available engine names."""
    engines = ["scripted", "stub"]
    if _check_faster_whisper_available():
        engines.append("faster_whisper")
    return engines


def get_engine_info() -> dict[str, dict]:
    """Return detailed info about all engines."""
    return {
        "faster_whisper": {
            "available": _check_faster_whisper_available(),
            "description": "Whisper via CTranslate2 with CUDA/CPU support",
            "models": "Whisper tiny/base/small/medium/large-v3 or a converted model path",
            "install": "pip install faster-whisper",
        },
        "stub": {
            "available": True,
            "description": "Placeholder transcripts (no model downloads)",
            "models": "N/A",
            "install": "Included by default",
        },
        "scripted": {
            "available": True,
            "description": "Deterministic test engine replaying scripted outputs",
            "models": "N/A",
            "install": "Included by default",
        },
    }


def get_engine_class(engine_name: str) -> type[InferenceEngine]:
    """Factory function to get the engine class based on name.

    Raises:
        EngineNotAvailableError: If the engine is unknown or its dependencies are missing.

    """
    if engine_name == "faster_whisper":
        if not _check_faster_whisper_available():
            raise EngineNotAvailableError(
                "faster_whisper engine requested but faster-whisper is not installed.\n"
                "Install it with: pip install faster-whisper\n"
                'Or set [streamscribe.engine] use_stub_engine = true to run without a model.'
            )
        from .internal.faster_whisper import FasterWhisperEngine

        return FasterWhisperEngine

    if engine_name == "stub":
        from .internal.dummy import StubEngine

        return StubEngine

    if engine_name == "scripted":
        from .internal.dummy import ScriptedEngine

        return ScriptedEngine

    available = get_available_engines()
    raise EngineNotAvailableError(
        f"Unknown engine: '{engine_name}'\n"
        f"Available engines: {', '.join(available)}\n"
        f"  - 'faster_whisper' (default): Whisper via CTranslate2\n"
        f"  - 'stub': placeholder transcripts, no model\n"
        f"  - 'scripted': deterministic test engine\n"
        f'Check your config: [streamscribe.engine] name = "faster_whisper"'
    )
