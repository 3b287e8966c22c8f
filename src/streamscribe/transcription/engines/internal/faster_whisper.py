import logging
import math
from collections.abc import Sequence

import numpy as np

from ..base import (
    EngineNotAvailableError,
    InferenceEngine,
    InferenceParams,
    SamplingStrategy,
    Segment,
    TokenData,
)
from ....core.errors import ConfigurationError

logger = logging.getLogger(__name__)


def detect_cuda_support() -> tuple[bool, str]:
    """Detect if CUDA is available and supported by CTranslate2.

    Returns:
        (cuda_available, reason): Boolean indicating CUDA availability and reason string

    """
    try:
        import ctranslate2

        cuda_device_count = ctranslate2.get_cuda_device_count()
        if cuda_device_count > 0:
            return True, f"CUDA available with {cuda_device_count} device(s)"
        return False, "CUDA not available (no devices detected)"
    except ImportError:
        return False, "CTranslate2 not installed"
    except AttributeError:
        return False, "CTranslate2 version does not support CUDA detection"
    except Exception as e:
        return False, f"CUDA detection failed: {e!s}"


def temperature_schedule(params: InferenceParams) -> tuple[float, ...]:
    """Temperatures tried in order; a single 0.0 when fallback is disabled."""
    increment = params.effective_temperature_inc
    if increment <= 0.0:
        return (0.0,)
    return tuple(float(t) for t in np.arange(0.0, 1.0 + 1e-6, increment))


class FasterWhisperEngine(InferenceEngine):
    """Engine implementation using faster-whisper (CTranslate2).

    The model is loaded once; each ``run()`` is a single blocking
    ``WhisperModel.transcribe()`` over the given window.
    """

    def __init__(
        self,
        model_reference: str,
        *,
        device: str = "auto",
        compute_type: str = "auto",
        threads: int = 0,
        use_gpu: bool = True,
        flash_attention: bool = False,
    ):
        if not model_reference or not str(model_reference).strip():
            raise ConfigurationError("A model reference (size name or path) is required")

        self.model_reference = str(model_reference).strip()
        self.device = device
        self.compute_type = compute_type
        self.threads = threads
        self.use_gpu = use_gpu
        self.flash_attention = flash_attention

        self.model = None
        self._tokenizer = None
        self._warned_audio_ctx = False

    def _resolve_device(self) -> str:
        if not self.use_gpu:
            return "cpu"
        if self.device != "auto":
            return self.device
        cuda_available, reason = detect_cuda_support()
        logger.debug(f"Device auto-detection: {reason}")
        return "cuda" if cuda_available else "cpu"

    def _resolve_compute_type(self, device: str) -> str:
        if self.compute_type != "auto":
            return self.compute_type
        return "float16" if device == "cuda" else "int8"

    def load(self) -> None:
        """Load the faster-whisper model."""
        try:
            from faster_whisper import WhisperModel
            from faster_whisper.tokenizer import Tokenizer
        except ImportError as e:
            raise EngineNotAvailableError(
                "faster-whisper is not installed. Please install it or use a different engine."
            ) from e

        device = self._resolve_device()
        compute_type = self._resolve_compute_type(device)
        model_kwargs = {"flash_attention": True} if self.flash_attention else {}

        logger.info(f"Loading faster-whisper model {self.model_reference} on {device} with {compute_type}...")
        try:
            self.model = WhisperModel(
                self.model_reference,
                device=device,
                compute_type=compute_type,
                cpu_threads=max(0, self.threads),
                **model_kwargs,
            )
        except Exception as e:
            logger.exception(f"Failed to load faster-whisper model: {e}")
            raise ConfigurationError(f"Cannot load model {self.model_reference!r}: {e}") from e

        # Control-token ids do not depend on the task/language, so one tokenizer serves every call.
        self._tokenizer = Tokenizer(
            self.model.hf_tokenizer,
            self.model.model.is_multilingual,
            task="transcribe",
            language="en",
        )
        logger.info(f"faster-whisper model {self.model_reference} loaded successfully")

    def is_special(self, token_id: int) -> bool:
        """Whisper places every control token (sot, language, timestamps...) at or after eot."""
        if self._tokenizer is None:
            return False
        return token_id >= self._tokenizer.eot

    def detokenize(self, tokens: Sequence[TokenData]) -> str:
        """Decode token ids jointly so multi-byte characters survive."""
        if self._tokenizer is None:
            return "".join(t.text for t in tokens)
        return str(self._tokenizer.decode([t.id for t in tokens if not self.is_special(t.id)]))

    def run(self, samples: np.ndarray, params: InferenceParams) -> list[Segment]:
        if self.model is None:
            raise RuntimeError("Model not loaded")

        if params.audio_ctx and not self._warned_audio_ctx:
            logger.warning("audio_ctx is not supported by faster-whisper; decoding with the full encoder context")
            self._warned_audio_ctx = True

        beam_size = params.beam_size if params.sampling is SamplingStrategy.BEAM_SEARCH else 1
        segments, info = self.model.transcribe(
            np.asarray(samples, dtype=np.float32),
            language=params.language,
            task="translate" if params.translate else "transcribe",
            beam_size=beam_size,
            best_of=1 if beam_size == 1 else beam_size,
            temperature=temperature_schedule(params),
            condition_on_previous_text=False,
            initial_prompt=list(params.prompt_tokens) if params.prompt_tokens else None,
            without_timestamps=params.single_segment,
            max_new_tokens=params.max_tokens or None,
            vad_filter=False,
        )

        result = [self._convert_segment(segment) for segment in segments]
        logger.debug(f"faster-whisper produced {len(result)} segment(s), language={info.language}")

        if params.single_segment and len(result) > 1:
            merged_tokens = tuple(token for segment in result for token in segment.tokens)
            merged_text = " ".join(segment.text.strip() for segment in result if segment.text.strip())
            result = [Segment(text=merged_text, tokens=merged_tokens)]

        return result

    def _convert_segment(self, segment) -> Segment:
        # faster-whisper reports segment-level log probability only
        probability = min(1.0, max(0.0, math.exp(segment.avg_logprob)))
        tokens = []
        for token_id in segment.tokens:
            special = self.is_special(token_id)
            text = "" if special else str(self._tokenizer.decode([token_id]))
            tokens.append(TokenData(id=int(token_id), text=text, p=probability, special=special))
        return Segment(text=segment.text, tokens=tuple(tokens))

    def close(self) -> None:
        self.model = None
        self._tokenizer = None

    @property
    def is_ready(self) -> bool:
        return self.model is not None
