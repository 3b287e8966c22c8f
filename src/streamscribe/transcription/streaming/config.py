"""Streaming configuration.

Provides StreamingConfig with defaults, latency presets and the derived
sample counts the session works with.
"""

from dataclasses import dataclass, replace
from typing import Literal, Optional

from ...core.config import ConfigLoader, get_config
from ...core.errors import ConfigurationError
from ..engines.base import InferenceParams, SamplingStrategy

# Latency presets trade responsiveness against accuracy
LATENCY_PRESETS = {
    "low": {
        "step_ms": 1000,
        "length_ms": 5000,
        "keep_ms": 200,
    },
    "medium": {
        "step_ms": 3000,
        "length_ms": 10000,
        "keep_ms": 200,
    },
    "high": {
        "step_ms": 5000,
        "length_ms": 15000,
        "keep_ms": 500,
    },
}

REPETITION_POLICIES = ("reset_context", "ignore")


def _samples(ms: int, sample_rate: int) -> int:
    return int(ms) * int(sample_rate) // 1000


@dataclass
class StreamingConfig:
    """Configuration for streaming transcription sessions.

    Loaded from the ``[streamscribe.streaming]`` table with defaults. A
    ``step_ms`` of zero or less, or ``vad_enabled``, selects VAD mode.
    """

    # Timing
    step_ms: int = 3000
    length_ms: int = 10000
    keep_ms: int = 200
    sample_rate: int = 16000

    # Latency preset (overrides step/length/keep if set)
    latency_preset: Optional[Literal["low", "medium", "high"]] = None

    # Language: "auto" or an ISO code
    language: str = "auto"

    # Diff and context behaviour
    diff_strategy: Literal["token", "text"] = "token"
    keep_context: bool = False
    full_session_redecode: bool = False
    on_repetition_loop: Literal["reset_context", "ignore"] = "reset_context"

    # Voice activity
    vad_enabled: bool = False
    vad_threshold: float = 0.6
    freq_cutoff_hz: float = 100.0
    vad_window_ms: int = 2000
    vad_last_ms: int = 1000

    # Decoding
    beam_size: int = 1
    translate: bool = False
    temperature_inc: float = 0.2
    disable_fallback: bool = False
    max_tokens: int = 0
    audio_ctx: int = 0
    threads: int = 0
    use_gpu: bool = True

    def __post_init__(self):
        if self.latency_preset is not None:
            if self.latency_preset not in LATENCY_PRESETS:
                raise ConfigurationError(
                    f"Unknown latency preset {self.latency_preset!r}; expected one of {sorted(LATENCY_PRESETS)}"
                )
            for key, value in LATENCY_PRESETS[self.latency_preset].items():
                setattr(self, key, value)
            # Applied once; later replace() calls keep the explicit values
            self.latency_preset = None
        self.validate()

    def validate(self) -> None:
        if self.sample_rate <= 0:
            raise ConfigurationError(f"sample_rate must be positive, got {self.sample_rate}")
        if self.threads < 0:
            raise ConfigurationError(f"threads must be >= 0, got {self.threads}")
        if self.beam_size < 1:
            raise ConfigurationError(f"beam_size must be >= 1, got {self.beam_size}")
        if self.diff_strategy not in ("token", "text"):
            raise ConfigurationError(f"diff_strategy must be 'token' or 'text', got {self.diff_strategy!r}")
        if self.on_repetition_loop not in REPETITION_POLICIES:
            raise ConfigurationError(
                f"on_repetition_loop must be one of {REPETITION_POLICIES}, got {self.on_repetition_loop!r}"
            )
        if self.length_ms < 0 or self.keep_ms < 0:
            raise ConfigurationError("length_ms and keep_ms must not be negative")

    @classmethod
    def from_config(cls, config: Optional[ConfigLoader] = None, **overrides) -> "StreamingConfig":
        """Load streaming config from the config file and environment.

        Args:
            config: Loader to read from (the global loader if None)
            **overrides: Field values that take precedence over the file

        """
        if config is None:
            config = get_config()
        streaming_cfg = config.get("streaming", {})
        decoding_cfg = streaming_cfg.get("decoding", {})
        vad_cfg = streaming_cfg.get("vad", {})

        values = {
            "step_ms": streaming_cfg.get("step_ms", 3000),
            "length_ms": streaming_cfg.get("length_ms", 10000),
            "keep_ms": streaming_cfg.get("keep_ms", 200),
            "sample_rate": streaming_cfg.get("sample_rate", 16000),
            "latency_preset": streaming_cfg.get("latency_preset"),
            "language": streaming_cfg.get("language", "auto"),
            "diff_strategy": streaming_cfg.get("diff_strategy", "token"),
            "keep_context": streaming_cfg.get("keep_context", False),
            "full_session_redecode": streaming_cfg.get("full_session_redecode", False),
            "on_repetition_loop": streaming_cfg.get("on_repetition_loop", "reset_context"),
            "vad_enabled": vad_cfg.get("enabled", False),
            "vad_threshold": vad_cfg.get("threshold", 0.6),
            "freq_cutoff_hz": vad_cfg.get("freq_cutoff_hz", 100.0),
            "vad_window_ms": vad_cfg.get("window_ms", 2000),
            "vad_last_ms": vad_cfg.get("last_ms", 1000),
            "beam_size": decoding_cfg.get("beam_size", 1),
            "translate": decoding_cfg.get("translate", False),
            "temperature_inc": decoding_cfg.get("temperature_inc", 0.2),
            "disable_fallback": decoding_cfg.get("disable_fallback", False),
            "max_tokens": decoding_cfg.get("max_tokens", 0),
            "audio_ctx": decoding_cfg.get("audio_ctx", 0),
            "threads": config.engine_threads,
            "use_gpu": config.use_gpu,
        }
        values.update(overrides)
        return cls(**values)

    def with_overrides(self, **overrides) -> "StreamingConfig":
        """Return a copy with some fields replaced (None values are ignored)."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes) if changes else self

    @property
    def vad_mode(self) -> bool:
        """True when inference is gated by voice activity instead of a fixed cadence."""
        return self.vad_enabled or self.step_ms <= 0

    @property
    def step_samples(self) -> int:
        """Pending samples needed before a fixed-cadence inference (0 in VAD mode)."""
        if self.vad_mode:
            return 0
        return max(_samples(self.step_ms, self.sample_rate), 1)

    @property
    def length_samples(self) -> int:
        """Requested window length in samples; never shorter than the step."""
        length = _samples(self.length_ms, self.sample_rate)
        if self.vad_mode:
            return max(length, 1)
        return max(length, self.step_samples)

    @property
    def keep_samples(self) -> int:
        """Tail samples carried into the next window; never longer than the step."""
        if self.vad_mode:
            return 0
        return min(_samples(self.keep_ms, self.sample_rate), self.step_samples)

    @property
    def vad_window_samples(self) -> int:
        return _samples(self.vad_window_ms, self.sample_rate)

    @property
    def vad_buffer_cap(self) -> int:
        """Maximum VAD buffer length: requested length plus the VAD lookback window."""
        return self.length_samples + self.vad_window_samples

    @property
    def context_carry(self) -> bool:
        """Prompt carry-over between windows; always off in VAD mode."""
        return self.keep_context and not self.vad_mode

    @property
    def reset_period(self) -> int:
        """Inference iterations between context refreshes."""
        if self.vad_mode:
            return 1
        step_ms = max(self.step_ms, 1)
        return max(1, self.length_ms // step_ms - 1)

    def inference_params(self) -> InferenceParams:
        """Base decoding parameters; language and prompt are set per call."""
        return InferenceParams(
            language=None,
            translate=self.translate,
            sampling=SamplingStrategy.BEAM_SEARCH if self.beam_size > 1 else SamplingStrategy.GREEDY,
            beam_size=self.beam_size,
            threads=self.threads,
            single_segment=not self.vad_mode,
            temperature_inc=self.temperature_inc,
            disable_fallback=self.disable_fallback,
            max_tokens=self.max_tokens,
            use_gpu=self.use_gpu,
            audio_ctx=self.audio_ctx,
        )
