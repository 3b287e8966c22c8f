"""Language selection for a streaming session."""

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

AUTO = "auto"


def normalise_language_code(code: str | None) -> str:
    """Lower-case and trim a language code; "" means auto-detect."""
    if code is None:
        return ""
    trimmed = code.strip()
    if not trimmed or trimmed.lower() == AUTO:
        return ""
    return trimmed.lower()


@dataclass
class LanguagePolicy:
    """Either auto-detect or a fixed language code.

    ``code`` is the normalised default. A per-call hint overrides it; "auto"
    or an empty hint falls back to the default, and auto-detection happens
    only when no code is known.
    """

    code: str = ""
    auto_detect: bool = True

    @classmethod
    def from_setting(cls, setting: str | None) -> "LanguagePolicy":
        code = normalise_language_code(setting)
        return cls(code=code, auto_detect=not code)

    def set(self, code: str | None, auto_detect: bool = False) -> None:
        """Switch language; takes effect on the next inference call."""
        normalised = normalise_language_code(code)
        self.auto_detect = auto_detect or not normalised
        self.code = "" if self.auto_detect else normalised
        logger.debug(f"Language set to {self.describe()}")

    def resolve(self, hint: str | None = None) -> str | None:
        """Language for one engine call; None requests detection."""
        hinted = normalise_language_code(hint)
        if hinted:
            return hinted
        if self.auto_detect or not self.code:
            return None
        return self.code

    def describe(self) -> str:
        return AUTO if self.auto_detect else self.code
