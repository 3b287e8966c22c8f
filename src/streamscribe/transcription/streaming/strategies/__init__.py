from ....core.errors import ConfigurationError
from .protocol import DiffStrategy
from .text_overlap import TextOverlapStrategy, text_delta
from .token_overlap import (
    TokenOverlapStrategy,
    find_token_overlap,
    has_repetition_loop,
    is_text_token,
    text_tokens,
)


def get_strategy(name: str, **kwargs) -> DiffStrategy:
    """Return a fresh diff strategy by name ("token" or "text")."""
    if name == "token":
        return TokenOverlapStrategy(**kwargs)
    if name == "text":
        return TextOverlapStrategy()
    raise ConfigurationError(f"Unknown diff strategy: {name!r} (expected 'token' or 'text')")


__all__ = [
    "DiffStrategy",
    "TextOverlapStrategy",
    "TokenOverlapStrategy",
    "find_token_overlap",
    "get_strategy",
    "has_repetition_loop",
    "is_text_token",
    "text_delta",
    "text_tokens",
]
