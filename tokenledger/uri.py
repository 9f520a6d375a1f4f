"""
uri.py - Token Metadata URI Construction

Deterministic: base path + "/" + zero-padded decimal id + suffix.

    URIResolver("https://example.org/cards").resolve(7)
    # 'https://example.org/cards/000007.json'
"""

from __future__ import annotations
from dataclasses import dataclass

from .core import DEFAULT_BASE_URI, URI_DIGITS, URI_SUFFIX, check_token_id


@dataclass(frozen=True, slots=True)
class URIResolver:
    """
    Builds metadata URIs from configuration and a token id.

    Ids wider than `digits` are rendered in full, never truncated.
    """
    base_uri: str = DEFAULT_BASE_URI
    digits: int = URI_DIGITS
    suffix: str = URI_SUFFIX

    def __post_init__(self):
        if self.digits <= 0:
            raise ValueError(f"digits must be positive, got {self.digits}")
        object.__setattr__(self, 'base_uri', self.base_uri.rstrip("/"))

    def resolve(self, token_id: int) -> str:
        check_token_id(token_id)
        return f"{self.base_uri}/{token_id:0{self.digits}d}{self.suffix}"
