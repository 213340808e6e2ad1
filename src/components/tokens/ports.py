"""
Tokens component port definitions.
"""

from __future__ import annotations

from typing import Protocol

from .models import TokenMap


class KeyValueStorePort(Protocol):
    """Blob store holding one serialized value per key."""

    def get(self, key: str, default: str | None = None) -> str | None:
        """Get the blob stored under key, or default if missing."""
        ...

    def set(self, key: str, blob: str) -> None:
        """Replace the blob stored under key."""
        ...


class TokenStorePort(Protocol):
    """Canonical token mapping with whole-value replace semantics."""

    def load(self) -> TokenMap:
        """Get the current token mapping."""
        ...

    def save(self, tokens: TokenMap) -> None:
        """Persist the full token mapping."""
        ...
