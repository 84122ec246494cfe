"""
Store component - Port interfaces.
"""

from __future__ import annotations

from typing import Protocol

from linkdash.ports.clock import ClockPort
from linkdash.ports.identity import IdentityPort


class BlobStorePort(Protocol):
    """Named blob persistence. Writes may be denied."""

    def read(self, key: str) -> bytes | None:
        """Return bytes for key, or None if absent or unreadable."""
        ...

    def write(self, key: str, data: bytes) -> bool:
        """Replace the blob under key. Returns False if the write failed."""
        ...


class FallbackCachePort(Protocol):
    """Non-authoritative string cache used when the blob store is unreadable."""

    def get(self, key: str) -> str | None:
        """Get cached value."""
        ...

    def set(self, key: str, value: str) -> None:
        """Set cached value."""
        ...


__all__ = ["BlobStorePort", "FallbackCachePort", "ClockPort", "IdentityPort"]
