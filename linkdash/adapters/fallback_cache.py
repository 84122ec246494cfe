"""
Degraded-mode cache adapters.

Implements FallbackCachePort. Holds the last-known-good serialized
collections for the current user so a session can still show links when
the primary storage cannot be read. Never authoritative.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


class InMemoryFallbackCache:
    """Process-local cache - suitable for tests and single-process deployments."""

    def __init__(self) -> None:
        self._values: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def clear(self) -> None:
        """Clear all entries - useful for testing."""
        self._values.clear()


class JsonFileFallbackCache:
    """
    Key/value cache kept in a single JSON object file.

    Cache failures are logged and otherwise ignored; the cache is a
    convenience, not a source of truth.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Fallback cache unreadable at %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        values = self._load()
        values[key] = value
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_name(f".{self.path.name}.tmp")
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(values, f)
            os.replace(tmp, self.path)
        except OSError as e:
            logger.warning("Fallback cache write failed at %s: %s", self.path, e)
