"""
Records component - Data models.
"""

from __future__ import annotations

from dataclasses import dataclass

# --- Validation Errors ---


@dataclass(frozen=True)
class LinkValidationError:
    """Link validation error."""

    code: str
    message: str
    field: str | None = None
