"""In-memory dashboard session store adapter.

Each browser session owns one LayeredLinkStore for its lifetime.
For multi-process deployments, sessions must be pinned to one worker.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from datetime import UTC, datetime

from linkdash.adapters.identity import StaticIdentityOracle
from linkdash.components.store import LayeredLinkStore


@dataclass
class DashboardSession:
    store: LayeredLinkStore
    identity: StaticIdentityOracle
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class InMemorySessionStore:
    """In-memory session storage - suitable for single-process deployments."""

    def __init__(self) -> None:
        self._sessions: dict[str, DashboardSession] = {}

    def create(self, session: DashboardSession) -> str:
        """Store a session under a fresh token."""
        token = secrets.token_urlsafe(24)
        self._sessions[token] = session
        return token

    def get(self, token: str) -> DashboardSession | None:
        """Get session by token."""
        return self._sessions.get(token)

    def delete(self, token: str) -> bool:
        """Discard a session and release its store."""
        session = self._sessions.pop(token, None)
        if session is None:
            return False
        session.store.close()
        return True

    def clear(self) -> None:
        """Clear all sessions - useful for testing."""
        for session in self._sessions.values():
            session.store.close()
        self._sessions.clear()
