"""Identity oracle adapters.

Implement IdentityPort. The host (reverse proxy, CLI flags) decides who the
user is; these adapters only hold that answer and announce changes.
"""

import logging
from collections.abc import Callable, Iterable

from linkdash.ports.identity import IdentityListener

logger = logging.getLogger(__name__)


class StaticIdentityOracle:
    """Mutable identity holder that notifies subscribers on change."""

    def __init__(self, username: str = "", is_admin: bool = False) -> None:
        self._username = username
        self._is_admin = is_admin
        self._listeners: list[IdentityListener] = []

    def get_current_username(self) -> str:
        return self._username

    def is_administrator(self) -> bool:
        return self._is_admin

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_identity(self, username: str, is_admin: bool) -> bool:
        """Update identity. Returns True and notifies listeners if anything changed."""
        if username == self._username and is_admin == self._is_admin:
            return False
        logger.info(
            "Identity changed: %r (admin=%s) -> %r (admin=%s)",
            self._username,
            self._is_admin,
            username,
            is_admin,
        )
        self._username = username
        self._is_admin = is_admin
        for listener in list(self._listeners):
            listener()
        return True


def admin_oracle_for(username: str, admins: Iterable[str], force_admin: bool = False) -> StaticIdentityOracle:
    """Build an oracle whose admin flag comes from the configured admins list."""
    return StaticIdentityOracle(username=username, is_admin=force_admin or username in set(admins))
