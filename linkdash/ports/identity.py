from collections.abc import Callable
from typing import Protocol

IdentityListener = Callable[[], None]


class IdentityPort(Protocol):
    """Identity and permission oracle supplied by the host."""

    def get_current_username(self) -> str:
        """Return the logged-in username ("" if unknown)."""
        ...

    def is_administrator(self) -> bool:
        """Return True if the session holds administrator rights."""
        ...

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]:
        """Register a change listener. Returns an unsubscribe callable."""
        ...
