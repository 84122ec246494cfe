import os
from functools import lru_cache
from pathlib import Path

from fastapi import Depends, HTTPException, Request, status

from linkdash.adapters.session_store import DashboardSession, InMemorySessionStore
from linkdash.app_shell.context import StoreContext
from linkdash.rules.loader import load_rules
from linkdash.rules.models import Rules


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.rules_path = Path(os.environ.get("LINKDASH_RULES", str(self.base_dir / "rules.yaml")))


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules() -> Rules:
    return load_rules(get_settings().rules_path)


# --- Context ---
@lru_cache
def get_context() -> StoreContext:
    return StoreContext.create(get_rules())


@lru_cache
def get_sessions() -> InMemorySessionStore:
    return InMemorySessionStore()


# --- Identity ---
def get_identity(request: Request, context: StoreContext = Depends(get_context)) -> tuple[str, bool]:
    """Username from the host-supplied header; admin rights from the admins list."""
    identity = context.rules.identity
    username = request.headers.get(identity.user_header, "").strip()
    return username, username in identity.admins


def get_session(
    session_id: str,
    identity: tuple[str, bool] = Depends(get_identity),
    sessions: InMemorySessionStore = Depends(get_sessions),
) -> DashboardSession:
    session = sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    # Identity may change between requests; the store listens for this
    username, is_admin = identity
    session.identity.set_identity(username, is_admin)
    return session
