"""Routes for opening and closing dashboard sessions."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from linkdash.adapters.identity import StaticIdentityOracle
from linkdash.adapters.session_store import DashboardSession, InMemorySessionStore
from linkdash.api.deps import get_context, get_identity, get_sessions
from linkdash.api.schemas import SessionResponse
from linkdash.app_shell.context import StoreContext
from linkdash.components.store import run_load

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=SessionResponse, status_code=201)
def open_session(
    identity: tuple[str, bool] = Depends(get_identity),
    context: StoreContext = Depends(get_context),
    sessions: InMemorySessionStore = Depends(get_sessions),
) -> SessionResponse:
    """Open a session: the store loads once and is kept until closed."""
    username, is_admin = identity
    oracle = StaticIdentityOracle(username=username, is_admin=is_admin)
    store = context.open_store(oracle, load=False)
    loaded = run_load(store)
    session_id = sessions.create(DashboardSession(store=store, identity=oracle))
    logger.info("Opened session for %r (admin=%s)", username, is_admin)
    return SessionResponse(
        session_id=session_id,
        username=username,
        is_admin=is_admin,
        global_count=loaded.global_count,
        personal_counts=loaded.personal_counts,
        from_cache=loaded.from_cache,
    )


@router.delete("/{session_id}", status_code=204)
def close_session(
    session_id: str,
    sessions: InMemorySessionStore = Depends(get_sessions),
) -> None:
    """Discard a session, including any unsaved order."""
    if not sessions.delete(session_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
