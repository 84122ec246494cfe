import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI

from linkdash.api.deps import get_rules, get_sessions
from linkdash.api.routes import links, sessions

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    # Load rules on startup (fail-fast)
    try:
        rules = get_rules()
        logging.basicConfig(level=rules.logging.level.upper())
        logger.info("Rules loaded; data dir %s", rules.storage.data_dir)
    except Exception as e:
        print(f"CRITICAL: Rules load failed: {e}", file=sys.stderr)
        sys.exit(1)

    yield
    get_sessions().clear()


app = FastAPI(
    title="LinkDash API",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.include_router(sessions.router, prefix="/api/sessions", tags=["Sessions"])
app.include_router(links.router, prefix="/api/sessions", tags=["Links"])


@app.get("/health")
def health_check() -> dict[str, Any]:
    """Health check endpoint."""
    return {"status": "ok", "service": "api"}
