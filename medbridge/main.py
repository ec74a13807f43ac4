"""FastAPI application entrypoint."""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text

from medbridge.config import get_settings
from medbridge.db.base import Base
from medbridge.db.session import SessionLocal, engine
from medbridge.routers import messages, realtime, search, summary, translation

logger = logging.getLogger(__name__)


def _prepare_backend_state() -> None:
    """Create the schema if configured and prime the DB connection."""

    settings = get_settings()
    try:
        if settings.create_schema_on_startup:
            Base.metadata.create_all(engine)
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Backend warm-up failed; continuing without startup pre-warm.")


@asynccontextmanager
async def lifespan(_: FastAPI):
    _prepare_backend_state()
    yield


settings = get_settings()
app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(messages.router, tags=["messages"])
app.include_router(search.router, tags=["search"])
app.include_router(summary.router, tags=["summary"])
app.include_router(translation.router, tags=["translation"])
app.include_router(realtime.router, tags=["realtime"])
app.mount("/recordings", StaticFiles(directory=settings.recordings_dir, check_dir=False), name="recordings")


@app.get("/health")
def health() -> dict[str, str]:
    """Simple health check endpoint."""

    return {"status": "ok"}
