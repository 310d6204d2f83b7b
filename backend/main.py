"""FastAPI application entry point and configuration."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.session_router import router as session_router
from backend.api.stats_router import router as stats_router
from backend.api.study_router import router as study_router
from backend.database import engine, get_session
from backend.models import Base
from backend.srs.errors import (
    CardMismatchError,
    ConcurrentUpdateError,
    InvalidQualityError,
    SchedulingError,
    SessionCompleteError,
    StorageError,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Initialize database on startup and cleanup on shutdown."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


app = FastAPI(
    title="Hanzi SRS",
    description="Spaced repetition flashcards for Mandarin vocabulary",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(study_router)
app.include_router(session_router)
app.include_router(stats_router)

# Most specific first; the handler walks the MRO of the raised error.
_STATUS_BY_ERROR: dict[type[SchedulingError], int] = {
    ConcurrentUpdateError: 409,
    StorageError: 503,
    InvalidQualityError: 422,
    CardMismatchError: 400,
    SessionCompleteError: 410,
}


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError) -> JSONResponse:
    """Translate core errors into HTTP responses."""
    status_code = next(
        (_STATUS_BY_ERROR[cls] for cls in type(exc).__mro__ if cls in _STATUS_BY_ERROR),
        500,
    )
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.get("/health")
async def health_check(db: AsyncSession = Depends(get_session)) -> dict[str, str]:
    """Check database connectivity and return status."""
    await db.execute(text("SELECT 1"))
    return {"status": "ok"}
