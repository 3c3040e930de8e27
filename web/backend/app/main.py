"""FastAPI application for the Kitabghar club portal.

Provides REST API endpoints wrapping the kitabghar package for:
- Public pages (home, poem wall, library, events, team)
- Anonymous submissions (poems, pen-down posts, loan requests)
- The like toggle
- Operator sign-in, moderation queues and catalog management
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from kitabghar import __version__
from kitabghar.errors import (
    InvalidTransition,
    KitabgharError,
    PermissionDenied,
    RecordNotFound,
    StoreOperationFailed,
    ValidationError,
)
from web.backend.app import dependencies
from web.backend.app.routers import auth, catalog, moderation, public

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    if dependencies._services is not None:
        await dependencies._services.aclose()


app = FastAPI(
    title="Kitabghar API",
    description=(
        "REST API for the Kitabghar book club. "
        "Provides endpoints for the public site, anonymous submissions, "
        "the poem like toggle, and the operator moderation panel."
    ),
    version=__version__,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# CORS middleware (allow all origins for development)
# ---------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Domain errors -> HTTP status
# ---------------------------------------------------------------------------

_STATUS_FOR_ERROR: list[tuple[type[KitabgharError], int]] = [
    (RecordNotFound, status.HTTP_404_NOT_FOUND),
    (StoreOperationFailed, status.HTTP_502_BAD_GATEWAY),
    (InvalidTransition, status.HTTP_409_CONFLICT),
    (PermissionDenied, status.HTTP_403_FORBIDDEN),
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
]


@app.exception_handler(KitabgharError)
async def kitabghar_error_handler(request: Request, exc: KitabgharError) -> JSONResponse:
    """Render domain errors with the same ``{"detail": ...}`` body as HTTPException."""
    code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for error_type, error_status in _STATUS_FOR_ERROR:
        if isinstance(exc, error_type):
            code = error_status
            break
    if code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=code, content={"detail": str(exc)})


# ---------------------------------------------------------------------------
# Include routers
# ---------------------------------------------------------------------------
app.include_router(auth.router)
app.include_router(public.router)
app.include_router(moderation.router)
app.include_router(catalog.router)


# ---------------------------------------------------------------------------
# Root and health-check endpoints
# ---------------------------------------------------------------------------


@app.get("/", tags=["meta"])
async def root():
    """Return basic API information."""
    return {
        "name": "Kitabghar API",
        "version": __version__,
        "description": "Kitabghar book club REST API",
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


@app.get("/health", tags=["meta"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
