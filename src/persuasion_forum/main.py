# src/persuasion_forum/main.py
"""Main entry point for the Persuasion Forum service."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from persuasion_forum.api.middleware import SessionCookieMiddleware
from persuasion_forum.api.v1 import (
    analysis_router,
    auth_router,
    callback_router,
    posts_router,
    protected_router,
    ranking_router,
    votes_router,
)
from persuasion_forum.core.routes import default_route_policy
from persuasion_forum.core.settings import settings
from persuasion_forum.db.session import create_tables
from persuasion_forum.services.supabase import get_supabase_client

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    create_tables()
    if not settings.supabase_configured:
        logger.warning("Hosted backend is not configured; upstream calls will fail")
    logger.info("Gemini API key %s", "set" if settings.gemini_api_key else "not set")
    yield
    await get_supabase_client().close()


# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Voting and discussion platform with a pre-deadline persuasion window",
    version=settings.app_version,
    lifespan=lifespan,
)

# Session gate; the route policy is built once here and never changes
app.add_middleware(SessionCookieMiddleware, policy=default_route_policy())

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Include API routers
app.include_router(auth_router)
app.include_router(callback_router)
app.include_router(protected_router)
app.include_router(posts_router)
app.include_router(votes_router)
app.include_router(ranking_router)
app.include_router(analysis_router)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        {"error": exc.detail},
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    messages = [
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
        for error in exc.errors()
    ]
    return JSONResponse(
        {"error": "; ".join(messages) or "Invalid request"},
        status_code=status.HTTP_400_BAD_REQUEST,
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        {"error": "Internal server error"},
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("persuasion_forum.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
