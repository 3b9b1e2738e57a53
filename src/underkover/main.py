# src/underkover/main.py
"""Main entry point for the Underkover application."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from underkover.api.v1 import (
    comments_router,
    ghost_circles_router,
    posts_router,
    tags_router,
)
from underkover.core.errors import UnderkoverError, ValidationFailed, kind_for_status
from underkover.core.settings import settings
from underkover.db.session import SessionLocal
from underkover.services.feed_cache import build_feed_cache
from underkover.services.tag_dispatch import TagStatsDispatcher, TagSweepWorker

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Underkover API",
    description="Anonymous short-lived posts, comments and trending tags",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(posts_router, prefix="/api/v1")
app.include_router(comments_router, prefix="/api/v1")
app.include_router(tags_router, prefix="/api/v1")
app.include_router(ghost_circles_router, prefix="/api/v1")


@app.exception_handler(UnderkoverError)
async def underkover_error_handler(request: Request, exc: UnderkoverError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "kind": exc.kind},
    )


@app.exception_handler(HTTPException)
async def http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "kind": kind_for_status(exc.status_code)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": jsonable_encoder(exc.errors()), "kind": ValidationFailed.kind},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    detail = f"Internal server error: {exc}" if settings.debug else "Internal server error"
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": detail, "kind": kind_for_status(status.HTTP_500_INTERNAL_SERVER_ERROR)},
    )


@app.on_event("startup")
async def on_startup() -> None:
    app.state.feed_cache = build_feed_cache(settings)

    dispatcher = TagStatsDispatcher(SessionLocal)
    await dispatcher.start()
    app.state.tag_dispatcher = dispatcher

    sweeper = TagSweepWorker(SessionLocal, settings.tag_sweep_interval_seconds)
    await sweeper.start()
    app.state.tag_sweeper = sweeper
    logger.info("Underkover started with %s feed cache", settings.feed_cache_backend)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    sweeper: TagSweepWorker | None = getattr(app.state, "tag_sweeper", None)
    if sweeper:
        await sweeper.stop()
    dispatcher: TagStatsDispatcher | None = getattr(app.state, "tag_dispatcher", None)
    if dispatcher:
        await dispatcher.stop()
    cache = getattr(app.state, "feed_cache", None)
    if cache is not None:
        cache.close()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": "Underkover API",
        "version": settings.app_version,
        "description": "Anonymous short-lived posts, comments and trending tags",
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO)
    uvicorn.run("underkover.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
