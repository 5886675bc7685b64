# src/bonsai_auth/main.py
"""Main entry point for the Bonsai Auth application."""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bonsai_auth.api.v1 import auth_router
from bonsai_auth.core.logging import configure_logging
from bonsai_auth.core.settings import settings
from bonsai_auth.services.auth_flow import AuthFlowController
from bonsai_auth.services.challenge_store import build_challenge_store
from bonsai_auth.services.credential_store import build_credential_store
from bonsai_auth.services.errors import AuthError
from bonsai_auth.services.notifier import build_notifier

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Bonsai Auth API",
    description="Password and one-time passcode authentication",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(auth_router, prefix="/api/v1")


@app.middleware("http")
async def log_requests(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Log method, path, status and elapsed time for every request."""
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        logger.exception(
            "HTTP %s %s failed in %.4f ms",
            request.method,
            request.url.path,
            (time.perf_counter() - started) * 1000,
        )
        raise
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(
        "HTTP %s %s responded %d in %.4f ms",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
    )
    return response


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Render authentication failures as ``{"error": <code>}``."""
    return JSONResponse(status_code=exc.status_code, content={"error": exc.error_code})


@app.on_event("startup")
async def on_startup() -> None:
    configure_logging(settings)
    logger.info("Application starting up")
    credentials = build_credential_store(settings)
    challenges = build_challenge_store(settings)
    notifier = build_notifier(settings)
    app.state.credential_store = credentials
    app.state.challenge_store = challenges
    app.state.auth_flow = AuthFlowController.from_settings(
        settings, credentials, challenges, notifier
    )
    logger.info("Application started")


@app.on_event("shutdown")
async def on_shutdown() -> None:
    logger.info("Application stopping")
    app.state.auth_flow = None
    for name in ("challenge_store", "credential_store"):
        store = getattr(app.state, name, None)
        if store is not None:
            await store.close()
            setattr(app.state, name, None)
    logger.info("Application stopped")


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
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("bonsai_auth.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
