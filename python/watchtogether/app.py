"""FastAPI application creation and configuration.

This module creates and configures the FastAPI application instance.
It registers exception handlers, auth middleware, request-id middleware, and routes.

Middleware Ordering (Critical):
- Middleware runs in reverse order of registration
- RequestIDMiddleware is added LAST so it runs FIRST (outermost)
- This ensures all requests (including auth failures) get X-Request-ID

Catalog Client Lifecycle:
- httpx.Client is created at startup and stored in app.state
- TMDBClient wraps the shared client for connection pooling
- Client is closed at shutdown
"""

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from watchtogether.api.routes import create_api_router
from watchtogether.auth.middleware import AuthMiddleware
from watchtogether.auth.verifier import JwksTokenVerifier, TokenVerifier
from watchtogether.config import get_settings
from watchtogether.logging import configure_logging, get_logger
from watchtogether.middleware.request_id import RequestIDMiddleware
from watchtogether.responses import register_exception_handlers
from watchtogether.services.tmdb import TMDBClient

# Configure structured logging at import time
configure_logging()

logger = get_logger(__name__)


def create_token_verifier() -> JwksTokenVerifier:
    """Create the token verifier from the identity provider settings."""
    settings = get_settings()

    return JwksTokenVerifier(
        jwks_url=settings.auth_jwks_url,  # type: ignore
        issuer=settings.normalized_issuer,  # type: ignore
        audiences=settings.audience_list,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Own the shared catalog HTTP client for the life of the process."""
    settings = get_settings()

    app.state.httpx_client = httpx.Client(
        timeout=httpx.Timeout(settings.tmdb_timeout_s, connect=5.0),
        limits=httpx.Limits(max_connections=50, max_keepalive_connections=10),
    )
    app.state.catalog_client = TMDBClient.from_settings(settings, app.state.httpx_client)
    logger.info("catalog_client_initialized", base_url=settings.tmdb_base_url)

    yield

    app.state.httpx_client.close()
    logger.info("httpx_client_closed")


def create_app(
    skip_auth_middleware: bool = False,
    token_verifier: TokenVerifier | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        skip_auth_middleware: If True, skip adding auth middleware (for testing).
        token_verifier: Optional custom token verifier (for testing).
    """
    settings = get_settings()

    app = FastAPI(
        title="WatchTogether API",
        description="Backend API for WatchTogether - shared movie and TV watch-lists",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    register_exception_handlers(app)

    app.include_router(create_api_router())

    if not skip_auth_middleware:
        verifier = token_verifier or create_token_verifier()
        app.add_middleware(
            AuthMiddleware,
            verifier=verifier,
            internal_secret=settings.internal_secret,
        )
        logger.info("auth_middleware_enabled", env=settings.app_env.value)

    return app


def add_request_id_middleware(app: FastAPI, log_requests: bool = True) -> None:
    """Add request-id middleware to the app.

    Call AFTER all other middleware is added, so it runs FIRST.
    """
    app.add_middleware(RequestIDMiddleware, log_requests=log_requests)
    logger.info("request_id_middleware_enabled")
