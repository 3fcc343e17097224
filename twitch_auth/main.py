"""
FastAPI application hosting the Twitch login strategy.

This module wires dependencies and configures the application.
The strategy lives in twitch_auth/core, the OAuth2 engine in
twitch_auth/infrastructure.
"""

import logging
import os
from contextlib import asynccontextmanager
from datetime import UTC, datetime

# Configure logging FIRST, before other local imports
from twitch_auth.logging_config import setup_global_logging

setup_global_logging()

from fastapi import FastAPI, Request, status  # noqa: E402
from fastapi.responses import JSONResponse  # noqa: E402
from starlette.middleware.sessions import SessionMiddleware  # noqa: E402

from twitch_auth.core.exceptions import (  # noqa: E402
    AuthorizationError,
    InternalOAuthError,
    TokenError,
)
from twitch_auth.oauth import router as auth_router  # noqa: E402
from twitch_auth.oauth.config import get_twitch_config  # noqa: E402
from twitch_auth.oauth.dependencies import CurrentUser  # noqa: E402

logger = logging.getLogger(__name__)


# ============================================================================
# Application Lifecycle
# ============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    The strategy is built lazily on the first login request; startup only
    reports whether Twitch credentials are present.
    """
    if get_twitch_config().is_configured():
        logger.info("Application starting up with Twitch login enabled")
    else:
        logger.warning("Twitch OAuth not configured (missing credentials)")
    yield
    logger.info("Shutting down application...")


app = FastAPI(
    title="Twitch Login",
    description="Authenticates users with Twitch via OAuth 2.0",
    version="1.0.0",
    lifespan=lifespan,
)

# Session middleware holds the OAuth state and the logged-in user id
SESSION_SECRET_KEY = os.getenv("SESSION_SECRET_KEY")
if not SESSION_SECRET_KEY:
    raise ValueError("SESSION_SECRET_KEY is not set in the environment.")
app.add_middleware(SessionMiddleware, secret_key=SESSION_SECRET_KEY)


# ============================================================================
# Centralized Exception Handlers
# ============================================================================


@app.exception_handler(AuthorizationError)
async def authorization_error_handler(request: Request, exc: AuthorizationError):
    """Twitch redirected back with an error other than access_denied."""
    logger.warning(f"Twitch authorization error: {exc}", extra={"code": exc.code})
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"status": "error", "code": exc.code, "message": str(exc)},
    )


@app.exception_handler(TokenError)
async def token_error_handler(request: Request, exc: TokenError):
    """Twitch rejected the authorization code."""
    logger.warning(f"Twitch token error: {exc}", extra={"code": exc.code})
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"status": "error", "code": exc.code, "message": str(exc)},
    )


@app.exception_handler(InternalOAuthError)
async def internal_oauth_error_handler(request: Request, exc: InternalOAuthError):
    """
    Twitch could not be reached or answered with something unusable.

    Returns 502 Bad Gateway: the failure is upstream, not the client's.
    """
    logger.error(f"Twitch upstream error: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"status": "error", "message": "Failed to communicate with Twitch"},
    )


# ============================================================================
# Health Check Endpoints
# ============================================================================


@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "twitch-auth",
        "timestamp": datetime.now(UTC).isoformat(),
    }


@app.get("/health")
async def health():
    """Health check endpoint for Cloud Run."""
    return {"status": "healthy"}


# ============================================================================
# Protected Endpoints
# ============================================================================


@app.get("/dashboard")
async def dashboard(current_user: CurrentUser):
    """
    Protected dashboard endpoint.

    Requires a logged-in session.
    """
    logger.info(f"Dashboard accessed by user: {current_user.id}")

    return {
        "status": "success",
        "message": f"Welcome, {current_user.display_name}!",
        "user": current_user.public_view(),
    }


# ============================================================================
# Include Routers
# ============================================================================

app.include_router(auth_router.router)


# ============================================================================
# Main Entry Point
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8080))
    uvicorn.run(app, host="0.0.0.0", port=port)
