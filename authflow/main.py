"""
FastAPI application for OAuth2 third-party login.

This module wires dependencies and configures the application.
Flow logic is in authflow/core, infrastructure in authflow/infrastructure.
"""

import logging
import os
from contextlib import asynccontextmanager
from datetime import UTC, datetime

# Configure logging FIRST, before other local imports
from authflow.logging_config import setup_global_logging

setup_global_logging()

# Now import other modules (they will use the configured logging)
from fastapi import FastAPI, Request, status  # noqa: E402
from fastapi.responses import JSONResponse  # noqa: E402
from starlette.middleware.sessions import SessionMiddleware  # noqa: E402

from authflow.core.exceptions import FlowError  # noqa: E402
from authflow.oauth import router as oauth_router  # noqa: E402
from authflow.oauth.dependencies import get_transport  # noqa: E402

logger = logging.getLogger(__name__)


# ============================================================================
# Application Lifecycle
# ============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown events using modern FastAPI pattern.
    """
    logger.info("Application starting up...")
    yield
    logger.info("Shutting down application...")
    try:
        await get_transport().aclose()
    except Exception as e:
        logger.warning(f"Error closing HTTP transport during shutdown: {e}")
    finally:
        get_transport.cache_clear()


app = FastAPI(
    title="OAuth2 Login",
    description="Third-party identity login via the OAuth2 authorization code grant",
    version="1.0.0",
    lifespan=lifespan,
)

# Session middleware holds the pending OAuth2 state between connect and callback
SESSION_SECRET_KEY = os.getenv("SESSION_SECRET_KEY")
if not SESSION_SECRET_KEY:
    raise ValueError("SESSION_SECRET_KEY is not set in the environment.")
app.add_middleware(SessionMiddleware, secret_key=SESSION_SECRET_KEY)


# ============================================================================
# Centralized Exception Handlers
# ============================================================================

FLOW_ERROR_STATUS = {
    "config": status.HTTP_503_SERVICE_UNAVAILABLE,
    "redirect": status.HTTP_400_BAD_REQUEST,
    "invalid_state": status.HTTP_403_FORBIDDEN,
    "token_exchange": status.HTTP_401_UNAUTHORIZED,
    "transport": status.HTTP_502_BAD_GATEWAY,
    "profile_fetch": status.HTTP_502_BAD_GATEWAY,
}


@app.exception_handler(FlowError)
async def flow_error_handler(request: Request, exc: FlowError):
    """
    Handle OAuth2 flow errors.

    Maps each error kind to a status code. Transport errors are retryable
    by the client; state mismatches are logged as potential CSRF.
    """
    status_code = FLOW_ERROR_STATUS.get(
        exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR
    )

    if exc.kind == "invalid_state":
        logger.warning(
            f"OAuth state mismatch on {request.url.path}",
            extra={"error_kind": exc.kind},
        )
    else:
        logger.error(
            f"OAuth flow error: {exc.message}",
            extra={
                "error_kind": exc.kind,
                "raw": getattr(exc, "raw", None),
            },
        )

    return JSONResponse(
        status_code=status_code,
        content={
            "status": "error",
            "error": exc.kind,
            "message": exc.message,
        },
    )


# ============================================================================
# Health Check Endpoints
# ============================================================================


@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "authflow",
        "timestamp": datetime.now(UTC).isoformat(),
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


# ============================================================================
# Include Routers
# ============================================================================

app.include_router(oauth_router.router)


# ============================================================================
# Main Entry Point
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8080))
    uvicorn.run(app, host="0.0.0.0", port=port)
