"""FastAPI application entry point."""

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from missionflow import __version__
from missionflow.api.rate_limit import limiter
from missionflow.api.router import api_router
from missionflow.progression.errors import (
    InvalidTransitionError,
    NotFoundError,
    ProgressionError,
    QRVerificationError,
    ValidationError,
)
from missionflow.settings import get_settings


def setup_logging() -> None:
    """Configure logging for the application."""
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.INFO)

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    logging.getLogger("missionflow").setLevel(get_settings().log_level.upper())
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("uvicorn.access").setLevel(logging.INFO)


# Set up logging on import
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()
    logger.info(f"Starting Mission Flow server (dev_mode={settings.dev_mode})")
    if settings.qr_secret_is_default:
        logger.warning("QR_SECRET is not set; check-in QR codes use the placeholder secret")

    yield

    logger.info("Shutting down Mission Flow server")
    from missionflow.db import session as db_session

    await db_session._engine.dispose()


app = FastAPI(
    title="Mission Flow",
    description="Gamified onboarding campaigns API",
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware
settings = get_settings()
cors_origins = (
    ["http://localhost:3000", "http://127.0.0.1:3000"]
    if settings.dev_mode
    else [settings.frontend_url]
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# Progression errors -> HTTP status
ERROR_STATUS: dict[type[ProgressionError], int] = {
    ValidationError: 422,
    NotFoundError: 404,
    InvalidTransitionError: 409,
    QRVerificationError: 400,
}


async def progression_error_handler(request: Request, exc: ProgressionError) -> JSONResponse:
    """Report a progression error as a typed JSON failure."""
    status_code = ERROR_STATUS.get(type(exc), 400)
    body: dict = {"detail": exc.message, "error": type(exc).__name__}
    if isinstance(exc, InvalidTransitionError):
        body["currentStatus"] = exc.current.value
        body["targetStatus"] = exc.target.value
    if isinstance(exc, ValidationError) and exc.cycle:
        body["cycle"] = exc.cycle
    return JSONResponse(status_code=status_code, content=body)


app.add_exception_handler(ProgressionError, progression_error_handler)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "Mission Flow API", "version": __version__}


# Include API routers
app.include_router(api_router, prefix="/api")
