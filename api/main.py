"""
FastAPI application entry point.

Configures the identity API with routes, middleware, and error handling.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from identity_core import __version__
from identity_core.config import load_config
from identity_core.errors import (
    ConflictError,
    ExpiredError,
    ForbiddenError,
    IdentityError,
    InvalidCredentialError,
    InvalidProofError,
    ProviderError,
    StateMismatchError,
    UnauthenticatedError,
    ValidationError,
    WeakCredentialError,
)

from .v1.router import router as v1_router
from .deps import get_context, close_context

logger = logging.getLogger(__name__)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)

# Status code per identity outcome
ERROR_STATUS = {
    ConflictError: 400,
    WeakCredentialError: 400,
    ValidationError: 400,
    StateMismatchError: 400,
    ExpiredError: 400,
    InvalidCredentialError: 401,
    InvalidProofError: 401,
    UnauthenticatedError: 401,
    ForbiddenError: 403,
    ProviderError: 502,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan manager."""
    logger.info("Starting TravelExplore identity API...")

    # Fails fast (EntropyError) when secure randomness is unavailable
    get_context()

    yield

    logger.info("Shutting down...")
    close_context()


app = FastAPI(
    title="TravelExplore Identity API",
    description="Registration, login, Google sign-in and sessions for TravelExplore",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[load_config().cors_origin],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(IdentityError)
async def identity_exception_handler(request: Request, exc: IdentityError):
    status_code = ERROR_STATUS.get(type(exc), 400)
    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "detail": exc.detail},
        headers=headers
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )


# Health check
@app.get("/api/health", tags=["System"])
async def health_check():
    """Health check endpoint."""
    return {"status": "OK", "service": "travelexplore-identity"}


# Include API v1 routes
app.include_router(v1_router, prefix="/api/v1")


# Root endpoint
@app.get("/", tags=["System"])
async def root():
    """API root endpoint."""
    return {
        "name": "TravelExplore Identity API",
        "version": __version__,
        "docs": "/docs"
    }
