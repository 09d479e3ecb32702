"""Trip Search FastAPI Application.

Main entry point for the lookup API server.
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from tripsearch.api import router
from tripsearch.api.routes import close_services
from tripsearch.models import AppError, ErrorCode

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    datefmt="%H:%M:%S",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    yield
    # Shutdown - release pooled provider connections
    await close_services()


app = FastAPI(
    title="Trip Search API",
    description="Autocomplete, geocoding and cover image lookups for trip planning",
    version="0.1.0",
    lifespan=lifespan,
)

# Expo dev server (Metro) and Expo web by default
DEFAULT_CORS_ORIGINS = "http://localhost:8081,http://localhost:19006"


def cors_origins() -> list[str]:
    raw = os.getenv("CORS_ORIGINS", DEFAULT_CORS_ORIGINS)
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Global exception handlers
@app.exception_handler(ValidationError)
async def validation_exception_handler(request: Request, exc: ValidationError):
    """Handle Pydantic validation errors."""
    error = AppError(
        code=ErrorCode.VALIDATION_ERROR,
        message=str(exc),
        user_message="Invalid request format. Please check your input.",
    )
    return JSONResponse(
        status_code=422,
        content={"success": False, "error": error.model_dump(mode="json")},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors."""
    error = AppError(
        code=ErrorCode.API_ERROR,
        message=str(exc),
        user_message="Something went wrong. Please try again.",
    )
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": error.model_dump(mode="json")},
    )


# Include API routes
app.include_router(router, prefix="/api")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
