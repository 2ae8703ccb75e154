"""FastAPI application entry point for the generation service."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from scriptcast import __version__
from scriptcast.api.routes import generation_router, health_router
from scriptcast.api.routes.generation import error_status_code
from scriptcast.config import get_settings
from scriptcast.exceptions import GenerationError
from scriptcast.services.job_store import get_job_store

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    logger.info("Starting Generation Service")
    settings = get_settings()
    logger.info(f"Environment: debug={settings.debug}, storage={settings.storage_type}")
    if not settings.gemini_api_key:
        logger.warning("GEMINI_API_KEY is not set; generation requests will fail")

    yield

    removed = await get_job_store().cleanup_old_jobs(max_age_hours=0)
    logger.info(f"Shutting down Generation Service ({removed} jobs discarded)")


app = FastAPI(
    title="Generation Orchestration Service",
    description="""
## Overview

Drives a rate-limited generative service to produce long-form scripts,
narrated audio and illustrative images.

## Workflow

1. **Script**: outline first, then numbered sections in one conversation
2. **Audio**: sentence-bounded chunks streamed to speech and joined into one WAV
3. **Images**: sub-prompts derived from section text, each rendered as a batch

Every channel has its own sliding-window rate limiter and backoff retrier.
Use `sync=false` to get a `job_id` and poll `/api/v1/jobs/{job_id}` for
progress events.
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Global exception handler
@app.exception_handler(GenerationError)
async def generation_error_handler(
    request: Request,
    exc: GenerationError,
) -> JSONResponse:
    """Handle generation errors raised outside the route handlers."""
    return JSONResponse(
        status_code=error_status_code(exc),
        content=exc.to_dict(),
    )


# Include routers
app.include_router(health_router, prefix="/api/v1")
app.include_router(generation_router, prefix="/api/v1")


@app.get("/")
async def root() -> dict:
    """Root endpoint with service info."""
    return {
        "service": "Generation Orchestration Service",
        "version": __version__,
        "docs": "/docs",
        "health": "/api/v1/health",
    }


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "scriptcast.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        workers=1 if settings.debug else settings.api_workers,
    )
