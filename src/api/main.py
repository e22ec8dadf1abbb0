"""
FastAPI application for daypath-mentor.

Provides REST API for:
- Scope-restricted mentor chat and follow-up suggestions
- Reflection evaluation
- Syllabus generation and day transitions
"""

from __future__ import annotations

import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from config import Settings, get_settings
from src.api.dependencies import MentorRuntime
from src.core.errors import ValidationFailure

settings = get_settings()


def configure_logging(settings: Settings) -> None:
    """Replace loguru's default sink with stderr plus an optional rotating file."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level,
        format="<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}",
    )
    if settings.log_file:
        logger.add(
            settings.log_file,
            level=settings.log_level,
            rotation="10 MB",
            retention=5,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # Startup
    configure_logging(settings)
    logger.info("Starting daypath-mentor service...")
    if getattr(app.state, "runtime", None) is None:
        app.state.runtime = MentorRuntime.build(settings)
    logger.info(f"Service started on {settings.api_host}:{settings.api_port}")

    yield

    # Shutdown
    logger.info("Shutting down daypath-mentor service...")


app = FastAPI(
    title="Daypath Mentor",
    description="""
    Scope-restricted tutoring engine for day-by-day learning plans.

    ## Features

    - **Mentor Chat**: Answers only within today's topic, refuses everything else
    - **Day Knowledge Base**: Grows from the mentor's own answers, resets every day
    - **Evaluation**: Coarse verdict on the learner's end-of-day reflection
    - **Curriculum**: Skip, leave and complete days; regenerate when the learner struggles

    ## Question Flow

    ```
    question
        ↓ rephrase, pre-filter
    semantic scope gate (embeddings)
        ↓ context + overlap gates
    model answer (or mock)
        ↓
    concept extraction → Day Knowledge Base
    ```
    """,
    version="0.1.0",
    lifespan=lifespan,
)

cors_origins = settings.get_cors_origins()
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins or ["*"],
    allow_credentials=bool(cors_origins),
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ValidationFailure)
async def validation_failure_handler(request: Request, exc: ValidationFailure) -> JSONResponse:
    """Malformed input: 400 (404 when there is no syllabus yet)."""
    status_code = 404 if exc.code == "no_syllabus" else 400
    logger.info(f"{request.method} {request.url.path} rejected ({exc.code}): {exc.message}")
    return JSONResponse(status_code=status_code, content={"error": exc.code, "message": exc.message})


# ========================================
# Health & Status Endpoints
# ========================================


@app.get("/", tags=["Health"])
def root() -> dict[str, str]:
    """Root endpoint returning service info."""
    return {
        "service": "daypath-mentor",
        "version": "0.1.0",
        "status": "ok",
    }


@app.get("/health", tags=["Health"])
def health_check(request: Request) -> dict[str, Any]:
    """Component status. The service is usable without providers (mock mode)."""
    runtime: MentorRuntime | None = getattr(request.app.state, "runtime", None)
    components = runtime.health() if runtime else {}
    active = runtime.settings if runtime else settings

    return {
        "status": "ok" if runtime else "starting",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": active.environment,
        "components": components,
        "scope": active.get_scope_config(),
    }


# ========================================
# Import and mount routers
# ========================================

from src.api.routers import curriculum_router, mentor_router

app.include_router(mentor_router.router, prefix="/api", tags=["Mentor"])
app.include_router(curriculum_router.router, prefix="/api", tags=["Curriculum"])
