"""API routers for daypath-mentor."""

from src.api.routers import curriculum_router, mentor_router

__all__ = [
    "mentor_router",
    "curriculum_router",
]
