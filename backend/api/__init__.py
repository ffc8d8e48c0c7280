from fastapi import APIRouter

# Subrouters are imported and re-exported for convenience
from .appreciations import router as appreciations_router  # noqa: F401

__all__ = [
    "APIRouter",
    "appreciations_router",
]
