"""Health check endpoint."""

import logging
from fastapi import APIRouter
from homegame.config import settings

logger = logging.getLogger("homegame.routes.health")
router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check():
    """
    Health check endpoint.

    The service has no external dependencies, so it is healthy whenever
    it can answer.

    Returns:
        dict: Health status and version.
    """
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
    }
