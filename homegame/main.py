"""
homegame FastAPI Application Entry Point.

Configures logging and CORS, and registers the settlement, chip
distribution and tally routes. The app holds no state; every request is
answered from its body alone.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from homegame.config import settings
from homegame.routes.health import router as health_router
from homegame.routes.settlement import router as settlement_router
from homegame.routes.chips import router as chips_router
from homegame.routes.tally import router as tally_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("homegame.app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log startup and shutdown."""
    logger.info("homegame v%s started", settings.APP_VERSION)
    yield
    logger.info("homegame shutdown complete")


# Initialize FastAPI application
app = FastAPI(
    title="homegame API",
    description="Poker home game settlement and chip distribution",
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

# Configure CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
    max_age=600,  # Cache preflight requests for 10 minutes
)

# Register routers
app.include_router(health_router)  # Health endpoint at root level
app.include_router(health_router, prefix="/api")
app.include_router(settlement_router, prefix="/api")
app.include_router(chips_router, prefix="/api")
app.include_router(tally_router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint - API information."""
    return {
        "name": "homegame API",
        "version": settings.APP_VERSION,
        "status": "operational",
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "homegame.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info",
    )
