"""PriceDrop Backend -- FastAPI Application Entry Point."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pricedrop import __version__
from pricedrop.api.v1.router import api_v1_router
from pricedrop.config import settings
from pricedrop.db.session import async_session_factory, engine
from pricedrop.models import Base
from pricedrop.scrapers.scheduler import PriceCheckScheduler

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.DEBUG else logging.WARNING,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler: Optional[PriceCheckScheduler] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown events."""
    global scheduler

    # Startup
    logger.info("Starting PriceDrop API server...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables verified/created")

    if settings.SCHEDULER_ENABLED and settings.ENVIRONMENT != "test":
        scheduler = PriceCheckScheduler(async_session_factory)
        scheduler.start()
    else:
        logger.info("In-process scheduler disabled")

    yield

    # Shutdown
    logger.info("Shutting down PriceDrop API server...")
    if scheduler:
        scheduler.stop()
        scheduler = None
    await engine.dispose()


app = FastAPI(
    title="PriceDrop API",
    description="Product price tracking and drop alerts",
    version=__version__,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.APP_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register API v1 router
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "PriceDrop API",
        "version": __version__,
        "docs": "/docs" if settings.DEBUG else None,
        "health": "/api/v1/health",
    }
