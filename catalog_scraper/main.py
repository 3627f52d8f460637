"""Main application entry point."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Response
from prometheus_fastapi_instrumentator import Instrumentator

from catalog_scraper import __version__
from catalog_scraper.api.routes import catalog, runs
from catalog_scraper.config import settings
from catalog_scraper.worker.tasks import task_runner

# Configure structured logging
from catalog_scraper.logging_config import setup_logging

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting catalog scraper...")

    yield

    logger.info("Shutting down...")
    if task_runner.request_stop():
        try:
            await task_runner.wait()
        except Exception:
            logger.exception("Run failed during shutdown")

    logger.info("Shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="Catalog Scraper",
    description="Collect pharmacy product listings into a deduplicated catalog",
    version=__version__,
    lifespan=lifespan,
)

# Add Prometheus instrumentation
instrumentator = Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=True,
    should_instrument_requests_inprogress=True,
    excluded_handlers=["/metrics", "/health", "/favicon.ico"],
    inprogress_name="http_requests_inprogress",
    inprogress_labels=True,
)
instrumentator.instrument(app).expose(app, include_in_schema=True, tags=["monitoring"])

# Include API routes
app.include_router(runs.router)
app.include_router(catalog.router)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/favicon.ico")
async def favicon():
    """Return empty favicon response to avoid 404 noise."""
    return Response(status_code=204)


if __name__ == "__main__":
    # Run with uvicorn
    uvicorn.run(
        "catalog_scraper.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
