"""Scrape run control endpoints."""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from catalog_scraper.api.deps import get_task_runner
from catalog_scraper.worker.tasks import RunInProgressError, TaskRunner

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/runs", tags=["runs"])


class SourceProgressResponse(BaseModel):
    """Progress of one source pipeline."""
    categories_total: int
    categories_done: int
    current_category: str
    current_page: int
    pages_total: int
    records_found: int


class RunStatusResponse(BaseModel):
    """Response model for the run status."""
    running: bool
    stop_requested: bool
    message: str
    error: Optional[str]
    started_at: Optional[str]
    ended_at: Optional[str]
    duration_seconds: Optional[float]
    records_found: int
    categories_total: int
    categories_done: int
    progress: float
    sources: Dict[str, SourceProgressResponse]
    statistics: Optional[Dict[str, Any]]


@router.post("", response_model=RunStatusResponse, status_code=status.HTTP_202_ACCEPTED)
async def start_run(runner: TaskRunner = Depends(get_task_runner)):
    """Start a scrape run in the background."""
    try:
        runner.start_run()
    except RunInProgressError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    logger.info("Scrape run started via API")
    return runner.status.snapshot()


@router.post("/stop", response_model=RunStatusResponse)
async def stop_run(runner: TaskRunner = Depends(get_task_runner)):
    """Request the running scrape to stop."""
    if not runner.request_stop():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="No scraping in progress")
    return runner.status.snapshot()


@router.get("/status", response_model=RunStatusResponse)
async def get_status(runner: TaskRunner = Depends(get_task_runner)):
    """Get the status of the current or last run."""
    return runner.status.snapshot()
