"""Competitor Research routes — submit research jobs and read results.

Endpoints:
  POST /competitor-research                 — Start research (returns immediately)
  GET  /competitor-research/{competitor_id} — Current job record
"""

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from ..schemas.research_schema import (
    CompetitorResearchRecord,
    ResearchAcceptedResponse,
    ResearchJobRequest,
)
from ..services.competitor_store import CompetitorStore
from ..services.errors import ConfigurationError, ResearchInProgressError, StoreError
from ..services.firecrawl_client import is_firecrawl_available
from ..services.openai_client import is_openai_available
from ..services.research_job import run_competitor_research, start_research

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/competitor-research",
    tags=["Competitor Research"],
)


def get_competitor_store() -> CompetitorStore:
    return CompetitorStore()


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def _parse_competitor_id(raw: str | None) -> uuid.UUID:
    if not raw:
        raise ValueError("competitor_id is required for background processing")
    try:
        return uuid.UUID(str(raw))
    except ValueError as exc:
        raise ValueError(f"Invalid competitor_id: {raw}") from exc


def _require_services() -> None:
    """Raise ConfigurationError when a pipeline API key is missing."""
    if not is_firecrawl_available():
        raise ConfigurationError("Firecrawl API key not configured")
    if not is_openai_available():
        raise ConfigurationError("OpenAI API key not configured")


# ── Routes ───────────────────────────────────────────────────────────────

@router.post(
    "",
    response_model=ResearchAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Start Competitor Research",
    response_description="Acknowledgement; research continues in the background",
    responses={
        400: {"description": "Missing website or competitor_id"},
        409: {"description": "Research already processing for this competitor"},
        500: {"description": "Scraping or extraction service not configured"},
    },
)
def submit_research(
    body: ResearchJobRequest,
    background_tasks: BackgroundTasks,
    store: CompetitorStore = Depends(get_competitor_store),
) -> ResearchAcceptedResponse | JSONResponse:
    """Start a research job.

    1. Validates input and service configuration
    2. Marks the competitor as processing
    3. Schedules the pipeline after the response is sent

    Rejections use the body ``{"success": false, "error": <message>}``.
    """
    website = (body.website or "").strip()
    if not website:
        return _error_response(status.HTTP_400_BAD_REQUEST, "Website URL is required")

    try:
        competitor_id = _parse_competitor_id(body.competitor_id)
    except ValueError as exc:
        return _error_response(status.HTTP_400_BAD_REQUEST, str(exc))

    try:
        _require_services()
    except ConfigurationError as exc:
        logger.error("[RESEARCH] %s", exc)
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))

    try:
        job = start_research(store, competitor_id, website, body.name)
    except ResearchInProgressError:
        return _error_response(
            status.HTTP_409_CONFLICT,
            "Research already in progress for this competitor",
        )
    except StoreError as exc:
        logger.error("[RESEARCH] Could not start job for %s: %s", competitor_id, exc)
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Could not start research")

    background_tasks.add_task(run_competitor_research, job, store)
    return ResearchAcceptedResponse()


@router.get(
    "/{competitor_id}",
    response_model=CompetitorResearchRecord,
    summary="Get Competitor Research",
    response_description="Research status, intel, branding, and scrape diagnostics",
)
def get_research(
    competitor_id: uuid.UUID,
    store: CompetitorStore = Depends(get_competitor_store),
) -> CompetitorResearchRecord:
    """Retrieve the research record for a competitor."""
    record = store.get_record(competitor_id)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No research found for competitor {competitor_id}",
        )
    return record
