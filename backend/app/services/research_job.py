"""Competitor Research Job — orchestrates one research run end to end.

Stages (strictly sequential):
  1. aggregate_content  — map site, scrape pages, build corpus
  2. extract_intel      — forced tool call + schema validation
  3. store.complete     — persist intel, branding, diagnostics

Every failure is caught here and converted to a terminal ``error`` status.
Nothing propagates to the HTTP caller; it was acknowledged before the run
started.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from fastapi.concurrency import run_in_threadpool

from ..constants import (
    ERROR_EXTRACTION_FAILED,
    ERROR_HOMEPAGE_UNAVAILABLE,
    ERROR_PERSISTENCE_FAILED,
    ERROR_UNEXPECTED,
    STATUS_COMPLETED,
    STATUS_ERROR,
    STATUS_PROCESSING,
)
from .competitor_store import CompetitorStore
from .content_aggregator import aggregate_content, normalize_url
from .errors import AggregationError, ExtractionError
from .intel_extractor import extract_intel
from .timing import StepTimer

logger = logging.getLogger(__name__)

# Attempts for the error write itself; after that the sweeper takes over.
_ERROR_WRITE_ATTEMPTS = 2


@dataclass(frozen=True)
class ResearchJob:
    competitor_id: uuid.UUID
    website: str
    name: Optional[str] = None


def start_research(
    store: CompetitorStore,
    competitor_id: uuid.UUID,
    website: str,
    name: Optional[str] = None,
) -> ResearchJob:
    """Normalize the website and claim the job (→ processing).

    Raises ResearchInProgressError if the competitor is already processing.
    """
    job = ResearchJob(competitor_id=competitor_id, website=normalize_url(website), name=name)
    store.claim(job.competitor_id, job.website, job.name)
    logger.info("[RESEARCH] Accepted job for %s (%s)", job.competitor_id, job.website)
    return job


async def _mark_error(store: CompetitorStore, job: ResearchJob, reason: str) -> str:
    """Best-effort terminal error write.  Returns the status the job ends in."""
    for attempt in range(1, _ERROR_WRITE_ATTEMPTS + 1):
        try:
            await run_in_threadpool(store.fail, job.competitor_id, reason)
            return STATUS_ERROR
        except Exception as exc:
            logger.error(
                "[RESEARCH] Error-status write failed for %s (attempt %d/%d): %s",
                job.competitor_id, attempt, _ERROR_WRITE_ATTEMPTS, exc,
            )
    logger.critical(
        "[RESEARCH] Job %s left in processing; stale-job reconciliation required",
        job.competitor_id,
    )
    return STATUS_PROCESSING


async def run_competitor_research(job: ResearchJob, store: Optional[CompetitorStore] = None) -> str:
    """Run the pipeline for *job* and return its final status."""
    store = store or CompetitorStore()
    timer = StepTimer(f"research:{job.competitor_id}")
    logger.info("[RESEARCH] Background research started for %s", job.website)

    try:
        async with timer.async_step("aggregate"):
            content = await aggregate_content(job.website)
        async with timer.async_step("extract"):
            intel = await extract_intel(content.corpus, job.name, content.website)
    except AggregationError as exc:
        logger.error("[RESEARCH] Aggregation failed for %s: %s", job.website, exc)
        return await _mark_error(store, job, ERROR_HOMEPAGE_UNAVAILABLE)
    except ExtractionError as exc:
        logger.error("[RESEARCH] Extraction failed for %s: %s", job.website, exc)
        return await _mark_error(store, job, ERROR_EXTRACTION_FAILED)
    except Exception:
        logger.exception("[RESEARCH] Unexpected error for %s", job.website)
        return await _mark_error(store, job, ERROR_UNEXPECTED)

    try:
        async with timer.async_step("persist"):
            await run_in_threadpool(
                store.complete,
                job.competitor_id,
                intel=intel.model_dump(),
                branding=content.branding,
                raw_content=content.raw_content_meta(),
            )
    except Exception as exc:
        logger.error("[RESEARCH] Saving intel failed for %s: %s", job.competitor_id, exc)
        return await _mark_error(store, job, ERROR_PERSISTENCE_FAILED)

    timer.summary()
    logger.info("[RESEARCH] Competitor research completed for %s", job.name or job.website)
    return STATUS_COMPLETED
