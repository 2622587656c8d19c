"""Persistence gateway for competitor research jobs.

All status transitions are single conditional UPDATE statements:
  - ``claim``    — any non-processing status → processing
  - ``complete`` — processing → completed (intel, branding, diagnostics)
  - ``fail``     — processing → error (intel cleared)

Conditioning on the current status keeps one writer per competitor: a second
submission cannot claim a processing job, and a terminal write can never
land on a job that was already reconciled or re-submitted.

Methods are synchronous (SQLAlchemy ORM sessions); async callers wrap them
with ``run_in_threadpool``.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..constants import (
    ERROR_STALE_PROCESSING,
    STATUS_COMPLETED,
    STATUS_ERROR,
    STATUS_PENDING,
    STATUS_PROCESSING,
)
from ..database import SessionLocal
from ..models.competitor import Competitor
from ..schemas.research_schema import CompetitorResearchRecord
from .errors import ResearchInProgressError, StoreError

logger = logging.getLogger(__name__)


def _loads(raw: Optional[str]) -> Optional[Any]:
    return json.loads(raw) if raw else None


def extract_logo_url(branding: Optional[Dict[str, Any]]) -> Optional[str]:
    """Logo URL from Firecrawl branding metadata, if any."""
    if not branding:
        return None
    images = branding.get("images")
    logo = images.get("logo") if isinstance(images, dict) else None
    logo = logo or branding.get("logo")
    return logo if isinstance(logo, str) and logo else None


def to_record(row: Competitor) -> CompetitorResearchRecord:
    """Convert a Competitor ORM instance to a CompetitorResearchRecord response."""
    return CompetitorResearchRecord(
        id=str(row.id),
        name=row.name,
        website=row.website,
        status=row.research_status or STATUS_PENDING,
        last_error=row.last_error,
        intel=_loads(row.intel_json),
        branding=_loads(row.branding_json),
        logo_url=row.logo_url,
        raw_content=_loads(row.raw_content_json),
        last_researched_at=row.last_researched_at,
        updated_at=row.updated_at,
    )


class CompetitorStore:
    """Reads and writes the per-competitor research record."""

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self._session_factory = session_factory

    # ── Submission boundary ─────────────────────────────────────────────

    def claim(self, competitor_id: uuid.UUID, website: str, name: Optional[str] = None) -> None:
        """Move a competitor to ``processing``, creating it when unknown.

        Intel and scrape diagnostics from the previous run are cleared.
        ``branding``, ``logo_url`` and ``last_researched_at`` keep describing
        the last successful run until a new one completes.

        Raises ResearchInProgressError if a job is already processing.
        """
        values: Dict[str, Any] = {
            "research_status": STATUS_PROCESSING,
            "website": website,
            "intel_json": None,
            "raw_content_json": None,
            "last_error": None,
            "updated_at": datetime.utcnow(),
        }
        if name:
            values["name"] = name

        with self._session_factory() as db:
            try:
                result = db.execute(
                    update(Competitor)
                    .where(
                        Competitor.id == competitor_id,
                        Competitor.research_status != STATUS_PROCESSING,
                    )
                    .values(**values)
                )
                if result.rowcount == 1:
                    db.commit()
                    logger.info("[STORE] Competitor %s → processing", competitor_id)
                    return

                if db.get(Competitor, competitor_id) is not None:
                    db.rollback()
                    raise ResearchInProgressError(f"Research already processing for {competitor_id}")

                row = Competitor(id=competitor_id, website=website, name=name, research_status=STATUS_PENDING)
                db.add(row)
                db.flush()
                row.research_status = STATUS_PROCESSING
                db.commit()
                logger.info("[STORE] Created competitor %s → processing", competitor_id)
            except IntegrityError as exc:
                db.rollback()
                raise ResearchInProgressError(f"Research already processing for {competitor_id}") from exc
            except SQLAlchemyError as exc:
                db.rollback()
                raise StoreError(f"Could not claim competitor {competitor_id}: {exc}") from exc

    def get_record(self, competitor_id: uuid.UUID) -> Optional[CompetitorResearchRecord]:
        with self._session_factory() as db:
            row = db.get(Competitor, competitor_id)
            return to_record(row) if row is not None else None

    # ── Orchestrator (terminal writes) ──────────────────────────────────

    def _finish(self, competitor_id: uuid.UUID, values: Dict[str, Any]) -> None:
        values["updated_at"] = datetime.utcnow()
        with self._session_factory() as db:
            try:
                result = db.execute(
                    update(Competitor)
                    .where(
                        Competitor.id == competitor_id,
                        Competitor.research_status == STATUS_PROCESSING,
                    )
                    .values(**values)
                )
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                raise StoreError(f"Could not update competitor {competitor_id}: {exc}") from exc

        if result.rowcount != 1:
            raise StoreError(f"Competitor {competitor_id} is no longer processing")

    def complete(
        self,
        competitor_id: uuid.UUID,
        *,
        intel: Dict[str, Any],
        branding: Optional[Dict[str, Any]],
        raw_content: Dict[str, Any],
    ) -> None:
        self._finish(
            competitor_id,
            {
                "research_status": STATUS_COMPLETED,
                "intel_json": json.dumps(intel),
                "branding_json": json.dumps(branding) if branding else None,
                "logo_url": extract_logo_url(branding),
                "raw_content_json": json.dumps(raw_content),
                "last_error": None,
                "last_researched_at": datetime.utcnow(),
            },
        )
        logger.info("[STORE] Competitor %s → completed", competitor_id)

    def fail(self, competitor_id: uuid.UUID, reason: str) -> None:
        self._finish(
            competitor_id,
            {
                "research_status": STATUS_ERROR,
                "intel_json": None,
                "last_error": reason,
            },
        )
        logger.info("[STORE] Competitor %s → error (%s)", competitor_id, reason)

    # ── Reconciliation ──────────────────────────────────────────────────

    def reconcile_stale_jobs(self, older_than: timedelta) -> int:
        """Mark jobs stuck in ``processing`` longer than *older_than* as error.

        Returns the number of jobs reconciled.
        """
        cutoff = datetime.utcnow() - older_than
        with self._session_factory() as db:
            try:
                result = db.execute(
                    update(Competitor)
                    .where(
                        Competitor.research_status == STATUS_PROCESSING,
                        Competitor.updated_at < cutoff,
                    )
                    .values(
                        research_status=STATUS_ERROR,
                        intel_json=None,
                        last_error=ERROR_STALE_PROCESSING,
                        updated_at=datetime.utcnow(),
                    )
                )
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                raise StoreError(f"Could not reconcile stale jobs: {exc}") from exc

        if result.rowcount:
            logger.warning("[STORE] Reconciled %d stale processing job(s)", result.rowcount)
        return result.rowcount
