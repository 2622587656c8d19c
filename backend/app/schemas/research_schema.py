"""Pydantic schemas for the Competitor Research API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field

ResearchStatus = Literal["pending", "processing", "completed", "error"]


class ResearchJobRequest(BaseModel):
    """Job submission body.

    ``website`` and ``competitor_id`` are optional at the schema level so the
    route can answer with the documented 400 body instead of a 422.
    """

    competitor_id: Optional[str] = Field(default=None, description="Competitor UUID")
    website: Optional[str] = Field(default=None, description="Competitor website, scheme optional")
    name: Optional[str] = Field(default=None, max_length=256, description="Display name")


class ResearchAcceptedResponse(BaseModel):
    accepted: bool = True
    success: bool = True
    status: ResearchStatus = "processing"
    message: str = "Research started - this may take a few minutes"


class CompetitorResearchRecord(BaseModel):
    """Job record as read back by the rest of the system."""

    id: str = Field(..., description="Competitor UUID")
    name: Optional[str] = None
    website: str
    status: ResearchStatus = Field(..., description="Research lifecycle status")
    last_error: Optional[str] = Field(default=None, description="Failure reason when status=error")
    intel: Optional[Dict[str, Any]] = Field(default=None, description="Validated intel, completed only")
    branding: Optional[Dict[str, Any]] = None
    logo_url: Optional[str] = None
    raw_content: Optional[Dict[str, Any]] = Field(
        default=None, description="Scrape diagnostics (pages, lengths, truncation)"
    )
    last_researched_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
