"""Pydantic schema for extracted competitive intelligence.

Field names mirror the arguments of the ``submit_competitor_intel`` tool, so a
tool call's JSON arguments validate directly against ``CompetitorIntel``.

Validation is all-or-nothing: a single missing mandatory field rejects the
whole payload.  Unknown keys are dropped; the persisted value is always
``CompetitorIntel.model_dump()``.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _IntelModel(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)


# ── Overview / products / pricing ────────────────────────────────────────

class CompanyOverview(_IntelModel):
    company_name: str = Field(..., description="Organization name as presented on the site")
    tagline: Optional[str] = Field(default=None, description="Headline or slogan")
    description: str = Field(..., min_length=1, description="What the company does")
    founded_year: Optional[str] = Field(default=None, description="Founding year, as stated")
    headquarters: Optional[str] = Field(default=None, description="HQ location")
    employee_count: Optional[str] = Field(default=None, description="Headcount or range")
    target_market: str = Field(..., min_length=1, description="Who the company sells to")


class Product(_IntelModel):
    name: str
    description: str
    key_features: List[str] = Field(default_factory=list)


class PricingTier(_IntelModel):
    name: str
    price: str = Field(..., description="Price exactly as published, e.g. '$49/user/mo'")
    features: List[str] = Field(default_factory=list)


class Pricing(_IntelModel):
    model: Optional[str] = Field(default=None, description="e.g. subscription, per-user, tiered")
    tiers: List[PricingTier] = Field(default_factory=list)
    notes: Optional[str] = None


class Positioning(_IntelModel):
    value_proposition: Optional[str] = None
    key_differentiators: List[str] = Field(default_factory=list)
    target_personas: List[str] = Field(default_factory=list)
    messaging_themes: List[str] = Field(default_factory=list)


class Weakness(_IntelModel):
    area: str
    description: str
    how_to_exploit: str


# ── Battlecard ───────────────────────────────────────────────────────────

class WinPoint(_IntelModel):
    point: str
    talk_track: str


class TrapQuestion(_IntelModel):
    question: str
    why_it_works: str
    expected_response: Optional[str] = None


class ObjectionHandler(_IntelModel):
    objection: str
    response: str


class Landmine(_IntelModel):
    topic: str
    warning: str
    pivot: str


class Battlecard(_IntelModel):
    why_we_win: List[WinPoint]
    trap_questions: List[TrapQuestion]
    objection_handlers: List[ObjectionHandler]
    landmines: List[Landmine] = Field(default_factory=list)


class CompetitorIntel(_IntelModel):
    """Complete intel record.  Stored only when every section validates."""

    overview: CompanyOverview
    products: List[Product]
    pricing: Optional[Pricing] = None
    positioning: Optional[Positioning] = None
    weaknesses: List[Weakness]
    battlecard: Battlecard
