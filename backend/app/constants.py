"""Centralized constants for the competitor research pipeline.

Page-selection heuristics, page caps, and the corpus budget live here so the
mapper, aggregator, and tests share one source of truth.
"""

from __future__ import annotations

import re

# ── Research status lifecycle ───────────────────────────────────────────

STATUS_PENDING = "pending"
STATUS_PROCESSING = "processing"
STATUS_COMPLETED = "completed"
STATUS_ERROR = "error"

# ── Site mapping ────────────────────────────────────────────────────────

MAP_LINK_LIMIT = 50
MAX_CANDIDATE_PAGES = 5

# Ordered (category, pattern, cap).  Order is also the corpus order after
# the homepage, so pricing content survives truncation first.
PAGE_CATEGORIES: list[tuple[str, re.Pattern[str], int]] = [
    ("pricing", re.compile(r"pricing|plans|packages|cost", re.IGNORECASE), 2),
    ("features", re.compile(r"features|product|solutions|platform|capabilities", re.IGNORECASE), 2),
    ("about", re.compile(r"about|company|team|story", re.IGNORECASE), 1),
]

# ── Scraping ────────────────────────────────────────────────────────────

HOMEPAGE_WAIT_MS = 2000
PAGE_WAIT_MS = 1500

# ── Corpus budget ───────────────────────────────────────────────────────

MAX_CORPUS_CHARS = 100_000
TRUNCATION_MARKER = "\n\n[Content truncated for processing]"

# ── Failure reasons persisted in competitors.last_error ─────────────────

ERROR_HOMEPAGE_UNAVAILABLE = "homepage_unavailable"
ERROR_EXTRACTION_FAILED = "extraction_failed"
ERROR_PERSISTENCE_FAILED = "persistence_failed"
ERROR_STALE_PROCESSING = "stale_processing"
ERROR_UNEXPECTED = "unexpected"
