"""Content Aggregator — build one bounded corpus from a competitor's site.

Flow:
  1. Normalize the website URL (prepend https:// when no scheme).
  2. Map the site to a candidate page list (homepage first).
  3. Scrape the homepage with branding.  Failure here is fatal.
  4. Scrape remaining pages sequentially; failures are skipped.
  5. Concatenate sections in candidate order and truncate to the budget.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

import httpx

from ..constants import MAX_CORPUS_CHARS, TRUNCATION_MARKER
from .errors import AggregationError
from .firecrawl_client import PageContent, scrape_page
from .site_mapper import map_site

logger = logging.getLogger(__name__)


@dataclass
class AggregatedContent:
    """Corpus plus the diagnostics persisted as ``raw_content``."""

    website: str
    corpus: str
    branding: Optional[Dict[str, Any]] = None
    candidate_pages: List[str] = field(default_factory=list)
    scraped_pages: List[str] = field(default_factory=list)
    skipped_pages: List[str] = field(default_factory=list)
    truncated_pages: List[str] = field(default_factory=list)
    original_length: int = 0
    truncated: bool = False

    def raw_content_meta(self) -> Dict[str, Any]:
        return {
            "scraped_pages": self.scraped_pages,
            "skipped_pages": self.skipped_pages,
            "truncated_pages": self.truncated_pages,
            "content_length": len(self.corpus),
            "original_length": self.original_length,
            "truncated": self.truncated,
        }


def normalize_url(website: str) -> str:
    """Prepend ``https://`` unless a http(s) scheme is already present."""
    url = (website or "").strip()
    if not url.lower().startswith(("http://", "https://")):
        url = f"https://{url}"
    return url


def page_title(url: str) -> str:
    """Section header for a non-homepage page: its last path segment."""
    segments = [s for s in urlparse(url).path.split("/") if s]
    return segments[-1] if segments else "Page"


def truncate_corpus(corpus: str, limit: int = MAX_CORPUS_CHARS) -> Tuple[str, bool]:
    """Cut *corpus* at exactly *limit* characters and append the marker.

    Returns ``(text, truncated)``.  The prefix up to *limit* is never altered.
    """
    if len(corpus) <= limit:
        return corpus, False
    return corpus[:limit] + TRUNCATION_MARKER, True


def _sections(pages: List[PageContent]) -> List[Tuple[str, str]]:
    """(url, section text) in candidate order; the first page is the homepage."""
    sections: List[Tuple[str, str]] = []
    for index, page in enumerate(pages):
        if index == 0:
            sections.append((page.url, f"# Homepage\n\n{page.markdown}\n\n"))
        else:
            sections.append((page.url, f"\n\n# {page_title(page.url)}\n\n{page.markdown}\n\n"))
    return sections


def _pages_past_budget(sections: List[Tuple[str, str]], limit: int) -> List[str]:
    """URLs whose section ends beyond *limit* (partly or wholly cut)."""
    cut: List[str] = []
    offset = 0
    for url, text in sections:
        offset += len(text)
        if offset > limit:
            cut.append(url)
    return cut


async def aggregate_content(
    website: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
) -> AggregatedContent:
    """Map, scrape, and concatenate a competitor's key pages.

    Raises
    ------
    AggregationError
        If the homepage cannot be scraped.
    """
    root_url = normalize_url(website)
    candidates = await map_site(root_url, client=client)

    logger.info("[AGGREGATE] Scraping homepage with branding: %s", candidates[0])
    homepage = await scrape_page(candidates[0], with_branding=True, client=client)
    if not isinstance(homepage, PageContent):
        logger.error("[AGGREGATE] Homepage scrape failed (%s): %s", homepage.reason, homepage.url)
        raise AggregationError(f"Homepage scrape failed: {homepage.reason}")

    pages: List[PageContent] = [homepage]
    skipped: List[str] = []
    for page_url in candidates[1:]:
        result = await scrape_page(page_url, client=client)
        if isinstance(result, PageContent):
            pages.append(result)
        else:
            logger.warning("[AGGREGATE] Skipping page %s (%s)", page_url, result.reason)
            skipped.append(page_url)

    sections = _sections(pages)
    combined = "".join(text for _, text in sections)
    corpus, truncated = truncate_corpus(combined)

    result = AggregatedContent(
        website=root_url,
        corpus=corpus,
        branding=homepage.branding,
        candidate_pages=candidates,
        scraped_pages=[page.url for page in pages],
        skipped_pages=skipped,
        truncated_pages=_pages_past_budget(sections, MAX_CORPUS_CHARS) if truncated else [],
        original_length=len(combined),
        truncated=truncated,
    )
    logger.info(
        "[AGGREGATE] Corpus ready: %d pages, %d skipped, %d chars%s",
        len(pages), len(skipped), len(corpus), " (truncated)" if truncated else "",
    )
    return result
