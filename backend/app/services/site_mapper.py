"""Site Mapper — pick the handful of pages worth scraping.

Flow:
  1. Ask Firecrawl for up to 50 same-host links under the root URL.
  2. Classify links into pricing / features / about buckets (per-bucket caps).
  3. Return ``[root] + pricing + features + about`` capped at 5 pages.

A failed or empty listing degrades to ``[root]``; mapping never fails a job.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional
from urllib.parse import urlparse

import httpx

from ..constants import MAX_CANDIDATE_PAGES, PAGE_CATEGORIES
from .firecrawl_client import fetch_site_links

logger = logging.getLogger(__name__)


def _host(url: str) -> str:
    host = (urlparse(url).hostname or "").lower()
    return host[4:] if host.startswith("www.") else host


def _match_target(url: str) -> str:
    """Path + query of *url*; the host is excluded so a domain like
    ``acme-platform.com`` does not match every link."""
    parsed = urlparse(url)
    return f"{parsed.path}?{parsed.query}" if parsed.query else parsed.path


def _same_page(a: str, b: str) -> bool:
    return a.rstrip("/").lower() == b.rstrip("/").lower()


def classify_links(root_url: str, links: Iterable[str]) -> Dict[str, List[str]]:
    """Bucket *links* by category in one pass.

    Each link lands in the first category whose pattern matches and whose cap
    is not yet reached.  Off-host links, duplicates, and the root itself are
    skipped.
    """
    buckets: Dict[str, List[str]] = {category: [] for category, _, _ in PAGE_CATEGORIES}
    root_host = _host(root_url)
    seen: set[str] = set()

    for link in links:
        if _host(link) != root_host or _same_page(link, root_url):
            continue
        key = link.rstrip("/").lower()
        if key in seen:
            continue

        target = _match_target(link)
        for category, pattern, cap in PAGE_CATEGORIES:
            if len(buckets[category]) < cap and pattern.search(target):
                buckets[category].append(link)
                seen.add(key)
                break

    return buckets


def select_candidate_pages(root_url: str, links: Iterable[str]) -> List[str]:
    """Homepage first, then category matches in table order, capped."""
    buckets = classify_links(root_url, links)
    pages = [root_url]
    for category, _, _ in PAGE_CATEGORIES:
        pages.extend(buckets[category])
    return pages[:MAX_CANDIDATE_PAGES]


async def map_site(root_url: str, *, client: Optional[httpx.AsyncClient] = None) -> List[str]:
    """Return the ordered candidate page list for *root_url* (never empty)."""
    links = await fetch_site_links(root_url, client=client)
    if not links:
        logger.warning("[MAPPER] No links for %s, falling back to homepage only", root_url)
        return [root_url]

    pages = select_candidate_pages(root_url, links)
    logger.info("[MAPPER] Key pages to scrape: %s", pages)
    return pages
