"""Firecrawl client — site map listing and single-page scrape.

Reads configuration from environment variables:
  FIRECRAWL_API_KEY  — required; research submissions are refused if missing
  FIRECRAWL_BASE_URL — https://api.firecrawl.dev/v1

Neither call raises past its caller:
  - ``fetch_site_links`` returns an empty list on any failure.
  - ``scrape_page`` returns a ``ScrapeFailure`` on any failure.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

import httpx
from dotenv import load_dotenv

from ..constants import HOMEPAGE_WAIT_MS, MAP_LINK_LIMIT, PAGE_WAIT_MS
from .http_client import get_client, get_timeout

load_dotenv()

logger = logging.getLogger(__name__)

FIRECRAWL_BASE_URL: str = os.getenv("FIRECRAWL_BASE_URL", "https://api.firecrawl.dev/v1").rstrip("/")


def get_firecrawl_key() -> str:
    """Read FIRECRAWL_API_KEY from the environment (empty string when unset)."""
    return os.getenv("FIRECRAWL_API_KEY", "").strip()


def is_firecrawl_available() -> bool:
    """Return True if the Firecrawl API key is configured."""
    return bool(get_firecrawl_key())


@dataclass(frozen=True)
class PageContent:
    """Successfully scraped page."""

    url: str
    markdown: str
    branding: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class ScrapeFailure:
    """Tagged acquisition failure.  Callers decide whether it is fatal."""

    url: str
    reason: str


ScrapeResult = Union[PageContent, ScrapeFailure]


def _headers() -> Dict[str, str]:
    return {
        "Authorization": f"Bearer {get_firecrawl_key()}",
        "Content-Type": "application/json",
    }


def _extract_links(payload: Any) -> List[str]:
    """Pull URL strings out of a /map response (strings or {"url": ...} items)."""
    if not isinstance(payload, dict):
        return []
    links: List[str] = []
    for item in payload.get("links") or []:
        if isinstance(item, str):
            url = item
        elif isinstance(item, dict):
            url = item.get("url") or ""
        else:
            continue
        url = url.strip()
        if url:
            links.append(url)
    return links


async def fetch_site_links(
    root_url: str,
    *,
    limit: int = MAP_LINK_LIMIT,
    client: Optional[httpx.AsyncClient] = None,
) -> List[str]:
    """POST /map — list URLs reachable from *root_url* on the same host.

    Returns an empty list on HTTP errors, timeouts, or malformed payloads.
    """
    http = client or await get_client()
    body = {"url": root_url, "limit": limit, "includeSubdomains": False}

    try:
        response = await http.post(
            f"{FIRECRAWL_BASE_URL}/map",
            headers=_headers(),
            json=body,
            timeout=get_timeout("firecrawl_map"),
        )
    except httpx.TimeoutException:
        logger.warning("[FIRECRAWL] Map request timed out for %s", root_url)
        return []
    except httpx.HTTPError as exc:
        logger.warning("[FIRECRAWL] Map request failed for %s: %s", root_url, exc)
        return []

    if response.status_code != 200:
        logger.warning(
            "[FIRECRAWL] Map returned HTTP %s for %s: %s",
            response.status_code, root_url, response.text[:300],
        )
        return []

    try:
        payload = response.json()
    except ValueError:
        logger.warning("[FIRECRAWL] Map response is not valid JSON for %s", root_url)
        return []

    links = _extract_links(payload)
    logger.info("[FIRECRAWL] Map found %d links for %s", len(links), root_url)
    return links


async def scrape_page(
    url: str,
    *,
    with_branding: bool = False,
    client: Optional[httpx.AsyncClient] = None,
) -> ScrapeResult:
    """POST /scrape — fetch main-content markdown for one URL.

    Branding is requested only when *with_branding* is set (the homepage).
    """
    http = client or await get_client()
    formats = ["markdown", "branding"] if with_branding else ["markdown"]
    body = {
        "url": url,
        "formats": formats,
        "onlyMainContent": True,
        "waitFor": HOMEPAGE_WAIT_MS if with_branding else PAGE_WAIT_MS,
    }

    try:
        response = await http.post(
            f"{FIRECRAWL_BASE_URL}/scrape",
            headers=_headers(),
            json=body,
            timeout=get_timeout("firecrawl_scrape"),
        )
    except httpx.TimeoutException:
        logger.warning("[FIRECRAWL] Scrape timed out: %s", url)
        return ScrapeFailure(url=url, reason="timeout")
    except httpx.HTTPError as exc:
        logger.warning("[FIRECRAWL] Scrape request failed: %s (%s)", url, exc)
        return ScrapeFailure(url=url, reason=f"transport error: {exc.__class__.__name__}")

    if not 200 <= response.status_code < 300:
        logger.warning(
            "[FIRECRAWL] Scrape returned HTTP %s for %s: %s",
            response.status_code, url, response.text[:300],
        )
        return ScrapeFailure(url=url, reason=f"http {response.status_code}")

    try:
        payload = response.json()
    except ValueError:
        logger.warning("[FIRECRAWL] Scrape response is not valid JSON: %s", url)
        return ScrapeFailure(url=url, reason="malformed payload")

    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(data, dict):
        logger.warning("[FIRECRAWL] Scrape response missing data object: %s", url)
        return ScrapeFailure(url=url, reason="malformed payload")

    markdown = data.get("markdown") or ""
    branding = data.get("branding") if with_branding else None
    if branding is not None and not isinstance(branding, dict):
        branding = None

    logger.info("[FIRECRAWL] Scraped %s (%d chars)", url, len(markdown))
    return PageContent(url=url, markdown=markdown, branding=branding)
