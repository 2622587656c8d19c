"""
Async HTTP Client Configuration

Provides a shared httpx.AsyncClient with connection pooling and
timeout presets for each external service.
"""

import os
from typing import Optional

import httpx
from dotenv import load_dotenv

load_dotenv()


def _env_float(key: str, default: float) -> float:
    try:
        return float(os.getenv(key, str(default)))
    except ValueError:
        return default


# Timeout configurations (in seconds)
class Timeouts:
    """Timeout presets for external services."""
    FIRECRAWL_MAP = _env_float("FIRECRAWL_MAP_TIMEOUT", 30.0)
    # Scrapes include the page settle wait (waitFor) on Firecrawl's side
    FIRECRAWL_SCRAPE = _env_float("FIRECRAWL_TIMEOUT", 30.0)
    OPENAI = _env_float("OPENAI_REQUEST_TIMEOUT", 90.0)


# Shared client instance (lazily initialized)
_client: Optional[httpx.AsyncClient] = None


async def get_client() -> httpx.AsyncClient:
    """Get the shared async HTTP client."""
    global _client
    if _client is None or _client.is_closed:
        _client = httpx.AsyncClient(
            timeout=httpx.Timeout(30.0, connect=5.0),
            limits=httpx.Limits(max_keepalive_connections=20, max_connections=50),
            follow_redirects=True,
        )
    return _client


async def close_client():
    """Close the shared client (call on app shutdown)."""
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None


def get_timeout(service: str) -> httpx.Timeout:
    """Get timeout configuration for a service."""
    timeouts = {
        "firecrawl_map": Timeouts.FIRECRAWL_MAP,
        "firecrawl_scrape": Timeouts.FIRECRAWL_SCRAPE,
        "openai": Timeouts.OPENAI,
    }
    seconds = timeouts.get(service.lower(), 30.0)
    return httpx.Timeout(seconds, connect=5.0)
