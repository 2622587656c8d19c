"""Content aggregator tests — URL normalization, truncation, partial failures.

Firecrawl is replaced by an httpx.MockTransport keyed on the requested URL.
"""

import os
import sys

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import asyncio
import json

import httpx
import pytest

from app.constants import MAX_CORPUS_CHARS, TRUNCATION_MARKER
from app.services.content_aggregator import (
    aggregate_content,
    normalize_url,
    page_title,
    truncate_corpus,
)
from app.services.errors import AggregationError

ROOT = "https://acme.com"


class FakeFirecrawl:
    """Serves /map and /scrape from dictionaries; records scrape bodies."""

    def __init__(self, links=None, pages=None, map_status=200):
        self.links = links or []
        self.pages = pages or {}
        self.map_status = map_status
        self.scrape_bodies = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if request.url.path.endswith("/map"):
            return httpx.Response(self.map_status, json={"success": True, "links": self.links})

        self.scrape_bodies.append(body)
        page = self.pages.get(body["url"])
        if page is None:
            return httpx.Response(404, json={"success": False, "error": "not found"})
        if isinstance(page, Exception):
            raise page
        return httpx.Response(200, json={"success": True, "data": page})


def _aggregate(fake, website=ROOT):
    async def _go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(fake)) as client:
            return await aggregate_content(website, client=client)
    return asyncio.run(_go())


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

class TestNormalizeUrl:
    @pytest.mark.parametrize("raw", ["acme.com", "  acme.com  ", "www.acme.com/path"])
    def test_prepends_https_once(self, raw):
        normalized = normalize_url(raw)
        assert normalized.startswith("https://")
        assert normalized.count("://") == 1
        assert normalize_url(normalized) == normalized

    @pytest.mark.parametrize("raw", ["http://acme.com", "https://acme.com", "HTTPS://acme.com"])
    def test_existing_scheme_kept(self, raw):
        assert normalize_url(raw) == raw


class TestPageTitle:
    def test_last_segment(self):
        assert page_title("https://acme.com/product/pricing") == "pricing"

    def test_trailing_slash(self):
        assert page_title("https://acme.com/about/") == "about"

    def test_no_path(self):
        assert page_title("https://acme.com") == "Page"


class TestTruncateCorpus:
    def test_under_budget_untouched(self):
        text = "a" * MAX_CORPUS_CHARS
        assert truncate_corpus(text) == (text, False)

    def test_over_budget_cut_at_budget(self):
        text = "".join(chr(ord("a") + i % 26) for i in range(MAX_CORPUS_CHARS + 5000))
        result, truncated = truncate_corpus(text)
        assert truncated is True
        assert len(result) == MAX_CORPUS_CHARS + len(TRUNCATION_MARKER)
        assert result[:MAX_CORPUS_CHARS] == text[:MAX_CORPUS_CHARS]
        assert result.endswith(TRUNCATION_MARKER)

    def test_deterministic(self):
        text = "é" * (MAX_CORPUS_CHARS + 1)
        assert truncate_corpus(text) == truncate_corpus(text)

    def test_custom_limit(self):
        assert truncate_corpus("abcdef", limit=3) == ("abc" + TRUNCATION_MARKER, True)


# ---------------------------------------------------------------------------
# aggregate_content
# ---------------------------------------------------------------------------

class TestAggregateContent:
    def test_homepage_failure_is_fatal(self):
        fake = FakeFirecrawl(links=[f"{ROOT}/pricing"], pages={f"{ROOT}/pricing": {"markdown": "x"}})
        with pytest.raises(AggregationError):
            _aggregate(fake)

    def test_homepage_timeout_is_fatal(self):
        fake = FakeFirecrawl(pages={ROOT: httpx.ReadTimeout("slow")})
        with pytest.raises(AggregationError):
            _aggregate(fake)

    def test_homepage_missing_data_is_fatal(self):
        def handler(request):
            if request.url.path.endswith("/map"):
                return httpx.Response(200, json={"links": []})
            return httpx.Response(200, json={"success": True})

        with pytest.raises(AggregationError):
            _aggregate(handler)

    def test_homepage_only_when_no_key_pages(self):
        fake = FakeFirecrawl(
            links=[f"{ROOT}/blog"],
            pages={ROOT: {"markdown": "Acme builds widgets.", "branding": {"logo": "https://acme.com/logo.png"}}},
        )
        result = _aggregate(fake, website="acme.com")

        assert result.website == ROOT
        assert result.candidate_pages == [ROOT]
        assert result.scraped_pages == [ROOT]
        assert result.corpus.startswith("# Homepage\n\nAcme builds widgets.")
        assert result.branding == {"logo": "https://acme.com/logo.png"}
        assert result.truncated is False

    def test_branding_requested_only_for_homepage(self):
        fake = FakeFirecrawl(
            links=[f"{ROOT}/pricing"],
            pages={ROOT: {"markdown": "home"}, f"{ROOT}/pricing": {"markdown": "price"}},
        )
        _aggregate(fake)

        home_body, pricing_body = fake.scrape_bodies
        assert home_body["formats"] == ["markdown", "branding"]
        assert home_body["waitFor"] == 2000
        assert pricing_body["formats"] == ["markdown"]
        assert pricing_body["waitFor"] == 1500
        assert pricing_body["onlyMainContent"] is True

    def test_page_failures_skipped(self):
        fake = FakeFirecrawl(
            links=[f"{ROOT}/pricing", f"{ROOT}/features", f"{ROOT}/about"],
            pages={
                ROOT: {"markdown": "home"},
                f"{ROOT}/features": httpx.ConnectError("refused"),
                f"{ROOT}/about": {"markdown": "about us"},
            },
        )
        result = _aggregate(fake)

        assert result.scraped_pages == [ROOT, f"{ROOT}/about"]
        assert result.skipped_pages == [f"{ROOT}/pricing", f"{ROOT}/features"]
        assert "# about" in result.corpus
        assert "# pricing" not in result.corpus
        meta = result.raw_content_meta()
        assert meta["skipped_pages"] == result.skipped_pages
        assert meta["content_length"] == len(result.corpus)

    def test_all_pages_under_budget_no_marker(self):
        links = [f"{ROOT}/pricing", f"{ROOT}/plans", f"{ROOT}/features", f"{ROOT}/platform"]
        pages = {ROOT: {"markdown": "home"}}
        pages.update({link: {"markdown": f"content of {link}"} for link in links})
        result = _aggregate(FakeFirecrawl(links=links, pages=pages))

        assert len(result.scraped_pages) == 5
        assert TRUNCATION_MARKER not in result.corpus
        assert result.truncated is False
        # Sections follow candidate order
        positions = [result.corpus.index(f"content of {link}") for link in links]
        assert positions == sorted(positions)

    def test_oversized_corpus_truncated_with_accounting(self):
        big = "x" * (MAX_CORPUS_CHARS - 50)
        fake = FakeFirecrawl(
            links=[f"{ROOT}/pricing", f"{ROOT}/about"],
            pages={
                ROOT: {"markdown": big},
                f"{ROOT}/pricing": {"markdown": "p" * 500},
                f"{ROOT}/about": {"markdown": "about"},
            },
        )
        result = _aggregate(fake)

        assert result.truncated is True
        assert result.corpus.endswith(TRUNCATION_MARKER)
        assert len(result.corpus) == MAX_CORPUS_CHARS + len(TRUNCATION_MARKER)
        assert result.original_length > MAX_CORPUS_CHARS
        # Truncation never rewrites page accounting
        assert result.scraped_pages == [ROOT, f"{ROOT}/pricing", f"{ROOT}/about"]
        assert result.skipped_pages == []
        assert result.truncated_pages == [f"{ROOT}/pricing", f"{ROOT}/about"]
