"""Site mapper tests — link classification, caps, ordering, degrade path."""

import os
import sys

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import asyncio
import json

import httpx

from app.constants import MAX_CANDIDATE_PAGES
from app.services.site_mapper import classify_links, map_site, select_candidate_pages

ROOT = "https://acme.com"


def _map_client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _links_handler(links, status_code=200):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path.endswith("/map")
        return httpx.Response(status_code, json={"success": True, "links": links})
    return handler


def _run_map(handler):
    async def _go():
        async with _map_client(handler) as client:
            return await map_site(ROOT, client=client)
    return asyncio.run(_go())


# ---------------------------------------------------------------------------
# Pure classification
# ---------------------------------------------------------------------------

class TestClassifyLinks:
    def test_caps_per_category(self):
        links = [
            f"{ROOT}/pricing",
            f"{ROOT}/plans/enterprise",
            f"{ROOT}/packages",
            f"{ROOT}/features",
            f"{ROOT}/product/tour",
            f"{ROOT}/solutions",
            f"{ROOT}/about",
            f"{ROOT}/team",
        ]
        buckets = classify_links(ROOT, links)
        assert buckets["pricing"] == [f"{ROOT}/pricing", f"{ROOT}/plans/enterprise"]
        assert buckets["features"] == [f"{ROOT}/features", f"{ROOT}/product/tour"]
        assert buckets["about"] == [f"{ROOT}/about"]

    def test_case_insensitive(self):
        buckets = classify_links(ROOT, [f"{ROOT}/PRICING", f"{ROOT}/About-Us"])
        assert buckets["pricing"] == [f"{ROOT}/PRICING"]
        assert buckets["about"] == [f"{ROOT}/About-Us"]

    def test_off_host_links_ignored(self):
        links = ["https://docs.acme.com/pricing", "https://other.com/features", f"{ROOT}/blog"]
        buckets = classify_links(ROOT, links)
        assert buckets == {"pricing": [], "features": [], "about": []}

    def test_www_prefix_counts_as_same_host(self):
        buckets = classify_links(ROOT, ["https://www.acme.com/pricing"])
        assert buckets["pricing"] == ["https://www.acme.com/pricing"]

    def test_host_name_does_not_match_patterns(self):
        root = "https://acme-platform.com"
        buckets = classify_links(root, [f"{root}/blog", f"{root}/careers"])
        assert buckets["features"] == []

    def test_link_lands_in_one_category_only(self):
        buckets = classify_links(ROOT, [f"{ROOT}/product/pricing"])
        assert buckets["pricing"] == [f"{ROOT}/product/pricing"]
        assert buckets["features"] == []

    def test_duplicates_and_root_skipped(self):
        links = [ROOT, f"{ROOT}/", f"{ROOT}/pricing", f"{ROOT}/pricing/"]
        buckets = classify_links(ROOT, links)
        assert buckets["pricing"] == [f"{ROOT}/pricing"]


class TestSelectCandidatePages:
    def test_homepage_first_then_category_order(self):
        links = [f"{ROOT}/about", f"{ROOT}/features", f"{ROOT}/pricing"]
        pages = select_candidate_pages(ROOT, links)
        assert pages == [ROOT, f"{ROOT}/pricing", f"{ROOT}/features", f"{ROOT}/about"]

    def test_hard_cap_drops_trailing_category(self):
        links = [
            f"{ROOT}/pricing", f"{ROOT}/plans",
            f"{ROOT}/features", f"{ROOT}/platform",
            f"{ROOT}/about",
        ]
        pages = select_candidate_pages(ROOT, links)
        assert len(pages) == MAX_CANDIDATE_PAGES
        assert pages[0] == ROOT
        assert f"{ROOT}/about" not in pages

    def test_no_matches_is_homepage_only(self):
        assert select_candidate_pages(ROOT, [f"{ROOT}/blog", f"{ROOT}/careers"]) == [ROOT]


# ---------------------------------------------------------------------------
# map_site (mocked Firecrawl)
# ---------------------------------------------------------------------------

class TestMapSite:
    def test_sends_same_host_request(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(json.loads(request.content))
            return httpx.Response(200, json={"links": [f"{ROOT}/pricing"]})

        pages = _run_map(handler)
        assert pages == [ROOT, f"{ROOT}/pricing"]
        assert seen == {"url": ROOT, "limit": 50, "includeSubdomains": False}

    def test_http_error_falls_back_to_homepage(self):
        assert _run_map(_links_handler([], status_code=500)) == [ROOT]

    def test_empty_listing_falls_back_to_homepage(self):
        assert _run_map(_links_handler([])) == [ROOT]

    def test_timeout_falls_back_to_homepage(self):
        def handler(request):
            raise httpx.ReadTimeout("map timed out", request=request)

        assert _run_map(handler) == [ROOT]

    def test_malformed_payload_falls_back_to_homepage(self):
        def handler(request):
            return httpx.Response(200, content=b"<html>not json</html>")

        assert _run_map(handler) == [ROOT]

    def test_dict_link_items_supported(self):
        pages = _run_map(_links_handler([{"url": f"{ROOT}/features", "title": "Features"}]))
        assert pages == [ROOT, f"{ROOT}/features"]
