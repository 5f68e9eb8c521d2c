"""Tests for common-path probing."""

import pytest

from a11yscout.discovery.frontier import Frontier
from a11yscout.discovery.probe import (
    PROBE_DEPTH,
    PROBE_PRIORITY,
    CommonPathProbe,
    looks_like_not_found,
    probe_common_paths,
)
from a11yscout.discovery.url_utils import canonicalize, is_disallowed
from conftest import ORIGIN


def canonical(url: str) -> str:
    return canonicalize(ORIGIN, True, url)


def never_blocked(url: str) -> bool:
    return False


def make_probe(browser, paths, is_blocked=never_blocked):
    return CommonPathProbe(
        browser, ORIGIN, f"{ORIGIN}/", canonical, is_blocked, timeout_ms=1000, paths=paths
    )


class TestLooksLikeNotFound:
    """Tests for the soft-404 heuristic."""

    def test_title_or_heading(self):
        """Test not-found phrasing in the title or h1 is detected."""
        assert looks_like_not_found("Page Not Found | Example", "", "")
        assert looks_like_not_found("Example", "404", "")
        assert looks_like_not_found("Example", "Sorry, this page doesn't exist", "")

    def test_short_body(self):
        """Test short bodies are checked for not-found phrasing."""
        assert looks_like_not_found("Example", "Oops", "The page could not be found.")

    def test_long_body_ignored(self):
        """Test long bodies mentioning 'not found' are real pages."""
        body = "Results not found for some filters. " + "Real content. " * 100
        assert not looks_like_not_found("Shop", "Products", body)

    def test_real_page(self):
        """Test ordinary pages pass."""
        assert not looks_like_not_found("About us", "Our story", "We started in 1998.")

    def test_numbers_containing_404(self):
        """Test phone numbers and prices are not mistaken for 404s."""
        assert not looks_like_not_found("Contact", "Call 0404-555-123", "Call us on 404-555.")


class TestCommonPathProbe:
    """Tests for probing against a fake site."""

    @pytest.mark.asyncio
    async def test_accepts_existing_pages(self, site, browser):
        """Test real pages are queued at probe priority and depth."""
        site.add("/about", title="About us")
        site.add("/contact", title="Contact")
        frontier = Frontier()
        depth_index: dict[str, int] = {}

        results = await make_probe(browser, ["/about", "/missing", "/contact"]).run(
            frontier, depth_index, set(), 10
        )

        assert [r.final_url for r in results] == [f"{ORIGIN}/about", f"{ORIGIN}/contact"]
        assert depth_index == {f"{ORIGIN}/about": PROBE_DEPTH, f"{ORIGIN}/contact": PROBE_DEPTH}
        candidate = frontier.pop()
        assert candidate.priority == PROBE_PRIORITY
        assert candidate.depth == PROBE_DEPTH

    @pytest.mark.asyncio
    async def test_rejections(self, site, browser):
        """Test each rejection rule."""
        site.add("/soft", title="Page not found")
        site.add("/pdf", content_type="application/pdf")
        site.add("/home", redirect=f"{ORIGIN}/")
        site.add("/broken", status=500)
        site.add("/slow", fail=True)
        frontier = Frontier()

        results = await make_probe(browser, ["/soft", "/pdf", "/home", "/broken", "/slow"]).run(
            frontier, {}, set(), 10
        )

        assert results == []
        assert len(frontier) == 0

    @pytest.mark.asyncio
    async def test_rejects_redirect_to_other_origin(self, site, browser):
        """Test a path redirecting off-site (e.g. to SSO) is not queued."""
        site.add("/login", redirect="https://auth.other.org/login")
        site.add("/about")
        frontier = Frontier()
        depth_index: dict[str, int] = {}

        results = await make_probe(browser, ["/login", "/about"]).run(
            frontier, depth_index, set(), 10
        )

        assert [r.final_url for r in results] == [f"{ORIGIN}/about"]
        assert frontier.urls() == [f"{ORIGIN}/about"]
        assert "https://auth.other.org/login" not in depth_index

    @pytest.mark.asyncio
    async def test_skips_indexed_and_redirect_to_indexed(self, site, browser):
        """Test URLs already known to the crawl are not queued again."""
        site.add("/about")
        site.add("/about-us", redirect=f"{ORIGIN}/about")
        depth_index = {f"{ORIGIN}/about": 1}

        results = await make_probe(browser, ["/about", "/about-us"]).run(
            Frontier(), depth_index, set(), 10
        )

        assert results == []
        # Already indexed path is never even requested
        assert site.requests == [f"{ORIGIN}/about-us"]

    @pytest.mark.asyncio
    async def test_disallowed_not_requested(self, site, browser):
        """Test robots-disallowed paths are skipped without a request."""
        site.add("/account")
        probe = make_probe(browser, ["/account"], lambda url: is_disallowed(url, ["/account"]))

        results = await probe.run(Frontier(), {}, set(), 10)

        assert results == []
        assert site.requests == []

    @pytest.mark.asyncio
    async def test_stops_at_limit(self, site, browser):
        """Test probing stops after limit discoveries."""
        for path in ["/a", "/b", "/c", "/d"]:
            site.add(path)

        results = await make_probe(browser, ["/a", "/b", "/c", "/d"]).run(
            Frontier(), {}, set(), 2
        )

        assert len(results) == 2
        assert f"{ORIGIN}/c" not in site.requests

    @pytest.mark.asyncio
    async def test_stops_at_budget(self, site, browser):
        """Test probing stops once frontier + visited reach three times the limit."""
        site.add("/a")
        visited = {f"{ORIGIN}/v{i}" for i in range(6)}

        results = await make_probe(browser, ["/a"]).run(Frontier(), {}, visited, 2)

        assert results == []
        assert site.requests == []

    @pytest.mark.asyncio
    async def test_page_closed(self, site, browser):
        """Test the probe's page is always closed."""
        site.add("/a")

        await make_probe(browser, ["/a"]).run(Frontier(), {}, set(), 5)

        assert browser.pages and all(page.closed for page in browser.pages)

    @pytest.mark.asyncio
    async def test_probe_common_paths_counts(self, site, browser):
        """Test the module entry point reports the number of discoveries."""
        site.add("/about")
        site.add("/faq")
        frontier = Frontier()

        found = await probe_common_paths(
            browser, ORIGIN, f"{ORIGIN}/", frontier, {}, set(), 10, canonical, never_blocked
        )

        assert found == 2
        assert sorted(frontier.urls()) == [f"{ORIGIN}/about", f"{ORIGIN}/faq"]
