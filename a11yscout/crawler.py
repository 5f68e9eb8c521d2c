"""Route discovery - sequences every discovery source into one bounded crawl."""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import httpx

from a11yscout import USER_AGENT
from a11yscout.config import CrawlerConfig
from a11yscout.discovery.frontier import Candidate, Frontier
from a11yscout.discovery.links import LinkBuckets, extract_links
from a11yscout.discovery.probe import probe_common_paths
from a11yscout.discovery.robots import load_robots_txt
from a11yscout.discovery.sitemap import load_sitemap
from a11yscout.discovery.spa import SpaRouteChannel
from a11yscout.discovery.url_utils import (
    canonicalize,
    is_disallowed,
    is_same_origin,
    matches_patterns,
    normalize_crawl_target,
)

logger = logging.getLogger(__name__)

START_PRIORITY = 0
SITEMAP_PRIORITY = 1
NAVIGATION_PRIORITY = 2
REGULAR_PRIORITY = 3

# New links stop being queued once frontier + visited reach limit * this
FRONTIER_SAFETY_MULTIPLE = 10

SOURCE_TIMEOUT = 10.0
SEED_IDLE_TIMEOUT_MS = 8000
PAGE_IDLE_TIMEOUT_MS = 10000

ProgressCallback = Callable[[str], None]


@dataclass
class CrawlState:
    """All mutable state of one discovery run."""

    frontier: Frontier = field(default_factory=Frontier)
    visited: set[str] = field(default_factory=set)
    visit_order: list[str] = field(default_factory=list)
    depth_index: dict[str, int] = field(default_factory=dict)
    disallow_rules: list[str] = field(default_factory=list)
    robots_sitemaps: list[str] = field(default_factory=list)
    sitemap_urls: list[str] = field(default_factory=list)

    def enqueue(self, url: str, priority: int, depth: int) -> bool:
        """Queue a canonical URL unless it already has a depth entry."""
        if url in self.depth_index:
            return False
        self.depth_index[url] = depth
        self.frontier.push(Candidate(url=url, priority=priority, depth=depth))
        return True

    def mark_visited(self, url: str) -> None:
        if url not in self.visited:
            self.visited.add(url)
            self.visit_order.append(url)


class RouteDiscovery:
    """Discovers the same-origin pages of a site worth auditing."""

    def __init__(
        self,
        config: CrawlerConfig,
        browser: Any,
        on_progress: Optional[ProgressCallback] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize route discovery.

        Args:
            config: Crawl settings.
            browser: Object providing ``new_page()`` (Playwright Browser or
                BrowserContext).
            on_progress: Optional callback receiving advisory status text.
            client: Optional HTTP client for robots.txt and sitemaps.
        """
        self.config = config
        self.browser = browser
        self.on_progress = on_progress
        self.client = client
        self.origin = config.origin
        self.start_url = config.start_url
        self.start_canonical = self.canonical(config.start_url)

    def canonical(self, url: str) -> str:
        return canonicalize(self.origin, self.config.include_query, url)

    def passes_patterns(self, url: str) -> bool:
        return matches_patterns(url, self.config.include_patterns, self.config.exclude_patterns)

    def _progress(self, message: str) -> None:
        if self.on_progress is None:
            return
        try:
            self.on_progress(message)
        except Exception as e:
            logger.debug("Progress callback failed: %s", e)

    async def run(self) -> list[str]:
        """Run discovery.

        Never raises: every source degrades to "no data" on failure, and an
        unexpected error ends the run with whatever was visited so far.

        Returns:
            Canonical URLs, at most ``config.limit`` of them. May be empty;
            callers should then fall back to the start URL.
        """
        state = CrawlState()

        try:
            if self.client is not None:
                routes = await self._discover(state, self.client)
            else:
                async with httpx.AsyncClient(
                    timeout=SOURCE_TIMEOUT,
                    follow_redirects=True,
                    headers={"User-Agent": USER_AGENT},
                ) as client:
                    routes = await self._discover(state, client)
        except Exception:
            logger.exception("Route discovery aborted for %s", self.start_url)
            routes = list(state.visit_order)

        logger.info("Discovered %d routes on %s", len(routes), self.origin)
        return routes

    async def _discover(self, state: CrawlState, client: httpx.AsyncClient) -> list[str]:
        # Step 1: robots.txt
        if self.config.respect_robots_txt:
            self._progress("Checking robots.txt...")
            await self._load_robots(state, client)

        # Step 2: sitemaps, possibly answering the whole request
        if self.config.use_sitemap:
            self._progress("Parsing sitemaps...")
            await self._load_sitemaps(state, client)
            self._progress(f"Found {len(state.sitemap_urls)} URLs in sitemaps")

            if len(state.sitemap_urls) >= self.config.limit:
                routes = self._routes_from_sitemap(state)
                self._progress(f"Using {len(routes)} URLs from sitemap")
                return routes

        # Step 3: seed the frontier
        state.enqueue(self.start_canonical, START_PRIORITY, 0)
        for url in state.sitemap_urls:
            state.enqueue(self.canonical(url), SITEMAP_PRIORITY, 1)

        # Step 4: links from the start page
        if self.config.follow_navigation:
            self._progress("Priming links from start page...")
            await self._seed_from_start_page(state)

        # Step 5: common paths
        if self._should_probe(state):
            self._progress("Probing common page paths...")
            await self._probe(state)

        # Step 6: crawl
        self._progress(f"Starting crawl with {len(state.frontier)} URLs in queue...")
        await self._crawl(state)

        return list(state.visit_order)

    def _is_blocked(self, state: CrawlState, url: str) -> bool:
        return is_disallowed(url, state.disallow_rules)

    async def _load_robots(self, state: CrawlState, client: httpx.AsyncClient) -> None:
        try:
            rules = await load_robots_txt(self.origin, client, SOURCE_TIMEOUT)
        except Exception as e:
            logger.warning("robots.txt check failed for %s: %s", self.origin, e)
            return

        state.disallow_rules = rules.disallowed
        state.robots_sitemaps = rules.sitemaps

    async def _load_sitemaps(self, state: CrawlState, client: httpx.AsyncClient) -> None:
        try:
            state.sitemap_urls = await load_sitemap(
                self.origin,
                self.config.limit,
                state.robots_sitemaps,
                client,
                SOURCE_TIMEOUT,
            )
        except Exception as e:
            logger.warning("Sitemap loading failed for %s: %s", self.origin, e)

    def _routes_from_sitemap(self, state: CrawlState) -> list[str]:
        """Answer from the sitemap alone: start URL first, then filtered entries."""
        routes = [self.start_canonical]
        seen = {self.start_canonical}

        for url in state.sitemap_urls:
            if len(routes) >= self.config.limit:
                break

            candidate = self.canonical(url)
            if candidate in seen:
                continue
            if self._is_blocked(state, candidate) or not self.passes_patterns(candidate):
                continue

            routes.append(candidate)
            seen.add(candidate)

        return routes

    async def _navigate(self, page: Any, url: str, idle_timeout_ms: int) -> Any:
        """Load a URL, then give the network a short chance to settle."""
        response = await page.goto(
            url, wait_until="domcontentloaded", timeout=self.config.timeout_ms
        )
        try:
            await page.wait_for_load_state("networkidle", timeout=idle_timeout_ms)
        except Exception as e:
            logger.debug("Network did not go idle on %s: %s", url, e)
        return response

    async def _close_page(self, page: Any) -> None:
        try:
            await page.close()
        except Exception as e:
            logger.debug("Page close failed: %s", e)

    async def _seed_from_start_page(self, state: CrawlState) -> None:
        page = None
        try:
            page = await self.browser.new_page()
            await self._navigate(page, self.start_url, SEED_IDLE_TIMEOUT_MS)
            links = await extract_links(page, self.config.pierce_shadow_dom)
        except Exception as e:
            logger.debug("Seed link priming skipped for %s: %s", self.start_url, e)
            return
        finally:
            if page is not None:
                await self._close_page(page)

        seeded = 0
        for hrefs, priority in (
            (links.navigation, NAVIGATION_PRIORITY),
            (links.regular, REGULAR_PRIORITY),
        ):
            for href in hrefs:
                url = normalize_crawl_target(self.origin, href)
                if url is None:
                    continue

                candidate = self.canonical(url)
                if candidate == self.start_canonical or candidate in state.depth_index:
                    continue
                if self._is_blocked(state, candidate) or not self.passes_patterns(candidate):
                    continue

                if state.enqueue(candidate, priority, 1):
                    seeded += 1

        if seeded:
            self._progress(f"Seeded {seeded} links from start page")

    def _should_probe(self, state: CrawlState) -> bool:
        if not self.config.discover_common_paths:
            return False
        if not self.config.follow_navigation:
            return True
        return len(state.frontier) < max(4, self.config.limit / 2)

    async def _probe(self, state: CrawlState) -> None:
        try:
            found = await probe_common_paths(
                self.browser,
                self.origin,
                self.start_url,
                state.frontier,
                state.depth_index,
                state.visited,
                self.config.limit,
                self.canonical,
                lambda url: self._is_blocked(state, url),
            )
        except Exception as e:
            logger.warning("Common path probing failed for %s: %s", self.origin, e)
            return

        if found:
            self._progress(f"Discovered {found} pages from common paths")

    async def _crawl(self, state: CrawlState) -> None:
        page = await self.browser.new_page()
        channel: Optional[SpaRouteChannel] = None

        try:
            if self.config.detect_spa_routes:
                channel = SpaRouteChannel(self.origin)
                try:
                    await channel.install(page)
                except Exception as e:
                    logger.warning("SPA route detection unavailable: %s", e)
                    channel = None

            while state.frontier and len(state.visited) < self.config.limit:
                candidate = state.frontier.pop()
                if candidate is None:
                    break
                await self._visit(state, page, candidate, channel)
        finally:
            await self._close_page(page)

    async def _visit(
        self,
        state: CrawlState,
        page: Any,
        candidate: Candidate,
        channel: Optional[SpaRouteChannel],
    ) -> None:
        """Visit one frontier entry and queue what it links to."""
        if candidate.depth > self.config.max_depth:
            logger.debug("Skipping (max depth exceeded): %s", candidate.url)
            return

        url = self.canonical(candidate.url)
        if url in state.visited:
            return
        if not is_same_origin(url, self.origin):
            logger.debug("Skipping (other origin): %s", url)
            return
        if self._is_blocked(state, url):
            logger.debug("Skipping (robots.txt disallowed): %s", url)
            return
        if not self.passes_patterns(url):
            logger.debug("Skipping (pattern excluded): %s", url)
            return

        self._progress(f"Crawling (depth {candidate.depth}): {url}")
        logger.debug("Crawling %s at depth %d", url, candidate.depth)

        try:
            response = await self._navigate(page, url, PAGE_IDLE_TIMEOUT_MS)
        except Exception as e:
            logger.warning("Crawler skip (unreachable): %s - %s", url, e)
            self._discard_routes(channel, url)
            return

        if response is not None and response.status >= 400:
            logger.warning("Crawler skip (HTTP %s): %s", response.status, url)
            self._discard_routes(channel, url)
            return

        state.mark_visited(url)

        try:
            links = await extract_links(page, self.config.pierce_shadow_dom)
        except Exception as e:
            logger.warning("Link extraction failed on %s: %s", url, e)
            links = LinkBuckets()

        if channel is not None:
            links.regular.extend(channel.drain())

        self._enqueue_links(state, links, candidate.depth + 1)

    def _discard_routes(self, channel: Optional[SpaRouteChannel], url: str) -> None:
        """Drop routes reported while loading a page that was skipped."""
        if channel is None:
            return
        dropped = channel.drain()
        if dropped:
            logger.debug("Discarded %d SPA routes from skipped page %s", len(dropped), url)

    def _enqueue_links(self, state: CrawlState, links: LinkBuckets, depth: int) -> None:
        if depth > self.config.max_depth:
            return

        budget = self.config.limit * FRONTIER_SAFETY_MULTIPLE
        for hrefs, priority in (
            (links.navigation, NAVIGATION_PRIORITY),
            (links.regular, REGULAR_PRIORITY),
        ):
            for href in hrefs:
                if len(state.frontier) + len(state.visited) >= budget:
                    return

                url = normalize_crawl_target(self.origin, href)
                if url is None:
                    continue

                candidate = self.canonical(url)
                if candidate in state.visited:
                    continue
                state.enqueue(candidate, priority, depth)


async def discover_routes(
    config: CrawlerConfig,
    browser: Any,
    on_progress: Optional[ProgressCallback] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> list[str]:
    """Discover the pages of a site to audit.

    Args:
        config: Crawl settings.
        browser: Object providing ``new_page()``.
        on_progress: Optional callback receiving advisory status text.
        client: Optional HTTP client for robots.txt and sitemaps.

    Returns:
        Canonical same-origin URLs, at most ``config.limit``.
    """
    return await RouteDiscovery(config, browser, on_progress, client).run()
