"""Sitemap parsing and URL extraction."""

import logging
import re
import xml.etree.ElementTree as ET
from typing import Iterable, Iterator

import httpx

from a11yscout import USER_AGENT
from a11yscout.discovery.url_utils import is_same_origin

logger = logging.getLogger(__name__)

# Conventional sitemap locations, tried after robots.txt declarations
SITEMAP_PATHS = [
    "/sitemap.xml",
    "/sitemap_index.xml",
    "/sitemap-index.xml",
    "/sitemaps.xml",
    "/sitemap/sitemap.xml",
    "/wp-sitemap.xml",
    "/page-sitemap.xml",
    "/post-sitemap.xml",
]

MAX_SITEMAP_DEPTH = 5

SITEMAP_FILE_RE = re.compile(r"sitemap.*\.xml$", re.IGNORECASE)

SITEMAP_HEADERS = {
    "Accept": "application/xml, text/xml, */*",
    "User-Agent": f"{USER_AGENT} Sitemap Parser",
}


def is_xml_like(content_type: str, content: str) -> bool:
    """Check whether a response looks like a sitemap document."""
    return (
        "xml" in content_type.lower()
        or content.lstrip().startswith("<?xml")
        or "<urlset" in content
        or "<sitemapindex" in content
    )


def _local_name(tag: str) -> str:
    """Strip the XML namespace from a tag."""
    return tag.rsplit("}", 1)[-1]


def _iter_locs(root: ET.Element, parent: str) -> Iterator[str]:
    """Yield <loc> values of every <parent> element, namespace-agnostic."""
    for element in root.iter():
        if _local_name(element.tag) != parent:
            continue
        for child in element:
            if _local_name(child.tag) == "loc" and child.text and child.text.strip():
                yield child.text.strip()


class SitemapLoader:
    """Resolve sitemap locations, including nested indexes, into page URLs."""

    def __init__(
        self,
        origin: str,
        client: httpx.AsyncClient,
        timeout: float = 10.0,
    ):
        """Initialize sitemap loader.

        Args:
            origin: Site origin; only URLs on this origin are kept.
            client: HTTP client used for fetching.
            timeout: Per-request timeout in seconds.
        """
        self.origin = origin.rstrip("/")
        self.client = client
        self.timeout = timeout
        self.urls: list[str] = []
        self.visited_sitemaps: set[str] = set()
        self._seen: set[str] = set()

    def locations(self, robots_sitemaps: Iterable[str] = ()) -> list[str]:
        """Build the ordered list of sitemap locations to try."""
        locations: list[str] = []
        for url in robots_sitemaps:
            if url not in locations:
                locations.append(url)
        for path in SITEMAP_PATHS:
            url = f"{self.origin}{path}"
            if url not in locations:
                locations.append(url)
        return locations

    async def load(self, limit: int, robots_sitemaps: Iterable[str] = ()) -> list[str]:
        """Collect page URLs from all sitemap locations.

        Args:
            limit: Page budget; collection stops at twice this many URLs.
            robots_sitemaps: Sitemaps declared in robots.txt (tried first).

        Returns:
            Unique same-origin page URLs in discovery order.
        """
        robots_sitemaps = list(robots_sitemaps)
        if robots_sitemaps:
            logger.debug("Found %d sitemaps in robots.txt", len(robots_sitemaps))

        for sitemap_url in self.locations(robots_sitemaps):
            if len(self.urls) >= limit * 2:
                logger.debug("Already have %d URLs, stopping sitemap parsing", len(self.urls))
                break

            logger.debug("Trying sitemap: %s", sitemap_url)
            await self.parse(sitemap_url)

        logger.debug("Loaded sitemaps with total %d URLs", len(self.urls))
        return list(self.urls)

    async def parse(self, sitemap_url: str, depth: int = 0) -> None:
        """Parse a sitemap or sitemap index.

        Fetch and parse errors are logged and swallowed so that one broken
        sitemap never stops the others from being read.

        Args:
            sitemap_url: URL of the sitemap.
            depth: Current nesting depth.
        """
        if depth > MAX_SITEMAP_DEPTH or sitemap_url in self.visited_sitemaps:
            return
        self.visited_sitemaps.add(sitemap_url)

        try:
            response = await self.client.get(
                sitemap_url, headers=SITEMAP_HEADERS, timeout=self.timeout
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.debug("Could not load sitemap %s: %s", sitemap_url, e)
            return

        final_url = str(response.url)
        if final_url != sitemap_url:
            if final_url in self.visited_sitemaps:
                logger.debug("Sitemap %s redirects to already seen %s", sitemap_url, final_url)
                return
            self.visited_sitemaps.add(final_url)
            logger.debug("Sitemap redirected: %s -> %s", sitemap_url, final_url)

        if not response.is_success:
            logger.debug("Sitemap %s returned %s", sitemap_url, response.status_code)
            return

        content = response.text
        if not is_xml_like(response.headers.get("content-type", ""), content):
            return

        is_index = "<sitemapindex" in content
        if not is_index and "<urlset" not in content:
            return

        try:
            root = ET.fromstring(content.strip())
        except ET.ParseError as e:
            logger.debug("Invalid sitemap XML at %s: %s", sitemap_url, e)
            return

        if is_index:
            nested = list(_iter_locs(root, "sitemap"))
            logger.debug("Found %d nested sitemaps in %s", len(nested), sitemap_url)
            for nested_url in nested:
                await self.parse(nested_url, depth + 1)
            return

        found = 0
        for url in _iter_locs(root, "url"):
            found += 1
            if not is_same_origin(url, self.origin) or SITEMAP_FILE_RE.search(url):
                continue
            if url not in self._seen:
                self._seen.add(url)
                self.urls.append(url)

        logger.debug("Found %d URLs in %s, total now %d", found, sitemap_url, len(self.urls))


async def load_sitemap(
    origin: str,
    limit: int,
    robots_sitemaps: Iterable[str] = (),
    client: httpx.AsyncClient | None = None,
    timeout: float = 10.0,
) -> list[str]:
    """Fetch and parse sitemaps for an origin.

    Args:
        origin: Site origin.
        limit: Page budget of the crawl.
        robots_sitemaps: Sitemap URLs declared in robots.txt.
        client: Optional shared HTTP client.
        timeout: Request timeout in seconds.

    Returns:
        List of discovered page URLs.
    """
    if client is None:
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as own_client:
            return await SitemapLoader(origin, own_client, timeout).load(limit, robots_sitemaps)

    return await SitemapLoader(origin, client, timeout).load(limit, robots_sitemaps)
