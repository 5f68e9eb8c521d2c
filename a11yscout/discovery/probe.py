"""Common-path probing - surface pages that nothing links to."""

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable

from a11yscout.discovery.frontier import Candidate, Frontier
from a11yscout.discovery.url_utils import is_same_origin

logger = logging.getLogger(__name__)

PROBE_PRIORITY = 4
PROBE_DEPTH = 2
PROBE_TIMEOUT_MS = 5000

# Stop probing once frontier + visited reach this multiple of the page budget
PROBE_BUDGET_MULTIPLE = 3

# Bodies shorter than this are checked for not-found phrasing
SOFT_404_BODY_CHARS = 1000

COMMON_PATHS = [
    # About
    "/about",
    "/about-us",
    "/who-we-are",
    "/our-story",
    "/our-team",
    "/team",
    "/mission",
    "/vision",
    "/values",
    # Contact
    "/contact",
    "/contact-us",
    "/get-in-touch",
    "/reach-us",
    "/enquiry",
    "/enquiries",
    # Offering
    "/services",
    "/what-we-do",
    "/products",
    "/solutions",
    # Content
    "/blog",
    "/news",
    "/articles",
    "/resources",
    # Help
    "/faqs",
    "/faq",
    "/help",
    "/support",
    "/help-centre",
    "/help-center",
    # Legal
    "/privacy",
    "/privacy-policy",
    "/terms",
    "/terms-of-service",
    "/terms-and-conditions",
    "/accessibility",
    "/accessibility-statement",
    "/cookies",
    "/cookie-policy",
    # Navigation aids
    "/sitemap",
    "/site-map",
    "/search",
    "/find",
    # Accounts
    "/login",
    "/signin",
    "/sign-in",
    "/register",
    "/signup",
    "/sign-up",
    "/account",
    "/my-account",
    "/dashboard",
    # Commerce
    "/shop",
    "/store",
    "/catalogue",
    "/catalog",
    "/cart",
    "/basket",
    "/checkout",
    "/categories",
    "/collections",
    # Charities and community
    "/donate",
    "/support-us",
    "/get-involved",
    "/volunteer",
    "/events",
    "/whats-on",
    "/calendar",
    "/membership",
    "/join",
    "/become-a-member",
    # Information
    "/information",
    "/info",
    "/guides",
    "/advice",
    "/conditions",
    "/symptoms",
    "/treatments",
]

NOT_FOUND_PATTERNS = [
    r"(?<![-.\d])\b404\b(?![-.\d])",
    r"page not found",
    r"not found",
    r"does not exist",
    r"doesn[’']t exist",
    r"no longer (?:exists|available)",
    r"(?:cannot|can[’']t|could not|couldn[’']t) be found",
]

_NOT_FOUND_RE = re.compile("|".join(NOT_FOUND_PATTERNS), re.IGNORECASE)

# Collects the text the soft-404 check looks at
PAGE_TEXT_SCRIPT = """
() => {
  const h1 = document.querySelector('h1');
  const body = document.body ? (document.body.innerText || '') : '';
  return {
    title: document.title || '',
    heading: h1 ? (h1.innerText || h1.textContent || '') : '',
    bodyText: body.trim().slice(0, 5000),
  };
}
"""


@dataclass
class ProbeResult:
    """Outcome of probing one path."""

    url: str
    final_url: str = ""
    status_code: int = 0
    accepted: bool = False
    reason: str = ""


def looks_like_not_found(title: str, heading: str, body_text: str) -> bool:
    """Soft-404 heuristic: does a 200 page actually say it does not exist?

    Args:
        title: Document title.
        heading: Text of the first <h1>.
        body_text: Visible body text.

    Returns:
        True if the page reads like a not-found page.
    """
    if _NOT_FOUND_RE.search(title or "") or _NOT_FOUND_RE.search(heading or ""):
        return True

    body_text = (body_text or "").strip()
    return len(body_text) < SOFT_404_BODY_CHARS and bool(_NOT_FOUND_RE.search(body_text))


class CommonPathProbe:
    """Speculatively visit conventional paths and queue the ones that exist."""

    def __init__(
        self,
        browser: Any,
        origin: str,
        start_url: str,
        canonical: Callable[[str], str],
        is_blocked: Callable[[str], bool],
        timeout_ms: int = PROBE_TIMEOUT_MS,
        paths: list[str] | None = None,
    ):
        """Initialize the probe.

        Args:
            browser: Object providing ``new_page()``.
            origin: Site origin.
            start_url: Crawl start URL; redirects back to it are rejected.
            canonical: URL canonicalizer of the running crawl.
            is_blocked: robots.txt check of the running crawl.
            timeout_ms: Per-path navigation timeout.
            paths: Path catalog (defaults to COMMON_PATHS).
        """
        self.browser = browser
        self.origin = origin.rstrip("/")
        self.canonical = canonical
        self.is_blocked = is_blocked
        self.timeout_ms = timeout_ms
        self.paths = paths if paths is not None else COMMON_PATHS
        self.start_canonical = canonical(start_url)

    async def run(
        self,
        frontier: Frontier,
        depth_index: dict[str, int],
        visited: set[str],
        limit: int,
    ) -> list[ProbeResult]:
        """Probe the catalog, pushing accepted pages onto the frontier.

        Args:
            frontier: Crawl frontier (mutated).
            depth_index: URL -> first-seen depth (mutated).
            visited: URLs already visited.
            limit: Page budget of the crawl.

        Returns:
            Results for accepted paths.
        """
        accepted: list[ProbeResult] = []
        tried: set[str] = set()

        page = await self.browser.new_page()
        try:
            for path in self.paths:
                if len(accepted) >= limit:
                    break
                if len(frontier) + len(visited) >= limit * PROBE_BUDGET_MULTIPLE:
                    break

                test_url = f"{self.origin}{path}"
                canonical = self.canonical(test_url)

                if canonical in tried or canonical in depth_index:
                    continue
                tried.add(canonical)
                if self.is_blocked(canonical):
                    continue

                result = await self._check_single(page, test_url, depth_index)
                if not result.accepted:
                    logger.debug("Probe rejected %s: %s", test_url, result.reason)
                    continue

                frontier.push(Candidate(result.final_url, PROBE_PRIORITY, PROBE_DEPTH))
                depth_index[result.final_url] = PROBE_DEPTH
                accepted.append(result)
                logger.debug("Discovered common path: %s", result.final_url)
        finally:
            try:
                await page.close()
            except Exception as e:
                logger.debug("Probe page close failed: %s", e)

        return accepted

    async def _check_single(
        self,
        page: Any,
        url: str,
        depth_index: dict[str, int],
    ) -> ProbeResult:
        """Check a single path.

        Args:
            page: Page used for probing.
            url: URL to check.
            depth_index: Already indexed URLs.

        Returns:
            ProbeResult; ``accepted`` is False on any error.
        """
        try:
            response = await page.goto(url, wait_until="domcontentloaded", timeout=self.timeout_ms)
        except Exception as e:
            return ProbeResult(url=url, reason=f"navigation failed: {e}")

        if response is None:
            return ProbeResult(url=url, reason="no response")

        status = response.status
        if not response.ok:
            return ProbeResult(url=url, status_code=status, reason=f"HTTP {status}")

        content_type = response.headers.get("content-type", "")
        if "text/html" not in content_type:
            return ProbeResult(url=url, status_code=status, reason=f"not HTML: {content_type}")

        final_url = self.canonical(page.url)
        if not is_same_origin(final_url, self.origin):
            return ProbeResult(url=url, final_url=final_url, status_code=status, reason="other origin")
        if final_url == self.start_canonical:
            return ProbeResult(url=url, final_url=final_url, status_code=status, reason="redirects to start")
        if final_url in depth_index:
            return ProbeResult(url=url, final_url=final_url, status_code=status, reason="already indexed")
        if self.is_blocked(final_url):
            return ProbeResult(url=url, final_url=final_url, status_code=status, reason="disallowed")

        try:
            text = await page.evaluate(PAGE_TEXT_SCRIPT)
        except Exception as e:
            return ProbeResult(url=url, final_url=final_url, status_code=status, reason=f"unreadable: {e}")

        if isinstance(text, dict) and looks_like_not_found(
            str(text.get("title", "")),
            str(text.get("heading", "")),
            str(text.get("bodyText", "")),
        ):
            return ProbeResult(url=url, final_url=final_url, status_code=status, reason="soft 404")

        return ProbeResult(url=url, final_url=final_url, status_code=status, accepted=True)


async def probe_common_paths(
    browser: Any,
    origin: str,
    start_url: str,
    frontier: Frontier,
    depth_index: dict[str, int],
    visited: set[str],
    limit: int,
    canonical: Callable[[str], str],
    is_blocked: Callable[[str], bool],
    timeout_ms: int = PROBE_TIMEOUT_MS,
) -> int:
    """Probe conventional paths and queue the ones that exist.

    Returns:
        Number of pages discovered.
    """
    probe = CommonPathProbe(browser, origin, start_url, canonical, is_blocked, timeout_ms)
    results = await probe.run(frontier, depth_index, visited, limit)
    return len(results)
