"""Shared fakes: an in-memory site served through a Playwright-shaped browser."""

from dataclasses import dataclass, field

import httpx
import pytest

from a11yscout.discovery.links import EXTRACT_LINKS_SCRIPT
from a11yscout.discovery.probe import PAGE_TEXT_SCRIPT
from a11yscout.discovery.spa import BRIDGE_NAME

ORIGIN = "https://example.com"


@dataclass
class PageSpec:
    """What the fake server and DOM answer for one URL."""

    navigation: list[str] = field(default_factory=list)
    regular: list[str] = field(default_factory=list)
    status: int = 200
    content_type: str = "text/html; charset=utf-8"
    title: str = "Example"
    heading: str = "Welcome"
    body: str = "Plenty of real content lives on this page."
    redirect: str | None = None
    push_state: list[str] = field(default_factory=list)
    fail: bool = False
    extract_fails: bool = False


class FakeResponse:
    def __init__(self, url: str, status: int, headers: dict[str, str]):
        self.url = url
        self.status = status
        self.headers = headers

    @property
    def ok(self) -> bool:
        return 200 <= self.status <= 299


class FakeSite:
    """Pages keyed by the exact URL the browser is sent to."""

    def __init__(self) -> None:
        self.pages: dict[str, PageSpec] = {}
        self.requests: list[str] = []

    def add(self, path: str, **kwargs) -> PageSpec:
        spec = PageSpec(**kwargs)
        self.pages[f"{ORIGIN}{path}"] = spec
        return spec


class FakePage:
    def __init__(self, site: FakeSite):
        self.site = site
        self.url = "about:blank"
        self.exposed: dict = {}
        self.init_scripts: list[str] = []
        self.closed = False
        self._current: PageSpec | None = None

    async def expose_function(self, name, callback) -> None:
        self.exposed[name] = callback

    async def add_init_script(self, script: str) -> None:
        self.init_scripts.append(script)

    async def goto(self, url: str, wait_until: str | None = None, timeout: int | None = None):
        self.site.requests.append(url)
        spec = self.site.pages.get(url)

        if spec is not None and spec.fail:
            raise TimeoutError(f"Timeout {timeout}ms exceeded navigating to {url}")

        self._current = spec
        if spec is None:
            self.url = url
            return FakeResponse(url, 404, {"content-type": "text/html"})

        self.url = spec.redirect or url
        if BRIDGE_NAME in self.exposed and self.init_scripts:
            for route in spec.push_state:
                self.exposed[BRIDGE_NAME](route)

        return FakeResponse(self.url, spec.status, {"content-type": spec.content_type})

    async def wait_for_load_state(self, state: str = "load", timeout: int | None = None) -> None:
        return None

    async def evaluate(self, script: str, arg=None):
        spec = self._current
        if script == EXTRACT_LINKS_SCRIPT:
            if spec is None:
                return {"navigation": [], "regular": []}
            if spec.extract_fails:
                raise RuntimeError("Execution context was destroyed")
            return {"navigation": list(spec.navigation), "regular": list(spec.regular)}
        if script == PAGE_TEXT_SCRIPT:
            if spec is None:
                return {"title": "", "heading": "", "bodyText": ""}
            return {"title": spec.title, "heading": spec.heading, "bodyText": spec.body}
        raise AssertionError("unexpected script")

    async def title(self) -> str:
        return self._current.title if self._current else ""

    async def close(self) -> None:
        self.closed = True


class FakeBrowser:
    def __init__(self, site: FakeSite):
        self.site = site
        self.pages: list[FakePage] = []

    async def new_page(self) -> FakePage:
        page = FakePage(self.site)
        self.pages.append(page)
        return page


def build_client(routes: dict) -> httpx.AsyncClient:
    """HTTP client answering from a URL -> response table; unknown URLs are 404.

    Values are a body string (served as XML), an exception to raise, or a
    ``(status, body, headers)`` tuple.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        entry = routes.get(str(request.url))
        if entry is None:
            return httpx.Response(404, text="Not Found", headers={"content-type": "text/html"})
        if isinstance(entry, Exception):
            raise entry
        if isinstance(entry, str):
            return httpx.Response(200, text=entry, headers={"content-type": "application/xml"})
        status, body, headers = entry
        return httpx.Response(status, text=body, headers=headers)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler), follow_redirects=True)


def urlset(*paths: str, origin: str = ORIGIN) -> str:
    """Render a sitemap <urlset> for the given paths."""
    entries = "".join(f"<url><loc>{origin}{path}</loc></url>" for path in paths)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{entries}</urlset>'
    )


def sitemap_index(*urls: str) -> str:
    """Render a <sitemapindex> pointing at the given sitemap URLs."""
    entries = "".join(f"<sitemap><loc>{url}</loc></sitemap>" for url in urls)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{entries}</sitemapindex>'
    )


@pytest.fixture
def site() -> FakeSite:
    return FakeSite()


@pytest.fixture
def browser(site: FakeSite) -> FakeBrowser:
    return FakeBrowser(site)
