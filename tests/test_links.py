"""Tests for in-page link harvesting."""

import pytest
from playwright.async_api import Error as PlaywrightError

from a11yscout.browser import BrowserSession
from a11yscout.discovery.links import EXTRACT_LINKS_SCRIPT, LinkBuckets, extract_links


class ScriptedPage:
    """Page whose evaluate() returns a canned value and records its arguments."""

    def __init__(self, result):
        self.result = result
        self.calls = []

    async def evaluate(self, script, arg=None):
        self.calls.append((script, arg))
        return self.result


class TestExtractLinks:
    """Tests for link bucket handling."""

    @pytest.mark.asyncio
    async def test_buckets_returned(self):
        """Test navigation and regular hrefs are returned separately."""
        page = ScriptedPage({"navigation": ["/about", "/contact"], "regular": ["/blog/post"]})

        links = await extract_links(page, True)

        assert links.navigation == ["/about", "/contact"]
        assert links.regular == ["/blog/post"]

    @pytest.mark.asyncio
    async def test_pierce_flag_passed_to_script(self):
        """Test the shadow DOM flag reaches the page script."""
        page = ScriptedPage({"navigation": [], "regular": []})

        await extract_links(page, False)

        assert page.calls == [(EXTRACT_LINKS_SCRIPT, False)]

    @pytest.mark.asyncio
    async def test_garbage_results_coerced(self):
        """Test non-string entries and malformed results are dropped."""
        page = ScriptedPage({"navigation": ["/ok", None, 7, ""], "regular": "not-a-list"})

        links = await extract_links(page, True)

        assert links == LinkBuckets(navigation=["/ok"], regular=[])

    @pytest.mark.asyncio
    async def test_non_dict_result(self):
        """Test a non-object result yields empty buckets."""
        links = await extract_links(ScriptedPage(None), True)

        assert links == LinkBuckets()


class TestExtractLinksScript:
    """Sanity checks on the in-page script."""

    def test_script_covers_link_sources(self):
        """Test the script looks at every kind of link source."""
        for needle in [
            "a[href]",
            "area[href]",
            "link[href]",
            "application/ld+json",
            "data-href",
            "shadowRoot",
            "onclick",
        ]:
            assert needle in EXTRACT_LINKS_SCRIPT


async def links_in_browser(html: str, pierce: bool = True) -> LinkBuckets:
    """Render markup in headless Chromium and run the extractor on it."""
    session = BrowserSession()
    try:
        await session.__aenter__()
    except PlaywrightError as e:
        pytest.skip(f"Chromium is not available: {e}")

    try:
        page = await session.new_page()
        await page.set_content(html)
        return await extract_links(page, pierce)
    finally:
        await session.close()


SHADOW_HTML = """
<main>
  <a href="/light">Light DOM</a>
  <div id="widget"></div>
</main>
<script>
  const root = document.getElementById('widget').attachShadow({ mode: 'open' });
  root.innerHTML = '<a href="/in-shadow">Shadow link</a>';
</script>
"""


@pytest.mark.browser
class TestExtractLinksInBrowser:
    """Tests running the in-page script against rendered markup."""

    @pytest.mark.asyncio
    async def test_navigation_vs_regular(self):
        """Test landmark, role and class/id ancestors make a link navigation."""
        links = await links_in_browser(
            """
            <header><a href="/home">Home</a></header>
            <nav><a href="/about">About</a></nav>
            <div class="site-menu"><a href="/menu-item">Menu</a></div>
            <div id="footer-links"><a href="/terms">Terms</a></div>
            <div role="contentinfo"><a href="/legal">Legal</a></div>
            <main><p><a href="/article">Article</a></p></main>
            """
        )

        assert sorted(links.navigation) == ["/about", "/home", "/legal", "/menu-item", "/terms"]
        assert links.regular == ["/article"]

    @pytest.mark.asyncio
    async def test_breadcrumb_promoted(self):
        """Test breadcrumb links are navigation, even when also linked in content."""
        links = await links_in_browser(
            """
            <main>
              <ol aria-label="Breadcrumb"><li><a href="/shop">Shop</a></li></ol>
              <div class="breadcrumbs"><a href="/shop/shoes">Shoes</a></div>
              <a href="/shop">Back to shop</a>
              <a href="/shop/shoes/red">Red shoes</a>
            </main>
            """
        )

        assert sorted(links.navigation) == ["/shop", "/shop/shoes"]
        assert links.regular == ["/shop/shoes/red"]

    @pytest.mark.asyncio
    async def test_non_page_hrefs_excluded(self):
        """Test javascript:, mailto:, tel: and in-page anchors are dropped."""
        links = await links_in_browser(
            """
            <main>
              <a href="javascript:void(0)">Toggle</a>
              <a href="mailto:help@example.com">Email</a>
              <a href="tel:+441234567890">Call</a>
              <a href="#content">Skip</a>
              <a href="/contact">Contact</a>
            </main>
            """
        )

        assert links.navigation == []
        assert links.regular == ["/contact"]

    @pytest.mark.asyncio
    async def test_shadow_root_pierced(self):
        """Test links inside open shadow roots are found when piercing."""
        links = await links_in_browser(SHADOW_HTML, pierce=True)

        assert sorted(links.regular) == ["/in-shadow", "/light"]

    @pytest.mark.asyncio
    async def test_shadow_root_ignored_without_pierce(self):
        links = await links_in_browser(SHADOW_HTML, pierce=False)

        assert links.regular == ["/light"]

    @pytest.mark.asyncio
    async def test_secondary_link_sources(self):
        """Test JSON-LD, data attributes, onclick, area and page-like <link> tags."""
        links = await links_in_browser(
            """
            <html>
            <head>
              <link rel="alternate" hreflang="fr" href="/fr/">
              <link rel="stylesheet" href="/static/site.css">
              <link rel="manifest" href="/site.webmanifest">
              <link rel="preconnect" href="https://fonts.gstatic.com/">
              <link rel="dns-prefetch" href="//cdn.example.com/">
              <script type="application/ld+json">
                {"@type": "WebPage", "url": "/structured", "name": "Page",
                 "hasPart": [{"@type": "WebPage", "url": "/structured/part"}]}
              </script>
            </head>
            <body>
              <main>
                <div data-href="/card-target">Card</div>
                <button onclick="location.href='/clicked'">Go</button>
                <img usemap="#m" src="data:image/gif;base64,R0lGODlhAQABAAAAACw=" alt="">
                <map name="m"><area href="/region" shape="rect" coords="0,0,1,1" alt="Region"></map>
              </main>
            </body>
            </html>
            """
        )

        assert sorted(links.regular) == [
            "/card-target",
            "/clicked",
            "/fr/",
            "/region",
            "/structured",
            "/structured/part",
        ]
