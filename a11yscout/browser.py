"""Headless browser lifecycle using Playwright."""

import logging
from typing import Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from a11yscout import USER_AGENT

logger = logging.getLogger(__name__)

CHROMIUM_ARGS = [
    "--no-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
]


class BrowserSession:
    """Owns one headless Chromium for the duration of a discovery run."""

    def __init__(
        self,
        width: int = 1280,
        height: int = 800,
        headless: bool = True,
        user_agent: str = USER_AGENT,
    ):
        """Initialize browser session.

        Args:
            width: Viewport width.
            height: Viewport height.
            headless: Run without a visible window.
            user_agent: User-Agent header sent by every page.
        """
        self.width = width
        self.height = height
        self.headless = headless
        self.user_agent = user_agent
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None

    async def __aenter__(self) -> "BrowserSession":
        """Async context manager entry."""
        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless,
                args=CHROMIUM_ARGS,
            )
            self._context = await self._browser.new_context(
                viewport={"width": self.width, "height": self.height},
                user_agent=self.user_agent,
            )
        except BaseException:
            await self.close()
            raise

        logger.debug("Chromium launched (%dx%d)", self.width, self.height)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def new_page(self) -> Page:
        """Open a new page in the session's browser context."""
        if not self._context:
            raise RuntimeError("Browser not initialized. Use 'async with' context.")
        return await self._context.new_page()

    async def close(self) -> None:
        """Close the browser and stop Playwright. Safe to call twice."""
        if self._context:
            try:
                await self._context.close()
            except Exception as e:
                logger.debug("Browser context close failed: %s", e)
            self._context = None

        if self._browser:
            try:
                await self._browser.close()
            except Exception as e:
                logger.warning("Browser close failed: %s", e)
            self._browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None
