"""Client-side route detection via History API hooks.

Routes reported by the page are queued on a channel that the crawler drains
after each visited page. Whatever is drained is attributed to the page that is
current at that moment, which is not necessarily the page whose script pushed
the route.
"""

import asyncio
import logging
from typing import Any
from urllib.parse import urljoin, urlparse, urlunparse

from a11yscout.discovery.url_utils import is_same_origin

logger = logging.getLogger(__name__)

BRIDGE_NAME = "__a11yscoutRouteDetected"

HISTORY_HOOK_SCRIPT = f"""
(() => {{
  const report = (url) => {{
    try {{
      if (url !== undefined && url !== null && typeof window.{BRIDGE_NAME} === 'function') {{
        window.{BRIDGE_NAME}(String(url));
      }}
    }} catch (e) {{
      // bridge unavailable
    }}
  }};

  const originalPushState = history.pushState;
  history.pushState = function (...args) {{
    report(args[2]);
    return originalPushState.apply(this, args);
  }};

  const originalReplaceState = history.replaceState;
  history.replaceState = function (...args) {{
    report(args[2]);
    return originalReplaceState.apply(this, args);
  }};

  window.addEventListener('popstate', () => report(window.location.href));
}})();
"""


class SpaRouteChannel:
    """One-way channel of client-side routes reported by a page."""

    def __init__(self, origin: str):
        """Initialize the channel.

        Args:
            origin: Site origin; routes on other origins are dropped.
        """
        self.origin = origin.rstrip("/")
        self._queue: asyncio.Queue[str] = asyncio.Queue()

    async def install(self, page: Any) -> None:
        """Expose the bridge and inject the History API hooks into a page.

        Must run before the first navigation so the hooks are in place at
        document creation.
        """
        await page.expose_function(BRIDGE_NAME, self.publish)
        await page.add_init_script(HISTORY_HOOK_SCRIPT)

    def publish(self, url: str) -> None:
        """Accept a route reported by the page."""
        try:
            absolute = urljoin(self.origin + "/", str(url))
        except ValueError:
            return

        if not is_same_origin(absolute, self.origin):
            return

        route = urlunparse(urlparse(absolute)._replace(fragment=""))
        logger.debug("SPA route detected: %s", route)
        self._queue.put_nowait(route)

    def drain(self) -> list[str]:
        """Return and clear every route reported so far."""
        routes: list[str] = []
        while True:
            try:
                route = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            if route not in routes:
                routes.append(route)
        return routes
