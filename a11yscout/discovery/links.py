"""In-page link harvesting, split into navigation and regular links."""

from dataclasses import dataclass, field
from typing import Any

# Runs inside the rendered document. Receives the pierce-shadow-DOM flag and
# returns {navigation: [...], regular: [...]} of raw href strings.
EXTRACT_LINKS_SCRIPT = r"""
(pierce) => {
  const navigationLinks = new Set();
  const regularLinks = new Set();

  const NAV_TAGS = ['nav', 'header', 'footer'];
  const NAV_ROLES = ['navigation', 'banner', 'contentinfo'];
  const NAV_WORDS = ['nav', 'menu', 'header', 'footer'];
  const JSON_LD_KEYS = ['url', 'mainEntityOfPage', 'sameAs', 'relatedLink', 'hasPart'];

  const isSkippedHref = (href) => {
    const lower = href.trim().toLowerCase();
    return (
      lower === '' ||
      lower.startsWith('#') ||
      lower.startsWith('javascript:') ||
      lower.startsWith('mailto:') ||
      lower.startsWith('tel:')
    );
  };

  const containsNavWord = (value) => {
    const lower = (value || '').toLowerCase();
    return NAV_WORDS.some((word) => lower.includes(word));
  };

  const isInNavigation = (el) => {
    let current = el;
    while (current && current !== document.body) {
      if (current.nodeType === 1) {
        const tag = (current.tagName || '').toLowerCase();
        const role = (current.getAttribute('role') || '').toLowerCase();
        const className = typeof current.className === 'string' ? current.className : '';
        if (
          NAV_TAGS.includes(tag) ||
          NAV_ROLES.includes(role) ||
          containsNavWord(className) ||
          containsNavWord(current.id)
        ) {
          return true;
        }
      }
      // Step out of shadow roots to the host element
      current = current.parentElement || (current.parentNode && current.parentNode.host) || null;
    }
    return false;
  };

  const isBreadcrumb = (el) => {
    let current = el;
    while (current && current !== document.body) {
      if (current.nodeType === 1) {
        const className = typeof current.className === 'string' ? current.className : '';
        const label = current.getAttribute('aria-label') || '';
        if (className.toLowerCase().includes('breadcrumb') || label.toLowerCase().includes('breadcrumb')) {
          return true;
        }
      }
      current = current.parentElement || (current.parentNode && current.parentNode.host) || null;
    }
    return false;
  };

  const addRegular = (href) => {
    if (typeof href === 'string' && !isSkippedHref(href)) regularLinks.add(href.trim());
  };

  const walkJsonLd = (node) => {
    if (!node || typeof node !== 'object') return;
    if (Array.isArray(node)) {
      node.forEach(walkJsonLd);
      return;
    }
    for (const key of Object.keys(node)) {
      const value = node[key];
      if (JSON_LD_KEYS.includes(key)) {
        if (typeof value === 'string') {
          addRegular(value);
        } else if (Array.isArray(value)) {
          value.forEach((item) => (typeof item === 'string' ? addRegular(item) : walkJsonLd(item)));
        } else {
          walkJsonLd(value);
        }
      } else if (typeof value === 'object') {
        walkJsonLd(value);
      }
    }
  };

  const extractFromRoot = (root) => {
    root.querySelectorAll('a[href]').forEach((a) => {
      const href = a.getAttribute('href');
      if (!href || isSkippedHref(href)) return;
      if (isBreadcrumb(a) || isInNavigation(a)) navigationLinks.add(href.trim());
      else regularLinks.add(href.trim());
    });

    root.querySelectorAll('link[href]').forEach((link) => {
      const href = link.getAttribute('href') || '';
      const rel = (link.getAttribute('rel') || '').toLowerCase();
      const isAsset =
        rel.includes('stylesheet') ||
        rel.includes('icon') ||
        rel.includes('preload') ||
        rel.includes('manifest') ||
        rel.includes('preconnect') ||
        rel.includes('dns-prefetch') ||
        /\.(css|js|mjs|ico)(\?|#|$)/i.test(href);
      if (href.startsWith('data:') || isAsset) return;
      if (rel.includes('alternate') || rel.includes('canonical') || href.includes('/')) {
        addRegular(href);
      }
    });

    root.querySelectorAll('script[type="application/ld+json"]').forEach((script) => {
      try {
        walkJsonLd(JSON.parse(script.textContent || ''));
      } catch (e) {
        // malformed JSON-LD
      }
    });

    root.querySelectorAll('[onclick], [data-href], [data-link], [data-url]').forEach((el) => {
      addRegular(el.getAttribute('data-href') || el.getAttribute('data-link') || el.getAttribute('data-url'));
      const onclick = el.getAttribute('onclick');
      if (onclick) {
        const match = onclick.match(/(?:location\.href|window\.location(?:\.href)?)\s*=\s*['"]([^'"]+)['"]/);
        if (match) addRegular(match[1]);
      }
    });

    root.querySelectorAll('area[href]').forEach((area) => addRegular(area.getAttribute('href')));

    if (pierce) {
      root.querySelectorAll('*').forEach((el) => {
        if (el.shadowRoot) extractFromRoot(el.shadowRoot);
      });
    }
  };

  extractFromRoot(document);

  for (const href of navigationLinks) regularLinks.delete(href);

  return {
    navigation: Array.from(navigationLinks),
    regular: Array.from(regularLinks),
  };
}
"""


@dataclass
class LinkBuckets:
    """Links harvested from one page."""

    navigation: list[str] = field(default_factory=list)
    regular: list[str] = field(default_factory=list)


def _as_strings(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str) and item]


async def extract_links(page: Any, pierce_shadow_dom: bool) -> LinkBuckets:
    """Harvest link candidates from the page currently loaded.

    Args:
        page: Playwright-compatible page.
        pierce_shadow_dom: Also search inside open shadow roots.

    Returns:
        Navigation and regular link buckets (raw hrefs).
    """
    result = await page.evaluate(EXTRACT_LINKS_SCRIPT, pierce_shadow_dom)
    if not isinstance(result, dict):
        return LinkBuckets()

    return LinkBuckets(
        navigation=_as_strings(result.get("navigation")),
        regular=_as_strings(result.get("regular")),
    )
