"""a11yscout - Site discovery for accessibility audits.

Finds the bounded set of same-origin pages worth auditing on a website by
combining sitemaps, robots.txt, link harvesting, common-path probing and
client-side route detection.
"""

__version__ = "1.0.0"
__author__ = "a11yscout Team"

USER_AGENT = f"A11yScout/{__version__}"
