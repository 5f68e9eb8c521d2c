"""Discovery module - the individual page discovery sources."""

from a11yscout.discovery.frontier import Candidate, Frontier
from a11yscout.discovery.links import LinkBuckets, extract_links
from a11yscout.discovery.probe import probe_common_paths
from a11yscout.discovery.robots import RobotsRules, load_robots_txt
from a11yscout.discovery.sitemap import load_sitemap
from a11yscout.discovery.spa import SpaRouteChannel
from a11yscout.discovery.url_utils import canonicalize, is_disallowed, matches_patterns

__all__ = [
    "Candidate",
    "Frontier",
    "LinkBuckets",
    "RobotsRules",
    "SpaRouteChannel",
    "canonicalize",
    "extract_links",
    "is_disallowed",
    "load_robots_txt",
    "load_sitemap",
    "matches_patterns",
    "probe_common_paths",
]
