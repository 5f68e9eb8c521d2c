"""URL utilities - canonicalization, robots matching, include/exclude filters."""

import re
from typing import Iterable
from urllib.parse import urljoin, urlparse, urlunparse

# Link targets that never lead to a crawlable page
NON_PAGE_SCHEMES = ("mailto:", "tel:", "sms:", "javascript:")


def normalize_netloc(scheme: str, netloc: str) -> str:
    """Lowercase a netloc and drop the scheme's default port."""
    netloc = netloc.lower()
    if ":" in netloc:
        host, port = netloc.rsplit(":", 1)
        if (scheme == "http" and port == "80") or (scheme == "https" and port == "443"):
            return host
    return netloc


def canonicalize(origin: str, include_query: bool, url: str) -> str:
    """Canonicalize a URL for crawl bookkeeping.

    - Resolves relative URLs against the origin
    - Lowercases scheme and host, removes default ports
    - Removes the fragment
    - Removes the query string unless include_query is set
    - Removes trailing slashes from paths (except root)

    Args:
        origin: Site origin used to resolve relative URLs.
        include_query: Whether to keep the query string.
        url: URL to canonicalize.

    Returns:
        Canonical URL.
    """
    parsed = urlparse(urljoin(origin, url))

    scheme = parsed.scheme.lower()
    netloc = normalize_netloc(scheme, parsed.netloc)

    path = parsed.path
    if path != "/" and path.endswith("/"):
        path = path.rstrip("/")
    if not path:
        path = "/"

    query = parsed.query if include_query else ""

    return urlunparse(
        parsed._replace(scheme=scheme, netloc=netloc, path=path, query=query, fragment="")
    )


def robots_rule_to_regex(rule: str) -> re.Pattern[str]:
    """Compile a wildcard robots.txt rule to a regex anchored at the path start.

    Args:
        rule: Disallow rule containing ``*``.

    Returns:
        Compiled pattern.
    """
    escaped = "".join(".*" if ch == "*" else re.escape(ch) for ch in rule)
    return re.compile(f"^{escaped}")


def is_disallowed(url: str, rules: Iterable[str]) -> bool:
    """Check a URL against robots.txt disallow rules.

    Wildcard rules are matched as regexes against path+query, rules with a
    ``?`` as literal prefixes of path+query, everything else as literal
    prefixes of the path.

    Args:
        url: Absolute URL to check.
        rules: Disallow rules.

    Returns:
        True if any rule matches.
    """
    try:
        parsed = urlparse(url)
    except ValueError:
        return False

    path = parsed.path or "/"
    path_with_query = f"{path}?{parsed.query}" if parsed.query else path

    for rule in rules:
        if "*" in rule:
            if robots_rule_to_regex(rule).match(path_with_query):
                return True
        elif "?" in rule:
            if path_with_query.startswith(rule):
                return True
        elif path.startswith(rule):
            return True

    return False


def match_glob(value: str, pattern: str) -> bool:
    """Unanchored, case-insensitive glob match (``*`` any run, ``?`` one char)."""
    regex = "".join(
        ".*" if ch == "*" else "." if ch == "?" else re.escape(ch) for ch in pattern
    )
    return re.search(regex, value, re.IGNORECASE) is not None


def matches_patterns(
    url: str,
    include_patterns: Iterable[str],
    exclude_patterns: Iterable[str],
) -> bool:
    """Apply include/exclude glob filters.

    Exclude patterns take precedence. A non-empty include list acts as an
    allow-list; an empty one allows everything.

    Args:
        url: URL to test.
        include_patterns: Glob allow-list.
        exclude_patterns: Glob deny-list.

    Returns:
        True if the URL passes the filters.
    """
    if any(match_glob(url, pattern) for pattern in exclude_patterns):
        return False

    include_patterns = list(include_patterns)
    if include_patterns:
        return any(match_glob(url, pattern) for pattern in include_patterns)

    return True


def get_origin(url: str) -> str:
    """Get the origin (scheme + host + port) of a URL.

    Args:
        url: Full URL.

    Returns:
        Origin without trailing slash, lowercased, default port removed.
    """
    parsed = urlparse(url)
    scheme = parsed.scheme.lower()
    return f"{scheme}://{normalize_netloc(scheme, parsed.netloc)}"


def is_same_origin(url1: str, url2: str) -> bool:
    """Check if two URLs have the same origin.

    Same origin = same scheme + host + port.

    Args:
        url1: First URL.
        url2: Second URL.

    Returns:
        True if same origin.
    """
    try:
        parsed1 = urlparse(url1)
        parsed2 = urlparse(url2)

        scheme1 = parsed1.scheme.lower()
        scheme2 = parsed2.scheme.lower()

        if scheme1 != scheme2:
            return False

        return normalize_netloc(scheme1, parsed1.netloc) == normalize_netloc(
            scheme2, parsed2.netloc
        )
    except ValueError:
        return False


def normalize_crawl_target(origin: str, href: str | None) -> str | None:
    """Turn a raw link target into an absolute same-origin page URL.

    Args:
        origin: Site origin.
        href: Raw href as found in the page.

    Returns:
        Absolute URL without fragment, or None if the target is not crawlable.
    """
    if not href:
        return None

    href = href.strip()
    if not href or href.startswith("#"):
        return None
    if href.lower().startswith(NON_PAGE_SCHEMES):
        return None

    try:
        absolute = urljoin(origin + "/", href)
        parsed = urlparse(absolute)
    except ValueError:
        return None

    if parsed.scheme not in ("http", "https"):
        return None
    if not is_same_origin(absolute, origin):
        return None

    return urlunparse(parsed._replace(fragment=""))
