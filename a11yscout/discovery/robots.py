"""Robots.txt loading and parsing."""

import logging
from dataclasses import dataclass, field

import httpx

logger = logging.getLogger(__name__)

# Sections addressed to an agent containing this token apply to us
ROBOTS_AGENT_TOKEN = "a11y"


@dataclass
class RobotsRules:
    """Parsed robots.txt rules."""

    disallowed: list[str] = field(default_factory=list)
    sitemaps: list[str] = field(default_factory=list)


def parse_robots_content(content: str, agent_token: str = ROBOTS_AGENT_TOKEN) -> RobotsRules:
    """Parse robots.txt content.

    Args:
        content: Raw robots.txt content.
        agent_token: Identifier token matched against User-agent values.

    Returns:
        Parsed rules.
    """
    rules = RobotsRules()
    token = agent_token.lower()

    current_agent_applies = False
    in_agent_group = False

    for line in content.splitlines():
        line = line.split("#", 1)[0].strip()

        # Skip empty lines and comments
        if not line or ":" not in line:
            continue

        directive, value = line.split(":", 1)
        directive = directive.strip().lower()
        value = value.strip()

        if directive == "user-agent":
            agent = value.lower()
            applies = agent == "*" or token in agent
            # Consecutive User-agent lines share the rules that follow them
            current_agent_applies = (current_agent_applies and in_agent_group) or applies
            in_agent_group = True
            continue

        in_agent_group = False

        if directive == "sitemap":
            # Sitemaps apply globally
            if value and value not in rules.sitemaps:
                rules.sitemaps.append(value)

        elif directive == "disallow" and current_agent_applies:
            if value and value not in rules.disallowed:
                rules.disallowed.append(value)

    return rules


async def load_robots_txt(
    origin: str,
    client: httpx.AsyncClient | None = None,
    timeout: float = 10.0,
    agent_token: str = ROBOTS_AGENT_TOKEN,
) -> RobotsRules:
    """Fetch and parse robots.txt for an origin.

    A missing or unreachable robots.txt yields empty rules.

    Args:
        origin: Site origin.
        client: Optional shared HTTP client.
        timeout: Request timeout in seconds.
        agent_token: Identifier token matched against User-agent values.

    Returns:
        Parsed rules.
    """
    if client is None:
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as own_client:
            return await load_robots_txt(origin, own_client, timeout, agent_token)

    robots_url = f"{origin.rstrip('/')}/robots.txt"

    try:
        response = await client.get(robots_url, timeout=timeout)
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.debug("Could not load robots.txt from %s: %s", robots_url, e)
        return RobotsRules()

    if not response.is_success:
        logger.debug("robots.txt at %s returned %s", robots_url, response.status_code)
        return RobotsRules()

    rules = parse_robots_content(response.text, agent_token)
    logger.debug(
        "Loaded robots.txt with %d disallow rules and %d sitemaps",
        len(rules.disallowed),
        len(rules.sitemaps),
    )
    return rules
