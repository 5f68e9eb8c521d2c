"""Configuration loading and management."""

from pathlib import Path
from typing import Any
from urllib.parse import urlparse, urlunparse

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from a11yscout.discovery.url_utils import get_origin

DEFAULT_CONFIG_PATHS = [
    Path("configs/default.yaml"),
    Path("a11yscout.yaml"),
    Path.home() / ".a11yscout" / "config.yaml",
]


class ConfigError(Exception):
    """Raised when a configuration file cannot be used."""


class CrawlerConfig(BaseModel):
    """Settings for one discovery run. Immutable once built."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    start_url: str
    limit: int = Field(default=10, ge=1)
    timeout_ms: int = Field(default=30_000, ge=1)
    include_query: bool = True
    use_sitemap: bool = True
    respect_robots_txt: bool = True
    detect_spa_routes: bool = True
    pierce_shadow_dom: bool = True
    discover_common_paths: bool = True
    follow_navigation: bool = True
    include_patterns: tuple[str, ...] = ()
    exclude_patterns: tuple[str, ...] = ()
    max_depth: int = Field(default=5, ge=0)

    @field_validator("start_url")
    @classmethod
    def _check_start_url(cls, value: str) -> str:
        value = value.strip()
        if "://" not in value:
            value = f"https://{value}"

        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"not an http(s) URL: {value}")
        return urlunparse(parsed._replace(path=parsed.path or "/"))

    @property
    def origin(self) -> str:
        return get_origin(self.start_url)


def load_config(config_path: Path | None = None) -> dict[str, Any]:
    """Load configuration from file.

    Args:
        config_path: Optional path to config file. If not provided,
                    searches default locations.

    Returns:
        Configuration dictionary, merged over the defaults.

    Raises:
        ConfigError: If an explicit path is missing or a file is not valid YAML.
    """
    if config_path is not None and not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    paths_to_try = [config_path] if config_path else DEFAULT_CONFIG_PATHS

    for path in paths_to_try:
        if path.exists():
            try:
                with open(path, encoding="utf-8") as f:
                    config = yaml.safe_load(f)
            except (OSError, yaml.YAMLError) as e:
                raise ConfigError(f"Could not read {path}: {e}") from e

            if config is None:
                config = {}
            if not isinstance(config, dict):
                raise ConfigError(f"{path} must contain a mapping at the top level")
            return merge_configs(get_default_config(), config)

    # Return default config if no file found
    return get_default_config()


def get_default_config() -> dict[str, Any]:
    """Return default configuration."""
    return {
        "crawler": {
            "use_sitemap": True,
            "respect_robots_txt": True,
            "detect_spa_routes": True,
            "pierce_shadow_dom": True,
            "discover_common_paths": True,
            "follow_navigation": True,
            "include_query": True,
            "max_depth": 5,
            "include_patterns": [],
            "exclude_patterns": [],
        },
        "limits": {
            "max_pages": 10,
            "timeout_ms": 30000,
        },
        "profiles": {
            "quick": {
                "max_pages": 5,
                "max_depth": 2,
                "discover_common_paths": False,
            },
            "standard": {
                "max_pages": 10,
                "max_depth": 5,
            },
            "deep": {
                "max_pages": 50,
                "max_depth": 8,
                "timeout_ms": 60000,
            },
        },
    }


def get_profile(config: dict[str, Any], profile_name: str) -> dict[str, Any]:
    """Get a specific discovery profile configuration.

    Args:
        config: Full configuration dictionary.
        profile_name: Name of the profile (quick, standard, deep).

    Returns:
        Profile configuration dictionary.
    """
    profiles = config.get("profiles", get_default_config()["profiles"])
    return profiles.get(profile_name, profiles.get("standard", {}))


def merge_configs(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge two configuration dictionaries.

    Args:
        base: Base configuration.
        override: Override configuration (takes precedence).

    Returns:
        Merged configuration.
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value

    return result


def build_crawler_config(
    config: dict[str, Any],
    start_url: str,
    profile: str | None = None,
    **overrides: Any,
) -> CrawlerConfig:
    """Build the immutable crawler config for one run.

    Precedence: explicit overrides, then the profile, then the file/defaults.
    Overrides set to None are ignored.

    Args:
        config: Full configuration dictionary.
        start_url: URL to start discovery from.
        profile: Optional profile name.
        **overrides: CrawlerConfig fields to force.

    Returns:
        Validated CrawlerConfig.
    """
    crawler = dict(config.get("crawler", {}))
    limits = config.get("limits", {})

    settings: dict[str, Any] = {
        key: value for key, value in crawler.items() if key in CrawlerConfig.model_fields
    }
    settings["limit"] = limits.get("max_pages", 10)
    settings["timeout_ms"] = limits.get("timeout_ms", 30000)

    if profile:
        profile_config = get_profile(config, profile)
        for key, value in profile_config.items():
            if key == "max_pages":
                settings["limit"] = value
            elif key in CrawlerConfig.model_fields:
                settings[key] = value

    settings.update({key: value for key, value in overrides.items() if value is not None})
    settings["start_url"] = start_url

    for key in ("include_patterns", "exclude_patterns"):
        if settings.get(key) is not None:
            settings[key] = tuple(settings[key])

    return CrawlerConfig(**settings)
