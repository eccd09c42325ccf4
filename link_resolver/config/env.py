"""
Environment-based configuration loading with validation.

This module provides:
- Environment variable parsing with defaults
- Configuration value clamping for safety
- Remote resolver list parsing
- ResolverConfig construction from environment
"""

from __future__ import annotations

import os

from link_resolver.config.constants import (
    DEFAULT_CACHE_MAX_ENTRIES,
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_HTTPX_TIMEOUT_SECONDS,
    DEFAULT_PLAYWRIGHT_MAX_CONCURRENCY,
    DEFAULT_PLAYWRIGHT_NAV_TIMEOUT_MS,
    DEFAULT_PLAYWRIGHT_SETTLE_MS,
)
from link_resolver.core.models import (
    RemoteResolverConfig,
    ResolverConfig,
    default_remote_resolvers,
)

# ==== ENVIRONMENT VARIABLE HELPERS ==== #

def _env_int(name: str, default: int) -> int:
    """
    Read integer from environment variable with fallback.

    Args:
        name: Environment variable name
        default: Default value if variable not set

    Returns:
        Integer value from environment or default

    Note:
        Raises ValueError if environment value cannot be parsed as int.
    """
    value = os.getenv(name)

    if value is None or not value.strip():
        return default

    return int(value)


def _env_bool(name: str, default: bool) -> bool:
    """Read a true/false flag; only "1", "true" and "yes" count as true."""
    value = os.getenv(name)

    if value is None or not value.strip():
        return default

    return value.strip().lower() in {"1", "true", "yes"}


def _clamp(value: int, lower: int, upper: int) -> int:
    """
    Clamp integer value to safe range.

    Example:
        _clamp(150, 1, 128) -> 128
        _clamp(5, 10, 100) -> 10
    """
    return max(lower, min(upper, value))




# ==== REMOTE RESOLVER PARSING ==== #

def parse_remote_resolvers(spec: str) -> list[RemoteResolverConfig]:
    """
    Parse a ``name=address[,name=address...]`` list.

    The first ``=`` separates name from address, so addresses may carry
    their own query strings. Entries without a name or address are
    skipped.

    Example:
        parse_remote_resolvers("a=https://a.example/api?url=,b=https://b.example/{link}")
        -> [RemoteResolverConfig(name="a", ...), RemoteResolverConfig(name="b", ...)]
    """
    resolvers: list[RemoteResolverConfig] = []

    for entry in spec.split(","):
        name, sep, address = entry.strip().partition("=")
        if not sep or not name.strip() or not address.strip():
            continue
        resolvers.append(
            RemoteResolverConfig(name=name.strip(), address=address.strip())
        )

    return resolvers




# ==== CONFIGURATION LOADERS ==== #

def load_resolver_config() -> ResolverConfig:
    """
    Load runtime configuration from environment variables.

    Environment Variables:
        CACHE_MAX_ENTRIES: Cache capacity (clamped 1-100000)
        CACHE_TTL_SECONDS: Cache entry lifetime (clamped 1-86400)
        HTTPX_TIMEOUT_SECONDS: HTTP request timeout (clamped 1-60)
        PLAYWRIGHT_MAX_CONCURRENCY: Render permits (clamped 1-8)
        PLAYWRIGHT_SETTLE_MS: Post-navigation settle delay (clamped 0-30000)
        PLAYWRIGHT_NAV_TIMEOUT_MS: Navigation timeout (clamped 1000-120000)
        PLAYWRIGHT_HEADLESS: Browser headless mode (true/false)
        PLAYWRIGHT_BLOCK_RESOURCES: Abort image/font/media requests
        ENABLE_REMOTE_RESOLVERS: Consult remote resolvers (true/false)
        REMOTE_RESOLVERS: ``name=address`` list replacing the defaults

    Returns:
        ResolverConfig with validated configuration values
    """
    # --► CACHE
    cache_max_entries = _clamp(
        _env_int("CACHE_MAX_ENTRIES", DEFAULT_CACHE_MAX_ENTRIES), 1, 100_000
    )
    cache_ttl_seconds = _clamp(
        _env_int("CACHE_TTL_SECONDS", DEFAULT_CACHE_TTL_SECONDS), 1, 86_400
    )

    # --► HTTP
    httpx_timeout_seconds = _clamp(
        _env_int("HTTPX_TIMEOUT_SECONDS", DEFAULT_HTTPX_TIMEOUT_SECONDS), 1, 60
    )

    # --► BROWSER
    # Playwright is expensive; keep concurrency small
    playwright_max_concurrency = _clamp(
        _env_int("PLAYWRIGHT_MAX_CONCURRENCY", DEFAULT_PLAYWRIGHT_MAX_CONCURRENCY),
        1,
        8,
    )
    playwright_settle_ms = _clamp(
        _env_int("PLAYWRIGHT_SETTLE_MS", DEFAULT_PLAYWRIGHT_SETTLE_MS), 0, 30_000
    )
    playwright_nav_timeout_ms = _clamp(
        _env_int("PLAYWRIGHT_NAV_TIMEOUT_MS", DEFAULT_PLAYWRIGHT_NAV_TIMEOUT_MS),
        1_000,
        120_000,
    )

    # --► REMOTE RESOLVERS
    remote_spec = os.getenv("REMOTE_RESOLVERS", "")
    remote_resolvers = (
        parse_remote_resolvers(remote_spec)
        if remote_spec.strip()
        else default_remote_resolvers()
    )

    return ResolverConfig(
        cache_max_entries=cache_max_entries,
        cache_ttl_seconds=cache_ttl_seconds,
        httpx_timeout_seconds=httpx_timeout_seconds,
        playwright_max_concurrency=playwright_max_concurrency,
        playwright_settle_ms=playwright_settle_ms,
        playwright_nav_timeout_ms=playwright_nav_timeout_ms,
        playwright_headless=_env_bool("PLAYWRIGHT_HEADLESS", True),
        playwright_block_resources=_env_bool("PLAYWRIGHT_BLOCK_RESOURCES", True),
        enable_remote_resolvers=_env_bool("ENABLE_REMOTE_RESOLVERS", False),
        remote_resolvers=remote_resolvers,
    )
