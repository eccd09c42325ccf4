"""
Core data models and type definitions for the link resolver.

This module defines:
- Configuration structures (ResolverConfig, RemoteResolverConfig)
- Request and result types (ResolveOptions, ResolutionResult)
- Collaborator payloads (RemoteResponse, RenderOutcome)
- Utility functions for result creation
"""

from __future__ import annotations

from typing import Any

import msgspec

from link_resolver.config.constants import (
    DEFAULT_CACHE_MAX_ENTRIES,
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_HTTPX_TIMEOUT_SECONDS,
    DEFAULT_PLAYWRIGHT_MAX_CONCURRENCY,
    DEFAULT_PLAYWRIGHT_NAV_TIMEOUT_MS,
    DEFAULT_PLAYWRIGHT_SETTLE_MS,
    Source,
)




# ==== CONFIGURATION MODELS ==== #

class RemoteResolverConfig(msgspec.Struct, omit_defaults=True):
    """
    External resolution service definition.

    Attributes:
        name: Short identifier, reported as ``remote:<name>``
        address: Address template or base URL of the service
        param: Query/form parameter carrying the link
        result_field: Optional dot path of the destination in the response
        headers: Extra request headers sent to this service
    """

    name: str
    address: str
    param: str = "url"
    result_field: str | None = None
    headers: dict[str, str] = {}


def default_remote_resolvers() -> list[RemoteResolverConfig]:
    """Remote resolvers tried, in this order, when none are configured."""
    return [
        RemoteResolverConfig(name="abysm", address="https://abysm.lat/api/free/bypass"),
        RemoteResolverConfig(name="trw", address="https://trw.lat/api/free/bypass"),
    ]




class ResolverConfig(msgspec.Struct, omit_defaults=True):
    """
    Runtime configuration for the resolution pipeline.

    Attributes:
        cache_max_entries: Maximum number of cached resolutions
        cache_ttl_seconds: Absolute lifetime of a cache entry
        httpx_timeout_seconds: Timeout for redirect-follow and remote calls
        playwright_max_concurrency: Maximum simultaneous render sessions
        playwright_settle_ms: Delay after navigation before reading the page
        playwright_nav_timeout_ms: Navigation timeout for a render session
        playwright_headless: Run browser in headless mode
        playwright_block_resources: Abort image/font/media requests
        enable_remote_resolvers: Whether remote resolvers are consulted
        remote_resolvers: Remote resolvers in priority order
    """

    cache_max_entries: int = DEFAULT_CACHE_MAX_ENTRIES
    cache_ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS
    httpx_timeout_seconds: int = DEFAULT_HTTPX_TIMEOUT_SECONDS
    playwright_max_concurrency: int = DEFAULT_PLAYWRIGHT_MAX_CONCURRENCY
    playwright_settle_ms: int = DEFAULT_PLAYWRIGHT_SETTLE_MS
    playwright_nav_timeout_ms: int = DEFAULT_PLAYWRIGHT_NAV_TIMEOUT_MS
    playwright_headless: bool = True
    playwright_block_resources: bool = True
    enable_remote_resolvers: bool = False
    remote_resolvers: list[RemoteResolverConfig] = msgspec.field(
        default_factory=default_remote_resolvers
    )




# ==== REQUEST & RESULT MODELS ==== #

class ResolveOptions(msgspec.Struct, omit_defaults=True):
    """
    Per-call options supplied by the front door.

    Attributes:
        prefer_external: Consult remote resolvers before redirect-follow
        result_field_hint: Dot path of the destination in remote payloads
    """

    prefer_external: bool = False
    result_field_hint: str | None = None




class ResolutionResult(msgspec.Struct, rename="camel"):
    """
    Outcome of resolving one link.

    Serialized with camelCase keys, so ``from_cache`` appears as
    ``fromCache`` on the wire.

    Attributes:
        bypassed: Resolved destination URL, or None on failure
        method: Tag of the producing strategy (rule name, ``redirect``,
            ``json-target``, ``remote:<name>``, ``render``)
        raw: Truncated diagnostic payload (response body or page content)
        error: Diagnostic string when resolution failed
        source: Strategy family that produced the result
        from_cache: Whether the result was served from the cache
    """

    bypassed: str | None = None
    method: str | None = None
    raw: str | None = None
    error: str | None = None
    source: Source | None = None
    from_cache: bool = False

    @property
    def is_resolved(self) -> bool:
        """Only resolved results are eligible for caching."""
        return bool(self.bypassed)




class RemoteResponse(msgspec.Struct):
    """Raw output of one remote resolver call."""

    status: int
    text: str
    parsed: Any
    used_url: str
    http_method: str = "GET"




class RenderOutcome(msgspec.Struct):
    """Final URL and rendered content read from a browser session."""

    final_url: str
    content: str = ""




# ==== UTILITY FUNCTIONS ==== #

def truncate(text: str | None, limit: int) -> str | None:
    """
    Cap a diagnostic payload to a fixed character budget.

    Args:
        text: Payload to cap (None passes through)
        limit: Maximum number of characters kept

    Returns:
        Truncated text, or None if no payload was given
    """
    if text is None:
        return None
    return text[:limit]


def failure(error: str | None = None, raw: str | None = None) -> ResolutionResult:
    """Build an unresolved result carrying diagnostics."""
    return ResolutionResult(bypassed=None, error=error, raw=raw)


def describe_exception(exc: BaseException, limit: int = 200) -> str:
    """Short ``Kind: message`` description of a fault for result payloads."""
    message = str(exc)[:limit]
    kind = type(exc).__name__
    return f"{kind}: {message}" if message else kind
