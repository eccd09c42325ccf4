"""
Configuration constants and type aliases for the link resolver.

This module defines:
- Type literals for strategy source identifiers
- Default configuration values for cache, HTTP and browser operations
- Diagnostic payload budgets and fixed error messages
"""

from __future__ import annotations

from typing import Literal

# ==== TYPE DEFINITIONS ==== #

Source = Literal["extractor", "redirect", "remote", "render"]
"""
Strategy family that produced a resolution.

- 'extractor': Pattern rule computed the target without network access
- 'redirect': HTTP redirect chain or JSON body of the link itself
- 'remote': External resolution service
- 'render': Headless browser session
"""




# ==== CACHE DEFAULTS ==== #

DEFAULT_CACHE_MAX_ENTRIES: int = 5000
"""Default maximum number of cached resolutions."""

DEFAULT_CACHE_TTL_SECONDS: int = 60 * 60
"""Default lifetime of a cached resolution (absolute, from insertion)."""




# ==== HTTP CLIENT DEFAULTS ==== #

DEFAULT_HTTPX_TIMEOUT_SECONDS: int = 20
"""Default per-request timeout for redirect-follow and remote calls."""

REMOTE_USER_AGENT: str = "link-resolver/1.0"
REMOTE_ACCEPT: str = "application/json, text/plain, */*"




# ==== BROWSER DEFAULTS ==== #

DEFAULT_PLAYWRIGHT_MAX_CONCURRENCY: int = 2
"""Default number of simultaneous render sessions."""

DEFAULT_PLAYWRIGHT_SETTLE_MS: int = 1500
"""Delay after navigation that lets client-side redirects run."""

DEFAULT_PLAYWRIGHT_NAV_TIMEOUT_MS: int = 20_000
"""Navigation timeout for a single render session."""

RENDER_USER_AGENT: str = "Mozilla/5.0 (compatible; link-resolver/1.0)"




# ==== DIAGNOSTIC BUDGETS ==== #

REDIRECT_RAW_LIMIT: int = 2000
"""Characters of response body kept on redirect-follow results."""

REMOTE_RAW_LIMIT: int = 3000
"""Characters of response body kept on remote resolver results."""

RENDER_RAW_LIMIT: int = 3000
"""Characters of rendered page content kept on render results."""




# ==== FIXED MESSAGES ==== #

MISSING_LINK_ERROR: str = "missing link"
EXHAUSTED_ERROR: str = "Link not supported or API is down"

DEFAULT_RESULT_FIELD: str = "bypassed"
"""Hint path used by the candidate extractor when none is supplied."""
