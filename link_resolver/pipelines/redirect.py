"""Redirect-follow strategy using httpx."""

from __future__ import annotations

import random
from time import perf_counter

import httpx
import msgspec

from link_resolver.config.constants import REDIRECT_RAW_LIMIT
from link_resolver.core.models import (
    ResolutionResult,
    ResolverConfig,
    describe_exception,
    failure,
    truncate,
)
from link_resolver.utils.extract import looks_like_url
from link_resolver.utils.logging import get_logger, safe_url

logger = get_logger(__name__)

USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
]

ACCEPT_LANGUAGES = ["en-US,en;q=0.9", "en-GB,en;q=0.9"]

TARGET_FIELDS: tuple[str, ...] = ("bypassed", "url", "target", "redirect", "result", "data")
"""JSON body fields checked, in order, when no redirect happened."""


def build_headers() -> dict[str, str]:
    """Build randomized headers."""
    return {
        "User-Agent": random.choice(USER_AGENTS),
        "Accept-Language": random.choice(ACCEPT_LANGUAGES),
    }


def make_http_client(config: ResolverConfig) -> httpx.AsyncClient:
    """Create httpx AsyncClient shared by redirect-follow and remote calls."""
    timeout = httpx.Timeout(config.httpx_timeout_seconds)
    return httpx.AsyncClient(
        http2=True,
        follow_redirects=True,
        timeout=timeout,
    )


def _read_text(resp: httpx.Response) -> str:
    try:
        return resp.text
    except (UnicodeDecodeError, LookupError):
        return resp.content.decode("utf-8", errors="ignore")


def _json_target(body: str) -> str | None:
    try:
        parsed = msgspec.json.decode(body)
    except msgspec.DecodeError:
        return None
    if not isinstance(parsed, dict):
        return None
    for field in TARGET_FIELDS:
        value = parsed.get(field)
        if looks_like_url(value):
            return value.strip()
    return None


async def follow_redirects(link: str, client: httpx.AsyncClient) -> ResolutionResult:
    """
    Resolve ``link`` by following its HTTP redirect chain.

    A final URL that differs from the link after at least one redirect
    is the candidate. Otherwise the body is read as JSON and scanned for
    a URL-valued target field. Network faults never escape: they come
    back as an unresolved result with ``error`` set.
    """
    start = perf_counter()
    try:
        resp = await client.get(link, headers=build_headers())
    except httpx.TimeoutException as exc:
        logger.info("Redirect-follow timed out for %s", safe_url(link))
        return failure(error=describe_exception(exc))
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.info(
            "Redirect-follow failed for %s (%s)", safe_url(link), type(exc).__name__
        )
        return failure(error=describe_exception(exc))
    except Exception as exc:
        # Proxy/protocol errors surface outside the httpx hierarchy
        logger.warning(
            "Redirect-follow error for %s (%s)", safe_url(link), type(exc).__name__
        )
        return failure(error=describe_exception(exc))

    elapsed_ms = int((perf_counter() - start) * 1000)
    body = _read_text(resp)
    final_url = str(resp.url)

    logger.debug(
        "Redirect-follow %s -> %s status=%s hops=%s latency_ms=%s",
        safe_url(link),
        safe_url(final_url),
        resp.status_code,
        len(resp.history),
        elapsed_ms,
    )

    if resp.history and final_url and final_url != link:
        return ResolutionResult(
            bypassed=final_url,
            method="redirect",
            raw=truncate(body, REDIRECT_RAW_LIMIT),
            source="redirect",
        )

    target = _json_target(body)
    if target:
        return ResolutionResult(
            bypassed=target,
            method="json-target",
            raw=truncate(body, REDIRECT_RAW_LIMIT),
            source="redirect",
        )

    return failure(raw=truncate(body, REDIRECT_RAW_LIMIT))
