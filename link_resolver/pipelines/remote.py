"""
Remote resolver strategy.

This module talks to external resolution services. Every service is
addressed with the same discipline:

1. An address containing ``{link}`` or ``{url}`` gets the percent-encoded
   link substituted in place, then a GET.
2. An address that already names the parameter (``?url=``) gets the
   encoded link appended as that parameter's value.
3. Otherwise the parameter is appended and a GET issued; an empty answer
   is retried once as a form-encoded POST carrying the same parameter.
"""

from __future__ import annotations

import re
from typing import Any
from urllib.parse import quote

import httpx
import msgspec

from link_resolver.config.constants import (
    DEFAULT_RESULT_FIELD,
    REMOTE_ACCEPT,
    REMOTE_RAW_LIMIT,
    REMOTE_USER_AGENT,
)
from link_resolver.core.models import (
    RemoteResolverConfig,
    RemoteResponse,
    ResolutionResult,
    describe_exception,
    failure,
    truncate,
)
from link_resolver.utils.extract import extract_candidate
from link_resolver.utils.logging import get_logger, safe_url

logger = get_logger(__name__)

PLACEHOLDERS: tuple[str, ...] = ("{link}", "{url}")




# ==== ADDRESSING HELPERS ==== #

def encode_link(link: str) -> str:
    """Percent-encode a link for use as a single URL component."""
    return quote(link, safe="-_.!~*'()")


def _with_param(address: str, param: str, encoded: str) -> str:
    sep = "&" if "?" in address else "?"
    return f"{address}{sep}{param}={encoded}"


def _parse_body(text: str) -> Any:
    try:
        return msgspec.json.decode(text)
    except msgspec.DecodeError:
        return None


def has_payload(response: RemoteResponse) -> bool:
    """True when the response carries a non-empty structure or any text."""
    parsed = response.parsed
    if isinstance(parsed, (dict, list)) and parsed:
        return True
    return bool(response.text and response.text.strip())




# ==== REMOTE CALL ==== #

async def _send(
    client: httpx.AsyncClient,
    resolver: RemoteResolverConfig,
    url: str,
    method: str = "GET",
    form: dict[str, str] | None = None,
) -> RemoteResponse:
    headers = {
        "User-Agent": REMOTE_USER_AGENT,
        "Accept": REMOTE_ACCEPT,
        **resolver.headers,
    }
    resp = await client.request(method, url, headers=headers, data=form)

    try:
        text = resp.text
    except (UnicodeDecodeError, LookupError):
        text = resp.content.decode("utf-8", errors="ignore")

    return RemoteResponse(
        status=resp.status_code,
        text=text,
        parsed=_parse_body(text),
        used_url=url,
        http_method=method,
    )


async def call_remote(
    client: httpx.AsyncClient,
    resolver: RemoteResolverConfig,
    link: str,
) -> RemoteResponse:
    """
    Call one remote resolver for ``link``.

    Args:
        client: Shared async HTTP client
        resolver: Service definition
        link: Link to resolve

    Returns:
        RemoteResponse with status, raw text and best-effort parsed body

    Raises:
        httpx.HTTPError: On network faults; callers convert these to
            "no candidate"
    """
    address = resolver.address
    param = resolver.param
    encoded = encode_link(link)

    # --► TEMPLATE SUBSTITUTION
    if any(token in address for token in PLACEHOLDERS):
        url = address
        for token in PLACEHOLDERS:
            url = url.replace(token, encoded)
        return await _send(client, resolver, url)

    # --► PARAMETER ALREADY PRESENT
    if re.search(rf"[?&]{re.escape(param)}=", address, re.IGNORECASE):
        if address.endswith("="):
            return await _send(client, resolver, address + encoded)
        return await _send(client, resolver, _with_param(address, param, encoded))

    # --► APPEND PARAMETER, POST FALLBACK
    got = await _send(client, resolver, _with_param(address, param, encoded))
    if has_payload(got):
        return got

    logger.debug("Empty GET answer from %s; retrying as form POST", resolver.name)
    return await _send(client, resolver, address, method="POST", form={param: link})




# ==== STRATEGY ==== #

async def resolve_remote(
    client: httpx.AsyncClient,
    resolver: RemoteResolverConfig,
    link: str,
    hint_path: str | None = None,
) -> ResolutionResult:
    """
    Resolve ``link`` through one remote resolver.

    Args:
        client: Shared async HTTP client
        resolver: Service definition
        link: Link to resolve
        hint_path: Caller's result field hint; falls back to the
            resolver's ``result_field``, then ``bypassed``

    Returns:
        Result tagged ``remote:<name>`` when a candidate was found,
        otherwise an unresolved result (with ``error`` on network faults)
    """
    try:
        response = await call_remote(client, resolver, link)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.info(
            "Remote resolver %s failed for %s (%s)",
            resolver.name,
            safe_url(link),
            type(exc).__name__,
        )
        return failure(error=describe_exception(exc))
    except Exception as exc:
        # Proxy/protocol errors surface outside the httpx hierarchy
        logger.warning(
            "Remote resolver %s error for %s (%s)",
            resolver.name,
            safe_url(link),
            type(exc).__name__,
        )
        return failure(error=describe_exception(exc))

    hint = hint_path or resolver.result_field or DEFAULT_RESULT_FIELD
    candidate = extract_candidate(response.parsed, response.text, hint)
    raw = truncate(response.text, REMOTE_RAW_LIMIT)

    if not candidate:
        logger.debug(
            "Remote resolver %s gave no candidate for %s (status=%s)",
            resolver.name,
            safe_url(link),
            response.status,
        )
        return failure(raw=raw)

    return ResolutionResult(
        bypassed=candidate,
        method=f"remote:{resolver.name}",
        raw=raw,
        source="remote",
    )
