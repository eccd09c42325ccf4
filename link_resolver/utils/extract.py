"""
Candidate extraction from loosely structured payloads.

Remote services and redirect targets answer in many shapes: a bare
string, ``{"bypassed": ...}``, ``{"data": {"url": ...}}``, or free text
with a link somewhere inside. The helpers here pull the most plausible
destination URL out of such payloads without ever raising.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any

import msgspec

from link_resolver.config.constants import DEFAULT_RESULT_FIELD

URL_PATTERN = re.compile(r"https?://[^\s'\"]{6,}")
"""Scheme, ``://`` and at least six non-space, non-quote characters."""

CANDIDATE_FIELDS: tuple[str, ...] = (
    "bypassed",
    "result",
    "url",
    "data",
    "target",
    "redirect",
)
"""Top-level fields scanned, in priority order, when no hint matches."""




def find_url(text: Any) -> str | None:
    """Return the first URL-like substring of ``text``, or None."""
    if not isinstance(text, str):
        return None
    match = URL_PATTERN.search(text)
    return match.group(0) if match else None


def looks_like_url(value: Any) -> bool:
    """True when ``value`` is a string starting with an http(s) URL."""
    return isinstance(value, str) and URL_PATTERN.match(value.strip()) is not None




def _is_structure(value: Any) -> bool:
    return isinstance(value, Mapping) or (
        isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))
    )


def _follow_path(parsed: Any, path: str) -> Any:
    """Walk a dot-separated path through mappings and sequences."""
    current = parsed
    for part in path.split("."):
        if isinstance(current, Mapping):
            if part not in current:
                return None
            current = current[part]
        elif _is_structure(current) and part.isascii() and part.isdigit():
            try:
                index = int(part)
            except ValueError:
                # Past the int() digit limit
                return None
            if index >= len(current):
                return None
            current = current[index]
        else:
            return None
    return current


def _serialize(parsed: Any) -> str | None:
    try:
        return msgspec.json.encode(parsed).decode("utf-8", errors="ignore")
    except (msgspec.EncodeError, TypeError, ValueError):
        return None




# ==== CANDIDATE EXTRACTOR ==== #

def extract_candidate(
    parsed: Any,
    text: str | None,
    hint_path: str | None = DEFAULT_RESULT_FIELD,
) -> str | None:
    """
    Return the most plausible destination URL in a payload.

    Sources are consulted in this order:
    1. ``hint_path`` traversed through ``parsed`` (non-empty string only)
    2. ``CANDIDATE_FIELDS`` at the top level of ``parsed``; a string value
       wins, or the ``url`` field of a nested mapping
    3. The first URL-like substring of ``parsed`` serialized as JSON
    4. The first URL-like substring of ``text``

    Args:
        parsed: Decoded payload (mapping, sequence, scalar or None)
        text: Raw response text
        hint_path: Dot-separated path of the preferred field

    Returns:
        Candidate URL, or None if nothing surfaces

    Example:
        extract_candidate({"bypassed": "http://a", "url": "http://b"}, None)
        -> "http://a"
    """
    if _is_structure(parsed):
        if hint_path:
            hinted = _follow_path(parsed, hint_path)
            if isinstance(hinted, str) and hinted.strip():
                return hinted

        if isinstance(parsed, Mapping):
            for field in CANDIDATE_FIELDS:
                if field not in parsed:
                    continue
                value = parsed[field]
                if isinstance(value, str) and value.strip():
                    return value
                if isinstance(value, Mapping):
                    nested = value.get("url")
                    if isinstance(nested, str) and nested.strip():
                        return nested

        found = find_url(_serialize(parsed))
        if found:
            return found

    return find_url(text)
