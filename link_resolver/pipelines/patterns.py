"""
Pattern extractor strategy.

Host-keyed rules that compute a destination straight from the link,
with no network access. This is always the first strategy tried.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Literal
from urllib.parse import unquote

from yarl import URL

from link_resolver.core.models import ResolutionResult

HostMatch = Literal["exact", "suffix", "contains"]




# ==== HOST EXTRACTION ==== #

def hostname_of(link: str) -> str | None:
    """
    Lower-cased host of ``link``, tolerating a missing scheme.

    Example:
        hostname_of("https://PasteBin.com/x") -> "pastebin.com"
        hostname_of("rentry.co/abc") -> "rentry.co"
    """
    for candidate in (link, f"https://{link}"):
        try:
            host = URL(candidate).host
        except (ValueError, TypeError):
            continue
        if host:
            return host.lower()
    return None




# ==== RULE TABLE ==== #

@dataclass(frozen=True)
class PatternRule:
    """
    One host-specific rewrite.

    Attributes:
        name: Method tag reported on results
        host: Host (or host fragment) the rule applies to
        pattern: Regex searched in the full link
        build: Computes the destination from the regex match
        host_match: How ``host`` is compared against the link's host
    """

    name: str
    host: str
    pattern: re.Pattern[str]
    build: Callable[[re.Match[str]], str]
    host_match: HostMatch = "exact"

    def applies_to(self, host: str) -> bool:
        if self.host_match == "exact":
            return host == self.host
        if self.host_match == "suffix":
            return host == self.host or host.endswith(f".{self.host}")
        return self.host in host

    def apply(self, link: str) -> str | None:
        match = self.pattern.search(link)
        if match is None:
            return None
        return self.build(match) or None


DEFAULT_RULES: tuple[PatternRule, ...] = (
    PatternRule(
        name="pastebin-raw",
        host="pastebin.com",
        pattern=re.compile(r"pastebin\.com/([A-Za-z0-9]+)", re.IGNORECASE),
        build=lambda m: f"https://pastebin.com/raw/{m.group(1)}",
    ),
    PatternRule(
        name="rentry-raw",
        host="rentry.co",
        pattern=re.compile(r"rentry\.co/([A-Za-z0-9\-]+)", re.IGNORECASE),
        build=lambda m: f"https://rentry.co/{m.group(1)}/raw",
    ),
    PatternRule(
        name="param-URL",
        host="deltaios-executor.com",
        pattern=re.compile(r"[?&]URL=([^&]+)", re.IGNORECASE),
        build=lambda m: unquote(m.group(1)),
        host_match="contains",
    ),
)




# ==== STRATEGY ==== #

def extract_by_pattern(
    link: str,
    rules: Iterable[PatternRule] = DEFAULT_RULES,
) -> ResolutionResult | None:
    """
    Resolve ``link`` with the first applicable rule.

    Args:
        link: Link to resolve
        rules: Rule table, consulted in order

    Returns:
        Resolved result tagged with the rule name, or None if no rule
        matches
    """
    host = hostname_of(link)
    if not host:
        return None

    for rule in rules:
        if not rule.applies_to(host):
            continue
        target = rule.apply(link)
        if target:
            return ResolutionResult(bypassed=target, method=rule.name, source="extractor")

    return None
