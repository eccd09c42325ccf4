"""
Resolution orchestrator.

This module ties the pipeline together:
- Cache lookup (hits are returned with ``from_cache`` set)
- In-flight coalescing so one link runs at most one resolution
- Ordered strategy chain, cheapest first, stopping at the first success
- Write-through of successful results into the cache
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from functools import partial

import httpx
import msgspec

from link_resolver.config.constants import EXHAUSTED_ERROR, MISSING_LINK_ERROR
from link_resolver.core.cache import ResolutionCache
from link_resolver.core.inflight import InFlightRegistry
from link_resolver.core.models import (
    RemoteResolverConfig,
    ResolutionResult,
    ResolveOptions,
    ResolverConfig,
)
from link_resolver.pipelines.patterns import DEFAULT_RULES, PatternRule, extract_by_pattern
from link_resolver.pipelines.redirect import follow_redirects, make_http_client
from link_resolver.pipelines.remote import resolve_remote
from link_resolver.pipelines.render import RenderStrategy
from link_resolver.utils.logging import get_logger, safe_url

logger = get_logger(__name__)

Stage = Callable[[str, ResolveOptions], Awaitable[ResolutionResult | None]]




# ==== RESOLVER ==== #

class Resolver:
    """
    Multi-strategy link resolver.

    Strategies run in fixed cost order: pattern rules, redirect-follow,
    remote resolvers (when enabled, in declared order), then rendering.
    The first result with a destination wins and is cached; failures are
    never cached so the next request retries the whole chain.

    Use as an async context manager (or call ``aclose()``) so the shared
    HTTP client and browser engine are released at shutdown.

    Attributes:
        _config: Runtime configuration
        _cache: Successful resolutions by raw link
        _inflight: Outstanding resolutions by raw link
        _client: HTTP client for redirect-follow and remote calls
        _render: Render strategy (owns the concurrency gate and engine)
        _rules: Pattern rule table
    """

    def __init__(
        self,
        config: ResolverConfig | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        cache: ResolutionCache | None = None,
        render: RenderStrategy | None = None,
        rules: Iterable[PatternRule] = DEFAULT_RULES,
    ) -> None:
        self._config = config or ResolverConfig()
        self._cache = cache or ResolutionCache(
            self._config.cache_max_entries, self._config.cache_ttl_seconds
        )
        self._inflight: InFlightRegistry[ResolutionResult] = InFlightRegistry()
        self._owns_client = http_client is None
        self._client = http_client or make_http_client(self._config)
        self._render = render or RenderStrategy(self._config)
        self._rules = tuple(rules)




    # --► PUBLIC API

    async def resolve(
        self,
        link: str | None,
        options: ResolveOptions | None = None,
    ) -> ResolutionResult:
        """
        Resolve ``link`` to its final destination.

        Args:
            link: Raw link; used verbatim as cache and de-duplication key
            options: Per-call options; ignored when attaching to an
                in-flight resolution of the same link

        Returns:
            ResolutionResult; failures are reported in ``error``, never
            raised
        """
        if not link:
            return ResolutionResult(error=MISSING_LINK_ERROR)

        cached = self._cache.get(link)
        if cached is not None:
            logger.debug("Cache hit for %s", safe_url(link))
            return msgspec.structs.replace(cached, from_cache=True)

        opts = options or ResolveOptions()
        return await self._inflight.run(link, partial(self._run_chain, link, opts))

    async def aclose(self) -> None:
        """Release the browser engine and, if owned, the HTTP client."""
        try:
            await self._render.aclose()
        finally:
            if self._owns_client:
                await self._client.aclose()

    async def __aenter__(self) -> Resolver:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()




    # --► INSPECTION

    @property
    def config(self) -> ResolverConfig:
        return self._config

    @property
    def cache(self) -> ResolutionCache:
        return self._cache

    @property
    def inflight(self) -> InFlightRegistry[ResolutionResult]:
        return self._inflight

    @property
    def render_strategy(self) -> RenderStrategy:
        return self._render




    # --► STRATEGY CHAIN

    def _stages(self, options: ResolveOptions) -> list[tuple[str, Stage]]:
        remote: list[tuple[str, Stage]] = []
        if self._config.enable_remote_resolvers:
            for resolver in self._config.remote_resolvers:
                remote.append((f"remote:{resolver.name}", partial(self._remote, resolver)))

        stages: list[tuple[str, Stage]] = [("pattern", self._pattern)]
        if options.prefer_external:
            stages += remote
            stages.append(("redirect", self._redirect))
        else:
            stages.append(("redirect", self._redirect))
            stages += remote
        stages.append(("render", self._render_stage))
        return stages

    async def _run_chain(self, link: str, options: ResolveOptions) -> ResolutionResult:
        for name, stage in self._stages(options):
            result = await stage(link, options)

            if result is not None and result.is_resolved:
                self._cache.put(link, result)
                logger.info(
                    "Resolved %s via %s (%s)", safe_url(link), result.method, name
                )
                return result

            if result is not None and result.error:
                logger.debug("Stage %s gave no candidate: %s", name, result.error)

        logger.info("No strategy resolved %s", safe_url(link))
        return ResolutionResult(error=EXHAUSTED_ERROR)

    async def _pattern(self, link: str, options: ResolveOptions) -> ResolutionResult | None:
        return extract_by_pattern(link, self._rules)

    async def _redirect(self, link: str, options: ResolveOptions) -> ResolutionResult:
        return await follow_redirects(link, self._client)

    async def _remote(
        self, resolver: RemoteResolverConfig, link: str, options: ResolveOptions
    ) -> ResolutionResult:
        return await resolve_remote(
            self._client, resolver, link, hint_path=options.result_field_hint
        )

    async def _render_stage(self, link: str, options: ResolveOptions) -> ResolutionResult:
        return await self._render.render(link)
