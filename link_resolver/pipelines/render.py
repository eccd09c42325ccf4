"""
Browser-based render strategy using Playwright.

This module implements the fallback of last resort:
- A concurrency gate bounding simultaneous render sessions
- A lazily launched, process-wide browser engine shared across calls
- Isolated context/page per call, closed on every exit path
- Resource blocking to reduce bandwidth and improve performance
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from functools import partial
from typing import Protocol

from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    Request,
    Route,
    async_playwright,
)
from playwright.async_api import Error as PlaywrightError

from link_resolver.config.constants import RENDER_RAW_LIMIT, RENDER_USER_AGENT
from link_resolver.core.errors import EngineLaunchError
from link_resolver.core.gate import RenderGate
from link_resolver.core.models import (
    RenderOutcome,
    ResolutionResult,
    ResolverConfig,
    describe_exception,
    failure,
    truncate,
)
from link_resolver.utils.logging import get_logger, safe_url

logger = get_logger(__name__)

BLOCKED_EXTENSIONS: tuple[str, ...] = (
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".svg",
    ".woff",
    ".woff2",
    ".mp4",
    ".webm",
)
"""Heavy static assets aborted when resource blocking is on."""

EMPTY_PAGE_URLS: frozenset[str] = frozenset({"", "about:blank"})
"""Final URLs meaning nothing was loaded."""




# ==== COLLABORATOR PROTOCOLS ==== #

class RenderSession(Protocol):
    """One isolated browsing context with a single page."""

    async def visit(self, link: str, timeout_ms: int, settle_ms: int) -> RenderOutcome: ...

    async def close(self) -> None: ...


class RenderEngine(Protocol):
    """A launched browser able to open isolated sessions."""

    async def new_session(self) -> RenderSession: ...

    async def close(self) -> None: ...


EngineLauncher = Callable[[], Awaitable[RenderEngine]]




# ==== PLAYWRIGHT ADAPTER ==== #

async def _block_heavy_assets(route: Route, request: Request) -> None:
    """Abort requests for heavy static assets; let everything else through."""
    if request.url.lower().split("?", 1)[0].endswith(BLOCKED_EXTENSIONS):
        await route.abort()
        return
    await route.continue_()


class PlaywrightSession:
    """Browser context + page pair owned by one render call."""

    def __init__(self, context: BrowserContext, page: Page) -> None:
        self._context = context
        self._page = page

    async def visit(self, link: str, timeout_ms: int, settle_ms: int) -> RenderOutcome:
        """
        Navigate to ``link``, let the page settle, and read it back.

        Navigation errors are tolerated: the page may have partially
        loaded or already redirected by the time the error fires.
        """
        try:
            await self._page.goto(link, wait_until="domcontentloaded", timeout=timeout_ms)
        except PlaywrightError as exc:
            logger.debug(
                "Navigation error for %s tolerated (%s)", safe_url(link), type(exc).__name__
            )

        await self._page.wait_for_timeout(settle_ms)
        final_url = self._page.url

        try:
            content = await self._page.content()
        except PlaywrightError:
            content = ""

        return RenderOutcome(final_url=final_url, content=content)

    async def close(self) -> None:
        try:
            await self._page.close()
        finally:
            await self._context.close()


class PlaywrightEngine:
    """Headless Chromium launched once and shared by all render calls."""

    def __init__(
        self,
        playwright: Playwright,
        browser: Browser,
        block_resources: bool = True,
    ) -> None:
        self._playwright = playwright
        self._browser = browser
        self._block_resources = block_resources

    @classmethod
    async def launch(cls, config: ResolverConfig) -> PlaywrightEngine:
        """
        Start Playwright and launch Chromium.

        Raises:
            EngineLaunchError: If the driver or browser fails to start
        """
        try:
            playwright = await async_playwright().start()
        except Exception as exc:
            raise EngineLaunchError(describe_exception(exc)) from exc

        try:
            browser = await playwright.chromium.launch(
                headless=config.playwright_headless,
                args=["--no-sandbox"],
            )
        except Exception as exc:
            await playwright.stop()
            raise EngineLaunchError(describe_exception(exc)) from exc

        return cls(playwright, browser, block_resources=config.playwright_block_resources)

    async def new_session(self) -> PlaywrightSession:
        context = await self._browser.new_context(user_agent=RENDER_USER_AGENT)
        try:
            if self._block_resources:
                await context.route("**/*", _block_heavy_assets)
            page = await context.new_page()
        except Exception:
            await context.close()
            raise
        return PlaywrightSession(context, page)

    async def close(self) -> None:
        try:
            await self._browser.close()
        finally:
            await self._playwright.stop()




# ==== SHARED ENGINE HANDLE ==== #

class SharedEngine:
    """
    Lazily launched, lease-counted handle on the process-wide engine.

    The engine is launched on first lease under a lock, so concurrent
    first callers launch it once. A failed launch leaves no engine
    behind and the next lease retries. ``aclose()`` tears the engine
    down at process shutdown.

    Attributes:
        _launcher: Coroutine factory producing a RenderEngine
        _engine: Launched engine, or None
        _lock: Serializes launch and shutdown
        _leases: Number of callers currently using the engine
        _launches: Number of successful launches
    """

    def __init__(self, launcher: EngineLauncher) -> None:
        self._launcher = launcher
        self._engine: RenderEngine | None = None
        self._lock = asyncio.Lock()
        self._leases = 0
        self._launches = 0

    async def _ensure(self) -> RenderEngine:
        async with self._lock:
            if self._engine is None:
                self._engine = await self._launcher()
                self._launches += 1
                logger.info("Render engine launched")
            return self._engine

    @asynccontextmanager
    async def lease(self) -> AsyncIterator[RenderEngine]:
        """Yield the shared engine, launching it if needed."""
        engine = await self._ensure()
        self._leases += 1
        try:
            yield engine
        finally:
            self._leases -= 1

    async def aclose(self) -> None:
        async with self._lock:
            engine, self._engine = self._engine, None
            if engine is None:
                return
            if self._leases:
                logger.warning("Closing render engine with %s active lease(s)", self._leases)
            await engine.close()
            logger.info("Render engine closed")

    @property
    def launched(self) -> bool:
        return self._engine is not None

    @property
    def launches(self) -> int:
        return self._launches

    @property
    def leases(self) -> int:
        return self._leases




# ==== RENDER STRATEGY ==== #

class RenderStrategy:
    """
    Resolve links by rendering them in a headless browser.

    Every call holds a gate permit for its whole duration, including
    engine launch, so at most ``playwright_max_concurrency`` sessions are
    ever active.
    """

    def __init__(
        self,
        config: ResolverConfig,
        launcher: EngineLauncher | None = None,
        gate: RenderGate | None = None,
    ) -> None:
        self._config = config
        self._gate = gate or RenderGate(config.playwright_max_concurrency)
        self._engine = SharedEngine(launcher or partial(PlaywrightEngine.launch, config))

    @property
    def gate(self) -> RenderGate:
        return self._gate

    @property
    def engine(self) -> SharedEngine:
        return self._engine

    async def render(self, link: str) -> ResolutionResult:
        """
        Render ``link`` and report the page's final URL.

        Returns:
            ``{bypassed: final_url, method: "render", raw: content}``, or an
            unresolved result with ``error`` when any step faults
        """
        async with self._gate.slot():
            logger.info("Render fallback for %s", safe_url(link))
            try:
                async with self._engine.lease() as engine:
                    session = await engine.new_session()
                    try:
                        outcome = await session.visit(
                            link,
                            self._config.playwright_nav_timeout_ms,
                            self._config.playwright_settle_ms,
                        )
                    finally:
                        await session.close()
            except Exception as exc:
                logger.warning(
                    "Render failed for %s (%s)", safe_url(link), type(exc).__name__
                )
                return failure(error=describe_exception(exc))

        if outcome.final_url in EMPTY_PAGE_URLS:
            return failure(
                error="render produced no page",
                raw=truncate(outcome.content, RENDER_RAW_LIMIT),
            )

        return ResolutionResult(
            bypassed=outcome.final_url,
            method="render",
            raw=truncate(outcome.content, RENDER_RAW_LIMIT),
            source="render",
        )

    async def aclose(self) -> None:
        await self._engine.aclose()
