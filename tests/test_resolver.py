"""End-to-end tests for the resolution orchestrator."""

import asyncio
import re

import httpx
import pytest
from pytest_httpx import HTTPXMock

from link_resolver.config.constants import EXHAUSTED_ERROR, MISSING_LINK_ERROR
from link_resolver.core.errors import EngineLaunchError
from link_resolver.core.models import (
    RemoteResolverConfig,
    RenderOutcome,
    ResolveOptions,
    ResolverConfig,
)
from link_resolver.pipelines.orchestrator import Resolver
from link_resolver.pipelines.patterns import DEFAULT_RULES, PatternRule
from link_resolver.pipelines.render import RenderStrategy


class _FakeSession:
    def __init__(self, engine: "_FakeEngine") -> None:
        self._engine = engine

    async def visit(self, link: str, timeout_ms: int, settle_ms: int) -> RenderOutcome:
        self._engine.visits.append(link)
        await asyncio.sleep(self._engine.delay)
        return RenderOutcome(final_url=f"{link}/rendered", content="<html></html>")

    async def close(self) -> None:
        self._engine.active -= 1


class _FakeEngine:
    def __init__(self, delay: float = 0.0) -> None:
        self.delay = delay
        self.active = 0
        self.peak = 0
        self.visits: list[str] = []
        self.launches = 0

    async def launch(self) -> "_FakeEngine":
        self.launches += 1
        return self

    async def new_session(self) -> _FakeSession:
        self.active += 1
        self.peak = max(self.peak, self.active)
        return _FakeSession(self)

    async def close(self) -> None:
        pass


async def _broken_launcher() -> _FakeEngine:
    raise EngineLaunchError("no browser")


def _resolver(
    engine: _FakeEngine | None = None,
    *,
    broken_engine: bool = False,
    **config_fields: object,
) -> Resolver:
    config = ResolverConfig(playwright_settle_ms=0, **config_fields)  # type: ignore[arg-type]
    launcher = _broken_launcher if broken_engine else (engine or _FakeEngine()).launch
    return Resolver(
        config,
        http_client=httpx.AsyncClient(follow_redirects=True),
        render=RenderStrategy(config, launcher=launcher),
    )


def _plain_page(httpx_mock: HTTPXMock, url: str) -> None:
    httpx_mock.add_response(url=url, text="<html>nothing to see</html>")


# ==== STRATEGY CHAIN ==== #

@pytest.mark.asyncio
async def test_pattern_rule_needs_no_network(httpx_mock: HTTPXMock) -> None:
    """Pattern rules resolve without any request or browser launch."""
    engine = _FakeEngine()
    async with _resolver(engine) as resolver:
        result = await resolver.resolve("https://pastebin.com/AbCd1234")

    assert result.bypassed == "https://pastebin.com/raw/AbCd1234"
    assert result.method == "pastebin-raw"
    assert result.source == "extractor"
    assert not result.from_cache
    assert httpx_mock.get_requests() == []
    assert engine.launches == 0


@pytest.mark.asyncio
async def test_redirect_resolution(httpx_mock: HTTPXMock) -> None:
    """A redirecting short link resolves via redirect-follow."""
    httpx_mock.add_response(
        url="https://short.example/abc",
        status_code=301,
        headers={"Location": "https://dest.example/final"},
    )
    httpx_mock.add_response(url="https://dest.example/final", text="hello")
    engine = _FakeEngine()

    async with _resolver(engine) as resolver:
        result = await resolver.resolve("https://short.example/abc")

    assert result.bypassed == "https://dest.example/final"
    assert result.method == "redirect"
    assert engine.launches == 0


@pytest.mark.asyncio
async def test_render_is_last_resort(httpx_mock: HTTPXMock) -> None:
    """The browser is used only when cheaper strategies find nothing."""
    _plain_page(httpx_mock, "https://js.example/gate")
    engine = _FakeEngine()

    async with _resolver(engine) as resolver:
        result = await resolver.resolve("https://js.example/gate")

    assert result.bypassed == "https://js.example/gate/rendered"
    assert result.method == "render"
    assert engine.visits == ["https://js.example/gate"]


@pytest.mark.asyncio
async def test_exhausted_chain_is_not_cached(httpx_mock: HTTPXMock) -> None:
    """A failed resolution reports exhaustion and retries on the next call."""
    _plain_page(httpx_mock, "https://dead.example/x")
    _plain_page(httpx_mock, "https://dead.example/x")

    async with _resolver(broken_engine=True) as resolver:
        first = await resolver.resolve("https://dead.example/x")
        assert first.bypassed is None
        assert first.error == EXHAUSTED_ERROR
        assert "https://dead.example/x" not in resolver.cache

        second = await resolver.resolve("https://dead.example/x")
        assert second.error == EXHAUSTED_ERROR
        assert not second.from_cache

    assert len(httpx_mock.get_requests()) == 2


@pytest.mark.asyncio
async def test_missing_link() -> None:
    """Empty input is rejected without running any strategy."""
    async with _resolver() as resolver:
        assert (await resolver.resolve("")).error == MISSING_LINK_ERROR
        assert (await resolver.resolve(None)).error == MISSING_LINK_ERROR


# ==== CACHE ==== #

@pytest.mark.asyncio
async def test_second_call_served_from_cache(httpx_mock: HTTPXMock) -> None:
    """A cached success is returned with fromCache set and no new requests."""
    httpx_mock.add_response(
        url="https://short.example/c",
        status_code=302,
        headers={"Location": "https://dest.example/c"},
    )
    httpx_mock.add_response(url="https://dest.example/c", text="ok")

    async with _resolver() as resolver:
        first = await resolver.resolve("https://short.example/c")
        second = await resolver.resolve("https://short.example/c")

    assert not first.from_cache
    assert second.from_cache
    assert second.bypassed == first.bypassed
    assert second.method == first.method
    assert len(httpx_mock.get_requests()) == 2


# ==== COALESCING ==== #

@pytest.mark.asyncio
async def test_concurrent_calls_share_one_resolution(httpx_mock: HTTPXMock) -> None:
    """Simultaneous requests for one link run the chain once."""
    _plain_page(httpx_mock, "https://slow.example/a")
    engine = _FakeEngine(delay=0.05)

    async with _resolver(engine) as resolver:
        first, second = await asyncio.gather(
            resolver.resolve("https://slow.example/a"),
            resolver.resolve("https://slow.example/a"),
        )
        assert len(resolver.inflight) == 0

    assert first == second
    assert first.bypassed == "https://slow.example/a/rendered"
    assert engine.visits == ["https://slow.example/a"]
    assert len(httpx_mock.get_requests()) == 1


@pytest.mark.asyncio
async def test_failing_rule_clears_inflight_entry() -> None:
    """An unexpected fault reaches every waiter and leaves no entry behind."""

    def explode(match: re.Match[str]) -> str:
        raise RuntimeError("bad rule")

    rule = PatternRule(
        name="broken",
        host="broken.example",
        pattern=re.compile(r"broken\.example/(\w+)"),
        build=explode,
    )
    config = ResolverConfig()
    resolver = Resolver(
        config,
        http_client=httpx.AsyncClient(),
        render=RenderStrategy(config, launcher=_FakeEngine().launch),
        rules=(*DEFAULT_RULES, rule),
    )

    async with resolver:
        outcomes = await asyncio.gather(
            resolver.resolve("https://broken.example/abc"),
            resolver.resolve("https://broken.example/abc"),
            return_exceptions=True,
        )
        assert all(isinstance(o, RuntimeError) for o in outcomes)
        assert len(resolver.inflight) == 0
        assert not resolver.inflight.pending("https://broken.example/abc")


@pytest.mark.asyncio
async def test_cancelled_caller_does_not_cancel_others(httpx_mock: HTTPXMock) -> None:
    """Cancelling one waiter leaves the shared resolution running."""
    _plain_page(httpx_mock, "https://slow.example/b")
    engine = _FakeEngine(delay=0.05)

    async with _resolver(engine) as resolver:
        doomed = asyncio.create_task(resolver.resolve("https://slow.example/b"))
        survivor = asyncio.create_task(resolver.resolve("https://slow.example/b"))
        await asyncio.sleep(0.01)

        doomed.cancel()
        result = await survivor

        with pytest.raises(asyncio.CancelledError):
            await doomed

        assert result.bypassed == "https://slow.example/b/rendered"
        assert "https://slow.example/b" in resolver.cache


# ==== REMOTE RESOLVERS ==== #

_REMOTES = [
    RemoteResolverConfig(name="first", address="https://one.example/api"),
    RemoteResolverConfig(name="second", address="https://two.example/api"),
]
_ENCODED = "https%3A%2F%2Fad.example%2Fz"


@pytest.mark.asyncio
async def test_remote_resolvers_tried_in_order(httpx_mock: HTTPXMock) -> None:
    """Remote resolvers run after redirect-follow, in declared order."""
    _plain_page(httpx_mock, "https://ad.example/z")
    httpx_mock.add_response(url=f"https://one.example/api?url={_ENCODED}", json={"error": "busy"})
    httpx_mock.add_response(
        url=f"https://two.example/api?url={_ENCODED}",
        json={"bypassed": "https://dest.example/z"},
    )

    async with _resolver(enable_remote_resolvers=True, remote_resolvers=_REMOTES) as resolver:
        result = await resolver.resolve("https://ad.example/z")

    assert result.bypassed == "https://dest.example/z"
    assert result.method == "remote:second"
    hosts = [r.url.host for r in httpx_mock.get_requests()]
    assert hosts == ["ad.example", "one.example", "two.example"]


@pytest.mark.asyncio
async def test_prefer_external_runs_remotes_first(httpx_mock: HTTPXMock) -> None:
    """prefer_external moves remote resolvers ahead of redirect-follow."""
    httpx_mock.add_response(
        url=f"https://one.example/api?url={_ENCODED}",
        json={"bypassed": "https://dest.example/z"},
    )

    async with _resolver(enable_remote_resolvers=True, remote_resolvers=_REMOTES) as resolver:
        result = await resolver.resolve(
            "https://ad.example/z", ResolveOptions(prefer_external=True)
        )

    assert result.method == "remote:first"
    assert [r.url.host for r in httpx_mock.get_requests()] == ["one.example"]


@pytest.mark.asyncio
async def test_remotes_skipped_when_disabled(httpx_mock: HTTPXMock) -> None:
    """Disabled remote resolvers are never called, even when preferred."""
    _plain_page(httpx_mock, "https://ad.example/z")
    engine = _FakeEngine()

    async with _resolver(engine, remote_resolvers=_REMOTES) as resolver:
        result = await resolver.resolve(
            "https://ad.example/z", ResolveOptions(prefer_external=True)
        )

    assert result.method == "render"
    assert [r.url.host for r in httpx_mock.get_requests()] == ["ad.example"]


# ==== RENDER BOUND ==== #

@pytest.mark.asyncio
async def test_render_bound_holds_across_links(httpx_mock: HTTPXMock) -> None:
    """Distinct links share the render permit budget."""
    links = [f"https://js.example/{i}" for i in range(5)]
    for link in links:
        _plain_page(httpx_mock, link)
    engine = _FakeEngine(delay=0.02)

    async with _resolver(engine, playwright_max_concurrency=1) as resolver:
        results = await asyncio.gather(*(resolver.resolve(link) for link in links))

    assert all(r.method == "render" for r in results)
    assert engine.peak == 1
    assert engine.launches == 1


@pytest.mark.asyncio
async def test_odd_result_hint_does_not_abort_chain(httpx_mock: HTTPXMock) -> None:
    """A hint that cannot index a list falls back to the other sources."""
    _plain_page(httpx_mock, "https://ad.example/z")
    httpx_mock.add_response(
        url=f"https://one.example/api?url={_ENCODED}",
        json=["https://dest.example/z"],
    )

    async with _resolver(
        enable_remote_resolvers=True, remote_resolvers=_REMOTES[:1]
    ) as resolver:
        result = await resolver.resolve(
            "https://ad.example/z", ResolveOptions(result_field_hint="²")
        )

    assert result.bypassed == "https://dest.example/z"
    assert result.method == "remote:first"
