"""Tests for core models."""

import msgspec

from link_resolver.core.models import (
    ResolutionResult,
    ResolverConfig,
    describe_exception,
    failure,
    truncate,
)


def test_result_wire_format_uses_camel_case() -> None:
    """Results serialize with fromCache and keep null fields."""
    result = ResolutionResult(
        bypassed="https://dest.example/a",
        method="redirect",
        source="redirect",
        from_cache=True,
    )
    wire = msgspec.to_builtins(result)

    assert wire["fromCache"] is True
    assert wire["bypassed"] == "https://dest.example/a"
    assert "from_cache" not in wire


def test_failure_encodes_null_destination() -> None:
    """An unresolved result still carries ``bypassed: null``."""
    wire = msgspec.json.decode(msgspec.json.encode(failure(error="boom")))
    assert wire["bypassed"] is None
    assert wire["error"] == "boom"
    assert wire["fromCache"] is False


def test_is_resolved() -> None:
    assert ResolutionResult(bypassed="https://dest.example/a").is_resolved
    assert not ResolutionResult(bypassed="").is_resolved
    assert not failure(raw="page").is_resolved


def test_truncate() -> None:
    assert truncate(None, 5) is None
    assert truncate("abcdefgh", 5) == "abcde"
    assert truncate("abc", 5) == "abc"


def test_describe_exception() -> None:
    assert describe_exception(TimeoutError("took too long")) == "TimeoutError: took too long"
    assert describe_exception(RuntimeError()) == "RuntimeError"


def test_config_defaults_are_independent() -> None:
    """Each config gets its own remote resolver list."""
    first = ResolverConfig()
    second = ResolverConfig()
    first.remote_resolvers.clear()
    assert len(second.remote_resolvers) == 2
