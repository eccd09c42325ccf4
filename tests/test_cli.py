"""Tests for the command-line interface."""

import json

import pytest

from link_resolver.cli import build_parser, main


def test_parser_resolve_options() -> None:
    args = build_parser().parse_args(
        ["resolve", "https://short.example/a", "--prefer-external", "--json-result", "data.url"]
    )
    assert args.command == "resolve"
    assert args.link == "https://short.example/a"
    assert args.prefer_external
    assert args.json_result == "data.url"


def test_parser_requires_command() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_resolve_prints_json(capsys: pytest.CaptureFixture[str]) -> None:
    """Pattern-rule links resolve offline and exit 0."""
    status = main(["resolve", "https://pastebin.com/AbCd1234"])

    out = json.loads(capsys.readouterr().out)
    assert status == 0
    assert out["bypassed"] == "https://pastebin.com/raw/AbCd1234"
    assert out["method"] == "pastebin-raw"
    assert out["fromCache"] is False
