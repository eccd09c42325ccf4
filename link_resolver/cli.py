"""
Command-line interface for the link resolver.
"""

import argparse
import asyncio
import sys

import msgspec

from link_resolver.config.env import load_resolver_config
from link_resolver.core.models import ResolveOptions
from link_resolver.pipelines.orchestrator import Resolver
from link_resolver.utils.logging import get_logger

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Link Resolver CLI")
    commands = parser.add_subparsers(dest="command", required=True)

    resolve = commands.add_parser("resolve", help="Resolve a single link and print JSON")
    resolve.add_argument("link", type=str, help="Link to resolve")
    resolve.add_argument(
        "--prefer-external",
        action="store_true",
        help="Consult remote resolvers before following redirects",
    )
    resolve.add_argument(
        "--json-result",
        type=str,
        default=None,
        help="Dot path of the destination field in remote resolver payloads",
    )

    commands.add_parser("serve", help="Run the HTTP front door (HOST/PORT env vars)")
    return parser


async def resolve_once(link: str, options: ResolveOptions) -> int:
    """Resolve one link, print the result, and return the exit status."""
    config = load_resolver_config()

    async with Resolver(config) as resolver:
        result = await resolver.resolve(link.strip(), options)

    print(msgspec.json.format(msgspec.json.encode(result)).decode())
    return 0 if result.is_resolved else 1


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    if args.command == "serve":
        from link_resolver.server import main as serve

        serve()
        return 0

    options = ResolveOptions(
        prefer_external=args.prefer_external,
        result_field_hint=args.json_result,
    )
    try:
        return asyncio.run(resolve_once(args.link, options))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
