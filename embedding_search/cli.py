"""Command line interface.

Usage:
    embedding-search refresh [--only-new]
    embedding-search connections "Projects/Roadmap.md"
    embedding-search search "vector databases" --limit 5
    embedding-search serve

Settings come from the environment (``VAULT_ROOT``, ``EMBEDDING_API_KEY``, ...).
"""

import argparse
import asyncio
import json
import sys
from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel

from embedding_search import __version__
from embedding_search.config import Settings, get_settings
from embedding_search.exceptions import ConfigurationError, EmbeddingSearchError
from embedding_search.logging_config import get_logger, setup_logging
from embedding_search.query.models import ConnectionsSnapshot
from embedding_search.services import Services, build_services

logger = get_logger(__name__)

CLIENT_SERVER_NAME = "obsidian-embedding"


def client_config(settings: Settings) -> dict[str, Any]:
    """Build the MCP client configuration snippet for this server."""
    return {
        "mcpServers": {
            CLIENT_SERVER_NAME: {
                "isActive": settings.mcp.enabled,
                "name": CLIENT_SERVER_NAME,
                "type": "http",
                "url": f"http://{settings.mcp.host}:{settings.mcp.port}/mcp",
            }
        }
    }


def check_vault(settings: Settings) -> None:
    """Ensure the configured vault root is a directory.

    Raises:
        ConfigurationError: If it is not.
    """
    if not settings.vault_root.is_dir():
        raise ConfigurationError(
            f"Vault root is not a directory: {settings.vault_root}",
            details={"vault_root": str(settings.vault_root)},
        )


def format_snapshot(snapshot: ConnectionsSnapshot) -> str:
    """Render one phase of the connections view as text."""
    lines = [snapshot.header]
    if snapshot.status:
        lines[0] = f"{snapshot.header} {snapshot.status}"
    if snapshot.message and snapshot.message != snapshot.header:
        lines.append(snapshot.message)
    for item in snapshot.items:
        lines.append(f"  {item.display_score:.3f}  {item.display_name}  ({item.path})")
    return "\n".join(lines)


def _print_model(model: BaseModel) -> None:
    print(json.dumps(model.model_dump(mode="json"), indent=2, ensure_ascii=False))


async def run_command(args: argparse.Namespace, services: Services) -> int:
    """Execute a parsed subcommand.

    Args:
        args: Parsed command line.
        services: Wired service graph.

    Returns:
        Process exit status.
    """
    try:
        if args.command == "refresh":
            report = await services.coordinator.refresh_all(only_new=args.only_new)
            print(report.summary())
        elif args.command == "connections":
            async for snapshot in services.connections.show(args.note):
                print(format_snapshot(snapshot))
        elif args.command == "search":
            _print_model(await services.queries.search_by_text(args.query, args.limit))
        elif args.command == "similar":
            _print_model(await services.queries.search_by_note(args.note, args.limit))
        elif args.command == "fetch":
            note = await services.queries.fetch_note(args.path)
            print(note.content)
        else:
            raise ValueError(f"Unknown command: {args.command}")
    except EmbeddingSearchError as e:
        logger.debug("Command failed", extra={"error_code": e.code.value, "details": e.details})
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    finally:
        await services.aclose()
    return 0


def serve(settings: Settings) -> None:
    """Run the JSON-RPC server in the foreground.

    Raises:
        ConfigurationError: If the server is disabled.
    """
    import uvicorn

    from embedding_search.api.app import create_app

    if not settings.mcp.enabled:
        raise ConfigurationError("MCP server is disabled. Set MCP_ENABLED=true.")

    logger.info(f"Serving on http://{settings.mcp.host}:{settings.mcp.port}/mcp")
    uvicorn.run(
        create_app(settings),
        host=settings.mcp.host,
        port=settings.mcp.port,
        log_config=None,
    )


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="embedding-search",
        description="Semantic similarity search over a vault of markdown notes",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    refresh = subparsers.add_parser("refresh", help="Update all embeddings")
    refresh.add_argument(
        "--only-new",
        action="store_true",
        help="Only embed notes without a cache entry",
    )

    connections = subparsers.add_parser(
        "connections",
        help="Show notes similar to a note, refreshing it if stale",
    )
    connections.add_argument("note", help="Vault-relative note path")

    search = subparsers.add_parser("search", help="Search notes by free text")
    search.add_argument("query", help="Query text")
    search.add_argument("--limit", type=int, default=None, help="Maximum results")

    similar = subparsers.add_parser("similar", help="Search notes similar to a note")
    similar.add_argument("note", help="Note title or path")
    similar.add_argument("--limit", type=int, default=None, help="Maximum results")

    fetch = subparsers.add_parser("fetch", help="Print the content of a note")
    fetch.add_argument("path", help="Vault-relative note path")

    subparsers.add_parser("serve", help="Run the JSON-RPC server")
    subparsers.add_parser("client-config", help="Print the MCP client configuration")

    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(level=settings.log_level)

    if args.command == "client-config":
        print(json.dumps(client_config(settings), indent=2))
        sys.exit(0)

    try:
        check_vault(settings)
        if args.command == "serve":
            serve(settings)
            sys.exit(0)
    except ConfigurationError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        sys.exit(1)

    services = build_services(settings)
    sys.exit(asyncio.run(run_command(args, services)))


if __name__ == "__main__":
    main()
