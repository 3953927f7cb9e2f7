"""Command-line entrypoint: `mcp` runs the stdio server, `review` the operator console."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from config import get_default_repository, get_ttl_seconds
from core.gate.application.confirmation import ConfirmationDispatcher
from core.gate.application.execution_adapter import ExecutionAdapter
from core.gate.application.operation_registry import OperationRegistry
from infrastructure.github_issues import GitHubIssueService, IssuesClient, RateLimiter, load_token

SWEEP_INTERVAL_SECONDS = 60.0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="preview-gate", description="Preview & confirmation gate for GitHub mutations.")
    parser.add_argument("--ttl", type=int, default=None, help="Pending operation TTL in seconds (default: config or 3600).")
    parser.add_argument("--log-level", default="WARNING", help="Logging level for stderr (default WARNING).")
    sub = parser.add_subparsers(dest="command")
    sub.add_parser("mcp", help="Run the MCP stdio server.")
    review = sub.add_parser("review", help="Interactive operator console.")
    review.add_argument("--repository", default="", help="Target repository (owner/repo) for proposals.")
    return parser


def build_registry(ttl: Optional[int]) -> OperationRegistry:
    registry = OperationRegistry(ttl_seconds=ttl if ttl and ttl > 0 else get_ttl_seconds())
    registry.start_sweeper(SWEEP_INTERVAL_SECONDS)
    return registry


def build_adapter() -> ExecutionAdapter:
    client = IssuesClient(None, load_token, RateLimiter())
    return ExecutionAdapter(GitHubIssueService(client))


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        stream=sys.stderr,
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    if not args.command:
        parser.print_help()
        return 2

    registry = build_registry(args.ttl)
    adapter = build_adapter()
    try:
        if args.command == "mcp":
            from core.gate.interface.mcp_server import MCPServer, run_stdio

            return run_stdio(MCPServer(registry=registry, adapter=adapter))
        from core.gate.interface.review_console import ReviewConsole

        console = ReviewConsole(
            registry,
            ConfirmationDispatcher(registry, adapter),
            repository=args.repository or get_default_repository(),
        )
        return console.run()
    finally:
        registry.stop_sweeper()


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
