#!/usr/bin/env python3
"""Command-line interface for the literacy dashboard.

Usage:
    python -m literacy_dashboard.cli --help
    python -m literacy_dashboard.cli serve --port 8000
    python -m literacy_dashboard.cli snapshot --category year
    python -m literacy_dashboard.cli snapshot --view crisis --source ./data
"""
import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace
from typing import List, Optional

from literacy_dashboard.services.dashboard_service.views import (
    UnknownViewError,
    build_detail_view,
    build_overview,
    parse_view,
)
from literacy_dashboard.services.data_service import (
    DataCoordinator,
    DataServiceConfig,
    build_fetcher,
)
from literacy_dashboard.shared.models import DEMOGRAPHIC_CATEGORIES, DashboardView
from literacy_dashboard.shared.privacy import MINIMUM_THRESHOLD

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def setup_parser() -> argparse.ArgumentParser:
    """Set up argument parser."""
    parser = argparse.ArgumentParser(
        description="Mental Health Literacy Dashboard CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the dashboard API")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Bind port")

    # Snapshot command
    snapshot_parser = subparsers.add_parser(
        "snapshot", help="Load every resource once and print a view as JSON"
    )
    snapshot_parser.add_argument(
        "--source",
        help="Data directory or base URL (default: DASHBOARD_DATA_SOURCE)"
    )
    snapshot_parser.add_argument(
        "--view", default=DashboardView.OVERVIEW.value,
        choices=[v.value for v in DashboardView],
        help="View to render"
    )
    snapshot_parser.add_argument(
        "--category", default="campus",
        choices=list(DEMOGRAPHIC_CATEGORIES),
        help="Demographic breakdown for the overview"
    )
    snapshot_parser.add_argument(
        "--threshold", type=int, default=MINIMUM_THRESHOLD,
        help="Suppression threshold"
    )

    return parser


def cmd_serve(args) -> int:
    """Serve command."""
    from literacy_dashboard.services.dashboard_service.handler import run_server

    run_server(host=args.host, port=args.port)
    return 0


async def _load(config: DataServiceConfig) -> DataCoordinator:
    coordinator = DataCoordinator(
        build_fetcher(config.source, config.fetch_timeout_seconds),
        ttl_seconds=config.ttl_seconds,
    )
    await coordinator.refresh_all()
    return coordinator


def cmd_snapshot(args) -> int:
    """Snapshot command. Exits 1 if any resource failed to load."""
    config = DataServiceConfig.from_env()
    if args.source:
        config = replace(config, source=args.source)

    coordinator = asyncio.run(_load(config))
    failed = [n for n, s in coordinator.status().items() if not s["loaded"]]
    if failed:
        logger.warning("SNAPSHOT_INCOMPLETE", extra={"missing": failed})

    try:
        view = parse_view(args.view)
        if view is DashboardView.OVERVIEW:
            payload = build_overview(coordinator, category=args.category, threshold=args.threshold)
        else:
            payload = build_detail_view(coordinator, view, threshold=args.threshold)
    except UnknownViewError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    print(json.dumps(payload, indent=2))
    return 1 if failed else 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = setup_parser()
    args = parser.parse_args(argv)

    if args.command == "serve":
        return cmd_serve(args)
    elif args.command == "snapshot":
        return cmd_snapshot(args)
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
