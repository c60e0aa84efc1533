"""
Command-line bulk export.

Usage:
    fleet-export ENDPOINT [options]

Examples:
    fleet-export device_data --filter company_id=sc-001 --filter start_datetime=2024-01-01
    fleet-export alerts --search tamper --filter alert_severity=high --output-dir ./exports

Exit codes:
    0   export finished (including exports that matched nothing)
    1   export failed
    2   session token rejected
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import httpx
from tqdm import tqdm

from .config import config, get_endpoint_config, list_endpoints
from .config.logging_config import setup_logging, get_logger
from .errors import InvalidFilterError
from .export.download import FileDownloadSurface
from .export.orchestrator import ExportOrchestrator, ExportOutcome, ExportState
from .filters.criteria import SEARCH_FIELD, FilterComposer
from .retrieval.bulk import BulkExporter, PageProgress
from .retrieval.client import PagedFetcher, create_client

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_UNAUTHORIZED = 2


def parse_filters(pairs: Optional[List[str]]) -> Dict[str, str]:
    """Parse repeated KEY=VALUE arguments into raw filter inputs."""
    raw: Dict[str, str] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            raise InvalidFilterError(f"Filter must be KEY=VALUE, got {pair!r}")
        raw[key] = value
    return raw


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fleet-export",
        description="Export every record matching a filter to CSV",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("endpoint", choices=list_endpoints(), help="Endpoint to export")
    parser.add_argument(
        "--filter",
        dest="filters",
        action="append",
        metavar="KEY=VALUE",
        help="Filter input (repeatable)",
    )
    parser.add_argument("--search", type=str, default=None, help="Free-text search")
    parser.add_argument(
        "--token",
        type=str,
        default=config.api.token,
        help="Session token (default: FLEET_API_TOKEN)",
    )
    parser.add_argument(
        "--base-url",
        type=str,
        default=config.api.base_url,
        help="Backend API root (default: FLEET_API_BASE_URL)",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=config.export.exports_path,
        help="Directory for the CSV file",
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Hide the page progress bar",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=config.app.log_level.upper(),
        help="Logging level",
    )
    return parser


async def run_export(
    endpoint_name: str,
    raw_filters: Dict[str, Any],
    token: Optional[str],
    base_url: str,
    output_dir: Path,
    show_progress: bool = True,
    client_factory: Optional[Callable[..., httpx.AsyncClient]] = None,
) -> ExportOutcome:
    """
    Run one export end to end.

    Args:
        endpoint_name: Endpoint key from endpoints.yaml.
        raw_filters: Raw filter inputs, composed before use.
        token: Session token.
        base_url: Backend API root.
        output_dir: Directory the CSV is written to.
        show_progress: Show a tqdm page progress bar.
        client_factory: Builds the HTTP client from a base URL (create_client).

    Returns:
        ExportOutcome of the job.

    Raises:
        InvalidFilterError: If the filter inputs cannot be composed.
    """
    endpoint = get_endpoint_config(endpoint_name)
    criteria = FilterComposer.from_endpoint(endpoint).compose(raw_filters)

    with tqdm(desc=f"Exporting {endpoint.name}", unit="page", disable=not show_progress) as pbar:

        def on_progress(progress: PageProgress) -> None:
            pbar.total = max(progress.total_pages, progress.page)
            pbar.set_postfix(records=progress.accumulated)
            pbar.update(1)

        async with (client_factory or create_client)(base_url) as client:
            fetcher = PagedFetcher(endpoint, client)
            orchestrator = ExportOrchestrator(
                endpoint,
                BulkExporter(fetcher),
                FileDownloadSurface(output_dir),
                on_progress=on_progress,
            )
            return await orchestrator.export(criteria, token)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for fleet-export."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(log_level=args.log_level)
    logger = get_logger("cli")

    try:
        raw_filters = parse_filters(args.filters)
    except InvalidFilterError as e:
        parser.error(str(e))
    if args.search:
        raw_filters[SEARCH_FIELD] = args.search

    try:
        outcome = asyncio.run(
            run_export(
                args.endpoint,
                raw_filters,
                args.token,
                args.base_url,
                args.output_dir,
                show_progress=not args.no_progress,
            )
        )
    except InvalidFilterError as e:
        logger.error(f"Invalid filter: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILED
    except KeyboardInterrupt:
        logger.warning("Export interrupted by user")
        return EXIT_FAILED

    if outcome.state == ExportState.DONE:
        print(outcome.message)
        return EXIT_OK

    print(f"Error: {outcome.message}", file=sys.stderr)
    return EXIT_UNAUTHORIZED if outcome.unauthorized else EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
