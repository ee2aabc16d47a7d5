# main.py

"""Entry point for retail_radar (TUI, headless CLI or HTTP API)."""

import argparse
import asyncio
import logging
import sys

from src.config.logging_config import setup_logging
from src.config.settings import Settings

logger = logging.getLogger("retail_radar.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    labels = ", ".join(s["label"] for s in Settings.AVAILABLE_SOURCES)

    parser = argparse.ArgumentParser(
        prog="retail_radar",
        description="Find sneakers and streetwear listed below retail.",
        epilog=f"Sources (in fallback order): {labels}",
    )
    parser.add_argument(
        "brand",
        nargs="?",
        default=None,
        help="Brand to search. Omit to launch the interactive TUI.",
    )
    parser.add_argument(
        "--min-discount",
        default=None,
        dest="min_discount",
        help="Minimum discount as a fraction between 0 and 1.",
    )
    parser.add_argument(
        "--max-price",
        default=None,
        dest="max_price",
        help="Maximum current ask.",
    )
    parser.add_argument("--size", default=None, help="Exact size filter.")
    parser.add_argument(
        "--cursor",
        default=None,
        help="Pagination cursor from a previous page.",
    )
    parser.add_argument(
        "--limit",
        default=None,
        help=f"Page size, 1-{Settings.MAX_PAGE_LIMIT} "
        f"(default: {Settings.DEFAULT_PAGE_LIMIT}).",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=["json", "table"],
        default="json",
        dest="output_format",
        help="Output format (default: json).",
    )
    parser.add_argument(
        "--save",
        action="store_true",
        default=False,
        help="Also save the page as JSON under results/.",
    )
    parser.add_argument(
        "--health",
        action="store_true",
        default=False,
        help="Run a health check on all sources.",
    )
    parser.add_argument(
        "--serve",
        action="store_true",
        default=False,
        help="Serve the HTTP API.",
    )
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    return parser


def _run_tui() -> None:
    """Launch the interactive Textual TUI."""
    from src.ui.app import RetailRadarApp

    try:
        app = RetailRadarApp()
        app.run()
    except Exception:
        logger.critical("Fatal error during TUI run", exc_info=True)
        raise
    finally:
        logger.info("retail_radar TUI shutting down")


def _run_cli(args: argparse.Namespace) -> None:
    """Run one headless below-retail query and exit."""
    from src.cli.runner import cli_below_retail

    params = {
        "minDiscount": args.min_discount,
        "maxPrice": args.max_price,
        "size": args.size,
        "cursor": args.cursor,
        "limit": args.limit,
    }
    exit_code = asyncio.run(
        cli_below_retail(
            brand=args.brand,
            params=params,
            output_format=args.output_format,
            save=args.save,
        )
    )
    sys.exit(exit_code)


def _run_health_check() -> None:
    """Run the source health check."""
    from src.cli.runner import run_health_check

    exit_code = asyncio.run(run_health_check())
    sys.exit(exit_code)


def _run_server(host: str, port: int) -> None:
    """Serve the HTTP API with uvicorn."""
    import uvicorn

    from src.api.app import create_app

    logger.info("Serving API on %s:%d", host, port)
    uvicorn.run(create_app(), host=host, port=port, log_level="info")


def main() -> None:
    """Route to TUI (no args), API server, health check or CLI query."""
    log_file = setup_logging()
    logger.info("retail_radar starting, log file: %s", log_file)

    parser = _build_parser()
    args = parser.parse_args()

    if args.serve:
        _run_server(args.host, args.port)
    elif args.health:
        _run_health_check()
    elif args.brand is None:
        _run_tui()
    else:
        _run_cli(args)


if __name__ == "__main__":
    main()
