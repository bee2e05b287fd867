# main.py

"""Entry point for diy_search (TUI, headless CLI or HTTP API)."""

import argparse
import asyncio
import logging
import sys

from diy_search.config.logging_config import setup_logging
from diy_search.config.settings import Settings
from diy_search.matching.grouping import SORT_MODES

logger = logging.getLogger("diy_search.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    valid_ids = ", ".join(s["id"] for s in Settings.AVAILABLE_SOURCES)

    parser = argparse.ArgumentParser(
        prog="diy_search",
        description="UK DIY retailer price comparison (B&Q, Screwfix, Toolstation).",
        epilog=f"Available retailers: {valid_ids}",
    )
    parser.add_argument(
        "query",
        nargs="?",
        default=None,
        help="Search term. Omit to launch the interactive TUI.",
    )
    parser.add_argument(
        "-r",
        "--retailers",
        default=None,
        help="Comma-separated retailer IDs (default: all).",
    )
    parser.add_argument(
        "-l",
        "--limit",
        type=int,
        default=None,
        help=f"Results per retailer (default: {Settings.DEFAULT_RESULT_LIMIT}).",
    )
    parser.add_argument(
        "-g",
        "--group",
        action="store_true",
        default=False,
        help="Group similar products and show the best deal of each.",
    )
    parser.add_argument(
        "--sort",
        choices=SORT_MODES,
        default="relevance",
        help="Result order (default: relevance).",
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
        "--serve",
        action="store_true",
        default=False,
        help="Run the HTTP API instead of searching.",
    )
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    return parser


def _run_tui() -> None:
    """Launch the interactive Textual TUI."""
    from diy_search.ui.app import DiySearchApp

    try:
        app = DiySearchApp()
        app.run()
    except Exception:
        logger.critical("Fatal error during TUI run", exc_info=True)
        raise
    finally:
        logger.info("diy_search TUI shutting down")


def _run_cli(args: argparse.Namespace) -> None:
    """Run headless CLI search and exit."""
    from diy_search.cli.runner import cli_search

    exit_code = asyncio.run(
        cli_search(
            query=args.query,
            source_csv=args.retailers,
            limit=args.limit,
            group=args.group,
            sort=args.sort,
            output_format=args.output_format,
        )
    )
    sys.exit(exit_code)


def _run_server(args: argparse.Namespace) -> None:
    """Serve the HTTP API with uvicorn."""
    import uvicorn

    logger.info("Serving API on %s:%d", args.host, args.port)
    uvicorn.run("diy_search.web.api:app", host=args.host, port=args.port)


def main() -> None:
    """Route to the API server, TUI (no term) or headless CLI."""
    parser = _build_parser()
    args = parser.parse_args()

    mode = "api" if args.serve else ("tui" if args.query is None else "cli")
    log_file = setup_logging(mode)
    logger.info("diy_search starting (%s), log file: %s", mode, log_file)

    if args.serve:
        _run_server(args)
    elif args.query is None:
        _run_tui()
    else:
        _run_cli(args)


if __name__ == "__main__":
    main()
