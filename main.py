# main.py

"""Entry point for the catalog console (TUI or headless CLI)."""

import argparse
import asyncio
import logging
import sys

from catalog_console.config.logging_config import setup_logging

logger = logging.getLogger("catalog_console.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="catalog_console",
        description="Storefront catalog editor with buffered, batched saves.",
        epilog=(
            "Without --collections the interactive TUI is launched. "
            "Set CATALOG_API_URL to edit a live catalog; otherwise the "
            "bundled sample catalog is used."
        ),
    )
    parser.add_argument(
        "-c",
        "--collections",
        default=None,
        help="Comma-separated collection IDs to load headlessly.",
    )
    parser.add_argument(
        "-a",
        "--apply",
        default=None,
        dest="script",
        help="JSON edit script to apply to the selection and save.",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=["json", "table"],
        default="json",
        dest="output_format",
        help="Output format (default: json).",
    )
    return parser


def _run_tui() -> None:
    """Launch the interactive Textual TUI."""
    from catalog_console.ui.app import CatalogConsoleApp

    try:
        app = CatalogConsoleApp()
        app.run()
    except Exception:
        logger.critical("Fatal error during TUI run", exc_info=True)
        raise
    finally:
        logger.info("catalog_console TUI shutting down")


def _run_cli(args: argparse.Namespace) -> None:
    """List or edit a selection headlessly and exit."""
    from catalog_console.cli.runner import cli_apply, cli_list

    if args.script is not None:
        exit_code = asyncio.run(
            cli_apply(
                collection_csv=args.collections,
                script_path=args.script,
                output_format=args.output_format,
            )
        )
    else:
        exit_code = asyncio.run(
            cli_list(
                collection_csv=args.collections,
                output_format=args.output_format,
            )
        )
    sys.exit(exit_code)


def main() -> None:
    """Route to TUI (no args) or headless CLI (collections provided)."""
    parser = _build_parser()
    args = parser.parse_args()
    headless = args.collections is not None or args.script is not None

    log_file = setup_logging(console=headless)
    logger.info("catalog_console starting, log file: %s", log_file)

    if headless:
        _run_cli(args)
    else:
        _run_tui()


if __name__ == "__main__":
    main()
