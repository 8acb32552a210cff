# main.py

"""Entry point for the refurb_scraper batch job."""

import argparse
import asyncio
import logging
import sys

from src.config.logging_config import setup_logging

logger = logging.getLogger("refurb_scraper.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="refurb_scraper",
        description=(
            "Extract refurbished product listings from store pages."
        ),
        epilog=(
            "Defaults for --locales/--categories come from "
            "SCRAPER_LOCALES and SCRAPER_CATEGORIES."
        ),
    )
    parser.add_argument(
        "-l",
        "--locales",
        default=None,
        help="Comma-separated locale codes, e.g. es,fr.",
    )
    parser.add_argument(
        "-c",
        "--categories",
        default=None,
        help="Comma-separated category slugs, e.g. ipad,mac.",
    )
    parser.add_argument(
        "-u",
        "--url",
        action="append",
        default=None,
        dest="urls",
        help="Listing page URL to scrape directly (repeatable).",
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
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Echo INFO logs to stderr.",
    )
    return parser


def main() -> None:
    """Parse arguments, run one batch and exit with its status."""
    parser = _build_parser()
    args = parser.parse_args()

    log_file = setup_logging(
        logging.INFO if args.verbose else logging.WARNING
    )
    logger.info("refurb_scraper starting, log file: %s", log_file)

    from src.cli.runner import cli_scrape

    exit_code = asyncio.run(
        cli_scrape(
            locales_csv=args.locales,
            categories_csv=args.categories,
            urls=args.urls,
            output_format=args.output_format,
        )
    )
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
