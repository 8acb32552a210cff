# src/cli/runner.py

"""Headless batch runner around the async fetch orchestrator."""

import json
import logging
import sys
from dataclasses import asdict

from rich.console import Console
from rich.table import Table

from src.config.settings import Settings
from src.models.product import Product
from src.services.fetch_orchestrator import (
    FetchOrchestrator,
    ScrapeTask,
    build_tasks,
    tasks_from_urls,
)

logger = logging.getLogger("refurb_scraper.cli")

# Stderr console for status messages so stdout stays clean for JSON
_err = Console(stderr=True)


def split_csv(raw: str | None) -> list[str]:
    """Split a comma-separated option into trimmed, non-empty items."""
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def resolve_tasks(
    locales_csv: str | None,
    categories_csv: str | None,
    urls: list[str] | None,
) -> list[ScrapeTask] | None:
    """Build the task list for one of the two input modes.

    Locales and categories fall back to the configured defaults.
    Returns ``None`` when both modes are requested at once.
    """
    if urls:
        if locales_csv or categories_csv:
            return None
        return tasks_from_urls(urls)

    locales = split_csv(locales_csv) or Settings.LOCALES
    categories = split_csv(categories_csv) or Settings.CATEGORIES
    return build_tasks(locales, categories)


def _products_to_dicts(products: list[Product]) -> list[dict[str, object]]:
    """Serialise a product list to plain dicts for JSON output."""
    return [asdict(p) for p in products]


def _print_table(products: list[Product]) -> None:
    """Render a Rich table of products to stdout."""
    sorted_products = sorted(
        products, key=lambda p: (p.locale, p.category, p.price)
    )
    table = Table(
        title="Refurbished Products",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("#", style="dim", width=4)
    table.add_column("ID", style="magenta")
    table.add_column("Name", max_width=50)
    table.add_column("Price", justify="right", style="green")
    table.add_column("Was", justify="right", style="dim")
    table.add_column("Locale/Category")
    table.add_column("URL", overflow="fold", style="dim")

    for idx, p in enumerate(sorted_products, 1):
        where = f"{p.locale}/{p.category}" if p.locale else "—"
        table.add_row(
            str(idx),
            p.id,
            p.name[:50],
            f"{p.price:,.2f}",
            f"{p.original_price:,.2f}",
            where,
            p.store_url,
        )

    Console().print(table)


async def cli_scrape(
    locales_csv: str | None,
    categories_csv: str | None,
    urls: list[str] | None,
    output_format: str,
    orchestrator: FetchOrchestrator | None = None,
) -> int:
    """Run one batch and return an exit code (0=ok, 1=empty, 2=usage)."""
    tasks = resolve_tasks(locales_csv, categories_csv, urls)
    if tasks is None:
        _err.print(
            "[red]--url cannot be combined with "
            "--locales/--categories[/red]"
        )
        return 2
    if not tasks:
        _err.print(
            "[red]Nothing to scrape: pass --url or both "
            "--locales and --categories[/red]"
        )
        return 2

    orchestrator = orchestrator or FetchOrchestrator()
    _err.print(f"[bold]Scraping {len(tasks)} listing page(s)...[/bold]")
    logger.info("Starting batch of %d tasks", len(tasks))

    products = await orchestrator.run(tasks)

    if not products:
        _err.print(
            "[yellow]No products found (see log for failures).[/yellow]"
        )
        return 1

    _err.print(
        f"[green]✓ {len(products)} products from {len(tasks)} pages[/green]"
    )

    if output_format == "table":
        _print_table(products)
    else:
        json.dump(
            _products_to_dicts(products),
            sys.stdout,
            ensure_ascii=False,
            indent=2,
        )
        sys.stdout.write("\n")

    return 0
