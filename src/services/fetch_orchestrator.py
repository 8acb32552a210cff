# src/services/fetch_orchestrator.py

"""Runs fetch → extract → decode for many listing pages concurrently."""

import asyncio
import enum
import itertools
import logging
from collections.abc import Iterable
from dataclasses import dataclass

from src.config.settings import Settings
from src.models.product import Product
from src.scrapers import blob_extractor, product_decoder
from src.scrapers.errors import ScrapeError
from src.scrapers.page_fetcher import CurlPageFetcher, PageFetcher


class TaskStage(enum.Enum):
    """Lifecycle of a single task."""

    PENDING = "pending"
    FETCHING = "fetching"
    EXTRACTING = "extracting"
    DECODING = "decoding"
    MERGED = "merged"
    FAILED = "failed"


@dataclass(frozen=True)
class ScrapeTask:
    """One listing page to fetch; locale/category empty in URL mode."""

    url: str
    locale: str = ""
    category: str = ""


def build_tasks(
    locales: Iterable[str],
    categories: Iterable[str],
    url_template: str | None = None,
    host: str | None = None,
) -> list[ScrapeTask]:
    """Expand every locale × category pair into a task."""
    template = url_template or Settings.LISTING_URL_TEMPLATE
    store_host = host or Settings.STORE_HOST
    return [
        ScrapeTask(
            url=template.format(
                host=store_host, locale=locale, category=category
            ),
            locale=locale,
            category=category,
        )
        for locale, category in itertools.product(
            list(locales), list(categories)
        )
    ]


def tasks_from_urls(urls: Iterable[str]) -> list[ScrapeTask]:
    """Wrap explicit URLs as tasks without locale/category."""
    return [ScrapeTask(url=url) for url in urls]


class FetchOrchestrator:
    """Fans tasks out, isolates failures and merges the products.

    The logger is injected and handed to every unit of work; a task
    failure is logged with its stage and contributes nothing.
    """

    def __init__(
        self,
        fetcher: PageFetcher | None = None,
        logger: logging.Logger | None = None,
        max_concurrency: int | None = None,
    ) -> None:
        self.settings = Settings()
        self.fetcher: PageFetcher = fetcher or CurlPageFetcher()
        self.logger = logger or logging.getLogger(
            "refurb_scraper.orchestrator"
        )
        self.max_concurrency = (
            max_concurrency or self.settings.MAX_CONCURRENT_FETCHES
        )

    # ── Private helpers ──────────────────────────────────

    @staticmethod
    def _context(task: ScrapeTask, stage: TaskStage) -> dict[str, str]:
        return {
            "stage": stage.value,
            "locale": task.locale,
            "category": task.category,
            "url": task.url,
        }

    async def _scrape_one(
        self,
        task: ScrapeTask,
        limiter: asyncio.Semaphore,
        logger: logging.Logger,
    ) -> list[Product]:
        """Run the three stages for one task; failures yield ``[]``."""
        stage = TaskStage.FETCHING
        try:
            async with limiter:
                body = await asyncio.to_thread(
                    self.fetcher.get, task.url
                )
            stage = TaskStage.EXTRACTING
            fragment = blob_extractor.extract(
                body, self.settings.BOOTSTRAP_VARIABLE
            )
            stage = TaskStage.DECODING
            products = product_decoder.decode(
                fragment, task.locale, task.category
            )
        except ScrapeError as exc:
            logger.error(
                "[%s] Scraping failed for locale=%r category=%r url=%s: %s",
                stage.value,
                task.locale,
                task.category,
                task.url,
                exc,
                extra={**self._context(task, stage), "error": str(exc)},
            )
            return []

        for product in products:
            logger.debug(
                "Product found: %s %s (%s/%s)",
                product.id,
                product.name,
                task.locale,
                task.category,
                extra={
                    **self._context(task, TaskStage.MERGED),
                    "product_id": product.id,
                    "product_name": product.name,
                },
            )
        logger.info(
            "[%s] %d products from %s",
            TaskStage.MERGED.value,
            len(products),
            task.url,
            extra=self._context(task, TaskStage.MERGED),
        )
        return products

    # ── Entry points ─────────────────────────────────────

    async def run(self, tasks: list[ScrapeTask]) -> list[Product]:
        """Scrape every task and return the merged products.

        Never raises for a single task's failure; returns only after
        every unit has finished.  Order across tasks is arbitrary.
        """
        if not tasks:
            return []

        limiter = asyncio.Semaphore(
            max(1, min(len(tasks), self.max_concurrency))
        )
        lock = asyncio.Lock()
        products: list[Product] = []

        async def run_one(task: ScrapeTask) -> None:
            found = await self._scrape_one(task, limiter, self.logger)
            async with lock:
                products.extend(found)

        outcomes = await asyncio.gather(
            *(run_one(task) for task in tasks),
            return_exceptions=True,
        )

        for task, outcome in zip(tasks, outcomes):
            if isinstance(outcome, Exception):
                self.logger.error(
                    "Unexpected error for url=%s: %s",
                    task.url,
                    outcome,
                    exc_info=outcome,
                    extra={
                        **self._context(task, TaskStage.FAILED),
                        "error": str(outcome),
                    },
                )

        self.logger.info(
            "Finished %d tasks, %d products", len(tasks), len(products)
        )
        return products

    async def scrape(
        self, locales: Iterable[str], categories: Iterable[str]
    ) -> list[Product]:
        """Scrape every locale × category listing page."""
        return await self.run(build_tasks(locales, categories))

    async def scrape_urls(self, urls: Iterable[str]) -> list[Product]:
        """Scrape an explicit list of listing page URLs."""
        return await self.run(tasks_from_urls(urls))
