# tests/test_fetch_orchestrator.py

"""Tests for FetchOrchestrator task fan-out, isolation and merging."""

import asyncio
import json
import logging
import threading
import time
import unittest
from pathlib import Path

from src.models.product import Product
from src.scrapers.errors import StatusError, TransportError
from src.services.fetch_orchestrator import (
    FetchOrchestrator,
    ScrapeTask,
    TaskStage,
    build_tasks,
    tasks_from_urls,
)

FIXTURES_DIR = Path(__file__).parent / "fixtures"
LISTING_PAGE = (FIXTURES_DIR / "refurb_listing.html").read_bytes()
NO_BLOB_PAGE = (FIXTURES_DIR / "refurb_no_blob.html").read_bytes()
BROKEN_PAGE = b'<script>window.REFURB_GRID_BOOTSTRAP = {"tiles": [,]};</script>'

TEMPLATE = "https://{host}/{locale}/shop/refurbished/{category}"


def _page(n_tiles: int, prefix: str = "P") -> bytes:
    """Build a page whose blob holds *n_tiles* minimal tiles."""
    tiles = [
        {
            "partNumber": f"{prefix}{i}",
            "productDetailsUrl": f"https://x/p/Refurbished-Item-{i}?a=b",
            "price": {"seoPrice": 10.0 + i, "originalProductAmount": 20.0},
            "image": {"srcSet": {"src": f"https://x/{i}.png?w=1"}},
        }
        for i in range(n_tiles)
    ]
    blob = json.dumps({"tiles": tiles}, indent=2)
    return f"<script>\nwindow.REFURB_GRID_BOOTSTRAP = {blob};\n</script>".encode()


class FakeFetcher:
    """PageFetcher double serving canned bodies or raising errors."""

    def __init__(
        self,
        pages: dict[str, bytes | Exception] | None = None,
        default: bytes | None = None,
        delay: float = 0.0,
    ) -> None:
        self.pages = pages or {}
        self.default = default
        self.delay = delay
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def get(self, url: str) -> bytes:
        with self._lock:
            self.calls.append(url)
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                time.sleep(self.delay)
            value = self.pages.get(url, self.default)
            if value is None:
                raise StatusError(url, 404, "Not Found")
            if isinstance(value, Exception):
                raise value
            return value
        finally:
            with self._lock:
                self.in_flight -= 1


def _logger() -> logging.Logger:
    return logging.getLogger("refurb_scraper.test.orchestrator")


class TestTaskEnumeration(unittest.TestCase):
    """Locale × category expansion and URL mode."""

    def test_cartesian_product(self) -> None:
        """Every locale is paired with every category."""
        tasks = build_tasks(
            ["es", "fr"], ["ipad", "mac"], TEMPLATE, "www.example.com"
        )
        self.assertEqual(
            [(t.locale, t.category) for t in tasks],
            [("es", "ipad"), ("es", "mac"), ("fr", "ipad"), ("fr", "mac")],
        )
        self.assertEqual(
            tasks[1].url, "https://www.example.com/es/shop/refurbished/mac"
        )

    def test_empty_dimension_gives_no_tasks(self) -> None:
        """No categories means no tasks."""
        self.assertEqual(build_tasks(["es"], []), [])

    def test_default_template_uses_settings(self) -> None:
        """Without overrides the configured host and template apply."""
        (task,) = build_tasks(["es"], ["ipad"])
        self.assertTrue(task.url.endswith("/es/shop/refurbished/ipad"))

    def test_tasks_from_urls(self) -> None:
        """URL mode leaves locale and category empty."""
        tasks = tasks_from_urls(["https://a", "https://b"])
        self.assertEqual(
            tasks,
            [ScrapeTask(url="https://a"), ScrapeTask(url="https://b")],
        )


class TestFetchOrchestrator(unittest.IsolatedAsyncioTestCase):
    """FetchOrchestrator.run behaviour."""

    async def test_no_tasks_returns_empty(self) -> None:
        """N=0 terminates immediately with no products."""
        fetcher = FakeFetcher()
        orch = FetchOrchestrator(fetcher=fetcher, logger=_logger())
        self.assertEqual(await orch.run([]), [])
        self.assertEqual(fetcher.calls, [])

    async def test_products_carry_task_values(self) -> None:
        """A page with K tiles yields K products tagged with the task."""
        task = ScrapeTask(url="https://s/es/ipad", locale="es", category="ipad")
        fetcher = FakeFetcher({task.url: LISTING_PAGE})
        orch = FetchOrchestrator(fetcher=fetcher, logger=_logger())

        products = await orch.run([task])

        self.assertEqual(len(products), 3)
        self.assertTrue(all(isinstance(p, Product) for p in products))
        self.assertTrue(all(p.locale == "es" for p in products))
        self.assertTrue(all(p.category == "ipad" for p in products))

    async def test_missing_blob_logged_and_isolated(self) -> None:
        """No blob: zero products, one extract-stage error, batch completes."""
        good = ScrapeTask(url="https://s/good", locale="es", category="ipad")
        empty = ScrapeTask(url="https://s/empty", locale="fr", category="mac")
        fetcher = FakeFetcher({good.url: _page(2), empty.url: NO_BLOB_PAGE})
        orch = FetchOrchestrator(fetcher=fetcher, logger=_logger())

        with self.assertLogs(_logger(), level="ERROR") as cm:
            products = await orch.run([good, empty])

        self.assertEqual(len(products), 2)
        self.assertEqual(len(cm.records), 1)
        record = cm.records[0]
        self.assertEqual(getattr(record, "stage"), TaskStage.EXTRACTING.value)
        self.assertEqual(getattr(record, "locale"), "fr")
        self.assertEqual(getattr(record, "category"), "mac")
        self.assertEqual(getattr(record, "url"), empty.url)
        self.assertIn("cannot match regex", getattr(record, "error"))

    async def test_malformed_json_isolated(self) -> None:
        """A decode failure leaves sibling results untouched."""
        tasks = [
            ScrapeTask(url="https://s/a", locale="es", category="ipad"),
            ScrapeTask(url="https://s/b", locale="es", category="mac"),
            ScrapeTask(url="https://s/c", locale="fr", category="ipad"),
        ]
        fetcher = FakeFetcher({
            "https://s/a": _page(3, "A"),
            "https://s/b": BROKEN_PAGE,
            "https://s/c": _page(1, "C"),
        })
        orch = FetchOrchestrator(fetcher=fetcher, logger=_logger())

        with self.assertLogs(_logger(), level="ERROR") as cm:
            products = await orch.run(tasks)

        self.assertEqual(
            sorted(p.id for p in products), ["A0", "A1", "A2", "C0"]
        )
        self.assertEqual(len(cm.records), 1)
        self.assertEqual(
            getattr(cm.records[0], "stage"), TaskStage.DECODING.value
        )

    async def test_fetch_failures_logged(self) -> None:
        """Status and transport errors are fetch-stage failures."""
        tasks = tasks_from_urls(["https://s/404", "https://s/down"])
        fetcher = FakeFetcher({
            "https://s/404": StatusError("https://s/404", 404, "Not Found"),
            "https://s/down": TransportError("https://s/down", "timeout"),
        })
        orch = FetchOrchestrator(fetcher=fetcher, logger=_logger())

        with self.assertLogs(_logger(), level="ERROR") as cm:
            products = await orch.run(tasks)

        self.assertEqual(products, [])
        self.assertEqual(
            {getattr(r, "stage") for r in cm.records},
            {TaskStage.FETCHING.value},
        )
        self.assertEqual(len(cm.records), 2)

    async def test_unexpected_error_contained(self) -> None:
        """A non-scrape exception in one unit does not abort the batch."""
        tasks = tasks_from_urls(["https://s/ok", "https://s/bug"])
        fetcher = FakeFetcher({
            "https://s/ok": _page(2),
            "https://s/bug": RuntimeError("boom"),
        })
        orch = FetchOrchestrator(fetcher=fetcher, logger=_logger())

        with self.assertLogs(_logger(), level="ERROR") as cm:
            products = await orch.run(tasks)

        self.assertEqual(len(products), 2)
        self.assertEqual(
            getattr(cm.records[0], "stage"), TaskStage.FAILED.value
        )
        self.assertIsNotNone(cm.records[0].exc_info)

    async def test_concurrent_aggregation_no_lost_updates(self) -> None:
        """M tasks of R records each merge into exactly M×R products."""
        m, r = 24, 5
        tasks = tasks_from_urls([f"https://s/{i}" for i in range(m)])
        fetcher = FakeFetcher(
            {t.url: _page(r, f"T{i}-") for i, t in enumerate(tasks)},
            delay=0.005,
        )
        orch = FetchOrchestrator(
            fetcher=fetcher, logger=_logger(), max_concurrency=6
        )

        products = await orch.run(tasks)

        self.assertEqual(len(products), m * r)
        self.assertEqual(len({p.id for p in products}), m * r)

    async def test_fan_out_is_bounded(self) -> None:
        """No more than max_concurrency fetches run at once."""
        tasks = tasks_from_urls([f"https://s/{i}" for i in range(12)])
        fetcher = FakeFetcher(default=_page(1), delay=0.02)
        orch = FetchOrchestrator(
            fetcher=fetcher, logger=_logger(), max_concurrency=3
        )

        products = await orch.run(tasks)

        self.assertEqual(len(products), 12)
        self.assertLessEqual(fetcher.max_in_flight, 3)
        self.assertEqual(len(fetcher.calls), 12)

    async def test_duplicates_retained(self) -> None:
        """The same product from two tasks appears twice."""
        fetcher = FakeFetcher(default=_page(1))
        orch = FetchOrchestrator(fetcher=fetcher, logger=_logger())

        products = await orch.scrape(["es", "fr"], ["ipad"])

        self.assertEqual(len(products), 2)
        self.assertEqual({p.id for p in products}, {"P0"})
        self.assertEqual({p.locale for p in products}, {"es", "fr"})

    async def test_url_mode(self) -> None:
        """scrape_urls yields products without locale/category."""
        fetcher = FakeFetcher(default=LISTING_PAGE)
        orch = FetchOrchestrator(fetcher=fetcher, logger=_logger())

        products = await orch.scrape_urls(["https://s/direct"])

        self.assertEqual(len(products), 3)
        self.assertTrue(all(p.locale == "" for p in products))
        self.assertTrue(all(p.category == "" for p in products))
        self.assertEqual(fetcher.calls, ["https://s/direct"])

    async def test_success_events_logged(self) -> None:
        """Each product is logged with its id and name."""
        fetcher = FakeFetcher(default=_page(2))
        orch = FetchOrchestrator(fetcher=fetcher, logger=_logger())

        with self.assertLogs(_logger(), level="DEBUG") as cm:
            await orch.run(tasks_from_urls(["https://s/x"]))

        ids = [
            getattr(r, "product_id")
            for r in cm.records
            if hasattr(r, "product_id")
        ]
        self.assertEqual(sorted(ids), ["P0", "P1"])

    async def test_caller_timeout_cancels_run(self) -> None:
        """Outstanding tasks are cancelled when the caller gives up."""
        fetcher = FakeFetcher(default=_page(1), delay=0.2)
        orch = FetchOrchestrator(
            fetcher=fetcher, logger=_logger(), max_concurrency=1
        )
        tasks = tasks_from_urls([f"https://s/{i}" for i in range(5)])

        with self.assertRaises(asyncio.TimeoutError):
            await asyncio.wait_for(orch.run(tasks), timeout=0.05)

        self.assertLess(len(fetcher.calls), 5)

    def test_default_logger_name(self) -> None:
        """Without injection the orchestrator logger is namespaced."""
        orch = FetchOrchestrator(fetcher=FakeFetcher())
        self.assertEqual(orch.logger.name, "refurb_scraper.orchestrator")


if __name__ == "__main__":
    unittest.main()
