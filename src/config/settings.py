# src/config/settings.py

"""Central configuration for the refurb_scraper batch job."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


def _env_list(name: str) -> list[str]:
    """Read a comma-separated environment variable into a list."""
    raw = os.getenv(name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


class Settings:
    """Central configuration for the refurb_scraper batch job."""

    # --- Store pages ---
    STORE_HOST: str = os.getenv("SCRAPER_STORE_HOST", "www.apple.com")
    LISTING_URL_TEMPLATE: str = os.getenv(
        "SCRAPER_LISTING_URL_TEMPLATE",
        "https://{host}/{locale}/shop/refurbished/{category}",
    )
    LOCALES: list[str] = _env_list("SCRAPER_LOCALES")
    CATEGORIES: list[str] = _env_list("SCRAPER_CATEGORIES")

    # --- Embedded blob ---
    BOOTSTRAP_VARIABLE: str = "REFURB_GRID_BOOTSTRAP"
    NAME_PREFIX: str = "Refurbished-"   # Stripped from URL slugs

    # --- Fetching ---
    REQUEST_TIMEOUT: int = int(os.getenv("SCRAPER_REQUEST_TIMEOUT", "15"))
    MAX_CONCURRENT_FETCHES: int = int(
        os.getenv("SCRAPER_MAX_CONCURRENT_FETCHES", "8")
    )

    # --- Browser Impersonation ---
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    DEFAULT_HEADERS: dict[str, str] = {
        "Accept": (
            "text/html,application/xhtml+xml,"
            "application/xml;q=0.9,image/avif,"
            "image/webp,image/apng,*/*;q=0.8"
        ),
        "Accept-Language": "en-US,en;q=0.9",
        "sec-fetch-dest": "document",
        "sec-fetch-mode": "navigate",
        "sec-fetch-site": "none",
        "Upgrade-Insecure-Requests": "1",
    }

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    LOGS_DIR: Path = BASE_DIR / "logs"

