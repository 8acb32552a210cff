# tests/conftest.py

"""Shared pytest fixtures for all scraper tests."""

from collections.abc import Generator
from unittest.mock import MagicMock, patch

import pytest


@pytest.fixture(autouse=True)
def block_network() -> Generator[MagicMock, None, None]:
    """Replace curl_cffi sessions so no test reaches the network."""
    with patch(
        "src.scrapers.page_fetcher.curl_requests.Session"
    ) as mock_session_cls:
        yield mock_session_cls
