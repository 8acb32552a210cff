# src/scrapers/page_fetcher.py

"""Raw page retrieval over HTTP with browser-impersonating TLS."""

import logging
from typing import Protocol

from curl_cffi import CurlError
from curl_cffi import requests as curl_requests

from src.config.settings import Settings
from src.scrapers.errors import StatusError, TransportError


class PageFetcher(Protocol):
    """Anything that turns a URL into the response body bytes."""

    def get(self, url: str) -> bytes:
        """Return the body of *url* or raise a :class:`FetchError`."""
        ...


class CurlPageFetcher:
    """Single-shot GET via curl_cffi; no retries, no fallback.

    A fresh session is opened per call and closed before returning, so
    the fetcher is safe to share between worker threads.
    """

    def __init__(
        self,
        timeout: int | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.logger = logging.getLogger("refurb_scraper.fetcher")
        self.settings = Settings()
        self.timeout = (
            timeout if timeout is not None
            else self.settings.REQUEST_TIMEOUT
        )
        self.headers: dict[str, str] = (
            headers if headers is not None
            else dict(self.settings.DEFAULT_HEADERS)
        )

    def get(self, url: str) -> bytes:
        """Fetch *url* and return its body on a 2xx status.

        Raises:
            TransportError: the request never produced a response.
            StatusError: the response status was not 2xx.
        """
        with curl_requests.Session(
            impersonate=self.settings.IMPERSONATE_BROWSER
        ) as session:
            try:
                resp = session.get(
                    url,
                    headers=self.headers,
                    timeout=self.timeout,
                )
            except CurlError as exc:
                raise TransportError(url, str(exc)) from exc

            if not 200 <= resp.status_code < 300:
                raise StatusError(
                    url, resp.status_code, str(resp.reason or "")
                )

            self.logger.debug(
                "[fetcher] HTTP %d, %d bytes from %s",
                resp.status_code,
                len(resp.content),
                url,
            )
            return bytes(resp.content)
