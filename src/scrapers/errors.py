# src/scrapers/errors.py

"""Exception hierarchy for the fetch, extract and decode stages."""


class ScrapeError(Exception):
    """Base class for every per-task scraping failure."""


# --- Fetch stage ---


class FetchError(ScrapeError):
    """The page could not be retrieved."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__(f"{message} ({url})")
        self.url = url


class TransportError(FetchError):
    """DNS, connection or timeout failure before a response arrived."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(url, f"transport error: {reason}")
        self.reason = reason


class StatusError(FetchError):
    """The server answered with a non-success status code."""

    def __init__(self, url: str, code: int, reason: str = "") -> None:
        super().__init__(url, f"status code error: {code} {reason}".rstrip())
        self.code = code
        self.reason = reason


# --- Extract stage ---


class ExtractError(ScrapeError):
    """The embedded data blob could not be located in the page."""


class CannotMatchRegexError(ExtractError):
    """The page has no ``window.<VAR>=...};`` bootstrap assignment.

    Kept distinct from :class:`DecodeError` so callers can tell a page
    without embedded data apart from one whose data is malformed.
    """

    def __init__(self, message: str = "cannot match regex") -> None:
        super().__init__(message)


# --- Decode stage ---


class DecodeError(ScrapeError):
    """The extracted fragment is not valid JSON or has the wrong shape."""

    def __init__(self, message: str, path: str = "") -> None:
        super().__init__(f"{message} at {path}" if path else message)
        self.path = path
