# src/scrapers/blob_extractor.py

"""Locate and repair the bootstrap JSON embedded in a listing page.

Listing pages carry their product grid as a script assignment::

    window.REFURB_GRID_BOOTSTRAP = { ... "tiles": [ ... ] };

The assignment is matched on the page with every whitespace character
removed, using a non-greedy capture that stops at the first ``};``.
That terminator swallows the object's closing brace, so exactly one
``}`` is appended to the capture.  If the markup ever ends the object
differently (zero or two braces consumed) the fragment stops being
valid JSON and the decode stage reports it; nothing here guesses.
"""

import re

from bs4 import UnicodeDammit

from src.config.settings import Settings
from src.scrapers.errors import CannotMatchRegexError


def _bootstrap_pattern(variable: str) -> re.Pattern[str]:
    """Compile the marker pattern for a whitespace-free page."""
    return re.compile(
        r"window\." + re.escape(variable) + r"=(.+?)};"
    )


_DEFAULT_PATTERN = _bootstrap_pattern(Settings.BOOTSTRAP_VARIABLE)


def decode_page(page: bytes) -> str:
    """Decode raw page bytes to text, sniffing the charset."""
    dammit = UnicodeDammit(page, ["utf-8"], is_html=True)
    if dammit.unicode_markup is None:
        return page.decode("utf-8", errors="replace")
    return str(dammit.unicode_markup)


def extract(page: bytes, variable: str | None = None) -> str:
    """Return the bootstrap object of *page* as a JSON string.

    Boundaries come from the whitespace-free text; the captured span
    is then cut from the original text so string values keep their
    spaces.

    Raises:
        CannotMatchRegexError: the page has no bootstrap assignment.
    """
    pattern = (
        _DEFAULT_PATTERN if variable is None
        else _bootstrap_pattern(variable)
    )
    text = decode_page(page)

    # Index of every kept character in the original text
    kept = [i for i, ch in enumerate(text) if not ch.isspace()]
    normalized = "".join(text[i] for i in kept)

    match = pattern.search(normalized)
    if match is None or not match.group(1):
        raise CannotMatchRegexError()

    start = kept[match.start(1)]
    end = kept[match.end(1) - 1] + 1
    return text[start:end] + "}"
