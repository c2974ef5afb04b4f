"""Base protocol and types for page sources.

A page source turns a URL into a parsed, navigable document. Two kinds
exist: the static HTTP source, which fetches the page itself, and the
provided source, which wraps a document captured by an interactive
browsing session. The pipeline treats both identically.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from blockmeta.core.exceptions import InvalidUrlError


# =============================================================================
# Data Types
# =============================================================================


@dataclass(frozen=True)
class ParsedPage:
    """A fetched page and its parsed document.

    Attributes:
        url: Current URL of the page (after redirects, if any).
        html: Raw HTML the document was parsed from.
        document: Navigable document tree handed to rule scripts.
        status_code: HTTP status for static fetches, None otherwise.
    """

    url: str
    html: str
    document: BeautifulSoup
    status_code: int | None = None


def parse_html(html: str) -> BeautifulSoup:
    """Parse HTML into a navigable document."""
    return BeautifulSoup(html or "", "html.parser")


def validate_url(url: str) -> str:
    """Check that ``url`` is a well-formed http(s) URL.

    Args:
        url: Candidate URL.

    Returns:
        The URL with surrounding whitespace removed.

    Raises:
        InvalidUrlError: If the URL is empty, not http(s), has no host or
            has a bad port.
    """
    if not isinstance(url, str) or not url.strip():
        raise InvalidUrlError(url if isinstance(url, str) else repr(url), "empty URL")

    url = url.strip()
    try:
        parsed = urlparse(url)
        # Raises for a non-numeric or out-of-range port.
        parsed.port
    except ValueError as e:
        raise InvalidUrlError(url, str(e)) from e

    if parsed.scheme not in ("http", "https"):
        raise InvalidUrlError(url, "scheme must be http or https")
    if not parsed.hostname:
        raise InvalidUrlError(url, "missing host")
    return url


# =============================================================================
# Protocol Definition
# =============================================================================


@runtime_checkable
class PageSource(Protocol):
    """Protocol for anything that can produce a ParsedPage for a URL."""

    async def fetch(self, url: str) -> ParsedPage:
        """Return the parsed page for ``url``.

        Raises:
            InvalidUrlError: If the URL is malformed (checked before any I/O).
            FetchError: If the page could not be retrieved.
        """
        ...
