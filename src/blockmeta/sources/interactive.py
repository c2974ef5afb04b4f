"""Interactive-mode page sources.

In interactive mode the user navigates a browsing session to the target
page and the session hands over the current document. Once handed over,
the document goes through the same pipeline as a static fetch.
"""

from __future__ import annotations

import asyncio

from bs4 import BeautifulSoup
from loguru import logger

from blockmeta.core.exceptions import FetchError, SessionClosedError

from .base import ParsedPage, parse_html, validate_url


def page_from_document(url: str, document: str | BeautifulSoup) -> ParsedPage:
    """Wrap a caller-supplied document as a ParsedPage.

    Args:
        url: Current URL of the session.
        document: Raw HTML or an already-parsed document.

    Raises:
        InvalidUrlError: If ``url`` is malformed.
    """
    url = validate_url(url)
    if isinstance(document, BeautifulSoup):
        return ParsedPage(url=url, html=str(document), document=document)
    return ParsedPage(url=url, html=document, document=parse_html(document))


class ProvidedDocumentSource:
    """Page source that serves documents captured elsewhere.

    Documents are registered per URL; fetching an unknown URL falls back to
    the optional ``fallback`` source.
    """

    def __init__(self, fallback=None) -> None:
        self._pages: dict[str, ParsedPage] = {}
        self._fallback = fallback

    def provide(self, url: str, document: str | BeautifulSoup) -> ParsedPage:
        page = page_from_document(url, document)
        self._pages[page.url] = page
        return page

    async def fetch(self, url: str) -> ParsedPage:
        url = validate_url(url)
        page = self._pages.get(url)
        if page is not None:
            return page
        if self._fallback is None:
            raise FetchError(url, "no document provided")
        return await self._fallback.fetch(url)


class CapturedSession:
    """In-process interactive session driven by callbacks.

    A front end calls ``capture`` when the user clicks "extract" and
    ``close`` when the user dismisses the window. ``wait_for_page``
    resolves with whichever happens first.
    """

    def __init__(self) -> None:
        self._future: asyncio.Future[ParsedPage] | None = None

    def _get_future(self) -> "asyncio.Future[ParsedPage]":
        if self._future is None:
            self._future = asyncio.get_running_loop().create_future()
        return self._future

    @property
    def done(self) -> bool:
        return self._future is not None and self._future.done()

    def capture(self, url: str, document: str | BeautifulSoup) -> None:
        """Hand over the document currently shown in the session."""
        future = self._get_future()
        if future.done():
            logger.debug("Session already settled, ignoring capture")
            return
        future.set_result(page_from_document(url, document))

    def close(self) -> None:
        """Abandon the session."""
        future = self._get_future()
        if not future.done():
            future.set_exception(SessionClosedError("Window closed before extraction"))

    async def wait_for_page(self) -> ParsedPage:
        return await self._get_future()
