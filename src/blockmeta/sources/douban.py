"""Douban book search helpers.

Resolves a free-text keyword to a book subject page, which the pipeline
can then extract like any other URL.
"""

from __future__ import annotations

import re
from urllib.parse import quote, urljoin

from loguru import logger

from .base import ParsedPage
from .http import HTTPDocumentSource

SEARCH_URL = "https://search.douban.com/book/subject_search"
SEARCH_REFERER = "https://www.douban.com/"
BOOK_CATEGORY = "1001"

SUBJECT_URL_PATTERN = re.compile(r"https?://book\.douban\.com/subject/(\d+)/?")


def build_search_url(keyword: str) -> str:
    """Build the Douban book search URL for a keyword."""
    return f"{SEARCH_URL}?search_text={quote(keyword.strip(), safe='')}&cat={BOOK_CATEGORY}"


def is_subject_url(url: str) -> bool:
    """Return True if ``url`` is a Douban book detail page."""
    return bool(SUBJECT_URL_PATTERN.match(url or ""))


def find_subject_urls(page: ParsedPage) -> list[str]:
    """Collect book subject links from a search result page, in page order.

    Links are canonicalised to ``https://book.douban.com/subject/<id>/``.
    """
    urls: list[str] = []
    for anchor in page.document.find_all("a", href=True):
        href = urljoin(page.url, anchor["href"])
        match = SUBJECT_URL_PATTERN.search(href)
        if not match:
            continue
        url = f"https://book.douban.com/subject/{match.group(1)}/"
        if url not in urls:
            urls.append(url)

    # Search results are rendered client side; the subject links also
    # appear inside the embedded JSON payload.
    if not urls:
        for match in SUBJECT_URL_PATTERN.finditer(page.html.replace("\\/", "/")):
            url = f"https://book.douban.com/subject/{match.group(1)}/"
            if url not in urls:
                urls.append(url)
    return urls


class DoubanSearch:
    """Keyword search against Douban books."""

    def __init__(self, source: HTTPDocumentSource) -> None:
        self._source = source

    async def subject_urls(self, keyword: str) -> list[str]:
        """Return subject URLs for ``keyword``, best match first.

        Raises:
            FetchError: If the search page could not be retrieved.
        """
        url = build_search_url(keyword)
        page = await self._source.fetch(url, referer=SEARCH_REFERER)
        urls = find_subject_urls(page)
        logger.debug(f"Douban search '{keyword}': {len(urls)} subjects")
        return urls

    async def first_subject_url(self, keyword: str) -> str | None:
        urls = await self.subject_urls(keyword)
        return urls[0] if urls else None
