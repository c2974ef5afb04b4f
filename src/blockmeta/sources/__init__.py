"""Page sources for blockmeta.

Quick Start
-----------
Fetch a page statically:

    from blockmeta.sources import HTTPDocumentSource

    async with HTTPDocumentSource() as source:
        page = await source.fetch("https://book.douban.com/subject/1234567/")

Or wrap a document captured by an interactive session:

    from blockmeta.sources import page_from_document

    page = page_from_document(current_url, html)

Both produce a ``ParsedPage`` that the extraction pipeline consumes.
"""

from .base import PageSource, ParsedPage, parse_html, validate_url
from .douban import (
    DoubanSearch,
    build_search_url,
    find_subject_urls,
    is_subject_url,
)
from .http import HTTPDocumentSource
from .interactive import CapturedSession, ProvidedDocumentSource, page_from_document
from .locator import find_url

__all__ = [
    "PageSource",
    "ParsedPage",
    "parse_html",
    "validate_url",
    "HTTPDocumentSource",
    "ProvidedDocumentSource",
    "CapturedSession",
    "page_from_document",
    "find_url",
    "DoubanSearch",
    "build_search_url",
    "find_subject_urls",
    "is_subject_url",
]
