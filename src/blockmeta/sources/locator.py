"""Find the URL a block points at."""

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping

from blockmeta.core.types import ContentItem

URL_PATTERN = re.compile(r"https?://[^\s]+")

LINK_ITEM = "a"


def _field(item: ContentItem | Mapping[str, Any], name: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


def find_url(content: Iterable[ContentItem | Mapping[str, Any]] | None) -> str:
    """Return the first URL found in a block's inline content.

    An explicit link item wins over a URL embedded in plain text, wherever
    it appears in the content.

    Args:
        content: Ordered inline items, as ContentItem or ``{"t", "v", "url"}`` dicts.

    Returns:
        The URL, or an empty string if none was found.
    """
    items = list(content or [])

    for item in items:
        if _field(item, "t") == LINK_ITEM:
            url = _field(item, "url")
            if isinstance(url, str) and url.strip():
                return url.strip()

    for item in items:
        text = _field(item, "v")
        if not isinstance(text, str):
            continue
        match = URL_PATTERN.search(text)
        if match:
            return match.group(0)

    return ""
