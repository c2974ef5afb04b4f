"""Generic page metadata.

Builds the ``base_meta`` properties every rule script receives: the
cleaned link, a title and a cover image taken from standard meta tags.
A rule whose script simply returns ``base_meta`` works on any page.
"""

from __future__ import annotations

from urllib.parse import urlsplit, urlunsplit

from bs4 import BeautifulSoup

from blockmeta.core.types import Property, PropertyType

IMAGE_SUBTYPE = "image"


def clean_url(url: str) -> str:
    """Strip the query string and fragment from a URL."""
    parts = urlsplit(url or "")
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


def _meta_content(document: BeautifulSoup, **attrs: str) -> str:
    tag = document.find("meta", attrs=attrs)
    if tag is None:
        return ""
    return (tag.get("content") or "").strip()


def extract_title(document: BeautifulSoup) -> str:
    """``og:title``, else ``<title>`` text, else empty."""
    title = _meta_content(document, property="og:title")
    if title:
        return title
    if document.title is not None:
        return document.title.get_text(strip=True)
    return ""


def extract_cover(document: BeautifulSoup) -> str:
    """``og:image`` (as property or name), else the page icon, else empty."""
    cover = _meta_content(document, property="og:image") or _meta_content(
        document, name="og:image"
    )
    if cover:
        return cover

    for link in document.find_all("link", href=True):
        rel = link.get("rel") or []
        if isinstance(rel, str):
            rel = rel.split()
        if "icon" in (r.lower() for r in rel):
            return link["href"].strip()
    return ""


def base_meta(document: BeautifulSoup, url: str) -> list[Property]:
    """Generic link/title/cover properties for a page."""
    return [
        Property(name="link", type=PropertyType.TEXT, value=clean_url(url)),
        Property(name="title", type=PropertyType.TEXT, value=extract_title(document)),
        Property(
            name="cover",
            type=PropertyType.TEXT,
            value=extract_cover(document),
            type_args={"subType": IMAGE_SUBTYPE},
        ),
    ]
