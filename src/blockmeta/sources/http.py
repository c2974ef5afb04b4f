"""HTTP/HTTPS page source.

Fetches a single page with browser-like headers and parses it into a
navigable document. Exactly one request is made per fetch; retry policy
belongs to the caller.
"""

from __future__ import annotations

import httpx
from loguru import logger

from blockmeta.core.config import HTTPConfig
from blockmeta.core.exceptions import FetchError, InvalidUrlError

from .base import ParsedPage, parse_html, validate_url


class HTTPDocumentSource:
    """Static-mode page source backed by ``httpx``.

    Example:
        async with HTTPDocumentSource(HTTPConfig()) as source:
            page = await source.fetch("https://book.douban.com/subject/1234567/")
            print(page.document.title)
    """

    def __init__(
        self,
        config: HTTPConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize HTTP source.

        Args:
            config: Fetch configuration (headers, timeout, cookies).
            client: Optional shared client. A client passed in is not closed
                by this source.
        """
        self._config = config or HTTPConfig()
        self._client = client
        self._owns_client = client is None

    @property
    def config(self) -> HTTPConfig:
        return self._config

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._config.timeout_seconds,
                follow_redirects=self._config.follow_redirects,
                headers=self._config.headers(),
                cookies=self._config.cookies,
            )
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """Close HTTP client if this source created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> "HTTPDocumentSource":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def fetch(self, url: str, referer: str | None = None) -> ParsedPage:
        """Fetch and parse a page.

        Args:
            url: Page URL, validated before any network I/O.
            referer: Optional Referer overriding the configured one.

        Returns:
            ParsedPage with the final URL after redirects.

        Raises:
            InvalidUrlError: If the URL is malformed.
            FetchError: On network failure or a non-2xx response.
        """
        url = validate_url(url)
        client = await self._get_client()

        headers = self._config.headers()
        if referer:
            headers["Referer"] = referer

        logger.debug(f"Fetching {url}")
        try:
            response = await client.get(url, headers=headers)
        except httpx.TimeoutException as e:
            raise FetchError(url, f"Request timed out: {e}") from e
        except httpx.RequestError as e:
            raise FetchError(url, str(e) or type(e).__name__) from e
        except httpx.InvalidURL as e:
            raise InvalidUrlError(url, str(e)) from e

        if not response.is_success:
            raise FetchError(
                url,
                f"HTTP {response.status_code}: {response.reason_phrase}",
                status_code=response.status_code,
            )

        html = response.text
        logger.debug(f"Fetched {url}: {len(html)} chars, HTTP {response.status_code}")

        return ParsedPage(
            url=str(response.url),
            html=html,
            document=parse_html(html),
            status_code=response.status_code,
        )
