"""Service container for dependency injection and lifecycle management."""

from __future__ import annotations

import httpx
from loguru import logger

from ..app.protocols import HostProtocol
from ..core.config import Config
from ..extraction.registry import RuleRegistry, get_default_rule_registry
from ..sources.douban import DoubanSearch
from ..sources.http import HTTPDocumentSource
from ..store.memory import InMemoryHost
from .pipeline import ExtractionPipeline


class ServiceContainer:
    """Manages service lifecycle and shared resources.

    Owns one HTTP client shared by page fetches, asset downloads and
    search, and builds the pipeline and helpers lazily on first access.

    Usage as context manager (recommended):

        async with ServiceContainer(config, host=my_host) as services:
            outcome = await services.pipeline.extract_into_block(block_id)

    Attributes:
        config: Application configuration.
        host: Host application; an InMemoryHost when none is given.
    """

    def __init__(self, config: Config, host: HostProtocol | None = None):
        """Initialize container with configuration.

        Args:
            config: Application configuration.
            host: Host application capabilities.
        """
        self.config = config
        self.host = host if host is not None else InMemoryHost()
        self._client: httpx.AsyncClient | None = None

        # Lazy-initialized services
        self._rules: RuleRegistry | None = None
        self._source: HTTPDocumentSource | None = None
        self._pipeline: ExtractionPipeline | None = None
        self._search: DoubanSearch | None = None

    def connect(self) -> None:
        """Open the shared HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.config.http.timeout_seconds,
                follow_redirects=self.config.http.follow_redirects,
                headers=self.config.http.headers(),
                cookies=self.config.http.cookies,
            )
            logger.debug("ServiceContainer opened HTTP client")

    async def close(self) -> None:
        """Close all connections and release resources."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.debug("ServiceContainer closed")

    async def __aenter__(self) -> "ServiceContainer":
        """Async context manager entry."""
        self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    @property
    def rules(self) -> RuleRegistry:
        """Rules from ``config.rules_path``, or the built-in rules."""
        if self._rules is None:
            if self.config.rules_path is not None:
                self._rules = RuleRegistry.from_file(self.config.rules_path)
                logger.debug(f"Using rules from {self.config.rules_path}")
            else:
                self._rules = get_default_rule_registry()
        return self._rules

    @property
    def source(self) -> HTTPDocumentSource:
        """Get or create the static page source."""
        if self._source is None:
            self.connect()
            self._source = HTTPDocumentSource(self.config.http, client=self._client)
        return self._source

    @property
    def pipeline(self) -> ExtractionPipeline:
        """Get or create the extraction pipeline."""
        if self._pipeline is None:
            self._pipeline = ExtractionPipeline(
                self.config,
                host=self.host,
                rules=self.rules,
                source=self.source,
                client=self._client,
            )
        return self._pipeline

    @property
    def search(self) -> DoubanSearch:
        """Get or create the Douban keyword search."""
        if self._search is None:
            self._search = DoubanSearch(self.source)
        return self._search
