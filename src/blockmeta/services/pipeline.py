"""The extraction pipeline.

Stages run strictly in sequence, each awaited before the next starts:

    locate URL -> match rule -> fetch page -> run script -> normalize
    -> resolve assets -> reconcile schema -> apply to block

``extract`` covers everything up to asset resolution and raises on fatal
errors. ``extract_into_block`` and ``extract_interactive`` run the whole
chain against a block and report exactly one terminal notification; they
never let a fatal error escape, and nothing is written to the block
unless extraction succeeded.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

import httpx
from loguru import logger

from blockmeta.app.protocols import HostProtocol, InteractiveSessionProtocol
from blockmeta.core.config import Config
from blockmeta.core.exceptions import (
    FATAL_ERRORS,
    FetchError,
    InvalidUrlError,
    NoMatchingRuleError,
    ScriptExecutionError,
    SessionClosedError,
)
from blockmeta.core.types import ExtractionResult, Rule
from blockmeta.extraction.registry import RuleRegistry, get_default_rule_registry
from blockmeta.extraction.sandbox import run_script
from blockmeta.metadata.assets import AssetResolution, AssetResolver
from blockmeta.metadata.normalize import format_properties
from blockmeta.sources.base import PageSource, ParsedPage, validate_url
from blockmeta.sources.http import HTTPDocumentSource
from blockmeta.sources.locator import find_url

from .applier import ApplyResult, BlockApplier

FAILURE_REASONS = {
    InvalidUrlError: "invalid_url",
    NoMatchingRuleError: "no_rule",
    FetchError: "fetch",
    ScriptExecutionError: "script",
}


@dataclass
class ExtractionOutcome:
    """Terminal result of one block extraction attempt.

    Attributes:
        success: Whether metadata was applied to the block.
        block_id: Target block.
        url: URL the extraction ran against, if one was found.
        result: Extraction result on success.
        applied: What the block applier changed on success.
        resolutions: Asset resolutions attempted during extraction.
        message: Human-readable summary, as notified to the user.
        reason: Failure category (``closed``, ``fetch``, ...), None on success.
    """

    success: bool
    block_id: int | str
    url: str = ""
    result: ExtractionResult | None = None
    applied: ApplyResult | None = None
    resolutions: list[AssetResolution] = field(default_factory=list)
    message: str = ""
    reason: str | None = None


class ExtractionPipeline:
    """Runs rule-driven extraction for URLs and blocks.

    Example:
        pipeline = ExtractionPipeline(Config.from_env(), host=my_host)
        outcome = await pipeline.extract_into_block(block_id)
        if not outcome.success:
            print(outcome.message)
        await pipeline.close()
    """

    def __init__(
        self,
        config: Config,
        host: HostProtocol,
        rules: RuleRegistry | Sequence[Rule] | None = None,
        source: PageSource | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            config: Application configuration.
            host: Host application capabilities.
            rules: Rule registry or ordered rules; built-in rules when None.
            source: Page source for static mode; HTTP when None.
            client: Optional shared HTTP client for page and asset downloads.
        """
        self._config = config
        self._host = host
        if rules is None:
            rules = get_default_rule_registry()
        elif not isinstance(rules, RuleRegistry):
            rules = RuleRegistry(rules)
        self._rules = rules
        self._source = source or HTTPDocumentSource(config.http, client=client)
        self._assets = AssetResolver(host, config.assets, client=client)
        self._applier = BlockApplier(host, config.applier)

    @property
    def rules(self) -> RuleRegistry:
        return self._rules

    @property
    def applier(self) -> BlockApplier:
        return self._applier

    async def close(self) -> None:
        """Release the page source's resources."""
        close = getattr(self._source, "close", None)
        if close is not None:
            await close()

    async def __aenter__(self) -> "ExtractionPipeline":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Extraction
    # -------------------------------------------------------------------------

    async def extract(
        self,
        url: str,
        page: ParsedPage | None = None,
        *,
        resolve_assets: bool = True,
    ) -> ExtractionResult:
        """Extract metadata for ``url``.

        Args:
            url: Target URL.
            page: Already-parsed page (interactive mode); fetched when None.
            resolve_assets: Upload image properties when the rule asks for it.

        Raises:
            InvalidUrlError, NoMatchingRuleError, FetchError,
            ScriptExecutionError: Extraction aborted.
        """
        result, _ = await self._extract(url, page, resolve_assets=resolve_assets)
        return result

    async def _extract(
        self,
        url: str,
        page: ParsedPage | None,
        *,
        resolve_assets: bool = True,
    ) -> tuple[ExtractionResult, list[AssetResolution]]:
        url = validate_url(url)
        rule = self._rules.match_or_raise(url)

        if page is None:
            page = await self._source.fetch(url)

        raw = run_script(rule, page.document, page.url)
        properties = format_properties(raw)

        resolutions: list[AssetResolution] = []
        if resolve_assets:
            properties, resolutions = await self._assets.resolve_properties(
                properties, rule, referer=page.url
            )

        logger.info(f"Extracted {len(properties)} properties from {page.url} with rule '{rule.name}'")
        return ExtractionResult(url=page.url, metadata=tuple(properties), rule=rule), resolutions

    async def extract_into_block(self, block_id: int | str) -> ExtractionOutcome:
        """Extract metadata for the URL in a block and apply it."""
        try:
            block = await self._host.get_block(block_id)
        except Exception as e:
            logger.exception(f"Reading block {block_id} failed")
            return await self._finish(
                ExtractionOutcome(
                    success=False,
                    block_id=block_id,
                    message=f"Failed to read block {block_id}: {e}",
                    reason="block",
                )
            )
        url = find_url(block.content) if block is not None else ""
        return await self._run(block_id, url)

    async def extract_url_into_block(self, block_id: int | str, url: str) -> ExtractionOutcome:
        """Extract metadata for an explicit URL and apply it to a block."""
        return await self._run(block_id, url)

    async def extract_interactive(
        self,
        block_id: int | str,
        session: InteractiveSessionProtocol,
    ) -> ExtractionOutcome:
        """Wait for the user to capture a page, then extract and apply it.

        Closing the session first yields a failed outcome with reason
        ``"closed"``.
        """
        try:
            page = await session.wait_for_page()
        except SessionClosedError as e:
            logger.info(f"Interactive extraction for block {block_id} abandoned: {e}")
            return await self._finish(
                ExtractionOutcome(
                    success=False,
                    block_id=block_id,
                    message=f"Extraction cancelled: {e}",
                    reason="closed",
                )
            )
        return await self._run(block_id, page.url, page)

    async def _run(
        self,
        block_id: int | str,
        url: str,
        page: ParsedPage | None = None,
    ) -> ExtractionOutcome:
        try:
            if not url:
                raise InvalidUrlError("", "no URL found in block")
            result, resolutions = await self._extract(url, page)
        except FATAL_ERRORS as e:
            logger.warning(f"Extraction for block {block_id} failed: {e}")
            return await self._finish(
                ExtractionOutcome(
                    success=False,
                    block_id=block_id,
                    url=url,
                    message=str(e),
                    reason=FAILURE_REASONS.get(type(e), "error"),
                )
            )

        try:
            applied = await self._applier.apply(block_id, result.rule, result.metadata)
        except Exception as e:
            logger.exception(f"Applying metadata to block {block_id} failed")
            return await self._finish(
                ExtractionOutcome(
                    success=False,
                    block_id=block_id,
                    url=result.url,
                    result=result,
                    resolutions=resolutions,
                    message=f"Failed to apply metadata: {e}",
                    reason="apply",
                )
            )

        label = applied.title or result.url
        return await self._finish(
            ExtractionOutcome(
                success=True,
                block_id=block_id,
                url=result.url,
                result=result,
                applied=applied,
                resolutions=resolutions,
                message=f"Added {result.rule.tag_name} metadata for {label}",
            )
        )

    async def _finish(self, outcome: ExtractionOutcome) -> ExtractionOutcome:
        level = "success" if outcome.success else "error"
        try:
            await self._host.notify(level, outcome.message)
        except Exception as e:
            logger.warning(f"Notification failed: {e}")
        return outcome
