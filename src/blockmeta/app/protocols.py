"""Protocol definitions for the host note-taking application.

The pipeline never talks to a concrete note app. Everything it needs from
the host (block storage, tag insertion, asset upload, notifications) is
expressed here as Protocol types so that services depend on interfaces
and tests can pass in-memory fakes.

Example:
    class MyHost:
        async def get_block(self, block_id): ...
        async def insert_tag(self, block_id, tag_name, properties): ...
        ...

    pipeline = ExtractionPipeline(config, host=MyHost(), rules=registry)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, Sequence, runtime_checkable

if TYPE_CHECKING:
    from ..core.types import Block, Property
    from ..sources.base import ParsedPage


@runtime_checkable
class BlockStoreProtocol(Protocol):
    """Block storage and tag primitives."""

    async def get_block(self, block_id: int | str) -> "Block | None":
        """Return the block, or None if it does not exist."""
        ...

    async def set_block_properties(
        self, block_id: int | str, properties: Sequence["Property"]
    ) -> None:
        """Add or replace the named properties of a block in one command."""
        ...

    async def insert_tag(
        self, block_id: int | str, tag_name: str, properties: Sequence["Property"]
    ) -> int | str | None:
        """Apply a tag with values to a block.

        Returns:
            Id of the block that owns the tag's schema, if any.
        """
        ...

    async def set_block_content(
        self, block_id: int | str, content: Sequence[dict[str, Any]]
    ) -> None:
        """Replace a block's inline content."""
        ...


@runtime_checkable
class AssetStoreProtocol(Protocol):
    """Asset upload primitives."""

    async def upload_asset_from_url(self, url: str) -> str | None:
        """Upload a remote resource by reference. Returns the asset URL."""
        ...

    async def upload_asset_from_bytes(self, mime_type: str, data: bytes) -> str | None:
        """Upload raw bytes. Returns the asset URL."""
        ...


@runtime_checkable
class NotifierProtocol(Protocol):
    """User-facing notifications."""

    async def notify(self, level: str, message: str) -> None:
        """Show a message. ``level`` is ``"success"``, ``"info"`` or ``"error"``."""
        ...


@runtime_checkable
class HostProtocol(BlockStoreProtocol, AssetStoreProtocol, NotifierProtocol, Protocol):
    """Everything the pipeline consumes from the host application."""

    pass


@runtime_checkable
class InteractiveSessionProtocol(Protocol):
    """A browsing session the user drives to the target page.

    ``wait_for_page`` resolves when the user asks for extraction and raises
    ``SessionClosedError`` if the session is closed first.
    """

    async def wait_for_page(self) -> "ParsedPage":
        ...
