"""In-memory host implementation.

Keeps blocks, tags and uploaded assets in dictionaries. Used by the CLI
for dry runs, where nothing should reach a real note app, and handy as a
reference for writing a host adapter.
"""

from __future__ import annotations

import copy
import hashlib
import itertools
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from loguru import logger

from blockmeta.core.types import Block, ContentItem, Property


@dataclass
class Notification:
    level: str
    message: str


@dataclass
class InMemoryHost:
    """Host whose state lives in this object.

    Attributes:
        blocks: Blocks by id.
        tags: Tag block id by tag name.
        block_tags: Tag values applied to each block, by tag name.
        assets: Uploaded asset bytes (or source URL) by asset URL.
        notifications: Notifications in the order they were sent.
        upload_by_reference: Whether ``upload_asset_from_url`` succeeds.
    """

    blocks: dict[int | str, Block] = field(default_factory=dict)
    tags: dict[str, int | str] = field(default_factory=dict)
    block_tags: dict[int | str, dict[str, list[Property]]] = field(default_factory=dict)
    assets: dict[str, bytes | str] = field(default_factory=dict)
    notifications: list[Notification] = field(default_factory=list)
    upload_by_reference: bool = True
    _ids: Any = field(default_factory=lambda: itertools.count(1000))

    def add_block(
        self,
        content: Sequence[ContentItem | Mapping[str, Any]] = (),
        block_id: int | str | None = None,
    ) -> Block:
        """Create a block from inline content and return it."""
        items = [
            item if isinstance(item, ContentItem) else ContentItem(**item)
            for item in content
        ]
        block = Block(id=block_id if block_id is not None else next(self._ids), content=items)
        self.blocks[block.id] = block
        return block

    async def get_block(self, block_id: int | str) -> Block | None:
        block = self.blocks.get(block_id)
        return copy.deepcopy(block) if block is not None else None

    async def set_block_properties(
        self, block_id: int | str, properties: Sequence[Property]
    ) -> None:
        block = self.blocks.get(block_id)
        if block is None:
            raise KeyError(f"Block {block_id} not found")
        by_name = {prop.name: i for i, prop in enumerate(block.properties)}
        for prop in properties:
            prop = copy.deepcopy(prop)
            if prop.name in by_name:
                block.properties[by_name[prop.name]] = prop
            else:
                by_name[prop.name] = len(block.properties)
                block.properties.append(prop)

    async def insert_tag(
        self, block_id: int | str, tag_name: str, properties: Sequence[Property]
    ) -> int | str | None:
        if block_id not in self.blocks:
            raise KeyError(f"Block {block_id} not found")
        tag_id = self.tags.get(tag_name)
        if tag_id is None:
            tag_block = self.add_block([ContentItem(t="t", v=tag_name)])
            tag_id = self.tags[tag_name] = tag_block.id
            logger.debug(f"Created tag block {tag_id} for '{tag_name}'")
        self.block_tags.setdefault(block_id, {})[tag_name] = copy.deepcopy(list(properties))
        return tag_id

    async def set_block_content(
        self, block_id: int | str, content: Sequence[Mapping[str, Any]]
    ) -> None:
        block = self.blocks.get(block_id)
        if block is None:
            raise KeyError(f"Block {block_id} not found")
        block.content = [ContentItem(**item) for item in content]

    async def upload_asset_from_url(self, url: str) -> str | None:
        if not self.upload_by_reference:
            return None
        asset = f"assets/{hashlib.sha256(url.encode()).hexdigest()[:16]}"
        self.assets[asset] = url
        return asset

    async def upload_asset_from_bytes(self, mime_type: str, data: bytes) -> str | None:
        extension = mime_type.split("/")[-1] or "bin"
        asset = f"assets/{hashlib.sha256(data).hexdigest()[:16]}.{extension}"
        self.assets[asset] = data
        return asset

    async def notify(self, level: str, message: str) -> None:
        self.notifications.append(Notification(level, message))
        logger.info(f"[{level}] {message}")

    def tag_schema(self, tag_name: str) -> list[Property]:
        """Current schema of a tag, empty if the tag does not exist."""
        tag_id = self.tags.get(tag_name)
        if tag_id is None:
            return []
        return list(self.blocks[tag_id].properties)
