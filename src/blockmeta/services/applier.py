"""Commit extracted properties onto a block."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from loguru import logger

from blockmeta.app.protocols import BlockStoreProtocol
from blockmeta.core.config import ApplierConfig
from blockmeta.core.exceptions import SchemaSyncError
from blockmeta.core.types import Property, Rule
from blockmeta.metadata.schema import SchemaReconciler


@dataclass
class ApplyResult:
    """What the applier changed.

    Attributes:
        tag_block_id: Block owning the tag schema, if the host returned one.
        schema_changes: Schema definitions written by the reconciler.
        title: Text written as the block content, if any.
        warnings: Non-fatal problems (schema sync, content update).
    """

    tag_block_id: int | str | None = None
    schema_changes: list[Property] = field(default_factory=list)
    title: str | None = None
    warnings: list[str] = field(default_factory=list)


def find_title(properties: Sequence[Property], name: str = "title") -> str:
    """Value of the property called ``name`` as stripped text, or empty."""
    for prop in properties:
        if prop.name == name and prop.value is not None:
            return str(prop.value).strip()
    return ""


class BlockApplier:
    """Applies a rule's tag and properties to a block.

    Steps, in order: insert the tag with its values, reconcile the tag's
    schema, then replace the block text with the bracketed title.
    """

    def __init__(
        self,
        store: BlockStoreProtocol,
        config: ApplierConfig | None = None,
        reconciler: SchemaReconciler | None = None,
    ) -> None:
        self._store = store
        self._config = config or ApplierConfig()
        self._reconciler = reconciler or SchemaReconciler(store)

    @property
    def reconciler(self) -> SchemaReconciler:
        return self._reconciler

    def format_title(self, title: str) -> str:
        left, right = self._config.title_brackets
        return f"{left}{title}{right}"

    async def apply(
        self,
        block_id: int | str,
        rule: Rule,
        properties: Sequence[Property],
    ) -> ApplyResult:
        """Tag ``block_id`` and fill in its properties.

        Errors from tag insertion propagate; schema and content failures
        are logged and recorded as warnings.
        """
        result = ApplyResult()

        tag_block_id = await self._store.insert_tag(block_id, rule.tag_name, properties)
        result.tag_block_id = tag_block_id
        logger.debug(f"Applied tag '{rule.tag_name}' to block {block_id}")

        if tag_block_id is not None:
            try:
                result.schema_changes = await self._reconciler.reconcile(tag_block_id, properties)
            except SchemaSyncError as e:
                logger.warning(str(e))
                result.warnings.append(str(e))

        title = find_title(properties, rule.title_property)
        if title:
            text = self.format_title(title)
            try:
                await self._store.set_block_content(block_id, [{"t": "t", "v": text}])
                result.title = text
            except Exception as e:
                logger.warning(f"Failed to set content of block {block_id}: {e}")
                result.warnings.append(f"content update failed: {e}")

        return result
