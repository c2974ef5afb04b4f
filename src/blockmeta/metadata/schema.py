"""Merge extracted properties into a tag's property schema.

A tag schema only grows: unknown property names are added, and new
TextChoices options are appended to the existing choice list. Existing
fields are never removed or retyped, so reconciling the same properties
twice changes nothing the second time.
"""

from __future__ import annotations

import asyncio
import copy
import weakref
from typing import Iterable, Sequence

from loguru import logger

from blockmeta.app.protocols import BlockStoreProtocol
from blockmeta.core.exceptions import SchemaSyncError
from blockmeta.core.types import Choice, Property, PropertyType

MULTI_SUBTYPE = "multi"


def _schema_entry(prop: Property) -> Property:
    """Schema definition for a new property (no value)."""
    return Property(
        name=prop.name,
        type=prop.type,
        value=None,
        type_args=copy.deepcopy(prop.type_args),
    )


def _merge_choices(existing: Property, new: Property) -> Property | None:
    """Existing TextChoices definition extended with new options, or None."""
    known = set(existing.choice_names())
    added: list[str] = []
    for name in new.choice_names():
        if name not in known:
            known.add(name)
            added.append(name)
    if not added:
        return None

    type_args = copy.deepcopy(existing.type_args)
    choices = list(type_args.get("choices") or [])
    choices.extend(Choice(name).to_dict() for name in added)
    type_args["choices"] = choices
    type_args["subType"] = MULTI_SUBTYPE
    return Property(name=existing.name, type=existing.type, value=existing.value, type_args=type_args)


def plan_schema_changes(
    existing: Sequence[Property],
    properties: Iterable[Property],
) -> list[Property]:
    """Compute the schema updates needed to accommodate ``properties``.

    Args:
        existing: Current schema of the tag block (names unique).
        properties: Newly formatted properties of one extraction.

    Returns:
        Property definitions to add or replace; empty when the schema
        already covers everything.
    """
    current = {prop.name: prop for prop in existing}
    staged: dict[str, Property] = {}

    for prop in properties:
        base = staged.get(prop.name) or current.get(prop.name)
        if base is None:
            staged[prop.name] = _schema_entry(prop)
            continue

        if base.type == PropertyType.TEXT_CHOICES and prop.type == PropertyType.TEXT_CHOICES:
            merged = _merge_choices(base, prop)
            if merged is not None:
                staged[prop.name] = merged
        # Any other collision leaves the existing definition alone.

    return list(staged.values())


class SchemaReconciler:
    """Applies planned schema changes to tag blocks through the host.

    Reconciliation of one tag block is serialised with a per-block lock so
    that concurrent extractions in this process cannot lose each other's
    updates between the read and the write.
    """

    def __init__(self, store: BlockStoreProtocol) -> None:
        self._store = store
        # Entries vanish once no reconcile holds or waits on the lock.
        self._locks: weakref.WeakValueDictionary[int | str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _lock(self, tag_block_id: int | str) -> asyncio.Lock:
        lock = self._locks.get(tag_block_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[tag_block_id] = lock
        return lock

    async def reconcile(
        self,
        tag_block_id: int | str,
        properties: Sequence[Property],
    ) -> list[Property]:
        """Bring a tag block's schema up to date with ``properties``.

        Returns:
            The staged changes that were written (empty if none).

        Raises:
            SchemaSyncError: If the tag block is missing or the host fails.
        """
        async with self._lock(tag_block_id):
            try:
                block = await self._store.get_block(tag_block_id)
            except Exception as e:
                raise SchemaSyncError(tag_block_id, f"cannot read tag block: {e}") from e
            if block is None:
                raise SchemaSyncError(tag_block_id, "tag block not found")

            changes = plan_schema_changes(block.properties, properties)
            if not changes:
                logger.debug(f"Schema of tag block {tag_block_id} is up to date")
                return []

            try:
                await self._store.set_block_properties(tag_block_id, changes)
            except Exception as e:
                raise SchemaSyncError(tag_block_id, f"update failed: {e}") from e

            logger.info(
                f"Updated schema of tag block {tag_block_id}: "
                f"{', '.join(prop.name for prop in changes)}"
            )
            return changes
