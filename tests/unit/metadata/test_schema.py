"""Tests for tag schema reconciliation."""

import asyncio
import gc

import pytest

from blockmeta.core.exceptions import SchemaSyncError
from blockmeta.core.types import Property, PropertyType
from blockmeta.metadata import SchemaReconciler, format_property, plan_schema_changes


def choices(name, *values):
    return format_property(Property(name, PropertyType.TEXT_CHOICES, list(values)))


def schema_choices(name, *values):
    return Property(
        name,
        PropertyType.TEXT_CHOICES,
        None,
        {"choices": [{"name": v, "color": ""} for v in values], "subType": "multi"},
    )


def schema_of(host, tag_id):
    return {prop.name: prop for prop in host.blocks[tag_id].properties}


class TestPlanSchemaChanges:
    """Tests for plan_schema_changes."""

    def test_new_property_added_without_value(self):
        """Unknown names are staged as definitions."""
        changes = plan_schema_changes([], [Property("title", PropertyType.TEXT, "局外人")])
        assert changes == [Property("title", PropertyType.TEXT, None)]

    def test_choices_merged(self):
        """New options are appended to existing choices in one update."""
        existing = [schema_choices("genre", "fiction")]
        new = format_property(Property("genre", PropertyType.TEXT_CHOICES, "fiction nonfiction"))

        changes = plan_schema_changes(existing, [new])

        assert len(changes) == 1
        assert changes[0].choice_names() == ["fiction", "nonfiction"]

    def test_existing_choice_colors_kept(self):
        """Existing choice entries are preserved as they are."""
        existing = [
            Property("genre", PropertyType.TEXT_CHOICES, None,
                     {"choices": [{"name": "fiction", "color": "#f00"}]})
        ]
        changes = plan_schema_changes(existing, [choices("genre", "poetry")])
        assert changes[0].type_args["choices"] == [
            {"name": "fiction", "color": "#f00"},
            {"name": "poetry", "color": ""},
        ]
        assert changes[0].type_args["subType"] == "multi"

    def test_nothing_new(self):
        """Known names and known choices stage nothing."""
        existing = [Property("title", PropertyType.TEXT), schema_choices("genre", "fiction")]
        props = [Property("title", PropertyType.TEXT, "x"), choices("genre", "fiction")]
        assert plan_schema_changes(existing, props) == []

    def test_type_conflict_left_alone(self):
        """An existing definition is never retyped."""
        existing = [Property("rating", PropertyType.TEXT)]
        assert plan_schema_changes(existing, [Property("rating", PropertyType.NUMBER, 9.1)]) == []

    def test_existing_not_mutated(self):
        """Planning does not modify the existing schema."""
        existing = [schema_choices("genre", "fiction")]
        plan_schema_changes(existing, [choices("genre", "poetry")])
        assert existing[0].choice_names() == ["fiction"]


class TestSchemaReconciler:
    """Tests for SchemaReconciler."""

    @pytest.fixture
    def tag_id(self, host):
        return host.add_block([{"t": "t", "v": "Book"}]).id

    @pytest.mark.asyncio
    async def test_single_batched_write(self, host, tag_id):
        """All changes go out in one update."""
        props = [Property("title", PropertyType.TEXT, "x"), choices("author", "加缪")]

        changes = await SchemaReconciler(host).reconcile(tag_id, props)

        assert [p.name for p in changes] == ["title", "author"]
        assert len(host.calls_to("set_block_properties")) == 1

    @pytest.mark.asyncio
    async def test_idempotent(self, host, tag_id):
        """A second reconciliation with the same input writes nothing."""
        reconciler = SchemaReconciler(host)
        props = [Property("title", PropertyType.TEXT, "x"), choices("author", "加缪")]

        await reconciler.reconcile(tag_id, props)
        before = [p.to_dict() for p in host.blocks[tag_id].properties]
        second = await reconciler.reconcile(tag_id, props)

        assert second == []
        assert len(host.calls_to("set_block_properties")) == 1
        assert [p.to_dict() for p in host.blocks[tag_id].properties] == before

    @pytest.mark.asyncio
    async def test_choices_accumulate(self, host, tag_id):
        """Choices from successive extractions accumulate."""
        reconciler = SchemaReconciler(host)
        await reconciler.reconcile(tag_id, [choices("genre", "fiction")])
        await reconciler.reconcile(tag_id, [choices("genre", "fiction", "nonfiction")])

        assert schema_of(host, tag_id)["genre"].choice_names() == ["fiction", "nonfiction"]

    @pytest.mark.asyncio
    async def test_concurrent_reconciles_do_not_lose_updates(self, host, tag_id):
        """Concurrent reconciliations of one tag keep every choice."""
        reconciler = SchemaReconciler(host)
        await asyncio.gather(
            *(reconciler.reconcile(tag_id, [choices("genre", f"g{i}")]) for i in range(5))
        )
        names = schema_of(host, tag_id)["genre"].choice_names()
        assert sorted(names) == [f"g{i}" for i in range(5)]

    @pytest.mark.asyncio
    async def test_locks_released_after_reconcile(self, host, tag_id):
        """No per-tag lock is kept once reconciliation is over."""
        reconciler = SchemaReconciler(host)
        await asyncio.gather(
            *(reconciler.reconcile(tag_id, [choices("genre", f"g{i}")]) for i in range(3))
        )
        await reconciler.reconcile(tag_id, [choices("genre", "g9")])
        gc.collect()
        assert len(reconciler._locks) == 0

    @pytest.mark.asyncio
    async def test_missing_tag_block(self, host):
        """An unknown tag block raises SchemaSyncError."""
        with pytest.raises(SchemaSyncError, match="not found"):
            await SchemaReconciler(host).reconcile(404, [Property("x", PropertyType.TEXT)])

    @pytest.mark.asyncio
    async def test_read_failure(self, host, tag_id):
        """A failing read raises SchemaSyncError."""
        host.fail_get_block = True
        with pytest.raises(SchemaSyncError, match="cannot read"):
            await SchemaReconciler(host).reconcile(tag_id, [Property("x", PropertyType.TEXT)])

    @pytest.mark.asyncio
    async def test_write_failure(self, host, tag_id):
        """A failing write raises SchemaSyncError."""
        host.fail_set_properties = True
        with pytest.raises(SchemaSyncError, match="update failed"):
            await SchemaReconciler(host).reconcile(tag_id, [Property("x", PropertyType.TEXT)])
