"""
Tests for the curation workspace and registry.
"""

import pytest

from synthverify.config import Settings
from synthverify.curation.workspace import CurationWorkspace, WorkspaceRegistry
from synthverify.models.analytics import AnalyticsSnapshot
from synthverify.models.item import Item


@pytest.fixture
def config() -> Settings:
    return Settings(analytics_debounce_seconds=0.01, final_collection_name="curated")


@pytest.fixture
def make_workspace(fake_backing_store, fake_session_store, fake_uploader, notifier, config):
    def factory(session_id: str) -> CurationWorkspace:
        return CurationWorkspace(
            session_id,
            fake_backing_store,
            fake_session_store,
            fake_uploader,
            notifier,
            config=config,
        )

    return factory


class TestCurationWorkspace:
    """Tests for workspace lifecycle."""

    @pytest.mark.asyncio
    async def test_open_analyzes_and_computes(self, make_workspace, sample_items):
        workspace = make_workspace("s1")

        await workspace.open(sample_items)

        assert workspace.is_open is True
        assert workspace.collection.get("item-1").is_duplicate is True
        assert workspace.analytics.computation_count == 1
        assert workspace.export_columns["query"] is True
        assert workspace.exporter.collection_name == "curated"
        await workspace.close()

    @pytest.mark.asyncio
    async def test_open_adopts_stored_analytics(
        self, make_workspace, fake_session_store, sample_items
    ):
        fake_session_store.snapshots["s1"] = AnalyticsSnapshot(total_items=99)
        workspace = make_workspace("s1")

        await workspace.open(sample_items)

        assert workspace.analytics.computation_count == 0
        assert workspace.analytics.get_current_analytics().total_items == 99
        await workspace.close()

    @pytest.mark.asyncio
    async def test_add_items_replaces_same_id(self, make_workspace, sample_items):
        workspace = make_workspace("s1")
        await workspace.open(sample_items)

        groups = workspace.add_items(
            [Item(id="item-3", query="What is 2+2?"), Item(id="item-9", query="new")]
        )

        assert len(workspace.collection) == 6
        assert groups == 1
        assert workspace.collection.get("item-3").is_duplicate is True
        await workspace.close()

    @pytest.mark.asyncio
    async def test_add_items_keeps_column_selection(self, make_workspace, sample_items):
        workspace = make_workspace("s1")
        await workspace.open(sample_items)
        workspace.export_columns["answer"] = False

        workspace.add_items([Item(id="item-9", query="new", topic="math")])

        assert workspace.export_columns["answer"] is False
        assert workspace.export_columns["query"] is True
        assert workspace.export_columns["topic"] is False
        await workspace.close()

    @pytest.mark.asyncio
    async def test_close_stops_analytics(self, make_workspace, sample_items):
        workspace = make_workspace("s1")
        await workspace.open(sample_items)

        await workspace.close()
        workspace.collection.set_data([])

        assert workspace.analytics._timer is None
        assert workspace.is_open is False


class TestWorkspaceRegistry:
    """Tests for the registry of open workspaces."""

    @pytest.mark.asyncio
    async def test_open_returns_same_workspace(self, make_workspace, sample_items):
        registry = WorkspaceRegistry(make_workspace)

        first = await registry.open("s1", sample_items)
        second = await registry.open("s1")

        assert first is second
        assert len(registry) == 1
        await registry.close_all()

    @pytest.mark.asyncio
    async def test_reopen_with_items_reloads(self, make_workspace, sample_items):
        registry = WorkspaceRegistry(make_workspace)
        workspace = await registry.open("s1", sample_items)

        await registry.open("s1", [Item(id="only")])

        assert [item.id for item in workspace.collection] == ["only"]
        await registry.close_all()

    @pytest.mark.asyncio
    async def test_close(self, make_workspace):
        registry = WorkspaceRegistry(make_workspace)
        await registry.open("s1", [])

        assert await registry.close("s1") is True
        assert await registry.close("s1") is False
        assert registry.get("s1") is None
