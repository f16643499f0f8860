"""
Tests for the SQLAlchemy navigation sources and the service wired to them.

Uses a per-test aiosqlite database file (see conftest.async_engine).

Run with: pytest tests/test_navigation_sources.py -v
"""

import asyncio
import json

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from admin_nav.core.config import Settings
from admin_nav.models import (
    AdminNavigationItem,
    AdminNavigationOverride,
    Plugin,
    PluginRegistryEntry,
    Store,
)
from admin_nav.navigation.errors import CollaboratorUnavailable, NavigationLoadError
from admin_nav.navigation.schemas import (
    NavigationItem,
    NavigationOverrideRequest,
    PluginNavigationDescriptor,
    TenantNavigationOverride,
)
from admin_nav.navigation.service import create_navigation_service
from admin_nav.navigation.sources import (
    InstalledPluginManifestSource,
    PluginRegistryManifestSource,
    SQLOverrideSource,
    SQLOverrideWriter,
    SQLPluginActivationSource,
    SQLRegistrySource,
    SQLRegistryWriter,
)


# ────────────────────────────────────────────────────────────────
# Fixtures
# ────────────────────────────────────────────────────────────────

@pytest.fixture
async def stores(async_session):
    store_a = Store(id="store-a", name="Store A", slug="store-a")
    store_b = Store(id="store-b", name="Store B", slug="store-b")
    async_session.add_all([store_a, store_b])
    await async_session.commit()
    return store_a, store_b


@pytest.fixture
async def catalog(async_session, stores):
    """Core items, plugin rows and plugin-owned registry items for store A."""
    async_session.add_all([
        AdminNavigationItem(key="dashboard", label="Dashboard", route="/admin", order_position=1, is_core=True),
        AdminNavigationItem(key="products", label="Products", route="/admin/products", order_position=2, is_core=True),
        AdminNavigationItem(key="hidden", label="Hidden", order_position=3, is_core=True, is_visible=False),
        AdminNavigationItem(
            key="reviews-admin", label="Moderation", route="/admin/reviews/moderation",
            order_position=1, parent_key="products", plugin_id="reviews",
        ),
        AdminNavigationItem(key="disabled-admin", label="Disabled", order_position=1, plugin_id="disabled"),
        Plugin(
            id="reviews", store_id="store-a", name="Reviews",
            admin_nav=json.dumps({"enabled": True, "label": "Reviews", "order": 5, "parentKey": "products"}),
        ),
        Plugin(id="disabled", store_id="store-a", name="Disabled", is_enabled=False),
        Plugin(id="broken", store_id="store-a", name="Broken", admin_nav="{oops"),
        Plugin(id="other-store", store_id="store-b", name="Elsewhere", admin_nav='{"enabled": true}'),
        PluginRegistryEntry(
            id="blog", store_id="store-a", name="Blog",
            manifest={"adminNavigation": {"enabled": True, "label": "Blog", "order": 3}},
        ),
        PluginRegistryEntry(id="no-nav", store_id="store-a", name="No Nav", manifest={"version": "1.0"}),
        PluginRegistryEntry(
            id="inactive", store_id="store-a", name="Inactive", status="inactive",
            manifest={"adminNavigation": {"enabled": True, "label": "Inactive"}},
        ),
    ])
    await async_session.commit()


# ============================================================================
# READ SOURCES
# ============================================================================

class TestReadSources:

    @pytest.mark.asyncio
    async def test_installed_enabled_plugins(self, session_factory, catalog):
        source = SQLPluginActivationSource(session_factory)
        assert sorted(await source.list_installed_enabled_plugins("store-a")) == ["broken", "reviews"]

    @pytest.mark.asyncio
    async def test_registry_limited_to_core_and_installed(self, session_factory, catalog):
        source = SQLRegistrySource(session_factory)

        items = await source.list_visible_navigation_items({"reviews"})

        assert [item.key for item in items] == ["dashboard", "reviews-admin", "products"]

    @pytest.mark.asyncio
    async def test_registry_core_only_when_nothing_installed(self, session_factory, catalog):
        items = await SQLRegistrySource(session_factory).list_visible_navigation_items(set())
        assert [item.key for item in items] == ["dashboard", "products"]

    @pytest.mark.asyncio
    async def test_installed_plugin_descriptors_are_raw_text(self, session_factory, catalog):
        records = await InstalledPluginManifestSource(session_factory).list_active_plugins_with_navigation("store-a")

        by_id = {record.plugin_id: record for record in records}
        assert set(by_id) == {"reviews", "broken"}
        assert by_id["broken"].descriptor == "{oops"
        assert by_id["reviews"].name == "Reviews"

    @pytest.mark.asyncio
    async def test_registry_plugins_need_active_navigation_manifest(self, session_factory, catalog):
        records = await PluginRegistryManifestSource(session_factory).list_active_plugins_with_navigation("store-a")

        assert [record.plugin_id for record in records] == ["blog"]
        assert records[0].descriptor == {"enabled": True, "label": "Blog", "order": 3}

    @pytest.mark.asyncio
    async def test_overrides_global_by_default(self, session_factory, async_session, stores):
        async_session.add_all([
            AdminNavigationOverride(store_id="store-a", nav_item_key="dashboard", custom_label="A"),
            AdminNavigationOverride(store_id="store-b", nav_item_key="products", custom_label="B"),
        ])
        await async_session.commit()

        global_rows = await SQLOverrideSource(session_factory).list_overrides("store-a")
        scoped_rows = await SQLOverrideSource(session_factory, scope_by_store=True).list_overrides("store-a")

        assert {row.nav_item_key for row in global_rows} == {"dashboard", "products"}
        assert [row.nav_item_key for row in scoped_rows] == ["dashboard"]

    @pytest.mark.asyncio
    async def test_database_error_becomes_collaborator_unavailable(self, session_factory, async_engine):
        async with async_engine.begin() as conn:
            await conn.exec_driver_sql("DROP TABLE admin_navigation_registry")

        with pytest.raises(CollaboratorUnavailable) as exc_info:
            await SQLRegistrySource(session_factory).list_visible_navigation_items(set())

        assert exc_info.value.source == "admin_navigation_registry"
        assert isinstance(exc_info.value.__cause__, OperationalError)


# ============================================================================
# WRITERS
# ============================================================================

class TestWriters:

    @pytest.mark.asyncio
    async def test_upsert_inserts_then_updates(self, session_factory, async_session):
        writer = SQLRegistryWriter(session_factory)
        item = NavigationItem(key="plugin-p1", label="Reviews", order_position=0.5, plugin_id="p1")

        await writer.upsert_navigation_item(item)
        item.label = "Product Reviews"
        await writer.upsert_navigation_item(item)

        rows = (await async_session.execute(select(AdminNavigationItem))).scalars().all()
        assert len(rows) == 1
        assert rows[0].label == "Product Reviews"
        assert rows[0].order_position == 0.5

    @pytest.mark.asyncio
    async def test_concurrent_upserts_keep_one_row(self, session_factory, async_session):
        writer = SQLRegistryWriter(session_factory)
        item = NavigationItem(key="plugin-p1", label="Reviews", order_position=3, plugin_id="p1")

        results = await asyncio.gather(
            *(writer.upsert_navigation_item(item) for _ in range(4)),
            return_exceptions=True,
        )

        assert results == [None, None, None, None]
        rows = (await async_session.execute(select(AdminNavigationItem))).scalars().all()
        assert [(row.key, row.order_position) for row in rows] == [("plugin-p1", 3)]

    @pytest.mark.asyncio
    async def test_concurrent_seed_inserts_once(self, session_factory):
        writer = SQLRegistryWriter(session_factory)
        item = NavigationItem(key="dashboard", label="Dashboard", order_position=1, is_core=True)

        results = await asyncio.gather(
            *(writer.insert_navigation_item_if_missing(item) for _ in range(4)),
            return_exceptions=True,
        )

        assert sorted(results) == [False, False, False, True]

    @pytest.mark.asyncio
    async def test_insert_if_missing(self, session_factory):
        writer = SQLRegistryWriter(session_factory)
        item = NavigationItem(key="dashboard", label="Dashboard", order_position=1, is_core=True)

        assert await writer.insert_navigation_item_if_missing(item) is True
        assert await writer.insert_navigation_item_if_missing(item) is False

    @pytest.mark.asyncio
    async def test_delete(self, session_factory):
        writer = SQLRegistryWriter(session_factory)
        await writer.upsert_navigation_item(NavigationItem(key="x", label="X"))

        assert await writer.delete_navigation_item("x") is True
        assert await writer.delete_navigation_item("x") is False
        assert await writer.get_navigation_item("x") is None

    @pytest.mark.asyncio
    async def test_override_upsert_and_delete(self, session_factory, stores):
        writer = SQLOverrideWriter(session_factory)
        source = SQLOverrideSource(session_factory)

        await writer.upsert_override("store-a", TenantNavigationOverride(nav_item_key="orders", custom_label="Sales"))
        await writer.upsert_override("store-a", TenantNavigationOverride(nav_item_key="orders", custom_label="Deals"))

        [row] = await source.list_overrides("store-a")
        assert row.custom_label == "Deals"
        assert row.store_id == "store-a"

        assert await writer.delete_override("store-a", "orders") is True
        assert await source.list_overrides("store-a") == []

    @pytest.mark.asyncio
    async def test_concurrent_override_upserts_keep_one_row(self, session_factory, stores):
        writer = SQLOverrideWriter(session_factory)
        override = TenantNavigationOverride(nav_item_key="orders", custom_label="Sales")

        results = await asyncio.gather(
            *(writer.upsert_override("store-a", override) for _ in range(4)),
            return_exceptions=True,
        )

        assert results == [None, None, None, None]
        rows = await SQLOverrideSource(session_factory).list_overrides("store-a")
        assert [(row.nav_item_key, row.custom_label) for row in rows] == [("orders", "Sales")]


# ============================================================================
# SERVICE OVER THE DATABASE
# ============================================================================

class TestServiceWithDatabase:

    @pytest.mark.asyncio
    async def test_build_merges_every_source(self, session_factory, catalog):
        service = create_navigation_service(Settings(), session_factory)

        tree = await service.build_navigation_for_tenant("store-a")

        assert [node.key for node in tree] == ["dashboard", "products", "plugin-blog"]
        products = tree[1]
        assert [child.key for child in products.children] == ["reviews-admin", "plugin-reviews"]
        assert [child.order for child in products.children] == [1, 5]

    @pytest.mark.asyncio
    async def test_override_and_plugin_upsert_round_trip(self, session_factory, catalog):
        service = create_navigation_service(Settings(), session_factory)

        await service.set_override("store-a", "dashboard", NavigationOverrideRequest(custom_label="Home"))
        await service.upsert_plugin_navigation("reviews", PluginNavigationDescriptor(
            enabled=True, label="Reviews", relative_to_key="dashboard", position="before",
        ))
        tree = await service.build_navigation_for_tenant("store-a")

        assert tree[0].label == "Home"
        # The manifest entry for the same plugin comes later and wins the key
        reviews = [child for child in tree[1].children if child.key == "plugin-reviews"]
        assert reviews[0].order == 5

        stored = await SQLRegistryWriter(session_factory).get_navigation_item("plugin-reviews")
        assert stored.order_position == 0.5

    @pytest.mark.asyncio
    async def test_missing_table_fails_whole_build(self, session_factory, async_engine, catalog):
        async with async_engine.begin() as conn:
            await conn.exec_driver_sql("DROP TABLE admin_navigation_config")

        service = create_navigation_service(Settings(), session_factory)
        with pytest.raises(NavigationLoadError):
            await service.build_navigation_for_tenant("store-a")
