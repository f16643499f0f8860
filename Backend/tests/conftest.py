"""
Pytest configuration and fixtures.

Two kinds of fixtures live here:
    - in-memory fakes for every navigation collaborator, so the service can be
      exercised without a database
    - an aiosqlite-backed database (one file per test) for the SQLAlchemy
      sources and the tenancy resolution
"""
import os
import sys
from typing import Optional

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from admin_nav.core.db import Base
from admin_nav.navigation.cache import NavigationCache
from admin_nav.navigation.errors import CollaboratorUnavailable
from admin_nav.navigation.schemas import (
    NavigationItem,
    PluginNavigationRecord,
    TenantNavigationOverride,
)
from admin_nav.navigation.service import NavigationService


# ────────────────────────────────────────────────────────────────
# In-memory collaborators
# ────────────────────────────────────────────────────────────────

class FakeActivation:
    def __init__(self, plugin_ids=None):
        self.plugin_ids = list(plugin_ids or [])
        self.calls = 0

    async def list_installed_enabled_plugins(self, store_id: str):
        self.calls += 1
        return list(self.plugin_ids)


class FakeRegistry:
    """Registry source and writer backed by a dict keyed by item key."""

    def __init__(self, items=None):
        self.items: dict[str, NavigationItem] = {}
        for item in items or []:
            self.items[item.key] = item
        self.requested_plugin_ids = None

    async def list_visible_navigation_items(self, plugin_ids):
        self.requested_plugin_ids = set(plugin_ids)
        visible = [
            item for item in self.items.values()
            if item.is_visible and (item.is_core or item.plugin_id in plugin_ids)
        ]
        return sorted(visible, key=lambda item: item.order_position)

    async def get_navigation_item(self, key: str) -> Optional[NavigationItem]:
        return self.items.get(key)

    async def upsert_navigation_item(self, item: NavigationItem) -> None:
        self.items[item.key] = item

    async def insert_navigation_item_if_missing(self, item: NavigationItem) -> bool:
        if item.key in self.items:
            return False
        self.items[item.key] = item
        return True

    async def delete_navigation_item(self, key: str) -> bool:
        return self.items.pop(key, None) is not None


class FakeManifestSource:
    def __init__(self, records=None):
        self.records = list(records or [])

    async def list_active_plugins_with_navigation(self, store_id: str):
        return list(self.records)


class FakeOverrides:
    """Override source and writer. Reads are global, like the default SQL source."""

    def __init__(self, overrides=None):
        self.rows: dict[tuple, TenantNavigationOverride] = {}
        for override in overrides or []:
            self.rows[(override.store_id, override.nav_item_key)] = override

    async def list_overrides(self, store_id: Optional[str] = None):
        return list(self.rows.values())

    async def upsert_override(self, store_id, override: TenantNavigationOverride) -> None:
        self.rows[(store_id, override.nav_item_key)] = override

    async def delete_override(self, store_id, nav_item_key: str) -> bool:
        return self.rows.pop((store_id, nav_item_key), None) is not None


class FailingSource:
    """Raises on every read, like a database that is down."""

    async def _fail(self, *args, **kwargs):
        raise CollaboratorUnavailable("connection refused", source="fake")

    list_installed_enabled_plugins = _fail
    list_visible_navigation_items = _fail
    list_active_plugins_with_navigation = _fail
    list_overrides = _fail


def core_item(key, order, parent_key=None, **kwargs) -> NavigationItem:
    return NavigationItem(
        key=key,
        label=kwargs.pop("label", key.title()),
        route=kwargs.pop("route", f"/admin/{key}"),
        order_position=order,
        parent_key=parent_key,
        is_core=True,
        **kwargs,
    )


def plugin_record(plugin_id, descriptor, name=None) -> PluginNavigationRecord:
    return PluginNavigationRecord(plugin_id=plugin_id, descriptor=descriptor, name=name)


# ────────────────────────────────────────────────────────────────
# Service fixtures
# ────────────────────────────────────────────────────────────────

@pytest.fixture
def activation():
    return FakeActivation()


@pytest.fixture
def registry():
    return FakeRegistry()


@pytest.fixture
def installed_plugins():
    return FakeManifestSource()


@pytest.fixture
def registered_plugins():
    return FakeManifestSource()


@pytest.fixture
def overrides():
    return FakeOverrides()


@pytest.fixture
def make_service(activation, registry, installed_plugins, registered_plugins, overrides):
    """Build a NavigationService over the fakes; keyword arguments replace any part."""
    def factory(**kwargs) -> NavigationService:
        params = dict(
            activation=activation,
            registry=registry,
            installed_plugins=installed_plugins,
            registered_plugins=registered_plugins,
            overrides=overrides,
            registry_writer=registry,
            override_writer=overrides,
        )
        params.update(kwargs)
        return NavigationService(**params)
    return factory


@pytest.fixture
def service(make_service):
    return make_service()


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def nav_cache(clock):
    return NavigationCache(ttl_seconds=60, cleanup_interval=300, clock=clock)


# ────────────────────────────────────────────────────────────────
# Database fixtures
# ────────────────────────────────────────────────────────────────

@pytest.fixture(scope="function")
async def async_engine(tmp_path):
    """
    Create an aiosqlite engine on a fresh database file with all tables.

    A file (rather than :memory:) lets concurrent sessions see the same data.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'navigation.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(async_engine):
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture(scope="function")
async def async_session(session_factory):
    async with session_factory() as session:
        yield session
