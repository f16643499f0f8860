"""
Navigation data sources.

Each collaborator the tree builder reads from is declared as a Protocol so
the service can be driven by in-memory fakes, and implemented here on top of
SQLAlchemy.

Every SQL source opens its own session from the session factory it was
given. A navigation build runs its reads concurrently and an AsyncSession
cannot serve concurrent queries.

Usage:
    from admin_nav.core.db import AsyncSessionLocal

    registry = SQLRegistrySource(AsyncSessionLocal)
    items = await registry.list_visible_navigation_items({"reviews"})
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Protocol, Sequence, Set

from sqlalchemy import delete, or_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..models import (
    AdminNavigationItem,
    AdminNavigationOverride,
    Plugin,
    PluginRegistryEntry,
    PluginRegistryStatus,
    PluginStatus,
)
from .errors import CollaboratorUnavailable
from .schemas import NavigationItem, PluginNavigationRecord, TenantNavigationOverride

logger = logging.getLogger(__name__)

MANIFEST_NAVIGATION_KEY = "adminNavigation"


# ────────────────────────────────────────────────────────────────
# Collaborator interfaces
# ────────────────────────────────────────────────────────────────

class PluginActivationSource(Protocol):
    async def list_installed_enabled_plugins(self, store_id: str) -> Sequence[str]: ...


class RegistrySource(Protocol):
    async def list_visible_navigation_items(self, plugin_ids: Set[str]) -> Sequence[NavigationItem]: ...


class PluginManifestSource(Protocol):
    async def list_active_plugins_with_navigation(self, store_id: str) -> Sequence[PluginNavigationRecord]: ...


class OverrideSource(Protocol):
    async def list_overrides(self, store_id: Optional[str] = None) -> Sequence[TenantNavigationOverride]: ...


class RegistryWriter(Protocol):
    async def get_navigation_item(self, key: str) -> Optional[NavigationItem]: ...

    async def upsert_navigation_item(self, item: NavigationItem) -> None: ...

    async def insert_navigation_item_if_missing(self, item: NavigationItem) -> bool: ...

    async def delete_navigation_item(self, key: str) -> bool: ...


class OverrideWriter(Protocol):
    async def upsert_override(self, store_id: Optional[str], override: TenantNavigationOverride) -> None: ...

    async def delete_override(self, store_id: Optional[str], nav_item_key: str) -> bool: ...


# ────────────────────────────────────────────────────────────────
# SQLAlchemy implementations
# ────────────────────────────────────────────────────────────────

class _SQLSource:
    source_name = "database"

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    def _unavailable(self, e: SQLAlchemyError) -> CollaboratorUnavailable:
        logger.error(f"{self.source_name} query failed: {e}")
        return CollaboratorUnavailable(f"{self.source_name} unavailable: {e}", source=self.source_name)


class SQLPluginActivationSource(_SQLSource):
    """Plugins installed into a store and currently enabled."""

    source_name = "plugins"

    async def list_installed_enabled_plugins(self, store_id: str) -> list[str]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(Plugin.id).where(
                        Plugin.store_id == store_id,
                        Plugin.status == PluginStatus.INSTALLED.value,
                        Plugin.is_enabled.is_(True),
                    )
                )
                return list(result.scalars())
        except SQLAlchemyError as e:
            raise self._unavailable(e) from e


class SQLRegistrySource(_SQLSource):
    """Visible registry items: core items plus those owned by the given plugins."""

    source_name = "admin_navigation_registry"

    async def list_visible_navigation_items(self, plugin_ids: Set[str]) -> list[NavigationItem]:
        if plugin_ids:
            scope = or_(
                AdminNavigationItem.is_core.is_(True),
                AdminNavigationItem.plugin_id.in_(sorted(plugin_ids)),
            )
        else:
            scope = AdminNavigationItem.is_core.is_(True)

        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(AdminNavigationItem)
                    .where(AdminNavigationItem.is_visible.is_(True), scope)
                    .order_by(AdminNavigationItem.order_position.asc(), AdminNavigationItem.key.asc())
                )
                return [NavigationItem.from_model(row) for row in result.scalars()]
        except SQLAlchemyError as e:
            raise self._unavailable(e) from e


class InstalledPluginManifestSource(_SQLSource):
    """Installed, enabled plugins carrying an `admin_nav` JSON column."""

    source_name = "plugins.admin_nav"

    async def list_active_plugins_with_navigation(self, store_id: str) -> list[PluginNavigationRecord]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(Plugin)
                    .where(
                        Plugin.store_id == store_id,
                        Plugin.status == PluginStatus.INSTALLED.value,
                        Plugin.is_enabled.is_(True),
                        Plugin.admin_nav.is_not(None),
                    )
                    .order_by(Plugin.created_at.asc(), Plugin.id.asc())
                )
                return [
                    PluginNavigationRecord(plugin_id=p.id, descriptor=p.admin_nav, name=p.name)
                    for p in result.scalars()
                ]
        except SQLAlchemyError as e:
            raise self._unavailable(e) from e


class PluginRegistryManifestSource(_SQLSource):
    """Active plugin_registry entries whose manifest has an `adminNavigation` block."""

    source_name = "plugin_registry"

    async def list_active_plugins_with_navigation(self, store_id: str) -> list[PluginNavigationRecord]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(PluginRegistryEntry)
                    .where(
                        PluginRegistryEntry.store_id == store_id,
                        PluginRegistryEntry.status == PluginRegistryStatus.ACTIVE.value,
                        PluginRegistryEntry.manifest.is_not(None),
                    )
                    .order_by(PluginRegistryEntry.created_at.asc(), PluginRegistryEntry.id.asc())
                )
                entries = list(result.scalars())
        except SQLAlchemyError as e:
            raise self._unavailable(e) from e

        # JSON path filters differ between dialects; filter the manifest here
        records = []
        for entry in entries:
            manifest = entry.manifest if isinstance(entry.manifest, dict) else {}
            descriptor = manifest.get(MANIFEST_NAVIGATION_KEY)
            if descriptor is None:
                continue
            records.append(
                PluginNavigationRecord(plugin_id=entry.id, descriptor=descriptor, name=entry.name)
            )
        return records


class SQLOverrideSource(_SQLSource):
    """
    Tenant navigation overrides.

    Overrides are read for every store unless `scope_by_store` is set.
    """

    source_name = "admin_navigation_config"

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], scope_by_store: bool = False):
        super().__init__(session_factory)
        self.scope_by_store = scope_by_store

    async def list_overrides(self, store_id: Optional[str] = None) -> list[TenantNavigationOverride]:
        stmt = select(AdminNavigationOverride).order_by(AdminNavigationOverride.id.asc())
        if self.scope_by_store and store_id is not None:
            stmt = stmt.where(AdminNavigationOverride.store_id == store_id)

        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                return [TenantNavigationOverride.from_model(row) for row in result.scalars()]
        except SQLAlchemyError as e:
            raise self._unavailable(e) from e


def _dialect_insert(session: AsyncSession):
    """`insert()` with ON CONFLICT support for the database behind the session."""
    if session.bind.dialect.name == "sqlite":
        return sqlite_insert
    return pg_insert


class SQLRegistryWriter(_SQLSource):
    source_name = "admin_navigation_registry"

    @staticmethod
    def _values(item: NavigationItem) -> dict:
        return {
            "key": item.key,
            "label": item.label,
            "icon": item.icon,
            "route": item.route,
            "parent_key": item.parent_key,
            "order_position": item.order_position,
            "is_core": item.is_core,
            "is_visible": item.is_visible,
            "plugin_id": item.plugin_id,
            "category": item.category,
            "description": item.description,
            "type": item.type,
        }

    async def get_navigation_item(self, key: str) -> Optional[NavigationItem]:
        try:
            async with self.session_factory() as session:
                row = await session.get(AdminNavigationItem, key)
                return NavigationItem.from_model(row) if row else None
        except SQLAlchemyError as e:
            raise self._unavailable(e) from e

    async def upsert_navigation_item(self, item: NavigationItem) -> None:
        values = self._values(item)
        updates = {name: value for name, value in values.items() if name != "key"}
        updates["updated_at"] = datetime.now(timezone.utc)

        try:
            async with self.session_factory() as session:
                insert = _dialect_insert(session)
                stmt = insert(AdminNavigationItem).values(**values).on_conflict_do_update(
                    index_elements=["key"],
                    set_=updates,
                )
                await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as e:
            raise self._unavailable(e) from e

    async def insert_navigation_item_if_missing(self, item: NavigationItem) -> bool:
        """Insert the item unless its key already exists. Returns True when inserted."""
        try:
            async with self.session_factory() as session:
                insert = _dialect_insert(session)
                stmt = insert(AdminNavigationItem).values(**self._values(item)).on_conflict_do_nothing(
                    index_elements=["key"],
                )
                result = await session.execute(stmt)
                await session.commit()
                return result.rowcount > 0
        except SQLAlchemyError as e:
            raise self._unavailable(e) from e

    async def delete_navigation_item(self, key: str) -> bool:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    delete(AdminNavigationItem).where(AdminNavigationItem.key == key)
                )
                await session.commit()
                return result.rowcount > 0
        except SQLAlchemyError as e:
            raise self._unavailable(e) from e


class SQLOverrideWriter(_SQLSource):
    source_name = "admin_navigation_config"

    @staticmethod
    def _store_filter(store_id: Optional[str]):
        if store_id is None:
            return AdminNavigationOverride.store_id.is_(None)
        return AdminNavigationOverride.store_id == store_id

    @staticmethod
    def _fields(override: TenantNavigationOverride) -> dict:
        return {
            "custom_label": override.custom_label,
            "custom_icon": override.custom_icon,
            "custom_order": override.custom_order,
            "parent_key": override.parent_key,
            "is_enabled": override.is_enabled,
            "badge_text": override.badge_text,
            "badge_color": override.badge_color,
        }

    async def upsert_override(self, store_id: Optional[str], override: TenantNavigationOverride) -> None:
        fields = self._fields(override)
        try:
            async with self.session_factory() as session:
                if store_id is None:
                    await self._upsert_global(session, override.nav_item_key, fields)
                else:
                    insert = _dialect_insert(session)
                    stmt = insert(AdminNavigationOverride).values(
                        store_id=store_id, nav_item_key=override.nav_item_key, **fields,
                    ).on_conflict_do_update(
                        index_elements=["store_id", "nav_item_key"],
                        set_={**fields, "updated_at": datetime.now(timezone.utc)},
                    )
                    await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as e:
            raise self._unavailable(e) from e

    async def _upsert_global(self, session: AsyncSession, nav_item_key: str, fields: dict) -> None:
        # NULL store ids never collide on the unique constraint
        result = await session.execute(
            select(AdminNavigationOverride).where(
                AdminNavigationOverride.store_id.is_(None),
                AdminNavigationOverride.nav_item_key == nav_item_key,
            )
        )
        row = result.scalar_one_or_none()
        if row is None:
            row = AdminNavigationOverride(store_id=None, nav_item_key=nav_item_key)
            session.add(row)
        for name, value in fields.items():
            setattr(row, name, value)

    async def delete_override(self, store_id: Optional[str], nav_item_key: str) -> bool:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    delete(AdminNavigationOverride).where(
                        self._store_filter(store_id),
                        AdminNavigationOverride.nav_item_key == nav_item_key,
                    )
                )
                await session.commit()
                return result.rowcount > 0
        except SQLAlchemyError as e:
            raise self._unavailable(e) from e
