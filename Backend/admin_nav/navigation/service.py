"""
Admin Navigation Service

Builds the admin navigation tree for a store by merging:
    1. the navigation registry (core items + items of installed plugins)
    2. navigation embedded in installed plugins (plugins.admin_nav)
    3. navigation embedded in registered plugins (plugin_registry manifests)
    4. tenant customizations (admin_navigation_config)

The tree is rebuilt on every call unless a NavigationCache with a positive
TTL is injected. Registry and override writes go through this service so the
cache is invalidated alongside them.

Usage:
    service = create_navigation_service(get_settings(), AsyncSessionLocal, cache)
    tree = await service.build_navigation_for_tenant(store_id)
"""

import asyncio
import logging
from typing import Iterable, Optional, Sequence, Union

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.config import Settings
from .cache import NavigationCache
from .errors import DescriptorParseError, NavigationLoadError
from .hooks import HookContext, NavigationHook, apply_hooks, resolve_hooks
from .schemas import (
    NavigationItem,
    NavigationNode,
    NavigationOverrideRequest,
    NavigationSnapshot,
    PluginNavigationDescriptor,
    PluginNavigationEntry,
    PluginNavigationRecord,
    TenantNavigationOverride,
    plugin_nav_key,
)
from .sources import (
    InstalledPluginManifestSource,
    OverrideSource,
    OverrideWriter,
    PluginActivationSource,
    PluginManifestSource,
    PluginRegistryManifestSource,
    RegistrySource,
    RegistryWriter,
    SQLOverrideSource,
    SQLOverrideWriter,
    SQLPluginActivationSource,
    SQLRegistrySource,
    SQLRegistryWriter,
)
from .tree import (
    DEFAULT_PLUGIN_ICON,
    DEFAULT_PLUGIN_ORDER,
    PLUGIN_CATEGORY,
    merge_navigation,
    parse_navigation_descriptor,
    synthesize_plugin_item,
)

logger = logging.getLogger(__name__)

TREE_QUERY_SHAPE = "tree"

# Half step placed before or after a relative item
RELATIVE_ORDER_OFFSET = 0.5

CORE_NAVIGATION_ITEMS: list[NavigationItem] = [
    NavigationItem(key="dashboard", label="Dashboard", icon="Home", route="/admin",
                   order_position=1, is_core=True, category="main"),
    NavigationItem(key="products", label="Products", icon="Package", route="/admin/products",
                   order_position=2, is_core=True, category="main"),
    NavigationItem(key="orders", label="Orders", icon="ShoppingCart", route="/admin/orders",
                   order_position=3, is_core=True, category="main"),
    NavigationItem(key="customers", label="Customers", icon="Users", route="/admin/customers",
                   order_position=4, is_core=True, category="main"),
    NavigationItem(key="chat-support", label="Chat Support", icon="MessageSquare",
                   route="/admin/chat-support", order_position=5, is_core=True, category="main"),
    NavigationItem(key="analytics", label="Analytics", icon="BarChart", route="/admin/analytics",
                   order_position=6, is_core=True, category="main"),
    NavigationItem(key="plugins", label="Plugins", icon="Puzzle", route="/admin/plugins",
                   order_position=10, is_core=True, category="tools"),
    NavigationItem(key="settings", label="Settings", icon="Settings", route="/admin/settings",
                   order_position=99, is_core=True, category="settings"),
]


class NavigationService:
    def __init__(
        self,
        *,
        activation: PluginActivationSource,
        registry: RegistrySource,
        installed_plugins: PluginManifestSource,
        registered_plugins: PluginManifestSource,
        overrides: OverrideSource,
        registry_writer: RegistryWriter,
        override_writer: OverrideWriter,
        cache: Optional[NavigationCache] = None,
        hooks: Sequence[NavigationHook] = (),
        overrides_scoped_by_store: bool = False,
        default_plugin_icon: str = DEFAULT_PLUGIN_ICON,
        default_plugin_order: float = DEFAULT_PLUGIN_ORDER,
    ):
        self.activation = activation
        self.registry = registry
        self.installed_plugins = installed_plugins
        self.registered_plugins = registered_plugins
        self.overrides = overrides
        self.registry_writer = registry_writer
        self.override_writer = override_writer
        self.cache = cache if cache is not None else NavigationCache(ttl_seconds=0)
        self.hooks = list(hooks)
        self.overrides_scoped_by_store = overrides_scoped_by_store
        self.default_plugin_icon = default_plugin_icon
        self.default_plugin_order = default_plugin_order

    # ────────────────────────────────────────────────────────────
    # Read path
    # ────────────────────────────────────────────────────────────

    async def build_navigation_for_tenant(self, store_id: str) -> list[NavigationNode]:
        """
        Build the complete admin navigation tree for a store.

        Raises:
            NavigationLoadError: if any collaborator read fails. No partial
                tree is returned.
        """
        cached = self.cache.get(store_id, TREE_QUERY_SHAPE)
        if cached is not None:
            logger.debug(f"Navigation cache hit for store {store_id}")
            return [node.model_copy(deep=True) for node in cached]

        try:
            snapshot = await self._load_snapshot(store_id)
        except Exception as e:
            logger.error(f"Failed to load navigation for store {store_id}: {e}")
            raise NavigationLoadError(
                f"Failed to load navigation: {e}", store_id=store_id
            ) from e

        tree = apply_hooks(
            merge_navigation(snapshot), self.hooks, HookContext(default_icon=self.default_plugin_icon)
        )

        self.cache.set(store_id, TREE_QUERY_SHAPE, [node.model_copy(deep=True) for node in tree])
        return tree

    async def _load_snapshot(self, store_id: str) -> NavigationSnapshot:
        async def registry_items() -> Sequence[NavigationItem]:
            plugin_ids = await self.activation.list_installed_enabled_plugins(store_id)
            return await self.registry.list_visible_navigation_items(set(plugin_ids))

        registry, installed, registered, overrides = await asyncio.gather(
            registry_items(),
            self.installed_plugins.list_active_plugins_with_navigation(store_id),
            self.registered_plugins.list_active_plugins_with_navigation(store_id),
            self.overrides.list_overrides(store_id),
        )

        return NavigationSnapshot(
            registry_items=list(registry),
            installed_plugin_items=self._synthesize(installed),
            registered_plugin_items=self._synthesize(registered),
            overrides=list(overrides),
        )

    def _synthesize(self, records: Iterable[PluginNavigationRecord]) -> list[NavigationItem]:
        items = []
        for record in records:
            try:
                descriptor = parse_navigation_descriptor(record.descriptor, plugin_id=record.plugin_id)
            except DescriptorParseError as e:
                logger.warning(f"Skipping navigation for plugin {record.plugin_id}: {e.message}")
                continue

            item = synthesize_plugin_item(
                record.plugin_id,
                descriptor,
                name=record.name,
                default_icon=self.default_plugin_icon,
                default_order=self.default_plugin_order,
            )
            if item is not None:
                items.append(item)
        return items

    # ────────────────────────────────────────────────────────────
    # Registry writes
    # ────────────────────────────────────────────────────────────

    async def upsert_plugin_navigation(
        self,
        plugin_id: str,
        descriptor: Union[PluginNavigationDescriptor, dict, str],
    ) -> Optional[NavigationItem]:
        """
        Create, update or remove the registry row `plugin-<plugin_id>`.

        Enabled descriptors are upserted with order 100 unless the descriptor
        gives one; `relativeToKey` + `position` place the item half a step
        before or after an existing item. Disabled descriptors delete the row.

        Returns the stored item, or None when the row was removed.

        Raises:
            DescriptorParseError: if a raw descriptor cannot be parsed.
        """
        if not isinstance(descriptor, PluginNavigationDescriptor):
            descriptor = parse_navigation_descriptor(descriptor, plugin_id=plugin_id)

        key = plugin_nav_key(plugin_id)

        if not descriptor.enabled:
            deleted = await self.registry_writer.delete_navigation_item(key)
            self.cache.clear()
            logger.info(f"Plugin navigation {key} disabled (row removed: {deleted})")
            return None

        order_position = descriptor.order if descriptor.order is not None else self.default_plugin_order
        if descriptor.relative_to_key == key:
            # Self-relative placement keeps the descriptor order
            logger.info(f"Plugin navigation {key} is relative to itself; keeping order {order_position}")
        elif descriptor.relative_to_key and descriptor.position:
            relative = await self.registry_writer.get_navigation_item(descriptor.relative_to_key)
            if relative is not None:
                if descriptor.position == "before":
                    order_position = relative.order_position - RELATIVE_ORDER_OFFSET
                else:
                    order_position = relative.order_position + RELATIVE_ORDER_OFFSET
            else:
                logger.info(
                    f"Relative navigation item {descriptor.relative_to_key} not found; "
                    f"{key} keeps order {order_position}"
                )

        item = NavigationItem(
            key=key,
            label=descriptor.label or key,
            icon=descriptor.icon,
            route=descriptor.route,
            parent_key=descriptor.parent_key or None,
            order_position=order_position,
            is_core=False,
            is_visible=True,
            plugin_id=plugin_id,
            category=PLUGIN_CATEGORY,
            description=descriptor.description,
        )
        await self.registry_writer.upsert_navigation_item(item)
        self.cache.clear()
        logger.info(f"Plugin navigation {key} saved at order {order_position}")
        return item

    async def register_plugin_navigation(
        self,
        plugin_id: str,
        entries: Iterable[PluginNavigationEntry],
    ) -> list[NavigationItem]:
        """Register the navigation items a plugin ships with during installation."""
        items = []
        for entry in entries:
            item = NavigationItem(
                key=entry.key,
                label=entry.label,
                icon=entry.icon,
                route=entry.route,
                parent_key=entry.parent_key or None,
                order_position=entry.order if entry.order is not None else self.default_plugin_order,
                is_core=False,
                is_visible=True,
                plugin_id=plugin_id,
                category=entry.category or PLUGIN_CATEGORY,
            )
            await self.registry_writer.upsert_navigation_item(item)
            items.append(item)

        if items:
            self.cache.clear()
        logger.info(f"Registered {len(items)} navigation item(s) for plugin {plugin_id}")
        return items

    async def seed_core_navigation(self) -> int:
        """Insert the core navigation items that are missing. Existing rows are left untouched."""
        inserted = 0
        for item in CORE_NAVIGATION_ITEMS:
            if await self.registry_writer.insert_navigation_item_if_missing(item):
                inserted += 1

        if inserted:
            self.cache.clear()
        logger.info(f"Seeded {inserted} core navigation item(s)")
        return inserted

    # ────────────────────────────────────────────────────────────
    # Override writes
    # ────────────────────────────────────────────────────────────

    def _invalidate_overrides(self, store_id: str) -> None:
        if self.overrides_scoped_by_store:
            self.cache.clear_store(store_id)
        else:
            # Overrides are read globally, so every store's tree is affected
            self.cache.clear()

    async def set_override(
        self,
        store_id: str,
        nav_item_key: str,
        request: NavigationOverrideRequest,
    ) -> TenantNavigationOverride:
        override = TenantNavigationOverride(
            nav_item_key=nav_item_key,
            store_id=store_id,
            **request.model_dump(),
        )
        await self.override_writer.upsert_override(store_id, override)
        self._invalidate_overrides(store_id)
        return override

    async def delete_override(self, store_id: str, nav_item_key: str) -> bool:
        deleted = await self.override_writer.delete_override(store_id, nav_item_key)
        if deleted:
            self._invalidate_overrides(store_id)
        return deleted


def create_navigation_service(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    cache: Optional[NavigationCache] = None,
) -> NavigationService:
    """
    Wire a NavigationService to the database.

    Raises:
        UnknownHookError: if NAVIGATION_HOOKS names an unregistered hook.
    """
    return NavigationService(
        activation=SQLPluginActivationSource(session_factory),
        registry=SQLRegistrySource(session_factory),
        installed_plugins=InstalledPluginManifestSource(session_factory),
        registered_plugins=PluginRegistryManifestSource(session_factory),
        overrides=SQLOverrideSource(
            session_factory, scope_by_store=settings.navigation_scope_overrides_by_store
        ),
        registry_writer=SQLRegistryWriter(session_factory),
        override_writer=SQLOverrideWriter(session_factory),
        cache=cache,
        hooks=resolve_hooks(settings.navigation_hooks_list),
        overrides_scoped_by_store=settings.navigation_scope_overrides_by_store,
        default_plugin_icon=settings.plugin_default_icon,
        default_plugin_order=settings.plugin_default_order,
    )
