"""
Navigation tree construction.

Pure functions that turn collaborator snapshots into the admin navigation
tree:

    registry items + plugin items (source A) + plugin items (source B)
        -> normalize_items()      one canonical record per key
        -> apply_overrides()      tenant customizations, disabled items dropped
        -> build_tree()           parent resolution + recursive child sort

Nothing here performs I/O; see service.py for the fetching side.
"""

import json
import logging
from dataclasses import replace
from typing import Iterable, Optional, Sequence, Union

from pydantic import ValidationError

from .errors import DescriptorParseError
from .schemas import (
    NavigationBadge,
    NavigationItem,
    NavigationNode,
    NavigationSnapshot,
    NormalizedItem,
    PluginNavigationDescriptor,
    TenantNavigationOverride,
    plugin_nav_key,
)

logger = logging.getLogger(__name__)

DEFAULT_PLUGIN_ICON = "Package"
DEFAULT_PLUGIN_ORDER = 100
PLUGIN_CATEGORY = "plugins"


# ────────────────────────────────────────────────────────────────
# Plugin descriptor handling
# ────────────────────────────────────────────────────────────────

def parse_navigation_descriptor(
    raw: Union[str, dict, None],
    plugin_id: Optional[str] = None,
) -> PluginNavigationDescriptor:
    """
    Parse an embedded plugin navigation descriptor.

    The descriptor may arrive as a JSON string (installed plugins store it as
    text) or as an already-decoded mapping (registry manifests).

    Raises:
        DescriptorParseError: if the JSON is malformed, is not an object,
            or its fields have the wrong types.
    """
    if raw is None:
        raise DescriptorParseError("Navigation descriptor is missing", plugin_id=plugin_id)

    data = raw
    if isinstance(raw, (str, bytes)):
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise DescriptorParseError(
                f"Navigation descriptor is not valid JSON: {e}", plugin_id=plugin_id
            ) from e

    if not isinstance(data, dict):
        raise DescriptorParseError(
            f"Navigation descriptor must be an object, got {type(data).__name__}",
            plugin_id=plugin_id,
        )

    try:
        return PluginNavigationDescriptor.model_validate(data)
    except ValidationError as e:
        raise DescriptorParseError(
            f"Navigation descriptor has invalid fields: {e.error_count()} error(s)",
            plugin_id=plugin_id,
        ) from e


def synthesize_plugin_item(
    plugin_id: str,
    descriptor: PluginNavigationDescriptor,
    name: Optional[str] = None,
    default_icon: str = DEFAULT_PLUGIN_ICON,
    default_order: float = DEFAULT_PLUGIN_ORDER,
) -> Optional[NavigationItem]:
    """
    Turn an enabled plugin descriptor into a registry-shaped item.

    Returns None when the descriptor is not enabled. Synthesized items are
    always visible; `enabled` is their only visibility switch.
    """
    if not descriptor.enabled:
        return None

    key = plugin_nav_key(plugin_id)
    return NavigationItem(
        key=key,
        label=descriptor.label or name or key,
        icon=descriptor.icon or default_icon,
        route=descriptor.route,
        parent_key=descriptor.parent_key or None,
        order_position=descriptor.order if descriptor.order is not None else default_order,
        is_core=False,
        is_visible=True,
        plugin_id=plugin_id,
        category=PLUGIN_CATEGORY,
        description=descriptor.description,
    )


# ────────────────────────────────────────────────────────────────
# Merge
# ────────────────────────────────────────────────────────────────

def normalize_item(item: NavigationItem) -> NormalizedItem:
    return NormalizedItem(
        key=item.key,
        label=item.label,
        icon=item.icon,
        route=item.route,
        parent_key=item.parent_key,
        order=item.order_position,
        is_enabled=True,
        is_core=item.is_core,
        plugin_id=item.plugin_id,
        category=item.category,
        description=item.description,
        type=item.type,
    )


def normalize_items(items: Iterable[NavigationItem]) -> list[NormalizedItem]:
    """
    Normalize candidates into one record per key.

    When the same key appears more than once the later record wins but keeps
    the position of the first occurrence.
    """
    by_key: dict[str, NormalizedItem] = {}
    for item in items:
        if item.key in by_key:
            logger.debug(f"Navigation key {item.key} supplied more than once; later entry wins")
        by_key[item.key] = normalize_item(item)
    return list(by_key.values())


def apply_override(item: NormalizedItem, override: TenantNavigationOverride) -> NormalizedItem:
    """Apply one override field by field; absent fields keep the item's value."""
    badge = None
    if override.badge_text:
        badge = NavigationBadge(text=override.badge_text, color=override.badge_color)

    return replace(
        item,
        label=override.custom_label or item.label,
        order=override.custom_order if override.custom_order is not None else item.order,
        icon=override.custom_icon or item.icon,
        parent_key=override.parent_key or item.parent_key,
        is_enabled=override.is_enabled if override.is_enabled is not None else True,
        badge=badge,
    )


def apply_overrides(
    items: Iterable[NormalizedItem],
    overrides: Iterable[TenantNavigationOverride],
) -> list[NormalizedItem]:
    """Apply tenant overrides and drop items they disable."""
    override_map = {o.nav_item_key: o for o in overrides}

    result = []
    for item in items:
        override = override_map.get(item.key)
        if override is not None:
            item = apply_override(item, override)
        if item.is_enabled is False:
            continue
        result.append(item)
    return result


# ────────────────────────────────────────────────────────────────
# Tree
# ────────────────────────────────────────────────────────────────

def _node_from_item(item: NormalizedItem) -> NavigationNode:
    return NavigationNode(
        key=item.key,
        label=item.label,
        icon=item.icon,
        route=item.route,
        parent_key=item.parent_key,
        order=item.order,
        badge=item.badge,
        is_core=item.is_core,
        plugin_id=item.plugin_id,
        category=item.category,
        description=item.description,
        type=item.type,
        children=[],
    )


def _resolve_parents(items: Sequence[NormalizedItem]) -> dict[str, Optional[str]]:
    """
    Map each key to the key of the node it hangs under, or None for roots.

    Dangling and self references become roots. Parent cycles are cut at the
    first node found to repeat so every surviving item stays reachable.
    """
    keys = {item.key for item in items}
    parents: dict[str, Optional[str]] = {}
    for item in items:
        parent = item.parent_key
        if parent and parent in keys and parent != item.key:
            parents[item.key] = parent
        else:
            parents[item.key] = None

    for item in items:
        seen: set[str] = set()
        current: Optional[str] = item.key
        while current is not None:
            if current in seen:
                logger.warning(f"Navigation parent cycle through {current}; placing it at root")
                parents[current] = None
                break
            seen.add(current)
            current = parents[current]

    return parents


def sort_children(node: NavigationNode) -> None:
    """Recursively sort children ascending by order (missing order counts as 0)."""
    if node.children:
        node.children.sort(key=lambda child: child.order or 0)
        for child in node.children:
            sort_children(child)


def build_tree(items: Iterable[NormalizedItem]) -> list[NavigationNode]:
    """
    Build the hierarchical navigation from merged items.

    Children keep input order until sorted; the root sequence keeps input
    order and is not re-sorted.
    """
    by_key: dict[str, NormalizedItem] = {}
    for item in items:
        by_key[item.key] = item
    ordered = list(by_key.values())

    nodes = {item.key: _node_from_item(item) for item in ordered}
    parents = _resolve_parents(ordered)

    roots: list[NavigationNode] = []
    for item in ordered:
        node = nodes[item.key]
        parent_key = parents[item.key]
        if parent_key is not None:
            nodes[parent_key].children.append(node)
        else:
            roots.append(node)

    for root in roots:
        sort_children(root)

    return roots


def merge_navigation(snapshot: NavigationSnapshot) -> list[NavigationNode]:
    """Run the whole merge → normalize → override → tree pipeline on a snapshot."""
    candidates = [
        item
        for item in (
            *snapshot.registry_items,
            *snapshot.installed_plugin_items,
            *snapshot.registered_plugin_items,
        )
        if item.is_visible
    ]
    merged = apply_overrides(normalize_items(candidates), snapshot.overrides)
    return build_tree(merged)


def iter_nodes(nodes: Iterable[NavigationNode]) -> Iterable[NavigationNode]:
    """Depth-first walk over a navigation tree."""
    for node in nodes:
        yield node
        yield from iter_nodes(node.children)
