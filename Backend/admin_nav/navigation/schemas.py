"""
Navigation value types.

Registry rows, plugin descriptors and tenant overrides are converted into
these shapes at the collaborator boundary so the tree functions never touch
ORM objects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


PLUGIN_KEY_PREFIX = "plugin-"


def plugin_nav_key(plugin_id: str) -> str:
    return f"{PLUGIN_KEY_PREFIX}{plugin_id}"


@dataclass
class NavigationItem:
    """A navigation registry record (core or plugin-contributed)."""
    key: str
    label: str
    icon: Optional[str] = None
    route: Optional[str] = None
    parent_key: Optional[str] = None
    order_position: float = 0
    is_core: bool = False
    is_visible: bool = True
    plugin_id: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    type: str = "standard"

    @classmethod
    def from_model(cls, row: Any) -> "NavigationItem":
        return cls(
            key=row.key,
            label=row.label,
            icon=row.icon,
            route=row.route,
            parent_key=row.parent_key,
            order_position=row.order_position,
            is_core=row.is_core,
            is_visible=row.is_visible,
            plugin_id=row.plugin_id,
            category=row.category,
            description=row.description,
            type=row.type or "standard",
        )


class PluginNavigationDescriptor(BaseModel):
    """
    Navigation block embedded in a plugin manifest.

    Accepts the manifest's camelCase keys (`parentKey`, `relativeToKey`) as
    well as snake_case field names.
    Unknown keys (a manifest `category`, for one) are ignored; plugin items
    always land in the "plugins" category.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    enabled: bool = False
    label: Optional[str] = None
    icon: Optional[str] = None
    route: Optional[str] = None
    parent_key: Optional[str] = Field(default=None, alias="parentKey")
    order: Optional[float] = None
    description: Optional[str] = None
    relative_to_key: Optional[str] = Field(default=None, alias="relativeToKey")
    position: Optional[Literal["before", "after"]] = None


class PluginNavigationEntry(BaseModel):
    """One of several navigation items a plugin registers during installation."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    key: str = Field(..., min_length=1, max_length=100)
    label: str
    icon: Optional[str] = None
    route: Optional[str] = None
    parent_key: Optional[str] = Field(default=None, alias="parentKey")
    order: Optional[float] = None
    category: Optional[str] = None


@dataclass
class PluginNavigationRecord:
    """An active plugin together with its raw (unparsed) navigation descriptor."""
    plugin_id: str
    descriptor: Union[str, dict, None]
    name: Optional[str] = None


@dataclass
class TenantNavigationOverride:
    nav_item_key: str
    custom_label: Optional[str] = None
    custom_icon: Optional[str] = None
    custom_order: Optional[float] = None
    parent_key: Optional[str] = None
    is_enabled: Optional[bool] = None
    badge_text: Optional[str] = None
    badge_color: Optional[str] = None
    store_id: Optional[str] = None

    @classmethod
    def from_model(cls, row: Any) -> "TenantNavigationOverride":
        return cls(
            nav_item_key=row.nav_item_key,
            custom_label=row.custom_label,
            custom_icon=row.custom_icon,
            custom_order=row.custom_order,
            parent_key=row.parent_key,
            is_enabled=row.is_enabled,
            badge_text=row.badge_text,
            badge_color=row.badge_color,
            store_id=row.store_id,
        )


class NavigationBadge(BaseModel):
    text: str
    color: Optional[str] = None


@dataclass
class NormalizedItem:
    """Canonical item shape shared by every source once merged."""
    key: str
    label: str
    icon: Optional[str] = None
    route: Optional[str] = None
    parent_key: Optional[str] = None
    order: Optional[float] = None
    is_enabled: bool = True
    badge: Optional[NavigationBadge] = None
    is_core: bool = False
    plugin_id: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    type: str = "standard"


class NavigationNode(BaseModel):
    key: str
    label: str
    icon: Optional[str] = None
    route: Optional[str] = None
    parent_key: Optional[str] = None
    order: Optional[float] = None
    badge: Optional[NavigationBadge] = None
    is_core: bool = False
    plugin_id: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    type: str = "standard"
    children: list["NavigationNode"] = Field(default_factory=list)


class NavigationOverrideRequest(BaseModel):
    """Body for writing a tenant navigation override."""
    custom_label: Optional[str] = Field(default=None, max_length=255)
    custom_icon: Optional[str] = Field(default=None, max_length=100)
    custom_order: Optional[float] = None
    parent_key: Optional[str] = Field(default=None, max_length=100)
    is_enabled: Optional[bool] = None
    badge_text: Optional[str] = Field(default=None, max_length=64)
    badge_color: Optional[str] = Field(default=None, max_length=32)


@dataclass
class NavigationSnapshot:
    """Everything one tree build reads from its collaborators."""
    registry_items: list[NavigationItem] = field(default_factory=list)
    installed_plugin_items: list[NavigationItem] = field(default_factory=list)
    registered_plugin_items: list[NavigationItem] = field(default_factory=list)
    overrides: list[TenantNavigationOverride] = field(default_factory=list)
