import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from .core.db import Base


class PluginStatus(str, Enum):
    INSTALLED = "installed"
    UNINSTALLED = "uninstalled"


class PluginRegistryStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


def _new_id() -> str:
    return str(uuid.uuid4())


class Store(Base):
    __tablename__ = "stores"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class Plugin(Base):
    """A plugin installed into a store. `admin_nav` holds the embedded navigation JSON."""

    __tablename__ = "plugins"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    store_id: Mapped[str] = mapped_column(ForeignKey("stores.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(32), default=PluginStatus.INSTALLED.value, nullable=False)
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    admin_nav: Mapped[str | None] = mapped_column(Text, nullable=True)
    manifest: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class PluginRegistryEntry(Base):
    """A plugin registered for a store. Navigation lives in `manifest["adminNavigation"]`."""

    __tablename__ = "plugin_registry"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    store_id: Mapped[str] = mapped_column(ForeignKey("stores.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(
        String(32), default=PluginRegistryStatus.ACTIVE.value, nullable=False
    )
    manifest: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class AdminNavigationItem(Base):
    __tablename__ = "admin_navigation_registry"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    icon: Mapped[str | None] = mapped_column(String(100), nullable=True)
    route: Mapped[str | None] = mapped_column(String(255), nullable=True)
    parent_key: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    # Float so an item can be slotted between two siblings without re-indexing
    order_position: Mapped[float] = mapped_column(Float, default=100, nullable=False)
    is_core: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_visible: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    plugin_id: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    category: Mapped[str | None] = mapped_column(String(64), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(String(32), default="standard", nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )


class AdminNavigationOverride(Base):
    __tablename__ = "admin_navigation_config"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    store_id: Mapped[str | None] = mapped_column(ForeignKey("stores.id"), nullable=True, index=True)
    nav_item_key: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    custom_label: Mapped[str | None] = mapped_column(String(255), nullable=True)
    custom_icon: Mapped[str | None] = mapped_column(String(100), nullable=True)
    custom_order: Mapped[float | None] = mapped_column(Float, nullable=True)
    parent_key: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_enabled: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    badge_text: Mapped[str | None] = mapped_column(String(64), nullable=True)
    badge_color: Mapped[str | None] = mapped_column(String(32), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("store_id", "nav_item_key", name="uq_nav_override_store_key"),
    )
