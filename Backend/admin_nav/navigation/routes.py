"""
Admin navigation API.

GET    /api/stores/{store_id}/admin/navigation                      tree for the admin sidebar
PUT    /api/stores/{store_id}/admin/navigation/overrides/{key}      write a tenant override
DELETE /api/stores/{store_id}/admin/navigation/overrides/{key}      remove a tenant override
PUT    /api/plugins/{plugin_id}/navigation                          plugin navigation settings
POST   /api/plugins/{plugin_id}/navigation/items                    register plugin nav items
POST   /api/admin/navigation/seed                                   seed core navigation
"""

import logging
from dataclasses import asdict
from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, Path
from fastapi.responses import JSONResponse

from ..core.config import Settings, get_settings
from ..core.db import AsyncSessionLocal
from ..core.responses import ErrorCodes, error_response, success_response
from ..tenancy import StoreContext, get_store_context
from .cache import NavigationCache
from .errors import NavigationLoadError
from .schemas import (
    NavigationOverrideRequest,
    PluginNavigationDescriptor,
    PluginNavigationEntry,
)
from .service import NavigationService, create_navigation_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["navigation"])

NAV_KEY_PATTERN = r"^[A-Za-z0-9_.:-]+$"


# ────────────────────────────────────────────────────────────────
# Dependencies
# ────────────────────────────────────────────────────────────────

@lru_cache
def get_navigation_cache() -> NavigationCache:
    return NavigationCache(ttl_seconds=get_settings().navigation_cache_ttl_seconds)


def get_navigation_service(
    settings: Settings = Depends(get_settings),
    cache: NavigationCache = Depends(get_navigation_cache),
) -> NavigationService:
    return create_navigation_service(settings, AsyncSessionLocal, cache)


# ────────────────────────────────────────────────────────────────
# Endpoints
# ────────────────────────────────────────────────────────────────

@router.get("/stores/{store_id}/admin/navigation")
async def get_admin_navigation(
    ctx: StoreContext = Depends(get_store_context),
    service: NavigationService = Depends(get_navigation_service),
):
    """Return the merged admin navigation tree for the store."""
    try:
        tree = await service.build_navigation_for_tenant(ctx.store_id)
    except NavigationLoadError as e:
        return JSONResponse(
            status_code=500,
            content=error_response(ErrorCodes.NAVIGATION_LOAD_FAILED, e.message),
        )

    return success_response(navigation=[node.model_dump() for node in tree])


@router.put("/stores/{store_id}/admin/navigation/overrides/{nav_item_key}")
async def put_navigation_override(
    request: NavigationOverrideRequest,
    nav_item_key: str = Path(..., min_length=1, max_length=100, pattern=NAV_KEY_PATTERN),
    ctx: StoreContext = Depends(get_store_context),
    service: NavigationService = Depends(get_navigation_service),
):
    override = await service.set_override(ctx.store_id, nav_item_key, request)
    return success_response(override=asdict(override))


@router.delete("/stores/{store_id}/admin/navigation/overrides/{nav_item_key}")
async def delete_navigation_override(
    nav_item_key: str = Path(..., min_length=1, max_length=100, pattern=NAV_KEY_PATTERN),
    ctx: StoreContext = Depends(get_store_context),
    service: NavigationService = Depends(get_navigation_service),
):
    deleted = await service.delete_override(ctx.store_id, nav_item_key)
    if not deleted:
        raise HTTPException(
            status_code=404,
            detail={
                "code": ErrorCodes.NAV_ITEM_NOT_FOUND,
                "message": f"No override for navigation item {nav_item_key}",
            },
        )
    return success_response(deleted=True)


@router.put("/plugins/{plugin_id}/navigation")
async def put_plugin_navigation(
    descriptor: PluginNavigationDescriptor,
    plugin_id: str = Path(..., min_length=1, max_length=90, pattern=NAV_KEY_PATTERN),
    service: NavigationService = Depends(get_navigation_service),
):
    """
    Save a plugin's admin navigation settings.

    `enabled: false` removes the plugin's navigation item.
    """
    item = await service.upsert_plugin_navigation(plugin_id, descriptor)
    return success_response(item=asdict(item) if item else None)


@router.post("/plugins/{plugin_id}/navigation/items")
async def post_plugin_navigation_items(
    entries: list[PluginNavigationEntry],
    plugin_id: str = Path(..., min_length=1, max_length=90, pattern=NAV_KEY_PATTERN),
    service: NavigationService = Depends(get_navigation_service),
):
    items = await service.register_plugin_navigation(plugin_id, entries)
    return success_response(items=[asdict(item) for item in items])


@router.post("/admin/navigation/seed")
async def seed_navigation(
    service: NavigationService = Depends(get_navigation_service),
):
    inserted = await service.seed_core_navigation()
    return success_response(inserted=inserted)
