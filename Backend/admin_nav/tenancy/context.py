"""
Multi-tenancy context module.

This module provides the StoreContext abstraction for tenant isolation.
Every admin route that reads or writes tenant data resolves a StoreContext
first; the store id then travels into the navigation queries as a filter.

Resolution order:
    1. `store_id` path parameter (/api/stores/{store_id}/...)
    2. `X-Store-Id` header
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from fastapi import Depends, HTTPException, Request
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.db import get_session
from ..core.responses import ErrorCodes
from ..models import Store


logger = logging.getLogger(__name__)

STORE_ID_HEADER = "X-Store-Id"


class StoreResolutionSource(str, Enum):
    """How the store context was determined."""

    URL_PATH = "url_path"       # From /api/stores/{store_id}/ in the URL path
    HEADER = "header"           # From the X-Store-Id header


@dataclass(frozen=True)
class StoreContext:
    """
    Immutable context representing the current tenant for a request.

    Attributes:
        store_id: The database ID of the store (stores.id)
        store_slug: URL-safe identifier, may be None if resolved by ID only
        store_name: Human-readable store name
        source: How this context was determined (for audit logging)
    """

    store_id: str
    store_slug: Optional[str] = None
    store_name: Optional[str] = None
    source: StoreResolutionSource = StoreResolutionSource.URL_PATH

    def __post_init__(self):
        if not self.store_id or not self.store_id.strip():
            raise ValueError("store_id must be a non-empty string")


# ────────────────────────────────────────────────────────────────
# Resolution Functions
# ────────────────────────────────────────────────────────────────

async def resolve_store_context(
    session: AsyncSession,
    store_ref: str,
    source: StoreResolutionSource = StoreResolutionSource.URL_PATH,
) -> Optional[StoreContext]:
    """
    Resolve store context from a store id or slug.

    Args:
        session: Database session
        store_ref: Store id (uuid) or slug
        source: Where the reference came from

    Returns:
        StoreContext if found, None otherwise
    """
    result = await session.execute(
        select(Store).where(or_(Store.id == store_ref, Store.slug == store_ref))
    )
    store = result.scalars().first()

    if not store:
        return None

    return StoreContext(
        store_id=store.id,
        store_slug=store.slug,
        store_name=store.name,
        source=source,
    )


def extract_store_ref(request: Request) -> tuple[Optional[str], StoreResolutionSource]:
    """Pick the store reference from the path, falling back to the header."""
    path_ref = request.path_params.get("store_id")
    if path_ref:
        return path_ref, StoreResolutionSource.URL_PATH

    header_ref = request.headers.get(STORE_ID_HEADER)
    if header_ref and header_ref.strip():
        return header_ref.strip(), StoreResolutionSource.HEADER

    return None, StoreResolutionSource.URL_PATH


# ────────────────────────────────────────────────────────────────
# FastAPI Dependencies
# ────────────────────────────────────────────────────────────────

async def get_store_context(
    request: Request,
    session: AsyncSession = Depends(get_session),
) -> StoreContext:
    """
    FastAPI dependency resolving the tenant store for the request.

    Raises:
        HTTPException 400: no store reference in path or headers
        HTTPException 404: the referenced store does not exist
    """
    store_ref, source = extract_store_ref(request)
    if not store_ref:
        raise HTTPException(
            status_code=400,
            detail={"code": ErrorCodes.STORE_NOT_FOUND, "message": "Store id is required"},
        )

    ctx = await resolve_store_context(session, store_ref, source)
    if ctx is None:
        logger.warning(f"Store not found for reference {store_ref} ({source.value})")
        raise HTTPException(
            status_code=404,
            detail={"code": ErrorCodes.STORE_NOT_FOUND, "message": f"Store not found: {store_ref}"},
        )

    logger.debug(f"Resolved store {ctx.store_id} via {source.value}")
    return ctx
