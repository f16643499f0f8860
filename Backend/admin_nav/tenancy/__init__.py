"""
Multi-tenancy package.

Modules:
    context: StoreContext resolution and the FastAPI dependency that injects it
"""

from .context import (
    STORE_ID_HEADER,
    StoreContext,
    StoreResolutionSource,
    extract_store_ref,
    get_store_context,
    resolve_store_context,
)

__all__ = [
    "STORE_ID_HEADER",
    "StoreContext",
    "StoreResolutionSource",
    "extract_store_ref",
    "get_store_context",
    "resolve_store_context",
]
