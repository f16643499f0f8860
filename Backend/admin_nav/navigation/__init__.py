"""
Admin navigation package.

Modules:
    schemas: value types shared by the sources, the tree builder and the API
    tree: pure merge / override / tree construction functions
    sources: collaborator interfaces and their SQLAlchemy implementations
    service: NavigationService (build + registry and override writes)
    cache: in-memory TTL cache for built trees
    hooks: closed registry of named tree filters
    routes: FastAPI router
"""

from .cache import NavigationCache
from .errors import (
    CollaboratorUnavailable,
    DescriptorParseError,
    NavigationError,
    NavigationLoadError,
    UnknownHookError,
)
from .schemas import (
    NavigationBadge,
    NavigationItem,
    NavigationNode,
    PluginNavigationDescriptor,
    PluginNavigationRecord,
    TenantNavigationOverride,
)
from .service import NavigationService, create_navigation_service
from .tree import build_tree, merge_navigation

__all__ = [
    "NavigationCache",
    "CollaboratorUnavailable",
    "DescriptorParseError",
    "NavigationError",
    "NavigationLoadError",
    "UnknownHookError",
    "NavigationBadge",
    "NavigationItem",
    "NavigationNode",
    "PluginNavigationDescriptor",
    "PluginNavigationRecord",
    "TenantNavigationOverride",
    "NavigationService",
    "create_navigation_service",
    "build_tree",
    "merge_navigation",
]
