"""
Navigation hooks.

A closed registry of named tree filters. Handlers are declared in this
module and registered at import time; configuration may only choose which
registered names run (NAVIGATION_HOOKS=default_icons,drop_empty_groups).
Stored configuration never supplies handler code.

Handlers take the built tree and a HookContext (the service's configured
defaults) and return a (possibly new) tree. They run in ascending priority
order.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from .errors import UnknownHookError
from .schemas import NavigationNode
from .tree import DEFAULT_PLUGIN_ICON

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HookContext:
    default_icon: str = DEFAULT_PLUGIN_ICON


NavigationFilter = Callable[[list[NavigationNode], HookContext], list[NavigationNode]]


@dataclass(frozen=True)
class NavigationHook:
    name: str
    handler: NavigationFilter
    priority: int = 10


_HOOKS: dict[str, NavigationHook] = {}


def navigation_hook(name: str, priority: int = 10) -> Callable[[NavigationFilter], NavigationFilter]:
    """Register a tree filter under `name`."""
    def decorator(func: NavigationFilter) -> NavigationFilter:
        if name in _HOOKS:
            raise ValueError(f"Navigation hook already registered: {name}")
        _HOOKS[name] = NavigationHook(name=name, handler=func, priority=priority)
        return func
    return decorator


def registered_hooks() -> list[str]:
    return sorted(_HOOKS)


def resolve_hooks(names: Iterable[str]) -> list[NavigationHook]:
    """
    Look up hooks by name, ordered by priority then by the order given.

    Raises:
        UnknownHookError: if any name is not registered.
    """
    hooks = []
    for name in names:
        hook = _HOOKS.get(name)
        if hook is None:
            raise UnknownHookError(name)
        hooks.append(hook)
    return sorted(hooks, key=lambda h: h.priority)


def apply_hooks(
    tree: list[NavigationNode],
    hooks: Iterable[NavigationHook],
    context: Optional[HookContext] = None,
) -> list[NavigationNode]:
    context = context or HookContext()
    for hook in hooks:
        tree = hook.handler(tree, context)
        logger.debug(f"Applied navigation hook {hook.name}")
    return tree


# ────────────────────────────────────────────────────────────────
# Built-in hooks
# ────────────────────────────────────────────────────────────────

@navigation_hook("default_icons", priority=5)
def default_icons(tree: list[NavigationNode], context: HookContext) -> list[NavigationNode]:
    """Give every node without an icon the configured default plugin icon."""
    def fill(nodes: list[NavigationNode]) -> None:
        for node in nodes:
            if not node.icon:
                node.icon = context.default_icon
            fill(node.children)

    fill(tree)
    return tree


@navigation_hook("drop_empty_groups", priority=20)
def drop_empty_groups(tree: list[NavigationNode], context: HookContext) -> list[NavigationNode]:
    """Remove nodes that have no route and, after pruning, no children."""
    def prune(nodes: list[NavigationNode]) -> list[NavigationNode]:
        kept = []
        for node in nodes:
            node.children = prune(node.children)
            if node.route or node.children:
                kept.append(node)
        return kept

    return prune(tree)
