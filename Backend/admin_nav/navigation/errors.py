from typing import Optional


class NavigationError(Exception):
    """Base class for navigation failures."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class CollaboratorUnavailable(NavigationError):
    """Raised when a navigation data source cannot be read or written."""
    def __init__(self, message: str, source: Optional[str] = None):
        self.source = source
        super().__init__(message)


class DescriptorParseError(NavigationError, ValueError):
    """Raised when a plugin's embedded navigation descriptor is unusable."""
    def __init__(self, message: str, plugin_id: Optional[str] = None):
        self.plugin_id = plugin_id
        super().__init__(message)


class NavigationLoadError(NavigationError):
    """Raised when a tenant's navigation tree cannot be built."""
    def __init__(self, message: str, store_id: Optional[str] = None):
        self.store_id = store_id
        super().__init__(message)


class UnknownHookError(NavigationError, KeyError):
    """Raised when configuration names a navigation hook that is not registered."""
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown navigation hook: {name}")

    def __str__(self) -> str:
        return self.message
