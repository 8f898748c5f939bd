from __future__ import annotations

from typing import Any


class EdgeSyncError(Exception):
    """Base class for reconciliation failures.

    Keyword arguments are kept as ``context`` and end up in the log event,
    so a failure can be traced to the service and label that caused it.
    """

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = {k: v for k, v in context.items() if v is not None}


class ValidationError(EdgeSyncError):
    """A service declaration has the wrong shape. Only that service is skipped."""


class DiscoveryError(EdgeSyncError):
    """The service directory could not be listed."""


class ResolutionError(EdgeSyncError):
    """Endpoints for a service/network pair could not be resolved."""


class RenderError(EdgeSyncError):
    """The routing table could not be rendered to a configuration."""


class ConfigWriteError(EdgeSyncError):
    pass


class SignalError(EdgeSyncError):
    pass


class LaunchError(EdgeSyncError):
    pass


class StartupError(EdgeSyncError):
    """Any failure during the first, synchronous reconciliation."""
