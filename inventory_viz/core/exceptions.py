from __future__ import annotations


class InventoryVizError(Exception):
    """Base exception for all inventory_viz errors"""
    pass


class UploadError(InventoryVizError):
    """The upload collaborator rejected a file or the transport failed"""
    pass


class CapacityExceeded(InventoryVizError):
    """
    The dataset registry already holds a primary and a comparison dataset.
    The session has to be reset before another dataset can be attached.
    """
    pass


class FetchError(InventoryVizError):
    """A segment, comparison or error-metrics query failed"""

    def __init__(self, message: str, query: str | None = None):
        self.query = query
        super().__init__(message)


class StaleResponse(InventoryVizError):
    """
    A response arrived for a request whose datasets/page/filters are no longer current.
    Never shown to users: the orchestrator drops it.
    """
    pass


class InvalidTransition(InventoryVizError):
    """The requested operation is not allowed in the current session phase"""
    pass


class ConfigError(InventoryVizError):
    """Invalid or inconsistent application configuration"""
    pass
