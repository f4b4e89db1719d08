"""
Core orchestration layer: filter state, dataset registry, pagination,
query routing, the notification bus and the session orchestrator
"""

from .dataset_registry import DatasetRegistry, Mode
from .filter_state import Cancelled, Committed, FilterCriteria, FilterState, TimePeriod
from .models import DatasetRef, UploadFile
from .notification_bus import Channel, NotificationBus
from .orchestrator import Orchestrator, SessionPhase
from .pagination import PAGE_SIZE, PaginationCursor
from .query_router import QueryRouter, plan_queries

__all__ = [
    "Cancelled",
    "Channel",
    "Committed",
    "DatasetRef",
    "DatasetRegistry",
    "FilterCriteria",
    "FilterState",
    "Mode",
    "NotificationBus",
    "Orchestrator",
    "PAGE_SIZE",
    "PaginationCursor",
    "QueryRouter",
    "SessionPhase",
    "TimePeriod",
    "UploadFile",
    "plan_queries",
]
