"""Queue engine module."""

from .models import DispatcherStats, Query, QueryState
from .dispatcher import QueryDispatcher

__all__ = ["DispatcherStats", "Query", "QueryDispatcher", "QueryState"]
