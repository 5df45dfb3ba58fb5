"""Queue engine models and data structures."""

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum


class QueryState(str, Enum):
    """Lifecycle states of a query inside the dispatcher."""

    QUEUED = "queued"
    IN_FLIGHT = "in_flight"
    RESOLVED = "resolved"
    FAILED = "failed"


@dataclass
class Query:
    """A user question owned by the dispatcher until it resolves or fails."""

    text: str
    user_id: str
    channel_id: str | None = None
    source_message_id: str | None = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    enqueued_at: float = field(default_factory=time.time)
    retry_count: int = 0
    state: QueryState = QueryState.QUEUED

    # Runtime-only, never persisted
    future: asyncio.Future[str] | None = field(default=None, repr=False, compare=False)
    cancel_event: asyncio.Event | None = field(default=None, repr=False, compare=False)

    @property
    def cancelled(self) -> bool:
        """Whether the caller gave up on this query."""
        if self.cancel_event is not None and self.cancel_event.is_set():
            return True
        return self.future is not None and self.future.cancelled()


@dataclass
class DispatcherStats:
    """Counters kept by the dispatcher."""

    total_requests: int = 0
    success_count: int = 0
    failure_count: int = 0
    retry_count: int = 0
    cancelled_count: int = 0

    @property
    def success_rate(self) -> float:
        finished = self.success_count + self.failure_count
        return self.success_count / finished if finished else 0.0
