"""Per-user cooldown plus sliding-window admission gate."""

import logging
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdmissionResult:
    """Outcome of an admission check."""

    allowed: bool
    retry_after: float = 0.0

    @classmethod
    def allow(cls) -> "AdmissionResult":
        return cls(allowed=True)

    @classmethod
    def deny(cls, retry_after: float) -> "AdmissionResult":
        return cls(allowed=False, retry_after=max(retry_after, 0.0))


@dataclass
class RateLimitRecord:
    """Recent request timestamps of one user."""

    timestamps: deque[float] = field(default_factory=deque)
    blocked_until: float | None = None

    @property
    def last_request(self) -> float | None:
        return self.timestamps[-1] if self.timestamps else None


class RateLimiter:
    """Admission gate combining a per-user cooldown with a sliding window.

    Every check touches only the calling user's record. Records are pruned
    lazily on access and evicted in bounded batches once the number of
    tracked users passes ``max_tracked_users``.
    """

    def __init__(
        self,
        cooldown_seconds: float = 5.0,
        window_seconds: float = 60.0,
        max_per_window: int = 10,
        max_tracked_users: int = 1000,
        evict_batch: int = 50,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the rate limiter.

        Args:
            cooldown_seconds: Minimum gap between two admitted requests of a user
            window_seconds: Length of the sliding window
            max_per_window: Requests a user may make inside one window
            max_tracked_users: High-water mark for tracked user records
            evict_batch: Maximum records evicted in one eviction pass
            clock: Time source in seconds
        """
        self.cooldown_seconds = cooldown_seconds
        self.window_seconds = window_seconds
        self.max_per_window = max_per_window
        self.max_tracked_users = max_tracked_users
        self.evict_batch = evict_batch
        self._clock = clock
        self._records: dict[str, RateLimitRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def admit(self, user_id: str) -> AdmissionResult:
        """Decide whether a request from ``user_id`` may enter the queue.

        Args:
            user_id: Identifier of the requesting user

        Returns:
            AdmissionResult, with a wait estimate when denied
        """
        now = self._clock()
        record = self._records.get(user_id)

        if record is not None:
            if record.blocked_until is not None:
                if now < record.blocked_until:
                    return AdmissionResult.deny(record.blocked_until - now)
                record.blocked_until = None

            self._prune(record, now)

            last = record.last_request
            if last is not None and now - last < self.cooldown_seconds:
                return AdmissionResult.deny(self.cooldown_seconds - (now - last))

            if len(record.timestamps) >= self.max_per_window:
                record.blocked_until = record.timestamps[0] + self.window_seconds
                logger.info(
                    f"User {user_id} hit {self.max_per_window} requests per "
                    f"{self.window_seconds:.0f}s, blocked for {record.blocked_until - now:.1f}s"
                )
                return AdmissionResult.deny(record.blocked_until - now)
        else:
            record = RateLimitRecord()
            self._records[user_id] = record

        record.timestamps.append(now)

        if len(self._records) > self.max_tracked_users:
            self._evict(now, keep=user_id)

        return AdmissionResult.allow()

    def reset(self, user_id: str) -> None:
        """Forget everything known about ``user_id``."""
        self._records.pop(user_id, None)

    def _prune(self, record: RateLimitRecord, now: float) -> None:
        cutoff = now - self.window_seconds
        while record.timestamps and record.timestamps[0] <= cutoff:
            record.timestamps.popleft()

    def _evict(self, now: float, keep: str) -> None:
        """Drop stale records, then the stalest ones if still over the mark.

        One pass removes at most ``evict_batch`` records across both steps.
        """
        stale_cutoff = now - 2 * self.window_seconds
        stale = [
            user_id
            for user_id, record in self._records.items()
            if user_id != keep and self._is_stale(record, now, stale_cutoff)
        ]
        for user_id in stale[: self.evict_batch]:
            del self._records[user_id]
        budget = self.evict_batch - min(len(stale), self.evict_batch)

        if budget and len(self._records) > self.max_tracked_users:
            candidates = sorted(
                (user_id for user_id in self._records if user_id != keep),
                key=lambda user_id: self._records[user_id].last_request or 0.0,
            )
            for user_id in candidates[:budget]:
                del self._records[user_id]

        logger.debug(f"Rate limiter eviction pass, {len(self._records)} users tracked")

    @staticmethod
    def _is_stale(record: RateLimitRecord, now: float, cutoff: float) -> bool:
        if record.blocked_until is not None and record.blocked_until > now:
            return False
        return record.last_request is None or record.last_request < cutoff
