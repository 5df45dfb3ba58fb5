"""Kernel service: admission, dispatch, conversation memory and snapshots."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from kernelbot.admission import RateLimiter
from kernelbot.config import Settings, get_settings
from kernelbot.context import ContextSelector
from kernelbot.conversation import ConversationCache
from kernelbot.dispatch import Query, QueryDispatcher
from kernelbot.errors import DEFAULT_CONTACT_EMAIL, AdmissionDenied
from kernelbot.llm import LLMProvider, create_llm_provider
from kernelbot.persistence import SnapshotStore

logger = logging.getLogger(__name__)


class KernelService:
    """Single entry point used by chat front ends.

    Owns one instance of each component and the periodic tasks that sweep
    expired conversations and snapshot state to disk.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        provider: LLMProvider | None = None,
        selector: ContextSelector | None = None,
        limiter: RateLimiter | None = None,
        cache: ConversationCache | None = None,
        store: SnapshotStore | None = None,
    ):
        """Initialize the service.

        Components not supplied are built from settings.

        Args:
            settings: Application settings
            provider: Upstream completion provider
            selector: Context selector over the event document
            limiter: Admission gate
            cache: Conversation cache
            store: Snapshot store
        """
        self.settings = settings or get_settings()
        s = self.settings

        self.provider = provider or create_llm_provider()
        self.selector = selector or ContextSelector.from_file(s.event_data_path)
        self.limiter = limiter or RateLimiter(
            cooldown_seconds=s.cooldown_seconds,
            window_seconds=s.rate_window_seconds,
            max_per_window=s.rate_max_per_window,
            max_tracked_users=s.rate_max_tracked_users,
            evict_batch=s.rate_evict_batch,
        )
        self.cache = cache or ConversationCache(
            max_messages=s.conversation_max_messages,
            history_window=s.conversation_history_window,
            ttl_seconds=s.conversation_ttl_seconds,
        )
        self.store = store or SnapshotStore(s.queue_snapshot_path, s.cache_snapshot_path)
        self.dispatcher = QueryDispatcher(
            provider=self.provider,
            selector=self.selector,
            cache=self.cache,
            store=self.store,
            max_concurrency=s.max_concurrency,
            max_retries=s.max_retries,
            upstream_timeout=s.upstream_timeout,
            retry_backoff_base=s.retry_backoff_base,
            retry_backoff_max=s.retry_backoff_max,
            snapshot_debounce=s.snapshot_debounce,
        )
        self.contact = self.selector.contact_email or DEFAULT_CONTACT_EMAIL
        self._periodic_tasks: list[asyncio.Task] = []
        self._started = False

    async def start(self) -> None:
        """Restore snapshots and start the periodic tasks."""
        if self._started:
            return
        self._started = True

        contexts = await asyncio.to_thread(self.store.load_cache)
        self.cache.restore(contexts)

        queries = await asyncio.to_thread(self.store.load_queue)
        self.dispatcher.restore(queries)

        self._periodic_tasks = [
            asyncio.create_task(
                self._every(self.settings.conversation_sweep_interval, self._sweep),
                name="conversation-sweep",
            ),
            asyncio.create_task(
                self._every(self.settings.snapshot_interval, self.save_snapshots),
                name="periodic-snapshot",
            ),
        ]
        logger.info(
            f"Kernel service started: {len(self.cache)} conversations and "
            f"{len(queries)} queries restored, concurrency {self.dispatcher.max_concurrency}"
        )

    async def shutdown(self) -> None:
        """Graceful shutdown: drain in-flight work, then flush snapshots."""
        logger.info("Shutting down Kernel service...")
        for task in self._periodic_tasks:
            task.cancel()
        await asyncio.gather(*self._periodic_tasks, return_exceptions=True)
        self._periodic_tasks = []

        await self.dispatcher.shutdown(timeout=self.settings.shutdown_timeout)
        await self._save_cache()
        await self.provider.aclose()
        logger.info("Kernel service stopped")

    async def submit_query(
        self,
        text: str,
        user_id: str,
        channel_id: str | None = None,
        correlation_id: str | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> str:
        """Ask a question and wait for the answer.

        Args:
            text: Question text
            user_id: Asking user
            channel_id: Channel of the conversation; without it no history is used
            correlation_id: Caller's message identifier, kept with the query
            cancel_event: Set it to drop the query before its next attempt

        Returns:
            Answer text

        Raises:
            ValueError: If the question is empty
            AdmissionDenied: If the user has to wait before asking again
            UpstreamError: If the upstream service failed permanently
            ServiceShuttingDown: If the service is stopping
        """
        question = text.strip()
        if not question:
            raise ValueError("Question must not be empty")

        admission = self.limiter.admit(user_id)
        if not admission.allowed:
            logger.info(f"Deferred user {user_id} for {admission.retry_after:.1f}s")
            raise AdmissionDenied(admission.retry_after)

        query = Query(
            text=question,
            user_id=user_id,
            channel_id=channel_id,
            source_message_id=correlation_id,
            cancel_event=cancel_event,
        )
        return await self.dispatcher.enqueue(query)

    def clear_conversation(self, user_id: str, channel_id: str) -> bool:
        """Forget the conversation of a user in a channel (idempotent)."""
        return self.cache.clear(user_id, channel_id)

    def get_stats(self) -> dict[str, Any]:
        """Get a read-only view of queue and outcome counters."""
        stats = self.dispatcher.stats
        return {
            "queueLength": self.dispatcher.queue_length,
            "inFlightCount": self.dispatcher.in_flight_count,
            "totalRequests": stats.total_requests,
            "successCount": stats.success_count,
            "failureCount": stats.failure_count,
            "successRate": round(stats.success_rate, 4),
            "activeConversations": len(self.cache),
        }

    async def health_check(self) -> dict[str, bool]:
        """Check health of the service components.

        Returns:
            Health status dictionary
        """
        health = {
            "upstream": await self.provider.health_check(),
            "dispatcher": self.dispatcher.accepting,
            "event_data": bool(self.selector.event_data),
        }
        health["overall"] = all(health.values())
        return health

    async def save_snapshots(self) -> None:
        """Write both the queue and the conversation cache snapshots."""
        await self.dispatcher.save_snapshot()
        await self._save_cache()

    async def _save_cache(self) -> None:
        try:
            await self.store.write_cache(self.cache.contexts())
        except OSError as e:
            logger.error(f"Failed to save conversation snapshot: {e}")

    async def _sweep(self) -> None:
        self.cache.sweep()

    async def _every(self, interval: float, job: Callable[[], Awaitable[None]]) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await job()
            except Exception as e:
                logger.error(f"Periodic task {job.__name__} failed: {e}", exc_info=True)
