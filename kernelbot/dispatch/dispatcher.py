"""FIFO queue engine with a bounded worker pool and retry-with-backoff."""

import asyncio
import logging
from collections import deque
from functools import partial
from typing import TYPE_CHECKING

from kernelbot.context import ContextSelector
from kernelbot.conversation import ConversationCache
from kernelbot.errors import (
    DEFAULT_CONTACT_EMAIL,
    ServiceShuttingDown,
    UpstreamAuthFailure,
    UpstreamError,
    classify_upstream_error,
)
from kernelbot.llm.base import LLMProvider, ResponseResult
from kernelbot.prompts import EMPTY_RESPONSE_MESSAGE, build_system_context
from .models import DispatcherStats, Query, QueryState

if TYPE_CHECKING:
    from kernelbot.persistence import SnapshotStore

logger = logging.getLogger(__name__)


class QueryDispatcher:
    """Runs queued queries against the upstream provider.

    Queries leave the queue in FIFO order while fewer than ``max_concurrency``
    are in flight. Each attempt runs as its own task so the pump never waits
    on the upstream call. Retryable failures go back to the tail of the
    queue until ``max_retries`` is spent.

    All state is mutated from the event loop thread only.
    """

    def __init__(
        self,
        provider: LLMProvider,
        selector: ContextSelector,
        cache: ConversationCache,
        store: "SnapshotStore | None" = None,
        max_concurrency: int = 5,
        max_retries: int = 3,
        upstream_timeout: float = 30.0,
        retry_backoff_base: float = 1.0,
        retry_backoff_max: float = 8.0,
        snapshot_debounce: float = 1.0,
    ):
        """Initialize query dispatcher.

        Args:
            provider: Upstream completion provider
            selector: Context selector for prompt assembly
            cache: Conversation cache updated on success
            store: Optional snapshot store for the pending queue
            max_concurrency: Upstream calls allowed in flight
            max_retries: Requeues allowed for retryable failures
            upstream_timeout: Seconds before an upstream call is abandoned
            retry_backoff_base: First retry delay in seconds
            retry_backoff_max: Cap on the retry delay in seconds
            snapshot_debounce: Delay before a queue change is written
        """
        self.provider = provider
        self.selector = selector
        self.cache = cache
        self.store = store
        self.max_concurrency = max_concurrency
        self.max_retries = max_retries
        self.upstream_timeout = upstream_timeout
        self.retry_backoff_base = retry_backoff_base
        self.retry_backoff_max = retry_backoff_max
        self.snapshot_debounce = snapshot_debounce

        self.stats = DispatcherStats()
        self.event_name = selector.event_data.get("name") or "the hackathon"
        self.contact = selector.contact_email or DEFAULT_CONTACT_EMAIL

        self._queue: deque[Query] = deque()
        self._in_flight: dict[str, Query] = {}
        self._tasks: set[asyncio.Task] = set()
        self._idle = asyncio.Event()
        self._idle.set()
        self._accepting = True
        self._pumping = True
        self._auth_failure_logged = False
        self._snapshot_task: asyncio.Task | None = None

    @property
    def queue_length(self) -> int:
        return len(self._queue)

    @property
    def in_flight_count(self) -> int:
        return len(self._in_flight)

    @property
    def accepting(self) -> bool:
        return self._accepting

    def pending_queries(self) -> list[Query]:
        """Get in-flight then queued queries, in dispatch order."""
        return list(self._in_flight.values()) + list(self._queue)

    def enqueue(self, query: Query) -> asyncio.Future[str]:
        """Add a query to the tail of the queue.

        Args:
            query: Query to run

        Returns:
            Future resolved with the answer, or failed with an UpstreamError

        Raises:
            ServiceShuttingDown: If shutdown has started
        """
        if not self._accepting:
            raise ServiceShuttingDown("Dispatcher is shutting down")

        if query.future is None:
            query.future = asyncio.get_running_loop().create_future()

        query.state = QueryState.QUEUED
        self._queue.append(query)
        self.stats.total_requests += 1
        logger.info(f"Queued query {query.id} from user {query.user_id} ({len(self._queue)} waiting)")

        self._schedule_snapshot()
        self._pump()
        return query.future

    def restore(self, queries: list[Query]) -> None:
        """Re-queue queries recovered from a snapshot.

        Their original callers are gone, so outcomes are only logged.
        """
        for query in queries:
            future = asyncio.get_running_loop().create_future()
            future.add_done_callback(partial(self._log_restored_outcome, query.id))
            query.future = future
            self.enqueue(query)

        if queries:
            logger.info(f"Restored {len(queries)} queries from snapshot")

    def _pump(self) -> None:
        while self._pumping and self._queue and len(self._in_flight) < self.max_concurrency:
            query = self._queue.popleft()
            if query.cancelled:
                self._drop_cancelled(query)
                continue

            query.state = QueryState.IN_FLIGHT
            self._in_flight[query.id] = query
            self._idle.clear()

            task = asyncio.create_task(self._run(query), name=f"query-{query.id}")
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _run(self, query: Query) -> None:
        try:
            response = await asyncio.wait_for(self._call_upstream(query), self.upstream_timeout)
        except Exception as e:
            error = classify_upstream_error(e)
            if error.retryable and query.retry_count < self.max_retries:
                await self._requeue(query, error)
            else:
                self._fail(query, error)
        else:
            self._resolve(query, response.content)
        finally:
            self._pump()

    async def _call_upstream(self, query: Query) -> ResponseResult:
        bundle = self.selector.select(query.text)
        context = build_system_context(bundle, event_name=self.event_name, contact=self.contact)
        history = self.cache.history(query.user_id, query.channel_id) if query.channel_id else []

        logger.debug(
            f"Attempt {query.retry_count + 1} for query {query.id}, "
            f"topics={sorted(bundle.topics)}, history={len(history)}"
        )
        return await self.provider.generate_response(query.text, context=context, history=history)

    def _resolve(self, query: Query, content: str) -> None:
        self._release(query)
        answer = content.strip()

        if not answer:
            logger.warning(f"Empty upstream response for query {query.id}")
            answer = EMPTY_RESPONSE_MESSAGE.format(contact=self.contact)
        elif query.channel_id:
            self.cache.append(query.user_id, query.channel_id, "user", query.text)
            self.cache.append(query.user_id, query.channel_id, "assistant", answer)

        query.state = QueryState.RESOLVED
        self.stats.success_count += 1
        if query.future is not None and not query.future.done():
            query.future.set_result(answer)

        logger.info(f"Resolved query {query.id} after {query.retry_count} retries")
        self._schedule_snapshot()

    async def _requeue(self, query: Query, error: UpstreamError) -> None:
        query.retry_count += 1
        self.stats.retry_count += 1
        delay = self._backoff(query.retry_count)
        logger.warning(
            f"Query {query.id} hit {type(error).__name__}, retry {query.retry_count}/{self.max_retries} "
            f"in {delay:.1f}s: {error}"
        )

        # The worker slot stays taken during the backoff
        if delay > 0:
            await asyncio.sleep(delay)

        self._release(query)
        if query.cancelled:
            self._drop_cancelled(query)
            return

        query.state = QueryState.QUEUED
        self._queue.append(query)
        self._schedule_snapshot()

    def _fail(self, query: Query, error: UpstreamError) -> None:
        self._release(query)
        query.state = QueryState.FAILED
        self.stats.failure_count += 1

        if isinstance(error, UpstreamAuthFailure):
            if not self._auth_failure_logged:
                logger.error(f"Upstream rejected the API credentials, check your API key: {error}")
                self._auth_failure_logged = True
            else:
                logger.debug(f"Query {query.id} failed on upstream auth")
        else:
            logger.error(f"Query {query.id} failed after {query.retry_count} retries: {error}")

        if query.future is not None and not query.future.done():
            query.future.set_exception(error)
        self._schedule_snapshot()

    def _drop_cancelled(self, query: Query) -> None:
        query.state = QueryState.FAILED
        self.stats.cancelled_count += 1
        if query.future is not None and not query.future.done():
            query.future.cancel()
        logger.info(f"Dropped cancelled query {query.id}")

    def _release(self, query: Query) -> None:
        self._in_flight.pop(query.id, None)
        if not self._in_flight:
            self._idle.set()

    def _backoff(self, retry_count: int) -> float:
        return min(self.retry_backoff_base * 2 ** (retry_count - 1), self.retry_backoff_max)

    def _schedule_snapshot(self) -> None:
        if self.store is None or not self._pumping or self._snapshot_task is not None:
            return
        self._snapshot_task = asyncio.create_task(self._debounced_snapshot())

    async def _debounced_snapshot(self) -> None:
        await asyncio.sleep(self.snapshot_debounce)
        self._snapshot_task = None
        await self.save_snapshot()

    async def save_snapshot(self) -> None:
        """Write the pending queue to the snapshot store."""
        if self.store is None:
            return
        try:
            await self.store.write_queue(self.pending_queries())
        except OSError as e:
            logger.error(f"Failed to save queue snapshot: {e}")

    async def shutdown(self, timeout: float = 30.0) -> None:
        """Stop taking work, drain in-flight queries, then persist the rest.

        Queued queries are not started once shutdown begins; they stay in
        the snapshot for the next run. In-flight queries get ``timeout``
        seconds to finish before they are abandoned.
        """
        self._accepting = False
        self._pumping = False

        if self._in_flight:
            logger.info(f"Waiting up to {timeout:.0f}s for {len(self._in_flight)} in-flight queries")
            try:
                await asyncio.wait_for(self._idle.wait(), timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    f"Shutdown timeout exceeded with {len(self._in_flight)} queries in flight, forcing stop"
                )

        if self._snapshot_task is not None:
            self._snapshot_task.cancel()
            await asyncio.gather(self._snapshot_task, return_exceptions=True)
            self._snapshot_task = None
        await self.save_snapshot()

        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

        abandoned = self.pending_queries()
        for query in abandoned:
            if query.future is not None and not query.future.done():
                query.future.set_exception(ServiceShuttingDown("Query left pending at shutdown"))

        logger.info(f"Dispatcher stopped, {len(abandoned)} queries persisted for the next run")

    def _log_restored_outcome(self, query_id: str, future: asyncio.Future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.warning(f"Restored query {query_id} did not complete: {error}")
        else:
            logger.info(f"Restored query {query_id} resolved")
