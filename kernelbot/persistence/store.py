"""Durable JSON snapshots of the pending queue and the conversation cache."""

import asyncio
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Callable

from pydantic import TypeAdapter, ValidationError

from kernelbot.conversation import ConversationContext
from kernelbot.dispatch.models import Query
from .models import ConversationSnapshot, QuerySnapshot

logger = logging.getLogger(__name__)

_queue_adapter = TypeAdapter(list[QuerySnapshot])
_cache_adapter = TypeAdapter(dict[str, ConversationSnapshot])


class SnapshotStore:
    """Reads and writes the two snapshot documents.

    Loading is best effort: a missing file is an empty snapshot, and a
    malformed one is logged and treated as empty. Writes replace the target
    file atomically so a crash mid-write never leaves a truncated snapshot.
    """

    def __init__(self, queue_path: Path, cache_path: Path):
        """Initialize snapshot store.

        Args:
            queue_path: File holding the pending-queue snapshot
            cache_path: File holding the conversation-cache snapshot
        """
        self.queue_path = Path(queue_path)
        self.cache_path = Path(cache_path)
        self._write_lock = asyncio.Lock()

    def save_queue(self, queries: list[Query]) -> None:
        """Write the pending queries in dispatch order."""
        records = [QuerySnapshot.from_query(query) for query in queries]
        self._write(self.queue_path, _queue_adapter.dump_json(records, by_alias=True, indent=2))
        logger.debug(f"Saved queue snapshot with {len(records)} queries")

    def load_queue(self) -> list[Query]:
        """Read the pending queries written by the previous run."""
        raw = self._read(self.queue_path)
        if raw is None:
            return []
        try:
            records = _queue_adapter.validate_json(raw)
        except ValidationError as e:
            logger.error(f"Malformed queue snapshot {self.queue_path}, ignoring it: {e}")
            return []
        return [record.to_query() for record in records]

    def save_cache(self, contexts: list[ConversationContext]) -> None:
        """Write the conversation cache keyed by ``"userId-channelId"``."""
        records = {}
        for context in contexts:
            record = ConversationSnapshot.from_context(context)
            records[record.key] = record
        self._write(self.cache_path, _cache_adapter.dump_json(records, by_alias=True, indent=2))
        logger.debug(f"Saved cache snapshot with {len(records)} conversations")

    def load_cache(self) -> list[ConversationContext]:
        """Read the conversations written by the previous run."""
        raw = self._read(self.cache_path)
        if raw is None:
            return []
        try:
            records = _cache_adapter.validate_json(raw)
        except ValidationError as e:
            logger.error(f"Malformed cache snapshot {self.cache_path}, ignoring it: {e}")
            return []
        return [record.to_context() for record in records.values()]

    async def write_queue(self, queries: list[Query]) -> None:
        """Save the queue off the event loop, after any write already in progress."""
        await self._serialized(self.save_queue, queries)

    async def write_cache(self, contexts: list[ConversationContext]) -> None:
        """Save the cache off the event loop, after any write already in progress."""
        await self._serialized(self.save_cache, contexts)

    async def _serialized(self, save: Callable[[Any], None], items: Any) -> None:
        # Writes land in call order, so the last caller's state is what stays on disk
        async with self._write_lock:
            write = asyncio.ensure_future(asyncio.to_thread(save, items))
            try:
                await asyncio.shield(write)
            except asyncio.CancelledError:
                # The thread cannot be interrupted; hold the lock until it lands
                await write
                raise

    def _read(self, path: Path) -> bytes | None:
        try:
            return path.read_bytes()
        except FileNotFoundError:
            logger.debug(f"No snapshot at {path}")
            return None
        except OSError as e:
            logger.error(f"Failed to read snapshot {path}: {e}")
            return None

    def _write(self, path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
