"""Shared fixtures for the test suite."""

import asyncio
import time
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from kernelbot.context import ContextSelector, load_event_data
from kernelbot.llm.base import LLMProvider, ResponseResult
from kernelbot.persistence import SnapshotStore

EVENT_DATA_PATH = Path(__file__).parent.parent / "kernelbot" / "data" / "event_data.json"


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedProvider(LLMProvider):
    """Provider that replays scripted outcomes and records concurrency."""

    def __init__(self, outcomes=None, delay: float = 0.0, default: str = "Scripted answer"):
        self.outcomes = list(outcomes or [])
        self.delay = delay
        self.default = default
        self.calls: list[dict] = []
        self.active = 0
        self.max_active = 0

    async def generate_response(self, prompt, context=None, history=None):
        self.calls.append({"prompt": prompt, "context": context, "history": history})
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            outcome = self.outcomes.pop(0) if self.outcomes else self.default
            if isinstance(outcome, BaseException):
                raise outcome
            return ResponseResult(content=outcome, model="scripted")
        finally:
            self.active -= 1

    async def health_check(self) -> bool:
        return True


@pytest.fixture
def event_data():
    """Load the bundled event document."""
    return load_event_data(EVENT_DATA_PATH)


@pytest.fixture
def selector(event_data):
    """Create a context selector over the bundled event document."""
    return ContextSelector(event_data)


@pytest.fixture
def clock():
    """Create a fake clock."""
    return FakeClock()


@pytest.fixture
def mock_provider():
    """Create a provider mock answering every question."""
    provider = MagicMock(spec=LLMProvider)
    provider.generate_response = AsyncMock(
        return_value=ResponseResult(content="  The prize pool is INR 80,000.  ", model="test-model")
    )
    provider.health_check = AsyncMock(return_value=True)
    provider.aclose = AsyncMock()
    return provider


class SlowFirstWriteStore(SnapshotStore):
    """Snapshot store whose first write of each listed document takes ``delay`` seconds."""

    def __init__(self, queue_path, cache_path, delay: float = 0.3, documents=("queue", "cache")):
        super().__init__(queue_path, cache_path)
        self.delay = delay
        self._slowed: set[str] = {"queue", "cache"} - set(documents)

    def _pause_once(self, name: str) -> None:
        if name not in self._slowed:
            self._slowed.add(name)
            time.sleep(self.delay)

    def save_queue(self, queries):
        records = list(queries)
        self._pause_once("queue")
        super().save_queue(records)

    def save_cache(self, contexts):
        records = list(contexts)
        self._pause_once("cache")
        super().save_cache(records)
