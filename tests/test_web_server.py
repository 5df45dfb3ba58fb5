"""Tests for the HTTP adapter."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from aiohttp.test_utils import TestClient, TestServer

from kernelbot.errors import AdmissionDenied, UpstreamRateLimited
from kernelbot.web_server import WebServer, split_message


@pytest.fixture
def service():
    """Create a mocked Kernel service."""
    service = MagicMock()
    service.contact = "hackoverflow@mes.ac.in"
    service.submit_query = AsyncMock(return_value="The prize pool is INR 80,000.")
    service.health_check = AsyncMock(
        return_value={"upstream": True, "dispatcher": True, "event_data": True, "overall": True}
    )
    service.get_stats.return_value = {"queueLength": 0, "inFlightCount": 0}
    return service


def make_client(service) -> TestClient:
    return TestClient(TestServer(WebServer(service).app))


class TestSplitMessage:
    """Test chunking of long answers."""

    def test_short_message(self):
        """Test a short answer stays whole."""
        assert split_message("hello") == ["hello"]

    def test_long_message(self):
        """Test a long answer is split without losing text."""
        text = "x" * 4000
        chunks = split_message(text)

        assert [len(c) for c in chunks] == [1900, 1900, 200]
        assert "".join(chunks) == text


class TestRoutes:
    """Test HTTP endpoints."""

    @pytest.mark.asyncio
    async def test_health(self, service):
        """Test the health endpoint."""
        async with make_client(service) as client:
            resp = await client.get("/health")
            data = await resp.json()

        assert resp.status == 200
        assert data == {"status": "healthy", "service": "Kernel Bot", "upstream": True}

    @pytest.mark.asyncio
    async def test_stats(self, service):
        """Test the stats endpoint."""
        async with make_client(service) as client:
            resp = await client.get("/stats")
            data = await resp.json()

        assert data == {"queueLength": 0, "inFlightCount": 0}

    @pytest.mark.asyncio
    async def test_ask(self, service):
        """Test a question is forwarded to the service."""
        async with make_client(service) as client:
            resp = await client.post(
                "/api/ask",
                json={"question": "what is the prize pool", "user": "u1", "channel": "c1", "message_id": "m1"},
            )
            data = await resp.json()

        assert resp.status == 200
        assert data == {"answer": "The prize pool is INR 80,000.", "chunks": ["The prize pool is INR 80,000."]}
        service.submit_query.assert_awaited_once_with(
            "what is the prize pool", "u1", channel_id="c1", correlation_id="m1"
        )

    @pytest.mark.asyncio
    async def test_ask_requires_question_and_user(self, service):
        """Test missing fields are rejected."""
        async with make_client(service) as client:
            resp = await client.post("/api/ask", json={"question": "hi"})

        assert resp.status == 400
        service.submit_query.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ask_invalid_json(self, service):
        """Test a non-JSON body is rejected."""
        async with make_client(service) as client:
            resp = await client.post("/api/ask", data="not json")

        assert resp.status == 400

    @pytest.mark.asyncio
    async def test_ask_deferred(self, service):
        """Test admission denial maps to 429 with a wait time."""
        service.submit_query.side_effect = AdmissionDenied(4.2)

        async with make_client(service) as client:
            resp = await client.post("/api/ask", json={"question": "hi", "user": "u1"})
            data = await resp.json()

        assert resp.status == 429
        assert data["retry_after"] == 4.2
        assert "Please wait 5 seconds" in data["error"]

    @pytest.mark.asyncio
    async def test_ask_upstream_failure(self, service):
        """Test a permanent failure returns a plain message with the contact."""
        service.submit_query.side_effect = UpstreamRateLimited("429")

        async with make_client(service) as client:
            resp = await client.post("/api/ask", json={"question": "hi", "user": "u1"})
            data = await resp.json()

        assert resp.status == 200
        assert data["failed"] is True
        assert "busy" in data["answer"]
        assert "hackoverflow@mes.ac.in" in data["answer"]

    @pytest.mark.asyncio
    async def test_ask_unexpected_error(self, service):
        """Test unexpected errors never leak a stack trace."""
        service.submit_query.side_effect = RuntimeError("kaboom")

        async with make_client(service) as client:
            resp = await client.post("/api/ask", json={"question": "hi", "user": "u1"})
            data = await resp.json()

        assert "kaboom" not in data["answer"]
        assert "hackoverflow@mes.ac.in" in data["answer"]

    @pytest.mark.asyncio
    async def test_clear(self, service):
        """Test the clear endpoint."""
        async with make_client(service) as client:
            resp = await client.post("/api/conversations/clear", json={"user": "u1", "channel": "c1"})
            data = await resp.json()

        assert data == {"status": "cleared"}
        service.clear_conversation.assert_called_once_with("u1", "c1")
