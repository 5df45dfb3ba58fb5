"""HTTP adapter exposing the Kernel service to chat front ends."""

import logging
from typing import Any

from aiohttp import web

from kernelbot.errors import AdmissionDenied, ServiceShuttingDown, UpstreamError
from kernelbot.service import KernelService

logger = logging.getLogger(__name__)

# Discord caps messages at 2000 characters
MESSAGE_CHUNK_SIZE = 1900


def split_message(text: str, limit: int = MESSAGE_CHUNK_SIZE) -> list[str]:
    """Split an answer into chunks a chat platform accepts.

    Args:
        text: Full answer
        limit: Maximum characters per chunk

    Returns:
        Chunks in order; a single chunk when the text fits
    """
    if len(text) <= limit:
        return [text]
    return [text[i : i + limit] for i in range(0, len(text), limit)]


class WebServer:
    """HTTP server for question and monitoring endpoints."""

    def __init__(self, service: KernelService, host: str = "0.0.0.0", port: int = 3000):
        """Initialize web server."""
        self.service = service
        self.host = host
        self.port = port
        self.app = web.Application()
        self._setup_routes()
        logger.info(f"Web server initialized on port {port}")

    def _setup_routes(self):
        """Set up HTTP routes."""
        self.app.router.add_get("/", self._handle_health)
        self.app.router.add_get("/health", self._handle_health)
        self.app.router.add_get("/stats", self._handle_stats)
        self.app.router.add_post("/api/ask", self._handle_ask)
        self.app.router.add_post("/api/conversations/clear", self._handle_clear)
        logger.info("Routes configured: /, /health, /stats, /api/ask, /api/conversations/clear")

    async def _handle_health(self, request: web.Request) -> web.Response:
        """Health check endpoint."""
        health = await self.service.health_check()
        return web.json_response(
            {
                "status": "healthy" if health["overall"] else "degraded",
                "service": "Kernel Bot",
                "upstream": health["upstream"],
            }
        )

    async def _handle_stats(self, request: web.Request) -> web.Response:
        return web.json_response(self.service.get_stats())

    async def _handle_ask(self, request: web.Request) -> web.Response:
        """
        Handle question requests.

        Expects JSON: {"question": "...", "user": "...", "channel": "...", "message_id": "..."}
        """
        data = await self._read_json(request)
        if data is None:
            return web.json_response({"error": "Request body must be a JSON object"}, status=400)

        question = str(data.get("question") or "").strip()
        user_id = str(data.get("user") or "").strip()
        if not question or not user_id:
            return web.json_response({"error": "Both question and user are required"}, status=400)

        channel_id = data.get("channel") or None
        logger.info(f"User {user_id} asked: {question}")

        try:
            answer = await self.service.submit_query(
                question,
                user_id,
                channel_id=str(channel_id) if channel_id else None,
                correlation_id=data.get("message_id"),
            )
        except AdmissionDenied as e:
            return web.json_response(
                {"error": e.user_message(self.service.contact), "retry_after": round(e.retry_after, 1)},
                status=429,
            )
        except (UpstreamError, ServiceShuttingDown) as e:
            answer = e.user_message(self.service.contact)
            return web.json_response({"answer": answer, "chunks": split_message(answer), "failed": True})
        except Exception as e:
            logger.error(f"Error handling question: {e}", exc_info=True)
            answer = (
                "Sorry, I encountered an error processing your question. "
                f"Please try again or contact {self.service.contact} for assistance!"
            )
            return web.json_response({"answer": answer, "chunks": split_message(answer), "failed": True})

        return web.json_response({"answer": answer, "chunks": split_message(answer)})

    async def _handle_clear(self, request: web.Request) -> web.Response:
        """Handle the explicit clear-conversation command."""
        data = await self._read_json(request)
        if data is None or not data.get("user") or not data.get("channel"):
            return web.json_response({"error": "Both user and channel are required"}, status=400)

        self.service.clear_conversation(str(data["user"]), str(data["channel"]))
        return web.json_response({"status": "cleared"})

    async def _read_json(self, request: web.Request) -> dict[str, Any] | None:
        try:
            data = await request.json()
        except ValueError:
            return None
        return data if isinstance(data, dict) else None

    async def start(self) -> web.AppRunner:
        """Start the web server."""
        runner = web.AppRunner(self.app)
        await runner.setup()
        site = web.TCPSite(runner, self.host, self.port)
        await site.start()
        logger.info(f"Web server started on port {self.port}")
        return runner

    async def stop(self, runner: web.AppRunner) -> None:
        """Stop the web server."""
        await runner.cleanup()
        logger.info("Web server stopped")
