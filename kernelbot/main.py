"""Main entry point for the Kernel bot service."""

import asyncio
import logging
import signal
import sys

from dotenv import load_dotenv

from kernelbot.config import get_settings
from kernelbot.service import KernelService
from kernelbot.web_server import WebServer

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


async def main() -> None:
    """Main application entry point."""
    settings = get_settings()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.info(f"Starting Kernel bot in {settings.environment.value} mode")
    logger.info(f"Using LLM provider: {settings.llm_provider.value}")

    # Validate configuration
    try:
        settings.validate_provider_config()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    service = KernelService(settings)
    await service.start()

    health = await service.health_check()
    if not health["upstream"]:
        logger.warning("Upstream provider is not accessible, check your API key and network")

    web_server = WebServer(service, host=settings.web_host, port=settings.web_port)
    web_runner = await web_server.start()

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # add_signal_handler is unavailable on Windows event loops
            pass

    try:
        await stop.wait()
    finally:
        logger.info("Shutting down...")
        await web_server.stop(web_runner)
        await service.shutdown()


def run() -> None:
    """Console script entry point."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
