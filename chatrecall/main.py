"""Main entry point for the chat history search bot."""

import asyncio
import logging
import sys

from dotenv import load_dotenv

from chatrecall.config import get_settings
from chatrecall.context import AppContext
from chatrecall.telegram import SearchBot
from chatrecall.web_server import WebServer

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # Request lines from httpx include the bot token in the URL.
    logging.getLogger("httpx").setLevel(logging.WARNING)


async def main() -> None:
    """Main application entry point."""
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info(f"Starting chat history bot in {settings.environment.value} mode")
    logger.info(f"Using LLM provider: {settings.llm_provider.value}")

    # Validate configuration
    try:
        settings.validate_provider_config()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    context = AppContext.build(settings)
    web_server = WebServer(context, port=settings.health_port)
    web_runner = await web_server.start()

    bot = SearchBot(context)
    try:
        logger.info("Starting Telegram bot...")
        await bot.start()
    except asyncio.CancelledError:
        logger.info("Shutting down...")
    finally:
        await bot.stop()
        await web_server.stop(web_runner)
        await context.aclose()


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
