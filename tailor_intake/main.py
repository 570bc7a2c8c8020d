"""
Tailoring order-intake bot - Main entry point.
"""

import asyncio
import logging
import sys

from aiogram import Bot

from tailor_intake.bot.bot import get_bot, get_dispatcher, set_commands
from tailor_intake.bot.handlers import register_handlers
from tailor_intake.db.sqlite import db
from tailor_intake.config import settings


# Fix for Windows asyncio
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())


# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def on_startup(bot: Bot) -> None:
    """Initialize services on startup."""
    logger.info("Starting order-intake bot...")

    await db.init()
    logger.info("Database initialized")

    await set_commands(bot)
    logger.info(f"Order service: {settings.order_service_url}")


async def on_shutdown() -> None:
    """Cleanup on shutdown."""
    logger.info("Shutting down order-intake bot...")

    await db.close()

    logger.info("Cleanup complete")


async def main() -> None:
    """Main function to run the bot."""
    bot = get_bot()
    dp = get_dispatcher()

    # Register handlers
    register_handlers(dp)

    # Register startup/shutdown hooks
    dp.startup.register(on_startup)
    dp.shutdown.register(on_shutdown)

    # Start polling
    logger.info("Bot is starting...")
    try:
        await dp.start_polling(bot, allowed_updates=dp.resolve_used_update_types())
    finally:
        await bot.session.close()


def run() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
