"""
Telegram bot and dispatcher setup.
"""

from typing import Optional

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.fsm.storage.memory import MemoryStorage
from aiogram.types import BotCommand

from tailor_intake.config import settings


BOT_COMMANDS = [
    BotCommand(command="start", description="Main menu"),
    BotCommand(command="neworder", description="Start or continue an order"),
    BotCommand(command="help", description="How ordering works"),
]


def create_bot(token: Optional[str] = None) -> Bot:
    """Create the bot. Raises ValueError when no token is configured."""
    token = token or settings.telegram_bot_token
    if not token:
        raise ValueError(
            "Telegram bot token not provided. "
            "Set TELEGRAM_BOT_TOKEN in .env file."
        )
    return Bot(token=token, default=DefaultBotProperties(parse_mode=ParseMode.HTML))


def create_dispatcher() -> Dispatcher:
    # Conversation position only; the order draft itself lives in the snapshot store
    return Dispatcher(storage=MemoryStorage())


async def set_commands(bot: Bot) -> None:
    """Publish the command menu shown next to the input field."""
    await bot.set_my_commands(BOT_COMMANDS)


# Global instances
bot: Bot | None = None
dp: Dispatcher | None = None


def get_bot() -> Bot:
    """Get or create bot instance."""
    global bot
    if bot is None:
        bot = create_bot()
    return bot


def get_dispatcher() -> Dispatcher:
    """Get or create dispatcher instance."""
    global dp
    if dp is None:
        dp = create_dispatcher()
    return dp
