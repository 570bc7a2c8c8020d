"""
Start command handler.
"""

from aiogram import Router
from aiogram.filters import CommandStart, Command
from aiogram.types import Message, ReplyKeyboardMarkup, KeyboardButton

from tailor_intake.config import settings

router = Router(name="start")


# Main actions keyboard
main_keyboard = ReplyKeyboardMarkup(
    keyboard=[
        [KeyboardButton(text="🧵 New order")],
        [KeyboardButton(text="📞 Contact us")],
    ],
    resize_keyboard=True,
    input_field_placeholder="Tap 🧵 New order to begin",
)


WELCOME_MESSAGE = """👋 <b>Welcome!</b>

I take tailoring orders: customer details, garments with measurements and design photos, delivery and payment.

<b>How it works:</b>
1. Customer info
2. Garments, measurements and designs
3. Delivery & payment
4. Confirmation with invoices

Your progress is saved as you go, so you can stop and continue later.

<b>Commands:</b>
/neworder — start or continue an order
/help — this help"""


HELP_MESSAGE = """🤖 <b>Placing an order</b>

• Tap «🧵 New order» or send /neworder
• Each piece of a garment gets its own design: a name, a price and optional photos
• Use «⬅️ Back» to revisit an earlier step; nothing you entered is lost
• After submitting you can download the customer and tailor invoices

A saved draft is offered when you come back."""


def contact_message() -> str:
    return (
        "📞 <b>Contact us:</b>\n\n"
        f"📱 Phone / WhatsApp: {settings.support_phone}\n"
        f"📧 Email: {settings.support_email}"
    )


@router.message(CommandStart())
async def handle_start(message: Message) -> None:
    """Handle /start command."""
    await message.answer(WELCOME_MESSAGE, reply_markup=main_keyboard)


@router.message(Command("help"))
async def handle_help(message: Message) -> None:
    """Handle /help command."""
    await message.answer(HELP_MESSAGE, reply_markup=main_keyboard)


@router.message(lambda m: m.text == "📞 Contact us")
async def show_contacts(message: Message) -> None:
    """Show contact information."""
    await message.answer(contact_message())
