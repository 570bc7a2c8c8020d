"""
Bot handlers registration.
"""

from aiogram import Dispatcher

from tailor_intake.bot.handlers.start import router as start_router
from tailor_intake.bot.handlers.order import router as order_router


def register_handlers(dp: Dispatcher) -> None:
    """Register all handlers to dispatcher."""
    # Start handler first so commands win over FSM text handlers
    dp.include_router(start_router)
    dp.include_router(order_router)
