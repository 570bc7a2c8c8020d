"""
Inline keyboards for order flow.
"""

from datetime import date, timedelta

from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton
from aiogram.utils.keyboard import InlineKeyboardBuilder

from tailor_intake.config import settings
from tailor_intake.core.catalog import CatalogOption
from tailor_intake.core.orders.models import OrderAggregate, PaymentMethod, Urgency, MeasurementUnit


def get_resume_keyboard() -> InlineKeyboardMarkup:
    """Keyboard offered when a saved draft exists."""
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(text="▶️ Continue draft", callback_data="order:resume"),
        InlineKeyboardButton(text="🆕 Start over", callback_data="order:new"),
    )
    return builder.as_markup()


def get_skip_keyboard(callback_data: str = "order:skip") -> InlineKeyboardMarkup:
    """Keyboard with a single skip button."""
    builder = InlineKeyboardBuilder()
    builder.row(InlineKeyboardButton(text="⏭ Skip", callback_data=callback_data))
    return builder.as_markup()


def get_options_keyboard(options: list[CatalogOption], prefix: str) -> InlineKeyboardMarkup:
    """Two-column keyboard of catalog options."""
    builder = InlineKeyboardBuilder()
    for option in options:
        builder.button(text=option.label, callback_data=f"{prefix}:{option.value}")
    builder.adjust(2)
    return builder.as_markup()


def get_quantity_keyboard() -> InlineKeyboardMarkup:
    """Quantity 1-10."""
    builder = InlineKeyboardBuilder()
    for n in range(1, 11):
        builder.button(text=str(n), callback_data=f"order:qty:{n}")
    builder.adjust(5)
    return builder.as_markup()


def get_unit_keyboard() -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(text="Inches", callback_data=f"order:unit:{MeasurementUnit.INCH.value}"),
        InlineKeyboardButton(text="Centimetres", callback_data=f"order:unit:{MeasurementUnit.CM.value}"),
    )
    return builder.as_markup()


def get_photos_keyboard(kind: str, count: int, limit: int) -> InlineKeyboardMarkup:
    """Done/skip button while collecting photos."""
    builder = InlineKeyboardBuilder()
    text = f"✅ Done ({count}/{limit})" if count else "⏭ Skip"
    builder.row(InlineKeyboardButton(text=text, callback_data=f"order:photos_done:{kind}"))
    return builder.as_markup()


def get_garment_review_keyboard(editing: bool) -> InlineKeyboardMarkup:
    """Keyboard shown once a garment form is filled in."""
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(
            text="💾 Update garment" if editing else "✅ Add garment",
            callback_data="order:commit",
        ),
    )
    builder.row(
        InlineKeyboardButton(text="🔢 Change quantity", callback_data="order:change_qty"),
        InlineKeyboardButton(text="❌ Discard", callback_data="order:discard"),
    )
    return builder.as_markup()


def get_garments_keyboard(order: OrderAggregate, category_label) -> InlineKeyboardMarkup:
    """Garment list with edit/remove buttons."""
    builder = InlineKeyboardBuilder()

    for i, garment in enumerate(order.garments):
        builder.row(
            InlineKeyboardButton(
                text=f"✏️ {i + 1}. {category_label(garment.order_type)} x{garment.quantity}",
                callback_data=f"order:edit_garment:{i}",
            ),
            InlineKeyboardButton(text="🗑️", callback_data=f"order:remove_garment:{i}"),
        )

    builder.row(InlineKeyboardButton(text="➕ Add garment", callback_data="order:add_garment"))
    builder.row(
        InlineKeyboardButton(text="⬅️ Back", callback_data="order:back"),
        InlineKeyboardButton(text="➡️ Continue", callback_data="order:to_delivery"),
    )
    return builder.as_markup()


def get_date_quick_keyboard() -> InlineKeyboardMarkup:
    """Keyboard with quick delivery date options, starting at the earliest allowed."""
    builder = InlineKeyboardBuilder()
    today = date.today()

    for extra in (0, 2, 4, 7):
        day = today + timedelta(days=settings.min_delivery_days + extra)
        builder.button(
            text=f"📅 {day.strftime('%d %b')} ({day.strftime('%a')})",
            callback_data=f"order:date:{day.isoformat()}",
        )
    builder.adjust(2)
    builder.row(InlineKeyboardButton(text="⬅️ Back", callback_data="order:back"))
    return builder.as_markup()


def get_urgency_keyboard() -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    for urgency in Urgency:
        builder.button(text=urgency.value.capitalize(), callback_data=f"order:urgency:{urgency.value}")
    builder.adjust(3)
    return builder.as_markup()


def get_payment_keyboard() -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    for method in PaymentMethod:
        builder.button(text=method.label, callback_data=f"order:payment:{method.value}")
    builder.adjust(2)
    return builder.as_markup()


def get_final_confirmation_keyboard() -> InlineKeyboardMarkup:
    """Keyboard for final confirmation."""
    builder = InlineKeyboardBuilder()
    builder.row(InlineKeyboardButton(text="✅ Submit order", callback_data="order:submit"))
    builder.row(
        InlineKeyboardButton(text="✏️ Change delivery", callback_data="order:redo_delivery"),
        InlineKeyboardButton(text="⬅️ Back to garments", callback_data="order:back"),
    )
    return builder.as_markup()


def get_retry_keyboard() -> InlineKeyboardMarkup:
    """Keyboard after a failed submission."""
    builder = InlineKeyboardBuilder()
    builder.row(InlineKeyboardButton(text="🔁 Try again", callback_data="order:submit"))
    builder.row(
        InlineKeyboardButton(text="✏️ Change delivery", callback_data="order:redo_delivery"),
        InlineKeyboardButton(text="⬅️ Back to garments", callback_data="order:back"),
    )
    return builder.as_markup()


def get_order_submitted_keyboard() -> InlineKeyboardMarkup:
    """Keyboard after order submission."""
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(text="🧾 Customer invoice", callback_data="order:invoice:customer"),
        InlineKeyboardButton(text="✂️ Tailor invoice", callback_data="order:invoice:tailor"),
    )
    builder.row(InlineKeyboardButton(text="🆕 New order", callback_data="order:new"))
    return builder.as_markup()
