"""
FSM states for the Telegram order conversation.

The wizard's own step is the source of truth; these states only track which
free-text answer the bot is waiting for.
"""

from aiogram.fsm.state import State, StatesGroup


class OrderStates(StatesGroup):
    """States for order collection flow."""

    # Step 1: customer info
    entering_name = State()
    entering_phone = State()
    entering_email = State()
    entering_address = State()

    # Step 2: garment being built
    choosing_category = State()
    choosing_variant = State()
    entering_quantity = State()
    entering_measurement = State()
    entering_design_name = State()
    entering_design_amount = State()
    entering_design_description = State()
    uploading_reference_images = State()
    uploading_fabric_images = State()
    reviewing_garments = State()

    # Step 3: delivery & payment
    entering_delivery_date = State()
    choosing_urgency = State()
    choosing_payment = State()
    entering_advance = State()
    entering_instructions = State()
    submitting = State()

    # Step 4
    confirmed = State()
