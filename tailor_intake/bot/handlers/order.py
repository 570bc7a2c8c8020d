"""
Order handling for the tailoring bot.
Drives one OrderWizard per Telegram user through the four order steps.
"""

import logging
from collections import OrderedDict
from typing import Optional

from aiogram import Router, F
from aiogram.filters import Command
from aiogram.fsm.context import FSMContext
from aiogram.types import BufferedInputFile, CallbackQuery, Message

from tailor_intake.bot.keyboards.order import (
    get_date_quick_keyboard,
    get_final_confirmation_keyboard,
    get_garment_review_keyboard,
    get_garments_keyboard,
    get_options_keyboard,
    get_order_submitted_keyboard,
    get_payment_keyboard,
    get_photos_keyboard,
    get_quantity_keyboard,
    get_resume_keyboard,
    get_retry_keyboard,
    get_skip_keyboard,
    get_unit_keyboard,
    get_urgency_keyboard,
)
from tailor_intake.config import settings
from tailor_intake.core.catalog import catalog, measurement_label
from tailor_intake.core.orders import (
    AddressValidator,
    AdvanceAmountValidator,
    AmountValidator,
    DeliveryDateValidator,
    EmailValidator,
    NameValidator,
    OrderStates,
    PaymentMethod,
    PhoneValidator,
    UnsentAttachment,
    WizardStep,
)
from tailor_intake.core.orders.attachments import (
    MAX_FABRIC_IMAGES,
    MAX_REFERENCE_IMAGES,
    validate_upload,
)
from tailor_intake.core.orders.snapshot import SnapshotRepository
from tailor_intake.core.orders.wizard import OrderWizard
from tailor_intake.core.submission.pipeline import PhaseStatus, SubmissionProgress
from tailor_intake.db.snapshots import SqlSnapshotRepository
from tailor_intake.exceptions import (
    GarmentCommitError,
    OrderServiceError,
    StepValidationError,
    SubmissionInProgressError,
    WizardStateError,
)
from tailor_intake.integrations.order_service import InvoiceType

logger = logging.getLogger(__name__)

router = Router(name="orders")


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

# Wizards of recently active users; the rest are restored from their snapshot
MAX_CACHED_WIZARDS = 1000
_wizards: "OrderedDict[int, OrderWizard]" = OrderedDict()
_repository: Optional[SnapshotRepository] = None


def get_repository() -> SnapshotRepository:
    """Get or create the snapshot repository."""
    global _repository
    if _repository is None:
        _repository = SqlSnapshotRepository()
    return _repository


async def get_wizard(user_id: int) -> OrderWizard:
    """Get the user's wizard, restoring a saved draft on first use."""
    wizard = _wizards.get(user_id)
    if wizard is None:
        wizard = OrderWizard(get_repository(), slot=f"{settings.snapshot_slot}:{user_id}")
        await wizard.restore()
        wizard = _wizards.setdefault(user_id, wizard)
        evict_idle_wizards(keep=user_id)
    _wizards.move_to_end(user_id)
    return wizard


def evict_idle_wizards(keep: Optional[int] = None) -> None:
    """Drop least recently used wizards beyond the cache size, skipping any mid-submission."""
    for user_id in list(_wizards):
        if len(_wizards) <= MAX_CACHED_WIZARDS:
            break
        if user_id != keep and not _wizards[user_id].is_submitting:
            del _wizards[user_id]


def forget_wizard(user_id: int) -> None:
    _wizards.pop(user_id, None)


def format_step_progress(step: WizardStep) -> str:
    """Format progress indicator."""
    filled = "●" * int(step)
    empty = "○" * (len(WizardStep) - int(step))
    return f"[{filled}{empty}] Step {int(step)} of {len(WizardStep)} · {step.label}"


def format_errors(errors: dict[str, str]) -> str:
    return "\n".join(f"❌ {message}" for message in errors.values())


def format_builder_summary(wizard: OrderWizard) -> str:
    """Garment currently in the builder."""
    builder = wizard.builder
    variant = next((o.label for o in builder.variant_options if o.value == builder.variant), builder.variant)
    lines = [
        f"👗 <b>{catalog.category_label(builder.order_type)}</b> ({variant or '—'}) x{builder.quantity}",
    ]
    if builder.measurements:
        lines.append("")
        lines.append(f"<b>Measurements</b> ({builder.unit.value}):")
        for key in builder.measurement_fields:
            if key in builder.measurements:
                lines.append(f"• {measurement_label(key)}: {builder.measurements[key]:g}")
    lines.append("")
    lines.append("<b>Designs:</b>")
    for i, design in enumerate(builder.designs, 1):
        amount = f"₹{design.amount:.2f}" if design.amount is not None else "no amount"
        photos = len(design.reference_images) + len(design.fabric_images)
        lines.append(f"{i}. {design.name or '<i>unnamed</i>'} — {amount}, {photos} photo(s)")
    return "\n".join(lines)


async def show_step(message: Message, state: FSMContext, wizard: OrderWizard) -> None:
    """Re-prompt for whatever the wizard's current step needs."""
    step = wizard.step
    if step == WizardStep.CUSTOMER_INFO:
        await ask_name(message, state)
    elif step == WizardStep.ORDER_DETAILS:
        if wizard.order.show_garment_form and wizard.builder.order_type:
            await show_garment_review(message, state, wizard)
        elif wizard.order.show_garment_form or not wizard.order.garments:
            await ask_category(message, state)
        else:
            await show_garments(message, state, wizard)
    elif step == WizardStep.DELIVERY_PAYMENT:
        await ask_delivery_date(message, state)
    else:
        await show_confirmation(message, state, wizard)


# =============================================================================
# ORDER START
# =============================================================================

@router.message(Command("neworder"))
@router.message(F.text == "🧵 New order")
async def handle_order_entry(message: Message, state: FSMContext) -> None:
    """Start an order, offering to resume a saved draft."""
    wizard = await get_wizard(message.from_user.id)

    if wizard.order.customer is not None or wizard.order.garments:
        await message.answer(
            f"📝 You have an unfinished order ({wizard.step.label}).",
            reply_markup=get_resume_keyboard(),
        )
        return

    await state.clear()
    await ask_name(message, state)


@router.callback_query(F.data == "order:resume")
async def handle_resume(callback: CallbackQuery, state: FSMContext) -> None:
    await callback.answer()
    wizard = await get_wizard(callback.from_user.id)
    await show_step(callback.message, state, wizard)


@router.callback_query(F.data == "order:new")
async def handle_new_order(callback: CallbackQuery, state: FSMContext) -> None:
    """Discard the current order and start again."""
    wizard = await get_wizard(callback.from_user.id)
    try:
        await wizard.start_new_order()
    except SubmissionInProgressError as e:
        await callback.answer(str(e), show_alert=True)
        return
    forget_wizard(callback.from_user.id)
    await callback.answer()
    await state.clear()
    await ask_name(callback.message, state)


@router.callback_query(F.data == "order:back")
async def handle_back(callback: CallbackQuery, state: FSMContext) -> None:
    """Step back one phase."""
    wizard = await get_wizard(callback.from_user.id)
    try:
        await wizard.go_back()
    except WizardStateError as e:
        await callback.answer(str(e), show_alert=True)
        return
    await callback.answer()
    await show_step(callback.message, state, wizard)


# =============================================================================
# STEP 1: CUSTOMER INFO
# =============================================================================

async def ask_name(message: Message, state: FSMContext) -> None:
    await state.set_state(OrderStates.entering_name)
    await message.answer(
        f"{format_step_progress(WizardStep.CUSTOMER_INFO)}\n\n"
        "👤 <b>Customer's full name</b>:"
    )


@router.message(OrderStates.entering_name)
async def handle_name_input(message: Message, state: FSMContext) -> None:
    is_valid, name, error = NameValidator.validate(message.text)
    if not is_valid:
        await message.answer(f"❌ {error}\n\nPlease try again:")
        return

    data = await state.get_data()
    customer = data.get("customer", {})
    customer["fullName"] = name
    await state.update_data(customer=customer)

    await state.set_state(OrderStates.entering_phone)
    await message.answer("📱 <b>Contact number</b> (10+ digits):")


@router.message(OrderStates.entering_phone)
async def handle_phone_input(message: Message, state: FSMContext) -> None:
    is_valid, phone, error = PhoneValidator.validate(message.text)
    if not is_valid:
        await message.answer(f"❌ {error}\n\nPlease try again:")
        return

    data = await state.get_data()
    customer = data.get("customer", {})
    customer["contactNumber"] = phone
    customer["sameForWhatsapp"] = True
    await state.update_data(customer=customer)

    await state.set_state(OrderStates.entering_email)
    await message.answer("📧 <b>Email</b> (optional):", reply_markup=get_skip_keyboard("order:skip_email"))


@router.message(OrderStates.entering_email)
async def handle_email_input(message: Message, state: FSMContext) -> None:
    is_valid, email, error = EmailValidator.validate(message.text)
    if not is_valid:
        await message.answer(f"❌ {error}\n\nPlease try again:", reply_markup=get_skip_keyboard("order:skip_email"))
        return

    data = await state.get_data()
    customer = data.get("customer", {})
    customer["email"] = email
    await state.update_data(customer=customer)
    await ask_address(message, state)


@router.callback_query(F.data == "order:skip_email")
async def handle_skip_email(callback: CallbackQuery, state: FSMContext) -> None:
    await callback.answer()
    await ask_address(callback.message, state)


async def ask_address(message: Message, state: FSMContext) -> None:
    await state.set_state(OrderStates.entering_address)
    await message.answer("📍 <b>Full address</b> (house, street, area, city):")


@router.message(OrderStates.entering_address)
async def handle_address_input(message: Message, state: FSMContext) -> None:
    is_valid, address, error = AddressValidator.validate(message.text)
    if not is_valid:
        await message.answer(f"❌ {error}\n\nPlease try again:")
        return

    data = await state.get_data()
    customer = data.get("customer", {})
    customer["fullAddress"] = address
    await state.update_data(customer=customer)

    wizard = await get_wizard(message.from_user.id)
    try:
        await wizard.submit_customer_info(customer)
    except StepValidationError as e:
        await message.answer(format_errors(e.errors))
        await ask_name(message, state)
        return
    except WizardStateError:
        await show_step(message, state, wizard)
        return

    await ask_category(message, state)


# =============================================================================
# STEP 2: GARMENT SELECTION
# =============================================================================

async def ask_category(message: Message, state: FSMContext) -> None:
    await state.set_state(OrderStates.choosing_category)
    await message.answer(
        f"{format_step_progress(WizardStep.ORDER_DETAILS)}\n\n"
        "👗 <b>Choose the garment type:</b>",
        reply_markup=get_options_keyboard(catalog.categories(), "order:cat"),
    )


@router.callback_query(F.data.startswith("order:cat:"))
async def handle_category_selected(callback: CallbackQuery, state: FSMContext) -> None:
    category = callback.data.split(":", 2)[-1]
    wizard = await get_wizard(callback.from_user.id)
    try:
        await wizard.select_category(category)
    except WizardStateError as e:
        await callback.answer(str(e), show_alert=True)
        return
    await callback.answer()

    await state.set_state(OrderStates.choosing_variant)
    await callback.message.answer(
        f"✂️ <b>{catalog.category_label(category)}</b>: choose the style",
        reply_markup=get_options_keyboard(wizard.builder.variant_options, "order:var"),
    )


@router.callback_query(F.data.startswith("order:var:"))
async def handle_variant_selected(callback: CallbackQuery, state: FSMContext) -> None:
    variant = callback.data.split(":", 2)[-1]
    wizard = await get_wizard(callback.from_user.id)
    try:
        await wizard.select_variant(variant)
    except WizardStateError as e:
        await callback.answer(str(e), show_alert=True)
        return
    await callback.answer()

    await callback.message.answer("📏 Measurements in:", reply_markup=get_unit_keyboard())


@router.callback_query(F.data.startswith("order:unit:"))
async def handle_unit_selected(callback: CallbackQuery, state: FSMContext) -> None:
    wizard = await get_wizard(callback.from_user.id)
    try:
        await wizard.set_unit(callback.data.split(":")[-1])
    except (WizardStateError, ValueError) as e:
        await callback.answer(str(e), show_alert=True)
        return
    await callback.answer()
    await ask_quantity(callback.message, state)


@router.callback_query(F.data == "order:change_qty")
async def handle_change_quantity(callback: CallbackQuery, state: FSMContext) -> None:
    await callback.answer()
    await ask_quantity(callback.message, state)


async def ask_quantity(message: Message, state: FSMContext) -> None:
    await state.set_state(OrderStates.entering_quantity)
    await message.answer(
        "🔢 <b>How many pieces?</b> Each piece gets its own design.",
        reply_markup=get_quantity_keyboard(),
    )


async def apply_quantity(message: Message, state: FSMContext, user_id: int, value) -> None:
    wizard = await get_wizard(user_id)
    try:
        await wizard.set_quantity(value)
    except StepValidationError as e:
        await message.answer(format_errors(e.errors), reply_markup=get_quantity_keyboard())
        return
    except WizardStateError:
        await show_step(message, state, wizard)
        return

    await ask_measurement(message, state, wizard, 0)


@router.callback_query(F.data.startswith("order:qty:"))
async def handle_quantity_selected(callback: CallbackQuery, state: FSMContext) -> None:
    await callback.answer()
    await apply_quantity(callback.message, state, callback.from_user.id, callback.data.split(":")[-1])


@router.message(OrderStates.entering_quantity)
async def handle_quantity_input(message: Message, state: FSMContext) -> None:
    await apply_quantity(message, state, message.from_user.id, message.text)


# =============================================================================
# STEP 2: MEASUREMENTS
# =============================================================================

async def ask_measurement(message: Message, state: FSMContext, wizard: OrderWizard, index: int) -> None:
    fields = wizard.builder.measurement_fields
    if index >= len(fields):
        await ask_design_name(message, state, wizard, 0)
        return

    key = fields[index]
    await state.set_state(OrderStates.entering_measurement)
    await state.update_data(measurement_index=index)

    current = wizard.builder.measurements.get(key)
    hint = f" (current: {current:g})" if current is not None else ""
    await message.answer(
        f"📏 {index + 1}/{len(fields)} <b>{measurement_label(key)}</b> in {wizard.builder.unit.value}{hint}:",
        reply_markup=get_skip_keyboard("order:skip_measurement"),
    )


@router.message(OrderStates.entering_measurement)
async def handle_measurement_input(message: Message, state: FSMContext) -> None:
    wizard = await get_wizard(message.from_user.id)
    data = await state.get_data()
    index = data.get("measurement_index", 0)
    fields = wizard.builder.measurement_fields
    if index >= len(fields):
        await ask_design_name(message, state, wizard, 0)
        return

    try:
        await wizard.set_measurement(fields[index], message.text)
    except StepValidationError as e:
        await message.answer(f"{format_errors(e.errors)}\n\nPlease try again:")
        return

    await ask_measurement(message, state, wizard, index + 1)


@router.callback_query(F.data == "order:skip_measurement")
async def handle_skip_measurement(callback: CallbackQuery, state: FSMContext) -> None:
    await callback.answer()
    wizard = await get_wizard(callback.from_user.id)
    data = await state.get_data()
    await ask_measurement(callback.message, state, wizard, data.get("measurement_index", 0) + 1)


# =============================================================================
# STEP 2: DESIGNS
# =============================================================================

async def ask_design_name(message: Message, state: FSMContext, wizard: OrderWizard, index: int) -> None:
    if index >= len(wizard.builder.designs):
        await show_garment_review(message, state, wizard)
        return

    await state.set_state(OrderStates.entering_design_name)
    await state.update_data(design_index=index)

    design = wizard.builder.designs[index]
    current = f" (current: {design.name})" if design.name else ""
    await message.answer(
        f"🎨 <b>Design {index + 1} of {len(wizard.builder.designs)}</b>\n\nDesign name{current}:",
        reply_markup=get_skip_keyboard("order:skip_design_name") if design.name else None,
    )


async def ask_design_amount(message: Message, state: FSMContext, wizard: OrderWizard, index: int) -> None:
    await state.set_state(OrderStates.entering_design_amount)
    design = wizard.builder.designs[index]
    current = f" (current: ₹{design.amount:g})" if design.amount else ""
    await message.answer(
        f"💰 Price for design {index + 1}{current}:",
        reply_markup=get_skip_keyboard("order:skip_design_amount") if design.amount else None,
    )


async def ask_reference_images(message: Message, state: FSMContext, wizard: OrderWizard, index: int) -> None:
    await state.set_state(OrderStates.uploading_reference_images)
    count = len(wizard.builder.designs[index].reference_images)
    await message.answer(
        f"🖼 Send up to {MAX_REFERENCE_IMAGES} <b>reference photos</b> for design {index + 1}.",
        reply_markup=get_photos_keyboard("reference", count, MAX_REFERENCE_IMAGES),
    )


async def ask_fabric_images(message: Message, state: FSMContext, wizard: OrderWizard, index: int) -> None:
    await state.set_state(OrderStates.uploading_fabric_images)
    count = len(wizard.builder.designs[index].fabric_images)
    await message.answer(
        f"🧶 Send up to {MAX_FABRIC_IMAGES} <b>fabric photos</b> for design {index + 1}.",
        reply_markup=get_photos_keyboard("fabric", count, MAX_FABRIC_IMAGES),
    )


async def ask_design_description(message: Message, state: FSMContext) -> None:
    await state.set_state(OrderStates.entering_design_description)
    await message.answer(
        "📝 Any notes for this design? (neckline, sleeves, lining...)",
        reply_markup=get_skip_keyboard("order:skip_design_description"),
    )


@router.message(OrderStates.entering_design_name)
async def handle_design_name_input(message: Message, state: FSMContext) -> None:
    name = (message.text or "").strip()
    if not name:
        await message.answer("❌ Design name is required.\n\nPlease try again:")
        return

    wizard = await get_wizard(message.from_user.id)
    index = (await state.get_data()).get("design_index", 0)
    await wizard.update_design(index, name=name)
    await ask_design_amount(message, state, wizard, index)


@router.callback_query(F.data == "order:skip_design_name")
async def handle_skip_design_name(callback: CallbackQuery, state: FSMContext) -> None:
    await callback.answer()
    wizard = await get_wizard(callback.from_user.id)
    index = (await state.get_data()).get("design_index", 0)
    await ask_design_amount(callback.message, state, wizard, index)


@router.message(OrderStates.entering_design_amount)
async def handle_design_amount_input(message: Message, state: FSMContext) -> None:
    is_valid, amount, error = AmountValidator.validate(message.text)
    if not is_valid:
        await message.answer(f"❌ {error}\n\nPlease try again:")
        return

    wizard = await get_wizard(message.from_user.id)
    index = (await state.get_data()).get("design_index", 0)
    await wizard.update_design(index, amount=amount)
    await ask_reference_images(message, state, wizard, index)


@router.callback_query(F.data == "order:skip_design_amount")
async def handle_skip_design_amount(callback: CallbackQuery, state: FSMContext) -> None:
    await callback.answer()
    wizard = await get_wizard(callback.from_user.id)
    index = (await state.get_data()).get("design_index", 0)
    await ask_reference_images(callback.message, state, wizard, index)


async def download_image(message: Message) -> tuple[Optional[UnsentAttachment], Optional[str]]:
    """Fetch an image sent as a photo or an image document."""
    if message.photo:
        photo = message.photo[-1]
        buffer = await message.bot.download(photo)
        filename, content_type = f"{photo.file_unique_id}.jpg", "image/jpeg"
    elif message.document:
        buffer = await message.bot.download(message.document)
        filename = message.document.file_name or message.document.file_unique_id
        content_type = message.document.mime_type or ""
    else:
        return None, "Please send a photo."

    data = buffer.read()
    is_valid, error = validate_upload(data, content_type)
    if not is_valid:
        return None, error
    return UnsentAttachment(data=data, filename=filename, content_type=content_type), None


@router.message(OrderStates.uploading_reference_images, F.photo | F.document)
async def handle_reference_image(message: Message, state: FSMContext) -> None:
    attachment, error = await download_image(message)
    if error:
        await message.answer(f"❌ {error}")
        return

    wizard = await get_wizard(message.from_user.id)
    index = (await state.get_data()).get("design_index", 0)
    try:
        count = await wizard.add_reference_image(index, attachment)
    except GarmentCommitError as e:
        await message.answer(f"❌ {e}", reply_markup=get_photos_keyboard("reference", MAX_REFERENCE_IMAGES, MAX_REFERENCE_IMAGES))
        return

    await message.answer(
        f"✅ Reference photo {count}/{MAX_REFERENCE_IMAGES} saved.",
        reply_markup=get_photos_keyboard("reference", count, MAX_REFERENCE_IMAGES),
    )


@router.message(OrderStates.uploading_fabric_images, F.photo | F.document)
async def handle_fabric_image(message: Message, state: FSMContext) -> None:
    attachment, error = await download_image(message)
    if error:
        await message.answer(f"❌ {error}")
        return

    wizard = await get_wizard(message.from_user.id)
    index = (await state.get_data()).get("design_index", 0)
    try:
        count = await wizard.add_fabric_image(index, attachment)
    except GarmentCommitError as e:
        await message.answer(f"❌ {e}", reply_markup=get_photos_keyboard("fabric", MAX_FABRIC_IMAGES, MAX_FABRIC_IMAGES))
        return

    await message.answer(
        f"✅ Fabric photo {count}/{MAX_FABRIC_IMAGES} saved.",
        reply_markup=get_photos_keyboard("fabric", count, MAX_FABRIC_IMAGES),
    )


@router.message(OrderStates.uploading_reference_images)
@router.message(OrderStates.uploading_fabric_images)
async def handle_non_image(message: Message) -> None:
    await message.answer("📷 Please send a photo, or tap the button to continue.")


@router.callback_query(F.data.startswith("order:photos_done:"))
async def handle_photos_done(callback: CallbackQuery, state: FSMContext) -> None:
    await callback.answer()
    wizard = await get_wizard(callback.from_user.id)
    index = (await state.get_data()).get("design_index", 0)

    if callback.data.endswith(":reference"):
        await ask_fabric_images(callback.message, state, wizard, index)
    else:
        await ask_design_description(callback.message, state)


@router.message(OrderStates.entering_design_description)
async def handle_design_description_input(message: Message, state: FSMContext) -> None:
    wizard = await get_wizard(message.from_user.id)
    index = (await state.get_data()).get("design_index", 0)
    await wizard.update_design(index, design_description=(message.text or "").strip())
    await ask_design_name(message, state, wizard, index + 1)


@router.callback_query(F.data == "order:skip_design_description")
async def handle_skip_design_description(callback: CallbackQuery, state: FSMContext) -> None:
    await callback.answer()
    wizard = await get_wizard(callback.from_user.id)
    index = (await state.get_data()).get("design_index", 0)
    await ask_design_name(callback.message, state, wizard, index + 1)


# =============================================================================
# STEP 2: GARMENT LIST
# =============================================================================

async def show_garment_review(message: Message, state: FSMContext, wizard: OrderWizard) -> None:
    await state.set_state(OrderStates.reviewing_garments)
    await message.answer(
        format_builder_summary(wizard),
        reply_markup=get_garment_review_keyboard(wizard.builder.editing_index is not None),
    )


async def show_garments(message: Message, state: FSMContext, wizard: OrderWizard) -> None:
    await state.set_state(OrderStates.reviewing_garments)
    text = (
        f"{format_step_progress(WizardStep.ORDER_DETAILS)}\n\n"
        "📦 <b>Garments in this order</b>\n\n"
        f"{wizard.order.format_items_summary(catalog.category_label)}\n\n"
        f"<b>Total:</b> ₹{wizard.order.total_amount:.2f}"
    )
    await message.answer(text, reply_markup=get_garments_keyboard(wizard.order, catalog.category_label))


@router.callback_query(F.data == "order:commit")
async def handle_commit_garment(callback: CallbackQuery, state: FSMContext) -> None:
    wizard = await get_wizard(callback.from_user.id)
    try:
        await wizard.commit_garment()
    except GarmentCommitError as e:
        await callback.answer(str(e), show_alert=True)
        if e.design_index is not None:
            await ask_design_name(callback.message, state, wizard, e.design_index)
        return
    except WizardStateError as e:
        await callback.answer(str(e), show_alert=True)
        return

    await callback.answer("Garment saved")
    await show_garments(callback.message, state, wizard)


@router.callback_query(F.data == "order:discard")
async def handle_discard_garment(callback: CallbackQuery, state: FSMContext) -> None:
    await callback.answer()
    wizard = await get_wizard(callback.from_user.id)
    await wizard.cancel_garment_edit()
    if wizard.order.garments:
        await show_garments(callback.message, state, wizard)
    else:
        await ask_category(callback.message, state)


@router.callback_query(F.data == "order:add_garment")
async def handle_add_garment(callback: CallbackQuery, state: FSMContext) -> None:
    await callback.answer()
    wizard = await get_wizard(callback.from_user.id)
    await wizard.start_garment()
    await ask_category(callback.message, state)


@router.callback_query(F.data.startswith("order:edit_garment:"))
async def handle_edit_garment(callback: CallbackQuery, state: FSMContext) -> None:
    index = int(callback.data.split(":")[-1])
    wizard = await get_wizard(callback.from_user.id)
    try:
        await wizard.edit_garment(index)
    except (IndexError, WizardStateError):
        await callback.answer("Garment not found", show_alert=True)
        return
    await callback.answer()
    await show_garment_review(callback.message, state, wizard)


@router.callback_query(F.data.startswith("order:remove_garment:"))
async def handle_remove_garment(callback: CallbackQuery, state: FSMContext) -> None:
    index = int(callback.data.split(":")[-1])
    wizard = await get_wizard(callback.from_user.id)
    if not await wizard.remove_garment(index):
        await callback.answer("Garment not found", show_alert=True)
        return
    await callback.answer("Garment removed")
    if wizard.order.garments:
        await show_garments(callback.message, state, wizard)
    else:
        await ask_category(callback.message, state)


@router.callback_query(F.data == "order:to_delivery")
async def handle_to_delivery(callback: CallbackQuery, state: FSMContext) -> None:
    wizard = await get_wizard(callback.from_user.id)
    try:
        await wizard.continue_to_delivery()
    except StepValidationError as e:
        await callback.answer(format_errors(e.errors), show_alert=True)
        return
    except WizardStateError as e:
        await callback.answer(str(e), show_alert=True)
        return
    await callback.answer()
    await ask_delivery_date(callback.message, state)


# =============================================================================
# STEP 3: DELIVERY & PAYMENT
# =============================================================================

async def save_delivery(message: Message, state: FSMContext, user_id: int, **fields) -> Optional[OrderWizard]:
    """Store entered step-3 fields in the wizard. Returns None if the wizard left step 3."""
    wizard = await get_wizard(user_id)
    try:
        await wizard.update_delivery_draft(fields)
    except WizardStateError as e:
        await message.answer(f"❌ {e}")
        await show_step(message, state, wizard)
        return None
    return wizard


async def ask_delivery_date(message: Message, state: FSMContext) -> None:
    await state.set_state(OrderStates.entering_delivery_date)
    await message.answer(
        f"{format_step_progress(WizardStep.DELIVERY_PAYMENT)}\n\n"
        f"📅 <b>Delivery date</b> (at least {settings.min_delivery_days} days from today).\n"
        "Pick one or type it as DD/MM/YYYY:",
        reply_markup=get_date_quick_keyboard(),
    )


async def accept_delivery_date(message: Message, state: FSMContext, user_id: int, value: str) -> None:
    is_valid, delivery_date, error = DeliveryDateValidator.validate(value)
    if not is_valid:
        await message.answer(f"❌ {error}", reply_markup=get_date_quick_keyboard())
        return

    if await save_delivery(message, state, user_id, deliveryDate=delivery_date) is None:
        return

    await state.set_state(OrderStates.choosing_urgency)
    await message.answer("⏱ <b>Urgency:</b>", reply_markup=get_urgency_keyboard())


@router.callback_query(F.data.startswith("order:date:"))
async def handle_quick_date(callback: CallbackQuery, state: FSMContext) -> None:
    await callback.answer()
    await accept_delivery_date(
        callback.message, state, callback.from_user.id, callback.data.split(":", 2)[-1]
    )


@router.message(OrderStates.entering_delivery_date)
async def handle_date_input(message: Message, state: FSMContext) -> None:
    await accept_delivery_date(message, state, message.from_user.id, message.text or "")


@router.callback_query(F.data.startswith("order:urgency:"))
async def handle_urgency_selected(callback: CallbackQuery, state: FSMContext) -> None:
    await callback.answer()
    urgency = callback.data.split(":")[-1]
    if await save_delivery(callback.message, state, callback.from_user.id, urgency=urgency) is None:
        return

    await state.set_state(OrderStates.choosing_payment)
    await callback.message.answer("💳 <b>Payment preference:</b>", reply_markup=get_payment_keyboard())


@router.callback_query(F.data.startswith("order:payment:"))
async def handle_payment_selected(callback: CallbackQuery, state: FSMContext) -> None:
    await callback.answer()
    payment = callback.data.split(":")[-1]
    wizard = await save_delivery(
        callback.message, state, callback.from_user.id, payment=payment, advanceAmount=0
    )
    if wizard is None:
        return

    if PaymentMethod.parse(payment) == PaymentMethod.ADVANCE:
        await state.set_state(OrderStates.entering_advance)
        await callback.message.answer(
            f"💵 <b>Advance amount</b> (order total ₹{wizard.order.total_amount:.2f}):"
        )
        return

    await ask_instructions(callback.message, state)


@router.message(OrderStates.entering_advance)
async def handle_advance_input(message: Message, state: FSMContext) -> None:
    wizard = await get_wizard(message.from_user.id)
    is_valid, advance, error = AdvanceAmountValidator.validate(message.text, wizard.order.total_amount)
    if not is_valid:
        await message.answer(f"❌ {error}\n\nPlease try again:")
        return

    if await save_delivery(message, state, message.from_user.id, advanceAmount=advance) is None:
        return
    await ask_instructions(message, state)


async def ask_instructions(message: Message, state: FSMContext) -> None:
    await state.set_state(OrderStates.entering_instructions)
    await message.answer(
        "💬 Any special instructions?",
        reply_markup=get_skip_keyboard("order:skip_instructions"),
    )


@router.message(OrderStates.entering_instructions)
async def handle_instructions_input(message: Message, state: FSMContext) -> None:
    instructions = (message.text or "").strip()
    if await save_delivery(message, state, message.from_user.id, specialInstructions=instructions) is None:
        return
    await show_final_summary(message, state, message.from_user.id)


@router.callback_query(F.data == "order:skip_instructions")
async def handle_skip_instructions(callback: CallbackQuery, state: FSMContext) -> None:
    await callback.answer()
    await show_final_summary(callback.message, state, callback.from_user.id)


@router.callback_query(F.data == "order:redo_delivery")
async def handle_redo_delivery(callback: CallbackQuery, state: FSMContext) -> None:
    await callback.answer()
    await ask_delivery_date(callback.message, state)


async def show_final_summary(message: Message, state: FSMContext, user_id: int) -> None:
    wizard = await get_wizard(user_id)
    delivery = wizard.order.delivery_draft
    payment = PaymentMethod.parse(delivery.get("payment"))

    lines = [
        "📋 <b>Please check the order</b>",
        "",
        wizard.order.format_items_summary(catalog.category_label),
        "",
        f"<b>Total:</b> ₹{wizard.order.total_amount:.2f}",
        f"🚚 Delivery: {delivery.get('deliveryDate') or '—'} ({delivery.get('urgency') or 'regular'})",
        f"💳 Payment: {payment.label if payment else '—'}",
    ]
    if payment == PaymentMethod.ADVANCE:
        lines.append(f"   Advance: ₹{float(delivery.get('advanceAmount') or 0):.2f}")
    if delivery.get("specialInstructions"):
        lines.append(f"💬 {delivery['specialInstructions']}")

    await state.set_state(OrderStates.submitting)
    await message.answer("\n".join(lines), reply_markup=get_final_confirmation_keyboard())


# =============================================================================
# SUBMISSION
# =============================================================================

PHASE_ICONS = {
    PhaseStatus.PENDING: "⚪",
    PhaseStatus.ACTIVE: "⏳",
    PhaseStatus.DONE: "✅",
    PhaseStatus.FAILED: "❌",
}


def format_progress(progress: SubmissionProgress) -> str:
    lines = ["📤 <b>Submitting order...</b>", ""]
    for phase, status in progress.phases.items():
        lines.append(f"{PHASE_ICONS[status]} {phase.label}")
    return "\n".join(lines)


@router.callback_query(F.data == "order:submit")
async def handle_submit(callback: CallbackQuery, state: FSMContext) -> None:
    """Submit the order with live phase progress."""
    wizard = await get_wizard(callback.from_user.id)
    if wizard.is_submitting:
        await callback.answer("The order is already being submitted.", show_alert=True)
        return
    await callback.answer()

    status_message = await callback.message.answer("📤 <b>Submitting order...</b>")

    async def on_progress(progress: SubmissionProgress) -> None:
        await status_message.edit_text(format_progress(progress))

    try:
        result = await wizard.submit_order(on_progress=on_progress)
    except StepValidationError as e:
        await callback.message.answer(format_errors(e.errors), reply_markup=get_retry_keyboard())
        return
    except WizardStateError as e:
        await callback.message.answer(f"❌ {e}")
        await show_step(callback.message, state, wizard)
        return

    if not result.success:
        await callback.message.answer(f"❌ {result.message}", reply_markup=get_retry_keyboard())
        return

    await show_confirmation(callback.message, state, wizard)


# =============================================================================
# STEP 4: CONFIRMATION
# =============================================================================

async def show_confirmation(message: Message, state: FSMContext, wizard: OrderWizard) -> None:
    await state.set_state(OrderStates.confirmed)
    text = (
        f"{format_step_progress(WizardStep.CONFIRMATION)}\n\n"
        "🎉 <b>Order placed!</b>\n\n"
        f"{wizard.order.format_full_summary(catalog.category_label)}"
    )
    await message.answer(text, reply_markup=get_order_submitted_keyboard())


@router.callback_query(F.data.startswith("order:invoice:"))
async def handle_invoice(callback: CallbackQuery, state: FSMContext) -> None:
    """Send the customer or tailor invoice."""
    invoice_type = InvoiceType(callback.data.split(":")[-1])
    wizard = await get_wizard(callback.from_user.id)
    await callback.answer("Preparing invoice...")

    try:
        document = await wizard.get_invoice(invoice_type)
    except WizardStateError as e:
        await callback.message.answer(f"❌ {e}")
        return
    except OrderServiceError as e:
        logger.warning(f"Invoice {invoice_type.value} for {wizard.order.order_id} failed: {e}")
        await callback.message.answer(
            "😔 Could not get the invoice right now. Please try again later.",
            reply_markup=get_order_submitted_keyboard(),
        )
        return

    filename = f"{wizard.order.order_id}_{invoice_type.value}.pdf"
    await callback.message.answer_document(BufferedInputFile(document, filename=filename))
