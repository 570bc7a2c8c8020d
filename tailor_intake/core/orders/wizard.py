"""
Order wizard: the four-step state machine that owns the order being built.

Every mutation re-serializes the whole wizard into the snapshot repository so
an interrupted session resumes where it stopped.
"""

import logging
from datetime import date
from typing import Optional

from tailor_intake.config import settings
from tailor_intake.core.catalog import CatalogResolver
from tailor_intake.core.orders.attachments import Attachment
from tailor_intake.core.orders.builder import GarmentBuilder
from tailor_intake.core.orders.complexity import analyze_order_complexity
from tailor_intake.core.orders.models import (
    CustomerInfo,
    Garment,
    OrderAggregate,
    WizardStep,
)
from tailor_intake.core.orders.snapshot import (
    SnapshotRepository,
    dump_snapshot,
    restore_snapshot,
)
from tailor_intake.core.orders.validators import (
    validate_customer_info,
    validate_delivery_payment,
)
from tailor_intake.core.submission.packager import SubmissionPackager, packager as default_packager
from tailor_intake.core.submission.pipeline import (
    ProgressListener,
    SubmissionPipeline,
    SubmissionResult,
)
from tailor_intake.exceptions import (
    StepValidationError,
    SubmissionInProgressError,
    WizardStateError,
)
from tailor_intake.integrations.order_service import InvoiceType

logger = logging.getLogger(__name__)

# Step-3 form fields, keyed as in the snapshot
DELIVERY_FIELDS = ("deliveryDate", "urgency", "payment", "advanceAmount", "specialInstructions")


class OrderWizard:
    """Drives one order from customer details to confirmation."""

    def __init__(
        self,
        repository: SnapshotRepository,
        pipeline: Optional[SubmissionPipeline] = None,
        slot: Optional[str] = None,
        resolver: Optional[CatalogResolver] = None,
        packager: Optional[SubmissionPackager] = None,
    ):
        self.repository = repository
        self.pipeline = pipeline or SubmissionPipeline()
        self.slot = slot or settings.snapshot_slot
        self.packager = packager or default_packager
        self.builder = GarmentBuilder(resolver)
        self.order = OrderAggregate()
        self.last_result: Optional[SubmissionResult] = None
        self._submitting = False

    @property
    def step(self) -> WizardStep:
        return self.order.step

    @property
    def is_submitting(self) -> bool:
        return self._submitting

    # -------------------------------------------------------------------------
    # Snapshot
    # -------------------------------------------------------------------------

    async def restore(self) -> bool:
        """
        Load the stored snapshot, if any. A missing or unreadable snapshot
        leaves a fresh wizard. Returns True when a snapshot was applied.
        """
        try:
            data = await self.repository.load(self.slot)
            if data is None:
                return False
            builder = GarmentBuilder(self.builder.resolver)
            order = restore_snapshot(data, builder)
        except Exception as e:
            logger.debug(f"Ignoring unreadable snapshot in slot {self.slot}: {e}")
            return False

        self.order = order
        self.builder = builder
        logger.debug(f"Restored wizard at step {int(order.step)} with {len(order.garments)} garment(s)")
        return True

    async def _persist(self) -> None:
        """Best-effort save; failures are logged, never raised."""
        try:
            await self.repository.save(self.slot, dump_snapshot(self.order, self.builder))
        except Exception as e:
            logger.warning(f"Could not save wizard snapshot to slot {self.slot}: {e}")

    def _require_step(self, step: WizardStep) -> None:
        if self.order.step != step:
            raise WizardStateError(f"Not available at step {int(self.order.step)} ({self.order.step.label})")

    # -------------------------------------------------------------------------
    # Step 1: customer info
    # -------------------------------------------------------------------------

    async def submit_customer_info(self, data: dict) -> CustomerInfo:
        """Validate customer details and move to order details."""
        self._require_step(WizardStep.CUSTOMER_INFO)

        customer, errors = validate_customer_info(data)
        if errors:
            logger.debug(f"Customer info rejected: {sorted(errors)}")
            raise StepValidationError(errors)

        self.order.customer = customer
        self.order.step = WizardStep.ORDER_DETAILS
        if not self.order.garments:
            self.order.show_garment_form = True
        await self._persist()
        return customer

    # -------------------------------------------------------------------------
    # Step 2: garments
    # -------------------------------------------------------------------------

    async def select_category(self, category: str) -> None:
        self._require_step(WizardStep.ORDER_DETAILS)
        self.builder.select_category(category)
        await self._persist()

    async def select_variant(self, variant: Optional[str]) -> None:
        self._require_step(WizardStep.ORDER_DETAILS)
        self.builder.select_variant(variant)
        await self._persist()

    async def set_unit(self, unit) -> None:
        self._require_step(WizardStep.ORDER_DETAILS)
        self.builder.set_unit(unit)
        await self._persist()

    async def set_measurement(self, key: str, value) -> float:
        self._require_step(WizardStep.ORDER_DETAILS)
        parsed = self.builder.set_measurement(key, value)
        await self._persist()
        return parsed

    async def set_quantity(self, quantity) -> int:
        self._require_step(WizardStep.ORDER_DETAILS)
        value = self.builder.set_quantity(quantity)
        await self._persist()
        return value

    async def update_design(self, index: int, **patch) -> None:
        self._require_step(WizardStep.ORDER_DETAILS)
        self.builder.update_design(index, **patch)
        await self._persist()

    async def add_reference_image(self, index: int, attachment: Attachment) -> int:
        self._require_step(WizardStep.ORDER_DETAILS)
        count = self.builder.add_reference_image(index, attachment)
        await self._persist()
        return count

    async def add_fabric_image(self, index: int, attachment: Attachment) -> int:
        self._require_step(WizardStep.ORDER_DETAILS)
        count = self.builder.add_fabric_image(index, attachment)
        await self._persist()
        return count

    async def remove_reference_image(self, index: int, file_index: int) -> bool:
        self._require_step(WizardStep.ORDER_DETAILS)
        removed = self.builder.remove_reference_image(index, file_index)
        await self._persist()
        return removed

    async def remove_fabric_image(self, index: int, file_index: int) -> bool:
        self._require_step(WizardStep.ORDER_DETAILS)
        removed = self.builder.remove_fabric_image(index, file_index)
        await self._persist()
        return removed

    async def set_garment_canvas(self, attachment: Optional[Attachment]) -> None:
        self._require_step(WizardStep.ORDER_DETAILS)
        self.builder.set_garment_canvas(attachment)
        await self._persist()

    async def commit_garment(self) -> Garment:
        """
        Add the garment in the builder, or replace the one being edited.
        Raises GarmentCommitError with builder and order untouched.
        """
        self._require_step(WizardStep.ORDER_DETAILS)
        garment = self.builder.commit(self.order)
        self.order.editing_index = None
        self.order.show_garment_form = False
        await self._persist()
        return garment

    async def start_garment(self) -> None:
        """Open a blank garment form for another garment."""
        self._require_step(WizardStep.ORDER_DETAILS)
        self.builder.reset()
        self.order.editing_index = None
        self.order.show_garment_form = True
        await self._persist()

    async def edit_garment(self, index: int) -> Garment:
        """Load a committed garment into the builder for editing."""
        self._require_step(WizardStep.ORDER_DETAILS)
        if not 0 <= index < len(self.order.garments):
            raise IndexError(f"No garment at position {index + 1}")
        garment = self.order.garments[index]
        self.builder.load_for_edit(garment, index)
        self.order.editing_index = index
        self.order.show_garment_form = True
        await self._persist()
        return garment

    async def cancel_garment_edit(self) -> None:
        """Discard the builder contents."""
        self._require_step(WizardStep.ORDER_DETAILS)
        self.builder.reset()
        self.order.editing_index = None
        self.order.show_garment_form = not self.order.garments
        await self._persist()

    async def remove_garment(self, index: int) -> bool:
        self._require_step(WizardStep.ORDER_DETAILS)
        if not self.order.remove_garment(index):
            return False

        editing = self.order.editing_index
        if editing == index:
            self.builder.reset()
            self.order.editing_index = None
        elif editing is not None and editing > index:
            self.order.editing_index = editing - 1
            self.builder.editing_index = editing - 1

        if not self.order.garments:
            self.order.show_garment_form = True
        await self._persist()
        return True

    async def continue_to_delivery(self) -> None:
        self._require_step(WizardStep.ORDER_DETAILS)
        if not self.order.garments:
            raise StepValidationError({"garments": "Please add at least one garment before continuing."})
        self.order.step = WizardStep.DELIVERY_PAYMENT
        await self._persist()

    # -------------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------------

    async def go_back(self) -> WizardStep:
        """Step back one phase, keeping everything entered so far."""
        if self.order.is_submitted:
            raise WizardStateError("The order has been submitted; start a new order instead.")
        if self.order.step == WizardStep.CUSTOMER_INFO:
            raise WizardStateError("Already at the first step.")
        if self._submitting:
            raise SubmissionInProgressError("Wait for the submission to finish.")

        self.order.step = WizardStep(self.order.step - 1)
        await self._persist()
        return self.order.step

    # -------------------------------------------------------------------------
    # Step 3: delivery & submission
    # -------------------------------------------------------------------------

    async def update_delivery_draft(self, data: dict) -> dict:
        """
        Merge partially entered delivery & payment fields into the order and
        save them, so a resumed session finds them again. Nothing is validated
        here; submit_order does that. Returns the merged draft.
        """
        self._require_step(WizardStep.DELIVERY_PAYMENT)
        unknown = set(data) - set(DELIVERY_FIELDS)
        if unknown:
            raise ValueError(f"Unknown delivery field(s): {', '.join(sorted(unknown))}")

        for key, value in data.items():
            if isinstance(value, date):
                value = value.isoformat()
            self.order.delivery_draft[key] = value
        self.order.delivery = None
        await self._persist()
        return dict(self.order.delivery_draft)

    async def submit_order(
        self,
        delivery_data: Optional[dict] = None,
        on_progress: Optional[ProgressListener] = None,
        today: Optional[date] = None,
    ) -> SubmissionResult:
        """
        Validate delivery & payment, then submit the order.

        Without delivery_data the saved draft is used. Local problems raise
        StepValidationError before any network call. Service failures come
        back as an unsuccessful SubmissionResult with the wizard still at step 3.
        """
        if self._submitting:
            raise SubmissionInProgressError("A submission is already in progress.")
        self._require_step(WizardStep.DELIVERY_PAYMENT)

        self._submitting = True
        try:
            if delivery_data is None:
                delivery_data = self.order.delivery_draft
            delivery, errors = validate_delivery_payment(delivery_data, self.order.total_amount, today=today)
            if errors:
                logger.debug(f"Delivery & payment rejected: {sorted(errors)}")
                raise StepValidationError(errors)

            self.order.delivery = delivery
            self.order.delivery_draft = delivery.to_dict()
            await self._persist()

            complexity = analyze_order_complexity(self.order)
            if not complexity.can_submit:
                raise StepValidationError({"order": " ".join(complexity.errors)})

            payload = self.packager.package(self.order)
            result = await self.pipeline.submit(payload, on_progress=on_progress)
        finally:
            self._submitting = False

        self.last_result = result
        if result.success:
            receipt = result.receipt
            self.order.apply_submission(receipt.order_id, receipt.order_date, receipt.order)
            self.order.step = WizardStep.CONFIRMATION
            self.order.show_garment_form = False
            self.order.editing_index = None
            self.builder.reset()

        await self._persist()
        return result

    # -------------------------------------------------------------------------
    # Step 4: confirmation
    # -------------------------------------------------------------------------

    async def get_invoice(self, invoice_type: InvoiceType) -> bytes:
        """Fetch (or have generated) an invoice for the submitted order."""
        self._require_step(WizardStep.CONFIRMATION)
        if not self.order.is_submitted:
            raise WizardStateError("The order has not been submitted.")
        return await self.pipeline.service.fetch_invoice(
            self.order.order_id,
            invoice_type,
            self.order.submitted_order,
        )

    async def start_new_order(self) -> None:
        """Discard everything, including the stored snapshot."""
        if self._submitting:
            raise SubmissionInProgressError("Wait for the submission to finish.")
        self.order = OrderAggregate()
        self.builder.reset()
        self.last_result = None
        try:
            await self.repository.clear(self.slot)
        except Exception as e:
            logger.warning(f"Could not clear wizard snapshot in slot {self.slot}: {e}")
