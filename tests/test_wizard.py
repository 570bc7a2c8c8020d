import asyncio
import json
import unittest
from datetime import date

from tailor_intake.core.orders.models import WizardStep
from tailor_intake.core.orders.snapshot import InMemorySnapshotRepository
from tailor_intake.core.orders.wizard import OrderWizard
from tailor_intake.core.submission.pipeline import SubmissionErrorKind, SubmissionPipeline
from tailor_intake.exceptions import (
    CommitRule,
    GarmentCommitError,
    StepValidationError,
    SubmissionInProgressError,
    WizardStateError,
)
from tailor_intake.integrations.order_service import BaseOrderService, InvoiceType, SubmissionReceipt

TODAY = date(2026, 10, 18)

CUSTOMER = {
    "fullName": "Asha Rao",
    "contactNumber": "9876543210",
    "email": "asha@example.com",
    "fullAddress": "12 MG Road, Bengaluru 560001",
    "sameForWhatsapp": True,
}

DELIVERY = {
    "deliveryDate": "2026-10-25",
    "urgency": "regular",
    "payment": "cod",
}


class EchoOrderService(BaseOrderService):
    """Accepts every order and echoes it back the way the backend stores it."""

    def __init__(self, delay: float = 0.0, gate: asyncio.Event | None = None):
        self.delay = delay
        self.gate = gate
        self.calls = []
        self.invoices = []

    async def submit_order(self, payload):
        self.calls.append(payload)
        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        document = {}
        document.update(json.loads(payload.fields["customer"]))
        document.update(json.loads(payload.fields["delivery"]))
        document["garments"] = json.loads(payload.fields["garments"])
        document["oid"] = "ORD-1001"
        return SubmissionReceipt(order_id="ORD-1001", order_date="2026-10-18", order=document)

    async def list_orders(self):
        return []

    async def fetch_invoice(self, order_id, invoice_type, order=None):
        self.invoices.append((order_id, invoice_type, order))
        return b"%PDF-1.4"

    @property
    def name(self) -> str:
        return "echo"


class FailingSaveRepository(InMemorySnapshotRepository):
    async def save(self, slot, snapshot):
        raise OSError("disk full")


class YieldingRepository(InMemorySnapshotRepository):
    """Gives other tasks a turn on every save, like a real database would."""

    async def save(self, slot, snapshot):
        await asyncio.sleep(0)
        await super().save(slot, snapshot)


class EmptyEchoOrderService(EchoOrderService):
    """Backend that stores the order but echoes no garments."""

    async def submit_order(self, payload):
        receipt = await super().submit_order(payload)
        receipt.order["garments"] = []
        return receipt


class TestOrderWizard(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.repo = InMemorySnapshotRepository()
        self.service = EchoOrderService()
        self.wizard = self.make_wizard()

    def make_wizard(self, repo=None, service=None, timeout=None):
        pipeline = SubmissionPipeline(service=service or self.service, timeout=timeout, phase_offsets=[])
        return OrderWizard(repo or self.repo, pipeline=pipeline, slot="test")

    async def add_kurti(self, wizard=None):
        wizard = wizard or self.wizard
        await wizard.select_category("kurti_kameez")
        await wizard.select_variant("straight")
        await wizard.set_measurement("chest", "36")
        await wizard.set_quantity(2)
        await wizard.update_design(0, name="Design A", amount="500")
        await wizard.update_design(1, name="Design B", amount="650")
        return await wizard.commit_garment()

    async def add_blouse(self, wizard=None):
        wizard = wizard or self.wizard
        await wizard.start_garment()
        await wizard.select_category("blouse")
        await wizard.select_variant("katori")
        await wizard.update_design(0, name="Design C", amount=300)
        return await wizard.commit_garment()

    async def reach_delivery(self, wizard=None):
        wizard = wizard or self.wizard
        await wizard.submit_customer_info(CUSTOMER)
        await self.add_kurti(wizard)
        await wizard.continue_to_delivery()

    async def test_full_order(self):
        await self.wizard.submit_customer_info(CUSTOMER)
        self.assertEqual(self.wizard.step, WizardStep.ORDER_DETAILS)

        garment = await self.add_kurti()
        self.assertEqual(garment.total_amount, 1150)
        self.assertEqual(self.wizard.order.total_amount, 1150)

        await self.wizard.continue_to_delivery()
        result = await self.wizard.submit_order(DELIVERY, today=TODAY)

        self.assertTrue(result.success)
        self.assertEqual(self.wizard.step, WizardStep.CONFIRMATION)
        self.assertEqual(self.wizard.order.order_id, "ORD-1001")
        self.assertEqual(len(self.wizard.order.submitted_order["garments"][0]["designs"]), 2)
        self.assertEqual(self.wizard.order.total_amount, 1150)
        self.assertEqual(self.wizard.order.customer.full_name, "Asha Rao")
        self.assertEqual(len(self.service.calls), 1)

    async def test_incomplete_design_blocks_commit(self):
        await self.wizard.submit_customer_info(CUSTOMER)
        await self.wizard.select_category("kurti_kameez")
        await self.wizard.select_variant("straight")
        await self.wizard.set_quantity(3)
        await self.wizard.update_design(0, name="Design A", amount=500)
        await self.wizard.update_design(1, name="Design B", amount=650)

        with self.assertRaises(GarmentCommitError) as ctx:
            await self.wizard.commit_garment()

        self.assertEqual(ctx.exception.rule, CommitRule.INCOMPLETE_DESIGN)
        self.assertEqual(ctx.exception.design_index, 2)
        self.assertEqual(self.wizard.order.garments, [])
        self.assertEqual(len(self.wizard.builder.designs), 3)

    async def test_invalid_customer_info(self):
        with self.assertRaises(StepValidationError) as ctx:
            await self.wizard.submit_customer_info(dict(CUSTOMER, contactNumber="12"))
        self.assertIn("contactNumber", ctx.exception.errors)
        self.assertEqual(self.wizard.step, WizardStep.CUSTOMER_INFO)

    async def test_cannot_continue_without_garments(self):
        await self.wizard.submit_customer_info(CUSTOMER)
        with self.assertRaises(StepValidationError):
            await self.wizard.continue_to_delivery()
        self.assertEqual(self.wizard.step, WizardStep.ORDER_DETAILS)

    async def test_back_and_forward_keeps_data(self):
        await self.wizard.submit_customer_info(CUSTOMER)
        await self.add_kurti()
        await self.add_blouse()
        await self.wizard.continue_to_delivery()
        await self.wizard.update_delivery_draft({"deliveryDate": "2026-10-25", "urgency": "express"})
        garments_before = [g.to_dict() for g in self.wizard.order.garments]

        self.assertEqual(await self.wizard.go_back(), WizardStep.ORDER_DETAILS)
        self.assertEqual(await self.wizard.go_back(), WizardStep.CUSTOMER_INFO)
        with self.assertRaises(WizardStateError):
            await self.wizard.go_back()

        await self.wizard.submit_customer_info(CUSTOMER)
        await self.wizard.continue_to_delivery()

        self.assertEqual(self.wizard.step, WizardStep.DELIVERY_PAYMENT)
        self.assertEqual(len(garments_before), 2)
        self.assertEqual([g.to_dict() for g in self.wizard.order.garments], garments_before)
        self.assertEqual(self.wizard.order.customer.full_name, "Asha Rao")
        self.assertEqual(self.wizard.order.delivery_draft["urgency"], "express")

    async def test_edit_and_remove_garments(self):
        await self.wizard.submit_customer_info(CUSTOMER)
        await self.add_kurti()
        await self.wizard.start_garment()
        await self.wizard.select_category("blouse")
        await self.wizard.select_variant("katori")
        await self.wizard.update_design(0, name="Design C", amount=300)
        await self.wizard.commit_garment()

        await self.wizard.edit_garment(1)
        await self.wizard.update_design(0, amount=350)
        await self.wizard.commit_garment()

        self.assertEqual(len(self.wizard.order.garments), 2)
        self.assertEqual(self.wizard.order.total_amount, 1500)

        await self.wizard.edit_garment(1)
        self.assertTrue(await self.wizard.remove_garment(0))
        self.assertEqual(self.wizard.order.editing_index, 0)
        self.assertEqual(self.wizard.builder.editing_index, 0)

        with self.assertRaises(IndexError):
            await self.wizard.edit_garment(5)

    async def test_restore_resumes_at_delivery(self):
        await self.wizard.submit_customer_info(CUSTOMER)
        await self.add_kurti()
        await self.wizard.start_garment()
        await self.wizard.select_category("blouse")
        await self.wizard.select_variant("katori")
        await self.wizard.update_design(0, name="Design C", amount=300)
        await self.wizard.commit_garment()
        await self.wizard.continue_to_delivery()

        resumed = self.make_wizard()
        self.assertTrue(await resumed.restore())

        self.assertEqual(resumed.step, WizardStep.DELIVERY_PAYMENT)
        self.assertEqual(len(resumed.order.garments), 2)
        self.assertEqual(resumed.order.total_amount, 1450)

    async def test_restore_without_snapshot(self):
        self.assertFalse(await self.wizard.restore())
        self.assertEqual(self.wizard.step, WizardStep.CUSTOMER_INFO)

    async def test_corrupt_snapshot_ignored(self):
        await self.repo.save("test", ["not", "a", "snapshot"])
        self.assertFalse(await self.wizard.restore())
        self.assertEqual(self.wizard.step, WizardStep.CUSTOMER_INFO)

    async def test_failing_save_does_not_interrupt(self):
        wizard = self.make_wizard(repo=FailingSaveRepository())
        await wizard.submit_customer_info(CUSTOMER)
        self.assertEqual(wizard.step, WizardStep.ORDER_DETAILS)

    async def test_advance_over_total_rejected_locally(self):
        await self.reach_delivery()
        delivery = dict(DELIVERY, payment="advance", advanceAmount="5000")

        with self.assertRaises(StepValidationError) as ctx:
            await self.wizard.submit_order(delivery, today=TODAY)

        self.assertIn("advanceAmount", ctx.exception.errors)
        self.assertEqual(self.service.calls, [])
        self.assertEqual(self.wizard.step, WizardStep.DELIVERY_PAYMENT)

    async def test_delivery_too_soon_rejected(self):
        await self.reach_delivery()
        with self.assertRaises(StepValidationError) as ctx:
            await self.wizard.submit_order(dict(DELIVERY, deliveryDate="2026-10-19"), today=TODAY)
        self.assertIn("deliveryDate", ctx.exception.errors)

    async def test_timeout_keeps_order_for_retry(self):
        slow = EchoOrderService(delay=1.0)
        wizard = self.make_wizard(service=slow, timeout=0.05)
        await self.reach_delivery(wizard)

        result = await wizard.submit_order(DELIVERY, today=TODAY)

        self.assertFalse(result.success)
        self.assertEqual(result.error_kind, SubmissionErrorKind.TIMEOUT)
        self.assertEqual(wizard.step, WizardStep.DELIVERY_PAYMENT)
        self.assertFalse(wizard.is_submitting)
        self.assertEqual(len(wizard.order.garments), 1)
        self.assertIsNotNone(wizard.order.delivery)

        snapshot = await self.repo.load("test")
        self.assertEqual(snapshot["step"], 3)
        self.assertEqual(snapshot["deliveryData"]["deliveryDate"], "2026-10-25")

    async def test_double_submit_refused(self):
        gate = asyncio.Event()
        service = EchoOrderService(gate=gate)
        wizard = self.make_wizard(service=service)
        await self.reach_delivery(wizard)

        first = asyncio.create_task(wizard.submit_order(DELIVERY, today=TODAY))
        while not service.calls:
            await asyncio.sleep(0)

        with self.assertRaises(SubmissionInProgressError):
            await wizard.submit_order(DELIVERY, today=TODAY)
        with self.assertRaises(SubmissionInProgressError):
            await wizard.go_back()

        gate.set()
        result = await first

        self.assertTrue(result.success)
        self.assertEqual(len(service.calls), 1)

    async def test_confirmation_is_final(self):
        await self.reach_delivery()
        await self.wizard.submit_order(DELIVERY, today=TODAY)

        with self.assertRaises(WizardStateError):
            await self.wizard.go_back()
        with self.assertRaises(WizardStateError):
            await self.wizard.select_category("blouse")

    async def test_invoice_only_after_submission(self):
        await self.reach_delivery()
        with self.assertRaises(WizardStateError):
            await self.wizard.get_invoice(InvoiceType.CUSTOMER)

        await self.wizard.submit_order(DELIVERY, today=TODAY)
        pdf = await self.wizard.get_invoice(InvoiceType.TAILOR)

        self.assertEqual(pdf, b"%PDF-1.4")
        order_id, invoice_type, document = self.service.invoices[0]
        self.assertEqual(order_id, "ORD-1001")
        self.assertEqual(invoice_type, InvoiceType.TAILOR)
        self.assertEqual(document["oid"], "ORD-1001")

    async def test_start_new_order_clears_snapshot(self):
        await self.reach_delivery()
        await self.wizard.submit_order(DELIVERY, today=TODAY)
        self.assertIsNotNone(await self.repo.load("test"))

        await self.wizard.start_new_order()

        self.assertIsNone(await self.repo.load("test"))
        self.assertEqual(self.wizard.step, WizardStep.CUSTOMER_INFO)
        self.assertEqual(self.wizard.order.garments, [])

    async def test_concurrent_submits_reach_service_once(self):
        service = EchoOrderService()
        wizard = self.make_wizard(repo=YieldingRepository(), service=service)
        await self.reach_delivery(wizard)

        results = await asyncio.gather(
            wizard.submit_order(DELIVERY, today=TODAY),
            wizard.submit_order(DELIVERY, today=TODAY),
            return_exceptions=True,
        )

        self.assertEqual(len(service.calls), 1)
        self.assertTrue(results[0].success)
        self.assertIsInstance(results[1], SubmissionInProgressError)
        self.assertFalse(wizard.is_submitting)

    async def test_rejected_delivery_releases_submission(self):
        await self.reach_delivery()
        with self.assertRaises(StepValidationError):
            await self.wizard.submit_order(dict(DELIVERY, payment=""), today=TODAY)

        self.assertFalse(self.wizard.is_submitting)
        result = await self.wizard.submit_order(DELIVERY, today=TODAY)
        self.assertTrue(result.success)

    async def test_delivery_draft_restored(self):
        await self.reach_delivery()
        await self.wizard.update_delivery_draft({"deliveryDate": date(2026, 10, 25)})
        await self.wizard.update_delivery_draft({"urgency": "priority", "payment": "advance"})
        await self.wizard.update_delivery_draft({"advanceAmount": 400})

        resumed = self.make_wizard()
        self.assertTrue(await resumed.restore())

        self.assertEqual(resumed.step, WizardStep.DELIVERY_PAYMENT)
        self.assertEqual(resumed.order.delivery_draft, {
            "deliveryDate": "2026-10-25",
            "urgency": "priority",
            "payment": "advance",
            "advanceAmount": 400,
        })

        result = await resumed.submit_order(today=TODAY)
        self.assertTrue(result.success)
        self.assertEqual(resumed.order.delivery.advance_amount, 400)

    async def test_delivery_draft_only_at_delivery_step(self):
        await self.wizard.submit_customer_info(CUSTOMER)
        with self.assertRaises(WizardStateError):
            await self.wizard.update_delivery_draft({"urgency": "express"})

        await self.add_kurti()
        await self.wizard.continue_to_delivery()
        with self.assertRaises(ValueError):
            await self.wizard.update_delivery_draft({"tip": 50})
        self.assertEqual(self.wizard.order.delivery_draft, {})

    async def test_empty_garment_echo_keeps_local_garments(self):
        service = EmptyEchoOrderService()
        wizard = self.make_wizard(service=service)
        await self.reach_delivery(wizard)

        result = await wizard.submit_order(DELIVERY, today=TODAY)

        self.assertTrue(result.success)
        self.assertEqual(wizard.order.order_id, "ORD-1001")
        self.assertEqual(len(wizard.order.garments), 1)
        self.assertEqual(wizard.order.total_amount, 1150)

        resumed = self.make_wizard(service=service)
        self.assertTrue(await resumed.restore())
        self.assertEqual(resumed.step, WizardStep.CONFIRMATION)
        self.assertEqual(len(resumed.order.garments), 1)


if __name__ == '__main__':
    unittest.main()
