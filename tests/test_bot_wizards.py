import unittest
from collections import OrderedDict
from unittest.mock import patch

from tailor_intake.bot.handlers import order as handlers
from tailor_intake.core.orders.models import WizardStep
from tailor_intake.core.orders.snapshot import InMemorySnapshotRepository


class TestWizardCache(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.repo = InMemorySnapshotRepository()
        patchers = [
            patch.object(handlers, "get_repository", return_value=self.repo),
            patch.object(handlers, "_wizards", OrderedDict()),
            patch.object(handlers, "MAX_CACHED_WIZARDS", 2),
        ]
        for patcher in patchers:
            patcher.start()
            self.addCleanup(patcher.stop)

    async def test_same_user_gets_same_wizard(self):
        first = await handlers.get_wizard(1)
        self.assertIs(await handlers.get_wizard(1), first)
        self.assertEqual(first.slot.rsplit(":", 1)[-1], "1")

    async def test_cache_is_bounded(self):
        for user_id in range(1, 6):
            await handlers.get_wizard(user_id)

        self.assertEqual(list(handlers._wizards), [4, 5])

    async def test_recently_used_wizard_kept(self):
        await handlers.get_wizard(1)
        await handlers.get_wizard(2)
        await handlers.get_wizard(1)
        await handlers.get_wizard(3)

        self.assertEqual(list(handlers._wizards), [1, 3])

    async def test_submitting_wizard_not_evicted(self):
        busy = await handlers.get_wizard(1)
        busy._submitting = True
        await handlers.get_wizard(2)
        await handlers.get_wizard(3)

        self.assertIn(1, handlers._wizards)
        self.assertEqual(len(handlers._wizards), 2)

    async def test_evicted_wizard_restored_from_snapshot(self):
        wizard = await handlers.get_wizard(1)
        await wizard.submit_customer_info({
            "fullName": "Asha Rao",
            "contactNumber": "9876543210",
            "fullAddress": "12 MG Road, Bengaluru 560001",
        })
        await handlers.get_wizard(2)
        await handlers.get_wizard(3)
        self.assertNotIn(1, handlers._wizards)

        restored = await handlers.get_wizard(1)

        self.assertIsNot(restored, wizard)
        self.assertEqual(restored.step, WizardStep.ORDER_DETAILS)
        self.assertEqual(restored.order.customer.full_name, "Asha Rao")

    async def test_forget_wizard(self):
        wizard = await handlers.get_wizard(1)
        await wizard.start_new_order()
        handlers.forget_wizard(1)
        handlers.forget_wizard(42)

        self.assertNotIn(1, handlers._wizards)
        fresh = await handlers.get_wizard(1)
        self.assertIsNot(fresh, wizard)
        self.assertEqual(fresh.step, WizardStep.CUSTOMER_INFO)


if __name__ == '__main__':
    unittest.main()
