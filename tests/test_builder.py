import unittest

from tailor_intake.core.orders.attachments import RemoteAttachment, UnsentAttachment
from tailor_intake.core.orders.builder import GarmentBuilder
from tailor_intake.core.orders.models import MeasurementUnit, OrderAggregate
from tailor_intake.exceptions import (
    AttachmentLimitError,
    CommitRule,
    GarmentCommitError,
    StepValidationError,
)


def image(n: int) -> UnsentAttachment:
    return UnsentAttachment(data=bytes([n]) * 10, filename=f"ref{n}.jpg")


class TestGarmentBuilder(unittest.TestCase):

    def setUp(self):
        self.builder = GarmentBuilder()
        self.builder.select_category("kurti_kameez")
        self.builder.select_variant("straight")

    def fill_designs(self):
        for i, design in enumerate(self.builder.designs):
            self.builder.update_design(i, name=f"Design {i + 1}", amount=100 * (i + 1))

    def test_starts_with_one_blank_design(self):
        builder = GarmentBuilder()
        self.assertEqual(builder.quantity, 1)
        self.assertEqual(len(builder.designs), 1)

    def test_quantity_increase_pads_with_blank_designs(self):
        self.builder.update_design(0, name="Design A", amount=500)
        self.builder.set_quantity(3)
        self.assertEqual(len(self.builder.designs), 3)
        self.assertEqual(self.builder.designs[0].name, "Design A")
        self.assertEqual(self.builder.designs[1].name, "")
        self.assertIsNone(self.builder.designs[2].amount)

    def test_quantity_decrease_truncates_and_preserves_prefix(self):
        """Records below the new quantity are untouched."""
        self.builder.set_quantity(4)
        self.fill_designs()
        self.builder.add_reference_image(1, image(1))
        before = [d.to_dict() for d in self.builder.designs[:2]]

        self.builder.set_quantity(2)

        self.assertEqual(len(self.builder.designs), 2)
        self.assertEqual([d.to_dict() for d in self.builder.designs], before)

    def test_designs_track_quantity_after_every_change(self):
        for n in (5, 2, 10, 1, 7):
            self.builder.set_quantity(n)
            self.assertEqual(len(self.builder.designs), n)

    def test_invalid_quantity_rejected(self):
        with self.assertRaises(StepValidationError) as ctx:
            self.builder.set_quantity(11)
        self.assertIn("quantity", ctx.exception.errors)
        self.assertEqual(len(self.builder.designs), 1)

    def test_sixth_reference_image_rejected(self):
        for n in range(5):
            self.builder.add_reference_image(0, image(n))
        with self.assertRaises(AttachmentLimitError) as ctx:
            self.builder.add_reference_image(0, image(6))
        self.assertEqual(ctx.exception.rule, CommitRule.FILE_LIMIT)
        self.assertEqual(len(self.builder.designs[0].reference_images), 5)

    def test_fourth_fabric_image_rejected(self):
        for n in range(3):
            self.builder.add_fabric_image(0, image(n))
        with self.assertRaises(AttachmentLimitError):
            self.builder.add_fabric_image(0, image(4))
        self.assertEqual(len(self.builder.designs[0].fabric_images), 3)

    def test_update_design_rejects_oversized_list_whole(self):
        self.builder.update_design(0, reference_images=[image(1)])
        with self.assertRaises(AttachmentLimitError):
            self.builder.update_design(0, name="X", reference_images=[image(n) for n in range(6)])
        self.assertEqual(len(self.builder.designs[0].reference_images), 1)
        self.assertEqual(self.builder.designs[0].name, "")

    def test_update_design_merges_partial(self):
        self.builder.update_design(0, name="Design A")
        self.builder.update_design(0, amount="650")
        design = self.builder.designs[0]
        self.assertEqual(design.name, "Design A")
        self.assertEqual(design.amount, 650.0)

    def test_update_design_unknown_field(self):
        with self.assertRaises(ValueError):
            self.builder.update_design(0, colour="red")

    def test_remove_images(self):
        self.builder.add_reference_image(0, image(1))
        self.builder.add_reference_image(0, image(2))
        self.assertTrue(self.builder.remove_reference_image(0, 0))
        self.assertEqual(self.builder.designs[0].reference_images, [image(2)])
        self.assertFalse(self.builder.remove_fabric_image(0, 0))

    def test_set_measurement_validates(self):
        self.assertEqual(self.builder.set_measurement("chest", "36"), 36.0)
        with self.assertRaises(StepValidationError):
            self.builder.set_measurement("chest", "abc")
        with self.assertRaises(StepValidationError):
            self.builder.set_measurement("inseam", "30")

    def test_select_variant_keeps_shared_measurements(self):
        self.builder.set_measurement("chest", 36)
        self.builder.set_measurement("bicep", 11)
        self.builder.select_variant("a_line")
        self.fill_designs()

        garment = self.builder.build()

        self.assertEqual(garment.measurements, {"chest": 36.0})

    def test_select_category_resets_variant(self):
        self.builder.select_category("blouse")
        self.assertIsNone(self.builder.variant)
        self.assertEqual(self.builder.measurement_fields, [])

    def test_commit_requires_category(self):
        builder = GarmentBuilder()
        builder.update_design(0, name="A", amount=1)
        with self.assertRaises(GarmentCommitError) as ctx:
            builder.commit(OrderAggregate())
        self.assertEqual(ctx.exception.rule, CommitRule.MISSING_CATEGORY)

    def test_commit_requires_variant(self):
        self.builder.select_category("blouse")
        self.fill_designs()
        with self.assertRaises(GarmentCommitError) as ctx:
            self.builder.commit(OrderAggregate())
        self.assertEqual(ctx.exception.rule, CommitRule.MISSING_VARIANT)

    def test_failed_commit_leaves_state_unchanged(self):
        order = OrderAggregate()
        self.builder.set_quantity(2)
        self.builder.update_design(0, name="Design A", amount=500)
        self.builder.update_design(1, name="Design B", amount=0)
        before = self.builder.to_dict()

        with self.assertRaises(GarmentCommitError) as ctx:
            self.builder.commit(order)

        self.assertEqual(ctx.exception.rule, CommitRule.INCOMPLETE_DESIGN)
        self.assertEqual(ctx.exception.design_index, 1)
        self.assertEqual(self.builder.to_dict(), before)
        self.assertEqual(order.garments, [])

        # Retry after fixing the offending field
        self.builder.update_design(1, amount=650)
        garment = self.builder.commit(order)
        self.assertEqual(garment.total_amount, 1150)
        self.assertEqual(len(order.garments), 1)

    def test_blank_name_rejected(self):
        self.builder.update_design(0, name="   ", amount=100)
        with self.assertRaises(GarmentCommitError) as ctx:
            self.builder.build()
        self.assertIn("name and a valid amount", str(ctx.exception))

    def test_commit_appends_and_resets(self):
        order = OrderAggregate()
        self.builder.set_unit("cm")
        self.builder.set_measurement("waist", 76)
        self.fill_designs()

        garment = self.builder.commit(order)

        self.assertEqual(order.garments, [garment])
        self.assertEqual(garment.unit, MeasurementUnit.CM)
        self.assertEqual(garment.order_type, "kurti_kameez")
        self.assertEqual(self.builder.order_type, "")
        self.assertEqual(len(self.builder.designs), 1)

    def test_load_for_edit_then_commit_replaces(self):
        order = OrderAggregate()
        self.fill_designs()
        first = self.builder.commit(order)
        self.builder.select_category("blouse")
        self.builder.select_variant("katori")
        self.fill_designs()
        self.builder.commit(order)

        self.builder.load_for_edit(order.garments[0], 0)
        self.builder.set_quantity(2)
        self.builder.update_design(1, name="Extra", amount=300)
        edited = self.builder.commit(order)

        self.assertEqual(len(order.garments), 2)
        self.assertIs(order.garments[0], edited)
        self.assertEqual(edited.key, first.key)
        self.assertEqual(edited.quantity, 2)
        self.assertEqual(order.garments[1].order_type, "blouse")

    def test_load_for_edit_copies_designs(self):
        order = OrderAggregate()
        self.fill_designs()
        self.builder.commit(order)

        self.builder.load_for_edit(order.garments[0], 0)
        self.builder.update_design(0, name="Changed")

        self.assertEqual(order.garments[0].designs[0].name, "Design 1")

    def test_remote_images_survive_edit(self):
        order = OrderAggregate()
        self.fill_designs()
        self.builder.add_reference_image(0, RemoteAttachment(url="https://cdn.example/ref.jpg"))
        self.builder.commit(order)

        self.builder.load_for_edit(order.garments[0], 0)

        self.assertEqual(
            self.builder.designs[0].reference_images,
            [RemoteAttachment(url="https://cdn.example/ref.jpg")],
        )

    def test_restore_round_trip(self):
        self.builder.set_quantity(2)
        self.builder.set_measurement("chest", 36)
        self.builder.update_design(0, name="Design A", amount=500)
        self.builder.add_reference_image(0, image(3))

        restored = GarmentBuilder()
        restored.restore(self.builder.to_dict())

        self.assertEqual(restored.to_dict(), self.builder.to_dict())


if __name__ == '__main__':
    unittest.main()
