import unittest
from unittest.mock import patch

from tailor_intake.core.orders.attachments import UnsentAttachment
from tailor_intake.core.orders.complexity import MB, analyze_order_complexity
from tailor_intake.core.orders.models import DesignRecord, Garment, OrderAggregate


def garment(designs: int = 1, images_per_design: int = 0, image_size: int = 10) -> Garment:
    return Garment(
        order_type="shirt",
        variant="formal",
        quantity=designs,
        designs=[
            DesignRecord(
                name=f"Design {i}",
                amount=100,
                reference_images=[
                    UnsentAttachment(data=b"x" * image_size, filename=f"{i}_{n}.jpg")
                    for n in range(images_per_design)
                ],
            )
            for i in range(designs)
        ],
    )


class TestOrderComplexity(unittest.TestCase):

    def test_small_order(self):
        order = OrderAggregate(garments=[garment(designs=2, images_per_design=3)])
        result = analyze_order_complexity(order)

        self.assertEqual(result.garments, 1)
        self.assertEqual(result.designs, 2)
        self.assertEqual(result.files, 6)
        self.assertEqual(result.total_bytes, 60)
        # 30 + 10 + 2*5 + ceil(6/5)*10
        self.assertEqual(result.estimated_seconds, 70)
        self.assertTrue(result.can_submit)
        self.assertEqual(result.warnings, [])

    def test_many_garments_warns(self):
        order = OrderAggregate(garments=[garment() for _ in range(6)])
        result = analyze_order_complexity(order)

        self.assertTrue(result.can_submit)
        self.assertEqual(len(result.warnings), 1)

    def test_too_many_garments_blocks(self):
        order = OrderAggregate(garments=[garment() for _ in range(9)])
        result = analyze_order_complexity(order)

        self.assertFalse(result.can_submit)
        self.assertIn("Maximum is 8", result.errors[0])

    def test_attachment_size_limit(self):
        order = OrderAggregate(garments=[garment(designs=1, images_per_design=3)])
        with patch("tailor_intake.core.orders.complexity.byte_size", return_value=35 * MB):
            result = analyze_order_complexity(order)

        self.assertFalse(result.can_submit)
        self.assertGreater(result.total_mb, 100)


if __name__ == '__main__':
    unittest.main()
