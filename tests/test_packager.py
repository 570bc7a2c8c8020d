import base64
import json
import unittest
from datetime import datetime, timezone

from tailor_intake.core.orders.attachments import (
    EmbeddedAttachment,
    RemoteAttachment,
    UnsentAttachment,
)
from tailor_intake.core.orders.models import (
    CustomerInfo,
    DesignRecord,
    Garment,
    OrderAggregate,
)
from tailor_intake.core.submission.packager import SubmissionPackager

PNG_BYTES = b"\x89PNG fake raster"
CANVAS_URL = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode("ascii")


def build_order() -> OrderAggregate:
    first = Garment(
        order_type="kurti_kameez",
        variant="straight",
        quantity=2,
        measurements={"chest": 36.0},
        designs=[
            DesignRecord(
                name="Design A",
                amount=500,
                reference_images=[
                    UnsentAttachment(data=b"ref-a-0", filename="a0.jpg"),
                    RemoteAttachment(url="https://cdn.example/a1.jpg", original_name="a1.jpg"),
                    UnsentAttachment(data=b"ref-a-2", filename="a2.jpg"),
                ],
                fabric_images=[UnsentAttachment(data=b"fab-a-0", filename="f0.png", content_type="image/png")],
            ),
            DesignRecord(
                name="Design B",
                amount=650,
                canvas_image=EmbeddedAttachment(data_url=CANVAS_URL),
            ),
        ],
        canvas_image=EmbeddedAttachment(data_url=CANVAS_URL),
    )
    second = Garment(
        order_type="blouse",
        variant="katori",
        quantity=1,
        designs=[
            DesignRecord(
                name="Design C",
                amount=300,
                reference_images=[UnsentAttachment(data=b"ref-c-0", filename="c0.jpg")],
            ),
        ],
    )
    return OrderAggregate(
        customer=CustomerInfo(
            full_name="Asha Rao",
            contact_number="9876543210",
            full_address="12 MG Road, Bengaluru",
            email="asha@example.com",
            same_for_whatsapp=True,
        ),
        garments=[first, second],
    )


class TestSubmissionPackager(unittest.TestCase):

    def setUp(self):
        self.packager = SubmissionPackager()
        self.order = build_order()

    def test_part_names_carry_indexes(self):
        payload = self.packager.package(self.order)
        names = [f.name for f in payload.files]

        self.assertEqual(names, [
            "canvasImage_0",
            "designReference_0_0_0",
            "designReference_0_0_2",
            "clothImage_0_0_0",
            "canvasImage_0_1",
            "designReference_1_0_0",
        ])
        self.assertEqual(payload.dropped, [])

    def test_garment_json_links_parts(self):
        payload = self.packager.package(self.order)
        garments = json.loads(payload.fields["garments"])

        design = garments[0]["designs"][0]
        self.assertEqual(design["designReferenceParts"], ["designReference_0_0_0", "designReference_0_0_2"])
        self.assertEqual(design["clothImageParts"], ["clothImage_0_0_0"])
        self.assertEqual(garments[0]["canvasImagePart"], "canvasImage_0")
        self.assertEqual(garments[0]["designs"][1]["canvasImagePart"], "canvasImage_0_1")
        self.assertEqual(garments[0]["key"], self.order.garments[0].key)
        self.assertEqual(garments[0]["totalAmount"], 1150)

    def test_remote_attachments_travel_inline(self):
        payload = self.packager.package(self.order)
        garments = json.loads(payload.fields["garments"])

        self.assertEqual(
            garments[0]["designs"][0]["designReference"],
            [{"url": "https://cdn.example/a1.jpg", "originalname": "a1.jpg"}],
        )
        self.assertNotIn("https://cdn.example/a1.jpg", [f.filename for f in payload.files])

    def test_embedded_canvas_is_decoded(self):
        payload = self.packager.package(self.order)
        canvas = next(f for f in payload.files if f.name == "canvasImage_0")

        self.assertEqual(canvas.data, PNG_BYTES)
        self.assertEqual(canvas.content_type, "image/png")

    def test_undecodable_attachment_dropped(self):
        self.order.garments[0].designs[1].canvas_image = EmbeddedAttachment(data_url="data:image/png;base64,@@@")

        payload = self.packager.package(self.order)
        garments = json.loads(payload.fields["garments"])

        self.assertEqual(payload.dropped, ["canvasImage_0_1"])
        self.assertNotIn("canvasImage_0_1", [f.name for f in payload.files])
        self.assertIsNone(garments[0]["designs"][1]["canvasImagePart"])
        self.assertEqual(len(payload.files), 5)

    def test_order_not_mutated(self):
        before = self.order.to_document()
        self.packager.package(self.order)
        self.assertEqual(self.order.to_document(), before)

    def test_customer_and_notification_fields(self):
        now = datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc)
        payload = self.packager.package(self.order, now=now)

        customer = json.loads(payload.fields["customer"])
        notification = json.loads(payload.fields["notification"])

        self.assertEqual(customer["fullName"], "Asha Rao")
        self.assertEqual(notification["customerName"], "Asha Rao")
        self.assertEqual(notification["whatsappNumber"], "9876543210")
        self.assertEqual(notification["timestamp"], "2026-10-18T09:30:00+00:00")
        self.assertIn("Total: ₹1450.00", notification["summary"])
        self.assertEqual(json.loads(payload.fields["delivery"]), {})

    def test_total_bytes(self):
        payload = self.packager.package(self.order)
        expected = len(b"ref-a-0") + len(b"ref-a-2") + len(b"fab-a-0") + len(b"ref-c-0") + 2 * len(PNG_BYTES)
        self.assertEqual(payload.total_bytes, expected)


if __name__ == '__main__':
    unittest.main()
