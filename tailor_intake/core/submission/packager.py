"""
Submission packager: flattens an order into JSON fields plus binary parts.

Part names are positional and carry garment, design and file indexes:

* ``designReference_{g}_{d}_{f}`` - reference image f of design d of garment g
* ``clothImage_{g}_{d}_{f}``      - fabric image
* ``canvasImage_{g}``             - garment-level freehand drawing
* ``canvasImage_{g}_{d}``         - per-design freehand drawing

The garment JSON repeats each part name next to the owning garment/design key,
so the receiver does not have to rely on array order alone.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from tailor_intake.core.catalog import catalog
from tailor_intake.core.orders.attachments import (
    Attachment,
    FilePart,
    RemoteAttachment,
    to_file_part,
)
from tailor_intake.core.orders.models import Garment, OrderAggregate
from tailor_intake.exceptions import AttachmentDecodeError

logger = logging.getLogger(__name__)


@dataclass
class SubmissionPayload:
    """Everything one order submission transmits."""
    fields: dict[str, str] = field(default_factory=dict)  # part name -> JSON text
    files: list[FilePart] = field(default_factory=list)
    dropped: list[str] = field(default_factory=list)      # parts lost to decode errors

    @property
    def total_bytes(self) -> int:
        return sum(len(f.data) for f in self.files)


class SubmissionPackager:
    """Builds a SubmissionPayload. Reads the order, never mutates it."""

    def package(self, order: OrderAggregate, now: Optional[datetime] = None) -> SubmissionPayload:
        payload = SubmissionPayload()

        garments_json = [
            self._package_garment(g_index, garment, payload)
            for g_index, garment in enumerate(order.garments)
        ]

        payload.fields["customer"] = json.dumps(order.customer.to_dict() if order.customer else {})
        payload.fields["garments"] = json.dumps(garments_json)
        payload.fields["delivery"] = json.dumps(order.delivery.to_dict() if order.delivery else {})
        payload.fields["notification"] = json.dumps(self._notification(order, now))

        if payload.dropped:
            logger.warning(f"Packaged order without {len(payload.dropped)} undecodable attachment(s): {payload.dropped}")

        logger.debug(
            f"Packaged {len(order.garments)} garment(s), {len(payload.files)} file(s), "
            f"{payload.total_bytes} bytes"
        )
        return payload

    def _package_garment(self, g_index: int, garment: Garment, payload: SubmissionPayload) -> dict:
        garment_json = {
            "key": garment.key,
            "orderType": garment.order_type,
            "variant": garment.variant,
            "quantity": garment.quantity,
            "unit": garment.unit.value,
            "measurements": dict(garment.measurements),
            "totalAmount": garment.total_amount,
            "canvasImage": None,
            "canvasImagePart": None,
            "designs": [],
        }

        if garment.canvas_image:
            self._place(
                garment.canvas_image, f"canvasImage_{g_index}", f"canvas_{g_index}.png",
                payload, garment_json, "canvasImage", "canvasImagePart",
            )

        for d_index, design in enumerate(garment.designs):
            design_json = {
                "key": design.key,
                "name": design.name,
                "amount": design.amount,
                "designDescription": design.design_description,
                "canvasJson": design.canvas_json,
                "designReference": [],
                "designReferenceParts": [],
                "clothImages": [],
                "clothImageParts": [],
                "canvasImage": None,
                "canvasImagePart": None,
            }

            for f_index, attachment in enumerate(design.reference_images):
                name = f"designReference_{g_index}_{d_index}_{f_index}"
                self._append(attachment, name, f"{name}.jpg", payload, design_json, "designReference", "designReferenceParts")

            for f_index, attachment in enumerate(design.fabric_images):
                name = f"clothImage_{g_index}_{d_index}_{f_index}"
                self._append(attachment, name, f"{name}.jpg", payload, design_json, "clothImages", "clothImageParts")

            if design.canvas_image:
                name = f"canvasImage_{g_index}_{d_index}"
                self._place(
                    design.canvas_image, name, f"{name}.png",
                    payload, design_json, "canvasImage", "canvasImagePart",
                )

            garment_json["designs"].append(design_json)

        return garment_json

    def _resolve(self, attachment: Attachment, name: str, filename: str, payload: SubmissionPayload) -> Optional[FilePart]:
        try:
            return to_file_part(attachment, name, filename)
        except AttachmentDecodeError as e:
            logger.warning(f"Dropping attachment {name}: {e}")
            payload.dropped.append(name)
            return None

    def _append(self, attachment, name, filename, payload, target: dict, url_key: str, parts_key: str) -> None:
        if isinstance(attachment, RemoteAttachment):
            target[url_key].append({"url": attachment.url, "originalname": attachment.original_name})
            return
        part = self._resolve(attachment, name, filename, payload)
        if part is not None:
            payload.files.append(part)
            target[parts_key].append(name)

    def _place(self, attachment, name, filename, payload, target: dict, url_key: str, part_key: str) -> None:
        if isinstance(attachment, RemoteAttachment):
            target[url_key] = attachment.url
            return
        part = self._resolve(attachment, name, filename, payload)
        if part is not None:
            payload.files.append(part)
            target[part_key] = name

    def _notification(self, order: OrderAggregate, now: Optional[datetime]) -> dict:
        """Fields the customer notification template needs."""
        customer = order.customer
        now = now or datetime.now(timezone.utc)
        return {
            "customerName": customer.full_name if customer else "",
            "phone": customer.contact_number if customer else "",
            "whatsappNumber": customer.contact_number if customer and customer.same_for_whatsapp else None,
            "email": customer.email if customer else None,
            "timestamp": now.isoformat(),
            "summary": order.format_items_summary(catalog.category_label)
            + f"\nTotal: ₹{order.total_amount:.2f}",
        }


# Global packager instance
packager = SubmissionPackager()
