"""
Order models for the tailoring order-intake workflow.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum, IntEnum
from typing import Optional

from tailor_intake.core.orders.attachments import (
    Attachment,
    attachment_from_dict,
    attachment_to_dict,
    attachments_from_list,
)


class WizardStep(IntEnum):
    """Phases of the order wizard."""
    CUSTOMER_INFO = 1
    ORDER_DETAILS = 2
    DELIVERY_PAYMENT = 3
    CONFIRMATION = 4

    @property
    def label(self) -> str:
        return STEP_LABELS[self]


STEP_LABELS = {
    WizardStep.CUSTOMER_INFO: "Customer Info",
    WizardStep.ORDER_DETAILS: "Order Details & Measurements",
    WizardStep.DELIVERY_PAYMENT: "Delivery & Payment",
    WizardStep.CONFIRMATION: "Order Confirmation",
}


class MeasurementUnit(Enum):
    """Unit shared by every measurement of one garment."""
    INCH = "in"
    CM = "cm"


class Urgency(Enum):
    """Delivery urgency."""
    REGULAR = "regular"
    PRIORITY = "priority"
    EXPRESS = "express"


class PaymentMethod(Enum):
    """Payment preference."""
    COD = "cod"            # Cash on delivery
    UPI = "upi"            # Digital payment
    BANK = "bank"          # Bank transfer
    ADVANCE = "advance"    # Part paid up front

    @classmethod
    def parse(cls, value) -> Optional["PaymentMethod"]:
        """Parse a payment value, accepting 'cash' and 'digital' aliases."""
        if isinstance(value, PaymentMethod):
            return value
        if not value:
            return None
        value = str(value).strip().lower()
        value = PAYMENT_ALIASES.get(value, value)
        try:
            return cls(value)
        except ValueError:
            return None

    @property
    def label(self) -> str:
        return PAYMENT_LABELS[self]


PAYMENT_ALIASES = {"cash": "cod", "digital": "upi"}

PAYMENT_LABELS = {
    PaymentMethod.COD: "Cash on Delivery",
    PaymentMethod.UPI: "UPI / Digital",
    PaymentMethod.BANK: "Bank Transfer",
    PaymentMethod.ADVANCE: "Advance Payment",
}


def new_key() -> str:
    """Short stable identifier for garments and designs."""
    return uuid.uuid4().hex[:8]


def parse_amount(value) -> Optional[float]:
    """Parse a price entry; blanks and non-numbers yield None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip().replace(",", "")
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def parse_date(value) -> Optional[date]:
    """Parse a date from a date, datetime or ISO string. Invalid input yields None."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


@dataclass
class CustomerInfo:
    """Customer contact details."""
    full_name: str
    contact_number: str
    full_address: str
    email: Optional[str] = None
    same_for_whatsapp: bool = False

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "fullName": self.full_name,
            "contactNumber": self.contact_number,
            "sameForWhatsapp": self.same_for_whatsapp,
            "email": self.email or "",
            "fullAddress": self.full_address,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CustomerInfo":
        return cls(
            full_name=data.get("fullName") or "",
            contact_number=data.get("contactNumber") or "",
            full_address=data.get("fullAddress") or "",
            email=data.get("email") or None,
            same_for_whatsapp=bool(data.get("sameForWhatsapp", False)),
        )


@dataclass
class DesignRecord:
    """One unit of a garment: its name, price and visual references."""
    name: str = ""
    amount: Optional[float] = None
    design_description: str = ""
    reference_images: list[Attachment] = field(default_factory=list)
    fabric_images: list[Attachment] = field(default_factory=list)
    canvas_image: Optional[Attachment] = None
    canvas_json: Optional[str] = None
    key: str = field(default_factory=new_key)

    @property
    def is_complete(self) -> bool:
        """Has a non-blank name and a positive amount."""
        return bool(self.name and self.name.strip()) and self.amount is not None and self.amount > 0

    def copy(self) -> "DesignRecord":
        """Copy with independent attachment lists."""
        return DesignRecord(
            name=self.name,
            amount=self.amount,
            design_description=self.design_description,
            reference_images=list(self.reference_images),
            fabric_images=list(self.fabric_images),
            canvas_image=self.canvas_image,
            canvas_json=self.canvas_json,
            key=self.key,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary (attachments fully encoded)."""
        return {
            "key": self.key,
            "name": self.name,
            "amount": self.amount,
            "designDescription": self.design_description,
            "designReference": [attachment_to_dict(a) for a in self.reference_images],
            "clothImages": [attachment_to_dict(a) for a in self.fabric_images],
            "canvasImage": attachment_to_dict(self.canvas_image) if self.canvas_image else None,
            "canvasJson": self.canvas_json,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DesignRecord":
        return cls(
            name=data.get("name") or "",
            amount=parse_amount(data.get("amount")),
            design_description=data.get("designDescription") or "",
            reference_images=attachments_from_list(
                data.get("designReference") or data.get("designReferenceFiles")
            ),
            fabric_images=attachments_from_list(
                data.get("clothImages") or data.get("clothImageFiles")
            ),
            canvas_image=attachment_from_dict(data.get("canvasImage") or data.get("canvasImageFile")),
            canvas_json=data.get("canvasJson"),
            key=data.get("key") or new_key(),
        )


@dataclass
class Garment:
    """A garment line: category, variant, measurements and one design per unit."""
    order_type: str
    variant: Optional[str]
    quantity: int
    unit: MeasurementUnit = MeasurementUnit.INCH
    measurements: dict[str, float] = field(default_factory=dict)
    designs: list[DesignRecord] = field(default_factory=list)
    canvas_image: Optional[Attachment] = None
    key: str = field(default_factory=new_key)

    @property
    def total_amount(self) -> float:
        """Sum of design amounts."""
        return sum(d.amount or 0 for d in self.designs)

    def copy(self) -> "Garment":
        return Garment(
            order_type=self.order_type,
            variant=self.variant,
            quantity=self.quantity,
            unit=self.unit,
            measurements=dict(self.measurements),
            designs=[d.copy() for d in self.designs],
            canvas_image=self.canvas_image,
            key=self.key,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "key": self.key,
            "orderType": self.order_type,
            "variant": self.variant,
            "quantity": self.quantity,
            "unit": self.unit.value,
            "measurements": dict(self.measurements),
            "designs": [d.to_dict() for d in self.designs],
            "canvasImage": attachment_to_dict(self.canvas_image) if self.canvas_image else None,
            "totalAmount": self.total_amount,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Garment":
        measurements = {}
        for k, v in (data.get("measurements") or {}).items():
            value = parse_amount(v)
            if value is not None:
                measurements[k] = value

        try:
            unit = MeasurementUnit(data.get("unit") or "in")
        except ValueError:
            unit = MeasurementUnit.INCH

        designs = [DesignRecord.from_dict(d) for d in data.get("designs") or [] if isinstance(d, dict)]

        try:
            quantity = int(data.get("quantity") or len(designs) or 1)
        except (TypeError, ValueError):
            quantity = len(designs) or 1

        return cls(
            order_type=data.get("orderType") or "",
            variant=data.get("variant") or None,
            quantity=quantity,
            unit=unit,
            measurements=measurements,
            designs=designs,
            canvas_image=attachment_from_dict(data.get("canvasImage") or data.get("canvasImageFile")),
            key=data.get("key") or new_key(),
        )


@dataclass
class DeliveryPayment:
    """Delivery date, urgency and payment preference."""
    delivery_date: Optional[date] = None
    payment: Optional[PaymentMethod] = None
    urgency: Urgency = Urgency.REGULAR
    advance_amount: float = 0.0
    special_instructions: str = ""

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "deliveryDate": self.delivery_date.isoformat() if self.delivery_date else None,
            "urgency": self.urgency.value,
            "payment": self.payment.value if self.payment else None,
            "advanceAmount": self.advance_amount,
            "specialInstructions": self.special_instructions,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DeliveryPayment":
        try:
            urgency = Urgency(data.get("urgency") or "regular")
        except ValueError:
            urgency = Urgency.REGULAR
        payment = PaymentMethod.parse(data.get("payment"))
        advance = parse_amount(data.get("advanceAmount")) if payment == PaymentMethod.ADVANCE else None
        return cls(
            delivery_date=parse_date(data.get("deliveryDate")),
            payment=payment,
            urgency=urgency,
            advance_amount=advance or 0.0,
            special_instructions=data.get("specialInstructions") or "",
        )


@dataclass
class OrderAggregate:
    """The whole order as accumulated by the wizard."""
    customer: Optional[CustomerInfo] = None
    garments: list[Garment] = field(default_factory=list)
    delivery: Optional[DeliveryPayment] = None
    delivery_draft: dict = field(default_factory=dict)  # step-3 fields as entered

    # Workflow metadata
    step: WizardStep = WizardStep.CUSTOMER_INFO
    editing_index: Optional[int] = None
    show_garment_form: bool = True

    # Set once the order service accepted the order
    order_id: Optional[str] = None
    order_date: Optional[str] = None
    submitted_order: Optional[dict] = None

    @property
    def is_submitted(self) -> bool:
        return self.order_id is not None

    @property
    def total_amount(self) -> float:
        """Total order price."""
        return sum(g.total_amount for g in self.garments)

    @property
    def total_designs(self) -> int:
        return sum(len(g.designs) for g in self.garments)

    @property
    def balance_due(self) -> float:
        """Amount left to pay after the advance."""
        advance = self.delivery.advance_amount if self.delivery else 0.0
        return self.total_amount - advance

    def add_garment(self, garment: Garment) -> None:
        """Append a garment."""
        self.garments.append(garment)

    def replace_garment(self, index: int, garment: Garment) -> bool:
        """Replace garment by index."""
        if 0 <= index < len(self.garments):
            self.garments[index] = garment
            return True
        return False

    def remove_garment(self, index: int) -> bool:
        """Remove garment by index."""
        if 0 <= index < len(self.garments):
            self.garments.pop(index)
            return True
        return False

    def to_document(self) -> dict:
        """Flat order document in the shape the order service persists."""
        document = {}
        if self.customer:
            document.update(self.customer.to_dict())
        if self.delivery:
            document.update(self.delivery.to_dict())
        document["garments"] = [g.to_dict() for g in self.garments]
        document["totalAmount"] = self.total_amount
        if self.order_id:
            document["oid"] = self.order_id
            document["orderDate"] = self.order_date
        return document

    def apply_submission(self, order_id: str, order_date: Optional[str], document: Optional[dict]) -> None:
        """
        Record an accepted submission. The echoed document is authoritative:
        customer, garments and delivery are re-read from it where present.
        """
        self.order_id = order_id
        self.order_date = order_date

        if not document:
            self.submitted_order = self.to_document()
            return

        self.submitted_order = document

        if any(document.get(k) for k in ("fullName", "contactNumber", "email", "fullAddress")):
            previous = self.customer
            echoed = CustomerInfo.from_dict(document)
            self.customer = CustomerInfo(
                full_name=echoed.full_name or (previous.full_name if previous else ""),
                contact_number=echoed.contact_number or (previous.contact_number if previous else ""),
                full_address=echoed.full_address or (previous.full_address if previous else ""),
                email=echoed.email or (previous.email if previous else None),
                same_for_whatsapp=previous.same_for_whatsapp if previous else False,
            )

        if isinstance(document.get("garments"), list):
            echoed_garments = [Garment.from_dict(g) for g in document["garments"] if isinstance(g, dict)]
            if echoed_garments:
                self.garments = echoed_garments

        if any(document.get(k) for k in ("deliveryDate", "urgency", "payment", "advanceAmount", "specialInstructions")):
            self.delivery = DeliveryPayment.from_dict(document)
            self.delivery_draft = self.delivery.to_dict()

    def format_items_summary(self, category_label=None) -> str:
        """Format garments as plain text summary."""
        lines = []
        for i, garment in enumerate(self.garments, 1):
            name = category_label(garment.order_type) if category_label else garment.order_type
            variant = f" ({garment.variant})" if garment.variant else ""
            lines.append(
                f"{i}. {name}{variant} x{garment.quantity} — ₹{garment.total_amount:.2f}"
            )
            for design in garment.designs:
                amount = f"₹{design.amount:.2f}" if design.amount is not None else "—"
                lines.append(f"   • {design.name or 'Untitled'}: {amount}")
        return "\n".join(lines)

    def format_full_summary(self, category_label=None) -> str:
        """Format complete order summary for confirmation."""
        lines = []
        if self.order_id:
            lines.append(f"🧾 <b>Order {self.order_id}</b>")
            if self.order_date:
                lines.append(f"📅 {self.order_date}")
            lines.append("")

        lines.append("<b>Garments:</b>")
        lines.append(self.format_items_summary(category_label) or "—")
        lines.append("")
        lines.append(f"<b>Total:</b> ₹{self.total_amount:.2f}")

        if self.delivery:
            lines.append("")
            if self.delivery.delivery_date:
                lines.append(f"🚚 Delivery: {self.delivery.delivery_date.strftime('%d %B %Y')}")
            lines.append(f"⏱ Urgency: {self.delivery.urgency.value.capitalize()}")
            if self.delivery.payment:
                lines.append(f"💳 Payment: {self.delivery.payment.label}")
                if self.delivery.payment == PaymentMethod.ADVANCE:
                    lines.append(f"   Advance: ₹{self.delivery.advance_amount:.2f}")
                    lines.append(f"   Balance due: ₹{self.balance_due:.2f}")
            if self.delivery.special_instructions:
                lines.append(f"💬 {self.delivery.special_instructions}")

        if self.customer:
            lines.append("")
            lines.append("<b>Customer:</b>")
            lines.append(f"👤 {self.customer.full_name}")
            lines.append(f"📞 {self.customer.contact_number}")
            if self.customer.email:
                lines.append(f"📧 {self.customer.email}")
            lines.append(f"📍 {self.customer.full_address}")

        return "\n".join(lines)
