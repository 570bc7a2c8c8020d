"""
Validators for order data.
"""

import re
from datetime import date, datetime, timedelta
from typing import Optional, Tuple

from tailor_intake.config import settings
from tailor_intake.core.orders.models import (
    CustomerInfo,
    DeliveryPayment,
    PaymentMethod,
    Urgency,
    parse_amount,
    parse_date,
)


class NameValidator:
    """Validate customer full name."""

    MIN_LENGTH = 2

    @classmethod
    def validate(cls, name: str) -> Tuple[bool, Optional[str], Optional[str]]:
        """
        Validate full name.

        Returns:
            Tuple of (is_valid, normalized_name, error_message)
        """
        name = " ".join((name or "").split())

        if len(name) < cls.MIN_LENGTH:
            return False, None, "Full Name is required"

        return True, name, None


class PhoneValidator:
    """Validate and normalize phone numbers."""

    # Optional leading '+', then 10-15 digits once separators are removed
    PHONE_PATTERN = re.compile(r'^\+?\d{10,15}$')
    SEPARATORS = re.compile(r'[\s\-().]')

    @classmethod
    def validate(cls, phone: str) -> Tuple[bool, Optional[str], Optional[str]]:
        """
        Validate and normalize phone number.

        Returns:
            Tuple of (is_valid, normalized_phone, error_message)
        """
        phone = (phone or "").strip()

        if not phone:
            return False, None, "Contact number is required"

        normalized = cls.SEPARATORS.sub("", phone)

        if not cls.PHONE_PATTERN.match(normalized):
            return False, None, "Enter a valid contact number"

        return True, normalized, None


class EmailValidator:
    """Validate optional email address."""

    EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')

    @classmethod
    def validate(cls, email: Optional[str]) -> Tuple[bool, Optional[str], Optional[str]]:
        email = (email or "").strip()

        # Email is optional
        if not email:
            return True, None, None

        if not cls.EMAIL_PATTERN.match(email):
            return False, None, "Enter a valid email address"

        return True, email, None


class AddressValidator:
    """Validate customer address."""

    MIN_LENGTH = 10

    @classmethod
    def validate(cls, address: str) -> Tuple[bool, Optional[str], Optional[str]]:
        """
        Validate full address.

        Returns:
            Tuple of (is_valid, normalized_address, error_message)
        """
        address = (address or "").strip()

        if not address:
            return False, None, "Address is required"

        if len(address) < cls.MIN_LENGTH:
            return False, None, (
                "Address is too short. Please include house, street, area and city."
            )

        return True, address, None


class QuantityValidator:
    """Validate garment quantity."""

    MIN_QUANTITY = 1
    MAX_QUANTITY = 10

    @classmethod
    def validate(cls, quantity) -> Tuple[bool, Optional[int], Optional[str]]:
        """
        Validate quantity.

        Returns:
            Tuple of (is_valid, quantity, error_message)
        """
        if isinstance(quantity, bool):
            return False, None, "Enter a whole number"
        try:
            value = int(str(quantity).strip())
        except (TypeError, ValueError):
            return False, None, "Enter a whole number"

        if value < cls.MIN_QUANTITY:
            return False, None, f"Minimum {cls.MIN_QUANTITY}"

        if value > cls.MAX_QUANTITY:
            return False, None, f"Maximum {cls.MAX_QUANTITY}"

        return True, value, None


class AmountValidator:
    """Validate a design price."""

    @classmethod
    def validate(cls, amount) -> Tuple[bool, Optional[float], Optional[str]]:
        value = parse_amount(amount)

        if value is None:
            return False, None, "Enter the amount as a number, e.g. 500"

        if value <= 0:
            return False, None, "Amount must be greater than 0"

        return True, value, None


class MeasurementValidator:
    """Validate one measurement value."""

    MAX_VALUE = 500  # generous upper bound, covers centimetres

    @classmethod
    def validate(cls, value) -> Tuple[bool, Optional[float], Optional[str]]:
        parsed = parse_amount(value)

        if parsed is None:
            return False, None, "Enter the measurement as a number, e.g. 38.5"

        if parsed <= 0:
            return False, None, "Measurement must be greater than 0"

        if parsed > cls.MAX_VALUE:
            return False, None, f"Measurement must be at most {cls.MAX_VALUE}"

        return True, parsed, None


class DeliveryDateValidator:
    """Validate delivery dates."""

    MAX_DAYS_AHEAD = 365

    FORMATS = [
        "%d.%m.%Y",     # 23.10.2026
        "%d/%m/%Y",     # 23/10/2026
        "%d-%m-%Y",     # 23-10-2026
    ]

    @classmethod
    def parse(cls, value) -> Optional[date]:
        """Parse a date entry in ISO or day-first formats."""
        parsed = parse_date(value)
        if parsed is not None:
            return parsed
        if not isinstance(value, str):
            return None
        for fmt in cls.FORMATS:
            try:
                return datetime.strptime(value.strip(), fmt).date()
            except ValueError:
                continue
        return None

    @classmethod
    def validate(cls, value, today: Optional[date] = None) -> Tuple[bool, Optional[date], Optional[str]]:
        """
        Validate delivery date.

        Returns:
            Tuple of (is_valid, parsed_date, error_message)
        """
        today = today or date.today()

        if value is None or (isinstance(value, str) and not value.strip()):
            return False, None, "Select a delivery date"

        parsed = cls.parse(value)
        if parsed is None:
            return False, None, "Could not read the date. Use DD/MM/YYYY, e.g. 23/10/2026"

        min_date = today + timedelta(days=settings.min_delivery_days)
        if parsed < min_date:
            return False, None, (
                f"Delivery date must be at least {settings.min_delivery_days} days from today "
                f"(earliest: {min_date.strftime('%d/%m/%Y')})"
            )

        max_date = today + timedelta(days=cls.MAX_DAYS_AHEAD)
        if parsed > max_date:
            return False, None, "Delivery date is too far in the future"

        return True, parsed, None


class AdvanceAmountValidator:
    """Validate advance payment against the order total."""

    MAX_AMOUNT = 1_000_000

    @classmethod
    def validate(cls, amount, order_total: float) -> Tuple[bool, Optional[float], Optional[str]]:
        value = parse_amount(amount)

        if value is None:
            return False, None, "Enter advance amount"

        if value < 0:
            return False, None, "Advance amount cannot be negative"

        if value > cls.MAX_AMOUNT:
            return False, None, "Too high"

        if value > order_total:
            return False, None, f"Advance cannot exceed the order total (₹{order_total:.2f})"

        return True, value, None


def validate_customer_info(data: dict) -> Tuple[Optional[CustomerInfo], dict[str, str]]:
    """
    Validate step-1 form data.

    Returns:
        Tuple of (customer_info or None, field -> error message)
    """
    errors = {}

    ok, full_name, error = NameValidator.validate(data.get("fullName"))
    if not ok:
        errors["fullName"] = error

    ok, contact_number, error = PhoneValidator.validate(data.get("contactNumber"))
    if not ok:
        errors["contactNumber"] = error

    ok, email, error = EmailValidator.validate(data.get("email"))
    if not ok:
        errors["email"] = error

    ok, full_address, error = AddressValidator.validate(data.get("fullAddress"))
    if not ok:
        errors["fullAddress"] = error

    if errors:
        return None, errors

    return CustomerInfo(
        full_name=full_name,
        contact_number=contact_number,
        full_address=full_address,
        email=email,
        same_for_whatsapp=bool(data.get("sameForWhatsapp", False)),
    ), {}


def validate_delivery_payment(
    data: dict,
    order_total: float,
    today: Optional[date] = None,
) -> Tuple[Optional[DeliveryPayment], dict[str, str]]:
    """
    Validate step-3 form data. The advance amount is checked only when the
    payment method is 'advance'; otherwise it is reset to 0.

    Returns:
        Tuple of (delivery_payment or None, field -> error message)
    """
    errors = {}

    ok, delivery_date, error = DeliveryDateValidator.validate(data.get("deliveryDate"), today=today)
    if not ok:
        errors["deliveryDate"] = error

    urgency = Urgency.REGULAR
    if data.get("urgency"):
        try:
            urgency = Urgency(data["urgency"])
        except ValueError:
            errors["urgency"] = "Select regular, priority or express"

    payment = PaymentMethod.parse(data.get("payment"))
    if payment is None:
        errors["payment"] = "Select a payment preference"

    advance_amount = 0.0
    if payment == PaymentMethod.ADVANCE:
        ok, advance, error = AdvanceAmountValidator.validate(data.get("advanceAmount"), order_total)
        if ok:
            advance_amount = advance
        else:
            errors["advanceAmount"] = error

    if errors:
        return None, errors

    return DeliveryPayment(
        delivery_date=delivery_date,
        payment=payment,
        urgency=urgency,
        advance_amount=advance_amount,
        special_instructions=(data.get("specialInstructions") or "").strip(),
    ), {}
