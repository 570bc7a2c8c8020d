"""
Orders module for the tailoring order-intake workflow.
Holds the order model, the garment builder, validation, snapshots and export.
"""

from tailor_intake.core.orders.models import (
    OrderAggregate,
    Garment,
    DesignRecord,
    CustomerInfo,
    DeliveryPayment,
    WizardStep,
    MeasurementUnit,
    Urgency,
    PaymentMethod,
)
from tailor_intake.core.orders.attachments import (
    Attachment,
    UnsentAttachment,
    EmbeddedAttachment,
    RemoteAttachment,
)
from tailor_intake.core.orders.states import OrderStates
from tailor_intake.core.orders.validators import (
    NameValidator,
    PhoneValidator,
    EmailValidator,
    AddressValidator,
    QuantityValidator,
    AmountValidator,
    MeasurementValidator,
    DeliveryDateValidator,
    AdvanceAmountValidator,
    validate_customer_info,
    validate_delivery_payment,
)
from tailor_intake.core.orders.builder import GarmentBuilder
from tailor_intake.core.orders.snapshot import (
    SnapshotRepository,
    InMemorySnapshotRepository,
    dump_snapshot,
    restore_snapshot,
)
from tailor_intake.core.orders.complexity import OrderComplexity, analyze_order_complexity
from tailor_intake.core.orders.exporter import order_exporter

__all__ = [
    # Models
    "OrderAggregate",
    "Garment",
    "DesignRecord",
    "CustomerInfo",
    "DeliveryPayment",
    "WizardStep",
    "MeasurementUnit",
    "Urgency",
    "PaymentMethod",
    # Attachments
    "Attachment",
    "UnsentAttachment",
    "EmbeddedAttachment",
    "RemoteAttachment",
    # States
    "OrderStates",
    # Validators
    "NameValidator",
    "PhoneValidator",
    "EmailValidator",
    "AddressValidator",
    "QuantityValidator",
    "AmountValidator",
    "MeasurementValidator",
    "DeliveryDateValidator",
    "AdvanceAmountValidator",
    "validate_customer_info",
    "validate_delivery_payment",
    # Builder
    "GarmentBuilder",
    # Snapshots
    "SnapshotRepository",
    "InMemorySnapshotRepository",
    "dump_snapshot",
    "restore_snapshot",
    # Complexity
    "OrderComplexity",
    "analyze_order_complexity",
    # Exporter
    "order_exporter",
]
