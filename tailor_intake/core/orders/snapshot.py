"""
Wizard snapshot: the full in-progress order as one JSON-compatible dict,
plus the repositories that keep it between sessions.
"""

import copy
import logging
from abc import ABC, abstractmethod
from typing import Optional

from tailor_intake.core.orders.builder import GarmentBuilder
from tailor_intake.core.orders.models import (
    CustomerInfo,
    DeliveryPayment,
    Garment,
    OrderAggregate,
    WizardStep,
)

logger = logging.getLogger(__name__)


def dump_snapshot(order: OrderAggregate, builder: GarmentBuilder) -> dict:
    """Serialize order + builder selections. Dates become ISO strings."""
    snapshot = {
        "step": int(order.step),
        "customerData": order.customer.to_dict() if order.customer else None,
        "garments": [g.to_dict() for g in order.garments],
        "editingIndex": order.editing_index,
        "showGarmentForm": order.show_garment_form,
        "orderOid": order.order_id,
        "orderDate": order.order_date,
        "submittedOrder": order.submitted_order,
        "deliveryData": dict(order.delivery_draft) or (order.delivery.to_dict() if order.delivery else None),
    }
    # designs, unit, garmentType, quantity, selectedVariant, measurements ...
    snapshot.update(builder.to_dict())
    return snapshot


def restore_snapshot(data: dict, builder: GarmentBuilder) -> OrderAggregate:
    """
    Rebuild an order from a snapshot and rehydrate the builder in place.
    Unparseable dates are treated as unset. Raises ValueError if the record
    is not a snapshot at all.
    """
    if not isinstance(data, dict):
        raise ValueError("Snapshot is not an object")

    try:
        step = WizardStep(int(data.get("step") or 1))
    except (TypeError, ValueError):
        step = WizardStep.CUSTOMER_INFO

    customer = None
    if isinstance(data.get("customerData"), dict):
        customer = CustomerInfo.from_dict(data["customerData"])

    garments = [Garment.from_dict(g) for g in data.get("garments") or [] if isinstance(g, dict)]

    delivery = None
    delivery_draft = {}
    if isinstance(data.get("deliveryData"), dict):
        delivery_draft = dict(data["deliveryData"])
        delivery = DeliveryPayment.from_dict(delivery_draft)

    editing_index = data.get("editingIndex")
    if not isinstance(editing_index, int) or not 0 <= editing_index < len(garments):
        editing_index = None

    submitted = data.get("submittedOrder")

    order = OrderAggregate(
        customer=customer,
        garments=garments,
        delivery=delivery,
        delivery_draft=delivery_draft,
        step=step,
        editing_index=editing_index,
        show_garment_form=bool(data.get("showGarmentForm", not garments)),
        order_id=data.get("orderOid") or None,
        order_date=data.get("orderDate") or None,
        submitted_order=submitted if isinstance(submitted, dict) else None,
    )

    # A submitted order stays confirmed; otherwise a step the data cannot
    # support falls back to the furthest reachable one
    if order.is_submitted:
        order.step = WizardStep.CONFIRMATION
    elif order.step >= WizardStep.ORDER_DETAILS and order.customer is None:
        order.step = WizardStep.CUSTOMER_INFO
    elif order.step >= WizardStep.DELIVERY_PAYMENT and not order.garments:
        order.step = WizardStep.ORDER_DETAILS
    elif order.step == WizardStep.CONFIRMATION and not order.is_submitted:
        order.step = WizardStep.DELIVERY_PAYMENT

    builder.restore(data, editing_index=editing_index)
    return order


# =============================================================================
# Repositories
# =============================================================================

class SnapshotRepository(ABC):
    """Durable store of wizard snapshots, one per named slot."""

    @abstractmethod
    async def load(self, slot: str) -> Optional[dict]:
        """Return the stored snapshot or None."""
        pass

    @abstractmethod
    async def save(self, slot: str, snapshot: dict) -> None:
        """Replace the stored snapshot."""
        pass

    @abstractmethod
    async def clear(self, slot: str) -> None:
        """Remove the stored snapshot, if any."""
        pass


class InMemorySnapshotRepository(SnapshotRepository):
    """Process-local repository, used in tests and for throwaway sessions."""

    def __init__(self):
        self._slots: dict[str, dict] = {}

    async def load(self, slot: str) -> Optional[dict]:
        snapshot = self._slots.get(slot)
        return copy.deepcopy(snapshot) if snapshot is not None else None

    async def save(self, slot: str, snapshot: dict) -> None:
        self._slots[slot] = copy.deepcopy(snapshot)

    async def clear(self, slot: str) -> None:
        self._slots.pop(slot, None)
