"""
Base interface for the order service.
Lets the wizard run against the HTTP backend or a fake in tests.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from tailor_intake.core.submission.packager import SubmissionPayload


class InvoiceType(Enum):
    """Invoice layouts rendered by the invoice service."""
    CUSTOMER = "customer"
    TAILOR = "tailor"


@dataclass
class SubmissionReceipt:
    """Accepted submission as echoed by the order service."""

    order_id: str
    order_date: Optional[str] = None
    order: Optional[dict] = None


class BaseOrderService(ABC):
    """Abstract base class for order service clients."""

    @abstractmethod
    async def submit_order(self, payload: SubmissionPayload) -> SubmissionReceipt:
        """
        Submit one packaged order.

        Raises:
            OrderServiceNetworkError: transport failure
            MalformedResponseError: answer was not the expected JSON body
            OrderRejectedError: the order was explicitly refused
        """
        pass

    @abstractmethod
    async def list_orders(self) -> list[dict]:
        """Persisted orders, newest first as the service returns them."""
        pass

    @abstractmethod
    async def fetch_invoice(
        self,
        order_id: str,
        invoice_type: InvoiceType,
        order: Optional[dict] = None,
    ) -> bytes:
        """
        Get an invoice document. Falls back to regeneration from `order`
        when none has been generated yet.
        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Client name."""
        pass
