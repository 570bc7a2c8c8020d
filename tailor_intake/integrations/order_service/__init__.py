"""
Order service client factory.
"""

from functools import lru_cache

from tailor_intake.integrations.order_service.base import (
    BaseOrderService,
    InvoiceType,
    SubmissionReceipt,
)
from tailor_intake.integrations.order_service.http import HttpOrderService, parse_order_response


def get_order_service(base_url: str | None = None) -> BaseOrderService:
    """
    Get order service client.

    Args:
        base_url: Service base URL. If None, uses settings.order_service_url

    Returns:
        Order service client instance
    """
    return HttpOrderService(base_url=base_url)


@lru_cache(maxsize=1)
def get_default_order_service() -> BaseOrderService:
    """Get cached default order service client."""
    return get_order_service()


__all__ = [
    "BaseOrderService",
    "InvoiceType",
    "SubmissionReceipt",
    "HttpOrderService",
    "parse_order_response",
    "get_order_service",
    "get_default_order_service",
]
