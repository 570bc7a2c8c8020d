"""
HTTP order service client built on aiohttp.
"""

import asyncio
import json
import logging
from typing import Optional

import aiohttp

from tailor_intake.config import settings
from tailor_intake.core.submission.packager import SubmissionPayload
from tailor_intake.exceptions import (
    InvoiceUnavailableError,
    MalformedResponseError,
    OrderRejectedError,
    OrderServiceNetworkError,
)
from tailor_intake.integrations.order_service.base import (
    BaseOrderService,
    InvoiceType,
    SubmissionReceipt,
)

logger = logging.getLogger(__name__)


def parse_order_response(status: int, content_type: Optional[str], body: str) -> SubmissionReceipt:
    """
    Interpret the order service's answer to a submission.

    Raises:
        MalformedResponseError: not JSON, or a success body without an order id
        OrderRejectedError: {success: false, error} or a non-2xx JSON answer
    """
    if "application/json" not in (content_type or "").lower():
        logger.error(f"Order service answered {status} with non-JSON content type {content_type!r}")
        raise MalformedResponseError(
            "Server returned an invalid response format",
            status=status,
            raw_response_text=body[:1000],
        )

    try:
        data = json.loads(body)
    except ValueError as e:
        raise MalformedResponseError(
            "Server returned an unreadable response",
            status=status,
            raw_response_text=body[:1000],
        ) from e

    if not isinstance(data, dict):
        raise MalformedResponseError(
            "Server returned an unexpected response",
            status=status,
            raw_response_text=body[:1000],
        )

    if not 200 <= status < 300 or data.get("success") is False:
        reason = data.get("error") or data.get("message") or f"Order was rejected (HTTP {status})"
        raise OrderRejectedError(str(reason), status=status)

    order_id = data.get("orderId") or data.get("oid")
    if not order_id:
        raise MalformedResponseError(
            "Server response did not include an order id",
            status=status,
            raw_response_text=body[:1000],
        )

    order = data.get("order")
    return SubmissionReceipt(
        order_id=str(order_id),
        order_date=data.get("orderDate"),
        order=order if isinstance(order, dict) else None,
    )


class HttpOrderService(BaseOrderService):
    """Order service reached over HTTP."""

    # Non-submission calls get their own bound; submissions are bounded by the pipeline
    REQUEST_TIMEOUT = 60

    def __init__(self, base_url: str | None = None):
        self.base_url = (base_url or settings.order_service_url).rstrip("/")

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    @property
    def name(self) -> str:
        return "http"

    async def submit_order(self, payload: SubmissionPayload) -> SubmissionReceipt:
        """Send the multipart order."""
        form = aiohttp.FormData()
        for name, value in payload.fields.items():
            form.add_field(name, value)
        for part in payload.files:
            form.add_field(part.name, part.data, filename=part.filename, content_type=part.content_type)

        url = self._url(settings.orders_endpoint)
        logger.info(f"Submitting order to {url}: {len(payload.files)} file(s), {payload.total_bytes} bytes")

        try:
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=None)) as session:
                async with session.post(url, data=form) as response:
                    body = await response.text()
                    return parse_order_response(response.status, response.headers.get("Content-Type"), body)
        except aiohttp.ClientError as e:
            raise OrderServiceNetworkError(f"Could not reach the order service: {e}") from e

    async def list_orders(self) -> list[dict]:
        url = self._url(settings.admin_orders_endpoint)
        try:
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.REQUEST_TIMEOUT)) as session:
                async with session.get(url) as response:
                    body = await response.text()
                    if response.status != 200:
                        raise OrderRejectedError(f"Order listing failed (HTTP {response.status})", status=response.status)
                    try:
                        data = json.loads(body)
                    except ValueError as e:
                        raise MalformedResponseError(
                            "Order listing is not JSON", status=response.status, raw_response_text=body[:1000]
                        ) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise OrderServiceNetworkError(f"Could not reach the order service: {e}") from e

        orders = data.get("orders") if isinstance(data, dict) else data
        if not isinstance(orders, list):
            raise MalformedResponseError("Order listing has no orders list", raw_response_text=body[:1000])
        return [o for o in orders if isinstance(o, dict)]

    async def fetch_invoice(
        self,
        order_id: str,
        invoice_type: InvoiceType,
        order: Optional[dict] = None,
    ) -> bytes:
        """GET a stored invoice; on 404 POST the order document to regenerate it."""
        url = self._url(settings.invoice_endpoint)
        params = {"type": invoice_type.value, "oid": order_id}

        try:
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.REQUEST_TIMEOUT)) as session:
                async with session.get(url, params=params) as response:
                    if response.status == 200:
                        data = await response.read()
                        if data:
                            return data
                        logger.warning(f"Stored {invoice_type.value} invoice for {order_id} is empty, regenerating")
                    elif response.status != 404:
                        raise InvoiceUnavailableError(
                            f"Invoice fetch failed (HTTP {response.status})", status=response.status
                        )

                if order is None:
                    raise InvoiceUnavailableError("Invoice not generated yet and no order document to generate from")

                logger.info(f"Generating {invoice_type.value} invoice for order {order_id}")
                async with session.post(url, params=params, json={"order": order}) as response:
                    data = await response.read()
                    if response.status != 200:
                        raise InvoiceUnavailableError(
                            f"Invoice generation failed (HTTP {response.status})",
                            status=response.status,
                            raw_response_text=data[:1000].decode("utf-8", errors="replace"),
                        )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise OrderServiceNetworkError(f"Could not reach the invoice service: {e}") from e

        if not data:
            raise InvoiceUnavailableError("Generated invoice is empty")
        return data
