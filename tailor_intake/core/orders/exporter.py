"""
Export submitted orders to an XLSX ledger: one header row, one row per order.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, Border, Side, PatternFill
from openpyxl.utils import get_column_letter

from tailor_intake.config import settings
from tailor_intake.core.catalog import catalog, measurement_label
from tailor_intake.core.orders.attachments import RemoteAttachment
from tailor_intake.core.orders.models import Garment, PaymentMethod

logger = logging.getLogger(__name__)


ORDER_COLUMNS = [
    "Order ID",
    "Order Date",
    "Name",
    "Contact",
    "Email",
    "Address",
    "Delivery Date",
    "Urgency",
    "Payment",
    "Advance",
    "Total",
    "Special Instructions",
]

GARMENT_COLUMNS = [
    "Type",
    "Variant",
    "Quantity",
    "Designs",
    "Amount",
    "Image Links",
    "Measurements",
]


def _garment_links(garment: Garment) -> list[str]:
    attachments = [garment.canvas_image] if garment.canvas_image else []
    for design in garment.designs:
        attachments.extend(design.reference_images)
        attachments.extend(design.fabric_images)
        if design.canvas_image:
            attachments.append(design.canvas_image)
    return [a.url for a in attachments if isinstance(a, RemoteAttachment)]


def flatten_order(document: dict, garment_slots: int) -> list:
    """One ledger row for an order document as echoed/listed by the order service."""
    payment = PaymentMethod.parse(document.get("payment"))
    garments = [Garment.from_dict(g) for g in document.get("garments") or [] if isinstance(g, dict)]
    total = document.get("totalAmount")
    if total is None:
        total = sum(g.total_amount for g in garments)

    row = [
        document.get("oid") or document.get("orderId") or "",
        document.get("orderDate") or "",
        document.get("fullName") or "",
        document.get("contactNumber") or "",
        document.get("email") or "",
        document.get("fullAddress") or "",
        document.get("deliveryDate") or "",
        (document.get("urgency") or "").capitalize(),
        payment.label if payment else (document.get("payment") or ""),
        (document.get("advanceAmount") or 0) if payment == PaymentMethod.ADVANCE else 0,
        total,
        document.get("specialInstructions") or "",
    ]

    for i in range(garment_slots):
        if i >= len(garments):
            row.extend([""] * len(GARMENT_COLUMNS))
            continue
        garment = garments[i]
        designs = "; ".join(
            f"{d.name or 'Untitled'} (₹{d.amount or 0:.0f})" for d in garment.designs
        )
        measurements = "; ".join(
            f"{measurement_label(k)}: {v:g} {garment.unit.value}"
            for k, v in garment.measurements.items()
        )
        row.extend([
            catalog.category_label(garment.order_type),
            garment.variant or "",
            garment.quantity,
            designs,
            garment.total_amount,
            "\n".join(_garment_links(garment)),
            measurements,
        ])

    return row


class OrderLedgerExporter:
    """Export order documents to an XLSX ledger."""

    # Styles
    HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
    HEADER_FONT_WHITE = Font(bold=True, size=11, color="FFFFFF")

    ALT_ROW_FILL = PatternFill(start_color="D9E2F3", end_color="D9E2F3", fill_type="solid")

    THIN_BORDER = Border(
        left=Side(style='thin'),
        right=Side(style='thin'),
        top=Side(style='thin'),
        bottom=Side(style='thin')
    )

    CENTER_ALIGN = Alignment(horizontal='center', vertical='center', wrap_text=True)
    WRAP_ALIGN = Alignment(horizontal='left', vertical='top', wrap_text=True)

    def header(self, garment_slots: int) -> list[str]:
        columns = list(ORDER_COLUMNS)
        for i in range(1, garment_slots + 1):
            columns.extend(f"Garment{i} {name}" for name in GARMENT_COLUMNS)
        return columns

    def export(self, orders: list[dict], output_dir: Optional[Path] = None) -> Path:
        """
        Export orders to an XLSX file.

        Args:
            orders: Order documents
            output_dir: Directory for output file (default: settings.exports_dir)

        Returns:
            Path to created XLSX file
        """
        if output_dir is None:
            output_dir = settings.exports_dir

        output_dir.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filepath = output_dir / f"orders_{timestamp}.xlsx"

        garment_slots = max([len(o.get("garments") or []) for o in orders] + [1])
        header = self.header(garment_slots)

        wb = Workbook()
        ws = wb.active
        ws.title = "Orders"

        # === HEADER ===
        for col, name in enumerate(header, 1):
            cell = ws.cell(row=1, column=col, value=name)
            cell.font = self.HEADER_FONT_WHITE
            cell.fill = self.HEADER_FILL
            cell.border = self.THIN_BORDER
            cell.alignment = self.CENTER_ALIGN
            ws.column_dimensions[get_column_letter(col)].width = 18
        ws.freeze_panes = "A2"

        # === ORDERS ===
        for i, document in enumerate(orders, 1):
            for col, value in enumerate(flatten_order(document, garment_slots), 1):
                cell = ws.cell(row=i + 1, column=col, value=value)
                cell.border = self.THIN_BORDER
                cell.alignment = self.WRAP_ALIGN
                if i % 2 == 0:
                    cell.fill = self.ALT_ROW_FILL

        wb.save(filepath)
        logger.info(f"Exported {len(orders)} order(s) to {filepath}")

        return filepath


# Singleton instance
order_exporter = OrderLedgerExporter()
