#!/usr/bin/env python3
"""
Script to list persisted orders from the order service.

Usage:
    python scripts/list_orders.py
    python scripts/list_orders.py --export
    python scripts/list_orders.py --export --output-dir exports/
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from tailor_intake.core.orders.exporter import order_exporter
from tailor_intake.exceptions import OrderServiceError
from tailor_intake.integrations.order_service import get_order_service


async def main(export: bool, output_dir: str | None = None, base_url: str | None = None) -> None:
    """Fetch orders and print or export them."""
    service = get_order_service(base_url)

    try:
        orders = await service.list_orders()
    except OrderServiceError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print(f"Orders: {len(orders)}")
    print("-" * 50)

    for order in orders:
        garments = order.get("garments") or []
        print(
            f"{order.get('oid') or order.get('orderId', '?'):<16} "
            f"{order.get('orderDate', ''):<12} "
            f"{order.get('fullName', ''):<24} "
            f"{len(garments)} garment(s)  "
            f"₹{float(order.get('totalAmount') or 0):.2f}"
        )

    if export:
        path = order_exporter.export(orders, Path(output_dir) if output_dir else None)
        print("-" * 50)
        print(f"✅ Exported to {path}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="List persisted orders")
    parser.add_argument("--export", action="store_true", help="Export to an XLSX ledger")
    parser.add_argument("--output-dir", help="Directory for the ledger file")
    parser.add_argument("--base-url", help="Order service base URL")

    args = parser.parse_args()
    asyncio.run(main(args.export, args.output_dir, args.base_url))
