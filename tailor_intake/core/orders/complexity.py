"""
Pre-submission size check for large orders.
"""

import logging
from dataclasses import dataclass, field

from tailor_intake.core.orders.attachments import byte_size
from tailor_intake.core.orders.models import OrderAggregate

logger = logging.getLogger(__name__)


MB = 1024 * 1024

# Soft limits: submission proceeds, but is likely to be slow
WARN_GARMENTS = 5
WARN_DESIGNS = 30
WARN_FILES = 80
WARN_BYTES = 50 * MB

# Hard limits: submission is refused locally
MAX_GARMENTS = 8
MAX_DESIGNS = 60
MAX_FILES = 120
MAX_BYTES = 100 * MB


@dataclass
class OrderComplexity:
    """Size figures for one order."""
    garments: int = 0
    designs: int = 0
    files: int = 0
    total_bytes: int = 0
    estimated_seconds: int = 0
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def total_mb(self) -> float:
        return self.total_bytes / MB

    @property
    def can_submit(self) -> bool:
        return not self.errors


def analyze_order_complexity(order: OrderAggregate) -> OrderComplexity:
    """
    Count garments, designs, files and attachment bytes, and estimate processing
    time as 30s + 10s per garment + 5s per design + 10s per 5 files.
    """
    result = OrderComplexity(garments=len(order.garments))

    for garment in order.garments:
        attachments = [garment.canvas_image] if garment.canvas_image else []
        for design in garment.designs:
            result.designs += 1
            attachments.extend(design.reference_images)
            attachments.extend(design.fabric_images)
            if design.canvas_image:
                attachments.append(design.canvas_image)
        result.files += len(attachments)
        result.total_bytes += sum(byte_size(a) for a in attachments)

    result.estimated_seconds = (
        30
        + result.garments * 10
        + result.designs * 5
        + -(-result.files // 5) * 10
    )

    if result.garments > MAX_GARMENTS:
        result.errors.append(f"Too many garments ({result.garments}). Maximum is {MAX_GARMENTS} per order.")
    elif result.garments > WARN_GARMENTS:
        result.warnings.append(f"Large number of garments ({result.garments}).")

    if result.designs > MAX_DESIGNS:
        result.errors.append(f"Too many designs ({result.designs}). Maximum is {MAX_DESIGNS} per order.")
    elif result.designs > WARN_DESIGNS:
        result.warnings.append(f"Large number of designs ({result.designs}).")

    if result.files > MAX_FILES:
        result.errors.append(f"Too many images ({result.files}). Maximum is {MAX_FILES} per order.")
    elif result.files > WARN_FILES:
        result.warnings.append(f"Large number of images ({result.files}).")

    if result.total_bytes > MAX_BYTES:
        result.errors.append(f"Attachments too large ({result.total_mb:.1f}MB). Maximum is 100MB.")
    elif result.total_bytes > WARN_BYTES:
        result.warnings.append(f"Large attachments ({result.total_mb:.1f}MB).")

    for warning in result.warnings:
        logger.warning(f"Order complexity: {warning} Estimated processing {result.estimated_seconds}s")

    return result
