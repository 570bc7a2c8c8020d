"""
Garment builder: accumulates one garment's category, variant, quantity,
measurements and per-unit designs before it joins the order.
"""

import logging
from typing import Optional

from tailor_intake.core.catalog import CatalogResolver, CatalogOption, catalog
from tailor_intake.core.orders.attachments import (
    MAX_FABRIC_IMAGES,
    MAX_REFERENCE_IMAGES,
    Attachment,
    attachment_from_dict,
    attachment_to_dict,
)
from tailor_intake.core.orders.models import (
    DesignRecord,
    Garment,
    MeasurementUnit,
    OrderAggregate,
    new_key,
    parse_amount,
)
from tailor_intake.core.orders.validators import MeasurementValidator, QuantityValidator
from tailor_intake.exceptions import (
    AttachmentLimitError,
    CommitRule,
    GarmentCommitError,
    StepValidationError,
)

logger = logging.getLogger(__name__)


INCOMPLETE_DESIGN_MESSAGE = "Please fill in the name and a valid amount (> 0) for every design."

DESIGN_FIELDS = {
    "name",
    "amount",
    "design_description",
    "reference_images",
    "fabric_images",
    "canvas_image",
    "canvas_json",
}


class GarmentBuilder:
    """Builds a Garment, either new or as an edit of an existing one."""

    def __init__(self, resolver: Optional[CatalogResolver] = None):
        self.resolver = resolver or catalog
        self.reset()

    def reset(self) -> None:
        """Clear all fields back to a blank garment."""
        self.order_type: str = ""
        self.variant: Optional[str] = None
        self.quantity: int = 1
        self.unit: MeasurementUnit = MeasurementUnit.INCH
        self.measurements: dict[str, float] = {}
        self.designs: list[DesignRecord] = [DesignRecord()]
        self.canvas_image: Optional[Attachment] = None
        self.editing_index: Optional[int] = None
        self.garment_key: Optional[str] = None

    # -------------------------------------------------------------------------
    # Catalog-driven selections
    # -------------------------------------------------------------------------

    @property
    def variant_options(self) -> list[CatalogOption]:
        return self.resolver.variants(self.order_type) if self.order_type else []

    @property
    def measurement_fields(self) -> list[str]:
        """Measurement keys for the current category + variant (may be empty)."""
        return self.resolver.measurement_fields(self.order_type, self.variant)

    def select_category(self, category: str) -> None:
        """Choose a garment category; clears the variant selection."""
        self.order_type = category or ""
        self.variant = None

    def select_variant(self, variant: Optional[str]) -> None:
        """
        Choose a variant. Entered measurement values are kept; only those for
        fields the variant still asks for end up in the committed garment.
        """
        self.variant = variant or None

    def set_unit(self, unit) -> None:
        self.unit = unit if isinstance(unit, MeasurementUnit) else MeasurementUnit(unit)

    def set_measurement(self, key: str, value) -> float:
        """Record one measurement. Raises StepValidationError for bad input."""
        if key not in self.measurement_fields:
            raise StepValidationError({key: "This measurement does not apply to the selected garment"})
        ok, parsed, error = MeasurementValidator.validate(value)
        if not ok:
            raise StepValidationError({key: error})
        self.measurements[key] = parsed
        return parsed

    def clear_measurement(self, key: str) -> None:
        self.measurements.pop(key, None)

    # -------------------------------------------------------------------------
    # Quantity and designs
    # -------------------------------------------------------------------------

    def set_quantity(self, quantity) -> int:
        """
        Set quantity and resize the design list to match: existing designs keep
        their position, new slots are blank, extra trailing designs are dropped.
        """
        ok, value, error = QuantityValidator.validate(quantity)
        if not ok:
            raise StepValidationError({"quantity": error})

        if value < len(self.designs):
            dropped = len(self.designs) - value
            logger.debug(f"Quantity reduced to {value}, dropping {dropped} trailing design(s)")
            del self.designs[value:]
        while len(self.designs) < value:
            self.designs.append(DesignRecord())

        self.quantity = value
        return value

    def _design(self, index: int) -> DesignRecord:
        if not 0 <= index < len(self.designs):
            raise IndexError(f"No design at position {index + 1}")
        return self.designs[index]

    def update_design(self, index: int, **patch) -> DesignRecord:
        """
        Merge a partial update into one design. File lists over their cap are
        rejected as a whole and leave the design untouched.
        """
        design = self._design(index)

        unknown = set(patch) - DESIGN_FIELDS
        if unknown:
            raise ValueError(f"Unknown design field(s): {', '.join(sorted(unknown))}")

        if "reference_images" in patch and len(patch["reference_images"] or []) > MAX_REFERENCE_IMAGES:
            raise AttachmentLimitError(
                f"Max {MAX_REFERENCE_IMAGES} reference images per design.", design_index=index
            )
        if "fabric_images" in patch and len(patch["fabric_images"] or []) > MAX_FABRIC_IMAGES:
            raise AttachmentLimitError(
                f"Max {MAX_FABRIC_IMAGES} fabric images per design.", design_index=index
            )

        for field_name, value in patch.items():
            if field_name == "amount":
                value = parse_amount(value)
            elif field_name in ("reference_images", "fabric_images"):
                value = list(value or [])
            elif field_name in ("name", "design_description"):
                value = value or ""
            setattr(design, field_name, value)

        return design

    def add_reference_image(self, index: int, attachment: Attachment) -> int:
        """Attach a reference image. Returns the new count."""
        design = self._design(index)
        if len(design.reference_images) >= MAX_REFERENCE_IMAGES:
            raise AttachmentLimitError(
                f"Max {MAX_REFERENCE_IMAGES} reference images per design.", design_index=index
            )
        design.reference_images.append(attachment)
        return len(design.reference_images)

    def add_fabric_image(self, index: int, attachment: Attachment) -> int:
        """Attach a fabric image. Returns the new count."""
        design = self._design(index)
        if len(design.fabric_images) >= MAX_FABRIC_IMAGES:
            raise AttachmentLimitError(
                f"Max {MAX_FABRIC_IMAGES} fabric images per design.", design_index=index
            )
        design.fabric_images.append(attachment)
        return len(design.fabric_images)

    def remove_reference_image(self, index: int, file_index: int) -> bool:
        design = self._design(index)
        if 0 <= file_index < len(design.reference_images):
            design.reference_images.pop(file_index)
            return True
        return False

    def remove_fabric_image(self, index: int, file_index: int) -> bool:
        design = self._design(index)
        if 0 <= file_index < len(design.fabric_images):
            design.fabric_images.pop(file_index)
            return True
        return False

    def set_garment_canvas(self, attachment: Optional[Attachment]) -> None:
        """Garment-level freehand drawing."""
        self.canvas_image = attachment

    # -------------------------------------------------------------------------
    # Commit / edit
    # -------------------------------------------------------------------------

    def validate(self) -> None:
        """Raise GarmentCommitError naming the first rule the garment breaks."""
        if not self.order_type or not self.resolver.variants(self.order_type):
            raise GarmentCommitError(CommitRule.MISSING_CATEGORY, "Please select a garment type.")

        if self.variant not in [o.value for o in self.variant_options]:
            raise GarmentCommitError(CommitRule.MISSING_VARIANT, "Please select a variant.")

        ok, _, error = QuantityValidator.validate(self.quantity)
        if not ok or len(self.designs) != self.quantity:
            raise GarmentCommitError(
                CommitRule.INVALID_QUANTITY,
                error or "Each unit needs exactly one design.",
            )

        for i, design in enumerate(self.designs):
            if not design.is_complete:
                raise GarmentCommitError(CommitRule.INCOMPLETE_DESIGN, INCOMPLETE_DESIGN_MESSAGE, design_index=i)
            if len(design.reference_images) > MAX_REFERENCE_IMAGES or len(design.fabric_images) > MAX_FABRIC_IMAGES:
                raise AttachmentLimitError(
                    f"Design {i + 1} has too many images "
                    f"(max {MAX_REFERENCE_IMAGES} reference, {MAX_FABRIC_IMAGES} fabric).",
                    design_index=i,
                )

    def build(self) -> Garment:
        """Validate and produce a Garment without touching builder state."""
        self.validate()
        fields = self.measurement_fields
        return Garment(
            order_type=self.order_type,
            variant=self.variant,
            quantity=self.quantity,
            unit=self.unit,
            measurements={k: self.measurements[k] for k in fields if k in self.measurements},
            designs=[d.copy() for d in self.designs],
            canvas_image=self.canvas_image,
            key=self.garment_key or new_key(),
        )

    def commit(self, order: OrderAggregate) -> Garment:
        """
        Validate, then append the garment to the order (or replace the one being
        edited) and reset the builder. On failure nothing changes.
        """
        garment = self.build()

        if self.editing_index is not None and order.replace_garment(self.editing_index, garment):
            logger.debug(f"Garment {self.editing_index + 1} updated ({garment.order_type})")
        else:
            order.add_garment(garment)
            logger.debug(f"Garment {len(order.garments)} added ({garment.order_type})")

        self.reset()
        return garment

    def load_for_edit(self, garment: Garment, index: int) -> None:
        """Rehydrate from a stored garment so the next commit replaces it."""
        self.order_type = garment.order_type
        self.variant = garment.variant
        self.unit = garment.unit
        self.measurements = dict(garment.measurements)
        self.designs = [d.copy() for d in garment.designs]
        self.canvas_image = garment.canvas_image
        self.quantity = len(self.designs) or 1
        self.editing_index = index
        self.garment_key = garment.key

        if garment.quantity != self.quantity:
            self.set_quantity(garment.quantity)

    # -------------------------------------------------------------------------
    # Snapshot support
    # -------------------------------------------------------------------------

    def to_dict(self) -> dict:
        """In-progress builder fields for the wizard snapshot."""
        return {
            "garmentType": self.order_type,
            "selectedVariant": self.variant,
            "quantity": self.quantity,
            "unit": self.unit.value,
            "measurements": dict(self.measurements),
            "designs": [d.to_dict() for d in self.designs],
            "garmentCanvas": attachment_to_dict(self.canvas_image) if self.canvas_image else None,
            "garmentKey": self.garment_key,
        }

    def restore(self, data: dict, editing_index: Optional[int] = None) -> None:
        """Restore in-progress fields, keeping the quantity/designs invariant."""
        self.reset()
        self.order_type = data.get("garmentType") or ""
        self.variant = data.get("selectedVariant") or None
        try:
            self.unit = MeasurementUnit(data.get("unit") or "in")
        except ValueError:
            self.unit = MeasurementUnit.INCH

        for key, value in (data.get("measurements") or {}).items():
            parsed = parse_amount(value)
            if parsed is not None:
                self.measurements[key] = parsed

        designs = [DesignRecord.from_dict(d) for d in data.get("designs") or [] if isinstance(d, dict)]
        self.designs = designs or [DesignRecord()]
        self.quantity = len(self.designs)
        ok, quantity, _ = QuantityValidator.validate(data.get("quantity") or self.quantity)
        if ok:
            self.set_quantity(quantity)
        elif self.quantity > QuantityValidator.MAX_QUANTITY:
            self.set_quantity(QuantityValidator.MAX_QUANTITY)

        self.canvas_image = attachment_from_dict(data.get("garmentCanvas"))
        self.garment_key = data.get("garmentKey") or None
        self.editing_index = editing_index
