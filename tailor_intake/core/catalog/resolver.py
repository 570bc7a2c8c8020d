"""
Catalog lookups over the static garment taxonomy.
Unknown categories or variants resolve to empty lists, never errors.
"""

import re
from dataclasses import dataclass

from tailor_intake.core.catalog.taxonomy import TAXONOMY


@dataclass(frozen=True)
class CatalogOption:
    """Selectable category or variant: stored value plus display label."""
    value: str
    label: str


class CatalogResolver:
    """Resolve variants and measurement fields for garment categories."""

    def __init__(self, taxonomy: list[dict] | None = None):
        self._forms = {form["category"]: form for form in (taxonomy or TAXONOMY)}

    def categories(self) -> list[CatalogOption]:
        """All garment categories as (value, label) options."""
        return [
            CatalogOption(value=category, label=form.get("label", category))
            for category, form in self._forms.items()
        ]

    def category_label(self, category: str) -> str:
        form = self._forms.get(category)
        return form.get("label", category) if form else category

    def variants(self, category: str) -> list[CatalogOption]:
        """Variants offered for a category."""
        form = self._forms.get(category)
        if not form:
            return []
        return [
            CatalogOption(value=v["type"], label=v.get("label", v["type"]))
            for v in form.get("variants", [])
        ]

    def measurement_fields(self, category: str, variant: str | None) -> list[str]:
        """Ordered measurement keys for a category + variant."""
        form = self._forms.get(category)
        if not form or not variant:
            return []
        for v in form.get("variants", []):
            if v["type"] == variant:
                return list(v.get("measurements", []))
        return []


_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z])(?=[A-Z])")


def measurement_label(key: str) -> str:
    """Human label for a camelCase measurement key: 'frontNeckDepth' -> 'Front Neck Depth'."""
    return " ".join(part.capitalize() for part in _CAMEL_BOUNDARY.split(key))


# Default resolver over the built-in taxonomy
catalog = CatalogResolver()
