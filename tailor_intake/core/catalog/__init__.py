"""
Garment catalog: categories, variants and measurement fields.
"""

from tailor_intake.core.catalog.resolver import (
    CatalogResolver,
    CatalogOption,
    catalog,
    measurement_label,
)

__all__ = [
    "CatalogResolver",
    "CatalogOption",
    "catalog",
    "measurement_label",
]
