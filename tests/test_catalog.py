import unittest

from tailor_intake.core.catalog import CatalogResolver, catalog, measurement_label


class TestCatalogResolver(unittest.TestCase):

    def test_categories_have_labels(self):
        """Every category is offered with a display label."""
        values = [c.value for c in catalog.categories()]
        self.assertIn("kurti_kameez", values)
        self.assertIn("blouse", values)
        self.assertEqual(catalog.category_label("kurti_kameez"), "Kurti / Kameez")

    def test_variants_for_known_category(self):
        variants = [v.value for v in catalog.variants("kurti_kameez")]
        self.assertEqual(variants, ["straight", "a_line", "anarkali"])

    def test_measurement_fields_are_ordered(self):
        fields = catalog.measurement_fields("kurti_kameez", "straight")
        self.assertEqual(fields[:3], ["shoulderWidth", "chest", "waist"])
        self.assertIn("kurtaLength", fields)

    def test_unknown_category_yields_empty_lists(self):
        """Unknown lookups never raise."""
        self.assertEqual(catalog.variants("spacesuit"), [])
        self.assertEqual(catalog.measurement_fields("spacesuit", "straight"), [])
        self.assertEqual(catalog.category_label("spacesuit"), "spacesuit")

    def test_unknown_or_missing_variant_yields_no_fields(self):
        self.assertEqual(catalog.measurement_fields("kurti_kameez", "bell_bottom"), [])
        self.assertEqual(catalog.measurement_fields("kurti_kameez", None), [])

    def test_custom_taxonomy(self):
        resolver = CatalogResolver([
            {"category": "cape", "variants": [{"type": "short", "measurements": ["neck"]}]},
        ])
        self.assertEqual([c.label for c in resolver.categories()], ["cape"])
        self.assertEqual(resolver.measurement_fields("cape", "short"), ["neck"])

    def test_returned_fields_are_copies(self):
        fields = catalog.measurement_fields("kurti_kameez", "straight")
        fields.append("extra")
        self.assertNotIn("extra", catalog.measurement_fields("kurti_kameez", "straight"))

    def test_measurement_label(self):
        self.assertEqual(measurement_label("frontNeckDepth"), "Front Neck Depth")
        self.assertEqual(measurement_label("waist"), "Waist")


if __name__ == '__main__':
    unittest.main()
