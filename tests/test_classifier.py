"""
Unit tests for the collection classifier.
"""

import unittest

from search_sync.core.config import DEFAULT_SUFFIXES
from search_sync.services.classifier import classify, is_relevant, match_suffix


class TestClassify(unittest.TestCase):
    """Unit tests for classify()."""

    def test_products_collection(self):
        result = classify("pntl_products", DEFAULT_SUFFIXES)

        self.assertTrue(result.relevant)
        self.assertEqual(result.tenant, "pntl")
        self.assertEqual(result.entity_kind, "products")

    def test_categories_collection(self):
        result = classify("acme_motors_categories", DEFAULT_SUFFIXES)

        self.assertTrue(result.relevant)
        self.assertEqual(result.tenant, "acme_motors")
        self.assertEqual(result.entity_kind, "categories")

    def test_unmatched_collection(self):
        result = classify("pntl_orders", DEFAULT_SUFFIXES)

        self.assertFalse(result.relevant)
        self.assertEqual(result.tenant, "pntl_orders")
        self.assertEqual(result.entity_kind, "unknown")

    def test_first_configured_suffix_wins(self):
        result = classify("pntl_special_products", ["_products", "_special_products"])
        self.assertEqual(result.tenant, "pntl_special")
        self.assertEqual(result.entity_kind, "products")

        result = classify("pntl_special_products", ["_special_products", "_products"])
        self.assertEqual(result.tenant, "pntl")
        self.assertEqual(result.entity_kind, "special_products")

    def test_name_equal_to_suffix_has_empty_tenant(self):
        result = classify("_products", DEFAULT_SUFFIXES)

        self.assertTrue(result.relevant)
        self.assertEqual(result.tenant, "")
        self.assertEqual(result.entity_kind, "products")

    def test_other_separators_are_stripped(self):
        self.assertEqual(classify("shop-pages", ["-pages"]).entity_kind, "pages")

    def test_separator_only_suffix_has_empty_entity_kind(self):
        result = classify("pntl_", ["_"])

        self.assertTrue(result.relevant)
        self.assertEqual(result.tenant, "pntl")
        self.assertEqual(result.entity_kind, "")

    def test_empty_suffix_list_matches_nothing(self):
        result = classify("pntl_products", [])

        self.assertFalse(result.relevant)
        self.assertEqual(result.tenant, "pntl_products")

    def test_empty_suffix_entry_is_ignored(self):
        self.assertIsNone(match_suffix("pntl_orders", ["", "_products"]))

    def test_is_relevant(self):
        self.assertTrue(is_relevant("pntl_categories", DEFAULT_SUFFIXES))
        self.assertFalse(is_relevant("directus_users", DEFAULT_SUFFIXES))


if __name__ == "__main__":
    unittest.main()
