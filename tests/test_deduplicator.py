# tests/test_deduplicator.py

"""Tests for ProductDeduplicator."""

import unittest

from src.filters.deduplicator import ProductDeduplicator
from src.models.product import Product


def _product(url: str, current: float, name: str = "Dunk") -> Product:
    return Product(
        id=name,
        name=name,
        brand="Nike",
        retail_price=110.0,
        current_price=current,
        url=url,
    )


class TestProductDeduplicator(unittest.TestCase):
    """URL-based collapse keeping the cheapest ask."""

    def test_empty_list(self) -> None:
        self.assertEqual(ProductDeduplicator.deduplicate([]), ([], 0))

    def test_distinct_urls_kept(self) -> None:
        kept, removed = ProductDeduplicator.deduplicate([
            _product("https://stockx.com/a", 90),
            _product("https://stockx.com/b", 95),
        ])
        self.assertEqual(len(kept), 2)
        self.assertEqual(removed, 0)

    def test_keeps_cheapest_for_same_url(self) -> None:
        kept, removed = ProductDeduplicator.deduplicate([
            _product("https://stockx.com/a", 95, name="first"),
            _product("https://stockx.com/a/?utm_source=x", 85, name="second"),
            _product("https://stockx.com/a#top", 99, name="third"),
        ])
        self.assertEqual(removed, 2)
        self.assertEqual(len(kept), 1)
        self.assertEqual(kept[0].name, "second")

    def test_first_seen_order_preserved(self) -> None:
        kept, _ = ProductDeduplicator.deduplicate([
            _product("https://stockx.com/b", 95),
            _product("https://stockx.com/a", 90),
            _product("https://stockx.com/b", 80),
        ])
        self.assertEqual(
            [p.url for p in kept],
            ["https://stockx.com/b", "https://stockx.com/a"],
        )
        self.assertEqual(kept[0].current_price, 80)


if __name__ == "__main__":
    unittest.main()
