# tests/test_product_filter.py

"""Tests for the below-retail product filter."""

import unittest

from src.filters.product_filter import ProductFilter
from src.models.product import Product


def _product(name: str, retail: float, current: float) -> Product:
    return Product(
        id=name,
        name=name,
        brand="Nike",
        retail_price=retail,
        current_price=current,
        url=f"https://stockx.com/{name}",
        discount_percentage=0.99,  # untrusted source figure
    )


class TestProductFilter(unittest.TestCase):
    """Below-retail selection and discount recomputation."""

    def test_keeps_only_below_retail(self) -> None:
        kept, excluded = ProductFilter.filter_below_retail([
            _product("A", 100, 80),
            _product("B", 200, 150),
            _product("C", 150, 160),
        ])
        self.assertEqual([p.name for p in kept], ["A", "B"])
        self.assertEqual(excluded, 1)

    def test_equal_price_excluded(self) -> None:
        kept, excluded = ProductFilter.filter_below_retail(
            [_product("A", 100, 100)]
        )
        self.assertEqual(kept, [])
        self.assertEqual(excluded, 1)

    def test_discount_recomputed(self) -> None:
        kept, _ = ProductFilter.filter_below_retail([
            _product("A", 100, 80),
            _product("B", 150, 100),
        ])
        self.assertEqual(
            [p.discount_percentage for p in kept], [0.2, 0.3333]
        )

    def test_input_not_mutated(self) -> None:
        original = _product("A", 100, 80)
        ProductFilter.filter_below_retail([original])
        self.assertEqual(original.discount_percentage, 0.99)


if __name__ == "__main__":
    unittest.main()
