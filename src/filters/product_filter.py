# src/filters/product_filter.py

"""Keep only listings asking less than their retail price."""

import dataclasses
import logging

from src.models.product import Product, calculate_discount

logger = logging.getLogger("retail_radar.filters")


class ProductFilter:
    """Filter fetched products down to below-retail listings."""

    @staticmethod
    def filter_below_retail(
        products: list[Product],
    ) -> tuple[list[Product], int]:
        """Drop listings at or above retail and recompute discounts.

        Sources report their own discount figures, which are not
        trusted; every kept product carries ``(retail - current) /
        retail`` rounded to four places.

        Returns the kept list and the count of excluded products.
        """
        kept: list[Product] = []
        excluded = 0
        for product in products:
            if not product.is_below_retail:
                excluded += 1
                continue
            kept.append(dataclasses.replace(
                product,
                discount_percentage=calculate_discount(
                    product.retail_price, product.current_price
                ),
            ))

        if excluded:
            logger.info(
                "Filtered out %d products at or above retail",
                excluded,
            )

        return kept, excluded
