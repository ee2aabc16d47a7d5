# src/filters/product_validator.py

"""Product validation: drop unusable listings before filtering."""

import logging

from src.models.product import Product

logger = logging.getLogger("retail_radar.filters")


class ProductValidator:
    """Drop products missing the fields the catalog needs."""

    @staticmethod
    def validate(
        products: list[Product],
    ) -> tuple[list[Product], int]:
        """Drop products with blank names or URLs, or non-positive prices.

        Returns the valid products and the count of dropped items.
        """
        valid: list[Product] = []
        dropped = 0

        for product in products:
            if not product.name.strip() or not product.url.strip():
                logger.debug(
                    "Dropped product with empty name or url "
                    "(source=%s, id=%s)",
                    product.source,
                    product.id,
                )
                dropped += 1
                continue
            if product.retail_price <= 0 or product.current_price <= 0:
                logger.debug(
                    "Dropped product with non-positive price "
                    "(name=%s, retail=%s, current=%s)",
                    product.name,
                    product.retail_price,
                    product.current_price,
                )
                dropped += 1
                continue
            valid.append(product)

        if dropped:
            logger.info(
                "Validation dropped %d invalid products",
                dropped,
            )

        return valid, dropped
