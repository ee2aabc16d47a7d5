# src/filters/deduplicator.py

"""Collapse listings that point at the same product page."""

import logging

from src.models.product import Product
from src.storage.catalog_db import normalize_url

logger = logging.getLogger("retail_radar.filters")


class ProductDeduplicator:
    """Remove duplicate products by normalised URL."""

    @staticmethod
    def deduplicate(
        products: list[Product],
    ) -> tuple[list[Product], int]:
        """Keep the cheapest ask per normalised URL.

        The catalog is keyed by the same normalised URL, so one fetch
        never reconciles two rows into a single entry. First-seen order
        is preserved.

        Returns the deduplicated list and the count of removed dupes.
        """
        if not products:
            return [], 0

        seen_urls: dict[str, int] = {}
        kept: list[Product] = []
        removed = 0

        for product in products:
            norm_url = normalize_url(product.url)
            if norm_url in seen_urls:
                existing_idx = seen_urls[norm_url]
                if product.current_price < kept[existing_idx].current_price:
                    kept[existing_idx] = product
                removed += 1
                continue

            seen_urls[norm_url] = len(kept)
            kept.append(product)

        if removed:
            logger.info(
                "Deduplication removed %d duplicate products",
                removed,
            )

        return kept, removed
