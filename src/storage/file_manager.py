# src/storage/file_manager.py

"""Writes below-retail pages to JSON and CSV files."""

import csv
import json
import logging
import re
from datetime import datetime
from pathlib import Path

from src.config.settings import Settings
from src.models.page import PaginatedResult
from src.models.product import Product

logger = logging.getLogger("retail_radar.storage")

_CSV_HEADER = [
    "Name", "Brand", "Colorway", "Size", "Retail", "Current",
    "Discount", "Source", "URL",
]


def _slug(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", text.lower()).strip("_") or "brand"


def _by_discount(products: list[Product]) -> list[Product]:
    return sorted(
        products, key=lambda p: p.discount_percentage, reverse=True
    )


class FileManager:
    """Saves result pages under the results directory."""

    def __init__(self, results_dir: Path | None = None) -> None:
        self.results_dir: Path = results_dir or Settings.RESULTS_DIR
        self.results_dir.mkdir(parents=True, exist_ok=True)
        logger.debug(
            "FileManager initialised, results_dir=%s", self.results_dir
        )

    def save_results(self, brand: str, page: PaginatedResult) -> Path:
        """Save a page (products plus pagination) to a timestamped JSON file."""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filepath = self.results_dir / f"{_slug(brand)}_{timestamp}.json"

        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(page.to_dict(), f, ensure_ascii=False, indent=2)

        logger.info(
            "Saved %d products for '%s' to %s",
            len(page.data),
            brand,
            filepath,
        )
        return filepath

    def export_csv(self, brand: str, products: list[Product]) -> Path:
        """Export products to CSV, best discount first."""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filepath = (
            self.results_dir / f"export_{_slug(brand)}_{timestamp}.csv"
        )

        with open(filepath, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(_CSV_HEADER)
            for p in _by_discount(products):
                writer.writerow([
                    p.name,
                    p.brand,
                    p.colorway,
                    p.size or "",
                    f"{p.retail_price:.2f}",
                    f"{p.current_price:.2f}",
                    f"{p.discount_percentage:.2%}",
                    p.source,
                    p.url,
                ])

        logger.info(
            "Exported %d products for '%s' to %s",
            len(products),
            brand,
            filepath,
        )
        return filepath
