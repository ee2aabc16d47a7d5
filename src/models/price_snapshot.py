# src/models/price_snapshot.py

"""Temporal price observation for catalog price history."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass
class PriceSnapshot:
    """One observed ask for a catalog product at a point in time."""

    product_url: str
    price: float
    source: str
    observed_at: datetime
    size: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialise for the API envelope."""
        return {
            "url": self.product_url,
            "price": self.price,
            "source": self.source,
            "observedAt": self.observed_at.isoformat(),
            "size": self.size,
        }
