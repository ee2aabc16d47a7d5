# src/models/product.py

"""Product data models for inter-module data flow."""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def calculate_discount(retail_price: float, current_price: float) -> float:
    """Fraction of retail saved at the current ask, rounded to 4 places.

    A non-positive retail price yields 0.0 so the product can never be
    reported as below retail.
    """
    if retail_price <= 0:
        return 0.0
    return round((retail_price - current_price) / retail_price, 4)


@dataclass
class Product:
    """A single listing as reported by one data source."""

    id: str
    name: str
    brand: str
    retail_price: float
    current_price: float
    url: str
    colorway: str = ""
    discount_percentage: float = 0.0
    size: str | None = None
    sku: str | None = None
    image_url: str | None = None
    source: str = ""
    last_updated: datetime = field(default_factory=utc_now)

    @property
    def is_below_retail(self) -> bool:
        """True when the ask is strictly under a positive retail price."""
        return (
            self.retail_price > 0
            and self.current_price < self.retail_price
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialise to JSON-safe primitives."""
        data = asdict(self)
        data["last_updated"] = self.last_updated.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Product":
        """Rebuild a Product serialised with :meth:`to_dict`."""
        values = dict(data)
        values["last_updated"] = datetime.fromisoformat(
            str(values["last_updated"])
        )
        return cls(**values)


@dataclass
class CatalogEntry:
    """A product row owned by the catalog repository."""

    id: int
    name: str
    brand: str
    retail_price: float
    current_price: float
    discount_percentage: float
    url: str
    created_at: datetime
    updated_at: datetime
    colorway: str = ""
    size: str | None = None
    sku: str | None = None
    image_url: str | None = None
    source: str = ""

    def to_product(self) -> Product:
        """Project the stored row back to the transfer shape."""
        return Product(
            id=str(self.id),
            name=self.name,
            brand=self.brand,
            colorway=self.colorway,
            retail_price=self.retail_price,
            current_price=self.current_price,
            discount_percentage=self.discount_percentage,
            size=self.size,
            sku=self.sku,
            image_url=self.image_url,
            url=self.url,
            source=self.source,
            last_updated=self.updated_at,
        )
