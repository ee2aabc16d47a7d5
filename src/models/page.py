# src/models/page.py

"""Query and pagination models for below-retail catalog pages."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from src.config.settings import Settings
from src.models.product import Product
from src.storage.cursor import decode_cursor


class BelowRetailQuery(BaseModel):
    """Validated filter and pagination parameters for one page.

    Raw request parameters use the camelCase aliases; blank strings are
    treated as absent.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    min_discount: float | None = Field(None, ge=0, le=1, alias="minDiscount")
    max_price: float | None = Field(
        None, gt=0, allow_inf_nan=False, alias="maxPrice"
    )
    size: str | None = None
    cursor: str | None = None
    limit: int = Field(
        Settings.DEFAULT_PAGE_LIMIT, ge=1, le=Settings.MAX_PAGE_LIMIT
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_blank(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        cleaned: dict[str, Any] = {}
        for key, value in data.items():
            if isinstance(value, str):
                value = value.strip()
            if value is None or value == "":
                continue
            cleaned[key] = value
        return cleaned

    @field_validator("cursor")
    @classmethod
    def _cursor_decodes(cls, value: str | None) -> str | None:
        if value is not None:
            decode_cursor(value)
        return value

    def cache_params(self) -> list[tuple[str, str]]:
        """Return the normalised parameters that identify this page.

        ``limit`` is always present so a default and an explicit
        default share one cache entry. Floats use ``repr`` so distinct
        values never share a key.
        """
        params: list[tuple[str, str]] = []
        if self.min_discount is not None:
            params.append(("minDiscount", repr(float(self.min_discount))))
        if self.max_price is not None:
            params.append(("maxPrice", repr(float(self.max_price))))
        if self.size:
            params.append(("size", self.size))
        if self.cursor:
            params.append(("cursor", self.cursor))
        params.append(("limit", str(self.limit)))
        return sorted(params)


@dataclass
class PaginatedResult:
    """One page of below-retail products plus continuation state."""

    data: list[Product] = field(
        default_factory=lambda: list[Product]()
    )
    cursor: str | None = None
    has_next: bool = False
    total: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the JSON shape used by the cache and the API."""
        return {
            "data": [p.to_dict() for p in self.data],
            "pagination": {
                "cursor": self.cursor,
                "hasNext": self.has_next,
                "total": self.total,
            },
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "PaginatedResult":
        """Rebuild a page serialised with :meth:`to_dict`."""
        pagination: dict[str, Any] = payload.get("pagination", {})
        return cls(
            data=[
                Product.from_dict(item)
                for item in payload.get("data", [])
            ],
            cursor=pagination.get("cursor"),
            has_next=bool(pagination.get("hasNext", False)),
            total=pagination.get("total"),
        )
