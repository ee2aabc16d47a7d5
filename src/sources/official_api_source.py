# src/sources/official_api_source.py

"""Source backed by the official StockX catalog API (gateway v3)."""

from typing import Any

from src.config.settings import Settings
from src.models.product import Product
from src.services.errors import SourceError
from src.sources.base_source import HttpSource

_STATUS_MESSAGES: dict[int, str] = {
    401: "Invalid StockX API credentials",
    429: "StockX API rate limit exceeded",
}


def _as_float(value: Any) -> float:
    """Coerce an API number (possibly None or a string) to float."""
    try:
        return float(value) if value else 0.0
    except (TypeError, ValueError):
        return 0.0


class OfficialApiSource(HttpSource):
    """Paginates ``/catalog/search`` for a brand's sneakers."""

    source_id = "official_api"
    base_url = "https://gateway.stockx.com/api/v3"
    PAGE_SIZE = 100

    def __init__(self, api_key: str | None = None) -> None:
        super().__init__(api_key or Settings.STOCKX_API_KEY)

    def _auth_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "User-Agent": "RetailRadar/1.0.0",
        }

    def fetch(self, brand: str) -> list[Product]:
        """Fetch every priced product for *brand*, up to the catalog cap."""
        self.logger.info(
            "[%s] Fetching %s products", self.source_id, brand
        )
        products: list[Product] = []
        cursor: str | None = None

        while len(products) < self.settings.MAX_CATALOG_PRODUCTS:
            params: dict[str, Any] = {
                "query": brand.lower(),
                "productCategory": "sneakers",
                "limit": self.PAGE_SIZE,
            }
            if cursor:
                params["cursor"] = cursor

            try:
                payload = self._get_json("/catalog/search", params)
            except SourceError as exc:
                friendly = _STATUS_MESSAGES.get(exc.status_code or 0)
                if friendly:
                    msg = f"{friendly} (HTTP {exc.status_code})"
                    raise SourceError(
                        msg, status_code=exc.status_code
                    ) from exc
                raise

            data: dict[str, Any] = payload.get("data") or {}
            items: list[dict[str, Any]] = data.get("products") or []
            if not items:
                break
            products.extend(self._transform(items, brand))

            pagination: dict[str, Any] = data.get("pagination") or {}
            cursor = pagination.get("cursor")
            if not pagination.get("hasNext") or not cursor:
                break

        self.logger.info(
            "[%s] Found %d priced %s products",
            self.source_id,
            len(products),
            brand,
        )
        return products

    def is_healthy(self) -> bool:
        """Probe ``/catalog/health``."""
        return self._probe("/catalog/health")

    def _transform(
        self, items: list[dict[str, Any]], brand: str,
    ) -> list[Product]:
        """Keep the requested brand and map API items to Products."""
        products: list[Product] = []
        for item in items:
            if str(item.get("brand", "")).lower() != brand.lower():
                continue
            market: dict[str, Any] = item.get("market") or {}
            media: dict[str, Any] = item.get("media") or {}
            product = self._build_product(
                product_id=str(item.get("id", "")),
                name=str(item.get("name", "")),
                brand=str(item.get("brand", brand)),
                colorway=str(item.get("colorway") or ""),
                retail_price=_as_float(item.get("retailPrice")),
                current_price=_as_float(
                    market.get("lowestAsk") or market.get("lastSale")
                ),
                url_key=str(item.get("urlKey", "")),
                size=self._extract_size(item.get("traits")),
                image_url=media.get("imageUrl"),
                sku=item.get("styleId"),
            )
            if product is not None:
                products.append(product)
        return products

    @staticmethod
    def _extract_size(traits: Any) -> str | None:
        """Pick the size trait ("Size" / "US Men") when present."""
        if not isinstance(traits, list):
            return None
        for trait in traits:
            if not isinstance(trait, dict):
                continue
            name = str(trait.get("name", "")).lower()
            if "size" in name or "us men" in name:
                value = trait.get("value")
                return str(value) if value else None
        return None
