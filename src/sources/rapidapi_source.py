# src/sources/rapidapi_source.py

"""Source backed by the RapidAPI StockX mirror."""

from typing import Any

from src.config.settings import Settings
from src.models.product import Product
from src.sources.base_source import HttpSource


class RapidApiSource(HttpSource):
    """Single-page ``/search`` lookup on stockx1.p.rapidapi.com."""

    source_id = "rapidapi"
    base_url = "https://stockx1.p.rapidapi.com"
    HOST = "stockx1.p.rapidapi.com"

    def __init__(self, api_key: str | None = None) -> None:
        super().__init__(api_key or Settings.RAPIDAPI_KEY)

    def _auth_headers(self) -> dict[str, str]:
        return {
            "X-RapidAPI-Key": self.api_key,
            "X-RapidAPI-Host": self.HOST,
        }

    def fetch(self, brand: str) -> list[Product]:
        """Search the mirror for *brand* shoes."""
        self.logger.info(
            "[%s] Fetching %s products", self.source_id, brand
        )
        payload = self._get_json(
            "/search",
            {"query": brand.lower(), "category": "shoes", "limit": 100},
        )
        data: dict[str, Any] = payload.get("data") or {}
        items: list[dict[str, Any]] = data.get("products") or []
        products = self._transform(items, brand)
        self.logger.info(
            "[%s] Found %d priced %s products",
            self.source_id,
            len(products),
            brand,
        )
        return products

    def is_healthy(self) -> bool:
        """Probe ``/ping``."""
        return self._probe("/ping")

    def _transform(
        self, items: list[dict[str, Any]], brand: str,
    ) -> list[Product]:
        products: list[Product] = []
        for item in items:
            if str(item.get("brand", "")).lower() != brand.lower():
                continue
            market: dict[str, Any] = item.get("market") or {}
            image: dict[str, Any] = item.get("image") or {}
            ask = market.get("lowest_ask")
            if ask is None:
                ask = market.get("last_sale")
            try:
                retail = float(item.get("retail_price") or 0)
                current = float(ask or 0)
            except (TypeError, ValueError):
                continue
            product = self._build_product(
                product_id=str(item.get("id", "")),
                name=str(item.get("title", "")),
                brand=str(item.get("brand", brand)),
                colorway=str(item.get("colorway") or ""),
                retail_price=retail,
                current_price=current,
                url_key=str(item.get("urlKey", "")),
                image_url=image.get("small"),
            )
            if product is not None:
                products.append(product)
        return products
