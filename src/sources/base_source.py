# src/sources/base_source.py

"""Data source contract and the shared HTTP plumbing of concrete sources."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Protocol, runtime_checkable

from curl_cffi import requests as curl_requests

from src.config.settings import Settings
from src.models.product import Product, calculate_discount
from src.services.errors import SourceError


@runtime_checkable
class DataSource(Protocol):
    """Anything that can list a brand's products and report health."""

    def fetch(self, brand: str) -> list[Product]:
        """Return candidate products for *brand*; raise on failure."""
        ...

    def is_healthy(self) -> bool:
        """Cheap reachability probe; must never raise."""
        ...


class HttpSource(ABC):
    """Base class for sources backed by a JSON HTTP API."""

    source_id: str = ""
    base_url: str = ""

    def __init__(self, api_key: str) -> None:
        self.api_key = api_key
        self.logger = logging.getLogger(
            f"retail_radar.sources.{self.source_id}"
        )
        self.settings = Settings()
        self.session = curl_requests.Session(
            impersonate=self.settings.IMPERSONATE_BROWSER
        )

    @abstractmethod
    def _auth_headers(self) -> dict[str, str]:
        """Headers carrying this API's credentials."""
        ...

    @abstractmethod
    def fetch(self, brand: str) -> list[Product]:
        """Return candidate products for *brand*."""
        ...

    @abstractmethod
    def is_healthy(self) -> bool:
        """Probe the API without raising."""
        ...

    def _get_json(
        self, path: str, params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """GET ``base_url + path`` and decode the JSON body.

        Raises :class:`SourceError` with the HTTP status attached so the
        circuit breaker can tell client errors from outages.
        """
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.get(
                url,
                params=params,
                headers=self._auth_headers(),
                timeout=self.settings.REQUEST_TIMEOUT,
            )
        except Exception as exc:
            msg = f"{self.source_id} request to {path} failed: {exc}"
            raise SourceError(msg) from exc

        if resp.status_code != 200:
            msg = (
                f"{self.source_id} returned HTTP {resp.status_code} "
                f"for {path}"
            )
            raise SourceError(msg, status_code=resp.status_code)

        try:
            data: Any = resp.json()
        except ValueError as exc:
            msg = f"{self.source_id} returned invalid JSON for {path}"
            raise SourceError(msg) from exc
        if not isinstance(data, dict):
            msg = f"{self.source_id} returned unexpected payload for {path}"
            raise SourceError(msg)
        return data

    def _probe(self, path: str) -> bool:
        """Return True when ``path`` answers HTTP 200."""
        try:
            resp = self.session.get(
                f"{self.base_url}{path}",
                headers=self._auth_headers(),
                timeout=self.settings.REQUEST_TIMEOUT,
            )
            return resp.status_code == 200
        except Exception as exc:
            self.logger.warning(
                "[%s] Health check failed: %s", self.source_id, exc,
            )
            return False

    def _build_product(
        self,
        *,
        product_id: str,
        name: str,
        brand: str,
        retail_price: float,
        current_price: float,
        url_key: str,
        colorway: str = "",
        size: str | None = None,
        image_url: str | None = None,
        sku: str | None = None,
    ) -> Product | None:
        """Map normalised API fields to a Product, or None if unpriced."""
        if retail_price <= 0 or current_price <= 0:
            return None
        return Product(
            id=product_id,
            name=name,
            brand=brand,
            colorway=colorway,
            retail_price=retail_price,
            current_price=current_price,
            discount_percentage=calculate_discount(
                retail_price, current_price
            ),
            size=size,
            sku=sku,
            image_url=image_url or None,
            url=f"https://stockx.com/{url_key}",
            source=self.source_id,
        )
