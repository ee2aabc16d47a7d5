# src/services/catalog_service.py

"""Cache-fronted, catalog-backed below-retail queries for one brand."""

import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Protocol
from urllib.parse import urlencode

from src.config.settings import Settings
from src.filters.deduplicator import ProductDeduplicator
from src.filters.product_filter import ProductFilter
from src.filters.product_validator import ProductValidator
from src.models.page import BelowRetailQuery, PaginatedResult
from src.models.price_snapshot import PriceSnapshot
from src.models.product import Product, utc_now
from src.services.circuit_breaker import CircuitBreakerStats
from src.services.health_checker import HealthResult
from src.services.source_orchestrator import SourceOrchestrator
from src.storage.catalog_db import CatalogDB
from src.storage.query_cache import ResultCache

logger = logging.getLogger("retail_radar.catalog_service")

SUPREME_BRAND = "supreme"


class Cache(Protocol):
    """Minimal key/value cache with per-entry TTL."""

    def get(self, key: str) -> Any | None: ...

    def set(
        self, key: str, value: Any, ttl_seconds: float | None = None,
    ) -> None: ...


@dataclass
class ReconcileSummary:
    """Outcome of merging one fetch into the catalog."""

    brand: str
    fetched: int = 0
    inserted: int = 0
    updated: int = 0
    dropped: int = 0


def build_cache_key(brand: str, query: BelowRetailQuery) -> str:
    """Deterministic key for one brand/query page."""
    return (
        f"{brand.lower()}-below-retail:"
        f"{urlencode(query.cache_params())}"
    )


class CatalogService:
    """Serves pages of below-retail products for a brand.

    A cache miss refreshes the catalog from the source chain before the
    page is read back from the catalog, so the answer reflects every
    product ever seen for the brand, not just the latest fetch.
    """

    def __init__(
        self,
        orchestrator: SourceOrchestrator,
        catalog: CatalogDB,
        cache: Cache | None = None,
        cache_ttl: float = Settings.CACHE_TTL,
    ) -> None:
        self.orchestrator = orchestrator
        self.catalog = catalog
        self.cache: Cache = cache if cache is not None else ResultCache()
        self.cache_ttl = cache_ttl

    @classmethod
    def from_settings(cls) -> "CatalogService":
        """Wire the default sources, catalog file and in-memory cache."""
        return cls(
            orchestrator=SourceOrchestrator.from_settings(),
            catalog=CatalogDB(Settings.CATALOG_DB_PATH),
        )

    # ── Queries ──────────────────────────────────────────

    async def get_below_retail(
        self, brand: str, query: BelowRetailQuery,
    ) -> PaginatedResult:
        """Return one page of *brand* products priced under retail.

        Raises :class:`AllSourcesFailedError` when the cache misses and
        no source produced products.
        """
        cache_key = build_cache_key(brand, query)

        cached = self._read_cache(cache_key)
        if cached is not None:
            logger.info("Returning cached %s products", brand)
            return cached

        await self.refresh_brand(brand)
        page = await asyncio.to_thread(self._read_page, brand, query)
        self._write_cache(cache_key, page)
        return page

    async def get_supreme_below_retail(
        self, query: BelowRetailQuery,
    ) -> PaginatedResult:
        """Shortcut for the Supreme catalog."""
        return await self.get_below_retail(SUPREME_BRAND, query)

    def _read_page(
        self, brand: str, query: BelowRetailQuery,
    ) -> PaginatedResult:
        rows = self.catalog.find_below_retail(
            brand, query, limit=query.limit + 1
        )
        has_next = len(rows) > query.limit
        rows = rows[: query.limit]
        total = self.catalog.count_below_retail(brand, query)
        cursor = self.catalog.generate_cursor(rows[-1]) if rows else None
        logger.info(
            "Catalog page for %s: %d rows, total=%d, has_next=%s",
            brand,
            len(rows),
            total,
            has_next,
        )
        return PaginatedResult(
            data=[row.to_product() for row in rows],
            cursor=cursor,
            has_next=has_next,
            total=total,
        )

    async def get_price_history(self, url: str) -> list[PriceSnapshot]:
        """Recorded asks for one product URL, oldest first."""
        return await asyncio.to_thread(self.catalog.get_price_history, url)

    # ── Refresh ──────────────────────────────────────────

    async def refresh_brand(self, brand: str) -> ReconcileSummary:
        """Fetch *brand* from the source chain and merge into the catalog."""
        fetched = await self.orchestrator.fetch(brand)
        products = self.prepare_products(fetched)
        summary = await asyncio.to_thread(
            self._reconcile, brand, products
        )
        summary.fetched = len(fetched)
        summary.dropped = len(fetched) - len(products)
        logger.info(
            "Refreshed %s: fetched=%d inserted=%d updated=%d dropped=%d",
            brand,
            summary.fetched,
            summary.inserted,
            summary.updated,
            summary.dropped,
        )
        return summary

    @staticmethod
    def prepare_products(products: list[Product]) -> list[Product]:
        """Validate, keep below-retail listings and collapse duplicates."""
        valid, _ = ProductValidator.validate(products)
        below, _ = ProductFilter.filter_below_retail(valid)
        unique, _ = ProductDeduplicator.deduplicate(below)
        return unique

    def _reconcile(
        self, brand: str, products: list[Product],
    ) -> ReconcileSummary:
        summary = ReconcileSummary(brand=brand)
        batch_start = utc_now()
        for offset, product in enumerate(products):
            # Keyset pages need distinct (discount, created_at) pairs
            now = batch_start + timedelta(milliseconds=offset)
            entry, created = self.catalog.upsert(product, now=now)
            self.catalog.record_snapshot(entry, product, observed_at=now)
            if created:
                summary.inserted += 1
            else:
                summary.updated += 1
        return summary

    # ── Cache ────────────────────────────────────────────

    def _read_cache(self, key: str) -> PaginatedResult | None:
        try:
            raw = self.cache.get(key)
            if raw is None:
                return None
            return PaginatedResult.from_dict(json.loads(raw))
        except Exception as exc:
            logger.warning("Cache read failed for %s: %s", key, exc)
            return None

    def _write_cache(self, key: str, page: PaginatedResult) -> None:
        try:
            self.cache.set(
                key, json.dumps(page.to_dict()), self.cache_ttl
            )
        except Exception as exc:
            logger.warning("Cache write failed for %s: %s", key, exc)

    # ── Operator surface ─────────────────────────────────

    def get_adapter_stats(self) -> list[CircuitBreakerStats]:
        """Breaker stats for every source, in priority order."""
        return self.orchestrator.get_stats()

    async def get_health_status(self) -> list[HealthResult]:
        """Probe every source."""
        return await self.orchestrator.get_health_status()

    def reset_circuit_breakers(self) -> None:
        """Force every source breaker back to CLOSED."""
        self.orchestrator.reset_all_circuit_breakers()

    def close(self) -> None:
        """Release the catalog connection."""
        self.catalog.close()
