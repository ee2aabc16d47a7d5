# src/services/protected_source.py

"""A data source guarded by its own circuit breaker."""

import asyncio
import logging

from src.models.product import Product
from src.services.circuit_breaker import CircuitBreaker, CircuitBreakerStats
from src.services.errors import EmptyResultError
from src.sources.base_source import DataSource

logger = logging.getLogger("retail_radar.protected_source")


class ProtectedSource:
    """Routes every fetch and health probe through one breaker.

    Blocking source calls run in a worker thread. An empty fetch is
    raised as :class:`EmptyResultError` inside the breaker so it counts
    as a failure, like any other error.
    """

    def __init__(
        self, source: DataSource, breaker: CircuitBreaker,
    ) -> None:
        self.source = source
        self.breaker = breaker

    @property
    def name(self) -> str:
        """Shared name of the source and its breaker."""
        return self.breaker.name

    def _fetch_nonempty(self, brand: str) -> list[Product]:
        logger.info(
            "Executing fetch for %s through %s", brand, self.name
        )
        products = self.source.fetch(brand)
        if not products:
            msg = f"{self.name} returned no products for {brand}"
            raise EmptyResultError(msg)
        return products

    async def fetch(self, brand: str) -> list[Product]:
        """Fetch *brand* products; raises when the breaker is open."""
        return await self.breaker.execute(
            lambda: asyncio.to_thread(self._fetch_nonempty, brand)
        )

    async def is_healthy(self) -> bool:
        """Health probe through the breaker; never raises."""
        try:
            return await self.breaker.execute(
                lambda: asyncio.to_thread(self.source.is_healthy)
            )
        except Exception as exc:
            logger.warning("%s health check failed: %s", self.name, exc)
            return False

    def get_stats(self) -> CircuitBreakerStats:
        """Breaker stats for this source."""
        return self.breaker.get_stats()

    def reset(self) -> None:
        """Close this source's breaker."""
        self.breaker.reset()
