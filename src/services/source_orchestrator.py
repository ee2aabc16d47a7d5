# src/services/source_orchestrator.py

"""Priority-ordered fallback across circuit-protected data sources."""

import asyncio
import importlib
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from src.config.settings import Settings
from src.models.product import Product
from src.services.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerOptions,
    CircuitBreakerStats,
)
from src.services.errors import AllSourcesFailedError
from src.services.health_checker import HealthChecker, HealthResult
from src.services.protected_source import ProtectedSource
from src.sources.base_source import DataSource
from src.utils.retry import retry_with_backoff

logger = logging.getLogger("retail_radar.orchestrator")


@dataclass
class SourceConfig:
    """Registration of one source in the fallback chain."""

    source: DataSource
    name: str
    priority: int
    retry_count: int = Settings.RETRY_COUNT
    retry_delay: float = Settings.RETRY_BASE_DELAY


@dataclass
class _ChainLink:
    """A protected source plus its retry policy."""

    protected: ProtectedSource
    retry_count: int
    retry_delay: float


def _load_source_class(dotted_path: str) -> type[Any]:
    """Dynamically import a source class from its dotted module path."""
    module_path, class_name = dotted_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    cls: type[Any] = getattr(module, class_name)
    return cls


class SourceOrchestrator:
    """Tries sources in priority order and returns the first non-empty list.

    Each source gets its own breaker (threshold 3, 60s cooldown). The
    order is fixed at construction; only breaker state and health
    decide whether a source is skipped. Results are never merged across
    sources.
    """

    def __init__(
        self,
        configs: list[SourceConfig],
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        deadline: float | None = Settings.FETCH_DEADLINE,
    ) -> None:
        self._sleep = sleep
        self._deadline = deadline
        breaker_options = CircuitBreakerOptions(
            failure_threshold=Settings.CIRCUIT_BREAKER_THRESHOLD,
            timeout=Settings.CIRCUIT_BREAKER_TIMEOUT,
            monitoring_period=Settings.CIRCUIT_BREAKER_MONITORING_PERIOD,
        )
        self._chain: list[_ChainLink] = [
            _ChainLink(
                protected=ProtectedSource(
                    cfg.source,
                    CircuitBreaker(cfg.name, breaker_options, clock=clock),
                ),
                retry_count=cfg.retry_count,
                retry_delay=cfg.retry_delay,
            )
            for cfg in sorted(configs, key=lambda c: c.priority)
        ]
        self._health_checker = HealthChecker(self.sources)

    @classmethod
    def from_settings(cls) -> "SourceOrchestrator":
        """Build the chain from ``Settings.AVAILABLE_SOURCES``."""
        configs: list[SourceConfig] = []
        for entry in Settings.AVAILABLE_SOURCES:
            source_cls = _load_source_class(entry["source"])
            configs.append(SourceConfig(
                source=source_cls(),
                name=entry["label"],
                priority=int(entry["priority"]),
                retry_count=int(
                    entry.get("retry_count", Settings.RETRY_COUNT)
                ),
                retry_delay=float(
                    entry.get("retry_delay", Settings.RETRY_BASE_DELAY)
                ),
            ))
        return cls(configs)

    @property
    def sources(self) -> list[ProtectedSource]:
        """Protected sources in the order they are tried."""
        return [link.protected for link in self._chain]

    # ── Fetching ─────────────────────────────────────────

    async def fetch(self, brand: str) -> list[Product]:
        """Return the first non-empty product list for *brand*.

        Raises :class:`AllSourcesFailedError` listing every per-source
        failure when the chain is exhausted or the deadline expires.
        """
        errors: list[str] = []
        if self._deadline is None:
            return await self._walk_chain(brand, errors)
        try:
            return await asyncio.wait_for(
                self._walk_chain(brand, errors), timeout=self._deadline
            )
        except asyncio.TimeoutError:
            errors.append(
                f"fetch deadline of {self._deadline:.0f}s exceeded"
            )
            logger.error(
                "Source chain for %s timed out after %.0fs",
                brand,
                self._deadline,
            )
            raise AllSourcesFailedError(errors) from None

    async def _walk_chain(
        self, brand: str, errors: list[str],
    ) -> list[Product]:
        for link in self._chain:
            source = link.protected
            logger.info("Attempting to fetch products from %s", source.name)

            if not await source.is_healthy():
                logger.warning(
                    "Source %s is unhealthy, skipping", source.name
                )
                errors.append(f"{source.name} source is unhealthy")
                continue

            try:
                products = await retry_with_backoff(
                    lambda: source.fetch(brand),
                    max_retries=link.retry_count,
                    base_delay=link.retry_delay,
                    sleep=self._sleep,
                )
            except Exception as exc:
                logger.error(
                    "Error with source %s: %s",
                    source.name,
                    exc,
                    exc_info=True,
                )
                errors.append(str(exc))
                continue

            if products:
                logger.info(
                    "Successfully fetched %d products from %s",
                    len(products),
                    source.name,
                )
                return products

            message = f"{source.name} returned no products"
            logger.warning(message)
            errors.append(message)

        logger.error("All sources failed to fetch products: %s", errors)
        raise AllSourcesFailedError(errors)

    # ── Operator surface ─────────────────────────────────

    def get_stats(self) -> list[CircuitBreakerStats]:
        """Breaker stats for every source, in priority order."""
        return [link.protected.get_stats() for link in self._chain]

    async def get_health_status(self) -> list[HealthResult]:
        """Probe every source concurrently."""
        return await self._health_checker.check_all()

    def reset_all_circuit_breakers(self) -> None:
        """Force every breaker back to CLOSED."""
        for link in self._chain:
            link.protected.reset()
            logger.info(
                "Reset circuit breaker for %s", link.protected.name
            )
