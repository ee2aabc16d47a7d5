# tests/test_protected_source.py

"""Tests for ProtectedSource (source + breaker)."""

import unittest

from src.models.product import Product
from src.services.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerOptions,
    CircuitState,
)
from src.services.errors import (
    CircuitOpenError,
    EmptyResultError,
    SourceError,
)
from src.services.protected_source import ProtectedSource


def _product(name: str = "Dunk Low") -> Product:
    return Product(
        id="p1",
        name=name,
        brand="Nike",
        retail_price=110.0,
        current_price=90.0,
        url=f"https://stockx.com/{name.lower().replace(' ', '-')}",
    )


class StubSource:
    """Synchronous DataSource double."""

    def __init__(
        self,
        products: list[Product] | None = None,
        healthy: bool = True,
        error: Exception | None = None,
    ) -> None:
        self.products = products or []
        self.healthy = healthy
        self.error = error
        self.fetch_calls = 0

    def fetch(self, brand: str) -> list[Product]:
        self.fetch_calls += 1
        if self.error:
            raise self.error
        return list(self.products)

    def is_healthy(self) -> bool:
        if self.error:
            raise self.error
        return self.healthy


def _protect(source: StubSource, threshold: int = 3) -> ProtectedSource:
    return ProtectedSource(
        source,
        CircuitBreaker(
            "stub",
            CircuitBreakerOptions(failure_threshold=threshold),
            clock=lambda: 0.0,
        ),
    )


class TestProtectedSource(unittest.IsolatedAsyncioTestCase):
    """Fetch and health behaviour through the breaker."""

    async def test_fetch_returns_products(self) -> None:
        protected = _protect(StubSource([_product()]))
        products = await protected.fetch("nike")
        self.assertEqual(len(products), 1)
        self.assertEqual(protected.name, "stub")

    async def test_empty_fetch_counts_as_failure(self) -> None:
        protected = _protect(StubSource([]))
        with self.assertRaises(EmptyResultError):
            await protected.fetch("nike")
        self.assertEqual(protected.get_stats().failure_count, 1)

    async def test_repeated_empty_fetches_open_circuit(self) -> None:
        source = StubSource([])
        protected = _protect(source, threshold=2)
        for _ in range(2):
            with self.assertRaises(EmptyResultError):
                await protected.fetch("nike")
        self.assertEqual(protected.get_stats().state, CircuitState.OPEN)
        with self.assertRaises(CircuitOpenError):
            await protected.fetch("nike")
        self.assertEqual(source.fetch_calls, 2)

    async def test_is_healthy_true(self) -> None:
        self.assertTrue(await _protect(StubSource()).is_healthy())

    async def test_is_healthy_false_without_counting(self) -> None:
        protected = _protect(StubSource(healthy=False))
        self.assertFalse(await protected.is_healthy())
        self.assertEqual(protected.get_stats().failure_count, 0)

    async def test_is_healthy_swallows_errors(self) -> None:
        protected = _protect(
            StubSource(error=SourceError("connection reset"))
        )
        self.assertFalse(await protected.is_healthy())
        self.assertEqual(protected.get_stats().failure_count, 1)

    async def test_is_healthy_false_when_open(self) -> None:
        protected = _protect(
            StubSource(error=SourceError("down")), threshold=1
        )
        with self.assertRaises(SourceError):
            await protected.fetch("nike")
        self.assertFalse(await protected.is_healthy())

    async def test_reset_closes_breaker(self) -> None:
        protected = _protect(
            StubSource(error=SourceError("down")), threshold=1
        )
        with self.assertRaises(SourceError):
            await protected.fetch("nike")
        protected.reset()
        self.assertEqual(
            protected.get_stats().state, CircuitState.CLOSED
        )


if __name__ == "__main__":
    unittest.main()
