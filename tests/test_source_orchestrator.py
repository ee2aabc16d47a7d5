# tests/test_source_orchestrator.py

"""Tests for SourceOrchestrator fallback logic."""

import asyncio
import unittest
from unittest.mock import patch

from src.models.product import Product
from src.services.circuit_breaker import CircuitState
from src.services.errors import AllSourcesFailedError, SourceError
from src.services.source_orchestrator import (
    SourceConfig,
    SourceOrchestrator,
)


def _product(name: str, source: str) -> Product:
    return Product(
        id=name,
        name=name,
        brand="Nike",
        retail_price=120.0,
        current_price=100.0,
        url=f"https://stockx.com/{name}",
        source=source,
    )


class FakeSource:
    """Records every call into a shared log."""

    def __init__(
        self,
        name: str,
        log: list[str],
        products: list[Product] | None = None,
        healthy: bool = True,
        error: Exception | None = None,
    ) -> None:
        self.name = name
        self.log = log
        self.products = products or []
        self.healthy = healthy
        self.error = error
        self.fetch_calls = 0

    def fetch(self, brand: str) -> list[Product]:
        self.fetch_calls += 1
        self.log.append(f"fetch:{self.name}")
        if self.error:
            raise self.error
        return list(self.products)

    def is_healthy(self) -> bool:
        self.log.append(f"health:{self.name}")
        return self.healthy


class TestSourceOrchestrator(unittest.IsolatedAsyncioTestCase):
    """Priority order, health gating, retries and aggregation."""

    def setUp(self) -> None:
        self.log: list[str] = []
        self.delays: list[float] = []

    async def _sleep(self, delay: float) -> None:
        self.delays.append(delay)

    def _orchestrator(
        self, *configs: SourceConfig, deadline: float | None = None,
    ) -> SourceOrchestrator:
        return SourceOrchestrator(
            list(configs),
            clock=lambda: 0.0,
            sleep=self._sleep,
            deadline=deadline,
        )

    async def test_sources_tried_in_priority_order(self) -> None:
        primary = FakeSource(
            "primary", self.log, [_product("a", "primary")]
        )
        secondary = FakeSource(
            "secondary", self.log, [_product("b", "secondary")]
        )
        orch = self._orchestrator(
            SourceConfig(secondary, "secondary", priority=2),
            SourceConfig(primary, "primary", priority=1),
        )
        products = await orch.fetch("nike")
        self.assertEqual([p.source for p in products], ["primary"])
        self.assertEqual(self.log, ["health:primary", "fetch:primary"])
        self.assertEqual(
            [s.name for s in orch.sources], ["primary", "secondary"]
        )

    async def test_unhealthy_source_skipped(self) -> None:
        primary = FakeSource("primary", self.log, healthy=False)
        secondary = FakeSource(
            "secondary", self.log, [_product("b", "secondary")]
        )
        orch = self._orchestrator(
            SourceConfig(primary, "primary", priority=1),
            SourceConfig(secondary, "secondary", priority=2),
        )
        products = await orch.fetch("nike")
        self.assertEqual(products[0].source, "secondary")
        self.assertEqual(primary.fetch_calls, 0)

    async def test_unhealthy_first_of_three(self) -> None:
        first = FakeSource("A", self.log, healthy=False)
        second = FakeSource(
            "B", self.log,
            [_product("b1", "B"), _product("b2", "B")],
        )
        third = FakeSource("C", self.log, [_product("c", "C")])
        orch = self._orchestrator(
            SourceConfig(third, "C", priority=3),
            SourceConfig(first, "A", priority=1),
            SourceConfig(second, "B", priority=2),
        )
        with self.assertLogs("retail_radar.orchestrator", "WARNING") as logs:
            products = await orch.fetch("nike")
        self.assertEqual([p.id for p in products], ["b1", "b2"])
        self.assertEqual(first.fetch_calls, 0)
        self.assertEqual(third.fetch_calls, 0)
        self.assertNotIn("health:C", self.log)
        self.assertTrue(
            any("Source A is unhealthy" in line for line in logs.output)
        )

    async def test_skip_reasons_reported_when_all_fail(self) -> None:
        first = FakeSource("A", self.log, healthy=False)
        second = FakeSource("B", self.log)
        orch = self._orchestrator(
            SourceConfig(first, "A", priority=1),
            SourceConfig(second, "B", priority=2, retry_count=1),
        )
        with self.assertRaises(AllSourcesFailedError) as ctx:
            await orch.fetch("nike")
        self.assertEqual(ctx.exception.errors[0], "A source is unhealthy")

    async def test_failing_source_retried_then_falls_back(self) -> None:
        primary = FakeSource(
            "primary", self.log, error=SourceError("HTTP 503", 503)
        )
        secondary = FakeSource(
            "secondary", self.log, [_product("b", "secondary")]
        )
        orch = self._orchestrator(
            SourceConfig(
                primary, "primary", priority=1,
                retry_count=2, retry_delay=5.0,
            ),
            SourceConfig(secondary, "secondary", priority=2),
        )
        products = await orch.fetch("nike")
        self.assertEqual(products[0].source, "secondary")
        self.assertEqual(primary.fetch_calls, 2)
        self.assertEqual(self.delays, [5.0])

    async def test_empty_result_falls_back(self) -> None:
        primary = FakeSource("primary", self.log, [])
        secondary = FakeSource(
            "secondary", self.log, [_product("b", "secondary")]
        )
        orch = self._orchestrator(
            SourceConfig(primary, "primary", priority=1, retry_count=3),
            SourceConfig(secondary, "secondary", priority=2),
        )
        products = await orch.fetch("nike")
        self.assertEqual(products[0].source, "secondary")
        self.assertEqual(primary.fetch_calls, 3)
        stats = orch.get_stats()
        self.assertEqual(stats[0].state, CircuitState.OPEN)
        self.assertEqual(stats[1].state, CircuitState.CLOSED)

    async def test_results_never_merged(self) -> None:
        primary = FakeSource(
            "primary", self.log,
            [_product("a", "primary"), _product("c", "primary")],
        )
        secondary = FakeSource(
            "secondary", self.log, [_product("b", "secondary")]
        )
        orch = self._orchestrator(
            SourceConfig(primary, "primary", priority=1),
            SourceConfig(secondary, "secondary", priority=2),
        )
        products = await orch.fetch("nike")
        self.assertEqual([p.name for p in products], ["a", "c"])
        self.assertEqual(secondary.fetch_calls, 0)

    async def test_all_failed_lists_every_error(self) -> None:
        primary = FakeSource("primary", self.log, healthy=False)
        secondary = FakeSource(
            "secondary", self.log, error=SourceError("boom")
        )
        orch = self._orchestrator(
            SourceConfig(primary, "primary", priority=1),
            SourceConfig(
                secondary, "secondary", priority=2, retry_count=1
            ),
        )
        with self.assertRaises(AllSourcesFailedError) as ctx:
            await orch.fetch("nike")
        self.assertEqual(
            ctx.exception.errors,
            ["primary source is unhealthy", "boom"],
        )
        self.assertTrue(
            str(ctx.exception).startswith("All sources failed: ")
        )

    async def test_open_circuit_source_skipped_next_time(self) -> None:
        primary = FakeSource(
            "primary", self.log, error=SourceError("HTTP 500", 500)
        )
        secondary = FakeSource(
            "secondary", self.log, [_product("b", "secondary")]
        )
        orch = self._orchestrator(
            SourceConfig(primary, "primary", priority=1, retry_count=3),
            SourceConfig(secondary, "secondary", priority=2),
        )
        await orch.fetch("nike")
        self.assertEqual(primary.fetch_calls, 3)

        self.log.clear()
        await orch.fetch("nike")
        # Open breaker fails the health gate before touching the source
        self.assertEqual(primary.fetch_calls, 3)
        self.assertNotIn("health:primary", self.log)

    async def test_deadline_exceeded(self) -> None:
        primary = FakeSource(
            "primary", self.log, error=SourceError("HTTP 503", 503)
        )

        async def slow_sleep(delay: float) -> None:
            await asyncio.sleep(10)

        orch = SourceOrchestrator(
            [SourceConfig(primary, "primary", priority=1)],
            clock=lambda: 0.0,
            sleep=slow_sleep,
            deadline=0.05,
        )
        with self.assertRaises(AllSourcesFailedError) as ctx:
            await orch.fetch("nike")
        self.assertIn("deadline", str(ctx.exception))

    async def test_reset_all_circuit_breakers(self) -> None:
        primary = FakeSource("primary", self.log, [])
        orch = self._orchestrator(
            SourceConfig(primary, "primary", priority=1, retry_count=3),
        )
        with self.assertRaises(AllSourcesFailedError):
            await orch.fetch("nike")
        self.assertEqual(orch.get_stats()[0].state, CircuitState.OPEN)
        orch.reset_all_circuit_breakers()
        self.assertEqual(
            orch.get_stats()[0].state, CircuitState.CLOSED
        )

    async def test_get_health_status(self) -> None:
        orch = self._orchestrator(
            SourceConfig(
                FakeSource("up", self.log), "up", priority=1
            ),
            SourceConfig(
                FakeSource("down", self.log, healthy=False),
                "down",
                priority=2,
            ),
        )
        results = await orch.get_health_status()
        self.assertEqual(
            [(r.source_id, r.healthy) for r in results],
            [("up", True), ("down", False)],
        )


class TestFromSettings(unittest.TestCase):
    """Building the chain from the source registry."""

    def test_registry_order_and_retry_policy(self) -> None:
        class NoopSource:
            def fetch(self, brand: str) -> list[Product]:
                return []

            def is_healthy(self) -> bool:
                return True

        with patch(
            "src.services.source_orchestrator._load_source_class",
            return_value=NoopSource,
        ):
            orch = SourceOrchestrator.from_settings()

        self.assertEqual(
            [s.name for s in orch.sources],
            [
                "StockX Page Scraper",
                "Official StockX API",
                "RapidAPI StockX",
            ],
        )
        self.assertEqual(
            [(link.retry_count, link.retry_delay) for link in orch._chain],
            [(2, 5.0), (3, 2.0), (3, 2.0)],
        )


if __name__ == "__main__":
    unittest.main()
