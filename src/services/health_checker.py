# src/services/health_checker.py

"""Concurrent health probing of every protected source."""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any

from src.services.protected_source import ProtectedSource

logger = logging.getLogger("retail_radar.health")

_SLOW_THRESHOLD_MS = 5000.0


@dataclass
class HealthResult:
    """Result of a single source health check."""

    source_id: str
    healthy: bool
    status: str  # "ok", "slow", "down"
    latency_ms: float
    circuit_state: str
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Serialise for the API envelope."""
        return {
            "name": self.source_id,
            "healthy": self.healthy,
            "status": self.status,
            "latencyMs": round(self.latency_ms, 1),
            "circuitBreakerState": self.circuit_state,
            "message": self.message,
        }


async def probe_source(source: ProtectedSource) -> HealthResult:
    """Probe one source through its breaker and time the round trip."""
    start = time.monotonic()
    healthy = await source.is_healthy()
    elapsed_ms = (time.monotonic() - start) * 1000
    state = source.get_stats().state.value

    if not healthy:
        return HealthResult(
            source_id=source.name,
            healthy=False,
            status="down",
            latency_ms=elapsed_ms,
            circuit_state=state,
            message=(
                "Circuit open" if state == "OPEN" else "Probe failed"
            ),
        )
    if elapsed_ms > _SLOW_THRESHOLD_MS:
        return HealthResult(
            source_id=source.name,
            healthy=True,
            status="slow",
            latency_ms=elapsed_ms,
            circuit_state=state,
            message="High latency",
        )
    return HealthResult(
        source_id=source.name,
        healthy=True,
        status="ok",
        latency_ms=elapsed_ms,
        circuit_state=state,
    )


class HealthChecker:
    """Runs concurrent health probes against all sources.

    Probes are independent of priority order; one probe blowing up is
    reported as a ``down`` entry and never aborts the others.
    """

    def __init__(self, sources: list[ProtectedSource]) -> None:
        self.sources = sources

    async def check_all(self) -> list[HealthResult]:
        """Probe every source concurrently."""
        outcomes = await asyncio.gather(
            *(probe_source(src) for src in self.sources),
            return_exceptions=True,
        )

        results: list[HealthResult] = []
        for src, outcome in zip(self.sources, outcomes):
            if isinstance(outcome, HealthResult):
                results.append(outcome)
                continue
            logger.error(
                "Health probe for %s raised: %s",
                src.name,
                outcome,
                exc_info=outcome,
            )
            results.append(HealthResult(
                source_id=src.name,
                healthy=False,
                status="down",
                latency_ms=0.0,
                circuit_state="UNKNOWN",
                message=str(outcome)[:80],
            ))

        for r in results:
            logger.info(
                "Health check %s: %s (%.0fms, circuit %s) %s",
                r.source_id,
                r.status,
                r.latency_ms,
                r.circuit_state,
                r.message,
            )
        return results
