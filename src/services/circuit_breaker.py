# src/services/circuit_breaker.py

"""Per-source circuit breaker with automatic recovery probing."""

import logging
import threading
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, TypeVar

from src.config.settings import Settings
from src.services.errors import CircuitOpenError, QueryValidationError

logger = logging.getLogger("retail_radar.circuit_breaker")

T = TypeVar("T")

_CLIENT_ERROR_CODES: frozenset[int] = frozenset({400, 401, 403})
_CLIENT_ERROR_MARKERS: tuple[str, ...] = ("validation", "400", "401", "403")


class CircuitState(str, Enum):
    """Breaker states."""

    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


def is_systemic_error(error: BaseException) -> bool:
    """Return False for client-side errors that say nothing about health.

    Validation problems and 400/401/403 responses propagate to the
    caller but never count against the breaker.
    """
    if isinstance(error, QueryValidationError):
        return False
    status = getattr(error, "status_code", None)
    if status in _CLIENT_ERROR_CODES:
        return False
    message = str(error).lower()
    return not any(marker in message for marker in _CLIENT_ERROR_MARKERS)


@dataclass
class CircuitBreakerOptions:
    """Tuning knobs for a :class:`CircuitBreaker`."""

    failure_threshold: int = Settings.CIRCUIT_BREAKER_THRESHOLD
    timeout: float = Settings.CIRCUIT_BREAKER_TIMEOUT
    monitoring_period: float = (
        Settings.CIRCUIT_BREAKER_MONITORING_PERIOD
    )
    expected_errors: Callable[[BaseException], bool] = field(
        default=is_systemic_error
    )

    def __post_init__(self) -> None:
        if self.failure_threshold < 1:
            msg = "failure_threshold must be >= 1"
            raise ValueError(msg)


@dataclass
class CircuitBreakerStats:
    """Point-in-time view of a breaker for operators."""

    name: str
    state: CircuitState
    failure_count: int
    last_failure_time: str | None
    next_attempt: str | None

    def to_dict(self) -> dict[str, Any]:
        """Serialise with the state as its plain string value."""
        return {
            "name": self.name,
            "state": self.state.value,
            "failureCount": self.failure_count,
            "lastFailureTime": self.last_failure_time,
            "nextAttempt": self.next_attempt,
        }


def _iso(timestamp: float | None) -> str | None:
    """Format an epoch timestamp as ISO-8601 UTC, or None."""
    if timestamp is None:
        return None
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


class CircuitBreaker:
    """CLOSED -> OPEN -> HALF_OPEN state machine around one dependency.

    CLOSED lets calls through and counts systemic failures. Reaching
    ``failure_threshold`` opens the circuit for ``timeout`` seconds,
    during which calls fail fast with :class:`CircuitOpenError`. The
    first call after the cooldown runs in HALF_OPEN: success closes the
    circuit, failure re-opens it and restarts the cooldown.

    All state transitions happen under a lock, so one instance may be
    shared by concurrent coroutines and worker threads.
    """

    def __init__(
        self,
        name: str,
        options: CircuitBreakerOptions | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.name = name
        self.options = options or CircuitBreakerOptions()
        self._clock = clock
        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: float | None = None
        self._next_attempt: float | None = None

    @property
    def state(self) -> CircuitState:
        """Current breaker state."""
        return self._state

    @property
    def failure_count(self) -> int:
        """Counted failures since the last success or reset."""
        return self._failure_count

    async def execute(
        self, operation: Callable[[], Awaitable[T]],
    ) -> T:
        """Run *operation* under breaker protection.

        Raises :class:`CircuitOpenError` without calling *operation*
        while the circuit is open; otherwise returns its result or
        re-raises its exception after recording the outcome.
        """
        self._before_call()
        try:
            result = await operation()
        except Exception as exc:
            self._on_failure(exc)
            raise
        self._on_success()
        return result

    def _before_call(self) -> None:
        with self._lock:
            if self._state is not CircuitState.OPEN:
                return
            if (
                self._next_attempt is not None
                and self._clock() >= self._next_attempt
            ):
                self._state = CircuitState.HALF_OPEN
                logger.info(
                    "Circuit breaker %s moved to HALF_OPEN state",
                    self.name,
                )
                return
        raise CircuitOpenError(self.name)

    def _on_success(self) -> None:
        with self._lock:
            self._failure_count = 0
            self._last_failure_time = None
            if self._state is CircuitState.HALF_OPEN:
                self._state = CircuitState.CLOSED
                logger.info(
                    "Circuit breaker %s moved to CLOSED state",
                    self.name,
                )

    def _on_failure(self, error: BaseException) -> None:
        if not self.options.expected_errors(error):
            logger.debug(
                "Circuit breaker %s ignoring non-systemic error: %s",
                self.name,
                error,
            )
            return

        with self._lock:
            now = self._clock()
            self._failure_count += 1
            self._last_failure_time = now
            logger.warning(
                "Circuit breaker %s failure %d/%d: %s",
                self.name,
                self._failure_count,
                self.options.failure_threshold,
                error,
            )
            if (
                self._state is CircuitState.HALF_OPEN
                or self._failure_count
                >= self.options.failure_threshold
            ):
                self._state = CircuitState.OPEN
                self._next_attempt = now + self.options.timeout
                logger.error(
                    "Circuit breaker %s moved to OPEN state "
                    "(failures=%d, next attempt %s)",
                    self.name,
                    self._failure_count,
                    _iso(self._next_attempt),
                )

    def get_stats(self) -> CircuitBreakerStats:
        """Snapshot the breaker for observability."""
        with self._lock:
            return CircuitBreakerStats(
                name=self.name,
                state=self._state,
                failure_count=self._failure_count,
                last_failure_time=_iso(self._last_failure_time),
                next_attempt=_iso(self._next_attempt),
            )

    def reset(self) -> None:
        """Force CLOSED with zero failures (operator escape hatch)."""
        with self._lock:
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._last_failure_time = None
            self._next_attempt = None
        logger.info("Circuit breaker %s has been reset", self.name)
