# src/services/errors.py

"""Exception hierarchy shared by sources, services and the outer layers."""


class RetailRadarError(Exception):
    """Base class for all retail_radar errors."""


class SourceError(RetailRadarError):
    """A data source failed to produce products.

    ``status_code`` carries the upstream HTTP status when the failure
    came from an HTTP response.
    """

    def __init__(
        self, message: str, status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code


class EmptyResultError(SourceError):
    """A source answered successfully but with zero products."""


class CircuitOpenError(RetailRadarError):
    """A call was rejected because the source's breaker is open."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Circuit breaker {name} is OPEN")
        self.name = name


class AllSourcesFailedError(RetailRadarError):
    """Every configured source failed for the current request."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__(f"All sources failed: {'; '.join(errors)}")
        self.errors = list(errors)


class QueryValidationError(RetailRadarError, ValueError):
    """Malformed brand or query parameters."""


class InvalidCursorError(QueryValidationError):
    """A pagination cursor that cannot be decoded."""
