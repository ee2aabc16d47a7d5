# src/api/app.py

"""FastAPI surface over the catalog service."""

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from src.filters.query_validator import QueryValidator
from src.services.catalog_service import CatalogService
from src.services.errors import AllSourcesFailedError, QueryValidationError

logger = logging.getLogger("retail_radar.api")


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def success(data: Any, status_code: int = 200) -> JSONResponse:
    """Wrap *data* in the standard success envelope."""
    return JSONResponse(
        {"success": True, "data": data, "timestamp": _timestamp()},
        status_code=status_code,
    )


def failure(code: str, message: str, status_code: int) -> JSONResponse:
    """Wrap an error in the standard failure envelope."""
    return JSONResponse(
        {
            "success": False,
            "error": {"code": code, "message": message},
            "timestamp": _timestamp(),
        },
        status_code=status_code,
    )


def create_app(service: CatalogService | None = None) -> FastAPI:
    """Build the API; a default service is wired on first use."""
    app = FastAPI(title="Retail Radar API")
    app.state.service = service

    def get_service(request: Request) -> CatalogService:
        if request.app.state.service is None:
            request.app.state.service = CatalogService.from_settings()
        return request.app.state.service

    @app.exception_handler(QueryValidationError)
    async def _validation_error(
        request: Request, exc: QueryValidationError,
    ) -> JSONResponse:
        logger.info("Validation error on %s: %s", request.url.path, exc)
        return failure("VALIDATION_ERROR", str(exc), 400)

    @app.exception_handler(AllSourcesFailedError)
    async def _sources_failed(
        request: Request, exc: AllSourcesFailedError,
    ) -> JSONResponse:
        logger.error("Upstream failure on %s: %s", request.url.path, exc)
        return failure("EXTERNAL_API_ERROR", str(exc), 502)

    @app.get("/healthz")
    async def healthz() -> JSONResponse:
        return success({"status": "ok"})

    # Registered ahead of the brand route so it wins for "supreme"
    @app.get("/api/v1/supreme/below-retail")
    async def supreme_below_retail(
        request: Request,
        service: CatalogService = Depends(get_service),
    ) -> JSONResponse:
        query = QueryValidator.validate(dict(request.query_params))
        page = await service.get_supreme_below_retail(query)
        return success(page.to_dict())

    @app.get("/api/v1/{brand}/below-retail")
    async def below_retail(
        brand: str,
        request: Request,
        service: CatalogService = Depends(get_service),
    ) -> JSONResponse:
        brand = QueryValidator.validate_brand(brand)
        query = QueryValidator.validate(dict(request.query_params))
        page = await service.get_below_retail(brand, query)
        return success(page.to_dict())

    @app.get("/api/v1/{brand}/price-history")
    async def price_history(
        brand: str,
        url: str = "",
        service: CatalogService = Depends(get_service),
    ) -> JSONResponse:
        QueryValidator.validate_brand(brand)
        if not url.strip():
            msg = "Invalid query parameters (validation): url: is required"
            raise QueryValidationError(msg)
        snapshots = await service.get_price_history(url.strip())
        return success([s.to_dict() for s in snapshots])

    @app.get("/api/v1/{brand}/adapter-stats")
    async def adapter_stats(
        brand: str,
        service: CatalogService = Depends(get_service),
    ) -> JSONResponse:
        QueryValidator.validate_brand(brand)
        return success([s.to_dict() for s in service.get_adapter_stats()])

    @app.get("/api/v1/{brand}/health")
    async def health(
        brand: str,
        service: CatalogService = Depends(get_service),
    ) -> JSONResponse:
        QueryValidator.validate_brand(brand)
        results = await service.get_health_status()
        return success([r.to_dict() for r in results])

    @app.post("/api/v1/{brand}/reset-circuit-breakers")
    async def reset_breakers(
        brand: str,
        service: CatalogService = Depends(get_service),
    ) -> JSONResponse:
        brand = QueryValidator.validate_brand(brand)
        service.reset_circuit_breakers()
        logger.info("Circuit breakers reset via API (%s)", brand)
        return success({"message": "Circuit breakers reset"})

    return app
