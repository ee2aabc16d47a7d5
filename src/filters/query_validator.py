# src/filters/query_validator.py

"""Parse and validate raw below-retail query parameters."""

import logging
import re
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from src.models.page import BelowRetailQuery
from src.services.errors import InvalidCursorError, QueryValidationError

logger = logging.getLogger("retail_radar.filters")

_BRAND_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9 &'.\-]{0,63}$")


class QueryValidator:
    """Turns untrusted request parameters into a :class:`BelowRetailQuery`.

    Every problem is reported in one :class:`QueryValidationError`, so
    the caller sees all bad fields at once. Nothing here touches a data
    source.
    """

    @staticmethod
    def validate_brand(brand: str) -> str:
        """Return the stripped brand or raise on a malformed one."""
        cleaned = (brand or "").strip()
        if not _BRAND_RE.match(cleaned):
            msg = (
                "Invalid path parameters: brand must be 1-64 letters, "
                "digits, spaces or &'.- characters (validation)"
            )
            raise QueryValidationError(msg)
        return cleaned

    @staticmethod
    def validate(params: Mapping[str, Any]) -> BelowRetailQuery:
        """Validate ``minDiscount``, ``maxPrice``, ``size``, ``cursor``
        and ``limit``; unknown keys are ignored."""
        try:
            return BelowRetailQuery.model_validate(dict(params))
        except ValidationError as exc:
            errors = exc.errors()
            problems = [
                f"{'.'.join(str(part) for part in err['loc']) or 'query'}: "
                f"{err['msg']}"
                for err in errors
            ]
            msg = (
                "Invalid query parameters (validation): "
                + ", ".join(problems)
            )
            logger.info("Rejected query: %s", msg)
            if all(err["loc"][:1] == ("cursor",) for err in errors):
                raise InvalidCursorError(msg) from exc
            raise QueryValidationError(msg) from exc
