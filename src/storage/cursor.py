# src/storage/cursor.py

"""Opaque keyset cursors: base64 of ``"<discount>|<created_at>"``."""

import base64
import binascii
from datetime import datetime, timezone

from src.services.errors import InvalidCursorError


def format_timestamp(value: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a ``Z`` suffix.

    This is also the storage format of catalog timestamps, so string
    comparison in SQL matches chronological order.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return (
        value.strftime("%Y-%m-%dT%H:%M:%S.")
        + f"{value.microsecond // 1000:03d}Z"
    )


def parse_timestamp(text: str) -> datetime:
    """Inverse of :func:`format_timestamp` (accepts any ISO-8601)."""
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    value = datetime.fromisoformat(text)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def encode_cursor(discount: float, created_at: datetime) -> str:
    """Encode the sort key of the last row on a page."""
    raw = f"{discount:g}|{format_timestamp(created_at)}"
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


def decode_cursor_text(cursor: str) -> str:
    """Return the decoded ``"<discount>|<timestamp>"`` payload."""
    try:
        return base64.b64decode(
            cursor.encode("ascii"), validate=True
        ).decode("utf-8")
    except (binascii.Error, UnicodeError, ValueError) as exc:
        msg = "Invalid pagination cursor"
        raise InvalidCursorError(msg) from exc


def decode_cursor(cursor: str) -> tuple[float, datetime]:
    """Decode a cursor into ``(discount, created_at)``."""
    discount_text, sep, created_text = decode_cursor_text(
        cursor
    ).partition("|")
    if not sep or not discount_text or not created_text:
        msg = "Invalid pagination cursor"
        raise InvalidCursorError(msg)
    try:
        return float(discount_text), parse_timestamp(created_text)
    except ValueError as exc:
        msg = "Invalid pagination cursor"
        raise InvalidCursorError(msg) from exc
