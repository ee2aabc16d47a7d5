# tests/test_cursor.py

"""Tests for keyset pagination cursors."""

import base64
import unittest
from datetime import datetime, timezone

from src.services.errors import InvalidCursorError, QueryValidationError
from src.storage.cursor import (
    decode_cursor,
    decode_cursor_text,
    encode_cursor,
    format_timestamp,
    parse_timestamp,
)


def _b64(text: str) -> str:
    return base64.b64encode(text.encode()).decode()


class TestTimestamps(unittest.TestCase):
    """Millisecond UTC timestamp format."""

    def test_format_has_millis_and_z(self) -> None:
        value = datetime(2023, 1, 1, 12, 30, 5, 123456, tzinfo=timezone.utc)
        self.assertEqual(
            format_timestamp(value), "2023-01-01T12:30:05.123Z"
        )

    def test_naive_datetime_treated_as_utc(self) -> None:
        self.assertEqual(
            format_timestamp(datetime(2023, 1, 1)),
            "2023-01-01T00:00:00.000Z",
        )

    def test_parse_round_trip(self) -> None:
        parsed = parse_timestamp("2023-01-01T12:30:05.123Z")
        self.assertEqual(
            parsed,
            datetime(2023, 1, 1, 12, 30, 5, 123000, tzinfo=timezone.utc),
        )

    def test_string_order_matches_time_order(self) -> None:
        earlier = format_timestamp(datetime(2023, 1, 1, 9, 0, 0))
        later = format_timestamp(datetime(2023, 1, 1, 10, 0, 0))
        self.assertLess(earlier, later)


class TestCursor(unittest.TestCase):
    """Encoding and strict decoding of cursors."""

    def test_encoded_payload(self) -> None:
        cursor = encode_cursor(
            0.25, datetime(2023, 1, 1, tzinfo=timezone.utc)
        )
        self.assertEqual(
            decode_cursor_text(cursor), "0.25|2023-01-01T00:00:00.000Z"
        )

    def test_decode_round_trip(self) -> None:
        created = datetime(2024, 6, 1, 8, 15, 0, 500000, tzinfo=timezone.utc)
        discount, decoded = decode_cursor(encode_cursor(0.1818, created))
        self.assertEqual(discount, 0.1818)
        self.assertEqual(decoded, created)

    def test_not_base64(self) -> None:
        with self.assertRaises(InvalidCursorError):
            decode_cursor("not-base64!!")

    def test_missing_separator(self) -> None:
        with self.assertRaises(InvalidCursorError):
            decode_cursor(_b64("garbage"))

    def test_bad_discount(self) -> None:
        with self.assertRaises(InvalidCursorError):
            decode_cursor(_b64("abc|2023-01-01T00:00:00.000Z"))

    def test_bad_timestamp(self) -> None:
        with self.assertRaises(InvalidCursorError):
            decode_cursor(_b64("0.2|yesterday"))

    def test_invalid_cursor_is_validation_error(self) -> None:
        with self.assertRaises(QueryValidationError):
            decode_cursor(_b64("|"))


if __name__ == "__main__":
    unittest.main()
