# tests/test_settings.py

"""Tests for the Settings configuration class."""

import unittest
from pathlib import Path

from src.config.settings import Settings


class TestSettings(unittest.TestCase):
    """Verify Settings constants and source registry."""

    def test_request_timing_positive(self) -> None:
        self.assertIsInstance(Settings.REQUEST_DELAY, float)
        self.assertGreater(Settings.REQUEST_DELAY, 0)
        self.assertGreater(Settings.REQUEST_TIMEOUT, 0)
        self.assertGreater(Settings.FETCH_DEADLINE, 0)

    def test_circuit_breaker_defaults(self) -> None:
        """Three failures trip a breaker for sixty seconds."""
        self.assertEqual(Settings.CIRCUIT_BREAKER_THRESHOLD, 3)
        self.assertEqual(Settings.CIRCUIT_BREAKER_TIMEOUT, 60.0)

    def test_cache_ttl_positive(self) -> None:
        self.assertGreater(Settings.CACHE_TTL, 0)

    def test_page_limits(self) -> None:
        self.assertGreaterEqual(Settings.DEFAULT_PAGE_LIMIT, 1)
        self.assertLessEqual(
            Settings.DEFAULT_PAGE_LIMIT, Settings.MAX_PAGE_LIMIT
        )
        self.assertEqual(Settings.MAX_PAGE_LIMIT, 100)

    def test_three_sources_registered(self) -> None:
        self.assertEqual(len(Settings.AVAILABLE_SOURCES), 3)

    def test_each_source_has_required_keys(self) -> None:
        for src in Settings.AVAILABLE_SOURCES:
            with self.subTest(src=src.get("id", "?")):
                for key in (
                    "id", "label", "source", "priority",
                    "retry_count", "retry_delay",
                ):
                    self.assertIn(key, src)

    def test_source_ids_and_priorities_unique(self) -> None:
        ids = [s["id"] for s in Settings.AVAILABLE_SOURCES]
        priorities = [s["priority"] for s in Settings.AVAILABLE_SOURCES]
        self.assertEqual(len(ids), len(set(ids)))
        self.assertEqual(len(priorities), len(set(priorities)))

    def test_fallback_order(self) -> None:
        """Scraper first, then the official API, then RapidAPI."""
        ordered = sorted(
            Settings.AVAILABLE_SOURCES, key=lambda s: s["priority"]
        )
        self.assertEqual(
            [s["id"] for s in ordered],
            ["page_scraper", "official_api", "rapidapi"],
        )

    def test_scraper_retries_less_and_waits_longer(self) -> None:
        by_id = {s["id"]: s for s in Settings.AVAILABLE_SOURCES}
        self.assertEqual(by_id["page_scraper"]["retry_count"], 2)
        self.assertEqual(by_id["page_scraper"]["retry_delay"], 5.0)
        self.assertEqual(by_id["official_api"]["retry_count"], 3)
        self.assertEqual(by_id["rapidapi"]["retry_delay"], 2.0)

    def test_path_constants_are_paths(self) -> None:
        self.assertIsInstance(Settings.BASE_DIR, Path)
        self.assertIsInstance(Settings.SELECTORS_PATH, Path)
        self.assertIsInstance(Settings.RESULTS_DIR, Path)
        self.assertIsInstance(Settings.LOGS_DIR, Path)
        self.assertIsInstance(Settings.CATALOG_DB_PATH, Path)

    def test_selectors_path_exists(self) -> None:
        self.assertTrue(Settings.SELECTORS_PATH.exists())

    def test_impersonation(self) -> None:
        self.assertTrue(Settings.IMPERSONATE_BROWSER)
        self.assertIn("Accept-Language", Settings.DEFAULT_HEADERS)


if __name__ == "__main__":
    unittest.main()
