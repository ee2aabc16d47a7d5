# src/config/settings.py

"""Central configuration for the retail_radar engine."""

import os
from pathlib import Path
from typing import Any

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Central configuration for the retail_radar engine."""

    # --- Credentials ---
    STOCKX_API_KEY: str = os.getenv("STOCKX_API_KEY", "demo-key")
    RAPIDAPI_KEY: str = os.getenv("RAPIDAPI_KEY", "demo-key")

    # --- Fetching ---
    REQUEST_DELAY: float = 1.0          # Seconds between page requests
    REQUEST_TIMEOUT: int = 15           # Seconds before a request times out
    MAX_CATALOG_PRODUCTS: int = 1000    # Official API pagination cap
    MAX_DETAIL_PAGES: int = 40          # Product pages visited per scrape
    FETCH_DEADLINE: float = 300.0       # Whole fallback chain, seconds

    # --- Resilience ---
    CIRCUIT_BREAKER_THRESHOLD: int = 3  # Consecutive failures to trip
    CIRCUIT_BREAKER_TIMEOUT: float = 60.0       # Cooldown before probing
    CIRCUIT_BREAKER_MONITORING_PERIOD: float = 30.0
    RETRY_COUNT: int = 3                # Attempts per source
    RETRY_BASE_DELAY: float = 2.0       # First backoff sleep, seconds
    CAPTCHA_KEYWORDS: list[str] = [
        "captcha",
        "verify you are human",
        "unusual traffic",
        "automated requests",
    ]

    # --- Catalog & cache ---
    CACHE_TTL: int = int(os.getenv("CACHE_TTL", "1800"))
    DEFAULT_PAGE_LIMIT: int = 20
    MAX_PAGE_LIMIT: int = 100

    # --- Browser Impersonation ---
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    DEFAULT_HEADERS: dict[str, str] = {
        "Accept": (
            "text/html,application/xhtml+xml,"
            "application/xml;q=0.9,image/avif,"
            "image/webp,image/apng,*/*;q=0.8"
        ),
        "Accept-Language": "en-US,en;q=0.9",
        "sec-ch-ua": (
            '"Google Chrome";v="131", '
            '"Chromium";v="131", '
            '"Not_A Brand";v="24"'
        ),
        "sec-ch-ua-mobile": "?0",
        "sec-ch-ua-platform": '"Windows"',
        "sec-fetch-dest": "document",
        "sec-fetch-mode": "navigate",
        "sec-fetch-site": "none",
        "sec-fetch-user": "?1",
        "Upgrade-Insecure-Requests": "1",
    }

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    SELECTORS_PATH: Path = BASE_DIR / "src" / "config" / "selectors.json"
    RESULTS_DIR: Path = BASE_DIR / "results"
    LOGS_DIR: Path = BASE_DIR / "logs"
    DATA_DIR: Path = BASE_DIR / "data"
    CATALOG_DB_PATH: Path = Path(
        os.getenv("RETAIL_RADAR_DB", str(DATA_DIR / "catalog.db"))
    )

    # --- Sources (lower priority value is tried first) ---
    AVAILABLE_SOURCES: list[dict[str, Any]] = [
        {
            "id": "page_scraper",
            "label": "StockX Page Scraper",
            "source": "src.sources.page_scraper_source.PageScraperSource",
            "priority": 1,
            "retry_count": 2,
            "retry_delay": 5.0,
        },
        {
            "id": "official_api",
            "label": "Official StockX API",
            "source": "src.sources.official_api_source.OfficialApiSource",
            "priority": 2,
            "retry_count": 3,
            "retry_delay": 2.0,
        },
        {
            "id": "rapidapi",
            "label": "RapidAPI StockX",
            "source": "src.sources.rapidapi_source.RapidApiSource",
            "priority": 3,
            "retry_count": 3,
            "retry_delay": 2.0,
        },
    ]
