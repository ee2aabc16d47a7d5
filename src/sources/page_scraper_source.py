# src/sources/page_scraper_source.py

"""Source that scrapes StockX brand and product pages directly."""

import json
import logging
import re
import time
from typing import Any

import cloudscraper  # type: ignore[import-untyped]
from bs4 import BeautifulSoup, Tag
from curl_cffi import requests as curl_requests

from src.config.settings import Settings
from src.models.product import Product, calculate_discount, utc_now
from src.services.errors import SourceError

_PRICE_RE = re.compile(r"\$?(\d+(?:,\d{3})*(?:\.\d{1,2})?)")

# Retail prices outside this band are parsing noise
_MAX_PLAUSIBLE_RETAIL = 10_000.0


class PageScraperSource:
    """Scrapes the below-retail brand listing, then each product page.

    The listing page gives name, lowest ask, link and image per tile.
    Retail price only appears on the product page, so every tile costs
    one more request (capped at ``MAX_DETAIL_PAGES``).
    """

    source_id = "page_scraper"
    HOMEPAGE_URL = "https://stockx.com"
    BRAND_URL = (
        "https://stockx.com/brands/{brand}"
        "?below-retail=true&sort=recent_asks"
    )

    # Cloudflare challenge page markers (checked before keyword scan)
    _CF_CHALLENGE_MARKERS: list[str] = [
        "challenges.cloudflare.com",
        "cdn-cgi/challenge-platform",
        "just a moment",
        "cf-turnstile",
        "cf_chl_opt",
    ]

    def __init__(self) -> None:
        self.logger = logging.getLogger(
            f"retail_radar.sources.{self.source_id}"
        )
        self.settings = Settings()
        self.selectors: dict[str, str] = self._load_selectors()
        self.session = curl_requests.Session(
            impersonate=self.settings.IMPERSONATE_BROWSER
        )

    def _load_selectors(self) -> dict[str, str]:
        """Load CSS selectors for StockX from selectors.json."""
        with open(self.settings.SELECTORS_PATH, encoding="utf-8") as f:
            all_selectors: dict[str, Any] = json.load(f)
        result: dict[str, str] = all_selectors.get("stockx", {})
        return result

    # ── Page fetching ────────────────────────────────────

    def _is_blocked(self, text: str) -> bool:
        """Detect Cloudflare challenges and CAPTCHA interstitials."""
        lower = text.lower()
        for marker in self._CF_CHALLENGE_MARKERS:
            if marker in lower:
                self.logger.warning(
                    "[%s] Cloudflare challenge detected (marker: '%s')",
                    self.source_id,
                    marker,
                )
                return True

        # Real product pages are long; only scan short pages for
        # CAPTCHA wording to avoid false positives
        has_body_content = "<body" in lower and len(text) > 5000
        if not has_body_content:
            for keyword in self.settings.CAPTCHA_KEYWORDS:
                if keyword in lower:
                    self.logger.warning(
                        "[%s] CAPTCHA keyword '%s' detected",
                        self.source_id,
                        keyword,
                    )
                    return True
        return False

    def _get_page(self, url: str) -> BeautifulSoup:
        """Fetch and parse *url*, falling back to cloudscraper.

        Raises :class:`SourceError` when neither client gets a clean
        HTTP 200 page.
        """
        headers: dict[str, str] = {
            **self.settings.DEFAULT_HEADERS,
            "Referer": self.HOMEPAGE_URL,
        }
        status: int | None = None

        try:
            resp = self.session.get(
                url,
                headers=headers,
                timeout=self.settings.REQUEST_TIMEOUT,
            )
            status = resp.status_code
            if status == 200 and not self._is_blocked(resp.text):
                return BeautifulSoup(resp.text, "lxml")
            self.logger.warning(
                "[%s] HTTP %d from %s", self.source_id, status, url,
            )
        except Exception as exc:
            self.logger.warning(
                "[%s] Request error for %s: %s",
                self.source_id,
                url,
                exc,
                exc_info=True,
            )

        self.logger.info(
            "[%s] curl_cffi failed, falling back to cloudscraper",
            self.source_id,
        )
        try:
            _cs: Any = cloudscraper
            scraper: Any = _cs.create_scraper()
            fallback: Any = scraper.get(
                url,
                headers=headers,
                timeout=self.settings.REQUEST_TIMEOUT,
            )
            text = str(fallback.text)
            if fallback.status_code == 200 and not self._is_blocked(text):
                return BeautifulSoup(text, "lxml")
            status = int(fallback.status_code)
        except Exception as exc:
            msg = f"{self.source_id} could not load {url}: {exc}"
            raise SourceError(msg) from exc

        msg = f"{self.source_id} could not load {url} (HTTP {status})"
        raise SourceError(msg, status_code=status)

    # ── Parsing ──────────────────────────────────────────

    @staticmethod
    def extract_price(text: str | None) -> float:
        """Extract a numeric price from a string like '$1,299.00'."""
        if not text:
            return 0.0
        match = _PRICE_RE.search(text)
        if not match:
            return 0.0
        return float(match.group(1).replace(",", ""))

    def _parse_tiles(
        self, soup: BeautifulSoup, brand: str,
    ) -> list[dict[str, Any]]:
        """Read name / ask / link / image from each listing tile."""
        tiles: list[dict[str, Any]] = []
        for tile in soup.select(self.selectors["product_tile"]):
            title_el = tile.select_one(self.selectors["tile_title"])
            name = title_el.get_text(strip=True) if title_el else ""
            if brand.lower() not in name.lower():
                continue

            price_el = tile.select_one(self.selectors["tile_price"])
            current_price = self.extract_price(
                price_el.get_text(strip=True) if price_el else ""
            )
            if current_price <= 0:
                continue

            link_el = tile.select_one(self.selectors["tile_link"])
            href = str(link_el.get("href", "")) if link_el else ""
            if not href:
                continue
            url = href if href.startswith("http") else (
                f"{self.HOMEPAGE_URL}{href}"
            )

            img_el = tile.select_one(self.selectors["tile_image"])
            image_url = str(img_el.get("src", "")) if img_el else ""

            tiles.append({
                "name": name,
                "current_price": current_price,
                "url": url,
                "image_url": image_url or None,
                "colorway": name.split()[-1] if name.split() else "",
            })
        return tiles

    def _extract_retail_price(self, soup: BeautifulSoup) -> float:
        """Find the retail price on a product page, or 0.0."""
        label_tags = self.selectors["retail_label_tags"]

        # A "Retail Price" label followed by its value
        for el in soup.select(label_tags):
            text = el.get_text(strip=True).lower()
            if text not in ("retail price", "retail"):
                continue
            candidates: list[Tag | None] = [el.find_next_sibling()]
            if isinstance(el.parent, Tag):
                candidates.append(el.parent.find_next_sibling())
            for candidate in candidates:
                if candidate is None:
                    continue
                price = self.extract_price(candidate.get_text())
                if 0 < price < _MAX_PLAUSIBLE_RETAIL:
                    return price

        # Dedicated retail / MSRP elements
        for el in soup.select(self.selectors["retail_price"]):
            price = self.extract_price(el.get_text())
            if 0 < price < _MAX_PLAUSIBLE_RETAIL:
                return price
        return 0.0

    # ── DataSource contract ──────────────────────────────

    def fetch(self, brand: str) -> list[Product]:
        """Scrape priced products for *brand*."""
        listing_url = self.BRAND_URL.format(brand=brand.lower())
        self.logger.info(
            "[%s] Navigating to %s", self.source_id, listing_url
        )
        tiles = self._parse_tiles(self._get_page(listing_url), brand)
        self.logger.info(
            "[%s] Found %d candidate tiles, fetching retail prices",
            self.source_id,
            len(tiles),
        )

        products: list[Product] = []
        failed: list[str] = []
        for idx, tile in enumerate(
            tiles[: self.settings.MAX_DETAIL_PAGES]
        ):
            time.sleep(self.settings.REQUEST_DELAY)
            try:
                retail_price = self._extract_retail_price(
                    self._get_page(tile["url"])
                )
            except SourceError as exc:
                self.logger.warning(
                    "[%s] Product page failed for %s: %s",
                    self.source_id,
                    tile["name"],
                    exc,
                )
                retail_price = 0.0
            if retail_price <= 0:
                failed.append(tile["name"])
                continue

            products.append(Product(
                id=f"{self.source_id}-{idx}-{int(time.time())}",
                name=tile["name"],
                brand=brand,
                colorway=tile["colorway"],
                retail_price=retail_price,
                current_price=tile["current_price"],
                discount_percentage=calculate_discount(
                    retail_price, tile["current_price"]
                ),
                image_url=tile["image_url"],
                url=tile["url"],
                source=self.source_id,
                last_updated=utc_now(),
            ))

        if failed:
            self.logger.warning(
                "[%s] No retail price for %d products: %s",
                self.source_id,
                len(failed),
                ", ".join(failed),
            )
        return products

    def is_healthy(self) -> bool:
        """Homepage loads and its title mentions StockX."""
        try:
            soup = self._get_page(self.HOMEPAGE_URL)
        except Exception as exc:
            self.logger.warning(
                "[%s] Health check failed: %s", self.source_id, exc,
            )
            return False
        title = soup.title.get_text() if soup.title else ""
        return "stockx" in title.lower()
