# src/storage/catalog_db.py

"""SQLite-backed product catalog with price history."""

import logging
import re
import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from src.config.settings import Settings
from src.models.page import BelowRetailQuery
from src.models.price_snapshot import PriceSnapshot
from src.models.product import CatalogEntry, Product, utc_now
from src.storage.cursor import (
    decode_cursor,
    encode_cursor,
    format_timestamp,
    parse_timestamp,
)

logger = logging.getLogger("retail_radar.catalog")

# Marketing / session params that vary per visit
_TRACKING_PARAMS: frozenset[str] = frozenset({
    "ref", "referrer", "fbclid", "gclid", "msclkid",
    "utm_source", "utm_medium", "utm_campaign", "utm_term",
    "utm_content", "irclickid", "irgwc", "sharedid",
})

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS products (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    url                 TEXT    NOT NULL UNIQUE,
    name                TEXT    NOT NULL,
    brand               TEXT    NOT NULL,
    colorway            TEXT    NOT NULL DEFAULT '',
    retail_price        REAL    NOT NULL,
    current_price       REAL    NOT NULL,
    discount_percentage REAL    NOT NULL,
    size                TEXT,
    sku                 TEXT,
    image_url           TEXT,
    source              TEXT    NOT NULL DEFAULT '',
    created_at          TEXT    NOT NULL,
    updated_at          TEXT    NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_products_brand_discount
    ON products(brand, discount_percentage, created_at);

CREATE TABLE IF NOT EXISTS price_snapshots (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    product_id  INTEGER NOT NULL
                REFERENCES products(id) ON DELETE CASCADE,
    price       REAL    NOT NULL,
    size        TEXT,
    source      TEXT    NOT NULL DEFAULT '',
    observed_at TEXT    NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_snapshots_product_date
    ON price_snapshots(product_id, observed_at);
"""

_COLUMNS = (
    "id, url, name, brand, colorway, retail_price, current_price, "
    "discount_percentage, size, sku, image_url, source, "
    "created_at, updated_at"
)

_UPDATABLE: frozenset[str] = frozenset({
    "current_price", "discount_percentage", "updated_at",
})


def normalize_url(raw_url: str) -> str:
    """Strip tracking params, fragment and trailing slash from a URL."""
    if not raw_url:
        return ""
    parsed = urlparse(raw_url.strip())

    params = parse_qs(parsed.query, keep_blank_values=True)
    cleaned = {
        k: v for k, v in params.items()
        if k.lower() not in _TRACKING_PARAMS
    }
    new_query = urlencode(cleaned, doseq=True) if cleaned else ""
    path = re.sub(r"/+$", "", parsed.path)
    return urlunparse((
        parsed.scheme.lower(),
        parsed.netloc.lower(),
        path,
        parsed.params,
        new_query,
        "",  # drop fragment
    ))


def _row_to_entry(row: sqlite3.Row) -> CatalogEntry:
    return CatalogEntry(
        id=row["id"],
        url=row["url"],
        name=row["name"],
        brand=row["brand"],
        colorway=row["colorway"],
        retail_price=row["retail_price"],
        current_price=row["current_price"],
        discount_percentage=row["discount_percentage"],
        size=row["size"],
        sku=row["sku"],
        image_url=row["image_url"],
        source=row["source"],
        created_at=parse_timestamp(row["created_at"]),
        updated_at=parse_timestamp(row["updated_at"]),
    )


class CatalogDB:
    """Durable store of below-retail products keyed by normalised URL.

    One connection is shared by worker threads; every statement runs
    under a re-entrant lock so find-then-write sequences are atomic
    within the process.
    """

    def __init__(self, db_path: Path | str | None = None) -> None:
        path = db_path or Settings.CATALOG_DB_PATH
        if str(path) != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        self._conn = sqlite3.connect(
            str(path), check_same_thread=False,
        )
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")
        self._conn.executescript(_SCHEMA)
        logger.debug("CatalogDB opened at %s", path)

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()

    # ── Lookups ──────────────────────────────────────────

    def find_by_url(self, url: str) -> CatalogEntry | None:
        """Return the entry whose normalised URL matches *url*."""
        with self._lock:
            row = self._conn.execute(
                f"SELECT {_COLUMNS} FROM products WHERE url = ?",
                (normalize_url(url),),
            ).fetchone()
        return _row_to_entry(row) if row else None

    def find_by_id(self, entry_id: int) -> CatalogEntry | None:
        """Return the entry with primary key *entry_id*."""
        with self._lock:
            row = self._conn.execute(
                f"SELECT {_COLUMNS} FROM products WHERE id = ?",
                (entry_id,),
            ).fetchone()
        return _row_to_entry(row) if row else None

    def count(self) -> int:
        """Total number of catalog rows."""
        with self._lock:
            row = self._conn.execute(
                "SELECT COUNT(*) FROM products"
            ).fetchone()
        return int(row[0])

    # ── Writes ───────────────────────────────────────────

    def save(
        self, product: Product, now: datetime | None = None,
    ) -> CatalogEntry:
        """Insert *product* as a new catalog entry.

        A row that appeared under the same URL in the meantime only has
        its price fields refreshed, so the URL stays unique.
        """
        ts = format_timestamp(now or utc_now())
        with self._lock:
            self._conn.execute(
                "INSERT INTO products (url, name, brand, colorway, "
                "retail_price, current_price, discount_percentage, "
                "size, sku, image_url, source, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?) "
                "ON CONFLICT(url) DO UPDATE SET "
                "current_price=excluded.current_price, "
                "discount_percentage=excluded.discount_percentage, "
                "updated_at=excluded.updated_at",
                (
                    normalize_url(product.url),
                    product.name,
                    product.brand,
                    product.colorway,
                    product.retail_price,
                    product.current_price,
                    product.discount_percentage,
                    product.size,
                    product.sku,
                    product.image_url,
                    product.source,
                    ts,
                    ts,
                ),
            )
            self._conn.commit()
            entry = self.find_by_url(product.url)
        if entry is None:
            msg = f"Catalog insert lost for {product.url}"
            raise RuntimeError(msg)
        return entry

    def update(self, entry_id: int, **fields: Any) -> None:
        """Update the price fields of an existing entry.

        Only ``current_price``, ``discount_percentage`` and
        ``updated_at`` may change; descriptive fields are immutable
        once recorded.
        """
        unknown = set(fields) - _UPDATABLE
        if unknown:
            msg = f"Cannot update catalog fields: {sorted(unknown)}"
            raise ValueError(msg)
        if not fields:
            return
        values = dict(fields)
        if isinstance(values.get("updated_at"), datetime):
            values["updated_at"] = format_timestamp(values["updated_at"])
        assignments = ", ".join(f"{name} = ?" for name in values)
        with self._lock:
            self._conn.execute(
                f"UPDATE products SET {assignments} WHERE id = ?",
                (*values.values(), entry_id),
            )
            self._conn.commit()

    def upsert(
        self, product: Product, now: datetime | None = None,
    ) -> tuple[CatalogEntry, bool]:
        """Insert or refresh *product*; returns ``(entry, created)``."""
        now = now or utc_now()
        with self._lock:
            existing = self.find_by_url(product.url)
            if existing is None:
                return self.save(product, now=now), True
            self.update(
                existing.id,
                current_price=product.current_price,
                discount_percentage=product.discount_percentage,
                updated_at=now,
            )
            refreshed = self.find_by_id(existing.id)
        return refreshed or existing, False

    def record_snapshot(
        self,
        entry: CatalogEntry,
        product: Product,
        observed_at: datetime | None = None,
    ) -> None:
        """Append one price observation for a catalog entry."""
        ts = format_timestamp(observed_at or utc_now())
        with self._lock:
            self._conn.execute(
                "INSERT INTO price_snapshots "
                "(product_id, price, size, source, observed_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (
                    entry.id,
                    product.current_price,
                    product.size,
                    product.source,
                    ts,
                ),
            )
            self._conn.commit()

    # ── Below-retail queries ─────────────────────────────

    @staticmethod
    def _filters(
        brand: str, query: BelowRetailQuery, with_cursor: bool,
    ) -> tuple[str, list[Any]]:
        clauses = [
            "LOWER(brand) = LOWER(?)",
            "current_price < retail_price",
            "retail_price > 0",
        ]
        params: list[Any] = [brand]
        if query.min_discount is not None:
            clauses.append("discount_percentage >= ?")
            params.append(query.min_discount)
        if query.max_price is not None:
            clauses.append("current_price <= ?")
            params.append(query.max_price)
        if query.size:
            clauses.append("size = ?")
            params.append(query.size)
        if with_cursor and query.cursor:
            discount, created_at = decode_cursor(query.cursor)
            clauses.append(
                "(discount_percentage < ? OR "
                "(discount_percentage = ? AND created_at < ?))"
            )
            params.extend(
                [discount, discount, format_timestamp(created_at)]
            )
        return " AND ".join(clauses), params

    def find_below_retail(
        self,
        brand: str,
        query: BelowRetailQuery,
        limit: int | None = None,
    ) -> list[CatalogEntry]:
        """One page of *brand* entries, best discount first."""
        where, params = self._filters(brand, query, with_cursor=True)
        params.append(limit if limit is not None else query.limit)
        with self._lock:
            rows = self._conn.execute(
                f"SELECT {_COLUMNS} FROM products WHERE {where} "
                "ORDER BY discount_percentage DESC, created_at DESC "
                "LIMIT ?",
                params,
            ).fetchall()
        return [_row_to_entry(r) for r in rows]

    def count_below_retail(
        self, brand: str, query: BelowRetailQuery,
    ) -> int:
        """Number of matching entries, ignoring the cursor."""
        where, params = self._filters(brand, query, with_cursor=False)
        with self._lock:
            row = self._conn.execute(
                f"SELECT COUNT(*) FROM products WHERE {where}",
                params,
            ).fetchone()
        return int(row[0])

    @staticmethod
    def generate_cursor(entry: CatalogEntry) -> str:
        """Cursor resuming pagination after *entry*."""
        return encode_cursor(entry.discount_percentage, entry.created_at)

    # ── Price history ────────────────────────────────────

    def get_price_history(
        self, product_url: str,
    ) -> list[PriceSnapshot]:
        """Return all price snapshots for a product, oldest first."""
        url = normalize_url(product_url)
        with self._lock:
            rows = self._conn.execute(
                "SELECT p.url, s.price, s.source, s.observed_at, s.size "
                "FROM price_snapshots s "
                "JOIN products p ON p.id = s.product_id "
                "WHERE p.url = ? "
                "ORDER BY s.observed_at ASC, s.id ASC",
                (url,),
            ).fetchall()
        return [
            PriceSnapshot(
                product_url=r[0],
                price=r[1],
                source=r[2],
                observed_at=parse_timestamp(r[3]),
                size=r[4],
            )
            for r in rows
        ]
