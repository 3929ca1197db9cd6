from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from typing import Iterator, Optional, Dict, Any, List, Sequence

from ..logging import get_logger
from ..paths import find_project_root, var_dir
from .constants import ORDER_STATUS_CHOICES, STATUS_PENDING


LOG = get_logger("catalog-db")


DEFAULT_DB_FOLDER = "catalog"
DEFAULT_DB_FILENAME = "catalog.sqlite3"

ORDER_STATUS_ENUM_SQL = ", ".join(f"'{value}'" for value in ORDER_STATUS_CHOICES)


SCHEMA_SQL = f"""
-- 1) Catalog
CREATE TABLE IF NOT EXISTS vendors (
  vendor_id    INTEGER PRIMARY KEY,
  name         TEXT NOT NULL,
  contact      TEXT,
  created_at   TEXT DEFAULT (datetime('now'))
);
CREATE UNIQUE INDEX IF NOT EXISTS idx_vendors_name ON vendors(LOWER(TRIM(name)));

CREATE TABLE IF NOT EXISTS products (
  product_id   INTEGER PRIMARY KEY,
  name         TEXT NOT NULL,
  sku          TEXT UNIQUE,
  category     TEXT,
  vendor_id    INTEGER REFERENCES vendors(vendor_id) ON UPDATE CASCADE ON DELETE SET NULL,
  created_at   TEXT DEFAULT (datetime('now'))
);

-- 2) Stock levels; NULL fields fall back to loader defaults
CREATE TABLE IF NOT EXISTS inventory (
  product_id     INTEGER PRIMARY KEY REFERENCES products(product_id) ON DELETE CASCADE,
  qty_on_hand    INTEGER,
  reorder_point  INTEGER,
  sales_velocity REAL,             -- units per day
  updated_at     TEXT DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS price_history (
  price_id     INTEGER PRIMARY KEY,
  product_id   INTEGER NOT NULL REFERENCES products(product_id) ON DELETE CASCADE,
  vendor_id    INTEGER REFERENCES vendors(vendor_id) ON DELETE SET NULL,
  price        REAL NOT NULL CHECK(price >= 0),
  recorded_at  TEXT NOT NULL DEFAULT (datetime('now'))
);

-- 3) Replenishment orders
CREATE TABLE IF NOT EXISTS replenishments (
  replenishment_id INTEGER PRIMARY KEY,
  vendor_id        INTEGER REFERENCES vendors(vendor_id) ON DELETE SET NULL,
  status           TEXT NOT NULL DEFAULT '{STATUS_PENDING}'
                   CHECK(status IN ({ORDER_STATUS_ENUM_SQL})),
  total_estimated  REAL NOT NULL,
  notes            TEXT,
  created_at       TEXT DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS replenishment_lines (
  line_id          INTEGER PRIMARY KEY,
  replenishment_id INTEGER NOT NULL REFERENCES replenishments(replenishment_id) ON DELETE CASCADE,
  product_id       INTEGER NOT NULL REFERENCES products(product_id) ON DELETE RESTRICT,
  qty_suggested    INTEGER NOT NULL,
  unit_price       REAL NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_price_history_product ON price_history(product_id, recorded_at);
CREATE INDEX IF NOT EXISTS idx_replenishments_status ON replenishments(status);
CREATE INDEX IF NOT EXISTS idx_lines_replenishment   ON replenishment_lines(replenishment_id);
"""


class CatalogDatabase:
    """SQLite-backed product/vendor/inventory catalog.

    - Places DB under `<repo-root>/var/catalog/catalog.sqlite3` unless an
      explicit `db_path` is given.
    - Ensures schema on first use.
    - Provides a context-managed connection method.
    """

    def __init__(self, root_dir: Optional[str] = None, *, db_path: Optional[str] = None) -> None:
        if db_path:
            self.db_path = os.path.abspath(db_path)
            os.makedirs(os.path.dirname(self.db_path), exist_ok=True)
        else:
            root = find_project_root(root_dir)
            db_folder = os.path.join(var_dir(root), DEFAULT_DB_FOLDER)
            os.makedirs(db_folder, exist_ok=True)
            self.db_path = os.path.join(db_folder, DEFAULT_DB_FILENAME)
        LOG.info(f"Catalog DB path: {self.db_path}")
        self._ensure_schema()

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA foreign_keys = ON;")
            yield conn
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self.connect() as conn:
            cur = conn.cursor()
            try:
                cur.execute("PRAGMA journal_mode=WAL;")
                cur.execute("PRAGMA synchronous=NORMAL;")
            except sqlite3.OperationalError:
                LOG.debug("WAL journal mode unavailable; keeping default journal")
            cur.executescript(SCHEMA_SQL)
            conn.commit()
            LOG.debug("Catalog DB schema ensured.")

    # --------------- Catalog write helpers ---------------
    def upsert_vendor(self, name: str, contact: Optional[str] = None) -> int:
        cleaned = " ".join(str(name).split())
        existing = self.find_vendor_id(cleaned)
        if existing is not None:
            return existing
        with self.connect() as conn:
            cur = conn.cursor()
            cur.execute(
                "INSERT INTO vendors (name, contact) VALUES (?, ?) RETURNING vendor_id;",
                (cleaned, contact),
            )
            row = cur.fetchone()
            conn.commit()
            return int(row[0])

    def insert_product(
        self,
        name: str,
        *,
        vendor_id: Optional[int] = None,
        sku: Optional[str] = None,
        category: Optional[str] = None,
    ) -> int:
        with self.connect() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                INSERT INTO products (name, sku, category, vendor_id)
                VALUES (?, ?, ?, ?)
                RETURNING product_id;
                """,
                (name, sku, category, vendor_id),
            )
            row = cur.fetchone()
            conn.commit()
            return int(row[0])

    def upsert_inventory(
        self,
        product_id: int,
        qty_on_hand: Optional[int],
        *,
        reorder_point: Optional[int] = None,
        sales_velocity: Optional[float] = None,
    ) -> None:
        with self.connect() as conn:
            conn.execute(
                """
                INSERT INTO inventory (product_id, qty_on_hand, reorder_point, sales_velocity)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(product_id) DO UPDATE SET
                    qty_on_hand=excluded.qty_on_hand,
                    reorder_point=excluded.reorder_point,
                    sales_velocity=excluded.sales_velocity,
                    updated_at=datetime('now');
                """,
                (product_id, qty_on_hand, reorder_point, sales_velocity),
            )
            conn.commit()

    def insert_price(
        self,
        product_id: int,
        price: float,
        *,
        vendor_id: Optional[int] = None,
        recorded_at: Optional[str] = None,
    ) -> int:
        with self.connect() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                INSERT INTO price_history (product_id, vendor_id, price, recorded_at)
                VALUES (?, ?, ?, COALESCE(?, datetime('now')))
                RETURNING price_id;
                """,
                (product_id, vendor_id, float(price), recorded_at),
            )
            row = cur.fetchone()
            conn.commit()
            return int(row[0])

    # --------------- Replenishment writes ---------------
    def insert_replenishment(self, r: Dict[str, Any]) -> int:
        with self.connect() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                INSERT INTO replenishments (vendor_id, status, total_estimated, notes)
                VALUES (?, ?, ?, ?)
                RETURNING replenishment_id;
                """,
                (
                    r.get("vendor_id"),
                    r.get("status", STATUS_PENDING),
                    float(r["total_estimated"]),
                    r.get("notes"),
                ),
            )
            row = cur.fetchone()
            conn.commit()
            return int(row[0])

    def insert_replenishment_lines(self, replenishment_id: int, lines: List[Dict[str, Any]]) -> int:
        """Bulk insert line rows for one order; all rows commit or none do."""
        with self.connect() as conn:
            cur = conn.cursor()
            try:
                cur.executemany(
                    """
                    INSERT INTO replenishment_lines (
                        replenishment_id, product_id, qty_suggested, unit_price
                    ) VALUES (?, ?, ?, ?);
                    """,
                    [
                        (
                            replenishment_id,
                            line["product_id"],
                            int(line["qty_suggested"]),
                            float(line["unit_price"]),
                        )
                        for line in lines
                    ],
                )
                conn.commit()
            except sqlite3.Error:
                conn.rollback()
                raise
            return len(lines)

    # --------------- Query helpers ---------------
    @staticmethod
    def _rows_to_dicts(rows: Sequence[sqlite3.Row]) -> List[Dict[str, Any]]:
        return [dict(row) for row in rows]

    @staticmethod
    def _row_to_dict(row: Optional[sqlite3.Row]) -> Optional[Dict[str, Any]]:
        return dict(row) if row is not None else None

    def find_vendor_id(self, name: str) -> Optional[int]:
        with self.connect() as conn:
            cur = conn.cursor()
            cur.execute(
                "SELECT vendor_id FROM vendors WHERE LOWER(TRIM(name)) = LOWER(TRIM(?)) LIMIT 1;",
                (name,),
            )
            row = cur.fetchone()
            return int(row[0]) if row else None

    def fetch_stock_rows(self) -> List[Dict[str, Any]]:
        """Return every product that has an inventory row, with vendor and latest price."""
        with self.connect() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                SELECT
                    p.product_id,
                    p.name,
                    p.sku,
                    p.category,
                    p.vendor_id,
                    v.name AS vendor_name,
                    i.qty_on_hand,
                    i.reorder_point,
                    i.sales_velocity,
                    (
                        SELECT ph.price
                        FROM price_history ph
                        WHERE ph.product_id = p.product_id
                        ORDER BY ph.recorded_at DESC, ph.price_id DESC
                        LIMIT 1
                    ) AS last_unit_price
                FROM products p
                JOIN inventory i ON i.product_id = p.product_id
                LEFT JOIN vendors v ON v.vendor_id = p.vendor_id
                ORDER BY p.name ASC, p.product_id ASC;
                """
            )
            return self._rows_to_dicts(cur.fetchall())

    def fetch_summary(self) -> Dict[str, Any]:
        """Return high-level counts for dashboard views."""
        with self.connect() as conn:
            cur = conn.cursor()
            counts: Dict[str, int] = {}
            for table in ("products", "vendors", "inventory", "replenishments"):
                cur.execute(f"SELECT COUNT(*) AS count FROM {table};")
                counts[table] = int(cur.fetchone()["count"])

            cur.execute(
                """
                SELECT COUNT(*) AS count
                FROM inventory
                WHERE COALESCE(qty_on_hand, 0) <= COALESCE(reorder_point, 10);
                """
            )
            low_stock = int(cur.fetchone()["count"])

            cur.execute(
                "SELECT COUNT(*) AS count FROM replenishments WHERE status = ?;",
                (STATUS_PENDING,),
            )
            pending = int(cur.fetchone()["count"])

            return {
                "counts": counts,
                "low_stock_products": low_stock,
                "pending_orders": pending,
            }

    def fetch_replenishments(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        """Return replenishment headers with vendor name and line count, newest first."""
        where_sql = ""
        params: List[Any] = []
        if status is not None:
            if status not in ORDER_STATUS_CHOICES:
                raise ValueError(f"Unsupported status: {status}")
            where_sql = "WHERE r.status = ?"
            params.append(status)
        with self.connect() as conn:
            cur = conn.cursor()
            cur.execute(
                f"""
                SELECT
                    r.replenishment_id,
                    r.vendor_id,
                    v.name AS vendor_name,
                    r.status,
                    r.total_estimated,
                    r.notes,
                    r.created_at,
                    COALESCE(lines.line_count, 0) AS line_count
                FROM replenishments r
                LEFT JOIN vendors v ON v.vendor_id = r.vendor_id
                LEFT JOIN (
                    SELECT replenishment_id, COUNT(*) AS line_count
                    FROM replenishment_lines
                    GROUP BY replenishment_id
                ) AS lines ON lines.replenishment_id = r.replenishment_id
                {where_sql}
                ORDER BY r.replenishment_id DESC;
                """,
                params,
            )
            return self._rows_to_dicts(cur.fetchall())

    def fetch_replenishment_detail(self, replenishment_id: int) -> Optional[Dict[str, Any]]:
        with self.connect() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                SELECT
                    r.replenishment_id,
                    r.vendor_id,
                    v.name AS vendor_name,
                    r.status,
                    r.total_estimated,
                    r.notes,
                    r.created_at
                FROM replenishments r
                LEFT JOIN vendors v ON v.vendor_id = r.vendor_id
                WHERE r.replenishment_id = ?;
                """,
                (int(replenishment_id),),
            )
            order = self._row_to_dict(cur.fetchone())
            if order is None:
                return None

            cur.execute(
                """
                SELECT
                    l.line_id,
                    l.product_id,
                    p.name AS product_name,
                    l.qty_suggested,
                    l.unit_price,
                    l.qty_suggested * l.unit_price AS line_total
                FROM replenishment_lines l
                JOIN products p ON p.product_id = l.product_id
                WHERE l.replenishment_id = ?
                ORDER BY l.line_id ASC;
                """,
                (int(replenishment_id),),
            )
            order["lines"] = self._rows_to_dicts(cur.fetchall())
            return order
