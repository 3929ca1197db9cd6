from __future__ import annotations

import asyncio
import functools
import sqlite3
from typing import Any, Callable, Dict, List, Optional, TypeVar

from ..logging import get_logger
from .db import CatalogDatabase
from .errors import StoreUnavailable, StoreWriteError


LOG = get_logger("catalog-store")

T = TypeVar("T")


class CatalogStore:
    """Async view of the catalog consumed by the replenishment core.

    Blocking sqlite calls run in a worker thread; sqlite errors are
    translated into the store error taxonomy.
    """

    def __init__(self, db: CatalogDatabase) -> None:
        self.db = db

    @classmethod
    def open(cls, root_dir: Optional[str] = None, *, db_path: Optional[str] = None) -> "CatalogStore":
        try:
            db = CatalogDatabase(root_dir, db_path=db_path)
        except (sqlite3.Error, OSError) as exc:
            raise StoreUnavailable(f"Cannot open catalog database: {exc}") from exc
        return cls(db)

    async def _call(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        try:
            return await asyncio.to_thread(functools.partial(fn, *args, **kwargs))
        except sqlite3.IntegrityError as exc:
            LOG.warning(f"Catalog store rejected write in {fn.__name__}: {exc}")
            raise StoreWriteError(str(exc)) from exc
        except sqlite3.Error as exc:
            LOG.error(f"Catalog store unavailable during {fn.__name__}: {exc}")
            raise StoreUnavailable(str(exc)) from exc

    async def list_stock_records(self) -> List[Dict[str, Any]]:
        return await self._call(self.db.fetch_stock_rows)

    async def find_vendor_id(self, name: str) -> Optional[str]:
        vendor_id = await self._call(self.db.find_vendor_id, name)
        return str(vendor_id) if vendor_id is not None else None

    async def create_replenishment(
        self,
        *,
        vendor_id: Optional[str],
        status: str,
        estimated_total: float,
        notes: Optional[str],
    ) -> int:
        return await self._call(
            self.db.insert_replenishment,
            {
                "vendor_id": vendor_id,
                "status": status,
                "total_estimated": estimated_total,
                "notes": notes,
            },
        )

    async def create_replenishment_lines(self, order_id: int, lines: List[Dict[str, Any]]) -> int:
        return await self._call(self.db.insert_replenishment_lines, order_id, lines)

    async def summary(self) -> Dict[str, Any]:
        return await self._call(self.db.fetch_summary)

    async def list_replenishments(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        return await self._call(self.db.fetch_replenishments, status)

    async def replenishment_detail(self, order_id: int) -> Optional[Dict[str, Any]]:
        return await self._call(self.db.fetch_replenishment_detail, order_id)
