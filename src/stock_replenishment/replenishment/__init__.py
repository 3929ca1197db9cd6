"""Replenishment recommendation core.

Modules:
- db: SQLite catalog (vendors, products, inventory, prices, replenishment orders)
- store: async facade over the catalog with error translation
- loader: stock snapshots for every product with inventory
- calculator: reorder detection and suggested quantities
- editor: editable session over candidate order lines
- persister: one pending order per vendor group, partial-commit semantics
- service: coordinates one calculate/edit/save session
- frontend: Starlette JSON API over the service
"""

from .calculator import calculate, suggest_quantity
from .db import CatalogDatabase
from .editor import OrderEditor
from .errors import CatalogStoreError, PersistError, StoreUnavailable, StoreWriteError
from .loader import load_snapshots
from .persister import OrderPersister, SaveResult
from .service import ReplenishmentService
from .store import CatalogStore
from .frontend.app import create_app

__all__ = [
    "calculate",
    "suggest_quantity",
    "CatalogDatabase",
    "CatalogStore",
    "OrderEditor",
    "OrderPersister",
    "SaveResult",
    "ReplenishmentService",
    "load_snapshots",
    "CatalogStoreError",
    "PersistError",
    "StoreUnavailable",
    "StoreWriteError",
    "create_app",
]
