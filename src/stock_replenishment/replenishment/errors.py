from __future__ import annotations

from typing import List, Optional, Sequence, TYPE_CHECKING

if TYPE_CHECKING:
    from ..domain.models import ReplenishmentOrder


class CatalogStoreError(Exception):
    """Base class for failures talking to the catalog store."""


class StoreUnavailable(CatalogStoreError):
    """The catalog store could not be reached or opened."""


class StoreWriteError(CatalogStoreError):
    """The catalog store rejected a write (constraint violation)."""


class PersistError(CatalogStoreError):
    """A vendor group failed to save after earlier groups may have committed.

    Saving is not atomic across vendor groups: orders in `committed` stay in
    the store, groups in `pending` were never attempted. `order_id` is set
    when the failing group's header was written but its lines were not.
    """

    def __init__(
        self,
        group: str,
        cause: BaseException,
        *,
        committed: Sequence["ReplenishmentOrder"] = (),
        pending: Sequence[str] = (),
        order_id: Optional[int] = None,
    ) -> None:
        super().__init__(f"Failed to save replenishment order for vendor group '{group}': {cause}")
        self.group = group
        self.cause = cause
        self.committed: List["ReplenishmentOrder"] = list(committed)
        self.pending: List[str] = list(pending)
        self.order_id = order_id

    def to_dict(self) -> dict:
        return {
            "failed_group": self.group,
            "error": str(self.cause),
            "order_id": self.order_id,
            "committed": [order.to_dict() for order in self.committed],
            "pending": list(self.pending),
        }
