from __future__ import annotations

from typing import List, Optional

from ..domain.models import OrderLine, ReplenishmentPolicy, StockSnapshot
from ..logging import get_logger
from .calculator import calculate
from .editor import OrderEditor
from .errors import PersistError
from .loader import load_snapshots
from .persister import OrderPersister, SaveResult
from .store import CatalogStore


LOG = get_logger("replenish-service")


class ReplenishmentService:
    """High-level service coordinating snapshot loading, editing and saving.

    Holds one editing session at a time; a successful save or an explicit
    reset discards it, a failed save keeps the unsaved lines so the caller
    can retry.
    """

    def __init__(self, store: CatalogStore, *, persister: Optional[OrderPersister] = None) -> None:
        self.store = store
        self.persister = persister or OrderPersister(store)
        self.editor = OrderEditor()
        self.policy: Optional[ReplenishmentPolicy] = None

    async def snapshots(self) -> List[StockSnapshot]:
        return await load_snapshots(self.store)

    async def calculate(self, policy: ReplenishmentPolicy) -> List[OrderLine]:
        """Load fresh stock, compute candidate lines and open a new session."""
        snapshots = await load_snapshots(self.store)
        lines = calculate(snapshots, policy)
        self.editor = OrderEditor(lines)
        self.policy = policy
        LOG.info(
            f"Calculated {len(lines)} candidate line(s) from {len(snapshots)} product(s) "
            f"(coverage_days={policy.coverage_days}, safety_stock={policy.safety_stock})"
        )
        return self.editor.lines

    async def save(self) -> SaveResult:
        """Persist the selected lines and clear the session.

        On PersistError the lines of committed groups leave the session, so
        saving again only writes the failed and pending groups.
        """
        try:
            result = await self.persister.save(self.editor.selected_lines())
        except PersistError as exc:
            saved = [rec.product_id for order in exc.committed for rec in order.lines]
            removed = self.editor.discard(saved)
            LOG.warning(
                f"Partial save: dropped {removed} committed line(s) from the session; "
                f"'{exc.group}' and {len(exc.pending)} pending group(s) remain"
            )
            raise
        LOG.info(f"Session saved as {len(result.orders)} order(s); clearing session")
        self.reset()
        return result

    def reset(self) -> None:
        self.editor.reset()
        self.policy = None
