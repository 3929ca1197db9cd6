from __future__ import annotations

from typing import Tuple

# Grouping key for products without an assigned vendor.
NO_VENDOR = "no vendor"

# Fallbacks applied when an inventory record leaves a field empty.
DEFAULT_REORDER_POINT = 10
DEFAULT_SALES_VELOCITY = 1.0
DEFAULT_ON_HAND_QTY = 0

STATUS_PENDING = "pending"
STATUS_ORDERED = "ordered"
STATUS_RECEIVED = "received"
STATUS_CANCELLED = "cancelled"

ORDER_STATUS_CHOICES: Tuple[str, ...] = (
    STATUS_PENDING,
    STATUS_ORDERED,
    STATUS_RECEIVED,
    STATUS_CANCELLED,
)

ORDER_NOTES_TEMPLATE = "Auto-generated order - {count} products"
