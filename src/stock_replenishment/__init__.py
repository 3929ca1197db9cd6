"""
Stock replenishment – inventory reorder suggestions for a small business catalog.

The package turns current stock, sales velocity and a coverage policy into an
editable purchase proposal and saves it as one pending order per vendor.
Shared utilities (config, logging, paths) live at the top level; the
replenishment core lives in `stock_replenishment.replenishment`.
"""

__all__ = [
    "config",
    "logging",
    "paths",
]
