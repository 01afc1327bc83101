from .inventory_row import InventoryRow, SheetLayout, SyncCandidate

__all__ = ["InventoryRow", "SheetLayout", "SyncCandidate"]
