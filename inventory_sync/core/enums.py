"""
Shared enums and constants used across the sync jobs.
"""

from enum import Enum


class SyncStatus(str, Enum):
    """Value of the ReverseSync_Status column."""
    EMPTY = ""            # Nothing in flight; last push (if any) succeeded
    PENDING = "PENDING"   # Marked immediately before a push attempt in the current run
    ERROR = "ERROR"       # Last push attempt failed terminally

    @classmethod
    def from_cell(cls, value) -> "SyncStatus":
        text = "" if value is None else str(value).strip().upper()
        try:
            return cls(text)
        except ValueError:
            # Operators occasionally type into the column; treat unknown text as idle.
            return cls.EMPTY

    @property
    def is_terminal(self) -> bool:
        return self is not SyncStatus.PENDING

    def can_transition_to(self, target: "SyncStatus") -> bool:
        return target in _TRANSITIONS[self]


_TRANSITIONS = {
    SyncStatus.EMPTY: {SyncStatus.PENDING},
    SyncStatus.ERROR: {SyncStatus.PENDING},
    # PENDING -> PENDING only happens when a crashed run left the mark behind
    SyncStatus.PENDING: {SyncStatus.EMPTY, SyncStatus.ERROR, SyncStatus.PENDING},
}


class SheetHeader(str, Enum):
    """Header names in the Truth_Table header row."""
    CATEGORY = "Category"
    PRODUCT_TITLE = "Product_Title"
    VARIANT_TITLE = "Variant_Title"
    SKU = "SKU"
    DESIRED = "Desired_Available"
    AVAILABLE = "Available"
    STATUS = "ReverseSync_Status"
    LAST_PUSHED_AT = "ReverseSync_LastPushedAt"
    LAST_ERROR = "ReverseSync_LastError"
    INVENTORY_ITEM_ID = "InventoryItem_ID"


REVERSE_SYNC_HEADERS = (
    SheetHeader.DESIRED,
    SheetHeader.AVAILABLE,
    SheetHeader.STATUS,
    SheetHeader.LAST_PUSHED_AT,
    SheetHeader.LAST_ERROR,
    SheetHeader.INVENTORY_ITEM_ID,
)

METADATA_HEADERS = (
    SheetHeader.CATEGORY,
    SheetHeader.PRODUCT_TITLE,
    SheetHeader.VARIANT_TITLE,
    SheetHeader.SKU,
)
