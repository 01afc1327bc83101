# inventory_sync/models/inventory_row.py
"""
Typed views over Truth_Table rows.

The sheet is read as plain value arrays. ``SheetLayout`` maps header names to
column positions once per run, and ``InventoryRow`` turns one value array into
the fields the sync jobs care about.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from inventory_sync.core.enums import SheetHeader
from inventory_sync.core.exceptions import MalformedRowError, SheetLayoutError
from inventory_sync.core.utils import cell_text, column_letter, normalize_int


@dataclass(frozen=True)
class SheetLayout:
    """Column positions resolved from the header row."""
    headers: List[str]
    columns: Dict[SheetHeader, int] = field(default_factory=dict)

    @classmethod
    def from_header_row(cls, header_row: Sequence[Any],
                        required: Iterable[SheetHeader] = ()) -> "SheetLayout":
        headers = [cell_text(h) for h in header_row]
        columns = {}
        for header in SheetHeader:
            if header.value in headers:
                columns[header] = headers.index(header.value)

        missing = [h.value for h in required if h not in columns]
        if missing:
            raise SheetLayoutError(f"Missing header(s): {', '.join(missing)}")
        return cls(headers=headers, columns=columns)

    def has(self, header: SheetHeader) -> bool:
        return header in self.columns

    def index(self, header: SheetHeader) -> int:
        try:
            return self.columns[header]
        except KeyError:
            raise SheetLayoutError(f"Missing header: {header.value}") from None

    def letter(self, header: SheetHeader) -> str:
        return column_letter(self.index(header))

    def value(self, values: Sequence[Any], header: SheetHeader) -> Any:
        """Cell value for ``header``; the Sheets API drops trailing empty cells."""
        idx = self.columns.get(header)
        if idx is None or idx >= len(values):
            return None
        return values[idx]

    def build_row(self, values_by_header: Dict[SheetHeader, Any]) -> List[Any]:
        """A full-width row laid out in header order, blank where no value is given."""
        by_name = {h.value: v for h, v in values_by_header.items()}
        return [by_name.get(name, "") for name in self.headers]


@dataclass(frozen=True)
class SyncCandidate:
    """A row whose desired quantity differs from its last known platform quantity."""
    row_number: int  # 1-based sheet row
    inventory_item_id: str
    desired: int
    available: int


@dataclass
class InventoryRow:
    row_number: int
    inventory_item_id: Optional[str]
    desired_available: Optional[int]
    available: Optional[int]

    @classmethod
    def from_values(cls, row_number: int, values: Sequence[Any], layout: SheetLayout) -> "InventoryRow":
        """
        Build a row from its raw values.

        Raises MalformedRowError when a quantity cell holds something that is
        not a number (e.g. "N/A"). Blank quantity cells are fine and give None.
        """
        item_id = cell_text(layout.value(values, SheetHeader.INVENTORY_ITEM_ID)) or None
        try:
            desired = normalize_int(layout.value(values, SheetHeader.DESIRED))
            available = normalize_int(layout.value(values, SheetHeader.AVAILABLE))
        except ValueError as e:
            raise MalformedRowError(f"Row {row_number}: {e}") from e

        return cls(
            row_number=row_number,
            inventory_item_id=item_id,
            desired_available=desired,
            available=available,
        )

    @property
    def is_candidate(self) -> bool:
        return (
            bool(self.inventory_item_id)
            and self.desired_available is not None
            and self.available is not None
            and self.desired_available != self.available
        )

    def to_candidate(self) -> SyncCandidate:
        if not self.is_candidate:
            raise ValueError(f"Row {self.row_number} is not a sync candidate")
        return SyncCandidate(
            row_number=self.row_number,
            inventory_item_id=self.inventory_item_id,
            desired=self.desired_available,
            available=self.available,
        )
