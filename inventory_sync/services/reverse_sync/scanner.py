# inventory_sync/services/reverse_sync/scanner.py

import logging
from dataclasses import dataclass, field
from typing import Any, List, Sequence

from inventory_sync.core.enums import SheetHeader, SyncStatus
from inventory_sync.core.exceptions import MalformedRowError
from inventory_sync.core.utils import cell_text
from inventory_sync.models.inventory_row import InventoryRow, SheetLayout, SyncCandidate

logger = logging.getLogger(__name__)


@dataclass
class ScanResult:
    """Candidates selected for this run plus the counts worth logging."""
    candidates: List[SyncCandidate] = field(default_factory=list)
    data_rows: int = 0
    eligible: int = 0        # candidates before the per-run cap
    malformed: int = 0
    # Rows still marked PENDING by an earlier run that never wrote its outcome
    stale_pending_rows: List[int] = field(default_factory=list)

    @property
    def truncated(self) -> int:
        return self.eligible - len(self.candidates)

    @property
    def orphaned_pending_rows(self) -> List[int]:
        """Stale PENDING rows that this run will not push; their mark must still be cleared."""
        selected = {c.row_number for c in self.candidates}
        return [r for r in self.stale_pending_rows if r not in selected]


def scan_candidates(rows: Sequence[Sequence[Any]], layout: SheetLayout, max_candidates: int) -> ScanResult:
    """
    Select sync candidates from a full sheet snapshot (header row first).

    A row qualifies when it has an InventoryItem_ID and both quantities parse
    and differ. Selection is the first ``max_candidates`` in row order, so a
    backlog drains front to back across runs. Rows whose quantities don't
    parse are skipped and only counted. Any row still carrying an earlier
    run's PENDING mark is listed in ``stale_pending_rows``.
    """
    result = ScanResult(data_rows=max(len(rows) - 1, 0))

    for i in range(1, len(rows)):
        row_number = i + 1
        values = rows[i]

        # Checked before any skip so a skipped row still gets its mark cleared
        if SyncStatus.from_cell(layout.value(values, SheetHeader.STATUS)) is SyncStatus.PENDING:
            result.stale_pending_rows.append(row_number)

        if not cell_text(layout.value(values, SheetHeader.INVENTORY_ITEM_ID)):
            continue

        try:
            row = InventoryRow.from_values(row_number, values, layout)
        except MalformedRowError as e:
            result.malformed += 1
            logger.debug("Skipping malformed row: %s", e)
            continue

        if not row.is_candidate:
            continue

        result.eligible += 1
        if len(result.candidates) < max_candidates:
            result.candidates.append(row.to_candidate())

    if result.malformed:
        logger.info("Skipped %d malformed rows (non-numeric quantities)", result.malformed)
    if result.stale_pending_rows:
        logger.warning(
            "Found %d rows left PENDING by an earlier run: %s",
            len(result.stale_pending_rows), result.stale_pending_rows[:20],
        )
    if result.truncated:
        logger.warning(
            "%d eligible rows exceed the per-run cap of %d; %d deferred to later runs",
            result.eligible, max_candidates, result.truncated,
        )

    return result
