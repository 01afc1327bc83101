# inventory_sync/services/reverse_sync/writer.py

import logging
from typing import Iterable, List, Sequence

from inventory_sync.core.enums import SheetHeader, SyncStatus
from inventory_sync.models.inventory_row import SheetLayout, SyncCandidate
from inventory_sync.services.sheets.client import CellWrite, a1_range
from inventory_sync.services.reverse_sync.engine import PushOutcome

logger = logging.getLogger(__name__)


class ResultWriter:
    """
    Turns reverse sync state changes into cell writes, one batch call per pass.

    Pass 1 marks every candidate PENDING before any push. Pass 2 writes the
    terminal outcome of each push (and clears stale PENDING marks the run did
    not push).
    """

    def __init__(self, store, sheet_name: str, layout: SheetLayout):
        self.store = store
        self.sheet_name = sheet_name
        self.layout = layout

    def _cell(self, header: SheetHeader, row_number: int, value) -> CellWrite:
        return CellWrite(a1_range(self.sheet_name, f"{self.layout.letter(header)}{row_number}"), value)

    def pending_writes(self, candidates: Sequence[SyncCandidate]) -> List[CellWrite]:
        return [self._cell(SheetHeader.STATUS, c.row_number, SyncStatus.PENDING.value) for c in candidates]

    def outcome_writes(self, outcomes: Sequence[PushOutcome]) -> List[CellWrite]:
        writes = []
        for outcome in outcomes:
            row = outcome.candidate.row_number
            if outcome.succeeded:
                writes.extend([
                    self._cell(SheetHeader.STATUS, row, SyncStatus.EMPTY.value),
                    self._cell(SheetHeader.LAST_PUSHED_AT, row, outcome.pushed_at),
                    self._cell(SheetHeader.LAST_ERROR, row, ""),
                    # Clearing Desired_Available is what stops the row from being pushed again
                    self._cell(SheetHeader.DESIRED, row, ""),
                ])
            else:
                writes.extend([
                    self._cell(SheetHeader.STATUS, row, SyncStatus.ERROR.value),
                    self._cell(SheetHeader.LAST_ERROR, row, outcome.error or ""),
                ])
        return writes

    def mark_pending(self, candidates: Sequence[SyncCandidate]) -> int:
        writes = self.pending_writes(candidates)
        self.store.batch_write_cells(writes)
        logger.info("Marked %d rows PENDING", len(candidates))
        return len(writes)

    def write_outcomes(self, outcomes: Sequence[PushOutcome], clear_pending_rows: Iterable[int] = ()) -> int:
        writes = self.outcome_writes(outcomes)
        for row_number in clear_pending_rows:
            writes.append(self._cell(SheetHeader.STATUS, row_number, SyncStatus.EMPTY.value))
        self.store.batch_write_cells(writes)
        return len(writes)
