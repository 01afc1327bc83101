# inventory_sync/services/reverse_sync_service.py
"""
Reverse sync job: Desired_Available edits in the sheet -> Shopify.

Run order:
1. check configuration (nothing is read before this passes)
2. take the overlap lease, if one is configured
3. read the sheet and select candidates
4. batch-mark candidates PENDING
5. push each candidate (CAS with one stale-baseline retry)
6. batch-write outcomes
"""

import contextlib
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from tabulate import tabulate

from inventory_sync.core.config import Settings, get_settings
from inventory_sync.core.enums import REVERSE_SYNC_HEADERS
from inventory_sync.models.inventory_row import SheetLayout
from inventory_sync.services.reverse_sync.engine import PushOutcome, ReconciliationEngine
from inventory_sync.services.reverse_sync.lease import RunLease
from inventory_sync.services.reverse_sync.scanner import scan_candidates
from inventory_sync.services.reverse_sync.writer import ResultWriter
from inventory_sync.services.sheets.client import SheetsClient, a1_range
from inventory_sync.services.shopify.client import ShopifyGraphQLClient

logger = logging.getLogger(__name__)

DEFAULT_MAX_ROWS = 50

REQUIRED_SETTINGS = (
    "SPREADSHEET_ID",
    "SHEET_NAME",
    "SHOPIFY_STORE_DOMAIN",
    "SHOPIFY_ADMIN_TOKEN",
    "SHOPIFY_LOCATION_ID",
)


@dataclass
class ReverseSyncReport:
    """Summary of one reverse sync run."""
    data_rows: int = 0
    eligible: int = 0
    malformed: int = 0
    stale_pending: int = 0
    outcomes: List[PushOutcome] = field(default_factory=list)

    @property
    def synced(self) -> int:
        return sum(1 for o in self.outcomes if o.succeeded)

    @property
    def errors(self) -> int:
        return sum(1 for o in self.outcomes if not o.succeeded)

    @property
    def retried(self) -> int:
        return sum(1 for o in self.outcomes if o.retried)

    def summary_rows(self):
        return [
            ["Data rows", self.data_rows],
            ["Eligible", self.eligible],
            ["Processed", len(self.outcomes)],
            ["Synced", self.synced],
            ["Errors", self.errors],
            ["Stale retries", self.retried],
            ["Malformed", self.malformed],
            ["Stale PENDING", self.stale_pending],
        ]

    def print_summary(self):
        print("\nREVERSE SYNC REPORT")
        print(tabulate(self.summary_rows(), headers=["Metric", "Count"], tablefmt="simple"))
        failed = [
            [o.candidate.row_number, o.candidate.inventory_item_id, o.error]
            for o in self.outcomes if not o.succeeded
        ]
        if failed:
            print("\nFailed rows:")
            print(tabulate(failed, headers=["Row", "InventoryItem_ID", "Error"], tablefmt="simple", maxcolwidths=[None, None, 80]))


def run_reverse_sync(settings: Optional[Settings] = None, sheets: Optional[SheetsClient] = None,
                     shopify: Optional[ShopifyGraphQLClient] = None,
                     max_rows: Optional[int] = None) -> ReverseSyncReport:
    """
    Push Desired_Available values to Shopify for up to ``max_rows`` rows.

    Raises ConfigurationError before touching the sheet if a run parameter is
    missing. Per-row failures are written to the sheet and counted in the
    report, never raised.
    """
    settings = settings or get_settings()
    settings.require(*REQUIRED_SETTINGS)
    cap = settings.max_rows(DEFAULT_MAX_ROWS, max_rows)

    sheets = sheets or SheetsClient(settings.SPREADSHEET_ID)
    shopify = shopify or ShopifyGraphQLClient()

    lease = contextlib.nullcontext()
    if settings.REVERSE_SYNC_LEASE_RANGE:
        lease = RunLease(sheets, settings.REVERSE_SYNC_LEASE_RANGE, settings.REVERSE_SYNC_LEASE_TTL_SECONDS)

    with lease:
        return _run(settings, sheets, shopify, cap)


def _run(settings: Settings, sheets, shopify, cap: int) -> ReverseSyncReport:
    report = ReverseSyncReport()
    sheet_name = settings.SHEET_NAME

    rows = sheets.read_all_rows(a1_range(sheet_name, settings.SHEET_COLUMNS))
    if len(rows) < 2:
        logger.info("No data rows found.")
        return report

    logger.info("Loaded %d rows from %s.", len(rows) - 1, sheet_name)
    layout = SheetLayout.from_header_row(rows[0], required=REVERSE_SYNC_HEADERS)

    scan = scan_candidates(rows, layout, cap)
    report.data_rows = scan.data_rows
    report.eligible = scan.eligible
    report.malformed = scan.malformed
    report.stale_pending = len(scan.stale_pending_rows)

    logger.info("Found %d candidate rows (Desired != Available).", len(scan.candidates))
    orphaned = scan.orphaned_pending_rows
    if not scan.candidates and not orphaned:
        return report

    writer = ResultWriter(sheets, sheet_name, layout)
    if scan.candidates:
        writer.mark_pending(scan.candidates)

    engine = ReconciliationEngine(shopify, settings.SHOPIFY_LOCATION_ID)
    report.outcomes = engine.run(scan.candidates)

    writer.write_outcomes(report.outcomes, clear_pending_rows=orphaned)
    logger.info("Reverse sync done: %d synced, %d errors.", report.synced, report.errors)
    return report
