# inventory_sync/services/reconcile_service.py
"""
Reconcile job: refresh Truth_Table.Available from Shopify for the configured location.
"""

import logging
from typing import Dict, Optional

from inventory_sync.core.config import Settings, get_settings
from inventory_sync.core.enums import SheetHeader
from inventory_sync.core.utils import cell_text, normalize_int
from inventory_sync.models.inventory_row import SheetLayout
from inventory_sync.services.sheets.client import CellWrite, SheetsClient, a1_range
from inventory_sync.services.shopify.client import ShopifyGraphQLClient

logger = logging.getLogger(__name__)

DEFAULT_MAX_ROWS = 200

REQUIRED_SETTINGS = ("SPREADSHEET_ID", "SHOPIFY_STORE_DOMAIN", "SHOPIFY_ADMIN_TOKEN", "SHOPIFY_LOCATION_ID")


def run_reconcile(settings: Optional[Settings] = None, sheets: Optional[SheetsClient] = None,
                  shopify: Optional[ShopifyGraphQLClient] = None,
                  max_rows: Optional[int] = None) -> Dict[str, int]:
    """
    Overwrite Available with Shopify's quantity wherever they differ.

    Rows whose item has no inventory level at the location are left alone.
    Returns counts: rows, platform_items, updated, skipped_unknown.
    """
    settings = settings or get_settings()
    settings.require(*REQUIRED_SETTINGS)
    cap = settings.max_rows(DEFAULT_MAX_ROWS, max_rows)

    sheets = sheets or SheetsClient(settings.SPREADSHEET_ID)
    shopify = shopify or ShopifyGraphQLClient()
    sheet_name = settings.SHEET_NAME

    stats = {"rows": 0, "platform_items": 0, "updated": 0, "skipped_unknown": 0}

    rows = sheets.read_all_rows(a1_range(sheet_name, settings.SHEET_COLUMNS))
    if len(rows) < 2:
        logger.info("No data rows found.")
        return stats

    stats["rows"] = len(rows) - 1
    logger.info(f"Loaded {stats['rows']} rows from {sheet_name}.")
    layout = SheetLayout.from_header_row(
        rows[0], required=(SheetHeader.AVAILABLE, SheetHeader.LAST_ERROR, SheetHeader.INVENTORY_ITEM_ID)
    )

    logger.info(f"Building available map from Shopify for location {settings.SHOPIFY_LOCATION_ID}...")
    available_map = shopify.read_quantity_map_for_location(settings.SHOPIFY_LOCATION_ID)
    stats["platform_items"] = len(available_map)
    logger.info(f"Shopify map ready. Items: {len(available_map)}")

    available_col = layout.letter(SheetHeader.AVAILABLE)
    error_col = layout.letter(SheetHeader.LAST_ERROR)
    updates = []

    for i in range(1, len(rows)):
        if stats["updated"] >= cap:
            break
        row_number = i + 1
        values = rows[i]

        item_id = cell_text(layout.value(values, SheetHeader.INVENTORY_ITEM_ID))
        if not item_id:
            continue

        shop_available = available_map.get(item_id)
        if shop_available is None:
            stats["skipped_unknown"] += 1
            continue

        try:
            sheet_available = normalize_int(layout.value(values, SheetHeader.AVAILABLE))
        except ValueError:
            # Garbage in Available gets replaced by the platform value
            sheet_available = None

        if sheet_available != shop_available:
            updates.append(CellWrite(a1_range(sheet_name, f"{available_col}{row_number}"), shop_available))
            updates.append(CellWrite(a1_range(sheet_name, f"{error_col}{row_number}"), ""))
            stats["updated"] += 1

    logger.info(f"Rows needing Available refresh: {stats['updated']}")
    if not updates:
        logger.info("Nothing to update.")
        return stats

    sheets.batch_write_cells(updates)
    logger.info("Reconcile done.")
    return stats
