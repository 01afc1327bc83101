# inventory_sync/services/metadata_service.py
"""
Metadata job: keep Category / Product_Title / Variant_Title / SKU in step with Shopify.
"""

import logging
from typing import Dict, Optional

from inventory_sync.core.config import Settings, get_settings
from inventory_sync.core.enums import METADATA_HEADERS, SheetHeader
from inventory_sync.core.utils import cell_text
from inventory_sync.models.inventory_row import SheetLayout
from inventory_sync.services.sheets.client import CellWrite, SheetsClient, a1_range
from inventory_sync.services.shopify.client import ShopifyGraphQLClient

logger = logging.getLogger(__name__)

DEFAULT_MAX_ROWS = 500

REQUIRED_SETTINGS = ("SPREADSHEET_ID", "SHOPIFY_STORE_DOMAIN", "SHOPIFY_ADMIN_TOKEN")

# Sheet column -> key in ShopifyGraphQLClient.fetch_inventory_item_details()
DETAIL_FIELDS = {
    SheetHeader.CATEGORY: "product_type",
    SheetHeader.PRODUCT_TITLE: "product_title",
    SheetHeader.VARIANT_TITLE: "variant_title",
    SheetHeader.SKU: "sku",
}


def should_update_value(current, new_value) -> bool:
    """Only overwrite with non-empty platform values that actually differ."""
    if not new_value:
        return False
    return cell_text(current) != str(new_value)


def run_update_metadata(settings: Optional[Settings] = None, sheets: Optional[SheetsClient] = None,
                        shopify: Optional[ShopifyGraphQLClient] = None,
                        max_rows: Optional[int] = None) -> Dict[str, int]:
    settings = settings or get_settings()
    settings.require(*REQUIRED_SETTINGS)
    cap = settings.max_rows(DEFAULT_MAX_ROWS, max_rows)

    sheets = sheets or SheetsClient(settings.SPREADSHEET_ID)
    shopify = shopify or ShopifyGraphQLClient()
    sheet_name = settings.SHEET_NAME

    stats = {"items": 0, "updated_rows": 0, "updated_cells": 0}

    rows = sheets.read_all_rows(a1_range(sheet_name, settings.SHEET_COLUMNS))
    if not rows:
        logger.info("No header row found.")
        return stats

    layout = SheetLayout.from_header_row(rows[0], required=(SheetHeader.INVENTORY_ITEM_ID,) + METADATA_HEADERS)

    row_items = []
    for i in range(1, len(rows)):
        item_id = cell_text(layout.value(rows[i], SheetHeader.INVENTORY_ITEM_ID))
        if item_id:
            row_items.append((i + 1, item_id, rows[i]))

    stats["items"] = len(row_items)
    if not row_items:
        logger.info("No inventory items found in sheet.")
        return stats

    details_map = shopify.fetch_inventory_item_details([item_id for _, item_id, _ in row_items])
    updates = []

    for row_number, item_id, values in row_items:
        if stats["updated_rows"] >= cap:
            break
        details = details_map.get(item_id)
        if not details:
            continue

        row_updates = [
            CellWrite(a1_range(sheet_name, f"{layout.letter(header)}{row_number}"), details[key])
            for header, key in DETAIL_FIELDS.items()
            if should_update_value(layout.value(values, header), details[key])
        ]
        if row_updates:
            updates.extend(row_updates)
            stats["updated_rows"] += 1

    if not updates:
        logger.info("No metadata updates required.")
        return stats

    logger.info(f"Updating metadata for {stats['updated_rows']} rows...")
    stats["updated_cells"] = sheets.batch_write_cells(updates)
    logger.info("Metadata update complete.")
    return stats
