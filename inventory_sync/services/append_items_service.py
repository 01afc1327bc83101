# inventory_sync/services/append_items_service.py
"""
Append job: add rows for Shopify inventory items stocked at the location but
missing from Truth_Table.
"""

import logging
from typing import Dict, Optional

from inventory_sync.core.config import Settings, get_settings
from inventory_sync.core.enums import SheetHeader
from inventory_sync.core.utils import cell_text
from inventory_sync.models.inventory_row import SheetLayout
from inventory_sync.services.sheets.client import SheetsClient, a1_range
from inventory_sync.services.shopify.client import ShopifyGraphQLClient

logger = logging.getLogger(__name__)

DEFAULT_MAX_ROWS = 200

REQUIRED_SETTINGS = ("SPREADSHEET_ID", "SHOPIFY_STORE_DOMAIN", "SHOPIFY_ADMIN_TOKEN", "SHOPIFY_LOCATION_ID")


def run_append_new_items(settings: Optional[Settings] = None, sheets: Optional[SheetsClient] = None,
                         shopify: Optional[ShopifyGraphQLClient] = None,
                         max_rows: Optional[int] = None) -> Dict[str, int]:
    settings = settings or get_settings()
    settings.require(*REQUIRED_SETTINGS)
    cap = settings.max_rows(DEFAULT_MAX_ROWS, max_rows)

    sheets = sheets or SheetsClient(settings.SPREADSHEET_ID)
    shopify = shopify or ShopifyGraphQLClient()
    table_range = a1_range(settings.SHEET_NAME, settings.SHEET_COLUMNS)

    stats = {"existing": 0, "platform_items": 0, "appended": 0}

    rows = sheets.read_all_rows(table_range)
    if not rows:
        logger.info("No header row found.")
        return stats

    layout = SheetLayout.from_header_row(rows[0], required=(SheetHeader.INVENTORY_ITEM_ID,))

    existing_ids = set()
    for values in rows[1:]:
        item_id = cell_text(layout.value(values, SheetHeader.INVENTORY_ITEM_ID))
        if item_id:
            existing_ids.add(item_id)
    stats["existing"] = len(existing_ids)
    logger.info(f"Loaded {len(existing_ids)} InventoryItem_ID values from sheet.")

    logger.info(f"Building Shopify map for location {settings.SHOPIFY_LOCATION_ID}...")
    available_map = shopify.read_quantity_map_for_location(settings.SHOPIFY_LOCATION_ID)
    stats["platform_items"] = len(available_map)
    logger.info(f"Shopify map ready. Items: {len(available_map)}")

    missing_ids = [item_id for item_id in available_map if item_id not in existing_ids][:cap]
    if not missing_ids:
        logger.info("No new inventory items to append.")
        return stats

    details_map = shopify.fetch_inventory_item_details(missing_ids)

    new_rows = []
    for item_id in missing_ids:
        details = details_map.get(item_id, {})
        new_rows.append(layout.build_row({
            SheetHeader.INVENTORY_ITEM_ID: item_id,
            SheetHeader.AVAILABLE: available_map[item_id],
            SheetHeader.CATEGORY: details.get("product_type", ""),
            SheetHeader.PRODUCT_TITLE: details.get("product_title", ""),
            SheetHeader.VARIANT_TITLE: details.get("variant_title", ""),
            SheetHeader.SKU: details.get("sku", ""),
        }))

    logger.info(f"Appending {len(new_rows)} new rows to {settings.SHEET_NAME}...")
    stats["appended"] = sheets.append_rows(table_range, new_rows)
    logger.info("Append complete.")
    return stats
