# inventory_sync/services/forward_sync_service.py
"""
Forward sync worker: apply Shopify inventory level events (delivered through a
Pub/Sub subscription) to the Available column.

Message payload: ``{"inventory_item_id": 123, "available": 7, ...}`` as sent by
the inventory_levels/update webhook.
"""

import json
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from google.api_core.exceptions import GoogleAPICallError
from google.cloud import pubsub_v1

from inventory_sync.core.config import Settings, get_settings
from inventory_sync.core.enums import SheetHeader
from inventory_sync.core.exceptions import TransportError
from inventory_sync.core.utils import cell_text, normalize_int
from inventory_sync.models.inventory_row import SheetLayout
from inventory_sync.services.sheets.client import CellWrite, SheetsClient, a1_range

logger = logging.getLogger(__name__)

INVENTORY_ITEM_GID_PREFIX = "gid://shopify/InventoryItem/"

REQUIRED_SETTINGS = ("SPREADSHEET_ID", "PUBSUB_PROJECT_ID", "PUBSUB_SUBSCRIPTION")


@dataclass(frozen=True)
class InventoryLevelEvent:
    inventory_item_id: str  # gid form
    available: int

    @classmethod
    def from_message_data(cls, data: bytes) -> Optional["InventoryLevelEvent"]:
        """Decode one message body; returns None for payloads that can't be applied."""
        try:
            payload = json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            logger.error(f"Undecodable message body: {e}")
            return None
        if not isinstance(payload, dict):
            logger.error(f"Unexpected message payload: {payload!r}")
            return None

        raw_id = cell_text(payload.get("inventory_item_id"))
        try:
            available = normalize_int(payload.get("available"))
        except ValueError:
            available = None
        if not raw_id or available is None:
            logger.error(f"Message missing inventory_item_id/available: {payload!r}")
            return None

        item_gid = raw_id if raw_id.startswith("gid://") else f"{INVENTORY_ITEM_GID_PREFIX}{raw_id}"
        return cls(inventory_item_id=item_gid, available=available)


class PubSubEventSource:
    """Synchronous pull/ack over one subscription."""

    def __init__(self, project_id: str, subscription: str, subscriber=None):
        self.subscriber = subscriber or pubsub_v1.SubscriberClient()
        self.subscription_path = self.subscriber.subscription_path(project_id, subscription)

    def pull(self, max_messages: int):
        try:
            response = self.subscriber.pull(
                request={"subscription": self.subscription_path, "max_messages": max_messages}
            )
        except GoogleAPICallError as e:
            raise TransportError(f"Pub/Sub pull failed: {e}") from e
        return list(response.received_messages)

    def acknowledge(self, ack_ids: List[str]) -> None:
        if not ack_ids:
            return
        try:
            self.subscriber.acknowledge(request={"subscription": self.subscription_path, "ack_ids": ack_ids})
        except GoogleAPICallError as e:
            raise TransportError(f"Pub/Sub acknowledge failed: {e}") from e


def apply_events(events: List[InventoryLevelEvent], rows, sheet_name: str) -> Dict[str, object]:
    """
    Cell writes that put each event's quantity into its item's Available cell.

    Later events for the same item win. Events for items with no row are
    reported back in ``unmatched``.
    """
    layout = SheetLayout.from_header_row(rows[0], required=(SheetHeader.AVAILABLE, SheetHeader.INVENTORY_ITEM_ID))
    row_by_item = {}
    for i in range(1, len(rows)):
        item_id = cell_text(layout.value(rows[i], SheetHeader.INVENTORY_ITEM_ID))
        if item_id and item_id not in row_by_item:
            row_by_item[item_id] = i + 1

    latest = {}
    for event in events:
        latest[event.inventory_item_id] = event.available

    available_col = layout.letter(SheetHeader.AVAILABLE)
    writes, unmatched = [], []
    for item_id, available in latest.items():
        row_number = row_by_item.get(item_id)
        if row_number is None:
            unmatched.append(item_id)
            continue
        logger.info(f"Updating sheet row {row_number} for {item_id} with available={available}")
        writes.append(CellWrite(a1_range(sheet_name, f"{available_col}{row_number}"), available))

    return {"writes": writes, "unmatched": unmatched}


def run_forward_sync(settings: Optional[Settings] = None, sheets: Optional[SheetsClient] = None,
                     source: Optional[PubSubEventSource] = None) -> Dict[str, int]:
    """
    Pull one batch of events and apply it.

    Messages are acknowledged only after the sheet write succeeds; a failed
    write leaves them for redelivery.
    """
    settings = settings or get_settings()
    settings.require(*REQUIRED_SETTINGS)

    source = source or PubSubEventSource(settings.PUBSUB_PROJECT_ID, settings.PUBSUB_SUBSCRIPTION)
    stats = {"received": 0, "applied": 0, "invalid": 0, "unmatched": 0}

    received = source.pull(settings.PUBSUB_MAX_MESSAGES)
    stats["received"] = len(received)
    if not received:
        logger.info("No messages received.")
        return stats

    events = []
    for message in received:
        logger.debug(f"Message {message.message.message_id}: {message.message.data!r}")
        event = InventoryLevelEvent.from_message_data(message.message.data)
        if event is None:
            stats["invalid"] += 1
        else:
            events.append(event)

    if events:
        sheets = sheets or SheetsClient(settings.SPREADSHEET_ID)
        rows = sheets.read_all_rows(a1_range(settings.SHEET_NAME, settings.SHEET_COLUMNS))
        if not rows:
            logger.warning("Sheet has no data.")
            stats["unmatched"] = len({e.inventory_item_id for e in events})
        else:
            result = apply_events(events, rows, settings.SHEET_NAME)
            for item_id in result["unmatched"]:
                logger.warning(f"No row found in sheet for InventoryItem_ID = {item_id}")
            stats["unmatched"] = len(result["unmatched"])
            stats["applied"] = sheets.batch_write_cells(result["writes"])

    source.acknowledge([m.ack_id for m in received])
    logger.info("Done processing batch.")
    return stats
