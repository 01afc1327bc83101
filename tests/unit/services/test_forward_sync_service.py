import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from google.api_core.exceptions import ServiceUnavailable

from inventory_sync.core.exceptions import ConfigurationError, SheetsAPIError, TransportError
from inventory_sync.services.forward_sync_service import (
    InventoryLevelEvent,
    PubSubEventSource,
    apply_events,
    run_forward_sync,
)
from tests.mocks.rows import HEADERS, item_gid, make_row


def _message(ack_id, payload):
    data = payload if isinstance(payload, bytes) else json.dumps(payload).encode("utf-8")
    return SimpleNamespace(ack_id=ack_id, message=SimpleNamespace(message_id=f"m-{ack_id}", data=data))


class FakeEventSource:
    def __init__(self, messages):
        self.messages = messages
        self.acked = []

    def pull(self, max_messages):
        return self.messages[:max_messages]

    def acknowledge(self, ack_ids):
        self.acked.extend(ack_ids)


"""
1. Message Decoding Tests
"""

def test_event_from_numeric_id():
    event = InventoryLevelEvent.from_message_data(b'{"inventory_item_id": 42, "available": 3, "location_id": 1}')
    assert event == InventoryLevelEvent(inventory_item_id=item_gid(42), available=3)


def test_event_keeps_gid():
    event = InventoryLevelEvent.from_message_data(json.dumps({"inventory_item_id": item_gid(5), "available": "7"}).encode())
    assert event.inventory_item_id == item_gid(5)
    assert event.available == 7


@pytest.mark.parametrize("data", [
    b"not json",
    b"[1, 2]",
    b'{"inventory_item_id": 42}',
    b'{"available": 3}',
    b'{"inventory_item_id": 42, "available": "lots"}',
    b"\xff\xfe",
])
def test_undecodable_messages(data):
    assert InventoryLevelEvent.from_message_data(data) is None


"""
2. Applying Events
"""

def test_apply_events_last_event_wins():
    rows = [HEADERS, make_row(item_gid(1)), make_row(item_gid(2))]
    events = [
        InventoryLevelEvent(item_gid(2), 5),
        InventoryLevelEvent(item_gid(2), 4),
        InventoryLevelEvent(item_gid(9), 1),
    ]

    result = apply_events(events, rows, "Truth_Table")

    assert [(w.range, w.value) for w in result["writes"]] == [("Truth_Table!F3", 4)]
    assert result["unmatched"] == [item_gid(9)]


def test_run_forward_sync_writes_and_acks(settings, make_store):
    store = make_store(make_row(item_gid(1), available=10), make_row(item_gid(2), available=2))
    source = FakeEventSource([
        _message("a", {"inventory_item_id": 1, "available": 8}),
        _message("b", b"garbage"),
        _message("c", {"inventory_item_id": 77, "available": 0}),
    ])

    stats = run_forward_sync(settings=settings, sheets=store, source=source)

    assert stats == {"received": 3, "applied": 1, "invalid": 1, "unmatched": 1}
    assert store.cell("Truth_Table", "F2") == 8
    assert store.cell("Truth_Table", "F3") == 2
    assert source.acked == ["a", "b", "c"]


def test_failed_write_leaves_messages_unacked(settings, make_store):
    store = make_store(make_row(item_gid(1), available=10))
    store.fail_batch_write = SheetsAPIError("Sheets values.batchUpdate failed (HTTP 503)")
    source = FakeEventSource([_message("a", {"inventory_item_id": 1, "available": 8})])

    with pytest.raises(SheetsAPIError):
        run_forward_sync(settings=settings, sheets=store, source=source)

    assert source.acked == []


def test_no_messages(settings, make_store):
    store = make_store(make_row(item_gid(1), available=10))
    source = FakeEventSource([])

    stats = run_forward_sync(settings=settings, sheets=store, source=source)

    assert stats["received"] == 0
    assert store.read_calls == []


def test_missing_subscription_is_a_configuration_error(settings):
    settings.PUBSUB_SUBSCRIPTION = None

    with pytest.raises(ConfigurationError):
        run_forward_sync(settings=settings, sheets=MagicMock(), source=FakeEventSource([]))


"""
3. Pub/Sub Source
"""

def test_pubsub_source_pull_and_ack():
    subscriber = MagicMock()
    subscriber.subscription_path.return_value = "projects/test-project/subscriptions/inventory-updates"
    subscriber.pull.return_value = SimpleNamespace(received_messages=[_message("a", {})])
    source = PubSubEventSource("test-project", "inventory-updates", subscriber=subscriber)

    messages = source.pull(10)
    source.acknowledge(["a"])

    assert [m.ack_id for m in messages] == ["a"]
    subscriber.pull.assert_called_once_with(
        request={"subscription": "projects/test-project/subscriptions/inventory-updates", "max_messages": 10}
    )
    subscriber.acknowledge.assert_called_once_with(
        request={"subscription": "projects/test-project/subscriptions/inventory-updates", "ack_ids": ["a"]}
    )


def test_pubsub_errors_are_transport_errors():
    subscriber = MagicMock()
    subscriber.pull.side_effect = ServiceUnavailable("backend down")
    source = PubSubEventSource("test-project", "inventory-updates", subscriber=subscriber)

    with pytest.raises(TransportError):
        source.pull(10)
