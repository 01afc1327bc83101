from unittest.mock import MagicMock

import pytest

from inventory_sync.core.enums import SyncStatus
from inventory_sync.core.exceptions import PlatformRejected, PreconditionFailed, TransportError
from inventory_sync.models.inventory_row import SyncCandidate
from inventory_sync.services.reverse_sync.engine import ReconciliationEngine
from tests.mocks import FakePlatform
from tests.mocks.rows import LOCATION_ID, item_gid

PUSHED_AT = "2025-06-01T10:00:00.000Z"


def _engine(platform):
    return ReconciliationEngine(platform, LOCATION_ID, clock=lambda: PUSHED_AT)


def _candidate(n=1, desired=7, available=10, row=2):
    return SyncCandidate(row_number=row, inventory_item_id=item_gid(n), desired=desired, available=available)


"""
1. Compare-and-swap Tests
"""

def test_push_succeeds_when_baseline_matches():
    platform = FakePlatform(levels={item_gid(1): 10})

    outcome = _engine(platform).push(_candidate())

    assert outcome.succeeded
    assert outcome.status is SyncStatus.EMPTY
    assert outcome.pushed_at == PUSHED_AT
    assert outcome.error is None
    assert not outcome.retried
    assert platform.set_calls == [(item_gid(1), LOCATION_ID, 7, 10)]
    assert platform.read_calls == []
    assert platform.levels[item_gid(1)] == 7


def test_stale_baseline_retries_once_with_live_quantity():
    platform = FakePlatform(levels={item_gid(1): 8})

    outcome = _engine(platform).push(_candidate())

    assert outcome.succeeded
    assert outcome.retried
    assert outcome.compare_quantity == 8
    assert platform.set_calls == [
        (item_gid(1), LOCATION_ID, 7, 10),
        (item_gid(1), LOCATION_ID, 7, 8),
    ]
    assert platform.read_calls == [(item_gid(1), LOCATION_ID)]
    assert platform.levels[item_gid(1)] == 7


def test_second_stale_baseline_is_terminal():
    platform = FakePlatform(levels={item_gid(1): 8})
    # Another writer changes the level between our re-read and the retry
    platform.drift_after_read[item_gid(1)] = 9

    outcome = _engine(platform).push(_candidate())

    assert not outcome.succeeded
    assert outcome.status is SyncStatus.ERROR
    assert outcome.retried
    assert "COMPARE_QUANTITY_STALE" in outcome.error
    assert len(platform.set_calls) == 2
    assert len(platform.read_calls) == 1
    assert platform.levels[item_gid(1)] == 9


def test_other_rejection_is_not_retried():
    rejection = PlatformRejected(
        'Shopify userErrors: [{"code": "INVALID_INVENTORY_ITEM", "message": "The specified inventory item could not be found."}]'
    )
    platform = FakePlatform(levels={item_gid(1): 10}, errors={item_gid(1): rejection})

    outcome = _engine(platform).push(_candidate())

    assert not outcome.succeeded
    assert "INVALID_INVENTORY_ITEM" in outcome.error
    assert not outcome.retried
    assert len(platform.set_calls) == 1
    assert platform.read_calls == []


def test_transport_error_is_recorded_not_raised():
    platform = FakePlatform(levels={item_gid(1): 10}, errors={item_gid(1): TransportError("Shopify HTTP 502: {}")})

    outcome = _engine(platform).push(_candidate())

    assert not outcome.succeeded
    assert outcome.error == "Shopify HTTP 502: {}"
    assert len(platform.set_calls) == 1


def test_failed_reread_is_terminal():
    platform = MagicMock()
    platform.conditional_set_quantity.side_effect = PreconditionFailed("stale")
    platform.read_quantity.side_effect = TransportError("connection reset")

    outcome = _engine(platform).push(_candidate())

    assert not outcome.succeeded
    assert outcome.error == "connection reset"
    assert platform.conditional_set_quantity.call_count == 1


def test_error_message_is_truncated():
    platform = FakePlatform(levels={item_gid(1): 10}, errors={item_gid(1): PlatformRejected("x" * 2000)})

    outcome = _engine(platform).push(_candidate())

    assert len(outcome.error) == 450


def test_unexpected_errors_propagate():
    platform = MagicMock()
    platform.conditional_set_quantity.side_effect = KeyError("bug")

    with pytest.raises(KeyError):
        _engine(platform).push(_candidate())


"""
2. Run Tests
"""

def test_run_processes_in_order_and_continues_after_failures():
    platform = FakePlatform(
        levels={item_gid(1): 10, item_gid(2): 3, item_gid(3): 5},
        errors={item_gid(2): PlatformRejected("nope")},
    )
    candidates = [
        _candidate(1, desired=7, available=10, row=2),
        _candidate(2, desired=1, available=3, row=3),
        _candidate(3, desired=0, available=5, row=4),
    ]

    outcomes = _engine(platform).run(candidates)

    assert [o.candidate.row_number for o in outcomes] == [2, 3, 4]
    assert [o.succeeded for o in outcomes] == [True, False, True]
    assert [call[0] for call in platform.set_calls] == [item_gid(1), item_gid(2), item_gid(3)]
