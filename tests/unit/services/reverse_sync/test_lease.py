import json

import pytest

from inventory_sync.core.exceptions import LeaseHeldError
from inventory_sync.services.reverse_sync.lease import RunLease
from tests.mocks import FakeSheetStore

LEASE_RANGE = "Sync_Lease!A1"


def _lease(store, owner="run-a", now=1000.0):
    return RunLease(store, LEASE_RANGE, ttl_seconds=900, owner=owner, clock=lambda: now)


def test_acquire_and_release_empty_lease():
    store = FakeSheetStore()
    lease = _lease(store)

    with lease:
        value = json.loads(store.cell("Sync_Lease", "A1"))
        assert value == {"owner": "run-a", "expires_at": 1900.0}
        assert lease.held

    assert store.cell("Sync_Lease", "A1") == ""
    assert not lease.held


def test_unexpired_lease_blocks_other_runs():
    store = FakeSheetStore({"Sync_Lease": [[json.dumps({"owner": "run-b", "expires_at": 1500.0})]]})

    with pytest.raises(LeaseHeldError):
        _lease(store).acquire()

    # Untouched
    assert json.loads(store.cell("Sync_Lease", "A1"))["owner"] == "run-b"


def test_expired_lease_is_taken_over():
    store = FakeSheetStore({"Sync_Lease": [[json.dumps({"owner": "run-b", "expires_at": 999.0})]]})

    lease = _lease(store)
    lease.acquire()

    assert json.loads(store.cell("Sync_Lease", "A1"))["owner"] == "run-a"


def test_unreadable_lease_value_is_overwritten():
    store = FakeSheetStore({"Sync_Lease": [["locked by hand"]]})

    _lease(store).acquire()

    assert json.loads(store.cell("Sync_Lease", "A1"))["owner"] == "run-a"


@pytest.mark.parametrize("expires_at", ["soon", None, [1500]])
def test_lease_with_unreadable_expiry_is_taken_over(expires_at):
    store = FakeSheetStore({"Sync_Lease": [[json.dumps({"owner": "run-b", "expires_at": expires_at})]]})

    _lease(store).acquire()

    assert json.loads(store.cell("Sync_Lease", "A1"))["owner"] == "run-a"


def test_lease_released_when_run_fails():
    store = FakeSheetStore()

    with pytest.raises(RuntimeError):
        with _lease(store):
            raise RuntimeError("boom")

    assert store.cell("Sync_Lease", "A1") == ""
