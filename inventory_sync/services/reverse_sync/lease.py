# inventory_sync/services/reverse_sync/lease.py
"""
Overlap guard for reverse sync runs.

The lease is a single reserved cell holding ``{"owner": ..., "expires_at": ...}``.
A run that finds an unexpired lease owned by someone else exits without
touching rows. Expired leases are taken over, so a crashed run only blocks
others for the TTL.
"""

import json
import logging
import time
import uuid
from typing import Callable, Optional

from inventory_sync.core.exceptions import LeaseHeldError

logger = logging.getLogger(__name__)


class RunLease:

    def __init__(self, store, range_spec: str, ttl_seconds: int,
                 owner: Optional[str] = None, clock: Callable[[], float] = time.time):
        self.store = store
        self.range_spec = range_spec
        self.ttl_seconds = ttl_seconds
        self.owner = owner or f"run-{uuid.uuid4()}"
        self.clock = clock
        self.held = False

    def _read(self) -> Optional[dict]:
        rows = self.store.read_all_rows(self.range_spec)
        raw = rows[0][0] if rows and rows[0] else ""
        if not raw:
            return None
        try:
            lease = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Ignoring unreadable lease value in %s: %r", self.range_spec, raw)
            return None
        return lease if isinstance(lease, dict) else None

    def _expires_at(self, lease: dict) -> float:
        try:
            return float(lease.get("expires_at", 0))
        except (TypeError, ValueError):
            logger.warning("Treating lease with unreadable expires_at as expired: %r", lease)
            return 0.0

    def acquire(self) -> None:
        current = self._read()
        now = self.clock()
        if current and current.get("owner") != self.owner and self._expires_at(current) > now:
            raise LeaseHeldError(
                f"Reverse sync lease held by {current.get('owner')} until {current.get('expires_at')}"
            )
        if current:
            logger.info("Taking over expired lease from %s", current.get("owner"))

        self.store.write_cell(
            self.range_spec,
            json.dumps({"owner": self.owner, "expires_at": now + self.ttl_seconds}),
        )

        # Two runs can both see an empty cell; the last writer wins and the other backs off.
        confirmed = self._read()
        if not confirmed or confirmed.get("owner") != self.owner:
            raise LeaseHeldError(f"Lost reverse sync lease race to {confirmed and confirmed.get('owner')}")
        self.held = True
        logger.info("Acquired reverse sync lease %s (ttl=%ss)", self.owner, self.ttl_seconds)

    def release(self) -> None:
        if not self.held:
            return
        self.store.write_cell(self.range_spec, "")
        self.held = False
        logger.info("Released reverse sync lease %s", self.owner)

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False
