# inventory_sync/services/reverse_sync/engine.py
"""
Compare-and-swap push of desired quantities to Shopify.

Each candidate is written with ``compareQuantity`` set to the Available value
the sheet last saw. If Shopify says that baseline is stale, the live quantity
is read and the write is retried exactly once against it. Any other rejection,
a transport failure, or a second stale baseline is final for that row.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from inventory_sync.core.enums import SyncStatus
from inventory_sync.core.exceptions import PlatformRejected, PreconditionFailed, TransportError
from inventory_sync.core.utils import now_iso, truncate
from inventory_sync.models.inventory_row import SyncCandidate

logger = logging.getLogger(__name__)


@dataclass
class PushOutcome:
    candidate: SyncCandidate
    succeeded: bool
    pushed_at: Optional[str] = None
    error: Optional[str] = None
    retried: bool = False
    compare_quantity: Optional[int] = None  # baseline used by the last attempt

    @property
    def status(self) -> SyncStatus:
        return SyncStatus.EMPTY if self.succeeded else SyncStatus.ERROR


class ReconciliationEngine:
    """
    Pushes candidates one at a time, in order.

    ``platform`` needs ``conditional_set_quantity`` and ``read_quantity``
    (see ShopifyGraphQLClient).
    """

    def __init__(self, platform, location_id: str, clock: Callable[[], str] = now_iso):
        self.platform = platform
        self.location_id = location_id
        self.clock = clock

    def push(self, candidate: SyncCandidate) -> PushOutcome:
        item_id = candidate.inventory_item_id
        compare_quantity = candidate.available
        retried = False

        try:
            try:
                self.platform.conditional_set_quantity(
                    item_id, self.location_id, candidate.desired, compare_quantity
                )
            except PreconditionFailed:
                compare_quantity = self.platform.read_quantity(item_id, self.location_id)
                retried = True
                logger.info(
                    "COMPARE_QUANTITY_STALE for %s. Retrying with current compareQuantity=%s (desired=%s).",
                    item_id, compare_quantity, candidate.desired,
                )
                self.platform.conditional_set_quantity(
                    item_id, self.location_id, candidate.desired, compare_quantity
                )
        except (PlatformRejected, TransportError) as e:
            message = truncate(str(e))
            logger.error("ERROR row %d: %s", candidate.row_number, message)
            return PushOutcome(
                candidate=candidate,
                succeeded=False,
                error=message,
                retried=retried,
                compare_quantity=compare_quantity,
            )

        logger.info(
            "SYNCED row %d: %s %s -> %s",
            candidate.row_number, item_id, compare_quantity, candidate.desired,
        )
        return PushOutcome(
            candidate=candidate,
            succeeded=True,
            pushed_at=self.clock(),
            retried=retried,
            compare_quantity=compare_quantity,
        )

    def run(self, candidates: Sequence[SyncCandidate]) -> List[PushOutcome]:
        return [self.push(c) for c in candidates]
