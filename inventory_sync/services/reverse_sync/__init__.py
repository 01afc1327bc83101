"""
Reverse sync: push human edits in Desired_Available back to Shopify.

scanner -> engine -> writer, with the lease guarding against overlapping runs.
"""
from .engine import PushOutcome, ReconciliationEngine
from .lease import RunLease
from .scanner import ScanResult, scan_candidates
from .writer import ResultWriter

__all__ = [
    "PushOutcome",
    "ReconciliationEngine",
    "ResultWriter",
    "RunLease",
    "ScanResult",
    "scan_candidates",
]
