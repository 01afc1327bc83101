"""
Core module exports.
"""
from .enums import (
    SyncStatus,
    SheetHeader,
)

from .exceptions import (
    BaseServiceError,
    ConfigurationError,
    SheetLayoutError,
    LeaseHeldError,
    TransportError,
    SheetsAPIError,
    PlatformServiceError,
    PlatformRejected,
    PreconditionFailed,
    ValidationError,
    MalformedRowError,
)

from .utils import (
    normalize_int,
    now_iso,
    truncate,
    column_letter,
)
