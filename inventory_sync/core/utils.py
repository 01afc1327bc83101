"""Small value helpers shared by the sheet jobs."""

import math
from datetime import datetime, timezone
from typing import Any, Optional

ERROR_MESSAGE_LIMIT = 450


def normalize_int(value: Any) -> Optional[int]:
    """
    Parse a sheet cell into an integer quantity.

    Blank cells give None. Numbers (or numeric strings) are truncated toward
    zero. Anything else raises ValueError so callers can tell "empty" apart
    from "garbage".
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"Not a quantity: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"Not a finite quantity: {value!r}")
        return math.trunc(value)

    text = str(value).strip()
    if not text:
        return None
    try:
        number = float(text)
    except ValueError:
        raise ValueError(f"Not a quantity: {value!r}") from None
    if not math.isfinite(number):
        raise ValueError(f"Not a finite quantity: {value!r}")
    return math.trunc(number)


def now_iso() -> str:
    """UTC timestamp in the ``2025-01-31T12:00:00.000Z`` form written to the sheet."""
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def truncate(message: str, limit: int = ERROR_MESSAGE_LIMIT) -> str:
    return message if len(message) <= limit else message[:limit]


def column_letter(index: int) -> str:
    """0 -> A, 25 -> Z, 26 -> AA"""
    if index < 0:
        raise ValueError(f"Column index must be >= 0, got {index}")
    result = ""
    n = index + 1
    while n > 0:
        n, rem = divmod(n - 1, 26)
        result = chr(65 + rem) + result
    return result


def cell_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()
