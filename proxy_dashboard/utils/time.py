"""Time helpers with timezone-aware UTC defaults."""

from __future__ import annotations

import time
from datetime import UTC, datetime


def utc_now() -> datetime:
    """Return timezone-aware current UTC datetime."""
    return datetime.now(UTC)


def now_ms() -> int:
    """Milliseconds since the epoch, the timestamp unit of chart points."""
    return int(time.time() * 1000)
