"""Process-wide time source.

Scheduling math uses the monotonic clock so wall-clock adjustments never
shorten or stretch a countdown; timestamps that get persisted or shown to
users come from the UTC wall clock. Code in the simulation package asks a
`Clock` for time instead of calling `time` / `datetime` directly.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone


class Clock:
    """Real clock backed by `time.monotonic` and UTC wall time."""

    def monotonic_ms(self) -> int:
        return int(time.monotonic() * 1000)

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


system_clock = Clock()
