"""Wall-clock timestamps with second resolution."""

from __future__ import annotations

import time
from dataclasses import dataclass


@dataclass(frozen=True, order=True)
class Timestamp:
    """A point in time, counted in whole seconds since the Unix epoch."""

    seconds_since_epoch: int = 0

    @classmethod
    def now(cls) -> Timestamp:
        """Return the current time."""
        return cls(int(time.time()))

    def to_string(self) -> str:
        """Format as ``YYYY/MM/DD HH:MM:SS`` in local time."""
        tm = time.localtime(self.seconds_since_epoch)
        return (
            f"{tm.tm_year:4d}/{tm.tm_mon:02d}/{tm.tm_mday:02d} "
            f"{tm.tm_hour:02d}:{tm.tm_min:02d}:{tm.tm_sec:02d}"
        )

    def __str__(self) -> str:
        return self.to_string()