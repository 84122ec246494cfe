from datetime import datetime
from typing import Protocol


class ClockPort(Protocol):
    def now_utc(self) -> datetime:
        """Return current UTC time."""
        ...

    def now_iso(self) -> str:
        """Return current UTC time as an ISO 8601 string."""
        ...
