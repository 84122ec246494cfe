from datetime import UTC, datetime


class SystemClock:
    def now_utc(self) -> datetime:
        return datetime.now(UTC)

    def now_iso(self) -> str:
        return self.now_utc().isoformat().replace("+00:00", "Z")
