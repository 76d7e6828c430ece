import time
from datetime import datetime, timezone


class TimeManager:
    @staticmethod
    def monotonic() -> float:
        """Seconds from a monotonic clock, used for cache ages."""
        return time.monotonic()

    @staticmethod
    def get_time_now() -> datetime:
        return datetime.now(timezone.utc)

    @staticmethod
    def get_time_now_isoformat() -> str:
        return TimeManager.get_time_now().isoformat()

    @staticmethod
    def get_epoch_millis() -> int:
        return int(time.time() * 1000)
