from datetime import datetime, timedelta, timezone

BASE_TIME = datetime(2024, 5, 3, 20, 0, tzinfo=timezone.utc)


def at(minutes: int) -> datetime:
    """A fixed point in time, `minutes` after BASE_TIME."""
    return BASE_TIME + timedelta(minutes=minutes)
