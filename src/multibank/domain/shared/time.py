"""Clock helpers; bank dates and audit timestamps are always UTC."""

from datetime import date, datetime, timezone


def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(tz=timezone.utc)


def today_utc() -> date:
    return utc_now().date()
