"""Default transaction date range."""

from __future__ import annotations

from datetime import date, timedelta

from multibank.domain.shared.time import today_utc
from multibank_config.settings import get_settings


def resolve_date_range(
    date_from: date | None,
    date_to: date | None,
) -> tuple[date, date]:
    """Fill in missing bounds: ``date_to`` is today, ``date_from`` looks back
    the configured number of days from ``date_to``."""
    end = date_to or today_utc()
    start = date_from or end - timedelta(
        days=get_settings().transactions_default_lookback_days,
    )
    return start, end
