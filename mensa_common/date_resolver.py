"""
Date arithmetic for menu requests
Maps a day offset onto the next day the canteen publishes a plan for
"""

from datetime import date, timedelta
from typing import List, Optional

from mensa_common.models import ResolvedDate


MODES = (0, 1, 2)

# weekday() -> days to add to reach the following Monday
WEEKEND_SHIFT = {5: 2, 6: 1}


def resolve_date(mode: int, today: Optional[date] = None) -> ResolvedDate:
    """
    Resolve a day offset to a calendar date, skipping weekends

    Args:
        mode: 0 for today, 1 for tomorrow, 2 for the day after
        today: Reference date (defaults to the local date)

    Returns:
        ResolvedDate with the date and how many days were added for a weekend

    Raises:
        ValueError: If mode is not 0, 1 or 2
    """
    if mode not in MODES:
        raise ValueError(f"mode must be one of {MODES}, got {mode!r}")

    if today is None:
        today = date.today()

    target = today + timedelta(days=mode)
    shifted_by = WEEKEND_SHIFT.get(target.weekday(), 0)

    return ResolvedDate(date=target + timedelta(days=shifted_by), shifted_by=shifted_by, mode=mode)


def prefetch_dates(today: Optional[date] = None) -> List[date]:
    """Distinct dates that any mode would resolve to today, in ascending order"""
    if today is None:
        today = date.today()

    return sorted({resolve_date(mode, today).date for mode in MODES})
