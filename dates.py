from datetime import date, datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from config import get_settings
from errors import InvalidInput
from models import Frequency


def local_today() -> date:
    settings = get_settings()
    tz = ZoneInfo(settings.timezone)
    return datetime.now(tz).date()


def days_in_month(year: int, month: int) -> int:
    if month == 12:
        next_month = date(year + 1, 1, 1)
    else:
        next_month = date(year, month + 1, 1)
    return (next_month - date(year, month, 1)).days


def month_start(d: date) -> date:
    return d.replace(day=1)


def add_months(base: date, months: int, *, desired_day: Optional[int] = None) -> date:
    """Shift ``base`` by whole months, clamping the day to the target month."""
    total_months = base.month - 1 + months
    year = base.year + total_months // 12
    month = total_months % 12 + 1
    day = desired_day if desired_day is not None else base.day
    return date(year, month, min(day, days_in_month(year, month)))


def shift(base: date, frequency: Frequency, offset: int) -> date:
    """Move ``base`` by ``offset`` intervals in either direction."""
    if frequency == Frequency.daily:
        return base + timedelta(days=offset)
    if frequency == Frequency.weekly:
        return base + timedelta(weeks=offset)
    if frequency == Frequency.biweekly:
        return base + timedelta(weeks=2 * offset)
    if frequency == Frequency.monthly:
        return add_months(base, offset)
    if frequency == Frequency.yearly:
        return add_months(base, 12 * offset)
    raise InvalidInput(f"Unsupported frequency: {frequency}")


def advance(base: date, frequency: Frequency, count: int = 1) -> date:
    if count < 0:
        raise InvalidInput("Interval count cannot be negative")
    return shift(base, frequency, count)


def first_index_on_or_after(anchor: date, frequency: Frequency, target: date) -> int:
    """Smallest ``i`` such that ``advance(anchor, frequency, i) >= target``."""
    if target <= anchor:
        return 0
    days = (target - anchor).days
    if frequency == Frequency.daily:
        return days
    if frequency == Frequency.weekly:
        return -(-days // 7)
    if frequency == Frequency.biweekly:
        return -(-days // 14)
    if frequency == Frequency.monthly:
        index = (target.year - anchor.year) * 12 + target.month - anchor.month
    elif frequency == Frequency.yearly:
        index = target.year - anchor.year
    else:
        raise InvalidInput(f"Unsupported frequency: {frequency}")
    index = max(index, 0)
    if advance(anchor, frequency, index) < target:
        index += 1
    return index
