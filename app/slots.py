# app/slots.py
"""Bookable half-hour slots for a calendar day.

Shop hours: closed on Sunday, 08:30-17:00 on Saturday, 08:30-19:00 on
weekdays. The last offered slot is the closing hour mark itself.
"""
from datetime import date, datetime
from typing import Iterable, List, Optional

OPEN_HOUR = 8
WEEKDAY_CLOSING_HOUR = 19
SATURDAY_CLOSING_HOUR = 17

SATURDAY = 5
SUNDAY = 6

CLOSED_NOTICE = "Closed on Sundays"
LOAD_ERROR_NOTICE = "Could not load available times"


def parse_day(value: str) -> date:
    """Parse a YYYY-MM-DD string. Raises ValueError on anything else."""
    return datetime.strptime(value.strip(), "%Y-%m-%d").date()


def closing_hour(day: date) -> Optional[int]:
    """Closing hour for the day, or None when the shop is closed."""
    weekday = day.weekday()
    if weekday == SUNDAY:
        return None
    if weekday == SATURDAY:
        return SATURDAY_CLOSING_HOUR
    return WEEKDAY_CLOSING_HOUR


def normalize_time(value: str) -> str:
    # stored times may carry seconds ("10:00:00")
    return str(value).strip()[:5]


def available_slots(day: date, booked: Iterable[str] = ()) -> List[str]:
    """Return the sorted "HH:MM" slots still bookable on `day`."""
    end_hour = closing_hour(day)
    if end_hour is None:
        return []

    taken = {normalize_time(t) for t in booked}
    times: List[str] = []
    for hour in range(OPEN_HOUR, end_hour + 1):
        for minute in (0, 30):
            if hour == OPEN_HOUR and minute == 0:
                continue
            if hour == end_hour and minute == 30:
                continue
            slot = f"{hour:02d}:{minute:02d}"
            if slot not in taken:
                times.append(slot)

    # the closing hour mark is always offered when free
    closing = f"{end_hour:02d}:00"
    if closing not in taken:
        times.append(closing)

    return list(dict.fromkeys(times))


def day_notice(day: date) -> Optional[str]:
    return CLOSED_NOTICE if closing_hour(day) is None else None
