"""Business-hours slot grid for the rolling booking window."""

from datetime import date, datetime, time, timedelta
from typing import NamedTuple

OPEN_TIME = time(9, 0)
CLOSE_TIME = time(17, 0)
SLOT_DURATION_MINUTES = 30
SLOT_WINDOW_DAYS = 7


class SlotWindow(NamedTuple):
    start_at: datetime
    end_at: datetime


def is_business_day(day: date) -> bool:
    return day.weekday() < 5


def iterate_day_windows(day: date) -> list[SlotWindow]:
    windows: list[SlotWindow] = []
    duration = timedelta(minutes=SLOT_DURATION_MINUTES)
    current = datetime.combine(day, OPEN_TIME)
    day_close = datetime.combine(day, CLOSE_TIME)

    while current + duration <= day_close:
        windows.append(SlotWindow(current, current + duration))
        current += duration

    return windows


def generate_slots(now: datetime | None = None) -> list[SlotWindow]:
    """Return every future 30-minute weekday window from today through today + 6.

    Windows whose start is not strictly after ``now`` are dropped, so a call
    made mid-afternoon only yields the rest of today's grid.
    """
    now = now or datetime.now()
    windows: list[SlotWindow] = []

    for offset in range(SLOT_WINDOW_DAYS):
        day = now.date() + timedelta(days=offset)
        if not is_business_day(day):
            continue
        windows.extend(window for window in iterate_day_windows(day) if window.start_at > now)

    return windows
