"""
Slot generation for public calendars.

Times are handled as minutes since midnight in the owner's timezone. A
slot conflicts with a meeting when it overlaps the meeting widened by the
buffer time on both sides; a slot may end exactly where the buffer starts.
"""

from collections import defaultdict
from datetime import date, datetime, time, timedelta
from typing import Dict, Iterable, List, Optional
from zoneinfo import ZoneInfo

from django.utils import timezone

from .preferences import TIME_PATTERN, WEEKDAYS

DEFAULT_SLOT_INTERVAL = 30
MIN_SLOT_INTERVAL = 5


def to_minutes(value: str) -> int:
    hours, minutes = value.split(':')
    return int(hours) * 60 + int(minutes)


def to_time_string(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def slot_interval(buffer_time: int) -> int:
    """Step between generated slots, finer when the buffer is short."""
    buffer_time = max(0, buffer_time or 0)
    if 0 < buffer_time < DEFAULT_SLOT_INTERVAL:
        return max(MIN_SLOT_INTERVAL, buffer_time)
    return DEFAULT_SLOT_INTERVAL


def generate_day_slots(day: date, preferences: dict) -> List[dict]:
    """
    Candidate start times for ``day`` with the durations that fit.

    With ``custom_times`` on, a day's ``specific_slots`` replace the range
    and offer every allowed duration.
    """
    config = preferences['working_hours'].get(WEEKDAYS[day.weekday()]) or {}
    if not config.get('enabled'):
        return []

    durations = sorted(preferences['allowed_durations'])
    specific = config.get('specific_slots') or []
    if preferences.get('custom_times') and specific:
        valid = sorted((slot for slot in specific if TIME_PATTERN.match(slot)), key=to_minutes)
        return [{'time': slot, 'durations': list(durations)} for slot in valid]

    time_range = preferences['default_time_range'] if not preferences.get('custom_times') else config
    start = to_minutes(time_range['start'])
    end = to_minutes(time_range['end'])
    step = slot_interval(preferences['buffer_time'])

    slots = []
    current = start
    while current + durations[0] <= end:
        fitting = [duration for duration in durations if current + duration <= end]
        slots.append({'time': to_time_string(current), 'durations': fitting})
        current += step
    return slots


def is_conflicting(slot_start: int, duration: int, meetings: Iterable[tuple], buffer_time: int) -> bool:
    """Whether a slot overlaps any (start, end) meeting widened by the buffer."""
    buffer_time = max(0, buffer_time or 0)
    slot_end = slot_start + duration
    for meeting_start, meeting_end in meetings:
        if slot_start <= meeting_end + buffer_time and slot_end > meeting_start - buffer_time:
            return True
    return False


def _range_bounds(blocked: dict):
    return (
        date.fromisoformat(str(blocked['start_date'])[:10]),
        date.fromisoformat(str(blocked['end_date'])[:10]),
    )


def is_date_blocked(day: date, blocked_ranges: Iterable[dict]) -> bool:
    """
    Whether a blocked range covers ``day``.

    Monthly ranges match on the day of the month; a range whose start day
    is after its end day wraps over the month end (e.g. 25th to 5th).
    """
    for blocked in blocked_ranges or []:
        if not blocked.get('start_date') or not blocked.get('end_date'):
            continue
        start, end = _range_bounds(blocked)

        if blocked.get('repeat_monthly'):
            if start.day <= end.day:
                if start.day <= day.day <= end.day:
                    return True
            elif day.day >= start.day or day.day <= end.day:
                return True
        elif start <= day <= end:
            return True
    return False


def _meetings_by_date(bookings, tz) -> Dict[date, List[tuple]]:
    grouped = defaultdict(list)
    for booking in bookings:
        local = booking.starts_at.astimezone(tz)
        start = local.hour * 60 + local.minute
        grouped[local.date()].append((start, start + booking.duration))
    return grouped


def calculate_availability(
    preferences: dict,
    start_date: date,
    days: int,
    bookings,
    now: Optional[datetime] = None,
) -> Dict[str, List[dict]]:
    """
    Slots per ISO date for ``days`` days from ``start_date``.

    Every generated slot is listed; ``available_durations`` holds the
    durations still free and ``available`` whether any is. Slots that have
    already started are never available.
    """
    tz = ZoneInfo(preferences['timezone'])
    now = (now or timezone.now()).astimezone(tz)
    buffer_time = preferences['buffer_time']
    meetings = _meetings_by_date(bookings, tz)

    availability = {}
    for offset in range(days):
        day = start_date + timedelta(days=offset)
        if not preferences.get('allow_weekends') and day.weekday() >= 5:
            continue
        if is_date_blocked(day, preferences.get('blocked_date_ranges')):
            continue

        slots = []
        for slot in generate_day_slots(day, preferences):
            start = to_minutes(slot['time'])
            started = datetime.combine(day, time(start // 60, start % 60), tzinfo=tz) <= now
            free = [] if started else [
                duration for duration in slot['durations']
                if not is_conflicting(start, duration, meetings.get(day, []), buffer_time)
            ]
            slots.append({
                'time': slot['time'],
                'available_durations': free,
                'available': bool(free),
                'all_durations': slot['durations'],
            })

        if slots:
            availability[day.isoformat()] = slots
    return availability


def is_slot_available(preferences: dict, day: date, slot_time: str, duration: int, bookings,
                      now: Optional[datetime] = None) -> bool:
    """Whether ``slot_time`` on ``day`` is offered and free for ``duration``."""
    slots = calculate_availability(preferences, day, 1, bookings, now=now).get(day.isoformat(), [])
    return any(slot['time'] == slot_time and duration in slot['available_durations'] for slot in slots)
