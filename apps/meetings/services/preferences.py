"""
Calendar booking preferences.

Stored preferences are sparse; readers always see them merged over
DEFAULT_PREFERENCES, with each working day merged individually.
"""

import copy
import re
from datetime import date
from typing import Any, Dict
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from django.contrib.auth import get_user_model

from .exceptions import InvalidPreferencesError

User = get_user_model()

TIME_PATTERN = re.compile(r'^([01][0-9]|2[0-3]):[0-5][0-9]$')

WEEKDAYS = ['monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday']

DEFAULT_PREFERENCES = {
    'enabled': True,
    'working_hours': {
        day: {'start': '09:00', 'end': '17:00', 'enabled': day not in ('saturday', 'sunday')}
        for day in WEEKDAYS
    },
    'buffer_time': 15,
    'allow_weekends': False,
    'allowed_durations': [30, 60],
    'timezone': 'UTC',
    'advance_booking_days': 30,
    'blocked_date_ranges': [],
    'default_time_range': {'start': '09:00', 'end': '17:00'},
    'custom_times': False,
}


def merge_preferences(stored: Dict[str, Any]) -> Dict[str, Any]:
    """Overlay ``stored`` on the defaults."""
    merged = copy.deepcopy(DEFAULT_PREFERENCES)
    stored = stored or {}

    for key, value in stored.items():
        if key == 'working_hours' and isinstance(value, dict):
            for day, config in value.items():
                if day in merged['working_hours'] and isinstance(config, dict):
                    merged['working_hours'][day].update(config)
        elif key == 'default_time_range' and isinstance(value, dict):
            merged['default_time_range'].update(value)
        elif key in merged:
            merged[key] = value

    return merged


def get_preferences(user: User) -> Dict[str, Any]:
    return merge_preferences(user.calendar_preferences)


def _check_time(value, label):
    if not isinstance(value, str) or not TIME_PATTERN.match(value):
        raise InvalidPreferencesError(f"Invalid {label} '{value}'. Use HH:MM format")


def _check_positive_int(value, label, allow_zero=False):
    if isinstance(value, bool) or not isinstance(value, int) or value < 0 or (value == 0 and not allow_zero):
        raise InvalidPreferencesError(f"{label} must be a {'non-negative' if allow_zero else 'positive'} integer")


def _parse_date(value, label):
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise InvalidPreferencesError(f"Invalid {label} '{value}'. Use YYYY-MM-DD format")


def validate_preferences(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Check a preferences payload and keep only known keys.

    Raises:
        InvalidPreferencesError: On the first invalid value
    """
    if not isinstance(data, dict):
        raise InvalidPreferencesError("Preferences must be an object")

    cleaned = {key: value for key, value in data.items() if key in DEFAULT_PREFERENCES}

    for key in ('enabled', 'allow_weekends', 'custom_times'):
        if key in cleaned and not isinstance(cleaned[key], bool):
            raise InvalidPreferencesError(f"{key} must be true or false")

    working_hours = cleaned.get('working_hours')
    if working_hours is not None:
        if not isinstance(working_hours, dict):
            raise InvalidPreferencesError("working_hours must be an object keyed by weekday")
        for day, config in working_hours.items():
            if day not in WEEKDAYS or not isinstance(config, dict):
                raise InvalidPreferencesError(f"Invalid working hours entry '{day}'")
            for bound in ('start', 'end'):
                if bound in config:
                    _check_time(config[bound], f"{bound} time for {day}")
            if 'enabled' in config and not isinstance(config['enabled'], bool):
                raise InvalidPreferencesError(f"enabled for {day} must be true or false")
            slots = config.get('specific_slots')
            if slots is not None:
                if not isinstance(slots, list):
                    raise InvalidPreferencesError(f"specific_slots for {day} must be a list")
                for slot in slots:
                    _check_time(slot, f"time slot for {day}")
                if len(set(slots)) != len(slots):
                    raise InvalidPreferencesError(f"Duplicate time slots for {day}. Each time must be unique")

    time_range = cleaned.get('default_time_range')
    if time_range is not None:
        if not isinstance(time_range, dict):
            raise InvalidPreferencesError("default_time_range must be an object")
        for bound in ('start', 'end'):
            if bound in time_range:
                _check_time(time_range[bound], f"default {bound} time")

    durations = cleaned.get('allowed_durations')
    if durations is not None:
        if not isinstance(durations, list) or not durations:
            raise InvalidPreferencesError("allowed_durations must be a non-empty list")
        for duration in durations:
            _check_positive_int(duration, 'Each duration')

    if 'buffer_time' in cleaned:
        _check_positive_int(cleaned['buffer_time'], 'buffer_time', allow_zero=True)
    if 'advance_booking_days' in cleaned:
        _check_positive_int(cleaned['advance_booking_days'], 'advance_booking_days')

    if 'timezone' in cleaned:
        try:
            ZoneInfo(str(cleaned['timezone']))
        except (ZoneInfoNotFoundError, ValueError):
            raise InvalidPreferencesError(f"Unknown timezone '{cleaned['timezone']}'")

    ranges = cleaned.get('blocked_date_ranges')
    if ranges is not None:
        if not isinstance(ranges, list):
            raise InvalidPreferencesError("blocked_date_ranges must be a list")
        for blocked in ranges:
            if not isinstance(blocked, dict):
                raise InvalidPreferencesError("Each blocked date range must be an object")
            start = _parse_date(blocked.get('start_date'), 'blocked range start_date')
            end = _parse_date(blocked.get('end_date'), 'blocked range end_date')
            if end < start and not blocked.get('repeat_monthly'):
                raise InvalidPreferencesError("Blocked range end_date is before its start_date")

    return cleaned


def update_preferences(*, user: User, data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Replace the user's stored preferences.

    Returns:
        The merged preferences

    Raises:
        InvalidPreferencesError: If the payload is invalid
    """
    user.calendar_preferences = validate_preferences(data)
    user.save(update_fields=['calendar_preferences', 'updated_at'])
    return merge_preferences(user.calendar_preferences)
