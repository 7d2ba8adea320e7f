"""Parse compact weekly schedule expressions such as ``"Mon-Fri 9-5, Sat 10:00-14:00"``.

Each comma separated entry is ``DAYS START-END``. ``DAYS`` is a single day or an
inclusive range (``Mon-Fri``); day names may be abbreviated to three letters.
Times are ``H``, ``HH:MM`` or either with an ``am``/``pm`` suffix. A range of two
bare hours whose end is not after its start is read as 12-hour shorthand, so
``9-5`` means 09:00 to 17:00.

The whole expression is validated before anything is returned: one bad entry
rejects the expression.
"""

import re
from datetime import time

from clinic_api.core.errors import ScheduleValidationError
from clinic_api.scheduling.types import WEEKDAYS, AvailabilityWindow, Weekday

DEFAULT_START = time(9, 0)
DEFAULT_END = time(17, 0)
DEFAULT_DAYS = WEEKDAYS[:5]

_TIME_PATTERN = re.compile(r'^(?P<hour>\d{1,2})(?::(?P<minute>\d{2}))?\s*(?P<meridiem>am|pm)?$', re.IGNORECASE)


def default_schedule() -> list[AvailabilityWindow]:
    return [AvailabilityWindow(day, DEFAULT_START, DEFAULT_END) for day in DEFAULT_DAYS]


def parse_day(token: str) -> Weekday:
    normalized = token.strip().lower()
    if len(normalized) >= 3:
        for day in WEEKDAYS:
            if day.value.lower().startswith(normalized):
                return day
    raise ValueError(f'unknown day "{token.strip()}"')


def parse_days(token: str) -> list[Weekday]:
    if '-' not in token:
        return [parse_day(token)]

    start_token, _, end_token = token.partition('-')
    start_index = WEEKDAYS.index(parse_day(start_token))
    end_index = WEEKDAYS.index(parse_day(end_token))
    if start_index > end_index:
        raise ValueError(f'day range "{token}" runs backwards')
    return WEEKDAYS[start_index:end_index + 1]


def parse_time(token: str) -> time:
    value, _ = _parse_time_token(token)
    return value


def _parse_time_token(token: str) -> tuple[time, bool]:
    """Return the parsed time and whether it was a bare hour."""
    match = _TIME_PATTERN.match(token.strip())
    if not match:
        raise ValueError(f'invalid time "{token.strip()}"')

    hour = int(match.group('hour'))
    minute = int(match.group('minute') or 0)
    meridiem = (match.group('meridiem') or '').lower()

    if minute > 59:
        raise ValueError(f'invalid time "{token.strip()}"')

    if meridiem:
        if not 1 <= hour <= 12:
            raise ValueError(f'invalid time "{token.strip()}"')
        hour = hour % 12 + (12 if meridiem == 'pm' else 0)
    elif hour > 23:
        raise ValueError(f'invalid time "{token.strip()}"')

    is_bare_hour = match.group('minute') is None and not meridiem
    return time(hour, minute), is_bare_hour


def parse_time_range(token: str) -> tuple[time, time]:
    start_token, separator, end_token = token.partition('-')
    if not separator or not start_token.strip() or not end_token.strip():
        raise ValueError(f'time range "{token.strip()}" must look like START-END')

    start, start_is_bare = _parse_time_token(start_token)
    end, end_is_bare = _parse_time_token(end_token)

    if start_is_bare and end_is_bare and end <= start and end.hour + 12 <= 23 and end.hour + 12 > start.hour:
        end = end.replace(hour=end.hour + 12)

    if end <= start:
        raise ValueError(f'window {token.strip()} must end after it starts on the same day')
    return start, end


def parse_entry(entry: str) -> list[AvailabilityWindow]:
    days_token, _, range_token = entry.strip().partition(' ')
    if not range_token.strip():
        raise ValueError('expected "DAYS START-END"')

    start, end = parse_time_range(range_token)
    return [AvailabilityWindow(day, start, end) for day in parse_days(days_token)]


def parse_schedule(expression: str | None) -> list[AvailabilityWindow]:
    """Parse a schedule expression; a blank expression yields the default weekday schedule."""
    if expression is None or not expression.strip():
        return default_schedule()

    windows: list[AvailabilityWindow] = []
    for entry in expression.split(','):
        if not entry.strip():
            continue
        try:
            windows.extend(parse_entry(entry))
        except ValueError as exc:
            raise ScheduleValidationError(f'Invalid availability entry "{entry.strip()}": {exc}.') from exc

    if not windows:
        return default_schedule()
    return windows


def build_window(day: str, start_time: str, end_time: str) -> AvailabilityWindow:
    """Validate one structured window (``{day, startTime, endTime}``)."""
    try:
        return AvailabilityWindow(parse_day(day), parse_time(start_time), parse_time(end_time))
    except ValueError as exc:
        raise ScheduleValidationError(f'Invalid availability window: {exc}.') from exc
