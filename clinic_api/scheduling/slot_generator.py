"""Expand weekly availability windows into concrete bookable slots."""

from collections.abc import Iterable
from datetime import date, datetime, timedelta

from clinic_api.scheduling.types import AvailabilityWindow, BookedSlot, Slot, SlotStatus, Weekday

DEFAULT_HORIZON_DAYS = 7
DEFAULT_SLOT_INTERVAL_MINUTES = 30


def iterate_window_starts(day: date, window: AvailabilityWindow, slot_interval_minutes: int) -> list[datetime]:
    starts: list[datetime] = []
    current = datetime.combine(day, window.start_time)
    window_end = datetime.combine(day, window.end_time)

    while current < window_end:
        starts.append(current)
        current += timedelta(minutes=slot_interval_minutes)

    return starts


def _booked_start_keys(booked: Iterable[BookedSlot]) -> set[tuple[date, int, int]]:
    return {
        (booking.date_time.date(), booking.date_time.hour, booking.date_time.minute)
        for booking in booked
    }


def overlaps_booking(start: datetime, duration_minutes: int, booked: Iterable[BookedSlot]) -> bool:
    """True when ``[start, start + duration_minutes)`` intersects any booking."""
    end = start + timedelta(minutes=duration_minutes)
    for booking in booked:
        booking_end = booking.date_time + timedelta(minutes=booking.duration_minutes)
        if booking.date_time < end and booking_end > start:
            return True
    return False


def generate_slots(
    availability: Iterable[AvailabilityWindow],
    booked: Iterable[BookedSlot],
    horizon_start: date | datetime,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
    slot_interval_minutes: int = DEFAULT_SLOT_INTERVAL_MINUTES,
    strict_overlap: bool = False,
) -> list[Slot]:
    """Return every slot from ``horizon_start`` through ``horizon_start + horizon_days`` inclusive.

    Windows sharing a weekday are each expanded, so overlapping windows yield
    repeated slots. A slot is Booked when a booking starts on the same date at the
    same hour and minute; with ``strict_overlap`` any booking whose duration
    intersects the slot marks it Booked instead.
    """
    if slot_interval_minutes <= 0:
        raise ValueError('slot_interval_minutes must be positive.')
    if horizon_days < 0:
        raise ValueError('horizon_days must not be negative.')

    if isinstance(horizon_start, datetime):
        horizon_start = horizon_start.date()

    windows = list(availability)
    bookings = list(booked)
    booked_keys = _booked_start_keys(bookings)

    slots: list[Slot] = []
    for offset in range(horizon_days + 1):
        day = horizon_start + timedelta(days=offset)
        weekday = Weekday.for_date(day)

        day_starts: list[datetime] = []
        for window in windows:
            if window.weekday == weekday:
                day_starts.extend(iterate_window_starts(day, window, slot_interval_minutes))

        # sorted() is stable: equal start times keep window order.
        for start in sorted(day_starts):
            if strict_overlap:
                is_booked = overlaps_booking(start, slot_interval_minutes, bookings)
            else:
                is_booked = (start.date(), start.hour, start.minute) in booked_keys
            slots.append(Slot(date=day, time=start.time(), status=SlotStatus.BOOKED if is_booked else SlotStatus.FREE))

    return slots


def free_slots(slots: Iterable[Slot]) -> list[Slot]:
    return [slot for slot in slots if slot.status is SlotStatus.FREE]
