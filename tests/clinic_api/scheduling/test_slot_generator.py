from datetime import date, datetime, time

import pytest

from clinic_api.scheduling.slot_generator import free_slots, generate_slots, iterate_window_starts
from clinic_api.scheduling.types import AvailabilityWindow, BookedSlot, Slot, SlotStatus, Weekday

MONDAY = date(2026, 1, 5)
NEXT_MONDAY = date(2026, 1, 12)


def _monday_morning() -> list[AvailabilityWindow]:
    return [AvailabilityWindow(Weekday.MONDAY, time(9, 0), time(10, 0))]


def test_single_window_yields_two_free_slots_per_matching_day() -> None:
    slots = generate_slots(_monday_morning(), [], horizon_start=date(2026, 1, 6), horizon_days=7)

    assert slots == [
        Slot(NEXT_MONDAY, time(9, 0), SlotStatus.FREE),
        Slot(NEXT_MONDAY, time(9, 30), SlotStatus.FREE),
    ]


def test_horizon_includes_both_ends() -> None:
    slots = generate_slots(_monday_morning(), [], horizon_start=MONDAY, horizon_days=7)

    assert [slot.date for slot in slots] == [MONDAY, MONDAY, NEXT_MONDAY, NEXT_MONDAY]


def test_booking_at_exact_start_marks_only_that_slot() -> None:
    booked = [BookedSlot(datetime(2026, 1, 12, 9, 0), 30)]

    slots = generate_slots(_monday_morning(), booked, horizon_start=date(2026, 1, 6), horizon_days=7)

    assert [(slot.time, slot.status) for slot in slots] == [
        (time(9, 0), SlotStatus.BOOKED),
        (time(9, 30), SlotStatus.FREE),
    ]


def test_booking_match_ignores_seconds_and_duration() -> None:
    booked = [BookedSlot(datetime(2026, 1, 12, 9, 0, 45), 60)]

    slots = generate_slots(_monday_morning(), booked, horizon_start=date(2026, 1, 6), horizon_days=7)

    # A 60 minute booking at 09:00 still leaves 09:30 Free outside strict mode.
    assert [slot.status for slot in slots] == [SlotStatus.BOOKED, SlotStatus.FREE]


def test_booking_on_other_date_does_not_mark_slot() -> None:
    booked = [BookedSlot(datetime(2026, 1, 5, 9, 0), 30)]

    slots = generate_slots(_monday_morning(), booked, horizon_start=date(2026, 1, 6), horizon_days=7)

    assert all(slot.status is SlotStatus.FREE for slot in slots)


def test_strict_overlap_marks_slots_covered_by_long_booking() -> None:
    booked = [BookedSlot(datetime(2026, 1, 12, 9, 0), 60)]

    slots = generate_slots(
        _monday_morning(),
        booked,
        horizon_start=date(2026, 1, 6),
        horizon_days=7,
        strict_overlap=True,
    )

    assert [slot.status for slot in slots] == [SlotStatus.BOOKED, SlotStatus.BOOKED]


def test_strict_overlap_detects_off_grid_booking() -> None:
    booked = [BookedSlot(datetime(2026, 1, 12, 9, 15), 15)]

    lenient = generate_slots(_monday_morning(), booked, horizon_start=date(2026, 1, 6), horizon_days=7)
    strict = generate_slots(
        _monday_morning(),
        booked,
        horizon_start=date(2026, 1, 6),
        horizon_days=7,
        strict_overlap=True,
    )

    assert [slot.status for slot in lenient] == [SlotStatus.FREE, SlotStatus.FREE]
    assert [slot.status for slot in strict] == [SlotStatus.BOOKED, SlotStatus.FREE]


def test_no_windows_yields_empty_sequence() -> None:
    assert generate_slots([], [], horizon_start=MONDAY) == []


def test_duplicate_windows_for_same_weekday_are_each_expanded() -> None:
    windows = [
        AvailabilityWindow(Weekday.MONDAY, time(9, 0), time(10, 0)),
        AvailabilityWindow(Weekday.MONDAY, time(9, 30), time(10, 30)),
    ]

    slots = generate_slots(windows, [], horizon_start=date(2026, 1, 6), horizon_days=7)

    assert [slot.time for slot in slots] == [time(9, 0), time(9, 30), time(9, 30), time(10, 0)]


def test_slots_are_chronological_across_days_and_windows() -> None:
    windows = [
        AvailabilityWindow(Weekday.TUESDAY, time(14, 0), time(15, 0)),
        AvailabilityWindow(Weekday.MONDAY, time(11, 0), time(12, 0)),
        AvailabilityWindow(Weekday.TUESDAY, time(8, 0), time(9, 0)),
    ]

    slots = generate_slots(windows, [], horizon_start=MONDAY, horizon_days=1)

    starts = [slot.start for slot in slots]
    assert starts == sorted(starts)
    assert starts[0] == datetime(2026, 1, 5, 11, 0)
    assert starts[-1] == datetime(2026, 1, 6, 14, 30)


def test_generation_is_deterministic_for_identical_inputs() -> None:
    windows = [
        AvailabilityWindow(Weekday.MONDAY, time(9, 0), time(12, 0)),
        AvailabilityWindow(Weekday.WEDNESDAY, time(13, 0), time(17, 0)),
    ]
    booked = [BookedSlot(datetime(2026, 1, 7, 13, 30), 30)]

    first = generate_slots(windows, booked, horizon_start=MONDAY)
    second = generate_slots(windows, booked, horizon_start=MONDAY)

    assert first == second
    assert repr(first) == repr(second)


def test_datetime_horizon_start_uses_calendar_day() -> None:
    slots = generate_slots(_monday_morning(), [], horizon_start=datetime(2026, 1, 5, 23, 59), horizon_days=0)

    assert [slot.time for slot in slots] == [time(9, 0), time(9, 30)]


def test_interval_that_does_not_divide_window_stops_before_end() -> None:
    window = AvailabilityWindow(Weekday.MONDAY, time(9, 0), time(10, 0))

    starts = iterate_window_starts(MONDAY, window, 45)

    assert starts == [datetime(2026, 1, 5, 9, 0), datetime(2026, 1, 5, 9, 45)]


def test_rejects_non_positive_interval() -> None:
    with pytest.raises(ValueError):
        generate_slots(_monday_morning(), [], horizon_start=MONDAY, slot_interval_minutes=0)


def test_free_slots_filters_booked() -> None:
    booked = [BookedSlot(datetime(2026, 1, 5, 9, 30), 30)]

    slots = generate_slots(_monday_morning(), booked, horizon_start=MONDAY, horizon_days=0)

    assert free_slots(slots) == [Slot(MONDAY, time(9, 0), SlotStatus.FREE)]


def test_window_rejects_end_before_start() -> None:
    with pytest.raises(ValueError):
        AvailabilityWindow(Weekday.FRIDAY, time(17, 0), time(9, 0))


def test_window_offers_only_grid_aligned_starts() -> None:
    window = AvailabilityWindow(Weekday.MONDAY, time(9, 0), time(10, 0))

    assert window.offers(datetime(2026, 1, 5, 9, 30), 30) is True
    assert window.offers(datetime(2026, 1, 5, 9, 10), 30) is False
    assert window.offers(datetime(2026, 1, 5, 10, 0), 30) is False
    assert window.offers(datetime(2026, 1, 6, 9, 0), 30) is False
