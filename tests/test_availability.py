from types import SimpleNamespace

from callbook.domain.scheduling.availability import calculate_availability


def hours(is_open=True, open_time="09:00", close_time="17:00"):
    return SimpleNamespace(is_open=is_open, open_time=open_time, close_time=close_time)


def appt(start, end, id_=1):
    return SimpleNamespace(id=id_, start_time=start, end_time=end)


def test_open_day_without_bookings_has_every_slot_free() -> None:
    day = calculate_availability(hours(), [])

    assert day.is_open
    assert day.available_count == 16
    assert day.available_slots[0] == "09:00"
    assert day.occupied == set()


def test_closed_day_reports_no_slots_and_flags_existing_bookings() -> None:
    booking = appt("10:00", "10:30")
    day = calculate_availability(hours(is_open=False), [booking])

    assert not day.is_open
    assert day.slots == []
    assert day.available_count == 0
    assert day.conflicting == [booking]


def test_overlapping_bookings_count_each_tick_once() -> None:
    day = calculate_availability(
        hours(),
        [appt("10:00", "11:00", 1), appt("10:30", "11:30", 2)],
    )

    assert day.occupied_slots == ["10:00", "10:30", "11:00"]
    assert day.available_count == 13


def test_off_grid_booking_blocks_every_tick_it_touches() -> None:
    day = calculate_availability(hours(), [appt("10:15", "10:45")])

    assert day.occupied_slots == ["10:00", "10:30"]


def test_booking_outside_narrowed_hours_is_conflicting_not_dropped() -> None:
    late = appt("15:30", "16:30", 7)
    day = calculate_availability(hours(close_time="16:00"), [late])

    assert day.conflicting == [late]
    assert late in day.booked
    assert day.occupied_slots == ["15:30"]
