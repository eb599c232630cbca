import pytest

from callbook.timegrid import from_minutes, overlaps, slots, to_minutes, within


def test_slots_cover_half_open_business_day() -> None:
    grid = slots("09:00", "17:00", 30)

    assert len(grid) == 16
    assert grid[0] == "09:00"
    assert grid[-1] == "16:30"
    assert "17:00" not in grid


def test_slots_with_uneven_close_keep_last_partial_tick() -> None:
    assert slots("09:00", "10:15", 30) == ["09:00", "09:30", "10:00"]


def test_slots_empty_when_open_equals_close() -> None:
    assert slots("09:00", "09:00", 30) == []


def test_slots_reject_non_positive_interval() -> None:
    with pytest.raises(ValueError):
        slots("09:00", "17:00", 0)


@pytest.mark.parametrize("value", ["9:00", "24:00", "12:60", "noon", ""])
def test_to_minutes_rejects_malformed_times(value) -> None:
    with pytest.raises(ValueError):
        to_minutes(value)


def test_minutes_round_trip_for_every_tick() -> None:
    for tick in slots("00:00", "23:59", 15):
        assert from_minutes(to_minutes(tick)) == tick


def test_overlap_is_symmetric_and_half_open() -> None:
    booked = (to_minutes("14:00"), to_minutes("14:30"))
    same = (to_minutes("14:00"), to_minutes("14:30"))
    adjacent = (to_minutes("14:30"), to_minutes("15:00"))
    straddling = (to_minutes("13:45"), to_minutes("14:15"))

    assert overlaps(*booked, *same) and overlaps(*same, *booked)
    assert overlaps(*booked, *straddling) and overlaps(*straddling, *booked)
    assert not overlaps(*booked, *adjacent)
    assert not overlaps(*adjacent, *booked)


def test_within_allows_ending_exactly_at_close() -> None:
    assert within(to_minutes("16:30"), to_minutes("17:00"), to_minutes("09:00"), to_minutes("17:00"))
    assert not within(to_minutes("16:45"), to_minutes("17:15"), to_minutes("09:00"), to_minutes("17:00"))
    assert not within(to_minutes("08:45"), to_minutes("09:15"), to_minutes("09:00"), to_minutes("17:00"))
