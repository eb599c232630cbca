"""
Availability calculator

Turns one weekday's business hours and the day's live appointments into an
open/closed flag, the slot grid and the set of occupied slot ticks.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional

from ...timegrid import from_minutes, overlaps, slots, to_minutes, within


@dataclass
class DayAvailability:
    is_open: bool
    open_time: Optional[str] = None
    close_time: Optional[str] = None
    interval: int = 30
    slots: list[str] = field(default_factory=list)
    occupied: set[int] = field(default_factory=set)  # minute offsets of occupied ticks
    booked: list = field(default_factory=list)
    # Appointments reaching outside business hours (e.g. after hours were narrowed)
    conflicting: list = field(default_factory=list)

    @property
    def available_slots(self) -> list[str]:
        return [s for s in self.slots if to_minutes(s) not in self.occupied]

    @property
    def available_count(self) -> int:
        return len(self.slots) - len(self.occupied)

    @property
    def occupied_slots(self) -> list[str]:
        return [from_minutes(m) for m in sorted(self.occupied)]


def calculate_availability(hours, appointments: Iterable, interval: int = 30) -> DayAvailability:
    """
    ``hours`` is the BusinessHours row for the weekday (unconfigured days are
    resolved to the default hours by the caller). ``appointments`` must already
    exclude cancelled and no-show rows.

    A tick is occupied when any appointment overlaps ``[tick, tick + interval)``,
    so appointments that start off the grid still block every tick they touch.
    Each tick is counted once however many appointments cover it.
    """
    appointments = list(appointments)

    if not hours.is_open:
        return DayAvailability(
            is_open=False,
            interval=interval,
            booked=appointments,
            conflicting=appointments,
        )

    open_minutes = to_minutes(hours.open_time)
    close_minutes = to_minutes(hours.close_time)
    grid = slots(hours.open_time, hours.close_time, interval)
    ticks = [to_minutes(s) for s in grid]

    occupied: set[int] = set()
    conflicting = []
    for appointment in appointments:
        start = to_minutes(appointment.start_time)
        end = to_minutes(appointment.end_time)
        if not within(start, end, open_minutes, close_minutes):
            conflicting.append(appointment)
        for tick in ticks:
            if overlaps(tick, tick + interval, start, end):
                occupied.add(tick)

    return DayAvailability(
        is_open=True,
        open_time=hours.open_time,
        close_time=hours.close_time,
        interval=interval,
        slots=grid,
        occupied=occupied,
        booked=appointments,
        conflicting=conflicting,
    )
