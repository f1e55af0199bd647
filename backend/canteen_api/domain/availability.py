from dataclasses import dataclass
from datetime import date, time
from typing import Mapping, Sequence

from ..models import Canteen, MealType, Reservation
from ..utils.time import TimeWindow, from_minutes, iter_dates
from .services import count_overlapping


@dataclass(frozen=True)
class Slot:
    date: date
    meal: MealType
    start_time: time
    remaining_capacity: int


def compute_slots(
    canteen: Canteen,
    *,
    date_start: date,
    date_end: date,
    time_start: time,
    time_end: time,
    duration: int,
    reservations_by_date: Mapping[date, Sequence[Reservation]],
) -> list[Slot]:
    """
    Enumerate bookable slots of ``duration`` minutes for every working hour of the
    canteen, clipped to the query window, on each date of ``[date_start, date_end]``.

    Slots come out grouped by working hour, then date, then start time. Remaining
    capacity is not clamped, so an overbooked slot shows up as negative.
    ``reservations_by_date`` holds the canteen's Active reservations per date.
    """
    query = TimeWindow.between(time_start, time_end)
    slots: list[Slot] = []
    for working_hour in canteen.working_hours:
        effective = TimeWindow.between(working_hour.start_time, working_hour.end_time).intersect(query)
        if effective.is_empty:
            continue
        for day in iter_dates(date_start, date_end):
            booked = reservations_by_date.get(day, ())
            cursor = effective.start
            while cursor + duration <= effective.end:
                candidate = TimeWindow(cursor, cursor + duration)
                slots.append(
                    Slot(
                        date=day,
                        meal=working_hour.meal,
                        start_time=from_minutes(cursor),
                        remaining_capacity=canteen.capacity - count_overlapping(booked, candidate),
                    )
                )
                cursor += duration
    return slots
