from dataclasses import dataclass
from typing import Iterable, Sequence

from ..models import Reservation, WorkingHour
from ..utils.time import TimeWindow
from .errors import DomainError, ErrorKind

ALLOWED_DURATIONS = (30, 60)
ALIGNED_MINUTES = (0, 30)


def reservation_window(reservation: Reservation) -> TimeWindow:
    return TimeWindow.of(reservation.time, reservation.duration)


def count_overlapping(reservations: Iterable[Reservation], window: TimeWindow) -> int:
    """Count reservations whose interval overlaps ``window``.

    The caller narrows ``reservations`` to one canteen, one date and Active
    status; nothing is filtered here.
    """
    return sum(1 for reservation in reservations if reservation_window(reservation).overlaps(window))


def within_working_hours(working_hours: Iterable[WorkingHour], window: TimeWindow) -> bool:
    return any(
        TimeWindow.between(working_hour.start_time, working_hour.end_time).contains(window)
        for working_hour in working_hours
    )


@dataclass(frozen=True)
class AdmissionSnapshot:
    capacity: int
    working_hours: Sequence[WorkingHour]
    student_reservations: Sequence[Reservation]
    canteen_reservations: Sequence[Reservation]


def validate_admission(snapshot: AdmissionSnapshot, *, window: TimeWindow) -> int:
    """
    Pure validation: working-hour containment, student conflict, then canteen capacity.
    Returns remaining capacity after booking if OK. Raises DomainError otherwise.
    """
    if not within_working_hours(snapshot.working_hours, window):
        raise DomainError(
            ErrorKind.OUTSIDE_WORKING_HOURS,
            "Reservation time is outside the canteen's working hours",
        )
    if any(reservation_window(existing).overlaps(window) for existing in snapshot.student_reservations):
        raise DomainError(ErrorKind.STUDENT_DOUBLE_BOOKED, "Student already has a reservation at this time")

    overlapping = count_overlapping(snapshot.canteen_reservations, window)
    if overlapping >= snapshot.capacity:
        raise DomainError(ErrorKind.CANTEEN_FULL, "Canteen is at full capacity for this time slot")
    return snapshot.capacity - overlapping - 1
