import logging
from datetime import date, datetime, time, timezone

from ..domain.errors import DomainError, ErrorKind
from ..domain.repositories import CanteenRepository, ReservationRepository, StudentRepository
from ..domain.services import ALIGNED_MINUTES, ALLOWED_DURATIONS, AdmissionSnapshot, validate_admission
from ..models import Reservation, ReservationStatus
from ..utils.time import TimeWindow, parse_date, parse_time_of_day
from .students import require_admin

logger = logging.getLogger("canteen_api.reservations")


def parse_identifier(value: int | str) -> int:
    if isinstance(value, bool):
        raise DomainError(ErrorKind.INVALID_IDENTIFIER, "Invalid student or canteen ID")
    if isinstance(value, str):
        value = value.strip()
        if not (value.isascii() and value.isdigit()):
            raise DomainError(ErrorKind.INVALID_IDENTIFIER, "Invalid student or canteen ID")
        value = int(value)
    if not isinstance(value, int) or value <= 0:
        raise DomainError(ErrorKind.INVALID_IDENTIFIER, "Invalid student or canteen ID")
    return value


def _parse_slot(
    reservation_date: str, start_time: str, duration: int, today: date | None = None
) -> tuple[date, time]:
    on = parse_date(reservation_date)
    if today is not None and on < today:
        raise DomainError(ErrorKind.PAST_DATE, "Reservation date cannot be in the past")
    at = parse_time_of_day(start_time)
    if at.minute not in ALIGNED_MINUTES:
        raise DomainError(ErrorKind.INVALID_TIME_ALIGNMENT, "Time must start on the hour or half-hour")
    if duration not in ALLOWED_DURATIONS:
        raise DomainError(ErrorKind.INVALID_DURATION, "Duration must be 30 or 60 minutes")
    return on, at


async def create_reservation(
    student_repo: StudentRepository,
    canteen_repo: CanteenRepository,
    res_repo: ReservationRepository,
    *,
    student_id: int | str,
    canteen_id: int | str,
    reservation_date: str,
    start_time: str,
    duration: int,
    today: date,
) -> Reservation:
    parsed_student_id = parse_identifier(student_id)
    parsed_canteen_id = parse_identifier(canteen_id)

    on, at = _parse_slot(reservation_date, start_time, duration, today)

    # Row locks, student first then canteen, serialize competing admissions
    # until the surrounding transaction commits.
    student = await student_repo.get_for_update(parsed_student_id)
    if student is None:
        raise DomainError(ErrorKind.STUDENT_NOT_FOUND, "Student does not exist")
    canteen = await canteen_repo.get_for_update(parsed_canteen_id)
    if canteen is None:
        raise DomainError(ErrorKind.CANTEEN_NOT_FOUND, "Canteen does not exist")

    snapshot = AdmissionSnapshot(
        capacity=canteen.capacity,
        working_hours=canteen.working_hours,
        student_reservations=await res_repo.list_active_by_student(student.id, on),
        canteen_reservations=await res_repo.list_active_by_canteen(canteen.id, on),
    )
    remaining = validate_admission(snapshot, window=TimeWindow.of(at, duration))
    logger.debug("Admitted student %s to canteen %s on %s %s, %d seats left", student.id, canteen.id, on, at, remaining)

    return await res_repo.create(
        student_id=student.id,
        canteen_id=canteen.id,
        on=on,
        at=at,
        duration=duration,
        status=ReservationStatus.ACTIVE,
    )


async def cancel_reservation(
    res_repo: ReservationRepository,
    *,
    reservation_id: int,
    student_id: int,
) -> Reservation:
    reservation = await res_repo.get_for_update(reservation_id)
    if reservation is None:
        raise DomainError(ErrorKind.RESERVATION_NOT_FOUND, "Reservation not found")
    if reservation.student_id != student_id:
        raise DomainError(ErrorKind.NOT_OWNER, "Only the student who made the reservation can cancel it.")
    if reservation.status == ReservationStatus.CANCELLED:
        raise DomainError(ErrorKind.ALREADY_CANCELLED, "Reservation is already cancelled.")

    reservation.status = ReservationStatus.CANCELLED
    reservation.updated_at = datetime.now(timezone.utc).replace(tzinfo=None)
    return await res_repo.cancel(reservation)


async def update_reservation(
    student_repo: StudentRepository,
    canteen_repo: CanteenRepository,
    res_repo: ReservationRepository,
    *,
    reservation_id: int,
    requesting_student_id: int,
    student_id: int | str,
    canteen_id: int | str,
    reservation_date: str,
    start_time: str,
    duration: int,
) -> Reservation:
    """Administrative correction: rewrites the booking fields in place.

    Unlike ``create_reservation`` this does not re-run working-hour, conflict or
    capacity checks; only formats and referenced rows are verified.
    """
    await require_admin(student_repo, requesting_student_id, "Only an admin can correct a reservation.")
    reservation = await res_repo.get_for_update(reservation_id)
    if reservation is None:
        raise DomainError(ErrorKind.RESERVATION_NOT_FOUND, "Reservation not found")

    parsed_student_id = parse_identifier(student_id)
    parsed_canteen_id = parse_identifier(canteen_id)
    on, at = _parse_slot(reservation_date, start_time, duration)
    if await student_repo.get(parsed_student_id) is None:
        raise DomainError(ErrorKind.STUDENT_NOT_FOUND, "Student does not exist")
    if await canteen_repo.get_with_working_hours(parsed_canteen_id) is None:
        raise DomainError(ErrorKind.CANTEEN_NOT_FOUND, "Canteen does not exist")

    reservation.student_id = parsed_student_id
    reservation.canteen_id = parsed_canteen_id
    reservation.date = on
    reservation.time = at
    reservation.duration = duration
    return await res_repo.save(reservation)


async def list_reservations(res_repo: ReservationRepository) -> list[Reservation]:
    return await res_repo.list_all()


async def list_student_reservations(res_repo: ReservationRepository, *, student_id: int) -> list[Reservation]:
    return await res_repo.list_by_student(student_id)


async def get_reservation(res_repo: ReservationRepository, *, reservation_id: int) -> Reservation:
    reservation = await res_repo.get(reservation_id)
    if reservation is None:
        raise DomainError(ErrorKind.RESERVATION_NOT_FOUND, "Reservation not found")
    return reservation
