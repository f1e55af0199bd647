from typing import Optional, Sequence

from ..domain.errors import DomainError, ErrorKind
from ..domain.repositories import CanteenRepository, ReservationRepository, StudentRepository
from ..models import Canteen, MealType, Reservation, WorkingHour
from ..utils.time import parse_time_of_day
from .students import require_admin

# (meal, from, to) as received, e.g. ("lunch", "12:00", "14:00")
WorkingHourInput = tuple[str, str, str]


def build_working_hours(entries: Sequence[WorkingHourInput]) -> list[WorkingHour]:
    if not entries:
        raise DomainError(ErrorKind.BAD_REQUEST, "Canteen must have working hours.")
    working_hours: list[WorkingHour] = []
    for meal, start, end in entries:
        try:
            meal_type = MealType(meal.strip().lower())
        except ValueError as exc:
            raise DomainError(ErrorKind.BAD_REQUEST, f"Unknown meal {meal!r}") from exc
        start_time = parse_time_of_day(start)
        end_time = parse_time_of_day(end)
        if start_time >= end_time:
            raise DomainError(ErrorKind.BAD_REQUEST, f"Working hour {start}-{end} must start before it ends")
        working_hours.append(WorkingHour(meal=meal_type, start_time=start_time, end_time=end_time))
    return working_hours


def _non_blank(value: str, field: str) -> str:
    value = value.strip()
    if not value:
        raise DomainError(ErrorKind.BAD_REQUEST, f"Canteen {field} must not be empty")
    return value


def _positive_capacity(capacity: int) -> int:
    if capacity < 1:
        raise DomainError(ErrorKind.BAD_REQUEST, "Canteen capacity must be at least 1")
    return capacity


async def _ensure_name_free(canteen_repo: CanteenRepository, name: str, *, current_id: Optional[int] = None) -> None:
    other = await canteen_repo.get_by_name(name)
    if other is not None and other.id != current_id:
        raise DomainError(ErrorKind.CONFLICT, f"A canteen named {name!r} already exists")


async def list_canteens(canteen_repo: CanteenRepository) -> list[Canteen]:
    return await canteen_repo.list_with_working_hours()


async def get_canteen(canteen_repo: CanteenRepository, *, canteen_id: int) -> Canteen:
    canteen = await canteen_repo.get_with_working_hours(canteen_id)
    if canteen is None:
        raise DomainError(ErrorKind.CANTEEN_NOT_FOUND, "Canteen does not exist")
    return canteen


async def create_canteen(
    student_repo: StudentRepository,
    canteen_repo: CanteenRepository,
    *,
    requesting_student_id: int,
    name: str,
    location: str,
    capacity: int,
    working_hours: Sequence[WorkingHourInput],
) -> Canteen:
    await require_admin(student_repo, requesting_student_id, "Only an admin can create a canteen.")
    hours = build_working_hours(working_hours)
    name = _non_blank(name, "name")
    location = _non_blank(location, "location")
    capacity = _positive_capacity(capacity)
    await _ensure_name_free(canteen_repo, name)
    return await canteen_repo.create(name=name, location=location, capacity=capacity, working_hours=hours)


async def update_canteen(
    student_repo: StudentRepository,
    canteen_repo: CanteenRepository,
    *,
    requesting_student_id: int,
    canteen_id: int,
    name: Optional[str] = None,
    location: Optional[str] = None,
    capacity: Optional[int] = None,
    working_hours: Optional[Sequence[WorkingHourInput]] = None,
) -> Canteen:
    """Merge the provided fields into the canteen.

    ``None`` and blank strings leave a field untouched. A provided working-hour
    list replaces the current one and must not be empty.
    """
    await require_admin(student_repo, requesting_student_id, "Only an admin can update the canteen.")
    canteen = await canteen_repo.get_for_update(canteen_id)
    if canteen is None:
        raise DomainError(ErrorKind.CANTEEN_NOT_FOUND, "Canteen does not exist")

    if name is not None and name.strip():
        new_name = name.strip()
        if new_name != canteen.name:
            await _ensure_name_free(canteen_repo, new_name, current_id=canteen.id)
        canteen.name = new_name
    if location is not None and location.strip():
        canteen.location = location.strip()
    if capacity is not None:
        canteen.capacity = _positive_capacity(capacity)
    if working_hours is not None:
        canteen.working_hours = build_working_hours(working_hours)
    return await canteen_repo.save(canteen)


async def delete_canteen(
    student_repo: StudentRepository,
    canteen_repo: CanteenRepository,
    res_repo: ReservationRepository,
    *,
    requesting_student_id: int,
    canteen_id: int,
) -> list[Reservation]:
    """Cancel the canteen's Active reservations, then remove the canteen.

    Returns the reservations that were cancelled; their rows are kept.
    """
    await require_admin(student_repo, requesting_student_id, "Only an admin can delete the canteen.")
    canteen = await canteen_repo.get_for_update(canteen_id)
    if canteen is None:
        raise DomainError(ErrorKind.CANTEEN_NOT_FOUND, "Canteen does not exist")

    cancelled = await res_repo.cancel_active_by_canteen(canteen.id)
    await canteen_repo.delete(canteen)
    return cancelled
