from dataclasses import dataclass
from datetime import date, time
from typing import List, Tuple

from ..domain.availability import Slot, compute_slots
from ..domain.errors import DomainError, ErrorKind
from ..domain.repositories import CanteenRepository, ReservationRepository
from ..domain.services import ALLOWED_DURATIONS
from ..models import Canteen
from ..utils.time import iter_dates, parse_date, parse_time_of_day


@dataclass(frozen=True)
class AvailabilityQuery:
    date_start: date
    date_end: date
    time_start: time
    time_end: time
    duration: int


def parse_query(
    *,
    start_date: str,
    end_date: str,
    start_time: str,
    end_time: str,
    duration: int,
) -> AvailabilityQuery:
    query = AvailabilityQuery(
        date_start=parse_date(start_date),
        date_end=parse_date(end_date),
        time_start=parse_time_of_day(start_time),
        time_end=parse_time_of_day(end_time),
        duration=duration,
    )
    if duration not in ALLOWED_DURATIONS:
        raise DomainError(ErrorKind.INVALID_DURATION, "Duration must be 30 or 60 minutes")
    if query.date_start > query.date_end:
        raise DomainError(ErrorKind.BAD_REQUEST, "startDate must not be after endDate")
    if query.time_start >= query.time_end:
        raise DomainError(ErrorKind.BAD_REQUEST, "startTime must be before endTime")
    return query


async def _slots_for(canteen: Canteen, res_repo: ReservationRepository, query: AvailabilityQuery) -> List[Slot]:
    reservations_by_date = {
        day: await res_repo.list_active_by_canteen(canteen.id, day)
        for day in iter_dates(query.date_start, query.date_end)
    }
    return compute_slots(
        canteen,
        date_start=query.date_start,
        date_end=query.date_end,
        time_start=query.time_start,
        time_end=query.time_end,
        duration=query.duration,
        reservations_by_date=reservations_by_date,
    )


async def list_canteen_availability(
    canteen_repo: CanteenRepository,
    res_repo: ReservationRepository,
    *,
    canteen_id: int,
    query: AvailabilityQuery,
) -> Tuple[Canteen, List[Slot]]:
    canteen = await canteen_repo.get_with_working_hours(canteen_id)
    if canteen is None:
        raise DomainError(ErrorKind.CANTEEN_NOT_FOUND, "Canteen does not exist")
    return canteen, await _slots_for(canteen, res_repo, query)


async def list_all_availability(
    canteen_repo: CanteenRepository,
    res_repo: ReservationRepository,
    *,
    query: AvailabilityQuery,
) -> List[Tuple[Canteen, List[Slot]]]:
    items: List[Tuple[Canteen, List[Slot]]] = []
    for canteen in await canteen_repo.list_with_working_hours():
        items.append((canteen, await _slots_for(canteen, res_repo, query)))
    return items
