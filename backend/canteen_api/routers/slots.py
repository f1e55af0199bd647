from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_session
from ..infrastructure.repositories import SqlAlchemyCanteenRepository, SqlAlchemyReservationRepository
from ..schemas import CanteenStatusRead
from ..usecases import slots as slot_usecase

# Registered ahead of the canteens router so "/status" never reads as a canteen id.
router = APIRouter(prefix="/api/canteens", tags=["availability"])


def availability_query(
    start_date: str = Query(..., alias="startDate", description="YYYY-MM-DD"),
    end_date: str = Query(..., alias="endDate", description="YYYY-MM-DD"),
    start_time: str = Query(..., alias="startTime", description="HH:MM"),
    end_time: str = Query(..., alias="endTime", description="HH:MM"),
    duration: int = Query(..., description="Slot length in minutes (30 or 60)"),
) -> slot_usecase.AvailabilityQuery:
    return slot_usecase.parse_query(
        start_date=start_date,
        end_date=end_date,
        start_time=start_time,
        end_time=end_time,
        duration=duration,
    )


@router.get("/status", response_model=List[CanteenStatusRead])
async def list_availability(
    query: slot_usecase.AvailabilityQuery = Depends(availability_query),
    session: AsyncSession = Depends(get_session),
) -> list[CanteenStatusRead]:
    canteen_repo = SqlAlchemyCanteenRepository(session)
    res_repo = SqlAlchemyReservationRepository(session)
    rows = await slot_usecase.list_all_availability(canteen_repo, res_repo, query=query)
    return [CanteenStatusRead.from_domain(canteen=canteen, slots=slots) for canteen, slots in rows]


@router.get("/{canteen_id}/status", response_model=CanteenStatusRead)
async def get_canteen_availability(
    canteen_id: int,
    query: slot_usecase.AvailabilityQuery = Depends(availability_query),
    session: AsyncSession = Depends(get_session),
) -> CanteenStatusRead:
    canteen_repo = SqlAlchemyCanteenRepository(session)
    res_repo = SqlAlchemyReservationRepository(session)
    canteen, slots = await slot_usecase.list_canteen_availability(
        canteen_repo,
        res_repo,
        canteen_id=canteen_id,
        query=query,
    )
    return CanteenStatusRead.from_domain(canteen=canteen, slots=slots)
