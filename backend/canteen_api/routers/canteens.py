from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_current_student_id, get_session
from ..infrastructure.repositories import (
    SqlAlchemyCanteenRepository,
    SqlAlchemyReservationRepository,
    SqlAlchemyStudentRepository,
)
from ..models import ReservationStatus
from ..schemas import CanteenCreate, CanteenRead, CanteenUpdate
from ..usecases import canteens as canteen_usecase
from ..utils.audit_log import audit_reservation

router = APIRouter(prefix="/api/canteens", tags=["canteens"])


@router.get("", response_model=List[CanteenRead])
async def list_canteens(session: AsyncSession = Depends(get_session)) -> list[CanteenRead]:
    canteen_repo = SqlAlchemyCanteenRepository(session)
    canteens = await canteen_usecase.list_canteens(canteen_repo)
    return [CanteenRead.from_db(canteen=canteen) for canteen in canteens]


@router.get("/{canteen_id}", response_model=CanteenRead)
async def get_canteen(
    canteen_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
) -> CanteenRead:
    canteen_repo = SqlAlchemyCanteenRepository(session)
    canteen = await canteen_usecase.get_canteen(canteen_repo, canteen_id=canteen_id)
    return CanteenRead.from_db(canteen=canteen)


@router.post("", response_model=CanteenRead, status_code=status.HTTP_201_CREATED)
async def create_canteen(
    payload: CanteenCreate,
    session: AsyncSession = Depends(get_session),
    student_id: int = Depends(get_current_student_id),
) -> CanteenRead:
    student_repo = SqlAlchemyStudentRepository(session)
    canteen_repo = SqlAlchemyCanteenRepository(session)
    async with session.begin():
        canteen = await canteen_usecase.create_canteen(
            student_repo,
            canteen_repo,
            requesting_student_id=student_id,
            name=payload.name,
            location=payload.location,
            capacity=payload.capacity,
            working_hours=[entry.as_input() for entry in payload.working_hours],
        )
    return CanteenRead.from_db(canteen=canteen)


@router.put("/{canteen_id}", response_model=CanteenRead)
async def update_canteen(
    payload: CanteenUpdate,
    canteen_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    student_id: int = Depends(get_current_student_id),
) -> CanteenRead:
    student_repo = SqlAlchemyStudentRepository(session)
    canteen_repo = SqlAlchemyCanteenRepository(session)
    working_hours = None
    if payload.working_hours is not None:
        working_hours = [entry.as_input() for entry in payload.working_hours]
    async with session.begin():
        canteen = await canteen_usecase.update_canteen(
            student_repo,
            canteen_repo,
            requesting_student_id=student_id,
            canteen_id=canteen_id,
            name=payload.name,
            location=payload.location,
            capacity=payload.capacity,
            working_hours=working_hours,
        )
    return CanteenRead.from_db(canteen=canteen)


@router.delete("/{canteen_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_canteen(
    canteen_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    student_id: int = Depends(get_current_student_id),
) -> Response:
    student_repo = SqlAlchemyStudentRepository(session)
    canteen_repo = SqlAlchemyCanteenRepository(session)
    res_repo = SqlAlchemyReservationRepository(session)
    async with session.begin():
        cancelled = await canteen_usecase.delete_canteen(
            student_repo,
            canteen_repo,
            res_repo,
            requesting_student_id=student_id,
            canteen_id=canteen_id,
        )
        try:
            for reservation in cancelled:
                audit_reservation(
                    reservation,
                    action="reservation.canteen_cancelled",
                    initiator="admin",
                    status_from=ReservationStatus.ACTIVE,
                    actor_id=student_id,
                )
        except RuntimeError as exc:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="failed to write audit log",
            ) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
