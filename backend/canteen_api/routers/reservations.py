from typing import Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_clock, get_current_student_id, get_session
from ..infrastructure.repositories import (
    SqlAlchemyCanteenRepository,
    SqlAlchemyReservationRepository,
    SqlAlchemyStudentRepository,
)
from ..models import Reservation, ReservationStatus
from ..schemas import ReservationRead, ReservationWrite
from ..usecases import reservations as reservation_usecase
from ..utils.audit_log import AuditAction, AuditInitiator, audit_reservation
from ..utils.time import Clock

router = APIRouter(prefix="/api", tags=["reservations"])


def _audit(
    reservation: Reservation,
    *,
    action: AuditAction,
    initiator: AuditInitiator,
    status_from: Optional[ReservationStatus],
    actor_id: int,
    extra: Optional[dict[str, Any]] = None,
) -> None:
    """Call inside ``session.begin()``: a failed audit line rolls the change back."""
    try:
        audit_reservation(
            reservation,
            action=action,
            initiator=initiator,
            status_from=status_from,
            actor_id=actor_id,
            extra=extra,
        )
    except RuntimeError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="failed to write audit log",
        ) from exc


@router.get("/reservations", response_model=List[ReservationRead])
async def list_reservations(session: AsyncSession = Depends(get_session)) -> list[ReservationRead]:
    res_repo = SqlAlchemyReservationRepository(session)
    rows = await reservation_usecase.list_reservations(res_repo)
    return [ReservationRead.from_db(reservation=reservation) for reservation in rows]


@router.get("/reservations/{reservation_id}", response_model=ReservationRead)
async def get_reservation(
    reservation_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
) -> ReservationRead:
    res_repo = SqlAlchemyReservationRepository(session)
    reservation = await reservation_usecase.get_reservation(res_repo, reservation_id=reservation_id)
    return ReservationRead.from_db(reservation=reservation)


@router.post("/reservations", response_model=ReservationRead, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    payload: ReservationWrite,
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
) -> ReservationRead:
    student_repo = SqlAlchemyStudentRepository(session)
    canteen_repo = SqlAlchemyCanteenRepository(session)
    res_repo = SqlAlchemyReservationRepository(session)
    async with session.begin():
        reservation = await reservation_usecase.create_reservation(
            student_repo,
            canteen_repo,
            res_repo,
            student_id=payload.student_id,
            canteen_id=payload.canteen_id,
            reservation_date=payload.date,
            start_time=payload.time,
            duration=payload.duration,
            today=clock.today(),
        )
        _audit(
            reservation,
            action="reservation.created",
            initiator="student",
            status_from=None,
            actor_id=reservation.student_id,
        )
    return ReservationRead.from_db(reservation=reservation)


@router.put("/reservations/{reservation_id}", response_model=ReservationRead)
async def update_reservation(
    payload: ReservationWrite,
    reservation_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    student_id: int = Depends(get_current_student_id),
) -> ReservationRead:
    student_repo = SqlAlchemyStudentRepository(session)
    canteen_repo = SqlAlchemyCanteenRepository(session)
    res_repo = SqlAlchemyReservationRepository(session)
    async with session.begin():
        reservation = await reservation_usecase.update_reservation(
            student_repo,
            canteen_repo,
            res_repo,
            reservation_id=reservation_id,
            requesting_student_id=student_id,
            student_id=payload.student_id,
            canteen_id=payload.canteen_id,
            reservation_date=payload.date,
            start_time=payload.time,
            duration=payload.duration,
        )
        _audit(
            reservation,
            action="reservation.updated",
            initiator="admin",
            status_from=reservation.status,
            actor_id=student_id,
        )
    return ReservationRead.from_db(reservation=reservation)


@router.delete("/reservations/{reservation_id}", response_model=ReservationRead)
async def cancel_reservation(
    reservation_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    student_id: int = Depends(get_current_student_id),
) -> ReservationRead:
    res_repo = SqlAlchemyReservationRepository(session)
    async with session.begin():
        reservation = await reservation_usecase.cancel_reservation(
            res_repo,
            reservation_id=reservation_id,
            student_id=student_id,
        )
        _audit(
            reservation,
            action="reservation.cancelled",
            initiator="student",
            status_from=ReservationStatus.ACTIVE,
            actor_id=student_id,
        )
    return ReservationRead.from_db(reservation=reservation)


@router.get("/me/reservations", response_model=List[ReservationRead])
async def list_my_reservations(
    session: AsyncSession = Depends(get_session),
    student_id: int = Depends(get_current_student_id),
) -> list[ReservationRead]:
    res_repo = SqlAlchemyReservationRepository(session)
    rows = await reservation_usecase.list_student_reservations(res_repo, student_id=student_id)
    return [ReservationRead.from_db(reservation=reservation) for reservation in rows]
