from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import List, Optional, Sequence

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..domain.repositories import CanteenRepository, ReservationRepository, StudentRepository
from ..models import Canteen, Reservation, ReservationStatus, Student, WorkingHour


def _utc_now_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SqlAlchemyStudentRepository(StudentRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, student_id: int) -> Student | None:
        return await self.session.get(Student, student_id)

    async def get_for_update(self, student_id: int) -> Student | None:
        result = await self.session.scalar(select(Student).where(Student.id == student_id).with_for_update())
        return result if isinstance(result, Student) else None

    async def get_by_email(self, email: str) -> Student | None:
        return await self.session.scalar(select(Student).where(Student.email == email))

    async def list_all(self) -> List[Student]:
        rows = await self.session.scalars(select(Student).order_by(Student.id))
        return list(rows.all())

    async def create(self, *, name: str, email: str, is_admin: bool) -> Student:
        now = _utc_now_naive()
        student = Student(name=name, email=email, is_admin=is_admin, created_at=now, updated_at=now)
        self.session.add(student)
        await self.session.flush()
        return student

    async def save(self, student: Student) -> Student:
        student.updated_at = _utc_now_naive()
        self.session.add(student)
        await self.session.flush()
        return student

    async def delete(self, student: Student) -> None:
        await self.session.delete(student)
        await self.session.flush()

    async def has_reservations(self, student_id: int) -> bool:
        stmt = select(Reservation.id).where(Reservation.student_id == student_id).limit(1)
        return await self.session.scalar(stmt) is not None


class SqlAlchemyCanteenRepository(CanteenRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    def _with_working_hours(self) -> Select[tuple[Canteen]]:
        return select(Canteen).options(selectinload(Canteen.working_hours))

    async def get_with_working_hours(self, canteen_id: int) -> Canteen | None:
        return await self.session.scalar(self._with_working_hours().where(Canteen.id == canteen_id))

    async def get_for_update(self, canteen_id: int) -> Canteen | None:
        stmt = self._with_working_hours().where(Canteen.id == canteen_id).with_for_update()
        result = await self.session.scalar(stmt)
        return result if isinstance(result, Canteen) else None

    async def get_by_name(self, name: str) -> Canteen | None:
        return await self.session.scalar(select(Canteen).where(Canteen.name == name))

    async def list_with_working_hours(self) -> List[Canteen]:
        rows = await self.session.scalars(self._with_working_hours().order_by(Canteen.id))
        return list(rows.all())

    async def create(
        self,
        *,
        name: str,
        location: str,
        capacity: int,
        working_hours: Sequence[WorkingHour],
    ) -> Canteen:
        now = _utc_now_naive()
        canteen = Canteen(
            name=name,
            location=location,
            capacity=capacity,
            working_hours=list(working_hours),
            created_at=now,
            updated_at=now,
        )
        self.session.add(canteen)
        await self.session.flush()
        return canteen

    async def save(self, canteen: Canteen) -> Canteen:
        canteen.updated_at = _utc_now_naive()
        self.session.add(canteen)
        await self.session.flush()
        return canteen

    async def delete(self, canteen: Canteen) -> None:
        await self.session.delete(canteen)
        await self.session.flush()


class SqlAlchemyReservationRepository(ReservationRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, reservation_id: int) -> Optional[Reservation]:
        return await self.session.get(Reservation, reservation_id)

    async def get_for_update(self, reservation_id: int) -> Optional[Reservation]:
        stmt = select(Reservation).where(Reservation.id == reservation_id).with_for_update()
        result = await self.session.scalar(stmt)
        return result if isinstance(result, Reservation) else None

    async def list_all(self) -> List[Reservation]:
        rows = await self.session.scalars(select(Reservation).order_by(Reservation.id))
        return list(rows.all())

    async def list_by_student(self, student_id: int) -> List[Reservation]:
        stmt = (
            select(Reservation)
            .where(Reservation.student_id == student_id)
            .order_by(Reservation.date, Reservation.time)
        )
        rows = await self.session.scalars(stmt)
        return list(rows.all())

    async def list_active_by_canteen(self, canteen_id: int, on: date) -> List[Reservation]:
        stmt = select(Reservation).where(
            Reservation.canteen_id == canteen_id,
            Reservation.date == on,
            Reservation.status == ReservationStatus.ACTIVE,
        )
        rows = await self.session.scalars(stmt)
        return list(rows.all())

    async def list_active_by_student(self, student_id: int, on: date) -> List[Reservation]:
        stmt = select(Reservation).where(
            Reservation.student_id == student_id,
            Reservation.date == on,
            Reservation.status == ReservationStatus.ACTIVE,
        )
        rows = await self.session.scalars(stmt)
        return list(rows.all())

    async def create(
        self,
        *,
        student_id: int,
        canteen_id: int,
        on: date,
        at: time,
        duration: int,
        status: ReservationStatus,
    ) -> Reservation:
        now = _utc_now_naive()
        reservation = Reservation(
            student_id=student_id,
            canteen_id=canteen_id,
            date=on,
            time=at,
            duration=duration,
            status=status,
            created_at=now,
            updated_at=now,
        )
        self.session.add(reservation)
        await self.session.flush()
        return reservation

    async def cancel(self, reservation: Reservation) -> Reservation:
        self.session.add(reservation)
        await self.session.flush()
        return reservation

    async def save(self, reservation: Reservation) -> Reservation:
        reservation.updated_at = _utc_now_naive()
        self.session.add(reservation)
        await self.session.flush()
        return reservation

    async def cancel_active_by_canteen(self, canteen_id: int) -> List[Reservation]:
        stmt = (
            select(Reservation)
            .where(
                Reservation.canteen_id == canteen_id,
                Reservation.status == ReservationStatus.ACTIVE,
            )
            .with_for_update()
        )
        reservations = list((await self.session.scalars(stmt)).all())
        now = _utc_now_naive()
        for reservation in reservations:
            reservation.status = ReservationStatus.CANCELLED
            reservation.updated_at = now
        await self.session.flush()
        return reservations
