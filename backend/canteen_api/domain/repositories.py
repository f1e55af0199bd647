from __future__ import annotations

from datetime import date, time
from typing import Protocol, Sequence

from ..models import Canteen, Reservation, ReservationStatus, Student, WorkingHour


class StudentRepository(Protocol):
    async def get(self, student_id: int) -> Student | None: ...

    async def get_for_update(self, student_id: int) -> Student | None: ...

    async def get_by_email(self, email: str) -> Student | None: ...

    async def list_all(self) -> list[Student]: ...

    async def create(self, *, name: str, email: str, is_admin: bool) -> Student: ...

    async def save(self, student: Student) -> Student: ...

    async def delete(self, student: Student) -> None: ...

    async def has_reservations(self, student_id: int) -> bool: ...


class CanteenRepository(Protocol):
    async def get_with_working_hours(self, canteen_id: int) -> Canteen | None: ...

    async def get_for_update(self, canteen_id: int) -> Canteen | None: ...

    async def get_by_name(self, name: str) -> Canteen | None: ...

    async def list_with_working_hours(self) -> list[Canteen]: ...

    async def create(
        self,
        *,
        name: str,
        location: str,
        capacity: int,
        working_hours: Sequence[WorkingHour],
    ) -> Canteen: ...

    async def save(self, canteen: Canteen) -> Canteen: ...

    async def delete(self, canteen: Canteen) -> None: ...


class ReservationRepository(Protocol):
    async def get(self, reservation_id: int) -> Reservation | None: ...

    async def get_for_update(self, reservation_id: int) -> Reservation | None: ...

    async def list_all(self) -> list[Reservation]: ...

    async def list_by_student(self, student_id: int) -> list[Reservation]: ...

    async def list_active_by_canteen(self, canteen_id: int, on: date) -> list[Reservation]: ...

    async def list_active_by_student(self, student_id: int, on: date) -> list[Reservation]: ...

    async def create(
        self,
        *,
        student_id: int,
        canteen_id: int,
        on: date,
        at: time,
        duration: int,
        status: ReservationStatus,
    ) -> Reservation: ...

    async def cancel(self, reservation: Reservation) -> Reservation: ...

    async def save(self, reservation: Reservation) -> Reservation: ...

    async def cancel_active_by_canteen(self, canteen_id: int) -> list[Reservation]: ...
