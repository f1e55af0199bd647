from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .domain.availability import Slot
from .models import Canteen, MealType, Reservation, ReservationStatus, Student, WorkingHour
from .utils.time import format_date, format_time


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class WorkingHourPayload(CamelModel):
    meal: str
    from_: str = Field(alias="from")
    to: str

    def as_input(self) -> tuple[str, str, str]:
        return self.meal, self.from_, self.to


class WorkingHourRead(CamelModel):
    meal: MealType
    from_: str = Field(alias="from")
    to: str

    @classmethod
    def from_db(cls, *, working_hour: WorkingHour) -> "WorkingHourRead":
        return cls(
            meal=working_hour.meal,
            from_=format_time(working_hour.start_time),
            to=format_time(working_hour.end_time),
        )


class CanteenCreate(CamelModel):
    name: str
    location: str
    capacity: int
    working_hours: List[WorkingHourPayload] = Field(default_factory=list)


class CanteenUpdate(CamelModel):
    name: Optional[str] = None
    location: Optional[str] = None
    capacity: Optional[int] = None
    working_hours: Optional[List[WorkingHourPayload]] = None


class CanteenRead(CamelModel):
    id: int
    name: str
    location: str
    capacity: int
    working_hours: List[WorkingHourRead]

    @classmethod
    def from_db(cls, *, canteen: Canteen) -> "CanteenRead":
        return cls(
            id=canteen.id,
            name=canteen.name,
            location=canteen.location,
            capacity=canteen.capacity,
            working_hours=[WorkingHourRead.from_db(working_hour=wh) for wh in canteen.working_hours],
        )


class StudentWrite(CamelModel):
    name: str
    email: str
    is_admin: bool = False


class StudentRead(CamelModel):
    id: int
    name: str
    email: str
    is_admin: bool

    @classmethod
    def from_db(cls, *, student: Student) -> "StudentRead":
        return cls(id=student.id, name=student.name, email=student.email, is_admin=student.is_admin)


class ReservationWrite(CamelModel):
    # Identifiers and date/time stay raw so that malformed values surface as
    # domain errors rather than request validation failures.
    student_id: Union[int, str]
    canteen_id: Union[int, str]
    date: str
    time: str
    duration: int


class ReservationRead(CamelModel):
    id: int
    student_id: int
    canteen_id: int
    date: str
    time: str
    duration: int
    status: ReservationStatus

    @classmethod
    def from_db(cls, *, reservation: Reservation) -> "ReservationRead":
        return cls(
            id=reservation.id,
            student_id=reservation.student_id,
            canteen_id=reservation.canteen_id,
            date=format_date(reservation.date),
            time=format_time(reservation.time),
            duration=reservation.duration,
            status=reservation.status,
        )


class SlotRead(CamelModel):
    date: str
    meal: MealType
    start_time: str
    remaining_capacity: int

    @classmethod
    def from_domain(cls, *, slot: Slot) -> "SlotRead":
        return cls(
            date=format_date(slot.date),
            meal=slot.meal,
            start_time=format_time(slot.start_time),
            remaining_capacity=slot.remaining_capacity,
        )


class CanteenStatusRead(CamelModel):
    canteen_id: int
    slots: List[SlotRead]

    @classmethod
    def from_domain(cls, *, canteen: Canteen, slots: List[Slot]) -> "CanteenStatusRead":
        return cls(canteen_id=canteen.id, slots=[SlotRead.from_domain(slot=slot) for slot in slots])
