from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

import pytest
from canteen_api.deps import get_clock, get_session
from canteen_api.main import app
from canteen_api.models import Canteen, MealType, Reservation, ReservationStatus, Student, WorkingHour
from canteen_api.routers import canteens, reservations, slots, students
from fastapi import FastAPI

TODAY = date(2030, 1, 14)


def _now() -> datetime:
    return datetime(2030, 1, 14, 9, 0)


class FixedClock:
    def __init__(self, today: date = TODAY) -> None:
        self._today = today

    def today(self) -> date:
        return self._today


_RESERVATION_FIELDS = ("student_id", "canteen_id", "date", "time", "duration", "status")


def _reservation_fields(reservation: Reservation) -> Dict[str, object]:
    return {name: getattr(reservation, name) for name in _RESERVATION_FIELDS}


@dataclass
class Snapshot:
    students: Dict[int, Student]
    canteens: Dict[int, Canteen]
    reservations: Dict[int, Tuple[Reservation, Dict[str, object]]]


class InMemoryStore:
    """Backing state shared by the fake repositories of one test."""

    def __init__(self) -> None:
        self.students: Dict[int, Student] = {}
        self.canteens: Dict[int, Canteen] = {}
        self.reservations: Dict[int, Reservation] = {}
        self._next_id = 1

    def next_id(self) -> int:
        value = self._next_id
        self._next_id += 1
        return value

    def add_student(self, name: str = "Ana", email: Optional[str] = None, is_admin: bool = False) -> Student:
        student_id = self.next_id()
        student = Student(
            id=student_id,
            name=name,
            email=email or f"student{student_id}@example.com",
            is_admin=is_admin,
            created_at=_now(),
            updated_at=_now(),
        )
        self.students[student.id] = student
        return student

    def add_canteen(
        self,
        name: str = "Main Canteen",
        capacity: int = 10,
        hours: Sequence[tuple[MealType, time, time]] = ((MealType.LUNCH, time(12, 0), time(14, 0)),),
    ) -> Canteen:
        canteen = Canteen(
            id=self.next_id(),
            name=name,
            location="Building A",
            capacity=capacity,
            working_hours=[
                WorkingHour(id=self.next_id(), meal=meal, start_time=start, end_time=end) for meal, start, end in hours
            ],
            created_at=_now(),
            updated_at=_now(),
        )
        self.canteens[canteen.id] = canteen
        return canteen

    def add_reservation(
        self,
        student: Student,
        canteen: Canteen,
        *,
        on: date = TODAY,
        at: time = time(12, 0),
        duration: int = 30,
        status: ReservationStatus = ReservationStatus.ACTIVE,
    ) -> Reservation:
        reservation = Reservation(
            id=self.next_id(),
            student_id=student.id,
            canteen_id=canteen.id,
            date=on,
            time=at,
            duration=duration,
            status=status,
            created_at=_now(),
            updated_at=_now(),
        )
        self.reservations[reservation.id] = reservation
        return reservation

    def snapshot(self) -> Snapshot:
        return Snapshot(
            students=dict(self.students),
            canteens=dict(self.canteens),
            reservations={r.id: (r, _reservation_fields(r)) for r in self.reservations.values()},
        )

    def restore(self, snapshot: Snapshot) -> None:
        self.students = dict(snapshot.students)
        self.canteens = dict(snapshot.canteens)
        self.reservations = {}
        for reservation_id, (reservation, fields) in snapshot.reservations.items():
            for name, value in fields.items():
                setattr(reservation, name, value)
            self.reservations[reservation_id] = reservation


class FakeStudentRepo:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    async def get(self, student_id: int) -> Optional[Student]:
        return self.store.students.get(student_id)

    async def get_for_update(self, student_id: int) -> Optional[Student]:
        return self.store.students.get(student_id)

    async def get_by_email(self, email: str) -> Optional[Student]:
        return next((s for s in self.store.students.values() if s.email == email), None)

    async def list_all(self) -> List[Student]:
        return list(self.store.students.values())

    async def create(self, *, name: str, email: str, is_admin: bool) -> Student:
        return self.store.add_student(name=name, email=email, is_admin=is_admin)

    async def save(self, student: Student) -> Student:
        self.store.students[student.id] = student
        return student

    async def delete(self, student: Student) -> None:
        del self.store.students[student.id]

    async def has_reservations(self, student_id: int) -> bool:
        return any(r.student_id == student_id for r in self.store.reservations.values())


class FakeCanteenRepo:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    async def get_with_working_hours(self, canteen_id: int) -> Optional[Canteen]:
        return self.store.canteens.get(canteen_id)

    async def get_for_update(self, canteen_id: int) -> Optional[Canteen]:
        return self.store.canteens.get(canteen_id)

    async def get_by_name(self, name: str) -> Optional[Canteen]:
        return next((c for c in self.store.canteens.values() if c.name == name), None)

    async def list_with_working_hours(self) -> List[Canteen]:
        return list(self.store.canteens.values())

    async def create(
        self,
        *,
        name: str,
        location: str,
        capacity: int,
        working_hours: Sequence[WorkingHour],
    ) -> Canteen:
        canteen = Canteen(
            id=self.store.next_id(),
            name=name,
            location=location,
            capacity=capacity,
            working_hours=list(working_hours),
            created_at=_now(),
            updated_at=_now(),
        )
        self.store.canteens[canteen.id] = canteen
        return canteen

    async def save(self, canteen: Canteen) -> Canteen:
        self.store.canteens[canteen.id] = canteen
        return canteen

    async def delete(self, canteen: Canteen) -> None:
        del self.store.canteens[canteen.id]


class FakeReservationRepo:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store
        self.cancel_called = False

    async def get(self, reservation_id: int) -> Optional[Reservation]:
        return self.store.reservations.get(reservation_id)

    async def get_for_update(self, reservation_id: int) -> Optional[Reservation]:
        return self.store.reservations.get(reservation_id)

    async def list_all(self) -> List[Reservation]:
        return list(self.store.reservations.values())

    async def list_by_student(self, student_id: int) -> List[Reservation]:
        return [r for r in self.store.reservations.values() if r.student_id == student_id]

    async def list_active_by_canteen(self, canteen_id: int, on: date) -> List[Reservation]:
        return [
            r
            for r in self.store.reservations.values()
            if r.canteen_id == canteen_id and r.date == on and r.status == ReservationStatus.ACTIVE
        ]

    async def list_active_by_student(self, student_id: int, on: date) -> List[Reservation]:
        return [
            r
            for r in self.store.reservations.values()
            if r.student_id == student_id and r.date == on and r.status == ReservationStatus.ACTIVE
        ]

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
        reservation = Reservation(
            id=self.store.next_id(),
            student_id=student_id,
            canteen_id=canteen_id,
            date=on,
            time=at,
            duration=duration,
            status=status,
            created_at=_now(),
            updated_at=_now(),
        )
        self.store.reservations[reservation.id] = reservation
        return reservation

    async def cancel(self, reservation: Reservation) -> Reservation:
        self.cancel_called = True
        return reservation

    async def save(self, reservation: Reservation) -> Reservation:
        self.store.reservations[reservation.id] = reservation
        return reservation

    async def cancel_active_by_canteen(self, canteen_id: int) -> List[Reservation]:
        cancelled = [
            r
            for r in self.store.reservations.values()
            if r.canteen_id == canteen_id and r.status == ReservationStatus.ACTIVE
        ]
        for reservation in cancelled:
            reservation.status = ReservationStatus.CANCELLED
        return cancelled


class DummySession:
    """Async session stub supporting `async with session.begin()`.

    With a store attached, leaving the block on an exception restores the
    store to its state at `begin()`.
    """

    def __init__(self, store: Optional[InMemoryStore] = None) -> None:
        self.store = store
        self.rolled_back = False
        self._snapshot: Optional[Snapshot] = None

    async def __aenter__(self) -> "DummySession":
        if self.store is not None:
            self._snapshot = self.store.snapshot()
        return self

    async def __aexit__(self, exc_type: object, exc: object, tb: object) -> bool:
        if exc_type is not None:
            self.rolled_back = True
            if self.store is not None and self._snapshot is not None:
                self.store.restore(self._snapshot)
        return False

    def begin(self) -> "DummySession":
        return self


class CallRecorder:
    """Wraps a fake repository and appends ``"<label>.<method>"`` to ``calls`` on every await."""

    def __init__(self, label: str, repo: object, calls: List[str]) -> None:
        self._label = label
        self._repo = repo
        self._calls = calls

    def __getattr__(self, name: str) -> Any:
        target = getattr(self._repo, name)

        async def recorded(*args: Any, **kwargs: Any) -> Any:
            self._calls.append(f"{self._label}.{name}")
            return await target(*args, **kwargs)

        return recorded


@dataclass
class RecordingRepos:
    calls: List[str]
    student: CallRecorder
    canteen: CallRecorder
    reservation: CallRecorder


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def student_repo(store: InMemoryStore) -> FakeStudentRepo:
    return FakeStudentRepo(store)


@pytest.fixture
def canteen_repo(store: InMemoryStore) -> FakeCanteenRepo:
    return FakeCanteenRepo(store)


@pytest.fixture
def res_repo(store: InMemoryStore) -> FakeReservationRepo:
    return FakeReservationRepo(store)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def session(store: InMemoryStore) -> DummySession:
    return DummySession(store)


@pytest.fixture
def api(
    monkeypatch: pytest.MonkeyPatch,
    session: DummySession,
    clock: FixedClock,
    student_repo: FakeStudentRepo,
    canteen_repo: FakeCanteenRepo,
    res_repo: FakeReservationRepo,
) -> Iterator[FastAPI]:
    """The application wired to the in-memory repositories."""
    for module in (reservations, canteens, students, slots):
        monkeypatch.setattr(module, "SqlAlchemyStudentRepository", lambda s: student_repo, raising=False)
        monkeypatch.setattr(module, "SqlAlchemyCanteenRepository", lambda s: canteen_repo, raising=False)
        monkeypatch.setattr(module, "SqlAlchemyReservationRepository", lambda s: res_repo, raising=False)

    async def override_session() -> DummySession:
        return session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_clock] = lambda: clock
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def recording(
    student_repo: FakeStudentRepo,
    canteen_repo: FakeCanteenRepo,
    res_repo: FakeReservationRepo,
) -> RecordingRepos:
    calls: List[str] = []
    return RecordingRepos(
        calls=calls,
        student=CallRecorder("student", student_repo, calls),
        canteen=CallRecorder("canteen", canteen_repo, calls),
        reservation=CallRecorder("reservation", res_repo, calls),
    )
