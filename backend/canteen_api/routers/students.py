from typing import List

from fastapi import APIRouter, Depends, Path, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_session
from ..infrastructure.repositories import SqlAlchemyStudentRepository
from ..schemas import StudentRead, StudentWrite
from ..usecases import students as student_usecase

router = APIRouter(prefix="/api/students", tags=["students"])


@router.get("", response_model=List[StudentRead])
async def list_students(session: AsyncSession = Depends(get_session)) -> list[StudentRead]:
    student_repo = SqlAlchemyStudentRepository(session)
    students = await student_usecase.list_students(student_repo)
    return [StudentRead.from_db(student=student) for student in students]


@router.get("/{student_id}", response_model=StudentRead)
async def get_student(
    student_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
) -> StudentRead:
    student_repo = SqlAlchemyStudentRepository(session)
    student = await student_usecase.get_student(student_repo, student_id=student_id)
    return StudentRead.from_db(student=student)


@router.post("", response_model=StudentRead, status_code=status.HTTP_201_CREATED)
async def create_student(
    payload: StudentWrite,
    session: AsyncSession = Depends(get_session),
) -> StudentRead:
    student_repo = SqlAlchemyStudentRepository(session)
    async with session.begin():
        student = await student_usecase.create_student(
            student_repo,
            name=payload.name,
            email=payload.email,
            is_admin=payload.is_admin,
        )
    return StudentRead.from_db(student=student)


@router.put("/{student_id}", response_model=StudentRead)
async def update_student(
    payload: StudentWrite,
    student_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
) -> StudentRead:
    student_repo = SqlAlchemyStudentRepository(session)
    async with session.begin():
        student = await student_usecase.update_student(
            student_repo,
            student_id=student_id,
            name=payload.name,
            email=payload.email,
            is_admin=payload.is_admin,
        )
    return StudentRead.from_db(student=student)


@router.delete("/{student_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_student(
    student_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
) -> Response:
    student_repo = SqlAlchemyStudentRepository(session)
    async with session.begin():
        await student_usecase.delete_student(student_repo, student_id=student_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
