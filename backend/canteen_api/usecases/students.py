from ..domain.errors import DomainError, ErrorKind
from ..domain.repositories import StudentRepository
from ..models import Student


async def require_admin(student_repo: StudentRepository, student_id: int, message: str) -> Student:
    student = await student_repo.get(student_id)
    if student is None or not student.is_admin:
        raise DomainError(ErrorKind.FORBIDDEN, message)
    return student


def _validate_profile(name: str, email: str) -> tuple[str, str]:
    name = name.strip()
    email = email.strip()
    if not name:
        raise DomainError(ErrorKind.BAD_REQUEST, "Student name must not be empty")
    if "@" not in email:
        raise DomainError(ErrorKind.BAD_REQUEST, "Invalid email format")
    return name, email


async def list_students(student_repo: StudentRepository) -> list[Student]:
    return await student_repo.list_all()


async def get_student(student_repo: StudentRepository, *, student_id: int) -> Student:
    student = await student_repo.get(student_id)
    if student is None:
        raise DomainError(ErrorKind.STUDENT_NOT_FOUND, "Student does not exist")
    return student


async def create_student(
    student_repo: StudentRepository,
    *,
    name: str,
    email: str,
    is_admin: bool,
) -> Student:
    name, email = _validate_profile(name, email)
    if await student_repo.get_by_email(email) is not None:
        raise DomainError(ErrorKind.CONFLICT, "A student with this email already exists")
    return await student_repo.create(name=name, email=email, is_admin=is_admin)


async def update_student(
    student_repo: StudentRepository,
    *,
    student_id: int,
    name: str,
    email: str,
    is_admin: bool,
) -> Student:
    student = await get_student(student_repo, student_id=student_id)
    name, email = _validate_profile(name, email)
    if email != student.email:
        other = await student_repo.get_by_email(email)
        if other is not None and other.id != student.id:
            raise DomainError(ErrorKind.CONFLICT, "A student with this email already exists")

    student.name = name
    student.email = email
    student.is_admin = is_admin
    return await student_repo.save(student)


async def delete_student(student_repo: StudentRepository, *, student_id: int) -> None:
    student = await get_student(student_repo, student_id=student_id)
    # Reservations keep a restricting reference to their student.
    if await student_repo.has_reservations(student.id):
        raise DomainError(ErrorKind.CONFLICT, "Student has reservations and cannot be deleted")
    await student_repo.delete(student)
