from enum import StrEnum


class ErrorKind(StrEnum):
    INVALID_FORMAT = "InvalidFormat"
    INVALID_TIME_ALIGNMENT = "InvalidTimeAlignment"
    INVALID_DURATION = "InvalidDuration"
    PAST_DATE = "PastDate"
    INVALID_IDENTIFIER = "InvalidIdentifier"
    STUDENT_NOT_FOUND = "StudentNotFound"
    CANTEEN_NOT_FOUND = "CanteenNotFound"
    OUTSIDE_WORKING_HOURS = "OutsideWorkingHours"
    STUDENT_DOUBLE_BOOKED = "StudentDoubleBooked"
    CANTEEN_FULL = "CanteenFull"
    RESERVATION_NOT_FOUND = "ReservationNotFound"
    NOT_OWNER = "NotOwner"
    ALREADY_CANCELLED = "AlreadyCancelled"
    FORBIDDEN = "Forbidden"
    BAD_REQUEST = "BadRequest"
    CONFLICT = "Conflict"


class DomainError(Exception):
    """A rejected operation, tagged with the kind of rule that rejected it.

    Raised where the violation is detected and translated to an HTTP status
    exactly once, by the handler registered in ``main``.
    """

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __repr__(self) -> str:
        return f"DomainError({self.kind.value!r}, {self.message!r})"
