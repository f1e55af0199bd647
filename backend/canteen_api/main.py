import logging
from contextlib import asynccontextmanager
from http import HTTPStatus
from typing import AsyncIterator, Awaitable, Callable

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import get_settings
from .database import create_schema
from .domain.errors import DomainError, ErrorKind
from .routers import canteens, reservations, slots, students
from .utils.request_id import REQUEST_ID_HEADER, resolve_request_id, set_request_id

logger = logging.getLogger("canteen_api")

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.INVALID_FORMAT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_TIME_ALIGNMENT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_DURATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.PAST_DATE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_IDENTIFIER: status.HTTP_400_BAD_REQUEST,
    ErrorKind.OUTSIDE_WORKING_HOURS: status.HTTP_400_BAD_REQUEST,
    ErrorKind.BAD_REQUEST: status.HTTP_400_BAD_REQUEST,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_OWNER: status.HTTP_403_FORBIDDEN,
    ErrorKind.STUDENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CANTEEN_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.RESERVATION_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.STUDENT_DOUBLE_BOOKED: status.HTTP_409_CONFLICT,
    ErrorKind.CANTEEN_FULL: status.HTTP_409_CONFLICT,
    ErrorKind.ALREADY_CANCELLED: status.HTTP_409_CONFLICT,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
}


def _error_body(kind: str, detail: str) -> dict[str, str]:
    return {"error": kind, "detail": detail}


# Names for errors raised as HTTPException rather than DomainError.
HTTP_ERROR_NAMES: dict[int, str] = {
    status.HTTP_400_BAD_REQUEST: ErrorKind.BAD_REQUEST.value,
    status.HTTP_401_UNAUTHORIZED: "Unauthorized",
    status.HTTP_403_FORBIDDEN: ErrorKind.FORBIDDEN.value,
    status.HTTP_404_NOT_FOUND: "NotFound",
    status.HTTP_409_CONFLICT: ErrorKind.CONFLICT.value,
    status.HTTP_500_INTERNAL_SERVER_ERROR: "InternalError",
}


def _http_error_name(status_code: int) -> str:
    name = HTTP_ERROR_NAMES.get(status_code)
    if name is None:
        name = HTTPStatus(status_code).phrase.replace(" ", "").replace("-", "")
    return name


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    status_code = STATUS_BY_KIND.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
    logger.info("%s %s rejected: %s (%s)", request.method, request.url.path, exc.kind.value, exc.message)
    return JSONResponse(status_code=status_code, content=_error_body(exc.kind.value, exc.message))


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(_http_error_name(exc.status_code), str(exc.detail)),
        headers=exc.headers,
    )


def _describe_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        # loc starts with the source ("body", "query", "path"); the rest names the field.
        field = ".".join(str(part) for part in error.get("loc", ())[1:])
        message = error.get("msg", "invalid value")
        parts.append(f"{field}: {message}" if field else message)
    return "; ".join(parts) or "Invalid request"


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("%s %s rejected: invalid request (%s)", request.method, request.url.path, exc.errors())
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body(ErrorKind.BAD_REQUEST.value, _describe_validation_errors(exc)),
    )


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    # A constraint fired at flush/commit time, typically a concurrent write.
    logger.warning("%s %s integrity error: %s", request.method, request.url.path, exc.orig or exc)
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=_error_body(ErrorKind.CONFLICT.value, "The request conflicts with the current state"),
    )


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("%s %s failed", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("InternalError", "An error occurred while processing your request."),
    )


async def request_id_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
    set_request_id(request_id)
    try:
        response = await call_next(request)
    finally:
        set_request_id(None)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    if get_settings().auto_create_schema:
        logger.info("creating database schema")
        await create_schema()
    yield


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)
    logger.setLevel(settings.log_level)

    application = FastAPI(title="Canteen Reservation API", lifespan=lifespan)
    application.middleware("http")(request_id_middleware)
    application.add_exception_handler(DomainError, domain_error_handler)
    application.add_exception_handler(RequestValidationError, validation_error_handler)
    application.add_exception_handler(StarletteHTTPException, http_error_handler)
    application.add_exception_handler(IntegrityError, integrity_error_handler)
    application.add_exception_handler(Exception, unexpected_error_handler)

    @application.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    application.include_router(slots.router)
    application.include_router(canteens.router)
    application.include_router(students.router)
    application.include_router(reservations.router)
    return application


app = create_app()
