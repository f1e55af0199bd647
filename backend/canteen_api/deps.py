from typing import AsyncIterator
from zoneinfo import ZoneInfo

from fastapi import Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from .config import get_settings
from .database import async_session
from .utils.time import Clock, SystemClock


async def get_session() -> AsyncIterator[AsyncSession]:
    async with async_session() as session:
        yield session


async def get_current_student_id(x_student_id: str | None = Header(default=None)) -> int:
    if x_student_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="X-Student-Id header required")
    try:
        return int(x_student_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid X-Student-Id") from exc


def get_clock() -> Clock:
    return SystemClock(ZoneInfo(get_settings().timezone))
