from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Literal, Optional

from ..models import Reservation
from .request_id import get_request_id
from .time import format_date, format_time

AuditAction = Literal[
    "reservation.created",
    "reservation.cancelled",
    "reservation.updated",
    "reservation.canteen_cancelled",
]
AuditInitiator = Literal["student", "admin", "system"]

_audit_logger = logging.getLogger("canteen_api.audit")
_audit_logger.setLevel(logging.INFO)
if not _audit_logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    _audit_logger.addHandler(handler)
_audit_logger.propagate = False


def _enum_to_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if hasattr(value, "value"):
        return str(value.value)
    return str(value)


def emit_audit_log(
    *,
    action: AuditAction,
    initiator: AuditInitiator,
    reservation_id: int,
    student_id: Optional[int],
    canteen_id: Optional[int],
    reservation_date: Optional[str],
    time: Optional[str],
    duration: Optional[int],
    status_from: Optional[str],
    status_to: Optional[str],
    actor_id: Optional[int] = None,
    message: Optional[str] = None,
    extra: Optional[dict[str, Any]] = None,
) -> None:
    """Emit structured JSON audit log. Raises RuntimeError if logging fails."""
    payload: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": "info",
        "action": action,
        "initiator": initiator,
        "request_id": get_request_id(),
        "actor_id": actor_id,
        "reservation_id": reservation_id,
        "student_id": student_id,
        "canteen_id": canteen_id,
        "date": reservation_date,
        "time": time,
        "duration": duration,
        "status_from": _enum_to_str(status_from),
        "status_to": _enum_to_str(status_to),
    }
    if message is not None:
        payload["message"] = message
    if extra:
        payload.update(extra)

    # Drop None values to keep the log compact.
    compact_payload = {k: v for k, v in payload.items() if v is not None}
    try:
        _audit_logger.info(json.dumps(compact_payload, ensure_ascii=True))
    except Exception as exc:
        raise RuntimeError("failed to emit audit log") from exc


def audit_reservation(
    reservation: Reservation,
    *,
    action: AuditAction,
    initiator: AuditInitiator,
    status_from: Optional[str],
    actor_id: Optional[int] = None,
    extra: Optional[dict[str, Any]] = None,
) -> None:
    emit_audit_log(
        action=action,
        initiator=initiator,
        reservation_id=reservation.id,
        student_id=reservation.student_id,
        canteen_id=reservation.canteen_id,
        reservation_date=format_date(reservation.date),
        time=format_time(reservation.time),
        duration=reservation.duration,
        status_from=status_from,
        status_to=reservation.status,
        actor_id=actor_id,
        extra=extra,
    )
