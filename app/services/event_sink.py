from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Protocol
from uuid import UUID

from app.core.logging import get_audit_logger


@dataclass(frozen=True)
class ApplicationApprovedEvent:
    application_id: UUID
    subject_id: str
    requested_amount: Decimal
    staff_id: str
    decided_at: datetime

    def as_payload(self) -> dict[str, Any]:
        return {key: _json_value(value) for key, value in asdict(self).items()}


def _json_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return str(value)


class EventSink(Protocol):
    async def publish(self, event: ApplicationApprovedEvent) -> None: ...


class AuditLogEventSink:
    """Write approval events to the audit log stream.

    Delivery is in-process and not journaled: an event is lost if the process
    dies between the decision commit and this call.
    """

    def __init__(self) -> None:
        self._logger = get_audit_logger()

    async def publish(self, event: ApplicationApprovedEvent) -> None:
        self._logger.info(
            "application.approved %s",
            event.application_id,
            extra={"event": {"type": "application.approved", **event.as_payload()}},
        )
