import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from app.core import context
from app.core.logging import AUDIT_LOGGER_NAME, JsonFormatter, RequestContextFilter
from app.services.event_sink import ApplicationApprovedEvent, AuditLogEventSink


def _record(message: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord("app.test", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_context_and_event() -> None:
    context.set_request_id("req-1")
    context.set_actor_id("officer1")
    record = _record("hello", event={"type": "application.approved"})
    RequestContextFilter().filter(record)

    payload = json.loads(JsonFormatter(stream_label="audit").format(record))

    assert payload["message"] == "hello"
    assert payload["stream"] == "audit"
    assert payload["request_id"] == "req-1"
    assert payload["actor_id"] == "officer1"
    assert payload["event"] == {"type": "application.approved"}
    context.clear_context()


def test_context_defaults_after_clear() -> None:
    context.set_actor_id("someone")
    context.clear_context()

    assert context.get_actor_id() == "-"
    assert context.get_request_id() == "-"


@pytest.mark.asyncio
async def test_audit_sink_writes_approval_payload(caplog) -> None:
    event = ApplicationApprovedEvent(
        application_id=uuid4(),
        subject_id="S1",
        requested_amount=Decimal("50000.00"),
        staff_id="officer1",
        decided_at=datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
    )
    audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)
    audit_logger.addHandler(caplog.handler)
    try:
        with caplog.at_level(logging.INFO, logger=AUDIT_LOGGER_NAME):
            await AuditLogEventSink().publish(event)
    finally:
        audit_logger.removeHandler(caplog.handler)

    (record,) = [rec for rec in caplog.records if rec.name == AUDIT_LOGGER_NAME]
    assert record.event == {
        "type": "application.approved",
        "application_id": str(event.application_id),
        "subject_id": "S1",
        "requested_amount": 50000.0,
        "staff_id": "officer1",
        "decided_at": "2026-01-02T03:04:05+00:00",
    }
