from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from app.core.logging import get_audit_logger
from app.models.decision import OUTCOME_PER_APPLICATION_GUARD, Decision
from app.schemas.applications import ApplicationStatus, DecisionOutcome
from app.services.applications import coerce_uuid, get_application, utcnow
from app.services.constraints import UniqueGuard, insert_guarded
from app.services.event_sink import ApplicationApprovedEvent, EventSink
from app.services.results import (
    LifecycleError,
    Result,
    duplicate_decision,
    invalid_state,
    not_found,
    validation_error,
)

logger = logging.getLogger(__name__)

OUTCOME_GUARD = UniqueGuard(
    name=OUTCOME_PER_APPLICATION_GUARD,
    table=Decision.__tablename__,
    columns=("application_id", "outcome"),
)


async def find_decision(
    db: AsyncSession, application_id: UUID, outcome: DecisionOutcome
) -> Decision | None:
    stmt = select(Decision).where(
        Decision.application_id == application_id,
        Decision.outcome == outcome.value,
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def list_application_decisions(db: AsyncSession, application_id: UUID) -> list[Decision]:
    stmt = (
        select(Decision)
        .where(Decision.application_id == application_id)
        .order_by(Decision.created_at)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


def _duplicate_decision(decision: Decision) -> LifecycleError:
    return duplicate_decision(
        decision.application_id, decision.outcome, decision.id, decision.created_at
    )


def _parse_outcome(value: DecisionOutcome | str | None) -> DecisionOutcome | None:
    if value is None:
        return None
    try:
        return DecisionOutcome(value)
    except ValueError:
        return None


class DecisionService:
    """Single approve/reject gate for pending applications.

    The decision row and the application's status change commit together.
    Concurrent attempts are settled by the ``(application_id, outcome)`` guard
    and by the version compare-and-set on the application row; the loser sees
    ``DUPLICATE_DECISION`` or ``INVALID_STATE``. Approval events are published
    only after the commit and are best effort.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        event_sink: EventSink,
        *,
        max_reason_length: int = 500,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._event_sink = event_sink
        self._max_reason_length = max_reason_length
        self._clock = clock

    def _validate(
        self,
        outcome: DecisionOutcome | None,
        staff_id: str,
        reason: str | None,
    ) -> LifecycleError | None:
        if outcome is None:
            return validation_error(
                "outcome",
                "is required (APPROVED or REJECTED)",
                allowed=[item.value for item in DecisionOutcome],
            )
        if not staff_id or not staff_id.strip():
            return validation_error("staff_id", "must not be blank")
        if reason is not None and len(reason) > self._max_reason_length:
            return validation_error(
                "reason",
                f"must not exceed {self._max_reason_length} characters",
                max_length=self._max_reason_length,
            )
        return None

    async def submit_decision(
        self,
        application_id: UUID | str,
        outcome: DecisionOutcome | str | None,
        staff_id: str,
        reason: str | None = None,
    ) -> Result[Decision]:
        parsed_outcome = _parse_outcome(outcome)
        error = self._validate(parsed_outcome, staff_id, reason)
        if error is not None:
            return Result.failure(error)
        logger.info(
            "Decision requested for application %s by staff %s (outcome: %s)",
            application_id,
            staff_id,
            parsed_outcome.value,
        )

        application_uuid = coerce_uuid(application_id)
        if application_uuid is None:
            return Result.failure(not_found("Application", application_id))

        async with self._session_factory() as db:
            application = await get_application(db, application_uuid)
            if application is None:
                logger.warning("Application not found with ID: %s", application_id)
                return Result.failure(not_found("Application", application_id))

            if application.status != ApplicationStatus.PENDING.value:
                logger.warning(
                    "Cannot decide application %s: status is %s",
                    application_uuid,
                    application.status,
                )
                return Result.failure(invalid_state(application_uuid, application.status))

            existing = await find_decision(db, application_uuid, parsed_outcome)
            if existing is not None:
                logger.warning(
                    "Duplicate %s decision for application %s (existing %s)",
                    parsed_outcome.value,
                    application_uuid,
                    existing.id,
                )
                return Result.failure(_duplicate_decision(existing))

            subject_id = application.subject_id
            requested_amount = application.requested_amount
            now = self._clock()
            decision = Decision(
                id=uuid4(),
                application_id=application_uuid,
                outcome=parsed_outcome.value,
                staff_id=staff_id,
                reason=reason,
                created_at=now,
            )

            async def _recover() -> LifecycleError | None:
                conflicting = await find_decision(db, application_uuid, parsed_outcome)
                if conflicting is None:
                    return None
                return _duplicate_decision(conflicting)

            error = await insert_guarded(db, decision, guard=OUTCOME_GUARD, recover=_recover)
            if error is not None:
                return Result.failure(error)

            application.status = parsed_outcome.resulting_status.value
            application.updated_at = now
            try:
                await db.flush()
            except StaleDataError:
                # Another decision changed the row after it was read.
                await db.rollback()
                await db.refresh(application)
                logger.warning(
                    "Application %s was decided concurrently; now %s",
                    application_uuid,
                    application.status,
                )
                return Result.failure(invalid_state(application_uuid, application.status))
            await db.commit()

        logger.info(
            "Application %s moved %s -> %s by staff %s (decision %s)",
            application_uuid,
            ApplicationStatus.PENDING.value,
            parsed_outcome.resulting_status.value,
            staff_id,
            decision.id,
        )
        get_audit_logger().info(
            "application.decided %s",
            application_uuid,
            extra={
                "event": {
                    "type": "application.decided",
                    "application_id": str(application_uuid),
                    "decision_id": str(decision.id),
                    "outcome": parsed_outcome.value,
                    "staff_id": staff_id,
                    "reason": reason,
                }
            },
        )

        if parsed_outcome is DecisionOutcome.APPROVED:
            await self._publish_approval(
                ApplicationApprovedEvent(
                    application_id=application_uuid,
                    subject_id=subject_id,
                    requested_amount=requested_amount,
                    staff_id=staff_id,
                    decided_at=now,
                )
            )
        return Result.success(decision)

    async def _publish_approval(self, event: ApplicationApprovedEvent) -> None:
        try:
            await self._event_sink.publish(event)
        except Exception:
            # The decision is already committed; keep the payload for replay.
            logger.exception(
                "Failed to publish approval event for application %s payload=%s",
                event.application_id,
                event.as_payload(),
            )
            return
        logger.info(
            "Approval event published for application %s (subject: %s)",
            event.application_id,
            event.subject_id,
        )

    async def list_decisions(self, application_id: UUID | str) -> Result[list[Decision]]:
        application_uuid = coerce_uuid(application_id)
        if application_uuid is None:
            return Result.failure(not_found("Application", application_id))
        async with self._session_factory() as db:
            application = await get_application(db, application_uuid)
            if application is None:
                return Result.failure(not_found("Application", application_id))
            decisions = await list_application_decisions(db, application_uuid)
        return Result.success(decisions)
