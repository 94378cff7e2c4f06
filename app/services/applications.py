from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.settings import Settings
from app.models.application import PENDING_PER_SUBJECT_GUARD, Application
from app.schemas.applications import ApplicationStatus
from app.services.constraints import UniqueGuard, insert_guarded
from app.services.results import (
    LifecycleError,
    Result,
    duplicate_active,
    not_found,
    validation_error,
)
from app.services.subjects import SubjectDirectory

logger = logging.getLogger(__name__)

PENDING_GUARD = UniqueGuard(
    name=PENDING_PER_SUBJECT_GUARD,
    table=Application.__tablename__,
    columns=("subject_id",),
)

MAX_AMOUNT_INTEGER_DIGITS = 15
MAX_AMOUNT_FRACTION_DIGITS = 2


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def coerce_uuid(value: Any) -> UUID | None:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class ApplicationLimits:
    min_term_months: int = 3
    max_term_months: int = 360
    max_purpose_length: int = 255

    @classmethod
    def from_settings(cls, settings: Settings) -> ApplicationLimits:
        return cls(
            min_term_months=settings.min_term_months,
            max_term_months=settings.max_term_months,
            max_purpose_length=settings.max_purpose_length,
        )


async def get_application(db: AsyncSession, application_id: UUID) -> Application | None:
    return await db.get(Application, application_id)


async def find_pending_application(db: AsyncSession, subject_id: str) -> Application | None:
    stmt = (
        select(Application)
        .where(
            Application.subject_id == subject_id,
            Application.status == ApplicationStatus.PENDING.value,
        )
        .order_by(Application.created_at.desc())
        .limit(1)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


def _duplicate_active(application: Application) -> LifecycleError:
    return duplicate_active(application.subject_id, application.id, application.created_at)


def _parse_amount(value: Any) -> Decimal | None:
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount


class ApplicationLifecycleService:
    """Creates applications and guards the one-pending-per-subject rule."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        subjects: SubjectDirectory,
        *,
        limits: ApplicationLimits | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._subjects = subjects
        self._limits = limits or ApplicationLimits()
        self._clock = clock

    def _validate(
        self,
        subject_id: str,
        requested_amount: Decimal | None,
        term_months: int | None,
        purpose: str | None,
    ) -> LifecycleError | None:
        if not subject_id or not subject_id.strip():
            return validation_error("subject_id", "must not be blank")
        if requested_amount is None:
            return validation_error("requested_amount", "must be a decimal amount")
        if requested_amount <= 0:
            return validation_error("requested_amount", "must be greater than 0")
        _, digits, exponent = requested_amount.as_tuple()
        fraction_digits = max(0, -exponent)
        integer_digits = max(0, len(digits) + exponent)
        if (
            fraction_digits > MAX_AMOUNT_FRACTION_DIGITS
            or integer_digits > MAX_AMOUNT_INTEGER_DIGITS
        ):
            return validation_error(
                "requested_amount",
                "must have at most 15 integer digits and 2 decimal places",
            )
        limits = self._limits
        if term_months is not None and not (
            limits.min_term_months <= term_months <= limits.max_term_months
        ):
            return validation_error(
                "term_months",
                f"must be between {limits.min_term_months} and {limits.max_term_months} months",
                min=limits.min_term_months,
                max=limits.max_term_months,
            )
        if purpose is not None and len(purpose) > limits.max_purpose_length:
            return validation_error(
                "purpose",
                f"must not exceed {limits.max_purpose_length} characters",
                max_length=limits.max_purpose_length,
            )
        return None

    async def create_application(
        self,
        subject_id: str,
        requested_amount: Decimal | int | str,
        term_months: int | None = None,
        purpose: str | None = None,
    ) -> Result[Application]:
        amount = _parse_amount(requested_amount)
        error = self._validate(subject_id, amount, term_months, purpose)
        if error is not None:
            return Result.failure(error)

        if not await self._subjects.exists(subject_id):
            logger.warning("Subject not found for ID: %s", subject_id)
            return Result.failure(not_found("Subject", subject_id))

        async with self._session_factory() as db:
            existing = await find_pending_application(db, subject_id)
            if existing is not None:
                logger.warning(
                    "Pending application %s already exists for subject %s",
                    existing.id,
                    subject_id,
                )
                return Result.failure(_duplicate_active(existing))

            now = self._clock()
            application = Application(
                id=uuid4(),
                subject_id=subject_id,
                status=ApplicationStatus.PENDING.value,
                requested_amount=amount,
                term_months=term_months,
                purpose=purpose,
                created_at=now,
                updated_at=now,
            )

            async def _recover() -> LifecycleError | None:
                winner = await find_pending_application(db, subject_id)
                if winner is None:
                    return None
                logger.info(
                    "Concurrent request created pending application %s for subject %s",
                    winner.id,
                    subject_id,
                )
                return _duplicate_active(winner)

            error = await insert_guarded(db, application, guard=PENDING_GUARD, recover=_recover)
            if error is not None:
                return Result.failure(error)
            await db.commit()

        logger.info(
            "Application %s created for subject %s amount=%s",
            application.id,
            subject_id,
            amount,
        )
        return Result.success(application)

    async def get_application(self, application_id: UUID | str) -> Result[Application]:
        application_uuid = coerce_uuid(application_id)
        if application_uuid is None:
            return Result.failure(not_found("Application", application_id))
        async with self._session_factory() as db:
            application = await get_application(db, application_uuid)
        if application is None:
            logger.warning("Application not found with ID: %s", application_id)
            return Result.failure(not_found("Application", application_id))
        return Result.success(application)

    async def get_application_status(self, application_id: UUID | str) -> Result[Application]:
        result = await self.get_application(application_id)
        if result.ok:
            logger.info("Application %s status is %s", application_id, result.value.status)
        return result

    async def has_pending_application(self, subject_id: str) -> bool:
        async with self._session_factory() as db:
            return await find_pending_application(db, subject_id) is not None
