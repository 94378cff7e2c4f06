from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.services.results import LifecycleError, constraint_violation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UniqueGuard:
    """A storage uniqueness rule whose violations map to a domain error."""

    name: str
    table: str
    columns: Sequence[str]

    def matches(self, exc: IntegrityError) -> bool:
        constraint = _constraint_name(exc)
        if constraint:
            return constraint == self.name
        message = str(exc.orig if exc.orig is not None else exc)
        if self.name in message:
            return True
        # SQLite reports columns rather than the index name
        columns = ", ".join(f"{self.table}.{column}" for column in self.columns)
        return f"UNIQUE constraint failed: {columns}" in message


def _constraint_name(exc: IntegrityError) -> str | None:
    orig: Any = exc.orig
    for candidate in (orig, getattr(orig, "__cause__", None)):
        name = getattr(candidate, "constraint_name", None) or getattr(
            getattr(candidate, "diag", None), "constraint_name", None
        )
        if name:
            return name
    return None


async def insert_guarded(
    db: AsyncSession,
    entity: Any,
    *,
    guard: UniqueGuard,
    recover: Callable[[], Awaitable[LifecycleError | None]],
) -> LifecycleError | None:
    """Insert ``entity``; translate a ``guard`` violation into a domain error.

    The application-level duplicate check that precedes this call only improves
    error quality. The storage rule is authoritative: when a concurrent writer
    slips in between check and insert, the transaction is rolled back and
    ``recover`` re-reads the winning row to build the same error the fast path
    would have returned. Integrity failures unrelated to ``guard`` propagate.
    """
    db.add(entity)
    try:
        await db.flush()
    except IntegrityError as exc:
        await db.rollback()
        if not guard.matches(exc):
            logger.error("Unrecognized integrity failure while inserting into %s", guard.table)
            raise
        logger.warning("Uniqueness guard %s rejected a concurrent insert", guard.name)
        error = await recover()
        if error is None:
            logger.error("Guard %s fired but no conflicting row was found", guard.name)
            return constraint_violation(guard.name)
        return error
    return None
