from types import SimpleNamespace

from sqlalchemy.exc import IntegrityError

from app.services.applications import PENDING_GUARD
from app.services.decisions import OUTCOME_GUARD


def _integrity_error(orig) -> IntegrityError:
    return IntegrityError("INSERT ...", {}, orig)


class _DriverError(Exception):
    pass


def test_sqlite_message_matches_by_columns() -> None:
    exc = _integrity_error(
        _DriverError("UNIQUE constraint failed: decisions.application_id, decisions.outcome")
    )

    assert OUTCOME_GUARD.matches(exc)
    assert not PENDING_GUARD.matches(exc)


def test_sqlite_partial_index_message_matches() -> None:
    exc = _integrity_error(_DriverError("UNIQUE constraint failed: applications.subject_id"))

    assert PENDING_GUARD.matches(exc)
    assert not OUTCOME_GUARD.matches(exc)


def test_postgres_message_matches_by_name() -> None:
    exc = _integrity_error(
        _DriverError(
            'duplicate key value violates unique constraint "uq_applications_subject_pending"'
        )
    )

    assert PENDING_GUARD.matches(exc)


class _UniqueViolation(Exception):
    """Driver exception that names the violated constraint, as asyncpg's does."""

    def __init__(self, message: str, constraint_name: str) -> None:
        super().__init__(message)
        self.constraint_name = constraint_name


def test_driver_constraint_name_takes_precedence() -> None:
    # The adapter error wraps the driver error; the message alone would
    # point at the other guard.
    orig = _DriverError("duplicate key (uq_applications_subject_pending)")
    orig.__cause__ = _UniqueViolation("duplicate key", "uq_decisions_application_outcome")
    exc = _integrity_error(orig)

    assert OUTCOME_GUARD.matches(exc)
    assert not PENDING_GUARD.matches(exc)


def test_diag_constraint_name_is_read() -> None:
    orig = _DriverError("duplicate key")
    orig.diag = SimpleNamespace(constraint_name="uq_applications_subject_pending")

    assert PENDING_GUARD.matches(_integrity_error(orig))


def test_unrelated_failures_do_not_match() -> None:
    exc = _integrity_error(_DriverError("NOT NULL constraint failed: applications.status"))

    assert not PENDING_GUARD.matches(exc)
    assert not OUTCOME_GUARD.matches(exc)
