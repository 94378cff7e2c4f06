"""Typed outcomes for lifecycle operations.

Services return a :class:`Result` instead of raising for expected failures.
The set of failure kinds is closed; callers branch on ``error.kind``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    DUPLICATE_ACTIVE = "duplicate_active"
    INVALID_STATE = "invalid_state"
    DUPLICATE_DECISION = "duplicate_decision"
    VALIDATION = "validation_error"
    CONSTRAINT_VIOLATION = "constraint_violation"


@dataclass(frozen=True)
class LifecycleError:
    kind: ErrorKind
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def code(self) -> str:
        return self.kind.value

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class Result(Generic[T]):
    value: T | None = None
    error: LifecycleError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> Result[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, error: LifecycleError) -> Result[T]:
        return cls(error=error)


def not_found(resource: str, resource_id: Any) -> LifecycleError:
    return LifecycleError(
        kind=ErrorKind.NOT_FOUND,
        message=f"{resource} with ID '{resource_id}' not found",
        details={"resource": resource, "id": str(resource_id)},
    )


def validation_error(field_name: str, message: str, **details: Any) -> LifecycleError:
    return LifecycleError(
        kind=ErrorKind.VALIDATION,
        message=f"{field_name}: {message}",
        details={"field": field_name, **details},
    )


def duplicate_active(subject_id: str, existing_id: Any, created_at: datetime) -> LifecycleError:
    return LifecycleError(
        kind=ErrorKind.DUPLICATE_ACTIVE,
        message=(
            f"Subject '{subject_id}' already has a pending application "
            f"(ID: {existing_id}, created: {created_at.isoformat()})"
        ),
        details={
            "subject_id": subject_id,
            "existing_application_id": str(existing_id),
            "existing_created_at": created_at.isoformat(),
        },
    )


def invalid_state(application_id: Any, current_status: str) -> LifecycleError:
    return LifecycleError(
        kind=ErrorKind.INVALID_STATE,
        message=(
            f"Application '{application_id}' is not pending. Current status: {current_status}"
        ),
        details={"application_id": str(application_id), "status": current_status},
    )


def duplicate_decision(
    application_id: Any, outcome: str, decision_id: Any, created_at: datetime
) -> LifecycleError:
    return LifecycleError(
        kind=ErrorKind.DUPLICATE_DECISION,
        message=(
            f"Application '{application_id}' already has a {outcome.lower()} decision "
            f"(ID: {decision_id}, created: {created_at.isoformat()})"
        ),
        details={
            "application_id": str(application_id),
            "outcome": outcome,
            "existing_decision_id": str(decision_id),
            "existing_created_at": created_at.isoformat(),
        },
    )


def constraint_violation(guard: str) -> LifecycleError:
    return LifecycleError(
        kind=ErrorKind.CONSTRAINT_VIOLATION,
        message="The request conflicts with a storage integrity rule",
        details={"constraint": guard},
    )
