from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

# Amounts travel as JSON numbers; Decimal stays exact inside the service.
Amount = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class ApplicationStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class DecisionOutcome(str, Enum):
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    @property
    def resulting_status(self) -> ApplicationStatus:
        return ApplicationStatus(self.value)


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )


class ApplicationCreate(_CamelModel):
    subject_id: str = Field(min_length=1, max_length=64)
    requested_amount: Decimal = Field(gt=0, max_digits=17, decimal_places=2)
    term_months: int | None = Field(default=None, ge=1)
    purpose: str | None = Field(default=None, max_length=255)


class ApplicationDTO(_CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        from_attributes=True,
    )

    id: UUID
    subject_id: str
    status: ApplicationStatus
    requested_amount: Amount
    term_months: int | None = None
    purpose: str | None = None
    created_at: datetime
    updated_at: datetime


class DecisionCreate(_CamelModel):
    outcome: DecisionOutcome
    reason: str | None = Field(default=None, max_length=500)


class DecisionDTO(_CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        from_attributes=True,
    )

    id: UUID
    application_id: UUID
    outcome: DecisionOutcome
    staff_id: str
    reason: str | None = None
    created_at: datetime
