from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    String,
    UniqueConstraint,
    Uuid,
)

from app.db.base import Base

OUTCOME_PER_APPLICATION_GUARD = "uq_decisions_application_outcome"


class Decision(Base):
    """Immutable audit record of who decided an application, how, and why."""

    __tablename__ = "decisions"
    __table_args__ = (
        UniqueConstraint("application_id", "outcome", name=OUTCOME_PER_APPLICATION_GUARD),
        CheckConstraint("outcome IN ('APPROVED', 'REJECTED')", name="outcome"),
    )

    id = Column(Uuid, primary_key=True)
    application_id = Column(
        Uuid,
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    outcome = Column(String(20), nullable=False)
    staff_id = Column(String(100), nullable=False, index=True)
    reason = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
