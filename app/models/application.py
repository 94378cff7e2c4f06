from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Uuid,
    text,
)

from app.db.base import Base

PENDING_PER_SUBJECT_GUARD = "uq_applications_subject_pending"


class Application(Base):
    __tablename__ = "applications"
    __table_args__ = (
        CheckConstraint("requested_amount > 0", name="requested_amount_positive"),
        CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'REJECTED')",
            name="status",
        ),
        CheckConstraint("version >= 1", name="version_positive"),
        # At most one PENDING application per subject.
        Index(
            PENDING_PER_SUBJECT_GUARD,
            "subject_id",
            unique=True,
            postgresql_where=text("status = 'PENDING'"),
            sqlite_where=text("status = 'PENDING'"),
        ),
        Index("ix_applications_subject_status", "subject_id", "status"),
    )

    id = Column(Uuid, primary_key=True)
    subject_id = Column(String(64), nullable=False, index=True)
    status = Column(String(20), nullable=False, index=True)
    requested_amount = Column(Numeric(17, 2), nullable=False)
    term_months = Column(Integer, nullable=True)
    purpose = Column(String(255), nullable=True)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    __mapper_args__ = {"version_id_col": version}
