"""Tracker models for time tracking against billable projects."""

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import relationship

from app.core.db.session import Base
from app.models.user import User

# Duration value persisted while a timer is running
RUNNING_DURATION = -1


class Customer(Base):
    """Customer billed for the work tracked on its projects."""

    __tablename__ = "customers"

    id = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)
    team_id = Column(
        PG_UUID(as_uuid=True),
        ForeignKey("teams.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(255), nullable=False)
    website = Column(String(500), nullable=True)
    created_at = Column(
        TIMESTAMP(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at = Column(
        TIMESTAMP(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    # Relationships
    projects = relationship("TrackerProject", back_populates="customer")

    def __repr__(self) -> str:
        return f"<Customer(id={self.id}, name={self.name}, team_id={self.team_id})>"


class TrackerProject(Base):
    """Project that tracker entries are booked against, with an hourly rate."""

    __tablename__ = "tracker_projects"

    id = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)
    team_id = Column(
        PG_UUID(as_uuid=True),
        ForeignKey("teams.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    customer_id = Column(
        PG_UUID(as_uuid=True),
        ForeignKey("customers.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    name = Column(String(255), nullable=False)
    rate = Column(Numeric(12, 2), nullable=True)  # Per hour
    currency = Column(String(3), nullable=True)
    created_at = Column(
        TIMESTAMP(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at = Column(
        TIMESTAMP(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    # Relationships
    customer = relationship("Customer", back_populates="projects")
    entries = relationship("TrackerEntry", back_populates="project")

    def __repr__(self) -> str:
        return f"<TrackerProject(id={self.id}, name={self.name}, team_id={self.team_id})>"


class TrackerEntry(Base):
    """One span of tracked work.

    ``duration`` holds whole seconds once the entry is stopped or paused and
    ``RUNNING_DURATION`` while its timer is running, in which case ``stop``
    is NULL.
    """

    __tablename__ = "tracker_entries"

    id = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)
    team_id = Column(
        PG_UUID(as_uuid=True),
        ForeignKey("teams.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    assigned_id = Column(
        PG_UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    project_id = Column(
        PG_UUID(as_uuid=True),
        ForeignKey("tracker_projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Time tracking
    date = Column(Date, nullable=False)
    start = Column(TIMESTAMP(timezone=True), nullable=False)
    stop = Column(TIMESTAMP(timezone=True), nullable=True)
    duration = Column(Integer, nullable=False, default=RUNNING_DURATION)

    description = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(
        TIMESTAMP(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at = Column(
        TIMESTAMP(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    # Relationships
    user = relationship(User)
    project = relationship("TrackerProject", back_populates="entries")

    __table_args__ = (
        CheckConstraint(
            "(stop IS NULL AND duration = -1) OR (stop IS NOT NULL AND duration >= 0)",
            name="ck_tracker_entries_running_sentinel",
        ),
        Index("idx_tracker_entries_team_date", "team_id", "date"),
        Index("idx_tracker_entries_team_assignee", "team_id", "assigned_id", "duration"),
        Index(
            "uq_tracker_entries_one_running",
            "team_id",
            "assigned_id",
            unique=True,
            postgresql_where=text("duration = -1"),
            sqlite_where=text("duration = -1"),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<TrackerEntry(id={self.id}, team_id={self.team_id}, "
            f"date={self.date}, duration={self.duration})>"
        )
