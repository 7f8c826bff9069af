"""Tracker repositories for data access operations.

Every query starts from ``_scoped`` so the team predicate is always the first
filter applied. Repositories flush but never commit: the service owns the
transaction boundary.
"""

from datetime import date, datetime
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Query, Session, joinedload

from app.models.user import User
from app.modules.tracker.models.tracker import (
    RUNNING_DURATION,
    TrackerEntry,
    TrackerProject,
)


class TrackerEntryRepository:
    """Repository for tracker entry data access."""

    def __init__(self, db: Session):
        """Initialize repository with database session."""
        self.db = db

    def _scoped(self, team_id: UUID) -> Query:
        return self.db.query(TrackerEntry).filter(TrackerEntry.team_id == team_id)

    def _enriched(self, team_id: UUID) -> Query:
        """Scoped query loading assignee, project and customer in one round trip."""
        return (
            self._scoped(team_id)
            .options(
                joinedload(TrackerEntry.user),
                joinedload(TrackerEntry.project).joinedload(TrackerProject.customer),
            )
            .populate_existing()
        )

    @staticmethod
    def _filter_optional(
        query: Query, project_id: UUID | None, assigned_id: UUID | None
    ) -> Query:
        if project_id:
            query = query.filter(TrackerEntry.project_id == project_id)
        if assigned_id:
            query = query.filter(TrackerEntry.assigned_id == assigned_id)
        return query

    # Reads
    def list_by_date(
        self,
        team_id: UUID,
        on_date: date,
        project_id: UUID | None = None,
        assigned_id: UUID | None = None,
    ) -> list[TrackerEntry]:
        """Get enriched entries recorded on one date."""
        query = self._enriched(team_id).filter(TrackerEntry.date == on_date)
        query = self._filter_optional(query, project_id, assigned_id)
        return query.order_by(TrackerEntry.created_at).all()

    def list_by_range(
        self,
        team_id: UUID,
        from_date: date,
        to_date: date,
        project_id: UUID | None = None,
        assigned_id: UUID | None = None,
    ) -> list[TrackerEntry]:
        """Get enriched entries with date in [from_date, to_date], in creation order."""
        query = self._enriched(team_id).filter(
            TrackerEntry.date >= from_date,
            TrackerEntry.date <= to_date,
        )
        query = self._filter_optional(query, project_id, assigned_id)
        return query.order_by(TrackerEntry.created_at).all()

    def list_by_ids(self, team_id: UUID, entry_ids: list[UUID]) -> list[TrackerEntry]:
        """Get enriched entries for exactly the given identifiers."""
        if not entry_ids:
            return []
        return (
            self._enriched(team_id)
            .filter(TrackerEntry.id.in_(entry_ids))
            .order_by(TrackerEntry.created_at)
            .all()
        )

    def get_enriched(self, team_id: UUID, entry_id: UUID) -> TrackerEntry | None:
        """Get one enriched entry by ID within the team."""
        return self._enriched(team_id).filter(TrackerEntry.id == entry_id).first()

    def get_by_id(
        self, team_id: UUID, entry_id: UUID, for_update: bool = False
    ) -> TrackerEntry | None:
        """Get entry by ID within the team, optionally locking the row."""
        query = self._scoped(team_id).filter(TrackerEntry.id == entry_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    def find_running(
        self,
        team_id: UUID,
        entry_id: UUID | None = None,
        assigned_id: UUID | None = None,
        exact_assignee: bool = False,
        for_update: bool = False,
    ) -> list[TrackerEntry]:
        """Get running entries, most recently created first.

        With ``exact_assignee`` a missing ``assigned_id`` matches unassigned
        entries only, instead of every assignee of the team.
        """
        query = self._scoped(team_id).filter(TrackerEntry.duration == RUNNING_DURATION)
        if entry_id:
            query = query.filter(TrackerEntry.id == entry_id)
        if assigned_id:
            query = query.filter(TrackerEntry.assigned_id == assigned_id)
        elif exact_assignee:
            query = query.filter(TrackerEntry.assigned_id.is_(None))
        if for_update:
            query = query.with_for_update()
        return query.order_by(TrackerEntry.created_at.desc()).all()

    def latest_running(
        self, team_id: UUID, assigned_id: UUID | None = None
    ) -> TrackerEntry | None:
        """Get the most recently created running entry, enriched."""
        query = self._enriched(team_id).filter(TrackerEntry.duration == RUNNING_DURATION)
        query = self._filter_optional(query, None, assigned_id)
        return query.order_by(TrackerEntry.created_at.desc()).first()

    def list_finished(
        self, team_id: UUID, assigned_id: UUID | None = None, limit: int = 10
    ) -> list[TrackerEntry]:
        """Get stopped or paused entries, most recently created first."""
        query = self._enriched(team_id).filter(
            TrackerEntry.stop.isnot(None),
            TrackerEntry.duration >= 0,
        )
        query = self._filter_optional(query, None, assigned_id)
        return query.order_by(TrackerEntry.created_at.desc()).limit(limit).all()

    # Writes
    def add_all(self, rows: list[dict[str, Any]]) -> list[TrackerEntry]:
        """Insert one entry per row dict and flush so identifiers are assigned."""
        entries = [TrackerEntry(**row) for row in rows]
        self.db.add_all(entries)
        self.db.flush()
        return entries

    def set_timer_columns(
        self,
        team_id: UUID,
        entry_id: UUID,
        stop: datetime | None,
        duration: int,
        expect_running: bool,
    ) -> bool:
        """Write ``stop``/``duration`` only if the row is still in the expected state.

        Returns:
            True if the row was updated, False if it changed state meanwhile.
        """
        query = self._scoped(team_id).filter(TrackerEntry.id == entry_id)
        if expect_running:
            query = query.filter(TrackerEntry.duration == RUNNING_DURATION)
        else:
            query = query.filter(
                TrackerEntry.stop.isnot(None),
                TrackerEntry.duration >= 0,
            )
        updated = query.update(
            {TrackerEntry.stop: stop, TrackerEntry.duration: duration},
            synchronize_session="fetch",
        )
        return updated == 1

    def update(self, entry: TrackerEntry, entry_data: dict[str, Any]) -> TrackerEntry:
        """Overwrite entry fields (None values included) and flush."""
        for key, value in entry_data.items():
            setattr(entry, key, value)
        self.db.flush()
        return entry

    def delete(self, entry: TrackerEntry) -> None:
        """Delete an entry (hard delete)."""
        self.db.delete(entry)
        self.db.flush()


class TrackerProjectRepository:
    """Repository for tracker project lookups."""

    def __init__(self, db: Session):
        """Initialize repository with database session."""
        self.db = db

    def get_by_id(self, team_id: UUID, project_id: UUID) -> TrackerProject | None:
        """Get project by ID within the team."""
        return (
            self.db.query(TrackerProject)
            .filter(TrackerProject.team_id == team_id, TrackerProject.id == project_id)
            .first()
        )

    def missing_ids(self, team_id: UUID, project_ids: set[UUID]) -> set[UUID]:
        """Return the identifiers that do not name a project of the team."""
        if not project_ids:
            return set()
        found = (
            self.db.query(TrackerProject.id)
            .filter(
                TrackerProject.team_id == team_id,
                TrackerProject.id.in_(list(project_ids)),
            )
            .all()
        )
        return project_ids - {row.id for row in found}


class TrackerAssigneeRepository:
    """Repository for looking up assignees within a team."""

    def __init__(self, db: Session):
        """Initialize repository with database session."""
        self.db = db

    def missing_ids(self, team_id: UUID, user_ids: set[UUID]) -> set[UUID]:
        """Return the identifiers that do not name a user of the team."""
        if not user_ids:
            return set()
        found = (
            self.db.query(User.id)
            .filter(User.team_id == team_id, User.id.in_(list(user_ids)))
            .all()
        )
        return user_ids - {row.id for row in found}
