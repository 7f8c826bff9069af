"""Tracker entry service: timer lifecycle and time aggregation."""

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.config_file import get_settings
from app.core.logging import get_logger
from app.modules.tracker.domain.timer_state import Running, TimerState, ensure_utc, state_of
from app.modules.tracker.exceptions import (
    InvalidTimerStateError,
    NoRunningTimerError,
    TrackerAssigneeNotFoundError,
    TrackerEntryNotFoundError,
    TrackerError,
    TrackerProjectNotFoundError,
    TrackerStorageError,
    TrackerValidationError,
)
from app.modules.tracker.models.tracker import TrackerEntry
from app.modules.tracker.repositories.tracker_entry_repository import (
    TrackerAssigneeRepository,
    TrackerEntryRepository,
    TrackerProjectRepository,
)
from app.modules.tracker.schemas.tracker_entry import (
    TimerStatusResponse,
    TrackerEntriesByDateMeta,
    TrackerEntriesByDateResponse,
    TrackerEntriesByRangeMeta,
    TrackerEntriesByRangeResponse,
    TrackerEntryCreate,
    TrackerEntryRecord,
    TrackerEntryResponse,
    TrackerEntryUpsert,
)

logger = get_logger(__name__)

SECONDS_PER_HOUR = 3600


class TrackerEntryService:
    """Service for tracker entries and the timer state machine.

    Every public method is one unit of work: mutations run inside a single
    transaction that is committed at the end or rolled back entirely, then the
    affected rows are re-read with their user, project and customer.
    """

    def __init__(
        self,
        db: Session,
        now: Callable[[], datetime] | None = None,
        paused_entries_limit: int | None = None,
    ) -> None:
        """Initialize service with database session.

        Args:
            db: Database session
            now: Clock returning the current aware datetime (defaults to UTC now)
            paused_entries_limit: Size of the paused entries window
        """
        self.db = db
        self.entry_repo = TrackerEntryRepository(db)
        self.project_repo = TrackerProjectRepository(db)
        self.assignee_repo = TrackerAssigneeRepository(db)
        self._now = now or (lambda: datetime.now(UTC))
        self.paused_entries_limit = (
            paused_entries_limit or get_settings().TRACKER_PAUSED_ENTRIES_LIMIT
        )

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        try:
            yield
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    @staticmethod
    @contextmanager
    def _entry_context(team_id: UUID, entry_id: UUID) -> Iterator[None]:
        try:
            yield
        except TrackerError as exc:
            exc.with_context(team_id=team_id, entry_id=entry_id)
            raise

    def _state(self, team_id: UUID, entry: TrackerEntry) -> TimerState:
        with self._entry_context(team_id, entry.id):
            return state_of(entry.start, entry.stop, entry.duration)

    def _require_project(self, team_id: UUID, project_id: UUID) -> None:
        if self.project_repo.get_by_id(team_id, project_id) is None:
            raise TrackerProjectNotFoundError(team_id, project_id)

    def _require_assignees(self, team_id: UUID, assigned_ids: set[UUID | None]) -> None:
        missing = self.assignee_repo.missing_ids(
            team_id, {assigned_id for assigned_id in assigned_ids if assigned_id is not None}
        )
        if missing:
            raise TrackerAssigneeNotFoundError(team_id, sorted(missing, key=str)[0])

    def _load(self, team_id: UUID, entry_id: UUID) -> TrackerEntryResponse:
        entry = self.entry_repo.get_enriched(team_id, entry_id)
        if entry is None:
            raise TrackerStorageError(
                "Tracker entry vanished after write",
                {"team_id": team_id, "entry_id": entry_id},
            )
        return TrackerEntryResponse.model_validate(entry)

    def _load_many(self, team_id: UUID, entry_ids: list[UUID]) -> list[TrackerEntryResponse]:
        return [
            TrackerEntryResponse.model_validate(entry)
            for entry in self.entry_repo.list_by_ids(team_id, entry_ids)
        ]

    @staticmethod
    def _tracked_seconds(entry: TrackerEntry) -> int:
        # A running entry has not accumulated a duration yet
        if entry.duration is None or entry.duration < 0:
            return 0
        return entry.duration

    # Reads
    def get_by_date(
        self,
        team_id: UUID,
        on_date: date,
        project_id: UUID | None = None,
        user_id: UUID | None = None,
    ) -> TrackerEntriesByDateResponse:
        """Get entries recorded on one date with their total duration."""
        entries = self.entry_repo.list_by_date(team_id, on_date, project_id, user_id)
        return TrackerEntriesByDateResponse(
            meta=TrackerEntriesByDateMeta(
                total_duration=sum(self._tracked_seconds(entry) for entry in entries)
            ),
            data=[TrackerEntryResponse.model_validate(entry) for entry in entries],
        )

    def get_by_range(
        self,
        team_id: UUID,
        from_date: date,
        to_date: date,
        project_id: UUID | None = None,
        user_id: UUID | None = None,
    ) -> TrackerEntriesByRangeResponse:
        """Get entries of [from_date, to_date] grouped by date, with totals.

        ``total_amount`` is the sum of ``rate * duration / 3600`` over every
        entry, with a missing project or rate counting as 0.
        Running entries are listed but excluded from both totals.

        Raises:
            TrackerValidationError: If from_date is after to_date.
        """
        if from_date > to_date:
            raise TrackerValidationError(
                "Range start must not be after range end",
                {"team_id": team_id, "from": from_date, "to": to_date},
            )

        entries = self.entry_repo.list_by_range(
            team_id, from_date, to_date, project_id, user_id
        )

        result: dict[str, list[TrackerEntryResponse]] = {}
        total_duration = 0
        total_amount = Decimal(0)
        for entry in entries:
            result.setdefault(entry.date.isoformat(), []).append(
                TrackerEntryResponse.model_validate(entry)
            )
            seconds = self._tracked_seconds(entry)
            total_duration += seconds
            rate = entry.project.rate if entry.project is not None else None
            total_amount += Decimal(rate or 0) * seconds / SECONDS_PER_HOUR

        return TrackerEntriesByRangeResponse(
            meta=TrackerEntriesByRangeMeta(
                total_duration=total_duration,
                total_amount=float(total_amount),
                from_date=from_date,
                to_date=to_date,
            ),
            result=result,
        )

    # Mutations
    def upsert(self, team_id: UUID, entry_data: TrackerEntryUpsert) -> list[TrackerEntryResponse]:
        """Create one entry per date, or update the entry named by ``id``.

        Without ``id`` at least one date is required. With ``id`` at most one
        date may be given; it replaces the entry's date.

        Returns:
            The written entries, enriched.

        Raises:
            TrackerValidationError: If the dates do not fit the chosen path.
            TrackerEntryNotFoundError: If ``id`` is not an entry of the team.
            TrackerProjectNotFoundError: If the project is not in the team.
            TrackerAssigneeNotFoundError: If the assignee is not a user of the team.
        """
        values: dict[str, Any] = {
            "start": entry_data.start,
            "stop": entry_data.stop,
            "assigned_id": entry_data.assigned_id,
            "project_id": entry_data.project_id,
            "description": entry_data.description,
            "duration": entry_data.duration,
        }

        with self._transaction():
            if entry_data.id is None:
                if not entry_data.dates:
                    raise TrackerValidationError(
                        "At least one date is required to create tracker entries",
                        {"team_id": team_id, "transition": "create"},
                    )
                self._require_project(team_id, entry_data.project_id)
                self._require_assignees(team_id, {entry_data.assigned_id})
                entries = self.entry_repo.add_all(
                    [{**values, "team_id": team_id, "date": day} for day in entry_data.dates]
                )
            else:
                if len(entry_data.dates) > 1:
                    raise TrackerValidationError(
                        "Updating an entry accepts at most one date",
                        {
                            "team_id": team_id,
                            "entry_id": entry_data.id,
                            "transition": "update",
                        },
                    )
                entry = self.entry_repo.get_by_id(team_id, entry_data.id, for_update=True)
                if entry is None:
                    raise TrackerEntryNotFoundError(team_id, entry_data.id, "update")
                self._require_project(team_id, entry_data.project_id)
                self._require_assignees(team_id, {entry_data.assigned_id})
                if entry_data.dates:
                    values["date"] = entry_data.dates[0]
                entries = [self.entry_repo.update(entry, values)]
            entry_ids = [entry.id for entry in entries]

        logger.info(f"Tracker entries written: team_id={team_id}, ids={entry_ids}")
        return self._load_many(team_id, entry_ids)

    def bulk_create(
        self, team_id: UUID, entries: list[TrackerEntryCreate]
    ) -> list[TrackerEntryResponse]:
        """Create every entry on every one of its dates in a single transaction.

        Returns:
            Exactly the inserted entries, enriched; an empty list when the
            expansion produced no rows (nothing is written then).
        """
        rows = [
            {
                "team_id": team_id,
                "date": day,
                "start": entry.start,
                "stop": entry.stop,
                "assigned_id": entry.assigned_id,
                "project_id": entry.project_id,
                "description": entry.description,
                "duration": entry.duration,
            }
            for entry in entries
            for day in entry.dates
        ]
        if not rows:
            return []

        with self._transaction():
            missing = self.project_repo.missing_ids(team_id, {row["project_id"] for row in rows})
            if missing:
                raise TrackerProjectNotFoundError(team_id, sorted(missing, key=str)[0])
            self._require_assignees(team_id, {row["assigned_id"] for row in rows})
            entry_ids = [entry.id for entry in self.entry_repo.add_all(rows)]

        logger.info(f"Tracker entries bulk created: team_id={team_id}, count={len(entry_ids)}")
        return self._load_many(team_id, entry_ids)

    def delete(self, team_id: UUID, entry_id: UUID) -> TrackerEntryRecord:
        """Delete an entry of the team and return it.

        Raises:
            TrackerEntryNotFoundError: If no entry matched, including a repeated delete.
        """
        with self._transaction():
            entry = self.entry_repo.get_by_id(team_id, entry_id, for_update=True)
            if entry is None:
                raise TrackerEntryNotFoundError(team_id, entry_id, "delete")
            deleted = TrackerEntryRecord.model_validate(entry)
            self.entry_repo.delete(entry)

        logger.info(f"Tracker entry deleted: team_id={team_id}, id={entry_id}")
        return deleted

    # Timer transitions
    def _stop_running(
        self,
        team_id: UUID,
        assigned_id: UUID | None,
        at: datetime,
        exclude_id: UUID | None = None,
    ) -> None:
        """Stop every running timer of the assignee so a new one can run."""
        running = [
            entry
            for entry in self.entry_repo.find_running(
                team_id, assigned_id=assigned_id, exact_assignee=True, for_update=True
            )
            if entry.id != exclude_id
        ]
        if len(running) > 1:
            logger.error(
                f"Found {len(running)} running timers: team_id={team_id}, assigned_id={assigned_id}"
            )

        for entry in running:
            # A timer started in the future is closed with a zero duration
            stop_at = max(ensure_utc(at), ensure_utc(entry.start))
            with self._entry_context(team_id, entry.id):
                stop, duration = self._state(team_id, entry).finish(stop_at).to_columns()
            if not self.entry_repo.set_timer_columns(
                team_id, entry.id, stop, duration, expect_running=True
            ):
                raise InvalidTimerStateError(
                    "Running timer changed while being stopped", transition="start", state="running"
                ).with_context(team_id=team_id, entry_id=entry.id)
            logger.warning(
                f"Force-stopped running timer {entry.id} after {duration}s: team_id={team_id}"
            )

    def start_timer(
        self,
        team_id: UUID,
        project_id: UUID,
        assigned_id: UUID | None = None,
        description: str | None = None,
        start: datetime | None = None,
        continue_from_entry: UUID | None = None,
    ) -> TrackerEntryResponse:
        """Start a fresh timer, or resume a paused entry.

        Any other running timer of the same assignee is stopped first in the
        same transaction, so at most one timer runs per assignee.

        Raises:
            TrackerEntryNotFoundError: If the entry to resume is not in the team.
            InvalidTimerStateError: If the entry to resume is already running.
            TrackerProjectNotFoundError: If the project is not in the team.
            TrackerAssigneeNotFoundError: If the assignee is not a user of the team.
            TrackerStorageError: If the new entry was not stored.
        """
        if continue_from_entry is not None:
            return self._resume_timer(team_id, continue_from_entry, assigned_id)

        now = self._now()
        started_at = start or now
        stop, duration = Running(started_at).to_columns()
        with self._transaction():
            self._require_project(team_id, project_id)
            self._require_assignees(team_id, {assigned_id})
            self._stop_running(team_id, assigned_id, at=now)
            entries = self.entry_repo.add_all(
                [
                    {
                        "team_id": team_id,
                        "project_id": project_id,
                        "assigned_id": assigned_id,
                        "description": description,
                        "start": started_at,
                        "stop": stop,
                        "duration": duration,
                        "date": started_at.date(),
                    }
                ]
            )
            if not entries or entries[0].id is None:
                raise TrackerStorageError(
                    "Failed to create timer entry",
                    {"team_id": team_id, "project_id": project_id, "transition": "start"},
                )
            entry_id = entries[0].id

        logger.info(f"Timer started: {entry_id} for project {project_id}, team_id={team_id}")
        return self._load(team_id, entry_id)

    def _resume_timer(
        self, team_id: UUID, entry_id: UUID, assigned_id: UUID | None
    ) -> TrackerEntryResponse:
        with self._transaction():
            entry = self.entry_repo.get_by_id(team_id, entry_id, for_update=True)
            if entry is None or (assigned_id and entry.assigned_id != assigned_id):
                raise TrackerEntryNotFoundError(team_id, entry_id, "resume")

            with self._entry_context(team_id, entry.id):
                stop, duration = self._state(team_id, entry).resume().to_columns()

            self._stop_running(team_id, entry.assigned_id, at=self._now(), exclude_id=entry.id)
            if not self.entry_repo.set_timer_columns(
                team_id, entry.id, stop, duration, expect_running=False
            ):
                raise InvalidTimerStateError(
                    "Cannot resume: entry is not paused", transition="resume", state="running"
                ).with_context(team_id=team_id, entry_id=entry.id)

        logger.info(f"Timer resumed: {entry_id}, team_id={team_id}")
        return self._load(team_id, entry_id)

    def _finish_timer(
        self,
        transition: str,
        team_id: UUID,
        entry_id: UUID | None,
        assigned_id: UUID | None,
        at: datetime | None,
    ) -> TrackerEntryResponse:
        at = at or self._now()
        with self._transaction():
            running = self.entry_repo.find_running(
                team_id, entry_id=entry_id, assigned_id=assigned_id, for_update=True
            )
            if not running:
                raise NoRunningTimerError(team_id, transition, entry_id, assigned_id)
            entry = running[0]

            with self._entry_context(team_id, entry.id):
                state = self._state(team_id, entry)
                finished = state.pause(at) if transition == "pause" else state.finish(at)
            stop, duration = finished.to_columns()

            if not self.entry_repo.set_timer_columns(
                team_id, entry.id, stop, duration, expect_running=True
            ):
                raise NoRunningTimerError(team_id, transition, entry.id, assigned_id)

        logger.info(f"Timer {finished.name}: {entry.id}, duration: {duration}s, team_id={team_id}")
        return self._load(team_id, entry.id)

    def stop_timer(
        self,
        team_id: UUID,
        entry_id: UUID | None = None,
        assigned_id: UUID | None = None,
        stop: datetime | None = None,
    ) -> TrackerEntryResponse:
        """Stop the running timer matching the optional entry and assignee.

        Raises:
            NoRunningTimerError: If no running entry matched.
            TrackerValidationError: If ``stop`` is before the timer start.
        """
        return self._finish_timer("stop", team_id, entry_id, assigned_id, stop)

    def pause_timer(
        self,
        team_id: UUID,
        entry_id: UUID | None = None,
        assigned_id: UUID | None = None,
        pause: datetime | None = None,
    ) -> TrackerEntryResponse:
        """Pause the running timer; the entry can later be resumed by ``start_timer``."""
        return self._finish_timer("pause", team_id, entry_id, assigned_id, pause)

    # Derived reads
    def current_timer(
        self, team_id: UUID, assigned_id: UUID | None = None
    ) -> TrackerEntryResponse | None:
        """Get the most recently created running entry, or None."""
        entry = self.entry_repo.latest_running(team_id, assigned_id)
        if entry is None:
            return None
        return TrackerEntryResponse.model_validate(entry)

    def timer_status(self, team_id: UUID, assigned_id: UUID | None = None) -> TimerStatusResponse:
        """Report whether a timer runs and the whole seconds elapsed since its start."""
        entry = self.entry_repo.latest_running(team_id, assigned_id)
        if entry is None:
            return TimerStatusResponse(is_running=False, current_entry=None, elapsed_seconds=0)
        return TimerStatusResponse(
            is_running=True,
            current_entry=TrackerEntryResponse.model_validate(entry),
            elapsed_seconds=self._state(team_id, entry).elapsed(self._now()),
        )

    def paused_entries(
        self, team_id: UUID, assigned_id: UUID | None = None
    ) -> list[TrackerEntryResponse]:
        """Get the most recent resumable entries, capped to the display window."""
        return [
            TrackerEntryResponse.model_validate(entry)
            for entry in self.entry_repo.list_finished(
                team_id, assigned_id, limit=self.paused_entries_limit
            )
        ]
