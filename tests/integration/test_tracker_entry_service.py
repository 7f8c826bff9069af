"""Integration tests for TrackerEntryService against a real database session."""

import logging
from datetime import date, timedelta
from uuid import uuid4

import pytest

from app.modules.tracker.domain.timer_state import ensure_utc
from app.modules.tracker.exceptions import (
    InvalidTimerStateError,
    NoRunningTimerError,
    TrackerAssigneeNotFoundError,
    TrackerEntryNotFoundError,
    TrackerProjectNotFoundError,
    TrackerValidationError,
)
from app.modules.tracker.models import RUNNING_DURATION, TrackerEntry
from app.modules.tracker.schemas import TrackerEntryUpsert
from app.modules.tracker.services import TrackerEntryService
from tests.helpers import JAN_1, JAN_2, NOW, finished_entry


def _running_rows(db_session, team_id, assigned_id):
    return (
        db_session.query(TrackerEntry)
        .filter(
            TrackerEntry.team_id == team_id,
            TrackerEntry.assigned_id == assigned_id,
            TrackerEntry.duration == RUNNING_DURATION,
        )
        .all()
    )


class TestTimerTransitions:
    """Start, stop, pause and resume of timers."""

    def test_start_creates_running_entry(self, service, test_team, test_user, test_project):
        """Test a fresh start stores the running sentinel and reports status."""
        # Act
        entry = service.start_timer(test_team.id, test_project.id, assigned_id=test_user.id)
        status = service.timer_status(test_team.id, test_user.id)

        # Assert
        assert entry.duration == RUNNING_DURATION
        assert entry.stop is None
        assert entry.is_running is True
        assert entry.date == NOW.date()
        assert entry.project.customer.name == "Acme"
        assert entry.user.full_name == "Test User"
        assert status.is_running is True
        assert status.current_entry.id == entry.id
        assert status.elapsed_seconds == 0

    def test_start_again_stops_previous(
        self, service, clock, db_session, test_team, test_user, test_project
    ):
        """Test starting twice leaves exactly one running timer for the assignee."""
        # Arrange
        first = service.start_timer(test_team.id, test_project.id, assigned_id=test_user.id)
        clock.now = NOW + timedelta(seconds=90)

        # Act
        second = service.start_timer(test_team.id, test_project.id, assigned_id=test_user.id)

        # Assert
        running = _running_rows(db_session, test_team.id, test_user.id)
        assert [row.id for row in running] == [second.id]
        previous = db_session.get(TrackerEntry, first.id)
        assert previous.duration == 90
        assert ensure_utc(previous.stop) == NOW + timedelta(seconds=90)

    def test_start_for_other_assignee_keeps_timer(
        self, service, db_session, test_team, test_user, second_user, test_project
    ):
        """Test timers of different assignees run side by side."""
        # Act
        service.start_timer(test_team.id, test_project.id, assigned_id=test_user.id)
        service.start_timer(test_team.id, test_project.id, assigned_id=second_user.id)

        # Assert
        assert len(_running_rows(db_session, test_team.id, test_user.id)) == 1
        assert len(_running_rows(db_session, test_team.id, second_user.id)) == 1

    def test_force_stop_of_future_timer_uses_zero_duration(
        self, service, db_session, test_team, test_user, test_project
    ):
        """Test a timer started in the future is closed without a negative duration."""
        # Arrange
        future = service.start_timer(
            test_team.id,
            test_project.id,
            assigned_id=test_user.id,
            start=NOW + timedelta(hours=1),
        )

        # Act
        service.start_timer(test_team.id, test_project.id, assigned_id=test_user.id)

        # Assert
        stopped = db_session.get(TrackerEntry, future.id)
        assert stopped.duration == 0
        assert ensure_utc(stopped.stop) == NOW + timedelta(hours=1)

    def test_force_stop_logs_warning(
        self, service, clock, caplog, test_team, test_user, test_project
    ):
        """Test stopping a forgotten timer is logged as a warning."""
        service.start_timer(test_team.id, test_project.id, assigned_id=test_user.id)
        clock.now = NOW + timedelta(minutes=1)

        with caplog.at_level(logging.WARNING, logger="app"):
            service.start_timer(test_team.id, test_project.id, assigned_id=test_user.id)

        assert any("Force-stopped running timer" in record.message for record in caplog.records)

    def test_stop_derives_duration(self, service, test_team, test_user, test_project):
        """Test stop writes the floor of the elapsed seconds."""
        # Arrange
        service.start_timer(test_team.id, test_project.id, assigned_id=test_user.id)
        stop_at = NOW + timedelta(seconds=3661, milliseconds=500)

        # Act
        entry = service.stop_timer(test_team.id, assigned_id=test_user.id, stop=stop_at)

        # Assert
        assert entry.duration == 3661
        assert ensure_utc(entry.stop) == stop_at
        assert entry.is_running is False
        assert service.current_timer(test_team.id, test_user.id) is None

    def test_stop_defaults_to_clock(self, service, clock, test_team, test_user, test_project):
        """Test stop without an instant uses the service clock."""
        service.start_timer(test_team.id, test_project.id, assigned_id=test_user.id)
        clock.now = NOW + timedelta(minutes=30)

        entry = service.stop_timer(test_team.id, assigned_id=test_user.id)

        assert entry.duration == 1800

    def test_stop_without_running_timer(self, service, test_team, test_user):
        """Test stop fails with NoRunningTimerError and names the transition."""
        with pytest.raises(NoRunningTimerError) as exc_info:
            service.stop_timer(test_team.id, assigned_id=test_user.id)

        assert exc_info.value.status_code == 404
        assert exc_info.value.details["transition"] == "stop"
        assert exc_info.value.details["team_id"] == str(test_team.id)

    def test_stop_before_start_rolls_back(
        self, service, db_session, test_team, test_user, test_project
    ):
        """Test an invalid stop instant leaves the timer running."""
        entry = service.start_timer(test_team.id, test_project.id, assigned_id=test_user.id)

        with pytest.raises(TrackerValidationError) as exc_info:
            service.stop_timer(
                test_team.id, entry_id=entry.id, stop=NOW - timedelta(minutes=1)
            )

        assert exc_info.value.details["entry_id"] == str(entry.id)
        assert db_session.get(TrackerEntry, entry.id).duration == RUNNING_DURATION

    def test_pause_then_resume(self, service, clock, test_team, test_user, test_project):
        """Test a paused entry resumes with its identity and sentinel restored."""
        # Arrange
        entry = service.start_timer(test_team.id, test_project.id, assigned_id=test_user.id)
        paused = service.pause_timer(
            test_team.id, assigned_id=test_user.id, pause=NOW + timedelta(minutes=10)
        )
        assert paused.duration == 600
        assert [e.id for e in service.paused_entries(test_team.id, test_user.id)] == [entry.id]
        clock.now = NOW + timedelta(minutes=20)

        # Act
        resumed = service.start_timer(
            test_team.id,
            test_project.id,
            assigned_id=test_user.id,
            continue_from_entry=entry.id,
        )

        # Assert
        assert resumed.id == entry.id
        assert resumed.duration == RUNNING_DURATION
        assert resumed.stop is None
        assert ensure_utc(resumed.start) == NOW
        assert service.paused_entries(test_team.id, test_user.id) == []

    def test_resume_stops_other_running_timer(
        self, service, db_session, test_team, test_user, test_project
    ):
        """Test resuming keeps at most one running timer for the assignee."""
        paused = service.start_timer(test_team.id, test_project.id, assigned_id=test_user.id)
        service.pause_timer(test_team.id, entry_id=paused.id)
        other = service.start_timer(test_team.id, test_project.id, assigned_id=test_user.id)

        service.start_timer(
            test_team.id, test_project.id, assigned_id=test_user.id, continue_from_entry=paused.id
        )

        running = _running_rows(db_session, test_team.id, test_user.id)
        assert [row.id for row in running] == [paused.id]
        assert db_session.get(TrackerEntry, other.id).duration == 0

    def test_resume_running_entry_conflicts(self, service, test_team, test_user, test_project):
        """Test resuming an entry that is already running is a state conflict."""
        entry = service.start_timer(test_team.id, test_project.id, assigned_id=test_user.id)

        with pytest.raises(InvalidTimerStateError) as exc_info:
            service.start_timer(
                test_team.id, test_project.id, continue_from_entry=entry.id
            )

        assert exc_info.value.status_code == 409
        assert exc_info.value.details["transition"] == "resume"
        assert exc_info.value.details["entry_id"] == str(entry.id)

    def test_resume_unknown_entry(self, service, test_team, test_project):
        """Test resuming an unknown entry is NotFound."""
        with pytest.raises(TrackerEntryNotFoundError):
            service.start_timer(test_team.id, test_project.id, continue_from_entry=uuid4())

    def test_start_with_foreign_project(self, service, test_team, test_user, other_project):
        """Test a project of another team cannot be tracked on."""
        with pytest.raises(TrackerProjectNotFoundError):
            service.start_timer(test_team.id, other_project.id, assigned_id=test_user.id)

    def test_paused_entries_window(self, db_session, clock, test_team, test_user, test_project):
        """Test paused entries are capped to the configured window."""
        service = TrackerEntryService(db_session, now=clock, paused_entries_limit=3)
        service.bulk_create(
            test_team.id, [finished_entry(test_project, test_user, dates=[JAN_1, JAN_2])] * 3
        )

        assert len(service.paused_entries(test_team.id, test_user.id)) == 3

    def test_paused_entries_default_window(self, service, test_team, test_user, test_project):
        """Test the default paused window holds ten entries."""
        service.bulk_create(
            test_team.id,
            [finished_entry(test_project, test_user, dates=[JAN_1 + timedelta(days=i)]) for i in range(12)],
        )

        assert len(service.paused_entries(test_team.id, test_user.id)) == 10

    def test_paused_entries_most_recent_first(
        self, service, db_session, test_team, test_user, test_project
    ):
        """Test paused entries are listed by creation time, newest first."""
        # Arrange
        created = service.bulk_create(
            test_team.id,
            [finished_entry(test_project, test_user, dates=[JAN_1 + timedelta(days=i)]) for i in range(3)],
        )
        for entry, minutes in zip(created, [5, 20, 10], strict=True):
            db_session.get(TrackerEntry, entry.id).created_at = NOW + timedelta(minutes=minutes)
        db_session.commit()

        # Act
        paused = service.paused_entries(test_team.id, test_user.id)

        # Assert
        assert [entry.id for entry in paused] == [created[1].id, created[2].id, created[0].id]

    def test_current_timer_latest_across_assignees(
        self, service, db_session, test_team, test_user, second_user, test_project
    ):
        """Test without an assignee the most recently created running entry wins."""
        # Arrange
        older = service.start_timer(test_team.id, test_project.id, assigned_id=second_user.id)
        newer = service.start_timer(test_team.id, test_project.id, assigned_id=test_user.id)
        db_session.get(TrackerEntry, older.id).created_at = NOW + timedelta(minutes=1)
        db_session.get(TrackerEntry, newer.id).created_at = NOW + timedelta(minutes=2)
        db_session.commit()

        # Act
        current = service.current_timer(test_team.id)

        # Assert
        assert current.id == newer.id
        assert service.current_timer(test_team.id, second_user.id).id == older.id

    def test_timer_status_idle(self, service, test_team, test_user):
        """Test status without running timer."""
        status = service.timer_status(test_team.id, test_user.id)

        assert status.is_running is False
        assert status.current_entry is None
        assert status.elapsed_seconds == 0

    def test_timer_status_elapsed(self, service, clock, test_team, test_user, test_project):
        """Test elapsed seconds follow the clock."""
        service.start_timer(test_team.id, test_project.id, assigned_id=test_user.id)
        clock.now = NOW + timedelta(seconds=125)

        assert service.timer_status(test_team.id, test_user.id).elapsed_seconds == 125


class TestEntryMutations:
    """Upsert, bulk create and delete."""

    def test_upsert_expands_dates(self, service, test_team, test_user, test_project):
        """Test one row is created per date, identical except for the date."""
        # Arrange
        payload = TrackerEntryUpsert(
            **finished_entry(
                test_project, test_user, dates=[JAN_1, JAN_2], description="Design review"
            ).model_dump()
        )

        # Act
        entries = service.upsert(test_team.id, payload)

        # Assert
        assert len(entries) == 2
        assert {entry.date for entry in entries} == {JAN_1, JAN_2}
        first, second = (entry.model_dump(exclude={"id", "date", "created_at"}) for entry in entries)
        assert first == second
        assert first["description"] == "Design review"

    def test_upsert_without_dates(self, service, test_team, test_project):
        """Test creating without any date is rejected."""
        payload = TrackerEntryUpsert(**finished_entry(test_project, dates=[]).model_dump())

        with pytest.raises(TrackerValidationError):
            service.upsert(test_team.id, payload)

    def test_upsert_updates_entry(self, service, db_session, test_team, test_user, test_project):
        """Test upsert with id overwrites the one entry and moves its date."""
        # Arrange
        [entry] = service.upsert(
            test_team.id, TrackerEntryUpsert(**finished_entry(test_project, test_user).model_dump())
        )
        payload = TrackerEntryUpsert(
            **finished_entry(test_project, test_user, seconds=1800, dates=[JAN_2]).model_dump(),
            id=entry.id,
        )

        # Act
        [updated] = service.upsert(test_team.id, payload)

        # Assert
        assert updated.id == entry.id
        assert updated.duration == 1800
        assert updated.date == JAN_2
        assert db_session.query(TrackerEntry).count() == 1

    def test_upsert_update_rejects_many_dates(self, service, test_team, test_project):
        """Test updating one entry with several dates is ambiguous and rejected."""
        payload = TrackerEntryUpsert(
            **finished_entry(test_project, dates=[JAN_1, JAN_2]).model_dump(), id=uuid4()
        )

        with pytest.raises(TrackerValidationError):
            service.upsert(test_team.id, payload)

    def test_upsert_update_unknown_entry(self, service, test_team, test_project):
        """Test updating an entry outside the team is NotFound."""
        payload = TrackerEntryUpsert(**finished_entry(test_project).model_dump(), id=uuid4())

        with pytest.raises(TrackerEntryNotFoundError) as exc_info:
            service.upsert(test_team.id, payload)

        assert exc_info.value.details["transition"] == "update"

    def test_bulk_create_all_rows(self, service, test_team, test_user, test_project):
        """Test bulk create returns exactly the inserted rows."""
        entries = service.bulk_create(
            test_team.id,
            [
                finished_entry(test_project, test_user, dates=[JAN_1, JAN_2]),
                finished_entry(test_project, test_user, seconds=60),
            ],
        )

        assert len(entries) == 3
        assert sorted(entry.duration for entry in entries) == [60, 3600, 3600]

    def test_bulk_create_empty(self, service, db_session, test_team):
        """Test an empty bulk request writes nothing."""
        assert service.bulk_create(test_team.id, []) == []
        assert db_session.query(TrackerEntry).count() == 0

    def test_bulk_create_is_all_or_nothing(
        self, service, db_session, test_team, test_project, other_project
    ):
        """Test one invalid project aborts the whole bulk insert."""
        with pytest.raises(TrackerProjectNotFoundError):
            service.bulk_create(
                test_team.id, [finished_entry(test_project), finished_entry(other_project)]
            )

        assert db_session.query(TrackerEntry).count() == 0

    def test_delete_twice(self, service, test_team, test_project):
        """Test delete returns the row once, then fails with NotFound."""
        [entry] = service.bulk_create(test_team.id, [finished_entry(test_project)])

        deleted = service.delete(test_team.id, entry.id)
        assert deleted.id == entry.id

        with pytest.raises(TrackerEntryNotFoundError) as exc_info:
            service.delete(test_team.id, entry.id)
        assert exc_info.value.details["transition"] == "delete"


class TestAggregation:
    """Date and range reads."""

    def test_range_totals(self, service, test_team, test_user, test_project):
        """Test totals use rate x hours and group entries by date."""
        # Arrange
        [entry] = service.bulk_create(test_team.id, [finished_entry(test_project, test_user)])
        service.start_timer(test_team.id, test_project.id, assigned_id=test_user.id)

        # Act
        result = service.get_by_range(test_team.id, JAN_1, date(2024, 1, 31))

        # Assert
        assert result.meta.total_duration == 3600
        assert result.meta.total_amount == 50.0
        assert result.meta.from_date == JAN_1
        assert entry.id in [e.id for e in result.result["2024-01-01"]]
        assert len(result.result["2024-01-01"]) == 2

    def test_range_groups_in_creation_order(self, service, test_team, test_project):
        """Test each date key holds its entries and dates appear in creation order."""
        service.bulk_create(test_team.id, [finished_entry(test_project, dates=[JAN_2])])
        service.bulk_create(test_team.id, [finished_entry(test_project, dates=[JAN_1])])

        result = service.get_by_range(test_team.id, JAN_1, JAN_2)

        assert list(result.result) == ["2024-01-02", "2024-01-01"]

    def test_range_without_rate(self, db_session, service, test_team, test_project):
        """Test entries on a project without rate add nothing to the amount."""
        test_project.rate = None
        db_session.commit()
        service.bulk_create(test_team.id, [finished_entry(test_project, seconds=7200)])

        result = service.get_by_range(test_team.id, JAN_1, JAN_1)

        assert result.meta.total_duration == 7200
        assert result.meta.total_amount == 0.0

    def test_range_inverted(self, service, test_team):
        """Test a range ending before it starts is rejected."""
        with pytest.raises(TrackerValidationError):
            service.get_by_range(test_team.id, JAN_2, JAN_1)

    def test_by_date_total(self, service, test_team, test_user, second_user, test_project):
        """Test the per-date total and the assignee filter."""
        service.bulk_create(
            test_team.id,
            [
                finished_entry(test_project, test_user, seconds=600),
                finished_entry(test_project, second_user, seconds=300),
                finished_entry(test_project, test_user, seconds=900, dates=[JAN_2]),
            ],
        )

        everyone = service.get_by_date(test_team.id, JAN_1)
        mine = service.get_by_date(test_team.id, JAN_1, user_id=test_user.id)

        assert everyone.meta.total_duration == 900
        assert len(everyone.data) == 2
        assert mine.meta.total_duration == 600


class TestTenantIsolation:
    """No operation scoped to one team observes or mutates another team."""

    def test_reads_are_scoped(self, service, test_team, other_team, test_project):
        service.bulk_create(test_team.id, [finished_entry(test_project)])

        assert service.get_by_date(other_team.id, JAN_1).data == []
        assert service.get_by_range(other_team.id, JAN_1, JAN_2).result == {}
        assert service.paused_entries(other_team.id) == []

    def test_mutations_are_scoped(self, service, db_session, test_team, other_team, test_project):
        entry = service.start_timer(test_team.id, test_project.id)

        with pytest.raises(NoRunningTimerError):
            service.stop_timer(other_team.id, entry_id=entry.id)
        with pytest.raises(TrackerEntryNotFoundError):
            service.delete(other_team.id, entry.id)
        assert service.current_timer(other_team.id) is None
        assert db_session.get(TrackerEntry, entry.id).duration == RUNNING_DURATION

    def test_start_for_foreign_assignee(
        self, service, db_session, test_team, test_project, outsider
    ):
        """Test a timer cannot be assigned to a user of another team."""
        with pytest.raises(TrackerAssigneeNotFoundError) as exc_info:
            service.start_timer(test_team.id, test_project.id, assigned_id=outsider.id)

        assert exc_info.value.status_code == 404
        assert exc_info.value.details["assigned_id"] == str(outsider.id)
        assert db_session.query(TrackerEntry).count() == 0

    def test_writes_for_foreign_assignee(
        self, service, db_session, test_team, test_user, test_project, outsider
    ):
        """Test upsert and bulk create refuse an assignee of another team."""
        # Arrange
        [existing] = service.upsert(
            test_team.id, TrackerEntryUpsert(**finished_entry(test_project, test_user).model_dump())
        )

        # Act / Assert
        with pytest.raises(TrackerAssigneeNotFoundError):
            service.upsert(
                test_team.id, TrackerEntryUpsert(**finished_entry(test_project, outsider).model_dump())
            )
        with pytest.raises(TrackerAssigneeNotFoundError):
            service.upsert(
                test_team.id,
                TrackerEntryUpsert(
                    **finished_entry(test_project, outsider).model_dump(), id=existing.id
                ),
            )
        with pytest.raises(TrackerAssigneeNotFoundError):
            service.bulk_create(
                test_team.id,
                [finished_entry(test_project, test_user), finished_entry(test_project, outsider)],
            )

        rows = db_session.query(TrackerEntry).all()
        assert [row.id for row in rows] == [existing.id]
        assert rows[0].assigned_id == test_user.id
