"""Tests for availability mutations and the SQL reader (SQLite)."""
import pytest
from datetime import date
from unittest.mock import MagicMock

from sitter_availability.services.audit import AuditAction
from sitter_availability.services.availability_admin import AvailabilityAdmin, SqlAvailabilityStore
from sitter_availability.services.slots import SqlAvailabilityReader
from sitter_availability.services.slots.domain import ExceptionKind, ReasonBucket, ServiceType, TimeRange
from sitter_availability.services.slots.errors import (
    InvalidConfig,
    InvalidDate,
    InvalidDay,
    InvalidExceptionKind,
    InvalidRanges,
    InvalidService,
    InvalidSitter,
)

from factories import SITTER, WEDNESDAY, local

ACTOR = "admin-1"


@pytest.mark.unit
class TestServiceConfig:
    def test_defaults_until_stored(self, admin):
        config, stored = admin.get_config(SITTER, "walk")

        assert not stored
        assert config.default_duration_min == 30
        assert config.lead_time_min == 120

    def test_upsert_merges_with_defaults(self, admin, audit_events):
        result = admin.upsert_config(SITTER, ACTOR, "walk", {"lead_time_min": 60, "capacity": 2})

        assert result.audited
        config, stored = admin.get_config(SITTER, "walk")
        assert stored
        assert config.lead_time_min == 60
        assert config.capacity == 2
        assert config.buffer_before_min == 15
        assert audit_events[0].action is AuditAction.UPSERT_CONFIG

        entry = admin.recorder.list_entries(SITTER)[0]
        assert entry.payload_summary == {"keys": ["capacity", "lead_time_min"]}

    def test_second_upsert_updates_row(self, admin):
        admin.upsert_config(SITTER, ACTOR, "walk", {"lead_time_min": 60})
        admin.upsert_config(SITTER, ACTOR, "walk", {"enabled": False})

        config, _ = admin.get_config(SITTER, "walk")
        assert config.lead_time_min == 60
        assert config.enabled is False

    @pytest.mark.parametrize("changes", [
        {"capacity": 0},
        {"capacity": 51},
        {"default_duration_min": 4},
        {"max_duration_min": 20},
        {"lead_time_min": -1},
        {"buffer_after_min": 2000},
        {"enabled": "yes"},
        {"capacity": True},
        {"colour": "blue"},
    ])
    def test_invalid_config(self, admin, audit_events, changes):
        with pytest.raises(InvalidConfig):
            admin.upsert_config(SITTER, ACTOR, "walk", changes)

        assert audit_events == []
        assert admin.get_config(SITTER, "walk")[1] is False

    def test_unknown_service(self, admin):
        with pytest.raises(InvalidService):
            admin.upsert_config(SITTER, ACTOR, "grooming", {})


@pytest.mark.unit
class TestWeeklyRules:
    def test_replace_rules(self, admin):
        result = admin.replace_rules(SITTER, ACTOR, "walk", 2, [["14:00", "15:00"], [540, 720]])

        assert result.data.ranges == (TimeRange(540, 720), TimeRange(840, 900))
        rules = admin.list_rules(SITTER, "walk")
        assert len(rules) == 1
        assert rules[0].day_of_week == 2
        assert rules[0].ranges == (TimeRange(540, 720), TimeRange(840, 900))

    def test_replace_is_per_weekday(self, admin):
        admin.replace_rules(SITTER, ACTOR, "walk", 1, [[540, 720]])
        admin.replace_rules(SITTER, ACTOR, "walk", 2, [[540, 720]])
        admin.replace_rules(SITTER, ACTOR, "walk", 2, [[600, 660]])

        rules = {r.day_of_week: r.ranges for r in admin.list_rules(SITTER, "walk")}
        assert rules == {1: (TimeRange(540, 720),), 2: (TimeRange(600, 660),)}

    def test_empty_list_clears_day(self, admin):
        admin.replace_rules(SITTER, ACTOR, "walk", 2, [[540, 720]])
        result = admin.replace_rules(SITTER, ACTOR, "walk", 2, [])

        assert result.audited
        assert admin.list_rules(SITTER, "walk") == []
        assert admin.recorder.list_entries(SITTER)[0].payload_summary == {"day_of_week": 2, "rules": 0}

    def test_invalid_ranges_write_nothing(self, admin, audit_events):
        admin.replace_rules(SITTER, ACTOR, "walk", 2, [[540, 720]])

        with pytest.raises(InvalidRanges):
            admin.replace_rules(SITTER, ACTOR, "walk", 2, [[60, 200], [180, 240]])

        assert admin.list_rules(SITTER, "walk")[0].ranges == (TimeRange(540, 720),)
        assert len(audit_events) == 1

    @pytest.mark.parametrize("day", [-1, 7, "2", None, True])
    def test_invalid_day(self, admin, day):
        with pytest.raises(InvalidDay):
            admin.replace_rules(SITTER, ACTOR, "walk", day, [])

    def test_blank_sitter(self, admin):
        with pytest.raises(InvalidSitter):
            admin.replace_rules(" ", ACTOR, "walk", 2, [])


@pytest.mark.unit
class TestDateExceptions:
    def test_blocked_ignores_ranges(self, admin):
        result = admin.upsert_exception(SITTER, ACTOR, "walk", "2025-06-04", "blocked", [[540, 720]])

        assert result.data.kind is ExceptionKind.BLOCKED
        assert result.data.ranges == ()
        [exc] = admin.list_exceptions(SITTER, "walk")
        assert exc.is_blocked and exc.date == WEDNESDAY

    def test_custom_hours_replace_previous(self, admin):
        admin.upsert_exception(SITTER, ACTOR, "walk", "2025-06-04", "blocked")
        admin.upsert_exception(SITTER, ACTOR, "walk", "2025-06-04", "custom_hours", [[840, 900], [540, 600]])

        [exc] = admin.list_exceptions(SITTER, "walk")
        assert exc.kind is ExceptionKind.CUSTOM_HOURS
        assert exc.ranges == (TimeRange(540, 600), TimeRange(840, 900))

    def test_custom_hours_without_ranges(self, admin):
        admin.upsert_exception(SITTER, ACTOR, "boarding", "2025-06-05", "custom_hours", [])

        [exc] = admin.list_exceptions(SITTER, "boarding")
        assert exc.kind is ExceptionKind.CUSTOM_HOURS
        assert exc.ranges == ()

    def test_list_filters(self, admin):
        admin.upsert_exception(SITTER, ACTOR, "walk", "2025-06-04", "blocked")
        admin.upsert_exception(SITTER, ACTOR, "boarding", "2025-06-10", "blocked")

        assert len(admin.list_exceptions(SITTER)) == 2
        assert [e.date for e in admin.list_exceptions(SITTER, date_end="2025-06-05")] == [WEDNESDAY]
        assert [e.service_type for e in admin.list_exceptions(SITTER, "boarding")] == [ServiceType.BOARDING]

    def test_delete_exception(self, admin, audit_events):
        admin.upsert_exception(SITTER, ACTOR, "walk", "2025-06-04", "custom_hours", [[540, 600], [840, 900]])

        result = admin.delete_exception(SITTER, ACTOR, "walk", "2025-06-04")

        assert result.data == 2
        assert admin.list_exceptions(SITTER) == []
        assert [e.action for e in audit_events] == [AuditAction.UPSERT_EXCEPTION, AuditAction.DELETE_EXCEPTION]

    def test_delete_missing_is_audited(self, admin):
        result = admin.delete_exception(SITTER, ACTOR, "walk", "2025-06-04")

        assert result.data == 0
        assert result.audited
        assert admin.recorder.list_entries(SITTER)[0].payload_summary == {"deleted": 0}

    def test_invalid_kind(self, admin):
        with pytest.raises(InvalidExceptionKind):
            admin.upsert_exception(SITTER, ACTOR, "walk", "2025-06-04", "holiday")

    def test_invalid_date(self, admin):
        with pytest.raises(InvalidDate):
            admin.upsert_exception(SITTER, ACTOR, "walk", "2025-13-01", "blocked")


@pytest.mark.unit
class TestAuditFailures:
    def test_audit_failure_keeps_mutation(self, session_factory, engine_config):
        recorder = MagicMock()
        recorder.record.side_effect = RuntimeError("audit table gone")
        admin = AvailabilityAdmin(SqlAvailabilityStore(session_factory), recorder, engine_config)

        result = admin.replace_rules(SITTER, ACTOR, "walk", 2, [[540, 720]])

        assert result.audited is False
        assert admin.list_rules(SITTER, "walk")[0].ranges == (TimeRange(540, 720),)
        recorder.record.assert_called_once()

    def test_missing_actor_not_audited(self, admin, audit_events):
        result = admin.replace_rules(SITTER, None, "walk", 2, [[540, 720]])

        assert result.audited is False
        assert admin.recorder.list_entries(SITTER) == []
        # cache invalidation still fires
        assert len(audit_events) == 1


@pytest.mark.unit
class TestSqlReaderThroughEngine:
    """Admin writes read back by the engine through SqlAvailabilityReader."""

    @pytest.mark.asyncio
    async def test_day_slots_from_database(self, admin, sql_engine, add_booking):
        admin.replace_rules(SITTER, ACTOR, "walk", 2, [[540, 720]])
        add_booking(local(WEDNESDAY, "10:00"), local(WEDNESDAY, "10:30"))
        add_booking(local(WEDNESDAY, "11:00"), local(WEDNESDAY, "11:30"), status="cancelled")
        add_booking(local(WEDNESDAY, "09:00"), local(WEDNESDAY, "12:00"), sitter_id="someone-else")

        result = await sql_engine.compute_day_slots(SITTER, "walk", "2025-06-04")

        assert [s.start_min for s in result.slots if s.bookable] == [540, 660, 690]

    @pytest.mark.asyncio
    async def test_stored_config_applies(self, admin, sql_engine):
        admin.replace_rules(SITTER, ACTOR, "walk", 2, [[540, 720]])
        admin.upsert_config(SITTER, ACTOR, "walk", {"default_duration_min": 60})

        result = await sql_engine.compute_day_slots(SITTER, "walk", "2025-06-04")

        assert result.duration_min == 60
        assert len(result.slots) == 3

    @pytest.mark.asyncio
    async def test_boarding_from_database(self, admin, sql_engine, add_booking):
        for day in range(7):
            admin.replace_rules(SITTER, ACTOR, "boarding", day, [[0, 1440]])
        admin.upsert_exception(SITTER, ACTOR, "boarding", "2025-06-06", "blocked")
        add_booking(
            local(date(2025, 6, 5), "10:00"), local(date(2025, 6, 5), "18:00"),
            service=ServiceType.BOARDING,
        )

        result = await sql_engine.check_boarding_range(SITTER, "2025-06-04", "2025-06-07")

        assert [d.bookable for d in result.days] == [True, False, False, True]
        assert result.days[1].reason is ReasonBucket.EXISTING_BOOKING
        assert result.days[2].reason is ReasonBucket.DATE_EXCEPTION

    def test_reader_skips_unreadable_booking(self, session_factory, add_booking):
        from sitter_availability.models.generated import Bookings

        add_booking(local(WEDNESDAY, "10:00"), local(WEDNESDAY, "10:30"))
        db = session_factory()
        try:
            db.add(Bookings(
                sitter_id=SITTER, service_type="walk",
                start_at="2025-06-04T09:00:00+00:00", end_at="not a date", status="confirmed",
            ))
            db.commit()
        finally:
            db.close()

        reader = SqlAvailabilityReader(session_factory)
        bookings = reader.list_bookings(SITTER, local(WEDNESDAY, "00:00"), local(WEDNESDAY, "24:00"))

        assert len(bookings) == 1
        assert bookings[0].status == "confirmed"
