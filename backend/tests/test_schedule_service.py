"""Tests for ScheduleService: schedules, members, shifts, comments and template application."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from buddy_schedule.errors import (
    AuthorizationError,
    ConcurrencyError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from buddy_schedule.models import (
    MemberRole,
    Period,
    RotationTemplate,
    ScheduleMember,
    Shift,
    ShiftComment,
)
from buddy_schedule.schemas.rotation_template import RotationTemplate as RotationTemplateSchema
from buddy_schedule.services.schedule_service import ScheduleService

from conftest import NIGHT_AND_SLEEP, WEEK_START


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


WEEK_FROM = utc(2024, 1, 1)
WEEK_TO = utc(2024, 1, 8)


@pytest.fixture
def template(service, alice, schedule) -> RotationTemplate:
    return service.create_template(alice, schedule.id, "Weekly", NIGHT_AND_SLEEP)


def make_shift(service, identity, schedule, start, hours=4, period="morning"):
    return service.create_shift(identity, schedule.id, start, start + timedelta(hours=hours), period)


class TestSchedules:
    def test_creator_becomes_admin(self, service, alice) -> None:
        created = service.create_schedule(alice, "  Care ", "pet", "Puppy")

        assert created.name == "Care"
        assert service.list_schedules(alice) == [(created, MemberRole.ADMIN)]

    def test_empty_name_rejected(self, service, alice) -> None:
        with pytest.raises(ValidationError):
            service.create_schedule(alice, "  ", "pet", "Puppy")

    def test_list_shows_caller_role(self, service, bob, schedule) -> None:
        assert service.list_schedules(bob) == [(schedule, MemberRole.USER)]

    def test_list_excludes_foreign_schedules(self, service, root, carol, schedule) -> None:
        assert service.list_schedules(carol) == []
        # Superadmins only list schedules they belong to
        assert service.list_schedules(root) == []

    def test_list_newest_first(self, service, alice, schedule) -> None:
        newer = service.create_schedule(alice, "Second", "child", "Kid")
        assert [s.id for s, _ in service.list_schedules(alice)] == [newer.id, schedule.id]

    def test_outsider_cannot_view(self, service, carol, schedule) -> None:
        with pytest.raises(AuthorizationError):
            service.get_schedule(carol, schedule.id)

    def test_superadmin_can_view_without_membership(self, service, root, schedule) -> None:
        assert service.get_schedule(root, schedule.id).id == schedule.id

    def test_missing_schedule(self, service, alice) -> None:
        with pytest.raises(NotFoundError):
            service.get_schedule(alice, 9999)

    def test_delete_cascades(self, db, service, alice, bob, schedule, template) -> None:
        service.apply_template(alice, schedule.id, template.id, WEEK_START)
        shift = service.list_shifts(bob, schedule.id, WEEK_FROM, WEEK_TO)[0]
        service.add_comment(bob, shift.id, "Walked")
        schedule_id = schedule.id

        service.delete_schedule(alice, schedule_id)
        db.expire_all()

        assert db.query(ScheduleMember).count() == 0
        assert db.query(RotationTemplate).count() == 0
        assert db.query(Shift).count() == 0
        assert db.query(ShiftComment).count() == 0
        with pytest.raises(NotFoundError):
            service.get_schedule(alice, schedule_id)

    def test_member_cannot_delete(self, service, bob, schedule) -> None:
        with pytest.raises(AuthorizationError):
            service.delete_schedule(bob, schedule.id)

    def test_superadmin_can_delete(self, service, root, schedule) -> None:
        schedule_id = schedule.id
        service.delete_schedule(root, schedule_id)
        with pytest.raises(NotFoundError):
            service.get_schedule(root, schedule_id)


class TestMembers:
    def test_add_and_list(self, service, alice, bob, carol, schedule) -> None:
        service.add_member(alice, schedule.id, "CAROL@example.com", "admin")

        members = {user.email: role for user, role in service.list_members(bob, schedule.id)}
        assert members == {
            "alice@example.com": MemberRole.ADMIN,
            "bob@example.com": MemberRole.USER,
            "carol@example.com": MemberRole.ADMIN,
        }

    def test_duplicate_membership(self, service, alice, bob, schedule) -> None:
        with pytest.raises(ConflictError):
            service.add_member(alice, schedule.id, bob.email, "user")

    def test_unknown_email(self, service, alice, schedule) -> None:
        with pytest.raises(NotFoundError):
            service.add_member(alice, schedule.id, "ghost@example.com", "user")

    def test_unknown_role(self, service, alice, carol, schedule) -> None:
        with pytest.raises(ValidationError):
            service.add_member(alice, schedule.id, carol.email, "owner")

    def test_member_cannot_add(self, service, bob, carol, schedule) -> None:
        with pytest.raises(AuthorizationError):
            service.add_member(bob, schedule.id, carol.email, "user")

    def test_promotion_grants_management(self, service, alice, bob, schedule) -> None:
        service.set_member_role(alice, schedule.id, bob.id, "admin")
        make_shift(service, bob, schedule, utc(2024, 1, 1, 8))

    def test_demotion_revokes_management(self, service, alice, bob, schedule) -> None:
        service.set_member_role(alice, schedule.id, bob.id, MemberRole.ADMIN)
        service.set_member_role(alice, schedule.id, bob.id, MemberRole.USER)
        with pytest.raises(AuthorizationError):
            make_shift(service, bob, schedule, utc(2024, 1, 1, 8))

    def test_role_change_for_non_member(self, service, alice, carol, schedule) -> None:
        with pytest.raises(NotFoundError):
            service.set_member_role(alice, schedule.id, carol.id, "admin")


class TestShifts:
    def test_create_stores_utc(self, service, alice, schedule) -> None:
        local = timezone(timedelta(hours=3))
        shift = service.create_shift(
            alice, schedule.id, datetime(2024, 1, 1, 11, tzinfo=local), datetime(2024, 1, 1, 15, tzinfo=local), "morning"
        )

        assert shift.starts_at == utc(2024, 1, 1, 8)
        assert shift.ends_at == utc(2024, 1, 1, 12)
        assert shift.period == Period.MORNING
        assert shift.assigned_user_id is None
        assert shift.created_by == alice.id

    @pytest.mark.parametrize("hours", [0, -1])
    def test_invalid_range_writes_nothing(self, db, service, alice, schedule, hours) -> None:
        with pytest.raises(ValidationError):
            make_shift(service, alice, schedule, utc(2024, 1, 1, 8), hours=hours)
        assert db.query(Shift).count() == 0

    def test_unknown_period(self, service, alice, schedule) -> None:
        with pytest.raises(ValidationError):
            make_shift(service, alice, schedule, utc(2024, 1, 1, 8), period="evening")

    def test_identical_shift_conflicts(self, service, alice, schedule) -> None:
        make_shift(service, alice, schedule, utc(2024, 1, 1, 8))
        with pytest.raises(ConflictError):
            make_shift(service, alice, schedule, utc(2024, 1, 1, 8))

    def test_same_time_other_period_is_allowed(self, service, alice, schedule) -> None:
        make_shift(service, alice, schedule, utc(2024, 1, 1, 8), period="morning")
        make_shift(service, alice, schedule, utc(2024, 1, 1, 8), period="afternoon")

    def test_member_cannot_create(self, service, bob, schedule) -> None:
        with pytest.raises(AuthorizationError):
            make_shift(service, bob, schedule, utc(2024, 1, 1, 8))

    def test_list_is_half_open_and_ordered(self, service, alice, bob, schedule) -> None:
        late = make_shift(service, alice, schedule, utc(2024, 1, 3, 8))
        early = make_shift(service, alice, schedule, utc(2024, 1, 1, 0))
        make_shift(service, alice, schedule, utc(2024, 1, 8, 0))  # equals range end
        make_shift(service, alice, schedule, utc(2023, 12, 31, 22))  # overlaps start, begins before it

        shifts = service.list_shifts(bob, schedule.id, WEEK_FROM, WEEK_TO)

        assert [s.id for s in shifts] == [early.id, late.id]
        assert all(s.starts_at.tzinfo is not None for s in shifts)

    def test_list_naive_range_is_utc(self, service, alice, bob, schedule) -> None:
        shift = make_shift(service, alice, schedule, utc(2024, 1, 2, 8))
        shifts = service.list_shifts(bob, schedule.id, datetime(2024, 1, 2), datetime(2024, 1, 3))
        assert [s.id for s in shifts] == [shift.id]

    def test_list_empty_range(self, service, alice, schedule) -> None:
        make_shift(service, alice, schedule, utc(2024, 1, 1, 8))
        assert service.list_shifts(alice, schedule.id, WEEK_FROM, WEEK_FROM) == []

    def test_list_reversed_range(self, service, alice, schedule) -> None:
        with pytest.raises(ValidationError):
            service.list_shifts(alice, schedule.id, WEEK_TO, WEEK_FROM)

    def test_outsider_cannot_list(self, service, carol, schedule) -> None:
        with pytest.raises(AuthorizationError):
            service.list_shifts(carol, schedule.id, WEEK_FROM, WEEK_TO)


class TestAssignment:
    def test_assign_and_unassign(self, service, alice, bob, schedule) -> None:
        shift = make_shift(service, alice, schedule, utc(2024, 1, 1, 8))

        assert service.assign_shift(alice, shift.id, bob.id).assigned_user_id == bob.id
        assert service.assign_shift(alice, shift.id, None).assigned_user_id is None

    def test_assignee_must_be_member(self, service, alice, carol, schedule) -> None:
        shift = make_shift(service, alice, schedule, utc(2024, 1, 1, 8))
        with pytest.raises(ValidationError):
            service.assign_shift(alice, shift.id, carol.id)

    def test_member_cannot_assign(self, service, alice, bob, schedule) -> None:
        shift = make_shift(service, alice, schedule, utc(2024, 1, 1, 8))
        with pytest.raises(AuthorizationError):
            service.assign_shift(bob, shift.id, bob.id)

    def test_missing_shift(self, service, alice) -> None:
        with pytest.raises(NotFoundError):
            service.assign_shift(alice, 9999, None)


class TestComments:
    def test_member_comments_in_order(self, service, alice, bob, schedule) -> None:
        shift = make_shift(service, alice, schedule, utc(2024, 1, 1, 8))
        service.add_comment(bob, shift.id, "  first ")
        service.add_comment(alice, shift.id, "second")

        comments = service.list_comments(bob, shift.id)

        assert [(c.body, c.user_id) for c in comments] == [("first", bob.id), ("second", alice.id)]

    def test_blank_body_rejected(self, db, service, alice, schedule) -> None:
        shift = make_shift(service, alice, schedule, utc(2024, 1, 1, 8))
        with pytest.raises(ValidationError):
            service.add_comment(alice, shift.id, "   ")
        assert db.query(ShiftComment).count() == 0

    def test_outsider_cannot_comment(self, service, alice, carol, schedule) -> None:
        shift = make_shift(service, alice, schedule, utc(2024, 1, 1, 8))
        with pytest.raises(AuthorizationError):
            service.add_comment(carol, shift.id, "hello")


class TestTemplates:
    def test_invalid_definition_is_not_stored(self, db, service, alice, schedule) -> None:
        bad = {"slots": [{"dow": 7, "period": "night", "start": "18:00", "end": "22:00"}]}
        with pytest.raises(ValidationError):
            service.create_template(alice, schedule.id, "Broken", bad)
        assert db.query(RotationTemplate).count() == 0

    def test_member_cannot_create(self, service, bob, schedule) -> None:
        with pytest.raises(AuthorizationError):
            service.create_template(bob, schedule.id, "Weekly", NIGHT_AND_SLEEP)

    def test_definition_round_trips(self, service, bob, schedule, template) -> None:
        (stored,) = service.list_templates(bob, schedule.id)
        assert RotationTemplateSchema.model_validate(stored).definition == NIGHT_AND_SLEEP

    def test_apply_creates_week(self, service, alice, bob, schedule, template) -> None:
        result = service.apply_template(alice, schedule.id, template.id, WEEK_START)

        assert result.skipped == 0
        assert [(s.starts_at, s.ends_at, s.period) for s in result.created] == [
            (utc(2024, 1, 1, 18), utc(2024, 1, 1, 22), Period.NIGHT),
            (utc(2024, 1, 2, 22), utc(2024, 1, 3, 8), Period.SLEEP),
        ]
        assert all(s.assigned_user_id is None for s in result.created)

    def test_apply_is_idempotent(self, service, alice, schedule, template) -> None:
        service.apply_template(alice, schedule.id, template.id, WEEK_START)
        again = service.apply_template(alice, schedule.id, template.id, WEEK_START)

        assert again.created == []
        assert again.skipped == 2
        assert len(service.list_shifts(alice, schedule.id, WEEK_FROM, WEEK_TO)) == 2

    def test_apply_skips_existing_manual_shift(self, service, alice, schedule, template) -> None:
        service.create_shift(alice, schedule.id, utc(2024, 1, 1, 18), utc(2024, 1, 1, 22), "night")

        result = service.apply_template(alice, schedule.id, template.id, WEEK_START)

        assert len(result.created) == 1
        assert result.skipped == 1

    def test_duplicate_slots_collapse(self, service, alice, schedule) -> None:
        slot = {"dow": 2, "period": "morning", "start": "08:00", "end": "12:00"}
        doubled = service.create_template(alice, schedule.id, "Doubled", {"slots": [slot, slot]})

        result = service.apply_template(alice, schedule.id, doubled.id, WEEK_START)

        assert len(result.created) == 1
        assert result.skipped == 1

    def test_member_cannot_apply(self, db, service, bob, schedule, template) -> None:
        with pytest.raises(AuthorizationError):
            service.apply_template(bob, schedule.id, template.id, WEEK_START)
        assert db.query(Shift).count() == 0

    def test_template_of_other_schedule(self, service, alice, schedule, template) -> None:
        other = service.create_schedule(alice, "Other", "pet", "Cat")
        with pytest.raises(NotFoundError):
            service.apply_template(alice, other.id, template.id, WEEK_START)

    def test_concurrent_insert_is_retried(self, service, alice, schedule, template, monkeypatch) -> None:
        original = ScheduleService._insert_drafts
        calls = []

        def racing_insert(self, identity, schedule_id, drafts):
            calls.append(schedule_id)
            if len(calls) == 1:
                raise IntegrityError("INSERT INTO shifts", {}, Exception("UNIQUE constraint failed"))
            return original(self, identity, schedule_id, drafts)

        monkeypatch.setattr(ScheduleService, "_insert_drafts", racing_insert)

        result = service.apply_template(alice, schedule.id, template.id, WEEK_START)

        assert len(calls) == 2
        assert len(result.created) == 2

    def test_repeated_conflict_is_a_concurrency_error(self, db, service, alice, schedule, template, monkeypatch) -> None:
        def always_conflict(self, identity, schedule_id, drafts):
            raise IntegrityError("INSERT INTO shifts", {}, Exception("UNIQUE constraint failed"))

        monkeypatch.setattr(ScheduleService, "_insert_drafts", always_conflict)

        with pytest.raises(ConcurrencyError):
            service.apply_template(alice, schedule.id, template.id, WEEK_START)
        assert db.query(Shift).count() == 0
