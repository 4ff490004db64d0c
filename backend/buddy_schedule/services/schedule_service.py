from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from sqlalchemy import desc
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Union
from buddy_schedule.errors import ConcurrencyError, ConflictError, NotFoundError, ValidationError
from buddy_schedule.models import (
    Schedule, ScheduleMember, MemberRole, RotationTemplate, Shift, Period, ShiftComment, User,
)
from buddy_schedule.services.access import (
    EffectiveRole, resolve_role, require, can_manage_schedule, can_comment, can_view,
)
from buddy_schedule.services.template_engine import TemplateEngine, validate_definition
from buddy_schedule.services.user_service import normalize_email
import json
import logging

logger = logging.getLogger(__name__)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC, convert aware ones to UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_period(value: Union[str, Period]) -> Period:
    try:
        return Period(value)
    except ValueError:
        raise ValidationError(f"unknown period: {value}")


def parse_member_role(value: Union[str, MemberRole]) -> MemberRole:
    try:
        return MemberRole(value)
    except ValueError:
        raise ValidationError(f"unknown role: {value}")


@dataclass
class TemplateApplication:
    """Outcome of applying a template to one week"""
    created: List[Shift] = field(default_factory=list)
    skipped: int = 0


class ScheduleService:
    """Lifecycle of schedules, memberships, templates, shifts and comments.

    Every operation checks the caller's role and performs its writes in the
    same session transaction, committing once at the end.
    """

    def __init__(self, db: Session):
        self.db = db

    # Lookup helpers

    def _get_schedule(self, schedule_id: int) -> Schedule:
        schedule = self.db.query(Schedule).filter(Schedule.id == schedule_id).first()
        if not schedule:
            raise NotFoundError("schedule not found")
        return schedule

    def _get_shift(self, shift_id: int) -> Shift:
        shift = self.db.query(Shift).filter(Shift.id == shift_id).first()
        if not shift:
            raise NotFoundError("shift not found")
        return shift

    def _get_membership(self, schedule_id: int, user_id: int) -> Optional[ScheduleMember]:
        return self.db.query(ScheduleMember).filter(
            ScheduleMember.schedule_id == schedule_id,
            ScheduleMember.user_id == user_id
        ).first()

    def _authorize(self, identity: User, schedule_id: int, predicate, action: str, lock: bool = False) -> EffectiveRole:
        role = resolve_role(self.db, identity, schedule_id, lock=lock)
        return require(role, predicate, action)

    # Schedules

    def list_schedules(self, identity: User) -> List[Tuple[Schedule, MemberRole]]:
        """Schedules the caller belongs to with the caller's role, newest first"""
        rows = self.db.query(Schedule, ScheduleMember.role).join(
            ScheduleMember, ScheduleMember.schedule_id == Schedule.id
        ).filter(
            ScheduleMember.user_id == identity.id
        ).order_by(desc(Schedule.created_at), desc(Schedule.id)).all()
        return [(schedule, role) for schedule, role in rows]

    def create_schedule(self, identity: User, name: str, subject_type: str, subject_name: str) -> Schedule:
        """Create a schedule; the creator becomes its admin in the same transaction"""
        name = (name or "").strip()
        if not name:
            raise ValidationError("name is required")

        schedule = Schedule(
            name=name,
            subject_type=(subject_type or "").strip(),
            subject_name=(subject_name or "").strip(),
            created_by=identity.id
        )
        self.db.add(schedule)
        self.db.flush()  # schedule.id for the membership

        self.db.add(ScheduleMember(schedule_id=schedule.id, user_id=identity.id, role=MemberRole.ADMIN))
        self.db.commit()
        self.db.refresh(schedule)

        logger.info(f"Schedule {schedule.id} '{schedule.name}' created by user {identity.id}")
        return schedule

    def get_schedule(self, identity: User, schedule_id: int) -> Schedule:
        schedule = self._get_schedule(schedule_id)
        self._authorize(identity, schedule_id, can_view, "view schedule")
        return schedule

    def delete_schedule(self, identity: User, schedule_id: int) -> None:
        """Delete a schedule with its memberships, templates, shifts and comments"""
        schedule = self._get_schedule(schedule_id)
        self._authorize(identity, schedule_id, can_manage_schedule, "delete schedule", lock=True)

        self.db.delete(schedule)
        self.db.commit()
        logger.info(f"Schedule {schedule_id} deleted by user {identity.id}")

    # Members

    def list_members(self, identity: User, schedule_id: int) -> List[Tuple[User, MemberRole]]:
        self._get_schedule(schedule_id)
        self._authorize(identity, schedule_id, can_view, "list members")

        rows = self.db.query(User, ScheduleMember.role).join(
            ScheduleMember, ScheduleMember.user_id == User.id
        ).filter(
            ScheduleMember.schedule_id == schedule_id
        ).order_by(ScheduleMember.created_at, User.id).all()
        return [(user, role) for user, role in rows]

    def add_member(self, identity: User, schedule_id: int, email: str, role: Union[str, MemberRole]) -> ScheduleMember:
        """
        Add a registered user to a schedule

        Args:
            identity: Calling user (admin of the schedule or superadmin)
            schedule_id: Schedule ID
            email: Email of the user to add
            role: admin or user

        Returns:
            The new membership
        """
        self._get_schedule(schedule_id)
        self._authorize(identity, schedule_id, can_manage_schedule, "add members", lock=True)
        role = parse_member_role(role)

        user = self.db.query(User).filter(User.email == normalize_email(email)).first()
        if not user:
            raise NotFoundError("no user with this email")

        if self._get_membership(schedule_id, user.id):
            raise ConflictError("user already in schedule")

        membership = ScheduleMember(schedule_id=schedule_id, user_id=user.id, role=role)
        self.db.add(membership)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("user already in schedule")

        self.db.refresh(membership)
        logger.info(f"User {user.id} added to schedule {schedule_id} as {role.value}")
        return membership

    def set_member_role(self, identity: User, schedule_id: int, user_id: int, role: Union[str, MemberRole]) -> ScheduleMember:
        self._get_schedule(schedule_id)
        self._authorize(identity, schedule_id, can_manage_schedule, "change member roles", lock=True)
        role = parse_member_role(role)

        membership = self._get_membership(schedule_id, user_id)
        if not membership:
            raise NotFoundError("user is not a member of this schedule")

        membership.role = role
        self.db.commit()
        self.db.refresh(membership)
        logger.info(f"User {user_id} role in schedule {schedule_id} set to {role.value}")
        return membership

    # Shifts

    def create_shift(
        self,
        identity: User,
        schedule_id: int,
        starts_at: datetime,
        ends_at: datetime,
        period: Union[str, Period]
    ) -> Shift:
        """Create one unassigned shift; ends_at must be after starts_at"""
        self._get_schedule(schedule_id)
        self._authorize(identity, schedule_id, can_manage_schedule, "create shifts", lock=True)

        period = parse_period(period)
        starts_at = as_utc(starts_at)
        ends_at = as_utc(ends_at)
        if ends_at <= starts_at:
            raise ValidationError("ends_at must be after starts_at")

        if self._find_shift(schedule_id, starts_at, ends_at, period):
            raise ConflictError("an identical shift already exists")

        shift = Shift(
            schedule_id=schedule_id,
            starts_at=starts_at,
            ends_at=ends_at,
            period=period,
            created_by=identity.id
        )
        self.db.add(shift)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("an identical shift already exists")

        self.db.refresh(shift)
        logger.info(f"Shift {shift.id} created in schedule {schedule_id}")
        return shift

    def _find_shift(self, schedule_id: int, starts_at: datetime, ends_at: datetime, period: Period) -> Optional[Shift]:
        return self.db.query(Shift).filter(
            Shift.schedule_id == schedule_id,
            Shift.starts_at == starts_at,
            Shift.ends_at == ends_at,
            Shift.period == period
        ).first()

    def list_shifts(self, identity: User, schedule_id: int, start: datetime, end: datetime) -> List[Shift]:
        """
        Shifts whose starts_at falls in [start, end), ascending by starts_at

        Args:
            identity: Calling user (any member)
            schedule_id: Schedule ID
            start: Range start (inclusive)
            end: Range end (exclusive)
        """
        self._get_schedule(schedule_id)
        self._authorize(identity, schedule_id, can_view, "view shifts")

        start = as_utc(start)
        end = as_utc(end)
        if end < start:
            raise ValidationError("range end must not be before range start")

        return self.db.query(Shift).filter(
            Shift.schedule_id == schedule_id,
            Shift.starts_at >= start,
            Shift.starts_at < end
        ).order_by(Shift.starts_at, Shift.id).all()

    def get_shift(self, identity: User, shift_id: int) -> Shift:
        shift = self._get_shift(shift_id)
        self._authorize(identity, shift.schedule_id, can_view, "view shift")
        return shift

    def assign_shift(self, identity: User, shift_id: int, user_id: Optional[int]) -> Shift:
        """
        Assign a shift to a member, or clear the assignment with None

        This is the only change a shift accepts after creation.
        """
        shift = self._get_shift(shift_id)
        self._authorize(identity, shift.schedule_id, can_manage_schedule, "assign shifts", lock=True)

        if user_id is not None and not self._get_membership(shift.schedule_id, user_id):
            raise ValidationError("assigned user is not a member of this schedule")

        shift.assigned_user_id = user_id
        self.db.commit()
        self.db.refresh(shift)

        if user_id is None:
            logger.info(f"Shift {shift_id} unassigned")
        else:
            logger.info(f"Shift {shift_id} assigned to user {user_id}")
        return shift

    # Comments

    def add_comment(self, identity: User, shift_id: int, body: str) -> ShiftComment:
        shift = self._get_shift(shift_id)
        self._authorize(identity, shift.schedule_id, can_comment, "comment", lock=True)

        body = (body or "").strip()
        if not body:
            raise ValidationError("comment body is required")

        comment = ShiftComment(shift_id=shift.id, user_id=identity.id, body=body)
        self.db.add(comment)
        self.db.commit()
        self.db.refresh(comment)
        return comment

    def list_comments(self, identity: User, shift_id: int) -> List[ShiftComment]:
        shift = self._get_shift(shift_id)
        self._authorize(identity, shift.schedule_id, can_view, "view comments")

        return self.db.query(ShiftComment).filter(
            ShiftComment.shift_id == shift_id
        ).order_by(ShiftComment.created_at, ShiftComment.id).all()

    # Templates

    def create_template(self, identity: User, schedule_id: int, name: str, definition: Dict[str, Any]) -> RotationTemplate:
        """Store a validated rotation template; templates are never edited afterwards"""
        self._get_schedule(schedule_id)
        self._authorize(identity, schedule_id, can_manage_schedule, "create templates", lock=True)

        name = (name or "").strip()
        if not name:
            raise ValidationError("name is required")
        slots = validate_definition(definition)

        template = RotationTemplate(
            schedule_id=schedule_id,
            name=name,
            definition=json.dumps(definition),
            created_by=identity.id
        )
        self.db.add(template)
        self.db.commit()
        self.db.refresh(template)

        logger.info(f"Template {template.id} '{name}' with {len(slots)} slots created in schedule {schedule_id}")
        return template

    def list_templates(self, identity: User, schedule_id: int) -> List[RotationTemplate]:
        self._get_schedule(schedule_id)
        self._authorize(identity, schedule_id, can_view, "view templates")

        return self.db.query(RotationTemplate).filter(
            RotationTemplate.schedule_id == schedule_id
        ).order_by(desc(RotationTemplate.created_at), desc(RotationTemplate.id)).all()

    def apply_template(self, identity: User, schedule_id: int, template_id: int, week_start: date) -> TemplateApplication:
        """
        Expand a template into shifts for the week starting at week_start

        Drafts that already exist as shifts are skipped, so applying the same
        template to the same week twice leaves one set of shifts. All inserts
        commit together. If a concurrent apply commits the same shifts first,
        the unique constraint fires; the whole attempt is rolled back and
        retried once, and the retry skips what the other request inserted.

        Args:
            identity: Calling user (admin of the schedule or superadmin)
            schedule_id: Schedule ID
            template_id: Template of that schedule
            week_start: Monday of the target week

        Returns:
            Created shifts and the number of skipped drafts
        """
        self._get_schedule(schedule_id)
        self._authorize(identity, schedule_id, can_manage_schedule, "apply templates")

        template = self.db.query(RotationTemplate).filter(RotationTemplate.id == template_id).first()
        if not template or template.schedule_id != schedule_id:
            raise NotFoundError("template not found")

        drafts = TemplateEngine(template.definition).expand(week_start)

        for attempt in (1, 2):
            # Re-checked on every attempt: a rollback releases the membership lock
            self._authorize(identity, schedule_id, can_manage_schedule, "apply templates", lock=True)
            try:
                result = self._insert_drafts(identity, schedule_id, drafts)
                self.db.commit()
                break
            except IntegrityError:
                self.db.rollback()
                if attempt == 2:
                    raise ConcurrencyError("template application conflicted with a concurrent change")
                logger.warning(f"Concurrent apply of template {template_id} for week {week_start}, retrying")

        for shift in result.created:
            self.db.refresh(shift)

        logger.info(
            f"Template {template_id} applied to schedule {schedule_id} for week {week_start}: "
            f"created {len(result.created)}, skipped {result.skipped}"
        )
        return result

    def _insert_drafts(self, identity: User, schedule_id: int, drafts) -> TemplateApplication:
        result = TemplateApplication()
        seen = set()

        for draft in drafts:
            # Duplicate slots inside one definition collapse into one shift
            if draft.key in seen or self._find_shift(schedule_id, draft.starts_at, draft.ends_at, draft.period):
                result.skipped += 1
                continue
            seen.add(draft.key)

            shift = Shift(
                schedule_id=schedule_id,
                starts_at=draft.starts_at,
                ends_at=draft.ends_at,
                period=draft.period,
                created_by=identity.id
            )
            self.db.add(shift)
            result.created.append(shift)

        self.db.flush()
        return result
