from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session
from typing import List
from datetime import datetime
from buddy_schedule.database import get_db
from buddy_schedule.models import User
from buddy_schedule.schemas.schedule import (
    Schedule as ScheduleSchema,
    ScheduleCreate,
    ScheduleWithRole,
    MemberAdd,
    MemberRoleUpdate,
    MemberWithRole,
)
from buddy_schedule.schemas.shift import Shift as ShiftSchema, ShiftCreate
from buddy_schedule.schemas.user import User as UserSchema
from buddy_schedule.services.schedule_service import ScheduleService
from buddy_schedule.auth.dependencies import get_current_user

router = APIRouter(prefix="/api/schedules", tags=["schedules"])


@router.get("", response_model=List[ScheduleWithRole])
def list_schedules(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Schedules of the current user with their role in each"""
    service = ScheduleService(db)
    return [
        ScheduleWithRole(schedule=ScheduleSchema.model_validate(schedule), role=role)
        for schedule, role in service.list_schedules(current_user)
    ]


@router.post("", response_model=ScheduleSchema, status_code=status.HTTP_201_CREATED)
def create_schedule(
    data: ScheduleCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Create a schedule; the creator becomes its admin"""
    service = ScheduleService(db)
    return service.create_schedule(current_user, data.name, data.subject_type, data.subject_name)


@router.get("/{schedule_id}", response_model=ScheduleSchema)
def get_schedule(
    schedule_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return ScheduleService(db).get_schedule(current_user, schedule_id)


@router.delete("/{schedule_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_schedule(
    schedule_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Delete a schedule with everything that belongs to it"""
    ScheduleService(db).delete_schedule(current_user, schedule_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{schedule_id}/members", response_model=List[MemberWithRole])
def list_members(
    schedule_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    service = ScheduleService(db)
    return [
        MemberWithRole(user=UserSchema.model_validate(user), role=role)
        for user, role in service.list_members(current_user, schedule_id)
    ]


@router.post("/{schedule_id}/members", status_code=status.HTTP_204_NO_CONTENT)
def add_member(
    schedule_id: int,
    data: MemberAdd,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Add a registered user to the schedule by email"""
    ScheduleService(db).add_member(current_user, schedule_id, data.email, data.role)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{schedule_id}/members/{user_id}/role", status_code=status.HTTP_204_NO_CONTENT)
def set_member_role(
    schedule_id: int,
    user_id: int,
    data: MemberRoleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    ScheduleService(db).set_member_role(current_user, schedule_id, user_id, data.role)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{schedule_id}/shifts", response_model=List[ShiftSchema])
def list_shifts(
    schedule_id: int,
    start: datetime = Query(..., alias="from", description="Range start (inclusive), RFC 3339"),
    end: datetime = Query(..., alias="to", description="Range end (exclusive), RFC 3339"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Shifts starting in [from, to), ordered by start time"""
    return ScheduleService(db).list_shifts(current_user, schedule_id, start, end)


@router.post("/{schedule_id}/shifts", response_model=ShiftSchema, status_code=status.HTTP_201_CREATED)
def create_shift(
    schedule_id: int,
    data: ShiftCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    service = ScheduleService(db)
    return service.create_shift(current_user, schedule_id, data.starts_at, data.ends_at, data.period)
