from pydantic import BaseModel
from datetime import datetime
from typing import Optional
from buddy_schedule.models.schedule_member import MemberRole
from buddy_schedule.schemas.user import User


class ScheduleBase(BaseModel):
    name: str
    subject_type: str
    subject_name: str


class ScheduleCreate(ScheduleBase):
    pass


class Schedule(ScheduleBase):
    id: int
    created_by: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ScheduleWithRole(BaseModel):
    """Schedule together with the caller's role in it"""
    schedule: Schedule
    role: MemberRole


class MemberAdd(BaseModel):
    email: str
    role: str = MemberRole.USER.value  # admin | user


class MemberRoleUpdate(BaseModel):
    role: str


class MemberWithRole(BaseModel):
    user: User
    role: MemberRole
