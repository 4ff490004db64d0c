from pydantic import BaseModel
from datetime import datetime
from typing import Optional
from buddy_schedule.models.shift import Period


class ShiftCreate(BaseModel):
    starts_at: datetime
    ends_at: datetime
    period: str  # morning | afternoon | night | sleep


class Shift(BaseModel):
    id: int
    schedule_id: int
    starts_at: datetime
    ends_at: datetime
    period: Period
    assigned_user_id: Optional[int] = None
    created_by: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ShiftAssign(BaseModel):
    """null clears the assignment"""
    assigned_user_id: Optional[int] = None


class CommentCreate(BaseModel):
    body: str


class ShiftComment(BaseModel):
    id: int
    shift_id: int
    user_id: int
    body: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
