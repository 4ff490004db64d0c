from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
from buddy_schedule.database import get_db
from buddy_schedule.models import User
from buddy_schedule.schemas.shift import (
    Shift as ShiftSchema,
    ShiftAssign,
    CommentCreate,
    ShiftComment as ShiftCommentSchema,
)
from buddy_schedule.services.schedule_service import ScheduleService
from buddy_schedule.auth.dependencies import get_current_user

router = APIRouter(prefix="/api/shifts", tags=["shifts"])


@router.get("/{shift_id}", response_model=ShiftSchema)
def get_shift(
    shift_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return ScheduleService(db).get_shift(current_user, shift_id)


@router.post("/{shift_id}/assign", response_model=ShiftSchema)
def assign_shift(
    shift_id: int,
    data: ShiftAssign,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Assign the shift to a member, or unassign it with null"""
    return ScheduleService(db).assign_shift(current_user, shift_id, data.assigned_user_id)


@router.get("/{shift_id}/comments", response_model=List[ShiftCommentSchema])
def list_comments(
    shift_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return ScheduleService(db).list_comments(current_user, shift_id)


@router.post("/{shift_id}/comments", response_model=ShiftCommentSchema, status_code=status.HTTP_201_CREATED)
def add_comment(
    shift_id: int,
    data: CommentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return ScheduleService(db).add_comment(current_user, shift_id, data.body)
