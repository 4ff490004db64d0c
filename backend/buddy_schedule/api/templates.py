from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
from buddy_schedule.database import get_db
from buddy_schedule.models import User
from buddy_schedule.schemas.rotation_template import (
    RotationTemplate as RotationTemplateSchema,
    RotationTemplateCreate,
    TemplateApply,
    TemplateApplyResult,
)
from buddy_schedule.schemas.shift import Shift as ShiftSchema
from buddy_schedule.services.schedule_service import ScheduleService
from buddy_schedule.auth.dependencies import get_current_user

router = APIRouter(prefix="/api/schedules/{schedule_id}/templates", tags=["templates"])


@router.get("", response_model=List[RotationTemplateSchema])
def list_templates(
    schedule_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return ScheduleService(db).list_templates(current_user, schedule_id)


@router.post("", response_model=RotationTemplateSchema, status_code=status.HTTP_201_CREATED)
def create_template(
    schedule_id: int,
    data: RotationTemplateCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Store a weekly rotation pattern for the schedule"""
    return ScheduleService(db).create_template(current_user, schedule_id, data.name, data.definition)


@router.post("/{template_id}/apply", response_model=TemplateApplyResult, status_code=status.HTTP_201_CREATED)
def apply_template(
    schedule_id: int,
    template_id: int,
    data: TemplateApply,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Create the template's shifts for one week; shifts that already exist are skipped"""
    result = ScheduleService(db).apply_template(current_user, schedule_id, template_id, data.week_start)
    return TemplateApplyResult(
        created=[ShiftSchema.model_validate(shift) for shift in result.created],
        skipped=result.skipped
    )
