from pydantic import BaseModel, field_validator
from datetime import date, datetime
from typing import Dict, Any, List, Optional
from buddy_schedule.schemas.shift import Shift
import json


class RotationTemplateCreate(BaseModel):
    name: str
    definition: Dict[str, Any]  # {"slots": [{"dow": 0, "period": "morning", "start": "08:00", "end": "12:00"}]}


class RotationTemplate(BaseModel):
    id: int
    schedule_id: int
    name: str
    definition: Dict[str, Any]
    created_by: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator('definition', mode='before')
    @classmethod
    def decode_definition(cls, v):
        # Stored as JSON text in the database
        if isinstance(v, str):
            return json.loads(v)
        return v


class TemplateApply(BaseModel):
    week_start: date  # Monday of the target week, YYYY-MM-DD


class TemplateApplyResult(BaseModel):
    created: List[Shift]
    skipped: int
