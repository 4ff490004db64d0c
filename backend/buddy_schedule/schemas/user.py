from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class User(BaseModel):
    id: int
    email: str
    is_superadmin: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
