from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from buddy_schedule.database import Base


class RotationTemplate(Base):
    """Reusable weekly pattern of shift slots. Immutable once created."""
    __tablename__ = "rotation_templates"

    id = Column(Integer, primary_key=True, index=True)
    schedule_id = Column(Integer, ForeignKey("schedules.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    definition = Column(Text, nullable=False)  # JSON: {"slots": [{"dow", "period", "start", "end"}]}
    created_by = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    schedule = relationship("Schedule", back_populates="templates")
