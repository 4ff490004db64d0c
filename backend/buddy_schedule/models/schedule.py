from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from buddy_schedule.database import Base


class Schedule(Base):
    """Shared schedule organised around one subject (person, family, pet...)"""
    __tablename__ = "schedules"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    subject_type = Column(String, nullable=False)
    subject_name = Column(String, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    members = relationship("ScheduleMember", back_populates="schedule", cascade="all, delete-orphan")
    templates = relationship("RotationTemplate", back_populates="schedule", cascade="all, delete-orphan")
    shifts = relationship("Shift", back_populates="schedule", cascade="all, delete-orphan")
