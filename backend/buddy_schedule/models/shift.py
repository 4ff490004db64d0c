from sqlalchemy import (
    Column, Integer, DateTime, ForeignKey, Enum as SQLEnum,
    CheckConstraint, UniqueConstraint, Index,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from buddy_schedule.database import Base
from buddy_schedule.models.types import UTCDateTime
import enum


class Period(str, enum.Enum):
    """Daily category a shift belongs to"""
    MORNING = "morning"
    AFTERNOON = "afternoon"
    NIGHT = "night"
    SLEEP = "sleep"


class Shift(Base):
    """Concrete time slot of a schedule.

    starts_at, ends_at and period never change after insert; only the
    assignment does.
    """
    __tablename__ = "shifts"

    id = Column(Integer, primary_key=True, index=True)
    schedule_id = Column(Integer, ForeignKey("schedules.id", ondelete="CASCADE"), nullable=False)
    starts_at = Column(UTCDateTime, nullable=False)
    ends_at = Column(UTCDateTime, nullable=False)
    period = Column(SQLEnum(Period, name="shift_period"), nullable=False)
    assigned_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    schedule = relationship("Schedule", back_populates="shifts")
    assigned_user = relationship("User", back_populates="assigned_shifts", foreign_keys=[assigned_user_id])
    comments = relationship(
        "ShiftComment",
        back_populates="shift",
        cascade="all, delete-orphan",
        order_by="ShiftComment.id",
    )

    __table_args__ = (
        CheckConstraint("ends_at > starts_at", name="ck_shift_time_ok"),
        UniqueConstraint("schedule_id", "starts_at", "ends_at", "period", name="uq_shift_slot"),
        Index("ix_shift_schedule_time", "schedule_id", "starts_at", "ends_at"),
    )
