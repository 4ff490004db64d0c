from sqlalchemy import Column, Integer, ForeignKey, DateTime, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from buddy_schedule.database import Base
import enum


class MemberRole(str, enum.Enum):
    """Per-schedule role"""
    ADMIN = "admin"
    USER = "user"


class ScheduleMember(Base):
    """Membership of a user in a schedule; one role per (schedule, user) pair"""
    __tablename__ = "schedule_members"

    schedule_id = Column(Integer, ForeignKey("schedules.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    role = Column(SQLEnum(MemberRole, name="member_role"), nullable=False, default=MemberRole.USER)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    schedule = relationship("Schedule", back_populates="members")
    user = relationship("User", back_populates="memberships")
