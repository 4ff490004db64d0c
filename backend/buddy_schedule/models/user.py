from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from buddy_schedule.database import Base


class User(Base):
    """Registered account"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, nullable=False, unique=True, index=True)
    password_hash = Column(String, nullable=False)
    is_superadmin = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    memberships = relationship("ScheduleMember", back_populates="user", cascade="all, delete-orphan")
    comments = relationship("ShiftComment", back_populates="author", cascade="all, delete-orphan")
    # No delete cascade: removing a user only clears assigned_user_id on these shifts
    assigned_shifts = relationship("Shift", back_populates="assigned_user", foreign_keys="Shift.assigned_user_id")
