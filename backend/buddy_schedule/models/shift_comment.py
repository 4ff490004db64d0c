from sqlalchemy import Column, Integer, Text, ForeignKey, DateTime, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from buddy_schedule.database import Base


class ShiftComment(Base):
    """Append-only note on a shift"""
    __tablename__ = "shift_comments"

    id = Column(Integer, primary_key=True, index=True)
    shift_id = Column(Integer, ForeignKey("shifts.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    body = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    shift = relationship("Shift", back_populates="comments")
    author = relationship("User", back_populates="comments")

    __table_args__ = (Index("ix_shift_comment_shift", "shift_id", "created_at"),)
