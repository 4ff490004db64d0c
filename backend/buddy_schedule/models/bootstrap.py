from sqlalchemy import Column, Integer, ForeignKey, DateTime
from sqlalchemy.sql import func
from buddy_schedule.database import Base

# The only primary key value the table may ever hold
BOOTSTRAP_CLAIM_ID = 1


class BootstrapClaim(Base):
    """Single-row guard for the "first user becomes superadmin" rule.

    Inserted in the same transaction as the first user; a second concurrent
    insert fails on the primary key. The row outlives the user it names.
    """
    __tablename__ = "superadmin_bootstrap"

    id = Column(Integer, primary_key=True, autoincrement=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    claimed_at = Column(DateTime(timezone=True), server_default=func.now())
