# backend/models/daily_activity.py

from sqlalchemy import Column, Integer, Date, Boolean, ForeignKey, UniqueConstraint
from db import Base


class DailyActivity(Base):
    __tablename__ = "daily_activity"
    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_daily_activity_user_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    questions_answered = Column(Integer, nullable=False, default=0)
    time_spent = Column(Integer, nullable=False, default=0)  # minutes
    xp_earned = Column(Integer, nullable=False, default=0)
    streak_maintained = Column(Boolean, nullable=False, default=False)
