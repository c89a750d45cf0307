# backend/models/achievement.py

from sqlalchemy import Column, String, Integer, DateTime, Boolean, ForeignKey, UniqueConstraint
from db import Base


class Achievement(Base):
    __tablename__ = "achievements"
    __table_args__ = (
        UniqueConstraint("user_id", "achievement_type", name="uq_achievements_user_type"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    achievement_type = Column(String(64), nullable=False)
    title = Column(String(128), nullable=False)
    description = Column(String(255), nullable=False, default="")
    icon = Column(String(16), nullable=False, default="")
    progress = Column(Integer, nullable=False, default=0)
    max_progress = Column(Integer, nullable=False, default=1)
    unlocked = Column(Boolean, nullable=False, default=False)
    unlocked_at = Column(DateTime(timezone=True), nullable=True)
    xp_reward = Column(Integer, nullable=False, default=0)
