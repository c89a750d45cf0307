# backend/models/course_progress.py

from sqlalchemy import Column, String, Integer, DateTime, Boolean, Numeric, ForeignKey, UniqueConstraint, func
from db import Base


class CourseProgress(Base):
    __tablename__ = "course_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "topic_id", name="uq_course_progress_user_topic"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    topic_id = Column(String(64), nullable=False)
    score = Column(Numeric(5, 2, asdecimal=False), nullable=False, default=0)
    questions_correct = Column(Integer, nullable=False, default=0)
    questions_total = Column(Integer, nullable=False, default=0)
    completed = Column(Boolean, nullable=False, default=False)
    difficulty = Column(Integer, nullable=False, default=1)
    last_accessed = Column(DateTime(timezone=True), server_default=func.now())
