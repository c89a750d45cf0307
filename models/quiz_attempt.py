# backend/models/quiz_attempt.py

from datetime import datetime, timezone

from sqlalchemy import Column, String, Integer, DateTime, Numeric, ForeignKey
from db import Base


class QuizAttempt(Base):
    __tablename__ = "quiz_attempts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    topic_id = Column(String(64), nullable=False, index=True)
    score = Column(Numeric(5, 2, asdecimal=False), nullable=False)
    questions_correct = Column(Integer, nullable=False)
    questions_total = Column(Integer, nullable=False)
    difficulty = Column(Integer, nullable=False, default=1)
    time_spent = Column(Integer, nullable=False, default=0)  # seconds
    completed_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True)
