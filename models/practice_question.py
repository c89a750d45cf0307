# backend/models/practice_question.py

from sqlalchemy import Column, String, Integer, Text, JSON
from db import Base


class PracticeQuestion(Base):
    __tablename__ = "practice_questions"

    id = Column(Integer, primary_key=True, index=True)
    topic_id = Column(String(64), nullable=False, index=True)
    difficulty = Column(Integer, nullable=False, default=1, index=True)
    question = Column(Text, nullable=False)
    options = Column(JSON, nullable=False, default=list)
    correct_answer = Column(String(255), nullable=False)
    explanation = Column(Text, nullable=True)
