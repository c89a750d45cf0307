# backend/schemas.py
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class OrmModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# --------- Users ---------
class UserCreate(BaseModel):
    username: str = Field(..., min_length=1, max_length=64, examples=["ada"])


class UserUpdate(BaseModel):
    username: Optional[str] = Field(None, min_length=1, max_length=64)
    total_xp: Optional[int] = Field(None, ge=0)
    current_streak: Optional[int] = Field(None, ge=0)
    longest_streak: Optional[int] = Field(None, ge=0)
    overall_grade: Optional[float] = Field(None, ge=0, le=100)


class UserOut(OrmModel):
    id: int
    username: str
    total_xp: int
    level: int
    current_streak: int
    longest_streak: int
    last_active_date: Optional[datetime] = None
    overall_grade: float
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# --------- Course progress ---------
class CourseProgressUpdate(BaseModel):
    score: Optional[float] = Field(None, ge=0, le=100, examples=[80])
    questions_correct: Optional[int] = Field(None, ge=0)
    questions_total: Optional[int] = Field(None, ge=0)
    completed: Optional[bool] = None
    difficulty: Optional[int] = Field(None, ge=1)


class CourseProgressOut(OrmModel):
    id: int
    user_id: int
    topic_id: str
    score: float
    questions_correct: int
    questions_total: int
    completed: bool
    difficulty: int
    last_accessed: Optional[datetime] = None


# --------- Quiz attempts ---------
class QuizAttemptCreate(BaseModel):
    user_id: int = Field(..., examples=[1])
    topic_id: str = Field(..., min_length=1, max_length=64, examples=["numbers"])
    score: float = Field(..., ge=0, le=100, examples=[75])
    questions_correct: int = Field(..., ge=0, examples=[6])
    questions_total: int = Field(..., ge=0, examples=[8])
    difficulty: int = Field(1, ge=1)
    time_spent: int = Field(0, ge=0, description="Seconds spent on the quiz")

    @model_validator(mode="after")
    def correct_within_total(self):
        if self.questions_correct > self.questions_total:
            raise ValueError("questions_correct cannot exceed questions_total")
        return self


class QuizAttemptOut(OrmModel):
    id: int
    user_id: int
    topic_id: str
    score: float
    questions_correct: int
    questions_total: int
    difficulty: int
    time_spent: int
    completed_at: Optional[datetime] = None


# --------- Achievements ---------
class AchievementProgressUpdate(BaseModel):
    progress: int = Field(..., ge=0)


class AchievementOut(OrmModel):
    id: int
    user_id: int
    achievement_type: str
    title: str
    description: str
    icon: str
    progress: int
    max_progress: int
    unlocked: bool
    unlocked_at: Optional[datetime] = None
    xp_reward: int


# --------- Daily activity / practice ---------
class DailyActivityOut(OrmModel):
    id: int
    user_id: int
    date: date
    questions_answered: int
    time_spent: int
    xp_earned: int
    streak_maintained: bool


class PracticeQuestionOut(OrmModel):
    id: int
    topic_id: str
    difficulty: int
    question: str
    options: List[str]
    correct_answer: str
    explanation: Optional[str] = None


class DashboardOut(OrmModel):
    user: UserOut
    progress: List[CourseProgressOut]
    achievements: List[AchievementOut]
    recent_activity: List[DailyActivityOut]
