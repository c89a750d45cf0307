# Importing every model registers its table on Base.metadata.
from models.user import User
from models.course_progress import CourseProgress
from models.achievement import Achievement
from models.quiz_attempt import QuizAttempt
from models.daily_activity import DailyActivity
from models.practice_question import PracticeQuestion

__all__ = [
    "User",
    "CourseProgress",
    "Achievement",
    "QuizAttempt",
    "DailyActivity",
    "PracticeQuestion",
]
