# backend/storage.py
import logging
from datetime import date, datetime, timedelta, timezone
from functools import wraps
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from errors import NotFoundError
from logic.progress import (
    DEFAULT_ACHIEVEMENTS,
    STREAK_WINDOW_DAYS,
    XP_PER_LEVEL,
    compute_streaks,
    is_completed,
    level_for_xp,
    overall_grade,
    seconds_to_minutes,
    xp_for_score,
)
from models import Achievement, CourseProgress, DailyActivity, PracticeQuestion, QuizAttempt, User

logger = logging.getLogger(__name__)

USER_FIELDS = {
    "username", "total_xp", "current_streak",
    "longest_streak", "last_active_date", "overall_grade",
}
PROGRESS_FIELDS = {"score", "questions_correct", "questions_total", "completed", "difficulty"}


def _now():
    return datetime.now(timezone.utc)


def _check_fields(fields, allowed, entity):
    unknown = set(fields) - allowed
    if unknown:
        raise TypeError(f"Unknown {entity} field(s): {', '.join(sorted(unknown))}")


def transactional(fn):
    """Commit when the outermost gateway call returns; roll back and re-raise on failure.

    Gateway methods called from inside another transactional method join its
    transaction, so a cascade commits all of its writes or none of them.
    """
    @wraps(fn)
    def wrapper(self, *args, **kwargs):
        if self._in_transaction:
            return fn(self, *args, **kwargs)

        self._in_transaction = True
        try:
            result = fn(self, *args, **kwargs)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        finally:
            self._in_transaction = False
        return result
    return wrapper


class Storage:
    """Data-access gateway over one SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db
        self._in_transaction = False

    def _insert(self, model):
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert(model)
        if dialect == "sqlite":
            return sqlite.insert(model)
        raise NotImplementedError(f"Upserts are not supported on {dialect}")

    # --------- Users ---------
    def get_user(self, user_id: int) -> Optional[User]:
        return self.db.get(User, user_id, populate_existing=True)

    def get_user_by_username(self, username: str) -> Optional[User]:
        return self.db.scalars(select(User).where(User.username == username)).first()

    @transactional
    def create_user(self, username: str) -> User:
        user = User(username=username)
        self.db.add(user)
        self.db.flush()

        self.db.add_all([Achievement(user_id=user.id, **defaults) for defaults in DEFAULT_ACHIEVEMENTS])
        self.db.flush()
        self.db.refresh(user)

        logger.info("Created user %s (%s) with %d achievements", user.id, username, len(DEFAULT_ACHIEVEMENTS))
        return user

    @transactional
    def update_user(self, user_id: int, **fields) -> User:
        _check_fields(fields, USER_FIELDS, "user")
        user = self.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found")

        if "total_xp" in fields:
            fields["level"] = level_for_xp(fields["total_xp"])

        for name, value in fields.items():
            setattr(user, name, value)
        user.updated_at = _now()
        self.db.flush()
        return user

    # --------- Course progress ---------
    def get_course_progress(self, user_id: int, topic_id: Optional[str] = None) -> List[CourseProgress]:
        query = select(CourseProgress).where(CourseProgress.user_id == user_id)
        if topic_id:
            query = query.where(CourseProgress.topic_id == topic_id)
        query = query.order_by(CourseProgress.id).execution_options(populate_existing=True)
        return list(self.db.scalars(query))

    @transactional
    def update_course_progress(self, user_id: int, topic_id: str, **fields) -> CourseProgress:
        _check_fields(fields, PROGRESS_FIELDS, "course progress")
        now = _now()

        stmt = self._insert(CourseProgress).values(
            user_id=user_id, topic_id=topic_id, last_accessed=now, **fields
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "topic_id"],
            set_={**fields, "last_accessed": now},
        )
        self.db.execute(stmt)
        logger.debug("Upserted progress for user %s topic %s: %s", user_id, topic_id, fields)

        return self.get_course_progress(user_id, topic_id)[0]

    # --------- Achievements ---------
    def get_user_achievements(self, user_id: int) -> List[Achievement]:
        query = (
            select(Achievement)
            .where(Achievement.user_id == user_id)
            .order_by(Achievement.id)
            .execution_options(populate_existing=True)
        )
        return list(self.db.scalars(query))

    def _get_achievement(self, user_id: int, achievement_type: str) -> Achievement:
        query = (
            select(Achievement)
            .where(Achievement.user_id == user_id, Achievement.achievement_type == achievement_type)
            .execution_options(populate_existing=True)
        )
        achievement = self.db.scalars(query).first()
        if achievement is None:
            raise NotFoundError("Achievement not found")
        return achievement

    @transactional
    def update_achievement(self, user_id: int, achievement_type: str, progress: int) -> Achievement:
        achievement = self._get_achievement(user_id, achievement_type)
        achievement.progress = progress
        self.db.flush()
        return achievement

    @transactional
    def unlock_achievement(self, user_id: int, achievement_type: str) -> Achievement:
        achievement = self._get_achievement(user_id, achievement_type)

        # Only the call that flips unlocked false -> true awards XP.
        result = self.db.execute(
            update(Achievement)
            .where(Achievement.id == achievement.id, Achievement.unlocked.is_(False))
            .values(unlocked=True, unlocked_at=_now())
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 1 and achievement.xp_reward > 0:
            new_total = User.total_xp + achievement.xp_reward
            self.db.execute(
                update(User)
                .where(User.id == user_id)
                .values(total_xp=new_total, level=new_total // XP_PER_LEVEL + 1, updated_at=_now())
                .execution_options(synchronize_session=False)
            )
            logger.info("User %s unlocked %s (+%d XP)", user_id, achievement_type, achievement.xp_reward)
        elif result.rowcount == 0:
            logger.info("User %s already unlocked %s", user_id, achievement_type)

        return self._get_achievement(user_id, achievement_type)

    # --------- Quiz attempts ---------
    @transactional
    def save_quiz_attempt(self, **attempt) -> QuizAttempt:
        quiz_attempt = QuizAttempt(**attempt)
        self.db.add(quiz_attempt)
        self.db.flush()

        self.update_course_progress(
            quiz_attempt.user_id,
            quiz_attempt.topic_id,
            score=quiz_attempt.score,
            questions_correct=quiz_attempt.questions_correct,
            questions_total=quiz_attempt.questions_total,
            completed=is_completed(quiz_attempt.score),
            difficulty=quiz_attempt.difficulty,
        )
        self.update_daily_activity(
            quiz_attempt.user_id,
            questions_answered=quiz_attempt.questions_total,
            time_spent=seconds_to_minutes(quiz_attempt.time_spent or 0),
            xp_earned=xp_for_score(quiz_attempt.score),
        )
        return quiz_attempt

    def get_quiz_attempts(self, user_id: int, topic_id: Optional[str] = None) -> List[QuizAttempt]:
        query = select(QuizAttempt).where(QuizAttempt.user_id == user_id)
        if topic_id:
            query = query.where(QuizAttempt.topic_id == topic_id)
        query = query.order_by(QuizAttempt.completed_at.desc(), QuizAttempt.id.desc())
        return list(self.db.scalars(query))

    # --------- Daily activity ---------
    @transactional
    def update_daily_activity(self, user_id: int, questions_answered: int = 0,
                              time_spent: int = 0, xp_earned: int = 0) -> DailyActivity:
        today = date.today()
        table = DailyActivity.__table__

        # Only decides whether to rescan the streak; the write below is the atomic part.
        existing_id = self.db.scalar(
            select(DailyActivity.id).where(DailyActivity.user_id == user_id, DailyActivity.date == today)
        )

        stmt = self._insert(DailyActivity).values(
            user_id=user_id,
            date=today,
            questions_answered=questions_answered,
            time_spent=time_spent,
            xp_earned=xp_earned,
            streak_maintained=True,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "date"],
            set_={
                "questions_answered": table.c.questions_answered + questions_answered,
                "time_spent": table.c.time_spent + time_spent,
                "xp_earned": table.c.xp_earned + xp_earned,
                "streak_maintained": True,
            },
        )
        self.db.execute(stmt)

        if existing_id is None:
            self.update_user_streak(user_id)

        query = (
            select(DailyActivity)
            .where(DailyActivity.user_id == user_id, DailyActivity.date == today)
            .execution_options(populate_existing=True)
        )
        return self.db.scalars(query).one()

    def get_daily_activity(self, user_id: int, days: int = 7) -> List[DailyActivity]:
        # `days` calendar days including today
        start_date = date.today() - timedelta(days=days - 1)
        query = (
            select(DailyActivity)
            .where(DailyActivity.user_id == user_id, DailyActivity.date >= start_date)
            .order_by(DailyActivity.date.desc())
            .execution_options(populate_existing=True)
        )
        return list(self.db.scalars(query))

    @transactional
    def update_user_streak(self, user_id: int) -> User:
        activities = self.get_daily_activity(user_id, STREAK_WINDOW_DAYS)
        current, longest = compute_streaks(a.streak_maintained for a in activities)
        logger.debug("Streak for user %s: current=%d longest=%d", user_id, current, longest)
        return self.update_user(
            user_id,
            current_streak=current,
            longest_streak=longest,
            last_active_date=_now(),
        )

    # --------- Practice questions ---------
    def get_practice_questions(self, topic_id: str, difficulty: Optional[int] = None) -> List[PracticeQuestion]:
        query = select(PracticeQuestion).where(PracticeQuestion.topic_id == topic_id)
        if difficulty is not None:
            query = query.where(PracticeQuestion.difficulty == difficulty)
        return list(self.db.scalars(query.order_by(PracticeQuestion.id)))

    # --------- Dashboard ---------
    @transactional
    def get_dashboard_data(self, user_id: int) -> dict:
        user = self.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found")

        progress = self.get_course_progress(user_id)
        achievements = self.get_user_achievements(user_id)
        recent_activity = self.get_daily_activity(user_id, 7)

        grade = overall_grade([p.score for p in progress if p.completed])
        if grade != float(user.overall_grade or 0):
            user = self.update_user(user_id, overall_grade=grade)

        return {
            "user": user,
            "progress": progress,
            "achievements": achievements,
            "recent_activity": recent_activity,
        }
