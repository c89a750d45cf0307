from datetime import date, timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from errors import NotFoundError
from models import CourseProgress, DailyActivity, PracticeQuestion


def _attempt(user_id, **overrides):
    attempt = {
        "user_id": user_id,
        "topic_id": "numbers",
        "score": 75,
        "questions_correct": 6,
        "questions_total": 8,
        "difficulty": 2,
        "time_spent": 125,
    }
    attempt.update(overrides)
    return attempt


def test_create_user_seeds_default_achievements(storage, user):
    assert user.total_xp == 0
    assert user.level == 1

    achievements = storage.get_user_achievements(user.id)
    assert {a.achievement_type for a in achievements} == {
        "number_master", "perfect_score", "streak_master", "math_graduate",
    }
    assert all(not a.unlocked and a.progress == 0 for a in achievements)
    assert storage.get_user_by_username("ada").id == user.id


def test_create_user_rejects_duplicate_username(storage, user):
    with pytest.raises(IntegrityError):
        storage.create_user("ada")
    # The failed insert rolled back cleanly; the session is still usable.
    assert storage.get_user(user.id).username == "ada"


def test_update_user_recomputes_level(storage, user):
    updated = storage.update_user(user.id, total_xp=250)
    assert updated.total_xp == 250
    assert updated.level == 3
    assert updated.updated_at is not None


def test_update_unknown_user(storage):
    with pytest.raises(NotFoundError):
        storage.update_user(404, total_xp=10)


def test_unlock_awards_xp_and_levels_up(storage, user):
    storage.update_user(user.id, total_xp=250)

    achievement = storage.unlock_achievement(user.id, "number_master")

    assert achievement.unlocked
    assert achievement.unlocked_at is not None
    refreshed = storage.get_user(user.id)
    assert refreshed.total_xp == 350
    assert refreshed.level == 4


def test_unlock_twice_awards_xp_once(storage, user):
    storage.unlock_achievement(user.id, "streak_master")
    storage.unlock_achievement(user.id, "streak_master")

    refreshed = storage.get_user(user.id)
    assert refreshed.total_xp == 200
    assert refreshed.level == 3


def test_unlock_unknown_achievement(storage, user):
    with pytest.raises(NotFoundError):
        storage.unlock_achievement(user.id, "speed_demon")


def test_update_achievement_sets_progress_only(storage, user):
    achievement = storage.update_achievement(user.id, "perfect_score", 3)
    assert achievement.progress == 3
    assert not achievement.unlocked
    assert storage.get_user(user.id).total_xp == 0


def test_update_course_progress_upserts_single_row(storage, session, user):
    first = storage.update_course_progress(user.id, "numbers", score=80)
    second = storage.update_course_progress(user.id, "numbers", score=90, completed=True)

    count = session.scalar(
        select(func.count()).select_from(CourseProgress).where(
            CourseProgress.user_id == user.id, CourseProgress.topic_id == "numbers"
        )
    )
    assert count == 1
    assert first.id == second.id
    assert second.score == 90
    assert second.completed


def test_get_course_progress_filters_by_topic(storage, user):
    storage.update_course_progress(user.id, "numbers", score=80)
    storage.update_course_progress(user.id, "fractions", score=40)

    assert len(storage.get_course_progress(user.id)) == 2
    [fractions] = storage.get_course_progress(user.id, "fractions")
    assert fractions.score == 40
    assert not fractions.completed


def test_save_quiz_attempt_marks_passing_topic_completed(storage, user):
    attempt = storage.save_quiz_attempt(**_attempt(user.id, score=75))

    assert attempt.id is not None
    [progress] = storage.get_course_progress(user.id, "numbers")
    assert progress.completed
    assert progress.score == 75
    assert progress.questions_correct == 6
    assert progress.difficulty == 2

    [activity] = storage.get_daily_activity(user.id)
    assert activity.questions_answered == 8
    assert activity.time_spent == 2
    assert activity.xp_earned == 75


def test_save_quiz_attempt_below_threshold_not_completed(storage, user):
    storage.save_quiz_attempt(**_attempt(user.id, score=65))
    [progress] = storage.get_course_progress(user.id, "numbers")
    assert not progress.completed


def test_save_quiz_attempt_is_all_or_nothing(storage, monkeypatch, user):
    def fail(*args, **kwargs):
        raise RuntimeError("activity write failed")

    monkeypatch.setattr(storage, "update_daily_activity", fail)

    with pytest.raises(RuntimeError):
        storage.save_quiz_attempt(**_attempt(user.id))

    assert storage.get_quiz_attempts(user.id) == []
    assert storage.get_course_progress(user.id) == []


def test_get_quiz_attempts_newest_first(storage, user):
    storage.save_quiz_attempt(**_attempt(user.id, topic_id="numbers", score=50))
    storage.save_quiz_attempt(**_attempt(user.id, topic_id="fractions", score=60))
    storage.save_quiz_attempt(**_attempt(user.id, topic_id="numbers", score=90))

    attempts = storage.get_quiz_attempts(user.id)
    assert [a.score for a in attempts] == [90, 60, 50]

    numbers = storage.get_quiz_attempts(user.id, "numbers")
    assert [a.score for a in numbers] == [90, 50]


def test_daily_activity_accumulates_on_same_day(storage, session, user):
    storage.update_daily_activity(user.id, questions_answered=5, time_spent=3, xp_earned=40)
    activity = storage.update_daily_activity(user.id, questions_answered=3)

    count = session.scalar(
        select(func.count()).select_from(DailyActivity).where(DailyActivity.user_id == user.id)
    )
    assert count == 1
    assert activity.date == date.today()
    assert activity.questions_answered == 8
    assert activity.time_spent == 3
    assert activity.xp_earned == 40
    assert activity.streak_maintained

    refreshed = storage.get_user(user.id)
    assert refreshed.current_streak == 1
    assert refreshed.longest_streak == 1
    assert refreshed.last_active_date is not None


def test_daily_activity_updates_streak(storage, session, user):
    today = date.today()
    session.add_all([
        DailyActivity(user_id=user.id, date=today - timedelta(days=1), streak_maintained=True),
        DailyActivity(user_id=user.id, date=today - timedelta(days=2), streak_maintained=False),
        DailyActivity(user_id=user.id, date=today - timedelta(days=3), streak_maintained=True),
    ])
    session.commit()

    storage.update_daily_activity(user.id, questions_answered=1)

    refreshed = storage.get_user(user.id)
    assert refreshed.current_streak == 2
    assert refreshed.longest_streak == 2


def test_get_daily_activity_window(storage, session, user):
    today = date.today()
    session.add_all([
        DailyActivity(user_id=user.id, date=today - timedelta(days=2), streak_maintained=True),
        DailyActivity(user_id=user.id, date=today - timedelta(days=10), streak_maintained=True),
    ])
    session.commit()

    assert [a.date for a in storage.get_daily_activity(user.id)] == [today - timedelta(days=2)]
    assert len(storage.get_daily_activity(user.id, days=30)) == 2


def test_get_practice_questions_filters_by_difficulty(storage, session):
    session.add_all([
        PracticeQuestion(topic_id="numbers", difficulty=1, question="1 + 1?", options=["1", "2"], correct_answer="2"),
        PracticeQuestion(topic_id="numbers", difficulty=2, question="3 x 3?", options=["6", "9"], correct_answer="9"),
        PracticeQuestion(topic_id="fractions", difficulty=1, question="1/2 + 1/2?", options=["1", "2"], correct_answer="1"),
    ])
    session.commit()

    assert len(storage.get_practice_questions("numbers")) == 2
    [hard] = storage.get_practice_questions("numbers", difficulty=2)
    assert hard.correct_answer == "9"
    assert storage.get_practice_questions("geometry") == []


def test_dashboard_persists_overall_grade(storage, user):
    storage.update_course_progress(user.id, "numbers", score=100, completed=True)
    storage.update_course_progress(user.id, "fractions", score=80, completed=True)
    storage.update_course_progress(user.id, "decimals", score=60, completed=True)
    storage.update_course_progress(user.id, "geometry", score=20, completed=False)

    dashboard = storage.get_dashboard_data(user.id)

    assert dashboard["user"].overall_grade == 80
    assert len(dashboard["progress"]) == 4
    assert len(dashboard["achievements"]) == 4
    assert dashboard["recent_activity"] == []
    storage.db.expire_all()
    assert storage.get_user(user.id).overall_grade == 80


def test_dashboard_grade_is_zero_without_completed_topics(storage, user):
    storage.update_course_progress(user.id, "numbers", score=40)
    assert storage.get_dashboard_data(user.id)["user"].overall_grade == 0


def test_dashboard_unknown_user(storage):
    with pytest.raises(NotFoundError):
        storage.get_dashboard_data(12345)


def test_create_user_rolls_back_when_seeding_fails(storage, monkeypatch):
    monkeypatch.setattr("storage.DEFAULT_ACHIEVEMENTS", [
        {"achievement_type": "broken", "title": "Broken", "no_such_column": 1},
    ])

    with pytest.raises(TypeError):
        storage.create_user("grace")

    assert storage.get_user_by_username("grace") is None


def test_update_user_rejects_level(storage, user):
    with pytest.raises(TypeError):
        storage.update_user(user.id, level=9)
    assert storage.get_user(user.id).level == 1


def test_get_daily_activity_covers_exactly_days(storage, session, user):
    today = date.today()
    session.add_all([
        DailyActivity(user_id=user.id, date=today - timedelta(days=6), streak_maintained=True),
        DailyActivity(user_id=user.id, date=today - timedelta(days=7), streak_maintained=True),
    ])
    session.commit()

    assert [a.date for a in storage.get_daily_activity(user.id, days=7)] == [today - timedelta(days=6)]
    assert len(storage.get_daily_activity(user.id, days=8)) == 2


def test_streak_scan_reads_at_most_thirty_days(storage, session, user):
    today = date.today()
    session.add_all([
        DailyActivity(user_id=user.id, date=today - timedelta(days=offset), streak_maintained=True)
        for offset in range(1, 41)
    ])
    session.commit()

    storage.update_daily_activity(user.id, questions_answered=1)

    refreshed = storage.get_user(user.id)
    assert refreshed.current_streak == 30
    assert refreshed.longest_streak == 30


def test_streak_recomputed_only_on_first_activity_of_the_day(storage, user):
    storage.update_daily_activity(user.id, questions_answered=2)
    storage.update_user(user.id, current_streak=5)

    storage.update_daily_activity(user.id, questions_answered=3)

    assert storage.get_user(user.id).current_streak == 5
