import math
from typing import Iterable, List, Tuple

XP_PER_LEVEL = 100
PASSING_SCORE = 70
STREAK_WINDOW_DAYS = 30

# Seeded for every new user
DEFAULT_ACHIEVEMENTS = [
    {
        "achievement_type": "number_master",
        "title": "Number Master",
        "description": "Complete the Numbers topic",
        "icon": "🔢",
        "max_progress": 1,
        "xp_reward": 100,
    },
    {
        "achievement_type": "perfect_score",
        "title": "Perfect Score",
        "description": "Get 100% on 5 topics",
        "icon": "⭐",
        "max_progress": 5,
        "xp_reward": 250,
    },
    {
        "achievement_type": "streak_master",
        "title": "Streak Master",
        "description": "7 day learning streak",
        "icon": "🔥",
        "max_progress": 7,
        "xp_reward": 200,
    },
    {
        "achievement_type": "math_graduate",
        "title": "Math Graduate",
        "description": "Complete all 8 topics",
        "icon": "🎓",
        "max_progress": 8,
        "xp_reward": 500,
    },
]


def level_for_xp(total_xp: int) -> int:
    return total_xp // XP_PER_LEVEL + 1


def is_completed(score) -> bool:
    return float(score) >= PASSING_SCORE


def seconds_to_minutes(seconds: int) -> int:
    return seconds // 60


def xp_for_score(score) -> int:
    return math.floor(float(score))


def compute_streaks(maintained: Iterable[bool]) -> Tuple[int, int]:
    """
    Walk daily-activity flags ordered most recent first.

    Returns (current, longest): `current` is the run of maintained days at the
    head of the sequence, `longest` the longest run anywhere in it.
    """
    current = 0
    longest = 0
    run = 0
    leading = True

    for flag in maintained:
        if flag:
            run += 1
            if leading:
                current = run
        else:
            leading = False
            longest = max(longest, run)
            run = 0

    longest = max(longest, run)
    return current, longest


def overall_grade(completed_scores: List[float]) -> float:
    if not completed_scores:
        return 0.0
    # Stored as NUMERIC(5, 2)
    return round(sum(float(s) for s in completed_scores) / len(completed_scores), 2)
