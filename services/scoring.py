"""
Session Scoring

points = base (1.0) x class-level multiplier + weekly diversity bonus

The diversity bonus rewards training several distinct session types inside
one Sunday-to-Sunday UTC week: +0.5 per extra type, capped at +1.5.
"""

from typing import Iterable, Tuple

from services.dates import parse_session_date, week_window

BASE_POINTS = 1.0

CLASS_LEVEL_MULTIPLIERS = {
    "Basic": 1.0,
    "Intermediate": 1.5,
    "Advanced": 2.0,
    "All Level": 1.3,
}
DEFAULT_MULTIPLIER = 1.0

DIVERSITY_BONUS_PER_EXTRA_TYPE = 0.5
MAX_DIVERSITY_BONUS = 1.5


def calculate_weekly_diversity_bonus(existing_sessions: Iterable, new_session) -> float:
    """
    Diversity bonus earned by ``new_session`` given the user's other sessions.

    Sessions are any objects exposing ``date`` and ``type`` (ORM rows,
    request payloads). Only sessions in the new session's week count.
    """
    week_start, week_end = week_window(new_session.date)

    week_types = {
        s.type
        for s in existing_sessions
        if week_start <= parse_session_date(s.date) < week_end
    }
    week_types.add(new_session.type)

    unique_type_count = len(week_types)
    if unique_type_count <= 1:
        return 0.0
    return min((unique_type_count - 1) * DIVERSITY_BONUS_PER_EXTRA_TYPE, MAX_DIVERSITY_BONUS)


def calculate_session_points(class_level: str, diversity_bonus: float) -> float:
    """Unrounded points for one session. Unknown class levels score as Basic."""
    multiplier = CLASS_LEVEL_MULTIPLIERS.get(class_level, DEFAULT_MULTIPLIER)
    return BASE_POINTS * multiplier + diversity_bonus


def score_new_session(existing_sessions: Iterable, new_session) -> Tuple[float, float]:
    """Return ``(diversity_bonus, points)`` for a session about to be inserted."""
    bonus = calculate_weekly_diversity_bonus(existing_sessions, new_session)
    return bonus, calculate_session_points(new_session.level, bonus)
