"""
Tests for session scoring: class-level multipliers and the weekly
diversity bonus.
"""
from collections import namedtuple
from datetime import date, timedelta

import pytest

from services.scoring import (
    calculate_session_points,
    calculate_weekly_diversity_bonus,
    score_new_session,
)

S = namedtuple("S", ["date", "type", "level"])


def _session(day, session_type, level="Basic"):
    return S(day, session_type, level)


class TestCalculateSessionPoints:
    @pytest.mark.parametrize("level,expected", [
        ("Basic", 1.0),
        ("Intermediate", 1.5),
        ("Advanced", 2.0),
        ("All Level", 1.3),
    ])
    def test_multipliers(self, level, expected):
        assert calculate_session_points(level, 0) == pytest.approx(expected)

    def test_advanced_without_bonus_is_two_points(self):
        assert calculate_session_points("Advanced", 0) == 2.0

    def test_unknown_level_scores_as_basic(self):
        assert calculate_session_points("Unknown", 0) == 1.0

    def test_bonus_is_added_unrounded(self):
        assert calculate_session_points("All Level", 0.5) == pytest.approx(1.8)


class TestWeeklyDiversityBonus:
    # Week of Sunday 2025-01-05 .. Saturday 2025-01-11
    @pytest.mark.parametrize("types,expected", [
        (["Boxing"], 0.0),
        (["Boxing", "BJJ"], 0.5),
        (["Boxing", "BJJ", "MMA"], 1.0),
        (["Boxing", "BJJ", "MMA", "Judo"], 1.5),
        (["Boxing", "BJJ", "MMA", "Judo", "K1"], 1.5),
        (["Boxing", "BJJ", "MMA", "Judo", "K1", "Cardio"], 1.5),
    ])
    def test_bonus_by_unique_type_count(self, types, expected):
        existing = [
            _session(date(2025, 1, 6) + timedelta(days=i % 5), t)
            for i, t in enumerate(types[:-1])
        ]
        new = _session("2025-01-10", types[-1])
        assert calculate_weekly_diversity_bonus(existing, new) == expected

    def test_repeated_type_counts_once(self):
        existing = [
            _session("2025-01-06", "Boxing"),
            _session("2025-01-07", "BJJ"),
            _session("2025-01-08", "Boxing"),
        ]
        new = _session("2025-01-09", "MMA")
        assert calculate_weekly_diversity_bonus(existing, new) == 1.0

    def test_sessions_from_other_weeks_ignored(self):
        existing = [
            _session("2025-01-04", "BJJ"),  # Saturday, previous week
            _session("2025-01-12", "Judo"),  # next Sunday
        ]
        new = _session("2025-01-08", "Boxing")
        assert calculate_weekly_diversity_bonus(existing, new) == 0.0

    def test_sunday_boundary_belongs_to_new_week(self):
        existing = [_session("2025-01-11", "BJJ")]  # Saturday
        new = _session("2025-01-12", "Boxing")  # Sunday
        assert calculate_weekly_diversity_bonus(existing, new) == 0.0

    def test_local_evening_timestamp_buckets_by_utc_day(self):
        # Saturday 21:00 in UTC-5 is Sunday 02:00 UTC: a new week
        existing = [_session("2025-01-11", "BJJ")]
        new = _session("2025-01-11T21:00:00-05:00", "Boxing")
        assert calculate_weekly_diversity_bonus(existing, new) == 0.0

    def test_mixed_date_representations(self):
        existing = [_session(date(2025, 1, 6), "BJJ")]
        new = _session("2025-01-07", "Boxing")
        assert calculate_weekly_diversity_bonus(existing, new) == 0.5


class TestScoreNewSession:
    def test_bonus_feeds_points(self):
        existing = [
            _session("2025-01-06", "Boxing"),
            _session("2025-01-07", "BJJ"),
            _session("2025-01-08", "Boxing"),
        ]
        bonus, points = score_new_session(existing, _session("2025-01-09", "MMA", "Advanced"))
        assert bonus == 1.0
        assert points == 3.0
