"""
Achievement badges, recomputed from the full session list on every read.
"""

from collections import Counter
from typing import Iterable, List

MOST_BALANCED = "Most Balanced"
BEST_STRIKER = "Best Striker"
BEST_GRAPPLER = "Best Grappler"
BEST_WRESTLER = "Best Wrestler"

STRIKING_TYPES = ("Boxing", "Muay Thai", "K1", "MMA")
GRAPPLING_TYPES = ("BJJ", "Wrestling", "Judo", "Takedowns")

BALANCED_MIN_TYPES = 5
BALANCED_MIN_SESSIONS = 10
SPECIALIST_MIN_SESSIONS = 5
WRESTLER_MIN_SESSIONS = 3


def calculate_badges_from_sessions(sessions: Iterable) -> List[str]:
    """
    Badges earned by a session list, in display order.

    Striker and grappler are mutually exclusive and a tie awards neither;
    Best Wrestler stacks with either.
    """
    type_counts = Counter(s.type for s in sessions)
    total_sessions = sum(type_counts.values())

    badges: List[str] = []

    if len(type_counts) >= BALANCED_MIN_TYPES and total_sessions >= BALANCED_MIN_SESSIONS:
        badges.append(MOST_BALANCED)

    striking = sum(type_counts[t] for t in STRIKING_TYPES)
    grappling = sum(type_counts[t] for t in GRAPPLING_TYPES)

    if striking >= SPECIALIST_MIN_SESSIONS and striking > grappling:
        badges.append(BEST_STRIKER)

    if grappling >= SPECIALIST_MIN_SESSIONS and grappling > striking:
        badges.append(BEST_GRAPPLER)

    if type_counts["Wrestling"] >= WRESTLER_MIN_SESSIONS:
        badges.append(BEST_WRESTLER)

    return badges
