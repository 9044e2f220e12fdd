"""
Avatar Leveling

The avatar is a pure projection of the session list: lifetime points pick
the level, and the position inside the level's point range is shown in
quarter steps. Nothing here is persisted, so the avatar always matches the
current sessions (and an "as of last month" level cannot be recovered).
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Iterable


class AvatarLevel(str, Enum):
    NOVICE = "Novice"
    INTERMEDIATE = "Intermediate"
    SEASONED = "Seasoned"
    ELITE = "Elite"


AVATAR_LEVELS = [
    AvatarLevel.NOVICE,
    AvatarLevel.INTERMEDIATE,
    AvatarLevel.SEASONED,
    AvatarLevel.ELITE,
]

# Cumulative point ranges. ``min`` is inclusive; the progress bar spans
# max - min, so Novice/Intermediate fill over 7 points and Seasoned over 8.
LEVEL_THRESHOLDS = {
    AvatarLevel.NOVICE: {"min": 0, "max": 7},
    AvatarLevel.INTERMEDIATE: {"min": 8, "max": 15},
    AvatarLevel.SEASONED: {"min": 16, "max": 24},
    AvatarLevel.ELITE: {"min": 25, "max": math.inf},
}

PROGRESS_STEP = 25

PROGRESS_CAPTIONS = {
    0: "Getting started",
    25: "Making progress",
    50: "Halfway there!",
    75: "Almost there",
    100: "Level up!",
}

MAX_LEVEL_LABEL = "Max Level"


@dataclass(frozen=True)
class Avatar:
    level: AvatarLevel
    progress: int  # 0, 25, 50, 75 or 100
    cumulative_points: float


def calculate_level_from_points(points: float) -> AvatarLevel:
    """Highest level whose minimum is <= points (boundaries go up)."""
    for level in reversed(AVATAR_LEVELS):
        if points >= LEVEL_THRESHOLDS[level]["min"]:
            return level
    return AvatarLevel.NOVICE


def calculate_progress_in_level(points: float, level: AvatarLevel) -> int:
    """
    Progress through ``level`` rounded to the nearest 25%.

    Two totals inside the same level can share a value; the bar is a
    gamified indicator, not an exact meter.
    """
    threshold = LEVEL_THRESHOLDS[level]
    range_size = threshold["max"] - threshold["min"]

    if level == AvatarLevel.ELITE or math.isinf(range_size):
        return 100 if points >= threshold["min"] else 0

    points_in_level = max(0.0, points - threshold["min"])
    raw_progress = min(100.0, points_in_level / range_size * 100)
    # Half steps round up
    return int(math.floor(raw_progress / PROGRESS_STEP + 0.5)) * PROGRESS_STEP


def derive_avatar(sessions: Iterable) -> Avatar:
    total_points = sum((s.points or 0) for s in sessions)
    level = calculate_level_from_points(total_points)
    return Avatar(
        level=level,
        progress=calculate_progress_in_level(total_points, level),
        cumulative_points=total_points,
    )


def next_level(level: AvatarLevel) -> str:
    index = AVATAR_LEVELS.index(level)
    if index < len(AVATAR_LEVELS) - 1:
        return AVATAR_LEVELS[index + 1].value
    return MAX_LEVEL_LABEL


def progress_caption(progress: int) -> str:
    return PROGRESS_CAPTIONS.get(progress, "")
