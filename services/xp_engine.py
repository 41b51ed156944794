"""Experience points and levels.

Levels are derived from cumulative XP only; nothing here touches storage.
"""

import math
from typing import NamedTuple

LEVEL_THRESHOLDS = (0, 50, 150, 350, 600, 1000, 1500)
LEVEL_TITLES = (
    "Newcomer",
    "Citizen",
    "Active Citizen",
    "Community Voice",
    "Civic Champion",
    "Neighbourhood Guardian",
    "City Hero",
)
MAX_LEVEL = len(LEVEL_THRESHOLDS)


class XpRewards:
    SUBMIT_COMPLAINT = 10
    COMPLAINT_VERIFIED = 15
    COMPLAINT_RESOLVED = 30
    COMPLAINT_REJECTED = -5
    GIVE_UPVOTE = 1
    RECEIVE_UPVOTE = 2


class Level(NamedTuple):
    level: int
    title: str


class Progress(NamedTuple):
    current: int
    required: int
    percentage: int


def calculate_level(xp: int) -> Level:
    """Highest level whose threshold ``xp`` reaches; level 1 below every threshold."""
    level = 1
    for index in range(MAX_LEVEL - 1, -1, -1):
        if xp >= LEVEL_THRESHOLDS[index]:
            level = index + 1
            break
    return Level(level, LEVEL_TITLES[level - 1])


def xp_to_next_level(xp: int, level: int) -> Progress:
    """Progress inside ``level``.

    At the top level there is nothing left to earn, so current and required
    are both ``xp`` and the percentage is 100. The percentage is not clamped:
    if ``xp`` has already crossed the next threshold it exceeds 100.
    """
    if level >= MAX_LEVEL:
        return Progress(xp, xp, 100)

    floor = LEVEL_THRESHOLDS[level - 1]
    required = LEVEL_THRESHOLDS[level] - floor
    current = xp - floor
    # Half-up rounding, matching what clients display.
    percentage = math.floor(current / required * 100 + 0.5)
    return Progress(current, required, percentage)


def next_level_title(level: int) -> str:
    if level >= MAX_LEVEL:
        return LEVEL_TITLES[-1]
    return LEVEL_TITLES[level]
