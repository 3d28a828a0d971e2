"""
Profile recalculation: ceilings plus streak in one snapshot.
"""

import logging
from collections.abc import Iterable
from dataclasses import asdict, dataclass
from datetime import datetime

from shiori.domain.models import LearnableItem, LearnerProfile, LevelScale

from .ceiling import CeilingCalculator
from .streak import compute_streak

logger = logging.getLogger(__name__)


@dataclass
class ProfileSnapshot:
    computed_level: str
    comprehension_ceiling: str
    production_ceiling: str
    reading_level: float
    listening_level: float
    speaking_level: float
    writing_level: float
    current_streak: int
    longest_streak: int

    def to_dict(self) -> dict:
        return asdict(self)


def recalculate_profile(
    items: Iterable[LearnableItem],
    now: datetime,
    profile: LearnerProfile | None = None,
    scale: LevelScale | None = None,
    calculator: CeilingCalculator | None = None,
) -> ProfileSnapshot:
    """
    Recompute the learner snapshot for activity at `now`.

    Args:
        items: The full inventory; Unseen items are ignored.
        now: Current time, also the activity date for the streak.
        profile: Previously persisted streak counters.
        scale: Level ordering (defaults to CEFR).
        calculator: Optional custom calculator; built from `scale` if not provided.
    """
    profile = profile or LearnerProfile()
    calc = calculator or CeilingCalculator(scale)
    ceilings = calc.compute(items, now)

    streak = compute_streak(
        profile.last_active_date,
        profile.current_streak,
        now,
        previous_longest=profile.longest_streak,
    )

    return ProfileSnapshot(
        computed_level=ceilings.computed_level,
        comprehension_ceiling=ceilings.comprehension_ceiling,
        production_ceiling=ceilings.production_ceiling,
        reading_level=ceilings.reading_level,
        listening_level=ceilings.listening_level,
        speaking_level=ceilings.speaking_level,
        writing_level=ceilings.writing_level,
        current_streak=streak.current,
        longest_streak=streak.longest,
    )
