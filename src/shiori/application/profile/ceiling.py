"""
Ceiling calculator for deriving learner levels from memory states.

This is a pure computation module with no I/O.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime

from shiori.application.scheduler import retrievability
from shiori.domain.constants import COMPREHENSION_THRESHOLD, PRODUCTION_THRESHOLD
from shiori.domain.models import LearnableItem, LevelScale, MasteryStage, MemoryState

logger = logging.getLogger(__name__)


@dataclass
class CeilingResult:
    """
    Level ceilings and per-modality proficiency scores.

    Listening and speaking stay at 0 until a voice modality exists.
    """

    comprehension_ceiling: str
    production_ceiling: str
    computed_level: str
    reading_level: float
    writing_level: float
    listening_level: float = 0.0
    speaking_level: float = 0.0


class CeilingCalculator:
    """
    Aggregates memory states into level ceilings.

    Stateless and side-effect free.
    """

    def __init__(
        self,
        scale: LevelScale | None = None,
        comprehension_threshold: float = COMPREHENSION_THRESHOLD,
        production_threshold: float = PRODUCTION_THRESHOLD,
    ):
        self.scale = scale or LevelScale()
        self.comprehension_threshold = comprehension_threshold
        self.production_threshold = production_threshold

    def compute(self, items: Iterable[LearnableItem], now: datetime) -> CeilingResult:
        active = [i for i in items if i.stage != MasteryStage.UNSEEN]
        by_level = self._group_by_level(active)

        comprehension = self._scan_ceiling(
            by_level, lambda i: i.recognition, self.comprehension_threshold, now
        )
        production = self._scan_ceiling(
            by_level, lambda i: i.production, self.production_threshold, now
        )

        # Ties favor comprehension
        if self.scale.index(comprehension) >= self.scale.index(production):
            computed = comprehension
        else:
            computed = production

        reading = _mean_retrievability(
            [i.recognition for i in active if i.recognition.reps > 0], now
        )
        writing = _mean_retrievability(
            [i.production for i in active if i.writing_productions > 0], now
        )

        logger.debug(
            f"Ceilings computed over {len(active)} items: "
            f"comprehension={comprehension} production={production} level={computed}"
        )

        return CeilingResult(
            comprehension_ceiling=comprehension,
            production_ceiling=production,
            computed_level=computed,
            reading_level=round(reading, 2),
            writing_level=round(writing, 2),
        )

    def _group_by_level(self, items: list[LearnableItem]) -> dict[str, list[LearnableItem]]:
        groups: dict[str, list[LearnableItem]] = {level: [] for level in self.scale}
        for item in items:
            groups[self.scale.normalize(item.level)].append(item)
        return groups

    def _scan_ceiling(
        self,
        by_level: dict[str, list[LearnableItem]],
        memory: Callable[[LearnableItem], MemoryState],
        threshold: float,
        now: datetime,
    ) -> str:
        """
        Highest level whose mean retrievability exceeds the threshold.

        Scans weakest first and stops at the first failing level. Levels
        with no items are skipped.
        """
        ceiling = self.scale.weakest
        for level in self.scale:
            level_items = by_level[level]
            if not level_items:
                continue
            mean = _mean_retrievability([memory(i) for i in level_items], now)
            if mean > threshold:
                ceiling = level
            else:
                break
        return ceiling


def _mean_retrievability(states: list[MemoryState], now: datetime) -> float:
    if not states:
        return 0.0
    return sum(retrievability(s, now) for s in states) / len(states)
