"""
Memory scheduler: FSRS review scheduling, retrievability and due queues.

This is a pure computation module with no I/O. Scheduling is deterministic
given (state, grade, now); callers always pass the current time in.
"""

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from shiori.domain.constants import (
    DIFFICULTY_MAX,
    DIFFICULTY_MIN,
    FSRS_DECAY,
    FSRS_DEFAULT_WEIGHTS,
    FSRS_FACTOR,
    MAXIMUM_INTERVAL,
    MIN_STABILITY,
    RETRIEVABILITY_DECAY_FACTOR,
    SECONDS_PER_DAY,
    TARGET_RETENTION,
)
from shiori.domain.errors import InvalidInputError
from shiori.domain.models import (
    FsrsState,
    Grade,
    ItemKind,
    LearnableItem,
    MasteryStage,
    MemoryState,
    Skill,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SchedulerParameters:
    """
    FSRS configuration.

    Attributes:
        weights: The 19 FSRS-5 model weights.
        request_retention: Target probability of recall at the due date.
        maximum_interval: Upper bound on any scheduled interval (days).
    """

    weights: tuple[float, ...] = FSRS_DEFAULT_WEIGHTS
    request_retention: float = TARGET_RETENTION
    maximum_interval: int = MAXIMUM_INTERVAL

    def __post_init__(self):
        if len(self.weights) != 19:
            raise InvalidInputError(f"FSRS needs 19 weights, got {len(self.weights)}")
        if not 0.0 < self.request_retention < 1.0:
            raise InvalidInputError("request_retention must be in (0, 1)")
        if self.maximum_interval < 1:
            raise InvalidInputError("maximum_interval must be at least 1 day")


class MemoryScheduler:
    """
    Long-term FSRS scheduler.

    Every review is scheduled in whole days. Intervals are kept ordered
    across grades (again <= hard < good < easy) so a higher grade never
    yields a shorter interval.
    """

    def __init__(self, params: SchedulerParameters | None = None):
        self.params = params or SchedulerParameters()
        self._w = self.params.weights
        self._interval_modifier = (
            math.pow(self.params.request_retention, 1.0 / FSRS_DECAY) - 1.0
        ) / FSRS_FACTOR

    # -- public API --------------------------------------------------------

    def schedule(
        self, state: MemoryState, grade: Grade | str | int, now: datetime
    ) -> tuple[MemoryState, int]:
        """
        Apply a review outcome.

        Returns:
            (next_state, interval_days)
        """
        grade = Grade.parse(grade)
        return self.preview(state, now)[grade]

    def preview(self, state: MemoryState, now: datetime) -> dict[Grade, tuple[MemoryState, int]]:
        """Compute the outcome of every possible grade for a review at `now`."""
        now = _aware(now)
        elapsed = self._elapsed_days(state, now)

        if state.state == FsrsState.NEW or state.reps == 0:
            stabilities = {g: self.init_stability(g) for g in Grade}
            difficulties = {g: self.init_difficulty(g) for g in Grade}
        else:
            r = self.forgetting_curve(elapsed, state.stability)
            difficulties = {g: self.next_difficulty(state.difficulty, g) for g in Grade}
            stabilities = {
                g: self._next_stability(state, elapsed, r, g) for g in Grade
            }

        intervals = self._ordered_intervals(stabilities)

        outcomes: dict[Grade, tuple[MemoryState, int]] = {}
        for g in Grade:
            interval = intervals[g]
            outcomes[g] = (
                MemoryState(
                    due=now + timedelta(days=interval),
                    stability=stabilities[g],
                    difficulty=difficulties[g],
                    elapsed_days=elapsed,
                    scheduled_days=interval,
                    reps=state.reps + 1,
                    lapses=state.lapses + (1 if self._is_lapse(state, g) else 0),
                    state=self._next_phase(state.state, g),
                    last_review=now,
                ),
                interval,
            )
        return outcomes

    # -- FSRS formulas -----------------------------------------------------

    def forgetting_curve(self, elapsed_days: float, stability: float) -> float:
        """FSRS power forgetting curve R(t, S)."""
        if stability <= 0:
            return 0.0
        return math.pow(1.0 + FSRS_FACTOR * elapsed_days / stability, FSRS_DECAY)

    def init_stability(self, grade: Grade) -> float:
        return max(self._w[grade - 1], 0.1)

    def init_difficulty(self, grade: Grade) -> float:
        w = self._w
        return _clamp(w[4] - math.exp(w[5] * (grade - 1)) + 1.0, DIFFICULTY_MIN, DIFFICULTY_MAX)

    def next_difficulty(self, difficulty: float, grade: Grade) -> float:
        """Linear-damped difficulty update with mean reversion towards D0(Easy)."""
        w = self._w
        delta = -w[6] * (grade - 3)
        damped = difficulty + delta * (10.0 - difficulty) / 9.0
        reverted = w[7] * self.init_difficulty(Grade.EASY) + (1.0 - w[7]) * damped
        return _clamp(reverted, DIFFICULTY_MIN, DIFFICULTY_MAX)

    def next_recall_stability(
        self, difficulty: float, stability: float, r: float, grade: Grade
    ) -> float:
        w = self._w
        hard_penalty = w[15] if grade == Grade.HARD else 1.0
        easy_bonus = w[16] if grade == Grade.EASY else 1.0
        new_s = stability * (
            1.0
            + math.exp(w[8])
            * (11.0 - difficulty)
            * math.pow(stability, -w[9])
            * (math.exp((1.0 - r) * w[10]) - 1.0)
            * hard_penalty
            * easy_bonus
        )
        return max(new_s, MIN_STABILITY)

    def next_forget_stability(self, difficulty: float, stability: float, r: float) -> float:
        w = self._w
        new_s = (
            w[11]
            * math.pow(difficulty, -w[12])
            * (math.pow(stability + 1.0, w[13]) - 1.0)
            * math.exp((1.0 - r) * w[14])
        )
        return max(min(new_s, stability), MIN_STABILITY)

    def next_short_term_stability(self, stability: float, grade: Grade) -> float:
        w = self._w
        return max(stability * math.exp(w[17] * (grade - 3 + w[18])), MIN_STABILITY)

    def next_interval(self, stability: float) -> int:
        interval = round(stability * self._interval_modifier)
        return int(_clamp(interval, 1, self.params.maximum_interval))

    # -- internals ---------------------------------------------------------

    def _next_stability(
        self, state: MemoryState, elapsed: int, r: float, grade: Grade
    ) -> float:
        if elapsed == 0:
            new_s = self.next_short_term_stability(state.stability, grade)
            if grade == Grade.AGAIN:
                new_s = min(new_s, state.stability)
            return new_s
        if grade == Grade.AGAIN:
            return self.next_forget_stability(state.difficulty, state.stability, r)
        return self.next_recall_stability(state.difficulty, state.stability, r, grade)

    def _ordered_intervals(self, stabilities: dict[Grade, float]) -> dict[Grade, int]:
        cap = self.params.maximum_interval
        again = self.next_interval(stabilities[Grade.AGAIN])
        hard = self.next_interval(stabilities[Grade.HARD])
        good = self.next_interval(stabilities[Grade.GOOD])
        easy = self.next_interval(stabilities[Grade.EASY])

        again = min(again, hard)
        hard = max(hard, again + 1)
        good = max(good, hard + 1)
        easy = max(easy, good + 1)
        return {
            Grade.AGAIN: min(again, cap),
            Grade.HARD: min(hard, cap),
            Grade.GOOD: min(good, cap),
            Grade.EASY: min(easy, cap),
        }

    @staticmethod
    def _elapsed_days(state: MemoryState, now: datetime) -> int:
        if state.last_review is None:
            return 0
        seconds = (now - _aware(state.last_review)).total_seconds()
        return max(0, int(seconds // SECONDS_PER_DAY))

    @staticmethod
    def _is_lapse(state: MemoryState, grade: Grade) -> bool:
        return grade == Grade.AGAIN and state.state == FsrsState.REVIEW

    @staticmethod
    def _next_phase(phase: FsrsState, grade: Grade) -> FsrsState:
        if grade != Grade.AGAIN:
            return FsrsState.REVIEW
        if phase == FsrsState.NEW:
            return FsrsState.LEARNING
        if phase == FsrsState.REVIEW:
            return FsrsState.RELEARNING
        return phase


_default_scheduler = MemoryScheduler()


def create_initial_state(now: datetime | None = None) -> MemoryState:
    """A fresh, never-reviewed memory state that is due immediately."""
    return MemoryState(due=_aware(now or datetime.now(timezone.utc)))


def schedule_review(
    state: MemoryState,
    grade: Grade | str | int,
    now: datetime | None = None,
    scheduler: MemoryScheduler | None = None,
) -> tuple[MemoryState, int]:
    """Schedule one review with the default (0.90 retention) scheduler."""
    scheduler = scheduler or _default_scheduler
    return scheduler.schedule(state, grade, now or datetime.now(timezone.utc))


def retrievability(state: MemoryState, now: datetime) -> float:
    """
    Estimated probability of recall at `now`, in [0, 1].

    R = (1 + t / (9 * S)) ^ -1, where t is the days past due plus the
    last scheduled interval. Items never reviewed have R = 0; items not
    yet due have R = 1.
    """
    if state.reps == 0:
        return 0.0
    now = _aware(now)
    due = _aware(state.due)
    if now <= due:
        return 1.0
    if state.stability <= 0:
        return 0.0

    elapsed = (now - due).total_seconds() / SECONDS_PER_DAY + state.scheduled_days
    value = math.pow(1.0 + elapsed / (RETRIEVABILITY_DECAY_FACTOR * state.stability), -1)
    return _clamp(value, 0.0, 1.0)


@dataclass(frozen=True)
class ReviewQueueEntry:
    """One due (item, skill) pair."""

    item_id: int
    kind: ItemKind
    skill: Skill
    stage: MasteryStage
    overdue_days: int
    retrievability: float
    surface_form: str | None = None
    reading: str | None = None
    meaning: str | None = None

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "kind": self.kind.value,
            "skill": self.skill.value,
            "stage": self.stage.value,
            "overdue_days": self.overdue_days,
            "retrievability": round(self.retrievability, 4),
            "surface_form": self.surface_form,
            "reading": self.reading,
            "meaning": self.meaning,
        }


def compute_review_queue(
    items: Iterable[LearnableItem],
    now: datetime,
    limit: int | None = None,
) -> list[ReviewQueueEntry]:
    """
    Build the due-review queue.

    Emits one entry per (item, skill) whose due date has passed, most
    overdue first. Ties keep insertion order.
    """
    now = _aware(now)
    queue: list[ReviewQueueEntry] = []

    for item in items:
        for skill in (Skill.RECOGNITION, Skill.PRODUCTION):
            state = item.memory(skill)
            due = _aware(state.due)
            if due > now:
                continue
            queue.append(
                ReviewQueueEntry(
                    item_id=item.id,
                    kind=item.kind,
                    skill=skill,
                    stage=item.stage,
                    overdue_days=math.floor((now - due).total_seconds() / SECONDS_PER_DAY),
                    retrievability=retrievability(state, now),
                    surface_form=item.surface_form or item.pattern_id,
                    reading=item.reading,
                    meaning=item.meaning,
                )
            )

    # list.sort is stable
    queue.sort(key=lambda entry: entry.overdue_days, reverse=True)

    if limit is not None:
        queue = queue[: max(limit, 0)]

    logger.debug(f"Review queue built: {len(queue)} entries due at {now.isoformat()}")
    return queue


def _aware(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))
