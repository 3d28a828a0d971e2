"""
Review Service — Application layer orchestrator for graded reviews.

Applies one review to an item (memory schedule, mastery stage, gate
evidence, modality counters) and periodically refreshes the learner
snapshot in the background of the review flow.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone

from shiori.domain.constants import (
    DEFAULT_CONTEXT_TYPE,
    DEFAULT_RECOMPUTE_EVERY,
    DEFAULT_REVIEW_WEIGHT,
    PRODUCTION_DRILL_WEIGHT,
)
from shiori.domain.errors import InvalidInputError
from shiori.domain.models import (
    Grade,
    LearnableItem,
    MasteryEvidence,
    MasteryStage,
    MemoryState,
    ReviewSubmission,
    Skill,
)

from .config import AppConfig
from .mastery import advance
from .scheduler import MemoryScheduler, schedule_review
from .snapshot_service import SnapshotService

logger = logging.getLogger(__name__)


@dataclass
class ReviewOutcome:
    """Result of applying one review; `item` is an updated copy."""

    item: LearnableItem
    previous_stage: MasteryStage
    new_stage: MasteryStage
    interval_days: int
    next_state: MemoryState

    def to_dict(self) -> dict:
        return {
            "item_id": self.item.id,
            "previous_stage": self.previous_stage.value,
            "new_stage": self.new_stage.value,
            "interval_days": self.interval_days,
            "next_state": self.next_state.to_dict(),
        }


def production_weight_for(submission: ReviewSubmission) -> float:
    """Explicit override, else a drill counts half toward production evidence."""
    if submission.production_weight is not None:
        return submission.production_weight
    if submission.skill == Skill.PRODUCTION:
        return PRODUCTION_DRILL_WEIGHT
    return DEFAULT_REVIEW_WEIGHT


def apply_review(
    item: LearnableItem,
    submission: ReviewSubmission,
    now: datetime | None = None,
    scheduler: MemoryScheduler | None = None,
) -> ReviewOutcome:
    """
    Apply a graded review to an item.

    Args:
        item: Current item snapshot; left untouched.
        submission: The graded review.
        now: Review time (defaults to the current UTC time).
        scheduler: Optional custom scheduler; uses the default if not provided.

    Returns:
        ReviewOutcome with the updated item, stage transition and interval.

    Raises:
        InvalidInputError: if the submission targets another item.
    """
    if submission.item_id != item.id:
        raise InvalidInputError(
            f"Review for item {submission.item_id} applied to item {item.id}"
        )
    now = now or datetime.now(timezone.utc)
    skill = Skill.parse(submission.skill)
    grade = Grade.parse(submission.grade)
    is_production = skill == Skill.PRODUCTION

    next_state, interval = schedule_review(item.memory(skill), grade, now, scheduler)

    weight = item.production_weight
    if is_production:
        weight += production_weight_for(submission)

    context_type = submission.context_type or DEFAULT_CONTEXT_TYPE
    context_types = item.context_types
    if context_type not in context_types:
        context_types = context_types + (context_type,)

    evidence = MasteryEvidence(
        production_weight=weight,
        context_count=len(context_types),
        novel_context_count=item.novel_context_count,
        kind=item.kind,
    )
    new_stage = advance(item.stage, grade, evidence)

    updated = replace(
        item.with_memory(skill, next_state),
        stage=new_stage,
        production_weight=weight,
        context_types=context_types,
        context_count=len(context_types),
        reading_exposures=item.reading_exposures + (0 if is_production else 1),
        writing_productions=item.writing_productions + (1 if is_production else 0),
        production_count=item.production_count + (1 if is_production else 0),
        exposure_count=item.exposure_count + 1,
        last_reviewed=now,
    )

    if new_stage != item.stage:
        logger.debug(
            f"Item {item.id} ({item.display_form}): {item.stage.value} -> {new_stage.value}"
        )

    return ReviewOutcome(
        item=updated,
        previous_stage=item.stage,
        new_stage=new_stage,
        interval_days=interval,
        next_state=next_state,
    )


class ReviewService:
    """
    Applies reviews and triggers a best-effort snapshot refresh every
    `recompute_every` submissions.
    """

    def __init__(
        self,
        snapshot_service: SnapshotService | None = None,
        recompute_every: int = DEFAULT_RECOMPUTE_EVERY,
        scheduler: MemoryScheduler | None = None,
    ):
        """
        Args:
            snapshot_service: Refreshed periodically; no refresh if not provided.
            recompute_every: Number of submissions between refreshes.
            scheduler: Optional custom scheduler; uses the default if not provided.
        """
        if recompute_every < 1:
            raise InvalidInputError("recompute_every must be at least 1")
        self._snapshots = snapshot_service
        self._recompute_every = recompute_every
        self._scheduler = scheduler
        self.review_count = 0

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        snapshot_service: SnapshotService | None = None,
    ) -> "ReviewService":
        """Review service using the configured scheduler and recompute cadence."""
        return cls(
            snapshot_service=snapshot_service,
            recompute_every=config.recompute_every,
            scheduler=config.memory_scheduler(),
        )

    @property
    def recompute_every(self) -> int:
        return self._recompute_every

    @property
    def scheduler(self) -> MemoryScheduler | None:
        return self._scheduler

    async def submit(
        self,
        item: LearnableItem,
        submission: ReviewSubmission,
        now: datetime | None = None,
    ) -> ReviewOutcome:
        outcome = apply_review(item, submission, now, self._scheduler)

        self.review_count += 1
        if self._snapshots is not None and self.review_count % self._recompute_every == 0:
            await self._snapshots.refresh_best_effort(now)

        return outcome
