# Application Package
from .mastery import advance
from .review_service import ReviewOutcome, ReviewService, apply_review
from .scheduler import (
    MemoryScheduler,
    ReviewQueueEntry,
    compute_review_queue,
    create_initial_state,
    retrievability,
    schedule_review,
)
from .snapshot_service import LearnerSnapshot, SnapshotService

__all__ = [
    "advance",
    "ReviewOutcome",
    "ReviewService",
    "apply_review",
    "MemoryScheduler",
    "ReviewQueueEntry",
    "compute_review_queue",
    "create_initial_state",
    "retrievability",
    "schedule_review",
    "LearnerSnapshot",
    "SnapshotService",
]
