"""
Snapshot Service — Application layer orchestrator.

Gathers the learner inventory and runs the batch analytics over it:
profile ceilings and streak, the knowledge bubble, and the next batch of
recommendations.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from shiori.domain.constants import DEFAULT_DAILY_NEW_ITEM_LIMIT
from shiori.domain.curriculum.models import KnowledgeBubble, Recommendation
from shiori.domain.models import ItemKind, LearnableItem, LevelScale
from shiori.domain.ports import CorpusSource, InventorySource

from .curriculum.bubble import compute_knowledge_bubble
from .curriculum.recommender import BehavioralSignals, generate_recommendations
from .profile.ceiling import CeilingCalculator
from .profile.service import ProfileSnapshot, recalculate_profile

logger = logging.getLogger(__name__)


@dataclass
class LearnerSnapshot:
    profile: ProfileSnapshot
    bubble: KnowledgeBubble
    recommendations: list[Recommendation] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "profile": self.profile.to_dict(),
            "bubble": self.bubble.to_dict(),
            "recommendations": [r.to_dict() for r in self.recommendations],
        }


def known_forms(items: list[LearnableItem]) -> tuple[set[str], set[str]]:
    """
    Surface forms and grammar pattern ids already in the inventory.

    Any stage counts, Unseen included: an item in the inventory is never
    recommended again.
    """
    surfaces = {
        i.surface_form for i in items if i.kind == ItemKind.LEXICAL and i.surface_form
    }
    patterns = {
        i.pattern_id for i in items if i.kind == ItemKind.GRAMMAR and i.pattern_id
    }
    return surfaces, patterns


class SnapshotService:
    """
    Application service for recomputing the learner snapshot.

    Depends on the InventorySource and CorpusSource abstractions, not on
    concrete adapters.
    """

    def __init__(
        self,
        inventory: InventorySource,
        corpus_source: CorpusSource,
        scale: LevelScale | None = None,
        daily_new_item_limit: int = DEFAULT_DAILY_NEW_ITEM_LIMIT,
        calculator: CeilingCalculator | None = None,
    ):
        """
        Args:
            inventory: The port for reading learner items and counters.
            corpus_source: The port for the reference corpus.
            scale: Level ordering (defaults to CEFR).
            daily_new_item_limit: Fallback cap when the profile sets none.
            calculator: Optional custom ceiling calculator.
        """
        self._inventory = inventory
        self._corpus = corpus_source
        self._scale = scale or LevelScale()
        self._daily_limit = daily_new_item_limit
        self._calc = calculator or CeilingCalculator(self._scale)
        self.last_snapshot: LearnerSnapshot | None = None

    async def refresh(
        self,
        now: datetime | None = None,
        signals: BehavioralSignals | None = None,
    ) -> LearnerSnapshot:
        """
        Recompute profile, bubble and recommendations from the current inventory.
        """
        now = now or datetime.now(timezone.utc)
        items = await self._inventory.get_items()
        learner = await self._inventory.get_learner_profile()
        corpus = self._corpus.load()

        profile = recalculate_profile(
            items, now, profile=learner, scale=self._scale, calculator=self._calc
        )
        bubble = compute_knowledge_bubble(items, corpus, scale=self._scale)

        cap = learner.daily_new_item_limit
        if cap is None:
            cap = self._daily_limit
        surfaces, patterns = known_forms(items)
        recommendations = generate_recommendations(
            bubble, corpus, surfaces, patterns, cap, signals=signals
        )

        snapshot = LearnerSnapshot(
            profile=profile, bubble=bubble, recommendations=recommendations
        )
        self.last_snapshot = snapshot
        logger.info(
            f"Snapshot refreshed: level={profile.computed_level} "
            f"bubble={bubble.current_level}->{bubble.frontier_level} "
            f"recommendations={len(recommendations)}"
        )
        return snapshot

    async def refresh_best_effort(self, now: datetime | None = None) -> LearnerSnapshot | None:
        """
        Like refresh(), but failures are logged and swallowed so the review
        flow is never interrupted.
        """
        try:
            return await self.refresh(now)
        except Exception as e:
            logger.error(f"Snapshot refresh failed: {e}", exc_info=True)
            return None
