"""
Knowledge bubble: coverage of the reference corpus by the learner's inventory.

Computes per-level coverage, the current level (contiguous from the
weakest level), the frontier level, and the gaps in the current level.
"""

import logging
from collections.abc import Iterable

from shiori.domain.constants import (
    COVERAGE_THRESHOLD,
    JOURNEYMAN_MIN_PRODUCTION_WEIGHT,
    MAX_MISSING_GRAMMAR_GAPS,
    MAX_MISSING_VOCAB_GAPS,
)
from shiori.domain.curriculum.models import Gap, KnowledgeBubble, LevelBreakdown, ReferenceCorpus
from shiori.domain.models import ItemKind, LearnableItem, LevelScale, MasteryStage

logger = logging.getLogger(__name__)

KNOWN_STAGES = frozenset(
    {
        MasteryStage.APPRENTICE_3,
        MasteryStage.APPRENTICE_4,
        MasteryStage.JOURNEYMAN,
        MasteryStage.EXPERT,
        MasteryStage.MASTER,
        MasteryStage.BURNED,
    }
)
PRODUCTION_READY_STAGES = frozenset(
    {
        MasteryStage.JOURNEYMAN,
        MasteryStage.EXPERT,
        MasteryStage.MASTER,
        MasteryStage.BURNED,
    }
)
GAP_REASONS = {
    MasteryStage.UNSEEN: "Not yet seen",
    MasteryStage.INTRODUCED: "Introduced but not in SRS",
    MasteryStage.APPRENTICE_1: "Weak — needs more review",
    MasteryStage.APPRENTICE_2: "Weak — needs more review",
}


def compute_knowledge_bubble(
    items: Iterable[LearnableItem],
    corpus: ReferenceCorpus,
    scale: LevelScale | None = None,
    coverage_threshold: float = COVERAGE_THRESHOLD,
) -> KnowledgeBubble:
    """
    Compare the learner's items against the reference corpus.

    Args:
        items: The learner's full inventory.
        corpus: Reference corpus to measure against.
        scale: Level ordering (defaults to CEFR).
        coverage_threshold: Coverage a level needs to count as mastered.

    Returns:
        KnowledgeBubble with per-level breakdowns and current-level gaps.
    """
    scale = scale or LevelScale()
    items = list(items)
    logger.debug(f"Computing knowledge bubble over {len(items)} items")

    ref_counts = corpus.count_by_level(scale)

    by_level: dict[str, list[LearnableItem]] = {level: [] for level in scale}
    for item in items:
        by_level[scale.normalize(item.level)].append(item)

    breakdowns = [
        _level_breakdown(level, ref_counts[level], by_level[level]) for level in scale
    ]

    current_idx = 0
    for idx, breakdown in enumerate(breakdowns):
        if breakdown.coverage >= coverage_threshold:
            current_idx = idx
        else:
            break
    current_level = scale.levels[current_idx]
    frontier_level = scale.next_level(current_level)

    gaps = _weak_item_gaps(by_level[current_level])
    gaps.extend(_missing_reference_gaps(items, corpus, current_level))

    total_known = sum(1 for i in items if i.stage in KNOWN_STAGES)
    total_ref = sum(ref_counts.values())
    overall = round(total_known / total_ref, 2) if total_ref > 0 else 0.0

    logger.debug(
        f"Knowledge bubble computed: current={current_level} frontier={frontier_level} "
        f"overall={overall} gaps={len(gaps)}"
    )

    return KnowledgeBubble(
        level_breakdowns=breakdowns,
        current_level=current_level,
        frontier_level=frontier_level,
        gaps_in_current_level=gaps,
        overall_coverage=overall,
    )


def _level_breakdown(level: str, total_ref: int, items: list[LearnableItem]) -> LevelBreakdown:
    known = sum(1 for i in items if i.stage in KNOWN_STAGES)
    ready = sum(1 for i in items if i.stage in PRODUCTION_READY_STAGES)
    coverage = known / total_ref if total_ref > 0 else 0.0
    return LevelBreakdown(
        level=level,
        total_reference_items=total_ref,
        known_items=known,
        production_ready=ready,
        coverage=round(coverage, 2),
    )


def _weak_item_gaps(items: list[LearnableItem]) -> list[Gap]:
    return [
        Gap(
            kind=i.kind,
            reason=GAP_REASONS[i.stage],
            surface_form=i.surface_form,
            pattern_id=i.pattern_id,
            item_id=i.id,
        )
        for i in items
        if i.stage in GAP_REASONS
    ]


def _missing_reference_gaps(
    items: list[LearnableItem], corpus: ReferenceCorpus, level: str
) -> list[Gap]:
    """Reference entries at `level` that are absent from the inventory entirely."""
    known_surfaces = {i.surface_form for i in items if i.kind == ItemKind.LEXICAL}
    known_patterns = {i.pattern_id for i in items if i.kind == ItemKind.GRAMMAR}
    vocab, grammar = corpus.by_level(level)

    missing_vocab = [v for v in vocab if v.surface_form not in known_surfaces]
    missing_grammar = [g for g in grammar if g.pattern_id not in known_patterns]

    gaps = [
        Gap(
            kind=ItemKind.LEXICAL,
            surface_form=v.surface_form,
            reason=f"Missing from vocabulary: {v.surface_form} (freq rank: {v.frequency_rank})",
        )
        for v in missing_vocab[:MAX_MISSING_VOCAB_GAPS]
    ]
    gaps.extend(
        Gap(
            kind=ItemKind.GRAMMAR,
            pattern_id=g.pattern_id,
            reason=f"Missing grammar pattern: {g.name}",
        )
        for g in missing_grammar[:MAX_MISSING_GRAMMAR_GAPS]
    )
    return gaps


def identify_gaps(bubble: KnowledgeBubble, items: Iterable[LearnableItem]) -> list[Gap]:
    """
    Severity-tagged gap report.

    - high: gaps in the current level.
    - medium: frontier-level items introduced but never added to SRS.
    - low: Apprentice 4 items blocked on production evidence.
    """
    items = list(items)
    gaps = [
        Gap(
            kind=g.kind,
            reason=g.reason,
            surface_form=g.surface_form,
            pattern_id=g.pattern_id,
            item_id=g.item_id,
            severity="high",
        )
        for g in bubble.gaps_in_current_level
    ]

    weakest = bubble.level_breakdowns[0].level if bubble.level_breakdowns else None
    for item in items:
        level = item.level or weakest
        if level == bubble.frontier_level and item.stage == MasteryStage.INTRODUCED:
            gaps.append(
                Gap(
                    kind=item.kind,
                    reason="At frontier level, introduced but not added to SRS",
                    surface_form=item.surface_form,
                    pattern_id=item.pattern_id,
                    item_id=item.id,
                    severity="medium",
                )
            )

    for item in items:
        if (
            item.stage == MasteryStage.APPRENTICE_4
            and item.production_weight < JOURNEYMAN_MIN_PRODUCTION_WEIGHT
        ):
            gaps.append(
                Gap(
                    kind=item.kind,
                    reason="Stuck at apprentice 4, needs production evidence",
                    surface_form=item.surface_form,
                    pattern_id=item.pattern_id,
                    item_id=item.id,
                    severity="low",
                )
            )

    return gaps
