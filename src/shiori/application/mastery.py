"""
Mastery state machine.

A flat, ten-stage progression with one promotion table and one demotion
table. Three promotions are gated on evidence gathered outside reviews
(production weight, context breadth, transfer to novel contexts).
"""

from shiori.domain.constants import (
    EXPERT_MIN_CONTEXT_COUNT,
    JOURNEYMAN_MIN_PRODUCTION_WEIGHT,
    MASTER_MIN_NOVEL_CONTEXT_COUNT,
)
from shiori.domain.models import Grade, ItemKind, MasteryEvidence, MasteryStage

PROMOTIONS: dict[MasteryStage, MasteryStage] = {
    MasteryStage.UNSEEN: MasteryStage.INTRODUCED,
    MasteryStage.INTRODUCED: MasteryStage.APPRENTICE_1,
    MasteryStage.APPRENTICE_1: MasteryStage.APPRENTICE_2,
    MasteryStage.APPRENTICE_2: MasteryStage.APPRENTICE_3,
    MasteryStage.APPRENTICE_3: MasteryStage.APPRENTICE_4,
    MasteryStage.APPRENTICE_4: MasteryStage.JOURNEYMAN,  # gated: production weight
    MasteryStage.JOURNEYMAN: MasteryStage.EXPERT,  # gated: context breadth
    MasteryStage.EXPERT: MasteryStage.MASTER,  # gated for grammar: novel contexts
    MasteryStage.MASTER: MasteryStage.BURNED,
}

DEMOTIONS: dict[MasteryStage, MasteryStage] = {
    MasteryStage.APPRENTICE_2: MasteryStage.APPRENTICE_1,
    MasteryStage.APPRENTICE_3: MasteryStage.APPRENTICE_2,
    MasteryStage.APPRENTICE_4: MasteryStage.APPRENTICE_3,
    MasteryStage.JOURNEYMAN: MasteryStage.APPRENTICE_4,
    MasteryStage.EXPERT: MasteryStage.JOURNEYMAN,
    MasteryStage.MASTER: MasteryStage.EXPERT,
    MasteryStage.BURNED: MasteryStage.MASTER,
}

APPRENTICE_STAGES = frozenset(
    {
        MasteryStage.APPRENTICE_1,
        MasteryStage.APPRENTICE_2,
        MasteryStage.APPRENTICE_3,
        MasteryStage.APPRENTICE_4,
    }
)


def _gate_passes(stage: MasteryStage, evidence: MasteryEvidence) -> bool:
    if stage == MasteryStage.APPRENTICE_4:
        return evidence.production_weight >= JOURNEYMAN_MIN_PRODUCTION_WEIGHT
    if stage == MasteryStage.JOURNEYMAN:
        return evidence.context_count >= EXPERT_MIN_CONTEXT_COUNT
    if stage == MasteryStage.EXPERT and evidence.kind == ItemKind.GRAMMAR:
        return evidence.novel_context_count >= MASTER_MIN_NOVEL_CONTEXT_COUNT
    return True


def advance(
    stage: MasteryStage | str,
    grade: Grade | str | int,
    evidence: MasteryEvidence | None = None,
) -> MasteryStage:
    """
    Compute the next mastery stage for a review outcome.

    Again demotes one stage, Hard holds, Good and Easy promote one stage
    unless a gate blocks it. Stages without a table entry stay put.

    Raises:
        InvalidInputError: for unknown stage or grade values.
    """
    stage = MasteryStage.parse(stage)
    grade = Grade.parse(grade)
    evidence = evidence or MasteryEvidence()

    if grade == Grade.AGAIN:
        return DEMOTIONS.get(stage, stage)

    if grade == Grade.HARD:
        return stage

    next_stage = PROMOTIONS.get(stage)
    if next_stage is None:
        return stage

    if not _gate_passes(stage, evidence):
        return stage

    return next_stage


def is_apprentice(stage: MasteryStage) -> bool:
    return stage in APPRENTICE_STAGES


def is_active(stage: MasteryStage) -> bool:
    """Active stages are still being scheduled (neither unseen nor burned)."""
    return stage not in (MasteryStage.UNSEEN, MasteryStage.BURNED)
