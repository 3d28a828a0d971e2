"""
Curriculum recommender.

Scores reference-corpus candidates at the current and frontier levels by
frequency, level fit, prerequisite satisfaction and externally supplied
behavioral signals, and returns a bounded, ranked batch.
"""

import logging
import math
from collections.abc import Collection, Iterable
from dataclasses import dataclass, field

from shiori.domain.constants import (
    AVOIDANCE_GRAMMAR_BONUS,
    CURRENT_LEVEL_BONUS,
    HIGH_FREQUENCY_BONUS,
    HIGH_FREQUENCY_RANK,
    MISSING_PREREQUISITES_PENALTY,
    PREREQUISITES_MET_BONUS,
    REGRESSION_PENALTY,
)
from shiori.domain.curriculum.models import (
    KnowledgeBubble,
    Recommendation,
    ReferenceCorpus,
    ReferenceGrammarEntry,
    ReferenceVocabEntry,
)
from shiori.domain.errors import InvalidInputError
from shiori.domain.models import ItemKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BehavioralSignals:
    """
    Opaque outputs of the learner pattern detectors.

    Only emptiness is consulted: any active regression discounts every
    candidate, any avoidance resurfaces grammar.
    """

    regressed_item_ids: frozenset[int] = field(default_factory=frozenset)
    avoided_item_ids: frozenset[int] = field(default_factory=frozenset)

    @classmethod
    def of(
        cls,
        regressed: Iterable[int] = (),
        avoided: Iterable[int] = (),
    ) -> "BehavioralSignals":
        return cls(frozenset(regressed), frozenset(avoided))


@dataclass
class _Candidate:
    entry: ReferenceVocabEntry | ReferenceGrammarEntry
    kind: ItemKind
    score: float
    reasons: list[str]
    prerequisites_met: bool = True


def frequency_score(rank: int) -> float:
    """1 / log2(rank + 2): rarer items score lower."""
    if rank < 1:
        raise InvalidInputError(f"Invalid frequency rank: {rank!r}")
    return 1.0 / math.log2(rank + 2)


def check_prerequisites(
    pattern_id: str,
    known_pattern_ids: Collection[str],
    corpus: ReferenceCorpus,
) -> tuple[bool, list[str]]:
    """
    Returns:
        (met, missing) where `missing` keeps the corpus's prerequisite order.
    """
    prerequisites = corpus.prerequisite_map.get(pattern_id, ())
    missing = [p for p in prerequisites if p not in known_pattern_ids]
    return (not missing, missing)


def generate_recommendations(
    bubble: KnowledgeBubble,
    corpus: ReferenceCorpus,
    known_surface_forms: Collection[str],
    known_pattern_ids: Collection[str],
    cap: int,
    signals: BehavioralSignals | None = None,
) -> list[Recommendation]:
    """
    Rank new items to introduce.

    Args:
        bubble: Output of the coverage model.
        corpus: Reference corpus supplying candidates.
        known_surface_forms: Vocabulary already in the learner's inventory.
        known_pattern_ids: Grammar patterns already in the learner's inventory.
        cap: Daily new-item limit; at most this many are returned.
        signals: Optional regression/avoidance signals.

    Returns:
        Recommendations sorted by priority, ties in corpus order.
    """
    signals = signals or BehavioralSignals()
    target_levels = {bubble.current_level, bubble.frontier_level}

    candidates: list[_Candidate] = []

    for vocab in corpus.vocabulary:
        if vocab.level not in target_levels or vocab.surface_form in known_surface_forms:
            continue
        candidates.append(_score_vocab(vocab, bubble.current_level))

    for grammar in corpus.grammar:
        if grammar.level not in target_levels or grammar.pattern_id in known_pattern_ids:
            continue
        candidates.append(
            _score_grammar(grammar, bubble.current_level, known_pattern_ids, corpus)
        )

    for candidate in candidates:
        # Global caution discount while any regression is active
        if signals.regressed_item_ids:
            candidate.score -= REGRESSION_PENALTY
            candidate.reasons.append("active regressions: caution discount")
        if signals.avoided_item_ids and candidate.kind == ItemKind.GRAMMAR:
            candidate.score += AVOIDANCE_GRAMMAR_BONUS
            candidate.reasons.append("resurfacing avoided grammar")

    # Stable sort keeps corpus order for ties
    candidates.sort(key=lambda c: c.score, reverse=True)
    selected = candidates[: max(cap, 0)]

    logger.debug(
        f"Recommender scored {len(candidates)} candidates at {sorted(target_levels)}; "
        f"returning {len(selected)}"
    )
    return [_to_recommendation(c) for c in selected]


def _level_fit(level: str, current_level: str, reasons: list[str]) -> float:
    if level == current_level:
        reasons.append("fills gap in current level")
        return CURRENT_LEVEL_BONUS
    reasons.append("frontier level (i+1)")
    return 0.0


def _frequency_fit(rank: int, reasons: list[str]) -> float:
    if rank <= HIGH_FREQUENCY_RANK:
        reasons.append("high frequency")
        return HIGH_FREQUENCY_BONUS
    return 0.0


def _score_vocab(vocab: ReferenceVocabEntry, current_level: str) -> _Candidate:
    reasons: list[str] = []
    score = frequency_score(vocab.frequency_rank)
    score += _level_fit(vocab.level, current_level, reasons)
    score += _frequency_fit(vocab.frequency_rank, reasons)
    return _Candidate(entry=vocab, kind=ItemKind.LEXICAL, score=score, reasons=reasons)


def _score_grammar(
    grammar: ReferenceGrammarEntry,
    current_level: str,
    known_pattern_ids: Collection[str],
    corpus: ReferenceCorpus,
) -> _Candidate:
    reasons: list[str] = []
    score = frequency_score(grammar.frequency_rank)
    score += _level_fit(grammar.level, current_level, reasons)

    met, missing = check_prerequisites(grammar.pattern_id, known_pattern_ids, corpus)
    if met:
        score += PREREQUISITES_MET_BONUS
        reasons.append("all prerequisites met")
    else:
        # Penalty, not exclusion
        score -= MISSING_PREREQUISITES_PENALTY
        reasons.append(f"missing prerequisites: {', '.join(missing)}")

    return _Candidate(
        entry=grammar,
        kind=ItemKind.GRAMMAR,
        score=score,
        reasons=reasons,
        prerequisites_met=met,
    )


def _to_recommendation(c: _Candidate) -> Recommendation:
    entry = c.entry
    common = dict(
        kind=c.kind,
        level=entry.level,
        frequency_rank=entry.frequency_rank,
        priority=round(c.score, 2),
        reason="; ".join(c.reasons),
        prerequisites_met=c.prerequisites_met,
    )
    if isinstance(entry, ReferenceVocabEntry):
        return Recommendation(
            surface_form=entry.surface_form,
            reading=entry.reading,
            meaning=entry.meaning,
            **common,
        )
    return Recommendation(
        pattern_id=entry.pattern_id,
        name=entry.name,
        meaning=entry.description,
        **common,
    )
