"""
Domain models for the leveled reference corpus and coverage results.

The corpus is immutable once built; result types are plain dataclasses.
"""

from dataclasses import dataclass, field
from functools import cached_property
from typing import Any

from shiori.domain.errors import InvalidInputError
from shiori.domain.models import ItemKind, LevelScale


def _check_rank(rank: int, ident: str) -> None:
    if isinstance(rank, bool) or not isinstance(rank, int) or rank < 1:
        raise InvalidInputError(f"Invalid frequency rank {rank!r} for {ident!r}")


@dataclass(frozen=True)
class ReferenceVocabEntry:
    surface_form: str
    reading: str
    meaning: str
    part_of_speech: str
    level: str
    frequency_rank: int

    def __post_init__(self):
        _check_rank(self.frequency_rank, self.surface_form)


@dataclass(frozen=True)
class ReferenceGrammarEntry:
    pattern_id: str
    name: str
    description: str
    level: str
    frequency_rank: int
    prerequisite_ids: tuple[str, ...] = ()

    def __post_init__(self):
        _check_rank(self.frequency_rank, self.pattern_id)


@dataclass(frozen=True)
class ReferenceCorpus:
    """
    Static, read-only reference curriculum.

    Iteration order of `vocabulary` and `grammar` is significant: it breaks
    ties in gap listing and recommendation ranking.
    """

    vocabulary: tuple[ReferenceVocabEntry, ...] = ()
    grammar: tuple[ReferenceGrammarEntry, ...] = ()

    @cached_property
    def prerequisite_map(self) -> dict[str, tuple[str, ...]]:
        return {g.pattern_id: g.prerequisite_ids for g in self.grammar}

    def count_by_level(self, scale: LevelScale) -> dict[str, int]:
        counts = {level: 0 for level in scale}
        for entry in (*self.vocabulary, *self.grammar):
            if entry.level in counts:
                counts[entry.level] += 1
        return counts

    def by_level(
        self, level: str
    ) -> tuple[list[ReferenceVocabEntry], list[ReferenceGrammarEntry]]:
        return (
            [v for v in self.vocabulary if v.level == level],
            [g for g in self.grammar if g.level == level],
        )

    def by_frequency_range(
        self, min_rank: int, max_rank: int
    ) -> tuple[list[ReferenceVocabEntry], list[ReferenceGrammarEntry]]:
        return (
            [v for v in self.vocabulary if min_rank <= v.frequency_rank <= max_rank],
            [g for g in self.grammar if min_rank <= g.frequency_rank <= max_rank],
        )

    def validate_levels(self, scale: LevelScale) -> None:
        """Raise InvalidInputError if any entry is tagged outside the scale."""
        for v in self.vocabulary:
            if v.level not in scale:
                raise InvalidInputError(
                    f"Vocabulary entry {v.surface_form!r} has unknown level {v.level!r}"
                )
        for g in self.grammar:
            if g.level not in scale:
                raise InvalidInputError(
                    f"Grammar entry {g.pattern_id!r} has unknown level {g.level!r}"
                )


@dataclass(frozen=True)
class LevelBreakdown:
    level: str
    total_reference_items: int
    known_items: int
    production_ready: int
    coverage: float


@dataclass(frozen=True)
class Gap:
    """A hole in the learner's current level."""

    kind: ItemKind
    reason: str
    surface_form: str | None = None
    pattern_id: str | None = None
    item_id: int | None = None
    severity: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"kind": self.kind.value, "reason": self.reason}
        for key in ("surface_form", "pattern_id", "item_id", "severity"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data


@dataclass
class KnowledgeBubble:
    """Coverage of the reference corpus by the learner's inventory."""

    level_breakdowns: list[LevelBreakdown]
    current_level: str
    frontier_level: str
    gaps_in_current_level: list[Gap] = field(default_factory=list)
    overall_coverage: float = 0.0

    def breakdown(self, level: str) -> LevelBreakdown | None:
        for b in self.level_breakdowns:
            if b.level == level:
                return b
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "level_breakdowns": [
                {
                    "level": b.level,
                    "total_reference_items": b.total_reference_items,
                    "known_items": b.known_items,
                    "production_ready": b.production_ready,
                    "coverage": b.coverage,
                }
                for b in self.level_breakdowns
            ],
            "current_level": self.current_level,
            "frontier_level": self.frontier_level,
            "gaps_in_current_level": [g.to_dict() for g in self.gaps_in_current_level],
            "overall_coverage": self.overall_coverage,
        }


@dataclass(frozen=True)
class Recommendation:
    """A ranked candidate for introduction."""

    kind: ItemKind
    level: str
    frequency_rank: int
    priority: float
    reason: str
    prerequisites_met: bool
    surface_form: str | None = None
    reading: str | None = None
    meaning: str | None = None
    pattern_id: str | None = None
    name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "surface_form": self.surface_form,
            "reading": self.reading,
            "meaning": self.meaning,
            "pattern_id": self.pattern_id,
            "name": self.name,
            "level": self.level,
            "frequency_rank": self.frequency_rank,
            "priority": self.priority,
            "reason": self.reason,
            "prerequisites_met": self.prerequisites_met,
        }
