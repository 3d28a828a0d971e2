"""
Domain models for learner items, memory states and mastery stages.

These are pure data structures with no I/O or external dependencies.
"""

import logging
import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Any, TypeVar

from .constants import DEFAULT_LEVELS
from .errors import InvalidInputError

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)


def _coerce(enum_cls: type[E], value: Any, label: str) -> E:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        pass
    if isinstance(value, str):
        # Accept member names too ("GOOD", "Journeyman")
        for member in enum_cls:
            if member.name.lower() == value.strip().lower():
                return member
    raise InvalidInputError(f"Unknown {label}: {value!r}")


class MasteryStage(str, Enum):
    """Ten ordered tiers tracking depth of learning."""

    UNSEEN = "unseen"
    INTRODUCED = "introduced"
    APPRENTICE_1 = "apprentice_1"
    APPRENTICE_2 = "apprentice_2"
    APPRENTICE_3 = "apprentice_3"
    APPRENTICE_4 = "apprentice_4"
    JOURNEYMAN = "journeyman"
    EXPERT = "expert"
    MASTER = "master"
    BURNED = "burned"

    @property
    def rank(self) -> int:
        return _STAGE_ORDER.index(self)

    def __lt__(self, other):  # type: ignore[override]
        if not isinstance(other, MasteryStage):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):  # type: ignore[override]
        if not isinstance(other, MasteryStage):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):  # type: ignore[override]
        if not isinstance(other, MasteryStage):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):  # type: ignore[override]
        if not isinstance(other, MasteryStage):
            return NotImplemented
        return self.rank >= other.rank

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()

    @classmethod
    def parse(cls, value: Any) -> "MasteryStage":
        return _coerce(cls, value, "mastery stage")


_STAGE_ORDER = list(MasteryStage)


class Grade(IntEnum):
    """Button pressed for a review (1=Again, 2=Hard, 3=Good, 4=Easy)."""

    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4

    @classmethod
    def parse(cls, value: Any) -> "Grade":
        if isinstance(value, bool):
            raise InvalidInputError(f"Unknown grade: {value!r}")
        return _coerce(cls, value, "grade")


class Skill(str, Enum):
    """Review modality. Cloze reviews are scheduled against recognition memory."""

    RECOGNITION = "recognition"
    PRODUCTION = "production"
    CLOZE = "cloze"

    @property
    def memory_skill(self) -> "Skill":
        return Skill.PRODUCTION if self is Skill.PRODUCTION else Skill.RECOGNITION

    @classmethod
    def parse(cls, value: Any) -> "Skill":
        return _coerce(cls, value, "skill")


class ItemKind(str, Enum):
    LEXICAL = "lexical"
    GRAMMAR = "grammar"

    @classmethod
    def parse(cls, value: Any) -> "ItemKind":
        return _coerce(cls, value, "item kind")


class FsrsState(IntEnum):
    NEW = 0
    LEARNING = 1
    REVIEW = 2
    RELEARNING = 3


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 string (or datetime) into an aware UTC datetime."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as e:
            raise InvalidInputError(f"Invalid timestamp: {value!r}") from e
    else:
        raise InvalidInputError(f"Invalid timestamp: {value!r}")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


@dataclass(frozen=True)
class MemoryState:
    """
    FSRS memory state for one skill of one item.

    Attributes:
        due: When the next review is due.
        stability: Days until recall probability drops to 90%.
        difficulty: Item difficulty on FSRS's 1-10 scale (0 for new cards).
        elapsed_days: Days between the last two reviews.
        scheduled_days: Interval assigned at the last review.
        reps: Total review count.
        lapses: Number of times the item was forgotten.
        state: FSRS learning phase.
        last_review: Timestamp of the last review, if any.
    """

    due: datetime
    stability: float = 0.0
    difficulty: float = 0.0
    elapsed_days: int = 0
    scheduled_days: int = 0
    reps: int = 0
    lapses: int = 0
    state: FsrsState = FsrsState.NEW
    last_review: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "due": self.due.isoformat(),
            "stability": self.stability,
            "difficulty": self.difficulty,
            "elapsed_days": self.elapsed_days,
            "scheduled_days": self.scheduled_days,
            "reps": self.reps,
            "lapses": self.lapses,
            "state": int(self.state),
            "last_review": self.last_review.isoformat() if self.last_review else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MemoryState":
        if not isinstance(data, dict) or "due" not in data:
            raise InvalidInputError(f"Malformed memory state: {data!r}")
        last_review = data.get("last_review")
        try:
            state = FsrsState(int(data.get("state", 0)))
        except (TypeError, ValueError) as e:
            raise InvalidInputError(f"Unknown FSRS state: {data.get('state')!r}") from e
        return cls(
            due=parse_timestamp(data["due"]),
            stability=float(data.get("stability", 0.0)),
            difficulty=float(data.get("difficulty", 0.0)),
            elapsed_days=int(data.get("elapsed_days", 0)),
            scheduled_days=int(data.get("scheduled_days", 0)),
            reps=int(data.get("reps", 0)),
            lapses=int(data.get("lapses", 0)),
            state=state,
            last_review=parse_timestamp(last_review) if last_review else None,
        )


@dataclass(frozen=True)
class MasteryEvidence:
    """Gate evidence read by the mastery state machine."""

    production_weight: float = 0.0
    context_count: int = 0
    novel_context_count: int = 0
    kind: ItemKind = ItemKind.LEXICAL


@dataclass
class LearnableItem:
    """
    A vocabulary word or grammar pattern in the learner's inventory.

    Owned by the caller's persistence layer; the core only ever returns
    modified copies.
    """

    id: int
    kind: ItemKind
    stage: MasteryStage
    recognition: MemoryState
    production: MemoryState
    level: str | None = None

    # Identity / display
    surface_form: str | None = None
    pattern_id: str | None = None
    reading: str | None = None
    meaning: str | None = None

    # Gate evidence
    production_weight: float = 0.0
    context_count: int = 0
    novel_context_count: int = 0
    context_types: tuple[str, ...] = ()

    # Modality counters
    reading_exposures: int = 0
    writing_productions: int = 0
    production_count: int = 0
    exposure_count: int = 0
    last_reviewed: datetime | None = None

    def memory(self, skill: Skill) -> MemoryState:
        if skill.memory_skill is Skill.PRODUCTION:
            return self.production
        return self.recognition

    def evidence(self) -> MasteryEvidence:
        return MasteryEvidence(
            production_weight=self.production_weight,
            context_count=self.context_count,
            novel_context_count=self.novel_context_count,
            kind=self.kind,
        )

    def with_memory(self, skill: Skill, state: MemoryState) -> "LearnableItem":
        if skill.memory_skill is Skill.PRODUCTION:
            return replace(self, production=state)
        return replace(self, recognition=state)

    @property
    def display_form(self) -> str:
        return self.surface_form or self.pattern_id or str(self.id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "stage": self.stage.value,
            "level": self.level,
            "surface_form": self.surface_form,
            "pattern_id": self.pattern_id,
            "reading": self.reading,
            "meaning": self.meaning,
            "recognition": self.recognition.to_dict(),
            "production": self.production.to_dict(),
            "production_weight": self.production_weight,
            "context_count": self.context_count,
            "novel_context_count": self.novel_context_count,
            "context_types": list(self.context_types),
            "reading_exposures": self.reading_exposures,
            "writing_productions": self.writing_productions,
            "production_count": self.production_count,
            "exposure_count": self.exposure_count,
            "last_reviewed": self.last_reviewed.isoformat() if self.last_reviewed else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LearnableItem":
        """Build an item from an inventory record. Raises InvalidInputError."""
        if not isinstance(data, dict):
            raise InvalidInputError(f"Malformed item record: {data!r}")
        try:
            item_id = int(data["id"])
            recognition = MemoryState.from_dict(data["recognition"])
            production = MemoryState.from_dict(data["production"])
        except KeyError as e:
            raise InvalidInputError(f"Item record missing field {e}") from e
        except (TypeError, ValueError) as e:
            if isinstance(e, InvalidInputError):
                raise
            raise InvalidInputError(f"Malformed item record: {e}") from e

        context_types = tuple(data.get("context_types") or ())
        last_reviewed = data.get("last_reviewed")
        return cls(
            id=item_id,
            kind=ItemKind.parse(data.get("kind", ItemKind.LEXICAL)),
            stage=MasteryStage.parse(data.get("stage", MasteryStage.UNSEEN)),
            recognition=recognition,
            production=production,
            level=data.get("level"),
            surface_form=data.get("surface_form"),
            pattern_id=data.get("pattern_id"),
            reading=data.get("reading"),
            meaning=data.get("meaning"),
            production_weight=float(data.get("production_weight", 0.0)),
            context_count=int(data.get("context_count", len(context_types))),
            novel_context_count=int(data.get("novel_context_count", 0)),
            context_types=context_types,
            reading_exposures=int(data.get("reading_exposures", 0)),
            writing_productions=int(data.get("writing_productions", 0)),
            production_count=int(data.get("production_count", 0)),
            exposure_count=int(data.get("exposure_count", 0)),
            last_reviewed=parse_timestamp(last_reviewed) if last_reviewed else None,
        )


@dataclass(frozen=True)
class ReviewSubmission:
    """
    A single graded review coming from the review UI.

    Attributes:
        item_id: The reviewed item.
        kind: Lexical or grammar.
        grade: Again/Hard/Good/Easy.
        skill: Recognition, production or cloze.
        session_id: Optional session tag.
        context_type: Interaction context; defaults to "srs_review".
        production_weight: Explicit weight override for production evidence.
    """

    item_id: int
    kind: ItemKind
    grade: Grade
    skill: Skill
    session_id: str | None = None
    context_type: str | None = None
    production_weight: float | None = None

    def __post_init__(self):
        weight = self.production_weight
        if weight is not None and (not math.isfinite(weight) or weight < 0):
            # Production evidence only ever accumulates
            raise InvalidInputError(f"Invalid production weight override: {weight!r}")


@dataclass(frozen=True)
class LevelScale:
    """The configured, totally ordered level sequence (weakest first)."""

    levels: tuple[str, ...] = DEFAULT_LEVELS

    def __post_init__(self):
        if not self.levels:
            raise InvalidInputError("Level scale must define at least one level")
        if len(set(self.levels)) != len(self.levels):
            raise InvalidInputError(f"Level scale has duplicate levels: {self.levels}")

    @property
    def weakest(self) -> str:
        return self.levels[0]

    @property
    def strongest(self) -> str:
        return self.levels[-1]

    def __contains__(self, level: object) -> bool:
        return level in self.levels

    def __iter__(self):
        return iter(self.levels)

    def __len__(self) -> int:
        return len(self.levels)

    def index(self, level: str) -> int:
        try:
            return self.levels.index(level)
        except ValueError as e:
            raise InvalidInputError(f"Unknown level: {level!r}") from e

    def next_level(self, level: str) -> str:
        """One level above, clamped to the strongest level."""
        idx = self.index(level)
        return self.levels[min(idx + 1, len(self.levels) - 1)]

    def normalize(self, level: str | None) -> str:
        """Map an item's level tag onto the scale; untagged or unknown -> weakest."""
        if level is None:
            return self.weakest
        if level not in self.levels:
            logger.warning(f"Unknown level tag {level!r}; counting it as {self.weakest}")
            return self.weakest
        return level


@dataclass
class LearnerProfile:
    """Persisted learner counters needed for streak tracking."""

    current_streak: int = 0
    longest_streak: int = 0
    last_active_date: datetime | None = None
    daily_new_item_limit: int | None = None
    extra: dict[str, Any] = field(default_factory=dict)
