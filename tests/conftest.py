from datetime import datetime, timedelta, timezone

import pytest

from shiori.domain.curriculum.models import (
    ReferenceCorpus,
    ReferenceGrammarEntry,
    ReferenceVocabEntry,
)
from shiori.domain.models import (
    FsrsState,
    ItemKind,
    LearnableItem,
    MasteryStage,
    MemoryState,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_state(
    reps: int = 0,
    stability: float = 0.0,
    due_in_days: float = 0.0,
    scheduled_days: int = 0,
    difficulty: float = 5.0,
    state: FsrsState | None = None,
    now: datetime = NOW,
) -> MemoryState:
    """Memory state due `due_in_days` from `now` (negative = overdue)."""
    due = now + timedelta(days=due_in_days)
    if state is None:
        state = FsrsState.REVIEW if reps else FsrsState.NEW
    return MemoryState(
        due=due,
        stability=stability,
        difficulty=difficulty if reps else 0.0,
        scheduled_days=scheduled_days,
        reps=reps,
        state=state,
        last_review=due - timedelta(days=scheduled_days) if reps else None,
    )


def make_item(
    item_id: int = 1,
    stage: MasteryStage = MasteryStage.APPRENTICE_3,
    kind: ItemKind = ItemKind.LEXICAL,
    level: str | None = "A1",
    recognition: MemoryState | None = None,
    production: MemoryState | None = None,
    **kwargs,
) -> LearnableItem:
    if kind == ItemKind.LEXICAL:
        kwargs.setdefault("surface_form", f"word{item_id}")
    else:
        kwargs.setdefault("pattern_id", f"pattern{item_id}")
    return LearnableItem(
        id=item_id,
        kind=kind,
        stage=stage,
        recognition=recognition or make_state(),
        production=production or make_state(),
        level=level,
        **kwargs,
    )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def item_factory():
    return make_item


@pytest.fixture
def state_factory():
    return make_state


@pytest.fixture
def small_corpus():
    """Two levels of vocabulary and a small prerequisite chain of grammar."""
    return ReferenceCorpus(
        vocabulary=(
            ReferenceVocabEntry("水", "みず", "water", "noun", "A1", 40),
            ReferenceVocabEntry("本", "ほん", "book", "noun", "A1", 300),
            ReferenceVocabEntry("天気", "てんき", "weather", "noun", "A2", 80),
            ReferenceVocabEntry("約束", "やくそく", "promise", "noun", "A2", 900),
        ),
        grammar=(
            ReferenceGrammarEntry("masu", "ます", "Polite verb ending", "A1", 5),
            ReferenceGrammarEntry("te_form", "て形", "Conjunctive form", "A1", 20, ("masu",)),
            ReferenceGrammarEntry("te_iru", "ている", "Progressive", "A2", 35, ("te_form",)),
        ),
    )
