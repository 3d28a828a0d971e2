import pytest

from shiori.application.curriculum.bubble import compute_knowledge_bubble, identify_gaps
from shiori.domain.curriculum.models import (
    ReferenceCorpus,
    ReferenceGrammarEntry,
    ReferenceVocabEntry,
)
from shiori.domain.models import ItemKind, LevelScale, MasteryStage

from conftest import make_item

S = MasteryStage


def vocab(level, count, start=0):
    return tuple(
        ReferenceVocabEntry(f"{level}-w{i}", "", "", "noun", level, i + 1)
        for i in range(start, start + count)
    )


def grammar(level, count):
    return tuple(
        ReferenceGrammarEntry(f"{level}-g{i}", f"Pattern {level}-{i}", "", level, i + 1)
        for i in range(count)
    )


def known(level, count, stage=S.APPRENTICE_3, start_id=1):
    return [
        make_item(start_id + i, stage=stage, level=level, surface_form=f"{level}-w{i}")
        for i in range(count)
    ]


class TestCoverage:
    def test_current_level_example(self):
        corpus = ReferenceCorpus(vocabulary=vocab("A1", 20))
        bubble = compute_knowledge_bubble(known("A1", 17), corpus)

        a1 = bubble.breakdown("A1")
        assert a1.total_reference_items == 20
        assert a1.known_items == 17
        assert a1.coverage == 0.85
        assert bubble.current_level == "A1"
        assert bubble.frontier_level == "A2"
        assert bubble.overall_coverage == 0.85

    def test_levels_without_reference_items_have_zero_coverage(self):
        bubble = compute_knowledge_bubble([], ReferenceCorpus())
        assert [b.coverage for b in bubble.level_breakdowns] == [0.0] * 6
        assert bubble.current_level == "A1"
        assert bubble.overall_coverage == 0.0

    def test_current_level_is_contiguous(self):
        corpus = ReferenceCorpus(vocabulary=vocab("A1", 10) + vocab("A2", 10) + vocab("B1", 10))
        items = known("A1", 10) + known("A2", 5, start_id=100) + known("B1", 10, start_id=200)
        bubble = compute_knowledge_bubble(items, corpus)
        assert bubble.breakdown("B1").coverage == 1.0
        assert bubble.current_level == "A1"
        assert bubble.frontier_level == "A2"

    def test_current_level_advances_through_qualifying_levels(self):
        corpus = ReferenceCorpus(vocabulary=vocab("A1", 5) + vocab("A2", 5))
        items = known("A1", 5) + known("A2", 4, start_id=100)
        bubble = compute_knowledge_bubble(items, corpus)
        assert bubble.current_level == "A2"
        assert bubble.frontier_level == "B1"

    def test_frontier_clamps_at_strongest_level(self):
        scale = LevelScale(("N2", "N1"))
        corpus = ReferenceCorpus(vocabulary=vocab("N2", 2) + vocab("N1", 2))
        items = known("N2", 2) + known("N1", 2, start_id=50)
        bubble = compute_knowledge_bubble(items, corpus, scale=scale)
        assert bubble.current_level == "N1"
        assert bubble.frontier_level == "N1"

    def test_adding_known_item_never_decreases_coverage(self):
        corpus = ReferenceCorpus(vocabulary=vocab("A1", 8))
        items = known("A1", 3)
        before = compute_knowledge_bubble(items, corpus).breakdown("A1").coverage
        items.append(make_item(99, stage=S.JOURNEYMAN, level="A1", surface_form="A1-w7"))
        after = compute_knowledge_bubble(items, corpus).breakdown("A1").coverage
        assert after >= before

    def test_stage_buckets(self):
        corpus = ReferenceCorpus(vocabulary=vocab("A1", 10))
        stages = [S.APPRENTICE_2, S.APPRENTICE_3, S.APPRENTICE_4, S.JOURNEYMAN, S.BURNED]
        items = [
            make_item(i, stage=stage, level="A1", surface_form=f"A1-w{i}")
            for i, stage in enumerate(stages)
        ]
        a1 = compute_knowledge_bubble(items, corpus).breakdown("A1")
        assert a1.known_items == 4
        assert a1.production_ready == 2

    def test_untagged_items_count_at_weakest_level(self):
        corpus = ReferenceCorpus(vocabulary=vocab("A1", 2))
        items = [make_item(1, level=None, surface_form="A1-w0")]
        assert compute_knowledge_bubble(items, corpus).breakdown("A1").known_items == 1


class TestGaps:
    def test_weak_items_then_missing_reference_items(self):
        corpus = ReferenceCorpus(vocabulary=vocab("A1", 3), grammar=grammar("A1", 1))
        items = [
            make_item(1, stage=S.UNSEEN, surface_form="A1-w0"),
            make_item(2, stage=S.INTRODUCED, surface_form="A1-w1"),
            make_item(3, stage=S.APPRENTICE_1, surface_form="other"),
            make_item(4, stage=S.APPRENTICE_3, surface_form="another"),
        ]
        gaps = compute_knowledge_bubble(items, corpus).gaps_in_current_level
        assert [g.reason for g in gaps] == [
            "Not yet seen",
            "Introduced but not in SRS",
            "Weak — needs more review",
            "Missing from vocabulary: A1-w2 (freq rank: 3)",
            "Missing grammar pattern: Pattern A1-0",
        ]
        assert gaps[0].item_id == 1
        assert gaps[4].pattern_id == "A1-g0"

    def test_missing_gaps_are_capped(self):
        corpus = ReferenceCorpus(vocabulary=vocab("A1", 30), grammar=grammar("A1", 12))
        gaps = compute_knowledge_bubble([], corpus).gaps_in_current_level
        lexical = [g for g in gaps if g.kind == ItemKind.LEXICAL]
        grammatical = [g for g in gaps if g.kind == ItemKind.GRAMMAR]
        assert len(lexical) == 10
        assert len(grammatical) == 5
        # Corpus order
        assert lexical[0].surface_form == "A1-w0"

    def test_gaps_only_come_from_current_level(self):
        corpus = ReferenceCorpus(vocabulary=vocab("A1", 2) + vocab("A2", 3))
        items = [
            make_item(1, stage=S.APPRENTICE_3, surface_form="A1-w0"),
            make_item(2, stage=S.APPRENTICE_1, level="A2", surface_form="A2-w0"),
        ]
        gaps = compute_knowledge_bubble(items, corpus).gaps_in_current_level
        assert [g.surface_form for g in gaps] == ["A1-w1"]


def test_identify_gaps_assigns_severity():
    corpus = ReferenceCorpus(vocabulary=vocab("A1", 2) + vocab("A2", 2))
    items = [
        make_item(1, stage=S.APPRENTICE_3, level="A1", surface_form="A1-w0"),
        make_item(2, stage=S.APPRENTICE_4, level="A1", surface_form="A1-w1", production_weight=0.5),
        make_item(3, stage=S.APPRENTICE_1, level="A2", surface_form="A2-w0"),
        make_item(4, stage=S.INTRODUCED, level="B1", surface_form="B1-w0"),
    ]
    bubble = compute_knowledge_bubble(items, corpus)
    assert bubble.current_level == "A1"

    gaps = identify_gaps(bubble, items)
    by_severity = {s: [g for g in gaps if g.severity == s] for s in ("high", "medium", "low")}

    assert by_severity["high"] == []
    assert by_severity["medium"] == []
    assert [g.item_id for g in by_severity["low"]] == [2]


def test_identify_gaps_frontier_introduced_items():
    corpus = ReferenceCorpus(vocabulary=vocab("A1", 1) + vocab("A2", 2))
    items = [
        make_item(1, stage=S.APPRENTICE_3, level="A1", surface_form="A1-w0"),
        make_item(2, stage=S.INTRODUCED, level="A2", surface_form="A2-w0"),
    ]
    bubble = compute_knowledge_bubble(items, corpus)
    gaps = identify_gaps(bubble, items)

    high = [g for g in gaps if g.severity == "high"]
    medium = [g for g in gaps if g.severity == "medium"]
    assert bubble.current_level == "A1"
    assert high == []
    assert [g.item_id for g in medium] == [2]
    assert medium[0].reason == "At frontier level, introduced but not added to SRS"


@pytest.mark.parametrize("count,expected", [(0, 0.0), (1, 0.33), (2, 0.67), (3, 1.0)])
def test_coverage_is_rounded(count, expected):
    corpus = ReferenceCorpus(vocabulary=vocab("A1", 3))
    assert compute_knowledge_bubble(known("A1", count), corpus).breakdown("A1").coverage == expected
