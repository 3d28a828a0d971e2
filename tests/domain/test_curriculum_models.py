import pytest

from shiori.domain.curriculum.models import (
    Gap,
    ReferenceGrammarEntry,
    ReferenceVocabEntry,
)
from shiori.domain.errors import InvalidInputError
from shiori.domain.models import ItemKind, LevelScale


@pytest.mark.parametrize("rank", [0, -3, 1.5, True])
def test_reference_entry_rejects_bad_rank(rank):
    with pytest.raises(InvalidInputError, match="frequency rank"):
        ReferenceVocabEntry("水", "みず", "water", "noun", "A1", rank)


def test_grammar_entry_rejects_negative_rank():
    with pytest.raises(InvalidInputError):
        ReferenceGrammarEntry("masu", "ます", "", "A1", -1)


def test_count_by_level(small_corpus):
    counts = small_corpus.count_by_level(LevelScale())
    assert counts == {"A1": 4, "A2": 3, "B1": 0, "B2": 0, "C1": 0, "C2": 0}


def test_by_level_keeps_corpus_order(small_corpus):
    vocab, grammar = small_corpus.by_level("A1")
    assert [v.surface_form for v in vocab] == ["水", "本"]
    assert [g.pattern_id for g in grammar] == ["masu", "te_form"]


def test_by_frequency_range(small_corpus):
    vocab, grammar = small_corpus.by_frequency_range(1, 50)
    assert [v.surface_form for v in vocab] == ["水"]
    assert [g.pattern_id for g in grammar] == ["masu", "te_form", "te_iru"]


def test_prerequisite_map(small_corpus):
    assert small_corpus.prerequisite_map["te_iru"] == ("te_form",)
    assert small_corpus.prerequisite_map["masu"] == ()


def test_validate_levels(small_corpus):
    small_corpus.validate_levels(LevelScale())
    with pytest.raises(InvalidInputError, match="unknown level"):
        small_corpus.validate_levels(LevelScale(("N5", "N4")))


def test_gap_to_dict_omits_empty_fields():
    gap = Gap(kind=ItemKind.GRAMMAR, reason="Missing grammar pattern: ます", pattern_id="masu")
    assert gap.to_dict() == {
        "kind": "grammar",
        "reason": "Missing grammar pattern: ます",
        "pattern_id": "masu",
    }
