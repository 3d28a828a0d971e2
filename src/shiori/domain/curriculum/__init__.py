# Domain Curriculum Package
from .models import (
    Gap,
    KnowledgeBubble,
    LevelBreakdown,
    Recommendation,
    ReferenceCorpus,
    ReferenceGrammarEntry,
    ReferenceVocabEntry,
)

__all__ = [
    "ReferenceVocabEntry",
    "ReferenceGrammarEntry",
    "ReferenceCorpus",
    "LevelBreakdown",
    "Gap",
    "KnowledgeBubble",
    "Recommendation",
]
