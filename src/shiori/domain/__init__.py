# Domain Package
from .errors import CorpusNotFoundError, InvalidInputError, ShioriError
from .models import (
    FsrsState,
    Grade,
    ItemKind,
    LearnableItem,
    LearnerProfile,
    LevelScale,
    MasteryEvidence,
    MasteryStage,
    MemoryState,
    ReviewSubmission,
    Skill,
)

__all__ = [
    "ShioriError",
    "InvalidInputError",
    "CorpusNotFoundError",
    "FsrsState",
    "Grade",
    "ItemKind",
    "LearnableItem",
    "LearnerProfile",
    "LevelScale",
    "MasteryEvidence",
    "MasteryStage",
    "MemoryState",
    "ReviewSubmission",
    "Skill",
]
