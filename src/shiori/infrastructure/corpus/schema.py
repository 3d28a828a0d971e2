"""
On-disk schema of the reference corpus.

Records use camelCase keys (`surfaceForm`, `frequencyRank`, `prerequisiteIds`);
snake_case is accepted too. `cefrLevel` / `jlptLevel` are accepted as
aliases of `level` for older exports.
"""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from shiori.domain.curriculum.models import (
    ReferenceCorpus,
    ReferenceGrammarEntry,
    ReferenceVocabEntry,
)

_LEVEL_ALIASES = AliasChoices("level", "cefrLevel", "jlptLevel", "cefr_level", "jlpt_level")


class _Record(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


class VocabRecord(_Record):
    surface_form: str = Field(min_length=1)
    reading: str = ""
    meaning: str = ""
    part_of_speech: str = ""
    level: str = Field(validation_alias=_LEVEL_ALIASES)
    frequency_rank: int = Field(ge=1, strict=True)

    def to_domain(self) -> ReferenceVocabEntry:
        return ReferenceVocabEntry(
            surface_form=self.surface_form,
            reading=self.reading,
            meaning=self.meaning,
            part_of_speech=self.part_of_speech,
            level=self.level,
            frequency_rank=self.frequency_rank,
        )


class GrammarRecord(_Record):
    pattern_id: str = Field(min_length=1)
    name: str
    description: str = ""
    level: str = Field(validation_alias=_LEVEL_ALIASES)
    frequency_rank: int = Field(ge=1, strict=True)
    prerequisite_ids: list[str] = Field(default_factory=list)

    def to_domain(self) -> ReferenceGrammarEntry:
        return ReferenceGrammarEntry(
            pattern_id=self.pattern_id,
            name=self.name,
            description=self.description,
            level=self.level,
            frequency_rank=self.frequency_rank,
            prerequisite_ids=tuple(self.prerequisite_ids),
        )


class CorpusDocument(_Record):
    vocabulary: list[VocabRecord] = Field(default_factory=list)
    grammar: list[GrammarRecord] = Field(default_factory=list)

    def to_domain(self) -> ReferenceCorpus:
        return ReferenceCorpus(
            vocabulary=tuple(v.to_domain() for v in self.vocabulary),
            grammar=tuple(g.to_domain() for g in self.grammar),
        )
