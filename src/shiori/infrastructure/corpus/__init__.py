# Infrastructure Corpus Package
from .loader import (
    BUNDLED_CORPUS,
    FileCorpusSource,
    clear_corpus_cache,
    load_reference_corpus,
    parse_corpus,
)

__all__ = [
    "BUNDLED_CORPUS",
    "FileCorpusSource",
    "clear_corpus_cache",
    "load_reference_corpus",
    "parse_corpus",
]
