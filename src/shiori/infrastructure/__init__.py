# Infrastructure Package
from .corpus import FileCorpusSource, load_reference_corpus
from .inventory import InMemoryInventorySource, JsonInventorySource

__all__ = [
    "FileCorpusSource",
    "load_reference_corpus",
    "InMemoryInventorySource",
    "JsonInventorySource",
]
