"""
File-backed reference corpus loader.

Parses JSON or YAML corpus files, validates every record, and caches the
resulting immutable corpus for the lifetime of the process.
"""

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from shiori.domain.curriculum.models import ReferenceCorpus
from shiori.domain.errors import CorpusNotFoundError, InvalidInputError
from shiori.domain.models import LevelScale
from shiori.domain.ports import CorpusSource

from .schema import CorpusDocument

logger = logging.getLogger(__name__)

BUNDLED_CORPUS = Path(__file__).resolve().parents[2] / "data" / "reference_corpus.yaml"


def parse_corpus(data: Any, scale: LevelScale | None = None) -> ReferenceCorpus:
    """
    Validate a decoded corpus document and convert it to the domain model.

    Raises:
        InvalidInputError: if any record is malformed, or tagged with a level
            outside `scale` when one is given.
    """
    if not isinstance(data, dict):
        raise InvalidInputError(
            f"Reference corpus must be a mapping with 'vocabulary' and 'grammar', "
            f"got {type(data).__name__}"
        )
    try:
        document = CorpusDocument.model_validate(data)
    except ValidationError as e:
        raise InvalidInputError(f"Malformed reference corpus record: {e}") from e

    corpus = document.to_domain()
    if scale is not None:
        corpus.validate_levels(scale)
    return corpus


def _read_document(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() == ".json":
            return json.loads(text)
        return yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise InvalidInputError(f"Could not parse reference corpus {path}: {e}") from e


@lru_cache(maxsize=None)
def _load_cached(resolved: str) -> ReferenceCorpus:
    path = Path(resolved)
    if not path.exists():
        raise CorpusNotFoundError(f"Reference corpus not found: {path}")
    corpus = parse_corpus(_read_document(path))
    logger.info(
        f"Loaded reference corpus {path.name}: "
        f"{len(corpus.vocabulary)} vocabulary, {len(corpus.grammar)} grammar"
    )
    return corpus


def load_reference_corpus(path: Path | str | None = None) -> ReferenceCorpus:
    """
    Load (once) and return the reference corpus at `path`.

    Defaults to the sample corpus bundled with the package. Failed loads
    are not cached.
    """
    target = Path(path) if path is not None else BUNDLED_CORPUS
    return _load_cached(str(target.expanduser().resolve()))


def clear_corpus_cache() -> None:
    _load_cached.cache_clear()


class FileCorpusSource(CorpusSource):
    """
    Loads the corpus from a JSON or YAML file and checks it against the
    configured level scale.
    """

    def __init__(self, path: Path | str | None = None, scale: LevelScale | None = None):
        self.path = Path(path) if path is not None else BUNDLED_CORPUS
        self.scale = scale or LevelScale()

    def load(self) -> ReferenceCorpus:
        corpus = load_reference_corpus(self.path)
        corpus.validate_levels(self.scale)
        return corpus
