"""Exception types raised by the shiori core."""


class ShioriError(Exception):
    """Base class for all errors raised by shiori."""


class InvalidInputError(ShioriError, ValueError):
    """
    A caller contract violation.

    Raised for unknown mastery stages, grades, skills or item kinds,
    non-positive frequency ranks and malformed reference-corpus records.
    Sparse or missing data is never reported this way; it degrades to
    zero/unchanged results instead.
    """


class CorpusNotFoundError(ShioriError, FileNotFoundError):
    """The reference corpus file does not exist."""
