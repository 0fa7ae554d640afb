"""Exceptions raised by WordLab services."""


class WordLabError(Exception):
    """Base class for WordLab errors."""


class InvalidRatingError(WordLabError, ValueError):
    """Raised when a rating is outside 1..6."""


class SessionStateError(WordLabError, RuntimeError):
    """Raised when an operation is not valid in the current session state."""


class WordNotFoundError(WordLabError, KeyError):
    """Raised by a store when a word id does not exist."""


class DuplicateWordError(WordLabError, ValueError):
    """Raised by a store when a new word reuses an existing id."""
