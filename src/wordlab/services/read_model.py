"""Shared in-memory read model of the word collection."""
import logging
from typing import Callable, Dict, Iterator, List, Optional

from wordlab.models.study_models import Word

logger = logging.getLogger(__name__)


class WordCollection:
    """The word collection of the signed-in user.

    Snapshots from the store are merged in place: a word keeps its identity
    across refreshes, so queues built from this collection keep pointing at
    live objects. Words missing from a snapshot are dropped from the
    collection but stay valid for whoever still holds them.
    """

    def __init__(self) -> None:
        self._words: Dict[str, Word] = {}
        self._listeners: List[Callable[["WordCollection"], None]] = []

    def __len__(self) -> int:
        return len(self._words)

    def __iter__(self) -> Iterator[Word]:
        return iter(list(self._words.values()))

    def __contains__(self, word_id: str) -> bool:
        return word_id in self._words

    def get(self, word_id: str) -> Optional[Word]:
        """Get a word by id."""
        return self._words.get(word_id)

    def words(self) -> List[Word]:
        """Get all words in insertion order."""
        return list(self._words.values())

    def apply_snapshot(self, snapshot: Dict[str, Word]) -> None:
        """Reconcile with a full snapshot from the store."""
        for word_id in list(self._words):
            if word_id not in snapshot:
                del self._words[word_id]
        for word_id, fresh in snapshot.items():
            existing = self._words.get(word_id)
            if existing is None:
                self._words[word_id] = fresh
            else:
                existing.replace_with(fresh)
        logger.debug("Word collection refreshed: %d words", len(self._words))
        for listener in list(self._listeners):
            listener(self)

    def add(self, word: Word) -> None:
        """Make word the live object for its id.

        Used to put a held word back, e.g. a restored card, so the next
        snapshot merges into that object instead of a fresh copy.
        """
        self._words[word.id] = word

    def remove(self, word_id: str) -> Optional[Word]:
        """Drop a word locally, returning it if present."""
        return self._words.pop(word_id, None)

    def clear(self) -> None:
        """Forget every word, e.g. on sign-out."""
        self._words.clear()

    def add_listener(self, listener: Callable[["WordCollection"], None]) -> None:
        """Call listener after every snapshot."""
        self._listeners.append(listener)
