"""Word store adapters: the persistence boundary of the review engine."""
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import and_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from wordlab.errors import DuplicateWordError, WordNotFoundError
from wordlab.models.models import DailyStudyTime, UserSettings, WordRecord
from wordlab.models.study_models import (
    WORD_TEXT_FIELDS,
    GroupMeta,
    Progress,
    ProgressKey,
    Word,
)

logger = logging.getLogger(__name__)

OnChange = Callable[[Dict[str, Word]], None]


class WordStore(ABC):
    """Async interface the session engine and time tracker write through."""

    @abstractmethod
    def subscribe(self, on_change: OnChange) -> Callable[[], None]:
        """Register a listener for full-collection snapshots; returns an unsubscribe callable."""

    @abstractmethod
    async def add_word(self, word: Word) -> None:
        """Insert a new word with both of its progress records."""

    @abstractmethod
    async def update_fields(self, word_id: str, fields: Dict[str, Any]) -> None:
        """Update text fields of a word."""

    @abstractmethod
    async def set_progress(
        self, word_id: str, key: ProgressKey, progress: Optional[Progress]
    ) -> None:
        """Replace a progress record; None removes it."""

    @abstractmethod
    async def delete_word(self, word_id: str) -> None:
        """Delete a word."""

    @abstractmethod
    async def restore_word(self, word_id: str, record: Dict[str, Any]) -> None:
        """Re-create a deleted word at its original id."""

    @abstractmethod
    async def clear_words(self) -> int:
        """Delete every word of the user; returns how many were removed."""

    @abstractmethod
    async def increment_daily_counter(self, date_key: str, seconds: int) -> int:
        """Atomically add seconds to the counter of date_key; returns the new total."""

    @abstractmethod
    async def get_daily_counters(self) -> Dict[str, int]:
        """Get all daily study counters."""

    @abstractmethod
    async def reset_progress(self, now: int) -> None:
        """Reset both progress records of every word to a fresh "new" state."""

    @abstractmethod
    async def load_settings(self) -> Optional[Dict[str, Any]]:
        """Load persisted study preferences, or None."""

    @abstractmethod
    async def save_settings(self, config: Dict[str, Any]) -> None:
        """Persist study preferences."""

    @abstractmethod
    async def load_group_meta(self) -> Dict[int, GroupMeta]:
        """Load the saved names and descriptions of groups, by group index."""

    @abstractmethod
    async def save_group_meta(self, meta: Dict[int, GroupMeta]) -> None:
        """Persist the names and descriptions of groups."""


def word_to_record(user_id: str, word: Word) -> WordRecord:
    """Convert a domain word into a database row of user_id."""
    return WordRecord(
        user_id=user_id,
        id=word.id,
        word=word.word,
        translation=word.translation,
        info1=word.info1,
        info2=word.info2,
        ex1=word.ex1,
        ex2=word.ex2,
        ex3=word.ex3,
        progress_global=word.progress_global.to_dict() if word.progress_global else None,
        progress_groups=word.progress_groups.to_dict() if word.progress_groups else None,
    )


def record_to_word(record: WordRecord) -> Word:
    """Convert a database row into a domain word."""
    return Word(
        id=record.id,
        word=record.word,
        translation=record.translation,
        info1=record.info1 or "",
        info2=record.info2 or "",
        ex1=record.ex1 or "",
        ex2=record.ex2 or "",
        ex3=record.ex3 or "",
        progress_global=Progress.from_dict(record.progress_global),
        progress_groups=Progress.from_dict(record.progress_groups),
    )


class SqlWordStore(WordStore):
    """Word store backed by a SQLAlchemy session, scoped to one user."""

    def __init__(self, db: Session, user_id: str):
        """Initialize the store with a database session and the owning user."""
        self.db = db
        self.user_id = user_id
        self._listeners: List[OnChange] = []

    def _get_record(self, word_id: str) -> Optional[WordRecord]:
        return (
            self.db.query(WordRecord)
            .filter(
                and_(
                    WordRecord.user_id == self.user_id,
                    WordRecord.id == word_id,
                )
            )
            .first()
        )

    def _require_record(self, word_id: str) -> WordRecord:
        record = self._get_record(word_id)
        if not record:
            raise WordNotFoundError(word_id)
        return record

    def load_words(self) -> Dict[str, Word]:
        """Read the whole collection of the user."""
        records = self.db.query(WordRecord).filter(WordRecord.user_id == self.user_id).all()
        return {record.id: record_to_word(record) for record in records}

    def subscribe(self, on_change: OnChange) -> Callable[[], None]:
        self._listeners.append(on_change)
        on_change(self.load_words())

        def unsubscribe() -> None:
            if on_change in self._listeners:
                self._listeners.remove(on_change)

        return unsubscribe

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.load_words()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Word collection listener failed")

    async def add_word(self, word: Word) -> None:
        if self._get_record(word.id) is not None:
            raise DuplicateWordError(word.id)
        self.db.add(word_to_record(self.user_id, word))
        self.db.commit()
        logger.info("Added word %s for user %s", word.id, self.user_id)
        self._notify()

    async def update_fields(self, word_id: str, fields: Dict[str, Any]) -> None:
        record = self._require_record(word_id)
        for name in WORD_TEXT_FIELDS:
            if name in fields and fields[name] is not None:
                setattr(record, name, str(fields[name]))
        self.db.commit()
        self._notify()

    async def set_progress(
        self, word_id: str, key: ProgressKey, progress: Optional[Progress]
    ) -> None:
        record = self._require_record(word_id)
        setattr(record, key.value, progress.to_dict() if progress else None)
        self.db.commit()
        self._notify()

    async def delete_word(self, word_id: str) -> None:
        record = self._require_record(word_id)
        self.db.delete(record)
        self.db.commit()
        logger.info("Deleted word %s of user %s", word_id, self.user_id)
        self._notify()

    async def restore_word(self, word_id: str, record: Dict[str, Any]) -> None:
        existing = self._get_record(word_id)
        if existing is None:
            existing = WordRecord(user_id=self.user_id, id=word_id)
            self.db.add(existing)
        for name in WORD_TEXT_FIELDS:
            setattr(existing, name, str(record.get(name) or ""))
        for key in ProgressKey:
            if key.value in record:
                setattr(existing, key.value, record[key.value])
        self.db.commit()
        logger.info("Restored word %s of user %s", word_id, self.user_id)
        self._notify()

    async def clear_words(self) -> int:
        count = (
            self.db.query(WordRecord)
            .filter(WordRecord.user_id == self.user_id)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        logger.info("Cleared %d words of user %s", count, self.user_id)
        self._notify()
        return count

    async def increment_daily_counter(self, date_key: str, seconds: int) -> int:
        # Single-statement read-modify-write so concurrent writers never lose updates
        statement = (
            update(DailyStudyTime)
            .where(
                and_(
                    DailyStudyTime.user_id == self.user_id,
                    DailyStudyTime.date_key == date_key,
                )
            )
            .values(seconds=DailyStudyTime.seconds + seconds)
        )
        result = self.db.execute(statement)
        if result.rowcount == 0:
            try:
                self.db.add(
                    DailyStudyTime(user_id=self.user_id, date_key=date_key, seconds=seconds)
                )
                self.db.commit()
            except IntegrityError:
                # Another writer created the row first
                self.db.rollback()
                self.db.execute(statement)
                self.db.commit()
        else:
            self.db.commit()
        total = (
            self.db.query(DailyStudyTime.seconds)
            .filter(
                and_(
                    DailyStudyTime.user_id == self.user_id,
                    DailyStudyTime.date_key == date_key,
                )
            )
            .scalar()
        )
        return int(total)

    async def get_daily_counters(self) -> Dict[str, int]:
        rows = self.db.query(DailyStudyTime).filter(DailyStudyTime.user_id == self.user_id).all()
        return {row.date_key: row.seconds for row in rows}

    async def reset_progress(self, now: int) -> None:
        fresh = Progress(interval=0, next_date=now, state="new").to_dict()
        records = self.db.query(WordRecord).filter(WordRecord.user_id == self.user_id).all()
        for record in records:
            record.progress_global = dict(fresh)
            record.progress_groups = dict(fresh)
        self.db.commit()
        logger.info("Reset progress of %d words for user %s", len(records), self.user_id)
        self._notify()

    async def load_settings(self) -> Optional[Dict[str, Any]]:
        row = self.db.query(UserSettings).filter(UserSettings.user_id == self.user_id).first()
        return dict(row.study) if row and row.study else None

    def _settings_row(self) -> UserSettings:
        row = self.db.query(UserSettings).filter(UserSettings.user_id == self.user_id).first()
        if row is None:
            row = UserSettings(user_id=self.user_id)
            self.db.add(row)
        return row

    async def save_settings(self, config: Dict[str, Any]) -> None:
        row = self._settings_row()
        row.study = dict(config)
        self.db.commit()

    async def load_group_meta(self) -> Dict[int, GroupMeta]:
        row = self.db.query(UserSettings).filter(UserSettings.user_id == self.user_id).first()
        if row is None or not row.groups:
            return {}
        # JSON object keys are strings
        return {int(index): GroupMeta.from_dict(data) for index, data in row.groups.items()}

    async def save_group_meta(self, meta: Dict[int, GroupMeta]) -> None:
        row = self._settings_row()
        row.groups = {str(index): m.to_dict() for index, m in sorted(meta.items())}
        self.db.commit()
