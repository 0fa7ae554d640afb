"""Application coordinator: owns the shared read model and wires the services."""
import logging
import random
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from wordlab.config import settings
from wordlab.errors import SessionStateError, WordNotFoundError
from wordlab.models.base import SessionLocal, init_db
from wordlab.models.study_models import GroupMeta, Progress, ProgressKey, Scope, Word, WriteResult
from wordlab.monitoring import start_monitoring
from wordlab.services.due_selector import GroupSummary, due_filter, group_summaries, sort_words
from wordlab.services.group_service import GroupService
from wordlab.services.preferences_service import PreferencesService
from wordlab.services.read_model import WordCollection
from wordlab.services.session_engine import SessionEngine
from wordlab.services.stats_service import ProfileStats, profile_stats
from wordlab.services.time_tracker import TimeTracker, now_ms
from wordlab.services.word_store import SqlWordStore


class WordLab:
    """Main application class.

    One instance serves one signed-in user at a time. The word collection,
    time tracker and session engine live from sign_in to sign_out.
    """

    def __init__(
        self,
        db: Optional[Session] = None,
        clock: Callable[[], int] = now_ms,
        rng: Optional[random.Random] = None,
        notify: Optional[Callable[[str], None]] = None,
        on_write_result: Optional[Callable[[WriteResult], None]] = None,
    ):
        """Initialize the application."""
        self.db = db
        self.clock = clock
        self.rng = rng
        self.notify = notify
        self.on_write_result = on_write_result
        self.running = False
        self.user_id: Optional[str] = None
        self.store: Optional[SqlWordStore] = None
        self.collection = WordCollection()
        self.tracker: Optional[TimeTracker] = None
        self.engine: Optional[SessionEngine] = None
        self.preferences: Optional[PreferencesService] = None
        self.group_meta: Optional[GroupService] = None
        self._owns_db = False
        self._unsubscribe: Optional[Callable[[], None]] = None
        self.logger = logging.getLogger(__name__)

    async def start(self) -> None:
        """Start the application."""
        if self.running:
            return

        if self.db is None:
            init_db()
            self.db = SessionLocal()
            self._owns_db = True
            self.logger.info("Database initialized")

        if settings.monitoring.enabled:
            start_monitoring(settings.monitoring.port)
            self.logger.info("Metrics server started on port %d", settings.monitoring.port)

        self.running = True

    async def stop(self) -> None:
        """Stop the application."""
        if not self.running:
            return

        await self.sign_out()
        if self._owns_db and self.db:
            self.db.close()
            self.db = None
            self._owns_db = False
            self.logger.info("Database session closed")
        self.running = False

    @property
    def signed_in(self) -> bool:
        return self.user_id is not None

    def _require_user(self) -> None:
        if not self.signed_in:
            raise SessionStateError("No user is signed in")

    async def sign_in(self, user_id: str) -> None:
        """Load the collection of user_id and set up its services."""
        if not self.running:
            await self.start()
        if self.signed_in:
            await self.sign_out()

        self.user_id = user_id
        self.store = SqlWordStore(self.db, user_id)
        self.collection = WordCollection()
        self._unsubscribe = self.store.subscribe(self.collection.apply_snapshot)
        self.tracker = TimeTracker(self.store, clock=self.clock)
        self.engine = SessionEngine(
            self.collection,
            self.store,
            self.tracker,
            clock=self.clock,
            rng=self.rng,
            notify=self.notify,
            on_write_result=self.on_write_result,
        )
        self.preferences = PreferencesService(self.store)
        await self.preferences.load()
        self.group_meta = GroupService(self.store)
        await self.group_meta.load()
        self.logger.info("User %s signed in with %d words", user_id, len(self.collection))

    async def sign_out(self) -> None:
        """Tear down the per-user state; unflushed study seconds are dropped."""
        if not self.signed_in:
            return

        if self.engine.session is not None:
            self.engine.end_session()
        self.tracker.reset()
        await self.engine.drain()
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None
        self.collection.clear()
        self.logger.info("User %s signed out", self.user_id)

        self.user_id = None
        self.store = None
        self.tracker = None
        self.engine = None
        self.preferences = None
        self.group_meta = None

    def record_activity(self) -> None:
        """Forward a user input event to the time tracker."""
        if self.tracker:
            self.tracker.record_activity()

    async def edit_word(self, word_id: str, fields: Dict[str, Any]) -> None:
        """Save an edit and let a running session redraw the card."""
        self._require_user()
        await self.store.update_fields(word_id, fields)
        self.engine.on_external_update(word_id, fields)

    async def delete_word(self, word_id: str) -> Dict[str, Any]:
        """Delete a word and return the backup a session can restore from."""
        self._require_user()
        word = self.collection.get(word_id)
        if word is None:
            raise WordNotFoundError(word_id)
        backup: Dict[str, Any] = word.text_fields()
        for key in ProgressKey:
            progress = word.get_progress(key)
            backup[key.value] = progress.to_dict() if progress else None
        await self.store.delete_word(word_id)
        self.engine.on_external_delete(word_id, backup)
        return backup

    async def add_word(self, fields: Dict[str, Any]) -> Word:
        """Create a word at the next free id, new and due in both contexts.

        The new word is not added to a running session's queue.
        """
        self._require_user()
        now = self.clock()
        word_id = str(max((w.sort_key for w in self.collection), default=0) + 1)
        word = Word(
            id=word_id,
            word="",
            translation="",
            progress_global=Progress(interval=0, next_date=now, state="new"),
            progress_groups=Progress(interval=0, next_date=now, state="new"),
        )
        word.merge_fields(fields)
        await self.store.add_word(word)
        return self.collection.get(word_id) or word

    async def clear_words(self) -> int:
        """Delete the whole collection; a running session is ended first."""
        self._require_user()
        if self.engine.session is not None:
            self.engine.end_session()
        await self.engine.drain()
        return await self.store.clear_words()

    async def rename_group(self, index: int, name: str, description: str = "") -> GroupMeta:
        """Save the name and description shown for a group."""
        self._require_user()
        return await self.group_meta.update(index, name, description)

    def session_title(self, scope: Scope) -> str:
        """Heading for a session over scope."""
        self._require_user()
        return self.group_meta.session_title(scope)

    async def reset_progress(self) -> None:
        """Mark every word as new in both scheduling contexts."""
        self._require_user()
        await self.store.reset_progress(self.clock())

    def global_due_count(self) -> int:
        """Number of words due in the global scope."""
        return len(due_filter(self.collection, ProgressKey.GLOBAL, self.clock()))

    def groups(self) -> List[GroupSummary]:
        """Dashboard summaries of every group."""
        meta = self.group_meta.meta if self.group_meta else None
        return group_summaries(sort_words(self.collection), ProgressKey.GROUPS, self.clock(), meta)

    async def profile(self) -> ProfileStats:
        """Statistics for the profile page."""
        self._require_user()
        counters = await self.store.get_daily_counters()
        today = datetime.fromtimestamp(self.clock() / 1000).date()
        return profile_stats(self.collection, counters, today)
