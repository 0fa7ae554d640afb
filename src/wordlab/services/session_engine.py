"""Review session engine: due queue, ratings, undo and external edits."""
import asyncio
import copy
import logging
import random
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from wordlab import monitoring
from wordlab.errors import SessionStateError
from wordlab.models.study_models import (
    CardState,
    CardView,
    HistoryEntry,
    Scope,
    SessionSnapshot,
    SessionState,
    StudySession,
    WriteResult,
)
from wordlab.services.due_selector import due_filter, scope_stats, select_scope
from wordlab.services.read_model import WordCollection
from wordlab.services.scheduling import next_progress, validate_rating
from wordlab.services.time_tracker import TimeTracker, now_ms
from wordlab.services.word_store import WordStore

logger = logging.getLogger(__name__)

NOTHING_DUE_MESSAGE = "Nothing due for review"
SESSION_COMPLETE_MESSAGE = "Session complete"


class SessionEngine:
    """Runs one review session at a time over the shared word collection.

    Every operation runs to completion synchronously. Store writes are
    scheduled as tasks and never awaited on the user path: the in-memory
    words stay authoritative for the rest of the session whatever the
    write outcome, and each outcome is reported as a WriteResult.
    """

    def __init__(
        self,
        collection: WordCollection,
        store: WordStore,
        tracker: TimeTracker,
        clock: Callable[[], int] = now_ms,
        rng: Optional[random.Random] = None,
        notify: Optional[Callable[[str], None]] = None,
        on_write_result: Optional[Callable[[WriteResult], None]] = None,
    ):
        """Initialize the engine with its collaborators."""
        self.collection = collection
        self.store = store
        self.tracker = tracker
        self.clock = clock
        self.rng = rng or random.Random()
        self._notify = notify or (lambda message: logger.info(message))
        self._on_write_result = on_write_result
        self.session: Optional[StudySession] = None
        self.last_session: Optional[StudySession] = None
        self._pending_writes: Set[asyncio.Task] = set()

    @property
    def state(self) -> SessionState:
        return SessionState.ACTIVE if self.session else SessionState.IDLE

    def _require_session(self) -> StudySession:
        if self.session is None:
            raise SessionStateError("No active review session")
        return self.session

    def _require_deleted(self) -> StudySession:
        session = self._require_session()
        if session.card_state is not CardState.DELETED:
            raise SessionStateError("The current word has not been deleted")
        return session

    def _is_current(self, word_id: str) -> bool:
        session = self.session
        return (
            session is not None
            and session.current_word is not None
            and session.current_word.id == word_id
        )

    # --- Lifecycle ---

    def start_session(self, scope: Scope) -> Optional[StudySession]:
        """Start reviewing the due words of scope in random order.

        Returns None, without creating a session, when nothing is due.
        """
        if self.session is not None:
            logger.info("Discarding unfinished session before starting a new one")
            self._close(completed=False)

        now = self.clock()
        key = scope.progress_key
        due = due_filter(select_scope(self.collection, scope), key, now)
        if not due:
            logger.info("Nothing due in %s scope", scope.label)
            self._notify(NOTHING_DUE_MESSAGE)
            return None

        self.rng.shuffle(due)
        session = StudySession(scope=scope, progress_key=key, queue=due, started_at=now)
        self.session = session
        self.last_session = session
        monitoring.sessions_started.labels(scope=scope.label).inc()
        logger.info("Started %s session with %d due words", scope.label, len(due))

        self.tracker.start_tracking()
        self._show_current()
        return session

    def end_session(self) -> None:
        """Discard the running session without undoing anything."""
        if self.session is not None:
            self._close(completed=False)

    def _show_current(self) -> None:
        """Show the card at current_index, or finish when the queue is exhausted."""
        session = self.session
        if session.is_exhausted:
            self._close(completed=True)
            return
        word = session.queue[session.current_index]
        session.current_word = word
        backup = session.deleted_words.get(word.id)
        session.deleted_backup = backup
        session.card_state = CardState.DELETED if backup is not None else CardState.SHOWING

    def _close(self, completed: bool) -> None:
        session = self.session
        self.session = None
        self.tracker.stop_tracking()
        monitoring.session_duration.observe(max(0, self.clock() - session.started_at) / 1000)
        if completed:
            monitoring.sessions_completed.inc()
            logger.info("Session finished after %d ratings", len(session.history))
            self._notify(SESSION_COMPLETE_MESSAGE)
        else:
            logger.info("Session left at card %d of %d", session.current_index, len(session.queue))

    # --- Card operations ---

    def flip(self) -> CardState:
        """Turn the current card over; a deleted card cannot be flipped."""
        session = self._require_session()
        if session.card_state is CardState.SHOWING:
            session.card_state = CardState.FLIPPED
        elif session.card_state is CardState.FLIPPED:
            session.card_state = CardState.SHOWING
        return session.card_state

    def rate(self, rating: int) -> None:
        """Apply a rating to the current card and move on.

        Rating a card that was never flipped is allowed.
        """
        session = self._require_session()
        validate_rating(rating)
        if session.card_state is CardState.DELETED:
            raise SessionStateError("The current word was deleted; restore or skip it")

        word = session.current_word
        key = session.progress_key
        old_progress = word.get_progress(key)
        session.history.append(
            HistoryEntry(
                word_id=word.id,
                old_progress=copy.deepcopy(old_progress) if old_progress else None,
                index=session.current_index,
            )
        )

        progress = next_progress(rating, self.clock())
        word.set_progress(key, progress)
        self._submit("set_progress", word.id, self.store.set_progress(word.id, key, progress))
        monitoring.cards_rated.labels(rating=str(rating)).inc()

        session.current_index += 1
        self._show_current()

    def exit(self) -> None:
        """Leave the session at the first card, otherwise undo one step.

        Undo only works while the session is active. Rating the last card
        finishes the session and returns to idle, so the ratings of a
        finished session can no longer be undone; its history is kept on
        last_session for inspection.
        """
        session = self.session
        if session is None:
            self.tracker.stop_tracking()
            return
        if session.current_index == 0:
            self._close(completed=False)
            return

        target = session.current_index - 1
        # A skipped deleted card has no history entry to revert
        if session.history and session.history[-1].index == target:
            entry = session.history.pop()
            word = session.queue[target]
            key = session.progress_key
            word.set_progress(key, entry.old_progress)
            self._submit(
                "set_progress", word.id, self.store.set_progress(word.id, key, entry.old_progress)
            )
            monitoring.cards_undone.inc()
            logger.debug("Reverted rating of word %s", word.id)

        session.current_index = target
        self._show_current()

    # --- External edits ---

    def on_external_update(self, word_id: str, fields: Dict[str, Any]) -> bool:
        """Merge an edit of the current card and redraw it in place."""
        if not self._is_current(word_id):
            logger.debug("Ignoring update of word %s, not on screen", word_id)
            return False
        session = self.session
        session.current_word.merge_fields(fields)
        session.deleted_words.pop(word_id, None)
        session.deleted_backup = None
        session.card_state = CardState.SHOWING
        return True

    def on_external_delete(self, word_id: str, backup: Dict[str, Any]) -> bool:
        """Hide the current card after it was deleted elsewhere."""
        if not self._is_current(word_id):
            logger.debug("Ignoring deletion of word %s, not on screen", word_id)
            return False
        session = self.session
        session.deleted_words[word_id] = dict(backup)
        session.deleted_backup = session.deleted_words[word_id]
        session.card_state = CardState.DELETED
        logger.info("Word %s was deleted during the session", word_id)
        return True

    def restore(self) -> None:
        """Put the deleted current word back and show it again."""
        session = self._require_deleted()
        word = session.current_word
        record = {k: v for k, v in session.deleted_backup.items() if k != "id"}
        word.merge_fields(record)
        # Back into the collection before the write's snapshot arrives
        self.collection.add(word)
        self._submit("restore_word", word.id, self.store.restore_word(word.id, record))
        del session.deleted_words[word.id]
        session.deleted_backup = None
        session.card_state = CardState.SHOWING
        monitoring.deleted_cards.labels(resolution="restored").inc()

    def skip_deleted(self) -> None:
        """Move past the deleted current word without recording anything."""
        session = self._require_deleted()
        monitoring.deleted_cards.labels(resolution="skipped").inc()
        session.current_index += 1
        self._show_current()

    # --- Writes ---

    def _submit(self, operation: str, word_id: Optional[str], write: Awaitable[None]) -> asyncio.Task:
        """Schedule a store write without waiting for it."""
        task = asyncio.create_task(self._run_write(operation, word_id, write))
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)
        return task

    async def _run_write(
        self, operation: str, word_id: Optional[str], write: Awaitable[None]
    ) -> WriteResult:
        try:
            await write
            result = WriteResult(operation=operation, word_id=word_id)
        except Exception as e:
            result = WriteResult(operation=operation, word_id=word_id, error=e)
            monitoring.store_write_failures.labels(operation=operation).inc()
            logger.error("Store write %s for word %s failed: %s", operation, word_id, str(e))
        if self._on_write_result:
            self._on_write_result(result)
        return result

    async def drain(self) -> List[WriteResult]:
        """Wait for every outstanding write and return their results."""
        if not self._pending_writes:
            return []
        return list(await asyncio.gather(*list(self._pending_writes)))

    # --- Rendering ---

    def snapshot(self) -> SessionSnapshot:
        """Read-only state for the view."""
        session = self.session
        if session is None:
            return SessionSnapshot(state=SessionState.IDLE)

        key = session.progress_key
        stats = scope_stats(select_scope(self.collection, session.scope), key, self.clock())
        word = session.current_word
        if session.card_state is CardState.DELETED:
            card = CardView(
                word_id=word.id,
                word="",
                translation=None,
                info1="",
                info2="",
                examples=[],
                state=CardState.DELETED,
            )
        else:
            card = CardView(
                word_id=word.id,
                word=word.word,
                translation=word.translation if session.card_state is CardState.FLIPPED else None,
                info1=word.info1,
                info2=word.info2,
                examples=[ex for ex in (word.ex1, word.ex2, word.ex3) if ex],
                state=session.card_state,
            )
        return SessionSnapshot(
            state=SessionState.ACTIVE,
            scope=session.scope,
            card=card,
            position=session.current_index,
            queue_length=len(session.queue),
            can_rate=session.card_state is not CardState.DELETED,
            stats=stats,
        )
