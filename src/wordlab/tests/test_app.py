"""Tests for the application coordinator."""
import random
from typing import Callable, List

import pytest
from sqlalchemy.orm import Session

from wordlab.app import WordLab
from wordlab.errors import DuplicateWordError, SessionStateError, WordNotFoundError
from wordlab.models.models import WordRecord
from wordlab.models.study_models import (
    CardState,
    GlobalScope,
    GroupScope,
    Progress,
    SessionState,
    Word,
)
from wordlab.services.scheduling import DAY_MS
from wordlab.services.time_tracker import date_key
from wordlab.services.word_store import SqlWordStore


@pytest.fixture
def seeded_store(db: Session, user_id: str, make_word: Callable[..., Word], seed_words) -> SqlWordStore:
    """Create a store holding 120 new words."""
    seed_words(*(make_word(i) for i in range(1, 121)))
    return SqlWordStore(db, user_id)


@pytest.fixture
def messages() -> List[str]:
    """Collect messages shown to the user."""
    return []


@pytest.fixture
def app(db: Session, clock, messages) -> WordLab:
    """Create the application on the test database."""
    return WordLab(db=db, clock=clock, rng=random.Random(3), notify=messages.append)


@pytest.mark.asyncio
async def test_sign_in_loads_collection(app: WordLab, seeded_store, user_id: str) -> None:
    """Test signing in builds the per-user services."""
    await app.sign_in(user_id)

    assert app.signed_in
    assert len(app.collection) == 120
    assert app.global_due_count() == 120
    assert app.preferences.preferences.audio is True
    groups = app.groups()
    assert [g.total for g in groups] == [100, 20]

    await app.stop()
    assert not app.signed_in
    assert not app.running


@pytest.mark.asyncio
async def test_rating_is_persisted(app: WordLab, seeded_store, user_id: str, db: Session, clock) -> None:
    """Test a rating reaches the database and the shared collection."""
    await app.sign_in(user_id)
    session = app.engine.start_session(GroupScope(1))
    word = session.current_word

    app.engine.rate(4)
    await app.engine.drain()

    record = db.query(WordRecord).filter(WordRecord.user_id == user_id, WordRecord.id == word.id).one()
    assert record.progress_groups == {
        "interval": 7,
        "nextDate": clock.now + 7 * DAY_MS,
        "lastRating": 4,
        "lastReviewed": clock.now,
    }
    assert record.progress_global is None
    assert app.collection.get(word.id) is word
    assert [g.due for g in app.groups()] == [100, 19]

    await app.sign_out()


@pytest.mark.asyncio
async def test_undo_is_persisted(app: WordLab, seeded_store, user_id: str, db: Session) -> None:
    """Test undoing clears the stored progress again."""
    await app.sign_in(user_id)
    session = app.engine.start_session(GlobalScope())
    word = session.current_word

    app.engine.rate(6)
    app.engine.exit()
    await app.engine.drain()

    record = db.query(WordRecord).filter(WordRecord.user_id == user_id, WordRecord.id == word.id).one()
    assert record.progress_global is None
    assert session.current_index == 0

    await app.sign_out()


@pytest.mark.asyncio
async def test_edit_current_word(app: WordLab, seeded_store, user_id: str) -> None:
    """Test an edit during a session updates the card on screen."""
    await app.sign_in(user_id)
    session = app.engine.start_session(GlobalScope())
    current = session.current_word

    await app.edit_word(current.id, {"word": "der Apfel"})

    assert app.engine.snapshot().card.word == "der Apfel"
    assert session.current_index == 0

    await app.sign_out()


@pytest.mark.asyncio
async def test_delete_and_restore_current_word(app: WordLab, seeded_store, user_id: str) -> None:
    """Test deleting the card on screen and restoring it."""
    await app.sign_in(user_id)
    session = app.engine.start_session(GlobalScope())
    current = session.current_word

    backup = await app.delete_word(current.id)

    assert current.id not in app.collection
    assert session.card_state is CardState.DELETED
    assert backup["word"] == current.word

    app.engine.restore()
    await app.engine.drain()

    assert current.id in app.collection
    assert session.card_state is CardState.SHOWING
    assert app.collection.get(current.id).word == current.word

    await app.sign_out()


@pytest.mark.asyncio
async def test_delete_unknown_word(app: WordLab, seeded_store, user_id: str) -> None:
    """Test deleting a missing word fails."""
    await app.sign_in(user_id)

    with pytest.raises(WordNotFoundError):
        await app.delete_word("9999")

    await app.sign_out()


@pytest.mark.asyncio
async def test_operations_require_sign_in(app: WordLab) -> None:
    """Test user operations before sign-in are rejected."""
    with pytest.raises(SessionStateError):
        await app.edit_word("1", {"word": "x"})
    with pytest.raises(SessionStateError):
        await app.profile()


@pytest.mark.asyncio
async def test_profile_and_study_time(app: WordLab, seeded_store, user_id: str, clock) -> None:
    """Test study time flushed by the tracker shows up in the profile."""
    await app.sign_in(user_id)
    app.engine.start_session(GlobalScope())
    tracker = app.tracker
    assert tracker.is_tracking

    for _ in range(25):
        clock.advance(1000)
        app.record_activity()
        await tracker.tick()

    profile = await app.profile()
    assert profile.total_seconds == 20
    assert profile.last_7_days[-1] == (date_key(clock.now), 20)
    assert tracker.pending_seconds == 5

    await app.sign_out()
    assert app.tracker is None


@pytest.mark.asyncio
async def test_reset_progress(app: WordLab, seeded_store, user_id: str, clock) -> None:
    """Test a reset makes every word new and due."""
    await app.sign_in(user_id)
    for word in app.collection:
        word.progress_global = Progress(interval=21, next_date=clock.now + 21 * DAY_MS)
    assert app.global_due_count() == 0

    await app.reset_progress()

    assert app.global_due_count() == 120
    assert all(w.progress_global.state == "new" for w in app.collection)

    await app.sign_out()


@pytest.mark.asyncio
async def test_sign_out_ends_session(app: WordLab, seeded_store, user_id: str) -> None:
    """Test signing out discards the running session and switches users."""
    await app.sign_in(user_id)
    engine = app.engine
    engine.start_session(GlobalScope())

    await app.sign_in("another-user")

    assert engine.state is SessionState.IDLE
    assert app.user_id == "another-user"
    assert len(app.collection) == 0
    assert app.engine.start_session(GlobalScope()) is None

    await app.stop()


@pytest.mark.asyncio
async def test_restored_card_stays_in_sync(app: WordLab, seeded_store, user_id: str) -> None:
    """Test store refreshes reach a restored card."""
    await app.sign_in(user_id)
    session = app.engine.start_session(GlobalScope())
    current = session.current_word

    await app.delete_word(current.id)
    app.engine.restore()
    await app.engine.drain()
    assert app.collection.get(current.id) is session.current_word

    await app.reset_progress()

    assert app.collection.get(current.id) is session.current_word
    assert current.progress_global.state == "new"

    await app.sign_out()


@pytest.mark.asyncio
async def test_add_word(app: WordLab, seeded_store, user_id: str, db: Session, clock) -> None:
    """Test a new word gets the next id and is due in both contexts."""
    await app.sign_in(user_id)

    word = await app.add_word({"word": "die Katze", "translation": "cat", "ex1": "Die Katze schläft.", "id": "7"})

    assert word.id == "121"
    assert app.collection.get("121") is word
    fresh = Progress(interval=0, next_date=clock.now, state="new")
    assert word.progress_global == fresh
    assert word.progress_groups == fresh
    assert app.global_due_count() == 121
    assert [g.total for g in app.groups()] == [100, 21]
    record = db.query(WordRecord).filter(WordRecord.user_id == user_id, WordRecord.id == "121").one()
    assert record.translation == "cat"
    assert record.progress_groups == {"interval": 0, "nextDate": clock.now, "state": "new"}

    await app.sign_out()


@pytest.mark.asyncio
async def test_add_first_word(app: WordLab, user_id: str) -> None:
    """Test an empty collection starts at id 1."""
    await app.sign_in(user_id)

    word = await app.add_word({"word": "eins", "translation": "one"})

    assert word.id == "1"
    assert word.info1 == ""

    await app.sign_out()


@pytest.mark.asyncio
async def test_add_word_with_taken_id(app: WordLab, seeded_store, user_id: str, make_word) -> None:
    """Test the store rejects a word reusing an id."""
    await app.sign_in(user_id)

    with pytest.raises(DuplicateWordError):
        await app.store.add_word(make_word(5))

    await app.sign_out()


@pytest.mark.asyncio
async def test_clear_words_ends_session(app: WordLab, seeded_store, user_id: str, db: Session) -> None:
    """Test clearing the collection during a session."""
    await app.sign_in(user_id)
    app.engine.start_session(GlobalScope())

    assert await app.clear_words() == 120

    assert app.engine.state is SessionState.IDLE
    assert not app.tracker.is_tracking
    assert len(app.collection) == 0
    assert app.groups() == []
    assert db.query(WordRecord).filter(WordRecord.user_id == user_id).count() == 0

    await app.sign_out()


@pytest.mark.asyncio
async def test_rename_group(app: WordLab, seeded_store, user_id: str, db: Session, clock) -> None:
    """Test group names show on the dashboard and survive a new sign-in."""
    await app.sign_in(user_id)

    await app.rename_group(1, "  Animals ", "zoo words")

    groups = app.groups()
    assert groups[0].title == "Group 1"
    assert groups[0].subtitle == "1–100"
    assert groups[1].title == "Animals"
    assert groups[1].subtitle == "101–120 • zoo words"
    assert app.session_title(GroupScope(1)) == "Animals"
    assert app.session_title(GroupScope(0)) == "Group 1"
    assert app.session_title(GlobalScope()) == "All words"

    other = WordLab(db=db, clock=clock)
    await other.sign_in(user_id)
    assert other.groups()[1].title == "Animals"
    await other.stop()

    await app.rename_group(1, "", "")
    assert app.groups()[1].title == "Group 2"

    await app.stop()
