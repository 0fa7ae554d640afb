"""Test configuration."""
import os
from pathlib import Path
from typing import Callable, Generator, Optional

import pytest
from dotenv import load_dotenv
from faker import Faker
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment before any imports
os.environ["ENV"] = "test"
os.environ.setdefault("DATABASE_URL", "sqlite://")

# Load test environment variables
test_env_path = Path(__file__).parents[3] / ".env.test"
load_dotenv(test_env_path)

# Import after environment setup
from wordlab.models.base import init_db
from wordlab.models.study_models import Progress, Word
from wordlab.services.word_store import SqlWordStore, word_to_record

fake = Faker()

# 2026-03-14 12:00:00 UTC in epoch millis
T0 = 1773489600000


class FakeClock:
    """Controllable epoch-millis clock."""

    def __init__(self, now: int = T0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    """Create a clock frozen at T0."""
    return FakeClock()


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create a fresh in-memory database session for each test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    db = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture
def user_id() -> str:
    """Create a test user id."""
    return fake.uuid4()


@pytest.fixture
def sql_store(db: Session, user_id: str) -> SqlWordStore:
    """Create a SQL word store for the test user."""
    return SqlWordStore(db, user_id)


@pytest.fixture
def make_word() -> Callable[..., Word]:
    """Factory for words with fake text."""

    def _make(
        word_id,
        progress_global: Optional[Progress] = None,
        progress_groups: Optional[Progress] = None,
    ) -> Word:
        return Word(
            id=str(word_id),
            word=fake.word(),
            translation=fake.word(),
            info1=fake.word(),
            info2="",
            ex1=fake.sentence(),
            ex2="",
            ex3=fake.sentence(),
            progress_global=progress_global,
            progress_groups=progress_groups,
        )

    return _make


@pytest.fixture
def seed_words(db: Session, user_id: str) -> Callable[..., None]:
    """Insert words directly, without notifying any store subscriber."""

    def _seed(*words: Word, owner: Optional[str] = None) -> None:
        for word in words:
            db.add(word_to_record(owner or user_id, word))
        db.commit()

    return _seed
