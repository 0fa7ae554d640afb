"""Database models for WordLab."""
from sqlalchemy import JSON, Column, Integer, String

from wordlab.models.base import Base, TimestampMixin


class WordRecord(Base, TimestampMixin):
    """A vocabulary word owned by one user."""

    __tablename__ = "words"

    user_id = Column(String, primary_key=True)
    id = Column(String, primary_key=True)  # numeric string, assigned on import
    word = Column(String, nullable=False)
    translation = Column(String, nullable=False)
    info1 = Column(String, default="")
    info2 = Column(String, default="")
    ex1 = Column(String, default="")
    ex2 = Column(String, default="")
    ex3 = Column(String, default="")
    progress_global = Column(JSON, nullable=True)
    progress_groups = Column(JSON, nullable=True)


class DailyStudyTime(Base):
    """Active study seconds per user and local calendar day."""

    __tablename__ = "daily_study_time"

    user_id = Column(String, primary_key=True)
    date_key = Column(String, primary_key=True)  # YYYY-MM-DD
    seconds = Column(Integer, nullable=False, default=0)


class UserSettings(Base, TimestampMixin):
    """Persisted study preferences of a user."""

    __tablename__ = "user_settings"

    user_id = Column(String, primary_key=True)
    study = Column(JSON, nullable=True)
    groups = Column(JSON, nullable=True)  # {"<index>": {"name": ..., "desc": ...}}
