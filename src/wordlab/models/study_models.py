"""Models for review scheduling and study sessions."""
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Optional, Union

# Text fields of a word that can be edited from outside a session
WORD_TEXT_FIELDS = ("word", "translation", "info1", "info2", "ex1", "ex2", "ex3")


class ProgressKey(Enum):
    """Which progress record of a word a scheduling context uses."""
    GLOBAL = "progress_global"
    GROUPS = "progress_groups"


@dataclass
class Progress:
    """Per-scope scheduling state of a word."""
    interval: int
    next_date: int  # epoch millis
    state: Optional[str] = None  # only ever "new"
    last_rating: Optional[int] = None
    last_reviewed: Optional[int] = None  # epoch millis

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the persisted layout, omitting absent keys."""
        data: Dict[str, Any] = {"interval": self.interval, "nextDate": self.next_date}
        if self.state is not None:
            data["state"] = self.state
        if self.last_rating is not None:
            data["lastRating"] = self.last_rating
        if self.last_reviewed is not None:
            data["lastReviewed"] = self.last_reviewed
        return data

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["Progress"]:
        """Build from the persisted layout; None and {} mean no progress."""
        if not data:
            return None
        return cls(
            interval=int(data.get("interval", 0)),
            next_date=int(data.get("nextDate", 0)),
            state=data.get("state"),
            last_rating=data.get("lastRating"),
            last_reviewed=data.get("lastReviewed"),
        )


@dataclass
class Word:
    """A vocabulary word with both of its progress records."""
    id: str
    word: str
    translation: str
    info1: str = ""
    info2: str = ""
    ex1: str = ""
    ex2: str = ""
    ex3: str = ""
    progress_global: Optional[Progress] = None
    progress_groups: Optional[Progress] = None

    @property
    def sort_key(self) -> int:
        return int(self.id)

    def get_progress(self, key: ProgressKey) -> Optional[Progress]:
        """Get the progress record selected by key."""
        if key is ProgressKey.GLOBAL:
            return self.progress_global
        return self.progress_groups

    def set_progress(self, key: ProgressKey, progress: Optional[Progress]) -> None:
        """Replace (or clear, with None) the progress record selected by key."""
        if key is ProgressKey.GLOBAL:
            self.progress_global = progress
        else:
            self.progress_groups = progress

    def merge_fields(self, updates: Dict[str, Any]) -> None:
        """Merge edited text fields; unknown keys and the id are ignored."""
        for name in WORD_TEXT_FIELDS:
            if name in updates and updates[name] is not None:
                setattr(self, name, str(updates[name]))

    def replace_with(self, other: "Word") -> None:
        """Copy every field of other into this instance, keeping identity."""
        for f in fields(self):
            if f.name != "id":
                setattr(self, f.name, getattr(other, f.name))

    def text_fields(self) -> Dict[str, str]:
        """Get the text fields, e.g. as a backup before deletion."""
        data = {name: getattr(self, name) for name in WORD_TEXT_FIELDS}
        data["id"] = self.id
        return data


@dataclass(frozen=True)
class GlobalScope:
    """All words of the collection."""

    @property
    def progress_key(self) -> ProgressKey:
        return ProgressKey.GLOBAL

    @property
    def label(self) -> str:
        return "global"


@dataclass(frozen=True)
class GroupScope:
    """A fixed-size slice of the id-sorted collection, zero-based."""
    index: int

    @property
    def progress_key(self) -> ProgressKey:
        return ProgressKey.GROUPS

    @property
    def label(self) -> str:
        return "group"


Scope = Union[GlobalScope, GroupScope]


@dataclass
class GroupMeta:
    """User-chosen name and description of a group; blank means default."""
    name: str = ""
    description: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "desc": self.description}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "GroupMeta":
        data = data or {}
        return cls(name=str(data.get("name") or ""), description=str(data.get("desc") or ""))


class SessionState(Enum):
    """Lifecycle of the session engine."""
    IDLE = "idle"
    ACTIVE = "active"


class CardState(Enum):
    """Sub-state of the card currently on screen."""
    SHOWING = "showing"  # front face, translation hidden
    FLIPPED = "flipped"  # back revealed
    DELETED = "deleted"  # word deleted elsewhere, restore or skip


@dataclass
class HistoryEntry:
    """Undo record pushed for every rating."""
    word_id: str
    old_progress: Optional[Progress]
    index: int  # queue position the rating was given at


@dataclass
class StudySession:
    """One pass through a shuffled due queue."""
    scope: Scope
    progress_key: ProgressKey
    queue: List[Word]
    started_at: int
    current_index: int = 0
    current_word: Optional[Word] = None
    history: List[HistoryEntry] = field(default_factory=list)
    card_state: CardState = CardState.SHOWING
    deleted_backup: Optional[Dict[str, Any]] = None
    # Backups of queue words deleted during the session, by id
    deleted_words: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    @property
    def is_exhausted(self) -> bool:
        return self.current_index >= len(self.queue)


@dataclass
class ScopeStats:
    """Counters shown above the flashcard."""
    total: int = 0
    due: int = 0
    learned_today: int = 0
    mastered: int = 0

    @property
    def mastered_fraction(self) -> float:
        return self.mastered / self.total if self.total else 0.0


@dataclass
class CardView:
    """Content of the current card for rendering."""
    word_id: str
    word: str
    translation: Optional[str]  # None until the card is flipped
    info1: str
    info2: str
    examples: List[str]
    state: CardState


@dataclass
class SessionSnapshot:
    """Read-only view of the engine for rendering."""
    state: SessionState
    scope: Optional[Scope] = None
    card: Optional[CardView] = None
    position: int = 0
    queue_length: int = 0
    can_rate: bool = False
    stats: ScopeStats = field(default_factory=ScopeStats)

    @property
    def progress_fraction(self) -> float:
        return self.stats.mastered_fraction


@dataclass
class WriteResult:
    """Outcome of a fire-and-forget store write."""
    operation: str
    word_id: Optional[str]
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None
