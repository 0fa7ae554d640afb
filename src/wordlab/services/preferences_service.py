"""Study preferences: which card fields and counters are shown."""
import logging
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional

from wordlab.services.word_store import WordStore

logger = logging.getLogger(__name__)


@dataclass
class StudyPreferences:
    """Toggles persisted per user under their original key names."""
    audio: bool = True
    examples: bool = True
    showWord: bool = True
    showInfo1: bool = True
    showInfo2: bool = True
    showEx1: bool = True
    showEx2: bool = True
    showEx3: bool = True
    showProgress: bool = True
    showStatTotal: bool = True
    showStatDue: bool = True
    showStatToday: bool = True
    masterCard: bool = False
    masterInterface: bool = False

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "StudyPreferences":
        """Merge persisted values over the defaults, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        values = {k: bool(v) for k, v in (data or {}).items() if k in known}
        return cls(**values)

    def to_dict(self) -> Dict[str, bool]:
        return asdict(self)


class PreferencesService:
    """Service for loading and toggling study preferences."""

    def __init__(self, store: WordStore):
        """Initialize the service with the store of the signed-in user."""
        self.store = store
        self.preferences = StudyPreferences()

    async def load(self) -> StudyPreferences:
        """Load persisted preferences merged over the defaults."""
        persisted = await self.store.load_settings()
        self.preferences = StudyPreferences.from_dict(persisted)
        return self.preferences

    async def toggle(self, name: str) -> bool:
        """Flip one preference, persist all of them and return the new value."""
        if name not in self.preferences.to_dict():
            raise ValueError(f"Unknown preference: {name}")
        value = not getattr(self.preferences, name)
        setattr(self.preferences, name, value)
        try:
            await self.store.save_settings(self.preferences.to_dict())
        except Exception as e:
            # The toggle still applies locally for this sign-in
            logger.error("Failed to save preferences: %s", str(e))
        return value
