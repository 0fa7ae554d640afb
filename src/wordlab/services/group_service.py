"""Names and descriptions of the numbered groups."""
import logging
from typing import Dict

from wordlab.models.study_models import GlobalScope, GroupMeta, Scope
from wordlab.services.due_selector import default_group_title
from wordlab.services.word_store import WordStore

logger = logging.getLogger(__name__)

GLOBAL_TITLE = "All words"


class GroupService:
    """Service for the group editor and group titles."""

    def __init__(self, store: WordStore):
        """Initialize the service with the store of the signed-in user."""
        self.store = store
        self.meta: Dict[int, GroupMeta] = {}

    async def load(self) -> Dict[int, GroupMeta]:
        """Load the saved group names and descriptions."""
        self.meta = await self.store.load_group_meta()
        return self.meta

    def get(self, index: int) -> GroupMeta:
        return self.meta.get(index) or GroupMeta()

    def title(self, index: int) -> str:
        """Saved name of a group, or "Group N"."""
        return self.get(index).name or default_group_title(index)

    def session_title(self, scope: Scope) -> str:
        """Heading shown above the cards of a session."""
        if isinstance(scope, GlobalScope):
            return GLOBAL_TITLE
        return self.title(scope.index)

    async def update(self, index: int, name: str, description: str = "") -> GroupMeta:
        """Save the name and description of a group.

        Surrounding whitespace is dropped; a blank name restores the default
        title. Groups are identified by position, so the metadata stays with
        the index when words are added or removed.
        """
        if index < 0:
            raise ValueError(f"Invalid group index: {index}")
        meta = GroupMeta(name=(name or "").strip(), description=(description or "").strip())
        if meta.name or meta.description:
            self.meta[index] = meta
        else:
            self.meta.pop(index, None)
        await self.store.save_group_meta(self.meta)
        logger.info("Saved metadata of group %d", index)
        return meta
