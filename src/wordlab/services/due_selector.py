"""Scope selection, due filtering and dashboard statistics."""
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from wordlab.config import settings
from wordlab.models.study_models import (
    GlobalScope,
    GroupMeta,
    GroupScope,
    ProgressKey,
    Scope,
    ScopeStats,
    Word,
)


@dataclass
class GroupSummary:
    """Dashboard card for one numbered group."""
    index: int
    title: str
    id_range: str
    total: int
    due: int
    mastered: int
    description: str = ""

    @property
    def subtitle(self) -> str:
        """Id range, followed by the description when there is one."""
        if self.description:
            return f"{self.id_range} \u2022 {self.description}"
        return self.id_range

    @property
    def completed(self) -> bool:
        return self.due == 0

    @property
    def mastered_fraction(self) -> float:
        return self.mastered / self.total if self.total else 0.0


def sort_words(words: Iterable[Word]) -> List[Word]:
    """Sort words ascending by the numeric value of their id."""
    return sorted(words, key=lambda w: w.sort_key)


def select_scope(words: Iterable[Word], scope: Scope) -> List[Word]:
    """Get the words of a scope, sorted by numeric id."""
    ordered = sort_words(words)
    if isinstance(scope, GlobalScope):
        return ordered
    if isinstance(scope, GroupScope):
        if scope.index < 0:
            return []
        size = settings.study.group_size
        start = scope.index * size
        return ordered[start:start + size]
    raise TypeError(f"Unknown scope: {scope!r}")


def is_due(word: Word, key: ProgressKey, now: int) -> bool:
    """A word is due when it has no progress or its next date has passed."""
    progress = word.get_progress(key)
    return progress is None or progress.next_date <= now


def due_filter(words: Iterable[Word], key: ProgressKey, now: int) -> List[Word]:
    """Keep only the due words, preserving order."""
    return [w for w in words if is_due(w, key, now)]


def group_count(words: List[Word]) -> int:
    """Number of groups the collection currently splits into."""
    return math.ceil(len(words) / settings.study.group_size)


def start_of_day(now: int) -> int:
    """Local midnight of the day containing now, in epoch millis."""
    moment = datetime.fromtimestamp(now / 1000)
    midnight = moment.replace(hour=0, minute=0, second=0, microsecond=0)
    return int(midnight.timestamp() * 1000)


def scope_stats(words: Iterable[Word], key: ProgressKey, now: int) -> ScopeStats:
    """Count total, due, learned-today and mastered words."""
    today = start_of_day(now)
    stats = ScopeStats()
    for word in words:
        stats.total += 1
        progress = word.get_progress(key)
        if is_due(word, key, now):
            stats.due += 1
        if progress is None:
            continue
        if progress.last_reviewed is not None and progress.last_reviewed >= today:
            stats.learned_today += 1
        if progress.interval >= settings.study.mastered_interval_days:
            stats.mastered += 1
    return stats


def default_group_title(index: int) -> str:
    return f"Group {index + 1}"


def group_summaries(
    words: Iterable[Word],
    key: ProgressKey,
    now: int,
    meta: Optional[Dict[int, GroupMeta]] = None,
) -> List[GroupSummary]:
    """Build one summary per group of the id-sorted collection.

    Names and descriptions saved in meta replace the default "Group N" title.
    """
    meta = meta or {}
    ordered = sort_words(words)
    summaries = []
    for index in range(group_count(ordered)):
        chunk = select_scope(ordered, GroupScope(index))
        stats = scope_stats(chunk, key, now)
        group_meta = meta.get(index) or GroupMeta()
        summaries.append(
            GroupSummary(
                index=index,
                title=group_meta.name or default_group_title(index),
                description=group_meta.description,
                id_range=f"{chunk[0].id}–{chunk[-1].id}",
                total=stats.total,
                due=stats.due,
                mastered=stats.mastered,
            )
        )
    return summaries
