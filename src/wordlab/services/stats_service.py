"""Profile statistics: mastery and study time."""
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, Iterable, List, Tuple

from wordlab.config import settings
from wordlab.models.study_models import ProgressKey, Word


@dataclass
class ProfileStats:
    """Numbers shown on the profile page."""
    total_words: int
    learned: int
    mastered: int
    total_seconds: int
    last_7_days: List[Tuple[str, int]] = field(default_factory=list)

    @property
    def mastery_percent(self) -> int:
        if not self.total_words:
            return 0
        return round(self.mastered / self.total_words * 100)

    @property
    def time_label(self) -> str:
        return format_duration(self.total_seconds)


def format_duration(seconds: int) -> str:
    """Human label: seconds below a minute, minutes below an hour, then hours."""
    if seconds < 60:
        return f"{seconds} sec"
    if seconds < 3600:
        return f"{seconds // 60} min"
    return f"{seconds / 3600:.1f} h"


def last_days(daily_counters: Dict[str, int], today: date, days: int = 7) -> List[Tuple[str, int]]:
    """Study seconds for the last days ending today, oldest first."""
    result = []
    for offset in range(days - 1, -1, -1):
        key = (today - timedelta(days=offset)).strftime("%Y-%m-%d")
        result.append((key, daily_counters.get(key, 0)))
    return result


def profile_stats(
    words: Iterable[Word],
    daily_counters: Dict[str, int],
    today: date,
    key: ProgressKey = ProgressKey.GLOBAL,
) -> ProfileStats:
    """Compute profile statistics; learned means any interval above zero."""
    total = learned = mastered = 0
    for word in words:
        total += 1
        progress = word.get_progress(key)
        if progress is None:
            continue
        if progress.interval >= settings.study.mastered_interval_days:
            mastered += 1
        if progress.interval > 0:
            learned += 1
    return ProfileStats(
        total_words=total,
        learned=learned,
        mastered=mastered,
        total_seconds=sum(daily_counters.values()),
        last_7_days=last_days(daily_counters, today),
    )
