"""Fixed-interval review scheduling."""
from typing import Dict

from wordlab.errors import InvalidRatingError
from wordlab.models.study_models import Progress

MINUTE_MS = 60 * 1000
DAY_MS = 24 * 60 * MINUTE_MS

# rating -> interval in days
RATING_INTERVALS: Dict[int, int] = {
    1: 0,
    2: 1,
    3: 4,
    4: 7,
    5: 12,
    6: 21,
}

# A lapse is shown again shortly instead of being requeued in the same session
LAPSE_DELAY_MS = 5 * MINUTE_MS


def validate_rating(rating) -> int:
    """Return rating unchanged, or raise InvalidRatingError."""
    if isinstance(rating, bool) or not isinstance(rating, int) or rating not in RATING_INTERVALS:
        raise InvalidRatingError(f"Rating must be an integer from 1 to 6, got {rating!r}")
    return rating


def next_progress(rating: int, now: int) -> Progress:
    """Compute the progress record that follows a rating given at now (epoch millis)."""
    validate_rating(rating)
    interval = RATING_INTERVALS[rating]
    if rating == 1:
        next_date = now + LAPSE_DELAY_MS
    else:
        next_date = now + interval * DAY_MS
    return Progress(
        interval=interval,
        next_date=next_date,
        last_rating=rating,
        last_reviewed=now,
    )
