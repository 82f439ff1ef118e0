"""SM-2 spaced repetition algorithm."""
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from interview_prep.errors import InvalidArgument

MIN_EASE_FACTOR = 1.3
DEFAULT_EASE_FACTOR = 2.5

# Binary "knew it / didn't" mapped onto the 0-5 quality scale
KNEW_QUALITY = 4
DIDNT_KNOW_QUALITY = 1


@dataclass
class ReviewResult:
    ease_factor: float
    interval_days: int
    repetitions: int
    next_review_at: datetime


def quality_for(knew: bool) -> int:
    return KNEW_QUALITY if knew else DIDNT_KNOW_QUALITY


def compute_next_review(
    quality: int,
    ease_factor: float,
    interval_days: int,
    repetitions: int,
    now: Optional[datetime] = None,
) -> ReviewResult:
    """Calculate next review parameters using SM-2.

    Args:
        quality: Rating 0-5 (0=complete blackout, 5=perfect)
        ease_factor: Current ease factor
        interval_days: Current interval in days
        repetitions: Number of consecutive correct reviews
        now: Reference time for the next review date (defaults to UTC now)

    Returns:
        ReviewResult with updated ease factor, interval, repetitions and
        next review time.

    Raises:
        InvalidArgument: quality outside 0-5 or a negative prior.
    """
    if isinstance(quality, bool) or not isinstance(quality, int) or not 0 <= quality <= 5:
        raise InvalidArgument(f"quality must be an integer in [0, 5], got {quality!r}")
    if ease_factor < 0 or interval_days < 0 or repetitions < 0:
        raise InvalidArgument(
            f"priors must be non-negative (ease={ease_factor}, "
            f"interval={interval_days}, repetitions={repetitions})"
        )
    if now is None:
        now = datetime.now(timezone.utc)

    # Ease uses the prior ease regardless of the branch taken below
    new_ef = ease_factor + (0.1 - (5 - quality) * (0.08 + (5 - quality) * 0.02))
    new_ef = max(MIN_EASE_FACTOR, new_ef)

    if quality >= 3:
        if repetitions == 0:
            new_interval = 1
        elif repetitions == 1:
            new_interval = 6
        else:
            # Halves round up
            new_interval = math.floor(interval_days * ease_factor + 0.5)
        new_repetitions = repetitions + 1
    else:
        # Incorrect: full reset
        new_repetitions = 0
        new_interval = 1

    return ReviewResult(
        ease_factor=round(new_ef, 2),
        interval_days=new_interval,
        repetitions=new_repetitions,
        next_review_at=now + timedelta(days=new_interval),
    )
