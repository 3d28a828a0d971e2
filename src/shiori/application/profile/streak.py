"""Daily activity streak tracking."""

from dataclasses import dataclass
from datetime import date, datetime


@dataclass(frozen=True)
class StreakResult:
    current: int
    longest: int


def _as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def compute_streak(
    previous_active: date | datetime | None,
    previous_streak: int,
    today: date | datetime,
    previous_longest: int = 0,
) -> StreakResult:
    """
    Update the streak for activity on `today`.

    - No prior activity: streak starts at 1.
    - Same day: unchanged (at least 1).
    - Consecutive day: incremented.
    - Any longer gap: reset to 1.
    """
    if previous_active is None:
        current = 1
    else:
        gap = (_as_date(today) - _as_date(previous_active)).days
        if gap <= 0:
            current = max(previous_streak, 1)
        elif gap == 1:
            current = previous_streak + 1
        else:
            current = 1

    return StreakResult(current=current, longest=max(current, previous_longest))
