"""
Next-occurrence calculation for recurring tasks.

Main API:
    compute_next(rule, current_due_date, current_scheduled_time)  → NextOccurrence

A rule combines two independent axes:

- dates: days of the month and/or weekdays (either one matching qualifies)
- times: ``HH:mm`` slots within a day

Completing an occurrence first tries a later slot on the same day. When
there is none the task rolls over to the next matching date (or simply the
next day for time-only rules) at the earliest slot.

Everything here is pure: no I/O, no clock reads except the ``today``
fallback when the task has no due date, and inputs are never mutated.
"""

from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Set, Union

from models.task import WEEKDAYS, NextOccurrence, RecurrenceRule
from utils.dates import canonical_time, is_valid_time, normalize_time, parse_iso_date

# Forward search window for date constraints, in days
SEARCH_HORIZON_DAYS = 365

_WEEKDAY_INDEX = {name: i for i, name in enumerate(WEEKDAYS)}


def _next_slot_after(times: Iterable[str], current: str) -> Optional[str]:
    """Earliest slot strictly later than ``current`` (zero-padded compare)."""
    for slot in sorted(times):
        if slot > current:
            return slot
    return None


def find_next_recurring_date(
    start: date,
    days_of_month: Iterable[int],
    days_of_week: Iterable[str],
    horizon: int = SEARCH_HORIZON_DAYS,
) -> Optional[date]:
    """
    Return the earliest date in ``[start, start + horizon)`` whose day of
    month is in ``days_of_month`` OR whose weekday is in ``days_of_week``.

    Candidates from both constraints are collected per calendar date, so a
    date matching both is counted once. Unknown weekday tokens and
    out-of-range days never match. Returns None when nothing matches.
    """
    month_days: Set[int] = set(days_of_month)
    weekdays: Set[int] = {_WEEKDAY_INDEX[d] for d in days_of_week if d in _WEEKDAY_INDEX}

    candidates: Set[date] = set()
    for offset in range(horizon):
        day = start + timedelta(days=offset)
        if day.day in month_days:
            candidates.add(day)
        if day.weekday() in weekdays:
            candidates.add(day)

    return min(candidates) if candidates else None


def compute_next(
    rule: RecurrenceRule,
    current_due_date: Union[str, date, None],
    current_scheduled_time: Union[str, datetime, None],
    today: Optional[date] = None,
) -> NextOccurrence:
    """
    Compute the occurrence that follows the current one.

    Args:
        rule: Recurrence rule; an entirely empty rule means "not configured"
        current_due_date: Due date of the occurrence being completed
            (``YYYY-MM-DD`` or a date); defaults to ``today``
        current_scheduled_time: ``HH:mm`` or an ISO date-time whose time part
            is used; anything else is treated as unknown
        today: Fallback base date (defaults to ``date.today()``)

    Returns:
        NextOccurrence with ``YYYY-MM-DD`` / ``HH:mm`` strings. Both fields
        are None when the rule is empty or no date within the search horizon
        matches.
    """
    if rule.is_empty:
        return NextOccurrence()

    base_date = parse_iso_date(current_due_date) or today or date.today()
    current_time = normalize_time(current_scheduled_time)
    times: List[str] = sorted(
        canonical_time(t) for t in rule.scheduled_times if is_valid_time(t)
    )

    # Same day, later slot
    if rule.has_time_constraints and current_time:
        slot = _next_slot_after(times, current_time)
        if slot is not None:
            return NextOccurrence(due_date=base_date.isoformat(), scheduled_time=slot)

    tomorrow = base_date + timedelta(days=1)
    if rule.has_date_constraints:
        next_date = find_next_recurring_date(tomorrow, rule.days_of_month, rule.days_of_week)
        if next_date is None:
            return NextOccurrence()
    else:
        next_date = tomorrow

    return NextOccurrence(
        due_date=next_date.isoformat(),
        scheduled_time=times[0] if times else None,
    )
