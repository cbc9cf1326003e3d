"""Recurrence expansion: turn a rule into the concrete due dates it produces."""

from collections.abc import Iterator
from datetime import date, datetime, timedelta
from typing import assert_never

from dateutil.relativedelta import relativedelta

from chorecycle.core.clock import HouseholdClock
from chorecycle.core.config import constants
from chorecycle.core.errors import InvalidRecurrenceError
from chorecycle.domain.task import RecurrenceRule, RecurrenceType


def expansion_window(rule: RecurrenceRule, *, clock: HouseholdClock, horizon_days: int) -> tuple[date, date]:
    """Return the (first, last) calendar dates expansion may cover.

    The first date is never in the past: a rule whose start has already elapsed
    begins today. Without an end date the window closes horizon_days after today.
    """
    if horizon_days < 0:
        raise InvalidRecurrenceError(f"horizon_days must be >= 0, got {horizon_days}")

    today = clock.today()
    start = max(rule.start_date, today)
    end = rule.end_date if rule.end_date is not None else clock.add_days(today, horizon_days)
    return start, end


def _occurrence(rule: RecurrenceRule, anchor: datetime, step: int) -> datetime:
    """The step-th occurrence counted from the anchor."""
    match rule.type:
        case RecurrenceType.ONCE:
            return anchor
        case RecurrenceType.DAILY | RecurrenceType.INTERVAL_DAYS:
            return anchor + timedelta(days=step * rule.interval)
        case RecurrenceType.WEEKLY:
            return anchor + timedelta(weeks=step * rule.interval)
        case RecurrenceType.MONTHLY:
            # Offsets are taken from the anchor so a 31st clamps to month end without drifting
            return anchor + relativedelta(months=step * rule.interval)
        case _:
            assert_never(rule.type)


def _first_step(rule: RecurrenceRule, first: date) -> int:
    """Lowest step whose occurrence could fall on or after first.

    May undershoot by one for monthly rules; the caller skips early occurrences.
    """
    match rule.type:
        case RecurrenceType.ONCE:
            return 0
        case RecurrenceType.DAILY | RecurrenceType.INTERVAL_DAYS:
            return -(-(first - rule.start_date).days // rule.interval)
        case RecurrenceType.WEEKLY:
            return -(-(first - rule.start_date).days // (7 * rule.interval))
        case RecurrenceType.MONTHLY:
            months = (first.year - rule.start_date.year) * 12 + first.month - rule.start_date.month
            return max(months // rule.interval, 0)
        case _:
            assert_never(rule.type)


def _iter_instants(rule: RecurrenceRule, anchor: datetime, lower: datetime, end: datetime) -> Iterator[datetime]:
    """Yield noon-anchored occurrences between lower and end inclusive."""
    step = _first_step(rule, lower.date())
    cursor = _occurrence(rule, anchor, step)
    while cursor <= end:
        if cursor >= lower:
            yield cursor
        if rule.type == RecurrenceType.ONCE:
            return
        step += 1
        cursor = _occurrence(rule, anchor, step)


def expand(
    rule: RecurrenceRule,
    *,
    clock: HouseholdClock,
    horizon_days: int = constants.DEFAULT_HORIZON_DAYS,
) -> list[date]:
    """Expand a recurrence rule into ordered, distinct due dates.

    Repeating rules keep the phase of their start date: a weekly rule started on a
    Monday only ever lands on Mondays, however late it is expanded. A once rule whose
    start has elapsed lands on today.

    Args:
        rule: Recurrence rule to expand
        clock: Household clock deciding "today" and the zone dates are rendered in
        horizon_days: Days past today to cover when the rule has no end date

    Returns:
        Due dates in ascending order (empty if the window is already closed)

    Raises:
        InvalidRecurrenceError: If the rule's interval or the horizon is out of range
    """
    if rule.interval < 1:
        # model_construct() skips field validation
        raise InvalidRecurrenceError(f"interval must be >= 1, got {rule.interval}")

    first, last = expansion_window(rule, clock=clock, horizon_days=horizon_days)
    lower = clock.local_noon(first)
    anchor = lower if rule.type == RecurrenceType.ONCE else clock.local_noon(rule.start_date)
    end = clock.local_noon(last)

    return [clock.format_date(instant) for instant in _iter_instants(rule, anchor, lower, end)]
