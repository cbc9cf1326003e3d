"""Household clock: "today" and calendar arithmetic in the configured time zone.

Everything date-shaped in the engine goes through a HouseholdClock instead of
datetime.now() so that the household's zone, not the process zone, decides which
calendar day it is. Candidate instants are anchored at local noon before being
rendered back to a date, which keeps a DST shift from landing on a neighbouring day.
"""

from collections.abc import Callable
from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from chorecycle.core.config import constants, settings


class HouseholdClock:
    """Zone-aware source of the current calendar date."""

    def __init__(
        self,
        timezone: ZoneInfo | str | None = None,
        *,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the clock.

        Args:
            timezone: Household zone (ZoneInfo or IANA name). Defaults to settings.household_timezone.
            now: Callable returning the current instant. Defaults to the system clock in UTC.
        """
        tz = timezone if timezone is not None else settings.household_timezone
        self._tz = tz if isinstance(tz, ZoneInfo) else ZoneInfo(tz)
        self._now = now or (lambda: datetime.now(UTC))

    @property
    def timezone(self) -> ZoneInfo:
        """The household time zone."""
        return self._tz

    def now(self) -> datetime:
        """Current instant rendered in the household zone."""
        return self._aware(self._now()).astimezone(self._tz)

    def today(self) -> date:
        """Current calendar date in the household zone."""
        return self.now().date()

    def format_date(self, instant: datetime) -> date:
        """Render an instant as a household calendar date.

        Naive instants are interpreted as UTC.
        """
        return self._aware(instant).astimezone(self._tz).date()

    def local_noon(self, day: date) -> datetime:
        """Anchor a calendar date at noon, household time."""
        return datetime.combine(day, time(hour=constants.LOCAL_ANCHOR_HOUR), tzinfo=self._tz)

    def add_days(self, day: date, days: int) -> date:
        """Calendar-day arithmetic through the noon anchor."""
        # Aware + timedelta is wall-clock arithmetic, so noon stays noon across DST
        return self.format_date(self.local_noon(day) + timedelta(days=days))

    @staticmethod
    def _aware(instant: datetime) -> datetime:
        return instant if instant.tzinfo is not None else instant.replace(tzinfo=UTC)

    @classmethod
    def fixed(cls, day: date, timezone: ZoneInfo | str | None = None) -> "HouseholdClock":
        """Build a clock frozen at local noon of the given day.

        Usage:
            clock = HouseholdClock.fixed(date(2025, 3, 1), "America/New_York")
        """
        probe = cls(timezone)
        instant = probe.local_noon(day)
        return cls(probe.timezone, now=lambda: instant)
