"""
Deadline policy for dinner events.

A dinner starts at a fixed local hour on its calendar date. Orders for it may
be freely created/deleted only while `now` is strictly before

    start - lead_days - lead_minutes

After that the dinner is in the "after deadline" bucket and cancellation
becomes a soft release. The same predicate with a minutes-scale lead decides
whether the dining mode can still be changed.

`now` is always passed in. Nothing here reads the clock, so the bucket a
dinner falls in is decided at call time and never cached.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from app.core.config import get_settings


def _aware(now: datetime) -> datetime:
    # Naive timestamps are taken as UTC
    return now if now.tzinfo is not None else now.replace(tzinfo=timezone.utc)


def dinner_start(dinner_date: date, start_hour: int, tz: str) -> datetime:
    """Scheduled start instant of a dinner in the given timezone."""
    return datetime.combine(dinner_date, time(hour=start_hour), tzinfo=ZoneInfo(tz))


def is_before_deadline(
    dinner_date: date,
    now: datetime,
    lead_days: int = 0,
    lead_minutes: int = 0,
    start_hour: int = 18,
    tz: str = "Europe/Copenhagen",
) -> bool:
    deadline = dinner_start(dinner_date, start_hour, tz) - timedelta(days=lead_days, minutes=lead_minutes)
    return _aware(now) < deadline


@dataclass(frozen=True)
class DeadlinePolicy:
    ticket_is_cancellable_days_before: int
    dining_mode_is_editable_minutes_before: int
    start_hour: int = 18
    duration_minutes: int = 60
    tz: str = "Europe/Copenhagen"
    menu_announced_days_before: int = 10
    prebooking_window_days: int = 60

    @classmethod
    def for_season(cls, season) -> "DeadlinePolicy":
        """Policy from a season's lead times and the configured dinner clock."""
        settings = get_settings()
        return cls(
            ticket_is_cancellable_days_before=season.ticket_is_cancellable_days_before,
            dining_mode_is_editable_minutes_before=season.dining_mode_is_editable_minutes_before,
            start_hour=settings.DINNER_START_HOUR,
            duration_minutes=settings.DINNER_DURATION_MINUTES,
            tz=settings.TIMEZONE,
            menu_announced_days_before=settings.MENU_ANNOUNCED_DAYS_BEFORE,
            prebooking_window_days=settings.PREBOOKING_WINDOW_DAYS,
        )

    def start_of(self, dinner_date: date) -> datetime:
        return dinner_start(dinner_date, self.start_hour, self.tz)

    def can_modify_orders(self, dinner_date: date, now: datetime) -> bool:
        """True while orders may still be created and hard-deleted."""
        return is_before_deadline(
            dinner_date,
            now,
            lead_days=self.ticket_is_cancellable_days_before,
            start_hour=self.start_hour,
            tz=self.tz,
        )

    def can_edit_dining_mode(self, dinner_date: date, now: datetime) -> bool:
        return is_before_deadline(
            dinner_date,
            now,
            lead_minutes=self.dining_mode_is_editable_minutes_before,
            start_hour=self.start_hour,
            tz=self.tz,
        )

    def is_menu_announcement_due(self, dinner_date: date, now: datetime) -> bool:
        """The menu should be public once we are inside the announcement lead."""
        return not is_before_deadline(
            dinner_date,
            now,
            lead_days=self.menu_announced_days_before,
            start_hour=self.start_hour,
            tz=self.tz,
        )

    def is_dinner_past(self, dinner_date: date, now: datetime) -> bool:
        """The dinner has ended (start + duration has passed)."""
        end = self.start_of(dinner_date) + timedelta(minutes=self.duration_minutes)
        return _aware(now) >= end

    def is_scaffoldable(self, dinner_date: date, now: datetime) -> bool:
        """Upcoming dinner inside the prebooking window."""
        start = self.start_of(dinner_date)
        current = _aware(now)
        return current < start <= current + timedelta(days=self.prebooking_window_days)
