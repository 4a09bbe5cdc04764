"""
Season calendar math: cooking dates, holiday exclusion and ghost duty.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Iterable, Iterator, Mapping, Optional, Sequence

from app.domain.weekdays import WeekdayMap


@dataclass(frozen=True)
class DateRange:
    start: date
    end: date

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(f"Date range start {self.start} is after end {self.end}")

    def __contains__(self, day: date) -> bool:
        return self.start <= day <= self.end

    def days(self) -> Iterator[date]:
        current = self.start
        while current <= self.end:
            yield current
            current += timedelta(days=1)

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DateRange":
        start, end = data["start"], data["end"]
        return cls(
            start=start if isinstance(start, date) else date.fromisoformat(start),
            end=end if isinstance(end, date) else date.fromisoformat(end),
        )


def cooking_days_in(period: DateRange, cooking_days: WeekdayMap) -> list[date]:
    return [day for day in period.days() if cooking_days.for_date(day)]


def is_holiday(day: date, holidays: Iterable[DateRange]) -> bool:
    return any(day in holiday for holiday in holidays)


def compute_cooking_dates(
    cooking_days: WeekdayMap,
    season_dates: DateRange,
    holidays: Sequence[DateRange] = (),
) -> list[date]:
    """Every cooking weekday in the season that no holiday covers."""
    return [day for day in cooking_days_in(season_dates, cooking_days) if not is_holiday(day, holidays)]


def first_cooking_date(cooking_days: WeekdayMap, dates: Iterable[date]) -> Optional[date]:
    candidates = sorted(day for day in dates if cooking_days.for_date(day))
    return candidates[0] if candidates else None


def is_holiday_ghost_duty(day: date, holidays: Sequence[DateRange], cooking_days: WeekdayMap) -> bool:
    """
    Whether a cooking day inside a holiday still counts as a rotation turn.

    Whole "cooking weeks" inside a holiday are a week off for everybody. The
    cooking days left over after those weeks are ghost duty and keep the
    rotation moving. With a Mon-Thu schedule: 4 holiday cooking days is one
    week off, 5 is one week off plus one ghost duty, 8 is two weeks off.
    """
    per_week = cooking_days.count()
    if per_week == 0:
        return False
    for holiday in holidays:
        if day not in holiday:
            continue
        in_holiday = cooking_days_in(holiday, cooking_days)
        week_off_days = (len(in_holiday) // per_week) * per_week
        before = len([d for d in in_holiday if d < day])
        if before >= week_off_days:
            return True
    return False
