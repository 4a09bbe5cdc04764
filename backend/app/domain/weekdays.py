"""
Weekday map: a fixed seven-slot structure keyed by weekday name.

Used for season cooking days (bool), team affinities (bool) and inhabitant
dinner preferences (DinnerMode). Slots are always iterated Monday first,
which is the canonical order every rotation computation relies on.
"""

from datetime import date
from typing import Any, Callable, Generic, Iterable, Iterator, Mapping, Optional, TypeVar

WEEKDAYS: tuple[str, ...] = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)

T = TypeVar("T")
U = TypeVar("U")


def weekday_of(day: date) -> str:
    """Weekday name of a calendar date."""
    return WEEKDAYS[day.weekday()]


def weekday_index(weekday: str) -> int:
    try:
        return WEEKDAYS.index(weekday)
    except ValueError:
        raise ValueError(f"Unknown weekday: {weekday!r}") from None


class WeekdayMap(Generic[T]):
    """Immutable mapping weekday -> value with all seven slots present."""

    __slots__ = ("_values",)

    def __init__(self, values: Optional[Mapping[str, T]] = None, default: Optional[T] = None):
        values = dict(values or {})
        unknown = set(values) - set(WEEKDAYS)
        if unknown:
            raise ValueError(f"Unknown weekday(s): {', '.join(sorted(unknown))}")
        self._values: dict[str, Optional[T]] = {day: values.get(day, default) for day in WEEKDAYS}

    @classmethod
    def filled(cls, value: T) -> "WeekdayMap[T]":
        return cls({day: value for day in WEEKDAYS})

    @classmethod
    def from_selection(
        cls,
        selected: Iterable[str],
        on: Any = True,
        off: Any = False,
    ) -> "WeekdayMap":
        """Build a map where the selected weekdays carry `on` and the rest `off`."""
        chosen = set(selected)
        for day in chosen:
            weekday_index(day)
        return cls({day: (on if day in chosen else off) for day in WEEKDAYS})

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> Optional["WeekdayMap"]:
        """Deserialize a stored JSON object. `None` stays `None`."""
        if data is None:
            return None
        return cls({str(k).lower(): v for k, v in data.items()})

    def to_dict(self) -> dict[str, Optional[T]]:
        return dict(self._values)

    def __getitem__(self, weekday: str) -> Optional[T]:
        return self._values[weekday]

    def get(self, weekday: str, default: Optional[T] = None) -> Optional[T]:
        value = self._values.get(weekday)
        return default if value is None else value

    def __iter__(self) -> Iterator[str]:
        return iter(WEEKDAYS)

    def items(self) -> list[tuple[str, Optional[T]]]:
        return [(day, self._values[day]) for day in WEEKDAYS]

    def selected(self) -> list[str]:
        """Weekdays with a truthy value, Monday first."""
        return [day for day in WEEKDAYS if self._values[day]]

    def first_selected(self) -> Optional[str]:
        selected = self.selected()
        return selected[0] if selected else None

    def count(self) -> int:
        return len(self.selected())

    def for_date(self, day: date) -> Optional[T]:
        return self._values[weekday_of(day)]

    def replace(self, **changes: T) -> "WeekdayMap[T]":
        values = dict(self._values)
        for day, value in changes.items():
            weekday_index(day)
            values[day] = value
        return WeekdayMap(values)

    def map(self, fn: Callable[[str, Optional[T]], U]) -> "WeekdayMap[U]":
        return WeekdayMap({day: fn(day, value) for day, value in self.items()})

    def masked(self, mask: "WeekdayMap[bool]", off: Any, on_default: Any = None) -> "WeekdayMap":
        """
        Keep values on the weekdays selected in `mask`, set `off` elsewhere.
        Empty slots on selected days take `on_default`.
        """
        return WeekdayMap(
            {
                day: ((value if value is not None else on_default) if mask[day] else off)
                for day, value in self.items()
            }
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, WeekdayMap):
            return NotImplemented
        return self._values == other._values

    def __hash__(self) -> int:
        return hash(tuple(self._values.items()))

    def __repr__(self) -> str:
        return f"WeekdayMap({self._values!r})"
