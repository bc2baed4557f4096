"""Open/closed status and bookable slots in the practice's local time.

Every function takes an optional ``now`` (an aware datetime); ``None`` reads
the wall clock. Missing coordinates or opening periods yield empty results,
``None`` or ``False`` instead of raising. A coordinate of exactly 0 counts as
missing.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any
from zoneinfo import ZoneInfo

from app.services.timezones import timezone_for_coordinates, zone_for_coordinates

DAY_NAMES = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)
DAY_ABBREVIATIONS = tuple(name[:3] for name in DAY_NAMES)
MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)
MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

SLOT_STEP_MINUTES = 30
END_OF_DAY = 2359
SLOT_COUNTER_LIMIT = 2400


def weekday_index(value: date) -> int:
    """Weekday with Sunday as 0."""

    return (value.weekday() + 1) % 7


def format_hhmm(value: int) -> str:
    """Render an ``HHMM`` integer as ``H:MM AM``."""

    hours, minutes = divmod(value, 100)
    suffix = "PM" if hours >= 12 else "AM"
    return f"{hours % 12 or 12}:{minutes:02d} {suffix}"


def _parse_day(raw: Any) -> int | None:
    try:
        day = int(raw)
    except (TypeError, ValueError):
        return None
    return day if 0 <= day <= 6 else None


def _parse_time(raw: Any) -> int | None:
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return None
    return value if 0 <= value <= SLOT_COUNTER_LIMIT else None


@dataclass(frozen=True)
class OpeningPeriod:
    """One opening interval; times are ``HHMM`` integers."""

    open_day: int
    open_time: int
    close_day: int
    close_time: int

    @property
    def spans_midnight(self) -> bool:
        return self.close_time < self.open_time

    def contains(self, hhmm: int) -> bool:
        if self.spans_midnight:
            return hhmm >= self.open_time or hhmm <= self.close_time
        return self.open_time <= hhmm <= self.close_time

    @classmethod
    def parse(cls, raw: Any) -> OpeningPeriod | None:
        """Build a period from ``{open: {day, time}, close: {day, time}}``.

        A missing ``close`` means open until the end of that day.
        """

        if not isinstance(raw, Mapping):
            return None
        opening = raw.get("open")
        if not isinstance(opening, Mapping):
            return None
        open_day = _parse_day(opening.get("day"))
        open_time = _parse_time(opening.get("time"))
        if open_day is None or open_time is None:
            return None

        closing = raw.get("close")
        if closing is None:
            return cls(open_day, open_time, open_day, END_OF_DAY)
        if not isinstance(closing, Mapping):
            return None
        close_time = _parse_time(closing.get("time"))
        if close_time is None:
            return None
        close_day = _parse_day(closing.get("day"))
        return cls(
            open_day,
            open_time,
            open_day if close_day is None else close_day,
            close_time,
        )


def parse_periods(opening_hours: Any) -> tuple[OpeningPeriod, ...]:
    if not isinstance(opening_hours, Mapping):
        return ()
    raw_periods = opening_hours.get("periods")
    if not isinstance(raw_periods, list):
        return ()
    periods = (OpeningPeriod.parse(item) for item in raw_periods)
    return tuple(period for period in periods if period is not None)


def _coordinate(value: Any) -> float | None:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number or None


@dataclass(frozen=True)
class Practice:
    """What the engine needs to know about a practice."""

    lat: float | None
    lng: float | None
    periods: tuple[OpeningPeriod, ...] = ()
    name: str | None = None

    @classmethod
    def from_provider(cls, provider: Any) -> Practice:
        return cls(
            lat=_coordinate(provider.lat),
            lng=_coordinate(provider.lng),
            periods=parse_periods(provider.opening_hours),
            name=provider.name,
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Practice:
        """Accept either flat ``lat``/``lng`` or ``geometry.location``."""

        location = (data.get("geometry") or {}).get("location") or {}
        hours = data.get("hours") or data.get("opening_hours")
        return cls(
            lat=_coordinate(location.get("lat")) or _coordinate(data.get("lat")),
            lng=_coordinate(location.get("lng")) or _coordinate(data.get("lng")),
            periods=parse_periods(hours),
            name=data.get("name"),
        )

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lng is not None

    @property
    def is_schedulable(self) -> bool:
        return self.has_coordinates and bool(self.periods)

    @property
    def timezone_name(self) -> str | None:
        if not self.has_coordinates:
            return None
        return timezone_for_coordinates(self.lat, self.lng)

    def zone(self) -> ZoneInfo:
        return zone_for_coordinates(self.lat, self.lng)

    def period_for(self, weekday: int) -> OpeningPeriod | None:
        for period in self.periods:
            if period.open_day == weekday:
                return period
        return None


@dataclass(frozen=True)
class PracticeClock:
    """The current instant seen from the practice's time zone."""

    local: datetime

    @property
    def today(self) -> date:
        return self.local.date()

    @property
    def weekday(self) -> int:
        return weekday_index(self.local.date())

    @property
    def hhmm(self) -> int:
        return self.local.hour * 100 + self.local.minute


def practice_clock(practice: Practice, now: datetime | None = None) -> PracticeClock:
    moment = now or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return PracticeClock(local=moment.astimezone(practice.zone()))


@dataclass
class PracticeStatus:
    is_open: bool
    closing_time: str | None
    next_opening: str | None

    @property
    def status_text(self) -> str:
        return "OPEN NOW" if self.is_open else "CLOSED"

    def as_dict(self) -> dict[str, Any]:
        return {
            "is_open": self.is_open,
            "closing_time": self.closing_time,
            "next_opening": self.next_opening,
            "status_text": self.status_text,
        }


@dataclass
class AvailableDate:
    label: str
    day: str
    full_date: date
    is_today: bool
    is_available: bool = True

    def as_dict(self) -> dict[str, Any]:
        return {
            "date": self.label,
            "day": self.day,
            "full_date": self.full_date.isoformat(),
            "is_today": self.is_today,
            "is_available": self.is_available,
        }


@dataclass
class TimeSlot:
    time: str
    value: str
    is_past: bool

    @property
    def is_available(self) -> bool:
        return not self.is_past

    def as_dict(self) -> dict[str, Any]:
        return {
            "time": self.time,
            "value": self.value,
            "is_available": self.is_available,
            "is_past": self.is_past,
        }


def is_currently_open(practice: Practice, now: datetime | None = None) -> bool:
    if not practice.is_schedulable:
        return False
    clock = practice_clock(practice, now)
    period = practice.period_for(clock.weekday)
    if period is None:
        return False
    return period.contains(clock.hhmm)


def closing_time(practice: Practice, now: datetime | None = None) -> str | None:
    """Today's closing time, whether or not the practice is open right now."""

    if not practice.is_schedulable:
        return None
    clock = practice_clock(practice, now)
    period = practice.period_for(clock.weekday)
    if period is None:
        return None
    return format_hhmm(period.close_time)


def next_opening(practice: Practice, now: datetime | None = None) -> str | None:
    if not practice.is_schedulable:
        return None
    clock = practice_clock(practice, now)

    today = practice.period_for(clock.weekday)
    if today is not None and clock.hhmm < today.open_time:
        return f"Opens at {format_hhmm(today.open_time)} today"

    for offset in range(1, 8):
        weekday = (clock.weekday + offset) % 7
        period = practice.period_for(weekday)
        if period is not None:
            return f"Opens {DAY_NAMES[weekday]} at {format_hhmm(period.open_time)}"
    return None


def practice_status(practice: Practice, now: datetime | None = None) -> PracticeStatus:
    return PracticeStatus(
        is_open=is_currently_open(practice, now),
        closing_time=closing_time(practice, now),
        next_opening=next_opening(practice, now),
    )


def available_dates(
    practice: Practice,
    days_to_show: int = 30,
    start_date: date | None = None,
    now: datetime | None = None,
) -> list[AvailableDate]:
    """Days on which the practice has an opening period."""

    if not practice.is_schedulable:
        return []
    clock = practice_clock(practice, now)
    base = start_date or clock.today

    dates: list[AvailableDate] = []
    for offset in range(max(0, days_to_show)):
        day = base + timedelta(days=offset)
        weekday = weekday_index(day)
        if practice.period_for(weekday) is None:
            continue
        dates.append(
            AvailableDate(
                label=f"{day.day} {MONTH_ABBREVIATIONS[day.month - 1]}",
                day=DAY_ABBREVIATIONS[weekday],
                full_date=day,
                is_today=day == clock.today,
            )
        )
    return dates


def available_time_slots(
    practice: Practice,
    selected_date: date,
    now: datetime | None = None,
) -> list[TimeSlot]:
    """Half-hour slots from opening to closing time, both inclusive.

    On the practice's current day, slots at or before the local time are past.
    """

    if not practice.is_schedulable:
        return []
    period = practice.period_for(weekday_index(selected_date))
    if period is None:
        return []

    clock = practice_clock(practice, now)
    is_today = selected_date == clock.today

    slots: list[TimeSlot] = []
    current = period.open_time
    while current <= period.close_time:
        hour, minute = divmod(current, 100)
        slots.append(
            TimeSlot(
                time=format_hhmm(current),
                value=f"{hour:02d}:{minute:02d}",
                is_past=is_today and current <= clock.hhmm,
            )
        )

        minute += SLOT_STEP_MINUTES
        if minute >= 60:
            hour += minute // 60
            minute %= 60
        current = hour * 100 + minute
        if current > SLOT_COUNTER_LIMIT:
            break
    return slots


def is_time_slot_bookable(
    practice: Practice,
    selected_date: date,
    time_value: str,
    now: datetime | None = None,
) -> bool:
    """Future days are always bookable; today only after the local time."""

    if not practice.has_coordinates:
        return False
    try:
        hours, minutes = (int(part) for part in time_value.split(":"))
    except (AttributeError, ValueError):
        return False

    clock = practice_clock(practice, now)
    if selected_date != clock.today:
        return True
    return hours * 100 + minutes > clock.hhmm


def next_available_slot(
    practice: Practice, now: datetime | None = None
) -> tuple[date, TimeSlot] | None:
    for entry in available_dates(practice, days_to_show=7, now=now):
        for slot in available_time_slots(practice, entry.full_date, now=now):
            if slot.is_available:
                return entry.full_date, slot
    return None


def current_month_display(
    practice: Practice,
    current_date: date | None = None,
    now: datetime | None = None,
) -> str:
    """``Month YYYY`` for the practice's local calendar."""

    if current_date is None:
        if practice.has_coordinates:
            current_date = practice_clock(practice, now).today
        else:
            current_date = (now or datetime.now(timezone.utc)).date()
    return f"{MONTH_NAMES[current_date.month - 1]} {current_date.year}"


__all__ = [
    "AvailableDate",
    "OpeningPeriod",
    "Practice",
    "PracticeStatus",
    "TimeSlot",
    "available_dates",
    "available_time_slots",
    "closing_time",
    "current_month_display",
    "format_hhmm",
    "is_currently_open",
    "is_time_slot_bookable",
    "next_available_slot",
    "next_opening",
    "parse_periods",
    "practice_status",
]
