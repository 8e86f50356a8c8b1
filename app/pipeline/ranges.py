from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from ..utils import (
    add_months,
    as_utc,
    end_of_day,
    iso_utc,
    now_utc,
    parse_datetime,
    start_of_day,
    start_of_month,
)

PRESETS = ("last-month", "last-quarter", "last-year", "year-to-date")
DEFAULT_PRESET = "last-month"

# UK tax years run 6 April to 5 April.
TAX_YEAR_START_MONTH = 4
TAX_YEAR_START_DAY = 6


class InvalidRange(ValueError):
    pass


@dataclass(frozen=True)
class DateRange:
    """Half-open interval [start, end)."""
    start: datetime
    end: datetime
    label: str
    mode: str = "preset"
    preset: str | None = None

    @property
    def key(self) -> str:
        return iso_utc(self.start) + iso_utc(self.end)

    @property
    def days(self) -> int:
        return range_length_days(self)

    def contains(self, when: datetime) -> bool:
        return self.start <= when < self.end

    def previous(self) -> "DateRange":
        return previous_range(self)

    def to_dict(self) -> dict:
        prev = self.previous()
        return {
            "start": iso_utc(self.start),
            "end": iso_utc(self.end),
            "label": self.label,
            "mode": self.mode,
            "preset": self.preset,
            "days": self.days,
            "previous": {
                "start": iso_utc(prev.start),
                "end": iso_utc(prev.end),
                "label": prev.label,
            },
        }


def range_length_days(rng: DateRange) -> int:
    return max(1, round((rng.end - rng.start).total_seconds() / 86400))


def previous_range(rng: DateRange) -> DateRange:
    # Whole days, so the window opens at the same time of day as the range.
    prev_start = rng.start - timedelta(days=range_length_days(rng))
    return DateRange(
        start=prev_start,
        end=rng.start,
        label=f"{_day_label(prev_start)} – {_day_label(rng.start - timedelta(microseconds=1))}",
        mode="previous",
        preset=None,
    )


def _day_label(dt: datetime) -> str:
    return f"{dt.day} {dt.strftime('%b %Y')}"


def _quarter_label(dt: datetime) -> str:
    return f"Q{(dt.month - 1) // 3 + 1} {dt.year}"


def _last_month(now: datetime) -> DateRange:
    end = start_of_month(now)
    start = add_months(end, -1)
    return DateRange(start, end, f"Last month · {start.strftime('%b %Y')}", preset="last-month")


def _last_quarter(now: datetime) -> DateRange:
    month = now.month
    q_start_month = ((month - 1) // 3) * 3 + 1
    end = start_of_month(now).replace(month=q_start_month)
    start = add_months(end, -3)
    return DateRange(start, end, f"Last quarter · {_quarter_label(start)}", preset="last-quarter")


def _trailing_year(now: datetime) -> DateRange:
    start = add_months(now, -12)
    return DateRange(start, now, f"Last 12 months · to {_day_label(now)}", preset="last-year")


def _year_to_date(now: datetime) -> DateRange:
    start = start_of_day(now).replace(month=1, day=1)
    return DateRange(start, now, f"Year to date · {now.year}", preset="year-to-date")


def tax_year_start(on: datetime) -> datetime:
    start = start_of_day(on).replace(month=TAX_YEAR_START_MONTH, day=TAX_YEAR_START_DAY)
    if on < start:
        start = start.replace(year=start.year - 1)
    return start


def tax_year_label(on: datetime) -> str:
    year = tax_year_start(on).year
    return f"{year}/{(year + 1) % 100:02d}"


def _previous_tax_year(now: datetime) -> DateRange:
    end = tax_year_start(now)
    start = end.replace(year=end.year - 1)
    return DateRange(start, end, f"Tax year {tax_year_label(start)}", preset="last-year")


_DASHBOARD_PRESETS = {
    "last-month": _last_month,
    "last-quarter": _last_quarter,
    "last-year": _trailing_year,
    "year-to-date": _year_to_date,
}

_TAX_PRESETS = {**_DASHBOARD_PRESETS, "last-year": _previous_tax_year}


def _custom_range(start: str, end: str) -> DateRange:
    start_dt = parse_datetime(start)
    end_dt = parse_datetime(end)
    if start_dt is None or end_dt is None:
        raise InvalidRange(f"invalid date range: start={start!r} end={end!r}")
    start_dt = start_of_day(start_dt)
    end_dt = end_of_day(end_dt)
    if end_dt <= start_dt:
        raise InvalidRange("start must be on or before end")
    label = f"{_day_label(start_dt)} – {_day_label(end_dt)}"
    return DateRange(start_dt, end_dt, label, mode="custom")


def _resolve(table: dict, preset: str | None, start: str | None, end: str | None, now: datetime | None) -> DateRange:
    now = as_utc(now) if now else now_utc()
    if start or end:
        if not (start and end):
            raise InvalidRange("custom ranges need both start and end")
        return _custom_range(start, end)
    name = (preset or DEFAULT_PRESET).strip().lower()
    builder = table.get(name)
    if builder is None:
        raise InvalidRange(f"unknown preset {preset!r}; expected one of {', '.join(PRESETS)}")
    return builder(now)


def resolve_range(preset: str | None = None, start: str | None = None, end: str | None = None, now: datetime | None = None) -> DateRange:
    """Dashboard path. ``last-year`` is the trailing twelve months ending now."""
    return _resolve(_DASHBOARD_PRESETS, preset, start, end, now)


def resolve_tax_range(preset: str | None = None, start: str | None = None, end: str | None = None, now: datetime | None = None) -> DateRange:
    """Tax path. ``last-year`` is the previous complete UK tax year."""
    return _resolve(_TAX_PRESETS, preset, start, end, now)
