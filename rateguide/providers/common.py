import re
from dataclasses import dataclass
from datetime import date, datetime, timezone

import pandas as pd

from ..models import SeriesPoint
from ..utils import round2

MONTHS = {
    "Jan": 1, "Feb": 2, "Mar": 3, "Apr": 4, "May": 5, "Jun": 6,
    "Jul": 7, "Aug": 8, "Sep": 9, "Oct": 10, "Nov": 11, "Dec": 12,
}
MONTH_ABBR = {v: k for k, v in MONTHS.items()}

_DAY_MON_YEAR = re.compile(r"^(\d{1,2})[\s/\-]+([A-Za-z]{3})[\s/\-]+(\d{4})$")
_MON_YY = re.compile(r"^([A-Za-z]{3})-(\d{2})$")
_YYYY_MM = re.compile(r"^(\d{4})-(\d{2})$")

def month_key(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}"

def parse_day_month_year(raw: str) -> date | None:
    """'05/Jan/2026' or '05 Jan 2026' -> date."""
    m = _DAY_MON_YEAR.match((raw or "").strip())
    if not m:
        return None
    month = MONTHS.get(m.group(2).title())
    if month is None:
        return None
    try:
        return date(int(m.group(3)), month, int(m.group(1)))
    except ValueError:
        return None

def format_day_month_year(d: date) -> str:
    return f"{d.day:02d}/{MONTH_ABBR[d.month]}/{d.year:04d}"

def parse_month_id(raw: str) -> str | None:
    """'Jan-24' -> '2024-01'. Two-digit years >= 70 are 19xx."""
    m = _MON_YY.match((raw or "").strip())
    if not m:
        return None
    month = MONTHS.get(m.group(1).title())
    if month is None:
        return None
    yy = int(m.group(2))
    year = 1900 + yy if yy >= 70 else 2000 + yy
    return f"{year:04d}-{month:02d}"

def shift_month(month: str, delta: int) -> str | None:
    m = _YYYY_MM.match(month or "")
    if not m:
        return None
    y, mm = int(m.group(1)), int(m.group(2))
    if mm < 1 or mm > 12:
        return None
    total = y * 12 + (mm - 1) + delta
    return f"{total // 12:04d}-{total % 12 + 1:02d}"

def prev_year_month(month: str) -> str | None:
    return shift_month(month, -12)


@dataclass(frozen=True)
class SeriesWindow:
    """Caller-supplied date range, or a lookback in months ending today."""
    from_date: date | None = None
    to_date: date | None = None
    months: int | None = None

    def resolve(self, default_months: int, today: date | None = None) -> tuple[date, date]:
        today = today or datetime.now(timezone.utc).date()
        months = max(1, int(self.months or default_months))
        to_date = self.to_date or today
        if self.from_date:
            from_date = self.from_date
        else:
            start = shift_month(month_key(today), -(months - 1))
            from_date = date(int(start[:4]), int(start[5:]), 1)
        return from_date, to_date

    def month_bounds(self, default_months: int, today: date | None = None) -> tuple[str, str]:
        from_date, to_date = self.resolve(default_months, today)
        return month_key(from_date), month_key(to_date)


def window_points(points, from_month: str | None = None, to_month: str | None = None) -> list[SeriesPoint]:
    # zero-padded YYYY-MM compares correctly as strings
    lo = from_month or "0000-00"
    hi = to_month or "9999-12"
    return [p for p in points if lo <= p.month <= hi]

def take_last_months(points, months: int, end_month: str | None = None) -> list[SeriesPoint]:
    filtered = [p for p in points if end_month is None or p.month <= end_month]
    if len(filtered) <= months:
        return filtered
    return filtered[len(filtered) - months:]

def latest_month(points) -> str | None:
    return points[-1].month if points else None

def frame_to_points(df: pd.DataFrame, value_col: str = "value") -> list[SeriesPoint]:
    if df is None or df.empty:
        return []
    d = df[["month", value_col]].dropna().sort_values("month")
    return [SeriesPoint(month=str(m), value=round2(v)) for m, v in zip(d["month"], d[value_col])]


@dataclass(frozen=True)
class SeriesBatch:
    series: tuple
    stale: bool = False
