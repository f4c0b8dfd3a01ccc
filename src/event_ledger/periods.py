# Event Ledger - Cash-flow dashboard for event-planning businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Period helpers for Event Ledger.

This module defines a Period value object and helpers to derive the
reporting windows used by the dashboard (a single day for the daily cash,
a calendar month for the monthly report, the last N days for the
financial-movements view, month to date, last month) from CLI arguments.
"""

from calendar import monthrange
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

MONTH_NAMES = (
    "enero",
    "febrero",
    "marzo",
    "abril",
    "mayo",
    "junio",
    "julio",
    "agosto",
    "septiembre",
    "octubre",
    "noviembre",
    "diciembre",
)


@dataclass
class Period:
    """Represents a reporting period with a human-readable label."""

    start: date
    end: date
    label: str

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


def _today() -> date:
    """Return today's date as a date object (isolated for easier testing)."""
    return datetime.today().date()


def month_label(month: int) -> str:
    """Spanish month name, as displayed by the monthly report."""
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month: {month!r}")
    return MONTH_NAMES[month - 1]


def period_for_day(day: Optional[date] = None) -> Period:
    """Single calendar day (today by default)."""
    day = day or _today()
    return Period(start=day, end=day, label=f"Day {day.isoformat()}")


def period_for_month(year: int, month: int) -> Period:
    """Full calendar month."""
    last_day = monthrange(year, month)[1]
    return Period(
        start=date(year, month, 1),
        end=date(year, month, last_day),
        label=f"{month_label(month).capitalize()} {year}",
    )


def period_last_days(days: int = 30, today: Optional[date] = None) -> Period:
    """The last ``days`` days up to today (inclusive)."""
    if days < 1:
        raise ValueError("Number of days must be at least 1.")
    end = today or _today()
    start = end - timedelta(days=days)
    return Period(start=start, end=end, label=f"Last {days} days")


def period_mtd(today: Optional[date] = None) -> Period:
    """Month-to-date."""
    today = today or _today()
    return Period(start=today.replace(day=1), end=today, label="Month to date")


def period_last_month(today: Optional[date] = None) -> Period:
    """Full previous calendar month."""
    today = today or _today()

    if today.month == 1:
        year = today.year - 1
        month = 12
    else:
        year = today.year
        month = today.month - 1

    period = period_for_month(year, month)
    return Period(start=period.start, end=period.end, label="Last month")


def previous_month(year: int, month: int) -> tuple[int, int]:
    if month == 1:
        return year - 1, 12
    return year, month - 1


def determine_period_from_args(args) -> Period:
    """
    Determine the reporting period to use based on CLI args.

    Priority (highest to lowest):

        1. args.day (YYYY-MM-DD, single day)
        2. args.month (YYYY-MM, calendar month)
        3. args.period (today, mtd, last-month, last-30)
        4. args.from_date / args.to_date (custom period)
        5. month to date by default
    """
    # 1) Single day
    day_raw: Optional[str] = getattr(args, "day", None)
    if day_raw:
        return period_for_day(date.fromisoformat(day_raw))

    # 2) Calendar month
    month_raw: Optional[str] = getattr(args, "month", None)
    if month_raw:
        try:
            year_str, month_str = month_raw.split("-")
            return period_for_month(int(year_str), int(month_str))
        except ValueError as exc:
            raise ValueError(
                f"Invalid month: {month_raw!r}, expected YYYY-MM."
            ) from exc

    # 3) Predefined period
    if getattr(args, "period", None):
        p = args.period
        if p == "today":
            return period_for_day()
        if p == "mtd":
            return period_mtd()
        if p == "last-month":
            return period_last_month()
        if p == "last-30":
            return period_last_days(30)
        raise ValueError(f"Unknown period: {p!r}")

    # 4) Custom from/to dates
    from_raw: Optional[str] = getattr(args, "from_date", None)
    to_raw: Optional[str] = getattr(args, "to_date", None)

    if from_raw or to_raw:
        end = date.fromisoformat(to_raw) if to_raw else _today()
        start = date.fromisoformat(from_raw) if from_raw else end.replace(day=1)

        if end < start:
            raise ValueError("Custom period end date cannot be before start date.")

        label = f"Custom period ({start} → {end})"
        return Period(start=start, end=end, label=label)

    # 5) Default: month to date
    return period_mtd()
