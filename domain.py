# domain.py
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Iterable

DEFAULT_TARGET_PERCENT = 60


def month_key(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}"

def parse_month_key(yyyy_mm: str) -> date:
    """'YYYY-MM' -> first day of that month."""
    y, m = yyyy_mm.split("-")
    return date(int(y), int(m), 1)

def month_range(d: date) -> tuple[date, date]:
    """First and last day of the month containing d."""
    d1 = date(d.year, d.month, 1)
    d2 = (date(d.year + 1, 1, 1) - timedelta(days=1)) if d.month == 12 else (date(d.year, d.month + 1, 1) - timedelta(days=1))
    return d1, d2

def days_of_month(d: date) -> list[date]:
    d1, d2 = month_range(d)
    return [d1 + timedelta(days=i) for i in range((d2 - d1).days + 1)]

def is_weekend(d: date) -> bool:
    return d.weekday() >= 5

def parse_day(s: str) -> date | None:
    try:
        return date.fromisoformat(s)
    except (TypeError, ValueError):
        return None

def same_month(day: str, month: date) -> bool:
    d = parse_day(day)
    return d is not None and d.year == month.year and d.month == month.month

def filter_to_month(days: Iterable[str], month: date) -> set[str]:
    return {s for s in days if same_month(s, month)}


class SaveStatus(str, Enum):
    IDLE = "idle"
    SAVING = "saving"
    SAVED = "saved"


class TargetStatus(str, Enum):
    NO_DATA = "-"
    MET = "Met"
    NOT_MET = "Not Met"


@dataclass
class MonthlyRecord:
    """Persisted attendance for one calendar month, keyed by 'YYYY-MM'."""
    month: str
    working_days: set[str] = field(default_factory=set)
    holidays: set[str] = field(default_factory=set)
    attendance_percentage: int = 0

    @property
    def first_day(self) -> date:
        return parse_month_key(self.month)

    @property
    def is_empty(self) -> bool:
        return not self.working_days and not self.holidays

    def filtered(self) -> MonthlyRecord:
        """Copy with both day sets restricted to this record's month."""
        first = self.first_day
        return MonthlyRecord(
            month=self.month,
            working_days=filter_to_month(self.working_days, first),
            holidays=filter_to_month(self.holidays, first),
            attendance_percentage=self.attendance_percentage,
        )


@dataclass(frozen=True)
class MonthlyStats:
    total_working_days: int
    holiday_count: int
    required_working_days: int
    current_attendance: int
    attendance_percentage: int
    remaining_days: int


@dataclass(frozen=True)
class MonthSlot:
    record: MonthlyRecord
    status: TargetStatus

    @property
    def month(self) -> str:
        return self.record.month


@dataclass(frozen=True)
class YearlySummary:
    year: int
    slots: list[MonthSlot]
    average_attendance: int
    months_above_target: int
