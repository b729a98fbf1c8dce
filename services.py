# services.py
from __future__ import annotations
import logging
from datetime import date
from typing import Callable, Iterable, List, Optional

from domain import (
    DEFAULT_TARGET_PERCENT, MonthlyRecord, MonthlyStats, MonthSlot, TargetStatus, YearlySummary,
    days_of_month, is_weekend, month_key, parse_day,
)
from exceptions import StorageError

logger = logging.getLogger(__name__)


def _round_half_up(numerator: int, denominator: int) -> int:
    return (2 * numerator + denominator) // (2 * denominator)


class AttendanceCalculator:
    """Business rules for monthly attendance against the office-days target."""
    def __init__(self, target_percent: int = DEFAULT_TARGET_PERCENT):
        self.target_percent = target_percent

    def _count_weekdays_in(self, days: Iterable[str], month: date) -> int:
        n = 0
        for s in days:
            d = parse_day(s)
            if d is not None and d.year == month.year and d.month == month.month and not is_weekend(d):
                n += 1
        return n

    def monthly_stats(self, month: date, working_days: Iterable[str], holidays: Iterable[str]) -> MonthlyStats:
        """
        Stats for the month containing `month`. Selections may hold dates from
        other months; only weekdays inside this month are counted.
        """
        total = sum(1 for d in days_of_month(month) if not is_weekend(d))
        holiday_count = self._count_weekdays_in(holidays, month)
        current = self._count_weekdays_in(working_days, month)
        available = total - holiday_count
        required = -(-available * self.target_percent // 100) if available > 0 else 0
        if available > 0:
            percentage = min(100, _round_half_up(current * 100, available))
        else:
            percentage = 0
        return MonthlyStats(
            total_working_days=total,
            holiday_count=holiday_count,
            required_working_days=required,
            current_attendance=current,
            attendance_percentage=percentage,
            remaining_days=max(required - current, 0),
        )

    def month_status(self, record: MonthlyRecord) -> TargetStatus:
        if not record.working_days:
            return TargetStatus.NO_DATA
        return TargetStatus.MET if record.attendance_percentage >= self.target_percent else TargetStatus.NOT_MET

    def yearly_summary(self, year: int, records: Iterable[MonthlyRecord]) -> YearlySummary:
        """
        Twelve slots, January..December. Months without a stored record count
        as 0% in the average.
        """
        by_month = {r.month: r for r in records}
        slots = []
        for m in range(1, 13):
            key = month_key(date(year, m, 1))
            record = by_month.get(key) or MonthlyRecord(month=key)
            slots.append(MonthSlot(record=record, status=self.month_status(record)))
        total = sum(s.record.attendance_percentage for s in slots)
        return YearlySummary(
            year=year,
            slots=slots,
            average_attendance=_round_half_up(total, 12),
            months_above_target=sum(1 for s in slots if s.record.attendance_percentage >= self.target_percent),
        )


class AttendanceEvents:
    """Observer registry for the payload-less 'attendance updated' signal."""
    def __init__(self):
        self._listeners: List[Callable[[], None]] = []

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def notify(self) -> None:
        for listener in list(self._listeners):
            listener()


class YearlyReport:
    """Year view over the store; reloads whenever attendance is updated."""
    def __init__(self, repository, calculator: AttendanceCalculator, events: AttendanceEvents, year: int):
        self.repository = repository
        self.calculator = calculator
        self.year = year
        self.summary = calculator.yearly_summary(year, [])
        self.latest_stored_year: Optional[int] = None
        self._unsubscribe = events.subscribe(self.reload)
        self.reload()

    def reload(self) -> YearlySummary:
        try:
            records = self.repository.get_all()
        except StorageError:
            logger.exception("Error loading yearly data for %d", self.year)
            return self.summary
        self.latest_stored_year = max((r.first_day.year for r in records), default=None)
        year_records = [r for r in records if r.month.startswith(f"{self.year:04d}-")]
        self.summary = self.calculator.yearly_summary(self.year, year_records)
        return self.summary

    def select_year(self, year: int) -> YearlySummary:
        self.year = year
        return self.reload()

    def available_years(self, current_year: int, first_year: int = 2024) -> List[int]:
        """first_year through the later of current_year and the latest stored year."""
        latest = max(current_year, self.latest_stored_year or current_year)
        return list(range(first_year, max(latest, first_year) + 1))

    def close(self) -> None:
        self._unsubscribe()
