# editor.py
from __future__ import annotations
import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Callable, Dict, Optional, Tuple

from domain import (
    MonthlyRecord, MonthlyStats, SaveStatus, filter_to_month, is_weekend, month_key, month_range,
)
from exceptions import StorageError
from services import AttendanceCalculator, AttendanceEvents

logger = logging.getLogger(__name__)

SAVED_DISPLAY_SECONDS = 2.0


@dataclass
class DaySelection:
    """Working days and holidays picked in the calendar. A date is in at most one set."""
    working_days: set[str] = field(default_factory=set)
    holidays: set[str] = field(default_factory=set)

    def toggle_working(self, day: str) -> None:
        if day in self.working_days:
            self.working_days.discard(day)
        else:
            self.working_days.add(day)
            self.holidays.discard(day)

    def toggle_holiday(self, day: str) -> None:
        if day in self.holidays:
            self.holidays.discard(day)
        else:
            self.holidays.add(day)
            self.working_days.discard(day)

    def copy(self) -> DaySelection:
        return DaySelection(set(self.working_days), set(self.holidays))


@dataclass(frozen=True)
class CalendarCell:
    day: date
    in_month: bool
    weekend: bool
    working: bool
    holiday: bool
    today: bool

    @property
    def clickable(self) -> bool:
        return self.in_month and not self.weekend


class SaveDebouncer:
    """
    One pending save per month key. Scheduling a key again cancels its pending
    timer; timers for other keys keep running. A save that already started is
    never interrupted.
    """
    def __init__(self, delay: float, timer_factory: Callable = threading.Timer):
        self.delay = delay
        self._timer_factory = timer_factory
        self._pending: Dict[str, Tuple[object, Callable[[], None]]] = {}
        self._lock = threading.Lock()

    @property
    def pending(self) -> set[str]:
        with self._lock:
            return set(self._pending)

    def schedule(self, key: str, action: Callable[[], None]) -> None:
        with self._lock:
            previous = self._pending.pop(key, None)
            if previous is not None:
                previous[0].cancel()
            timer = self._timer_factory(self.delay, self._fire, args=(key, action))
            timer.daemon = True
            self._pending[key] = (timer, action)
        timer.start()

    def _fire(self, key: str, action: Callable[[], None]) -> None:
        with self._lock:
            entry = self._pending.get(key)
            if entry is None or entry[1] is not action:
                return
            del self._pending[key]
        action()

    def cancel(self, key: str) -> None:
        with self._lock:
            entry = self._pending.pop(key, None)
        if entry is not None:
            entry[0].cancel()

    def flush(self) -> None:
        with self._lock:
            entries = list(self._pending.values())
            self._pending.clear()
        for timer, action in entries:
            timer.cancel()
            action()


class MonthEditor:
    """
    Calendar editor for one displayed month. Owns the transient selection;
    persists it through the repository after a debounce and notifies
    subscribers once a save lands.
    """
    def __init__(
        self,
        repository,
        calculator: AttendanceCalculator,
        events: AttendanceEvents,
        *,
        today: Optional[date] = None,
        debounce_seconds: float = 0.3,
        double_click_seconds: float = 0.3,
        clock: Callable[[], float] = time.monotonic,
        timer_factory: Callable = threading.Timer,
    ):
        self.repository = repository
        self.calculator = calculator
        self.events = events
        self.double_click_seconds = double_click_seconds
        self._clock = clock
        self._debouncer = SaveDebouncer(debounce_seconds, timer_factory)
        self._last_click: Dict[str, float] = {}
        self._status = SaveStatus.IDLE
        self._saved_at = 0.0
        self._status_lock = threading.Lock()
        self._write_lock = threading.Lock()
        self._generations: Dict[str, int] = {}
        self.today = today or date.today()
        self.current_month = date(self.today.year, self.today.month, 1)
        self.selection = DaySelection()
        self.load()

    @property
    def month_key(self) -> str:
        return month_key(self.current_month)

    @property
    def stats(self) -> MonthlyStats:
        return self.calculator.monthly_stats(
            self.current_month, self.selection.working_days, self.selection.holidays
        )

    @property
    def status(self) -> SaveStatus:
        with self._status_lock:
            if self._status is SaveStatus.SAVED and self._clock() - self._saved_at >= SAVED_DISPLAY_SECONDS:
                self._status = SaveStatus.IDLE
            return self._status

    def _set_status(self, status: SaveStatus) -> None:
        with self._status_lock:
            self._status = status
            if status is SaveStatus.SAVED:
                self._saved_at = self._clock()

    # --- Loading / navigation ---
    def load(self) -> None:
        try:
            record = self.repository.get(self.month_key)
        except StorageError:
            logger.exception("Error loading month data for %s", self.month_key)
            record = None
        if record is not None:
            self.selection = DaySelection(set(record.working_days), set(record.holidays))
        else:
            self.selection = DaySelection()

    def go_to(self, month: date) -> None:
        """Show the month containing `month`. Pending saves of the old month still run."""
        self.current_month = date(month.year, month.month, 1)
        self._last_click.clear()
        self.load()

    def next_month(self) -> None:
        _, last = month_range(self.current_month)
        self.go_to(last + timedelta(days=1))

    def previous_month(self) -> None:
        self.go_to(self.current_month - timedelta(days=1))

    def set_month(self, month: int) -> None:
        self.go_to(date(self.current_month.year, month, 1))

    def set_year(self, year: int) -> None:
        self.go_to(date(year, self.current_month.month, 1))

    # --- Editing ---
    def click(self, day: date) -> bool:
        """
        Single click toggles a working day; a second click on the same date
        inside the double-click window toggles a holiday instead.
        Returns False when the click is ignored.
        """
        if is_weekend(day) or (day.year, day.month) != (self.current_month.year, self.current_month.month):
            return False
        day_str = day.isoformat()
        now = self._clock()
        self._last_click = {d: t for d, t in self._last_click.items() if now - t < self.double_click_seconds}
        if day_str in self._last_click:
            self.selection.toggle_holiday(day_str)
            self._last_click.pop(day_str, None)
        else:
            self.selection.toggle_working(day_str)
            self._last_click[day_str] = now
        self._schedule_save()
        return True

    def clear(self) -> None:
        key = self.month_key
        self.selection = DaySelection()
        self._debouncer.cancel(key)
        with self._write_lock:
            # A save already past the debouncer sees the new generation and skips
            self._generations[key] = self._generations.get(key, 0) + 1
            try:
                self.repository.delete(key)
            except StorageError:
                logger.exception("Error clearing attendance for %s", key)
                self._set_status(SaveStatus.IDLE)
                return
        self._set_status(SaveStatus.SAVED)
        self.events.notify()

    def flush(self) -> None:
        self._debouncer.flush()

    @property
    def pending_months(self) -> set[str]:
        return self._debouncer.pending

    def _schedule_save(self) -> None:
        month = self.current_month
        key = month_key(month)
        snapshot = self.selection.copy()
        generation = self._generations.get(key, 0)
        self._debouncer.schedule(key, lambda: self._save(month, snapshot, generation))

    def _save(self, month: date, selection: DaySelection, generation: int = 0) -> None:
        key = month_key(month)
        stats = self.calculator.monthly_stats(month, selection.working_days, selection.holidays)
        record = MonthlyRecord(
            month=key,
            working_days=filter_to_month(selection.working_days, month),
            holidays=filter_to_month(selection.holidays, month),
            attendance_percentage=stats.attendance_percentage,
        )
        with self._write_lock:
            if self._generations.get(key, 0) != generation:
                logger.debug("Dropping stale save for %s", key)
                return
            self._set_status(SaveStatus.SAVING)
            try:
                if record.is_empty:
                    self.repository.delete(key)
                else:
                    self.repository.upsert(record)
            except StorageError:
                logger.exception("Error saving attendance for %s", key)
                self._set_status(SaveStatus.IDLE)
                return
        self._set_status(SaveStatus.SAVED)
        self.events.notify()

    # --- Rendering support ---
    def calendar(self) -> list[list[CalendarCell]]:
        """Weeks (Sunday first) covering the displayed month."""
        first, last = month_range(self.current_month)
        start = first - timedelta(days=(first.weekday() + 1) % 7)
        end = last + timedelta(days=(5 - last.weekday()) % 7)
        weeks, week = [], []
        d = start
        while d <= end:
            s = d.isoformat()
            week.append(CalendarCell(
                day=d,
                in_month=first <= d <= last,
                weekend=is_weekend(d),
                working=s in self.selection.working_days,
                holiday=s in self.selection.holidays,
                today=d == self.today,
            ))
            if len(week) == 7:
                weeks.append(week)
                week = []
            d += timedelta(days=1)
        return weeks
