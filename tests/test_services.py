from __future__ import annotations

from datetime import date

from domain import MonthlyRecord, TargetStatus
from exceptions import ReadFailure
from services import AttendanceCalculator, AttendanceEvents, YearlyReport


SEPT_2025 = date(2025, 9, 1)  # 30 days, starts on a Monday: 22 weekdays


def sept_weekdays():
    return [d for d in range(1, 31) if date(2025, 9, d).weekday() < 5]


def iso(day: int, month: int = 9, year: int = 2025) -> str:
    return date(year, month, day).isoformat()


class FakeRepo:
    def __init__(self, records=None):
        self.records = list(records or [])
        self.fail = False
        self.calls = 0

    def get_all(self):
        self.calls += 1
        if self.fail:
            raise ReadFailure("boom")
        return list(self.records)


def test_monthly_stats_ten_working_two_holidays():
    days = sept_weekdays()
    working = {iso(d) for d in days[:10]}
    holidays = {iso(d) for d in days[10:12]}

    stats = AttendanceCalculator().monthly_stats(SEPT_2025, working, holidays)

    assert stats.total_working_days == 22
    assert stats.holiday_count == 2
    assert stats.required_working_days == 12
    assert stats.current_attendance == 10
    assert stats.attendance_percentage == 50
    assert stats.remaining_days == 2


def test_monthly_stats_june_2025_uses_real_calendar():
    june_weekdays = [d for d in range(1, 31) if date(2025, 6, d).weekday() < 5]
    working = {iso(d, 6) for d in june_weekdays[:10]}
    holidays = {iso(d, 6) for d in june_weekdays[10:12]}

    stats = AttendanceCalculator().monthly_stats(date(2025, 6, 15), working, holidays)

    assert stats.total_working_days == 21
    assert stats.required_working_days == 12  # ceil(19 * 0.6)
    assert stats.attendance_percentage == 53  # 10 / 19


def test_empty_month_has_zero_percent_and_full_remaining():
    stats = AttendanceCalculator().monthly_stats(SEPT_2025, set(), set())

    assert stats.attendance_percentage == 0
    assert stats.current_attendance == 0
    assert stats.remaining_days == stats.required_working_days == 14


def test_weekend_marks_are_ignored():
    calc = AttendanceCalculator()
    weekend = {iso(6), iso(7), iso(13)}
    base = calc.monthly_stats(SEPT_2025, {iso(1)}, {iso(2)})

    marked = calc.monthly_stats(SEPT_2025, {iso(1)} | weekend, {iso(2)} | weekend)

    assert marked == base


def test_dates_from_other_months_are_ignored():
    calc = AttendanceCalculator()
    stats = calc.monthly_stats(SEPT_2025, {iso(1), "2025-08-29", "2025-10-01"}, {"2025-08-28"})

    assert stats.current_attendance == 1
    assert stats.holiday_count == 0


def test_all_weekdays_holidays_gives_zero_without_division_error():
    days = sept_weekdays()
    stats = AttendanceCalculator().monthly_stats(SEPT_2025, set(), {iso(d) for d in days})

    assert stats.holiday_count == 22
    assert stats.attendance_percentage == 0
    assert stats.required_working_days == 0
    assert stats.remaining_days == 0


def test_required_days_ceiling_is_exact():
    days = sept_weekdays()
    # 5 days available: 5 * 60% is exactly 3
    stats = AttendanceCalculator().monthly_stats(SEPT_2025, set(), {iso(d) for d in days[:17]})

    assert stats.required_working_days == 3


def test_percentage_rounds_half_up():
    days = sept_weekdays()
    # 8 days available, 1 worked -> 12.5%
    stats = AttendanceCalculator().monthly_stats(SEPT_2025, {iso(days[14])}, {iso(d) for d in days[:14]})

    assert stats.attendance_percentage == 13


def test_percentage_stays_in_range_for_full_attendance():
    days = sept_weekdays()
    stats = AttendanceCalculator().monthly_stats(SEPT_2025, {iso(d) for d in days}, set())

    assert stats.attendance_percentage == 100
    assert stats.remaining_days == 0


def test_custom_target_percent():
    days = sept_weekdays()
    calc = AttendanceCalculator(target_percent=50)
    stats = calc.monthly_stats(SEPT_2025, {iso(d) for d in days[:10]}, set())

    assert stats.required_working_days == 11


def test_yearly_summary_has_twelve_slots_with_no_records():
    summary = AttendanceCalculator().yearly_summary(2025, [])

    assert [s.month for s in summary.slots] == [f"2025-{m:02d}" for m in range(1, 13)]
    assert summary.average_attendance == 0
    assert summary.months_above_target == 0
    assert all(s.status is TargetStatus.NO_DATA for s in summary.slots)


def test_yearly_summary_counts_missing_months_as_zero():
    records = [
        MonthlyRecord("2025-03", {"2025-03-03"}, set(), 90),
        MonthlyRecord("2025-01", {"2025-01-02"}, {"2025-01-01"}, 60),
        MonthlyRecord("2025-07", {"2025-07-01"}, set(), 40),
    ]

    summary = AttendanceCalculator().yearly_summary(2025, records)

    assert summary.average_attendance == 16  # 190 / 12 = 15.83
    assert summary.months_above_target == 2
    assert summary.slots[0].status is TargetStatus.MET
    assert summary.slots[2].record.attendance_percentage == 90
    assert summary.slots[6].status is TargetStatus.NOT_MET
    assert summary.slots[1].status is TargetStatus.NO_DATA


def test_month_with_only_holidays_has_no_data_status():
    record = MonthlyRecord("2025-05", set(), {"2025-05-01"}, 0)

    assert AttendanceCalculator().month_status(record) is TargetStatus.NO_DATA


def test_events_notify_and_unsubscribe():
    events = AttendanceEvents()
    seen = []
    unsubscribe = events.subscribe(lambda: seen.append("a"))
    events.subscribe(lambda: seen.append("b"))

    events.notify()
    unsubscribe()
    unsubscribe()
    events.notify()

    assert seen == ["a", "b", "b"]


def test_yearly_report_reloads_on_update():
    repo = FakeRepo()
    events = AttendanceEvents()
    report = YearlyReport(repo, AttendanceCalculator(), events, year=2025)
    assert report.summary.average_attendance == 0

    repo.records = [
        MonthlyRecord("2025-02", {"2025-02-03"}, set(), 72),
        MonthlyRecord("2024-02", {"2024-02-05"}, set(), 100),
    ]
    events.notify()

    assert report.summary.average_attendance == 6
    assert report.summary.months_above_target == 1


def test_yearly_report_select_year_and_close():
    repo = FakeRepo([MonthlyRecord("2024-02", {"2024-02-05"}, set(), 100)])
    events = AttendanceEvents()
    report = YearlyReport(repo, AttendanceCalculator(), events, year=2025)

    report.select_year(2024)
    assert report.summary.year == 2024
    assert report.summary.months_above_target == 1

    report.close()
    calls = repo.calls
    events.notify()
    assert repo.calls == calls


def test_yearly_report_keeps_previous_summary_on_read_failure():
    repo = FakeRepo([MonthlyRecord("2025-02", {"2025-02-03"}, set(), 72)])
    report = YearlyReport(repo, AttendanceCalculator(), AttendanceEvents(), year=2025)
    before = report.summary

    repo.fail = True
    assert report.reload() is before


def test_available_years_run_to_latest_stored_year():
    repo = FakeRepo([
        MonthlyRecord("2024-02", {"2024-02-05"}, set(), 100),
        MonthlyRecord("2027-01", {"2027-01-04"}, set(), 10),
    ])
    report = YearlyReport(repo, AttendanceCalculator(), AttendanceEvents(), year=2025)

    assert report.available_years(2025) == [2024, 2025, 2026, 2027]


def test_available_years_without_records_end_at_current_year():
    report = YearlyReport(FakeRepo(), AttendanceCalculator(), AttendanceEvents(), year=2026)

    assert report.available_years(2026) == [2024, 2025, 2026]
