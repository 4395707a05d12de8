from datetime import date, datetime, timezone

from kidschedule.models import Family, Parent, Schedule, ScheduleBlock, ScheduleChangeRequest
from kidschedule.custody import two_two_three
from kidschedule.calendar_logic import CalendarMonthEngine
from kidschedule.charts import create_custody_chart
from kidschedule.statistics import count_custody_days, custody_percentages, summarize_month

A = Parent("pa", "Anna")
B = Parent("pb", "Ben")


def make_family(blocks):
    return Family("fam-1", (A, B), date(2024, 1, 1), Schedule(blocks=tuple(blocks)))


def test_summarize_month_two_two_three():
    requests = [ScheduleChangeRequest("r1", "fam-1", "pa", "Swap", date(2024, 1, 20), date(2024, 1, 22))]
    data = CalendarMonthEngine(make_family(two_two_three())).get_month_data(
        2024, 1, [], requests, datetime(2024, 1, 1, tzinfo=timezone.utc))
    summary = summarize_month(data)
    assert summary['days'] == 31
    # Übergaben am 1., 3., 5., 8., 10., 12., 15., 17., 19., 22., 24., 26., 29., 31.
    assert summary['split'] == 14
    assert summary['primary'] + summary['secondary'] + summary['split'] == 31
    assert summary['pending_days'] == 3
    assert summary['event_entries'] == 0


def test_count_custody_days():
    data = CalendarMonthEngine(make_family([ScheduleBlock(0, 3), ScheduleBlock(1, 4)])).get_month_data(
        2024, 2, [], [], datetime(2024, 2, 1, tzinfo=timezone.utc))
    counts = count_custody_days(data)
    assert sum(counts.values()) == 29
    # 29 Tage = 4 volle Zyklen + 1 Tag bei B
    assert counts == {"pa": 12, "pb": 17}


def test_custody_percentages():
    assert custody_percentages(make_family([ScheduleBlock(0, 3), ScheduleBlock(1, 4)])) == {"pa": 42.86, "pb": 57.14}


def test_create_custody_chart(tmp_path):
    fn = tmp_path / "custody.png"
    create_custody_chart([50, 50], ["Anna", "Ben"], str(fn), subtitle="2-2-3")
    assert fn.exists() and fn.stat().st_size > 0


def test_create_custody_chart_without_data(tmp_path):
    fn = tmp_path / "empty.png"
    create_custody_chart([0, 0], ["Anna", "Ben"], str(fn))
    assert fn.exists()
