import logging
from datetime import date, datetime

import pytest

from data_provider import build_instances
from helpers import inst
from layout_engine import (LayoutDiagnostics, LayoutOptions, build_month_view, build_time_slots,
                           build_week_view, format_hour_label, layout_day, prepare_day,
                           week_start_for)
from models import EventInstance, LayoutStrategy


def busy_day():
    return [
        inst("a", "09:00", "10:00"), inst("b", "09:30", "09:45"), inst("c", "09:50", "10:30"),
        inst("solo", "13:00", "14:00"),
    ]


def test_layout_is_deterministic():
    first = layout_day(busy_day())
    second = layout_day(busy_day())
    assert [r.as_dict() for r in first] == [r.as_dict() for r in second]


def raw_week():
    return [
        {"id": "m", "title": "Standup", "start": "2025-09-01T09:00:00", "end": "2025-09-01T09:30:00",
         "recurrencePatternText": "FREQ=DAILY;COUNT=10"},
        {"id": "1", "title": "Planning", "start": "2025-09-09T09:00:00", "end": "2025-09-09T10:30:00"},
        {"id": "2", "title": "Review", "start": "2025-09-09T09:15:00", "end": "2025-09-09T09:45:00"},
        {"title": "Lunch", "start": "2025-09-10T12:00:00"},
        {"id": "1", "title": "Planning", "start": "2025-09-09T09:00:00", "end": "2025-09-09T10:30:00"},
    ]


def test_full_pipeline_is_idempotent():
    now = datetime(2025, 9, 1)
    runs = []
    for _ in range(2):
        instances = build_instances(raw_week(), now=now)
        week = build_week_view(instances, date(2025, 9, 7), today=date(2025, 9, 8))
        runs.append([[r.as_dict() for r in d["records"]] for d in week])
    assert runs[0] == runs[1]

    tuesday_keys = [r["key"] for r in runs[0][2]]
    assert tuesday_keys == ["m-instance-8", "1", "2"]
    assert [r["key"] for r in runs[0][3]] == ["m-instance-9", "20250910-1"]


def test_singleton_takes_full_width():
    rec = next(r for r in layout_day(busy_day()) if r.key == "solo")
    assert (rec.width, rec.left, rec.unit) == (100, 0, "%")
    assert rec.total_columns == 1
    assert not rec.is_dynamic


def test_dynamic_fill_records_carry_cluster_data():
    records = {r.key: r for r in layout_day(busy_day())}
    assert records["a"].cluster_id == records["b"].cluster_id == records["c"].cluster_id
    assert records["solo"].cluster_id != records["a"].cluster_id
    assert records["a"].total_columns == 2
    assert records["a"].is_dynamic
    assert records["a"].width == pytest.approx(75)
    assert records["b"].css_left == "50.0%"


def test_plain_columns_when_dynamic_fill_is_off():
    records = {r.key: r for r in layout_day(busy_day(), LayoutOptions(enable_dynamic_fill=False))}
    assert records["a"].width == records["c"].width == pytest.approx(49)
    assert not records["a"].is_dynamic


def test_fixed_strategy_uses_pixel_columns():
    options = LayoutOptions(strategy=LayoutStrategy.FIXED, day_width_px=160)
    records = {r.key: r for r in layout_day(busy_day(), options)}
    assert records["a"].unit == "px"
    assert records["a"].total_columns == 3
    # a overlaps both b and c, which sit in two other columns
    assert (records["a"].width, records["a"].left) == (53, 0)
    assert records["solo"].css_width == "160.0px"


def test_strategy_names(caplog):
    assert LayoutStrategy.from_name("legacy") is LayoutStrategy.FIXED
    assert LayoutStrategy.from_name("") is LayoutStrategy.DYNAMIC_FILL
    assert LayoutStrategy.from_name("Dynamic") is LayoutStrategy.DYNAMIC_FILL
    assert not caplog.records


def test_unknown_strategy_name_warns(caplog):
    with caplog.at_level(logging.WARNING, logger="models"):
        assert LayoutStrategy.from_name("fixd") is LayoutStrategy.DYNAMIC_FILL
    assert "fixd" in caplog.text


def test_diagnostics_collect_stats():
    diagnostics = LayoutDiagnostics(debug=True)
    layout_day(busy_day(), diagnostics=diagnostics)
    stats = diagnostics.last
    assert stats.total_events == 4
    assert stats.total_clusters == 2
    assert stats.average_cluster_size == 2.0
    assert stats.dynamic_events_count == 3


def test_empty_day_lays_out_nothing():
    diagnostics = LayoutDiagnostics()
    assert layout_day([], diagnostics=diagnostics) == []
    assert diagnostics.last is None


def test_prepare_day_collapses_title_and_start():
    a = inst("a", "09:00", "10:00", title="Sync")
    b = inst("b", "09:00", "09:30", title="Sync")
    keyless = EventInstance(key=None, title="Lunch", start=datetime(2025, 9, 8, 12), end=None)
    out = prepare_day([a, b, keyless], date(2025, 9, 8))
    assert [i.key for i in out] == ["a", "20250908-2"]


def test_week_starts_on_sunday():
    assert week_start_for(date(2025, 9, 10)) == date(2025, 9, 7)
    assert week_start_for(date(2025, 9, 7)) == date(2025, 9, 7)


def test_time_slots_run_from_five_am():
    slots = build_time_slots()
    assert len(slots) == 24
    assert slots[0] == {"hour": 5, "label": "5 AM"}
    assert slots[-1]["label"] == "4 AM"
    assert format_hour_label(0) == "12 AM" and format_hour_label(12) == "12 PM"


def test_week_view_buckets_by_day():
    events = busy_day() + [inst("tue", "08:00", "09:00", day=9)]
    week = build_week_view(events, date(2025, 9, 7), today=date(2025, 9, 8), current_month=9)
    assert [d["day_name_short"] for d in week] == ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
    assert [d["total_events"] for d in week] == [0, 4, 1, 0, 0, 0, 0]
    assert week[1]["is_today"] and not week[2]["is_today"]
    assert len(week[0]["hour_slots"]) == 24


def test_month_view_is_six_full_weeks():
    weeks = build_month_view(busy_day(), 2025, 9, today=date(2025, 9, 8))
    assert len(weeks) == 6 and all(len(w["days"]) == 7 for w in weeks)
    cells = [c for w in weeks for c in w["days"]]
    assert cells[0]["date"] == date(2025, 8, 31)
    assert not cells[0]["is_current_month"]
    sept_8 = next(c for c in cells if c["date"] == date(2025, 9, 8))
    assert sept_8["has_events"] and len(sept_8["events"]) == 4 and sept_8["is_today"]
