from datetime import datetime

import pytest

from columns import assign_columns_interval_partitioning
from geometry import (build_time_segments, dynamic_fill_geometry, fixed_percentage_geometry,
                      fixed_pixel_geometry, minutes_since_day_start, segment_widths, to_pixels)
from helpers import at, inst
from models import EventInstance

PPM = 50 / 60


def test_day_axis_starts_at_five_and_wraps():
    assert minutes_since_day_start(datetime(2025, 9, 8, 5, 0)) == 0
    assert minutes_since_day_start(datetime(2025, 9, 8, 14, 0)) == 540
    assert minutes_since_day_start(datetime(2025, 9, 9, 4, 30)) == 1410


def test_short_event_is_clamped_to_min_height():
    top, height = to_pixels(EventInstance(key="d", title="d", start=at(8, "14:00"), end=None), PPM, 30)
    assert top == pytest.approx(450)
    assert height == 30


def test_height_follows_duration():
    top, height = to_pixels(inst("a", "09:00", "11:00"), PPM, 30)
    assert top == pytest.approx(200)
    assert height == pytest.approx(100)


def test_negative_duration_still_gets_min_height():
    _, height = to_pixels(inst("bad", "11:00", "10:00"), PPM, 30)
    assert height == 30


def test_event_past_midnight_keeps_positive_height():
    e = EventInstance(key="late", title="late", start=at(8, "23:00"), end=at(9, "01:00"))
    top, height = to_pixels(e, PPM, 30)
    assert top == pytest.approx(1080 * PPM)
    assert height == pytest.approx(100)


def scenario_c_layout():
    members = [inst("a", "09:00", "10:00"), inst("b", "09:30", "09:45"), inst("c", "09:50", "10:30")]
    assignment = assign_columns_interval_partitioning(members)
    return assignment, build_time_segments(assignment.members, assignment.columns)


def test_segments_tag_active_columns():
    _, segments = scenario_c_layout()
    assert [s.active_columns for s in segments] == [(0,), (0, 1), (0,), (0, 1), (1,)]
    for seg in segments:
        assert sum(w for w, _ in segment_widths(seg).values()) == pytest.approx(100)


def test_segments_skip_gaps_with_nothing_active():
    members = [inst("a", "09:00", "10:00"), inst("b", "09:30", "10:00"), inst("c", "11:00", "12:00")]
    segments = build_time_segments(members, [0, 1, 0])
    assert all(s.k > 0 for s in segments)
    assert len(segments) == 3


def test_dynamic_fill_widens_into_free_space():
    assignment, segments = scenario_c_layout()
    geo = {i.key: dynamic_fill_geometry(i, col, segments, assignment.column_count)
           for i, col in zip(assignment.members, assignment.columns)}

    width, left, covered = geo["a"]
    assert (width, left, covered) == (pytest.approx(75), pytest.approx(0), 4)
    width, left, _ = geo["b"]
    assert (width, left) == (pytest.approx(50), pytest.approx(50))
    width, left, _ = geo["c"]
    assert (width, left) == (pytest.approx(75), pytest.approx(25))


def test_dynamic_fill_falls_back_to_fixed_columns():
    width, left, covered = dynamic_fill_geometry(inst("x", "09:00", "10:00"), 2, [], 4)
    assert (width, left, covered) == (25, 50, 0)


def test_fixed_percentage_columns_leave_gaps():
    width, left = fixed_percentage_geometry(1, 2, 4)
    assert width == pytest.approx(49)
    assert left == pytest.approx(51)
    assert fixed_percentage_geometry(0, 1, 4) == (100, 0)


def test_fixed_pixel_columns():
    assert fixed_pixel_geometry(0, 1, 160) == (160, 0)
    assert fixed_pixel_geometry(2, 3, 160) == (53, 106)
