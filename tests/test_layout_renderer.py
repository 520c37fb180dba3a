from datetime import date

from helpers import inst
from layout_engine import LayoutOptions, build_week_view
from layout_renderer import color_for_column, record_box, render_week
from models import LayoutRecord, LayoutStrategy


def test_percentage_record_is_placed_inside_day_column():
    rec = LayoutRecord(instance=inst("a", "09:00", "10:00"), top=200, height=50, column=1,
                       total_columns=2, active_columns=2, width=50, left=50)
    assert record_box(rec, col_x=100, col_w=160, grid_top=40) == (180, 240, 260, 290)


def test_pixel_record_uses_raw_offsets():
    rec = LayoutRecord(instance=inst("a", "09:00", "10:00"), top=0, height=30, column=1,
                       total_columns=2, active_columns=2, width=80, left=80, unit="px")
    assert record_box(rec, col_x=10, col_w=160, grid_top=0, scale=2.0) == (90, 0, 170, 60)


def test_column_colors_cycle():
    assert color_for_column(0) == color_for_column(7)
    assert color_for_column(0) != color_for_column(1)


def test_render_week_image_size():
    events = [inst("a", "09:00", "10:00"), inst("b", "09:30", "11:00")]
    for strategy in LayoutStrategy:
        week = build_week_view(events, date(2025, 9, 7), LayoutOptions(strategy=strategy),
                               today=date(2025, 9, 8))
        img = render_week(week, {"gutter_width": 50, "day_width": 100, "header_height": 40,
                                 "slot_height": 20, "px_per_minute": 50 / 60})
        assert img.size == (50 + 7 * 100, 40 + 24 * 20)
