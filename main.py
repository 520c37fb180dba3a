"""
Orchestrator: fetches events, lays out one week (or month) and writes an
image and/or the layout as JSON.
Usage: python main.py --week-of 2025-09-07 --out week.png
       python main.py --input events.json --json layout.json
Requires: pip install pillow requests python-dotenv
"""

import argparse
import json
import logging
import sys
from datetime import datetime

import calendar_config as cfg
from calendar_view import MONTH, WEEK, CalendarView
from data_provider import CalendarSource, JsonFileSource
from layout_engine import LayoutDiagnostics, LayoutOptions
from layout_renderer import render_week
from models import LayoutStrategy

log = logging.getLogger("main")

# --- renderer options ---
opts = {
    "gutter_width": 56,
    "header_height": 44,
    "event_padding": 3,
    "font_size": 12,
    "font_bold_size": 13,
    "background": "white",
    "grid_color": (220, 220, 220),
    "text_color": "black",
    "today_fill": (255, 243, 205),
}


def save_image(img, out_path="week.png"):
    """JPEG gets full quality without chroma subsampling; anything else is saved as-is."""
    if out_path.lower().endswith((".jpg", ".jpeg")):
        img.convert("RGB").save(out_path, "JPEG", quality=100, subsampling=0)
    else:
        img.save(out_path)
    log.info("Saved image: %s", out_path)
    return out_path


def week_as_json(view: CalendarView):
    return {
        "calendar_id": view.calendar_id,
        "range": view.current_date_range,
        "days": [
            {
                "date": d["date_str"],
                "day_name": d["day_name"],
                "is_today": d["is_today"],
                "total_events": d["total_events"],
                "records": [r.as_dict() for r in d["records"]],
            }
            for d in view.week_days
        ],
    }


def month_as_json(view: CalendarView):
    return {
        "calendar_id": view.calendar_id,
        "range": view.current_date_range,
        "weeks": [
            {
                "week_number": w["week_number"],
                "days": [
                    {
                        "date": c["date_str"],
                        "is_current_month": c["is_current_month"],
                        "is_today": c["is_today"],
                        "events": [{"key": e.key, "title": e.title,
                                    "start": e.start.isoformat() if e.start else None}
                                   for e in c["events"]],
                    }
                    for c in w["days"]
                ],
            }
            for w in view.month_weeks
        ],
    }


def build_view(args) -> CalendarView:
    source = JsonFileSource(args.input) if args.input else CalendarSource()
    options = LayoutOptions.from_config()
    if args.strategy:
        options.strategy = LayoutStrategy.from_name(args.strategy)
    if args.no_dynamic_fill:
        options.enable_dynamic_fill = False
    diagnostics = LayoutDiagnostics(debug=args.debug or cfg.LAYOUT_DEBUG)
    view = CalendarView(source, calendar_id=args.calendar or cfg.CALENDAR_ID,
                        options=options, diagnostics=diagnostics, view_mode=args.view)
    return view


def main(argv=None):
    parser = argparse.ArgumentParser(description="Lay out and render a calendar week")
    parser.add_argument("--calendar", type=str, default="", help="Calendar id (default: CALENDAR_ID or first)")
    parser.add_argument("--input", type=str, default="", help="Read raw events from a JSON file instead of the API")
    parser.add_argument("--week-of", type=str, default="", help="Any date in the week to show (YYYY-MM-DD)")
    parser.add_argument("--view", choices=[WEEK, MONTH], default=WEEK)
    parser.add_argument("--strategy", choices=["fixed", "dynamic"], default="", help="Column layout strategy")
    parser.add_argument("--no-dynamic-fill", action="store_true", help="Plain fixed-width columns in dynamic mode")
    parser.add_argument("--out", type=str, default="week.png", help="Output image path (week view)")
    parser.add_argument("--json", type=str, default="", help="Also write the layout as JSON")
    parser.add_argument("--debug", action="store_true", help="Log cluster and record details")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.debug else logging.INFO,
                        format="%(asctime)s %(levelname)s: %(message)s")

    view = build_view(args)
    view.load_calendar_data()
    if not view.error and args.week_of:
        view.go_to(datetime.strptime(args.week_of, "%Y-%m-%d").date())
    if view.error:
        log.error("Data fetch failed: %s", view.error_message)
        return 1

    if args.json:
        payload = week_as_json(view) if view.view_mode == WEEK else month_as_json(view)
        with open(args.json, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2)
        log.info("Saved layout: %s", args.json)

    if view.view_mode == WEEK:
        render_opts = dict(opts)
        render_opts["day_width"] = view.options.day_width_px
        render_opts["slot_height"] = cfg.SLOT_HEIGHT_PX
        render_opts["px_per_minute"] = view.options.px_per_minute
        img = render_week(view.week_days, render_opts, title=view.current_date_range)
        save_image(img, out_path=args.out)

    stats = view.diagnostics.last if view.diagnostics else None
    if stats:
        log.info("Last layout: %.1fms, %d events in %d clusters", stats.layout_ms,
                 stats.total_events, stats.total_clusters)
    return 0


if __name__ == "__main__":
    sys.exit(main())
