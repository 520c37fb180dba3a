import io
import logging
from datetime import datetime

from flask import Flask, abort, jsonify, request, send_file

import calendar_config as cfg
from calendar_view import MONTH, WEEK, CalendarView
from data_provider import CalendarSource
from layout_engine import LayoutDiagnostics, LayoutOptions
from layout_renderer import render_week
from main import month_as_json, opts, week_as_json

log = logging.getLogger("server")


def create_app(source=None, view: CalendarView = None):
    app = Flask(__name__)
    app.config["CALENDAR_VIEW"] = view or CalendarView(
        source or CalendarSource(),
        calendar_id=cfg.CALENDAR_ID,
        options=LayoutOptions.from_config(),
        diagnostics=LayoutDiagnostics(debug=cfg.LAYOUT_DEBUG),
    )

    def current_view() -> CalendarView:
        v = app.config["CALENDAR_VIEW"]
        calendar_id = request.args.get("calendar")
        if calendar_id and calendar_id != v.calendar_id:
            v.handle_calendar_change(calendar_id)
        elif (v.loading or v.error) and not v.is_fetching:
            # first request, or retry after a failed fetch
            v.load_calendar_data()
        day = request.args.get("date")
        if day:
            try:
                v.go_to(datetime.strptime(day, "%Y-%m-%d").date())
            except ValueError:
                abort(400, "date must be YYYY-MM-DD")
        return v

    @app.get("/")
    def home():
        return "WeekCalendar Server OK - GET /image for PNG, /api/week and /api/month for layout"

    @app.get("/api/week")
    def api_week():
        v = current_view()
        if v.error:
            return jsonify({"error": v.error_message}), 502
        if v.view_mode != WEEK:
            v.set_view_mode(WEEK)
        return jsonify(week_as_json(v))

    @app.get("/api/month")
    def api_month():
        v = current_view()
        if v.error:
            return jsonify({"error": v.error_message}), 502
        if v.view_mode != MONTH:
            v.set_view_mode(MONTH)
        return jsonify(month_as_json(v))

    @app.get("/image")
    def image():
        v = current_view()
        if v.error:
            abort(502, v.error_message)
        if v.view_mode != WEEK:
            v.set_view_mode(WEEK)
        render_opts = dict(opts)
        render_opts["day_width"] = v.options.day_width_px
        render_opts["slot_height"] = cfg.SLOT_HEIGHT_PX
        render_opts["px_per_minute"] = v.options.px_per_minute
        img = render_week(v.week_days, render_opts, title=v.current_date_range)
        buf = io.BytesIO()
        img.save(buf, "PNG")
        buf.seek(0)
        return send_file(buf, mimetype="image/png")

    # Drop cached events and fetch again
    @app.post("/refresh")
    def refresh():
        v = app.config["CALENDAR_VIEW"]
        log.info("Refresh requested for %s", v.calendar_id)
        v.close()
        v.load_calendar_data()
        if v.error:
            return jsonify({"status": "error", "error": v.error_message}), 502
        return jsonify({"status": "ok", "events": len(v.events)}), 200

    return app


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s: %(message)s")
    create_app().run(host="0.0.0.0", port=cfg.SERVER_PORT)
