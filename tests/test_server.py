from datetime import datetime

from calendar_view import CalendarView
from data_provider import CalendarFetchError, EventCache
from helpers import FakeSource, work_source
from server import create_app


def client_for(source):
    view = CalendarView(source, calendar_id="work", clock=lambda: datetime(2025, 9, 1, 8, 0),
                        cache=EventCache(ttl_seconds=300, clock=lambda: 0.0))
    return create_app(view=view).test_client()


def test_week_endpoint_returns_layout():
    resp = client_for(work_source()).get("/api/week")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["calendar_id"] == "work"
    tuesday = body["days"][2]
    assert tuesday["date"] == "2025-09-02"
    assert [r["column"] for r in tuesday["records"]] == [0, 1]
    assert tuesday["records"][0]["width"].endswith("%")


def test_week_endpoint_accepts_a_date():
    body = client_for(work_source()).get("/api/week?date=2025-09-10").get_json()
    assert body["days"][0]["date"] == "2025-09-07"


def test_bad_date_is_rejected():
    assert client_for(work_source()).get("/api/week?date=tomorrow").status_code == 400


def test_month_endpoint():
    body = client_for(work_source()).get("/api/month").get_json()
    assert len(body["weeks"]) == 6
    assert body["range"] == "September 2025"


def test_image_endpoint_renders_png():
    resp = client_for(work_source()).get("/image")
    assert resp.status_code == 200
    assert resp.mimetype == "image/png"
    assert resp.data[:8] == b"\x89PNG\r\n\x1a\n"


def test_fetch_errors_surface_as_bad_gateway():
    source = FakeSource(calendars={"work": "Work"}, error=CalendarFetchError("down"))
    resp = client_for(source).get("/api/week")
    assert resp.status_code == 502
    assert resp.get_json() == {"error": "down"}


def test_refresh_refetches():
    source = work_source()
    client = client_for(source)
    client.get("/api/week")
    resp = client.post("/refresh")
    assert resp.get_json() == {"status": "ok", "events": 2}
    assert source.fetches == ["work", "work"]


def test_failed_fetch_is_retried_on_next_request():
    source = work_source()
    source.error = CalendarFetchError("down")
    client = client_for(source)
    assert client.get("/api/week").status_code == 502

    source.error = None
    resp = client.get("/api/week")
    assert resp.status_code == 200
    assert source.fetches == ["work", "work"]
