from datetime import datetime

from models import EventInstance


def at(day, hhmm):
    h, m = (int(x) for x in hhmm.split(":"))
    return datetime(2025, 9, day, h, m)


def inst(key, start, end, day=8, title=None):
    return EventInstance(key=key, title=title or key, start=at(day, start), end=at(day, end))


class FakeSource:
    """In-memory stand-in for CalendarSource."""

    def __init__(self, events=None, calendars=None, error=None):
        self.events = events if events is not None else {}
        self.calendars = calendars if calendars is not None else {k: k.title() for k in self.events}
        self.error = error
        self.fetches = []

    def list_calendars(self):
        return self.calendars

    def fetch_events(self, calendar_id):
        self.fetches.append(calendar_id)
        if self.error:
            raise self.error
        return self.events.get(calendar_id, [])


def work_source():
    return FakeSource({
        "work": [
            {"id": "1", "title": "Planning", "start": "2025-09-02T10:00:00", "end": "2025-09-02T11:00:00"},
            {"id": "2", "title": "Review", "start": "2025-09-02T10:30:00", "end": "2025-09-02T11:30:00"},
        ],
        "home": [
            {"id": "3", "title": "Dentist", "start": "2025-10-15T08:00:00", "end": "2025-10-15T09:00:00"},
        ],
    })
