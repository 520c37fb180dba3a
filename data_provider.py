# data_provider.py
"""
Fetches and normalizes calendar events.

Raw records come from the calendar API (or a JSON file) with several aliased
spellings for the same field. They are normalized into CalendarEvent objects,
recurring masters are expanded, and the result is deduplicated and sorted.

Run as a script for quick debugging:
  python data_provider.py [events.json]
"""
import json
import logging
import time
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import requests

import calendar_config as cfg
from models import DEFAULT_DURATION, CalendarEvent, EventInstance, to_epoch_ms
from recurrence import expand_recurring_event

log = logging.getLogger(__name__)

START_KEYS = ("startDateTime", "StartDateTime", "start", "Start", "start__c")
END_KEYS = ("endDateTime", "EndDateTime", "end", "End", "end__c")
TITLE_KEYS = ("title", "Subject", "Name")

DATE_ONLY_START = (9, 0)
DATE_ONLY_END = (9, 30)


class CalendarFetchError(Exception):
    """The calendar API could not be reached or answered with an error."""


# --------------------------------------------------------------------
# Date parsing
# --------------------------------------------------------------------
def _to_local_naive(dt: datetime) -> datetime:
    """Aware datetimes are converted to the configured zone and made naive."""
    if dt.tzinfo is None:
        return dt
    if cfg.TZ:
        return dt.astimezone(cfg.TZ).replace(tzinfo=None)
    return dt.astimezone().replace(tzinfo=None)


def parse_date_value(value: Any) -> Optional[datetime]:
    """
    Parse one raw date value into a naive local datetime.
    Accepts datetime, date, epoch milliseconds, and ISO-8601 strings
    (a trailing 'Z' or an offset means the value is converted to local time).
    Returns None when the value cannot be parsed.
    """
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return _to_local_naive(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, (int, float)):
        try:
            return _to_local_naive(datetime.fromtimestamp(value / 1000.0, tz=timezone.utc))
        except (OverflowError, OSError, ValueError):
            return None
    s = str(value).strip()
    if not s:
        return None
    try:
        return _to_local_naive(datetime.fromisoformat(s.replace("Z", "+00:00")))
    except ValueError:
        pass
    try:
        return datetime.strptime(s[:19], "%Y-%m-%dT%H:%M:%S")
    except ValueError:
        return None


def read_date(raw: Dict[str, Any], keys: Iterable[str]):
    """Return (parsed, raw_value) for the first present, parseable key, else (None, None)."""
    for k in keys:
        v = raw.get(k) if raw else None
        if v:
            parsed = parse_date_value(v)
            if parsed is not None:
                return parsed, v
    return None, None


def _is_date_only(value: Any) -> bool:
    if isinstance(value, date) and not isinstance(value, datetime):
        return True
    return isinstance(value, str) and "T" not in value and " " not in value.strip()


# --------------------------------------------------------------------
# Normalization
# --------------------------------------------------------------------
def normalize_event(raw: Dict[str, Any]) -> CalendarEvent:
    raw = raw or {}
    start, start_raw = read_date(raw, START_KEYS)
    end, _ = read_date(raw, END_KEYS)

    # date-only values land at 09:00-09:30 so they show up on the hour grid
    if start is not None and _is_date_only(start_raw):
        start = start.replace(hour=DATE_ONLY_START[0], minute=DATE_ONLY_START[1],
                              second=0, microsecond=0)
        end = start.replace(hour=DATE_ONLY_END[0], minute=DATE_ONLY_END[1])
    if end is None and start is not None:
        end = start + DEFAULT_DURATION

    title = next((str(raw[k]) for k in TITLE_KEYS if raw.get(k)), "Untitled")
    ident = raw.get("id") or raw.get("Id")
    activity_id = raw.get("recurrenceActivityId") or ""
    enhanced = bool(raw.get("isRecurringEnhanced"))
    classic = bool(raw.get("isRecurringClassic"))

    return CalendarEvent(
        id=str(ident) if ident else None,
        title=title,
        start=start,
        end=end,
        is_recurring=bool(enhanced or classic or raw.get("isRecurring") or activity_id),
        is_recurring_enhanced=enhanced,
        is_recurring_classic=classic,
        recurrence_activity_id=str(activity_id),
        recurrence_pattern=str(raw.get("recurrencePatternText") or ""),
        location=str(raw.get("location") or ""),
        type=str(raw.get("type") or ""),
        description=str(raw.get("description") or ""),
        raw=dict(raw),
    )


def should_expand(event: CalendarEvent) -> bool:
    """Masters only: rows that already are generated instances pass through."""
    if event.recurrence_activity_id:
        return False
    return event.is_recurring or bool(event.recurrence_pattern.strip())


def dedupe_key(inst: EventInstance):
    return (inst.title, to_epoch_ms(inst.start), to_epoch_ms(inst.end))


def sequence(instances: Iterable[EventInstance]) -> List[EventInstance]:
    """Drop later duplicates of (title, start, end), then sort by start; no start sorts last."""
    seen = set()
    unique = []
    for inst in instances:
        k = dedupe_key(inst)
        if k in seen:
            log.debug("[sequence] duplicate removed: %r at %s", inst.title, inst.start)
            continue
        seen.add(k)
        unique.append(inst)
    unique.sort(key=lambda i: (i.start is None, i.start or datetime.min))
    return unique


def build_instances(raw_records: Iterable[Dict[str, Any]], now: Optional[datetime] = None) -> List[EventInstance]:
    """Normalize, expand recurring masters, dedupe and sort."""
    now = now or datetime.now()
    out = []
    masters = singles = skipped = 0
    for raw in raw_records or []:
        if not isinstance(raw, dict):
            skipped += 1
            log.debug("[build_instances] skipping non-object record: %r", raw)
            continue
        ev = normalize_event(raw)
        if should_expand(ev):
            masters += 1
            out.extend(expand_recurring_event(ev, now=now))
        else:
            singles += 1
            out.append(ev.as_instance())
    result = sequence(out)
    log.info("[build_instances] %d masters, %d singles, %d skipped -> %d instances",
             masters, singles, skipped, len(result))
    return result


# --------------------------------------------------------------------
# Sources
# --------------------------------------------------------------------
class CalendarSource:
    """
    Calendar API client.
      GET {base}/calendars                 -> {"<id>": "<name>", ...}
      GET {base}/calendars/{id}/events     -> [ {raw event}, ... ]
    """

    def __init__(self, base_url: str = None, api_key: str = None, session=None, timeout: int = 10):
        self.base_url = (base_url if base_url is not None else cfg.CALENDAR_API_BASE).rstrip("/")
        self.api_key = api_key if api_key is not None else cfg.CALENDAR_API_KEY
        self.session = session or requests.Session()
        self.timeout = timeout

    def _get(self, path: str):
        if not self.base_url:
            raise CalendarFetchError("No calendar API configured. Set CALENDAR_API_BASE.")
        url = f"{self.base_url}{path}"
        params = {"key": self.api_key} if self.api_key else {}
        headers = {"Accept": "application/json", "User-Agent": "WeekCalendar/1.0"}
        try:
            r = self.session.get(url, params=params, headers=headers, timeout=self.timeout)
            r.raise_for_status()
            return r.json()
        except requests.RequestException as ex:
            raise CalendarFetchError(f"Request to {url} failed: {ex}") from ex
        except ValueError as ex:
            raise CalendarFetchError(f"Invalid JSON from {url}: {ex}") from ex

    def list_calendars(self) -> Dict[str, str]:
        data = self._get("/calendars")
        if isinstance(data, dict):
            return {str(k): str(v) for k, v in data.items()}
        if isinstance(data, list):
            return {str(c.get("id")): str(c.get("name", c.get("id"))) for c in data if isinstance(c, dict)}
        return {}

    def fetch_events(self, calendar_id: str) -> List[Dict[str, Any]]:
        data = self._get(f"/calendars/{calendar_id}/events")
        return data if isinstance(data, list) else []


class JsonFileSource:
    """Reads raw events from a JSON file: either a list or {"calendar-id": [events]}."""

    def __init__(self, path):
        self.path = Path(path)

    def _load(self):
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as ex:
            raise CalendarFetchError(f"Cannot read {self.path}: {ex}") from ex

    def list_calendars(self) -> Dict[str, str]:
        data = self._load()
        if isinstance(data, dict):
            return {k: k for k in data}
        return {self.path.stem: self.path.stem}

    def fetch_events(self, calendar_id: str) -> List[Dict[str, Any]]:
        data = self._load()
        if isinstance(data, dict):
            events = data.get(calendar_id, [])
        else:
            events = data
        return events if isinstance(events, list) else []


# --------------------------------------------------------------------
# Cache
# --------------------------------------------------------------------
class EventCache:
    """Read-through cache of processed instances, one calendar at a time."""

    def __init__(self, ttl_seconds: int = None, clock=time.time):
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else cfg.CACHE_TTL_SECONDS
        self.clock = clock
        self.clear()

    def clear(self):
        self.events = []
        self.timestamp = None
        self.calendar_id = None

    def put(self, calendar_id: str, events: List[EventInstance]):
        self.events = list(events)
        self.timestamp = self.clock()
        self.calendar_id = calendar_id

    def is_valid(self, calendar_id: str) -> bool:
        return (self.timestamp is not None
                and self.calendar_id == calendar_id
                and (self.clock() - self.timestamp) < self.ttl_seconds
                and len(self.events) > 0)

    def get(self, calendar_id: str) -> Optional[List[EventInstance]]:
        if not self.is_valid(calendar_id):
            return None
        return list(self.events)

    def age(self) -> float:
        return (self.clock() - self.timestamp) if self.timestamp is not None else 0.0


if __name__ == "__main__":
    import sys
    logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(levelname)s: %(message)s")
    if len(sys.argv) > 1:
        src = JsonFileSource(sys.argv[1])
    else:
        src = CalendarSource()
    cal_id = cfg.CALENDAR_ID or next(iter(src.list_calendars()), "")
    instances = build_instances(src.fetch_events(cal_id))
    print("Instances:", len(instances))
    for inst in instances[:40]:
        print("----")
        print("key:", inst.key)
        print("title:", inst.title)
        print("start:", inst.start)
        print("end:", inst.effective_end)
        print("recurring:", inst.is_recurring)
