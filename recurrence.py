# recurrence.py
"""
Expands recurring master events into dated instances.

Only a DAILY subset of RRULE is expanded. WEEKLY and MONTHLY rules are
recognised but the master is shown once, unchanged.

Rules:
  - No start -> the event itself, as a single instance.
  - Recurring flags but no pattern -> DEFAULT_PATTERN (daily x30).
  - FREQ=DAILY -> up to MAX_INSTANCES steps of INTERVAL days, keeping the
    master's time of day on every step, filtered to the window
    [now - PAST_WINDOW, now + FUTURE_MONTHS months].
"""
import calendar
import logging
import re
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from models import DEFAULT_DURATION, CalendarEvent, EventInstance

log = logging.getLogger(__name__)

DEFAULT_PATTERN = "FREQ=DAILY;INTERVAL=1;COUNT=30"
DEFAULT_COUNT = 30
MAX_INSTANCES = 100
PAST_WINDOW = timedelta(days=180)
FUTURE_MONTHS = 6

_RRULE_PREFIX = re.compile(r"^RRULE\s*:?\s*", re.IGNORECASE)


def parse_rrule(pattern: Optional[str]) -> Dict[str, str]:
    """
    Split 'RRULE:FREQ=DAILY;INTERVAL=2' into {'FREQ': 'DAILY', 'INTERVAL': '2'}.
    Keys are upper-cased; parts without '=' are ignored.
    """
    cleaned = _RRULE_PREFIX.sub("", (pattern or "").strip())
    parts = {}
    for chunk in cleaned.split(";"):
        chunk = chunk.strip()
        if "=" not in chunk:
            continue
        k, v = chunk.split("=", 1)
        parts[k.strip().upper()] = v.strip()
    return parts


def _int_part(parts: Dict[str, str], name: str, default: int) -> int:
    m = re.match(r"\d+", parts.get(name, ""))
    return int(m.group(0)) if m else default


def add_months(dt: datetime, months: int) -> datetime:
    """Calendar-month arithmetic; the day is clamped to the target month's length."""
    month_index = dt.month - 1 + months
    year = dt.year + month_index // 12
    month = month_index % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def expansion_window(now: datetime):
    return now - PAST_WINDOW, add_months(now, FUTURE_MONTHS)


def effective_pattern(event: CalendarEvent) -> str:
    pattern = (event.recurrence_pattern or "").strip()
    if not pattern and event.has_recurring_flags:
        log.debug("[recurrence] %r has recurring flags but no pattern; using %s",
                  event.title, DEFAULT_PATTERN)
        return DEFAULT_PATTERN
    return pattern


def expand_recurring_event(event: CalendarEvent, now: Optional[datetime] = None) -> List[EventInstance]:
    if event.start is None:
        return [event.as_instance()]

    now = now or datetime.now()
    parts = parse_rrule(effective_pattern(event))
    freq = parts.get("FREQ", "").upper()

    if freq != "DAILY":
        if freq in ("WEEKLY", "MONTHLY"):
            log.debug("[recurrence] FREQ=%s for %r is not expanded; showing the master once",
                      freq, event.title)
        return [event.as_instance()]

    interval = max(1, _int_part(parts, "INTERVAL", 1))
    count = _int_part(parts, "COUNT", DEFAULT_COUNT)
    duration = (event.end - event.start) if event.end is not None else DEFAULT_DURATION
    time_of_day = event.start.time()
    window_start, window_end = expansion_window(now)
    master_key = event.id or "recurring"

    instances = []
    current = event.start.date()
    for i in range(min(count, MAX_INSTANCES)):
        start = datetime.combine(current, time_of_day)
        if start > window_end:
            break
        if start >= window_start:
            instances.append(EventInstance(
                key=f"{master_key}-instance-{i}",
                title=event.title,
                start=start,
                end=start + duration,
                event=event,
                occurrence=i,
            ))
        try:
            current = current + timedelta(days=interval)
        except OverflowError:
            break

    log.debug("[recurrence] %r -> %d daily instances", event.title, len(instances))
    return instances
