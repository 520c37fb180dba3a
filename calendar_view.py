# calendar_view.py
"""
Calendar state for one viewer: selected calendar, week/month navigation,
fetch state and the laid-out view models.

Fetching is guarded by a plain in-flight flag: a second fetch attempted
while one is running is dropped, not queued. There is no request generation
token, so a slow response that arrives after navigation still overwrites the
current state.
"""
import logging
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional

from data_provider import CalendarFetchError, EventCache, build_instances
from layout_engine import (MONTH_NAMES, LayoutDiagnostics, LayoutOptions, build_month_view,
                           build_week_view, week_start_for)
from models import EventInstance

log = logging.getLogger(__name__)

WEEK = "week"
MONTH = "month"


class CalendarView:

    def __init__(self, source, calendar_id: Optional[str] = None, cache: Optional[EventCache] = None,
                 clock: Callable[[], datetime] = datetime.now, options: Optional[LayoutOptions] = None,
                 diagnostics: Optional[LayoutDiagnostics] = None, view_mode: str = WEEK):
        self.source = source
        self.calendar_id = calendar_id or None
        self.calendars = {}
        self.cache = cache if cache is not None else EventCache()
        self.clock = clock
        self.options = options or LayoutOptions()
        self.diagnostics = diagnostics
        self.view_mode = view_mode if view_mode in (WEEK, MONTH) else WEEK

        self.events: List[EventInstance] = []
        self.loading = True
        self.error = False
        self.error_message = ""
        self.is_fetching = False

        self.week_days = []
        self.month_weeks = []
        self.today()

    # ---------------- data ----------------

    def load_calendar_data(self):
        if not self.calendar_id:
            try:
                self.calendars = self.source.list_calendars()
            except CalendarFetchError as ex:
                self._handle_error(ex)
                return
            if not self.calendars:
                self.loading = False
                self.error = True
                self.error_message = "No calendars available."
                return
            self.calendar_id = next(iter(self.calendars))
        self.fetch_events()

    def fetch_events(self) -> bool:
        """Returns False when the attempt was dropped or failed."""
        cached = self.cache.get(self.calendar_id)
        if cached is not None:
            log.debug("[fetch] cache hit for %s (age %.0fs)", self.calendar_id, self.cache.age())
            self.events = cached
            self.refresh_view()
            self.loading = False
            return True

        if self.is_fetching:
            log.debug("[fetch] already in flight, dropping request")
            return False

        self.is_fetching = True
        self.loading = True
        self.error = False
        try:
            raw = self.source.fetch_events(self.calendar_id)
            self.events = build_instances(raw, now=self.clock())
            self._jump_to_first_event_week()
            self.refresh_view()
            self.cache.put(self.calendar_id, self.events)
            self.loading = False
            return True
        except CalendarFetchError as ex:
            self._handle_error(ex)
            return False
        finally:
            self.is_fetching = False

    def _handle_error(self, ex: Exception):
        log.warning("[fetch] %s", ex)
        self.loading = False
        self.error = True
        self.error_message = str(ex) or "An error occurred."

    def _jump_to_first_event_week(self):
        if self.view_mode != WEEK or not self.events:
            return
        week_end = self.current_week_start + timedelta(days=6)
        if any(e.start and self.current_week_start <= e.start.date() <= week_end for e in self.events):
            return
        first = next((e for e in self.events if e.start is not None), None)
        if first is not None:
            self.current_week_start = week_start_for(first.start.date())
            log.info("[fetch] no events this week, jumping to week of %s", self.current_week_start)

    # ---------------- view ----------------

    def refresh_view(self):
        if self.view_mode == WEEK:
            self.week_days = build_week_view(self.events, self.current_week_start, self.options,
                                             today=self.clock().date(), diagnostics=self.diagnostics,
                                             current_month=self.current_month)
        else:
            self.month_weeks = build_month_view(self.events, self.current_year, self.current_month,
                                                today=self.clock().date())

    def _refresh_or_fetch(self):
        if self.cache.is_valid(self.calendar_id):
            self.refresh_view()
        else:
            self.fetch_events()

    def handle_calendar_change(self, calendar_id: str):
        self.calendar_id = calendar_id
        self.cache.clear()
        self.fetch_events()

    def set_view_mode(self, mode: str):
        if mode not in (WEEK, MONTH):
            raise ValueError(f"unknown view mode {mode!r}")
        self.view_mode = mode
        self.refresh_view()

    def previous(self):
        if self.view_mode == WEEK:
            self.current_week_start -= timedelta(days=7)
        elif self.current_month == 1:
            self.current_month, self.current_year = 12, self.current_year - 1
        else:
            self.current_month -= 1
        self._refresh_or_fetch()

    def next(self):
        if self.view_mode == WEEK:
            self.current_week_start += timedelta(days=7)
        elif self.current_month == 12:
            self.current_month, self.current_year = 1, self.current_year + 1
        else:
            self.current_month += 1
        self._refresh_or_fetch()

    def today(self):
        now = self.clock()
        self.current_month = now.month
        self.current_year = now.year
        self.current_week_start = week_start_for(now.date())
        if self.events:
            self._refresh_or_fetch()

    def go_to(self, day: date):
        self.current_week_start = week_start_for(day)
        self.current_month = day.month
        self.current_year = day.year
        self._refresh_or_fetch()

    def close(self):
        self.cache.clear()

    # ---------------- labels ----------------

    @property
    def current_date_range(self) -> str:
        if self.view_mode == WEEK:
            start = self.current_week_start
            end = start + timedelta(days=6)
            if start.month == end.month:
                return f"{start.day}–{end.day} {MONTH_NAMES[start.month - 1]} {start.year}"
            if start.year == end.year:
                return (f"{start.day} {MONTH_NAMES[start.month - 1]}–"
                        f"{end.day} {MONTH_NAMES[end.month - 1]} {end.year}")
            return (f"{start.day} {MONTH_NAMES[start.month - 1]} {start.year}–"
                    f"{end.day} {MONTH_NAMES[end.month - 1]} {end.year}")
        return f"{MONTH_NAMES[self.current_month - 1]} {self.current_year}"
