# layout_engine.py
"""
Per-day layout of event instances and the week/month view models.

Pipeline for one day:
  bucket -> collapse same (title, start) -> clusters -> columns -> geometry

The pass is pure and deterministic: the same instance list in the same order
gives the same LayoutRecords. A host can pass a LayoutDiagnostics object to
collect timing and cluster statistics; nothing is kept globally.
"""
import logging
import time
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

import calendar_config as cfg
from columns import MAX_COLUMNS, assign_columns_bounded, assign_columns_interval_partitioning
from geometry import (build_time_segments, dynamic_fill_geometry, fixed_percentage_geometry,
                      fixed_pixel_geometry, to_pixels)
from models import EventInstance, LayoutRecord, LayoutStrategy, OverlapCluster
from overlap import detect_overlap_clusters

log = logging.getLogger(__name__)

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
DAY_NAMES_SHORT = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
MONTH_NAMES = ["January", "February", "March", "April", "May", "June", "July",
               "August", "September", "October", "November", "December"]
MONTH_GRID_CELLS = 42


@dataclass
class LayoutOptions:
    strategy: LayoutStrategy = LayoutStrategy.DYNAMIC_FILL
    px_per_minute: float = 50 / 60
    min_event_height: float = 30
    column_gap: float = 4
    enable_dynamic_fill: bool = True
    day_width_px: int = 160
    max_columns: int = MAX_COLUMNS

    @classmethod
    def from_config(cls) -> "LayoutOptions":
        return cls(
            strategy=LayoutStrategy.from_name(cfg.LAYOUT_STRATEGY),
            px_per_minute=cfg.px_per_minute(),
            min_event_height=cfg.MIN_EVENT_HEIGHT,
            column_gap=cfg.COLUMN_GAP,
            day_width_px=cfg.DAY_COLUMN_WIDTH_PX,
        )


@dataclass(frozen=True)
class LayoutStats:
    layout_ms: float
    total_events: int
    total_clusters: int
    average_cluster_size: float
    dynamic_events_count: int


@dataclass
class LayoutDiagnostics:
    """Optional sink for per-pass statistics; in debug mode it also logs every record."""
    debug: bool = False
    history: List[LayoutStats] = field(default_factory=list)

    @property
    def last(self) -> Optional[LayoutStats]:
        return self.history[-1] if self.history else None

    def record(self, stats: LayoutStats, clusters: Sequence[OverlapCluster], records: Sequence[LayoutRecord]):
        self.history.append(stats)
        log.debug("[layout] %.1fms events=%d clusters=%d avg=%.1f dynamic=%d",
                  stats.layout_ms, stats.total_events, stats.total_clusters,
                  stats.average_cluster_size, stats.dynamic_events_count)
        if not self.debug:
            return
        for cluster in clusters:
            log.info("[layout] cluster %d: %d events", cluster.cluster_id, len(cluster))
            for inst in cluster:
                log.info("[layout]   - %r %s - %s", inst.title, inst.start, inst.effective_end)
        for rec in records:
            log.info("[layout] %r cluster=%d column=%d/%d dynamic=%s top=%.1f height=%.1f left=%s width=%s",
                     rec.instance.title, rec.cluster_id, rec.column, rec.total_columns,
                     rec.is_dynamic, rec.top, rec.height, rec.css_left, rec.css_width)


# ---------------- Day buckets -------------------------------------------------

def events_for_date(instances: Sequence[EventInstance], day: date) -> List[EventInstance]:
    return [i for i in instances if i.start is not None and i.start.date() == day]


def prepare_day(instances: Sequence[EventInstance], day: date) -> List[EventInstance]:
    """
    Collapse repeated (title, start) pairs inside the day and give keyless
    instances a positional key "<YYYYMMDD>-<idx>".
    """
    seen = set()
    out = []
    for idx, inst in enumerate(instances):
        k = (inst.title, inst.start)
        if k in seen:
            log.debug("[layout] duplicate on %s: %r", day, inst.title)
            continue
        seen.add(k)
        if not inst.key:
            inst = inst.with_key(f"{day:%Y%m%d}-{idx}")
        out.append(inst)
    return out


# ---------------- Layout pass -------------------------------------------------

def _layout_dynamic(cluster: OverlapCluster, options: LayoutOptions) -> List[LayoutRecord]:
    if len(cluster) == 1:
        inst = cluster.members[0]
        top, height = to_pixels(inst, options.px_per_minute, options.min_event_height)
        width, left = fixed_percentage_geometry(0, 1, options.column_gap)
        return [LayoutRecord(instance=inst, top=top, height=height, column=0, total_columns=1,
                             active_columns=1, width=width, left=left, unit="%",
                             cluster_id=cluster.cluster_id)]

    assignment = assign_columns_interval_partitioning(cluster)
    total = assignment.column_count
    segments = build_time_segments(assignment.members, assignment.columns) if options.enable_dynamic_fill else []

    records = []
    for inst, col, active in zip(assignment.members, assignment.columns, assignment.active_columns):
        top, height = to_pixels(inst, options.px_per_minute, options.min_event_height)
        seg_count = 0
        if options.enable_dynamic_fill:
            width, left, seg_count = dynamic_fill_geometry(inst, col, segments, total)
        else:
            width, left = fixed_percentage_geometry(col, total, options.column_gap)
        records.append(LayoutRecord(instance=inst, top=top, height=height, column=col,
                                    total_columns=total, active_columns=active,
                                    width=width, left=left, unit="%",
                                    is_dynamic=options.enable_dynamic_fill,
                                    cluster_id=cluster.cluster_id, segment_count=seg_count))
    return records


def _layout_fixed(cluster: OverlapCluster, options: LayoutOptions) -> List[LayoutRecord]:
    assignment = assign_columns_bounded(cluster, options.max_columns)
    total = assignment.column_count
    records = []
    for inst, col, active in zip(assignment.members, assignment.columns, assignment.active_columns):
        top, height = to_pixels(inst, options.px_per_minute, options.min_event_height)
        width, left = fixed_pixel_geometry(col, active, options.day_width_px)
        records.append(LayoutRecord(instance=inst, top=top, height=height, column=col,
                                    total_columns=total, active_columns=active,
                                    width=width, left=left, unit="px",
                                    cluster_id=cluster.cluster_id))
    return records


def layout_day(instances: Sequence[EventInstance], options: Optional[LayoutOptions] = None,
               diagnostics: Optional[LayoutDiagnostics] = None) -> List[LayoutRecord]:
    """Geometry for every instance of one day; never raises on odd data."""
    if not instances:
        return []
    options = options or LayoutOptions()
    started = time.perf_counter()

    clusters = detect_overlap_clusters(instances)
    records = []
    for cluster in clusters:
        if options.strategy is LayoutStrategy.FIXED:
            records.extend(_layout_fixed(cluster, options))
        else:
            records.extend(_layout_dynamic(cluster, options))

    if diagnostics is not None:
        stats = LayoutStats(
            layout_ms=(time.perf_counter() - started) * 1000.0,
            total_events=len(instances),
            total_clusters=len(clusters),
            average_cluster_size=round(len(instances) / len(clusters), 1),
            dynamic_events_count=sum(1 for r in records if r.is_dynamic),
        )
        diagnostics.record(stats, clusters, records)
    return records


# ---------------- View models -------------------------------------------------

def format_hour_label(hour: int) -> str:
    hour12 = ((hour + 11) % 12) + 1
    return f"{hour12} {'AM' if hour < 12 else 'PM'}"


def build_time_slots() -> List[Dict[str, Any]]:
    """24 slots from 5 AM through 4 AM the next day."""
    slots = []
    for h in range(cfg.DAY_START_HOUR, cfg.DAY_START_HOUR + cfg.HOURS_PER_VIEW):
        hour = h % 24
        slots.append({"hour": hour, "label": format_hour_label(hour)})
    return slots


def week_start_for(day: date) -> date:
    """Sunday on or before day."""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def _as_date(value) -> date:
    return value.date() if isinstance(value, datetime) else value


def build_week_view(instances: Sequence[EventInstance], week_start: date,
                    options: Optional[LayoutOptions] = None, today: Optional[date] = None,
                    diagnostics: Optional[LayoutDiagnostics] = None,
                    current_month: Optional[int] = None) -> List[Dict[str, Any]]:
    week_start = _as_date(week_start)
    today = _as_date(today) if today is not None else date.today()
    options = options or LayoutOptions()
    slots = build_time_slots()

    days = []
    for i in range(7):
        day = week_start + timedelta(days=i)
        day_instances = prepare_day(events_for_date(instances, day), day)
        records = layout_day(day_instances, options, diagnostics)
        days.append({
            "col_index": i,
            "date": day,
            "date_str": day.isoformat(),
            "day_name": DAY_NAMES[(day.weekday() + 1) % 7],
            "day_name_short": DAY_NAMES_SHORT[(day.weekday() + 1) % 7],
            "is_today": day == today,
            "is_current_month": current_month is None or day.month == current_month,
            "hour_slots": slots,
            "records": records,
            "total_events": len(records),
        })
    return days


def build_month_view(instances: Sequence[EventInstance], year: int, month: int,
                     today: Optional[date] = None) -> List[Dict[str, Any]]:
    """Six weeks of seven cells; only days of the month itself carry events."""
    today = _as_date(today) if today is not None else date.today()
    first = date(year, month, 1)
    grid_start = week_start_for(first)

    cells = []
    for n in range(MONTH_GRID_CELLS):
        day = grid_start + timedelta(days=n)
        in_month = day.month == month and day.year == year
        events = prepare_day(events_for_date(instances, day), day) if in_month else []
        cells.append({
            "date": day,
            "date_str": day.isoformat(),
            "day": day.day,
            "is_current_month": in_month,
            "is_today": in_month and day == today,
            "events": events,
            "has_events": bool(events),
        })
    return [{"week_number": w + 1, "days": cells[w * 7:(w + 1) * 7]} for w in range(MONTH_GRID_CELLS // 7)]
