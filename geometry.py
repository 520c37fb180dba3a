# geometry.py
"""
Time -> pixel mapping and horizontal geometry for laid-out instances.

Vertical axis: the visible day starts at 05:00 and runs through 04:00 the
next morning, so minutes are counted on that wrapped axis.

Horizontal axis, three variants:
  - dynamic fill: time-weighted width/left over the cluster's segments (%)
  - fixed percentage columns with a small gap (%)
  - legacy fixed pixel columns (px)
"""
from datetime import datetime
from typing import Dict, List, Sequence, Tuple

from calendar_config import DAY_START_HOUR
from models import EventInstance, TimeSegment


def minutes_since_day_start(dt: datetime, day_start_hour: int = DAY_START_HOUR) -> int:
    return ((dt.hour - day_start_hour) % 24) * 60 + dt.minute


def to_pixels(instance: EventInstance, px_per_minute: float, min_height: float) -> Tuple[float, float]:
    """Return (top, height); height never drops below min_height."""
    if instance.start is None:
        return 0.0, float(min_height)
    start_min = minutes_since_day_start(instance.start)
    end = instance.effective_end
    end_min = minutes_since_day_start(end) if end is not None else start_min + 30
    top = start_min * px_per_minute
    height = max(min_height, (end_min - start_min) * px_per_minute)
    return top, height


# ---------------- Dynamic fill ------------------------------------------------

def build_time_segments(members: Sequence[EventInstance], columns: Sequence[int]) -> List[TimeSegment]:
    """
    Cut the cluster's span at every distinct start/end and record which
    columns are in use at each piece's midpoint. Empty pieces are skipped.
    """
    points = sorted({i.start_ms for i in members} | {i.end_ms for i in members})
    segments = []
    for seg_start, seg_end in zip(points, points[1:]):
        mid = seg_start + (seg_end - seg_start) / 2
        active = sorted({col for inst, col in zip(members, columns)
                         if inst.start_ms <= mid < inst.end_ms})
        if active:
            segments.append(TimeSegment(start=seg_start, end=seg_end, active_columns=tuple(active)))
    return segments


def segment_widths(segment: TimeSegment) -> Dict[int, Tuple[float, float]]:
    """column -> (width, left) inside one segment; widths always add up to 100."""
    width = 100.0 / segment.k
    return {col: (width, rank * width) for rank, col in enumerate(segment.active_columns)}


def dynamic_fill_geometry(instance: EventInstance, column: int, segments: Sequence[TimeSegment],
                          total_columns: int) -> Tuple[float, float, int]:
    """Return (width %, left %, covered segment count) as weighted means over covered segments."""
    covered = [s for s in segments if instance.start_ms < s.end and instance.end_ms > s.start]

    total_width = total_left = weights = 0.0
    for seg in covered:
        overlap = min(instance.end_ms, seg.end) - max(instance.start_ms, seg.start)
        if overlap <= 0 or column not in seg.active_columns:
            continue
        weight = overlap / seg.duration
        width, left = segment_widths(seg)[column]
        total_width += width * weight
        total_left += left * weight
        weights += weight

    if weights > 0:
        return total_width / weights, total_left / weights, len(covered)
    width = 100.0 / max(1, total_columns)
    return width, column * width, len(covered)


# ---------------- Fixed columns -----------------------------------------------

def fixed_percentage_geometry(column: int, total_columns: int, column_gap: float) -> Tuple[float, float]:
    total = max(1, total_columns)
    column_width = (100 - (total - 1) * (column_gap / total)) / total
    left = column * (column_width + column_gap / total)
    return column_width, left


def fixed_pixel_geometry(column: int, active_columns: int, container_px: int) -> Tuple[float, float]:
    if active_columns <= 1:
        return float(container_px), 0.0
    width = container_px // active_columns
    return float(width), float(column * width)
