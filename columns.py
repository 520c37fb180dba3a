# columns.py
"""
Column assignment inside one overlap cluster.

Two strategies:
  - assign_columns_bounded: legacy mode, at most MAX_COLUMNS columns, longest
    events to the left. When every column is busy the instance is forced into
    the column that frees up first, which may still overlap on screen.
  - assign_columns_interval_partitioning: classic interval partitioning, no
    cap, column count equals the peak concurrency of the cluster.
"""
import logging
from typing import List, Sequence

from models import ColumnAssignment, EventInstance, OverlapCluster
from overlap import events_overlap, sort_by_start

log = logging.getLogger(__name__)

MAX_COLUMNS = 4


def _members(cluster) -> List[EventInstance]:
    if isinstance(cluster, OverlapCluster):
        return list(cluster.members)
    return list(cluster)


def max_concurrent_columns(target: EventInstance, members: Sequence[EventInstance]) -> int:
    """
    Peak number of instances open at the same instant inside target's span.
    Scan-line over start/end points; at equal timestamps ends close first.
    """
    lo, hi = target.start_ms, target.end_ms
    points = []
    for inst in members:
        if inst is not target and not events_overlap(target, inst):
            continue
        s, e = max(inst.start_ms, lo), min(inst.end_ms, hi)
        if s >= e:
            continue
        points.append((s, 1))
        points.append((e, -1))
    # (time, -1) sorts before (time, +1)
    points.sort()
    current = peak = 0
    for _, delta in points:
        current += delta
        peak = max(peak, current)
    return max(1, peak)


def assign_columns_bounded(cluster, max_columns: int = MAX_COLUMNS) -> ColumnAssignment:
    members = sort_by_start(_members(cluster))
    order = sorted(range(len(members)),
                   key=lambda i: (-(members[i].end_ms - members[i].start_ms), members[i].start_ms))

    column_end_times = []
    columns = [0] * len(members)
    for idx in order:
        inst = members[idx]
        assigned = -1
        for col in range(min(len(column_end_times), max_columns)):
            if inst.start_ms >= column_end_times[col]:
                assigned = col
                break
        if assigned == -1 and len(column_end_times) < max_columns:
            assigned = len(column_end_times)
            column_end_times.append(0)
        if assigned == -1:
            assigned = min(range(len(column_end_times)), key=lambda c: column_end_times[c])
            log.debug("[columns] %r forced into column %d (limit %d)", inst.title, assigned, max_columns)
        column_end_times[assigned] = inst.end_ms
        columns[idx] = assigned

    active = []
    for inst in members:
        distinct = {columns[j] for j, other in enumerate(members)
                    if other is inst or events_overlap(inst, other)}
        active.append(min(max(len(distinct), max_concurrent_columns(inst, members)), max_columns))

    return ColumnAssignment(members=tuple(members), columns=tuple(columns), active_columns=tuple(active))


def assign_columns_interval_partitioning(cluster) -> ColumnAssignment:
    members = sort_by_start(_members(cluster))
    column_end_times = []
    columns = []
    for inst in members:
        for col, end in enumerate(column_end_times):
            if end <= inst.start_ms:
                column_end_times[col] = inst.end_ms
                columns.append(col)
                break
        else:
            columns.append(len(column_end_times))
            column_end_times.append(inst.end_ms)

    active = tuple(max_concurrent_columns(inst, members) for inst in members)
    return ColumnAssignment(members=tuple(members), columns=tuple(columns), active_columns=active)
