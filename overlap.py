# overlap.py
"""Overlap predicate and Union-Find cluster detection for one day's instances."""
from typing import List, Sequence

from models import EventInstance, OverlapCluster


def events_overlap(a: EventInstance, b: EventInstance) -> bool:
    """Half-open intervals: touching boundaries do not overlap."""
    return a.start_ms < b.end_ms and b.start_ms < a.end_ms


def sort_by_start(instances: Sequence[EventInstance]) -> List[EventInstance]:
    """Start ascending; equal starts put the shorter (earlier ending) first."""
    return sorted(instances, key=lambda i: (i.start_ms, i.end_ms))


class UnionFind:
    """Disjoint sets over 0..n-1 with path compression and union by rank."""

    def __init__(self, n: int):
        self.parent = list(range(n))
        self.rank = [0] * n

    def find(self, x: int) -> int:
        root = x
        while self.parent[root] != root:
            root = self.parent[root]
        while self.parent[x] != root:
            self.parent[x], x = root, self.parent[x]
        return root

    def union(self, x: int, y: int):
        rx, ry = self.find(x), self.find(y)
        if rx == ry:
            return
        if self.rank[rx] < self.rank[ry]:
            self.parent[rx] = ry
        elif self.rank[rx] > self.rank[ry]:
            self.parent[ry] = rx
        else:
            self.parent[ry] = rx
            self.rank[rx] += 1


def detect_overlap_clusters(instances: Sequence[EventInstance]) -> List[OverlapCluster]:
    """
    Partition instances into maximal groups connected by (transitive) overlap.

    Clusters come out in order of their earliest member and keep the sorted
    order inside. Singletons are normal.
    """
    ordered = sort_by_start(instances)
    uf = UnionFind(len(ordered))

    for i, a in enumerate(ordered):
        for j in range(i + 1, len(ordered)):
            b = ordered[j]
            # sorted by start: nothing further along can overlap a
            if b.start_ms >= a.end_ms:
                break
            if events_overlap(a, b):
                uf.union(i, j)

    groups = {}
    for idx, inst in enumerate(ordered):
        groups.setdefault(uf.find(idx), []).append(inst)

    return [OverlapCluster(cluster_id=n, members=tuple(members))
            for n, members in enumerate(groups.values())]
