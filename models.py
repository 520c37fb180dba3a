# models.py
"""
Value objects passed between the layout stages.

Every timestamp is a naive datetime in local wall-clock time. Nothing here is
mutated after construction; a layout pass builds fresh records each time.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Optional, Tuple

log = logging.getLogger(__name__)

DEFAULT_DURATION = timedelta(minutes=30)
_EPOCH = datetime(1970, 1, 1)


def to_epoch_ms(dt: Optional[datetime]) -> Optional[int]:
    """Milliseconds since 1970-01-01 on the wall-clock axis (no zone applied)."""
    if dt is None:
        return None
    delta = dt - _EPOCH
    return delta.days * 86_400_000 + delta.seconds * 1000 + delta.microseconds // 1000


class LayoutStrategy(Enum):
    FIXED = "fixed"
    DYNAMIC_FILL = "dynamic"

    @classmethod
    def from_name(cls, name: Optional[str]) -> "LayoutStrategy":
        key = (name or "").strip().lower()
        if key in ("fixed", "legacy", "bounded"):
            return cls.FIXED
        if key not in ("", "dynamic", "dynamic_fill", "optimized"):
            log.warning("[config] unknown layout strategy %r: using dynamic fill", name)
        return cls.DYNAMIC_FILL


@dataclass(frozen=True)
class CalendarEvent:
    id: Optional[str]
    title: str
    start: Optional[datetime]
    end: Optional[datetime]
    is_recurring: bool = False
    is_recurring_enhanced: bool = False
    is_recurring_classic: bool = False
    recurrence_activity_id: str = ""
    recurrence_pattern: str = ""
    location: str = ""
    type: str = ""
    description: str = ""
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def has_recurring_flags(self) -> bool:
        return bool(self.is_recurring or self.is_recurring_enhanced
                    or self.is_recurring_classic or self.recurrence_activity_id)

    def as_instance(self) -> "EventInstance":
        """Pass-through instance for an event that is not expanded."""
        return EventInstance(key=self.id, title=self.title, start=self.start,
                             end=self.end, event=self)


@dataclass(frozen=True)
class EventInstance:
    key: Optional[str]
    title: str
    start: Optional[datetime]
    end: Optional[datetime]
    event: Optional[CalendarEvent] = field(default=None, compare=False, repr=False)
    occurrence: Optional[int] = None

    @property
    def effective_end(self) -> Optional[datetime]:
        if self.end is not None:
            return self.end
        if self.start is None:
            return None
        return self.start + DEFAULT_DURATION

    @property
    def start_ms(self) -> int:
        return to_epoch_ms(self.start) if self.start is not None else 0

    @property
    def end_ms(self) -> int:
        end = self.effective_end
        return to_epoch_ms(end) if end is not None else 0

    @property
    def is_recurring(self) -> bool:
        return bool(self.event is not None and self.event.is_recurring)

    @property
    def recurrence_pattern(self) -> str:
        return self.event.recurrence_pattern if self.event is not None else ""

    def with_key(self, key: str) -> "EventInstance":
        return EventInstance(key=key, title=self.title, start=self.start, end=self.end,
                             event=self.event, occurrence=self.occurrence)


@dataclass(frozen=True)
class OverlapCluster:
    cluster_id: int
    members: Tuple[EventInstance, ...]

    def __len__(self):
        return len(self.members)

    def __iter__(self):
        return iter(self.members)


@dataclass(frozen=True)
class ColumnAssignment:
    """Columns and active-column counts, parallel to the cluster's members."""
    members: Tuple[EventInstance, ...]
    columns: Tuple[int, ...]
    active_columns: Tuple[int, ...]

    @property
    def column_count(self) -> int:
        return (max(self.columns) + 1) if self.columns else 0

    def by_key(self) -> Dict[Optional[str], int]:
        return {inst.key: col for inst, col in zip(self.members, self.columns)}


@dataclass(frozen=True)
class TimeSegment:
    start: int
    end: int
    active_columns: Tuple[int, ...]

    @property
    def duration(self) -> int:
        return self.end - self.start

    @property
    def k(self) -> int:
        return len(self.active_columns)


@dataclass(frozen=True)
class LayoutRecord:
    instance: EventInstance
    top: float
    height: float
    column: int
    total_columns: int
    active_columns: int
    width: float
    left: float
    unit: str = "%"
    is_dynamic: bool = False
    cluster_id: int = 0
    segment_count: int = 0

    @property
    def key(self) -> Optional[str]:
        return self.instance.key

    @property
    def css_width(self) -> str:
        return f"{self.width}{self.unit}"

    @property
    def css_left(self) -> str:
        return f"{self.left}{self.unit}"

    def as_dict(self) -> Dict[str, Any]:
        inst = self.instance
        return {
            "key": inst.key,
            "title": inst.title,
            "start": inst.start.isoformat() if inst.start else None,
            "end": inst.effective_end.isoformat() if inst.effective_end else None,
            "is_recurring": inst.is_recurring,
            "top": self.top,
            "height": self.height,
            "column": self.column,
            "total_columns": self.total_columns,
            "active_columns": self.active_columns,
            "width": self.css_width,
            "left": self.css_left,
            "is_dynamic": self.is_dynamic,
            "cluster_id": self.cluster_id,
            "segment_count": self.segment_count,
        }
