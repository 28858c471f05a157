# capacity_scheduler/models.py
from dataclasses import dataclass, field
from datetime import date, time
from enum import IntEnum
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd


class PriorityTier(IntEnum):
    # Lower value = more severe; sorting ascending puts Critical first.
    CRITICAL = 0
    IMPORTANT = 1
    FLEXIBLE = 2

    @property
    def label(self) -> str:
        return self.name.capitalize()

    def bumped(self) -> "PriorityTier":
        """Next-higher severity (Critical stays Critical)."""
        return PriorityTier(max(0, self.value - 1))

    @classmethod
    def parse(cls, value: Any) -> Optional["PriorityTier"]:
        """Accept tiers, dashboard letter codes (A/B/C) or tier names."""
        if value is None:
            return None
        if isinstance(value, PriorityTier):
            return value
        text = str(value).strip().lower()
        if not text:
            return None
        aliases = {
            "a": cls.CRITICAL, "critical": cls.CRITICAL, "high": cls.CRITICAL,
            "b": cls.IMPORTANT, "important": cls.IMPORTANT, "medium": cls.IMPORTANT,
            "c": cls.FLEXIBLE, "flexible": cls.FLEXIBLE, "low": cls.FLEXIBLE,
        }
        if text not in aliases:
            raise ValueError(f"unknown priority tier: {value!r}")
        return aliases[text]


DIFFICULTIES = ("easy", "medium", "hard")

# Unscheduled reason codes
NO_SLOT_LARGE_ENOUGH = "no_slot_large_enough"
SLOT_CAPACITY_EXHAUSTED = "slot_capacity_exhausted"
DAILY_CAP = "daily_cap"
SUBJECT_CAP = "subject_cap"
NOT_SCHEDULABLE = "not_schedulable"

# Placement phases
PHASE_ANCHOR = "anchor"
PHASE_QUICK_WIN = "quick_win"


@dataclass(frozen=True)
class WorkItem:
    id: str
    title: str
    subject: str = "General"
    due_date: Optional[date] = None
    duration_minutes: Optional[int] = None
    priority: Optional[PriorityTier] = None
    difficulty: Optional[str] = None
    points: Optional[int] = None
    category: Optional[str] = None
    portable: bool = False
    sequence: Tuple[int, ...] = ()

    @property
    def minutes(self) -> int:
        # Only meaningful after classification has resolved the estimate.
        if self.duration_minutes is None:
            raise ValueError(f"item {self.id} has no resolved duration")
        return self.duration_minutes


@dataclass(frozen=True)
class StructureBlock:
    weekday: str
    ordinal: Optional[int]
    start_time: str
    end_time: str
    subject: str = ""
    block_type: str = "Assignment"


@dataclass(frozen=True)
class ExistingPlacement:
    item_id: str
    weekday: str
    slot_ordinal: int
    minutes: int
    subject: str = "General"


@dataclass(frozen=True)
class SlotEntry:
    item_id: str
    subject: str
    minutes: int


@dataclass
class TimeSlot:
    """A placeable interval of one weekday, mutated only during a single run."""
    weekday: str
    day_index: int
    ordinal: int
    start: time
    end: time
    total_minutes: int
    subject: Optional[str] = None
    flexible: bool = True
    numbered: bool = True
    day_date: Optional[date] = None
    used_minutes: int = 0
    items: List[SlotEntry] = field(default_factory=list)

    @property
    def key(self) -> Tuple[str, int]:
        return (self.weekday, self.ordinal)

    @property
    def remaining_minutes(self) -> int:
        return self.total_minutes - self.used_minutes

    def can_hold(self, minutes: int) -> bool:
        return 0 < minutes <= self.remaining_minutes

    def place(self, item_id: str, subject: str, minutes: int) -> None:
        if not self.can_hold(minutes):
            raise ValueError(
                f"slot {self.weekday}#{self.ordinal} has {self.remaining_minutes} min left, "
                f"cannot hold {minutes} min"
            )
        self.items.append(SlotEntry(item_id, subject, minutes))
        self.used_minutes += minutes


@dataclass(frozen=True)
class Placement:
    item: WorkItem
    weekday: str
    slot_ordinal: int
    start_time: time
    end_time: time
    phase: str
    reason: str
    score: float = 0.0
    day_date: Optional[date] = None


@dataclass(frozen=True)
class UnscheduledItem:
    item: WorkItem
    reason_code: str
    reason: str


@dataclass(frozen=True)
class SchedulingResult:
    person: str
    scheduled: Tuple[Placement, ...] = ()
    unscheduled: Tuple[UnscheduledItem, ...] = ()
    warnings: Tuple[str, ...] = ()

    def as_dict(self) -> Dict[str, Any]:
        """Shape handed back to the service layer for persistence."""
        return {
            "scheduled": [
                {
                    "itemId": p.item.id,
                    "weekday": p.weekday,
                    "slotOrdinal": p.slot_ordinal,
                    "startTime": p.start_time.strftime("%H:%M"),
                    "endTime": p.end_time.strftime("%H:%M"),
                }
                for p in self.scheduled
            ],
            "unscheduled": [
                {"itemId": u.item.id, "reason": u.reason} for u in self.unscheduled
            ],
            "warnings": list(self.warnings),
        }

    def to_frames(self) -> Tuple[pd.DataFrame, pd.DataFrame]:
        """
        Returns:
            scheduled_df with columns: id, title, subject, priority, minutes,
                weekday, slot, start, end, phase, reason
            unscheduled_df with columns: id, title, subject, priority, minutes,
                reason_code, reason
        """
        scheduled_cols = ["id", "title", "subject", "priority", "minutes",
                          "weekday", "slot", "start", "end", "phase", "reason"]
        unscheduled_cols = ["id", "title", "subject", "priority", "minutes",
                            "reason_code", "reason"]

        scheduled_df = pd.DataFrame([{
            "id": p.item.id,
            "title": p.item.title,
            "subject": p.item.subject,
            "priority": p.item.priority.label if p.item.priority is not None else None,
            "minutes": p.item.duration_minutes,
            "weekday": p.weekday,
            "slot": p.slot_ordinal,
            "start": p.start_time.strftime("%H:%M"),
            "end": p.end_time.strftime("%H:%M"),
            "phase": p.phase,
            "reason": p.reason,
        } for p in self.scheduled], columns=scheduled_cols)

        unscheduled_df = pd.DataFrame([{
            "id": u.item.id,
            "title": u.item.title,
            "subject": u.item.subject,
            "priority": u.item.priority.label if u.item.priority is not None else None,
            "minutes": u.item.duration_minutes,
            "reason_code": u.reason_code,
            "reason": u.reason,
        } for u in self.unscheduled], columns=unscheduled_cols)

        return scheduled_df, unscheduled_df
