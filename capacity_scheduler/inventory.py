# capacity_scheduler/inventory.py
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from .errors import MalformedSlotError
from .models import ExistingPlacement, StructureBlock, TimeSlot

logger = logging.getLogger(__name__)

WEEKDAYS: Tuple[str, ...] = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday")

PLACEABLE_BLOCK_TYPES = {"assignment"}
FIXED_BLOCK_TYPES = {"bible", "travel", "co-op", "prep/load", "movement", "lunch"}
# Placeable blocks labelled with one of these subjects accept any subject.
FLEXIBLE_SUBJECTS = {"", "assignment", "study", "flex", "flexible"}

_CLOCK_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})(?::(\d{2}))?\s*$")

StructureLookup = Callable[[str, str], Iterable[StructureBlock]]


@dataclass
class SlotInventory:
    person: str
    days: Dict[str, List[TimeSlot]] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)

    @property
    def weekdays(self) -> List[str]:
        return list(self.days.keys())

    def slots(self) -> List[TimeSlot]:
        """All slots in natural order: weekday, then ordinal."""
        return [s for day in self.days.values() for s in day]

    def get(self, weekday: str, ordinal: int) -> Optional[TimeSlot]:
        for s in self.days.get(weekday, []):
            if s.ordinal == ordinal:
                return s
        return None

    def longest_slot_minutes(self) -> int:
        return max((s.total_minutes for s in self.slots()), default=0)

    def to_frame(self) -> pd.DataFrame:
        cols = ["weekday", "slot", "start", "end", "subject", "flexible",
                "numbered", "total_minutes", "used_minutes", "remaining_minutes"]
        return pd.DataFrame([{
            "weekday": s.weekday,
            "slot": s.ordinal,
            "start": s.start.strftime("%H:%M"),
            "end": s.end.strftime("%H:%M"),
            "subject": s.subject,
            "flexible": s.flexible,
            "numbered": s.numbered,
            "total_minutes": s.total_minutes,
            "used_minutes": s.used_minutes,
            "remaining_minutes": s.remaining_minutes,
        } for s in self.slots()], columns=cols)


def week_days(week_start: date) -> List[Tuple[str, date]]:
    """Monday..Friday of the week containing ``week_start``."""
    monday = week_start - timedelta(days=week_start.weekday())
    return [(name, monday + timedelta(days=i)) for i, name in enumerate(WEEKDAYS)]


def parse_clock(text, weekday: str = "", ordinal=None) -> time:
    """Parse 'HH:MM' or 'HH:MM:SS'."""
    if isinstance(text, time):
        return text
    m = _CLOCK_RE.match(str(text)) if text is not None else None
    if not m:
        raise MalformedSlotError(f"unparseable time {text!r} in {weekday} block {ordinal}",
                                 weekday=weekday, ordinal=ordinal)
    hour, minute, second = int(m.group(1)), int(m.group(2)), int(m.group(3) or 0)
    if hour > 23 or minute > 59 or second > 59:
        raise MalformedSlotError(f"out-of-range time {text!r} in {weekday} block {ordinal}",
                                 weekday=weekday, ordinal=ordinal)
    return time(hour, minute, second)


def block_minutes(start: time, end: time) -> int:
    """Whole minutes between start and end; partial minutes are dropped."""
    delta = datetime.combine(date.min, end) - datetime.combine(date.min, start)
    return int(delta.total_seconds() // 60)


def is_placeable(block: StructureBlock) -> bool:
    kind = (block.block_type or "").strip().lower()
    if kind in PLACEABLE_BLOCK_TYPES:
        return True
    if kind not in FIXED_BLOCK_TYPES:
        logger.debug("Treating unknown block type %r as fixed", block.block_type)
    return False


def build_slot_inventory(person: str,
                         structure_lookup: StructureLookup,
                         existing: Sequence[ExistingPlacement] = (),
                         week_start: Optional[date] = None,
                         weekdays: Sequence[str] = WEEKDAYS) -> SlotInventory:
    """
    Turn the person's fixed daily structure into placeable slots for one week.

    Every block (fixed ones included) must carry a valid, non-inverted time
    range; a single malformed block fails the whole build. Existing placements
    consume minutes from the slot they were recorded against.
    """
    dates = dict(week_days(week_start)) if week_start else {}
    inventory = SlotInventory(person=person)

    for day_index, weekday in enumerate(weekdays):
        numbered: List[TimeSlot] = []
        unnumbered: List[Tuple[time, time, StructureBlock]] = []

        for block in structure_lookup(person, weekday):
            start = parse_clock(block.start_time, weekday, block.ordinal)
            end = parse_clock(block.end_time, weekday, block.ordinal)
            if end <= start:
                raise MalformedSlotError(
                    f"{weekday} block {block.ordinal} ends ({block.end_time}) "
                    f"at or before it starts ({block.start_time})",
                    weekday=weekday, ordinal=block.ordinal,
                )
            minutes = block_minutes(start, end)
            if minutes < 1:
                raise MalformedSlotError(
                    f"{weekday} block {block.ordinal} ({block.start_time}-{block.end_time}) "
                    f"is shorter than one minute",
                    weekday=weekday, ordinal=block.ordinal,
                )
            if not is_placeable(block):
                continue
            if block.ordinal is None:
                unnumbered.append((start, end, block))
                continue
            numbered.append(_make_slot(weekday, day_index, int(block.ordinal),
                                       start, end, minutes, block, dates.get(weekday)))

        # Unnumbered blocks get ordinals after the day's highest numbered slot.
        next_ordinal = max((s.ordinal for s in numbered), default=0) + 1
        for start, end, block in sorted(unnumbered, key=lambda u: u[0]):
            slot = _make_slot(weekday, day_index, next_ordinal, start, end,
                              block_minutes(start, end), block, dates.get(weekday))
            slot.numbered = False
            numbered.append(slot)
            inventory.warnings.append(
                f"{weekday} {start.strftime('%H:%M')}-{end.strftime('%H:%M')} block has no "
                f"block number; using slot {next_ordinal}"
            )
            next_ordinal += 1

        seen = set()
        for slot in numbered:
            if slot.ordinal in seen:
                raise MalformedSlotError(f"{weekday} has two blocks numbered {slot.ordinal}",
                                         weekday=weekday, ordinal=slot.ordinal)
            seen.add(slot.ordinal)

        inventory.days[weekday] = sorted(numbered, key=lambda s: (s.ordinal, s.start))

    _consume_existing(inventory, existing)

    logger.debug("Built %d slot(s) for %s across %d day(s)",
                 len(inventory.slots()), person, len(inventory.days))
    return inventory


def _make_slot(weekday, day_index, ordinal, start, end, minutes, block, day_date) -> TimeSlot:
    subject = (block.subject or "").strip()
    flexible = subject.lower() in FLEXIBLE_SUBJECTS
    return TimeSlot(
        weekday=weekday,
        day_index=day_index,
        ordinal=ordinal,
        start=start,
        end=end,
        total_minutes=minutes,
        subject=None if flexible else subject,
        flexible=flexible,
        day_date=day_date,
    )


def _consume_existing(inventory: SlotInventory, existing: Iterable[ExistingPlacement]) -> None:
    for rec in existing:
        slot = inventory.get(rec.weekday, rec.slot_ordinal)
        if slot is None:
            inventory.warnings.append(
                f"Existing item {rec.item_id} points at unknown slot "
                f"{rec.weekday} #{rec.slot_ordinal}; ignored"
            )
            continue
        minutes = int(rec.minutes)
        if minutes > slot.remaining_minutes:
            inventory.warnings.append(
                f"Slot {rec.weekday} #{rec.slot_ordinal} is overbooked by existing item "
                f"{rec.item_id} ({minutes} min, {slot.remaining_minutes} min free); "
                f"counting only the free minutes"
            )
            minutes = slot.remaining_minutes
        if minutes > 0:
            slot.place(rec.item_id, rec.subject, minutes)


class StructureStore:
    """Daily Structure Store backed by the schedule-template table."""

    COLUMNS = ["student_name", "weekday", "block_number", "start_time",
               "end_time", "subject", "block_type"]

    def __init__(self, template_df: pd.DataFrame):
        missing = [c for c in self.COLUMNS if c not in template_df.columns]
        if missing:
            raise ValueError(f"schedule template is missing column(s): {', '.join(missing)}")
        self.template_df = template_df.copy()

    @classmethod
    def from_csv(cls, path) -> "StructureStore":
        df = pd.read_csv(path, dtype={"start_time": str, "end_time": str,
                                      "subject": str, "block_type": str})
        df.columns = [c.strip().lower() for c in df.columns]
        return cls(df)

    @classmethod
    def from_records(cls, records: Iterable[dict]) -> "StructureStore":
        return cls(pd.DataFrame(list(records), columns=cls.COLUMNS))

    def get_daily_structure(self, person: str, weekday: str) -> List[StructureBlock]:
        df = self.template_df
        mask = (
            (df["student_name"].astype(str).str.lower() == person.lower())
            & (df["weekday"].astype(str).str.lower() == weekday.lower())
        )
        blocks = []
        for _, r in df[mask].iterrows():
            ordinal = r["block_number"]
            blocks.append(StructureBlock(
                weekday=weekday,
                ordinal=None if pd.isnull(ordinal) else int(ordinal),
                start_time=r["start_time"],
                end_time=r["end_time"],
                subject="" if pd.isnull(r["subject"]) else str(r["subject"]),
                block_type=str(r["block_type"]),
            ))
        return blocks

    __call__ = get_daily_structure
