# capacity_scheduler/placement.py
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .capacity import CapacityLedger
from .inventory import SlotInventory
from .models import (
    DAILY_CAP,
    NO_SLOT_LARGE_ENOUGH,
    PHASE_ANCHOR,
    SLOT_CAPACITY_EXHAUSTED,
    SUBJECT_CAP,
    Placement,
    TimeSlot,
    UnscheduledItem,
    WorkItem,
)
from .settings import EngineSettings

logger = logging.getLogger(__name__)


@dataclass
class PhaseOutcome:
    scheduled: List[Placement] = field(default_factory=list)
    unscheduled: List[UnscheduledItem] = field(default_factory=list)


def cap_mask(item: WorkItem, slots: Sequence[TimeSlot], ledger: CapacityLedger) -> Tuple[np.ndarray, Dict[str, Optional[str]]]:
    """Per-slot mask of where the day/subject ceilings still admit ``item``.

    Returns the mask plus the blocking cap (or None) for each weekday.
    """
    blocked_by: Dict[str, Optional[str]] = {}
    for s in slots:
        if s.weekday not in blocked_by:
            blocked_by[s.weekday] = ledger.blocking_cap(s.weekday, item.subject, item.minutes)
    mask = np.array([blocked_by[s.weekday] is None for s in slots], dtype=bool)
    return mask, blocked_by


def explain_failure(item: WorkItem,
                    slots: Sequence[TimeSlot],
                    ledger: CapacityLedger) -> UnscheduledItem:
    """Work out which constraint kept ``item`` out of every slot."""
    minutes = item.minutes
    longest = max((s.total_minutes for s in slots), default=0)
    if longest < minutes:
        return UnscheduledItem(
            item, NO_SLOT_LARGE_ENOUGH,
            f"no slot of sufficient size: needs {minutes} min, "
            f"longest placeable slot this week is {longest} min",
        )

    fitting = [s for s in slots if s.can_hold(minutes)]
    if not fitting:
        return UnscheduledItem(
            item, SLOT_CAPACITY_EXHAUSTED,
            f"insufficient slot capacity: no slot has {minutes} min left",
        )

    _, blocked_by = cap_mask(item, fitting, ledger)
    daily_days = [d for d, cap in blocked_by.items() if cap == DAILY_CAP]
    subject_days = [d for d, cap in blocked_by.items() if cap == SUBJECT_CAP]
    profile = ledger.profile

    if subject_days:
        detail = ", ".join(
            f"{d} {ledger.subject_total(d, item.subject)} min" for d in subject_days
        )
        reason = (
            f"subject cap: {item.subject} limited to {profile.subject_limit(item.subject)} "
            f"min/day ({detail} already placed)"
        )
        if daily_days:
            reason += f"; daily cap of {profile.daily_max_minutes} min reached on {', '.join(daily_days)}"
        return UnscheduledItem(item, SUBJECT_CAP, reason)

    detail = ", ".join(f"{d} {ledger.day_total(d)} min" for d in daily_days)
    return UnscheduledItem(
        item, DAILY_CAP,
        f"daily cap: {profile.daily_max_minutes} min/day ({detail} already placed)",
    )


def placement_scores(item: WorkItem, slots: Sequence[TimeSlot], settings: EngineSettings) -> np.ndarray:
    """Lower is better: earlier weekday, flexible study slots slightly preferred."""
    w = settings.weights
    day_index = np.array([s.day_index for s in slots], dtype=float)
    flexible = np.array([s.flexible for s in slots], dtype=bool)

    scores = day_index * w.weekday_step
    if item.minutes < settings.quick_win_max_minutes:
        scores = scores - w.quick_item_penalty
    scores = scores - np.where(flexible, w.flexible_slot_bonus, 0.0)
    return scores


def place_items(items: Sequence[WorkItem],
                inventory: SlotInventory,
                ledger: CapacityLedger,
                settings: Optional[EngineSettings] = None) -> PhaseOutcome:
    """
    Greedy placement in backlog order. Each item takes the lowest-scoring slot
    that has room and keeps the day and subject totals under their ceilings.
    Placements are never revisited.
    """
    settings = settings or EngineSettings()
    slots = inventory.slots()
    outcome = PhaseOutcome()

    for item in items:
        minutes = item.minutes
        if not slots:
            outcome.unscheduled.append(explain_failure(item, slots, ledger))
            continue

        remaining = np.array([s.remaining_minutes for s in slots])
        caps_ok, _ = cap_mask(item, slots, ledger)
        candidates = (remaining >= minutes) & caps_ok

        if not candidates.any():
            miss = explain_failure(item, slots, ledger)
            logger.debug("Unscheduled %s: %s", item.id, miss.reason)
            outcome.unscheduled.append(miss)
            continue

        scores = np.where(candidates, placement_scores(item, slots, settings), np.inf)
        best = int(np.argmin(scores))  # first minimum = natural slot order
        slot = slots[best]
        slot.place(item.id, item.subject, minutes)
        ledger.add(slot.weekday, item.subject, minutes)

        reason = f"earliest slot with room ({slot.remaining_minutes} min left after)"
        if slot.flexible:
            reason += "; flexible study block"
        elif slot.subject == item.subject:
            reason += f"; {slot.subject} block"

        logger.debug("Placed %s (%d min) in %s #%d", item.id, minutes, slot.weekday, slot.ordinal)
        outcome.scheduled.append(Placement(
            item=item,
            weekday=slot.weekday,
            slot_ordinal=slot.ordinal,
            start_time=slot.start,
            end_time=slot.end,
            phase=PHASE_ANCHOR,
            reason=reason,
            score=float(scores[best]),
            day_date=slot.day_date,
        ))

    return outcome
