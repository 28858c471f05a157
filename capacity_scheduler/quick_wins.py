# capacity_scheduler/quick_wins.py
"""Second pass: tuck short items into the gaps left by the anchor pass.

Every (item, slot) pair with room gets a confidence score; pairs are
committed best-first, re-checking the slot and the capacity ceilings at
commit time because earlier commits shrink what is left.
"""
import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .capacity import CapacityLedger
from .inventory import SlotInventory
from .models import PHASE_QUICK_WIN, Placement, TimeSlot, WorkItem
from .placement import PhaseOutcome, cap_mask, explain_failure
from .settings import EngineSettings

logger = logging.getLogger(__name__)

BREAK_BETWEEN_LONG_TASKS = "break between long tasks"
FILLS_SMALL_GAP = "fills a small gap precisely"
MOMENTUM_BUILDER = "momentum builder"
SUBJECT_DIVERSITY = "subject diversity"
EARLY_WEEK = "earlier in week"


def confidence_scores(item: WorkItem,
                      slots: Sequence[TimeSlot],
                      settings: EngineSettings) -> Tuple[np.ndarray, List[List[str]]]:
    """Confidence (higher is better) of ``item`` in each slot, with the reasons that fired."""
    w = settings.weights
    minutes = item.minutes

    remaining = np.array([s.remaining_minutes for s in slots])
    has_long = np.array([any(e.minutes > settings.long_task_minutes for e in s.items) for s in slots], dtype=bool)
    close_fit = (remaining >= minutes) & (remaining - minutes <= settings.gap_tolerance_minutes)
    momentum = np.array([not s.items for s in slots], dtype=bool) & (minutes <= settings.momentum_max_minutes)
    diverse = np.array([all(e.subject != item.subject for e in s.items) for s in slots], dtype=bool)
    early = np.array([s.weekday in settings.early_week_days for s in slots], dtype=bool)

    parts = [
        (has_long, w.long_task_break, BREAK_BETWEEN_LONG_TASKS),
        (close_fit, w.gap_fill, FILLS_SMALL_GAP),
        (momentum, w.momentum, MOMENTUM_BUILDER),
        (diverse, w.subject_diversity, SUBJECT_DIVERSITY),
        (early, w.early_week, EARLY_WEEK),
    ]

    scores = np.full(len(slots), w.base_confidence, dtype=float)
    reasons: List[List[str]] = [[] for _ in slots]
    for mask, weight, label in parts:
        scores = scores + np.where(mask, weight, 0.0)
        for i in np.flatnonzero(mask):
            reasons[i].append(label)
    return scores, reasons


def place_quick_wins(items: Sequence[WorkItem],
                     inventory: SlotInventory,
                     ledger: CapacityLedger,
                     settings: Optional[EngineSettings] = None) -> PhaseOutcome:
    settings = settings or EngineSettings()
    slots = inventory.slots()
    outcome = PhaseOutcome()
    if not items:
        return outcome

    # (confidence, backlog position, slot index, reasons)
    candidates = []
    for pos, item in enumerate(items):
        if not slots:
            break
        remaining = np.array([s.remaining_minutes for s in slots])
        caps_ok, _ = cap_mask(item, slots, ledger)
        eligible = (remaining >= item.minutes) & caps_ok
        if not eligible.any():
            continue
        scores, reasons = confidence_scores(item, slots, settings)
        for i in np.flatnonzero(eligible):
            candidates.append((float(scores[i]), pos, int(i), reasons[i]))

    candidates.sort(key=lambda c: (-c[0], c[1], c[2]))

    placed = set()
    for score, pos, slot_idx, reasons in candidates:
        if pos in placed:
            continue
        item = items[pos]
        slot = slots[slot_idx]
        if not slot.can_hold(item.minutes):
            continue
        if ledger.blocking_cap(slot.weekday, item.subject, item.minutes) is not None:
            continue

        slot.place(item.id, item.subject, item.minutes)
        ledger.add(slot.weekday, item.subject, item.minutes)
        placed.add(pos)

        reason = f"quick win (confidence {score:.0f})"
        if reasons:
            reason += ": " + ", ".join(reasons)
        logger.debug("Quick win %s -> %s #%d (%.0f)", item.id, slot.weekday, slot.ordinal, score)
        outcome.scheduled.append(Placement(
            item=item,
            weekday=slot.weekday,
            slot_ordinal=slot.ordinal,
            start_time=slot.start,
            end_time=slot.end,
            phase=PHASE_QUICK_WIN,
            reason=reason,
            score=score,
            day_date=slot.day_date,
        ))

    for pos, item in enumerate(items):
        if pos not in placed:
            outcome.unscheduled.append(explain_failure(item, slots, ledger))

    # Backlog order, not commit order.
    order = {item.id: pos for pos, item in enumerate(items)}
    outcome.scheduled.sort(key=lambda p: order[p.item.id])
    return outcome
