# capacity_scheduler/invariants.py
from typing import List

import pandas as pd

from .capacity import CapacityProfile
from .inventory import SlotInventory
from .models import SchedulingResult


def check_invariants(result: SchedulingResult,
                     inventory: SlotInventory,
                     profile: CapacityProfile) -> List[str]:
    """
    Re-derive slot, day and subject totals from the final inventory and the
    result and report every broken rule. An empty list means the run is sound.
    """
    violations: List[str] = []

    placed_ids = [p.item.id for p in result.scheduled]
    placed = set(placed_ids)
    dupes = sorted({i for i in placed_ids if placed_ids.count(i) > 1})
    if dupes:
        violations.append(f"items placed more than once: {', '.join(dupes)}")
    both = sorted(set(placed_ids) & {u.item.id for u in result.unscheduled})
    if both:
        violations.append(f"items both scheduled and unscheduled: {', '.join(both)}")

    slots = inventory.to_frame()
    if not slots.empty:
        over = slots[(slots["used_minutes"] > slots["total_minutes"]) | (slots["remaining_minutes"] < 0)]
        for _, r in over.iterrows():
            violations.append(
                f"slot {r['weekday']} #{r['slot']} holds {r['used_minutes']} of {r['total_minutes']} min"
            )

    keys = {(s.weekday, s.ordinal) for s in inventory.slots()}
    for p in result.scheduled:
        if (p.weekday, p.slot_ordinal) not in keys:
            violations.append(f"item {p.item.id} placed outside a placeable slot ({p.weekday} #{p.slot_ordinal})")

    # Totals include minutes already in the slots; a group only counts as
    # broken when this run added to it.
    entries = pd.DataFrame(
        [{"weekday": s.weekday, "subject": e.subject, "minutes": e.minutes,
          "placed": e.item_id in placed}
         for s in inventory.slots() for e in s.items],
        columns=["weekday", "subject", "minutes", "placed"],
    )
    if entries.empty:
        return violations

    by_day = entries.groupby("weekday").agg(minutes=("minutes", "sum"), placed=("placed", "any"))
    for day, row in by_day.iterrows():
        minutes = int(row["minutes"])
        if row["placed"] and minutes > profile.daily_max_minutes:
            violations.append(f"{day} totals {minutes} min, above the {profile.daily_max_minutes} min daily cap")

    by_subject = entries.groupby(["weekday", "subject"]).agg(minutes=("minutes", "sum"), placed=("placed", "any"))
    for (day, subject), row in by_subject.iterrows():
        minutes = int(row["minutes"])
        limit = profile.subject_limit(subject)
        if row["placed"] and minutes > limit:
            violations.append(f"{subject} on {day} totals {minutes} min, above its {limit} min cap")

    return violations
