# capacity_scheduler/engine.py
import logging
from contextlib import nullcontext
from datetime import date
from typing import Any, Callable, ContextManager, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .capacity import CapacityLedger, CapacityProfile, distribution_warnings
from .classifier import classify_backlog
from .errors import InvariantViolation
from .intelligence import normalize_backlog
from .invariants import check_invariants
from .inventory import SlotInventory, StructureLookup, build_slot_inventory, week_days
from .metrics import ITEMS_PLACED, ITEMS_UNSCHEDULED, SCHEDULE_TIME
from .models import (
    ExistingPlacement,
    Placement,
    SchedulingResult,
    UnscheduledItem,
    WorkItem,
)
from .placement import place_items
from .quick_wins import place_quick_wins
from .settings import EngineSettings

logger = logging.getLogger(__name__)

BacklogLookup = Callable[[str, Tuple[date, date]], Iterable[Mapping[str, Any]]]
ProfileLookup = Callable[[str], Union[CapacityProfile, Mapping[str, Any]]]
Guard = Callable[[str, date], ContextManager]


def _seed_ledger(profile: CapacityProfile, inventory: SlotInventory) -> Tuple[CapacityLedger, List[str]]:
    """Ledger pre-loaded with whatever already sits in the slots."""
    ledger = CapacityLedger(profile)
    for slot in inventory.slots():
        for entry in slot.items:
            ledger.add(slot.weekday, entry.subject, entry.minutes)

    warnings = []
    for day, minutes in ledger.minutes_by_day().items():
        if minutes > profile.daily_max_minutes:
            warnings.append(
                f"{day} already holds {minutes} min, above the {profile.daily_max_minutes} min daily cap"
            )
    return ledger, warnings


def _dedupe(backlog: Sequence[WorkItem], inventory: SlotInventory) -> Tuple[List[WorkItem], List[str]]:
    already_placed = {e.item_id for s in inventory.slots() for e in s.items}
    seen = set()
    items, warnings = [], []
    for item in backlog:
        if item.id in already_placed:
            warnings.append(f"Item {item.id} is already in a slot this week; not placed again")
            continue
        if item.id in seen:
            warnings.append(f"Item {item.id} appears twice in the backlog; using the first copy")
            continue
        seen.add(item.id)
        items.append(item)
    return items, warnings


def _due_date_warnings(scheduled: Iterable[Placement]) -> List[str]:
    out = []
    for p in scheduled:
        if p.day_date and p.item.due_date and p.day_date > p.item.due_date:
            out.append(
                f"'{p.item.title}' is due {p.item.due_date.isoformat()} but lands on "
                f"{p.weekday} {p.day_date.isoformat()}"
            )
    return out


def generate_schedule(person: str,
                      backlog: Sequence[WorkItem],
                      inventory: SlotInventory,
                      profile: CapacityProfile,
                      *,
                      as_of: date,
                      settings: Optional[EngineSettings] = None,
                      not_schedulable: Sequence[UnscheduledItem] = ()) -> SchedulingResult:
    """
    Allocate one person's backlog into the week's slots.

    Heavy items (longer than the quick-win threshold) are anchored first in
    priority order; quick items then fill the gaps. With the quick-win pass
    disabled every item goes through the anchor pass.

    The inventory is mutated in place and belongs to this run only.

    Returns:
        SchedulingResult with placements, unscheduled items (with reasons)
        and human-readable warnings.
    """
    settings = settings or EngineSettings()

    with SCHEDULE_TIME.time():
        warnings: List[str] = list(inventory.warnings)

        ledger, seed_warnings = _seed_ledger(profile, inventory)
        warnings += seed_warnings

        items, dedupe_warnings = _dedupe(backlog, inventory)
        warnings += dedupe_warnings

        ordered = classify_backlog(items, as_of, settings)
        if settings.quick_win_pass:
            heavy = [i for i in ordered if i.minutes > settings.quick_win_max_minutes]
            quick = [i for i in ordered if i.minutes <= settings.quick_win_max_minutes]
        else:
            heavy, quick = ordered, []

        anchored = place_items(heavy, inventory, ledger, settings)
        quick_wins = place_quick_wins(quick, inventory, ledger, settings)

        scheduled = anchored.scheduled + quick_wins.scheduled
        unscheduled = list(not_schedulable) + anchored.unscheduled + quick_wins.unscheduled

        warnings += _due_date_warnings(scheduled)
        placeable = len(anchored.unscheduled) + len(quick_wins.unscheduled)
        if placeable:
            warnings.append(f"{placeable} item(s) could not be placed this week; schedule them manually")
        warnings += distribution_warnings(profile, ledger.minutes_by_day(), inventory.weekdays)

        result = SchedulingResult(
            person=person,
            scheduled=tuple(scheduled),
            unscheduled=tuple(unscheduled),
            warnings=tuple(warnings),
        )

        violations = check_invariants(result, inventory, profile)
        if violations:
            logger.error("Schedule for %s broke %d invariant(s): %s", person, len(violations), violations)
            raise InvariantViolation(violations)

    for p in result.scheduled:
        ITEMS_PLACED.labels(phase=p.phase).inc()
    for u in result.unscheduled:
        ITEMS_UNSCHEDULED.labels(reason=u.reason_code).inc()

    logger.info(
        "Scheduled %d of %d item(s) for %s (%d anchored, %d quick wins, %d left over)",
        len(result.scheduled), len(ordered), person,
        len(anchored.scheduled), len(quick_wins.scheduled), placeable,
    )
    return result


def schedule_week(person: str,
                  *,
                  structure_lookup: StructureLookup,
                  backlog_lookup: BacklogLookup,
                  profile_lookup: ProfileLookup,
                  week_start: date,
                  as_of: Optional[date] = None,
                  existing: Sequence[ExistingPlacement] = (),
                  settings: Optional[EngineSettings] = None,
                  guard: Optional[Guard] = None,
                  commit: Optional[Callable[[SchedulingResult], None]] = None) -> SchedulingResult:
    """
    Pull the person's structure, backlog and capacity from the collaborators
    and run one allocation for the Monday-Friday week containing ``week_start``.

    guard: factory for the per-(person, week) lock; it is held for the whole
           run and for ``commit``, so persisted results never interleave with
           another run for the same week.
    commit: called with the result while the guard is still held.
    """
    days = week_days(week_start)
    monday, friday = days[0][1], days[-1][1]
    as_of = as_of or date.today()
    lock = guard(person, monday) if guard is not None else nullcontext()

    with lock:
        profile = profile_lookup(person)
        if not isinstance(profile, CapacityProfile):
            profile = CapacityProfile.from_record(person, profile)

        items, skipped = normalize_backlog(backlog_lookup(person, (monday, friday)), today=as_of)
        inventory = build_slot_inventory(person, structure_lookup, existing, week_start=monday)

        result = generate_schedule(
            person, items, inventory, profile,
            as_of=as_of, settings=settings, not_schedulable=skipped,
        )
        if commit is not None:
            commit(result)
    return result
