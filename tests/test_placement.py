from capacity_scheduler.capacity import CapacityLedger, CapacityProfile
from capacity_scheduler.models import (
    DAILY_CAP,
    NO_SLOT_LARGE_ENOUGH,
    PHASE_ANCHOR,
    SLOT_CAPACITY_EXHAUSTED,
    SUBJECT_CAP,
    PriorityTier,
    WorkItem,
)
from capacity_scheduler.placement import place_items, placement_scores
from capacity_scheduler.settings import EngineSettings, ScoringWeights


def _item(item_id, title, minutes, subject="Math", tier=PriorityTier.CRITICAL):
    return WorkItem(id=item_id, title=title, subject=subject,
                    duration_minutes=minutes, priority=tier)


def test_items_spill_to_next_day_when_slot_is_too_full(inventory_from, block, roomy_profile):
    inv = inventory_from({
        "Monday": [block("Monday", 1, "09:00", "10:00")],
        "Tuesday": [block("Tuesday", 1, "09:00", "10:00")],
    })
    items = [_item("u2", "Algebra Unit 2", 45), _item("u3", "Algebra Unit 3", 45)]

    out = place_items(items, inv, CapacityLedger(roomy_profile))

    assert [(p.item.id, p.weekday, p.slot_ordinal) for p in out.scheduled] == [
        ("u2", "Monday", 1),
        ("u3", "Tuesday", 1),
    ]
    assert all(p.phase == PHASE_ANCHOR for p in out.scheduled)
    assert inv.get("Monday", 1).remaining_minutes == 15
    assert inv.get("Tuesday", 1).remaining_minutes == 15
    assert out.unscheduled == []


def test_subject_cap_blocks_even_when_day_has_room(inventory_from, block):
    inv = inventory_from({"Monday": [
        block("Monday", 1, "09:00", "10:00"),
        block("Monday", 2, "10:00", "11:00"),
    ]})
    profile = CapacityProfile("kid", daily_max_minutes=150, per_subject_max_minutes=75)
    items = [_item("m1", "Math Unit 1", 60), _item("m2", "Math Unit 2", 60)]

    out = place_items(items, inv, CapacityLedger(profile))

    assert [p.item.id for p in out.scheduled] == ["m1"]
    assert len(out.unscheduled) == 1
    miss = out.unscheduled[0]
    assert miss.item.id == "m2"
    assert miss.reason_code == SUBJECT_CAP
    assert "subject cap" in miss.reason
    assert inv.get("Monday", 2).remaining_minutes == 60


def test_other_subjects_still_fit_under_daily_cap(inventory_from, block):
    inv = inventory_from({"Monday": [
        block("Monday", 1, "09:00", "10:00"),
        block("Monday", 2, "10:00", "11:00"),
    ]})
    profile = CapacityProfile("kid", daily_max_minutes=150, per_subject_max_minutes=75)
    items = [_item("m1", "Math Unit 1", 60), _item("h1", "History reading", 60, subject="History")]

    out = place_items(items, inv, CapacityLedger(profile))
    assert [p.item.id for p in out.scheduled] == ["m1", "h1"]


def test_daily_cap_reason(inventory_from, block):
    inv = inventory_from({"Monday": [
        block("Monday", 1, "09:00", "10:00"),
        block("Monday", 2, "10:00", "11:00"),
    ]})
    profile = CapacityProfile("kid", daily_max_minutes=90, per_subject_max_minutes=90)
    items = [_item("m1", "Math", 60), _item("h1", "History", 60, subject="History")]

    out = place_items(items, inv, CapacityLedger(profile))

    assert out.unscheduled[0].reason_code == DAILY_CAP
    assert "daily cap" in out.unscheduled[0].reason


def test_item_longer_than_any_slot(inventory_from, block, roomy_profile):
    inv = inventory_from({day: [block(day, 1, "09:00", "10:00")]
                          for day in ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday")})

    out = place_items([_item("big", "Science fair board", 90)], inv, CapacityLedger(roomy_profile))

    assert out.scheduled == []
    miss = out.unscheduled[0]
    assert miss.reason_code == NO_SLOT_LARGE_ENOUGH
    assert "no slot of sufficient size" in miss.reason
    assert "60 min" in miss.reason


def test_size_exists_but_slots_already_filled(inventory_from, block, roomy_profile):
    inv = inventory_from({"Monday": [block("Monday", 1, "09:00", "10:00")]})
    items = [_item("a", "Math A", 40), _item("b", "Math B", 40)]

    out = place_items(items, inv, CapacityLedger(roomy_profile))

    assert out.unscheduled[0].reason_code == SLOT_CAPACITY_EXHAUSTED


def test_no_slots_at_all(inventory_from, roomy_profile):
    inv = inventory_from({})
    out = place_items([_item("a", "Math A", 40)], inv, CapacityLedger(roomy_profile))
    assert out.unscheduled[0].reason_code == NO_SLOT_LARGE_ENOUGH


def test_flexible_slot_preferred_over_subject_slot_same_day(inventory_from, block, roomy_profile):
    inv = inventory_from({"Monday": [
        block("Monday", 1, "09:00", "10:00", subject="Math"),
        block("Monday", 2, "10:00", "11:00"),
    ]})

    out = place_items([_item("a", "Math A", 40)], inv, CapacityLedger(roomy_profile))

    assert out.scheduled[0].slot_ordinal == 2
    assert "flexible" in out.scheduled[0].reason


def test_earlier_day_beats_flexible_bonus(inventory_from, block, roomy_profile):
    inv = inventory_from({
        "Monday": [block("Monday", 1, "09:00", "10:00", subject="Math")],
        "Tuesday": [block("Tuesday", 1, "09:00", "10:00")],
    })

    out = place_items([_item("a", "Math A", 40)], inv, CapacityLedger(roomy_profile))

    assert out.scheduled[0].weekday == "Monday"


def test_scores_follow_configured_weights(inventory_from, block):
    inv = inventory_from({
        "Monday": [block("Monday", 1, "09:00", "10:00", subject="Math")],
        "Wednesday": [block("Wednesday", 1, "09:00", "10:00")],
    })
    slots = inv.slots()

    default = placement_scores(_item("q", "Quick", 10), slots, EngineSettings())
    assert list(default) == [-5.0, 20.0 - 5.0 - 2.0]

    custom = EngineSettings(weights=ScoringWeights(weekday_step=1.0, flexible_slot_bonus=5.0))
    scores = placement_scores(_item("l", "Long", 40), slots, custom)
    assert list(scores) == [0.0, 2.0 - 5.0]


def test_ties_break_on_natural_slot_order(inventory_from, block, roomy_profile):
    inv = inventory_from({"Monday": [
        block("Monday", 3, "13:00", "14:00"),
        block("Monday", 1, "09:00", "10:00"),
    ]})
    out = place_items([_item("a", "Math A", 30)], inv, CapacityLedger(roomy_profile))
    assert out.scheduled[0].slot_ordinal == 1
