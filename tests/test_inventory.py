from datetime import date, time

import pandas as pd
import pytest

from capacity_scheduler.errors import MalformedSlotError
from capacity_scheduler.inventory import (
    StructureStore,
    build_slot_inventory,
    parse_clock,
    week_days,
)
from capacity_scheduler.models import ExistingPlacement


def test_placeable_blocks_become_slots_with_durations(inventory_from, block):
    inv = inventory_from({
        "Monday": [
            block("Monday", None, "08:00", "08:20", subject="Bible", block_type="Bible"),
            block("Monday", 1, "08:30", "09:30", subject="Math"),
            block("Monday", 2, "09:40:00", "10:25:00"),
            block("Monday", None, "11:30", "12:15", subject="Lunch", block_type="Lunch"),
        ],
    })

    slots = inv.days["Monday"]
    assert [s.ordinal for s in slots] == [1, 2]
    assert [s.total_minutes for s in slots] == [60, 45]
    assert [s.remaining_minutes for s in slots] == [60, 45]
    assert slots[0].subject == "Math" and not slots[0].flexible
    assert slots[1].subject is None and slots[1].flexible
    assert slots[0].day_date == date(2025, 11, 3)
    assert inv.days["Friday"] == []


def test_existing_placements_consume_minutes(inventory_from, block):
    existing = [ExistingPlacement("done-1", "Monday", 1, 50, "Math")]
    inv = inventory_from({"Monday": [block("Monday", 1, "08:30", "09:30")]}, existing=existing)

    slot = inv.get("Monday", 1)
    assert slot.used_minutes == 50
    assert slot.remaining_minutes == 10
    assert [e.item_id for e in slot.items] == ["done-1"]


def test_overbooked_existing_placement_is_clamped(inventory_from, block):
    existing = [
        ExistingPlacement("a", "Monday", 1, 40, "Math"),
        ExistingPlacement("b", "Monday", 1, 40, "Math"),
        ExistingPlacement("c", "Tuesday", 9, 10, "Math"),
    ]
    inv = inventory_from({"Monday": [block("Monday", 1, "08:30", "09:30")]}, existing=existing)

    slot = inv.get("Monday", 1)
    assert slot.used_minutes == 60
    assert slot.remaining_minutes == 0
    assert any("overbooked" in w for w in inv.warnings)
    assert any("unknown slot" in w for w in inv.warnings)


def test_inverted_block_fails_the_build(inventory_from, block):
    with pytest.raises(MalformedSlotError) as exc:
        inventory_from({"Tuesday": [block("Tuesday", 1, "10:00", "09:30")]})
    assert exc.value.weekday == "Tuesday"


def test_sub_minute_block_is_reported_as_too_short(inventory_from, block):
    with pytest.raises(MalformedSlotError) as exc:
        inventory_from({"Monday": [block("Monday", 1, "09:00:30", "09:01:00")]})
    assert "shorter than one minute" in str(exc.value)
    assert "at or before" not in str(exc.value)


def test_malformed_fixed_block_also_fails(inventory_from, block):
    with pytest.raises(MalformedSlotError):
        inventory_from({"Monday": [block("Monday", None, "noon", "13:00", block_type="Lunch")]})


def test_duplicate_block_numbers_fail(inventory_from, block):
    with pytest.raises(MalformedSlotError):
        inventory_from({"Monday": [
            block("Monday", 1, "08:00", "09:00"),
            block("Monday", 1, "10:00", "11:00"),
        ]})


def test_unnumbered_placeable_blocks_get_fallback_ordinals(inventory_from, block):
    inv = inventory_from({"Wednesday": [
        block("Wednesday", None, "14:00", "14:30"),
        block("Wednesday", 2, "09:00", "10:00"),
        block("Wednesday", None, "13:00", "13:45"),
    ]})

    slots = inv.days["Wednesday"]
    assert [(s.ordinal, s.numbered) for s in slots] == [(2, True), (3, False), (4, False)]
    assert slots[1].start == time(13, 0)
    assert len([w for w in inv.warnings if "no block number" in w]) == 2


@pytest.mark.parametrize("text,expected", [
    ("9:05", time(9, 5)),
    ("09:05:30", time(9, 5, 30)),
    (" 23:59 ", time(23, 59)),
])
def test_parse_clock(text, expected):
    assert parse_clock(text) == expected


@pytest.mark.parametrize("text", ["", "24:00", "9", "9:75", None, "nan"])
def test_parse_clock_rejects_garbage(text):
    with pytest.raises(MalformedSlotError):
        parse_clock(text)


def test_week_days_from_any_day_in_week():
    days = week_days(date(2025, 11, 6))  # Thursday
    assert days[0] == ("Monday", date(2025, 11, 3))
    assert days[-1] == ("Friday", date(2025, 11, 7))
    assert len(days) == 5


def test_structure_store_reads_template_csv(tmp_path):
    path = tmp_path / "template.csv"
    path.write_text(
        "student_name,weekday,block_number,start_time,end_time,subject,block_type\n"
        "Khalil,Monday,,08:00:00,08:20:00,Bible,Bible\n"
        "Khalil,Monday,1,08:30:00,09:15:00,Assignment,Assignment\n"
        "Khalil,Monday,2,09:15:00,10:00:00,Math,Assignment\n"
        "Abigail,Monday,1,08:30:00,09:00:00,Assignment,Assignment\n",
        encoding="utf-8",
    )
    store = StructureStore.from_csv(path)

    blocks = store.get_daily_structure("khalil", "Monday")
    assert [b.ordinal for b in blocks] == [None, 1, 2]
    assert blocks[0].block_type == "Bible"
    assert blocks[2].subject == "Math"

    inv = build_slot_inventory("Khalil", store)
    assert [s.total_minutes for s in inv.days["Monday"]] == [45, 45]
    assert inv.days["Tuesday"] == []


def test_structure_store_requires_template_columns():
    with pytest.raises(ValueError):
        StructureStore(pd.DataFrame({"weekday": ["Monday"]}))


def test_inventory_frame(inventory_from, block):
    inv = inventory_from({"Monday": [block("Monday", 1, "08:30", "09:30")]})
    df = inv.to_frame()
    assert list(df["remaining_minutes"]) == [60]
    assert list(df["start"]) == ["08:30"]
