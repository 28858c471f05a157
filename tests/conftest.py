from datetime import date

import pytest

from capacity_scheduler.capacity import CapacityProfile
from capacity_scheduler.inventory import build_slot_inventory
from capacity_scheduler.models import StructureBlock

MONDAY = date(2025, 11, 3)


def _block(weekday, ordinal, start, end, subject="Assignment", block_type="Assignment"):
    return StructureBlock(weekday=weekday, ordinal=ordinal, start_time=start,
                          end_time=end, subject=subject, block_type=block_type)


@pytest.fixture
def block():
    return _block


@pytest.fixture
def lookup_from():
    """Turn {weekday: [StructureBlock, ...]} into a GetDailyStructure callable."""
    def make(days):
        def lookup(person, weekday):
            return list(days.get(weekday, []))
        return lookup
    return make


@pytest.fixture
def inventory_from(lookup_from):
    def make(days, existing=(), week_start=MONDAY):
        return build_slot_inventory("kid", lookup_from(days), existing, week_start=week_start)
    return make


@pytest.fixture
def roomy_profile():
    return CapacityProfile(person="kid", daily_max_minutes=600, per_subject_max_minutes=600)
