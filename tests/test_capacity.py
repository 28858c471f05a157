import pytest

from capacity_scheduler.capacity import CapacityLedger, CapacityProfile, distribution_warnings
from capacity_scheduler.inventory import WEEKDAYS
from capacity_scheduler.models import DAILY_CAP, SUBJECT_CAP


def test_ledger_reports_which_cap_blocks():
    profile = CapacityProfile("kid", daily_max_minutes=100, per_subject_max_minutes=60)
    ledger = CapacityLedger(profile)
    ledger.add("Monday", "Math", 50)

    assert ledger.blocking_cap("Monday", "Math", 10) is None
    assert ledger.blocking_cap("Monday", "Math", 11) == SUBJECT_CAP
    assert ledger.blocking_cap("Monday", "English", 51) == DAILY_CAP
    assert ledger.blocking_cap("Tuesday", "Math", 60) is None
    assert ledger.day_total("Monday") == 50
    assert ledger.subject_total("Monday", "English") == 0


def test_subject_limit_overrides():
    profile = CapacityProfile("kid", 200, 60, subject_limits={"Math": 90})
    assert profile.subject_limit("Math") == 90
    assert profile.subject_limit("Art") == 60


def test_profile_from_record():
    profile = CapacityProfile.from_record("kid", {
        "dailyMaxMinutes": 180, "perSubjectMaxMinutes": 60,
        "subjectLimits": {"Math": 90}, "distribution": "light-end",
    })
    assert profile.daily_max_minutes == 180
    assert profile.subject_limit("Math") == 90
    assert profile.distribution == "light-end"

    with pytest.raises(ValueError):
        CapacityProfile.from_record("kid", {"dailyMaxMinutes": 180})


def test_profile_validation():
    with pytest.raises(ValueError):
        CapacityProfile("kid", -1, 60)
    with pytest.raises(ValueError):
        CapacityProfile("kid", 100, 60, distribution="random")


def test_distribution_warnings_are_advisory():
    days = list(WEEKDAYS)
    even = CapacityProfile("kid", 300, 100, distribution="even")
    assert distribution_warnings(even, {"Monday": 120, "Tuesday": 100, "Wednesday": 90,
                                        "Thursday": 90, "Friday": 80}, days) == []
    assert "uneven" in distribution_warnings(even, {"Monday": 200}, days)[0]

    front = CapacityProfile("kid", 300, 100, distribution="front-loaded")
    assert distribution_warnings(front, {"Monday": 120, "Friday": 30}, days) == []
    assert distribution_warnings(front, {"Thursday": 120}, days)

    light_end = CapacityProfile("kid", 300, 100, distribution="light-end")
    assert distribution_warnings(light_end, {"Monday": 60, "Tuesday": 60, "Wednesday": 60,
                                             "Thursday": 60, "Friday": 20}, days) == []
    assert "Friday" in distribution_warnings(light_end, {"Monday": 60, "Friday": 90}, days)[0]

    assert distribution_warnings(even, {}, days) == []
