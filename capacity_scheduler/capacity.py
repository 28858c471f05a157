# capacity_scheduler/capacity.py
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .models import DAILY_CAP, SUBJECT_CAP

logger = logging.getLogger(__name__)

DISTRIBUTIONS = ("even", "front-loaded", "light-end")

# Spread between heaviest and lightest day tolerated under "even".
EVEN_SPREAD_MINUTES = 60


@dataclass(frozen=True)
class CapacityProfile:
    person: str
    daily_max_minutes: int
    per_subject_max_minutes: int
    subject_limits: Mapping[str, int] = field(default_factory=dict)
    distribution: str = "even"  # advisory only

    def __post_init__(self):
        if self.daily_max_minutes < 0 or self.per_subject_max_minutes < 0:
            raise ValueError("capacity ceilings must be non-negative")
        if self.distribution not in DISTRIBUTIONS:
            raise ValueError(
                f"distribution must be one of {', '.join(DISTRIBUTIONS)}, got {self.distribution!r}"
            )

    @classmethod
    def from_record(cls, person: str, record: Mapping) -> "CapacityProfile":
        """Build from a GetCapacityProfile record (camelCase or snake_case)."""
        def pick(*names, default=None):
            for n in names:
                if record.get(n) is not None:
                    return record[n]
            return default

        daily = pick("dailyMaxMinutes", "daily_max_minutes")
        per_subject = pick("perSubjectMaxMinutes", "per_subject_max_minutes")
        if daily is None or per_subject is None:
            raise ValueError(f"capacity profile for {person} is missing its ceilings")
        return cls(
            person=person,
            daily_max_minutes=int(daily),
            per_subject_max_minutes=int(per_subject),
            subject_limits={str(k): int(v) for k, v in (pick("subjectLimits", "subject_limits", default={})).items()},
            distribution=str(pick("distribution", "distributionPreference", default="even")),
        )

    def subject_limit(self, subject: str) -> int:
        return int(self.subject_limits.get(subject, self.per_subject_max_minutes))


class CapacityLedger:
    """Running per-day and per-(day, subject) minute totals for one run."""

    def __init__(self, profile: CapacityProfile):
        self.profile = profile
        self._by_day: Dict[str, int] = defaultdict(int)
        self._by_subject: Dict[Tuple[str, str], int] = defaultdict(int)

    def day_total(self, day: str) -> int:
        return self._by_day.get(day, 0)

    def subject_total(self, day: str, subject: str) -> int:
        return self._by_subject.get((day, subject), 0)

    def blocking_cap(self, day: str, subject: str, minutes: int) -> Optional[str]:
        """Which ceiling adding ``minutes`` would breach, or None if both hold."""
        if self.day_total(day) + minutes > self.profile.daily_max_minutes:
            return DAILY_CAP
        if self.subject_total(day, subject) + minutes > self.profile.subject_limit(subject):
            return SUBJECT_CAP
        return None

    def add(self, day: str, subject: str, minutes: int) -> None:
        self._by_day[day] += minutes
        self._by_subject[(day, subject)] += minutes

    def minutes_by_day(self) -> Dict[str, int]:
        return dict(self._by_day)


def distribution_warnings(profile: CapacityProfile,
                          minutes_by_day: Mapping[str, int],
                          weekdays: Sequence[str]) -> List[str]:
    """Advisory notes when the produced load contradicts the distribution preference."""
    totals = [int(minutes_by_day.get(d, 0)) for d in weekdays]
    if not totals or sum(totals) == 0:
        return []

    warnings: List[str] = []
    if profile.distribution == "even":
        heavy = max(range(len(totals)), key=lambda i: totals[i])
        light = min(range(len(totals)), key=lambda i: totals[i])
        if totals[heavy] - totals[light] > EVEN_SPREAD_MINUTES:
            warnings.append(
                f"Load is uneven for an 'even' preference: {weekdays[heavy]} has "
                f"{totals[heavy]} min, {weekdays[light]} has {totals[light]} min"
            )
    elif profile.distribution == "front-loaded":
        half = len(totals) // 2
        early = sum(totals[:half])
        late = sum(totals[-half:]) if half else 0
        if late > early:
            warnings.append(
                f"Load is not front-loaded: {late} min late in the week vs {early} min early"
            )
    elif profile.distribution == "light-end":
        if len(totals) > 1:
            others = sum(totals[:-1]) / (len(totals) - 1)
            if totals[-1] > others:
                warnings.append(
                    f"{weekdays[-1]} carries {totals[-1]} min, above the "
                    f"{others:.0f} min average of the other days"
                )
    return warnings
