# capacity_scheduler/classifier.py
import logging
import re
from dataclasses import replace
from datetime import date
from functools import cmp_to_key
from typing import Iterable, List, Optional, Tuple

from .models import DIFFICULTIES, PriorityTier, WorkItem
from .settings import EngineSettings

logger = logging.getLogger(__name__)

_SEQUENCE_RE = re.compile(r"\b(?:unit|module|chapter|lesson|page)\s*#?\s*(\d+)", re.I)
_NUMBER_RE = re.compile(r"\d+")
_ASSESSMENT_RE = re.compile(r"\b(?:quiz|quizzes|test|exam)\b", re.I)
_HARD_WORK_RE = re.compile(r"\b(?:essay|project|report)\b", re.I)

ASSESSMENT_CATEGORIES = {"quiz", "quizzes", "test", "tests", "exam", "exams"}
HARD_MINUTES = 60


def extract_sequence(title: str) -> Tuple[int, ...]:
    """Numbers that order a title within its series.

    "Unit 2 Lesson 3" -> (2, 3); the first Unit/Module/Chapter/Lesson/Page
    marker leads, followed by any numbers after it. Titles without a marker
    use every integer they contain.
    """
    title = title or ""
    m = _SEQUENCE_RE.search(title)
    if m:
        rest = _NUMBER_RE.findall(title[m.end():])
        return (int(m.group(1)),) + tuple(int(n) for n in rest)
    return tuple(int(n) for n in _NUMBER_RE.findall(title))


def compare_sequence(a: WorkItem, b: WorkItem) -> int:
    """Numeric comparison when both titles carry numbers, case-insensitive
    title order when neither does. Numbered titles sort before unnumbered ones.
    """
    if a.sequence and b.sequence:
        if a.sequence == b.sequence:
            return 0
        return -1 if a.sequence < b.sequence else 1
    if a.sequence or b.sequence:
        return -1 if a.sequence else 1
    ta, tb = a.title.casefold(), b.title.casefold()
    if ta == tb:
        return 0
    return -1 if ta < tb else 1


def is_assessment(item: WorkItem) -> bool:
    if item.category and str(item.category).strip().lower() in ASSESSMENT_CATEGORIES:
        return True
    return bool(_ASSESSMENT_RE.search(item.title or ""))


def derive_priority(item: WorkItem, as_of: date, settings: EngineSettings) -> PriorityTier:
    if item.priority is not None:
        return item.priority

    if item.due_date is None:
        tier = PriorityTier.FLEXIBLE
    else:
        days_left = (item.due_date - as_of).days
        if days_left <= settings.critical_within_days:
            tier = PriorityTier.CRITICAL
        elif days_left <= settings.important_within_days:
            tier = PriorityTier.IMPORTANT
        else:
            tier = PriorityTier.FLEXIBLE

    heavy_points = item.points is not None and item.points >= settings.points_bump_threshold
    if heavy_points or is_assessment(item):
        tier = tier.bumped()
    return tier


def derive_difficulty(item: WorkItem, minutes: int, settings: EngineSettings) -> str:
    if item.difficulty in DIFFICULTIES:
        return item.difficulty
    if item.difficulty:
        logger.debug("Item %s: unknown difficulty %r, deriving", item.id, item.difficulty)
    if is_assessment(item) or _HARD_WORK_RE.search(item.title or ""):
        return "hard"
    if minutes <= settings.quick_win_max_minutes:
        return "easy"
    if minutes >= HARD_MINUTES:
        return "hard"
    return "medium"


def classify_item(item: WorkItem, as_of: date, settings: EngineSettings) -> WorkItem:
    minutes = item.duration_minutes or settings.default_duration_minutes
    return replace(
        item,
        duration_minutes=int(minutes),
        priority=derive_priority(item, as_of, settings),
        difficulty=derive_difficulty(item, minutes, settings),
        sequence=extract_sequence(item.title),
    )


def _backlog_cmp(a: WorkItem, b: WorkItem) -> int:
    if a.priority != b.priority:
        return -1 if a.priority < b.priority else 1
    c = compare_sequence(a, b)
    if c:
        return c
    # Undated items after dated ones.
    da: Optional[date] = a.due_date
    db: Optional[date] = b.due_date
    if da != db:
        if da is None:
            return 1
        if db is None:
            return -1
        return -1 if da < db else 1
    ta, tb = a.title.casefold(), b.title.casefold()
    if ta != tb:
        return -1 if ta < tb else 1
    if a.id != b.id:
        return -1 if a.id < b.id else 1
    return 0


def sort_backlog(items: Iterable[WorkItem]) -> List[WorkItem]:
    return sorted(items, key=cmp_to_key(_backlog_cmp))


def classify_backlog(items: Iterable[WorkItem],
                     as_of: date,
                     settings: Optional[EngineSettings] = None) -> List[WorkItem]:
    """Resolve tier, difficulty, duration and sequence, then sort by
    (tier, sequence, due date)."""
    settings = settings or EngineSettings()
    classified = [classify_item(it, as_of, settings) for it in items]
    return sort_backlog(classified)
