# capacity_scheduler/intelligence.py
"""Normalize raw backlog records into WorkItem values.

Records arrive from the item store / LMS import with loosely typed fields
(camelCase from the web layer, snake_case from the database). Everything
optional is resolved to an explicit ``None`` here so the scheduling passes
never inspect raw dictionaries.
"""
import logging
import re
from datetime import date, datetime
from typing import Any, Iterable, List, Mapping, Optional, Tuple

import pandas as pd

from .models import NOT_SCHEDULABLE, PriorityTier, UnscheduledItem, WorkItem

logger = logging.getLogger(__name__)

_DUE_PATTERNS = [
    re.compile(r"due\s+(\d{1,2}/\d{1,2}(?:/\d{2,4})?)", re.I),       # "Due 9/1", "Due 9/1/24"
    re.compile(r"due\s+(\d{1,2}-\d{1,2}(?:-\d{2,4})?)", re.I),       # "Due 9-1"
    re.compile(r"(\d{1,2}/\d{1,2}(?:/\d{2,4})?)\s*due", re.I),       # "9/1 Due"
    re.compile(r"homework\s+(\d{1,2}/\d{1,2}(?:/\d{2,4})?)", re.I),  # "Homework 9/1"
    re.compile(r"assignment\s+(\d{1,2}/\d{1,2}(?:/\d{2,4})?)", re.I),
]

_IN_CLASS_PATTERNS = [
    re.compile(r"^in\s+class", re.I),
    re.compile(r"^class\s+\d{1,2}/\d{1,2}", re.I),
    re.compile(r"in-class", re.I),
    re.compile(r"during\s+class", re.I),
    re.compile(r"class\s+activity", re.I),
    re.compile(r"class\s+work", re.I),
]

_MAKEUP_RE = re.compile(r"make-?up", re.I)

# A year-less date further than this in the past is read as next year.
PAST_DATE_ROLLOVER_DAYS = 120

SCHEDULABLE_STATUSES = {"pending", "needs_more_time"}
DONE_STATUSES = {"completed", "done"}

_TRUE_STRINGS = {"true", "yes", "y", "1", "on"}
_FALSE_STRINGS = {"false", "no", "n", "0", "off"}


def _pick(record: Mapping[str, Any], *names: str, default=None):
    for n in names:
        value = record.get(n)
        if value is not None and value != "":
            return value
    return default


def parse_short_date(text: str, today: date) -> Optional[date]:
    """Parse 'M/D', 'M-D', 'M/D/YY' or 'M/D/YYYY'."""
    parts = text.replace("-", "/").split("/")
    if len(parts) < 2:
        return None
    try:
        month, day = int(parts[0]), int(parts[1])
        year = int(parts[2]) if len(parts) > 2 else today.year
    except ValueError:
        return None
    if year < 100:
        year += 2000 if year < 50 else 1900
    try:
        parsed = date(year, month, day)
    except ValueError:
        return None
    if len(parts) == 2 and (today - parsed).days > PAST_DATE_ROLLOVER_DAYS:
        try:
            parsed = date(year + 1, month, day)
        except ValueError:
            return None
    return parsed


def due_date_from_title(title: str, today: date) -> Optional[date]:
    for pattern in _DUE_PATTERNS:
        m = pattern.search(title or "")
        if m:
            parsed = parse_short_date(m.group(1), today)
            if parsed:
                logger.debug("Extracted due date %s from %r", parsed, title)
                return parsed
    return None


def is_in_class_activity(title: str) -> bool:
    return any(p.search(title or "") for p in _IN_CLASS_PATTERNS)


def is_makeup_work(title: str) -> bool:
    return bool(_MAKEUP_RE.search(title or ""))


def parse_due_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        ts = pd.Timestamp(value)
    except (ValueError, TypeError):
        logger.warning("Ignoring unparseable due date %r", value)
        return None
    if pd.isnull(ts):
        return None
    return ts.date()


def _optional_int(value: Any, name: str, item_id: str) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning("Item %s: ignoring non-numeric %s %r", item_id, name, value)
        return None


def _optional_bool(value: Any, name: str, item_id: str, default: bool = False) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    logger.warning("Item %s: ignoring unrecognised %s flag %r", item_id, name, value)
    return default


def _parse_priority(value: Any, item_id: str) -> Optional[PriorityTier]:
    try:
        return PriorityTier.parse(value)
    except ValueError:
        logger.warning("Item %s: unknown priority hint %r, deriving from due date", item_id, value)
        return None


def normalize_item(record: Mapping[str, Any], today: Optional[date] = None) -> WorkItem:
    """Map one GetWorkItemsBacklog record onto a WorkItem."""
    today = today or date.today()
    item_id = _pick(record, "id", "itemId", "item_id")
    if item_id is None:
        raise ValueError(f"backlog record without an id: {dict(record)!r}")
    item_id = str(item_id)
    title = str(_pick(record, "title", default=""))

    due = parse_due_date(_pick(record, "dueDate", "due_date", "dueAt"))
    if due is None:
        due = due_date_from_title(title, today)

    duration = _optional_int(
        _pick(record, "durationEstimate", "duration_estimate", "duration_minutes",
              "actualEstimatedMinutes"),
        "duration", item_id,
    )
    if duration is not None and duration <= 0:
        logger.warning("Item %s: ignoring non-positive duration %s", item_id, duration)
        duration = None

    difficulty = _pick(record, "difficultyHint", "difficulty_hint", "difficulty")
    if difficulty is not None:
        difficulty = str(difficulty).strip().lower() or None

    return WorkItem(
        id=item_id,
        title=title,
        subject=str(_pick(record, "subject", "courseName", "course", default="General")),
        due_date=due,
        duration_minutes=duration,
        priority=_parse_priority(_pick(record, "priorityHint", "priority_hint", "priority"), item_id),
        difficulty=difficulty,
        points=_optional_int(_pick(record, "points", "pointsValue", "points_value"), "points", item_id),
        category=_pick(record, "category", "canvasCategory", "canvas_category"),
        portable=_optional_bool(_pick(record, "portable", "isPortable"), "portable", item_id),
    )


def normalize_backlog(records: Iterable[Mapping[str, Any]],
                      today: Optional[date] = None) -> Tuple[List[WorkItem], List[UnscheduledItem]]:
    """
    Returns:
        (items, skipped) where skipped holds records that must not be placed:
        work that is not pending or needs_more_time, and in-class
        activities (make-up work stays schedulable).
    """
    items: List[WorkItem] = []
    skipped: List[UnscheduledItem] = []
    for record in records:
        item = normalize_item(record, today)
        status = _pick(record, "completionStatus", "completion_status", default="pending")
        status = str(status).strip().lower()
        if status in DONE_STATUSES:
            skipped.append(UnscheduledItem(item, NOT_SCHEDULABLE, "already completed"))
        elif status not in SCHEDULABLE_STATUSES:
            skipped.append(UnscheduledItem(item, NOT_SCHEDULABLE, f"status '{status}' needs manual attention"))
        elif is_in_class_activity(item.title) and not is_makeup_work(item.title):
            skipped.append(UnscheduledItem(item, NOT_SCHEDULABLE, "in-class activity; happens during class time"))
        else:
            items.append(item)
    return items, skipped
