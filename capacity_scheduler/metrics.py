# capacity_scheduler/metrics.py
from prometheus_client import Counter, Summary

SCHEDULE_TIME = Summary(
    "schedule_generation_seconds",
    "Time spent allocating a weekly backlog into slots",
)

ITEMS_PLACED = Counter(
    "schedule_items_placed_total",
    "Work items placed into a slot, by pass",
    ["phase"],  # anchor | quick_win
)

ITEMS_UNSCHEDULED = Counter(
    "schedule_items_unscheduled_total",
    "Work items left for manual placement, by reason code",
    ["reason"],
)
