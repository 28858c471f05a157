# demo.py
import logging
from datetime import date

import pandas as pd

from capacity_scheduler.capacity import CapacityProfile
from capacity_scheduler.engine import schedule_week
from capacity_scheduler.inventory import StructureStore
from capacity_scheduler.settings import load_settings


def weekday_template(student: str, weekday: str):
    return [
        {"student_name": student, "weekday": weekday, "block_number": None,
         "start_time": "08:00", "end_time": "08:20", "subject": "Bible", "block_type": "Bible"},
        {"student_name": student, "weekday": weekday, "block_number": 1,
         "start_time": "08:30", "end_time": "09:30", "subject": "Math", "block_type": "Assignment"},
        {"student_name": student, "weekday": weekday, "block_number": 2,
         "start_time": "09:40", "end_time": "10:25", "subject": "Assignment", "block_type": "Assignment"},
        {"student_name": student, "weekday": weekday, "block_number": None,
         "start_time": "11:30", "end_time": "12:15", "subject": "Lunch", "block_type": "Lunch"},
        {"student_name": student, "weekday": weekday, "block_number": 3,
         "start_time": "12:15", "end_time": "13:00", "subject": "Assignment", "block_type": "Assignment"},
    ]


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    student = "Abigail"
    week_start = date(2025, 11, 3)  # Monday
    as_of = date(2025, 11, 2)

    rows = []
    for day in ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]:
        rows += weekday_template(student, day)
    # Co-op Thursdays: travel and class take the morning.
    rows = [r for r in rows if not (r["weekday"] == "Thursday" and r["block_number"] in (1, 2))]
    rows += [
        {"student_name": student, "weekday": "Thursday", "block_number": None,
         "start_time": "08:30", "end_time": "09:00", "subject": "Travel", "block_type": "Travel"},
        {"student_name": student, "weekday": "Thursday", "block_number": None,
         "start_time": "09:00", "end_time": "11:30", "subject": "Co-op", "block_type": "Co-op"},
    ]
    store = StructureStore.from_records(rows)

    backlog = [
        {"id": "alg-2", "title": "Algebra Unit 2 Worksheet", "subject": "Math",
         "dueDate": "2025-11-05", "durationEstimate": 45},
        {"id": "alg-3", "title": "Algebra Unit 3 Worksheet", "subject": "Math",
         "dueDate": "2025-11-05", "durationEstimate": 45},
        {"id": "bio-quiz", "title": "Biology Chapter 4 Quiz", "subject": "Science",
         "dueDate": "2025-11-07", "durationEstimate": 30, "canvasCategory": "quizzes"},
        {"id": "essay", "title": "Persuasive Essay Draft", "subject": "English",
         "dueDate": "2025-11-12", "durationEstimate": 60},
        {"id": "vocab", "title": "Vocab Flashcards", "subject": "English", "durationEstimate": 10},
        {"id": "map", "title": "History Map Labels Due 11/6", "subject": "History", "durationEstimate": 15},
        {"id": "lab", "title": "In Class 11/6 Lab", "subject": "Science", "durationEstimate": 40},
        {"id": "project", "title": "Science Fair Board", "subject": "Science", "durationEstimate": 90},
    ]

    profile = CapacityProfile(
        person=student,
        daily_max_minutes=150,
        per_subject_max_minutes=75,
        distribution="even",
    )

    result = schedule_week(
        student,
        structure_lookup=store,
        backlog_lookup=lambda person, window: backlog,
        profile_lookup=lambda person: profile,
        week_start=week_start,
        as_of=as_of,
        settings=load_settings(),
    )

    scheduled_df, unscheduled_df = result.to_frames()
    with pd.option_context("display.width", 160, "display.max_colwidth", 70):
        print("=== Schedule ===")
        print(scheduled_df)
        print("\n=== Needs manual placement ===")
        print(unscheduled_df)
    print("\n=== Warnings ===")
    for w in result.warnings:
        print(f"- {w}")


if __name__ == "__main__":
    main()
