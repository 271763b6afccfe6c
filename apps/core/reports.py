from dataclasses import dataclass, field

from .models import MealType, MealsToday
from .store import get_store, meal_log_path


@dataclass
class ReportRow:
    student_id: str
    name: str
    meals: MealsToday


@dataclass
class DailyMealReport:
    date: str
    counts: dict = field(default_factory=dict)
    rows: list = field(default_factory=list)


async def meals_taken_on(student_id, day, store=None):
    """Meals granted to a student on ``day``, read from the meal log."""
    store = store or get_store()
    entry = await store.read(meal_log_path(day, student_id))
    return MealsToday.from_record(entry if isinstance(entry, dict) else None)


async def build_daily_report(day, store=None):
    """Per-meal counts and a per-student table for one date.

    Every known student gets a row; students that only appear in the log
    are listed too, with an empty name.
    """
    store = store or get_store()
    logs = await store.read(f"mealLogs/{day}") or {}
    students = await store.read('students') or {}

    counts = {meal.value: 0 for meal in MealType}
    rows = []
    for student_id in sorted(set(students) | set(logs)):
        entry = logs.get(student_id)
        meals = MealsToday.from_record(entry if isinstance(entry, dict) else None)
        for meal in MealType:
            if meals.taken(meal):
                counts[meal.value] += 1
        record = students.get(student_id)
        name = record.get('name', '') if isinstance(record, dict) else ''
        rows.append(ReportRow(student_id=student_id, name=name, meals=meals))

    return DailyMealReport(date=day, counts=counts, rows=rows)
