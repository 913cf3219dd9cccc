"""Study plan bookkeeping: task completion and today's day."""
import uuid
from dataclasses import replace
from datetime import date

from auralearn.errors import ValidationError
from auralearn.models import Progress, StudyDay, StudyPlan, StudyTask
from auralearn.streak import record_activity

MIN_DAILY_HOURS = 1
MAX_DAILY_HOURS = 12


def count_completed(plan: StudyPlan | None) -> int:
    if plan is None:
        return 0
    return sum(1 for task in plan.all_tasks() if task.completed)


def find_task(plan: StudyPlan, task_id: str) -> StudyTask | None:
    for task in plan.all_tasks():
        if task.id == task_id:
            return task
    return None


def toggle_task(plan: StudyPlan, progress: Progress, task_id: str, today: date) -> tuple[StudyPlan, Progress]:
    """Flip one task's completion and update progress to match.

    The completed count is recomputed from the new plan. Only marking a task
    complete counts as activity for the streak.
    """
    target = find_task(plan, task_id)
    if target is None:
        return plan, progress

    days = []
    for day in plan.days:
        tasks = tuple(
            replace(task, completed=not task.completed) if task.id == task_id else task
            for task in day.tasks
        )
        days.append(replace(day, tasks=tasks))
    new_plan = replace(plan, days=tuple(days))

    new_progress = replace(progress, completed_tasks=count_completed(new_plan))
    if not target.completed:
        new_progress = record_activity(new_progress, today)
    return new_plan, new_progress


def normalize_plan(plan: StudyPlan) -> StudyPlan:
    """Reset every task to incomplete and give each a unique id."""
    seen = set()
    days = []
    for day in plan.days:
        tasks = []
        for task in day.tasks:
            task_id = task.id.strip()
            if not task_id or task_id in seen:
                task_id = uuid.uuid4().hex
            seen.add(task_id)
            tasks.append(replace(task, id=task_id, completed=False))
        days.append(replace(day, tasks=tuple(tasks)))
    return replace(plan, days=tuple(days))


def js_weekday(today: date) -> int:
    """Weekday numbered from Sunday = 0."""
    return today.isoweekday() % 7


def todays_day(plan: StudyPlan | None, today: date) -> StudyDay | None:
    if plan is None:
        return None
    weekday = js_weekday(today)
    for day in plan.days:
        if day.day % 7 == weekday % 7:
            return day
    return None


def validate_plan_request(subject: str, daily_hours, goal: str) -> tuple[str, int, str]:
    subject = (subject or "").strip()
    goal = (goal or "").strip()
    if not subject or not goal or daily_hours in (None, ""):
        raise ValidationError("Please fill out all fields.")
    try:
        hours = int(daily_hours)
    except (TypeError, ValueError):
        raise ValidationError("Daily study time must be a whole number of hours.") from None
    if not MIN_DAILY_HOURS <= hours <= MAX_DAILY_HOURS:
        raise ValidationError(f"Daily study time must be between {MIN_DAILY_HOURS} and {MAX_DAILY_HOURS} hours.")
    return subject, hours, goal
