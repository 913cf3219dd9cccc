"""Dashboard and progress statistics."""
from datetime import date

from auralearn.models import Progress, StudyPlan
from auralearn.plan import todays_day

PASSING_SCORE = 70
FOCUS_TASK_LIMIT = 3


def score_color(score: float) -> str:
    if score >= PASSING_SCORE:
        return "green"
    return "dark_orange"


def average_quiz_score(progress: Progress) -> float | None:
    if not progress.quiz_history:
        return None
    total = sum(r.score for r in progress.quiz_history)
    return round(total / len(progress.quiz_history), 1)


def todays_focus(plan: StudyPlan | None, today: date) -> dict | None:
    day = todays_day(plan, today)
    if day is None:
        return None
    return {
        "day": day.day,
        "topic": day.topic,
        "tasks": [t.name for t in day.tasks[:FOCUS_TASK_LIMIT]],
        "more": len(day.tasks) > FOCUS_TASK_LIMIT,
    }


def get_stats(progress: Progress, plan: StudyPlan | None) -> dict:
    return {
        "streak": progress.streak,
        "completed_tasks": progress.completed_tasks,
        "total_tasks": len(plan.all_tasks()) if plan else 0,
        "subject": plan.subject if plan else "None Set",
        "quizzes_taken": len(progress.quiz_history),
        "avg_quiz_score": average_quiz_score(progress),
    }
