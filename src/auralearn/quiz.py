"""Quiz scoring and recording of finished quizzes."""
import math
from dataclasses import replace
from datetime import date

from auralearn.errors import ValidationError
from auralearn.models import LearningPoint, Progress, QuizQuestion, QuizResult
from auralearn.streak import record_activity

MIN_QUESTIONS = 3
MAX_QUESTIONS = 15
DEFAULT_QUESTIONS = 5


def validate_quiz_request(topic: str, count: int) -> tuple[str, int]:
    topic = (topic or "").strip()
    if not topic:
        raise ValidationError("Please enter a topic.")
    if not MIN_QUESTIONS <= count <= MAX_QUESTIONS:
        raise ValidationError(f"Number of questions must be between {MIN_QUESTIONS} and {MAX_QUESTIONS}.")
    return topic, count


def is_correct(question: QuizQuestion, answer: str | None) -> bool:
    if answer is None:
        return False
    return question.answer.lower().strip() == answer.lower().strip()


def score_answers(questions, answers) -> int:
    """Percentage of correct answers, rounded half up."""
    if not questions:
        return 0
    correct = sum(
        1 for i, q in enumerate(questions)
        if is_correct(q, answers[i] if i < len(answers) else None)
    )
    return math.floor(correct / len(questions) * 100 + 0.5)


def short_date(day: date) -> str:
    return f"{day.month}/{day.day}/{day.year}"


def complete_quiz(progress: Progress, score: int, topic: str, today: date) -> Progress:
    """Append the result to history and the learning curve, then count the activity."""
    stamp = short_date(today)
    updated = replace(
        progress,
        quiz_history=progress.quiz_history + (QuizResult(date=stamp, score=score, topic=topic),),
        learning_data=progress.learning_data + (LearningPoint(date=stamp, score=score),),
    )
    return record_activity(updated, today)
