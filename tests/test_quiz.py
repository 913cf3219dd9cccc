# tests/test_quiz.py
from datetime import date

import pytest

from auralearn.errors import ValidationError
from auralearn.models import Progress, QuizQuestion, QuizResult, LearningPoint
from auralearn.quiz import (
    complete_quiz, is_correct, score_answers, short_date, validate_quiz_request,
)

TODAY = date(2026, 10, 17)


def make_question(answer="Paris"):
    return QuizQuestion(question="Capital of France?", options=("Paris", "Rome", "Oslo", "Bern"), answer=answer)


def test_is_correct_ignores_case_and_whitespace():
    q = make_question()
    assert is_correct(q, "  paris ")
    assert not is_correct(q, "Rome")
    assert not is_correct(q, None)


def test_score_answers_rounds_half_up():
    questions = [make_question() for _ in range(8)]
    answers = ["Paris"] * 5 + ["Rome"] * 3
    assert score_answers(questions, answers) == 63  # 62.5


def test_score_answers_missing_answers_are_wrong():
    questions = [make_question() for _ in range(4)]
    assert score_answers(questions, ["Paris"]) == 25


def test_score_answers_empty_quiz():
    assert score_answers([], []) == 0


def test_short_date():
    assert short_date(date(2026, 3, 5)) == "3/5/2026"


def test_complete_quiz_appends_result_and_learning_point():
    result = complete_quiz(Progress(), 83, "Algebra", TODAY)
    assert result.quiz_history == (QuizResult(date="10/17/2026", score=83, topic="Algebra"),)
    assert result.learning_data == (LearningPoint(date="10/17/2026", score=83),)
    assert result.streak == 1
    assert result.last_activity_date == "2026-10-17"


def test_complete_quiz_keeps_earlier_history():
    p = complete_quiz(Progress(), 50, "Geometry", date(2026, 10, 16))
    p = complete_quiz(p, 90, "Algebra", TODAY)
    assert [r.topic for r in p.quiz_history] == ["Geometry", "Algebra"]
    assert len(p.learning_data) == 2
    assert p.streak == 2


def test_complete_quiz_same_day_does_not_double_count_streak():
    p = complete_quiz(Progress(), 50, "Geometry", TODAY)
    p = complete_quiz(p, 60, "Geometry", TODAY)
    assert p.streak == 1
    assert len(p.quiz_history) == 2


def test_validate_quiz_request():
    assert validate_quiz_request(" Algebra ", 5) == ("Algebra", 5)
    with pytest.raises(ValidationError, match="Please enter a topic."):
        validate_quiz_request("", 5)
    with pytest.raises(ValidationError):
        validate_quiz_request("Algebra", 2)
    with pytest.raises(ValidationError):
        validate_quiz_request("Algebra", 16)
