from datetime import timedelta
from uuid import uuid4

import pytest

from newsquiz_app.core.errors import (
    NoMoreQuestionsError,
    NoSuchQuestionError,
    NoSuchQuizError,
    QuestionAlreadyAnsweredError,
    QuizValidationError,
)

from conftest import START


def test_two_question_walkthrough(manager, scenario, user, clock):
    quiz, q1, q2 = scenario.quiz, scenario.q1, scenario.q2

    first = manager.next_question(user.id, quiz.id)
    assert first.question.id == q1.id
    assert (first.position, first.total) == (1, 2)

    feedback = manager.submit_answer(user.id, q1.id, scenario.alt(q1, "A"))
    assert feedback.is_correct
    assert feedback.points_awarded == 5

    clock.advance(seconds=10)
    second = manager.next_question(user.id, quiz.id)
    assert second.question.id == q2.id
    assert (second.position, second.total) == (2, 2)

    feedback = manager.submit_answer(user.id, q2.id, scenario.alt(q2, "B"))
    assert not feedback.is_correct
    assert feedback.points_awarded == 0

    with pytest.raises(NoMoreQuestionsError):
        manager.next_question(user.id, quiz.id)
    with pytest.raises(QuestionAlreadyAnsweredError):
        manager.submit_answer(user.id, q1.id, scenario.alt(q1, "B"))


def test_answered_questions_are_skipped_in_any_order(manager, scenario, user):
    manager.submit_answer(user.id, scenario.q2.id, scenario.alt(scenario.q2, "C"))

    progress = manager.next_question(user.id, scenario.quiz.id)

    assert progress.question.id == scenario.q1.id
    assert progress.position == 1


def test_progress_is_per_user(manager, scenario, user):
    other = manager.create_user("other@example.com")
    manager.submit_answer(user.id, scenario.q1.id, scenario.alt(scenario.q1, "A"))

    assert manager.next_question(other.id, scenario.quiz.id).question.id == scenario.q1.id
    assert manager.next_question(user.id, scenario.quiz.id).question.id == scenario.q2.id


def test_progress_is_per_quiz(manager, scenario, user, add_question):
    later = manager.create_quiz("Next week", START + timedelta(days=6), START + timedelta(days=13))
    later_question = add_question(later.id)
    manager.submit_answer(user.id, scenario.q1.id, scenario.alt(scenario.q1, "A"))

    assert manager.next_question(user.id, later.id).question.id == later_question.id


def test_empty_quiz_has_no_questions(manager, open_quiz, user):
    with pytest.raises(NoMoreQuestionsError):
        manager.next_question(user.id, open_quiz.id)


def test_deleted_or_unknown_quiz(manager, scenario, user):
    with pytest.raises(NoSuchQuizError):
        manager.next_question(user.id, uuid4())

    manager.delete_quiz(scenario.quiz.id)

    with pytest.raises(NoSuchQuizError):
        manager.next_question(user.id, scenario.quiz.id)


def test_guest_position_lookup(manager, scenario):
    progress = manager.question_at_position(scenario.quiz.id, 2)

    assert progress.question.id == scenario.q2.id
    assert (progress.position, progress.total) == (2, 2)


def test_guest_position_bounds(manager, scenario):
    with pytest.raises(QuizValidationError):
        manager.question_at_position(scenario.quiz.id, 0)
    with pytest.raises(NoSuchQuestionError):
        manager.question_at_position(scenario.quiz.id, 3)


def test_guest_position_requires_open_quiz(manager, scenario, add_question):
    closed = manager.create_quiz("Last week", START - timedelta(days=8), START - timedelta(days=1), published=True)
    add_question(closed.id)

    with pytest.raises(NoSuchQuizError):
        manager.question_at_position(closed.id, 1)
