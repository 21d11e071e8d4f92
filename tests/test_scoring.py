from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from uuid import uuid4

import pytest

from newsquiz_app.core.errors import (
    AnswerValidationError,
    ForbiddenQuizError,
    NoOpenQuizError,
    NoSuchAlternativeError,
    NoSuchQuestionError,
    NoSuchQuizError,
    QuestionAlreadyAnsweredError,
)

from conftest import START, make_alternatives


def test_feedback_contents(manager, scenario, user):
    q2 = scenario.q2
    feedback = manager.submit_answer(user.id, q2.id, scenario.alt(q2, "D"))

    assert feedback.question_text == "Which city hosts the summit?"
    assert feedback.max_points == 10
    assert feedback.chosen_alternative_id == scenario.alt(q2, "D")
    assert feedback.chosen_alternative_text == "D"
    assert feedback.correct_alternative_id == scenario.alt(q2, "C")
    assert feedback.answer_time_ms is None


def test_second_submission_keeps_first_answer(manager, scenario, user):
    q1 = scenario.q1
    manager.submit_answer(user.id, q1.id, scenario.alt(q1, "B"))

    with pytest.raises(QuestionAlreadyAnsweredError):
        manager.submit_answer(user.id, q1.id, scenario.alt(q1, "A"))

    summary = manager.get_quiz_summary(user.id, scenario.quiz.id)
    assert len(summary.answered) == 1
    assert summary.answered[0].chosen_alternative_text == "B"
    assert summary.points_awarded == 0


def test_concurrent_duplicate_submissions(threaded_manager):
    quiz = threaded_manager.create_quiz("Race", START - timedelta(hours=1), START + timedelta(days=1), published=True)
    question = threaded_manager.add_question(quiz.id, "Question", 10, make_alternatives("A"))
    user = threaded_manager.create_user("racer@example.com")
    correct = question.correct_alternative().id

    def submit(_: int) -> str:
        try:
            threaded_manager.submit_answer(user.id, question.id, correct)
        except QuestionAlreadyAnsweredError:
            return "conflict"
        return "ok"

    with ThreadPoolExecutor(max_workers=8) as pool:
        outcomes = list(pool.map(submit, range(16)))

    assert outcomes.count("ok") == 1
    assert outcomes.count("conflict") == 15
    summary = threaded_manager.get_quiz_summary(user.id, quiz.id)
    assert len(summary.answered) == 1
    assert summary.points_awarded == 10


def test_alternative_must_belong_to_question(manager, scenario, user):
    with pytest.raises(AnswerValidationError):
        manager.submit_answer(user.id, scenario.q1.id, scenario.alt(scenario.q2, "C"))

    assert manager.next_question(user.id, scenario.quiz.id).question.id == scenario.q1.id


def test_unknown_question_or_alternative(manager, scenario, user):
    with pytest.raises(NoSuchQuestionError):
        manager.submit_answer(user.id, uuid4(), scenario.alt(scenario.q1, "A"))
    with pytest.raises(NoSuchAlternativeError):
        manager.submit_answer(user.id, scenario.q1.id, uuid4())


def test_answers_to_deleted_quiz_are_rejected(manager, scenario, user):
    manager.delete_quiz(scenario.quiz.id)

    with pytest.raises(NoSuchQuizError):
        manager.submit_answer(user.id, scenario.q1.id, scenario.alt(scenario.q1, "A"))


def test_zero_point_question_scores_zero_even_when_correct(manager, open_quiz, add_question, user):
    question = add_question(open_quiz.id, correct="B", points=0)

    feedback = manager.submit_answer(user.id, question.id, question.correct_alternative().id)

    assert feedback.is_correct
    assert feedback.points_awarded == 0


def test_summary_accumulates_points(manager, scenario, user, clock):
    q1, q2 = scenario.q1, scenario.q2
    manager.submit_answer(user.id, q1.id, scenario.alt(q1, "A"))

    partial = manager.get_quiz_summary(user.id, scenario.quiz.id)
    assert partial.points_awarded == 5
    assert partial.max_points == 15
    assert not partial.is_completed

    clock.advance(minutes=1)
    manager.submit_answer(user.id, q2.id, scenario.alt(q2, "C"))

    summary = manager.get_quiz_summary(user.id, scenario.quiz.id)
    assert summary.points_awarded == 15
    assert summary.is_completed
    assert summary.last_answered_at == START + timedelta(minutes=1)
    assert [row.question_id for row in summary.answered] == [q1.id, q2.id]


def test_completed_quizzes_lists_finished_only(manager, scenario, user, add_question, clock):
    unfinished = manager.create_quiz("Unfinished", START, START + timedelta(days=1))
    question = add_question(unfinished.id)
    add_question(unfinished.id)
    manager.submit_answer(user.id, question.id, question.correct_alternative().id)

    assert manager.get_completed_quizzes(user.id) == []

    for q in (scenario.q1, scenario.q2):
        clock.advance(seconds=30)
        manager.submit_answer(user.id, q.id, q.correct_alternative().id)

    completed = manager.get_completed_quizzes(user.id)
    assert [summary.quiz_id for summary in completed] == [scenario.quiz.id]


def test_guest_answer_in_open_quiz(manager, scenario, clock):
    presented_at = clock() - timedelta(milliseconds=1500)

    feedback = manager.submit_guest_answer(
        scenario.q2.id, scenario.alt(scenario.q2, "C"), question_presented_at=presented_at
    )

    assert feedback.is_correct
    assert feedback.points_awarded == 10
    assert feedback.answer_time_ms == pytest.approx(1500)
    assert manager.get_top_scorers(scenario.quiz.id) == []


def test_guest_answer_can_be_repeated(manager, scenario):
    alternative = scenario.alt(scenario.q1, "A")

    manager.submit_guest_answer(scenario.q1.id, alternative)

    assert manager.submit_guest_answer(scenario.q1.id, alternative).points_awarded == 5


def test_guest_cannot_answer_other_quizzes(manager, scenario, add_question):
    future = manager.create_quiz("Next week", START + timedelta(days=6), START + timedelta(days=13), published=True)
    question = add_question(future.id)

    with pytest.raises(ForbiddenQuizError):
        manager.submit_guest_answer(question.id, question.correct_alternative().id)


def test_guest_answer_without_open_quiz(manager, scenario):
    manager.set_quiz_published(scenario.quiz.id, False)

    with pytest.raises(NoOpenQuizError):
        manager.submit_guest_answer(scenario.q1.id, scenario.alt(scenario.q1, "A"))
