from datetime import timedelta
from uuid import uuid4

import pytest

from newsquiz_app.core.errors import NoSuchQuizError, QuizValidationError

from conftest import START


def test_default_quiz_covers_current_week(manager):
    quiz = manager.create_default_quiz()

    assert quiz.title == "Quiz: Week 11"
    assert quiz.available_from == START
    assert quiz.available_to == START + timedelta(days=7)
    assert quiz.image_url is not None
    assert not quiz.published
    assert manager.list_unpublished_quizzes()[0].id == quiz.id


def test_create_quiz_rejects_empty_window(manager):
    with pytest.raises(QuizValidationError):
        manager.create_quiz("Quiz", available_from=START, available_to=START)
    with pytest.raises(QuizValidationError):
        manager.create_quiz("   ", available_from=START, available_to=START + timedelta(days=1))


def test_edits_bump_last_modified(manager, open_quiz, clock):
    clock.advance(minutes=5)

    updated = manager.update_quiz_title(open_quiz.id, "  Election special ")

    assert updated.title == "Election special"
    assert updated.last_modified_at == START + timedelta(minutes=5)
    assert updated.created_at == open_quiz.created_at


def test_image_can_be_set_and_removed(manager, open_quiz):
    assert manager.update_quiz_image(open_quiz.id, "https://example.com/a.png").image_url == "https://example.com/a.png"
    assert manager.remove_quiz_image(open_quiz.id).image_url is None
    with pytest.raises(QuizValidationError):
        manager.update_quiz_image(open_quiz.id, " ")


def test_window_edits_keep_start_before_end(manager, open_quiz):
    with pytest.raises(QuizValidationError):
        manager.update_quiz_end(open_quiz.id, open_quiz.available_from - timedelta(hours=1))
    with pytest.raises(QuizValidationError):
        manager.update_quiz_start(open_quiz.id, open_quiz.available_to)

    moved = manager.update_quiz_end(open_quiz.id, START + timedelta(days=2))
    assert moved.available_to == START + timedelta(days=2)


def test_publish_toggle_moves_quiz_between_lists(manager, open_quiz):
    assert [quiz.id for quiz in manager.list_published_quizzes()] == [open_quiz.id]

    manager.set_quiz_published(open_quiz.id, False)

    assert manager.list_published_quizzes() == []
    assert [quiz.id for quiz in manager.list_unpublished_quizzes()] == [open_quiz.id]


def test_deleted_quiz_disappears(manager, open_quiz):
    manager.delete_quiz(open_quiz.id)

    with pytest.raises(NoSuchQuizError):
        manager.get_quiz(open_quiz.id)
    with pytest.raises(NoSuchQuizError):
        manager.update_quiz_title(open_quiz.id, "Back again")
    assert manager.list_quizzes() == []


def test_unknown_quiz(manager):
    with pytest.raises(NoSuchQuizError):
        manager.get_quiz(uuid4())
