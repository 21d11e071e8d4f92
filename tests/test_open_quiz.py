from datetime import timedelta

import pytest

from newsquiz_app.core.errors import NoOpenQuizError

from conftest import START


def test_no_quizzes(manager):
    with pytest.raises(NoOpenQuizError):
        manager.get_open_quiz()


def test_open_quiz_is_resolved(manager, open_quiz):
    assert manager.get_open_quiz().id == open_quiz.id
    assert manager.get_open_quiz_id() == open_quiz.id


def test_unpublished_and_deleted_quizzes_are_ignored(manager, open_quiz):
    draft = manager.create_quiz("Draft", START - timedelta(days=1), START + timedelta(days=1))

    manager.delete_quiz(open_quiz.id)

    with pytest.raises(NoOpenQuizError):
        manager.get_open_quiz()
    manager.set_quiz_published(draft.id, True)
    assert manager.get_open_quiz_id() == draft.id


def test_window_end_is_exclusive(manager, open_quiz, clock):
    clock.now = open_quiz.available_to - timedelta(seconds=1)
    assert manager.get_open_quiz_id() == open_quiz.id

    clock.now = open_quiz.available_to
    with pytest.raises(NoOpenQuizError):
        manager.get_open_quiz()


def test_most_recently_started_quiz_wins(manager, open_quiz, caplog):
    overlapping = manager.create_quiz(
        "Overlap", START - timedelta(hours=1), START + timedelta(days=1), published=True
    )

    assert manager.get_open_quiz_id() == overlapping.id
    assert "quizzes are open" in caplog.text


def test_window_start_is_inclusive(manager, open_quiz, clock):
    clock.now = open_quiz.available_from
    assert manager.get_open_quiz_id() == open_quiz.id

    clock.now = open_quiz.available_from - timedelta(microseconds=1)
    with pytest.raises(NoOpenQuizError):
        manager.get_open_quiz()
