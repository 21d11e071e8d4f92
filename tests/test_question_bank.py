from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from uuid import uuid4

import pytest

from newsquiz_app.core.errors import ArticleAlreadyInQuizError, NoSuchQuizError, QuizValidationError
from newsquiz_app.core.store import NewAlternative

from conftest import START, make_alternatives


def test_arrangement_counts_up_from_one(manager, open_quiz, add_question):
    created = [add_question(open_quiz.id, text=f"Question {n}") for n in range(5)]

    assert [question.arrangement for question in created] == [1, 2, 3, 4, 5]
    listed = manager.list_questions(open_quiz.id)
    assert [question.id for question in listed] == [question.id for question in created]


def test_arrangement_is_per_quiz(manager, open_quiz, add_question):
    other = manager.create_quiz("Other", START, START + timedelta(days=1))
    add_question(open_quiz.id)
    add_question(open_quiz.id)

    assert add_question(other.id).arrangement == 1


def test_concurrent_inserts_get_distinct_arrangements(threaded_manager):
    quiz = threaded_manager.create_quiz("Busy", START, START + timedelta(days=1))

    def insert(n: int) -> int:
        return threaded_manager.add_question(quiz.id, f"Question {n}", 1, make_alternatives("A")).arrangement

    with ThreadPoolExecutor(max_workers=8) as pool:
        arrangements = list(pool.map(insert, range(40)))

    assert sorted(arrangements) == list(range(1, 41))
    stored = threaded_manager.list_questions(quiz.id)
    assert [question.arrangement for question in stored] == list(range(1, 41))
    assert all(len(question.alternatives) == 4 for question in stored)


def test_alternatives_keep_author_order(manager, open_quiz, add_question):
    question = add_question(open_quiz.id, correct="C")

    assert [alt.text for alt in question.alternatives] == ["A", "B", "C", "D"]
    assert question.correct_alternative().text == "C"
    stored = manager.get_question(question.id)
    assert [alt.id for alt in stored.alternatives] == [alt.id for alt in question.alternatives]


@pytest.mark.parametrize(
    "text, points, alternatives",
    [
        ("", 10, make_alternatives("A")),
        ("Question", -1, make_alternatives("A")),
        ("Question", 10, make_alternatives("A", texts="A")),
        ("Question", 10, make_alternatives("X")),
        ("Question", 10, [NewAlternative("A", True), NewAlternative("B", True)]),
        ("Question", 10, [NewAlternative("A", True), NewAlternative("  ")]),
    ],
)
def test_invalid_questions_are_rejected(manager, open_quiz, text, points, alternatives):
    with pytest.raises(QuizValidationError):
        manager.add_question(open_quiz.id, text, points, alternatives)
    assert manager.list_questions(open_quiz.id) == []


def test_zero_point_question_is_allowed(manager, open_quiz, add_question):
    assert add_question(open_quiz.id, points=0).points == 0


def test_question_needs_live_quiz(manager, open_quiz, add_question):
    manager.delete_quiz(open_quiz.id)

    with pytest.raises(NoSuchQuizError):
        add_question(open_quiz.id)
    with pytest.raises(NoSuchQuizError):
        add_question(uuid4())


def test_linked_article_must_exist(manager, open_quiz):
    with pytest.raises(QuizValidationError):
        manager.add_question(open_quiz.id, "Question", 10, make_alternatives("A"), article_id=uuid4())


def test_articles_are_shared_by_url(manager, open_quiz):
    other = manager.create_quiz("Other", START, START + timedelta(days=1))

    first = manager.add_article_to_quiz(open_quiz.id, "https://news.example.com/story", "Story")
    second = manager.add_article_to_quiz(other.id, "https://news.example.com/story")

    assert first.id == second.id
    assert [article.id for article in manager.list_quiz_articles(other.id)] == [first.id]


def test_article_can_only_be_attached_once(manager, open_quiz):
    manager.add_article_to_quiz(open_quiz.id, "https://news.example.com/story")

    with pytest.raises(ArticleAlreadyInQuizError):
        manager.add_article_to_quiz(open_quiz.id, "https://news.example.com/story")
    with pytest.raises(QuizValidationError):
        manager.add_article_to_quiz(open_quiz.id, "news.example.com/other")


def test_remove_article(manager, open_quiz):
    article = manager.add_article_to_quiz(open_quiz.id, "https://news.example.com/story")

    assert manager.remove_article_from_quiz(open_quiz.id, article.id)
    assert not manager.remove_article_from_quiz(open_quiz.id, article.id)
    assert manager.list_quiz_articles(open_quiz.id) == []


def test_used_articles_follow_question_order(manager, open_quiz):
    late = manager.add_article_to_quiz(open_quiz.id, "https://news.example.com/late")
    early = manager.add_article_to_quiz(open_quiz.id, "https://news.example.com/early")
    manager.add_question(open_quiz.id, "First", 10, make_alternatives("A"), article_id=early.id)
    manager.add_question(open_quiz.id, "Second", 10, make_alternatives("A"), article_id=late.id)
    manager.add_question(open_quiz.id, "Third", 10, make_alternatives("A"), article_id=early.id)
    manager.add_question(open_quiz.id, "Fourth", 10, make_alternatives("A"))

    assert [article.id for article in manager.list_used_articles(open_quiz.id)] == [early.id, late.id]
