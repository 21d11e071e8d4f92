"""Shared fixtures: a controllable clock, both store adapters and a wired manager."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import random
from uuid import UUID

import pytest

from newsquiz_app.core.memory_store import MemoryStore
from newsquiz_app.core.models import Question, Quiz, User
from newsquiz_app.core.name_assigner import NameAssigner
from newsquiz_app.core.quiz_manager import QuizManager
from newsquiz_app.core.sql_store import create_sql_store
from newsquiz_app.core.store import NewAlternative, QuizStore

# Wednesday of ISO week 11.
START = datetime(2024, 3, 13, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += timedelta(**delta)


@dataclass
class ScenarioQuiz:
    """Open quiz with Q1 (correct A, 5 pts) and Q2 (correct C, 10 pts)."""

    quiz: Quiz
    q1: Question
    q2: Question

    @staticmethod
    def alt(question: Question, text: str) -> UUID:
        return next(alternative.id for alternative in question.alternatives if alternative.text == text)


def make_alternatives(correct: str, texts: str = "ABCD") -> list[NewAlternative]:
    return [NewAlternative(text=text, is_correct=text == correct) for text in texts]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(params=["memory", "sql"])
def store(request) -> QuizStore:
    if request.param == "memory":
        return MemoryStore()
    return create_sql_store("sqlite:///:memory:")


@pytest.fixture
def manager(store: QuizStore, clock: FakeClock) -> QuizManager:
    return QuizManager(store, clock=clock, name_assigner=NameAssigner.from_defaults(random.Random(7)))


@pytest.fixture
def memory_manager(clock: FakeClock) -> QuizManager:
    return QuizManager(MemoryStore(), clock=clock, name_assigner=NameAssigner.from_defaults(random.Random(7)))


@pytest.fixture(params=["memory", "sql_file"])
def threaded_store(request, tmp_path) -> QuizStore:
    """Store safe to share between threads. The in-memory SQLite store shares one connection."""
    if request.param == "memory":
        return MemoryStore()
    return create_sql_store(f"sqlite:///{tmp_path / 'newsquiz.db'}")


@pytest.fixture
def threaded_manager(threaded_store: QuizStore, clock: FakeClock) -> QuizManager:
    return QuizManager(threaded_store, clock=clock, name_assigner=NameAssigner.from_defaults(random.Random(7)))


@pytest.fixture
def add_question(manager: QuizManager) -> Callable[..., Question]:
    def factory(quiz_id: UUID, correct: str = "A", points: int = 10, text: str = "Who won?") -> Question:
        return manager.add_question(quiz_id, text, points, make_alternatives(correct))

    return factory


@pytest.fixture
def open_quiz(manager: QuizManager) -> Quiz:
    return manager.create_quiz(
        "This week in news",
        available_from=START - timedelta(days=1),
        available_to=START + timedelta(days=6),
        published=True,
    )


@pytest.fixture
def scenario(open_quiz: Quiz, add_question) -> ScenarioQuiz:
    q1 = add_question(open_quiz.id, correct="A", points=5, text="Which party won the election?")
    q2 = add_question(open_quiz.id, correct="C", points=10, text="Which city hosts the summit?")
    return ScenarioQuiz(quiz=open_quiz, q1=q1, q2=q2)


@pytest.fixture
def user(manager: QuizManager) -> User:
    return manager.create_user("reader@example.com")
