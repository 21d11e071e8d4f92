"""In-memory implementation of the QuizStore port."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from copy import deepcopy
from dataclasses import dataclass, field
from datetime import datetime
from threading import Lock
from uuid import UUID, uuid4

from newsquiz_app.core.errors import (
    ArticleAlreadyInQuizError,
    NoSuchQuizError,
    NoSuchUserError,
    QuestionAlreadyAnsweredError,
)
from newsquiz_app.core.models import Article, AnswerAlternative, Question, Quiz, User, UserAnswer
from newsquiz_app.core.store import (
    QUIZ_UPDATABLE_FIELDS,
    USER_UPDATABLE_FIELDS,
    NewAlternative,
    QuizStore,
    check_changes,
)


@dataclass
class _QuizState:
    quiz: Quiz
    question_ids: list[UUID] = field(default_factory=list)
    article_ids: list[UUID] = field(default_factory=list)


class MemoryStore(QuizStore):
    """Thread-safe store keeping everything in dictionaries.

    A single lock serializes writes, which makes the arrangement counter and
    the (user, question) uniqueness check atomic. Values are copied on the way
    in and out so callers never share mutable state with the store.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._quizzes: dict[UUID, _QuizState] = {}
        self._questions: dict[UUID, Question] = {}
        self._alternatives: dict[UUID, AnswerAlternative] = {}
        self._answers: list[UserAnswer] = []
        self._answer_keys: set[tuple[UUID, UUID]] = set()
        self._users: dict[UUID, User] = {}
        self._articles: dict[UUID, Article] = {}

    # -- Quizzes ---------------------------------------------------------
    def add_quiz(self, quiz: Quiz) -> Quiz:
        with self._lock:
            stored = deepcopy(quiz)
            stored.questions = []
            self._quizzes[stored.id] = _QuizState(quiz=stored)
            return deepcopy(stored)

    def get_quiz(self, quiz_id: UUID, include_questions: bool = True) -> Quiz | None:
        with self._lock:
            state = self._quizzes.get(quiz_id)
            if state is None:
                return None
            quiz = deepcopy(state.quiz)
            if include_questions:
                quiz.questions = self._ordered_questions(state)
            return quiz

    def list_quizzes(self, include_deleted: bool = False) -> list[Quiz]:
        with self._lock:
            quizzes = [
                deepcopy(state.quiz)
                for state in self._quizzes.values()
                if include_deleted or not state.quiz.is_deleted
            ]
        return sorted(quizzes, key=lambda q: (q.available_from, q.created_at))

    def update_quiz(self, quiz_id: UUID, changes: Mapping[str, object]) -> bool:
        check_changes(changes, QUIZ_UPDATABLE_FIELDS)
        with self._lock:
            state = self._quizzes.get(quiz_id)
            if state is None:
                return False
            for name, value in changes.items():
                setattr(state.quiz, name, value)
            return True

    def find_open_quizzes(self, now: datetime) -> list[Quiz]:
        with self._lock:
            return [deepcopy(state.quiz) for state in self._quizzes.values() if state.quiz.is_open(now)]

    # -- Questions -------------------------------------------------------
    def insert_question(
        self,
        quiz_id: UUID,
        text: str,
        points: int,
        alternatives: Sequence[NewAlternative],
        article_id: UUID | None = None,
    ) -> Question:
        with self._lock:
            state = self._quizzes.get(quiz_id)
            if state is None:
                raise NoSuchQuizError()
            arrangement = 1 + max(
                (self._questions[qid].arrangement for qid in state.question_ids),
                default=0,
            )
            question_id = uuid4()
            question = Question(
                id=question_id,
                quiz_id=quiz_id,
                text=text,
                arrangement=arrangement,
                points=points,
                article_id=article_id,
                alternatives=[
                    AnswerAlternative(
                        id=uuid4(),
                        question_id=question_id,
                        text=alt.text,
                        is_correct=alt.is_correct,
                    )
                    for alt in alternatives
                ],
            )
            self._questions[question_id] = question
            for alternative in question.alternatives:
                self._alternatives[alternative.id] = alternative
            state.question_ids.append(question_id)
            return deepcopy(question)

    def list_questions(self, quiz_id: UUID) -> list[Question]:
        with self._lock:
            state = self._quizzes.get(quiz_id)
            if state is None:
                return []
            return self._ordered_questions(state)

    def get_question(self, question_id: UUID) -> Question | None:
        with self._lock:
            question = self._questions.get(question_id)
            return deepcopy(question) if question else None

    def get_alternative(self, alternative_id: UUID) -> AnswerAlternative | None:
        with self._lock:
            alternative = self._alternatives.get(alternative_id)
            return deepcopy(alternative) if alternative else None

    def _ordered_questions(self, state: _QuizState) -> list[Question]:
        questions = [deepcopy(self._questions[qid]) for qid in state.question_ids]
        return sorted(questions, key=lambda q: q.arrangement)

    # -- Answer ledger ---------------------------------------------------
    def insert_answer(
        self,
        user_id: UUID,
        question_id: UUID,
        alternative_id: UUID,
        created_at: datetime,
    ) -> UserAnswer:
        key = (user_id, question_id)
        with self._lock:
            if key in self._answer_keys:
                raise QuestionAlreadyAnsweredError()
            answer = UserAnswer(
                id=uuid4(),
                user_id=user_id,
                question_id=question_id,
                alternative_id=alternative_id,
                created_at=created_at,
            )
            self._answer_keys.add(key)
            self._answers.append(answer)
            return deepcopy(answer)

    def list_answers(self, user_id: UUID, quiz_id: UUID) -> list[UserAnswer]:
        with self._lock:
            return [
                deepcopy(answer)
                for answer in self._answers
                if answer.user_id == user_id and self._questions[answer.question_id].quiz_id == quiz_id
            ]

    def list_answers_for_quiz(self, quiz_id: UUID) -> list[UserAnswer]:
        with self._lock:
            return [
                deepcopy(answer)
                for answer in self._answers
                if self._questions[answer.question_id].quiz_id == quiz_id
            ]

    def list_answers_for_user(self, user_id: UUID) -> list[UserAnswer]:
        with self._lock:
            return [deepcopy(answer) for answer in self._answers if answer.user_id == user_id]

    def list_all_answers(self) -> list[UserAnswer]:
        with self._lock:
            return deepcopy(self._answers)

    # -- Users -----------------------------------------------------------
    def add_user(self, user: User) -> User:
        with self._lock:
            self._users[user.id] = deepcopy(user)
            return deepcopy(user)

    def get_user(self, user_id: UUID) -> User | None:
        with self._lock:
            user = self._users.get(user_id)
            return deepcopy(user) if user else None

    def list_users(self) -> list[User]:
        with self._lock:
            return deepcopy(list(self._users.values()))

    def update_user(self, user_id: UUID, changes: Mapping[str, object]) -> bool:
        check_changes(changes, USER_UPDATABLE_FIELDS)
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return False
            for name, value in changes.items():
                setattr(user, name, value)
            return True

    def claim_username(self, user_id: UUID, username: str) -> bool:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                raise NoSuchUserError()
            if any(other.username == username for other in self._users.values() if other.id != user_id):
                return False
            user.username = username
            return True

    # -- Articles --------------------------------------------------------
    def add_article(self, article: Article) -> Article:
        with self._lock:
            self._articles[article.id] = deepcopy(article)
            return deepcopy(article)

    def get_article(self, article_id: UUID) -> Article | None:
        with self._lock:
            article = self._articles.get(article_id)
            return deepcopy(article) if article else None

    def get_article_by_url(self, url: str) -> Article | None:
        with self._lock:
            article = next((a for a in self._articles.values() if a.url == url), None)
            return deepcopy(article) if article else None

    def attach_article(self, quiz_id: UUID, article_id: UUID) -> None:
        with self._lock:
            state = self._quizzes.get(quiz_id)
            if state is None:
                raise NoSuchQuizError()
            if article_id in state.article_ids:
                raise ArticleAlreadyInQuizError()
            state.article_ids.append(article_id)

    def detach_article(self, quiz_id: UUID, article_id: UUID) -> bool:
        with self._lock:
            state = self._quizzes.get(quiz_id)
            if state is None or article_id not in state.article_ids:
                return False
            state.article_ids.remove(article_id)
            return True

    def list_quiz_articles(self, quiz_id: UUID) -> list[Article]:
        with self._lock:
            state = self._quizzes.get(quiz_id)
            if state is None:
                return []
            return [deepcopy(self._articles[aid]) for aid in state.article_ids]
