"""Business logic facade shared by the API and the entry point."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from uuid import UUID

from newsquiz_app.constants.quiz_constants import DEFAULT_LEADERBOARD_LIMIT
from newsquiz_app.core.models import (
    Article,
    FeedbackSummary,
    LeaderboardRow,
    Question,
    QuestionProgress,
    Quiz,
    QuizSummary,
    User,
    UserRole,
)
from newsquiz_app.core.name_assigner import NameAssigner
from newsquiz_app.core.services.answer_ledger import AnswerLedger
from newsquiz_app.core.services.article_registry import ArticleRegistry
from newsquiz_app.core.services.leaderboard import Leaderboard
from newsquiz_app.core.services.open_quiz import OpenQuizResolver
from newsquiz_app.core.services.progression import QuizProgression
from newsquiz_app.core.services.question_bank import QuestionBank
from newsquiz_app.core.services.quiz_catalog import QuizCatalog
from newsquiz_app.core.services.scoring import ScoringEngine
from newsquiz_app.core.services.user_directory import UserDirectory
from newsquiz_app.core.store import NewAlternative, QuizStore
from newsquiz_app.utils.clock import Clock, utc_now


class QuizManager:
    """Facade for quiz services: Catalog, Questions, Ledger, Progression, Scoring, Leaderboard."""

    def __init__(
        self,
        store: QuizStore,
        clock: Clock = utc_now,
        name_assigner: NameAssigner | None = None,
    ) -> None:
        self._store = store

        # Services
        self._catalog = QuizCatalog(store, clock)
        self._questions = QuestionBank(store, self._catalog)
        self._articles = ArticleRegistry(store, self._catalog)
        self._ledger = AnswerLedger(store, clock)
        self._resolver = OpenQuizResolver(store, clock)
        self._progression = QuizProgression(self._catalog, self._ledger, self._resolver)
        self._scoring = ScoringEngine(self._catalog, self._questions, self._ledger, self._resolver, clock)
        self._leaderboard = Leaderboard(store, self._catalog, self._ledger)
        self._users = UserDirectory(store, name_assigner or NameAssigner.from_defaults())

    # --- Quiz Catalog Delegation ---

    def create_default_quiz(self) -> Quiz:
        return self._catalog.create_default_quiz()

    def create_quiz(
        self,
        title: str,
        available_from: datetime,
        available_to: datetime,
        image_url: str | None = None,
        published: bool = False,
    ) -> Quiz:
        return self._catalog.create_quiz(title, available_from, available_to, image_url, published)

    def get_quiz(self, quiz_id: UUID) -> Quiz:
        return self._catalog.get_quiz(quiz_id)

    def list_quizzes(self) -> list[Quiz]:
        return self._catalog.list_quizzes()

    def list_published_quizzes(self) -> list[Quiz]:
        return self._catalog.list_published_quizzes()

    def list_unpublished_quizzes(self) -> list[Quiz]:
        return self._catalog.list_unpublished_quizzes()

    def update_quiz_title(self, quiz_id: UUID, title: str) -> Quiz:
        return self._catalog.update_title(quiz_id, title)

    def update_quiz_image(self, quiz_id: UUID, image_url: str) -> Quiz:
        return self._catalog.update_image(quiz_id, image_url)

    def remove_quiz_image(self, quiz_id: UUID) -> Quiz:
        return self._catalog.remove_image(quiz_id)

    def update_quiz_start(self, quiz_id: UUID, available_from: datetime) -> Quiz:
        return self._catalog.update_available_from(quiz_id, available_from)

    def update_quiz_end(self, quiz_id: UUID, available_to: datetime) -> Quiz:
        return self._catalog.update_available_to(quiz_id, available_to)

    def set_quiz_published(self, quiz_id: UUID, published: bool) -> Quiz:
        return self._catalog.set_published(quiz_id, published)

    def delete_quiz(self, quiz_id: UUID) -> None:
        self._catalog.delete_quiz(quiz_id)

    # --- Question Bank Delegation ---

    def add_question(
        self,
        quiz_id: UUID,
        text: str,
        points: int,
        alternatives: Sequence[NewAlternative],
        article_id: UUID | None = None,
    ) -> Question:
        return self._questions.add_question(quiz_id, text, points, alternatives, article_id)

    def get_question(self, question_id: UUID) -> Question:
        return self._questions.get_question(question_id)

    def list_questions(self, quiz_id: UUID) -> list[Question]:
        return self._questions.list_questions(quiz_id)

    # --- Article Delegation ---

    def add_article_to_quiz(self, quiz_id: UUID, url: str, title: str = "", image_url: str | None = None) -> Article:
        return self._articles.add_article_to_quiz(quiz_id, url, title, image_url)

    def remove_article_from_quiz(self, quiz_id: UUID, article_id: UUID) -> bool:
        return self._articles.remove_article_from_quiz(quiz_id, article_id)

    def list_quiz_articles(self, quiz_id: UUID) -> list[Article]:
        return self._articles.list_quiz_articles(quiz_id)

    def list_used_articles(self, quiz_id: UUID) -> list[Article]:
        return self._articles.list_used_articles(quiz_id)

    # --- Progression Delegation ---

    def get_open_quiz(self) -> Quiz:
        return self._resolver.get_open_quiz()

    def get_open_quiz_id(self) -> UUID:
        return self._resolver.get_open_quiz_id()

    def next_question(self, user_id: UUID, quiz_id: UUID) -> QuestionProgress:
        return self._progression.next_question(user_id, quiz_id)

    def question_at_position(self, quiz_id: UUID, position: int) -> QuestionProgress:
        return self._progression.question_at_position(quiz_id, position)

    # --- Scoring Delegation ---

    def submit_answer(self, user_id: UUID, question_id: UUID, alternative_id: UUID) -> FeedbackSummary:
        return self._scoring.submit_answer(user_id, question_id, alternative_id)

    def submit_guest_answer(
        self,
        question_id: UUID,
        alternative_id: UUID,
        question_presented_at: datetime | None = None,
    ) -> FeedbackSummary:
        return self._scoring.submit_guest_answer(question_id, alternative_id, question_presented_at)

    def get_quiz_summary(self, user_id: UUID, quiz_id: UUID) -> QuizSummary:
        return self._scoring.quiz_summary(user_id, quiz_id)

    def get_completed_quizzes(self, user_id: UUID) -> list[QuizSummary]:
        return self._scoring.completed_quizzes(user_id)

    # --- Leaderboard Delegation ---

    def get_top_scorers(self, quiz_id: UUID | None = None, limit: int = DEFAULT_LEADERBOARD_LIMIT) -> list[LeaderboardRow]:
        return self._leaderboard.get_top_scorers(quiz_id, limit)

    # --- Users ---

    def create_user(
        self,
        email: str,
        phone: str = "",
        opt_in_ranking: bool = False,
        role: UserRole = UserRole.USER,
        user_id: UUID | None = None,
    ) -> User:
        return self._users.create_user(email, phone, opt_in_ranking, role, user_id)

    def get_user(self, user_id: UUID) -> User:
        return self._users.get_user(user_id)

    def set_opt_in_ranking(self, user_id: UUID, opt_in: bool) -> User:
        return self._users.set_opt_in_ranking(user_id, opt_in)

    def set_user_role(self, user_id: UUID, role: UserRole) -> User:
        return self._users.set_role(user_id, role)

    def assign_random_username(self, user_id: UUID) -> str:
        return self._users.assign_username(user_id)
