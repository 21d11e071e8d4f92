"""Persistence port used by the quiz services.

Adapters: :mod:`newsquiz_app.core.memory_store` and
:mod:`newsquiz_app.core.sql_store`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from newsquiz_app.core.models import Article, AnswerAlternative, Question, Quiz, User, UserAnswer

QUIZ_UPDATABLE_FIELDS = frozenset(
    {"title", "image_url", "available_from", "available_to", "published", "is_deleted", "last_modified_at"}
)
USER_UPDATABLE_FIELDS = frozenset({"opt_in_ranking", "role", "phone", "email"})


@dataclass(slots=True)
class NewAlternative:
    """Alternative as supplied by an author, before it has an id."""

    text: str
    is_correct: bool = False


class QuizStore(ABC):
    """Storage contract for quizzes, questions, the answer ledger and users.

    Implementations must guarantee two things atomically:

    * ``insert_question`` gives the new question ``max(arrangement) + 1`` for
      its quiz, even when called concurrently.
    * ``insert_answer`` stores at most one answer per (user, question) and
      raises :class:`~newsquiz_app.core.errors.QuestionAlreadyAnsweredError`
      otherwise, without writing anything.
    """

    # -- Quizzes ---------------------------------------------------------
    @abstractmethod
    def add_quiz(self, quiz: Quiz) -> Quiz: ...

    @abstractmethod
    def get_quiz(self, quiz_id: UUID, include_questions: bool = True) -> Quiz | None:
        """Return the quiz, deleted or not, or ``None``."""

    @abstractmethod
    def list_quizzes(self, include_deleted: bool = False) -> list[Quiz]:
        """Quiz metadata (without questions) ordered by ``available_from``."""

    @abstractmethod
    def update_quiz(self, quiz_id: UUID, changes: Mapping[str, object]) -> bool:
        """Apply field changes. Returns ``False`` when the quiz does not exist."""

    @abstractmethod
    def find_open_quizzes(self, now: datetime) -> list[Quiz]:
        """Published, non-deleted quizzes whose window contains ``now``."""

    # -- Questions -------------------------------------------------------
    @abstractmethod
    def insert_question(
        self,
        quiz_id: UUID,
        text: str,
        points: int,
        alternatives: Sequence[NewAlternative],
        article_id: UUID | None = None,
    ) -> Question: ...

    @abstractmethod
    def list_questions(self, quiz_id: UUID) -> list[Question]:
        """Questions of a quiz ordered by arrangement."""

    @abstractmethod
    def get_question(self, question_id: UUID) -> Question | None: ...

    @abstractmethod
    def get_alternative(self, alternative_id: UUID) -> AnswerAlternative | None: ...

    # -- Answer ledger ---------------------------------------------------
    @abstractmethod
    def insert_answer(
        self,
        user_id: UUID,
        question_id: UUID,
        alternative_id: UUID,
        created_at: datetime,
    ) -> UserAnswer: ...

    @abstractmethod
    def list_answers(self, user_id: UUID, quiz_id: UUID) -> list[UserAnswer]:
        """A user's answers within one quiz, oldest first."""

    @abstractmethod
    def list_answers_for_quiz(self, quiz_id: UUID) -> list[UserAnswer]: ...

    @abstractmethod
    def list_answers_for_user(self, user_id: UUID) -> list[UserAnswer]: ...

    @abstractmethod
    def list_all_answers(self) -> list[UserAnswer]: ...

    # -- Users -----------------------------------------------------------
    @abstractmethod
    def add_user(self, user: User) -> User: ...

    @abstractmethod
    def get_user(self, user_id: UUID) -> User | None: ...

    @abstractmethod
    def list_users(self) -> list[User]: ...

    @abstractmethod
    def update_user(self, user_id: UUID, changes: Mapping[str, object]) -> bool: ...

    @abstractmethod
    def claim_username(self, user_id: UUID, username: str) -> bool:
        """Give the user ``username`` unless another user holds it.

        Returns ``False`` when the name is taken. Raises ``NoSuchUserError``
        for unknown users.
        """

    # -- Articles --------------------------------------------------------
    @abstractmethod
    def add_article(self, article: Article) -> Article: ...

    @abstractmethod
    def get_article(self, article_id: UUID) -> Article | None: ...

    @abstractmethod
    def get_article_by_url(self, url: str) -> Article | None: ...

    @abstractmethod
    def attach_article(self, quiz_id: UUID, article_id: UUID) -> None:
        """Raises ``ArticleAlreadyInQuizError`` when already attached."""

    @abstractmethod
    def detach_article(self, quiz_id: UUID, article_id: UUID) -> bool: ...

    @abstractmethod
    def list_quiz_articles(self, quiz_id: UUID) -> list[Article]: ...


def check_changes(changes: Mapping[str, object], allowed: frozenset[str]) -> None:
    unknown = set(changes) - allowed
    if unknown:
        raise ValueError(f"Unsupported fields: {', '.join(sorted(unknown))}")
