"""Service for authoring and looking up quizzes."""

from __future__ import annotations

from datetime import datetime
import logging
from uuid import UUID, uuid4

from newsquiz_app.constants.quiz_constants import (
    DEFAULT_QUIZ_DURATION,
    DEFAULT_QUIZ_IMAGE_URL,
    DEFAULT_QUIZ_TITLE_TEMPLATE,
)
from newsquiz_app.core.errors import NoSuchQuizError, QuizValidationError
from newsquiz_app.core.models import Quiz
from newsquiz_app.core.store import QuizStore
from newsquiz_app.utils.clock import Clock, as_utc, utc_now

logger = logging.getLogger(__name__)


class QuizCatalog:
    """Quiz metadata: creation, soft deletion and field-level edits."""

    def __init__(self, store: QuizStore, clock: Clock = utc_now) -> None:
        self._store = store
        self._clock = clock

    def create_default_quiz(self) -> Quiz:
        """Create an unpublished quiz for the current week, open for seven days."""
        now = self._clock()
        week = now.isocalendar()[1]
        return self.create_quiz(
            title=DEFAULT_QUIZ_TITLE_TEMPLATE.format(week=week),
            available_from=now,
            available_to=now + DEFAULT_QUIZ_DURATION,
            image_url=DEFAULT_QUIZ_IMAGE_URL,
        )

    def create_quiz(
        self,
        title: str,
        available_from: datetime,
        available_to: datetime,
        image_url: str | None = None,
        published: bool = False,
    ) -> Quiz:
        cleaned_title = self._validate_title(title)
        start, end = as_utc(available_from), as_utc(available_to)
        self._validate_window(start, end)
        now = self._clock()
        quiz = Quiz(
            id=uuid4(),
            title=cleaned_title,
            image_url=image_url,
            available_from=start,
            available_to=end,
            created_at=now,
            last_modified_at=now,
            published=published,
        )
        created = self._store.add_quiz(quiz)
        logger.info("Created quiz %s (%s)", created.id, created.title)
        return created

    def get_quiz(self, quiz_id: UUID, include_questions: bool = True) -> Quiz:
        """Return a non-deleted quiz or raise ``NoSuchQuizError``."""
        quiz = self._store.get_quiz(quiz_id, include_questions=include_questions)
        if quiz is None or quiz.is_deleted:
            raise NoSuchQuizError()
        return quiz

    def list_quizzes(self) -> list[Quiz]:
        return self._store.list_quizzes()

    def list_published_quizzes(self) -> list[Quiz]:
        return [quiz for quiz in self._store.list_quizzes() if quiz.published]

    def list_unpublished_quizzes(self) -> list[Quiz]:
        return [quiz for quiz in self._store.list_quizzes() if not quiz.published]

    def update_title(self, quiz_id: UUID, title: str) -> Quiz:
        return self._update(quiz_id, title=self._validate_title(title))

    def update_image(self, quiz_id: UUID, image_url: str) -> Quiz:
        cleaned = image_url.strip()
        if not cleaned:
            raise QuizValidationError("Image URL must not be empty.")
        return self._update(quiz_id, image_url=cleaned)

    def remove_image(self, quiz_id: UUID) -> Quiz:
        return self._update(quiz_id, image_url=None)

    def update_available_from(self, quiz_id: UUID, available_from: datetime) -> Quiz:
        quiz = self.get_quiz(quiz_id, include_questions=False)
        start = as_utc(available_from)
        self._validate_window(start, quiz.available_to)
        return self._update(quiz_id, available_from=start)

    def update_available_to(self, quiz_id: UUID, available_to: datetime) -> Quiz:
        quiz = self.get_quiz(quiz_id, include_questions=False)
        end = as_utc(available_to)
        self._validate_window(quiz.available_from, end)
        return self._update(quiz_id, available_to=end)

    def set_published(self, quiz_id: UUID, published: bool) -> Quiz:
        return self._update(quiz_id, published=published)

    def delete_quiz(self, quiz_id: UUID) -> None:
        """Soft delete. Answers referencing the quiz stay in the ledger."""
        self._update(quiz_id, is_deleted=True)
        logger.info("Deleted quiz %s", quiz_id)

    def _update(self, quiz_id: UUID, **changes: object) -> Quiz:
        self.get_quiz(quiz_id, include_questions=False)
        changes["last_modified_at"] = self._clock()
        if not self._store.update_quiz(quiz_id, changes):
            raise NoSuchQuizError()
        return self._store.get_quiz(quiz_id, include_questions=False)

    @staticmethod
    def _validate_title(title: str) -> str:
        cleaned = title.strip()
        if not cleaned:
            raise QuizValidationError("Quiz title must not be empty.")
        return cleaned

    @staticmethod
    def _validate_window(available_from: datetime, available_to: datetime) -> None:
        if available_from >= available_to:
            raise QuizValidationError("Quiz must become available before it closes.")
