"""Service for managing the questions of a quiz."""

from __future__ import annotations

from collections.abc import Sequence
from uuid import UUID

from newsquiz_app.constants.quiz_constants import MIN_ALTERNATIVES_PER_QUESTION
from newsquiz_app.core.errors import NoSuchAlternativeError, NoSuchQuestionError, QuizValidationError
from newsquiz_app.core.models import AnswerAlternative, Question
from newsquiz_app.core.services.quiz_catalog import QuizCatalog
from newsquiz_app.core.store import NewAlternative, QuizStore


class QuestionBank:
    """Validates and stores questions. Arrangement is left to the store."""

    def __init__(self, store: QuizStore, catalog: QuizCatalog) -> None:
        self._store = store
        self._catalog = catalog

    def add_question(
        self,
        quiz_id: UUID,
        text: str,
        points: int,
        alternatives: Sequence[NewAlternative],
        article_id: UUID | None = None,
    ) -> Question:
        self._catalog.get_quiz(quiz_id, include_questions=False)
        cleaned_text = text.strip()
        if not cleaned_text:
            raise QuizValidationError("Question text must not be empty.")
        if not isinstance(points, int) or points < 0:
            raise QuizValidationError("Points must be a non-negative integer.")
        cleaned_alternatives = self._validate_alternatives(alternatives)
        if article_id is not None and self._store.get_article(article_id) is None:
            raise QuizValidationError("Linked article does not exist.")
        return self._store.insert_question(
            quiz_id=quiz_id,
            text=cleaned_text,
            points=points,
            alternatives=cleaned_alternatives,
            article_id=article_id,
        )

    def get_question(self, question_id: UUID) -> Question:
        question = self._store.get_question(question_id)
        if question is None:
            raise NoSuchQuestionError()
        return question

    def get_alternative(self, alternative_id: UUID) -> AnswerAlternative:
        alternative = self._store.get_alternative(alternative_id)
        if alternative is None:
            raise NoSuchAlternativeError()
        return alternative

    def list_questions(self, quiz_id: UUID) -> list[Question]:
        self._catalog.get_quiz(quiz_id, include_questions=False)
        return self._store.list_questions(quiz_id)

    @staticmethod
    def _validate_alternatives(alternatives: Sequence[NewAlternative]) -> list[NewAlternative]:
        if len(alternatives) < MIN_ALTERNATIVES_PER_QUESTION:
            raise QuizValidationError(
                f"A question needs at least {MIN_ALTERNATIVES_PER_QUESTION} answer alternatives."
            )
        cleaned = [NewAlternative(text=alt.text.strip(), is_correct=alt.is_correct) for alt in alternatives]
        if any(not alt.text for alt in cleaned):
            raise QuizValidationError("Alternative text cannot be empty.")
        if sum(1 for alt in cleaned if alt.is_correct) != 1:
            raise QuizValidationError("Exactly one alternative must be marked correct.")
        return cleaned
